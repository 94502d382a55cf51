from langgraph.graph import StateGraph, END
from src.services.states import ExtractionState, SummaryState
from src.services.nodes import encode_document, extract_text, summarize_document


def build_extraction_graph():
    """Build and compile the LangGraph workflow for text extraction"""
    workflow = StateGraph(ExtractionState)

    workflow.add_node("encode_document", encode_document)
    workflow.add_node("extract_text", extract_text)

    # encode_document -> extract_text -> END
    workflow.set_entry_point("encode_document")
    workflow.add_edge("encode_document", "extract_text")
    workflow.add_edge("extract_text", END)

    return workflow.compile()


def build_summary_graph():
    """Build and compile the LangGraph workflow for summarization"""
    workflow = StateGraph(SummaryState)

    workflow.add_node("summarize_document", summarize_document)

    workflow.set_entry_point("summarize_document")
    workflow.add_edge("summarize_document", END)

    return workflow.compile()

# Create the compiled graph instances
extraction_graph = build_extraction_graph()
summary_graph = build_summary_graph()
