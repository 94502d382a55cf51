import logging
from langchain_core.runnables import RunnableConfig
from src.services.states import SummaryState
from src.services.processors.summary_processor import summary_processor

logger = logging.getLogger(__name__)

async def summarize_document(state: SummaryState, config: RunnableConfig) -> SummaryState:
    """Generate a summary of the extracted text at the selected length"""
    logger.info(f"Running {state['summary_length'].value} document summarization")
    processor = config.get("configurable", {}).get("summary_processor", summary_processor)
    state["summary"] = await processor.summarize(
        state.get("extracted_text"),
        state["summary_length"],
    )
    return state
