from .document_encode_node import encode_document
from .text_extract_node import extract_text
from .ai_summary_node import summarize_document

__all__ = ["encode_document", "extract_text", "summarize_document"]
