from .gemini_client import GeminiClient, gemini_client
from .extraction_processor import ExtractionProcessor, extraction_processor
from .summary_processor import SummaryProcessor, summary_processor

__all__ = [
    "GeminiClient",
    "gemini_client",
    "ExtractionProcessor",
    "extraction_processor",
    "SummaryProcessor",
    "summary_processor",
]
