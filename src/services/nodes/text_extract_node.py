import logging
from langchain_core.runnables import RunnableConfig
from src.services.states import ExtractionState
from src.services.processors.extraction_processor import extraction_processor

logger = logging.getLogger(__name__)

async def extract_text(state: ExtractionState, config: RunnableConfig) -> ExtractionState:
    """Step 2: Extract text through the inference endpoint (PDF or OCR prompt)"""
    logger.info(f"Step 2: Extracting text ({state['mime_type']})")
    processor = config.get("configurable", {}).get("extraction_processor", extraction_processor)
    state["extracted_text"] = await processor.extract(state["encoded"], state["mime_type"])
    return state
