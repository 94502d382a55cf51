import logging
from src.services.states import ExtractionState
from src.services.processors.encoder import file_to_base64

logger = logging.getLogger(__name__)

async def encode_document(state: ExtractionState) -> ExtractionState:
    """Step 1: Base64-encode the uploaded document"""
    logger.info("Step 1: Encoding document")
    state["encoded"] = file_to_base64(state["file_bytes"])
    logger.debug(f"Encoded {len(state['file_bytes'])} bytes")
    return state
