import logging
from dataclasses import dataclass
from enum import Enum

from src.services.errors import EmptyDocumentError, ExtractionError
from src.services.processors.gemini_client import (
    GeminiAPIError,
    GeminiClient,
    GeminiTransportError,
    GenerationConfig,
    gemini_client,
    inline_data_part,
    text_part,
)

logger = logging.getLogger(__name__)

PDF_MIME_TYPE = "application/pdf"

PDF_PROMPT = (
    "Extract all text from this PDF document with high accuracy. Maintain the original "
    "formatting, structure, and layout as much as possible. Please:\n"
    "- Preserve paragraph breaks and spacing\n"
    "- Maintain table structures if present\n"
    "- Keep headers and subheaders distinct\n"
    "- Preserve any list formatting (bullets, numbers)\n"
    "- Include page breaks where appropriate\n\n"
    "Return only the extracted text without any additional commentary."
)

OCR_PROMPT = (
    "Extract all text from this image with high accuracy. Maintain the original "
    "formatting, structure, and layout as much as possible. If there are:\n"
    "- Tables: Preserve tabular format with proper spacing\n"
    "- Lists: Maintain bullet points or numbering\n"
    "- Headers: Keep hierarchical structure\n"
    "- Paragraphs: Preserve paragraph breaks\n\n"
    "Return only the extracted text without any additional commentary or explanations."
)

# Near-deterministic decoding keeps repeated extractions of the same file stable
EXTRACTION_CONFIG = GenerationConfig(
    temperature=0.1,
    top_k=1,
    top_p=1,
    max_output_tokens=8192,
)


@dataclass(frozen=True)
class TemplateSpec:
    prompt: str
    fallback_error: str
    progress_label: str


class ExtractionTemplate(Enum):
    PDF = TemplateSpec(
        prompt=PDF_PROMPT,
        fallback_error="PDF text extraction failed",
        progress_label="Extracting PDF Content...",
    )
    OCR = TemplateSpec(
        prompt=OCR_PROMPT,
        fallback_error="OCR processing failed",
        progress_label="Processing with OCR...",
    )

    @classmethod
    def for_mime_type(cls, mime_type: str) -> "ExtractionTemplate":
        return cls.PDF if mime_type == PDF_MIME_TYPE else cls.OCR


class ExtractionProcessor:
    def __init__(self, client: GeminiClient | None = None):
        self.client = client or gemini_client

    async def extract(self, encoded: str, mime_type: str) -> str:
        """
        Extract plain text from a base64-encoded document.

        PDFs get the layout-preserving PDF prompt, everything else the OCR prompt.
        A single attempt is made; failures are not retried.

        Args:
            encoded: Base64 file content without data-URL prefix
            mime_type: Declared MIME type of the upload

        Returns:
            Extracted text from the first candidate

        Raises:
            ExtractionError: On API or transport failure
            EmptyDocumentError: If the extracted text is empty or whitespace
        """
        template = ExtractionTemplate.for_mime_type(mime_type)
        parts = [
            text_part(template.value.prompt),
            inline_data_part(mime_type, encoded),
        ]
        logger.info(f"Requesting {template.name} extraction ({len(encoded)} base64 chars, {mime_type})")

        try:
            text = await self.client.generate(parts, EXTRACTION_CONFIG)
        except GeminiAPIError as e:
            raise ExtractionError(e.message or template.value.fallback_error) from e
        except GeminiTransportError as e:
            raise ExtractionError(f"{template.value.fallback_error}: {e}") from e

        if not text.strip():
            logger.warning("Extraction returned empty text")
            raise EmptyDocumentError()

        logger.info(f"Extraction completed: {len(text)} characters")
        return text


extraction_processor = ExtractionProcessor()
