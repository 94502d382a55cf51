import logging
from dataclasses import dataclass
from enum import Enum

from src.services.errors import MissingInputError, SummarizationError
from src.services.processors.gemini_client import (
    GeminiAPIError,
    GeminiClient,
    GeminiTransportError,
    GenerationConfig,
    gemini_client,
    text_part,
)

logger = logging.getLogger(__name__)

SUMMARY_FALLBACK_ERROR = "Summary generation failed"

FOCUS_DIRECTIVES = (
    "Main themes and key ideas",
    "Important facts, figures, and data points",
    "Significant conclusions or findings",
    "Action items or recommendations (if any)",
    "Critical insights or implications",
)


@dataclass(frozen=True)
class LengthProfile:
    label: str
    description: str
    instruction: str
    max_tokens: int


class SummaryLength(str, Enum):
    SHORT = "short"
    MEDIUM = "medium"
    LONG = "long"

    @property
    def profile(self) -> LengthProfile:
        return LENGTH_PROFILES[self]


LENGTH_PROFILES = {
    SummaryLength.SHORT: LengthProfile(
        label="Concise",
        description="Quick 2-3 sentence overview",
        instruction=(
            "Create a concise summary in 2-3 sentences highlighting only the most "
            "critical points and key takeaways."
        ),
        max_tokens=200,
    ),
    SummaryLength.MEDIUM: LengthProfile(
        label="Balanced",
        description="Comprehensive 1-2 paragraphs",
        instruction=(
            "Create a comprehensive summary in 1-2 paragraphs covering the main ideas, "
            "key details, and important conclusions."
        ),
        max_tokens=500,
    ),
    SummaryLength.LONG: LengthProfile(
        label="Detailed",
        description="In-depth 3-4 paragraph analysis",
        instruction=(
            "Create a detailed summary in 3-4 paragraphs that thoroughly covers all "
            "important aspects, key points, supporting details, and conclusions."
        ),
        max_tokens=1000,
    ),
}


def summary_config(length: SummaryLength) -> GenerationConfig:
    return GenerationConfig(
        temperature=0.3,
        top_k=40,
        top_p=0.95,
        max_output_tokens=length.profile.max_tokens,
    )


def build_summary_prompt(text: str, length: SummaryLength) -> str:
    focus = "\n".join(f"- {directive}" for directive in FOCUS_DIRECTIVES)
    return (
        f"Analyze the following document and provide a {length.value} summary. "
        f"{length.profile.instruction}\n\n"
        f"Focus on:\n{focus}\n\n"
        f"Document Content:\n{text}\n\n"
        f"Summary:"
    )


class SummaryProcessor:
    def __init__(self, client: GeminiClient | None = None):
        self.client = client or gemini_client

    async def summarize(self, text: str | None, length: SummaryLength) -> str:
        """
        Generate a summary of previously extracted text.

        An empty summary from the model is returned as-is.

        Raises:
            MissingInputError: If there is no extracted text
            SummarizationError: On API or transport failure
        """
        if not text:
            raise MissingInputError()

        length = SummaryLength(length)
        prompt = build_summary_prompt(text, length)
        logger.info(f"Requesting {length.value} summary for {len(text)} characters")

        try:
            summary = await self.client.generate([text_part(prompt)], summary_config(length))
        except GeminiAPIError as e:
            raise SummarizationError(e.message or SUMMARY_FALLBACK_ERROR) from e
        except GeminiTransportError as e:
            raise SummarizationError(str(e)) from e

        if not summary:
            logger.warning("Summarization returned empty text")
        else:
            logger.info(f"Summary generated: {len(summary)} characters")
        return summary


summary_processor = SummaryProcessor()
