from dataclasses import dataclass
from datetime import datetime

from src.services.processors.summary_processor import SummaryLength

EXPORT_MEDIA_TYPE = "text/plain"


@dataclass(frozen=True)
class SummaryExport:
    filename: str
    content: str

    @property
    def payload(self) -> bytes:
        return self.content.encode("utf-8")


def format_timestamp(timestamp_ms: int) -> str:
    """Human-readable local time, e.g. ``11/14/2023, 10:13:20 PM``."""
    return datetime.fromtimestamp(timestamp_ms / 1000).strftime("%m/%d/%Y, %I:%M:%S %p")


def build_summary_export(summary: str, length: SummaryLength, timestamp_ms: int) -> SummaryExport | None:
    """Build the downloadable text file, or None when there is no summary."""
    if not summary:
        return None

    length = SummaryLength(length)
    content = (
        f"Document Summary ({length.value.upper()})\n"
        f"Generated on: {format_timestamp(timestamp_ms)}\n\n"
        f"{summary}"
    )
    return SummaryExport(
        filename=f"{length.value}_summary_{timestamp_ms}.txt",
        content=content,
    )
