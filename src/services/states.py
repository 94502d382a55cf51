import uuid
from typing import Literal, Optional, TypedDict, Union

from pydantic import BaseModel, ConfigDict, Field

from src.services.processors.summary_processor import SummaryLength


class ExtractionState(TypedDict):
    """State that flows through the extraction workflow"""
    file_bytes: bytes  # Raw upload content
    mime_type: str  # Declared MIME type of the upload
    encoded: Optional[str]  # Base64 payload (set by encode_document)
    extracted_text: str


class SummaryState(TypedDict):
    """State that flows through the summarization workflow"""
    extracted_text: str
    summary_length: SummaryLength
    summary: str


class UploadedFile(BaseModel):
    """An accepted upload. Replaced wholesale when a new file is accepted."""

    model_config = ConfigDict(frozen=True)

    file_id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    name: str
    mime_type: str
    size: int
    content: bytes = Field(repr=False)

    @property
    def is_pdf(self) -> bool:
        return self.mime_type == "application/pdf"

    @property
    def size_mb(self) -> float:
        return round(self.size / 1024 / 1024, 2)

    @property
    def kind_label(self) -> str:
        return "PDF Document" if "pdf" in self.mime_type else "Image File"


class SessionState(BaseModel):
    """Everything one browser tab knows. Never mutated; see session.reduce."""

    model_config = ConfigDict(frozen=True)

    file: Optional[UploadedFile] = None
    extracted_text: str = ""
    summary: str = ""
    summary_length: SummaryLength = SummaryLength.MEDIUM
    is_extracting: bool = False
    is_processing: bool = False  # summarizing
    error: str = ""

    @property
    def character_count(self) -> int:
        return len(self.extracted_text)

    @property
    def word_count(self) -> int:
        return len(self.extracted_text.split())


# Actions

class _Action(BaseModel):
    model_config = ConfigDict(frozen=True)


class FileAccepted(_Action):
    type: Literal["file_accepted"] = "file_accepted"
    file: UploadedFile


class FileRejected(_Action):
    type: Literal["file_rejected"] = "file_rejected"
    error: str


class LengthSelected(_Action):
    type: Literal["length_selected"] = "length_selected"
    summary_length: SummaryLength


class ExtractionStarted(_Action):
    type: Literal["extraction_started"] = "extraction_started"
    file_id: Optional[str]


class ExtractionSucceeded(_Action):
    type: Literal["extraction_succeeded"] = "extraction_succeeded"
    file_id: Optional[str]
    text: str


class ExtractionFailed(_Action):
    type: Literal["extraction_failed"] = "extraction_failed"
    file_id: Optional[str]
    error: str


class SummarizationStarted(_Action):
    type: Literal["summarization_started"] = "summarization_started"
    file_id: Optional[str]


class SummarizationSucceeded(_Action):
    type: Literal["summarization_succeeded"] = "summarization_succeeded"
    file_id: Optional[str]
    summary: str


class SummarizationFailed(_Action):
    type: Literal["summarization_failed"] = "summarization_failed"
    file_id: Optional[str]
    error: str


class ExportRequested(_Action):
    type: Literal["export_requested"] = "export_requested"
    timestamp_ms: int


SessionAction = Union[
    FileAccepted,
    FileRejected,
    LengthSelected,
    ExtractionStarted,
    ExtractionSucceeded,
    ExtractionFailed,
    SummarizationStarted,
    SummarizationSucceeded,
    SummarizationFailed,
    ExportRequested,
]
