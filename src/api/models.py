from pydantic import BaseModel
from typing import List, Optional

from src.services.processors.extraction_processor import ExtractionTemplate
from src.services.processors.summary_processor import SummaryLength
from src.services.session import Session
from src.services.states import SessionState, UploadedFile


class FileInfo(BaseModel):
    file_id: str
    name: str
    mime_type: str
    size: int
    size_mb: float
    kind: str  # "PDF Document" or "Image File"
    is_pdf: bool

    @classmethod
    def from_upload(cls, uploaded: UploadedFile) -> "FileInfo":
        return cls(
            file_id=uploaded.file_id,
            name=uploaded.name,
            mime_type=uploaded.mime_type,
            size=uploaded.size,
            size_mb=uploaded.size_mb,
            kind=uploaded.kind_label,
            is_pdf=uploaded.is_pdf,
        )


def _progress_label(state: SessionState) -> Optional[str]:
    if state.is_extracting and state.file:
        return ExtractionTemplate.for_mime_type(state.file.mime_type).value.progress_label
    if state.is_processing:
        return f"Generating {state.summary_length.value} summary..."
    return None


class SessionResponse(BaseModel):
    session_id: str
    file: Optional[FileInfo] = None
    extracted_text: str = ""
    character_count: int = 0
    word_count: int = 0
    summary: str = ""
    summary_length: SummaryLength = SummaryLength.MEDIUM
    is_extracting: bool = False
    is_processing: bool = False
    progress_label: Optional[str] = None  # Set while an operation is running
    error: Optional[str] = None

    @classmethod
    def from_state(cls, session_id: str, state: SessionState) -> "SessionResponse":
        return cls(
            session_id=session_id,
            file=FileInfo.from_upload(state.file) if state.file else None,
            extracted_text=state.extracted_text,
            character_count=state.character_count,
            word_count=state.word_count,
            summary=state.summary,
            summary_length=state.summary_length,
            is_extracting=state.is_extracting,
            is_processing=state.is_processing,
            progress_label=_progress_label(state),
            error=state.error or None,
        )

    @classmethod
    def from_session(cls, session: Session) -> "SessionResponse":
        return cls.from_state(session.session_id, session.state)


class SummaryLengthRequest(BaseModel):
    summary_length: SummaryLength


class SummaryLengthOption(BaseModel):
    value: SummaryLength
    label: str
    description: str
    max_tokens: int


class OptionsResponse(BaseModel):
    accepted_extensions: List[str]
    allowed_mime_types: List[str]
    max_upload_bytes: int
    summary_lengths: List[SummaryLengthOption]
