"""Session state transitions and the user-action boundary.

``reduce`` is the only place a ``SessionState`` changes. ``SessionService``
turns user actions (select file, extract, summarize, export) into actions,
runs the network work as one asyncio task per operation kind, and converts
every failure into the session's error string.
"""

import asyncio
import logging
import time
import uuid
from dataclasses import dataclass, field
from typing import Callable, Optional

from src.services.errors import (
    DocumentError,
    MissingInputError,
    OperationInProgressError,
    OperationSupersededError,
    SessionNotFoundError,
    ValidationError,
)
from src.services.processors.exporter import SummaryExport, build_summary_export
from src.services.processors.extraction_processor import ExtractionProcessor
from src.services.processors.file_validator import normalize_mime_type, validate_upload
from src.services.processors.summary_processor import SummaryLength, SummaryProcessor
from src.services.states import (
    ExportRequested,
    ExtractionFailed,
    ExtractionStarted,
    ExtractionSucceeded,
    FileAccepted,
    FileRejected,
    LengthSelected,
    SessionAction,
    SessionState,
    SummarizationFailed,
    SummarizationStarted,
    SummarizationSucceeded,
    UploadedFile,
)
from src.services.workflow import extraction_graph, summary_graph

logger = logging.getLogger(__name__)

EXTRACTION = "extraction"
SUMMARIZATION = "summarization"

SUMMARY_ERROR_PREFIX = "Summary generation failed"

_TAGGED_ACTIONS = (
    ExtractionStarted,
    ExtractionSucceeded,
    ExtractionFailed,
    SummarizationStarted,
    SummarizationSucceeded,
    SummarizationFailed,
)


def _current_file_id(state: SessionState) -> Optional[str]:
    return state.file.file_id if state.file else None


def reduce(state: SessionState, action: SessionAction) -> SessionState:
    """
    Apply one action and return the resulting state.

    Actions tagged with a file id that no longer matches the current file are
    results of superseded work and leave the state unchanged.
    """
    if isinstance(action, _TAGGED_ACTIONS) and action.file_id != _current_file_id(state):
        logger.info(f"Discarding stale {action.type} for file {action.file_id}")
        return state

    if isinstance(action, FileAccepted):
        # Busy flags reset too: work for the previous file is cancelled
        return state.model_copy(update={
            "file": action.file,
            "extracted_text": "",
            "summary": "",
            "error": "",
            "is_extracting": False,
            "is_processing": False,
        })
    if isinstance(action, FileRejected):
        return state.model_copy(update={"error": action.error})
    if isinstance(action, LengthSelected):
        return state.model_copy(update={"summary_length": action.summary_length})
    if isinstance(action, ExtractionStarted):
        return state.model_copy(update={"is_extracting": True, "error": ""})
    if isinstance(action, ExtractionSucceeded):
        return state.model_copy(update={"is_extracting": False, "extracted_text": action.text, "error": ""})
    if isinstance(action, ExtractionFailed):
        return state.model_copy(update={"is_extracting": False, "extracted_text": "", "error": action.error})
    if isinstance(action, SummarizationStarted):
        return state.model_copy(update={"is_processing": True, "error": ""})
    if isinstance(action, SummarizationSucceeded):
        return state.model_copy(update={"is_processing": False, "summary": action.summary, "error": ""})
    if isinstance(action, SummarizationFailed):
        # A previous summary survives a failed regeneration
        return state.model_copy(update={"is_processing": False, "error": action.error})
    if isinstance(action, ExportRequested):
        return state
    raise TypeError(f"Unknown session action: {action!r}")


@dataclass
class Session:
    session_id: str
    state: SessionState = field(default_factory=SessionState)
    tasks: dict[str, asyncio.Task] = field(default_factory=dict)
    last_seen: float = 0.0

    def dispatch(self, action: SessionAction) -> SessionState:
        self.state = reduce(self.state, action)
        return self.state

    def is_busy(self) -> bool:
        return any(not task.done() for task in self.tasks.values())

    def cancel_tasks(self) -> None:
        for kind, task in self.tasks.items():
            if not task.done():
                logger.info(f"Cancelling in-flight {kind} for session {self.session_id}")
                task.cancel()
        self.tasks.clear()


class SessionStore:
    """
    In-memory sessions, one per browser tab. Nothing survives a restart.

    A tab that closes without sending DELETE leaves its session behind, so
    sessions idle for longer than ``ttl_seconds`` are evicted whenever a
    session is created or looked up. Sessions with running work are kept.
    """

    def __init__(self, ttl_seconds: Optional[float] = None, clock: Callable[[], float] = time.monotonic):
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._sessions: dict[str, Session] = {}

    def create(self) -> Session:
        self.evict_expired()
        session = Session(session_id=uuid.uuid4().hex, last_seen=self._clock())
        self._sessions[session.session_id] = session
        logger.info(f"Created session {session.session_id}")
        return session

    def get(self, session_id: str) -> Session:
        self.evict_expired()
        try:
            session = self._sessions[session_id]
        except KeyError:
            raise SessionNotFoundError(f"Session not found: {session_id}") from None
        session.last_seen = self._clock()
        return session

    def evict_expired(self) -> int:
        """Drop idle sessions; returns how many were removed."""
        if self.ttl_seconds is None:
            return 0
        cutoff = self._clock() - self.ttl_seconds
        expired = [
            session_id
            for session_id, session in self._sessions.items()
            if session.last_seen < cutoff and not session.is_busy()
        ]
        for session_id in expired:
            session = self._sessions.pop(session_id)
            session.cancel_tasks()
        if expired:
            logger.info(f"Evicted {len(expired)} idle session(s)")
        return len(expired)

    def remove(self, session_id: str) -> None:
        session = self._sessions.pop(session_id, None)
        if session is None:
            raise SessionNotFoundError(f"Session not found: {session_id}")
        session.cancel_tasks()
        logger.info(f"Closed session {session_id}")

    def clear(self) -> None:
        for session_id in list(self._sessions):
            self.remove(session_id)

    def __len__(self) -> int:
        return len(self._sessions)


class SessionService:
    def __init__(
        self,
        store: Optional[SessionStore] = None,
        extraction_processor: Optional[ExtractionProcessor] = None,
        summary_processor: Optional[SummaryProcessor] = None,
        max_upload_bytes: Optional[int] = None,
    ):
        self.store = store if store is not None else SessionStore()
        self.max_upload_bytes = max_upload_bytes
        # Processors travel to the graph nodes through the run config
        self._configurable = {}
        if extraction_processor is not None:
            self._configurable["extraction_processor"] = extraction_processor
        if summary_processor is not None:
            self._configurable["summary_processor"] = summary_processor

    def create_session(self) -> Session:
        return self.store.create()

    def get_state(self, session_id: str) -> SessionState:
        return self.store.get(session_id).state

    def close_session(self, session_id: str) -> None:
        self.store.remove(session_id)

    def precheck_file(self, session_id: str, mime_type: str, size: Optional[int]) -> bool:
        """
        Validate type and declared size before the upload body is read.

        Returns False (and records the error) when the upload is rejected.
        """
        session = self.store.get(session_id)
        try:
            validate_upload(mime_type, size, self.max_upload_bytes)
        except ValidationError as e:
            session.dispatch(FileRejected(error=e.message))
            return False
        return True

    def select_file(self, session_id: str, name: str, mime_type: str, content: bytes) -> SessionState:
        """Validate a new upload; on acceptance replace the file and cancel running work."""
        session = self.store.get(session_id)
        mime_type = normalize_mime_type(mime_type)
        try:
            validate_upload(mime_type, len(content), self.max_upload_bytes)
        except ValidationError as e:
            # Rejection keeps the current file, text and summary
            return session.dispatch(FileRejected(error=e.message))

        session.cancel_tasks()
        uploaded = UploadedFile(name=name, mime_type=mime_type, size=len(content), content=content)
        logger.info(f"Session {session_id}: accepted {name} ({uploaded.size_mb} MB, {mime_type})")
        return session.dispatch(FileAccepted(file=uploaded))

    def select_length(self, session_id: str, summary_length: SummaryLength) -> SessionState:
        session = self.store.get(session_id)
        return session.dispatch(LengthSelected(summary_length=SummaryLength(summary_length)))

    async def extract(self, session_id: str) -> SessionState:
        """
        Extract text from the current file.

        Raises:
            MissingInputError: If no file is selected
            OperationInProgressError: If an extraction is already running
            OperationSupersededError: If a new file was selected meanwhile
        """
        session = self.store.get(session_id)
        uploaded = session.state.file
        if uploaded is None:
            raise MissingInputError("Please select a file first")
        self._ensure_idle(session, EXTRACTION)

        session.dispatch(ExtractionStarted(file_id=uploaded.file_id))
        task = asyncio.create_task(self._run_extraction(session, uploaded))
        return await self._await_task(session, EXTRACTION, task)

    async def summarize(self, session_id: str) -> SessionState:
        """
        Summarize the extracted text at the selected length.

        Raises:
            OperationInProgressError: If a summarization is already running
            OperationSupersededError: If a new file was selected meanwhile
        """
        session = self.store.get(session_id)
        state = session.state
        file_id = _current_file_id(state)
        if not state.extracted_text:
            return session.dispatch(SummarizationFailed(file_id=file_id, error=MissingInputError().message))
        self._ensure_idle(session, SUMMARIZATION)

        session.dispatch(SummarizationStarted(file_id=file_id))
        task = asyncio.create_task(
            self._run_summarization(session, file_id, state.extracted_text, state.summary_length)
        )
        return await self._await_task(session, SUMMARIZATION, task)

    def export(self, session_id: str, timestamp_ms: Optional[int] = None) -> Optional[SummaryExport]:
        """Build the summary download; None when there is nothing to export."""
        session = self.store.get(session_id)
        if timestamp_ms is None:
            timestamp_ms = int(time.time() * 1000)
        state = session.dispatch(ExportRequested(timestamp_ms=timestamp_ms))
        return build_summary_export(state.summary, state.summary_length, timestamp_ms)

    def _ensure_idle(self, session: Session, kind: str) -> None:
        task = session.tasks.get(kind)
        if task is not None and not task.done():
            raise OperationInProgressError(f"{kind.capitalize()} already in progress")

    async def _await_task(self, session: Session, kind: str, task: asyncio.Task) -> SessionState:
        session.tasks[kind] = task
        # wait() does not cancel the task if this request goes away
        await asyncio.wait({task})
        if session.tasks.get(kind) is task:
            del session.tasks[kind]
        if task.cancelled():
            raise OperationSupersededError()
        return session.state

    async def _run_extraction(self, session: Session, uploaded: UploadedFile) -> None:
        file_id = uploaded.file_id
        try:
            result = await extraction_graph.ainvoke(
                {
                    "file_bytes": uploaded.content,
                    "mime_type": uploaded.mime_type,
                    "encoded": None,
                    "extracted_text": "",
                },
                config={"configurable": self._configurable},
            )
        except DocumentError as e:
            logger.warning(f"Extraction failed for {uploaded.name}: {e}")
            session.dispatch(ExtractionFailed(file_id=file_id, error=e.message))
        except Exception as e:
            logger.error(f"Unexpected extraction error for {uploaded.name}: {e}", exc_info=True)
            session.dispatch(ExtractionFailed(file_id=file_id, error=str(e) or "Text extraction failed"))
        else:
            session.dispatch(ExtractionSucceeded(file_id=file_id, text=result["extracted_text"]))

    async def _run_summarization(
        self,
        session: Session,
        file_id: Optional[str],
        text: str,
        summary_length: SummaryLength,
    ) -> None:
        try:
            result = await summary_graph.ainvoke(
                {
                    "extracted_text": text,
                    "summary_length": summary_length,
                    "summary": "",
                },
                config={"configurable": self._configurable},
            )
        except DocumentError as e:
            logger.warning(f"Summarization failed: {e}")
            session.dispatch(SummarizationFailed(file_id=file_id, error=f"{SUMMARY_ERROR_PREFIX}: {e.message}"))
        except Exception as e:
            logger.error(f"Unexpected summarization error: {e}", exc_info=True)
            session.dispatch(SummarizationFailed(file_id=file_id, error=f"{SUMMARY_ERROR_PREFIX}: {e}"))
        else:
            session.dispatch(SummarizationSucceeded(file_id=file_id, summary=result["summary"]))
