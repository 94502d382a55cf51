"""Tests for session transitions and the action boundary."""

import asyncio

import pytest

from src.services.errors import (
    ExtractionError,
    MissingInputError,
    OperationInProgressError,
    OperationSupersededError,
    SessionNotFoundError,
)
from src.services.processors.extraction_processor import ExtractionProcessor
from src.services.processors.summary_processor import SummaryLength, SummaryProcessor
from src.services.session import SessionService, SessionStore, reduce
from src.services.states import (
    ExtractionFailed,
    ExtractionStarted,
    ExtractionSucceeded,
    FileAccepted,
    FileRejected,
    LengthSelected,
    SessionState,
    SummarizationFailed,
    SummarizationSucceeded,
    UploadedFile,
)
from tests.conftest import gemini_response, make_client

PDF = b"%PDF-1.7 two megabytes of pdf"


def _upload(name="doc.pdf", mime_type="application/pdf") -> UploadedFile:
    return UploadedFile(name=name, mime_type=mime_type, size=len(PDF), content=PDF)


def _loaded_state() -> SessionState:
    uploaded = _upload()
    return SessionState(file=uploaded, extracted_text="old text", summary="old summary", error="old error")


class GatedExtractor:
    """Extraction that blocks until released, to observe in-flight state."""

    def __init__(self, text="gated text"):
        self.text = text
        self.started = asyncio.Event()
        self.release = asyncio.Event()

    async def extract(self, encoded, mime_type):
        self.started.set()
        await self.release.wait()
        return self.text


class FailingExtractor:
    async def extract(self, encoded, mime_type):
        raise ExtractionError("invalid key")


class GatedSummarizer:
    """Summarization that blocks until released."""

    def __init__(self, summary="gated summary"):
        self.summary = summary
        self.started = asyncio.Event()
        self.release = asyncio.Event()

    async def summarize(self, text, length):
        self.started.set()
        await self.release.wait()
        return self.summary


class StaticExtractor:
    async def extract(self, encoded, mime_type):
        return "extracted text"


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


class BrokenExtractor:
    async def extract(self, encoded, mime_type):
        raise RuntimeError("boom")


# reduce


def test_initial_state():
    state = SessionState()
    assert state.file is None
    assert state.extracted_text == ""
    assert state.summary == ""
    assert state.summary_length is SummaryLength.MEDIUM
    assert not state.is_extracting and not state.is_processing
    assert state.error == ""


def test_file_accepted_clears_previous_results():
    new_file = _upload("other.png", "image/png")
    state = reduce(_loaded_state(), FileAccepted(file=new_file))

    assert state.file == new_file
    assert state.extracted_text == ""
    assert state.summary == ""
    assert state.error == ""


def test_file_rejected_keeps_existing_data():
    before = _loaded_state()
    state = reduce(before, FileRejected(error="File size must be less than 50MB"))

    assert state.file == before.file
    assert state.extracted_text == "old text"
    assert state.summary == "old summary"
    assert state.error == "File size must be less than 50MB"


def test_reduce_returns_new_state():
    before = _loaded_state()
    after = reduce(before, LengthSelected(summary_length=SummaryLength.SHORT))

    assert after is not before
    assert before.summary_length is SummaryLength.MEDIUM
    assert after.summary_length is SummaryLength.SHORT
    assert after.summary == "old summary"  # length change keeps the summary


def test_extraction_lifecycle():
    state = _loaded_state()
    file_id = state.file.file_id

    state = reduce(state, ExtractionStarted(file_id=file_id))
    assert state.is_extracting
    assert state.error == ""

    state = reduce(state, ExtractionSucceeded(file_id=file_id, text="new text"))
    assert not state.is_extracting
    assert state.extracted_text == "new text"


def test_failed_extraction_leaves_no_text():
    state = _loaded_state()
    file_id = state.file.file_id
    state = reduce(state, ExtractionStarted(file_id=file_id))
    state = reduce(state, ExtractionFailed(file_id=file_id, error="No text found in the document"))

    assert not state.is_extracting
    assert state.extracted_text == ""
    assert state.error == "No text found in the document"


def test_failed_summarization_keeps_previous_summary():
    state = _loaded_state()
    state = reduce(state, SummarizationFailed(file_id=state.file.file_id, error="Summary generation failed: x"))

    assert state.summary == "old summary"
    assert state.error == "Summary generation failed: x"
    assert not state.is_processing


def test_stale_results_are_discarded():
    old_file = _upload("old.pdf")
    new_file = _upload("new.pdf")
    state = SessionState(file=old_file)
    state = reduce(state, ExtractionStarted(file_id=old_file.file_id))
    state = reduce(state, FileAccepted(file=new_file))

    after = reduce(state, ExtractionSucceeded(file_id=old_file.file_id, text="stale"))
    assert after == state
    after = reduce(state, SummarizationSucceeded(file_id=old_file.file_id, summary="stale"))
    assert after == state
    assert not state.is_extracting


def test_word_and_character_counts():
    state = SessionState(extracted_text="  one two\nthree\t four ")
    assert state.word_count == 4
    assert state.character_count == len("  one two\nthree\t four ")


# SessionService


@pytest.fixture
def service(endpoint):
    client = make_client(endpoint)
    return SessionService(
        extraction_processor=ExtractionProcessor(client=client),
        summary_processor=SummaryProcessor(client=client),
        max_upload_bytes=50 * 1024 * 1024,
    )


@pytest.fixture
def session_id(service):
    return service.create_session().session_id


async def test_pdf_extract_then_summarize(service, session_id, endpoint):
    state = service.select_file(session_id, "doc.pdf", "application/pdf", PDF)
    assert state.file.name == "doc.pdf"

    state = await service.extract(session_id)
    assert state.extracted_text == "Hello world"
    assert not state.is_extracting
    assert "Extract all text from this PDF document" in endpoint.last_prompt

    endpoint.json_body = gemini_response("A greeting.")
    service.select_length(session_id, SummaryLength.SHORT)
    state = await service.summarize(session_id)

    assert state.summary == "A greeting."
    assert not state.is_processing
    assert endpoint.last_body["generationConfig"]["maxOutputTokens"] == 200


async def test_rejected_file_does_not_replace_current(service, session_id):
    service.select_file(session_id, "doc.pdf", "application/pdf", PDF)
    await service.extract(session_id)

    state = service.select_file(session_id, "notes.txt", "text/plain", b"hello")

    assert state.file.name == "doc.pdf"
    assert state.extracted_text == "Hello world"
    assert state.error == "Please upload a PDF or image file (JPEG, PNG, BMP, TIFF)"


def test_oversized_first_file_leaves_session_empty():
    small = SessionService(max_upload_bytes=4)
    sid = small.create_session().session_id
    state = small.select_file(sid, "big.png", "image/png", b"x" * 10)
    assert state.file is None
    assert state.error == "File size must be less than 4 bytes"


async def test_api_error_is_shown(session_id, service, endpoint):
    endpoint.status_code = 403
    endpoint.json_body = {"error": {"message": "invalid key"}}
    service.select_file(session_id, "scan.png", "image/png", b"\x89PNG")

    state = await service.extract(session_id)
    assert state.error == "invalid key"
    assert state.extracted_text == ""
    assert not state.is_extracting


async def test_summarization_error_is_prefixed(session_id, service, endpoint):
    service.select_file(session_id, "scan.png", "image/png", b"\x89PNG")
    await service.extract(session_id)
    endpoint.status_code = 403
    endpoint.json_body = {"error": {"message": "invalid key"}}

    state = await service.summarize(session_id)
    assert state.error == "Summary generation failed: invalid key"
    assert not state.is_processing


async def test_empty_extraction_is_reported(session_id, service, endpoint):
    endpoint.json_body = gemini_response("   ")
    service.select_file(session_id, "blank.pdf", "application/pdf", PDF)

    state = await service.extract(session_id)
    assert "No text found" in state.error
    assert state.extracted_text == ""


async def test_summarize_without_text(session_id, service, endpoint):
    state = await service.summarize(session_id)

    assert state.error == "Please extract text first"
    assert not state.is_processing
    assert endpoint.requests == []


async def test_extract_without_file(session_id, service):
    with pytest.raises(MissingInputError):
        await service.extract(session_id)


async def test_new_attempt_clears_previous_error(session_id, service, endpoint):
    endpoint.status_code = 500
    endpoint.json_body = {}
    service.select_file(session_id, "doc.pdf", "application/pdf", PDF)
    assert (await service.extract(session_id)).error == "PDF text extraction failed"

    endpoint.status_code = 200
    endpoint.json_body = gemini_response("Recovered")
    state = await service.extract(session_id)
    assert state.error == ""
    assert state.extracted_text == "Recovered"


async def test_unexpected_errors_are_caught():
    service = SessionService(extraction_processor=BrokenExtractor())
    sid = service.create_session().session_id
    service.select_file(sid, "doc.pdf", "application/pdf", PDF)

    state = await service.extract(sid)
    assert state.error == "boom"
    assert not state.is_extracting


async def test_busy_flag_while_extracting():
    extractor = GatedExtractor()
    service = SessionService(extraction_processor=extractor)
    sid = service.create_session().session_id
    service.select_file(sid, "doc.pdf", "application/pdf", PDF)

    pending = asyncio.create_task(service.extract(sid))
    await extractor.started.wait()
    assert service.get_state(sid).is_extracting

    with pytest.raises(OperationInProgressError):
        await service.extract(sid)

    extractor.release.set()
    state = await pending
    assert state.extracted_text == "gated text"
    assert not state.is_extracting


async def test_new_file_cancels_inflight_extraction():
    extractor = GatedExtractor(text="stale text")
    service = SessionService(extraction_processor=extractor)
    sid = service.create_session().session_id
    service.select_file(sid, "first.pdf", "application/pdf", PDF)

    pending = asyncio.create_task(service.extract(sid))
    await extractor.started.wait()

    state = service.select_file(sid, "second.png", "image/png", b"\x89PNG")
    assert state.file.name == "second.png"
    assert not state.is_extracting

    with pytest.raises(OperationSupersededError):
        await pending

    state = service.get_state(sid)
    assert state.file.name == "second.png"
    assert state.extracted_text == ""
    assert state.error == ""


async def test_failure_clears_busy_flag():
    service = SessionService(extraction_processor=FailingExtractor())
    sid = service.create_session().session_id
    service.select_file(sid, "doc.pdf", "application/pdf", PDF)

    state = await service.extract(sid)
    assert state.error == "invalid key"
    assert not state.is_extracting


async def test_export(session_id, service, endpoint):
    assert service.export(session_id, 1700000000000) is None

    service.select_file(session_id, "doc.pdf", "application/pdf", PDF)
    await service.extract(session_id)
    endpoint.json_body = gemini_response("Foo.")
    await service.summarize(session_id)

    export = service.export(session_id, 1700000000000)
    assert export.filename == "medium_summary_1700000000000.txt"
    assert export.content.startswith("Document Summary (MEDIUM)\n")
    assert export.content.endswith("\n\nFoo.")


def test_unknown_session(service):
    with pytest.raises(SessionNotFoundError):
        service.get_state("missing")


def test_close_session(service, session_id):
    service.close_session(session_id)
    with pytest.raises(SessionNotFoundError):
        service.get_state(session_id)


async def test_mixed_case_pdf_type_gets_pdf_prompt(session_id, service, endpoint):
    state = service.select_file(session_id, "doc.pdf", "Application/PDF", PDF)
    assert state.file.mime_type == "application/pdf"
    assert state.file.is_pdf

    await service.extract(session_id)
    parts = endpoint.last_body["contents"][0]["parts"]
    assert parts[0]["text"].startswith("Extract all text from this PDF document")
    assert parts[1]["inline_data"]["mime_type"] == "application/pdf"


def test_precheck_rejects_before_read(service, session_id):
    service.select_file(session_id, "doc.pdf", "application/pdf", PDF)

    assert not service.precheck_file(session_id, "application/pdf", 60 * 1024 * 1024)
    state = service.get_state(session_id)
    assert state.error == "File size must be less than 50MB"
    assert state.file.name == "doc.pdf"

    assert service.precheck_file(session_id, "image/png", None)


async def test_new_file_cancels_inflight_summarization():
    summarizer = GatedSummarizer(summary="stale summary")
    service = SessionService(extraction_processor=StaticExtractor(), summary_processor=summarizer)
    sid = service.create_session().session_id
    service.select_file(sid, "first.pdf", "application/pdf", PDF)
    await service.extract(sid)

    pending = asyncio.create_task(service.summarize(sid))
    await summarizer.started.wait()
    assert service.get_state(sid).is_processing

    state = service.select_file(sid, "second.png", "image/png", b"\x89PNG")
    assert not state.is_processing

    with pytest.raises(OperationSupersededError):
        await pending

    state = service.get_state(sid)
    assert state.file.name == "second.png"
    assert not state.is_processing
    assert state.summary == ""
    assert state.extracted_text == ""
    assert state.error == ""


def test_idle_sessions_are_evicted():
    clock = FakeClock()
    store = SessionStore(ttl_seconds=60, clock=clock)
    service = SessionService(store=store)
    idle = service.create_session().session_id
    active = service.create_session().session_id
    service.select_file(idle, "doc.pdf", "application/pdf", PDF)

    clock.now += 45
    service.get_state(active)  # touching keeps it alive
    clock.now += 30

    service.create_session()
    assert len(store) == 2
    with pytest.raises(SessionNotFoundError):
        service.get_state(idle)
    assert service.get_state(active).file is None


def test_sessions_without_ttl_are_kept():
    clock = FakeClock()
    store = SessionStore(clock=clock)
    for _ in range(5):
        store.create()
    clock.now += 10 ** 6
    assert store.evict_expired() == 0
    assert len(store) == 5


async def test_busy_session_is_not_evicted():
    clock = FakeClock()
    extractor = GatedExtractor()
    service = SessionService(store=SessionStore(ttl_seconds=60, clock=clock), extraction_processor=extractor)
    sid = service.create_session().session_id
    service.select_file(sid, "doc.pdf", "application/pdf", PDF)

    pending = asyncio.create_task(service.extract(sid))
    await extractor.started.wait()
    clock.now += 120
    assert service.store.evict_expired() == 0

    extractor.release.set()
    state = await pending
    assert state.extracted_text == "gated text"
