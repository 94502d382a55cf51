from fastapi import APIRouter, Depends, File, HTTPException, Response, UploadFile
from fastapi.responses import JSONResponse
from typing import List
from src.api.models import (
    OptionsResponse,
    SessionResponse,
    SummaryLengthOption,
    SummaryLengthRequest,
)
from src.config import logger, settings
from src.services.errors import (
    MissingInputError,
    OperationInProgressError,
    OperationSupersededError,
    ReadError,
    SessionNotFoundError,
)
from src.services.processors.exporter import EXPORT_MEDIA_TYPE
from src.services.processors.file_validator import (
    ACCEPTED_EXTENSIONS,
    ALLOWED_MIME_TYPES,
    detect_mime_type,
    normalize_mime_type,
)
from src.services.processors.summary_processor import SummaryLength
from src.services.session import Session, SessionService, SessionStore

router = APIRouter(prefix="/api", tags=["summarizer"])

session_service = SessionService(
    store=SessionStore(ttl_seconds=settings.session_ttl_seconds),
    max_upload_bytes=settings.max_upload_bytes,
)


def get_session_service() -> SessionService:
    return session_service


def _get_session(service: SessionService, session_id: str) -> Session:
    try:
        return service.store.get(session_id)
    except SessionNotFoundError as e:
        raise HTTPException(status_code=404, detail=e.message)


@router.get("/options", response_model=OptionsResponse)
async def get_options():
    """Upload restrictions and the available summary lengths"""
    return OptionsResponse(
        accepted_extensions=list(ACCEPTED_EXTENSIONS),
        allowed_mime_types=sorted(ALLOWED_MIME_TYPES),
        max_upload_bytes=settings.max_upload_bytes,
        summary_lengths=[
            SummaryLengthOption(
                value=length,
                label=length.profile.label,
                description=length.profile.description,
                max_tokens=length.profile.max_tokens,
            )
            for length in SummaryLength
        ],
    )


@router.post("/sessions", response_model=SessionResponse, status_code=201)
async def create_session(service: SessionService = Depends(get_session_service)):
    session = service.create_session()
    return SessionResponse.from_session(session)


@router.get("/sessions/{session_id}", response_model=SessionResponse)
async def get_session(session_id: str, service: SessionService = Depends(get_session_service)):
    return SessionResponse.from_session(_get_session(service, session_id))


@router.delete("/sessions/{session_id}", status_code=204)
async def close_session(session_id: str, service: SessionService = Depends(get_session_service)):
    _get_session(service, session_id)
    service.close_session(session_id)
    return Response(status_code=204)


@router.post("/sessions/{session_id}/file", response_model=SessionResponse)
async def select_file(
    session_id: str,
    files: List[UploadFile] = File(..., description="Document file (PDF or image)"),
    service: SessionService = Depends(get_session_service),
):
    """
    Select the document for this session.
    Only the first file is used; any additional files are ignored, like a multi-file drop.
    """
    session = _get_session(service, session_id)
    if len(files) > 1:
        logger.info(f"Ignoring {len(files) - 1} additional file(s) in upload")

    upload = files[0]
    mime_type = normalize_mime_type(upload.content_type)
    if not mime_type or mime_type == "application/octet-stream":
        mime_type = detect_mime_type(upload.filename)

    # Reject on type and declared size before buffering the body
    if not service.precheck_file(session_id, mime_type, upload.size):
        body = SessionResponse.from_session(session)
        return JSONResponse(status_code=422, content=body.model_dump(mode="json"))

    try:
        content = await upload.read()
    except OSError as e:
        logger.error(f"Failed to read upload {upload.filename}: {e}")
        raise HTTPException(status_code=400, detail=ReadError().message)

    state = service.select_file(session_id, upload.filename or "document", mime_type, content)
    body = SessionResponse.from_session(session)
    if state.error:
        # Rejected: nothing changed except the error message
        return JSONResponse(status_code=422, content=body.model_dump(mode="json"))
    return body


@router.put("/sessions/{session_id}/length", response_model=SessionResponse)
async def select_length(
    session_id: str,
    request: SummaryLengthRequest,
    service: SessionService = Depends(get_session_service),
):
    session = _get_session(service, session_id)
    service.select_length(session_id, request.summary_length)
    return SessionResponse.from_session(session)


@router.post("/sessions/{session_id}/extract", response_model=SessionResponse)
async def extract_text(session_id: str, service: SessionService = Depends(get_session_service)):
    """Extract text from the selected document (PDF prompt or OCR prompt)"""
    session = _get_session(service, session_id)
    try:
        await service.extract(session_id)
    except MissingInputError as e:
        raise HTTPException(status_code=400, detail=e.message)
    except (OperationInProgressError, OperationSupersededError) as e:
        raise HTTPException(status_code=409, detail=e.message)
    return SessionResponse.from_session(session)


@router.post("/sessions/{session_id}/summarize", response_model=SessionResponse)
async def summarize(session_id: str, service: SessionService = Depends(get_session_service)):
    """Summarize the extracted text at the session's selected length"""
    session = _get_session(service, session_id)
    try:
        await service.summarize(session_id)
    except (OperationInProgressError, OperationSupersededError) as e:
        raise HTTPException(status_code=409, detail=e.message)
    return SessionResponse.from_session(session)


@router.get("/sessions/{session_id}/export")
async def export_summary(session_id: str, service: SessionService = Depends(get_session_service)):
    """Download the summary as a text file; 204 when there is no summary yet"""
    _get_session(service, session_id)
    export = service.export(session_id)
    if export is None:
        return Response(status_code=204)
    return Response(
        content=export.payload,
        media_type=EXPORT_MEDIA_TYPE,
        headers={"Content-Disposition": f'attachment; filename="{export.filename}"'},
    )


@router.get("/health")
async def health():
    return {"status": "healthy"}
