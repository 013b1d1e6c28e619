"""FastAPI web server for the CV normalizer.

Serves a single-page UI where an operator uploads or pastes a CV, edits the
extraction instructions, reviews the model's reply (table preview or raw
source), copies it as TSV, downloads it, and sends the extracted row plus the
original file to the spreadsheet web app.

Usage:
    python -m cv_normalizer.web.app
    # => Uvicorn running on http://localhost:8000
"""

import logging
from pathlib import Path

from fastapi import FastAPI, File, Form, HTTPException, Request, UploadFile
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import HTMLResponse, JSONResponse, Response
from fastapi.staticfiles import StaticFiles
from pydantic import BaseModel

from cv_normalizer import config
from cv_normalizer.completion.client import CompletionService
from cv_normalizer.completion.prompts import DEFAULT_TEMPLATE
from cv_normalizer.errors import CVNormalizerError
from cv_normalizer.rows.classify import classify, render
from cv_normalizer.rows.export import DOWNLOAD_FILENAME, DOWNLOAD_MEDIA_TYPE, ViewMode, is_spreadsheet_ready, to_clipboard_text, to_download_bytes
from cv_normalizer.submission.pipeline import SubmissionState, run_process, run_send, run_submission
from cv_normalizer.submission.schema import UploadedFile

logger = logging.getLogger(__name__)

# Path to static frontend assets
STATIC_DIR = Path(__file__).parent / "static"

# HTTP status per error kind; anything unlisted is a 500
_STATUS_BY_KIND: dict[str, int] = {
    "configuration_error": 400,
    "extraction_error": 400,
    "auth_error": 502,
    "transient_service_error": 503,
    "completion_error": 502,
    "sink_dispatch_error": 502,
    "busy": 409,
}

# ---------------------------------------------------------------------------
# In-memory state (ephemeral, lost on server restart)
# ---------------------------------------------------------------------------

_states: dict[str, SubmissionState] = {}  # session_id -> SubmissionState
_COMPLETION = CompletionService()


def get_state(session_id: str) -> SubmissionState:
    """Return the session's state, creating it on first use."""
    if session_id not in _states:
        _states[session_id] = SubmissionState()
        logger.info("New session created: %s", session_id)
    return _states[session_id]


# ---------------------------------------------------------------------------
# Request helpers
# ---------------------------------------------------------------------------


class PreviewRequest(BaseModel):
    text: str
    view_mode: ViewMode = ViewMode.PREVIEW


class DownloadRequest(BaseModel):
    text: str


async def _read_upload(cv_file: UploadFile | None) -> UploadedFile | None:
    """Validate and load an uploaded CV.  Returns None when no file was sent."""
    if cv_file is None or not cv_file.filename:
        return None
    if cv_file.content_type not in config.ALLOWED_MIME_TYPES:
        raise HTTPException(status_code=415, detail=f"Unsupported media type: {cv_file.content_type}")
    content = await cv_file.read()
    if not content:
        raise HTTPException(status_code=400, detail="Uploaded file is empty.")
    if len(content) > config.MAX_FILE_BYTES:
        raise HTTPException(status_code=413, detail=f"File exceeds max size of {config.MAX_FILE_BYTES} bytes.")
    logger.info("Received upload: %s (%s, %.1f KB)", cv_file.filename, cv_file.content_type, len(content) / 1024)
    return UploadedFile(name=cv_file.filename, mime_type=cv_file.content_type, data=content)


def _view(text: str, view_mode: ViewMode = ViewMode.PREVIEW) -> dict:
    """Classification, grid, and clipboard text for one reply."""
    classification = classify(text)
    return {
        "classification": classification.value,
        "grid": render(text).model_dump(mode="json"),
        "clipboard_text": to_clipboard_text(text, classification, view_mode),
        "spreadsheet_ready": is_spreadsheet_ready(classification),
    }


# ---------------------------------------------------------------------------
# FastAPI application
# ---------------------------------------------------------------------------


app = FastAPI(title="CV Normalizer")
app.mount("/static", StaticFiles(directory=str(STATIC_DIR)), name="static")


@app.exception_handler(CVNormalizerError)
async def cv_normalizer_error_handler(_: Request, exc: CVNormalizerError):
    """Render domain errors as JSON with the raw diagnostic message preserved."""
    return JSONResponse(
        status_code=_STATUS_BY_KIND.get(exc.kind, 500),
        content={"error": exc.kind, "detail": str(exc)},
    )


# ---------------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------------


@app.get("/", response_class=HTMLResponse)
async def index():
    """Serve the single-page UI."""
    return HTMLResponse(STATIC_DIR.joinpath("index.html").read_text(encoding="utf-8"))


@app.get("/health")
async def health():
    return {"status": "ok", "model": _COMPLETION.model, "sink_configured": bool(config.SHEET_WEBHOOK_URL)}


@app.get("/api/template")
async def template():
    """Default extraction instructions for the editor."""
    return {"instructions": DEFAULT_TEMPLATE}


@app.post("/api/process")
async def process_cv(
    session_id: str = Form(...),
    instructions: str = Form(DEFAULT_TEMPLATE),
    cv_text: str = Form(""),
    cv_file: UploadFile | None = File(default=None),
):
    """Run the completion call and return the reply with its preview data."""
    upload = await _read_upload(cv_file)
    if not cv_text.strip() and upload is None:
        raise HTTPException(status_code=400, detail="CV text or file required")

    state = get_state(session_id)
    state.begin()
    await run_in_threadpool(
        run_process,
        state,
        _COMPLETION,
        instructions,
        cv_text,
        upload,
        attempts=config.RETRY_ATTEMPTS,
        delay=config.RETRY_DELAY_SECONDS,
    )
    return {"status": state.status.value, "result": state.result, **_view(state.result)}


@app.post("/api/preview")
async def preview(body: PreviewRequest):
    """Reclassify (possibly hand-edited) text for the active view."""
    return _view(body.text, body.view_mode)


@app.post("/api/download")
async def download(body: DownloadRequest):
    """Return the reply verbatim as a text file."""
    return Response(
        content=to_download_bytes(body.text),
        media_type=DOWNLOAD_MEDIA_TYPE,
        headers={"Content-Disposition": f'attachment; filename="{DOWNLOAD_FILENAME}"'},
    )


@app.post("/api/submit")
async def submit_result(
    session_id: str = Form(...),
    result: str = Form(...),
    sheet_url: str = Form(""),
    cv_file: UploadFile | None = File(default=None),
):
    """Send a reviewed reply's data row (and the CV file) to the sheet.

    Without a new upload, the file attached to the session's last processing
    run is sent.
    """
    upload = await _read_upload(cv_file)
    state = get_state(session_id)
    attached = upload or state.attached_file
    state.begin()
    await run_in_threadpool(
        run_send,
        state,
        result,
        attached,
        sink_url=sheet_url.strip() or config.SHEET_WEBHOOK_URL,
        min_fields=config.MIN_ROW_FIELDS,
    )
    return {"status": state.status.value, "message": state.message, "file_attached": attached is not None}


@app.post("/api/process-and-submit")
async def process_and_submit(
    session_id: str = Form(...),
    instructions: str = Form(DEFAULT_TEMPLATE),
    cv_text: str = Form(""),
    sheet_url: str = Form(""),
    cv_file: UploadFile | None = File(default=None),
):
    """Completion call, extraction, and sink dispatch in one request."""
    upload = await _read_upload(cv_file)
    if not cv_text.strip() and upload is None:
        raise HTTPException(status_code=400, detail="CV text or file required")

    state = get_state(session_id)
    state.begin()
    await run_in_threadpool(
        run_submission,
        state,
        _COMPLETION,
        instructions,
        cv_text,
        upload,
        sink_url=sheet_url.strip() or config.SHEET_WEBHOOK_URL,
        min_fields=config.MIN_ROW_FIELDS,
        attempts=config.RETRY_ATTEMPTS,
        delay=config.RETRY_DELAY_SECONDS,
    )
    return {"status": state.status.value, "result": state.result, "message": state.message}


@app.get("/api/state/{session_id}")
async def session_state(session_id: str):
    """Current status and last result of a session."""
    state = _states.get(session_id)
    if state is None:
        raise HTTPException(status_code=404, detail=f"Unknown session: {session_id}")
    return {"busy": state.busy, "status": state.status.value, "result": state.result, "message": state.message}


# ---------------------------------------------------------------------------
# Entrypoint
# ---------------------------------------------------------------------------


def main():
    """Start the web server via uvicorn."""
    import uvicorn  # pylint: disable=import-outside-toplevel

    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    logging.getLogger("httpx").setLevel(logging.WARNING)
    uvicorn.run(app, host="0.0.0.0", port=8000)


if __name__ == "__main__":
    main()
