"""Submission pipeline: completion call -> row extraction -> sink dispatch.

All mutable status lives in an explicit ``SubmissionState`` that the caller
owns and passes in, so the pipeline can be driven from the web layer or a
test without any module-level state.  Steps run strictly in sequence; the sink
is only contacted once a row of acceptable width has been extracted.
"""

import enum
import logging
import time
from dataclasses import dataclass
from typing import Callable, TypeVar

import httpx

from cv_normalizer import config
from cv_normalizer.completion.client import CompletionService
from cv_normalizer.errors import BusyError, CVNormalizerError, ExtractionError, TransientServiceError
from cv_normalizer.rows.extract import extract_row
from cv_normalizer.submission.schema import ExportPayload, FileData, UploadedFile
from cv_normalizer.submission.sink import DISPATCH_CAVEAT, dispatch

logger = logging.getLogger(__name__)

T = TypeVar("T")


class ProcessingStatus(str, enum.Enum):
    IDLE = "idle"
    PROCESSING = "processing"
    SUCCESS = "success"
    ERROR = "error"


@dataclass
class SubmissionState:
    """Per-operator state: current result, status, and the busy guard."""

    busy: bool = False
    status: ProcessingStatus = ProcessingStatus.IDLE
    result: str = ""
    message: str = ""
    attached_file: UploadedFile | None = None

    def begin(self) -> None:
        """Claim the state for one run.  Raises BusyError if a run is already in flight."""
        if self.busy:
            raise BusyError("A submission is already in progress. Wait for it to finish.")
        self.busy = True
        self.status = ProcessingStatus.PROCESSING
        self.result = ""
        self.message = ""

    def succeed(self, message: str = "") -> None:
        self.status = ProcessingStatus.SUCCESS
        self.message = message

    def fail(self, exc: Exception) -> None:
        self.status = ProcessingStatus.ERROR
        self.message = str(exc) or exc.__class__.__name__


# ---------------------------------------------------------------------------
# Retry
# ---------------------------------------------------------------------------


def call_with_retry(
    fn: Callable[[], T],
    attempts: int = config.RETRY_ATTEMPTS,
    delay: float = config.RETRY_DELAY_SECONDS,
    sleep: Callable[[float], None] = time.sleep,
) -> T:
    """Call *fn*, retrying only TransientServiceError, at most *attempts* times in total.

    Waits a fixed *delay* seconds between attempts.  Any other error, and the
    last transient one, propagates unchanged.
    """
    remaining = max(1, attempts)
    while True:
        remaining -= 1
        try:
            return fn()
        except TransientServiceError as exc:
            if remaining <= 0:
                raise
            logger.warning("Transient failure (%s); retrying in %.1fs, %d attempt(s) left", exc, delay, remaining)
            sleep(delay)


# ---------------------------------------------------------------------------
# Row dispatch
# ---------------------------------------------------------------------------


def build_payload(raw_text: str, attached_file: UploadedFile | None = None, min_fields: int = config.MIN_ROW_FIELDS) -> ExportPayload:
    """Extract the data row and package it with the optional file.

    Raises ExtractionError when the row has fewer than *min_fields* fields.
    """
    row = extract_row(raw_text)
    if len(row) < max(1, min_fields):
        if not row:
            raise ExtractionError("No valid data row (fields separated by '|') was found to send.")
        raise ExtractionError(f"The data row has only {len(row)} field(s); at least {min_fields} are required.")
    file_data = FileData.from_upload(attached_file) if attached_file is not None else None
    return ExportPayload(row_data=row, file_data=file_data)


def dispatch_row(
    raw_text: str,
    attached_file: UploadedFile | None = None,
    sink_url: str = config.SHEET_WEBHOOK_URL,
    min_fields: int = config.MIN_ROW_FIELDS,
    http_client: httpx.Client | None = None,
) -> ExportPayload:
    """Extract a row from *raw_text* and send it to the sink.  Returns the payload that was sent."""
    payload = build_payload(raw_text, attached_file, min_fields)
    dispatch(payload, sink_url, client=http_client)
    return payload


# ---------------------------------------------------------------------------
# Stateful runs
#
# Each ``run_*`` function expects *state* to be claimed already (``state.begin()``)
# and always releases it.  The web layer claims on the event loop, then hands
# the blocking run to a worker thread.
# ---------------------------------------------------------------------------


def run_process(
    state: SubmissionState,
    completion: CompletionService,
    instructions: str,
    cv_text: str = "",
    attached_file: UploadedFile | None = None,
    attempts: int = config.RETRY_ATTEMPTS,
    delay: float = config.RETRY_DELAY_SECONDS,
) -> SubmissionState:
    """Completion step only: store the raw reply in *state* for review."""
    state.attached_file = attached_file
    try:
        state.result = call_with_retry(lambda: completion.process_cv(instructions, cv_text, attached_file), attempts, delay)
        state.succeed()
    except CVNormalizerError as exc:
        logger.warning("Processing failed: %s (%s)", exc, exc.kind)
        state.fail(exc)
        raise
    finally:
        state.busy = False
    return state


def run_send(
    state: SubmissionState,
    raw_text: str,
    attached_file: UploadedFile | None = None,
    sink_url: str = config.SHEET_WEBHOOK_URL,
    min_fields: int = config.MIN_ROW_FIELDS,
    http_client: httpx.Client | None = None,
) -> SubmissionState:
    """Dispatch step only, for a reply the operator has already reviewed."""
    state.result = raw_text
    state.attached_file = attached_file
    try:
        payload = dispatch_row(raw_text, attached_file, sink_url, min_fields, http_client)
        logger.info("Reviewed row dispatched with %d fields", len(payload.row_data))
        state.succeed(DISPATCH_CAVEAT)
    except CVNormalizerError as exc:
        logger.warning("Sending failed: %s (%s)", exc, exc.kind)
        state.fail(exc)
        raise
    finally:
        state.busy = False
    return state


def run_submission(
    state: SubmissionState,
    completion: CompletionService,
    instructions: str,
    cv_text: str = "",
    attached_file: UploadedFile | None = None,
    sink_url: str = config.SHEET_WEBHOOK_URL,
    min_fields: int = config.MIN_ROW_FIELDS,
    attempts: int = config.RETRY_ATTEMPTS,
    delay: float = config.RETRY_DELAY_SECONDS,
    http_client: httpx.Client | None = None,
) -> SubmissionState:
    """Completion call, row extraction, and sink dispatch in one run.

    On failure the state ends in ERROR with the diagnostic message kept and the
    error re-raised.  Success means the request was dispatched, not that the
    sink persisted it; the success message says so.
    """
    state.attached_file = attached_file
    try:
        state.result = call_with_retry(lambda: completion.process_cv(instructions, cv_text, attached_file), attempts, delay)
        payload = dispatch_row(state.result, attached_file, sink_url, min_fields, http_client)
        logger.info("Submission dispatched with %d fields", len(payload.row_data))
        state.succeed(DISPATCH_CAVEAT)
    except CVNormalizerError as exc:
        logger.warning("Submission failed: %s (%s)", exc, exc.kind)
        state.fail(exc)
        raise
    finally:
        state.busy = False
    return state


def submit(state: SubmissionState, completion: CompletionService, instructions: str, cv_text: str = "", attached_file: UploadedFile | None = None, **kwargs) -> SubmissionState:
    """Claim *state* and run the full pipeline.  Raises BusyError if a run is in flight."""
    state.begin()
    return run_submission(state, completion, instructions, cv_text, attached_file, **kwargs)
