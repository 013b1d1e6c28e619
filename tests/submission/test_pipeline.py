"""Unit tests for the submission pipeline.

The completion service is a scripted fake and the sink is an
``httpx.MockTransport``, so the whole pipeline runs in-process.
"""

# pylint: disable=missing-class-docstring,missing-function-docstring

import json

import httpx
import pytest

from cv_normalizer.errors import AuthError, BusyError, ConfigurationError, ExtractionError, SinkDispatchError, TransientServiceError
from cv_normalizer.submission.pipeline import (
    ProcessingStatus,
    SubmissionState,
    build_payload,
    call_with_retry,
    run_process,
    run_send,
    submit,
)
from cv_normalizer.submission.schema import UploadedFile

SINK_URL = "https://script.example.com/macros/s/abc/exec"
ROW_TEXT = "Nguyen Van A | Vietnam | 1990 | a@gmail.com"


class FakeCompletion:
    """Returns (or raises) scripted outcomes in order and records calls."""

    def __init__(self, *outcomes):
        self.outcomes = list(outcomes)
        self.calls: list[tuple] = []

    def process_cv(self, instructions, cv_text="", cv_file=None):
        self.calls.append((instructions, cv_text, cv_file))
        outcome = self.outcomes.pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


class RecordingSink:
    """MockTransport handler that records every request it receives."""

    def __init__(self, status_code: int = 200, error: Exception | None = None):
        self.status_code = status_code
        self.error = error
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        request.read()
        self.requests.append(request)
        if self.error is not None:
            raise self.error
        return httpx.Response(self.status_code, text="<html>ignored</html>")

    def client(self) -> httpx.Client:
        return httpx.Client(transport=httpx.MockTransport(self))

    def payload(self, index: int = 0) -> dict:
        return json.loads(self.requests[index].content)


# ===========================================================================
# call_with_retry
# ===========================================================================


class TestCallWithRetry:

    def test_returns_first_success(self):
        assert call_with_retry(lambda: "ok", attempts=3, delay=0) == "ok"

    def test_retries_transient_then_succeeds(self):
        fake = FakeCompletion(TransientServiceError("429"), "done")
        sleeps: list[float] = []
        assert call_with_retry(fake.process_cv, attempts=3, delay=1.5, sleep=sleeps.append) == "done"
        assert len(fake.calls) == 2
        assert sleeps == [1.5]

    def test_exhausts_attempts(self):
        fake = FakeCompletion(*[TransientServiceError("429")] * 3)
        sleeps: list[float] = []
        with pytest.raises(TransientServiceError):
            call_with_retry(fake.process_cv, attempts=3, delay=2.0, sleep=sleeps.append)
        assert len(fake.calls) == 3
        assert sleeps == [2.0, 2.0]

    def test_auth_error_never_retried(self):
        fake = FakeCompletion(AuthError("bad key"), "unused")
        with pytest.raises(AuthError):
            call_with_retry(fake.process_cv, attempts=3, delay=0, sleep=lambda _: None)
        assert len(fake.calls) == 1

    def test_single_attempt(self):
        fake = FakeCompletion(TransientServiceError("429"))
        with pytest.raises(TransientServiceError):
            call_with_retry(fake.process_cv, attempts=1, delay=0, sleep=lambda _: None)
        assert len(fake.calls) == 1


# ===========================================================================
# build_payload
# ===========================================================================


class TestBuildPayload:

    def test_row_without_file(self):
        payload = build_payload(ROW_TEXT, min_fields=3)
        assert json.loads(payload.to_json()) == {"rowData": ["Nguyen Van A", "Vietnam", "1990", "a@gmail.com"]}

    def test_row_with_file(self):
        upload = UploadedFile(name="cv.pdf", mime_type="application/pdf", data=b"%PDF")
        body = json.loads(build_payload(ROW_TEXT, upload, min_fields=3).to_json())
        assert body["fileData"] == {"name": "cv.pdf", "mimeType": "application/pdf", "base64": "JVBERg=="}

    def test_zero_fields_rejected(self):
        with pytest.raises(ExtractionError, match="No valid data row"):
            build_payload("I could not read this CV.", min_fields=3)

    def test_short_row_rejected(self):
        with pytest.raises(ExtractionError, match="only 2 field"):
            build_payload("Jane | 1995", min_fields=3)

    def test_zero_threshold_still_rejects_empty_row(self):
        with pytest.raises(ExtractionError):
            build_payload("no pipes here", min_fields=0)

    def test_lower_threshold_accepts_short_row(self):
        assert build_payload("Jane | 1995", min_fields=2).row_data == ["Jane", "1995"]


# ===========================================================================
# submit (full pipeline)
# ===========================================================================


class TestSubmit:

    def test_success_dispatches_row(self):
        sink = RecordingSink()
        state = SubmissionState()
        submit(state, FakeCompletion(ROW_TEXT), "Extract", "CV text", sink_url=SINK_URL, min_fields=3, delay=0, http_client=sink.client())
        assert state.status is ProcessingStatus.SUCCESS
        assert state.busy is False
        assert state.result == ROW_TEXT
        assert "Anyone" in state.message
        assert sink.payload() == {"rowData": ["Nguyen Van A", "Vietnam", "1990", "a@gmail.com"]}

    def test_sink_request_shape(self):
        sink = RecordingSink()
        submit(SubmissionState(), FakeCompletion(ROW_TEXT), "Extract", "CV", sink_url=SINK_URL, min_fields=3, delay=0, http_client=sink.client())
        request = sink.requests[0]
        assert request.method == "POST"
        assert str(request.url) == SINK_URL
        assert request.headers["content-type"] == "text/plain"

    def test_attached_file_forwarded_to_completion_and_sink(self):
        sink = RecordingSink()
        upload = UploadedFile(name="cv.png", mime_type="image/png", data=b"\x89PNG")
        completion = FakeCompletion(ROW_TEXT)
        submit(SubmissionState(), completion, "Extract", "", upload, sink_url=SINK_URL, min_fields=3, delay=0, http_client=sink.client())
        assert completion.calls[0][2] is upload
        assert sink.payload()["fileData"]["name"] == "cv.png"

    def test_sink_error_status_is_not_inspected(self):
        sink = RecordingSink(status_code=500)
        state = SubmissionState()
        submit(state, FakeCompletion(ROW_TEXT), "Extract", "CV", sink_url=SINK_URL, min_fields=3, delay=0, http_client=sink.client())
        assert state.status is ProcessingStatus.SUCCESS

    def test_extraction_failure_never_reaches_sink(self):
        sink = RecordingSink()
        state = SubmissionState()
        with pytest.raises(ExtractionError):
            submit(state, FakeCompletion("Sorry, I cannot read this file."), "Extract", "CV", sink_url=SINK_URL, min_fields=3, delay=0, http_client=sink.client())
        assert sink.requests == []
        assert state.status is ProcessingStatus.ERROR
        assert state.busy is False
        assert "No valid data row" in state.message
        assert state.result == "Sorry, I cannot read this file."

    def test_transient_error_retried_then_dispatched(self):
        sink = RecordingSink()
        completion = FakeCompletion(TransientServiceError("429"), ROW_TEXT)
        state = submit(SubmissionState(), completion, "Extract", "CV", sink_url=SINK_URL, min_fields=3, attempts=2, delay=0, http_client=sink.client())
        assert state.status is ProcessingStatus.SUCCESS
        assert len(completion.calls) == 2
        assert len(sink.requests) == 1

    def test_auth_error_surfaces(self):
        state = SubmissionState()
        with pytest.raises(AuthError):
            submit(state, FakeCompletion(AuthError("API key is not valid.")), "Extract", "CV", sink_url=SINK_URL, delay=0)
        assert state.status is ProcessingStatus.ERROR
        assert state.message == "API key is not valid."
        assert state.busy is False

    def test_missing_sink_url(self):
        state = SubmissionState()
        with pytest.raises(ConfigurationError):
            submit(state, FakeCompletion(ROW_TEXT), "Extract", "CV", sink_url="", min_fields=3, delay=0)
        assert state.status is ProcessingStatus.ERROR

    def test_transport_failure_is_sink_dispatch_error(self):
        sink = RecordingSink(error=httpx.ConnectError("connection refused"))
        state = SubmissionState()
        with pytest.raises(SinkDispatchError):
            submit(state, FakeCompletion(ROW_TEXT), "Extract", "CV", sink_url=SINK_URL, min_fields=3, delay=0, http_client=sink.client())
        assert state.status is ProcessingStatus.ERROR
        assert state.busy is False

    def test_busy_state_refuses_second_run(self):
        state = SubmissionState(busy=True, status=ProcessingStatus.PROCESSING)
        completion = FakeCompletion(ROW_TEXT)
        with pytest.raises(BusyError):
            submit(state, completion, "Extract", "CV", sink_url=SINK_URL, delay=0)
        assert completion.calls == []
        assert state.busy is True

    def test_new_run_clears_previous_result(self):
        sink = RecordingSink()
        state = SubmissionState(status=ProcessingStatus.SUCCESS, result="old", message="old message")
        with pytest.raises(ExtractionError):
            submit(state, FakeCompletion("nothing useful"), "Extract", "CV", sink_url=SINK_URL, min_fields=3, delay=0, http_client=sink.client())
        assert state.result == "nothing useful"


# ===========================================================================
# Split runs (review in between)
# ===========================================================================


class TestSplitRuns:

    def test_run_process_stores_result_without_dispatch(self):
        state = SubmissionState()
        state.begin()
        run_process(state, FakeCompletion(ROW_TEXT), "Extract", "CV", delay=0)
        assert state.result == ROW_TEXT
        assert state.status is ProcessingStatus.SUCCESS
        assert state.busy is False

    def test_run_send_dispatches_reviewed_text(self):
        sink = RecordingSink()
        state = SubmissionState()
        state.begin()
        run_send(state, "| A | B | C |\n|---|---|---|\n| 1 | 2 | 3 |", sink_url=SINK_URL, min_fields=3, http_client=sink.client())
        # Header and data row tie; the top-most line wins
        assert sink.payload() == {"rowData": ["A", "B", "C"]}
        assert state.status is ProcessingStatus.SUCCESS
        assert state.busy is False
