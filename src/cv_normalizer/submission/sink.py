"""Write-only dispatch of an ExportPayload to the spreadsheet sink.

The sink (a Google Apps Script web app) is treated as opaque: the request is
sent as ``text/plain`` JSON and the response body is never read.  A successful
dispatch therefore says nothing about whether the row was persisted.
"""

import logging

import httpx

from cv_normalizer.errors import ConfigurationError, SinkDispatchError
from cv_normalizer.submission.schema import ExportPayload

logger = logging.getLogger(__name__)

DISPATCH_CAVEAT = (
    "Sent. If the sheet shows no new row, check the Apps Script deployment: access must be "
    "'Anyone', and edits to the script need a new deployment."
)

# Generous connect/write for multi-MB uploads, short read for the unread reply
SINK_TIMEOUT = httpx.Timeout(60.0, read=5.0)


def dispatch(payload: ExportPayload, sink_url: str, client: httpx.Client | None = None) -> None:
    """POST *payload* to *sink_url* without consuming the response.

    Raises ConfigurationError when no https sink URL is set and
    SinkDispatchError when the request cannot be sent.  Once the body is out,
    a slow or broken reply still counts as dispatched.  HTTP status codes are
    not inspected.
    """
    if not sink_url:
        raise ConfigurationError("No sheet web-app URL configured. Set SHEET_WEBHOOK_URL or pass sheet_url.")
    if not sink_url.lower().startswith("https://"):
        raise ConfigurationError("The sheet web-app URL must use https.")

    body = payload.to_json()
    owns_client = client is None
    http = client or httpx.Client(timeout=SINK_TIMEOUT)
    try:
        # Streaming request: headers are sent and the body is left unread
        with http.stream("POST", sink_url, content=body, headers={"Content-Type": "text/plain"}):
            pass
    except (httpx.ReadTimeout, httpx.RemoteProtocolError) as exc:
        logger.warning("Sink at %s gave no usable reply after the row was sent: %s", sink_url, exc)
    except (httpx.TransportError, httpx.InvalidURL) as exc:
        logger.error("Sink dispatch to %s failed: %s", sink_url, exc)
        raise SinkDispatchError("Sending failed. Check the script link or the network connection.") from exc
    finally:
        if owns_client:
            http.close()

    logger.info(
        "Dispatched row (%d fields, file=%s, %d bytes) to sink",
        len(payload.row_data),
        payload.file_data.name if payload.file_data else None,
        len(body),
    )
