"""Error taxonomy for the CV normalizer.

Every failure that ends a submission attempt is a ``CVNormalizerError``.  The
``kind`` attribute is the stable identifier the web layer reports to clients.
"""


class CVNormalizerError(Exception):
    """Base class for all errors surfaced to the operator."""

    kind = "error"


class ConfigurationError(CVNormalizerError):
    """A required credential or endpoint is not configured."""

    kind = "configuration_error"


class CompletionServiceError(CVNormalizerError):
    """The completion service failed or returned nothing usable."""

    kind = "completion_error"


class TransientServiceError(CompletionServiceError):
    """Rate limit or network failure; safe to retry after a short delay."""

    kind = "transient_service_error"


class AuthError(CompletionServiceError):
    """The completion service rejected the credentials."""

    kind = "auth_error"


class ExtractionError(CVNormalizerError):
    """No usable delimited row could be found in the model output."""

    kind = "extraction_error"


class SinkDispatchError(CVNormalizerError):
    """The POST to the sink could not be initiated."""

    kind = "sink_dispatch_error"


class BusyError(CVNormalizerError):
    """A submission is already in flight for this session."""

    kind = "busy"
