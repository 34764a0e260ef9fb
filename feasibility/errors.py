class FeasibilityError(Exception):
    """Base for failures that abort an analysis request.

    ``user_message`` is the stable text shown to the caller; the exception
    message itself carries the internal cause and is only logged.
    """
    status_code: int = 500
    user_message: str = "Analysis failed. Please try again."
    retryable: bool = False

    def __init__(self, message: str | None = None):
        super().__init__(message or self.user_message)


class ConfigurationError(FeasibilityError):
    status_code = 503
    user_message = "Service configuration error."


class UpstreamRateLimited(FeasibilityError):
    status_code = 429
    user_message = "Service is busy. Please try again in a moment."


class UpstreamQuotaExhausted(FeasibilityError):
    status_code = 503
    user_message = "Service temporarily unavailable."


class UpstreamServiceError(FeasibilityError):
    """Timeouts, connection failures and 5xx responses from a collaborator."""
    status_code = 503
    user_message = "Analysis service unavailable. Please try again."
    retryable = True


class UpstreamMalformedResponse(FeasibilityError):
    """Empty completion or no parseable JSON object in the model output."""
    status_code = 502
    user_message = "Analysis incomplete. Please try again."
    retryable = True
