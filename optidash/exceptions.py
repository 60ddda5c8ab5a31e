"""
Optidash SDK exceptions.

Local I/O, JSON and transport errors (``OSError``, ``ValueError``,
``requests.RequestException``) are not wrapped and reach the caller as-is.
"""


class OptidashError(Exception):
    """Base exception for Optidash SDK errors."""

    pass


class OptidashValidationError(OptidashError):
    """Request rejected locally, before anything was sent."""

    pass


class OptidashConfigError(OptidashValidationError):
    """Invalid client configuration."""

    pass


class InvalidSourceTypeError(OptidashValidationError):
    """Upload source is neither a path, a readable stream nor bytes."""

    pass


class BinaryWebhookError(OptidashValidationError):
    """Webhooks cannot be combined with binary responses."""

    def __init__(self):
        super().__init__(
            "optidash: Webhooks are not supported when using binary responses"
        )


class BinaryStorageError(OptidashValidationError):
    """External storage cannot be combined with binary responses."""

    def __init__(self):
        super().__init__(
            "optidash: External storage is not supported when using binary responses"
        )


class RequestAlreadySentError(OptidashValidationError):
    """A request builder was executed more than once."""

    def __init__(self):
        super().__init__("optidash: Request has already been sent")


class OptidashProtocolError(OptidashError):
    """The API returned an envelope this client cannot interpret."""

    pass


class MissingSuccessError(OptidashProtocolError):
    """The response envelope has no boolean ``success`` field."""

    def __init__(self):
        super().__init__("optidash: Success is missing in the response")


class IncompleteErrorEnvelopeError(OptidashProtocolError):
    """A failed response is missing its ``code`` or ``message`` field."""

    def __init__(self, field: str):
        self.field = field
        super().__init__(f"optidash: Error response is missing '{field}'")


class OptidashAPIError(OptidashError):
    """
    Error reported by the Optidash API (``success: false``).

    Attributes:
        code: API error code
        message: Human-readable message from the API
    """

    def __init__(self, code: int, message: str):
        self.code = code
        self.message = message
        super().__init__(f"optidash: [{code}] {message}")
