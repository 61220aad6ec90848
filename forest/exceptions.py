class ForestError(Exception):
    """Base for every error raised by the forest client."""


class ValidationError(ForestError):
    """Local input check failed; the request never reaches the contract."""

    def __init__(self, field: str, message: str):
        super().__init__(message)
        self.field = field
        self.message = message


class GatewayError(ForestError):
    """The contract relay rejected or could not serve a call.

    Carries the same three message fields a wallet library reports so the
    error translator can pick the most specific one.
    """

    def __init__(
        self,
        message: str,
        short_message: str | None = None,
        details: str | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.short_message = short_message
        self.details = details


class SubmissionError(ForestError):
    """The write call was rejected before inclusion."""

    def __init__(self, reason, cause: BaseException | None = None):
        super().__init__(reason.message)
        self.reason = reason
        self.cause = cause


class ConfirmationFailure(ForestError):
    """The write call was included but reverted, or never confirmed."""

    def __init__(self, reason, tx_hash: str | None = None):
        super().__init__(reason.message)
        self.reason = reason
        self.tx_hash = tx_hash


class InvalidTransition(ForestError):
    """A transaction lifecycle was driven out of order."""
