# app/transfers/errors.py


class TransferError(Exception):
    """Base class for every failure the transfer workflow reports."""

    def __init__(self, message):
        super().__init__(message)
        self.message = message


class ValidationError(TransferError):
    """Input rejected at a step boundary.

    ``code`` identifies the broken rule (``"quantity exceeds lot"``) and
    ``field`` the input to correct.
    """

    def __init__(self, code, field, message=None):
        super().__init__(message or code)
        self.code = code
        self.field = field


class PermissionDenied(TransferError):
    pass


class TransportError(TransferError):
    """A catalog query or submission could not reach the store."""


class SubmissionInProgress(TransferError):
    pass


class InvalidTransition(TransferError):
    pass
