"""Error taxonomy shared by the workflow and the HTTP layer.

Each error carries a `kind` and the HTTP `status` the API maps it to.
"""


class DidMoveError(Exception):
    kind = 'error'
    status = 500

    def __init__(self, message):
        super().__init__(message)
        self.message = message


class ValidationError(DidMoveError):
    """Missing or malformed request input."""
    kind = 'validation'
    status = 400


class ConflictError(DidMoveError):
    """The resource already exists (e.g. a DID for this address)."""
    kind = 'conflict'
    status = 400


class NotFoundError(DidMoveError):
    """Account or private key missing from storage."""
    kind = 'not_found'
    status = 400


class UpstreamError(DidMoveError):
    """The fullnode answered with a non-success status."""
    kind = 'upstream'
    status = 500

    def __init__(self, message, status_code=None, body=''):
        super().__init__(message)
        self.status_code = status_code
        self.body = body


class ConfirmationTimeout(DidMoveError):
    kind = 'timeout'
    status = 500
