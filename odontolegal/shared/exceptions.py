"""Domain errors raised by services and mapped to HTTP responses in main.py."""


class DomainError(Exception):
    status_code = 400

    def __init__(self, detail: str):
        super().__init__(detail)
        self.detail = detail


class NotFound(DomainError):
    status_code = 404


class Forbidden(DomainError):
    status_code = 403


class InvalidState(DomainError):
    """Operation not allowed in the entity's current state (e.g. edit on a finalized report)."""
    status_code = 409


class ValidationFailed(DomainError):
    status_code = 422


class AuditAppendFailed(DomainError):
    """The entity write committed but its trail entry could not be stored.

    Never rolled back and never returned to the client as an error. Callers
    log it and hand the entry to the reconciliation queue.
    """
    status_code = 500

    def __init__(self, detail: str, pending=None):
        super().__init__(detail)
        self.pending = pending
