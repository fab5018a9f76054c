class LedgerError(Exception):
    """Base class for every error the ledger engine raises on purpose.

    `code` is the stable, machine-readable kind; `http_status` is what
    the JSON views answer with.
    """

    code = "internal"
    http_status = 500

    def __init__(self, message):
        super().__init__(message)
        self.message = message

    def as_dict(self):
        return {"code": self.code, "message": self.message}


class InvalidArgument(LedgerError):
    """Malformed input: missing account, negative amount, bad date..."""
    code = "invalid-argument"
    http_status = 400


class PermissionDenied(LedgerError):
    """Actor lacks the role, or the record belongs to another tenant."""
    code = "permission-denied"
    http_status = 403


class NotFound(LedgerError):
    code = "not-found"
    http_status = 404


class FailedPrecondition(LedgerError):
    """Request is well formed but the ledger state forbids it."""
    code = "failed-precondition"
    http_status = 409


class AlreadyExists(LedgerError):
    code = "already-exists"
    http_status = 409


class UnbalancedJournalError(FailedPrecondition):
    """Raised when journal lines fail the double-entry balance check."""

    def __init__(self, debit_total, credit_total):
        super().__init__(
            f"Journal entry is unbalanced. "
            f"Debits: {debit_total}, Credits: {credit_total}"
        )
        self.debit_total = debit_total
        self.credit_total = credit_total
