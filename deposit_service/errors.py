from http import HTTPStatus
from typing import Any, Dict, Optional


class LedgerError(Exception):
    status = HTTPStatus.BAD_REQUEST
    message = "bad request"

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.message
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        return {"error": self.message}


class ValidationError(LedgerError):
    message = "invalid input"


class ConflictError(LedgerError):
    message = "already exists"


class AuthError(LedgerError):
    status = HTTPStatus.UNAUTHORIZED
    message = "unauthorized"


class InsufficientFundsError(LedgerError):
    message = "insufficient funds"


class StoreError(Exception):
    """Raised when the snapshot cannot be written back."""
