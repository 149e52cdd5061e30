from datetime import datetime, timezone
from enum import Enum
from typing import Dict, List

from pydantic import BaseModel, Field


class TransactionType(str, Enum):
    DEPOSIT = "deposit"
    WITHDRAW = "withdraw"


def utc_timestamp() -> str:
    # 2024-05-01T12:00:00.000Z
    now = datetime.now(timezone.utc)
    return now.isoformat(timespec="milliseconds").replace("+00:00", "Z")


class Transaction(BaseModel):
    type: TransactionType
    amount: float
    date: str = Field(default_factory=utc_timestamp)


class User(BaseModel):
    # stored verbatim, never hashed
    password: str
    balance: float = 0.0
    transactions: List[Transaction] = Field(default_factory=list)


class Snapshot(BaseModel):
    """Everything the service persists: users by name and session tokens."""

    users: Dict[str, User] = Field(default_factory=dict)
    sessions: Dict[str, str] = Field(default_factory=dict)
