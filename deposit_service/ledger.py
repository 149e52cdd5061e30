import math
import secrets
from typing import Any, Dict, List, Optional

from loguru import logger

from .errors import AuthError, ConflictError, InsufficientFundsError, ValidationError
from .models import Snapshot, Transaction, TransactionType, User
from .store import Store


def generate_token() -> str:
    # 24 random bytes, 48 hex chars
    return secrets.token_hex(24)


def parse_amount(raw: Any) -> float:
    if isinstance(raw, bool) or raw is None:
        raise ValidationError("amount must be a positive number")
    # no digit separators such as "1_000"
    if isinstance(raw, str) and "_" in raw:
        raise ValidationError("amount must be a positive number")
    try:
        amount = float(raw)
    except (TypeError, ValueError, OverflowError):
        raise ValidationError("amount must be a positive number")
    if not math.isfinite(amount) or amount <= 0:
        raise ValidationError("amount must be a positive number")
    return amount


class Ledger:
    """Accounts, sessions and balances on top of a snapshot store.

    Every call reloads the snapshot; mutating calls write it back in full.
    Passwords are compared as plain strings. This is not safe for real use.
    """

    def __init__(self, store: Store):
        self.store = store

    def register(self, username: Optional[str], password: Optional[str]) -> None:
        if not username or not password:
            raise ValidationError("username and password are required")
        snapshot = self.store.load()
        if username in snapshot.users:
            raise ConflictError("username already exists")
        snapshot.users[username] = User(password=password)
        self.store.save(snapshot)
        logger.info(f"ledger: registered {username}")

    def login(self, username: Optional[str], password: Optional[str]) -> str:
        snapshot = self.store.load()
        user = snapshot.users.get(username) if username else None
        if user is None or password is None or user.password != password:
            logger.info(f"ledger: failed login for {username!r}")
            raise AuthError("invalid credentials")
        token = generate_token()
        snapshot.sessions[token] = username
        self.store.save(snapshot)
        logger.info(f"ledger: {username} logged in")
        return token

    def authenticate(self, authorization: Optional[str]) -> str:
        return self._resolve(self.store.load(), authorization)

    def get_account(self, username: str) -> Dict[str, Any]:
        user = self._user(self.store.load(), username)
        return {"balance": user.balance, "username": username}

    def apply_transaction(self, username: str, tx_type: TransactionType, amount: Any) -> float:
        tx_type = TransactionType(tx_type)
        amount = parse_amount(amount)
        snapshot = self.store.load()
        user = self._user(snapshot, username)
        if tx_type is TransactionType.WITHDRAW and amount > user.balance:
            logger.info(f"ledger: rejected withdraw of {amount} for {username}, balance {user.balance}")
            raise InsufficientFundsError("insufficient funds")

        if tx_type is TransactionType.DEPOSIT:
            user.balance += amount
        else:
            user.balance -= amount
        user.transactions.append(Transaction(type=tx_type, amount=amount))
        self.store.save(snapshot)
        logger.info(f"ledger: {tx_type.value} {amount} for {username}, balance {user.balance}")
        return user.balance

    def deposit(self, username: str, amount: Any) -> float:
        return self.apply_transaction(username, TransactionType.DEPOSIT, amount)

    def withdraw(self, username: str, amount: Any) -> float:
        return self.apply_transaction(username, TransactionType.WITHDRAW, amount)

    def get_transactions(self, username: str) -> List[Transaction]:
        return list(self._user(self.store.load(), username).transactions)

    @staticmethod
    def _resolve(snapshot: Snapshot, authorization: Optional[str]) -> str:
        # "Bearer a b" resolves token "a"
        parts = (authorization or "").split(" ")
        scheme, token = parts[0], parts[1] if len(parts) > 1 else ""
        if scheme != "Bearer" or not token:
            raise AuthError("Missing or invalid Authorization header")
        username = snapshot.sessions.get(token)
        if not username or username not in snapshot.users:
            raise AuthError("Invalid or expired token")
        return username

    @staticmethod
    def _user(snapshot: Snapshot, username: str) -> User:
        user = snapshot.users.get(username)
        if user is None:
            raise AuthError("Invalid or expired token")
        return user
