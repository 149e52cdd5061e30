import pytest

from deposit_service.errors import (AuthError, ConflictError,
                                    InsufficientFundsError, StoreError,
                                    ValidationError)
from deposit_service.ledger import Ledger, parse_amount
from deposit_service.models import TransactionType
from deposit_service.store import JsonFileStore


@pytest.fixture
def alice(ledger):
    ledger.register("alice", "p1")
    return ledger.authenticate(f"Bearer {ledger.login('alice', 'p1')}")


@pytest.mark.parametrize("username,password", [("", "p"), ("u", ""), (None, "p"), ("u", None)])
def test_register_requires_fields(ledger, store, username, password):
    with pytest.raises(ValidationError):
        ledger.register(username, password)
    assert store.raw is None


def test_register_twice_conflicts(ledger):
    ledger.register("alice", "p1")
    with pytest.raises(ConflictError):
        ledger.register("alice", "other")
    assert ledger.store.load().users["alice"].password == "p1"


def test_usernames_are_case_sensitive(ledger):
    ledger.register("alice", "p1")
    ledger.register("Alice", "p2")
    assert set(ledger.store.load().users) == {"alice", "Alice"}


def test_new_user_starts_empty(ledger):
    ledger.register("alice", "p1")
    user = ledger.store.load().users["alice"]
    assert user.balance == 0
    assert user.transactions == []


def test_login_token_authenticates(ledger):
    ledger.register("alice", "p1")
    token = ledger.login("alice", "p1")
    assert len(token) == 48
    assert ledger.authenticate(f"Bearer {token}") == "alice"


def test_each_login_issues_new_token(ledger):
    ledger.register("alice", "p1")
    first = ledger.login("alice", "p1")
    second = ledger.login("alice", "p1")
    assert first != second
    assert ledger.authenticate(f"Bearer {first}") == "alice"
    assert ledger.authenticate(f"Bearer {second}") == "alice"


@pytest.mark.parametrize("username,password", [("alice", "wrong"), ("alice", "P1"), ("bob", "p1"), (None, None)])
def test_bad_credentials(ledger, username, password):
    ledger.register("alice", "p1")
    with pytest.raises(AuthError):
        ledger.login(username, password)
    assert ledger.store.load().sessions == {}


@pytest.mark.parametrize("header", [None, "", "Bearer", "Bearer ", "Basic abc", "bearer abc", "Bearer nope"])
def test_authenticate_rejects(ledger, alice, header):
    with pytest.raises(AuthError):
        ledger.authenticate(header)


def test_token_for_missing_user_rejected(ledger, store):
    snapshot = store.load()
    snapshot.sessions["orphan"] = "ghost"
    store.save(snapshot)
    with pytest.raises(AuthError):
        ledger.authenticate("Bearer orphan")


@pytest.mark.parametrize("raw", [None, 0, -5, "0", "abc", "", float("nan"), float("inf"), "Infinity", True, [], {}, 10**400, "1_000"])
def test_parse_amount_rejects(raw):
    with pytest.raises(ValidationError):
        parse_amount(raw)


@pytest.mark.parametrize("raw,expected", [(50, 50.0), (0.5, 0.5), ("12.5", 12.5)])
def test_parse_amount_accepts(raw, expected):
    assert parse_amount(raw) == expected


def test_balance_tracks_signed_sum(ledger, alice):
    steps = [
        (TransactionType.DEPOSIT, 100),
        (TransactionType.WITHDRAW, 30),
        (TransactionType.WITHDRAW, 80),
        (TransactionType.DEPOSIT, 5),
        (TransactionType.WITHDRAW, 75),
        (TransactionType.WITHDRAW, 1),
    ]
    expected = 0
    history = 0
    for tx_type, amount in steps:
        sign = 1 if tx_type is TransactionType.DEPOSIT else -1
        try:
            balance = ledger.apply_transaction(alice, tx_type, amount)
        except InsufficientFundsError:
            assert expected - amount < 0
        else:
            expected += sign * amount
            history += 1
            assert balance == expected
        assert ledger.get_account(alice)["balance"] == expected
        assert ledger.get_account(alice)["balance"] >= 0
        assert len(ledger.get_transactions(alice)) == history
    assert expected == 0


def test_invalid_amount_records_nothing(ledger, alice):
    with pytest.raises(ValidationError):
        ledger.deposit(alice, -1)
    assert ledger.get_transactions(alice) == []


def test_withdraw_entire_balance(ledger, alice):
    ledger.deposit(alice, 40)
    assert ledger.withdraw(alice, 40) == 0


def test_transactions_in_order(ledger, alice):
    ledger.deposit(alice, 50)
    with pytest.raises(InsufficientFundsError):
        ledger.withdraw(alice, 70)
    assert ledger.get_account(alice) == {"balance": 50, "username": "alice"}
    ledger.withdraw(alice, 20)
    history = ledger.get_transactions(alice)
    assert [(t.type, t.amount) for t in history] == [
        (TransactionType.DEPOSIT, 50),
        (TransactionType.WITHDRAW, 20),
    ]
    assert history[0].date <= history[1].date


def test_state_reloaded_from_store(tmp_path):
    path = str(tmp_path / "data.json")
    Ledger(JsonFileStore(path)).register("alice", "p1")
    token = Ledger(JsonFileStore(path)).login("alice", "p1")
    other = Ledger(JsonFileStore(path))
    user = other.authenticate(f"Bearer {token}")
    other.deposit(user, 10)
    assert Ledger(JsonFileStore(path)).get_account("alice")["balance"] == 10


def test_save_failure_raises_store_error(tmp_path):
    ledger = Ledger(JsonFileStore(str(tmp_path / "missing-dir" / "data.json")))
    with pytest.raises(StoreError):
        ledger.register("alice", "p1")


def test_authenticate_uses_first_word_after_scheme(ledger):
    ledger.register("alice", "p1")
    token = ledger.login("alice", "p1")
    assert ledger.authenticate(f"Bearer {token} trailing") == "alice"
    with pytest.raises(AuthError):
        ledger.authenticate(f"Bearer  {token}")
