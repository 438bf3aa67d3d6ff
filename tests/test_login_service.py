"""Unit tests for the login service lockout flow."""

from unittest.mock import Mock

import pytest

from request_shield.adapters.credentials import InMemoryCredentialVerifier
from request_shield.adapters.credentials.in_memory import hash_password
from request_shield.adapters.lockout import InMemoryLockoutGuard
from request_shield.core.errors import AccountLockedAppError, AuthenticationAppError
from request_shield.services.login_service import LoginService


@pytest.fixture
def guard(clock) -> InMemoryLockoutGuard:
    return InMemoryLockoutGuard(threshold=3, lockout_seconds=600, clock=clock)


@pytest.fixture
def verifier() -> InMemoryCredentialVerifier:
    return InMemoryCredentialVerifier({"bob@example.com": hash_password("s3cret")})


@pytest.fixture
def service(guard, verifier) -> LoginService:
    return LoginService(guard=guard, verifier=verifier)


def test_successful_login_returns_normalized_account(service) -> None:
    assert service.login("  Bob@Example.com ", "s3cret", "10.0.0.1") == "bob@example.com"


def test_invalid_password_counts_account_and_address(service, guard) -> None:
    with pytest.raises(AuthenticationAppError) as exc_info:
        service.login("bob@example.com", "wrong", "10.0.0.1")

    assert exc_info.value.code == "invalid_credentials"
    assert guard.failed_attempts("account:bob@example.com") == 1
    assert guard.failed_attempts("ip:10.0.0.1") == 1


def test_success_clears_both_keys(service, guard) -> None:
    for _ in range(2):
        with pytest.raises(AuthenticationAppError):
            service.login("bob@example.com", "wrong", "10.0.0.1")

    service.login("bob@example.com", "s3cret", "10.0.0.1")

    assert guard.failed_attempts("account:bob@example.com") == 0
    assert guard.failed_attempts("ip:10.0.0.1") == 0


def test_locked_account_short_circuits_verification(guard) -> None:
    verifier = Mock()
    verifier.verify.return_value = False
    service = LoginService(guard=guard, verifier=verifier)

    for _ in range(3):
        with pytest.raises(AuthenticationAppError):
            service.login("bob@example.com", "wrong", "10.0.0.1")
    verifier.verify.reset_mock()

    with pytest.raises(AccountLockedAppError) as exc_info:
        service.login("bob@example.com", "s3cret", "10.0.0.1")

    assert exc_info.value.remaining_lockout_seconds == 600
    verifier.verify.assert_not_called()


def test_address_lock_blocks_other_accounts(service) -> None:
    for account in ("a@example.com", "b@example.com", "c@example.com"):
        with pytest.raises(AuthenticationAppError):
            service.login(account, "guess", "10.0.0.9")

    with pytest.raises(AccountLockedAppError):
        service.login("bob@example.com", "s3cret", "10.0.0.9")

    assert service.login("bob@example.com", "s3cret", "10.0.0.10") == "bob@example.com"


def test_address_tracking_can_be_disabled(guard, verifier) -> None:
    service = LoginService(guard=guard, verifier=verifier, track_address=False)

    for account in ("a@example.com", "b@example.com", "c@example.com"):
        with pytest.raises(AuthenticationAppError):
            service.login(account, "guess", "10.0.0.9")

    assert service.lockout_keys("bob@example.com", "10.0.0.9") == ["account:bob@example.com"]
    assert service.login("bob@example.com", "s3cret", "10.0.0.9") == "bob@example.com"


def test_lockout_status_reports_longest_remaining(service, guard, clock) -> None:
    for _ in range(3):
        guard.record_failure("ip:10.0.0.1")
    clock.advance(100.0)
    for _ in range(3):
        guard.record_failure("account:bob@example.com")

    status = service.lockout_status("bob@example.com", "10.0.0.1")
    assert status.locked is True
    assert status.remaining_lockout_seconds == 600


def test_lockout_expires_and_login_proceeds(service, guard, clock) -> None:
    for _ in range(3):
        with pytest.raises(AuthenticationAppError):
            service.login("bob@example.com", "wrong", "10.0.0.1")

    clock.advance(600.0)

    assert service.login("bob@example.com", "s3cret", "10.0.0.1") == "bob@example.com"


def test_blank_account_is_rejected_without_account_key(service, guard) -> None:
    with pytest.raises(AuthenticationAppError):
        service.login("   ", "whatever", "10.0.0.1")

    assert guard.failed_attempts("ip:10.0.0.1") == 1
    assert guard.stats()["active_entries"] == 1
