"""Pytest configuration and fixtures shared across all test modules.

Environment defaults must be in place before anything imports
``request_shield.core.config``, because settings are resolved at import time.
"""

import hashlib
import os

# CRITICAL: Set these before any imports that might load settings
os.environ["APP_ENV"] = "testing"
os.environ.setdefault("LOG_LEVEL", "WARNING")

TEST_ACCOUNT = "alice@example.com"
TEST_PASSWORD = "correct-horse-battery"

os.environ.setdefault(
    "AUTH_CREDENTIALS",
    f"{TEST_ACCOUNT}:{hashlib.sha256(TEST_PASSWORD.encode()).hexdigest()}",
)

import pytest

from request_shield.core.defense import reset_defense_state


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 0.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture(autouse=True)
def _fresh_defense_state():
    """Every test starts with empty limiter/lockout state."""
    reset_defense_state()
    yield
    reset_defense_state()
