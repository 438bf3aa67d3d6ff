"""Unit tests for the in-memory credential verifier."""

import pytest

from request_shield.adapters.credentials import InMemoryCredentialVerifier, parse_credentials
from request_shield.adapters.credentials.in_memory import hash_password


class TestParseCredentials:
    def test_parse_pairs(self) -> None:
        result = parse_credentials("A@x.io:ABC, b@x.io:def")
        assert result == {"a@x.io": "abc", "b@x.io": "def"}

    @pytest.mark.parametrize("raw", [None, "", " , "])
    def test_empty_input(self, raw) -> None:
        assert parse_credentials(raw) == {}

    @pytest.mark.parametrize("raw", ["no-separator", ":digest", "a@x.io:"])
    def test_malformed_pairs_raise(self, raw) -> None:
        with pytest.raises(ValueError):
            parse_credentials(raw)


class TestVerifier:
    def test_accepts_correct_password(self) -> None:
        verifier = InMemoryCredentialVerifier.from_string(f"a@x.io:{hash_password('pw')}")
        assert verifier.verify("a@x.io", "pw") is True

    def test_rejects_wrong_password(self) -> None:
        verifier = InMemoryCredentialVerifier.from_string(f"a@x.io:{hash_password('pw')}")
        assert verifier.verify("a@x.io", "nope") is False

    def test_rejects_unknown_account_even_with_empty_password(self) -> None:
        verifier = InMemoryCredentialVerifier({})
        assert verifier.verify("ghost@x.io", "") is False
