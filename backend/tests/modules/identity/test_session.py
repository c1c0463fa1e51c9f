"""Tests for anonymous session tokens."""

import pytest
from unittest.mock import MagicMock

from modules.identity.session import is_valid_session_id, new_session_id, read_session_id


def _request(headers=None, cookies=None) -> MagicMock:
    request = MagicMock()
    request.headers = headers or {}
    request.cookies = cookies or {}
    return request


def _settings() -> MagicMock:
    settings = MagicMock()
    settings.session_header_name = "X-Session-Id"
    settings.session_cookie_name = "session_id"
    return settings


class TestSessionIds:
    def test_new_session_ids_are_unique_and_valid(self):
        ids = {new_session_id() for _ in range(50)}
        assert len(ids) == 50
        assert all(is_valid_session_id(i) for i in ids)

    @pytest.mark.parametrize("value", [
        "3f1c2a9e-8d4b-4c1e-9f6a-2b7d5e8c1a04",
        "session-1",
        "a",
    ])
    def test_valid(self, value):
        assert is_valid_session_id(value) is True

    @pytest.mark.parametrize("value", [None, "", "has space", "x" * 129, "semi;colon"])
    def test_invalid(self, value):
        assert is_valid_session_id(value) is False


class TestReadSessionId:
    def test_header_wins_over_cookie(self):
        request = _request(headers={"X-Session-Id": "from-header"}, cookies={"session_id": "from-cookie"})
        assert read_session_id(request, _settings()) == "from-header"

    def test_falls_back_to_cookie(self):
        request = _request(cookies={"session_id": "from-cookie"})
        assert read_session_id(request, _settings()) == "from-cookie"

    def test_missing(self):
        assert read_session_id(_request(), _settings()) is None

    def test_malformed_is_ignored(self):
        request = _request(headers={"X-Session-Id": "bad token"})
        assert read_session_id(request, _settings()) is None
