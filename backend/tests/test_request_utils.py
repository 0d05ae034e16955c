"""Tests for request_utils helper functions."""

from unittest.mock import MagicMock

import pytest

from helpers.request_utils import get_client_ip
from models.config import settings


def _request(headers: dict, host: str | None = "10.0.0.1") -> MagicMock:
    request = MagicMock()
    request.headers = headers
    request.client = MagicMock(host=host) if host else None
    return request


class TestWithoutProxy:
    def test_headers_are_ignored(self):
        request = _request({"X-Forwarded-For": "203.0.113.50"})
        assert get_client_ip(request) == "10.0.0.1"

    def test_no_client_returns_none(self):
        assert get_client_ip(_request({}, host=None)) is None


class TestBehindProxy:
    @pytest.fixture(autouse=True)
    def trust_proxy(self, monkeypatch):
        monkeypatch.setattr(settings, "TRUST_PROXY_HEADERS", True)

    def test_x_real_ip_before_forwarded_for(self):
        request = _request(
            {"X-Real-IP": "192.168.1.100", "X-Forwarded-For": "172.16.0.50"}
        )
        assert get_client_ip(request) == "192.168.1.100"

    def test_forwarded_for_takes_first_address(self):
        request = _request(
            {"X-Forwarded-For": "203.0.113.50, 70.41.3.18, 150.172.238.178"}
        )
        assert get_client_ip(request) == "203.0.113.50"

    def test_blank_headers_fall_back_to_client(self):
        request = _request({"X-Real-IP": "  ", "X-Forwarded-For": " , "})
        assert get_client_ip(request) == "10.0.0.1"
