"""Tests for the JSON GET helper."""
import logging
from unittest.mock import Mock, patch

import requests
from http_util import get_json
from weather_provider import FailureKind


def test_get_json_success():
    with patch('http_util.requests.get') as mock_get:
        mock_get.return_value = Mock(ok=True, status_code=200, json=Mock(return_value={"a": 1}))
        result = get_json("https://example.com/data", params={"q": 1}, timeout=5, stage="test")

    assert result.ok
    assert result.value == {"a": 1}
    assert result.stage == "test"
    mock_get.assert_called_once_with("https://example.com/data", params={"q": 1}, headers=None, timeout=5)


def test_get_json_http_error():
    with patch('http_util.requests.get') as mock_get:
        mock_get.return_value = Mock(ok=False, status_code=404, text="Not Found")
        result = get_json("https://example.com/missing", stage="test")

    assert not result.ok
    assert result.failure_kind == FailureKind.NETWORK
    assert result.message == "HTTP 404"
    assert str(result) == "test: network - HTTP 404"


def test_get_json_network_error():
    with patch('http_util.requests.get', side_effect=requests.exceptions.Timeout("timed out")):
        result = get_json("https://example.com/slow")

    assert not result.ok
    assert result.failure_kind == FailureKind.NETWORK
    assert result.message.startswith("Network error")


def test_get_json_invalid_json():
    with patch('http_util.requests.get') as mock_get:
        mock_get.return_value = Mock(ok=True, status_code=200, json=Mock(side_effect=ValueError("Expecting value")))
        result = get_json("https://example.com/html")

    assert not result.ok
    assert result.message.startswith("Invalid JSON")


def test_get_json_redacts_keys(caplog):
    """Test API keys never reach the log."""
    with caplog.at_level(logging.DEBUG):
        with patch('http_util.requests.get') as mock_get:
            mock_get.return_value = Mock(ok=False, status_code=401, text="Unauthorized")
            get_json("https://example.com/secret-key-1/1,2", secrets=["secret-key-1"])
            get_json("https://example.com/weather", params={"appid": "owm-key-2"})

    assert "secret-key-1" not in caplog.text
    assert "owm-key-2" not in caplog.text
    assert "***" in caplog.text
