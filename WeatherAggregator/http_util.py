"""One JSON GET request turned into a StageResult."""
import logging
from typing import Any, Dict, Iterable, Optional

import requests

from weather_provider import FailureKind, StageResult

DEFAULT_TIMEOUT = 10
SECRET_PARAMS = ("appid",)


def _redact(text: str, secrets: Iterable[str]) -> str:
    for secret in secrets:
        if secret:
            text = text.replace(secret, "***")
    return text


def get_json(
    url: str,
    params: Optional[Dict[str, Any]] = None,
    headers: Optional[Dict[str, str]] = None,
    timeout: float = DEFAULT_TIMEOUT,
    stage: str = "",
    secrets: Iterable[str] = (),
) -> StageResult:
    """
    Fetch a URL and decode its JSON body.

    Network errors, non-success statuses and non-JSON bodies all become
    ``network`` failures; nothing is raised.

    Args:
        url: Absolute URL
        params: Query parameters
        headers: Extra request headers
        timeout: HTTP request timeout in seconds
        stage: Label used in logs and in the failure message
        secrets: Values (API keys) masked out of every log line

    Returns:
        StageResult: Decoded JSON on success
    """
    label = stage or "HTTP"
    secrets = [str(value) for value in secrets if value]
    secrets += [str(value) for key, value in (params or {}).items() if key in SECRET_PARAMS and value]

    try:
        logging.info(f"Making {label} request: {_redact(url, secrets)}")
        logging.debug(f"Request parameters: {_redact(str(params), secrets)}")

        response = requests.get(url, params=params, headers=headers, timeout=timeout)

        logging.info(f"{label} response status: {response.status_code}")

        if not response.ok:
            body = response.text[:200] if isinstance(response.text, str) else ""
            logging.error(f"{label} request failed with status {response.status_code}: {_redact(body, secrets)}")
            return StageResult.failure(FailureKind.NETWORK, f"HTTP {response.status_code}", stage)

        data = response.json()
        logging.debug(f"{label} response (truncated): {str(data)[:500]}...")
        return StageResult.success(data, stage)

    except requests.exceptions.RequestException as e:
        message = _redact(str(e), secrets)
        logging.error(f"Network error during {label} request: {message}")
        return StageResult.failure(FailureKind.NETWORK, f"Network error: {message}", stage)
    except ValueError as e:
        logging.error(f"Failed to decode {label} response as JSON: {e}")
        return StageResult.failure(FailureKind.NETWORK, f"Invalid JSON: {e}", stage)
