"""HTTP utilities and normalized source errors."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

import requests
from requests.adapters import HTTPAdapter

SourceErrorCode = Literal["NOT_FOUND", "UPSTREAM", "NETWORK", "BAD_RESPONSE"]

_SESSION = requests.Session()
_SESSION.mount("https://", HTTPAdapter(pool_connections=4, pool_maxsize=8))
_SESSION.mount("http://", HTTPAdapter(pool_connections=4, pool_maxsize=8))


@dataclass
class SourceError(Exception):
    code: SourceErrorCode
    message: str
    status: int | None = None

    def __str__(self) -> str:
        return self.message


def map_status_to_code(status: int) -> SourceErrorCode:
    if status == 404:
        return "NOT_FOUND"
    return "UPSTREAM"


def fetch_bytes(url: str, timeout_seconds: float = 15.0, headers: dict[str, str] | None = None) -> bytes:
    """Download a binary document; the timeout aborts the request."""
    try:
        response = _SESSION.get(url, timeout=timeout_seconds, headers=headers)
    except requests.Timeout as error:
        raise SourceError("NETWORK", f"Download timed out after {timeout_seconds:g}s.") from error
    except requests.RequestException as error:
        raise SourceError("NETWORK", "Download failed due to network error.") from error

    if not response.ok:
        raise SourceError(
            map_status_to_code(response.status_code),
            f"Download failed: {response.status_code} {response.reason or ''}".strip(),
            response.status_code,
        )
    if not response.content:
        raise SourceError("BAD_RESPONSE", "Download returned an empty document.", response.status_code)
    return response.content
