"""Error taxonomy for remote product lookups.

Only two failure kinds are distinguished for both request types:

* :class:`TransportError` covers network, DNS, timeout and non-2xx HTTP
  responses.
* :class:`ParseError` covers bodies that are not JSON or do not have the
  expected shape.
"""
from __future__ import annotations


class PairingSearchError(Exception):
    """Base class for lookup failures."""

    kind = "unknown"


class TransportError(PairingSearchError):
    kind = "transport"

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class ParseError(PairingSearchError):
    kind = "parse"
