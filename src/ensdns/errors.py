"""Exceptions raised by the ENS DNS resolution engine.

Brief:
  "No resolver", "no record" and malformed registry discovery are ordinary
  outcomes and are reported as None. Only failures of the remote contract
  calls are raised, so callers can tell a real negative answer apart from a
  lookup that never completed.
"""

from __future__ import annotations

from typing import Optional


class EnsDnsError(Exception):
    """Base class for ensdns errors."""


class RemoteFailure(EnsDnsError):
    """Brief: A registry or resolver contract call failed.

    Inputs:
      - message: Human readable description.
      - address: Optional contract address the call was made against.
      - method: Optional contract method name.

    Outputs:
      - RemoteFailure instance; the underlying error is chained as __cause__.
    """

    def __init__(
        self,
        message: str,
        *,
        address: Optional[str] = None,
        method: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        self.address = address
        self.method = method


class RemoteTimeout(RemoteFailure):
    """A contract call did not complete within the configured timeout."""
