#!/usr/bin/env python3
"""
Credential Store

Holds the single Up API personal access token. The store is a narrow
collaborator: store, retrieve, delete, exists. Retrieval can optionally be
gated by a device authentication check supplied by the host application.

A missing token is a normal state (the user has not connected yet) and is
reported as CredentialNotFound rather than crashing callers.
"""

import logging
from collections.abc import Callable
from pathlib import Path
from typing import Protocol

from .json_utils import read_json, write_json

logger = logging.getLogger(__name__)

# A gate returns True when the device owner authenticated successfully.
Gate = Callable[[], bool]


class CredentialError(Exception):
    """Base class for credential store failures."""


class CredentialNotFound(CredentialError):
    """No token is stored."""

    def __init__(self, message: str = "API token not found"):
        super().__init__(message)


class CredentialStoreError(CredentialError):
    """The backing storage could not be read or written."""


class GateFailed(CredentialError):
    """The device authentication gate rejected the request."""

    def __init__(self, message: str = "Authentication failed"):
        super().__init__(message)


class GateUnavailable(CredentialError):
    """A gated retrieval was requested but no gate is configured."""

    def __init__(self, message: str = "Device authentication not available"):
        super().__init__(message)


class CredentialStore(Protocol):
    """Protocol for secure storage of the bearer token."""

    def store(self, token: str) -> None:
        """Persist the token, replacing any existing one."""
        ...

    def retrieve(self, use_gate: bool = False) -> str:
        """
        Return the stored token.

        Raises:
            CredentialNotFound: If no token is stored
            GateFailed: If use_gate is set and the gate rejects
            GateUnavailable: If use_gate is set and no gate is configured
        """
        ...

    def delete(self) -> None:
        """Remove the token. Deleting a missing token is not an error."""
        ...

    def exists(self) -> bool:
        """Check whether a token is stored."""
        ...


def mask_token(token: str) -> str:
    """Mask a token for log output, keeping only a short prefix."""
    if len(token) <= 5:
        return "*" * len(token)
    return token[:3] + "*" * (len(token) - 3)


def _check_gate(gate: Gate | None, use_gate: bool) -> None:
    if not use_gate:
        return
    if gate is None:
        raise GateUnavailable()
    if not gate():
        raise GateFailed()


def _clean(token: str) -> str:
    cleaned = token.strip()
    if not cleaned:
        raise CredentialStoreError("Refusing to store an empty token")
    return cleaned


class InMemoryCredentialStore:
    """Process-local credential store, used in tests and for one-off CLI runs."""

    def __init__(self, token: str | None = None, gate: Gate | None = None):
        self._token = token
        self._gate = gate

    def store(self, token: str) -> None:
        self._token = _clean(token)

    def retrieve(self, use_gate: bool = False) -> str:
        _check_gate(self._gate, use_gate)
        if not self._token:
            raise CredentialNotFound()
        return self._token

    def delete(self) -> None:
        self._token = None

    def exists(self) -> bool:
        return bool(self._token)


class FileCredentialStore:
    """
    Credential store backed by a JSON file readable only by its owner.

    File layout: {"api_token": "<token>"}
    """

    def __init__(self, path: Path, gate: Gate | None = None):
        """
        Initialize file credential store.

        Args:
            path: Location of the credential file (created on first store)
            gate: Optional device authentication check for gated retrieval
        """
        self.path = path
        self._gate = gate

    def store(self, token: str) -> None:
        cleaned = _clean(token)
        try:
            write_json(self.path, {"api_token": cleaned}, mode=0o600)
        except OSError as e:
            raise CredentialStoreError(f"Could not write credential file {self.path}: {e}") from e
        logger.info(f"Stored API token {mask_token(cleaned)}")

    def retrieve(self, use_gate: bool = False) -> str:
        _check_gate(self._gate, use_gate)

        if not self.path.exists():
            raise CredentialNotFound()

        try:
            data = read_json(self.path)
        except ValueError as e:
            raise CredentialStoreError(f"Credential file {self.path} is corrupt: {e}") from e
        except OSError as e:
            raise CredentialStoreError(f"Could not read credential file {self.path}: {e}") from e

        token = data.get("api_token") if isinstance(data, dict) else None
        if not isinstance(token, str) or not token:
            raise CredentialNotFound()

        logger.debug(f"Retrieved API token {mask_token(token)}")
        return token

    def delete(self) -> None:
        try:
            self.path.unlink(missing_ok=True)
        except OSError as e:
            raise CredentialStoreError(f"Could not delete credential file {self.path}: {e}") from e

    def exists(self) -> bool:
        try:
            self.retrieve()
        except CredentialError:
            return False
        return True
