"""Secret storage for API tokens.

A secret store has three operations: ``put``, ``get`` and ``delete``. A
missing secret is ``None`` from ``get`` and a no-op for ``delete``. Which
backend is used is decided once, at process start, by ``default_secret_store``.
"""
import subprocess
import sys
from abc import ABC, abstractmethod
from typing import Optional

import keyring
import keyring.errors

from grovr.exceptions import SecretStoreError
from grovr.logging_config import get_logger

logger = get_logger(__name__)

SERVICE_NAME = "grovr"

# `security` exits with this code when the item does not exist
MACOS_ITEM_NOT_FOUND = 44


def github_token_key(config_id: str) -> str:
    return f"github-token-{config_id}"


def jira_token_key(host: str) -> str:
    return f"jira-token-{host}"


class SecretStore(ABC):
    """Capability interface for reading and writing secrets."""

    @abstractmethod
    def put(self, key: str, value: str) -> None:
        """Store ``value`` under ``key``, replacing any existing value."""

    @abstractmethod
    def get(self, key: str) -> Optional[str]:
        """Return the secret stored under ``key``, or None."""

    @abstractmethod
    def delete(self, key: str) -> None:
        """Delete the secret stored under ``key``; missing keys are ignored."""


class KeyringSecretStore(SecretStore):
    """Secrets in the platform keyring via the ``keyring`` library."""

    def __init__(self, service_name: str = SERVICE_NAME):
        self.service_name = service_name

    def put(self, key: str, value: str) -> None:
        try:
            keyring.set_password(self.service_name, key, value)
        except keyring.errors.KeyringError as e:
            raise SecretStoreError(f"Failed to store secret '{key}': {e}") from e

    def get(self, key: str) -> Optional[str]:
        try:
            return keyring.get_password(self.service_name, key)
        except keyring.errors.KeyringError as e:
            raise SecretStoreError(f"Failed to read secret '{key}': {e}") from e

    def delete(self, key: str) -> None:
        try:
            keyring.delete_password(self.service_name, key)
        except keyring.errors.PasswordDeleteError:
            logger.debug(f"Secret '{key}' not present, nothing to delete")
        except keyring.errors.KeyringError as e:
            raise SecretStoreError(f"Failed to delete secret '{key}': {e}") from e


class MacSecurityCliStore(SecretStore):
    """Secrets in the macOS login keychain via the ``security`` command."""

    def __init__(self, service_name: str = SERVICE_NAME, executable: str = "security"):
        self.service_name = service_name
        self.executable = executable

    def _run(self, *args: str) -> subprocess.CompletedProcess:
        try:
            return subprocess.run(
                [self.executable, *args], capture_output=True, text=True, check=False
            )
        except OSError as e:
            raise SecretStoreError(f"Failed to execute security command: {e}") from e

    def put(self, key: str, value: str) -> None:
        # Drop any previous item; -U alone does not update every attribute
        self._run("delete-generic-password", "-s", self.service_name, "-a", key)
        result = self._run(
            "add-generic-password", "-s", self.service_name, "-a", key, "-w", value, "-U"
        )
        if result.returncode != 0:
            raise SecretStoreError(result.stderr.strip() or f"security exited {result.returncode}")

    def get(self, key: str) -> Optional[str]:
        result = self._run("find-generic-password", "-s", self.service_name, "-a", key, "-w")
        if result.returncode == 0:
            return result.stdout.strip()
        if result.returncode == MACOS_ITEM_NOT_FOUND:
            return None
        raise SecretStoreError(result.stderr.strip() or f"security exited {result.returncode}")

    def delete(self, key: str) -> None:
        result = self._run("delete-generic-password", "-s", self.service_name, "-a", key)
        if result.returncode not in (0, MACOS_ITEM_NOT_FOUND):
            raise SecretStoreError(result.stderr.strip() or f"security exited {result.returncode}")


class FallbackSecretStore(SecretStore):
    """Try the primary store; if it fails, use the fallback store."""

    def __init__(self, primary: SecretStore, fallback: SecretStore):
        self.primary = primary
        self.fallback = fallback

    def _attempt(self, operation: str, *args):
        try:
            return getattr(self.primary, operation)(*args)
        except SecretStoreError as e:
            logger.warning(
                f"{type(self.primary).__name__}.{operation} failed ({e}), "
                f"falling back to {type(self.fallback).__name__}"
            )
        return getattr(self.fallback, operation)(*args)

    def put(self, key: str, value: str) -> None:
        self._attempt("put", key, value)

    def get(self, key: str) -> Optional[str]:
        return self._attempt("get", key)

    def delete(self, key: str) -> None:
        self._attempt("delete", key)


def default_secret_store(platform: Optional[str] = None) -> SecretStore:
    """Pick the secret store for this platform."""
    platform = platform or sys.platform
    if platform == "darwin":
        return FallbackSecretStore(MacSecurityCliStore(), KeyringSecretStore())
    return KeyringSecretStore()
