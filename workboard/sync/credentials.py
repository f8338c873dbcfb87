"""
Slack Credentials

Resolves the decrypted Slack access token for a user and enforces the
connection policy shared by every credential backend: missing keys are
fatal, unusable tokens disconnect the account.

Stored tokens are AES-256-GCM encrypted with a scrypt-derived key and
serialised as ``iv_hex:tag_hex:ciphertext_hex``.
"""

import logging
import os
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass, replace
from typing import Dict, Optional

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from cryptography.hazmat.primitives.kdf.scrypt import Scrypt

from ..common.errors import ConfigurationError, CredentialError
from .slack_api import is_bot_token

logger = logging.getLogger("workboard.sync.credentials")

KEY_SALT = b"work-os-salt"
KEY_LENGTH = 32
IV_LENGTH = 16
TAG_LENGTH = 16

DEMO_TOKEN_PREFIX = "demo_access_slack_"

STATUS_CONNECTED = "connected"
STATUS_DISCONNECTED = "disconnected"


def derive_key(secret: str) -> bytes:
    kdf = Scrypt(salt=KEY_SALT, length=KEY_LENGTH, n=2 ** 14, r=8, p=1)
    return kdf.derive(secret.encode("utf-8"))


def encrypt_token(token: str, secret: str) -> str:
    iv = os.urandom(IV_LENGTH)
    sealed = AESGCM(derive_key(secret)).encrypt(iv, token.encode("utf-8"), None)
    ciphertext, tag = sealed[:-TAG_LENGTH], sealed[-TAG_LENGTH:]
    return ":".join([iv.hex(), tag.hex(), ciphertext.hex()])


def decrypt_token(payload: str, secret: str) -> str:
    """
    Decrypt a stored token.

    Raises:
        ValueError: Malformed payload, wrong key or tampered ciphertext
    """
    parts = payload.split(":")
    if len(parts) != 3 or not all(parts):
        raise ValueError("Invalid encrypted token format")

    try:
        iv, tag, ciphertext = (bytes.fromhex(part) for part in parts)
        plain = AESGCM(derive_key(secret)).decrypt(iv, ciphertext + tag, None)
    except InvalidTag as e:
        raise ValueError("Encrypted token failed authentication") from e
    return plain.decode("utf-8")


@dataclass(frozen=True)
class Connection:
    """A user's Slack connection record"""
    user_id: str
    status: str = STATUS_CONNECTED
    access_token_encrypted: Optional[str] = None
    account_id: Optional[str] = None
    account_name: Optional[str] = None
    reason: Optional[str] = None

    @property
    def is_connected(self) -> bool:
        return self.status == STATUS_CONNECTED


@dataclass(frozen=True)
class SlackCredential:
    token: str
    connection: Connection


class CredentialProvider(ABC):
    """
    Storage-agnostic access to Slack connections.

    Subclasses implement load/mark; ``resolve`` applies the shared policy.
    """

    def __init__(self, encryption_key: str = ""):
        self._encryption_key = encryption_key

    @abstractmethod
    def load_connection(self, user_id: str) -> Optional[Connection]:
        ...

    @abstractmethod
    def mark_disconnected(self, user_id: str, reason: str) -> None:
        ...

    def resolve(self, user_id: str) -> SlackCredential:
        """
        Return a usable decrypted token.

        Raises:
            CredentialError: No usable token. The connection is marked
                disconnected when the stored token itself is unusable.
            ConfigurationError: No encryption key configured
        """
        if not self._encryption_key:
            raise ConfigurationError("APP_ENCRYPTION_KEY is not configured")

        connection = self.load_connection(user_id)
        if connection is None or not connection.is_connected or not connection.access_token_encrypted:
            raise CredentialError("not_connected", "Slack is not connected")

        try:
            token = decrypt_token(connection.access_token_encrypted, self._encryption_key)
        except ValueError as e:
            logger.warning("Failed to decrypt Slack token for %s: %s", user_id, e)
            self._disconnect(user_id, "decrypt_failed")
            raise CredentialError("decrypt_failed", "Stored Slack token could not be decrypted") from e

        if token.startswith(DEMO_TOKEN_PREFIX):
            self._disconnect(user_id, "demo_token")
            raise CredentialError("demo_token", "Legacy demo Slack token; reconnect Slack")

        if is_bot_token(token):
            self._disconnect(user_id, "needs_reconnect")
            raise CredentialError(
                "needs_reconnect",
                "Slack is connected with a bot token. Reconnect Slack with user token scopes to read your DMs and mentions.",
            )

        return SlackCredential(token=token, connection=connection)

    def _disconnect(self, user_id: str, reason: str) -> None:
        logger.warning("Marking Slack connection for %s as disconnected (%s)", user_id, reason)
        self.mark_disconnected(user_id, reason)


class InMemoryCredentialProvider(CredentialProvider):
    """Dict-backed provider for tests and single-process tools"""

    def __init__(self, encryption_key: str = ""):
        super().__init__(encryption_key)
        self._connections: Dict[str, Connection] = {}
        self._lock = threading.Lock()

    def add_connection(self, connection: Connection) -> None:
        with self._lock:
            self._connections[connection.user_id] = connection

    def connect(
        self,
        user_id: str,
        token: str,
        account_id: Optional[str] = None,
        account_name: Optional[str] = None,
    ) -> Connection:
        """Encrypt and store a token as a connected account."""
        if not self._encryption_key:
            raise ConfigurationError("APP_ENCRYPTION_KEY is not configured")
        connection = Connection(
            user_id=user_id,
            access_token_encrypted=encrypt_token(token, self._encryption_key),
            account_id=account_id,
            account_name=account_name,
        )
        self.add_connection(connection)
        return connection

    def load_connection(self, user_id: str) -> Optional[Connection]:
        with self._lock:
            return self._connections.get(user_id)

    def mark_disconnected(self, user_id: str, reason: str) -> None:
        with self._lock:
            current = self._connections.get(user_id)
            if current is not None:
                self._connections[user_id] = replace(current, status=STATUS_DISCONNECTED, reason=reason)
