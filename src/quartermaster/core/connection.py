"""
Persisted connection record for the agent service.

The record is a small JSON document in the user's home directory holding the
service URL and a "user:password" credential string. Its keys match the files
written by earlier agent tooling, so an existing ~/.agent.json keeps working.
"""

import json
import logging
import os
from pathlib import Path
from typing import Optional, Tuple

import keyring
from keyring.errors import KeyringError
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from quartermaster.core.exceptions import ConnectionFileError

logger = logging.getLogger(__name__)

# Written by the Go tool when connect ran without -u/-p.
LEGACY_NIL = "<nil>"


class ConnectionRecord(BaseModel):
    """Service endpoint plus the credential used to authenticate against it."""

    service: str = Field(alias="Service")
    credentials: str = Field(default="", alias="Credentials")
    use_keyring: bool = Field(default=False, alias="Keyring")

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    @property
    def username(self) -> str:
        return self.credentials.partition(":")[0]

    def keyring_account(self) -> str:
        return f"{self.username}@{self.service}"

    def auth(self, keyring_service: str = "quartermaster") -> Optional[Tuple[str, str]]:
        """Return a (user, password) pair for HTTP basic auth, or None.

        When the record was stored with ``use_keyring`` the password is looked
        up in the system keyring instead of the credential string.
        """
        user, _, password = self.credentials.partition(":")
        user = "" if user == LEGACY_NIL else user
        password = "" if password == LEGACY_NIL else password
        if not user and not password and not self.use_keyring:
            return None
        if self.use_keyring:
            try:
                password = keyring.get_password(keyring_service, self.keyring_account()) or ""
            except KeyringError as e:
                raise ConnectionFileError(f"Unable to read password from keyring: {e}") from e
        return user, password


def make_record(
    service: str,
    username: Optional[str] = None,
    password: Optional[str] = None,
    use_keyring: bool = False,
    keyring_service: str = "quartermaster",
) -> ConnectionRecord:
    """Create a connection record from `connect` arguments.

    With ``use_keyring`` the password goes to the system keyring and only the
    user name is kept in the record.
    """
    if username is None and password is None:
        return ConnectionRecord(service=service)

    username = username or ""
    password = password or ""
    if use_keyring:
        record = ConnectionRecord(service=service, credentials=f"{username}:", use_keyring=True)
        try:
            keyring.set_password(keyring_service, record.keyring_account(), password)
        except KeyringError as e:
            raise ConnectionFileError(f"Unable to store password in keyring: {e}") from e
        return record
    return ConnectionRecord(service=service, credentials=f"{username}:{password}")


def save_connection(record: ConnectionRecord, path: Path) -> Path:
    """Write the record to ``path``, replacing any previous one."""
    payload = {"Service": record.service, "Credentials": record.credentials}
    if record.use_keyring:
        payload["Keyring"] = True
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            # the mode above only applies to new files
            os.fchmod(f.fileno(), 0o600)
            json.dump(payload, f)
    except OSError as e:
        raise ConnectionFileError(f"Unable to write agent information to {path}: {e}") from e
    logger.info(f"Saved connection to {record.service} in {path}")
    return path


def load_connection(path: Path) -> ConnectionRecord:
    """Read the record written by `connect`.

    Raises:
        ConnectionFileError: If the file is missing, unreadable or malformed
    """
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
        return ConnectionRecord.model_validate(data)
    except (OSError, ValueError, ValidationError) as e:
        logger.debug(f"Failed to load connection from {path}: {e}")
        raise ConnectionFileError(f"Unable to read agent information from {path}") from e
