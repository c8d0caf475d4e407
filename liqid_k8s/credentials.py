"""Codec for the credential blob stored in the linkage Secret."""

from __future__ import annotations

import base64
import binascii
from dataclasses import dataclass
from typing import Optional

from liqid_k8s.errors import ConfigurationDataError


def _encode(value: str) -> str:
    return base64.b64encode(value.encode("utf-8")).decode("ascii")


def _decode(value: str) -> str:
    try:
        return base64.b64decode(value.encode("ascii"), validate=True).decode("utf-8")
    except (binascii.Error, UnicodeError) as e:
        raise ConfigurationDataError(f"Credentials are not validly encoded: {e}") from e


@dataclass(frozen=True)
class Credentials:
    """
    Username and optional password.

    Stored form is ``b64(username)`` or ``b64(username):b64(password)``.
    """
    username: str
    password: Optional[str] = None

    def mangle(self) -> str:
        if self.password is None:
            return _encode(self.username)
        return f"{_encode(self.username)}:{_encode(self.password)}"

    @classmethod
    def unmangle(cls, mangled: Optional[str]) -> "Credentials":
        if not mangled:
            raise ConfigurationDataError("Credentials are empty")
        parts = mangled.split(":")
        if len(parts) > 2:
            raise ConfigurationDataError("Credentials are malformed")
        username = _decode(parts[0])
        if not username:
            raise ConfigurationDataError("Credentials do not contain a username")
        password = _decode(parts[1]) if len(parts) == 2 else None
        return cls(username=username, password=password)
