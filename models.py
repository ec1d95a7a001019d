"""
Secret records exchanged with the Keeper server and stored in the cache.

Field names match the server's JSON contract exactly. from_dict() raises
TypeError when a value has the wrong JSON type; null decodes as the default.
"""

import base64
from typing import Any, Optional
from dataclasses import dataclass, field, asdict


def _str(data: dict[str, Any], name: str, default: str = "") -> str:
    value = data.get(name)
    if value is None:
        return default
    if not isinstance(value, str):
        raise TypeError(f"Field '{name}' must be a string, got {type(value).__name__}")
    return value


def _records(data: dict[str, Any], name: str, model) -> list:
    items = data.get(name)
    if items is None:
        return []
    if not isinstance(items, list):
        raise TypeError(f"'{name}' must be a list, got {type(items).__name__}")
    records = []
    for item in items:
        if not isinstance(item, dict):
            raise TypeError(f"'{name}' entries must be objects, got {type(item).__name__}")
        records.append(model.from_dict(item))
    return records


@dataclass
class LoginPassword:
    """A stored credential pair. Identified by login."""
    login: str
    password: str = ""
    label: str = ""

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "LoginPassword":
        return cls(
            login=_str(data, "login"),
            password=_str(data, "password"),
            label=_str(data, "label"),
        )


@dataclass
class TextSecret:
    """A stored text note. Identified by title."""
    title: str
    body: str = ""

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "TextSecret":
        return cls(title=_str(data, "title"), body=_str(data, "body"))


@dataclass
class BinarySecret:
    """A stored binary blob. Identified by filename; data is base64 text."""
    filename: str
    mime_type: str = "application/octet-stream"
    data: str = ""

    @classmethod
    def from_bytes(cls, filename: str, raw: bytes, mime_type: str = "application/octet-stream") -> "BinarySecret":
        """Build a secret from raw file contents."""
        return cls(
            filename=filename,
            mime_type=mime_type,
            data=base64.b64encode(raw).decode("ascii"),
        )

    @property
    def raw(self) -> bytes:
        """Decoded file contents."""
        return base64.b64decode(self.data)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "BinarySecret":
        return cls(
            filename=_str(data, "filename"),
            mime_type=_str(data, "mime_type", "application/octet-stream"),
            data=_str(data, "data"),
        )


@dataclass
class CardSecret:
    """A stored payment card. Identified by cardholder."""
    cardholder: str
    pan: str = ""
    exp_month: str = ""
    exp_year: str = ""
    brand: str = ""
    last4: str = ""

    @property
    def masked_pan(self) -> str:
        """PAN with everything but the last four digits hidden."""
        digits = self.last4 or self.pan[-4:]
        return f"**** **** **** {digits}" if digits else ""

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "CardSecret":
        return cls(
            cardholder=_str(data, "cardholder"),
            pan=_str(data, "pan"),
            exp_month=_str(data, "exp_month"),
            exp_year=_str(data, "exp_year"),
            brand=_str(data, "brand"),
            last4=_str(data, "last4"),
        )


@dataclass
class SecretBundle:
    """All secrets of the current user, as returned by get-all-secrets."""
    login_password: list[LoginPassword] = field(default_factory=list)
    text_secret: list[TextSecret] = field(default_factory=list)
    binary_secret: list[BinarySecret] = field(default_factory=list)
    card_secret: list[CardSecret] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not (self.login_password or self.text_secret or self.binary_secret or self.card_secret)

    def count(self) -> int:
        """Total number of records across all four kinds."""
        return (
            len(self.login_password)
            + len(self.text_secret)
            + len(self.binary_secret)
            + len(self.card_secret)
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to JSON-serializable dictionary."""
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Optional[dict[str, Any]]) -> "SecretBundle":
        """
        Reconstruct from dictionary. Missing or null sequences are empty.

        Raises:
            TypeError: If data or any sequence has the wrong shape
        """
        data = data or {}
        if not isinstance(data, dict):
            raise TypeError(f"Secrets must be an object, got {type(data).__name__}")
        return cls(
            login_password=_records(data, "login_password", LoginPassword),
            text_secret=_records(data, "text_secret", TextSecret),
            binary_secret=_records(data, "binary_secret", BinarySecret),
            card_secret=_records(data, "card_secret", CardSecret),
        )
