"""Typed records of the i3bar JSON protocol.

Only the header is decoded during a normal run: status blocks coming from the
generator are forwarded as opaque text. `StatusBlock` is used when the relay
writes a message of its own.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, fields, replace
from enum import StrEnum
from typing import Any, Self

from .models import DecodeError

__all__ = [
    "Alignment",
    "ProtocolHeader",
    "StatusBlock",
    "encode_status_line",
]

_COMPACT = (",", ":")


def _load_object(line: str, what: str) -> dict[str, Any]:
    """Parse `line` as a JSON object or raise DecodeError."""
    try:
        value = json.loads(line)
    except json.JSONDecodeError as e:
        msg = f"Invalid {what} JSON {line.strip()!r}: {e}"
        raise DecodeError(msg) from e
    if not isinstance(value, dict):
        msg = f"Expected a JSON object for {what}, got {value!r}"
        raise DecodeError(msg)
    return value


def _is_int(value: Any) -> bool:  # noqa: ANN401
    return isinstance(value, int) and not isinstance(value, bool)


def _optional(obj: dict[str, Any], key: str, check: type | tuple[type, ...], what: str) -> Any:  # noqa: ANN401
    """Return `obj[key]` if present and of type `check`, None if absent or null."""
    value = obj.get(key)
    if value is None:
        return None
    if check is int:
        valid = _is_int(value)
    else:
        valid = isinstance(value, check)
    if not valid:
        msg = f"Invalid `{key}` in {what}: {value!r}"
        raise DecodeError(msg)
    return value


def _unsigned(obj: dict[str, Any], key: str, what: str) -> int | None:
    value = _optional(obj, key, int, what)
    if value is not None and value < 0:
        msg = f"Invalid `{key}` in {what}: {value!r} is negative"
        raise DecodeError(msg)
    return value


class Alignment(StrEnum):
    """Text alignment of a block inside its `min_width`."""

    RIGHT = "right"
    LEFT = "left"
    CENTER = "center"

    @classmethod
    def decode(cls, token: Any) -> Alignment:  # noqa: ANN401
        """Return the alignment for `token`.

        Raises:
            DecodeError: the token is not one of the three valid alignments
        """
        try:
            return cls(token)
        except ValueError:
            msg = f"`{token}` is not a valid alignment"
            raise DecodeError(msg) from None

    def encode(self) -> str:
        """Return the wire token."""
        return self.value


@dataclass(frozen=True)
class ProtocolHeader:
    """The first line sent by the generator."""

    version: int
    stop_signal: int | None = None
    cont_signal: int | None = None
    click_events: bool | None = None

    @classmethod
    def decode(cls, line: str) -> Self:
        """Parse a header line.

        Null optional fields count as absent, unknown keys are ignored.

        Raises:
            DecodeError: the line is not a JSON object or a field has the wrong type
        """
        obj = _load_object(line, "header")
        if "version" not in obj:
            msg = f"Missing `version` in header {line.strip()!r}"
            raise DecodeError(msg)
        version = obj["version"]
        if not _is_int(version) or version < 0:
            msg = f"Invalid `version` in header: {version!r}"
            raise DecodeError(msg)
        return cls(
            version=version,
            stop_signal=_unsigned(obj, "stop_signal", "header"),
            cont_signal=_unsigned(obj, "cont_signal", "header"),
            click_events=_optional(obj, "click_events", bool, "header"),
        )

    def with_click_events(self, enabled: bool = True) -> Self:
        """Return a copy with `click_events` forced to `enabled`."""
        return replace(self, click_events=enabled)

    def to_dict(self) -> dict[str, Any]:
        """Return the JSON fields, absent ones omitted."""
        return {f.name: getattr(self, f.name) for f in fields(self) if getattr(self, f.name) is not None}

    def encode(self) -> str:
        """Serialize as a single line of compact JSON (no trailing newline)."""
        return json.dumps(self.to_dict(), separators=_COMPACT)


@dataclass
class StatusBlock:  # pylint: disable=too-many-instance-attributes
    """One block of a status line."""

    full_text: str = ""
    short_text: str | None = None
    color: str | None = None
    min_width: int | None = None
    align: Alignment | None = None
    urgent: bool | None = None
    name: str | None = None
    instance: str | None = None
    separator: bool | None = None
    separator_block_width: int | None = None

    @classmethod
    def decode(cls, obj: dict[str, Any]) -> Self:
        """Build a block from a decoded JSON object.

        Raises:
            DecodeError: `full_text` is missing or a field has the wrong type
        """
        full_text = obj.get("full_text")
        if not isinstance(full_text, str):
            msg = f"Missing or invalid `full_text` in block: {full_text!r}"
            raise DecodeError(msg)
        align = obj.get("align")
        return cls(
            full_text=full_text,
            short_text=_optional(obj, "short_text", str, "block"),
            color=_optional(obj, "color", str, "block"),
            min_width=_unsigned(obj, "min_width", "block"),
            align=None if align is None else Alignment.decode(align),
            urgent=_optional(obj, "urgent", bool, "block"),
            name=_optional(obj, "name", str, "block"),
            instance=_optional(obj, "instance", str, "block"),
            separator=_optional(obj, "separator", bool, "block"),
            separator_block_width=_unsigned(obj, "separator_block_width", "block"),
        )

    @classmethod
    def from_json(cls, line: str) -> Self:
        """Parse a block from its JSON text."""
        return cls.decode(_load_object(line, "block"))

    def to_dict(self) -> dict[str, Any]:
        """Return every field in declaration order, absent ones as None."""
        data = {f.name: getattr(self, f.name) for f in fields(self)}
        if self.align is not None:
            data["align"] = self.align.encode()
        return data

    def encode(self) -> str:
        """Serialize as compact JSON, absent fields written as null."""
        return json.dumps(self.to_dict(), separators=_COMPACT)


def encode_status_line(blocks: list[StatusBlock]) -> str:
    """Encode a full status line: a JSON array of blocks."""
    return json.dumps([block.to_dict() for block in blocks], separators=_COMPACT)
