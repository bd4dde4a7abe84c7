"""Bounds-checked protobuf wire-format primitives.

Only the reading half of the wire format is implemented: a forward-only
cursor over an immutable buffer, tag decoding, per-wire-type skipping and a
table-driven walker that dispatches fields to handlers. No schema compiler or
reflection is involved; callers describe each message as a mapping from field
number to :class:`FieldSpec`.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from enum import Enum, IntEnum
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple, Type, Union

logger = logging.getLogger(__name__)

_MAX_VARINT_BYTES = 10
_UINT64_MASK = (1 << 64) - 1
_STRICT_ENV = "TFSIG_STRICT"

BytesLike = Union[bytes, bytearray, memoryview]


class WireType(IntEnum):
    VARINT = 0
    FIXED64 = 1
    LENGTH_DELIMITED = 2
    START_GROUP = 3
    END_GROUP = 4
    FIXED32 = 5


_FIXED_WIDTHS: Dict[int, int] = {WireType.FIXED64: 8, WireType.FIXED32: 4}


class FaultKind(str, Enum):
    TRUNCATED = "truncated"
    UNSUPPORTED_WIRE_TYPE = "unsupported_wire_type"
    MALFORMED = "malformed"


@dataclass(frozen=True)
class DecodeFault:
    """A single problem encountered while walking a buffer."""

    kind: FaultKind
    offset: int
    message: str

    def __str__(self) -> str:
        return f"{self.kind.value} at offset {self.offset}: {self.message}"


class WireFormatError(ValueError):
    """Base class for faults raised by strict decoding."""

    kind: FaultKind = FaultKind.MALFORMED

    def __init__(self, message: str, *, offset: int = 0) -> None:
        super().__init__(message)
        self.offset = offset

    @property
    def fault(self) -> DecodeFault:
        return DecodeFault(self.kind, self.offset, str(self))


class TruncatedMessageError(WireFormatError):
    """Raised when a read runs past the end of the current message."""

    kind = FaultKind.TRUNCATED


class UnsupportedWireTypeError(WireFormatError):
    """Raised for group encodings and reserved wire types."""

    kind = FaultKind.UNSUPPORTED_WIRE_TYPE


class MalformedMessageError(WireFormatError):
    """Raised for structurally invalid fields (bad tags, overlong varints)."""

    kind = FaultKind.MALFORMED


_ERROR_TYPES: Dict[FaultKind, Type[WireFormatError]] = {
    FaultKind.TRUNCATED: TruncatedMessageError,
    FaultKind.UNSUPPORTED_WIRE_TYPE: UnsupportedWireTypeError,
    FaultKind.MALFORMED: MalformedMessageError,
}


def error_for(fault: DecodeFault) -> WireFormatError:
    """Build the exception matching ``fault``."""

    return _ERROR_TYPES[fault.kind](fault.message, offset=fault.offset)


def _env_flag(value: Optional[str]) -> bool:
    if value is None:
        return False
    return value.lower() not in {"", "0", "false", "no"}


@dataclass(frozen=True)
class DecoderOptions:
    """Runtime configuration for a decode call.

    ``strict`` turns the first recorded fault into an exception. Lenient
    decoding (the default) records faults and keeps whatever was parsed.
    """

    strict: bool = False

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "DecoderOptions":
        env = os.environ if environ is None else environ
        return cls(strict=_env_flag(env.get(_STRICT_ENV)))

    def new_context(self) -> "DecodeContext":
        return DecodeContext(strict=self.strict)


@dataclass
class DecodeContext:
    """Per-call fault log shared by every cursor derived from one buffer."""

    strict: bool = False
    faults: List[DecodeFault] = field(default_factory=list)

    def report(self, kind: FaultKind, message: str, offset: int) -> None:
        fault = DecodeFault(kind, offset, message)
        if self.strict:
            raise error_for(fault)
        logger.debug("Recorded decode fault: %s", fault)
        self.faults.append(fault)


def decode_tag(tag: int) -> Tuple[int, int]:
    """Split a field tag into ``(field_number, wire_type)``."""

    return tag >> 3, tag & 0x7


def _as_view(data: BytesLike) -> memoryview:
    if isinstance(data, bytes):
        return memoryview(data)
    if isinstance(data, bytearray):
        return memoryview(bytes(data))
    if isinstance(data, memoryview):
        if data.readonly and data.format == "B" and data.ndim == 1:
            return data
        return memoryview(data.tobytes())
    raise TypeError(f"Expected a bytes-like buffer, got {type(data)!r}")


class ProtoCursor:
    """Forward-only reader over the region ``[start, end)`` of a buffer.

    The position never moves beyond ``end``. Short reads clamp the cursor to
    ``end`` and report a ``TRUNCATED`` fault through the shared context, so a
    scan over damaged input always terminates.
    """

    __slots__ = ("_data", "_pos", "_end", "_context")

    def __init__(
        self,
        data: BytesLike,
        start: int = 0,
        end: Optional[int] = None,
        *,
        context: Optional[DecodeContext] = None,
    ) -> None:
        view = _as_view(data)
        limit = len(view) if end is None else min(end, len(view))
        self._data = view
        self._pos = max(0, min(start, limit))
        self._end = limit
        self._context = context if context is not None else DecodeContext()

    @property
    def context(self) -> DecodeContext:
        return self._context

    @property
    def position(self) -> int:
        return self._pos

    @property
    def end(self) -> int:
        return self._end

    @property
    def remaining(self) -> int:
        return self._end - self._pos

    def at_end(self) -> bool:
        return self._pos >= self._end

    def tobytes(self) -> bytes:
        """Return the unread bytes without consuming them."""

        return self._data[self._pos : self._end].tobytes()

    def _truncate(self, message: str, offset: int) -> None:
        self._pos = self._end
        self._context.report(FaultKind.TRUNCATED, message, offset)

    def read_varint(self) -> int:
        start = self._pos
        value = 0
        shift = 0
        while self._pos < self._end:
            byte = self._data[self._pos]
            self._pos += 1
            if shift < 64:
                value |= (byte & 0x7F) << shift
            if not byte & 0x80:
                if self._pos - start > _MAX_VARINT_BYTES:
                    self._context.report(
                        FaultKind.MALFORMED,
                        f"varint spans {self._pos - start} bytes",
                        start,
                    )
                return value & _UINT64_MASK
            shift += 7
        self._context.report(FaultKind.TRUNCATED, "varint cut off by end of buffer", start)
        return value & _UINT64_MASK

    def read_tag(self) -> Tuple[int, int]:
        return decode_tag(self.read_varint())

    def _advance(self, count: int) -> bool:
        if count > self._end - self._pos:
            self._truncate(f"need {count} bytes, {self.remaining} available", self._pos)
            return False
        self._pos += count
        return True

    def read_bytes(self, count: int) -> bytes:
        start = self._pos
        if not self._advance(count):
            return b""
        return self._data[start : self._pos].tobytes()

    def read_string(self) -> bytes:
        return self.read_bytes(self.read_varint())

    def read_message(self) -> "ProtoCursor":
        """Consume a length-delimited payload and return a cursor over it."""

        length = self.read_varint()
        start = self._pos
        if not self._advance(length):
            return ProtoCursor(self._data, self._end, self._end, context=self._context)
        return ProtoCursor(self._data, start, self._pos, context=self._context)

    def read_fixed(self, wire_type: int) -> int:
        raw = self.read_bytes(_FIXED_WIDTHS[wire_type])
        return int.from_bytes(raw, "little") if raw else 0

    def read_text(self) -> str:
        """Decode the remaining bytes as UTF-8 and consume them."""

        start = self._pos
        raw = self.read_bytes(self.remaining)
        try:
            return raw.decode("utf-8")
        except UnicodeDecodeError:
            self._context.report(FaultKind.MALFORMED, "string is not valid UTF-8", start)
            return raw.decode("utf-8", errors="replace")

    def skip(self, wire_type: int) -> None:
        if wire_type == WireType.VARINT:
            self.read_varint()
        elif wire_type == WireType.LENGTH_DELIMITED:
            self._advance(self.read_varint())
        elif wire_type in _FIXED_WIDTHS:
            self._advance(_FIXED_WIDTHS[wire_type])
        else:
            offset = self._pos
            # Group payloads cannot be measured without their schema.
            self._pos = self._end
            self._context.report(
                FaultKind.UNSUPPORTED_WIRE_TYPE,
                f"cannot skip wire type {wire_type}",
                offset,
            )

    def read_payload(self, wire_type: int) -> Any:
        if wire_type == WireType.VARINT:
            return self.read_varint()
        if wire_type == WireType.LENGTH_DELIMITED:
            return self.read_message()
        return self.read_fixed(wire_type)


Handler = Callable[[Any, Any], None]


@dataclass(frozen=True)
class FieldSpec:
    """How one field of a message is read and where its value goes."""

    name: str
    wire_type: WireType
    handler: Handler


MessageSchema = Mapping[int, FieldSpec]


def walk_message(
    cursor: ProtoCursor, schema: MessageSchema, state: Any, *, message: str = "message"
) -> Any:
    """Dispatch every field in ``cursor`` through ``schema`` into ``state``.

    Unknown fields are skipped by wire type. Every iteration consumes at least
    the tag byte, and unsupported wire types end the scan of this message.
    """

    context = cursor.context
    while not cursor.at_end():
        offset = cursor.position
        field_number, wire_type = cursor.read_tag()
        if field_number == 0:
            context.report(FaultKind.MALFORMED, f"{message}: field number 0", offset)
            cursor.skip(wire_type)
            continue
        spec = schema.get(field_number)
        if spec is None:
            logger.debug("%s: skipping field %d (wire type %d)", message, field_number, wire_type)
            cursor.skip(wire_type)
            continue
        if wire_type != spec.wire_type:
            context.report(
                FaultKind.MALFORMED,
                f"{message}.{spec.name}: expected wire type"
                f" {int(spec.wire_type)}, got {wire_type}",
                offset,
            )
            cursor.skip(wire_type)
            continue
        spec.handler(state, cursor.read_payload(wire_type))
    return state


def as_int64(value: int) -> int:
    """Reinterpret an unsigned varint as a two's-complement ``int64``."""

    value &= _UINT64_MASK
    return value - (1 << 64) if value >= 1 << 63 else value


def as_int32(value: int) -> int:
    """Reinterpret the low 32 bits of ``value`` as a signed ``int32``."""

    value &= 0xFFFFFFFF
    return value - (1 << 32) if value >= 1 << 31 else value


__all__ = [
    "BytesLike",
    "DecodeContext",
    "DecodeFault",
    "DecoderOptions",
    "FaultKind",
    "FieldSpec",
    "MalformedMessageError",
    "MessageSchema",
    "ProtoCursor",
    "TruncatedMessageError",
    "UnsupportedWireTypeError",
    "WireFormatError",
    "WireType",
    "as_int32",
    "as_int64",
    "decode_tag",
    "error_for",
    "walk_message",
]
