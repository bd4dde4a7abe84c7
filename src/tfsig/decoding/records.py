"""Immutable records produced by the signature decoders."""

from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Dict, Generic, Iterator, Mapping, Optional, Tuple, TypeVar

from .wire import DecodeFault, error_for

T = TypeVar("T")


class SignatureNotFoundError(KeyError):
    """Raised when a signature key is not present in a table."""

    def __str__(self) -> str:
        return str(self.args[0]) if self.args else ""


class AliasNotFoundError(KeyError):
    """Raised when an input or output alias is not part of a signature."""

    def __str__(self) -> str:
        return str(self.args[0]) if self.args else ""


class MetaGraphNotFoundError(KeyError):
    """Raised when no meta graph in a SavedModel carries the requested tags."""

    def __str__(self) -> str:
        return str(self.args[0]) if self.args else ""


def split_tensor_name(name: str) -> Tuple[str, int]:
    """Split ``"op:1"`` into ``("op", 1)``; a bare name refers to output 0."""

    op_name, sep, index = name.partition(":")
    if not sep:
        return name, 0
    try:
        return op_name, int(index)
    except ValueError as exc:
        raise ValueError(f"Invalid output index in tensor name {name!r}") from exc


@dataclass(frozen=True)
class TensorShape:
    dims: Tuple[int, ...] = ()
    unknown_rank: bool = False

    @property
    def rank(self) -> Optional[int]:
        return None if self.unknown_rank else len(self.dims)


@dataclass(frozen=True)
class TensorInfo:
    """Descriptor of one tensor exposed through a signature.

    ``dtype`` is the opaque numeric type code exactly as serialized; see
    :mod:`tfsig.dtypes` for a name lookup. An empty ``shape`` means either a
    scalar or an unknown rank; ``unknown_rank`` tells the two apart when the
    serialized shape said so explicitly.
    """

    name: str = ""
    dtype: int = 0
    shape: Tuple[int, ...] = ()
    unknown_rank: bool = False

    @property
    def op_name(self) -> str:
        return split_tensor_name(self.name)[0]

    @property
    def output_index(self) -> int:
        return split_tensor_name(self.name)[1]

    def to_dict(self) -> Dict[str, object]:
        return {
            "name": self.name,
            "dtype": self.dtype,
            "shape": list(self.shape),
            "unknown_rank": self.unknown_rank,
        }


@dataclass(frozen=True)
class Signature:
    """A named entry point with alias-keyed inputs and outputs."""

    key: str = ""
    inputs: Mapping[str, TensorInfo] = field(default_factory=dict)
    outputs: Mapping[str, TensorInfo] = field(default_factory=dict)

    def __post_init__(self) -> None:
        # Freeze whatever mapping the caller handed in.
        object.__setattr__(self, "inputs", MappingProxyType(dict(self.inputs)))
        object.__setattr__(self, "outputs", MappingProxyType(dict(self.outputs)))

    def has_input(self, alias: str) -> bool:
        return alias in self.inputs

    def has_output(self, alias: str) -> bool:
        return alias in self.outputs

    def input(self, alias: str) -> TensorInfo:
        try:
            return self.inputs[alias]
        except KeyError:
            raise AliasNotFoundError(
                f"Signature {self.key!r} has no input alias {alias!r}"
            ) from None

    def output(self, alias: str) -> TensorInfo:
        try:
            return self.outputs[alias]
        except KeyError:
            raise AliasNotFoundError(
                f"Signature {self.key!r} has no output alias {alias!r}"
            ) from None

    def to_dict(self) -> Dict[str, object]:
        return {
            "key": self.key,
            "inputs": {alias: info.to_dict() for alias, info in sorted(self.inputs.items())},
            "outputs": {alias: info.to_dict() for alias, info in sorted(self.outputs.items())},
        }


class SignatureTable(Mapping[str, Signature]):
    """Read-only mapping from signature key to :class:`Signature`."""

    def __init__(self, signatures: Optional[Mapping[str, Signature]] = None) -> None:
        self._signatures: Dict[str, Signature] = dict(signatures or {})

    def __getitem__(self, key: str) -> Signature:
        try:
            return self._signatures[key]
        except KeyError:
            raise SignatureNotFoundError(f"Signature {key!r} not found") from None

    def __iter__(self) -> Iterator[str]:
        return iter(self._signatures)

    def __len__(self) -> int:
        return len(self._signatures)

    def __repr__(self) -> str:
        return f"SignatureTable({sorted(self._signatures)!r})"

    def has_signature(self, key: str) -> bool:
        return key in self._signatures

    def require(self, key: str) -> Signature:
        return self[key]

    def to_dict(self) -> Dict[str, object]:
        return {key: self._signatures[key].to_dict() for key in sorted(self._signatures)}


@dataclass(frozen=True)
class MetaGraph:
    """One meta graph of a SavedModel: its tag set and serialized bytes."""

    tags: Tuple[str, ...]
    payload: bytes


@dataclass(frozen=True)
class DecodeResult(Generic[T]):
    """A decoded value together with every fault recorded while decoding it."""

    value: T
    faults: Tuple[DecodeFault, ...] = ()

    @property
    def ok(self) -> bool:
        return not self.faults

    def raise_for_faults(self) -> T:
        if self.faults:
            raise error_for(self.faults[0])
        return self.value


__all__ = [
    "AliasNotFoundError",
    "DecodeResult",
    "MetaGraph",
    "MetaGraphNotFoundError",
    "Signature",
    "SignatureNotFoundError",
    "SignatureTable",
    "TensorInfo",
    "TensorShape",
    "split_tensor_name",
]
