"""Extract signature definitions from serialized graph metadata.

The walk mirrors the message nesting of a ``MetaGraphDef``::

    MetaGraphDef.signature_def (5)   map<string, SignatureDef>
      SignatureDef.inputs (1)        map<string, TensorInfo>
      SignatureDef.outputs (2)       map<string, TensorInfo>
        TensorInfo.name (1), .dtype (2), .tensor_shape (3)
          TensorShapeProto.dim (2) -> Dim.size (1), .unknown_rank (3)

Each message is described by a field table and decoded with
:func:`~tfsig.decoding.wire.walk_message`. Map fields arrive as one
length-delimited entry per key, so every decoder below handles a single entry
and accumulates into the caller's mapping.
"""

from __future__ import annotations

import dataclasses
import logging
from dataclasses import dataclass, field
from typing import (
    Callable,
    Dict,
    Iterable,
    List,
    MutableMapping,
    Optional,
    Tuple,
    TypeVar,
    Union,
)

from .records import (
    DecodeResult,
    MetaGraph,
    MetaGraphNotFoundError,
    Signature,
    SignatureTable,
    TensorInfo,
    TensorShape,
)
from .wire import (
    BytesLike,
    DecodeContext,
    DecoderOptions,
    FieldSpec,
    MessageSchema,
    ProtoCursor,
    WireType,
    as_int32,
    as_int64,
    walk_message,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")
Blob = Union[BytesLike, ProtoCursor]
ValueDecoder = Callable[[ProtoCursor], T]

DEFAULT_TAGS: Tuple[str, ...] = ("serve",)


def _cursor(blob: Blob, context: Optional[DecodeContext] = None) -> ProtoCursor:
    if isinstance(blob, ProtoCursor):
        return blob
    return ProtoCursor(blob, context=context)


# ---------------------------------------------------------------------------
# TensorShapeProto
# ---------------------------------------------------------------------------


@dataclass
class _DimBuilder:
    size: int = 0


@dataclass
class _ShapeBuilder:
    dims: List[int] = field(default_factory=list)
    unknown_rank: bool = False


def _set_dim_size(state: _DimBuilder, value: int) -> None:
    state.size = as_int64(value)


_DIM_FIELDS: MessageSchema = {
    1: FieldSpec("size", WireType.VARINT, _set_dim_size),
}


def _append_dim(state: _ShapeBuilder, payload: ProtoCursor) -> None:
    dim = walk_message(payload, _DIM_FIELDS, _DimBuilder(), message="Dim")
    state.dims.append(dim.size)


def _set_unknown_rank(state: _ShapeBuilder, value: int) -> None:
    state.unknown_rank = bool(value)


_SHAPE_FIELDS: MessageSchema = {
    2: FieldSpec("dim", WireType.LENGTH_DELIMITED, _append_dim),
    3: FieldSpec("unknown_rank", WireType.VARINT, _set_unknown_rank),
}


def decode_tensor_shape(blob: Blob, context: Optional[DecodeContext] = None) -> TensorShape:
    """Decode a ``TensorShapeProto`` keeping the unknown-rank flag."""

    state = walk_message(
        _cursor(blob, context), _SHAPE_FIELDS, _ShapeBuilder(), message="TensorShapeProto"
    )
    return TensorShape(dims=tuple(state.dims), unknown_rank=state.unknown_rank)


def decode_shape(blob: Blob, context: Optional[DecodeContext] = None) -> Tuple[int, ...]:
    """Decode a ``TensorShapeProto`` into its ordered dimension sizes.

    An unknown-rank shape yields an empty tuple, the same as a shape with no
    dimensions; use :func:`decode_tensor_shape` to tell them apart.
    """

    return decode_tensor_shape(blob, context).dims


# ---------------------------------------------------------------------------
# TensorInfo
# ---------------------------------------------------------------------------


@dataclass
class _TensorInfoBuilder:
    name: str = ""
    dtype: int = 0
    shape: TensorShape = TensorShape()


def _set_name(state: _TensorInfoBuilder, payload: ProtoCursor) -> None:
    state.name = payload.read_text()


def _set_dtype(state: _TensorInfoBuilder, value: int) -> None:
    state.dtype = as_int32(value)


def _set_shape(state: _TensorInfoBuilder, payload: ProtoCursor) -> None:
    state.shape = decode_tensor_shape(payload)


_TENSOR_INFO_FIELDS: MessageSchema = {
    1: FieldSpec("name", WireType.LENGTH_DELIMITED, _set_name),
    2: FieldSpec("dtype", WireType.VARINT, _set_dtype),
    3: FieldSpec("tensor_shape", WireType.LENGTH_DELIMITED, _set_shape),
}


def decode_tensor_info(blob: Blob, context: Optional[DecodeContext] = None) -> TensorInfo:
    state = walk_message(
        _cursor(blob, context), _TENSOR_INFO_FIELDS, _TensorInfoBuilder(), message="TensorInfo"
    )
    return TensorInfo(
        name=state.name,
        dtype=state.dtype,
        shape=state.shape.dims,
        unknown_rank=state.shape.unknown_rank,
    )


# ---------------------------------------------------------------------------
# Map entries
# ---------------------------------------------------------------------------


@dataclass
class _MapEntryBuilder:
    key: str = ""
    value: Optional[ProtoCursor] = None


def _set_entry_key(state: _MapEntryBuilder, payload: ProtoCursor) -> None:
    state.key = payload.read_text()


def _set_entry_value(state: _MapEntryBuilder, payload: ProtoCursor) -> None:
    state.value = payload


_MAP_ENTRY_FIELDS: MessageSchema = {
    1: FieldSpec("key", WireType.LENGTH_DELIMITED, _set_entry_key),
    2: FieldSpec("value", WireType.LENGTH_DELIMITED, _set_entry_value),
}


def decode_map_entry(
    blob: Blob,
    value_decoder: ValueDecoder[T],
    target: MutableMapping[str, T],
    context: Optional[DecodeContext] = None,
) -> bool:
    """Decode one ``{1: key, 2: value}`` map entry into ``target``.

    Entries with an empty key or empty value bytes are dropped. Returns
    ``True`` when an entry was inserted (replacing any previous value).
    """

    entry = walk_message(
        _cursor(blob, context), _MAP_ENTRY_FIELDS, _MapEntryBuilder(), message="MapEntry"
    )
    if not entry.key or entry.value is None or entry.value.at_end():
        logger.debug(
            "Dropping map entry with key=%r (value present=%s)",
            entry.key,
            entry.value is not None,
        )
        return False
    target[entry.key] = value_decoder(entry.value)
    return True


# ---------------------------------------------------------------------------
# SignatureDef
# ---------------------------------------------------------------------------


@dataclass
class _SignatureBuilder:
    inputs: Dict[str, TensorInfo] = field(default_factory=dict)
    outputs: Dict[str, TensorInfo] = field(default_factory=dict)


def _add_input(state: _SignatureBuilder, payload: ProtoCursor) -> None:
    decode_map_entry(payload, decode_tensor_info, state.inputs)


def _add_output(state: _SignatureBuilder, payload: ProtoCursor) -> None:
    decode_map_entry(payload, decode_tensor_info, state.outputs)


_SIGNATURE_DEF_FIELDS: MessageSchema = {
    1: FieldSpec("inputs", WireType.LENGTH_DELIMITED, _add_input),
    2: FieldSpec("outputs", WireType.LENGTH_DELIMITED, _add_output),
}


def decode_signature_def(blob: Blob, context: Optional[DecodeContext] = None) -> Signature:
    """Decode a ``SignatureDef``; the returned signature has an empty key."""

    state = walk_message(
        _cursor(blob, context), _SIGNATURE_DEF_FIELDS, _SignatureBuilder(), message="SignatureDef"
    )
    return Signature(inputs=state.inputs, outputs=state.outputs)


# ---------------------------------------------------------------------------
# MetaGraphDef
# ---------------------------------------------------------------------------


def _add_signature(table: Dict[str, Signature], payload: ProtoCursor) -> None:
    decoded: Dict[str, ProtoCursor] = {}
    if decode_map_entry(payload, lambda value: value, decoded):
        ((key, value),) = decoded.items()
        table[key] = dataclasses.replace(decode_signature_def(value), key=key)


_META_GRAPH_FIELDS: MessageSchema = {
    5: FieldSpec("signature_def", WireType.LENGTH_DELIMITED, _add_signature),
}


def decode_signatures(
    blob: BytesLike, options: Optional[DecoderOptions] = None
) -> DecodeResult[SignatureTable]:
    """Decode every signature in a serialized ``MetaGraphDef``.

    A buffer without any ``signature_def`` entries yields an empty table. In
    lenient mode faults are collected on the result; in strict mode the first
    fault is raised as a :class:`~tfsig.decoding.wire.WireFormatError`.
    """

    context = (options or DecoderOptions()).new_context()
    table = walk_message(
        ProtoCursor(blob, context=context), _META_GRAPH_FIELDS, {}, message="MetaGraphDef"
    )
    logger.debug("Decoded %d signature(s) with %d fault(s)", len(table), len(context.faults))
    return DecodeResult(SignatureTable(table), tuple(context.faults))


def parse_signatures(blob: BytesLike, *, strict: bool = False) -> SignatureTable:
    """Convenience wrapper returning only the signature table."""

    return decode_signatures(blob, DecoderOptions(strict=strict)).value


# ---------------------------------------------------------------------------
# SavedModel container
# ---------------------------------------------------------------------------


def _add_tag(tags: List[str], payload: ProtoCursor) -> None:
    tags.append(payload.read_text())


_META_INFO_FIELDS: MessageSchema = {
    4: FieldSpec("tags", WireType.LENGTH_DELIMITED, _add_tag),
}


def _read_meta_info(tags: List[str], payload: ProtoCursor) -> None:
    walk_message(payload, _META_INFO_FIELDS, tags, message="MetaInfoDef")


_META_GRAPH_HEADER_FIELDS: MessageSchema = {
    1: FieldSpec("meta_info_def", WireType.LENGTH_DELIMITED, _read_meta_info),
}


def _add_meta_graph(graphs: List[MetaGraph], payload: ProtoCursor) -> None:
    raw = payload.tobytes()
    tags = walk_message(payload, _META_GRAPH_HEADER_FIELDS, [], message="MetaGraphDef")
    graphs.append(MetaGraph(tags=tuple(tags), payload=raw))


_SAVED_MODEL_FIELDS: MessageSchema = {
    2: FieldSpec("meta_graphs", WireType.LENGTH_DELIMITED, _add_meta_graph),
}


def iter_meta_graphs(
    blob: BytesLike, options: Optional[DecoderOptions] = None
) -> DecodeResult[Tuple[MetaGraph, ...]]:
    """List the meta graphs stored in a serialized ``SavedModel``."""

    context = (options or DecoderOptions()).new_context()
    graphs = walk_message(
        ProtoCursor(blob, context=context), _SAVED_MODEL_FIELDS, [], message="SavedModel"
    )
    return DecodeResult(tuple(graphs), tuple(context.faults))


def select_meta_graph(
    blob: BytesLike,
    tags: Iterable[str] = DEFAULT_TAGS,
    options: Optional[DecoderOptions] = None,
) -> DecodeResult[MetaGraph]:
    """Return the first meta graph whose tag set contains every tag in ``tags``."""

    wanted = set(tags)
    found = iter_meta_graphs(blob, options)
    for graph in found.value:
        if wanted.issubset(graph.tags):
            return DecodeResult(graph, found.faults)
    available = [list(graph.tags) for graph in found.value]
    raise MetaGraphNotFoundError(
        f"No meta graph tagged {sorted(wanted)!r}; available tag sets: {available!r}"
    )


__all__ = [
    "DEFAULT_TAGS",
    "decode_map_entry",
    "decode_shape",
    "decode_signature_def",
    "decode_signatures",
    "decode_tensor_info",
    "decode_tensor_shape",
    "iter_meta_graphs",
    "parse_signatures",
    "select_meta_graph",
]
