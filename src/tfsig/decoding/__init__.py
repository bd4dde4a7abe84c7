"""Schema-free decoding of signature metadata from serialized graphs."""

from __future__ import annotations

from .records import (
    AliasNotFoundError,
    DecodeResult,
    MetaGraph,
    MetaGraphNotFoundError,
    Signature,
    SignatureNotFoundError,
    SignatureTable,
    TensorInfo,
    TensorShape,
    split_tensor_name,
)
from .signatures import (
    DEFAULT_TAGS,
    decode_map_entry,
    decode_shape,
    decode_signature_def,
    decode_signatures,
    decode_tensor_info,
    decode_tensor_shape,
    iter_meta_graphs,
    parse_signatures,
    select_meta_graph,
)
from .wire import (
    DecodeContext,
    DecodeFault,
    DecoderOptions,
    FaultKind,
    MalformedMessageError,
    ProtoCursor,
    TruncatedMessageError,
    UnsupportedWireTypeError,
    WireFormatError,
    WireType,
    decode_tag,
)

__all__ = [
    "AliasNotFoundError",
    "DEFAULT_TAGS",
    "DecodeContext",
    "DecodeFault",
    "DecodeResult",
    "DecoderOptions",
    "FaultKind",
    "MalformedMessageError",
    "MetaGraph",
    "MetaGraphNotFoundError",
    "ProtoCursor",
    "Signature",
    "SignatureNotFoundError",
    "SignatureTable",
    "TensorInfo",
    "TensorShape",
    "TruncatedMessageError",
    "UnsupportedWireTypeError",
    "WireFormatError",
    "WireType",
    "decode_map_entry",
    "decode_shape",
    "decode_signature_def",
    "decode_signatures",
    "decode_tag",
    "decode_tensor_info",
    "decode_tensor_shape",
    "iter_meta_graphs",
    "parse_signatures",
    "select_meta_graph",
    "split_tensor_name",
]
