"""Read named signatures out of serialized TensorFlow graph metadata."""

from __future__ import annotations

import importlib
from typing import Any

__version__ = "0.1.0"

_EXPORTS = {
    "DecodeResult": "tfsig.decoding",
    "DecoderOptions": "tfsig.decoding",
    "Signature": "tfsig.decoding",
    "SignatureTable": "tfsig.decoding",
    "TensorInfo": "tfsig.decoding",
    "WireFormatError": "tfsig.decoding",
    "decode_signatures": "tfsig.decoding",
    "parse_signatures": "tfsig.decoding",
    "bind_inputs": "tfsig.binding",
    "output_tensor_names": "tfsig.binding",
    "dtype_name": "tfsig.dtypes",
    "load_signatures": "tfsig.loader",
}

__all__ = sorted(_EXPORTS)


def __getattr__(name: str) -> Any:
    if name in _EXPORTS:
        value = getattr(importlib.import_module(_EXPORTS[name]), name)
        globals()[name] = value
        return value
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


def __dir__() -> list[str]:
    return sorted(list(__all__) + list(globals().keys()))
