"""Lookup tables for TensorFlow ``DataType`` codes.

The decoder keeps dtype codes as plain integers. These tables translate them
for display and for validating NumPy feeds.
"""

from __future__ import annotations

from typing import Dict, Optional

import numpy as np

REF_OFFSET = 100

DTYPE_NAMES: Dict[int, str] = {
    0: "DT_INVALID",
    1: "DT_FLOAT",
    2: "DT_DOUBLE",
    3: "DT_INT32",
    4: "DT_UINT8",
    5: "DT_INT16",
    6: "DT_INT8",
    7: "DT_STRING",
    8: "DT_COMPLEX64",
    9: "DT_INT64",
    10: "DT_BOOL",
    11: "DT_QINT8",
    12: "DT_QUINT8",
    13: "DT_QINT32",
    14: "DT_BFLOAT16",
    15: "DT_QINT16",
    16: "DT_QUINT16",
    17: "DT_UINT16",
    18: "DT_COMPLEX128",
    19: "DT_HALF",
    20: "DT_RESOURCE",
    21: "DT_VARIANT",
    22: "DT_UINT32",
    23: "DT_UINT64",
}

# Codes without a NumPy equivalent (strings, quantized, bfloat16, handles)
# are deliberately absent.
NUMPY_DTYPES: Dict[int, str] = {
    1: "float32",
    2: "float64",
    3: "int32",
    4: "uint8",
    5: "int16",
    6: "int8",
    8: "complex64",
    9: "int64",
    10: "bool",
    17: "uint16",
    18: "complex128",
    19: "float16",
    22: "uint32",
    23: "uint64",
}


def base_dtype(code: int) -> int:
    """Strip the reference-type offset from ``code``."""

    return code - REF_OFFSET if code > REF_OFFSET else code


def dtype_name(code: int) -> str:
    base = base_dtype(code)
    name = DTYPE_NAMES.get(base)
    if name is None:
        return f"code{code}"
    return f"{name}_REF" if base != code else name


def numpy_dtype(code: int) -> Optional[np.dtype]:
    """Return the NumPy dtype for ``code`` or ``None`` when there is none."""

    name = NUMPY_DTYPES.get(base_dtype(code))
    return np.dtype(name) if name is not None else None


__all__ = [
    "DTYPE_NAMES",
    "NUMPY_DTYPES",
    "REF_OFFSET",
    "base_dtype",
    "dtype_name",
    "numpy_dtype",
]
