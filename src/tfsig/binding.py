"""Bind alias-keyed feeds and fetches to the tensor names a graph expects."""

from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence

import numpy as np

from .decoding.records import Signature, TensorInfo
from .dtypes import dtype_name, numpy_dtype

logger = logging.getLogger(__name__)


class BindingError(ValueError):
    """Raised when a feed does not match the signature it is bound against."""


def _check_shape(alias: str, info: TensorInfo, shape: Sequence[int]) -> None:
    # Nothing recorded, or rank explicitly unknown: any shape is accepted.
    if info.unknown_rank or not info.shape:
        return
    if len(shape) != len(info.shape):
        raise BindingError(
            f"Input {alias!r} expects rank {len(info.shape)} {list(info.shape)}, "
            f"got shape {list(shape)}"
        )
    for axis, (expected, actual) in enumerate(zip(info.shape, shape)):
        if expected >= 0 and expected != actual:
            raise BindingError(
                f"Input {alias!r} dimension {axis} must be {expected}, got {actual} "
                f"(expected {list(info.shape)}, got {list(shape)})"
            )


def _check_dtype(alias: str, info: TensorInfo, dtype: np.dtype) -> None:
    expected = numpy_dtype(info.dtype)
    if expected is None:
        return
    if dtype != expected:
        raise BindingError(
            f"Input {alias!r} expects {dtype_name(info.dtype)} ({expected}), got {dtype}"
        )


def bind_inputs(
    signature: Signature,
    feed: Mapping[str, Any],
    *,
    check_dtype: bool = True,
    allow_missing: bool = False,
) -> Dict[str, np.ndarray]:
    """Translate ``{alias: value}`` into ``{tensor_name: ndarray}``.

    Each value is converted with :func:`numpy.asarray` and checked against the
    alias's recorded shape (``-1`` matches any size) and, when the dtype code
    has a NumPy equivalent, its dtype.
    """

    bound: Dict[str, np.ndarray] = {}
    for alias, value in feed.items():
        info = signature.input(alias)
        array = np.asarray(value)
        _check_shape(alias, info, array.shape)
        if check_dtype:
            _check_dtype(alias, info, array.dtype)
        bound[info.name] = array

    if not allow_missing:
        missing = sorted(set(signature.inputs) - set(feed))
        if missing:
            raise BindingError(
                f"Signature {signature.key!r} is missing inputs: {', '.join(missing)}"
            )
    logger.debug("Bound %d input(s) for signature %r", len(bound), signature.key)
    return bound


def output_tensor_names(
    signature: Signature, aliases: Optional[Iterable[str]] = None
) -> List[str]:
    """Return the tensor names to fetch, ordered like ``aliases``.

    Without ``aliases`` every output is returned, ordered by alias.
    """

    if aliases is None:
        aliases = sorted(signature.outputs)
    return [signature.output(alias).name for alias in aliases]


__all__ = ["BindingError", "bind_inputs", "output_tensor_names"]
