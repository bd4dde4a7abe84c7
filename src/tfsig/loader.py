"""Read signature tables from files on disk.

This is the only module that touches the file system; the decoders themselves
work on in-memory buffers.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable, Optional, Tuple, Union

from .decoding.records import DecodeResult, SignatureTable
from .decoding.signatures import DEFAULT_TAGS, decode_signatures, select_meta_graph
from .decoding.wire import DecodeFault, DecoderOptions

logger = logging.getLogger(__name__)

SAVED_MODEL_FILENAME = "saved_model.pb"
_KINDS = ("auto", "saved_model", "meta_graph")


def resolve_model_path(path: Union[str, Path]) -> Path:
    """Map a SavedModel directory to its ``saved_model.pb``."""

    resolved = Path(path).expanduser()
    if resolved.is_dir():
        resolved = resolved / SAVED_MODEL_FILENAME
    if not resolved.is_file():
        raise FileNotFoundError(f"No graph metadata found at {resolved}")
    return resolved


def load_signatures(
    path: Union[str, Path],
    *,
    tags: Iterable[str] = DEFAULT_TAGS,
    kind: str = "auto",
    options: Optional[DecoderOptions] = None,
) -> DecodeResult[SignatureTable]:
    """Decode the signatures stored at ``path``.

    ``path`` may be a SavedModel directory, a ``saved_model.pb`` file or a raw
    serialized ``MetaGraphDef``. With ``kind="auto"`` files named
    ``saved_model.pb`` are treated as SavedModel containers and anything else
    as a bare meta graph. For containers the first meta graph carrying every
    tag in ``tags`` is used.
    """

    if kind not in _KINDS:
        raise ValueError(f"Unsupported metadata kind: {kind}")
    resolved = resolve_model_path(path)
    blob = resolved.read_bytes()
    if kind == "auto":
        kind = "saved_model" if resolved.name == SAVED_MODEL_FILENAME else "meta_graph"

    container_faults: Tuple[DecodeFault, ...] = ()
    if kind == "saved_model":
        selected = select_meta_graph(blob, tags, options)
        logger.info(
            "Selected meta graph with tags %s from %s", list(selected.value.tags), resolved
        )
        container_faults = selected.faults
        blob = selected.value.payload

    result = decode_signatures(blob, options)
    logger.info("Loaded %d signature(s) from %s", len(result.value), resolved)
    return DecodeResult(result.value, container_faults + result.faults)


__all__ = ["SAVED_MODEL_FILENAME", "load_signatures", "resolve_model_path"]
