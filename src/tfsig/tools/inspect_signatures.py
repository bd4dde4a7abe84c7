"""Print the signatures stored in a SavedModel or serialized meta graph.

Example
-------
python -m tfsig.tools.inspect_signatures path/to/saved_model --format json
"""

from __future__ import annotations

import argparse
import json
import logging
import os
import sys
from pathlib import Path
from typing import Iterable, List, Mapping, Optional, Sequence

from ..decoding.records import (
    MetaGraphNotFoundError,
    SignatureNotFoundError,
    SignatureTable,
    TensorInfo,
)
from ..decoding.wire import DecoderOptions, WireFormatError
from ..dtypes import dtype_name
from ..loader import load_signatures

_VERBOSE_ENV = "TFSIG_VERBOSE"
_PROG = "inspect_signatures"


def _format_shape(info: TensorInfo) -> str:
    if info.unknown_rank:
        return "<unknown rank>"
    return "[" + ", ".join(str(dim) for dim in info.shape) + "]"


def _format_section(title: str, tensors: Mapping[str, TensorInfo]) -> List[str]:
    lines = [f"  {title}:"]
    for alias in sorted(tensors):
        info = tensors[alias]
        lines.append(f'    Key: "{alias}"')
        lines.append(f"      Tensor: {info.name}")
        lines.append(f"      DType:  {dtype_name(info.dtype)}")
        lines.append(f"      Shape:  {_format_shape(info)}")
    return lines


def format_signatures(table: SignatureTable) -> str:
    """Render ``table`` as the indented human-readable report."""

    lines: List[str] = []
    for key in sorted(table):
        signature = table[key]
        lines.append(f"Signature: {key}")
        lines.extend(_format_section("Inputs", signature.inputs))
        lines.extend(_format_section("Outputs", signature.outputs))
    return "\n".join(lines)


def render_signatures(table: SignatureTable, *, format: str = "table") -> str:
    """Serialise ``table`` as ``"table"`` text or ``"json"`` (case-insensitive)."""

    normalized = format.lower()
    if normalized == "table":
        return format_signatures(table)
    if normalized == "json":
        return json.dumps(table.to_dict(), indent=2, sort_keys=True)
    raise ValueError(f"Unsupported output format: {format}")


def _parse_args(argv: Optional[Sequence[str]]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog=_PROG,
        description="List the signatures of a SavedModel or serialized MetaGraphDef",
    )
    parser.add_argument(
        "path",
        type=Path,
        help="SavedModel directory, saved_model.pb file or serialized MetaGraphDef",
    )
    parser.add_argument(
        "--tag",
        dest="tags",
        action="append",
        default=None,
        help="Meta graph tag to select (can be repeated, default: serve)",
    )
    parser.add_argument(
        "--kind",
        choices=("auto", "saved_model", "meta_graph"),
        default="auto",
        help="How to interpret the file (default: guess from the file name)",
    )
    parser.add_argument(
        "--format",
        choices=("table", "json"),
        default="table",
        help="Output format",
    )
    parser.add_argument(
        "--signature",
        default=None,
        help="Only print the signature with this key",
    )
    parser.add_argument(
        "--strict",
        action="store_true",
        default=None,
        help="Fail on the first malformed or truncated field (also TFSIG_STRICT=1)",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        default=None,
        help="Enable informational logging (also TFSIG_VERBOSE=1)",
    )
    args = parser.parse_args([] if argv is None else list(argv))

    args.path = args.path.expanduser()
    if args.tags is None:
        args.tags = ["serve"]
    if args.verbose is None:
        env_value = os.environ.get(_VERBOSE_ENV)
        if env_value is None:
            args.verbose = False
        else:
            args.verbose = env_value.lower() not in {"", "0", "false", "no"}
    options = DecoderOptions.from_env()
    if args.strict:
        options = DecoderOptions(strict=True)
    args.options = options
    return args


def _report_faults(faults: Iterable[object]) -> None:
    for fault in faults:
        print(f"{_PROG}: warning: {fault}", file=sys.stderr)


def main(argv: Optional[Iterable[str]] = None) -> int:
    args = _parse_args(list(argv) if argv is not None else sys.argv[1:])
    if args.verbose and not logging.getLogger().handlers:
        logging.basicConfig(level=logging.INFO)

    try:
        result = load_signatures(
            args.path, tags=args.tags, kind=args.kind, options=args.options
        )
        table = result.value
        if args.signature is not None:
            table = SignatureTable({args.signature: table.require(args.signature)})
    except (
        FileNotFoundError,
        MetaGraphNotFoundError,
        SignatureNotFoundError,
        WireFormatError,
    ) as exc:
        print(f"{_PROG}: {exc}", file=sys.stderr)
        return 1

    _report_faults(result.faults)
    print(render_signatures(table, format=args.format))
    return 0


if __name__ == "__main__":  # pragma: no cover - CLI entry point
    sys.exit(main())
