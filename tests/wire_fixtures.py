"""Hand-built protobuf payloads shared by the decoder tests."""

from __future__ import annotations

from typing import Iterable, Mapping, Optional, Sequence, Tuple

TensorSpec = Tuple[str, int, Optional[Sequence[int]]]


def varint(value: int) -> bytes:
    value &= (1 << 64) - 1
    out = bytearray()
    while True:
        byte = value & 0x7F
        value >>= 7
        if value:
            out.append(byte | 0x80)
        else:
            out.append(byte)
            return bytes(out)


def tag(field_number: int, wire_type: int) -> bytes:
    return varint((field_number << 3) | wire_type)


def varint_field(field_number: int, value: int) -> bytes:
    return tag(field_number, 0) + varint(value)


def bytes_field(field_number: int, payload: bytes) -> bytes:
    return tag(field_number, 2) + varint(len(payload)) + payload


def string_field(field_number: int, text: str) -> bytes:
    return bytes_field(field_number, text.encode("utf-8"))


def map_entry(key: str, value: bytes) -> bytes:
    return string_field(1, key) + bytes_field(2, value)


def shape(dims: Iterable[int] = (), *, unknown_rank: bool = False) -> bytes:
    out = b"".join(bytes_field(2, varint_field(1, dim)) for dim in dims)
    if unknown_rank:
        out += varint_field(3, 1)
    return out


def tensor_info(name: str, dtype: int, dims: Optional[Sequence[int]] = None) -> bytes:
    out = string_field(1, name) + varint_field(2, dtype)
    if dims is not None:
        out += bytes_field(3, shape(dims))
    return out


def signature_def(
    inputs: Mapping[str, TensorSpec], outputs: Mapping[str, TensorSpec]
) -> bytes:
    out = b"".join(
        bytes_field(1, map_entry(alias, tensor_info(*spec))) for alias, spec in inputs.items()
    )
    out += b"".join(
        bytes_field(2, map_entry(alias, tensor_info(*spec))) for alias, spec in outputs.items()
    )
    return out


def meta_graph(signatures: Mapping[str, bytes], *, tags: Sequence[str] = ()) -> bytes:
    out = b""
    if tags:
        out += bytes_field(1, b"".join(string_field(4, item) for item in tags))
    out += b"".join(bytes_field(5, map_entry(key, value)) for key, value in signatures.items())
    return out


def saved_model(*graphs: bytes) -> bytes:
    return varint_field(1, 1) + b"".join(bytes_field(2, graph) for graph in graphs)


def mnist_signature() -> bytes:
    return signature_def(
        {"input_1": ("input:0", 1, [1, 28, 28, 1])},
        {"output_1": ("output:0", 1, [1, 10])},
    )


def mnist_meta_graph(**kwargs) -> bytes:
    return meta_graph({"serving_default": mnist_signature()}, **kwargs)
