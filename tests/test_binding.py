from __future__ import annotations

import numpy as np
import pytest

from tests import wire_fixtures as wf
from tfsig.binding import BindingError, bind_inputs, output_tensor_names
from tfsig.decoding import AliasNotFoundError, Signature, TensorInfo, parse_signatures
from tfsig.dtypes import base_dtype, dtype_name, numpy_dtype


@pytest.fixture()
def mnist() -> Signature:
    return parse_signatures(wf.mnist_meta_graph())["serving_default"]


def test_bind_inputs_maps_aliases_to_tensor_names(mnist: Signature) -> None:
    image = np.zeros((1, 28, 28, 1), dtype=np.float32)

    bound = bind_inputs(mnist, {"input_1": image})

    assert list(bound) == ["input:0"]
    assert bound["input:0"] is image


def test_bind_inputs_converts_nested_lists() -> None:
    signature = Signature(
        key="vec", inputs={"x": TensorInfo(name="x:0", dtype=9, shape=(-1, 2))}
    )

    bound = bind_inputs(signature, {"x": [[1, 2], [3, 4], [5, 6]]})

    np.testing.assert_array_equal(bound["x:0"], np.array([[1, 2], [3, 4], [5, 6]]))
    assert bound["x:0"].dtype == np.int64


def test_bind_inputs_rejects_wrong_rank(mnist: Signature) -> None:
    with pytest.raises(BindingError, match="rank 4"):
        bind_inputs(mnist, {"input_1": np.zeros((28, 28), dtype=np.float32)})


def test_bind_inputs_rejects_wrong_dimension(mnist: Signature) -> None:
    with pytest.raises(BindingError, match="dimension 1"):
        bind_inputs(mnist, {"input_1": np.zeros((1, 32, 28, 1), dtype=np.float32)})


def test_bind_inputs_checks_dtype(mnist: Signature) -> None:
    feed = {"input_1": np.zeros((1, 28, 28, 1), dtype=np.float64)}

    with pytest.raises(BindingError, match="DT_FLOAT"):
        bind_inputs(mnist, feed)
    assert list(bind_inputs(mnist, feed, check_dtype=False)) == ["input:0"]


def test_bind_inputs_accepts_any_shape_for_unknown_rank() -> None:
    signature = Signature(
        inputs={
            "text": TensorInfo(name="text:0", dtype=7, unknown_rank=True),
            "scalar": TensorInfo(name="scalar:0", dtype=1),
        }
    )

    bound = bind_inputs(
        signature,
        {"text": np.array([b"a", b"b"]), "scalar": np.zeros((2, 3), dtype=np.float32)},
    )

    assert sorted(bound) == ["scalar:0", "text:0"]


def test_bind_inputs_reports_missing_aliases() -> None:
    signature = Signature(
        key="pair",
        inputs={"a": TensorInfo(name="a:0"), "b": TensorInfo(name="b:0")},
    )

    with pytest.raises(BindingError, match="missing inputs: b"):
        bind_inputs(signature, {"a": 1.0})
    assert list(bind_inputs(signature, {"a": 1.0}, allow_missing=True)) == ["a:0"]


def test_bind_inputs_rejects_unknown_alias(mnist: Signature) -> None:
    with pytest.raises(AliasNotFoundError):
        bind_inputs(mnist, {"image": np.zeros((1, 28, 28, 1), dtype=np.float32)})


def test_output_tensor_names(mnist: Signature) -> None:
    assert output_tensor_names(mnist) == ["output:0"]
    assert output_tensor_names(mnist, ["output_1", "output_1"]) == ["output:0", "output:0"]
    with pytest.raises(AliasNotFoundError):
        output_tensor_names(mnist, ["input_1"])


@pytest.mark.parametrize(
    "code, expected",
    [
        (1, "DT_FLOAT"),
        (7, "DT_STRING"),
        (23, "DT_UINT64"),
        (101, "DT_FLOAT_REF"),
        (0, "DT_INVALID"),
        (999, "code999"),
        (-3, "code-3"),
    ],
)
def test_dtype_name(code: int, expected: str) -> None:
    assert dtype_name(code) == expected


def test_numpy_dtype_lookup() -> None:
    assert numpy_dtype(1) == np.dtype("float32")
    assert numpy_dtype(109) == np.dtype("int64")
    assert numpy_dtype(7) is None
    assert numpy_dtype(14) is None
    assert base_dtype(110) == 10
    assert base_dtype(10) == 10
