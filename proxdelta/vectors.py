"""Dense vector helpers on top of NumPy float64 arrays."""

from __future__ import annotations

from typing import Sequence, Union

import numpy as np

from .errors import DimensionMismatchError

VectorLike = Union[np.ndarray, Sequence[float]]


def to_dense_vector(values: VectorLike, *, name: str = "vector") -> np.ndarray:
    """Return ``values`` as a contiguous 1-D float64 array, copying only when needed."""

    array = np.ascontiguousarray(values, dtype=np.float64)
    if array.ndim != 1:
        raise DimensionMismatchError(f"{name} must be one-dimensional, got shape {array.shape}")
    return array


def check_same_dimension(expected: int, actual: np.ndarray, *, name: str = "vector") -> None:
    if actual.shape != (expected,):
        raise DimensionMismatchError(f"{name} has shape {actual.shape}, expected ({expected},)")


def readonly_view(array: np.ndarray) -> np.ndarray:
    view = array.view()
    view.flags.writeable = False
    return view


__all__ = ["VectorLike", "to_dense_vector", "check_same_dimension", "readonly_view"]
