"""Per-example loss collaborators for :class:`proxdelta.minibatch.MiniBatch`."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Callable, Generic, Sequence, Tuple, TypeVar

import numpy as np

from .vectors import to_dense_vector

T = TypeVar("T")

LossAndGradient = Tuple[float, np.ndarray]
LabeledExample = Tuple[Sequence[float], float]


class SubDifferentiableLoss(ABC, Generic[T]):
    """Loss that admits a (sub)gradient at every point.

    Implementations must return gradients that exclude any regularization term;
    the optimizer applies regularization through its proximal step.  ``weights``
    is passed read-only and is shared between concurrently running workers.
    """

    @abstractmethod
    def loss_and_gradient(self, weights: np.ndarray, example: T) -> LossAndGradient:
        """Return ``(loss, gradient)`` for one example at ``weights``."""


class FunctionLoss(SubDifferentiableLoss[T]):
    """Adapt a plain ``fn(weights, example) -> (loss, gradient)`` callable."""

    def __init__(self, fn: Callable[[np.ndarray, T], Tuple[float, Sequence[float]]]) -> None:
        self._fn = fn

    def loss_and_gradient(self, weights: np.ndarray, example: T) -> LossAndGradient:
        loss, gradient = self._fn(weights, example)
        return float(loss), to_dense_vector(gradient, name="gradient")


class SquaredLoss(SubDifferentiableLoss[LabeledExample]):
    """``0.5 * (w . x - y)^2`` for a linear model."""

    def loss_and_gradient(self, weights: np.ndarray, example: LabeledExample) -> LossAndGradient:
        features, target = example
        x = np.asarray(features, dtype=np.float64)
        residual = float(np.dot(weights, x)) - float(target)
        return 0.5 * residual * residual, residual * x


class HingeLoss(SubDifferentiableLoss[LabeledExample]):
    """``max(0, 1 - y * (w . x))`` with labels in ``{-1, +1}``; zero subgradient on the hinge."""

    def loss_and_gradient(self, weights: np.ndarray, example: LabeledExample) -> LossAndGradient:
        features, label = example
        x = np.asarray(features, dtype=np.float64)
        margin = float(label) * float(np.dot(weights, x))
        if margin >= 1.0:
            return 0.0, np.zeros_like(x)
        return 1.0 - margin, -float(label) * x


__all__ = [
    "LossAndGradient",
    "LabeledExample",
    "SubDifferentiableLoss",
    "FunctionLoss",
    "SquaredLoss",
    "HingeLoss",
]
