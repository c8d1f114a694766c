"""ADADELTA with L1 + L2 regularization applied through proximal steps.

Implements Zeiler, "ADADELTA: An Adaptive Learning Rate Method"
(http://arxiv.org/abs/1212.5701).  ``decay`` is ``1 - rho`` from the paper and
``smoothing`` is its ``epsilon``.  Regularization never enters the gradient: after
the adaptive step each component is passed through the elastic-net proximal
mapping, scaled by that component's own learning rate.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, fields, replace
from typing import Any, Mapping, Union

import numpy as np

from ..errors import InvalidConfigurationError, NumericalInstabilityError
from ..vectors import VectorLike, check_same_dimension, to_dense_vector
from .proximal import ArrayOrFloat, elastic_net_proximal

logger = logging.getLogger(__name__)


def decaying_average(old_avg: ArrayOrFloat, new_val: ArrayOrFloat, decay: float) -> ArrayOrFloat:
    """Exponential moving average: ``(1 - decay) * old_avg + decay * new_val``."""

    return (1.0 - decay) * old_avg + decay * new_val


@dataclass(frozen=True)
class AdaDelta:
    """Immutable ADADELTA configuration.

    Args:
        decay: rate at which running averages forget old values, in ``(0, 1)``.
        smoothing: positive constant conditioning the RMS denominators.
        l1_strength: L1 penalty strength, ``>= 0``.
        l2_strength: L2 penalty strength, ``>= 0``.
        check_finite: raise :class:`NumericalInstabilityError` on NaN/Inf instead
            of letting it propagate through the running averages.
    """

    decay: float = 0.05
    smoothing: float = 1e-6
    l1_strength: float = 1e-5
    l2_strength: float = 0.0
    check_finite: bool = False

    def __post_init__(self) -> None:
        for name in ("decay", "smoothing", "l1_strength", "l2_strength"):
            value = getattr(self, name)
            if isinstance(value, str):
                raise InvalidConfigurationError(
                    f"{name} must be a number, got the string {value!r}; "
                    "YAML reads exponents without a decimal point (1e-6) as strings, write 1.0e-6"
                )
            if not isinstance(value, (int, float)) or isinstance(value, bool) or not math.isfinite(value):
                raise InvalidConfigurationError(f"{name} must be a finite number, got {value!r}")
        if not isinstance(self.check_finite, (bool, np.bool_)):
            raise InvalidConfigurationError(f"check_finite must be a boolean, got {self.check_finite!r}")
        if not (0.0 < self.decay < 1.0):
            raise InvalidConfigurationError(f"decay must lie in (0, 1), got {self.decay}")
        if self.smoothing <= 0.0:
            raise InvalidConfigurationError(f"smoothing must be positive, got {self.smoothing}")
        if self.l1_strength < 0.0 or self.l2_strength < 0.0:
            raise InvalidConfigurationError("regularization strengths must be non-negative")

    @classmethod
    def from_config(cls, config: Mapping[str, Any]) -> "AdaDelta":
        """Build from an ``optimizer:`` block of ``config.yaml``."""

        known = {field.name for field in fields(cls)}
        unknown = sorted(set(config) - known)
        if unknown:
            raise InvalidConfigurationError(f"unknown optimizer options: {', '.join(unknown)}")
        return cls(**dict(config))

    def decaying_avg(self, old_avg: ArrayOrFloat, new_val: ArrayOrFloat) -> ArrayOrFloat:
        return decaying_average(old_avg, new_val, self.decay)

    def _smooth_sqrt(self, x: np.ndarray) -> np.ndarray:
        return np.sqrt(x + self.smoothing)

    def proximal(self, scale: ArrayOrFloat, x: ArrayOrFloat) -> ArrayOrFloat:
        """Closed-form ``argmin_y { scale * reg(y) + 0.5 * ||y - x||^2 }``.

        ``scale`` should be the learning rate applied to the matching gradient
        component.
        """

        return elastic_net_proximal(scale, x, self.l1_strength, self.l2_strength)

    def regularization_loss(self, weights: np.ndarray) -> float:
        abs_sum = float(np.sum(np.abs(weights)))
        sq_sum = float(np.dot(weights, weights))
        return self.l1_strength * abs_sum + 0.5 * self.l2_strength * sq_sum

    def start(self, initial_weights: VectorLike) -> "State":
        """The starting state for a run; ``initial_weights`` is copied."""

        weights = np.array(to_dense_vector(initial_weights, name="initial_weights"), dtype=np.float64, copy=True)
        size = weights.shape[0]
        logger.debug("AdaDelta 启动：维度=%d, decay=%.3g, smoothing=%.1e", size, self.decay, self.smoothing)
        return State(
            optimizer=self,
            weights=weights,
            avg_squared_gradient=np.zeros(size, dtype=np.float64),
            avg_squared_delta=np.zeros(size, dtype=np.float64),
        )


@dataclass(frozen=True, eq=False)
class State:
    """State of one AdaDelta run.

    The three arrays are owned by the run and updated in place by :meth:`step`;
    every ``State`` returned along a run shares them.  Use :meth:`copy` to keep a
    snapshot.
    """

    optimizer: AdaDelta
    weights: np.ndarray
    avg_squared_gradient: np.ndarray
    avg_squared_delta: np.ndarray
    reg_loss: float = 0.0

    @property
    def dimension(self) -> int:
        return int(self.weights.shape[0])

    def learning_rates(self) -> np.ndarray:
        rates = self.optimizer._smooth_sqrt(self.avg_squared_delta) / self.optimizer._smooth_sqrt(
            self.avg_squared_gradient
        )
        rates.flags.writeable = False
        return rates

    def copy(self) -> "State":
        return replace(
            self,
            weights=self.weights.copy(),
            avg_squared_gradient=self.avg_squared_gradient.copy(),
            avg_squared_delta=self.avg_squared_delta.copy(),
        )

    def step(self, gradient: Union[VectorLike, np.ndarray]) -> "State":
        """Take an adaptive step against ``gradient`` and apply the proximal mapping.

        ``gradient`` must not include regularization.  Updates ``weights``,
        ``avg_squared_gradient`` and ``avg_squared_delta`` in place and returns
        the new ``State``.
        """

        opt = self.optimizer
        grad = to_dense_vector(gradient, name="gradient")
        check_same_dimension(self.dimension, grad, name="gradient")
        if opt.check_finite and not np.all(np.isfinite(grad)):
            raise NumericalInstabilityError("gradient contains NaN or Inf")

        old_avg_sq_delta = self.avg_squared_delta
        new_avg_sq_grad = opt.decaying_avg(self.avg_squared_gradient, grad * grad)
        rate = opt._smooth_sqrt(old_avg_sq_delta) / opt._smooth_sqrt(new_avg_sq_grad)
        delta = rate * grad
        new_avg_sq_delta = opt.decaying_avg(old_avg_sq_delta, delta * delta)
        new_weights = opt.proximal(rate, self.weights - delta)

        if opt.check_finite and not (
            np.all(np.isfinite(new_weights))
            and np.all(np.isfinite(new_avg_sq_grad))
            and np.all(np.isfinite(new_avg_sq_delta))
        ):
            raise NumericalInstabilityError("AdaDelta update produced NaN or Inf")

        self.avg_squared_gradient[...] = new_avg_sq_grad
        self.avg_squared_delta[...] = new_avg_sq_delta
        self.weights[...] = new_weights
        return replace(self, reg_loss=opt.regularization_loss(self.weights))


__all__ = ["AdaDelta", "State", "decaying_average"]
