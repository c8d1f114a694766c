"""Closed-form proximal mappings for L1 and L2 penalties.

Each mapping solves ``argmin_y { scale * penalty(y) + 0.5 * ||y - x||^2 }`` for a
single component.  ``scale`` is the step size applied to that component and may
be a scalar or an array broadcastable against ``x``.
"""

from __future__ import annotations

from typing import Union

import numpy as np

ArrayOrFloat = Union[float, np.ndarray]


def l1_proximal(scale: ArrayOrFloat, x: ArrayOrFloat) -> ArrayOrFloat:
    """Soft threshold: shrink ``x`` towards zero by ``scale``, clamping to 0 inside ``[-scale, scale]``."""

    x_arr = np.asarray(x, dtype=np.float64)
    scale_arr = np.asarray(scale, dtype=np.float64)
    result = np.where(
        x_arr > scale_arr,
        x_arr - scale_arr,
        np.where(x_arr < -scale_arr, x_arr + scale_arr, 0.0),
    )
    if result.ndim == 0:
        return float(result)
    return result


def l2_proximal(scale: ArrayOrFloat, x: ArrayOrFloat) -> ArrayOrFloat:
    """Shrink ``x`` by ``1 / (scale + 1)``."""

    result = np.asarray(x, dtype=np.float64) / (np.asarray(scale, dtype=np.float64) + 1.0)
    if result.ndim == 0:
        return float(result)
    return result


def elastic_net_proximal(
    scale: ArrayOrFloat,
    x: ArrayOrFloat,
    l1_strength: float,
    l2_strength: float,
) -> ArrayOrFloat:
    """L1 soft threshold followed by L2 shrinkage; zero strengths skip their mapping."""

    result = x
    if l1_strength != 0.0:
        result = l1_proximal(np.multiply(scale, l1_strength), result)
    if l2_strength != 0.0:
        result = l2_proximal(np.multiply(scale, l2_strength), result)
    return result


__all__ = ["l1_proximal", "l2_proximal", "elastic_net_proximal"]
