"""优化器与小批量驱动抛出的异常类型。"""

from __future__ import annotations


class ProxDeltaError(Exception):
    """proxdelta 中所有异常的基类。"""


class InvalidConfigurationError(ProxDeltaError, ValueError):
    """超参数越界或配置块无法解析时抛出，在构造阶段即失败。"""


class DimensionMismatchError(ProxDeltaError, ValueError):
    """梯度或权重向量长度与优化器状态不一致，属于集成错误，不做恢复。"""


class NumericalInstabilityError(ProxDeltaError, FloatingPointError):
    """启用有限性检查时，梯度或更新结果出现 NaN/Inf。"""


__all__ = [
    "ProxDeltaError",
    "InvalidConfigurationError",
    "DimensionMismatchError",
    "NumericalInstabilityError",
]
