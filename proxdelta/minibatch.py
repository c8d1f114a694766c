"""小批量 ADADELTA 驱动：逐 epoch 重排数据、并行计算批次梯度并推进优化器状态。

`MiniBatch.optimization_path` 返回一个惰性、无限且不可重启的迭代器。每次拉取都会
同步完成一个批次的全部工作（逐样本计算损失与梯度、按元素求和、按固定的
``1 / batch_size`` 缩放、执行一次 `State.step`），批次之间没有流水线重叠。
终止完全由调用方决定：停止拉取或调用迭代器的 ``close()`` 即可释放线程池。
"""

from __future__ import annotations

import itertools
import logging
import os
from concurrent.futures import ThreadPoolExecutor
from functools import partial, reduce
from typing import Any, Callable, Generic, Iterator, Mapping, NamedTuple, Optional, Sequence, TypeVar, Union

import numpy as np

from .errors import InvalidConfigurationError
from .losses import FunctionLoss, LossAndGradient, SubDifferentiableLoss
from .optim import AdaDelta, State
from .vectors import VectorLike, check_same_dimension, readonly_view, to_dense_vector

logger = logging.getLogger(__name__)

T = TypeVar("T")


class Step(NamedTuple):
    """一次优化步的输出：共享缓冲区的状态、批次平均损失、epoch 序号与批次序号。"""

    state: State
    loss: float
    epoch: int
    batch: int


def iter_epoch_batches(
    total_examples: int,
    batch_size: int,
    rng: np.random.Generator,
) -> Iterator[np.ndarray]:
    """对 ``range(total_examples)`` 做一次无放回随机排列，并按 ``batch_size`` 切块。

    最后一块在样本数不能整除时可能更短。
    """

    if total_examples <= 0:
        return
    order = rng.permutation(total_examples)
    for start in range(0, total_examples, batch_size):
        batch_idx = order[start:start + batch_size]
        if batch_idx.size:
            yield batch_idx


def add_loss_and_gradient(a: LossAndGradient, b: LossAndGradient) -> LossAndGradient:
    """批内归约算子，满足结合律与交换律。"""

    return a[0] + b[0], a[1] + b[1]


def _default_num_workers() -> int:
    return min(8, os.cpu_count() or 1)


class MiniBatch(Generic[T]):
    """以无放回小批量采样驱动 ADADELTA。

    Args:
        training_data: 有限、可索引的训练样本序列。
        loss_fn: `SubDifferentiableLoss`，或签名为 ``fn(weights, example)`` 的可调用对象。
        l1_strength: 传入新建 `AdaDelta` 的 L1 强度。
        l2_strength: 传入新建 `AdaDelta` 的 L2 强度。
        batch_size: 每批样本数，必须为正。
        decay: `AdaDelta` 的滑动平均衰减率。
        smoothing: `AdaDelta` 的平滑常数。
        num_workers: 批内并行计算梯度的线程数；``1`` 表示在调用线程内顺序计算。
        rng: 每个 epoch 生成随机排列所用的 `numpy.random.Generator`；可复现性由调用方注入种子保证。
        check_finite: 是否在出现 NaN/Inf 时抛出 `NumericalInstabilityError`。
    """

    def __init__(
        self,
        training_data: Sequence[T],
        loss_fn: Union[SubDifferentiableLoss[T], Callable[[np.ndarray, T], Any]],
        l1_strength: float,
        l2_strength: float,
        batch_size: int,
        *,
        decay: float = 0.05,
        smoothing: float = 1e-6,
        num_workers: Optional[int] = None,
        rng: Optional[np.random.Generator] = None,
        check_finite: bool = False,
    ) -> None:
        if isinstance(batch_size, bool) or not isinstance(batch_size, (int, np.integer)) or batch_size <= 0:
            raise InvalidConfigurationError(f"batch_size 必须为正整数，当前为 {batch_size!r}")
        if num_workers is None:
            num_workers = _default_num_workers()
        if isinstance(num_workers, bool) or not isinstance(num_workers, (int, np.integer)) or num_workers <= 0:
            raise InvalidConfigurationError(f"num_workers 必须为正整数，当前为 {num_workers!r}")
        if len(training_data) == 0:
            raise InvalidConfigurationError("training_data 不能为空")
        if isinstance(loss_fn, SubDifferentiableLoss):
            self.loss_fn: SubDifferentiableLoss[T] = loss_fn
        elif callable(loss_fn):
            self.loss_fn = FunctionLoss(loss_fn)
        else:
            raise InvalidConfigurationError("loss_fn 必须实现 loss_and_gradient 或为可调用对象")

        self.training_data = training_data
        self.batch_size = int(batch_size)
        self.num_workers = int(num_workers)
        self.rng = rng if rng is not None else np.random.default_rng()
        self.optimizer = AdaDelta(
            decay=decay,
            smoothing=smoothing,
            l1_strength=l1_strength,
            l2_strength=l2_strength,
            check_finite=check_finite,
        )
        self._batch_recip = 1.0 / self.batch_size

    @classmethod
    def from_config(
        cls,
        training_data: Sequence[T],
        loss_fn: Union[SubDifferentiableLoss[T], Callable[[np.ndarray, T], Any]],
        optimizer_config: Mapping[str, Any],
        minibatch_config: Mapping[str, Any],
    ) -> "MiniBatch[T]":
        """根据 ``config.yaml`` 中的 ``optimizer`` 与 ``minibatch`` 配置块构造驱动。"""

        optimizer = AdaDelta.from_config(optimizer_config)
        options = dict(minibatch_config)
        unknown = sorted(set(options) - {"batch_size", "num_workers", "seed"})
        if unknown:
            raise InvalidConfigurationError(f"未知的 minibatch 配置项：{', '.join(unknown)}")
        if "batch_size" not in options:
            raise InvalidConfigurationError("minibatch 配置缺少 batch_size")
        seed = options.get("seed")
        return cls(
            training_data,
            loss_fn,
            optimizer.l1_strength,
            optimizer.l2_strength,
            options["batch_size"],
            decay=optimizer.decay,
            smoothing=optimizer.smoothing,
            num_workers=options.get("num_workers"),
            rng=np.random.default_rng(seed),
            check_finite=optimizer.check_finite,
        )

    def optimization_path(self, initial_weights: VectorLike) -> Iterator[Step]:
        """返回 `Step` 的无限迭代器。

        所有产出的 `State` 共享同一组权重缓冲区，后续拉取会覆盖它们；
        需要保留快照时请先调用 ``state.copy()``。
        """

        state = self.optimizer.start(initial_weights)
        return self._path(state)

    def _path(self, state: State) -> Iterator[Step]:
        executor: Optional[ThreadPoolExecutor] = None
        if self.num_workers > 1:
            executor = ThreadPoolExecutor(max_workers=self.num_workers, thread_name_prefix="proxdelta-batch")
        total = len(self.training_data)
        logger.info(
            "小批量优化开始：样本数=%d, batch_size=%d, 维度=%d, 线程数=%d",
            total,
            self.batch_size,
            state.dimension,
            self.num_workers,
        )
        try:
            for epoch in itertools.count():
                logger.debug("开始 epoch %d", epoch)
                for batch_num, batch_idx in enumerate(iter_epoch_batches(total, self.batch_size, self.rng)):
                    loss, gradient = self._batch_loss_and_gradient(batch_idx, state, executor)
                    # 短尾批次同样按配置的 batch_size 缩放
                    state = state.step(gradient * self._batch_recip)
                    scaled_loss = loss * self._batch_recip
                    logger.debug(
                        "epoch %d 批次 %d：loss=%.6g, reg_loss=%.6g",
                        epoch,
                        batch_num,
                        scaled_loss,
                        state.reg_loss,
                    )
                    yield Step(state, scaled_loss, epoch, batch_num)
        finally:
            if executor is not None:
                executor.shutdown(wait=True, cancel_futures=True)

    def _batch_loss_and_gradient(
        self,
        batch_idx: np.ndarray,
        state: State,
        executor: Optional[ThreadPoolExecutor],
    ) -> LossAndGradient:
        weights = readonly_view(state.weights)
        examples = [self.training_data[int(i)] for i in batch_idx]
        evaluate = partial(self._evaluate, weights, state.dimension)
        if executor is None:
            results = map(evaluate, examples)
        else:
            results = executor.map(evaluate, examples)
        return reduce(add_loss_and_gradient, results)

    def _evaluate(self, weights: np.ndarray, dimension: int, example: T) -> LossAndGradient:
        loss, gradient = self.loss_fn.loss_and_gradient(weights, example)
        grad = to_dense_vector(gradient, name="gradient")
        check_same_dimension(dimension, grad, name="gradient")
        return float(loss), grad


__all__ = ["MiniBatch", "Step", "iter_epoch_batches", "add_loss_and_gradient"]
