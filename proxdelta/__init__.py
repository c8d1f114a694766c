"""带 L1/L2 近端正则的 ADADELTA 优化器与小批量训练驱动。"""

from .config import get_logging_level, get_minibatch_config, get_optimizer_config, load_config
from .errors import (
    DimensionMismatchError,
    InvalidConfigurationError,
    NumericalInstabilityError,
    ProxDeltaError,
)
from .losses import FunctionLoss, HingeLoss, SquaredLoss, SubDifferentiableLoss
from .minibatch import MiniBatch, Step, add_loss_and_gradient, iter_epoch_batches
from .optim import AdaDelta, State, decaying_average, elastic_net_proximal, l1_proximal, l2_proximal

__all__ = [
    "AdaDelta",
    "State",
    "decaying_average",
    "l1_proximal",
    "l2_proximal",
    "elastic_net_proximal",
    "MiniBatch",
    "Step",
    "iter_epoch_batches",
    "add_loss_and_gradient",
    "SubDifferentiableLoss",
    "FunctionLoss",
    "SquaredLoss",
    "HingeLoss",
    "load_config",
    "get_logging_level",
    "get_optimizer_config",
    "get_minibatch_config",
    "ProxDeltaError",
    "InvalidConfigurationError",
    "DimensionMismatchError",
    "NumericalInstabilityError",
]
