"""NumPy ADADELTA optimizer and proximal mappings."""

from .adadelta_numpy import AdaDelta, State, decaying_average
from .proximal import elastic_net_proximal, l1_proximal, l2_proximal

__all__ = [
    "AdaDelta",
    "State",
    "decaying_average",
    "l1_proximal",
    "l2_proximal",
    "elastic_net_proximal",
]
