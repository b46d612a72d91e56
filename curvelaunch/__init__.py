"""
curvelaunch: constant-product bonding-curve launch pools.
"""

from .errors import PoolError
from .kernels.python.curve_swap_v1 import FeeTiming
from .state import QUOTE_ASSET, AccountStore
from .core.lifecycle import Operation, OperationParams, OperationResult, PoolLifecycle, PoolStats
from .integration import InMemoryLedger, InMemoryMetadataRegistry, ProtocolConfig, load_config

__version__ = "0.1.0"

__all__ = [
    "PoolError",
    "FeeTiming",
    "QUOTE_ASSET",
    "AccountStore",
    "Operation",
    "OperationParams",
    "OperationResult",
    "PoolLifecycle",
    "PoolStats",
    "InMemoryLedger",
    "InMemoryMetadataRegistry",
    "ProtocolConfig",
    "load_config",
]
