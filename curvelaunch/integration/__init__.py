"""
Host-facing shell: collaborators, configuration and snapshots
"""

from .collaborators import (
    AssetMetadata,
    InMemoryLedger,
    InMemoryMetadataRegistry,
    MetadataRegistry,
    TokenLedger,
)
from .config import ProtocolConfig, config_from_mapping, config_to_dict, load_config
from .snapshot import (
    PoolSnapshot,
    balances_from_snapshot,
    bind_custody,
    snapshot_from_store,
    store_from_snapshot,
)

__all__ = [
    "AssetMetadata",
    "InMemoryLedger",
    "InMemoryMetadataRegistry",
    "MetadataRegistry",
    "TokenLedger",
    "ProtocolConfig",
    "config_from_mapping",
    "config_to_dict",
    "load_config",
    "PoolSnapshot",
    "balances_from_snapshot",
    "bind_custody",
    "snapshot_from_store",
    "store_from_snapshot",
]
