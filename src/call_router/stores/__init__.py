"""Store interfaces used by the routing core."""

from call_router.stores.base import CallRecordStore, ConfigStore

__all__ = ["CallRecordStore", "ConfigStore"]
