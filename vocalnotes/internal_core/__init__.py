from .config import ServiceConfig, configure_logging, load_config
from .fanout import FanoutHub, Subscription, stream_subscription
from .record_store import InMemoryRecordStore

__all__ = [
    "ServiceConfig",
    "configure_logging",
    "load_config",
    "FanoutHub",
    "Subscription",
    "stream_subscription",
    "InMemoryRecordStore",
]
