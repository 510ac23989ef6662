"""Runtime services: serialised execution, input guarding and event publishing."""

from toolloop.services.events import EventStream
from toolloop.services.input_guard import InputGuard, InputGuardConfig
from toolloop.services.store import SerializedStore, Store
from toolloop.services.task_queue import InFlightDeduplicator, KeyedTaskQueues, SerializedTaskQueue

__all__ = [
    "EventStream",
    "InFlightDeduplicator",
    "InputGuard",
    "InputGuardConfig",
    "KeyedTaskQueues",
    "SerializedStore",
    "SerializedTaskQueue",
    "Store",
]
