"""Request-scoped dependencies. Tests swap these through ``app.dependency_overrides``."""

from __future__ import annotations

from typing import Callable

from ugcgen.config import Settings, get_settings
from ugcgen.history import (
    BatchTracker,
    CollectionTracker,
    HistoryTracker,
    get_batch_tracker,
    get_collection_tracker,
    get_history_tracker,
)
from ugcgen.providers import ProviderAdapter, get_adapter

AdapterFactory = Callable[[str], ProviderAdapter]


def app_settings() -> Settings:
    return get_settings()


def history_tracker() -> HistoryTracker:
    return get_history_tracker()


def batch_tracker() -> BatchTracker:
    return get_batch_tracker()


def collection_tracker() -> CollectionTracker:
    return get_collection_tracker()


def adapter_factory() -> AdapterFactory:
    settings = get_settings()
    return lambda provider: get_adapter(provider, settings)
