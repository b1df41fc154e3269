"""Checkout adapters: draft stores and the recording navigator."""
from .draft_stores import InMemoryDraftStore, RedisDraftStore
from .navigator import Location, RecordingNavigator

__all__ = ["InMemoryDraftStore", "RedisDraftStore", "Location", "RecordingNavigator"]
