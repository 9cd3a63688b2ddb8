"""Snapshot state for the refresh coordinator."""

from pysemob.state.events import DataKind, FetchState
from pysemob.state.store import KindStatus, SnapshotStore

__all__ = ["DataKind", "FetchState", "KindStatus", "SnapshotStore"]
