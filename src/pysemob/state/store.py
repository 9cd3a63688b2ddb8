"""In-memory snapshot store.

Holds the latest bus/stop/line snapshot per kind plus its refresh status.
Snapshots are only ever replaced wholesale.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from datetime import UTC, datetime
from typing import Any

from pydantic import BaseModel, ConfigDict

from pysemob.state.events import DataKind, FetchState


def _utcnow() -> datetime:
    return datetime.now(UTC)


class KindStatus(BaseModel):
    model_config = ConfigDict(frozen=True)

    state: FetchState = FetchState.IDLE
    item_count: int = 0
    last_success_at: datetime | None = None
    last_error: str | None = None


class SnapshotStore:
    """Snapshots and refresh status per :class:`DataKind`.

    Parameters
    ----------
    clock : callable, optional
        Returns an aware UTC datetime. Injected by tests.
    """

    def __init__(self, *, clock: Callable[[], datetime] | None = None) -> None:
        self._clock = clock or _utcnow
        self._snapshots: dict[DataKind, tuple[Any, ...]] = {kind: () for kind in DataKind}
        self._status: dict[DataKind, KindStatus] = {kind: KindStatus() for kind in DataKind}

    def snapshot(self, kind: DataKind) -> tuple[Any, ...]:
        return self._snapshots[kind]

    def status(self, kind: DataKind) -> KindStatus:
        return self._status[kind]

    def state(self, kind: DataKind) -> FetchState:
        return self._status[kind].state

    def is_fetching(self, kind: DataKind) -> bool:
        return self._status[kind].state is FetchState.FETCHING

    def begin(self, kind: DataKind) -> None:
        self._status[kind] = self._status[kind].model_copy(update={"state": FetchState.FETCHING})

    def replace(self, kind: DataKind, items: Sequence[Any]) -> None:
        """Swap in a new snapshot and mark the kind idle."""
        self._snapshots[kind] = tuple(items)
        self._status[kind] = KindStatus(
            state=FetchState.IDLE,
            item_count=len(items),
            last_success_at=self._clock(),
            last_error=None,
        )

    def fail(self, kind: DataKind, error: str) -> None:
        """Record a failure; the previous snapshot is kept."""
        self._status[kind] = self._status[kind].model_copy(update={"state": FetchState.ERROR, "last_error": error})

    def reset(self, kind: DataKind) -> None:
        self._status[kind] = self._status[kind].model_copy(update={"state": FetchState.IDLE})

    def as_dict(self) -> dict[str, dict[str, Any]]:
        return {kind.value: status.model_dump(mode="json") for kind, status in self._status.items()}
