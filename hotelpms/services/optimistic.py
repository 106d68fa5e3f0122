"""
Optimistic update / undo coordinator

A local change is applied immediately, the mutation is persisted off the
event loop, and the local change is reverted when persistence fails.
Selected mutations then open an undo window: a per-entity state machine
(Committed -> PendingUndo -> Committed) driven by a cancellable timer.
"""
import asyncio
from dataclasses import dataclass
from typing import Any, Callable, Dict, Generic, List, Optional, TypeVar, Union
import logging

from hotelpms.config import settings
from hotelpms.errors import PartialFailureError

logger = logging.getLogger(__name__)

T = TypeVar("T")


class OptimisticCoordinator:
    """
    Runs one optimistic mutation

    The persisted mutation (state engine + store) and the re-fetch run in
    worker threads; ``apply``, ``revert`` and ``adopt`` run on the event
    loop and are the only code touching the caller's in-memory state.
    """

    async def run(
        self,
        apply: Callable[[], None],
        revert: Callable[[], None],
        mutation: Callable[[], T],
        reconcile: Optional[Callable[[Optional[T]], Any]] = None,
        adopt: Optional[Callable[[Any], None]] = None,
    ) -> T:
        """
        Args:
            apply: present the new local state
            revert: restore the pre-mutation snapshot
            mutation: blocking call persisting the change; its audit entry
                is written only after the main write succeeded
            reconcile: optional blocking re-fetch of authoritative state,
                called with the mutation result, or with None after a
                partial failure
            adopt: presents what ``reconcile`` returned

        Returns:
            the mutation result

        Raises:
            PartialFailureError: the main write committed; local state was
                re-fetched instead of reverted
            whatever else the mutation raised, after ``revert`` ran
        """
        apply()
        try:
            result = await asyncio.to_thread(mutation)
        except PartialFailureError as e:
            logger.warning(f"Optimistic update partially committed, re-fetching: {e}")
            await self._reconcile(reconcile, adopt, None)
            raise
        except Exception as e:
            revert()
            logger.warning(f"Optimistic update reverted: {e}")
            raise
        await self._reconcile(reconcile, adopt, result)
        return result

    @staticmethod
    async def _reconcile(reconcile, adopt, result) -> None:
        # the mutation outcome stands whether or not the re-fetch works
        if reconcile is None:
            return
        try:
            fetched = await asyncio.to_thread(reconcile, result)
        except Exception as e:
            logger.warning(f"Re-fetch after optimistic update failed: {e}")
            return
        if adopt is not None:
            adopt(fetched)


# ============== Undo window ==============

@dataclass(frozen=True)
class Committed:
    """No undo is pending for the entity"""
    entity_id: str


@dataclass(frozen=True)
class PendingUndo(Generic[T]):
    """
    An undo window is open for the entity

    Attributes:
        entity_id: entity the window belongs to
        expires_at: event-loop time at which the window closes
        previous_snapshot: state to restore on undo
        applied_snapshot: state the window is protecting
        field: name of the changed field, when the change touched one
    """
    entity_id: str
    expires_at: float
    previous_snapshot: T
    applied_snapshot: T
    field: Optional[str] = None


UndoState = Union[Committed, PendingUndo]


class UndoWindow:
    """
    Per-entity undo windows

    At most one window is open per entity; opening a new one replaces
    (and cancels) the previous one. A timer that fires for a window that
    was already taken or replaced does nothing.

    Args:
        window_seconds: window length, defaults to UNDO_WINDOW_SECONDS
        on_finalize: called with the PendingUndo when a window expires
    """

    def __init__(
        self,
        window_seconds: Optional[float] = None,
        on_finalize: Optional[Callable[[PendingUndo], None]] = None,
    ):
        self.window_seconds = (
            settings.UNDO_WINDOW_SECONDS if window_seconds is None else window_seconds
        )
        self._on_finalize = on_finalize
        self._pending: Dict[str, PendingUndo] = {}
        self._timers: Dict[str, asyncio.TimerHandle] = {}

    def state(self, entity_id: str) -> UndoState:
        return self._pending.get(entity_id) or Committed(entity_id)

    @property
    def pending_ids(self) -> List[str]:
        return list(self._pending)

    def open(self, entity_id: str, previous_snapshot: Any, applied_snapshot: Any,
             field: Optional[str] = None) -> PendingUndo:
        """Open a window; must be called from a running event loop"""
        self.cancel(entity_id)
        loop = asyncio.get_running_loop()
        pending = PendingUndo(
            entity_id=entity_id,
            expires_at=loop.time() + self.window_seconds,
            previous_snapshot=previous_snapshot,
            applied_snapshot=applied_snapshot,
            field=field,
        )
        self._schedule(loop, pending)
        logger.debug(f"Undo window opened for {entity_id} ({self.window_seconds}s)")
        return pending

    def reopen(self, pending: PendingUndo) -> bool:
        """
        Put back a window taken for an undo that did not go through

        The original deadline is kept, so a window that expired meanwhile
        is finalized right away. Nothing happens when another window was
        opened for the entity in the meantime.
        """
        if pending.entity_id in self._pending:
            return False
        self._schedule(asyncio.get_running_loop(), pending)
        logger.debug(f"Undo window reopened for {pending.entity_id}")
        return True

    def _schedule(self, loop, pending: PendingUndo) -> None:
        self._pending[pending.entity_id] = pending
        self._timers[pending.entity_id] = loop.call_at(pending.expires_at, self._expire, pending)

    def take(self, entity_id: str) -> Optional[PendingUndo]:
        """Close the window for an undo; None when no window is open"""
        pending = self._pending.pop(entity_id, None)
        timer = self._timers.pop(entity_id, None)
        if timer is not None:
            timer.cancel()
        return pending

    def cancel(self, entity_id: str) -> bool:
        return self.take(entity_id) is not None

    def cancel_all(self) -> None:
        for entity_id in list(self._pending):
            self.cancel(entity_id)

    def _expire(self, pending: PendingUndo) -> None:
        if self._pending.get(pending.entity_id) is not pending:
            return
        del self._pending[pending.entity_id]
        self._timers.pop(pending.entity_id, None)
        logger.debug(f"Undo window closed for {pending.entity_id}")
        if self._on_finalize is not None:
            try:
                self._on_finalize(pending)
            except Exception as e:
                logger.error(f"Undo finalize callback failed for {pending.entity_id}: {e}", exc_info=True)
