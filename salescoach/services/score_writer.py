"""
Behavior Score Writer - Sales Coaching Assessment
salescoach/services/score_writer.py

Serializes checked-flag writes per behavior.

Every submission is stamped with a client-side sequence number. Only the
latest pending state of a behavior is sent, and an acknowledgement or failure
carrying an older sequence than one already recorded for that behavior is
ignored, so two quick toggles always resolve to the last one issued,
whatever order the store completes them in.

With auto_flush=False submissions accumulate (coalescing bursts of toggles)
until flush() is called.
"""

import logging
from itertools import count
from typing import Dict, Optional, Set, Tuple

from salescoach.core.exceptions import PersistenceFailure, RepositoryException

logger = logging.getLogger(__name__)


class BehaviorScoreWriter:
    """Last-write-wins persistence of behavior flags for one assessment."""

    def __init__(self, store, assessment_id: int, auto_flush: bool = True):
        self.store = store
        self.assessment_id = assessment_id
        self.auto_flush = auto_flush
        self._sequence = count(1)
        self._pending: Dict[int, Tuple[int, bool]] = {}
        self._latest: Dict[int, int] = {}
        self._acked: Dict[int, int] = {}
        self.failures: Dict[int, Tuple[int, bool, PersistenceFailure]] = {}

    @property
    def pending_behaviors(self) -> Set[int]:
        return set(self._pending)

    @property
    def failed_behaviors(self) -> Set[int]:
        return set(self.failures)

    def latest_sequence(self, behavior_id: int) -> Optional[int]:
        return self._latest.get(behavior_id)

    def submit(self, behavior_id: int, checked: bool) -> int:
        """
        Queue the behavior's new flag, superseding any older pending or failed write.

        Returns:
            The sequence number assigned to this write
        """
        sequence = next(self._sequence)
        self._latest[behavior_id] = sequence
        self._pending[behavior_id] = (sequence, checked)
        self.failures.pop(behavior_id, None)
        if self.auto_flush:
            self.flush()
        return sequence

    def flush(self) -> Set[int]:
        """
        Send every pending write.

        Returns:
            Behavior ids whose latest write has failed
        """
        while self._pending:
            behavior_id, (sequence, checked) = self._pending.popitem()
            try:
                self.store.put_behavior_score(self.assessment_id, behavior_id, checked)
            except RepositoryException as e:
                self.acknowledge(behavior_id, sequence, checked, error=e)
            except Exception:
                # unmapped errors propagate; the write stays queued
                self._pending.setdefault(behavior_id, (sequence, checked))
                raise
            else:
                self.acknowledge(behavior_id, sequence, checked)
        return self.failed_behaviors

    def acknowledge(
        self,
        behavior_id: int,
        sequence: int,
        checked: bool,
        error: Optional[Exception] = None,
    ) -> bool:
        """
        Record the outcome of a write.

        Returns:
            False when the outcome was stale (a newer write exists) and was ignored
        """
        if sequence < self._acked.get(behavior_id, 0) or sequence < self._latest.get(behavior_id, 0):
            logger.debug(
                "score_write_stale",
                extra={"behavior_id": behavior_id, "sequence": sequence, "failed": error is not None},
            )
            return False

        if error is None:
            self._acked[behavior_id] = sequence
            self.failures.pop(behavior_id, None)
            return True

        failure = PersistenceFailure(
            f"Behavior {behavior_id} could not be saved: {error}",
            assessment_id=self.assessment_id,
        )
        self.failures[behavior_id] = (sequence, checked, failure)
        logger.warning(
            "score_write_failed",
            extra={
                "assessment_id": self.assessment_id,
                "behavior_id": behavior_id,
                "checked": checked,
                "error": str(error),
            },
        )
        return True

    def retry_failed(self) -> Set[int]:
        """Re-send every failed write under a fresh sequence number."""
        for behavior_id, (_, checked, _) in list(self.failures.items()):
            sequence = next(self._sequence)
            self._latest[behavior_id] = sequence
            self._pending[behavior_id] = (sequence, checked)
        self.failures.clear()
        return self.flush()
