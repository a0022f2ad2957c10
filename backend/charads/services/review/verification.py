"""Per-round accept/reject decisions and the verified score.

``VerificationStore`` keeps the reviewer's view of all results. Writes go
through the gateway, but the view is updated first: if the write fails the
caller gets a ``PersistenceError`` and the view keeps showing the new
decision until the next ``refresh``.
"""

import threading
from contextlib import contextmanager
from typing import Dict, List, Optional

from flask import current_app

from charads.exceptions import PersistenceError, PreconditionError
from charads.services.records import ResultRecord, Verification


DECISIONS = (Verification.ACCEPTED, Verification.REJECTED)


def parse_decision(value) -> Verification:
    try:
        decision = Verification.parse(value)
    except ValueError:
        decision = None
    if decision not in DECISIONS:
        raise PreconditionError(f"Decision must be one of: {', '.join(d.value for d in DECISIONS)}")
    return decision


def apply_decision(record: ResultRecord, round_index: int, decision) -> ResultRecord:
    """Set one round's verification and recompute the verified score.

    The score is summed over every accepted round, not adjusted by the one
    that changed. Raises PreconditionError before touching anything if the
    round does not exist.
    """
    decision = parse_decision(decision)
    target = record.find_round(round_index)
    if target is None:
        raise PreconditionError(f"Result {record.id} has no round {round_index}")
    target.verification = decision
    record.recompute_verified_score()
    return record


class RecordLocks:
    """One lock per record id, created on demand."""

    def __init__(self):
        self._guard = threading.Lock()
        self._locks: Dict[int, threading.Lock] = {}

    @contextmanager
    def hold(self, record_id: int):
        with self._guard:
            lock = self._locks.setdefault(record_id, threading.Lock())
        with lock:
            yield


class VerificationStore:

    def __init__(self, gateway=None):
        self.app = None
        self.gateway = gateway
        self.locks = RecordLocks()
        self._view: Dict[int, ResultRecord] = {}
        self._order: List[int] = []
        self._view_lock = threading.Lock()

    def init_app(self, app, gateway=None):
        from charads.services.store import SqlResultGateway

        self.app = app
        self.gateway = gateway or SqlResultGateway()
        with self._view_lock:
            self._view.clear()
            self._order = []

    @property
    def max_workers(self) -> int:
        if self.app is None:
            return 1
        return max(1, int(self.app.config.get('BATCH_MAX_WORKERS', 1)))

    # ---- review table ----

    def refresh(self) -> List[ResultRecord]:
        records = self.gateway.list_all()
        with self._view_lock:
            self._view = {r.id: r for r in records}
            self._order = [r.id for r in records]
        return self.records()

    def records(self) -> List[ResultRecord]:
        with self._view_lock:
            return [self._view[i].copy() for i in self._order if i in self._view]

    def cached(self, record_id: int) -> Optional[ResultRecord]:
        with self._view_lock:
            record = self._view.get(record_id)
            return record.copy() if record else None

    def remember(self, record: ResultRecord) -> None:
        with self._view_lock:
            if record.id not in self._view:
                self._order.insert(0, record.id)
            self._view[record.id] = record.copy()

    def export_terms(self) -> List[str]:
        """Unique normalized terms of every round not yet accepted, sorted."""
        terms = set()
        for record in self.records():
            for r in record.rounds:
                if r.verification is not Verification.ACCEPTED and r.normalized_term:
                    terms.add(r.normalized_term)
        return sorted(terms)

    # ---- mutations ----

    def set_verification(self, record_id: int, round_index: int, decision) -> ResultRecord:
        decision = parse_decision(decision)
        with self.locks.hold(record_id):
            # Always start from the persisted rounds so a decision made by
            # another reviewer on a different round is not lost
            record = self.gateway.get(record_id, for_update=True)
            try:
                apply_decision(record, round_index, decision)
            except PreconditionError:
                self.gateway.release()
                raise
            self.remember(record)
            self.write(record)
        current_app.logger.info(
            f"[verify] result={record_id} round={round_index} decision={decision.value} "
            f"verified_score={record.verified_score:.2f}"
        )
        return record

    def write(self, record: ResultRecord) -> None:
        try:
            self.gateway.update(record.id, {
                'rounds': record.rounds,
                'verifiedScore': record.verified_score,
            })
        except PersistenceError as exc:
            exc.record_id = record.id
            current_app.logger.error(f"[persist-fail] result={record.id} verification not saved: {exc}")
            raise
