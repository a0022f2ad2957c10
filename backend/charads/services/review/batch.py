"""Bulk acceptance of rounds against an approved-term list.

Each record is its own read-modify-write task. Tasks share nothing, so they
run in any order (or in parallel) and a failed write is reported for that
record alone.
"""

import re
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Dict, FrozenSet, Iterable, List, Union

from flask import current_app

from charads.exceptions import CharadsError
from charads.services.records import ResultRecord, Verification, normalize_term


_SEPARATORS = re.compile(r'[\r\n,]+')


def parse_terms(raw: Union[str, Iterable[str], None]) -> FrozenSet[str]:
    """Approved terms from pasted text or a list of strings.

    Terms are separated by newlines or commas, edge-trimmed and upper-cased.
    Spaces inside a term are kept, so ``machine learning`` stays one term.
    """
    if raw is None:
        return frozenset()
    chunks = _SEPARATORS.split(raw) if isinstance(raw, str) else [
        part for item in raw for part in _SEPARATORS.split(item or '')
    ]
    return frozenset(t for t in (normalize_term(c) for c in chunks) if t)


def apply_approved_terms(record: ResultRecord, approved: FrozenSet[str]) -> bool:
    """Accept every non-accepted round whose term is approved.

    Rejected rounds are eligible too. Returns True if anything changed, in
    which case the verified score has been recomputed.
    """
    changed = False
    for r in record.rounds:
        if r.verification is Verification.ACCEPTED:
            continue
        if r.normalized_term and r.normalized_term in approved:
            r.verification = Verification.ACCEPTED
            changed = True
    if changed:
        record.recompute_verified_score()
    return changed


@dataclass
class BatchReport:
    updated: List[int] = field(default_factory=list)
    failed: Dict[int, str] = field(default_factory=dict)
    unchanged: int = 0

    @property
    def updated_count(self) -> int:
        return len(self.updated)

    def to_dict(self):
        return {
            'updated': self.updated_count,
            'updatedIds': sorted(self.updated),
            'unchanged': self.unchanged,
            'failed': [{'id': rid, 'error': msg} for rid, msg in sorted(self.failed.items())],
        }


class BatchMatcher:

    def __init__(self, store, max_workers=None):
        self.store = store
        self.max_workers = max_workers or store.max_workers

    def run(self, raw_terms) -> BatchReport:
        approved = parse_terms(raw_terms)
        report = BatchReport()
        if not approved:
            return report

        record_ids = self.store.gateway.list_ids()
        current_app.logger.info(f"[batch] {len(approved)} approved terms against {len(record_ids)} results")

        if self.max_workers <= 1 or len(record_ids) <= 1:
            outcomes = [self.match_record(rid, approved) for rid in record_ids]
        else:
            with ThreadPoolExecutor(max_workers=self.max_workers) as pool:
                futures = [pool.submit(self._match_in_app_context, rid, approved) for rid in record_ids]
                outcomes = [f.result() for f in futures]

        for rid, outcome in zip(record_ids, outcomes):
            if outcome is True:
                report.updated.append(rid)
            elif outcome is False:
                report.unchanged += 1
            else:
                report.failed[rid] = outcome
        current_app.logger.info(
            f"[batch] updated={report.updated_count} unchanged={report.unchanged} failed={len(report.failed)}"
        )
        return report

    def match_record(self, record_id: int, approved: FrozenSet[str]):
        """Match one record. True if written, False if nothing matched, else the error message."""
        store = self.store
        try:
            with store.locks.hold(record_id):
                record = store.gateway.get(record_id, for_update=True)
                if not apply_approved_terms(record, approved):
                    store.gateway.release()
                    return False
                store.remember(record)
                store.write(record)
        except CharadsError as exc:
            current_app.logger.warning(f"[batch] result={record_id} failed: {exc}")
            return str(exc)
        return True

    def _match_in_app_context(self, record_id: int, approved: FrozenSet[str]):
        with self.store.app.app_context():
            return self.match_record(record_id, approved)
