"""Result persistence gateway backed by Flask-SQLAlchemy.

Callers only see ``ResultRecord`` objects, never ORM rows. Every database
failure is rolled back and re-raised as ``PersistenceError``.
"""

import json
from datetime import timezone
from functools import wraps
from typing import Any, Dict, List

from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from charads import db
from charads.exceptions import PersistenceError, PreconditionError, RecordNotFound
from charads.models import Result
from charads.services.records import Participant, ResultRecord, RoundRecord

# Review operations may only touch these
UPDATABLE_FIELDS = ('rounds', 'verifiedScore')


def _persistence_guard(func):
    @wraps(func)
    def wrapper(self, *args, **kwargs):
        record_id = args[0] if args and isinstance(args[0], int) else None
        try:
            return func(self, *args, **kwargs)
        except SQLAlchemyError as exc:
            current_app.logger.error(f"[persist-fail] {func.__name__} failed: {exc}", exc_info=True)
            db.session.rollback()
            raise PersistenceError(f"Result store {func.__name__} failed", record_id=record_id) from exc
        except ValueError as exc:
            # Corrupt rounds JSON in a stored row
            db.session.rollback()
            raise PersistenceError(f"Result store returned unreadable data: {exc}", record_id=record_id) from exc
        except PersistenceError as exc:
            db.session.rollback()
            if exc.record_id is None:
                exc.record_id = record_id
            raise
    return wrapper


def row_to_record(row: Result) -> ResultRecord:
    created_at = row.created_at
    # SQLite hands back naive datetimes; everything is stored in UTC
    if created_at is not None and created_at.tzinfo is None:
        created_at = created_at.replace(tzinfo=timezone.utc)
    return ResultRecord(
        id=row.id,
        participant=Participant(name=row.participant_name, secondary_id=row.participant_secondary_id),
        auto_score=row.auto_score,
        verified_score=row.verified_score,
        rounds=[RoundRecord.from_dict(r) for r in row.round_list],
        created_at=created_at,
    )


def dump_rounds(rounds: List[RoundRecord]) -> str:
    return json.dumps([r.to_dict() for r in rounds])


class SqlResultGateway:

    @_persistence_guard
    def create(self, record: ResultRecord) -> int:
        row = Result(
            participant_name=record.participant.name,
            participant_secondary_id=record.participant.secondary_id,
            auto_score=record.auto_score,
            verified_score=record.verified_score,
            rounds=dump_rounds(record.rounds),
            created_at=record.created_at,
        )
        db.session.add(row)
        db.session.commit()
        record.id = row.id
        return row.id

    @_persistence_guard
    def list_ids(self) -> List[int]:
        """Ids of every stored result, newest first, without reading rounds."""
        rows = db.session.query(Result.id).order_by(Result.created_at.desc(), Result.id.desc()).all()
        return [r.id for r in rows]

    @_persistence_guard
    def list_all(self) -> List[ResultRecord]:
        """Every readable result, newest first. Unreadable rows are logged and left out."""
        records = []
        for row in Result.query.order_by(Result.created_at.desc(), Result.id.desc()).all():
            try:
                records.append(row_to_record(row))
            except (PersistenceError, ValueError) as exc:
                current_app.logger.error(f"[persist-fail] result={row.id} unreadable: {exc}")
        return records

    @_persistence_guard
    def get(self, record_id: int, for_update: bool = False) -> ResultRecord:
        """Latest persisted state of one record.

        ``for_update`` takes a row lock (SELECT ... FOR UPDATE) that holds
        until the next ``update`` commits.
        """
        query = Result.query.filter(Result.id == record_id)
        if for_update:
            query = query.with_for_update(nowait=False)
        row = query.first()
        if not row:
            raise RecordNotFound(record_id)
        return row_to_record(row)

    @_persistence_guard
    def update(self, record_id: int, fields: Dict[str, Any]) -> None:
        unknown = set(fields) - set(UPDATABLE_FIELDS)
        if unknown:
            raise PreconditionError(f"Fields not updatable: {', '.join(sorted(unknown))}")
        row = db.session.get(Result, record_id)
        if not row:
            raise RecordNotFound(record_id)
        if 'rounds' in fields:
            row.rounds = dump_rounds(fields['rounds'])
        if 'verifiedScore' in fields:
            row.verified_score = fields['verifiedScore']
        db.session.add(row)
        db.session.commit()

    def release(self) -> None:
        """Drop a row lock taken by ``get(for_update=True)`` without writing."""
        db.session.rollback()
