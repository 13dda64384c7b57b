"""
Record store for access codes, availabilities and bookings.

Services talk to the ``RecordStore`` interface only. ``SqlRecordStore`` wraps
a SQLAlchemy session and is what the API uses; ``MemoryRecordStore`` keeps
everything in dicts behind a re-entrant lock and is handy for tests and
local experiments.

Both expose the same compare-and-decrement on ``remaining_slots`` so that
concurrent bookings can never push an availability below zero.
"""

import copy
import logging
import threading
from abc import ABC, abstractmethod
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Iterator, Mapping, Optional, Sequence

from sqlalchemy import select, text
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from agenda.errors import Conflict, PersistenceFailure
from agenda.models import AccessCodeRecord, AvailabilityRecord, BookingRecord
from agenda.schemas import AccessCode, Availability, Booking

logger = logging.getLogger(__name__)

KINDS = (AccessCode, Availability, Booking)

# Fields that must be unique across every row of a kind
UNIQUE_FIELDS = {AccessCode: ("code",)}


@dataclass(frozen=True)
class Range:
    """Half-open ``[start, stop)`` filter value for ``RecordStore.list``."""

    start: Any
    stop: Any

    def __contains__(self, value) -> bool:
        return self.start <= value < self.stop


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _plain(value):
    return value.value if isinstance(value, Enum) else value


class RecordStore(ABC):
    """Persistence collaborator used by every service.

    ``kind`` is one of the entity classes in ``agenda.schemas``. ``where`` maps
    field names to an expected value or a ``Range``. ``order_by`` lists field
    names, a leading ``-`` meaning descending.
    """

    @abstractmethod
    def insert(self, kind, **fields):
        """Persist a new record; ``id`` and ``created_at`` are assigned here."""

    @abstractmethod
    def get(self, kind, record_id: int):
        ...

    @abstractmethod
    def update(self, kind, record_id: int, **fields):
        """Return the updated record, or None if it does not exist."""

    @abstractmethod
    def delete(self, kind, record_id: int) -> bool:
        ...

    @abstractmethod
    def list(self, kind, where: Optional[Mapping[str, Any]] = None, order_by: Sequence[str] = ()) -> list:
        ...

    @abstractmethod
    def decrement_remaining(self, availability_id: int) -> bool:
        """Take one slot from an availability if any is left.

        Returns False when the availability is missing or already at zero.
        """

    @abstractmethod
    def delete_unbooked_availability(self, availability_id: int) -> bool:
        """Delete an availability only if no booking references it.

        The check and the delete happen as one step. Returns False when the
        availability is missing or has bookings.
        """

    @abstractmethod
    def transaction(self):
        """Context manager grouping writes into one all-or-nothing unit."""

    def find_one(self, kind, **where):
        rows = self.list(kind, where=where)
        return rows[0] if rows else None


class MemoryRecordStore(RecordStore):
    def __init__(self):
        self._lock = threading.RLock()
        self._tables: dict = {kind: {} for kind in KINDS}
        self._next_id: dict = {kind: 1 for kind in KINDS}

    def insert(self, kind, **fields):
        with self._lock:
            table = self._tables[kind]
            for field in UNIQUE_FIELDS.get(kind, ()):
                if any(getattr(r, field) == fields.get(field) for r in table.values()):
                    raise Conflict(f"Duplicate {kind.__name__} {field}")
            record_id = self._next_id[kind]
            record = kind.model_validate({**fields, "id": record_id, "created_at": _now()})
            table[record_id] = record
            self._next_id[kind] = record_id + 1
            return record.model_copy()

    def get(self, kind, record_id: int):
        with self._lock:
            record = self._tables[kind].get(record_id)
            return record.model_copy() if record else None

    def update(self, kind, record_id: int, **fields):
        with self._lock:
            table = self._tables[kind]
            record = table.get(record_id)
            if record is None:
                return None
            updated = kind.model_validate({**record.model_dump(), **fields})
            table[record_id] = updated
            return updated.model_copy()

    def delete(self, kind, record_id: int) -> bool:
        with self._lock:
            return self._tables[kind].pop(record_id, None) is not None

    def list(self, kind, where=None, order_by=()) -> list:
        where = where or {}
        with self._lock:
            rows = [r.model_copy() for r in self._tables[kind].values() if _matches(r, where)]
        # stable sorts, least significant key first
        for key in reversed(order_by):
            field = key.lstrip("-")
            rows.sort(key=lambda r: getattr(r, field), reverse=key.startswith("-"))
        return rows

    def decrement_remaining(self, availability_id: int) -> bool:
        with self._lock:
            record = self._tables[Availability].get(availability_id)
            if record is None or record.remaining_slots <= 0:
                return False
            self._tables[Availability][availability_id] = record.model_copy(
                update={"remaining_slots": record.remaining_slots - 1}
            )
            return True

    def delete_unbooked_availability(self, availability_id: int) -> bool:
        with self._lock:
            if availability_id not in self._tables[Availability]:
                return False
            if any(b.availability_id == availability_id for b in self._tables[Booking].values()):
                return False
            del self._tables[Availability][availability_id]
            return True

    @contextmanager
    def transaction(self) -> Iterator["MemoryRecordStore"]:
        with self._lock:
            snapshot = copy.deepcopy((self._tables, self._next_id))
            try:
                yield self
            except BaseException:
                self._tables, self._next_id = snapshot
                raise


def _matches(record, where: Mapping[str, Any]) -> bool:
    for field, expected in where.items():
        value = getattr(record, field)
        if isinstance(expected, Range):
            if value not in expected:
                return False
        elif value != expected:
            return False
    return True


class SqlRecordStore(RecordStore):
    """Record store backed by one SQLAlchemy session (one per request)."""

    RECORDS = {
        AccessCode: AccessCodeRecord,
        Availability: AvailabilityRecord,
        Booking: BookingRecord,
    }

    def __init__(self, session: Session):
        self.session = session
        self._depth = 0

    def _save(self):
        # inside transaction(): flush only, the outermost block commits
        try:
            if self._depth:
                self.session.flush()
            else:
                self.session.commit()
        except SQLAlchemyError as exc:
            if not self._depth:
                self.session.rollback()
            logger.error("Database write failed: %s", exc)
            raise PersistenceFailure() from exc

    def insert(self, kind, **fields):
        row = self.RECORDS[kind](**{k: _plain(v) for k, v in fields.items()}, created_at=_now())
        self.session.add(row)
        try:
            self.session.flush()
        except IntegrityError as exc:
            if not self._depth:
                self.session.rollback()
            raise Conflict(f"Duplicate {kind.__name__}") from exc
        except SQLAlchemyError as exc:
            if not self._depth:
                self.session.rollback()
            raise PersistenceFailure() from exc
        self._save()
        return kind.model_validate(row)

    def get(self, kind, record_id: int):
        row = self.session.get(self.RECORDS[kind], record_id, populate_existing=True)
        return kind.model_validate(row) if row is not None else None

    def update(self, kind, record_id: int, **fields):
        row = self.session.get(self.RECORDS[kind], record_id, populate_existing=True)
        if row is None:
            return None
        for field, value in fields.items():
            setattr(row, field, _plain(value))
        self._save()
        return kind.model_validate(row)

    def delete(self, kind, record_id: int) -> bool:
        row = self.session.get(self.RECORDS[kind], record_id)
        if row is None:
            return False
        self.session.delete(row)
        self._save()
        return True

    def list(self, kind, where=None, order_by=()) -> list:
        record = self.RECORDS[kind]
        stmt = select(record)
        for field, expected in (where or {}).items():
            column = getattr(record, field)
            if isinstance(expected, Range):
                stmt = stmt.where(column >= expected.start, column < expected.stop)
            else:
                stmt = stmt.where(column == _plain(expected))
        for key in order_by:
            column = getattr(record, key.lstrip("-"))
            stmt = stmt.order_by(column.desc() if key.startswith("-") else column.asc())
        rows = self.session.scalars(stmt.execution_options(populate_existing=True)).all()
        return [kind.model_validate(row) for row in rows]

    def decrement_remaining(self, availability_id: int) -> bool:
        # Single conditional UPDATE; the affected-row count tells us who won the race.
        sql = text("""
            UPDATE availabilities SET remaining_slots = remaining_slots - 1
            WHERE id = :availability_id AND remaining_slots > 0
        """)
        try:
            res = self.session.execute(sql, {"availability_id": availability_id})
        except SQLAlchemyError as exc:
            if not self._depth:
                self.session.rollback()
            raise PersistenceFailure() from exc
        self._save()
        return res.rowcount == 1

    def delete_unbooked_availability(self, availability_id: int) -> bool:
        sql = text("""
            DELETE FROM availabilities
            WHERE id = :availability_id
              AND NOT EXISTS (SELECT 1 FROM bookings WHERE availability_id = :availability_id)
        """)
        try:
            res = self.session.execute(sql, {"availability_id": availability_id})
        except SQLAlchemyError as exc:
            if not self._depth:
                self.session.rollback()
            raise PersistenceFailure() from exc
        self._save()
        return res.rowcount == 1

    @contextmanager
    def transaction(self) -> Iterator["SqlRecordStore"]:
        self._depth += 1
        try:
            yield self
        except BaseException:
            self._depth -= 1
            if not self._depth:
                self.session.rollback()
            raise
        else:
            self._depth -= 1
            if not self._depth:
                self._save()
