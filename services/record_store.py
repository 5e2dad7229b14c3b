"""
Document-style record store over SQLAlchemy.

Collections map to tables and documents are plain dicts keyed by column name.
Array fields (status history, comments) live in append-only child tables, so an
append is a single INSERT and never rewrites the stored array. Counters are
rows of their own and are incremented in SQL, never read-modify-written.
"""
from __future__ import annotations

import base64
import json
import logging
import uuid
from collections.abc import Iterable, Mapping
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, NamedTuple, Union

from sqlalchemy import and_, delete, func, insert, or_, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from models import (
    Application,
    ApplicationComment,
    ApplicationStatusEntry,
    AuditLog,
    Notification,
    StaffMember,
    StatisticCounter,
)
from services.errors import StorageError, ValidationError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ArrayField:
    model: type
    parent_key: str


COLLECTIONS: dict[str, type] = {
    "applications": Application,
    "notifications": Notification,
    "audit_logs": AuditLog,
    "staff": StaffMember,
}

ARRAY_FIELDS: dict[str, dict[str, ArrayField]] = {
    "applications": {
        "status_history": ArrayField(ApplicationStatusEntry, "application_id"),
        "comments": ArrayField(ApplicationComment, "application_id"),
    },
}

# Child-table bookkeeping columns hidden from documents
_ENTRY_HIDDEN = {"seq"}

_OPERATORS = {
    "==": lambda c, v: c.is_(None) if v is None else c == v,
    "!=": lambda c, v: c.is_not(None) if v is None else c != v,
    ">": lambda c, v: c > v,
    ">=": lambda c, v: c >= v,
    "<": lambda c, v: c < v,
    "<=": lambda c, v: c <= v,
    "in": lambda c, v: c.in_(list(v)),
}


class Filter(NamedTuple):
    field: str
    op: str
    value: Any


Filters = Union[Mapping[str, Any], Iterable[Filter], None]


@dataclass
class Page:
    items: list[dict[str, Any]] = field(default_factory=list)
    next_cursor: str | None = None


def encode_cursor(value: Any, doc_id: str) -> str:
    """Opaque continuation token for keyset pagination: (order value, id)."""
    if isinstance(value, datetime):
        payload = {"t": "dt", "v": value.isoformat(), "id": doc_id}
    else:
        payload = {"v": value, "id": doc_id}
    raw = json.dumps(payload, separators=(",", ":")).encode()
    return base64.urlsafe_b64encode(raw).decode().rstrip("=")


def decode_cursor(cursor: str) -> tuple[Any, str]:
    try:
        padded = cursor + "=" * (-len(cursor) % 4)
        payload = json.loads(base64.urlsafe_b64decode(padded.encode()))
        value = payload["v"]
        if payload.get("t") == "dt":
            value = datetime.fromisoformat(value)
        return value, payload["id"]
    except (ValueError, KeyError, TypeError) as e:
        raise ValidationError("Invalid pagination cursor", field="cursor") from e


def unflatten(flat: Mapping[str, Any]) -> dict[str, Any]:
    """{"a.b": 1, "a.c": 2} -> {"a": {"b": 1, "c": 2}}"""
    out: dict[str, Any] = {}
    for path, value in flat.items():
        node = out
        *parents, leaf = path.split(".")
        for p in parents:
            node = node.setdefault(p, {})
        node[leaf] = value
    return out


class RecordStore:
    """
    Async persistence adapter. One short transaction per call; the caller
    supplies the session factory so tests and the app can point it at
    different engines.
    """

    def __init__(self, session_factory: async_sessionmaker):
        self._session_factory = session_factory

    @asynccontextmanager
    async def _transaction(self):
        try:
            async with self._session_factory() as session:
                async with session.begin():
                    yield session
        except SQLAlchemyError as e:
            raise StorageError(f"Record store failure: {e}") from e

    # ---- schema helpers ----

    @staticmethod
    def _model(collection: str) -> type:
        try:
            return COLLECTIONS[collection]
        except KeyError:
            raise ValueError(f"Unknown collection '{collection}'") from None

    @staticmethod
    def _array(collection: str, name: str) -> ArrayField:
        try:
            return ARRAY_FIELDS[collection][name]
        except KeyError:
            raise ValueError(f"'{name}' is not an array field of '{collection}'") from None

    @staticmethod
    def _column(model: type, name: str):
        column = model.__table__.columns.get(name)
        if column is None:
            raise ValueError(f"'{model.__tablename__}' has no field '{name}'")
        return getattr(model, name)

    @staticmethod
    def _row_to_doc(obj: Any) -> dict[str, Any]:
        return {c.key: getattr(obj, c.key) for c in obj.__table__.columns}

    @staticmethod
    def _entry_to_doc(obj: Any, spec: ArrayField) -> dict[str, Any]:
        hidden = _ENTRY_HIDDEN | {spec.parent_key}
        return {c.key: getattr(obj, c.key) for c in obj.__table__.columns if c.key not in hidden}

    def _conditions(self, model: type, filters: Filters) -> list:
        if not filters:
            return []
        if isinstance(filters, Mapping):
            filters = [Filter(k, "==", v) for k, v in filters.items()]
        out = []
        for f in filters:
            op = _OPERATORS.get(f.op)
            if op is None:
                raise ValueError(f"Unsupported filter operator '{f.op}'")
            out.append(op(self._column(model, f.field), f.value))
        return out

    async def _attach_arrays(
        self, session: AsyncSession, collection: str, docs: list[dict[str, Any]]
    ) -> None:
        arrays = ARRAY_FIELDS.get(collection) or {}
        if not docs or not arrays:
            return
        by_id = {d["id"]: d for d in docs}
        for name, spec in arrays.items():
            for d in docs:
                d[name] = []
            parent_col = getattr(spec.model, spec.parent_key)
            result = await session.execute(
                select(spec.model).where(parent_col.in_(list(by_id))).order_by(spec.model.seq)
            )
            for row in result.scalars():
                by_id[getattr(row, spec.parent_key)][name].append(self._entry_to_doc(row, spec))

    async def _guarded_update(
        self,
        session: AsyncSession,
        model: type,
        doc_id: str,
        fields: Mapping[str, Any],
        expected: Mapping[str, Any] | None,
    ) -> bool:
        conditions = [model.id == doc_id]
        conditions.extend(self._conditions(model, expected))
        values = dict(fields)
        for name in values:
            self._column(model, name)
        if "updated_at" in model.__table__.columns and "updated_at" not in values:
            values["updated_at"] = datetime.now(timezone.utc)
        if not values:
            found = await session.execute(select(model.id).where(*conditions))
            return found.first() is not None
        result = await session.execute(
            update(model)
            .where(*conditions)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount > 0

    # ---- document contract ----

    async def get(self, collection: str, doc_id: str) -> dict[str, Any] | None:
        model = self._model(collection)
        async with self._transaction() as session:
            obj = await session.get(model, doc_id)
            if obj is None:
                return None
            doc = self._row_to_doc(obj)
            await self._attach_arrays(session, collection, [doc])
            return doc

    async def create(self, collection: str, doc: Mapping[str, Any]) -> str:
        model = self._model(collection)
        arrays = ARRAY_FIELDS.get(collection) or {}
        values = {k: v for k, v in doc.items() if k not in arrays}
        values.setdefault("id", uuid.uuid4().hex)
        for name in values:
            self._column(model, name)
        async with self._transaction() as session:
            session.add(model(**values))
            await session.flush()
            for name, spec in arrays.items():
                for entry in doc.get(name) or []:
                    session.add(spec.model(**{**entry, spec.parent_key: values["id"]}))
        return values["id"]

    async def update_fields(
        self,
        collection: str,
        doc_id: str,
        fields: Mapping[str, Any],
        *,
        expected: Mapping[str, Any] | None = None,
    ) -> bool:
        """
        Set scalar fields in one UPDATE. `expected` turns it into a
        compare-and-set; returns False when no document matched.
        """
        model = self._model(collection)
        async with self._transaction() as session:
            return await self._guarded_update(session, model, doc_id, fields, expected)

    async def append_to_array_field(
        self,
        collection: str,
        doc_id: str,
        name: str,
        entry: Mapping[str, Any],
        *,
        fields: Mapping[str, Any] | None = None,
        expected: Mapping[str, Any] | None = None,
    ) -> bool:
        """
        Append one entry to an array field. The entry insert and the optional
        scalar `fields` update commit together, guarded by `expected`.
        Returns False (and writes nothing) when the guard did not match.
        """
        model = self._model(collection)
        spec = self._array(collection, name)
        async with self._transaction() as session:
            if not await self._guarded_update(session, model, doc_id, fields or {}, expected):
                return False
            await session.execute(insert(spec.model).values(**{**entry, spec.parent_key: doc_id}))
        return True

    async def query(
        self,
        collection: str,
        filters: Filters = None,
        order_by: str = "-created_at",
        cursor: str | None = None,
        limit: int = 20,
        *,
        include_arrays: bool = True,
    ) -> Page:
        """
        Filtered, ordered page of documents. `order_by` takes a field name,
        '-' prefix for descending; the id breaks ties so the cursor is stable
        under concurrent inserts.
        """
        model = self._model(collection)
        descending = order_by.startswith("-")
        order_name = order_by.lstrip("-")
        order_col = self._column(model, order_name)
        id_col = model.id

        stmt = select(model).where(*self._conditions(model, filters))
        if cursor:
            value, last_id = decode_cursor(cursor)
            if descending:
                stmt = stmt.where(or_(order_col < value, and_(order_col == value, id_col < last_id)))
            else:
                stmt = stmt.where(or_(order_col > value, and_(order_col == value, id_col > last_id)))
        if descending:
            stmt = stmt.order_by(order_col.desc(), id_col.desc())
        else:
            stmt = stmt.order_by(order_col.asc(), id_col.asc())
        stmt = stmt.limit(limit + 1)

        async with self._transaction() as session:
            rows = (await session.execute(stmt)).scalars().all()
            docs = [self._row_to_doc(r) for r in rows[:limit]]
            if include_arrays:
                await self._attach_arrays(session, collection, docs)

        next_cursor = None
        if len(rows) > limit and docs:
            last = docs[-1]
            next_cursor = encode_cursor(last[order_name], last["id"])
        return Page(items=docs, next_cursor=next_cursor)

    async def count(self, collection: str, filters: Filters = None) -> int:
        model = self._model(collection)
        stmt = select(func.count()).select_from(model).where(*self._conditions(model, filters))
        async with self._transaction() as session:
            return (await session.execute(stmt)).scalar_one()

    # ---- counters ----

    async def increment_counters(self, doc_id: str, amounts: Mapping[str, int]) -> None:
        """Each counter is incremented atomically and independently of the others."""
        for path, amount in amounts.items():
            if amount:
                await self._increment(doc_id, path, amount)

    async def _increment(self, doc_id: str, path: str, amount: int) -> None:
        for _ in range(2):
            async with self._transaction() as session:
                result = await session.execute(
                    update(StatisticCounter)
                    .where(StatisticCounter.doc_id == doc_id, StatisticCounter.path == path)
                    .values(value=StatisticCounter.value + amount, updated_at=datetime.now(timezone.utc))
                    .execution_options(synchronize_session=False)
                )
                if result.rowcount:
                    return
            try:
                async with self._transaction() as session:
                    await session.execute(
                        insert(StatisticCounter).values(
                            doc_id=doc_id,
                            path=path,
                            value=amount,
                            updated_at=datetime.now(timezone.utc),
                        )
                    )
                return
            except StorageError as e:
                # Another writer created the row first; the UPDATE will find it now
                if not isinstance(e.__cause__, IntegrityError):
                    raise
        raise StorageError(f"Could not increment counter {doc_id}:{path}")

    async def read_counters(self, doc_id: str) -> tuple[dict[str, int], datetime | None]:
        """Flat {path: value} map and the time of the most recent write."""
        async with self._transaction() as session:
            result = await session.execute(
                select(StatisticCounter).where(StatisticCounter.doc_id == doc_id)
            )
            rows = result.scalars().all()
        values = {r.path: r.value for r in rows}
        stamps = [r.updated_at for r in rows if r.updated_at is not None]
        return values, (max(stamps) if stamps else None)

    async def replace_counters(self, doc_id: str, values: Mapping[str, int]) -> None:
        now = datetime.now(timezone.utc)
        async with self._transaction() as session:
            await session.execute(delete(StatisticCounter).where(StatisticCounter.doc_id == doc_id))
            for path, value in values.items():
                session.add(StatisticCounter(doc_id=doc_id, path=path, value=value, updated_at=now))
