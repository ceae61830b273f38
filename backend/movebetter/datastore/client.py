"""
Table client for the clinic datastore.

Gives every caller the same PostgREST-style surface a hosted backend exposes:

    client.table("patients").select("*").eq("status", "active").order("name").execute()
    client.table("financial_transactions").insert(row).select("*, financial_categories(name, color)").single().execute()
    client.rpc("create_evolution", {"evolution": {...}})

Writes run in one transaction each; change events are published only after
the commit succeeds.
"""
import logging
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import date, datetime, time, timezone
from decimal import Decimal, InvalidOperation
from typing import Any, Callable, Dict, Iterator, List, Optional, Tuple, Union

from sqlalchemy import inspect
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..models import Base
from .errors import BackendError, ErrorCode, translate_db_error
from .realtime import Channel, ChangeFeed, ChangeType

logger = logging.getLogger(__name__)


@dataclass
class APIResponse:
    data: Any
    count: Optional[int] = None


def registered_tables() -> Dict[str, type]:
    return {mapper.class_.__tablename__: mapper.class_ for mapper in Base.registry.mappers}


def dependent_keys(table: str) -> List[Tuple[type, str, str, str]]:
    """``(model, column, referenced column, action)`` for FKs into ``table`` that cascade or null out."""
    found = []
    for model in registered_tables().values():
        for column in model.__table__.columns:
            for fk in column.foreign_keys:
                action = (fk.ondelete or "").upper()
                if fk.column.table.name == table and action in ("CASCADE", "SET NULL"):
                    found.append((model, column.key, fk.column.key, action))
    return found


def row_to_dict(obj) -> dict:
    row = {}
    for attr in inspect(obj).mapper.column_attrs:
        value = getattr(obj, attr.key)
        row[attr.key] = list(value) if isinstance(value, list) else value
    return row


def coerce_value(column, value):
    """Convert JSON-ish input (ISO strings, floats) to the column's Python type."""
    if value is None:
        return None
    try:
        python_type = column.type.python_type
    except NotImplementedError:
        return value
    try:
        if python_type is datetime and isinstance(value, str):
            parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
            if parsed.tzinfo is not None:
                parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
            return parsed
        if python_type is date and isinstance(value, str):
            return date.fromisoformat(value[:10])
        if python_type is date and isinstance(value, datetime):
            return value.date()
        if python_type is time and isinstance(value, str):
            return time.fromisoformat(value)
        if python_type is Decimal and not isinstance(value, Decimal):
            return Decimal(str(value))
    except (ValueError, InvalidOperation):
        raise BackendError(
            f"Invalid value for column {column.name}: {value!r}",
            ErrorCode.INVALID_REQUEST,
        )
    return value


def _split_top_level(columns: str) -> List[str]:
    parts, depth, current = [], 0, []
    for char in columns:
        if char == "(":
            depth += 1
        elif char == ")":
            depth -= 1
        if char == "," and depth == 0:
            parts.append("".join(current).strip())
            current = []
        else:
            current.append(char)
    tail = "".join(current).strip()
    if tail:
        parts.append(tail)
    return [p for p in parts if p]


def parse_columns(select: str) -> Tuple[List[str], Dict[str, List[str]]]:
    """Split ``"*, patients(name)"`` into plain columns and embedded relations."""
    columns: List[str] = []
    embeds: Dict[str, List[str]] = {}
    for part in _split_top_level(select or "*"):
        if "(" in part:
            name, inner = part.split("(", 1)
            embeds[name.strip()] = [c.strip() for c in inner.rstrip(")").split(",") if c.strip()]
        else:
            columns.append(part)
    return columns or ["*"], embeds


class UnitOfWork:
    """One database transaction plus the change events it will publish."""

    def __init__(self, session: Session):
        self.session = session
        self.changes: List[Tuple[str, ChangeType, Optional[dict], Optional[dict]]] = []

    def record_insert(self, obj) -> dict:
        self.session.flush()
        self.session.refresh(obj)
        row = row_to_dict(obj)
        self.changes.append((obj.__tablename__, ChangeType.INSERT, row, None))
        return row

    def record_update(self, obj, old: dict) -> dict:
        self.session.flush()
        self.session.refresh(obj)
        row = row_to_dict(obj)
        self.changes.append((obj.__tablename__, ChangeType.UPDATE, row, old))
        return row

    def record_delete(self, obj) -> dict:
        self._record_dependents(obj)
        old = row_to_dict(obj)
        self.session.delete(obj)
        self.session.flush()
        self.changes.append((obj.__tablename__, ChangeType.DELETE, None, old))
        return old

    def _record_dependents(self, obj) -> None:
        # Rows the database would cascade or null out get their own events.
        for model, column, referenced, action in dependent_keys(obj.__tablename__):
            key = getattr(obj, referenced)
            for child in self.session.query(model).filter(getattr(model, column) == key).all():
                if action == "CASCADE":
                    self.record_delete(child)
                else:
                    old = row_to_dict(child)
                    setattr(child, column, None)
                    self.record_update(child, old)


Procedure = Callable[..., Any]


class BackendClient:
    def __init__(
        self,
        session_factory: Callable[[], Session],
        feed: Optional[ChangeFeed] = None,
        procedures: Optional[Dict[str, Procedure]] = None,
    ):
        self.session_factory = session_factory
        self.feed = feed or ChangeFeed()
        if procedures is None:
            from .procedures import PROCEDURES
            procedures = PROCEDURES
        self.procedures = dict(procedures)
        self._tables = registered_tables()

    # -- tables ---------------------------------------------------------------

    def model_for(self, table: str):
        try:
            return self._tables[table]
        except KeyError:
            raise BackendError(f"Unknown table: {table}", ErrorCode.INVALID_REQUEST)

    def table(self, name: str) -> "QueryBuilder":
        return QueryBuilder(self, name)

    from_ = table

    # -- transactions ---------------------------------------------------------

    @contextmanager
    def transaction(self) -> Iterator[UnitOfWork]:
        session = self.session_factory()
        uow = UnitOfWork(session)
        try:
            yield uow
            session.commit()
        except BackendError:
            session.rollback()
            raise
        except SQLAlchemyError as exc:
            session.rollback()
            error = translate_db_error(exc)
            logger.warning("Transaction rolled back (%s): %s", error.code.value, error.details)
            raise error
        finally:
            session.close()
        for table, change_type, new, old in uow.changes:
            self.feed.publish(table, change_type, new=new, old=old)

    @contextmanager
    def read_session(self) -> Iterator[Session]:
        session = self.session_factory()
        try:
            yield session
        except SQLAlchemyError as exc:
            raise translate_db_error(exc)
        finally:
            session.close()

    # -- procedures -----------------------------------------------------------

    def rpc(self, name: str, params: Optional[dict] = None) -> APIResponse:
        procedure = self.procedures.get(name)
        if procedure is None:
            raise BackendError(f"Unknown procedure: {name}", ErrorCode.INVALID_REQUEST)
        with self.transaction() as uow:
            data = procedure(uow, **(params or {}))
        return APIResponse(data=data)

    # -- change feed ----------------------------------------------------------

    def channel(self, name: str) -> Channel:
        return self.feed.channel(name)

    def remove_channel(self, channel: Channel) -> None:
        self.feed.remove_channel(channel)


_OPERATORS = {
    "eq": lambda col, v: col == v,
    "neq": lambda col, v: col != v,
    "gt": lambda col, v: col > v,
    "gte": lambda col, v: col >= v,
    "lt": lambda col, v: col < v,
    "lte": lambda col, v: col <= v,
    "in": lambda col, v: col.in_(v),
    "ilike": lambda col, v: col.ilike(v),
    "is": lambda col, v: col.is_(v),
}


class QueryBuilder:
    """Chainable request against a single table; nothing runs until ``execute()``."""

    def __init__(self, client: BackendClient, table: str):
        self.client = client
        self.table_name = table
        self.model = client.model_for(table)
        self._mode: Optional[str] = None
        self._values: Union[dict, List[dict], None] = None
        self._columns = "*"
        self._count: Optional[str] = None
        self._filters: List[Tuple[str, str, Any]] = []
        self._order: List[Tuple[str, bool]] = []
        self._limit: Optional[int] = None
        self._single: Optional[str] = None

    # -- verbs ----------------------------------------------------------------

    def select(self, columns: str = "*", count: Optional[str] = None) -> "QueryBuilder":
        if self._mode is None:
            self._mode = "select"
        self._columns = columns
        self._count = count
        return self

    def insert(self, values: Union[dict, List[dict]]) -> "QueryBuilder":
        self._mode = "insert"
        self._values = values
        return self

    def update(self, values: dict) -> "QueryBuilder":
        self._mode = "update"
        self._values = values
        return self

    def delete(self) -> "QueryBuilder":
        self._mode = "delete"
        return self

    # -- modifiers ------------------------------------------------------------

    def _filter(self, op: str, column: str, value) -> "QueryBuilder":
        self._filters.append((op, column, value))
        return self

    def eq(self, column: str, value) -> "QueryBuilder":
        return self._filter("eq", column, value)

    def neq(self, column: str, value) -> "QueryBuilder":
        return self._filter("neq", column, value)

    def gt(self, column: str, value) -> "QueryBuilder":
        return self._filter("gt", column, value)

    def gte(self, column: str, value) -> "QueryBuilder":
        return self._filter("gte", column, value)

    def lt(self, column: str, value) -> "QueryBuilder":
        return self._filter("lt", column, value)

    def lte(self, column: str, value) -> "QueryBuilder":
        return self._filter("lte", column, value)

    def in_(self, column: str, values) -> "QueryBuilder":
        return self._filter("in", column, list(values))

    def ilike(self, column: str, pattern: str) -> "QueryBuilder":
        return self._filter("ilike", column, pattern)

    def is_(self, column: str, value) -> "QueryBuilder":
        return self._filter("is", column, value)

    def order(self, column: str, desc: bool = False) -> "QueryBuilder":
        self._column(column)
        self._order.append((column, desc))
        return self

    def limit(self, count: int) -> "QueryBuilder":
        self._limit = count
        return self

    def single(self) -> "QueryBuilder":
        self._single = "single"
        return self

    def maybe_single(self) -> "QueryBuilder":
        self._single = "maybe"
        return self

    # -- execution ------------------------------------------------------------

    def execute(self) -> APIResponse:
        if self._mode in (None, "select"):
            rows, count = self._run_select()
        elif self._mode == "insert":
            rows, count = self._run_insert(), None
        elif self._mode == "update":
            rows, count = self._run_update(), None
        else:
            rows, count = self._run_delete(), None
        return APIResponse(data=self._shape(rows), count=count)

    def _shape(self, rows: List[dict]):
        if self._single is None:
            return rows
        if len(rows) == 1:
            return rows[0]
        if not rows and self._single == "maybe":
            return None
        raise BackendError(
            f"JSON object requested, {len(rows)} rows returned from {self.table_name}",
            ErrorCode.NOT_FOUND,
        )

    def _column(self, name: str):
        column = self.model.__table__.columns.get(name)
        if column is None:
            raise BackendError(f"Unknown column {self.table_name}.{name}", ErrorCode.INVALID_REQUEST)
        return column

    def _conditions(self) -> list:
        conditions = []
        for op, name, value in self._filters:
            column = self._column(name)
            if op == "in":
                value = [coerce_value(column, v) for v in value]
            elif op not in ("ilike", "is"):
                value = coerce_value(column, value)
            conditions.append(_OPERATORS[op](getattr(self.model, name), value))
        return conditions

    def _require_filters(self) -> None:
        if not self._filters:
            raise BackendError(
                f"{self._mode} on {self.table_name} requires at least one filter",
                ErrorCode.INVALID_REQUEST,
            )

    def _prepare_values(self, values: dict) -> dict:
        prepared = {}
        for key, value in values.items():
            prepared[key] = coerce_value(self._column(key), value)
        return prepared

    def _run_select(self) -> Tuple[List[dict], Optional[int]]:
        with self.client.read_session() as session:
            query = session.query(self.model).filter(*self._conditions())
            count = query.count() if self._count == "exact" else None
            for name, desc in self._order:
                attr = getattr(self.model, name)
                query = query.order_by(attr.desc() if desc else attr.asc())
            if self._limit is not None:
                query = query.limit(self._limit)
            rows = [row_to_dict(obj) for obj in query.all()]
            return self._project(session, rows), count

    def _run_insert(self) -> List[dict]:
        payload = self._values if isinstance(self._values, list) else [self._values]
        with self.client.transaction() as uow:
            rows = []
            for values in payload:
                obj = self.model(**self._prepare_values(values))
                uow.session.add(obj)
                rows.append(uow.record_insert(obj))
            return self._project(uow.session, rows)

    def _run_update(self) -> List[dict]:
        self._require_filters()
        values = self._prepare_values(self._values or {})
        with self.client.transaction() as uow:
            rows = []
            for obj in uow.session.query(self.model).filter(*self._conditions()).all():
                old = row_to_dict(obj)
                for key, value in values.items():
                    setattr(obj, key, value)
                rows.append(uow.record_update(obj, old))
            return self._project(uow.session, rows)

    def _run_delete(self) -> List[dict]:
        self._require_filters()
        with self.client.transaction() as uow:
            objs = uow.session.query(self.model).filter(*self._conditions()).all()
            return [uow.record_delete(obj) for obj in objs]

    # -- projection & embedding -----------------------------------------------

    def _project(self, session: Session, rows: List[dict]) -> List[dict]:
        columns, embeds = parse_columns(self._columns)
        if "*" not in columns:
            for name in columns:
                self._column(name)
            rows = [{name: row[name] for name in columns} for row in rows]
        for relation, wanted in embeds.items():
            self._embed(session, rows, relation, wanted)
        return rows

    def _foreign_key_to(self, relation: str) -> str:
        for column in self.model.__table__.columns:
            for fk in column.foreign_keys:
                if fk.column.table.name == relation:
                    return column.name
        raise BackendError(
            f"No relationship between {self.table_name} and {relation}",
            ErrorCode.INVALID_REQUEST,
        )

    def _embed(self, session: Session, rows: List[dict], relation: str, wanted: List[str]) -> None:
        related_model = self.client.model_for(relation)
        fk_name = self._foreign_key_to(relation)
        ids = {row.get(fk_name) for row in rows if row.get(fk_name)}
        related = {}
        if ids:
            for obj in session.query(related_model).filter(related_model.id.in_(ids)).all():
                full = row_to_dict(obj)
                related[full["id"]] = full if wanted == ["*"] else {k: full[k] for k in wanted if k in full}
        for row in rows:
            row[relation] = related.get(row.get(fk_name))
