"""
Entity stores: one cached, live-updating list per table.

A store owns ``rows`` and ``is_loading``, exposes CRUD that never raises
(every call returns an ``OperationResult``), and keeps its cache current from
the change feed:

    with PatientStore(client) as store:      # fetch_all() + open()
        store.create({"name": "Ana"})
        store.rows

Mutation results and feed events both go through ``_patch``, which replaces
rows by id, so applying the same change twice leaves the cache unchanged.
A gap in the table's event sequence means an event was missed, and the
store falls back to a full re-fetch.
"""
import logging
import threading
import uuid
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from ..core.config import settings
from ..datastore.client import BackendClient, QueryBuilder
from ..datastore.errors import BackendError, ErrorCode
from ..datastore.realtime import Channel, ChangeEvent, ChangeType
from ..services.notifications import Notifier

logger = logging.getLogger(__name__)


@dataclass
class OperationResult:
    success: bool
    data: Any = None
    error: Optional[str] = None
    code: Optional[ErrorCode] = None


class SubscriptionState(str, Enum):
    IDLE = "idle"
    SUBSCRIBING = "subscribing"
    SUBSCRIBED = "subscribed"
    CLEANING = "cleaning"


DEFAULT_MESSAGES = {
    "fetch_error": "Erro ao carregar registros",
    "create_success": "Registro criado com sucesso",
    "create_error": "Erro ao criar registro",
    "update_success": "Registro atualizado com sucesso",
    "update_error": "Erro ao atualizar registro",
    "delete_success": "Registro removido com sucesso",
    "delete_error": "Erro ao remover registro",
}


def _sort_key(column: str):
    def key(row: dict):
        value = row.get(column)
        return (value is None, value if value is not None else 0)
    return key


class EntityStore:
    table: str = ""
    select_columns: str = "*"
    # (column, descending) pairs, applied server-side and after every local patch
    order_by: Sequence[Tuple[str, bool]] = (("created_at", True),)
    base_filters: Dict[str, Any] = {}
    messages: Dict[str, str] = {}

    def __init__(
        self,
        client: BackendClient,
        notifier: Optional[Notifier] = None,
        refetch_debounce: Optional[float] = None,
        **scope,
    ):
        self.client = client
        self.notifier = notifier or Notifier()
        self.refetch_debounce = (
            settings.REALTIME_REFETCH_DEBOUNCE_SECONDS if refetch_debounce is None else refetch_debounce
        )
        self.filters = {**self.base_filters, **{k: v for k, v in scope.items() if v is not None}}
        self.rows: List[dict] = []
        self.is_loading = False
        self.subscription_state = SubscriptionState.IDLE
        self.channel: Optional[Channel] = None
        self._messages = {**DEFAULT_MESSAGES, **self.messages}
        self._lock = threading.RLock()
        self._last_sequence = 0
        self._refetch_timer: Optional[threading.Timer] = None

    # -- context manager ------------------------------------------------------

    def __enter__(self):
        self.fetch_all()
        self.open()
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()

    # -- helpers --------------------------------------------------------------

    def _query(self) -> QueryBuilder:
        query = self.client.table(self.table).select(self.select_columns)
        for column, value in self.filters.items():
            query = query.eq(column, value)
        for column, desc in self.order_by:
            query = query.order(column, desc=desc)
        return query

    def _fail(self, key: str, exc: Exception) -> OperationResult:
        message = self._messages[key]
        if isinstance(exc, BackendError):
            logger.error("%s on %s [%s]: %s", message, self.table, exc.code.value, exc.message)
            self.notifier.error(f"{message}: {exc.message}")
            return OperationResult(success=False, error=exc.message, code=exc.code)
        logger.exception("%s on %s", message, self.table)
        self.notifier.error(message)
        return OperationResult(success=False, error=str(exc) or message, code=ErrorCode.INTERNAL)

    def _run(self, key: str, action: Callable[[], Any]) -> OperationResult:
        try:
            data = action()
        except Exception as exc:
            return self._fail(f"{key}_error", exc)
        success = self._messages.get(f"{key}_success")
        if success:
            self.notifier.success(success)
        return OperationResult(success=True, data=data)

    def matches(self, row: dict) -> bool:
        return all(row.get(column) == value for column, value in self.filters.items())

    def _sort(self) -> None:
        for column, desc in reversed(list(self.order_by)):
            self.rows.sort(key=_sort_key(column), reverse=desc)

    def _hydrate(self, row: dict) -> Optional[dict]:
        """Re-read a changed row with its embedded relations, when the store selects any."""
        if "(" not in self.select_columns:
            return row
        return (
            self.client.table(self.table)
            .select(self.select_columns)
            .eq("id", row["id"])
            .maybe_single()
            .execute()
            .data
        )

    def _patch(self, row: Optional[dict], row_id: Optional[str] = None) -> None:
        row_id = row["id"] if row else row_id
        with self._lock:
            remaining = [r for r in self.rows if r.get("id") != row_id]
            if row is not None and self.matches(row):
                index = next((i for i, r in enumerate(self.rows) if r.get("id") == row_id), None)
                if index is None:
                    remaining.append(row)
                else:
                    remaining.insert(index, row)
            self.rows = remaining
            self._sort()

    def find(self, row_id: str) -> Optional[dict]:
        with self._lock:
            return next((r for r in self.rows if r.get("id") == row_id), None)

    # -- CRUD -----------------------------------------------------------------

    def fetch_all(self) -> OperationResult:
        self.is_loading = True
        try:
            sequence = self.client.feed.current_sequence(self.table)
            rows = self._query().execute().data
        except Exception as exc:
            return self._fail("fetch_error", exc)
        finally:
            self.is_loading = False
        with self._lock:
            self.rows = rows
            self._last_sequence = sequence
        return OperationResult(success=True, data=rows)

    def prepare_create(self, data: dict) -> dict:
        return dict(data)

    def create(self, data: dict) -> OperationResult:
        def action():
            rows = self.client.table(self.table).insert(self.prepare_create(data)).select(self.select_columns).execute().data
            self._patch(rows[0])
            return rows[0]
        return self._run("create", action)

    def update(self, row_id: str, changes: dict) -> OperationResult:
        def action():
            rows = (
                self.client.table(self.table)
                .update(dict(changes))
                .eq("id", row_id)
                .select(self.select_columns)
                .execute()
                .data
            )
            if not rows:
                raise BackendError(f"{self.table} {row_id} not found", ErrorCode.NOT_FOUND)
            self._patch(rows[0])
            return rows[0]
        return self._run("update", action)

    def delete(self, row_id: str) -> OperationResult:
        def action():
            rows = self.client.table(self.table).delete().eq("id", row_id).execute().data
            if not rows:
                raise BackendError(f"{self.table} {row_id} not found", ErrorCode.NOT_FOUND)
            self._patch(None, row_id)
            return rows[0]
        return self._run("delete", action)

    def soft_delete(self, row_id: str) -> OperationResult:
        """Flip ``is_active`` off; stores that filter on it drop the row from the cache."""
        def action():
            rows = self.client.table(self.table).update({"is_active": False}).eq("id", row_id).execute().data
            if not rows:
                raise BackendError(f"{self.table} {row_id} not found", ErrorCode.NOT_FOUND)
            self._patch(self._hydrate(rows[0]), row_id)
            return rows[0]
        return self._run("delete", action)

    def run_procedure(self, key: str, procedure: str, params: dict, result_key: Optional[str] = None) -> OperationResult:
        """Run a server procedure, then patch the row it returns into the cache."""
        def action():
            data = self.client.rpc(procedure, params).data
            row = data[result_key] if result_key else data
            self._patch(self._hydrate(row), row["id"])
            return data
        return self._run(key, action)

    # -- change subscription --------------------------------------------------

    def open(self) -> bool:
        with self._lock:
            if self.subscription_state != SubscriptionState.IDLE:
                logger.debug("%s store already %s; open() ignored", self.table, self.subscription_state.value)
                return False
            self.subscription_state = SubscriptionState.SUBSCRIBING
        try:
            channel = self.client.channel(f"{self.table}-{uuid.uuid4().hex}")
            channel.on(ChangeType.ALL, self.table, self._on_change).subscribe()
        except Exception:
            self.subscription_state = SubscriptionState.IDLE
            raise
        with self._lock:
            self.channel = channel
            self.subscription_state = SubscriptionState.SUBSCRIBED
        logger.debug("Subscribed %s", channel.name)
        return True

    def close(self) -> None:
        with self._lock:
            if self.subscription_state != SubscriptionState.SUBSCRIBED:
                return
            self.subscription_state = SubscriptionState.CLEANING
            channel, self.channel = self.channel, None
            if self._refetch_timer is not None:
                self._refetch_timer.cancel()
                self._refetch_timer = None
        if channel is not None:
            self.client.remove_channel(channel)
        with self._lock:
            self.subscription_state = SubscriptionState.IDLE

    def _on_change(self, event: ChangeEvent) -> None:
        with self._lock:
            if self.subscription_state != SubscriptionState.SUBSCRIBED:
                return
            if event.sequence <= self._last_sequence:
                return
            if event.sequence != self._last_sequence + 1:
                logger.info(
                    "%s feed gap (expected %s, got %s); re-fetching",
                    self.table, self._last_sequence + 1, event.sequence,
                )
                self._last_sequence = event.sequence
                self._schedule_refetch()
                return
            self._last_sequence = event.sequence
        if event.type == ChangeType.DELETE:
            self._patch(None, event.row.get("id"))
        else:
            self._patch(self._hydrate(event.new), event.new.get("id"))

    def _schedule_refetch(self) -> None:
        if self.refetch_debounce <= 0:
            self.fetch_all()
            return
        with self._lock:
            if self._refetch_timer is not None:
                self._refetch_timer.cancel()
            self._refetch_timer = threading.Timer(self.refetch_debounce, self._debounced_refetch)
            self._refetch_timer.daemon = True
            self._refetch_timer.start()

    def _debounced_refetch(self) -> None:
        with self._lock:
            self._refetch_timer = None
            if self.subscription_state != SubscriptionState.SUBSCRIBED:
                return
        self.fetch_all()
