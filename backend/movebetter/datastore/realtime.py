"""
Change feed: push notifications for inserts, updates and deletes per table.

Writers publish after commit. Every event carries a per-table sequence number
so subscribers can spot a missed event and fall back to a full re-fetch.
"""
import logging
import threading
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Callable, Dict, List, Optional, Tuple

logger = logging.getLogger(__name__)


class ChangeType(str, Enum):
    INSERT = "INSERT"
    UPDATE = "UPDATE"
    DELETE = "DELETE"
    ALL = "*"


class ChannelState(str, Enum):
    CLOSED = "closed"
    JOINED = "joined"


@dataclass(frozen=True)
class ChangeEvent:
    table: str
    type: ChangeType
    sequence: int
    new: Optional[dict] = None
    old: Optional[dict] = None
    commit_timestamp: datetime = field(default_factory=datetime.utcnow)

    @property
    def row(self) -> dict:
        return self.new if self.new is not None else (self.old or {})


def parse_filter(expression: str) -> Tuple[str, str, str]:
    """Parse ``column=op.value`` (``eq`` / ``neq``) into its parts."""
    try:
        column, rest = expression.split("=", 1)
        op, value = rest.split(".", 1)
    except ValueError:
        raise ValueError(f"Invalid change filter: {expression!r}")
    if op not in ("eq", "neq"):
        raise ValueError(f"Unsupported change filter operator: {op!r}")
    return column.strip(), op, value


def _matches(expression: Optional[str], event: ChangeEvent) -> bool:
    if not expression:
        return True
    column, op, value = parse_filter(expression)
    current = event.row.get(column)
    equal = current is not None and str(current) == value
    return equal if op == "eq" else not equal


@dataclass
class _Binding:
    event: ChangeType
    table: str
    callback: Callable[[ChangeEvent], None]
    filter: Optional[str] = None

    def accepts(self, change: ChangeEvent) -> bool:
        if self.table != change.table:
            return False
        if self.event != ChangeType.ALL and self.event != change.type:
            return False
        return _matches(self.filter, change)


class Channel:
    """A named group of change handlers, joined to the feed on ``subscribe()``."""

    def __init__(self, feed: "ChangeFeed", name: str):
        self.feed = feed
        self.name = name
        self.state = ChannelState.CLOSED
        self._bindings: List[_Binding] = []

    def on(
        self,
        event: ChangeType,
        table: str,
        callback: Callable[[ChangeEvent], None],
        filter: Optional[str] = None,
    ) -> "Channel":
        if filter:
            parse_filter(filter)
        self._bindings.append(_Binding(ChangeType(event), table, callback, filter))
        return self

    def subscribe(self) -> "Channel":
        self.feed._join(self)
        return self

    def unsubscribe(self) -> None:
        self.feed.remove_channel(self)

    def dispatch(self, change: ChangeEvent) -> None:
        for binding in self._bindings:
            if not binding.accepts(change):
                continue
            try:
                binding.callback(change)
            except Exception:
                # A broken subscriber must not undo a write that already committed
                logger.exception("Change handler failed on channel %s (%s %s)", self.name, change.type, change.table)


class ChangeFeed:
    def __init__(self):
        self._lock = threading.RLock()
        self._channels: Dict[str, Channel] = {}
        self._sequences: Dict[str, int] = {}

    def channel(self, name: str) -> Channel:
        with self._lock:
            if name in self._channels:
                raise ValueError(f"Channel name already in use: {name}")
        return Channel(self, name)

    def _join(self, channel: Channel) -> None:
        with self._lock:
            existing = self._channels.get(channel.name)
            if existing is not None and existing is not channel:
                raise ValueError(f"Channel name already in use: {channel.name}")
            self._channels[channel.name] = channel
            channel.state = ChannelState.JOINED
        logger.debug("Channel %s joined", channel.name)

    def remove_channel(self, channel: Channel) -> None:
        with self._lock:
            if self._channels.get(channel.name) is channel:
                del self._channels[channel.name]
            channel.state = ChannelState.CLOSED
        logger.debug("Channel %s removed", channel.name)

    @property
    def channel_names(self) -> List[str]:
        with self._lock:
            return sorted(self._channels)

    def current_sequence(self, table: str) -> int:
        with self._lock:
            return self._sequences.get(table, 0)

    def publish(
        self,
        table: str,
        change_type: ChangeType,
        new: Optional[dict] = None,
        old: Optional[dict] = None,
    ) -> ChangeEvent:
        # Delivery happens under the lock so subscribers see each table's events in sequence order
        with self._lock:
            sequence = self._sequences.get(table, 0) + 1
            self._sequences[table] = sequence
            change = ChangeEvent(table=table, type=ChangeType(change_type), sequence=sequence, new=new, old=old)
            for channel in list(self._channels.values()):
                channel.dispatch(change)
        return change
