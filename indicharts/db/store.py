"""SQLite data store for Indicharts."""

import json
import logging
import sqlite3
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Iterable, Iterator, Optional

from indicharts.alerts.validation import is_duplicate, validate_rule
from indicharts.models import (
    WATCHLIST_ALERT_PREFIX,
    AlertEvent,
    AlertRule,
    AlertState,
    DeviceInfo,
    IndicatorConfig,
    IndicatorSample,
    WatchlistItem,
)

logger = logging.getLogger(__name__)


def _ts(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value is not None else None


def _dt(value: Optional[str]) -> Optional[datetime]:
    return datetime.fromisoformat(value) if value else None


RULE_COLUMNS = (
    "remote_id, symbol, timeframe, indicator, period, indicator_params, levels, "
    "mode, direction, hysteresis, hysteresis_mode, cooldown_sec, active, repeatable, "
    "sound_enabled, custom_sound, description, source, created_at"
)


class DataStore:
    """SQLite-based store for rules, states, events and caches.

    Every public method runs in its own transaction: multi-record writes are
    either fully applied or not at all.
    """

    REQUIRED_TABLES = [
        "alert_rule",
        "alert_state",
        "alert_event",
        "indicator_sample",
        "watchlist",
        "device",
    ]

    def __init__(self, db_path: Path):
        """Initialize the data store.

        Args:
            db_path: Path to the SQLite database file.
        """
        self.db_path = Path(db_path)
        self._ensure_db_dir()
        self._init_schema()

    def _ensure_db_dir(self) -> None:
        """Ensure the database directory exists."""
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

    def _get_connection(self) -> sqlite3.Connection:
        """Get a database connection."""
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys = ON")
        return conn

    @contextmanager
    def _transaction(self) -> Iterator[sqlite3.Cursor]:
        """Yield a cursor; commit on success, roll back on any error."""
        conn = self._get_connection()
        try:
            cursor = conn.cursor()
            yield cursor
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    def _init_schema(self) -> None:
        """Initialize database schema on first run."""
        with self._transaction() as cursor:
            cursor.execute("""
                CREATE TABLE IF NOT EXISTS alert_rule (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    remote_id INTEGER UNIQUE,
                    symbol TEXT NOT NULL,
                    timeframe TEXT NOT NULL,
                    indicator TEXT NOT NULL DEFAULT 'rsi',
                    period INTEGER NOT NULL DEFAULT 14,
                    indicator_params TEXT NOT NULL DEFAULT '{}',
                    levels TEXT NOT NULL,
                    mode TEXT NOT NULL,
                    direction TEXT NOT NULL DEFAULT 'both',
                    hysteresis REAL NOT NULL DEFAULT 0.5,
                    hysteresis_mode TEXT NOT NULL DEFAULT 'absolute',
                    cooldown_sec INTEGER NOT NULL DEFAULT 600,
                    active INTEGER NOT NULL DEFAULT 1,
                    repeatable INTEGER NOT NULL DEFAULT 1,
                    sound_enabled INTEGER NOT NULL DEFAULT 1,
                    custom_sound TEXT,
                    description TEXT,
                    source TEXT NOT NULL DEFAULT 'custom',
                    created_at TEXT NOT NULL
                )
            """)
            cursor.execute("""
                CREATE INDEX IF NOT EXISTS idx_alert_rule_symbol_timeframe
                ON alert_rule(symbol, timeframe)
            """)

            # One state per rule
            cursor.execute("""
                CREATE TABLE IF NOT EXISTS alert_state (
                    rule_id INTEGER PRIMARY KEY
                        REFERENCES alert_rule(id) ON DELETE CASCADE,
                    last_value REAL,
                    last_bar_ts TEXT,
                    last_fire_ts TEXT,
                    last_side TEXT,
                    latches TEXT NOT NULL DEFAULT '[]',
                    indicator_state TEXT NOT NULL DEFAULT '{}'
                )
            """)

            cursor.execute("""
                CREATE TABLE IF NOT EXISTS alert_event (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    rule_id INTEGER NOT NULL
                        REFERENCES alert_rule(id) ON DELETE CASCADE,
                    ts TEXT NOT NULL,
                    indicator TEXT NOT NULL,
                    value REAL NOT NULL,
                    level REAL,
                    side TEXT NOT NULL,
                    bar_ts TEXT,
                    symbol TEXT NOT NULL,
                    message TEXT NOT NULL DEFAULT '',
                    is_read INTEGER NOT NULL DEFAULT 0
                )
            """)
            cursor.execute("""
                CREATE INDEX IF NOT EXISTS idx_alert_event_rule_id
                ON alert_event(rule_id)
            """)

            cursor.execute("""
                CREATE TABLE IF NOT EXISTS indicator_sample (
                    symbol TEXT NOT NULL,
                    timeframe TEXT NOT NULL,
                    config_key TEXT NOT NULL,
                    timestamp TEXT NOT NULL,
                    value REAL,
                    close REAL NOT NULL,
                    state TEXT NOT NULL DEFAULT '{}',
                    PRIMARY KEY (symbol, timeframe, config_key)
                )
            """)

            cursor.execute("""
                CREATE TABLE IF NOT EXISTS watchlist (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    symbol TEXT NOT NULL UNIQUE,
                    created_at TEXT NOT NULL
                )
            """)

            cursor.execute("""
                CREATE TABLE IF NOT EXISTS device (
                    device_id TEXT PRIMARY KEY,
                    fcm_token TEXT NOT NULL,
                    platform TEXT NOT NULL,
                    user_id TEXT NOT NULL,
                    created_at TEXT NOT NULL,
                    is_active INTEGER NOT NULL DEFAULT 1
                )
            """)

    def get_tables(self) -> list[str]:
        """Get list of all tables in the database."""
        with self._transaction() as cursor:
            cursor.execute(
                "SELECT name FROM sqlite_master WHERE type='table' AND name NOT LIKE 'sqlite_%'"
            )
            return [row["name"] for row in cursor.fetchall()]

    # ==================== Alert Rules ====================

    @staticmethod
    def _rule_values(rule: AlertRule) -> tuple:
        return (
            rule.remote_id,
            rule.symbol,
            rule.timeframe,
            rule.indicator.kind,
            rule.indicator.period,
            json.dumps(rule.indicator.params, sort_keys=True),
            json.dumps(list(rule.levels)),
            rule.mode,
            rule.direction,
            rule.hysteresis,
            rule.hysteresis_mode,
            rule.cooldown_sec,
            1 if rule.active else 0,
            1 if rule.repeatable else 0,
            1 if rule.sound_enabled else 0,
            rule.custom_sound,
            rule.description,
            rule.source,
            rule.created_at.isoformat(),
        )

    @staticmethod
    def _row_to_rule(row: sqlite3.Row) -> AlertRule:
        return AlertRule(
            id=row["id"],
            remote_id=row["remote_id"],
            symbol=row["symbol"],
            timeframe=row["timeframe"],
            indicator=IndicatorConfig(
                kind=row["indicator"],
                period=row["period"],
                params=json.loads(row["indicator_params"] or "{}"),
            ),
            levels=json.loads(row["levels"]),
            mode=row["mode"],
            direction=row["direction"],
            hysteresis=row["hysteresis"],
            hysteresis_mode=row["hysteresis_mode"],
            cooldown_sec=row["cooldown_sec"],
            active=bool(row["active"]),
            repeatable=bool(row["repeatable"]),
            sound_enabled=bool(row["sound_enabled"]),
            custom_sound=row["custom_sound"],
            description=row["description"],
            source=row["source"],
            created_at=datetime.fromisoformat(row["created_at"]),
        )

    def _put_rule(self, cursor: sqlite3.Cursor, rule: AlertRule) -> int:
        validate_rule(rule)
        values = self._rule_values(rule)
        if rule.id is None:
            placeholders = ", ".join("?" * len(values))
            cursor.execute(
                f"INSERT INTO alert_rule ({RULE_COLUMNS}) VALUES ({placeholders})",
                values,
            )
            return cursor.lastrowid
        # Update in place: a REPLACE would cascade-delete state and events
        assignments = ", ".join(f"{column} = ?" for column in RULE_COLUMNS.split(", "))
        cursor.execute(f"UPDATE alert_rule SET {assignments} WHERE id = ?", (*values, rule.id))
        if cursor.rowcount == 0:
            placeholders = ", ".join("?" * (len(values) + 1))
            cursor.execute(
                f"INSERT INTO alert_rule (id, {RULE_COLUMNS}) VALUES ({placeholders})",
                (rule.id, *values),
            )
        return rule.id

    def save_rule(self, rule: AlertRule) -> int:
        """Insert or update a rule.

        Args:
            rule: Rule to save. A rule without ID is inserted.

        Returns:
            The ID of the saved rule.

        Raises:
            InvalidConfigurationError: If the rule is malformed.
        """
        with self._transaction() as cursor:
            return self._put_rule(cursor, rule)

    def save_rules(self, rules: list[AlertRule]) -> list[int]:
        """Insert or update several rules in one transaction."""
        with self._transaction() as cursor:
            return [self._put_rule(cursor, rule) for rule in rules]

    def _query_rules(self, where: str = "", params: tuple = ()) -> list[AlertRule]:
        with self._transaction() as cursor:
            cursor.execute(
                f"SELECT id, {RULE_COLUMNS} FROM alert_rule {where} ORDER BY created_at DESC, id DESC",
                params,
            )
            return [self._row_to_rule(row) for row in cursor.fetchall()]

    def get_rule(self, rule_id: int) -> Optional[AlertRule]:
        """Get a rule by ID, or None if it does not exist."""
        rules = self._query_rules("WHERE id = ?", (rule_id,))
        return rules[0] if rules else None

    def get_rule_by_remote_id(self, remote_id: int) -> Optional[AlertRule]:
        rules = self._query_rules("WHERE remote_id = ?", (remote_id,))
        return rules[0] if rules else None

    def get_rules(self, active_only: bool = False) -> list[AlertRule]:
        """Get all rules, newest first."""
        if active_only:
            return self._query_rules("WHERE active = 1")
        return self._query_rules()

    def get_rules_for(
        self, symbol: str, timeframe: str, active_only: bool = True
    ) -> list[AlertRule]:
        """Get the rules evaluated for one symbol/timeframe pair."""
        where = "WHERE symbol = ? AND timeframe = ?"
        if active_only:
            where += " AND active = 1"
        return self._query_rules(where, (symbol, timeframe))

    def get_custom_rules(self, active_only: bool = False) -> list[AlertRule]:
        """Rules created by the user (not generated from the watchlist)."""
        return [r for r in self.get_rules(active_only) if not r.is_watchlist_alert]

    def get_watchlist_rules(self, active_only: bool = False) -> list[AlertRule]:
        """Rules bulk-created from the watchlist."""
        return [r for r in self.get_rules(active_only) if r.is_watchlist_alert]

    def get_pending_rules(self) -> list[AlertRule]:
        """Rules the backend does not know about yet."""
        return self._query_rules("WHERE remote_id IS NULL")

    def find_duplicate(self, candidate: AlertRule) -> Optional[AlertRule]:
        """Find an active rule equivalent to `candidate`.

        Levels are compared with a 0.001 tolerance. The candidate itself
        (same ID) never counts as its own duplicate.
        """
        for rule in self.get_rules_for(candidate.symbol, candidate.timeframe):
            if candidate.id is not None and rule.id == candidate.id:
                continue
            if is_duplicate(candidate, rule):
                return rule
        return None

    def set_rule_remote_id(self, rule_id: int, remote_id: int) -> bool:
        """Record the backend identity of a rule. Returns False if not found."""
        with self._transaction() as cursor:
            cursor.execute(
                "UPDATE alert_rule SET remote_id = ? WHERE id = ?", (remote_id, rule_id)
            )
            return cursor.rowcount > 0

    def set_rule_active(self, rule_id: int, active: bool) -> bool:
        with self._transaction() as cursor:
            cursor.execute(
                "UPDATE alert_rule SET active = ? WHERE id = ?", (1 if active else 0, rule_id)
            )
            return cursor.rowcount > 0

    @staticmethod
    def _delete_rule_in_txn(cursor: sqlite3.Cursor, rule_id: int) -> bool:
        cursor.execute("DELETE FROM alert_state WHERE rule_id = ?", (rule_id,))
        cursor.execute("DELETE FROM alert_event WHERE rule_id = ?", (rule_id,))
        cursor.execute("DELETE FROM alert_rule WHERE id = ?", (rule_id,))
        return cursor.rowcount > 0

    def delete_rule_cascade(self, rule_id: int) -> bool:
        """Delete a rule with its state and events atomically.

        Missing state or events are not an error.

        Returns:
            True if the rule existed.
        """
        with self._transaction() as cursor:
            return self._delete_rule_in_txn(cursor, rule_id)

    def delete_rules_cascade(self, rule_ids: Iterable[int]) -> int:
        """Delete several rules with their related records in one transaction.

        Returns:
            Number of rules that existed.
        """
        with self._transaction() as cursor:
            return sum(self._delete_rule_in_txn(cursor, rule_id) for rule_id in rule_ids)

    def replace_rules(self, rules: list[AlertRule]) -> list[int]:
        """Make `rules` the complete local rule set in one transaction.

        A fetched rule whose remote ID matches a local rule updates that rule
        in place, so its state and events survive. Every other local rule is
        deleted together with its state and events.

        Returns:
            Local IDs of the saved rules, in input order.
        """
        with self._transaction() as cursor:
            cursor.execute("SELECT id, remote_id FROM alert_rule")
            local = {row["remote_id"]: row["id"] for row in cursor.fetchall()}
            keep_ids = set()
            saved = []
            for rule in rules:
                local_id = local.get(rule.remote_id) if rule.remote_id is not None else None
                rule_id = self._put_rule(cursor, rule.model_copy(update={"id": local_id}))
                keep_ids.add(rule_id)
                saved.append(rule_id)
            for rule_id in set(local.values()) - keep_ids:
                self._delete_rule_in_txn(cursor, rule_id)
            return saved

    def restore_rules(
        self,
        entries: list[tuple[AlertRule, Optional[AlertState], list[AlertEvent]]],
    ) -> list[int]:
        """Re-insert rules with their state and events under fresh IDs.

        Existing pending (never synced) rules are replaced, and restored
        rules come back pending. Used to bring back a recovery snapshot.

        Returns:
            New local IDs, in input order.
        """
        with self._transaction() as cursor:
            cursor.execute("SELECT id FROM alert_rule WHERE remote_id IS NULL")
            for row in cursor.fetchall():
                self._delete_rule_in_txn(cursor, row["id"])
            new_ids = []
            for rule, state, events in entries:
                rule_id = self._put_rule(cursor, rule.model_copy(update={"id": None, "remote_id": None}))
                if state is not None:
                    self._put_state(cursor, state.model_copy(update={"rule_id": rule_id}))
                for event in events:
                    self._put_event(cursor, event.model_copy(update={"id": None, "rule_id": rule_id}))
                new_ids.append(rule_id)
            return new_ids

    # ==================== Alert States ====================

    @staticmethod
    def _put_state(cursor: sqlite3.Cursor, state: AlertState) -> None:
        cursor.execute(
            """
            INSERT OR REPLACE INTO alert_state
            (rule_id, last_value, last_bar_ts, last_fire_ts, last_side, latches, indicator_state)
            VALUES (?, ?, ?, ?, ?, ?, ?)
            """,
            (
                state.rule_id,
                state.last_value,
                _ts(state.last_bar_ts),
                _ts(state.last_fire_ts),
                state.last_side,
                json.dumps(state.latches),
                json.dumps(state.indicator_state),
            ),
        )

    @staticmethod
    def _row_to_state(row: sqlite3.Row) -> AlertState:
        return AlertState(
            rule_id=row["rule_id"],
            last_value=row["last_value"],
            last_bar_ts=_dt(row["last_bar_ts"]),
            last_fire_ts=_dt(row["last_fire_ts"]),
            last_side=row["last_side"],
            latches=json.loads(row["latches"]),
            indicator_state=json.loads(row["indicator_state"]),
        )

    def save_state(self, state: AlertState) -> None:
        """Insert or replace the state of a rule."""
        with self._transaction() as cursor:
            self._put_state(cursor, state)

    def save_states(self, states: list[AlertState]) -> None:
        """Save several states in one transaction."""
        with self._transaction() as cursor:
            for state in states:
                self._put_state(cursor, state)

    def get_state(self, rule_id: int) -> Optional[AlertState]:
        """Get the state of a rule, or None if it was never evaluated."""
        with self._transaction() as cursor:
            cursor.execute("SELECT * FROM alert_state WHERE rule_id = ?", (rule_id,))
            row = cursor.fetchone()
            return self._row_to_state(row) if row else None

    def get_states(self) -> list[AlertState]:
        with self._transaction() as cursor:
            cursor.execute("SELECT * FROM alert_state ORDER BY rule_id")
            return [self._row_to_state(row) for row in cursor.fetchall()]

    def try_delete_state(self, rule_id: int) -> bool:
        """Delete the state of a rule. Returns False if there was none."""
        with self._transaction() as cursor:
            cursor.execute("DELETE FROM alert_state WHERE rule_id = ?", (rule_id,))
            return cursor.rowcount > 0

    # ==================== Alert Events ====================

    @staticmethod
    def _put_event(cursor: sqlite3.Cursor, event: AlertEvent) -> int:
        cursor.execute(
            """
            INSERT INTO alert_event
            (rule_id, ts, indicator, value, level, side, bar_ts, symbol, message, is_read)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                event.rule_id,
                event.ts.isoformat(),
                event.indicator,
                event.value,
                event.level,
                event.side,
                _ts(event.bar_ts),
                event.symbol,
                event.message,
                1 if event.is_read else 0,
            ),
        )
        return cursor.lastrowid

    @staticmethod
    def _row_to_event(row: sqlite3.Row) -> AlertEvent:
        return AlertEvent(
            id=row["id"],
            rule_id=row["rule_id"],
            ts=datetime.fromisoformat(row["ts"]),
            indicator=row["indicator"],
            value=row["value"],
            level=row["level"],
            side=row["side"],
            bar_ts=_dt(row["bar_ts"]),
            symbol=row["symbol"],
            message=row["message"],
            is_read=bool(row["is_read"]),
        )

    def append_event(self, event: AlertEvent) -> int:
        """Append an event to the log. Returns its ID."""
        with self._transaction() as cursor:
            return self._put_event(cursor, event)

    def append_events(self, events: list[AlertEvent]) -> list[int]:
        """Append several events in one transaction."""
        with self._transaction() as cursor:
            return [self._put_event(cursor, event) for event in events]

    def get_events(
        self, rule_id: Optional[int] = None, unread_only: bool = False
    ) -> list[AlertEvent]:
        """Get events, newest first.

        Args:
            rule_id: Optional rule filter.
            unread_only: Only return events not yet marked read.
        """
        clauses, params = [], []
        if rule_id is not None:
            clauses.append("rule_id = ?")
            params.append(rule_id)
        if unread_only:
            clauses.append("is_read = 0")
        where = f"WHERE {' AND '.join(clauses)}" if clauses else ""
        with self._transaction() as cursor:
            cursor.execute(
                f"SELECT * FROM alert_event {where} ORDER BY ts DESC, id DESC", tuple(params)
            )
            return [self._row_to_event(row) for row in cursor.fetchall()]

    def mark_event_read(self, event_id: int, is_read: bool = True) -> bool:
        """Set the read flag of an event. Returns False if not found."""
        with self._transaction() as cursor:
            cursor.execute(
                "UPDATE alert_event SET is_read = ? WHERE id = ?", (1 if is_read else 0, event_id)
            )
            return cursor.rowcount > 0

    def try_delete_events(self, rule_id: int) -> bool:
        """Delete all events of a rule. Returns False if there were none."""
        with self._transaction() as cursor:
            cursor.execute("DELETE FROM alert_event WHERE rule_id = ?", (rule_id,))
            return cursor.rowcount > 0

    def record_evaluation(
        self, state: AlertState, event: Optional[AlertEvent] = None
    ) -> Optional[int]:
        """Write a rule's new state and, if it fired, its event atomically.

        Returns:
            The event ID when an event was written.
        """
        with self._transaction() as cursor:
            self._put_state(cursor, state)
            if event is not None:
                return self._put_event(cursor, event)
        return None

    # ==================== Indicator Samples ====================

    def save_sample(self, sample: IndicatorSample) -> None:
        """Insert or replace the cached computation for a symbol/timeframe/config."""
        with self._transaction() as cursor:
            cursor.execute(
                """
                INSERT OR REPLACE INTO indicator_sample
                (symbol, timeframe, config_key, timestamp, value, close, state)
                VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    sample.symbol,
                    sample.timeframe,
                    sample.config_key,
                    sample.timestamp.isoformat(),
                    sample.value,
                    sample.close,
                    json.dumps(sample.state),
                ),
            )

    def get_sample(
        self, symbol: str, timeframe: str, config_key: str
    ) -> Optional[IndicatorSample]:
        with self._transaction() as cursor:
            cursor.execute(
                """
                SELECT * FROM indicator_sample
                WHERE symbol = ? AND timeframe = ? AND config_key = ?
                """,
                (symbol, timeframe, config_key),
            )
            row = cursor.fetchone()
            if row is None:
                return None
            return IndicatorSample(
                symbol=row["symbol"],
                timeframe=row["timeframe"],
                config_key=row["config_key"],
                timestamp=datetime.fromisoformat(row["timestamp"]),
                value=row["value"],
                close=row["close"],
                state=json.loads(row["state"]),
            )

    # ==================== Watchlist ====================

    def add_to_watchlist(self, symbol: str) -> bool:
        """Add a symbol. Returns False if it was already present."""
        with self._transaction() as cursor:
            cursor.execute(
                "INSERT OR IGNORE INTO watchlist (symbol, created_at) VALUES (?, ?)",
                (symbol, datetime.now().isoformat()),
            )
            return cursor.rowcount > 0

    def remove_from_watchlist(self, symbol: str) -> bool:
        """Remove a symbol. Returns False if it was not present."""
        with self._transaction() as cursor:
            cursor.execute("DELETE FROM watchlist WHERE symbol = ?", (symbol,))
            return cursor.rowcount > 0

    def get_watchlist(self) -> list[WatchlistItem]:
        """Get watchlist items in insertion order."""
        with self._transaction() as cursor:
            cursor.execute("SELECT symbol, created_at FROM watchlist ORDER BY id")
            return [
                WatchlistItem(symbol=row["symbol"], created_at=datetime.fromisoformat(row["created_at"]))
                for row in cursor.fetchall()
            ]

    def replace_watchlist(self, items: list[WatchlistItem]) -> None:
        """Replace the whole watchlist in one transaction (duplicates dropped)."""
        with self._transaction() as cursor:
            cursor.execute("DELETE FROM watchlist")
            for item in items:
                cursor.execute(
                    "INSERT OR IGNORE INTO watchlist (symbol, created_at) VALUES (?, ?)",
                    (item.symbol, item.created_at.isoformat()),
                )

    # ==================== Devices ====================

    def save_device(self, device: DeviceInfo) -> None:
        with self._transaction() as cursor:
            cursor.execute(
                """
                INSERT OR REPLACE INTO device
                (device_id, fcm_token, platform, user_id, created_at, is_active)
                VALUES (?, ?, ?, ?, ?, ?)
                """,
                (
                    device.device_id,
                    device.fcm_token,
                    device.platform,
                    device.user_id,
                    device.created_at.isoformat(),
                    1 if device.is_active else 0,
                ),
            )

    def get_device(self, device_id: str) -> Optional[DeviceInfo]:
        with self._transaction() as cursor:
            cursor.execute("SELECT * FROM device WHERE device_id = ?", (device_id,))
            row = cursor.fetchone()
            if row is None:
                return None
            return DeviceInfo(
                device_id=row["device_id"],
                fcm_token=row["fcm_token"],
                platform=row["platform"],
                user_id=row["user_id"],
                created_at=datetime.fromisoformat(row["created_at"]),
                is_active=bool(row["is_active"]),
            )

    # ==================== Stats ====================

    def get_stats(self) -> dict:
        """Get database statistics.

        Returns:
            Dictionary with table record counts, plus custom/watchlist rule counts.
        """
        with self._transaction() as cursor:
            stats = {}
            for table in self.REQUIRED_TABLES:
                cursor.execute(f"SELECT COUNT(*) as count FROM {table}")
                stats[table] = cursor.fetchone()["count"]
            cursor.execute(
                "SELECT COUNT(*) as count FROM alert_rule WHERE UPPER(LTRIM(COALESCE(description, ''), ?)) LIKE ?",
                (" \t\n\r", f"{WATCHLIST_ALERT_PREFIX}%"),
            )
            stats["watchlist_rules"] = cursor.fetchone()["count"]
            stats["custom_rules"] = stats["alert_rule"] - stats["watchlist_rules"]
            return stats
