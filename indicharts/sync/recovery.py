"""Recovery cache for data replaced on sign-in."""

import logging
from datetime import datetime
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field

from indicharts.models import AlertEvent, AlertRule, AlertState, WatchlistItem

logger = logging.getLogger(__name__)


class RecoveryEntry(BaseModel):
    """A rule with its related records."""

    rule: AlertRule
    state: Optional[AlertState] = None
    events: list[AlertEvent] = Field(default_factory=list)


class RecoverySnapshot(BaseModel):
    """Local rules and watchlist as they were before a backend replace."""

    created_at: datetime = Field(default_factory=datetime.now)
    entries: list[RecoveryEntry] = Field(default_factory=list)
    watchlist: list[WatchlistItem] = Field(default_factory=list)


class RecoveryCache:
    """JSON file holding the most recent pre-replace snapshot."""

    def __init__(self, path: Path):
        self.path = Path(path)

    @staticmethod
    def capture(store) -> RecoverySnapshot:
        """Read the store's current rules (with state and events) and watchlist."""
        entries = [
            RecoveryEntry(
                rule=rule,
                state=store.get_state(rule.id),
                events=store.get_events(rule_id=rule.id),
            )
            for rule in store.get_rules()
        ]
        return RecoverySnapshot(entries=entries, watchlist=store.get_watchlist())

    def save(self, snapshot: RecoverySnapshot) -> Path:
        """Write a snapshot, replacing any previous one."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_suffix(".tmp")
        tmp_path.write_text(snapshot.model_dump_json(indent=2))
        tmp_path.replace(self.path)
        logger.info(
            "Saved recovery snapshot: %d rules, %d watchlist items",
            len(snapshot.entries), len(snapshot.watchlist),
        )
        return self.path

    def load(self) -> Optional[RecoverySnapshot]:
        """Read the snapshot, or None when there is none."""
        if not self.path.exists():
            return None
        return RecoverySnapshot.model_validate_json(self.path.read_text())

    def restore(self, store) -> int:
        """Bring the snapshot back into the store.

        Rules are re-inserted under fresh IDs with their state and events.
        The watchlist is replaced by the snapshot's.

        Returns:
            Number of rules restored (0 when there is no snapshot).
        """
        snapshot = self.load()
        if snapshot is None:
            return 0
        ids = store.restore_rules([(e.rule, e.state, e.events) for e in snapshot.entries])
        store.replace_watchlist(snapshot.watchlist)
        logger.info("Restored %d rules from recovery snapshot", len(ids))
        return len(ids)

    def clear(self) -> bool:
        """Delete the snapshot. Returns False if there was none."""
        if not self.path.exists():
            return False
        self.path.unlink()
        return True
