"""Sign-in reconciliation with the account backend.

On sign-in the local rules and watchlist are snapshotted to the recovery
cache and then replaced wholesale by the account's copy. Anonymous data is
only reachable through the cache afterwards; it is never merged. Every step
is best-effort: failures are logged and recorded in the report, and the
remaining steps still run.
"""

import logging
from typing import Optional

from pydantic import BaseModel, Field

from indicharts.models import DeviceInfo
from indicharts.sync.backend import BaseBackend
from indicharts.sync.recovery import RecoveryCache

logger = logging.getLogger(__name__)


class SyncReport(BaseModel):
    """What a sign-in reconciliation did."""

    snapshot_saved: bool = False
    rules_replaced: Optional[int] = Field(default=None, description="None when not replaced")
    watchlist_replaced: Optional[int] = Field(default=None, description="None when not replaced")
    pushed: int = 0
    errors: list[str] = Field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors


class SyncReconciler:
    """Runs the sign-in sequence against a store and a backend."""

    def __init__(self, store, backend: BaseBackend, cache: RecoveryCache):
        self.store = store
        self.backend = backend
        self.cache = cache

    def _fail(self, report: SyncReport, step: str, error: Exception) -> None:
        logger.warning("Sync step '%s' failed: %s", step, error)
        report.errors.append(f"{step}: {error}")

    def on_sign_in(self, user_id: str) -> SyncReport:
        """Reconcile local data with the account of `user_id`.

        Args:
            user_id: The signed-in account.

        Returns:
            SyncReport describing each step. Never raises.
        """
        report = SyncReport()

        try:
            self.cache.save(self.cache.capture(self.store))
            report.snapshot_saved = True
        except Exception as e:
            self._fail(report, "snapshot", e)

        # A failed fetch leaves the matching local data untouched
        fetched_rules = fetched_watchlist = None
        try:
            fetched_rules = self.backend.fetch_rules(user_id)
        except Exception as e:
            self._fail(report, "fetch rules", e)
        try:
            fetched_watchlist = self.backend.fetch_watchlist(user_id)
        except Exception as e:
            self._fail(report, "fetch watchlist", e)

        if fetched_rules is not None:
            try:
                report.rules_replaced = len(self.store.replace_rules(fetched_rules))
            except Exception as e:
                self._fail(report, "replace rules", e)
        if fetched_watchlist is not None:
            try:
                self.store.replace_watchlist(fetched_watchlist)
                report.watchlist_replaced = len(fetched_watchlist)
            except Exception as e:
                self._fail(report, "replace watchlist", e)

        report.pushed = self.push_pending(user_id, report)
        logger.info(
            "Sync for %s: rules=%s watchlist=%s pushed=%d errors=%d",
            user_id, report.rules_replaced, report.watchlist_replaced,
            report.pushed, len(report.errors),
        )
        return report

    def push_pending(self, user_id: str, report: Optional[SyncReport] = None) -> int:
        """Send rules without a remote ID to the backend.

        Each rule is pushed independently; a rejected rule stays pending.

        Returns:
            Number of rules pushed.
        """
        report = report if report is not None else SyncReport()
        try:
            pending = self.store.get_pending_rules()
        except Exception as e:
            self._fail(report, "push pending", e)
            return 0

        pushed = 0
        for rule in pending:
            try:
                remote_id = self.backend.push_rule(user_id, rule)
                self.store.set_rule_remote_id(rule.id, remote_id)
                pushed += 1
            except Exception as e:
                self._fail(report, f"push rule {rule.id}", e)
        return pushed

    def register_device(self, device: DeviceInfo) -> bool:
        """Store the device locally and register it with the backend.

        Returns:
            True if the backend accepted the registration.
        """
        self.store.save_device(device)
        try:
            self.backend.register_device(device)
        except Exception as e:
            logger.warning("Device registration failed for %s: %s", device.device_id, e)
            return False
        return True
