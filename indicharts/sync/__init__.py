"""Account backend synchronization."""

from indicharts.sync.backend import BaseBackend, HttpBackend, rule_from_server, rule_to_server
from indicharts.sync.reconciler import SyncReconciler, SyncReport
from indicharts.sync.recovery import RecoveryCache, RecoverySnapshot

__all__ = [
    "BaseBackend",
    "HttpBackend",
    "RecoveryCache",
    "RecoverySnapshot",
    "SyncReconciler",
    "SyncReport",
    "rule_from_server",
    "rule_to_server",
]
