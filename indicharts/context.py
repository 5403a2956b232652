"""Application components, built once per process."""

from pathlib import Path
from typing import Optional

from indicharts.alerts import AlertEngine, AlertEvaluator, LogNotifier, Notifier
from indicharts.config import get_db_path, get_recovery_path, load_config
from indicharts.db.store import DataStore
from indicharts.market import BaseMarketData, YahooMarketData
from indicharts.sync import BaseBackend, HttpBackend, RecoveryCache, SyncReconciler


class AppContext:
    """Holds the store, engine and sync collaborators.

    Components are passed to whoever needs them; nothing is process-global.
    """

    def __init__(
        self,
        config: dict,
        store: DataStore,
        notifier: Optional[Notifier] = None,
        backend: Optional[BaseBackend] = None,
        market_data: Optional[BaseMarketData] = None,
        recovery_path: Optional[Path] = None,
    ):
        self.config = config
        self.store = store
        self.notifier = notifier or LogNotifier()
        self.engine = AlertEngine(store, self.notifier, AlertEvaluator())
        self.backend = backend
        self.market_data = market_data or YahooMarketData()
        self.recovery = RecoveryCache(recovery_path or get_recovery_path(config))
        self.reconciler = SyncReconciler(store, backend, self.recovery) if backend else None

    @classmethod
    def from_config(
        cls,
        config: Optional[dict] = None,
        notifier: Optional[Notifier] = None,
    ) -> "AppContext":
        """Build every component from configuration.

        Args:
            config: Configuration dict. Loaded from disk when omitted.
            notifier: Trigger delivery; logs triggers when omitted.
        """
        config = config if config is not None else load_config()
        backend_config = config.get("backend", {})
        timeout = float(backend_config.get("timeout_sec", 10.0))

        backend = None
        if backend_config.get("base_url"):
            backend = HttpBackend(backend_config["base_url"], timeout=timeout)

        return cls(
            config=config,
            store=DataStore(get_db_path(config)),
            notifier=notifier,
            backend=backend,
            market_data=YahooMarketData(timeout=timeout),
        )
