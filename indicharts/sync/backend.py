"""Backend sync collaborators.

Translates between local records and the backend's JSON shapes. The backend
returns levels either as a list or as a JSON string, with ``null`` for a
disabled level, and timestamps as epoch milliseconds.
"""

import json
import logging
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Optional

import requests

from indicharts.alerts.validation import make_rule
from indicharts.errors import BackendError, InvalidConfigurationError
from indicharts.models import AlertRule, DeviceInfo, WatchlistItem

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 10.0

# The backend stores Williams %R under its app name
SERVER_INDICATOR_NAMES = {"rsi": "rsi", "stoch": "stoch", "williams": "wpr"}


def _from_epoch_ms(value: Any) -> datetime:
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return datetime.fromtimestamp(value / 1000)
    return datetime.now()


def _decode_json_field(value: Any, default: Any) -> Any:
    if value is None:
        return default
    if isinstance(value, str):
        return json.loads(value) if value.strip() else default
    return value


def rule_from_server(data: dict) -> AlertRule:
    """Build a local rule from a backend rule record.

    Raises:
        InvalidConfigurationError: If the record does not describe a valid rule.
    """
    try:
        levels = _decode_json_field(data.get("levels"), [])
        params = _decode_json_field(data.get("indicator_params", data.get("indicatorParams")), {})
    except ValueError as e:
        raise InvalidConfigurationError(f"undecodable rule record: {e}") from e

    fields = {
        "remote_id": data.get("id"),
        "symbol": data.get("symbol") or "",
        "timeframe": data.get("timeframe"),
        "indicator": data.get("indicator") or "rsi",
        "period": data.get("period") or data.get("rsi_period"),
        "params": params or {},
        "levels": sorted(float(level) for level in levels if level is not None),
        "mode": data.get("mode") or "cross",
        "cooldown_sec": data.get("cooldown_sec", data.get("cooldownSec", 600)),
        "active": data.get("active", 1) == 1,
        "description": data.get("description"),
        "source": data.get("source") or "custom",
        "created_at": _from_epoch_ms(data.get("created_at")),
    }
    return make_rule(**fields)


def rule_to_server(rule: AlertRule, user_id: str) -> dict:
    """Payload for creating a rule on the backend.

    Levels are sent as ``[lower, upper]`` with ``None`` for a missing level.
    """
    levels = rule.sorted_levels
    if len(levels) >= 2:
        server_levels = [levels[0], levels[-1]]
    elif levels:
        server_levels = [levels[0], None]
    else:
        server_levels = [None, None]

    payload = {
        "userId": user_id,
        "symbol": rule.symbol,
        "timeframe": rule.timeframe,
        "indicator": SERVER_INDICATOR_NAMES[rule.indicator.kind],
        "period": rule.indicator.period,
        "indicatorParams": rule.indicator.params,
        "levels": server_levels,
        "mode": rule.mode,
        "cooldownSec": rule.cooldown_sec,
        "source": rule.source,
    }
    if rule.description:
        payload["description"] = rule.description
    return payload


def watchlist_from_server(symbols: Optional[list]) -> list[WatchlistItem]:
    """Parse the backend watchlist, dropping blanks and duplicates."""
    items = []
    seen = set()
    for entry in symbols or []:
        if isinstance(entry, dict):
            symbol, created = entry.get("symbol"), entry.get("created_at")
        else:
            symbol, created = entry, None
        if not symbol or symbol in seen:
            continue
        seen.add(symbol)
        items.append(WatchlistItem(symbol=symbol, created_at=_from_epoch_ms(created)))
    return items


class BaseBackend(ABC):
    """Abstract base class for the account backend."""

    @abstractmethod
    def fetch_rules(self, user_id: str) -> list[AlertRule]:
        """Get the account's rules.

        Raises:
            BackendError: If the backend cannot be reached.
        """
        pass

    @abstractmethod
    def fetch_watchlist(self, user_id: str) -> list[WatchlistItem]:
        """Get the account's watchlist.

        Raises:
            BackendError: If the backend cannot be reached.
        """
        pass

    @abstractmethod
    def push_rule(self, user_id: str, rule: AlertRule) -> int:
        """Create a rule on the backend.

        Returns:
            The backend ID of the rule.

        Raises:
            BackendError: If the backend rejects the rule or cannot be reached.
        """
        pass

    @abstractmethod
    def register_device(self, device: DeviceInfo) -> None:
        """Register a device for push notifications.

        Raises:
            BackendError: If the registration fails.
        """
        pass


class HttpBackend(BaseBackend):
    """Backend reached over HTTP with JSON bodies."""

    def __init__(
        self,
        base_url: str,
        timeout: float = DEFAULT_TIMEOUT,
        session: Optional[requests.Session] = None,
    ):
        """Initialize the client.

        Args:
            base_url: Backend root URL.
            timeout: Seconds before a request is abandoned.
            session: Optional preconfigured session.
        """
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()

    def _request(self, method: str, endpoint: str, payload: Optional[dict] = None) -> dict:
        url = f"{self.base_url}{endpoint}"
        try:
            resp = self.session.request(method, url, json=payload, timeout=self.timeout)
            resp.raise_for_status()
            return resp.json() if resp.content else {}
        except requests.exceptions.Timeout as e:
            raise BackendError(f"{method} {endpoint} timed out after {self.timeout}s") from e
        except requests.exceptions.RequestException as e:
            raise BackendError(f"{method} {endpoint} failed: {e}") from e
        except ValueError as e:
            raise BackendError(f"{method} {endpoint} returned invalid JSON") from e

    def fetch_rules(self, user_id: str) -> list[AlertRule]:
        data = self._request("GET", f"/alerts/{user_id}")
        rules = []
        for record in data.get("rules") or []:
            try:
                rules.append(rule_from_server(record))
            except InvalidConfigurationError as e:
                logger.warning("Skipping backend rule %s: %s", record.get("id"), e)
        return rules

    def fetch_watchlist(self, user_id: str) -> list[WatchlistItem]:
        data = self._request("GET", f"/user/watchlist/{user_id}")
        return watchlist_from_server(data.get("symbols"))

    def push_rule(self, user_id: str, rule: AlertRule) -> int:
        data = self._request("POST", "/alerts/create", rule_to_server(rule, user_id))
        remote_id = data.get("id")
        if isinstance(remote_id, str) and remote_id.isdigit():
            remote_id = int(remote_id)
        if not isinstance(remote_id, int) or isinstance(remote_id, bool):
            raise BackendError(f"create response for rule {rule.id} has no id")
        return remote_id

    def register_device(self, device: DeviceInfo) -> None:
        self._request("POST", "/device/register", device.registration_payload())
