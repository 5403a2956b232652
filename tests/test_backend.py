"""Tests for the HTTP backend client and record translation."""

from datetime import datetime
from unittest.mock import MagicMock

import pytest
import requests

from indicharts.errors import BackendError, InvalidConfigurationError
from indicharts.models import AlertRule, DeviceInfo, IndicatorConfig
from indicharts.sync.backend import (
    HttpBackend,
    rule_from_server,
    rule_to_server,
    watchlist_from_server,
)


def response(payload=None, status: int = 200, content: bytes = b"{}"):
    resp = MagicMock()
    resp.content = content
    resp.json.return_value = payload if payload is not None else {}
    if status >= 400:
        resp.raise_for_status.side_effect = requests.exceptions.HTTPError(f"{status} Error")
    return resp


def backend_with(*responses, side_effect=None) -> tuple[HttpBackend, MagicMock]:
    session = MagicMock()
    if side_effect is not None:
        session.request.side_effect = side_effect
    else:
        session.request.side_effect = list(responses)
    return HttpBackend("https://api.example.com/", timeout=5.0, session=session), session


class TestRuleFromServer:
    def test_levels_as_json_string_with_null(self):
        rule = rule_from_server({
            "id": 12,
            "symbol": "aapl",
            "timeframe": "1h",
            "levels": "[30, null]",
            "rsi_period": 21,
            "active": 1,
            "created_at": 1714557600000,
        })
        assert rule.remote_id == 12
        assert rule.symbol == "AAPL"
        assert rule.levels == [30.0]
        assert rule.indicator.period == 21
        assert rule.active
        assert rule.created_at == datetime.fromtimestamp(1714557600)

    def test_camel_case_fields(self):
        rule = rule_from_server({
            "id": 3,
            "symbol": "ETH-USD",
            "timeframe": "4h",
            "indicator": "stochastic",
            "levels": [80, 20],
            "indicatorParams": {"slow_period": 5},
            "cooldownSec": 60,
            "active": 0,
        })
        assert rule.indicator == IndicatorConfig(kind="stoch", period=6, params={"slow_period": 5})
        assert rule.levels == [20.0, 80.0]
        assert rule.cooldown_sec == 60
        assert not rule.active

    @pytest.mark.parametrize("record", [
        {"id": 1, "symbol": "", "timeframe": "1h", "levels": [30, 70]},
        {"id": 1, "symbol": "AAPL", "timeframe": "2h", "levels": [30, 70]},
        {"id": 1, "symbol": "AAPL", "timeframe": "1h", "levels": "[30,"},
        {"id": 1, "symbol": "AAPL", "timeframe": "1h", "levels": [None, None]},
    ])
    def test_invalid_records(self, record):
        with pytest.raises(InvalidConfigurationError):
            rule_from_server(record)


class TestRuleToServer:
    def test_single_level_padded(self):
        payload = rule_to_server(AlertRule(symbol="AAPL", timeframe="1d", levels=[30.0]), "u1")
        assert payload["levels"] == [30.0, None]
        assert payload["userId"] == "u1"
        assert "description" not in payload

    def test_outer_levels_sent(self):
        rule = AlertRule(symbol="AAPL", timeframe="1d", levels=[20.0, 50.0, 80.0], description="x")
        payload = rule_to_server(rule, "u1")
        assert payload["levels"] == [20.0, 80.0]
        assert payload["description"] == "x"

    def test_williams_round_trip(self):
        rule = AlertRule(
            symbol="AAPL", timeframe="1d",
            indicator=IndicatorConfig(kind="williams", period=14), levels=[-80.0, -20.0],
        )
        payload = rule_to_server(rule, "u1")
        assert payload["indicator"] == "wpr"
        assert rule_from_server({"id": 9, **payload}).indicator.kind == "williams"


class TestWatchlistFromServer:
    def test_dedupes_and_skips_blanks(self):
        items = watchlist_from_server(["AAPL", "", {"symbol": "MSFT"}, "AAPL", None])
        assert [item.symbol for item in items] == ["AAPL", "MSFT"]

    def test_missing(self):
        assert watchlist_from_server(None) == []


class TestHttpBackend:
    def test_fetch_rules_skips_invalid(self):
        backend, session = backend_with(response({"rules": [
            {"id": 1, "symbol": "AAPL", "timeframe": "1h", "levels": [30, 70]},
            {"id": 2, "symbol": "AAPL", "timeframe": "7h", "levels": [30, 70]},
        ]}))
        rules = backend.fetch_rules("u1")
        assert [r.remote_id for r in rules] == [1]
        session.request.assert_called_once_with(
            "GET", "https://api.example.com/alerts/u1", json=None, timeout=5.0
        )

    def test_fetch_watchlist(self):
        backend, session = backend_with(response({"symbols": ["AAPL", "NVDA"]}))
        assert [item.symbol for item in backend.fetch_watchlist("u1")] == ["AAPL", "NVDA"]
        assert session.request.call_args.args[1] == "https://api.example.com/user/watchlist/u1"

    @pytest.mark.parametrize("remote_id,expected", [(55, 55), ("56", 56)])
    def test_push_rule(self, remote_id, expected):
        backend, session = backend_with(response({"id": remote_id}))
        rule = AlertRule(id=4, symbol="AAPL", timeframe="1d")
        assert backend.push_rule("u1", rule) == expected
        assert session.request.call_args.kwargs["json"]["symbol"] == "AAPL"

    def test_push_rule_without_id(self):
        backend, _ = backend_with(response({"status": "ok"}))
        with pytest.raises(BackendError):
            backend.push_rule("u1", AlertRule(id=4, symbol="AAPL", timeframe="1d"))

    def test_register_device(self):
        backend, session = backend_with(response(content=b""))
        device = DeviceInfo(device_id="d1", fcm_token="tok", platform="ios", user_id="u1")
        backend.register_device(device)
        method, url = session.request.call_args.args
        assert (method, url) == ("POST", "https://api.example.com/device/register")
        assert session.request.call_args.kwargs["json"]["fcmToken"] == "tok"

    @pytest.mark.parametrize("error", [
        requests.exceptions.Timeout("slow"),
        requests.exceptions.ConnectionError("refused"),
    ])
    def test_transport_errors(self, error):
        backend, _ = backend_with(side_effect=error)
        with pytest.raises(BackendError):
            backend.fetch_watchlist("u1")

    def test_http_error(self):
        backend, _ = backend_with(response(status=500))
        with pytest.raises(BackendError):
            backend.fetch_rules("u1")

    def test_invalid_json(self):
        resp = response()
        resp.json.side_effect = ValueError("Expecting value")
        backend, _ = backend_with(resp)
        with pytest.raises(BackendError):
            backend.fetch_rules("u1")
