"""
Support/resistance request shaping tests.
"""

from stockanalyst.services.market_data import build_levels_payload, filter_levels_for_prompt


def test_payload_from_provider_envelope(historical_payload):
    payload = build_levels_payload("AAPL", historical_payload)

    assert payload["symbol"] == "AAPL"
    assert payload["tolerance_pct"] == 0.3
    assert payload["atr_multiplier"] == 0.3
    assert payload["confirm_window"] == 4
    assert payload["merge_timeframes"] is True
    assert payload["bars"]["week"] == historical_payload["data"]["week"]["bars"]
    assert payload["bars"]["day"] == historical_payload["data"]["day"]["bars"]


def test_thirty_minute_bars_are_excluded(historical_payload):
    payload = build_levels_payload("AAPL", historical_payload)
    assert set(payload["bars"]) == {"week", "day"}


def test_payload_from_bare_interval_mapping(historical_payload):
    bare = historical_payload["data"]
    payload = build_levels_payload("AAPL", bare)

    assert len(payload["bars"]["week"]) == 3
    assert len(payload["bars"]["day"]) == 3


def test_missing_intervals_become_empty_lists():
    payload = build_levels_payload("MSFT", {"success": True, "data": {"day": {}}})

    assert payload["bars"] == {"week": [], "day": []}


def test_unexpected_payload_shapes():
    assert build_levels_payload("X", None)["bars"] == {"week": [], "day": []}
    assert build_levels_payload("X", {"data": "oops"})["bars"] == {"week": [], "day": []}
    assert build_levels_payload("X", {"data": {"week": {"bars": "n/a"}}})["bars"]["week"] == []


def test_filter_keeps_symbol_and_merged_only(levels_response):
    filtered = filter_levels_for_prompt(levels_response)

    assert filtered == {
        "symbol": "AAPL",
        "timeframes": {"merged": levels_response["timeframes"]["merged"]},
    }


def test_filter_without_timeframes():
    assert filter_levels_for_prompt({"symbol": "AAPL"}) == {
        "symbol": "AAPL",
        "timeframes": {"merged": None},
    }
