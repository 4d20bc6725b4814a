from __future__ import annotations

import json

import pandas as pd
import pytest

from shrimpy_client import (
    MalformedResponse,
    OperationRejected,
    PortfolioUpdateAllocation,
    PortfolioUpdateRequest,
    PortfolioUpdateStrategy,
    ShrimpyClient,
    ShrimpyHTTPClient,
    UnexpectedStatus,
    sign,
)
from conftest import SECRET, FakeTransport


def _update_request() -> PortfolioUpdateRequest:
    return PortfolioUpdateRequest(
        name="Core",
        rebalance_period=24,
        strategy=PortfolioUpdateStrategy(
            is_dynamic=False,
            allocations=[
                PortfolioUpdateAllocation(symbol="BTC", percent="60"),
                PortfolioUpdateAllocation(symbol="ETH", percent="40"),
            ],
        ),
        strategy_trigger="interval",
        rebalance_threshold="5",
        max_spread="10",
        max_slippage="10",
    )


def test_http_client_implements_interface(client: ShrimpyHTTPClient) -> None:
    assert isinstance(client, ShrimpyClient)


def test_get_accounts_decodes_entities(client: ShrimpyHTTPClient, transport: FakeTransport) -> None:
    transport.body = b'[{"id":1,"exchange":"binance","isRebalancing":false}]'
    accounts = client.get_accounts()
    assert len(accounts) == 1
    assert accounts[0].id == 1
    assert accounts[0].exchange == "binance"
    assert accounts[0].is_rebalancing is False
    assert transport.sent[0].method == "GET"
    assert transport.sent[0].url.endswith("/v1/accounts")


def test_get_accounts_unexpected_shape_is_malformed(client: ShrimpyHTTPClient, transport: FakeTransport) -> None:
    transport.body = b'{"unexpected":"shape"}'
    with pytest.raises(MalformedResponse) as info:
        client.get_accounts()
    assert info.value.body == b'{"unexpected":"shape"}'


@pytest.mark.parametrize(
    "body",
    [
        b"not json at all",
        b'[{"id":"1","exchange":"binance","isRebalancing":false}]',
        b'[{"id":true,"exchange":"binance","isRebalancing":false}]',
        b'[{"id":1,"exchange":"binance"}]',
        b'[{"id":1,"exchange":"binance","isRebalancing":0}]',
    ],
)
def test_account_field_mismatches_are_malformed(
    client: ShrimpyHTTPClient, transport: FakeTransport, body: bytes
) -> None:
    transport.body = body
    with pytest.raises(MalformedResponse):
        client.get_accounts()


def test_403_is_unexpected_status_for_operations(client: ShrimpyHTTPClient, transport: FakeTransport) -> None:
    transport.status = 403
    transport.body = b'{"error":"Invalid signature"}'
    with pytest.raises(UnexpectedStatus) as info:
        client.get_accounts()
    assert info.value.code == 403
    assert b"Invalid signature" in info.value.body


def test_get_balance(client: ShrimpyHTTPClient, transport: FakeTransport) -> None:
    transport.body = json.dumps(
        {
            "retrievedAt": "2019-01-09T19:17:33.000Z",
            "balances": [
                {"symbol": "BTC", "nativeValue": 0.5, "btcValue": 0.5, "usdValue": 2000},
                {"symbol": "ETH", "nativeValue": 10, "btcValue": 0.3, "usdValue": 1200.5},
            ],
        }
    ).encode()
    balance = client.get_balance(7)
    assert transport.sent[0].url.endswith("/v1/accounts/7/balance")
    assert balance.retrieved_at == pd.Timestamp("2019-01-09T19:17:33Z")
    assert [b.symbol for b in balance.balances] == ["BTC", "ETH"]
    assert balance.total_usd() == pytest.approx(3200.5)
    frame = balance.to_frame()
    assert list(frame["symbol"]) == ["BTC", "ETH"]
    assert frame["usd_value"].sum() == pytest.approx(3200.5)


def test_get_portfolios(client: ShrimpyHTTPClient, transport: FakeTransport) -> None:
    transport.body = json.dumps(
        [
            {
                "id": 9,
                "name": "Core",
                "rebalancePeriod": 24,
                "active": True,
                "strategy": {
                    "isDynamic": False,
                    "allocations": [{"currency": "BTC", "percent": "100", "fixed": False}],
                },
                "strategyTrigger": "interval",
                "rebalanceThreshold": "5",
                "maxSpread": "10",
                "maxSlippage": "10",
            }
        ]
    ).encode()
    portfolios = client.get_portfolios(3)
    assert transport.sent[0].url.endswith("/v1/accounts/3/portfolios")
    assert portfolios[0].id == 9
    assert portfolios[0].active is True
    assert portfolios[0].strategy.allocations[0].currency == "BTC"


def test_get_portfolios_missing_strategy_is_malformed(client: ShrimpyHTTPClient, transport: FakeTransport) -> None:
    transport.body = b'[{"id":9,"name":"Core"}]'
    with pytest.raises(MalformedResponse):
        client.get_portfolios(3)


def test_get_ticker_lowercases_exchange(client: ShrimpyHTTPClient, transport: FakeTransport) -> None:
    transport.body = json.dumps(
        [
            {
                "name": "Bitcoin",
                "symbol": "BTC",
                "priceUsd": "3700.0089335",
                "priceBtc": "1",
                "percentChange24hUsd": "-0.5",
                "lastUpdated": "2018-12-19T22:51:13.000Z",
            },
            {"name": "Ether", "symbol": "ETH", "priceUsd": 120.5, "priceBtc": 0.03, "lastUpdated": None},
        ]
    ).encode()
    ticker = client.get_ticker("Binance")
    sent = transport.sent[0]
    assert sent.url.endswith("/v1/binance/ticker")
    nonce = sent.headers["SHRIMPY-API-NONCE"]
    assert sent.headers["SHRIMPY-API-SIGNATURE"] == sign(SECRET, f"/v1/binance/tickerGET{nonce}")
    assert ticker.exchange == "binance"
    assert ticker.price_usd("btc") == pytest.approx(3700.0089335)
    assert ticker.entries[1].percent_change_24h_usd is None
    assert ticker.price_usd("XRP") is None
    assert ticker.to_frame().loc["ETH", "price_btc"] == pytest.approx(0.03)


def test_update_portfolio_sends_signed_compact_json(client: ShrimpyHTTPClient, transport: FakeTransport) -> None:
    transport.body = b'{"success":true}'
    client.update_portfolio(1, 2, _update_request())

    sent = transport.sent[0]
    assert sent.method == "POST"
    assert sent.url.endswith("/v1/accounts/1/portfolios/2/update")
    body = sent.body.decode("utf-8")
    assert " " not in body
    assert json.loads(body) == {
        "name": "Core",
        "rebalancePeriod": 24,
        "strategy": {
            "isDynamic": False,
            "allocations": [{"symbol": "BTC", "percent": "60"}, {"symbol": "ETH", "percent": "40"}],
        },
        "strategyTrigger": "interval",
        "rebalanceThreshold": "5",
        "maxSpread": "10",
        "maxSlippage": "10",
    }
    nonce = sent.headers["SHRIMPY-API-NONCE"]
    expected = sign(SECRET, f"/v1/accounts/1/portfolios/2/updatePOST{nonce}{body}")
    assert sent.headers["SHRIMPY-API-SIGNATURE"] == expected


@pytest.mark.parametrize(
    ("call", "path"),
    [
        (lambda c: c.update_portfolio(1, 2, _update_request()), "/v1/accounts/1/portfolios/2/update"),
        (lambda c: c.activate_portfolio(1, 2), "/v1/accounts/1/portfolios/2/activate"),
        (lambda c: c.rebalance_account(1), "/v1/accounts/1/rebalance"),
    ],
)
def test_success_false_is_operation_rejected(
    client: ShrimpyHTTPClient, transport: FakeTransport, call, path: str
) -> None:
    transport.body = b'{"success":false}'
    with pytest.raises(OperationRejected) as info:
        call(client)
    assert not isinstance(info.value, MalformedResponse)
    assert transport.sent[0].url.endswith(path)


def test_activate_and_rebalance_send_empty_body(client: ShrimpyHTTPClient, transport: FakeTransport) -> None:
    transport.body = b'{"success":true}'
    client.activate_portfolio(4, 5)
    client.rebalance_account(4)
    for sent in transport.sent:
        assert sent.method == "POST"
        assert sent.body is None
        nonce = sent.headers["SHRIMPY-API-NONCE"]
        path = sent.url.removeprefix("https://api.example.test")
        assert sent.headers["SHRIMPY-API-SIGNATURE"] == sign(SECRET, f"{path}POST{nonce}")


@pytest.mark.parametrize("body", [b'{"ok":true}', b'{"success":"false"}', b"[]", b""])
def test_bad_acknowledgement_is_malformed(client: ShrimpyHTTPClient, transport: FakeTransport, body: bytes) -> None:
    transport.body = body
    with pytest.raises(MalformedResponse):
        client.rebalance_account(1)


def test_decode_outcome_events(client: ShrimpyHTTPClient, transport: FakeTransport, events) -> None:
    transport.body = b'[{"id":1,"exchange":"binance","isRebalancing":false}]'
    client.get_accounts()
    assert "successfully retrieved accounts" in events.messages()

    transport.body = b'{"success":false}'
    with pytest.raises(OperationRejected):
        client.rebalance_account(1)
    assert "operation rejected" in events.messages()


def test_from_env_builds_client(transport: FakeTransport) -> None:
    env = {"SHRIMPY_URL": "https://api.example.test/", "SHRIMPY_KEY": "k", "SHRIMPY_SECRET": SECRET}
    client = ShrimpyHTTPClient.from_env(env, transport=transport)
    transport.body = b"[]"
    assert client.get_accounts() == []
    assert transport.sent[0].url == "https://api.example.test/v1/accounts"


@pytest.mark.parametrize(
    "entry",
    [
        '{"name":"Bitcoin","symbol":"BTC","priceUsd":"1","priceBtc":"1","lastUpdated":{"a":1}}',
        '{"name":"Bitcoin","symbol":"BTC","priceUsd":"1","priceBtc":"1","lastUpdated":[1]}',
        '{"name":"Bitcoin","symbol":"BTC","priceUsd":"1","priceBtc":"1","lastUpdated":"not a date"}',
        '{"name":"Bitcoin","symbol":"BTC","priceUsd":"1","priceBtc":"1","percentChange24hUsd":{"a":1}}',
        '{"name":"Bitcoin","symbol":"BTC","priceUsd":' + "9" * 400 + ',"priceBtc":"1"}',
        '{"name":"Bitcoin","symbol":"BTC","priceUsd":"1e999","priceBtc":"1"}',
        '{"name":"Bitcoin","symbol":"BTC","priceUsd":"NaN","priceBtc":"1"}',
    ],
)
def test_ticker_entry_bad_values_are_malformed(
    client: ShrimpyHTTPClient, transport: FakeTransport, entry: str
) -> None:
    transport.body = f"[{entry}]".encode()
    with pytest.raises(MalformedResponse):
        client.get_ticker("binance")


@pytest.mark.parametrize(
    "body",
    [
        b'{"retrievedAt":{"a":1},"balances":[]}',
        b'{"retrievedAt":"yesterday-ish","balances":[]}',
        b'{"retrievedAt":null,"balances":[{"symbol":"BTC","nativeValue":' + b"9" * 400 + b',"btcValue":1,"usdValue":1}]}',
    ],
)
def test_balance_bad_values_are_malformed(client: ShrimpyHTTPClient, transport: FakeTransport, body: bytes) -> None:
    transport.body = body
    with pytest.raises(MalformedResponse):
        client.get_balance(1)


@pytest.mark.parametrize("exchange", ["Bin ance", "", " binance", "binance/../accounts", "binance?x=1"])
def test_get_ticker_rejects_unsafe_exchange_names(
    client: ShrimpyHTTPClient, transport: FakeTransport, exchange: str
) -> None:
    with pytest.raises(ValueError):
        client.get_ticker(exchange)
    assert transport.sent == []
