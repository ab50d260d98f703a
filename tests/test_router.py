"""Tests for the routing module."""

from decimal import Decimal

import httpx
import pytest

from tonswap.errors import (
    AllBackendsUnavailableError,
    BackendUnavailableError,
    MissingParameterError,
)
from tonswap.routing.aggregator import QuoteAggregator, format_price, min_received
from tonswap.routing.base import TON_ZERO_ADDRESS, Asset, AssetKind, find_pool
from tonswap.routing.dedust import DedustAdapter
from tonswap.routing.stonfi import StonfiAdapter

from conftest import (
    STON_ADDRESS,
    USDT_ADDRESS,
    FakeAdapter,
    json_transport,
    make_pool,
    request_json,
)

NATIVE_RAW = {"type": "native", "metadata": {"symbol": "TON", "decimals": 9}}
USDT_RAW = {
    "type": "jetton",
    "address": USDT_ADDRESS,
    "metadata": {"symbol": "USDT", "name": "Tether USD", "decimals": 6},
}
DEDUST_POOL = {
    "address": "EQdedustTonUsdt",
    "assets": [NATIVE_RAW, USDT_RAW],
    "reserves": ["1000000000000", "2000000000000"],
    "totalSupply": "1000",
}


def expected_pool_output(amount: int, reserve_in: int, reserve_out: int) -> int:
    after_fee = amount - amount * 3 // 1000
    return after_fee * reserve_out // (reserve_in + after_fee)


class TestAssets:
    """Tests for asset parsing and pool lookup."""

    def test_native_aliases(self):
        for value in (None, "", "native", "TON", "ton", TON_ZERO_ADDRESS):
            assert Asset.parse(value).kind == AssetKind.NATIVE

    def test_token_address_normalized(self):
        asset = Asset.parse(f"  {USDT_ADDRESS}\n")
        assert asset.kind == AssetKind.TOKEN
        assert asset.address == USDT_ADDRESS

        noisy = Asset.parse("EQ:Cx/E6m+Ut")
        assert noisy.address == "EQCxE6mUt"

    def test_token_without_address_rejected(self):
        with pytest.raises(MissingParameterError):
            Asset.token("::")

    def test_equality_ignores_metadata(self):
        assert Asset.token(USDT_ADDRESS, symbol="USDT") == Asset.token(USDT_ADDRESS)
        assert Asset.native(symbol="TON") == Asset.native(symbol="Toncoin")

    def test_find_pool_first_match(self):
        first = make_pool("dedust", ("TON", "USDT"), address="EQfirst")
        second = make_pool("dedust", ("TON", "USDT"), address="EQsecond")
        usdt = first.assets[1]

        assert find_pool([first, second], Asset.native(), usdt) is first
        assert find_pool([first, second], usdt, Asset.native()) is first
        assert find_pool([second], Asset.native(), Asset.token("EQother")) is None

    def test_oriented_reserves(self):
        pool = make_pool("dedust", ("TON", "USDT"), reserves=(5, 7))
        assert pool.oriented_reserves(Asset.native()) == (5, 7)
        assert pool.oriented_reserves(pool.assets[1]) == (7, 5)

        empty = make_pool("dedust", ("TON", "USDT"), reserves=())
        assert empty.oriented_reserves(Asset.native()) is None


class TestDedustAdapter:
    """Tests for the DeDust adapter tiers."""

    @pytest.mark.asyncio
    async def test_pool_math_tier(self):
        """Test constant-product quote against pool reserves."""
        transport = json_transport({
            ("GET", "/v2/pools"): lambda r: httpx.Response(200, json=[DEDUST_POOL]),
        })
        adapter = DedustAdapter(transport=transport)

        quote = await adapter.estimate(Asset.native(), Asset.parse(USDT_ADDRESS), 1_000_000_000)

        assert quote.route == "pool"
        assert quote.fee == 3_000_000
        assert quote.output_amount == expected_pool_output(
            1_000_000_000, 1_000_000_000_000, 2_000_000_000_000
        )
        assert quote.output_amount == 1_992_013_962
        assert quote.price_impact == Decimal("0.10")
        assert str(quote.price_impact) == "0.10"
        assert quote.pool_address == "EQdedustTonUsdt"

    @pytest.mark.asyncio
    async def test_pool_math_reverse_direction(self):
        """Test reserves are oriented by the input asset."""
        transport = json_transport({
            ("GET", "/v2/pools"): lambda r: httpx.Response(200, json=[DEDUST_POOL]),
        })
        adapter = DedustAdapter(transport=transport)

        quote = await adapter.estimate(Asset.parse(USDT_ADDRESS), Asset.native(), 2_000_000)

        assert quote.output_amount == expected_pool_output(
            2_000_000, 2_000_000_000_000, 1_000_000_000_000
        )
        assert quote.price_impact == Decimal("0.00")

    @pytest.mark.asyncio
    async def test_price_impact_uncapped(self):
        transport = json_transport({
            ("GET", "/v2/pools"): lambda r: httpx.Response(200, json=[
                {**DEDUST_POOL, "reserves": ["1000", "1000"]},
            ]),
        })
        adapter = DedustAdapter(transport=transport)

        quote = await adapter.estimate(Asset.native(), Asset.parse(USDT_ADDRESS), 5_000)

        assert quote.price_impact == Decimal("500.00")

    @pytest.mark.asyncio
    async def test_remote_estimate_tier(self):
        """Test remote estimate when no pool matches."""
        seen = {}

        def estimate(request):
            seen.update(request_json(request))
            return httpx.Response(200, json={"amountOut": "12345", "priceImpact": "0.2", "fee": "7"})

        transport = json_transport({
            ("GET", "/v2/pools"): lambda r: httpx.Response(200, json=[]),
            ("POST", "/v2/swap/estimate"): estimate,
        })
        adapter = DedustAdapter(transport=transport)

        quote = await adapter.estimate(Asset.native(), Asset.parse(USDT_ADDRESS), 1_000)

        assert quote.route == "direct"
        assert quote.output_amount == 12345
        assert quote.price_impact == Decimal("0.2")
        assert quote.fee == 7
        assert seen == {
            "from": {"type": "native"},
            "to": {"type": "jetton", "address": USDT_ADDRESS},
            "amount": "1000",
        }

    @pytest.mark.asyncio
    async def test_remote_estimate_used_for_pool_without_reserves(self):
        transport = json_transport({
            ("GET", "/v2/pools"): lambda r: httpx.Response(200, json=[
                {**DEDUST_POOL, "reserves": ["1000000"]},
            ]),
            ("POST", "/v2/swap/estimate"): lambda r: httpx.Response(200, json={"amount_out": "55"}),
        })
        adapter = DedustAdapter(transport=transport)

        quote = await adapter.estimate(Asset.native(), Asset.parse(USDT_ADDRESS), 1_000)

        assert quote.output_amount == 55
        assert quote.route == "direct"

    @pytest.mark.asyncio
    async def test_heuristic_tier(self):
        """Test heuristic when pools and remote estimate both fail."""
        transport = json_transport({
            ("GET", "/v2/pools"): lambda r: httpx.Response(503),
            ("POST", "/v2/swap/estimate"): lambda r: httpx.Response(500, json={"error": "down"}),
        })
        adapter = DedustAdapter(transport=transport)

        quote = await adapter.estimate(Asset.native(), Asset.parse(USDT_ADDRESS), 1_000_000)

        assert quote.route == "estimated"
        assert quote.output_amount == 970_000
        assert quote.fee == 3_000
        assert quote.price_impact == Decimal("0.5")

    @pytest.mark.asyncio
    async def test_transport_failure_raises(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        adapter = DedustAdapter(transport=httpx.MockTransport(handler))

        with pytest.raises(BackendUnavailableError) as exc:
            await adapter.estimate(Asset.native(), Asset.parse(USDT_ADDRESS), 1_000)
        assert exc.value.backend == "dedust"

    @pytest.mark.asyncio
    async def test_list_pools_degrades(self):
        transport = json_transport({
            ("GET", "/v2/pools"): lambda r: httpx.Response(200, content=b"<html>"),
        })
        adapter = DedustAdapter(transport=transport)

        assert await adapter.list_pools() == []

    @pytest.mark.asyncio
    async def test_list_assets(self):
        transport = json_transport({
            ("GET", "/v2/assets"): lambda r: httpx.Response(200, json=[
                NATIVE_RAW,
                USDT_RAW,
                {"type": "jetton", "symbol": "BAD"},
            ]),
        })
        adapter = DedustAdapter(transport=transport)

        assets = await adapter.list_assets()

        assert [a.symbol for a in assets] == ["TON", "USDT"]
        assert assets[1].decimals == 6
        assert assets[1].name == "Tether USD"


class TestStonfiAdapter:
    """Tests for the STON.fi adapter."""

    @pytest.mark.asyncio
    async def test_simulate(self):
        seen = {}

        def simulate(request):
            seen.update(request_json(request))
            return httpx.Response(200, json={
                "ask_units": "500",
                "min_ask_units": "495",
                "fee_units": "3",
                "price_impact": "0.01",
                "pool_address": "EQstonPool",
            })

        transport = json_transport({("POST", "/v1/swap/simulate"): simulate})
        adapter = StonfiAdapter(transport=transport)

        quote = await adapter.estimate(Asset.native(), Asset.parse(STON_ADDRESS), 1_000)

        assert quote.backend == "stonfi"
        assert quote.route == "stonfi"
        assert quote.output_amount == 500
        assert quote.fee == 3
        assert quote.price_impact == Decimal("0.01")
        assert quote.pool_address == "EQstonPool"
        assert seen["offer_address"] == TON_ZERO_ADDRESS
        assert seen["ask_address"] == STON_ADDRESS
        assert seen["units"] == "1000"

    @pytest.mark.asyncio
    async def test_simulate_wrapped_result(self):
        transport = json_transport({
            ("POST", "/v1/swap/simulate"): lambda r: httpx.Response(200, json={
                "success": True,
                "result": {"min_ask_units": "42"},
            }),
        })
        adapter = StonfiAdapter(transport=transport)

        quote = await adapter.estimate(Asset.parse(STON_ADDRESS), Asset.native(), 100)

        assert quote.output_amount == 42
        assert quote.price_impact == Decimal("0")

    @pytest.mark.asyncio
    async def test_simulate_no_route(self):
        transport = json_transport({
            ("POST", "/v1/swap/simulate"): lambda r: httpx.Response(400, json={"error": "no pool"}),
        })
        adapter = StonfiAdapter(transport=transport)

        assert await adapter.estimate(Asset.native(), Asset.parse(STON_ADDRESS), 100) is None

    @pytest.mark.asyncio
    async def test_simulate_transport_failure(self):
        def handler(request):
            raise httpx.ReadTimeout("timed out", request=request)

        adapter = StonfiAdapter(transport=httpx.MockTransport(handler))

        with pytest.raises(BackendUnavailableError):
            await adapter.estimate(Asset.native(), Asset.parse(STON_ADDRESS), 100)

    @pytest.mark.asyncio
    async def test_pools_normalized(self):
        transport = json_transport({
            ("GET", "/v1/pools"): lambda r: httpx.Response(200, json={"pool_list": [
                {
                    "address": "EQstonPool",
                    "token0_address": TON_ZERO_ADDRESS,
                    "token1_address": STON_ADDRESS,
                    "token1_symbol": "STON",
                    "reserve0": "100",
                    "reserve1": "250",
                    "lp_total_supply": "77",
                },
                {"address": "EQbroken", "token0_address": None},
            ]}),
        })
        adapter = StonfiAdapter(transport=transport)

        pools = await adapter.list_pools()

        assert len(pools) == 1
        pool = pools[0]
        assert pool.backend == "stonfi"
        assert pool.assets[0].is_native
        assert pool.assets[0].symbol == "TON"
        assert pool.assets[1].address == STON_ADDRESS
        assert pool.reserves == (100, 250)
        assert pool.total_supply == 77

    @pytest.mark.asyncio
    async def test_assets_normalized(self):
        transport = json_transport({
            ("GET", "/v1/assets"): lambda r: httpx.Response(200, json={"asset_list": [
                {"contract_address": STON_ADDRESS, "symbol": "STON", "display_name": "STON", "decimals": 9},
                {"contract_address": TON_ZERO_ADDRESS, "symbol": "TON"},
            ]}),
        })
        adapter = StonfiAdapter(transport=transport)

        assets = await adapter.list_assets()

        assert assets[0].address == STON_ADDRESS
        assert assets[0].decimals == 9
        assert assets[1].is_native

    @pytest.mark.asyncio
    async def test_pools_degrade_on_bad_shape(self):
        transport = json_transport({
            ("GET", "/v1/pools"): lambda r: httpx.Response(200, json={"pools": []}),
        })
        adapter = StonfiAdapter(transport=transport)

        assert await adapter.list_pools() == []


class TestQuoteAggregator:
    """Tests for best-quote selection."""

    @pytest.mark.asyncio
    async def test_picks_largest_output(self):
        aggregator = QuoteAggregator([FakeAdapter("dedust", output=900), FakeAdapter("stonfi", output=1_000)])

        result = await aggregator.estimate_best(Asset.native(), Asset.parse(STON_ADDRESS), 1_000)

        assert result.winner_backend == "stonfi"
        assert result.winner.output_amount == 1_000
        assert set(result.comparison()) == {"dedust", "stonfi"}

    @pytest.mark.asyncio
    async def test_winner_not_beaten(self):
        outputs = [(1, 2), (2, 1), (5, 5), (0, 3), (10**30, 10**30 - 1)]
        for first, second in outputs:
            aggregator = QuoteAggregator([
                FakeAdapter("dedust", output=first),
                FakeAdapter("stonfi", output=second),
            ])
            result = await aggregator.estimate_best(Asset.native(), Asset.parse(STON_ADDRESS), 1)
            assert result.winner.output_amount == max(first, second)

    @pytest.mark.asyncio
    async def test_tie_goes_to_first_backend(self):
        aggregator = QuoteAggregator([FakeAdapter("dedust", output=500), FakeAdapter("stonfi", output=500)])

        result = await aggregator.estimate_best(Asset.native(), Asset.parse(STON_ADDRESS), 1_000)

        assert result.winner_backend == "dedust"

    @pytest.mark.asyncio
    async def test_failed_and_empty_backends_reported(self):
        aggregator = QuoteAggregator([
            FakeAdapter("dedust", error=BackendUnavailableError("dedust", "down")),
            FakeAdapter("stonfi", output=10),
            FakeAdapter("other", output=None),
        ])

        result = await aggregator.estimate_best(Asset.native(), Asset.parse(STON_ADDRESS), 1_000)

        assert result.winner_backend == "stonfi"
        assert result.failed_backends == ["dedust"]
        comparison = result.comparison()
        assert comparison["dedust"] is None
        assert comparison["other"] is None
        assert comparison["stonfi"]["outputAmount"] == "10"

    @pytest.mark.asyncio
    async def test_all_backends_unavailable(self):
        aggregator = QuoteAggregator([
            FakeAdapter("dedust", error=RuntimeError("boom")),
            FakeAdapter("stonfi", output=None),
        ])

        with pytest.raises(AllBackendsUnavailableError):
            await aggregator.estimate_best(Asset.native(), Asset.parse(STON_ADDRESS), 1_000)

    @pytest.mark.asyncio
    async def test_every_backend_queried(self):
        slow = FakeAdapter("dedust", output=1, delay=0.02)
        fast = FakeAdapter("stonfi", output=2)
        aggregator = QuoteAggregator([slow, fast])

        result = await aggregator.estimate_best(Asset.native(), Asset.parse(STON_ADDRESS), 1_000)

        assert slow.calls == 1
        assert fast.calls == 1
        assert result.by_backend["dedust"].output_amount == 1

    @pytest.mark.asyncio
    async def test_non_positive_amount_rejected(self):
        adapter = FakeAdapter("dedust", output=1)
        aggregator = QuoteAggregator([adapter])

        with pytest.raises(MissingParameterError):
            await aggregator.estimate_best(Asset.native(), Asset.parse(STON_ADDRESS), 0)
        assert adapter.calls == 0

    @pytest.mark.asyncio
    async def test_estimate_with_single_backend(self):
        aggregator = QuoteAggregator([
            FakeAdapter("dedust", output=None),
            FakeAdapter("stonfi", output=7),
        ])

        quote = await aggregator.estimate_with("stonfi", Asset.native(), Asset.parse(STON_ADDRESS), 1)
        assert quote.output_amount == 7

        with pytest.raises(AllBackendsUnavailableError):
            await aggregator.estimate_with("dedust", Asset.native(), Asset.parse(STON_ADDRESS), 1)
        with pytest.raises(AllBackendsUnavailableError):
            await aggregator.estimate_with("missing", Asset.native(), Asset.parse(STON_ADDRESS), 1)


class TestMinReceived:
    """Tests for slippage protection."""

    def test_examples(self):
        assert min_received(1_000, Decimal("0.5")) == 995
        assert min_received(1_000, 0) == 1_000
        assert min_received(999, Decimal("1")) == 989
        assert min_received(1_992_013_962, "0.5") == 1_982_053_892

    def test_exact_for_large_amounts(self):
        big = 10**30 + 7
        assert min_received(big, "0") == big
        assert min_received(big, "0.5") == big * 995 // 1000

    def test_bounded_and_monotone(self):
        output = 123_456_789
        previous = output
        for slippage in ("0", "0.01", "0.1", "0.5", "1", "5", "50", "99.99"):
            value = min_received(output, slippage)
            assert 0 <= value <= output
            assert value <= previous
            previous = value

    def test_invalid_slippage(self):
        for slippage in ("100", "-1", "abc", "150"):
            with pytest.raises(MissingParameterError):
                min_received(1_000, slippage)


class TestBulkPrices:
    """Tests for pair price snapshots."""

    @pytest.mark.asyncio
    async def test_first_backend_owns_pair(self):
        aggregator = QuoteAggregator([
            FakeAdapter("dedust", pools=[make_pool("dedust", ("TON", "USDT"), reserves=(4, 8), address="EQd")]),
            FakeAdapter("stonfi", pools=[make_pool("stonfi", ("TON", "USDT"), reserves=(1, 3), address="EQs")]),
        ])

        prices = await aggregator.bulk_prices(["TON/USDT"])

        assert prices == {
            "TON/USDT": {
                "dex": "dedust",
                "address": "EQd",
                "reserves": ["4", "8"],
                "price": "2.000000000",
            }
        }

    @pytest.mark.asyncio
    async def test_filtered_to_requested_pairs(self):
        aggregator = QuoteAggregator([
            FakeAdapter("dedust", pools=[
                make_pool("dedust", ("TON", "USDT"), address="EQ1"),
                make_pool("dedust", ("TON", "NOT"), address="EQ2"),
            ]),
            FakeAdapter("stonfi", pools=[make_pool("stonfi", ("TON", "STON"), address="EQ3")]),
        ])

        assert set(await aggregator.bulk_prices(["TON/STON"])) == {"TON/STON"}
        assert set(await aggregator.bulk_prices([])) == {"TON/USDT", "TON/NOT", "TON/STON"}
        assert await aggregator.bulk_prices(["FOO/BAR"]) == {}

    @pytest.mark.asyncio
    async def test_pool_limit_per_backend(self):
        pools = [make_pool("dedust", ("TON", f"T{i}"), address=f"EQ{i}") for i in range(25)]
        aggregator = QuoteAggregator([FakeAdapter("dedust", pools=pools)])

        prices = await aggregator.bulk_prices()

        assert len(prices) == 20
        assert "TON/T24" not in prices

    @pytest.mark.asyncio
    async def test_fallback_labels_and_missing_reserves(self):
        pool = make_pool("dedust", ("TON", "USDT"), reserves=())
        pool.assets = (Asset.token("EQa"), Asset.token("EQb"))
        aggregator = QuoteAggregator([FakeAdapter("dedust", pools=[pool])])

        prices = await aggregator.bulk_prices()

        assert prices["TON/UNKNOWN"]["price"] is None
        assert prices["TON/UNKNOWN"]["reserves"] == []

    def test_format_price(self):
        assert format_price(3, 1) == "0.333333333"
        assert format_price(0, 1) is None
        assert format_price(None, 1) is None
