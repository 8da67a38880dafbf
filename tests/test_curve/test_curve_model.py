"""Tests for CurveModel pricing queries."""

import math

import pytest

from src.curve.lut import LookUpTable
from src.curve.model import CurveModel

LAMPORTS = 1_000_000_000


class TestForward:
    def test_full_domain_issues_cap(self, curve_model: CurveModel) -> None:
        assert curve_model.tokens_between(0.0, curve_model.x_max) == curve_model.cap_base_units

    def test_reversed_interval_is_zero(self, curve_model: CurveModel) -> None:
        assert curve_model.tokens_between(5.0, 1.0) == 0

    def test_endpoints(self, curve_model: CurveModel) -> None:
        assert curve_model.y_floor_at(0.0) == 0
        assert curve_model.y_ceil_at(-1.0) == 0
        assert curve_model.y_floor_at(curve_model.x_max + 10) == curve_model.cap_base_units

    def test_floor_never_above_ceil(self, curve_model: CurveModel) -> None:
        step = curve_model.x_max / 997
        for i in range(998):
            x = i * step
            assert curve_model.y_floor_at(x) <= curve_model.y_ceil_at(x)

    def test_monotone(self, curve_model: CurveModel) -> None:
        step = curve_model.x_max / 997
        prev = -1
        for i in range(998):
            y = curve_model.y_floor_at(i * step)
            assert y >= prev
            prev = y

    def test_collateral_helpers_clamp(self, curve_model: CurveModel) -> None:
        x_max = curve_model.x_max
        assert curve_model.x_after_buying_collateral(x_max - 0.1, 1.0) == x_max
        assert curve_model.x_after_selling_collateral(0.5, 2.0) == 0.0
        assert curve_model.cost_between_collateral(2.0, 1.0) == 0.0
        assert curve_model.cost_between_collateral(1.0, 3.0) == pytest.approx(2.0)


class TestInverse:
    def test_tokens_sold_endpoints(self, curve_model: CurveModel) -> None:
        assert curve_model.x_from_tokens_sold(0) == 0.0
        assert curve_model.x_from_tokens_sold(-5) == 0.0
        assert curve_model.x_from_tokens_sold(curve_model.cap_base_units) == curve_model.x_max

    def test_tokens_sold_hits_node(self, curve_model: CurveModel, small_lut: LookUpTable) -> None:
        i = 100
        assert small_lut.y_floor[i - 1] < small_lut.y_floor[i] < small_lut.y_floor[i + 1]
        x = curve_model.x_from_tokens_sold(small_lut.y_floor[i])
        assert x == pytest.approx(i * curve_model.dx)

    def test_tokens_sold_inverts_floor_within_bin(self, curve_model: CurveModel) -> None:
        for x in (0.3, 7.0, 30.0, 61.5):
            recovered = curve_model.x_from_tokens_sold(curve_model.y_floor_at(x))
            assert abs(recovered - x) <= curve_model.dx

    def test_buying_tokens_reaches_target(self, curve_model: CurveModel) -> None:
        wanted = 5_000_000 * LAMPORTS
        x1 = curve_model.x_after_buying_tokens(0.0, wanted)
        assert curve_model.y_floor_at(x1) >= wanted
        assert curve_model.x_after_buying_tokens(2.0, 0) == 2.0

    def test_buying_tokens_inverts_tokens_between(self, curve_model: CurveModel) -> None:
        # positions spread over all three windows of the curve
        xs = (0.25, 3.0, 11.0, 20.5, 26.0, 27.5, 35.0, 44.0, 52.0, 53.0, 61.0, 70.0, 78.0)
        for i, x0 in enumerate(xs):
            for x1 in xs[i + 1 :]:
                tokens = curve_model.tokens_between(x0, x1)
                recovered = curve_model.x_after_buying_tokens(x0, tokens)
                assert abs(recovered - x1) <= curve_model.dx, (x0, x1)

    def test_selling_tokens_brackets_boundary(self, curve_model: CurveModel) -> None:
        x0 = 10.0
        y0 = curve_model.y_ceil_at(x0)
        tokens = y0 // 4
        x1 = curve_model.x_after_selling_tokens(x0, tokens)
        assert x1 <= x0
        assert y0 - curve_model.y_floor_at(x1 - 1e-9) >= tokens
        assert y0 - curve_model.y_floor_at(x1 + 1e-9) < tokens

    def test_selling_tokens_runs_full_bisection(self, curve_model: CurveModel) -> None:
        def fixed_bisection(x0: float, tokens_in: int) -> float:
            y0 = curve_model.y_ceil_at(x0)
            lo, hi = 0.0, x0
            for _ in range(50):
                mid = 0.5 * (lo + hi)
                if y0 - curve_model.y_floor_at(mid) >= tokens_in:
                    lo = mid
                else:
                    hi = mid
            return 0.5 * (lo + hi)

        for x0, share in ((5.0, 3), (30.0, 7), (60.0, 2)):
            tokens = curve_model.y_ceil_at(x0) // share
            assert curve_model.x_after_selling_tokens(x0, tokens) == fixed_bisection(x0, tokens)
        assert curve_model.x_after_selling_tokens(4.0, 0) == 4.0


class TestQuotes:
    def test_buy_one_sol_from_start(self, curve_model: CurveModel) -> None:
        quote = curve_model.quote_buy(0, LAMPORTS)
        assert quote.tokens_out > 0
        assert 0 < quote.lamports_used <= LAMPORTS

    def test_buy_nothing(self, curve_model: CurveModel) -> None:
        quote = curve_model.quote_buy(0, 0)
        assert quote.tokens_out == 0
        assert quote.lamports_used == 0

    def test_buy_limited_by_remaining_cap(self, curve_model: CurveModel) -> None:
        sold = curve_model.cap_base_units - 10
        quote = curve_model.quote_buy(sold, 1_000 * LAMPORTS)
        assert quote.tokens_out <= 10

    def test_sell_nothing(self, curve_model: CurveModel) -> None:
        assert curve_model.quote_sell(10**15, 0) == 0

    def test_buy_then_sell_is_not_profitable(self, curve_model: CurveModel) -> None:
        quote = curve_model.quote_buy(0, LAMPORTS)
        back = curve_model.quote_sell(quote.tokens_out, quote.tokens_out)
        assert back <= LAMPORTS

    def test_spot_price_positive(self, curve_model: CurveModel) -> None:
        price = curve_model.spot_price(1.0)
        assert price > 0
        assert not math.isinf(price)
