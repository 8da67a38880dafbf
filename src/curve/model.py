"""Runtime pricing queries against a built LookUpTable.

Positions x are SOL deposited along the curve, clamped to [0, X_MAX].
Token amounts are integer base units.

Rounding policy: tokens paid out to a buyer are F_floor(x1) - F_ceil(x0);
tokens a seller must return are F_ceil(x0) - F_floor(x1); lamports are
always floored. The protocol never pays out more than it received, at the
cost of at most one base unit per query.
"""

from __future__ import annotations

import math
from dataclasses import dataclass

from src.curve.constants import LAMPORTS_PER_SOL
from src.curve.lut import LookUpTable

BISECT_MAX_ITERS = 50
BISECT_TOL = 1e-9


@dataclass(frozen=True)
class BuyQuote:
    tokens_out: int  # base units
    lamports_used: int


def _clamp01(t: float) -> float:
    if t <= 0.0:
        return 0.0
    if t >= 1.0:
        return 1.0
    return t


class CurveModel:
    """Pure query model. Holds only the immutable table, so it is safe to
    share across every concurrent request and every curve of one config."""

    def __init__(self, lut: LookUpTable) -> None:
        self._lut = lut
        self._floor = lut.y_floor
        self._ceil = lut.y_ceil
        self._n = lut.nodes
        self._x_max = lut.x_max
        self._dx = lut.dx
        self._cap = lut.cap_base_units
        self._scale = 10**lut.decimals

    @property
    def x_max(self) -> float:
        return self._x_max

    @property
    def cap_base_units(self) -> int:
        return self._cap

    @property
    def dx(self) -> float:
        return self._dx

    @property
    def nodes(self) -> int:
        return self._n

    @property
    def decimals(self) -> int:
        return self._lut.decimals

    def clamp_x(self, x: float) -> float:
        return max(0.0, min(self._x_max, x))

    # ─── Directed interpolation ───────────────────────────────────

    def _interp(self, arr: tuple[int, ...], x: float, round_up: bool) -> int:
        if x <= 0.0:
            return 0
        if x >= self._x_max:
            return self._cap
        u = x / self._dx
        i = min(int(math.floor(u)), self._n - 1)
        t = _clamp01(u - i)
        a = arr[i]
        b = arr[i + 1]
        if b <= a or t == 0.0:
            return min(a, self._cap)
        span = (b - a) * t
        inc = math.ceil(span) if round_up else math.floor(span)
        return min(a + int(inc), self._cap)

    def y_floor_at(self, x: float) -> int:
        return self._interp(self._floor, x, round_up=False)

    def y_ceil_at(self, x: float) -> int:
        return self._interp(self._ceil, x, round_up=True)

    # ─── Forward queries ──────────────────────────────────────────

    def tokens_between(self, x0: float, x1: float) -> int:
        """Tokens issued moving from x0 to x1 (conservative for payouts)."""
        a = self.clamp_x(x0)
        b = self.clamp_x(x1)
        if b <= a:
            return 0
        return max(0, self.y_floor_at(b) - self.y_ceil_at(a))

    def cost_between_collateral(self, x0: float, x1: float) -> float:
        return max(0.0, self.clamp_x(x1) - self.clamp_x(x0))

    def x_after_buying_collateral(self, x0: float, amount_in: float) -> float:
        return min(self._x_max, max(0.0, x0) + max(0.0, amount_in))

    def x_after_selling_collateral(self, x0: float, amount_out: float) -> float:
        return max(0.0, max(0.0, x0) - max(0.0, amount_out))

    # ─── Inverse queries ──────────────────────────────────────────

    def x_after_buying_tokens(self, x0: float, tokens_wanted: int) -> float:
        """Smallest x1 >= x0 with F_floor(x1) - F_ceil(x0) >= tokens_wanted."""
        start = self.clamp_x(x0)
        if tokens_wanted <= 0:
            return start
        y0 = self.y_ceil_at(start)
        lo, hi = start, self._x_max
        for _ in range(BISECT_MAX_ITERS):
            mid = 0.5 * (lo + hi)
            if self.y_floor_at(mid) - y0 >= tokens_wanted:
                hi = mid
            else:
                lo = mid
            if hi - lo < BISECT_TOL:
                break
        return self.clamp_x(hi)

    def x_after_selling_tokens(self, x0: float, tokens_in: int) -> float:
        """Largest x1 <= x0 with F_ceil(x0) - F_floor(x1) >= tokens_in.

        Runs the full fixed-count bisection and returns the bracket midpoint,
        the same loop the on-chain program executes, so sell quotes agree
        with it to the lamport.
        """
        start = self.clamp_x(x0)
        if tokens_in <= 0:
            return start
        y0 = self.y_ceil_at(start)
        lo, hi = 0.0, start
        for _ in range(BISECT_MAX_ITERS):
            mid = 0.5 * (lo + hi)
            if y0 - self.y_floor_at(mid) >= tokens_in:
                # still releases enough tokens; move right, pay out less SOL
                lo = mid
            else:
                hi = mid
        return 0.5 * (lo + hi)

    def x_from_tokens_sold(self, tokens_sold: int) -> float:
        """Largest x with F_floor(x) <= tokens_sold."""
        y = min(max(0, tokens_sold), self._cap)
        if y == 0:
            return 0.0
        if y >= self._cap:
            return self._x_max

        lo, hi = 0, self._n
        while lo < hi:
            mid = (lo + hi + 1) >> 1
            if min(self._floor[mid], self._cap) <= y:
                lo = mid
            else:
                hi = mid - 1
        if lo >= self._n:
            return self._x_max

        yl = min(self._floor[lo], self._cap)
        yr = min(self._floor[lo + 1], self._cap)
        denom = yr - yl
        frac = 0.0 if denom <= 0 else _clamp01((y - yl) / denom)
        return (lo + frac) * self._dx

    # ─── Trade previews (mirror the on-chain program) ─────────────

    def quote_buy(self, tokens_sold: int, lamports_in: int) -> BuyQuote:
        if lamports_in <= 0:
            return BuyQuote(tokens_out=0, lamports_used=0)
        x0 = self.x_from_tokens_sold(tokens_sold)
        x1 = self.x_after_buying_collateral(x0, lamports_in / LAMPORTS_PER_SOL)

        cap_remaining = max(0, self._cap - tokens_sold)
        dy = max(0, self.y_floor_at(x1) - self.y_ceil_at(x0))
        used = math.floor(max(0.0, x1 - x0) * LAMPORTS_PER_SOL)
        return BuyQuote(tokens_out=min(dy, cap_remaining), lamports_used=min(used, lamports_in))

    def quote_sell(self, tokens_sold: int, tokens_in: int) -> int:
        """Lamports returned for selling tokens_in base units."""
        if tokens_in <= 0:
            return 0
        x0 = self.x_from_tokens_sold(tokens_sold)
        x1 = self.x_after_selling_tokens(x0, tokens_in)
        return math.floor(max(0.0, x0 - x1) * LAMPORTS_PER_SOL)

    def spot_price(self, x: float) -> float:
        """SOL per whole token from the floor-table slope. UI only."""
        h = self._dx
        xl = self.clamp_x(x - 0.5 * h)
        xr = self.clamp_x(x + 0.5 * h)
        d_tokens = (self.y_floor_at(xr) - self.y_floor_at(xl)) / self._scale
        if d_tokens <= 0:
            return math.inf
        return (xr - xl) / d_tokens
