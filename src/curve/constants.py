"""Curve policy constants and the immutable CurveConfig."""

from __future__ import annotations

from dataclasses import dataclass, field

LAMPORTS_PER_SOL = 1_000_000_000

# Repeat period of the price shape; the domain is three shifted copies.
PERIOD_T = 26.1799387799149450017921481048688292503357

# Price polynomial on [0, T], raw in x, constant term first.
BASE_SEGMENT_COEFFS: tuple[float, ...] = (
    102001241.383929669857025375000,  # x^0
    -24339854.057240757803318730000,  # x^1
    -3118869.576150425010217276875,  # x^2
    1766137.196820179010204505125,  # x^3
    -183717.474136566102274613625,  # x^4
    8875.544105487513181387500,  # x^5
    -239.329141335857214037125,  # x^6
    3.823898180409012326625,  # x^7
    -0.036037497039981367500,  # x^8
    0.000185372546842890000,  # x^9
    -0.000000401790645216000000,  # x^10
)

# Floor applied before the price is used as a divisor.
PRICE_FLOOR = 1e-18

# Pseudo-owners in the holders map
BONDING_CURVE = "BONDING_CURVE"
TREASURY_LOCKED = "TREASURY_LOCKED"


@dataclass(frozen=True)
class CurveConfig:
    """Sale policy and price shape shared by every curve instance."""

    decimals: int = 9
    cap_tokens: int = 800_000_000
    total_supply_tokens: int = 1_000_000_000
    period: float = PERIOD_T
    coefficients: tuple[float, ...] = field(default=BASE_SEGMENT_COEFFS)

    def __post_init__(self) -> None:
        if self.decimals < 0:
            raise ValueError(f"decimals must be >= 0, got {self.decimals}")
        if self.cap_tokens <= 0:
            raise ValueError(f"cap_tokens must be positive, got {self.cap_tokens}")
        if self.cap_tokens > self.total_supply_tokens:
            raise ValueError("cap_tokens cannot exceed total_supply_tokens")
        if self.period <= 0:
            raise ValueError(f"period must be positive, got {self.period}")
        if not self.coefficients:
            raise ValueError("coefficients must not be empty")

    @property
    def x_max(self) -> float:
        """Upper bound of the collateral domain (SOL): three periods."""
        return 3 * self.period

    @property
    def scale(self) -> int:
        return 10**self.decimals

    @property
    def cap_base_units(self) -> int:
        return self.cap_tokens * self.scale

    @property
    def total_supply_base_units(self) -> int:
        return self.total_supply_tokens * self.scale

    @classmethod
    def from_settings(cls, settings) -> CurveConfig:
        return cls(
            decimals=settings.curve_decimals,
            cap_tokens=settings.curve_cap_tokens,
            total_supply_tokens=settings.curve_total_supply_tokens,
        )
