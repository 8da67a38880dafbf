"""Cumulative lookup table F(x): collateral position -> tokens sold (base units).

Built offline in two phases:
  1. Float phase — per-bin composite Simpson of 1/k(x), accumulated into a
     monotone running sum, then calibrated so F(X_MAX) hits the cap exactly.
  2. Integer phase — directed rounding to base units (floor and ceil
     variants), cap clamp, forward max-scan, exact tail.

The result is a versioned JSON artifact; the service never rebuilds it per
request.
"""

from __future__ import annotations

import json
import math
from dataclasses import dataclass
from pathlib import Path

from loguru import logger
from pydantic import BaseModel

from src.curve.constants import CurveConfig
from src.curve.polynomial import PolynomialCurve
from src.utils.atomic import atomic_write_json

DEFAULT_NODES = 4096
DEFAULT_PANELS = 2
ROUNDING_EPS = 1e-12


class LutValidationError(ValueError):
    """LUT artifact violates its monotone / bounded / terminal-exact contract."""


class LutMeta(BaseModel):
    decimals: int
    nodes: int
    t: float
    x_max: float
    dx: float
    cap_tokens: int
    cap_base_units: str
    frac_at_T: float = 0.0
    frac_at_2T: float = 0.0
    note: str = ""


@dataclass(frozen=True)
class LookUpTable:
    """Two parallel monotone tables over N+1 uniform nodes of [0, x_max]."""

    meta: LutMeta
    y_floor: tuple[int, ...]
    y_ceil: tuple[int, ...]

    @property
    def nodes(self) -> int:
        return len(self.y_floor) - 1

    @property
    def x_max(self) -> float:
        return self.meta.x_max

    @property
    def dx(self) -> float:
        return self.meta.x_max / self.nodes

    @property
    def cap_base_units(self) -> int:
        return int(self.meta.cap_base_units)

    @property
    def decimals(self) -> int:
        return self.meta.decimals

    def validate(self) -> None:
        cap = self.cap_base_units
        if len(self.y_floor) != len(self.y_ceil):
            raise LutValidationError(
                f"floor/ceil length mismatch: {len(self.y_floor)} != {len(self.y_ceil)}"
            )
        if len(self.y_floor) < 2:
            raise LutValidationError("LUT needs at least two nodes")
        if self.y_floor[-1] != cap or self.y_ceil[-1] != cap:
            raise LutValidationError("LUT tail does not equal cap_base_units")
        prev_f = prev_c = 0
        for i, (f, c) in enumerate(zip(self.y_floor, self.y_ceil)):
            if f < 0 or c > cap:
                raise LutValidationError(f"LUT entry {i} out of [0, cap]")
            if f > c:
                raise LutValidationError(f"y_floor[{i}] > y_ceil[{i}]")
            if f < prev_f or c < prev_c:
                raise LutValidationError(f"LUT not monotone at index {i}")
            prev_f, prev_c = f, c

    def to_json(self) -> dict:
        return {
            "meta": self.meta.model_dump(),
            "y_floor": [str(v) for v in self.y_floor],
            "y_ceil": [str(v) for v in self.y_ceil],
        }

    @classmethod
    def from_json(cls, data: dict) -> LookUpTable:
        meta = LutMeta.model_validate(data.get("meta", {}))
        floor_raw = data.get("y_floor") or []
        ceil_raw = data.get("y_ceil") or floor_raw
        lut = cls(
            meta=meta,
            y_floor=tuple(int(v) for v in floor_raw),
            y_ceil=tuple(int(v) for v in ceil_raw),
        )
        lut.validate()
        return lut


# ─── Float phase ────────────────────────────────────────────────────


def simpson_inverse_price(curve: PolynomialCurve, a: float, b: float, panels: int = 2) -> float:
    """Composite Simpson of 1/k over a single bin [a, b]."""
    if b <= a:
        return 0.0
    n = panels + 1 if panels % 2 else panels
    h = (b - a) / n
    total = 0.0
    for i in range(n + 1):
        if i == 0 or i == n:
            w = 1
        else:
            w = 4 if i % 2 else 2
        total += w * curve.inverse_price(a + i * h)
    return total * h / 3


def cumulative_integral(curve: PolynomialCurve, nodes: int, panels: int) -> list[float]:
    """Running sum of per-bin integrals; monotone by construction."""
    dx = curve.config.x_max / nodes
    f_int = [0.0] * (nodes + 1)
    for i in range(nodes):
        inc = simpson_inverse_price(curve, i * dx, (i + 1) * dx, panels)
        f_int[i + 1] = f_int[i] + max(0.0, inc)
    return f_int


# ─── Integer phase ──────────────────────────────────────────────────


def to_base_units(tokens_whole: float, decimals: int, mode: str) -> int:
    """Whole tokens -> base units with directed rounding of the remainder."""
    if mode not in ("floor", "ceil"):
        raise ValueError(f"mode must be 'floor' or 'ceil', got {mode!r}")
    whole = math.floor(tokens_whole)
    frac = tokens_whole - whole
    scale = 10**decimals
    if mode == "ceil":
        frac_int = math.ceil(frac * scale - ROUNDING_EPS)
    else:
        frac_int = math.floor(frac * scale + ROUNDING_EPS)
    if frac_int < 0:
        frac_int = 0
    if frac_int >= scale:
        return (whole + 1) * scale
    return whole * scale + frac_int


def cumulative_max(values: list[int]) -> list[int]:
    out = list(values)
    for i in range(1, len(out)):
        if out[i] < out[i - 1]:
            out[i] = out[i - 1]
    return out


def build_lut(
    config: CurveConfig,
    nodes: int = DEFAULT_NODES,
    panels: int = DEFAULT_PANELS,
) -> LookUpTable:
    """Build the calibrated floor/ceil cumulative tables for a CurveConfig."""
    if nodes < 1:
        raise ValueError(f"nodes must be >= 1, got {nodes}")

    curve = PolynomialCurve(config)
    f_int = cumulative_integral(curve, nodes, panels)
    if f_int[-1] <= 0:
        raise LutValidationError("integral of 1/k over the domain is not positive")

    # Calibrate: tokens per unit of ∫1/k so F(X_MAX) lands on the cap
    beta = config.cap_tokens / f_int[-1]
    f_whole = [beta * v for v in f_int]

    cap = config.cap_base_units
    y_floor = [min(to_base_units(v, config.decimals, "floor"), cap) for v in f_whole]
    y_ceil = [min(to_base_units(v, config.decimals, "ceil"), cap) for v in f_whole]
    y_floor = cumulative_max(y_floor)
    y_ceil = cumulative_max(y_ceil)
    y_floor[-1] = cap
    y_ceil[-1] = cap

    dx = config.x_max / nodes
    idx_t = min(nodes, round(config.period / dx))
    idx_2t = min(nodes, round(2 * config.period / dx))

    meta = LutMeta(
        decimals=config.decimals,
        nodes=nodes,
        t=config.period,
        x_max=config.x_max,
        dx=dx,
        cap_tokens=config.cap_tokens,
        cap_base_units=str(cap),
        frac_at_T=round(y_floor[idx_t] / cap, 6),
        frac_at_2T=round(y_floor[idx_2t] / cap, 6),
        note="k(x) on [0,T] is raw polynomial; [T,2T] and [2T,3T] repeat by shift only.",
    )
    lut = LookUpTable(meta=meta, y_floor=tuple(y_floor), y_ceil=tuple(y_ceil))
    lut.validate()

    logger.info(
        f"[LUT] Built {nodes} bins, beta={beta:.6e}, "
        f"F(T)/cap={meta.frac_at_T:.6f}, F(2T)/cap={meta.frac_at_2T:.6f}"
    )
    return lut


# ─── Artifact I/O ───────────────────────────────────────────────────


def save_lut(lut: LookUpTable, path: str | Path) -> None:
    atomic_write_json(path, lut.to_json())
    logger.info(f"[LUT] Wrote {lut.nodes + 1} nodes -> {path}")


def load_lut(path: str | Path) -> LookUpTable:
    with open(path, encoding="utf-8") as fh:
        data = json.load(fh)
    lut = LookUpTable.from_json(data)
    logger.info(f"[LUT] Loaded {path} (decimals={lut.decimals}, nodes={lut.nodes})")
    return lut


def load_or_build_lut(path: str | Path, config: CurveConfig, nodes: int = DEFAULT_NODES) -> LookUpTable:
    """Load the artifact; build and persist it only when missing."""
    target = Path(path)
    if target.exists():
        lut = load_lut(target)
        if lut.decimals != config.decimals or lut.cap_base_units != config.cap_base_units:
            raise LutValidationError(
                f"LUT at {target} was built for decimals={lut.decimals}, "
                f"cap={lut.cap_base_units}; config wants decimals={config.decimals}, "
                f"cap={config.cap_base_units}"
            )
        return lut

    logger.warning(f"[LUT] {target} missing, building once from curve config")
    lut = build_lut(config, nodes=nodes)
    save_lut(lut, target)
    return lut
