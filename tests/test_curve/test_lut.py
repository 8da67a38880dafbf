"""Tests for LUT construction, validation and artifact I/O."""

import json

import pytest

from src.curve.constants import CurveConfig
from src.curve.lut import (
    LookUpTable,
    LutValidationError,
    build_lut,
    cumulative_max,
    load_lut,
    load_or_build_lut,
    save_lut,
    simpson_inverse_price,
    to_base_units,
)
from src.curve.polynomial import PolynomialCurve


class TestToBaseUnits:
    def test_exact_value(self) -> None:
        assert to_base_units(1.5, 9, "floor") == 1_500_000_000
        assert to_base_units(1.5, 9, "ceil") == 1_500_000_000

    def test_directed_rounding(self) -> None:
        # 1.255 is stored as 1.25499999...; floor and ceil straddle it
        assert to_base_units(1.255, 2, "floor") == 125
        assert to_base_units(1.255, 2, "ceil") == 126

    def test_zero(self) -> None:
        assert to_base_units(0.0, 9, "floor") == 0
        assert to_base_units(0.0, 9, "ceil") == 0

    def test_bad_mode(self) -> None:
        with pytest.raises(ValueError, match="mode"):
            to_base_units(1.0, 9, "round")


class TestHelpers:
    def test_cumulative_max(self) -> None:
        assert cumulative_max([1, 3, 2, 5, 4]) == [1, 3, 3, 5, 5]

    def test_cumulative_max_empty(self) -> None:
        assert cumulative_max([]) == []

    def test_simpson_empty_interval(self) -> None:
        curve = PolynomialCurve(CurveConfig())
        assert simpson_inverse_price(curve, 2.0, 2.0) == 0.0

    def test_simpson_positive(self) -> None:
        curve = PolynomialCurve(CurveConfig())
        assert simpson_inverse_price(curve, 0.0, 0.1) > 0


class TestBuildLut:
    def test_shape(self, small_lut: LookUpTable) -> None:
        assert small_lut.nodes == 256
        assert len(small_lut.y_floor) == 257
        assert len(small_lut.y_ceil) == 257

    def test_terminal_exact(self, small_lut: LookUpTable, curve_config: CurveConfig) -> None:
        cap = curve_config.cap_base_units
        assert small_lut.y_floor[-1] == cap
        assert small_lut.y_ceil[-1] == cap
        assert small_lut.y_floor[0] == 0

    def test_monotone_and_ordered(self, small_lut: LookUpTable) -> None:
        for i in range(1, len(small_lut.y_floor)):
            assert small_lut.y_floor[i] >= small_lut.y_floor[i - 1]
            assert small_lut.y_ceil[i] >= small_lut.y_ceil[i - 1]
        for f, c in zip(small_lut.y_floor, small_lut.y_ceil):
            assert f <= c

    def test_bounded_by_cap(self, small_lut: LookUpTable) -> None:
        cap = small_lut.cap_base_units
        assert max(small_lut.y_ceil) <= cap

    def test_meta(self, small_lut: LookUpTable, curve_config: CurveConfig) -> None:
        meta = small_lut.meta
        assert meta.decimals == 9
        assert meta.cap_base_units == str(curve_config.cap_base_units)
        assert meta.x_max == pytest.approx(curve_config.x_max)
        assert 0.0 < meta.frac_at_T < meta.frac_at_2T < 1.0

    def test_other_decimals(self) -> None:
        cfg = CurveConfig(decimals=6)
        lut = build_lut(cfg, nodes=32)
        assert lut.y_floor[-1] == 800_000_000 * 10**6

    def test_zero_nodes_rejected(self, curve_config: CurveConfig) -> None:
        with pytest.raises(ValueError):
            build_lut(curve_config, nodes=0)


class TestValidation:
    def _doc(self, lut: LookUpTable) -> dict:
        return json.loads(json.dumps(lut.to_json()))

    def test_serialized_values_are_strings(self, small_lut: LookUpTable) -> None:
        doc = small_lut.to_json()
        assert all(isinstance(v, str) for v in doc["y_floor"])

    def test_tail_mismatch_rejected(self, small_lut: LookUpTable) -> None:
        doc = self._doc(small_lut)
        doc["y_floor"][-1] = "1"
        with pytest.raises(LutValidationError):
            LookUpTable.from_json(doc)

    def test_non_monotone_rejected(self, small_lut: LookUpTable) -> None:
        doc = self._doc(small_lut)
        doc["y_floor"][10] = doc["y_floor"][200]
        with pytest.raises(LutValidationError):
            LookUpTable.from_json(doc)

    def test_length_mismatch_rejected(self, small_lut: LookUpTable) -> None:
        doc = self._doc(small_lut)
        doc["y_ceil"] = doc["y_ceil"][:-1]
        with pytest.raises(LutValidationError):
            LookUpTable.from_json(doc)


class TestArtifactIO:
    def test_save_and_load(self, tmp_path, small_lut: LookUpTable) -> None:
        path = tmp_path / "lut.json"
        save_lut(small_lut, path)
        loaded = load_lut(path)
        assert loaded.y_floor == small_lut.y_floor
        assert loaded.y_ceil == small_lut.y_ceil
        assert loaded.meta == small_lut.meta

    def test_load_or_build_creates_missing(self, tmp_path, curve_config: CurveConfig) -> None:
        path = tmp_path / "sub" / "lut.json"
        lut = load_or_build_lut(path, curve_config, nodes=16)
        assert path.exists()
        assert lut.nodes == 16
        # Second call loads instead of rebuilding
        again = load_or_build_lut(path, curve_config, nodes=64)
        assert again.nodes == 16

    def test_load_or_build_rejects_other_decimals(self, tmp_path, curve_config: CurveConfig) -> None:
        path = tmp_path / "lut.json"
        load_or_build_lut(path, curve_config, nodes=16)
        with pytest.raises(LutValidationError, match="decimals"):
            load_or_build_lut(path, CurveConfig(decimals=6), nodes=16)
