"""Shared test fixtures."""

from pathlib import Path

import pytest
from solders.keypair import Keypair  # type: ignore[import-untyped]

from src.curve.constants import CurveConfig
from src.curve.lut import LookUpTable, build_lut
from src.curve.model import CurveModel
from src.ledger.events import RecordingSink
from src.ledger.store import LedgerStore

SMALL_NODES = 256


def new_address() -> str:
    """Random valid base58 pubkey."""
    return str(Keypair().pubkey())


@pytest.fixture(scope="session")
def curve_config() -> CurveConfig:
    return CurveConfig()


@pytest.fixture(scope="session")
def small_lut(curve_config: CurveConfig) -> LookUpTable:
    """Coarse table: same invariants as the production one, fast to build."""
    return build_lut(curve_config, nodes=SMALL_NODES)


@pytest.fixture(scope="session")
def curve_model(small_lut: LookUpTable) -> CurveModel:
    return CurveModel(small_lut)


@pytest.fixture
def sink() -> RecordingSink:
    return RecordingSink()


@pytest.fixture
def ledger_path(tmp_path: Path) -> Path:
    return tmp_path / "ledger.json"


@pytest.fixture
def store(ledger_path: Path, sink: RecordingSink) -> LedgerStore:
    return LedgerStore(ledger_path, sink=sink)
