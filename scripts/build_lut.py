"""Build the curve lookup table artifact.

Usage:
    python scripts/build_lut.py --decimals 9 --nodes 4096 --out data/lut.dec9.json
"""

import argparse
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from loguru import logger  # noqa: E402

from config.settings import settings  # noqa: E402
from src.curve.constants import CurveConfig  # noqa: E402
from src.curve.lut import DEFAULT_NODES, build_lut, save_lut  # noqa: E402
from src.utils.logger import setup_logger  # noqa: E402


def main() -> None:
    parser = argparse.ArgumentParser(description="Build the bonding-curve lookup table")
    parser.add_argument("--decimals", type=int, default=settings.curve_decimals)
    parser.add_argument("--nodes", type=int, default=settings.lut_nodes or DEFAULT_NODES)
    parser.add_argument("--cap-tokens", type=int, default=settings.curve_cap_tokens)
    parser.add_argument("--out", default=None, help="Output path (default data/lut.dec<d>.json)")
    args = parser.parse_args()

    setup_logger(level="INFO", file_logs=False)

    config = CurveConfig(
        decimals=args.decimals,
        cap_tokens=args.cap_tokens,
        total_supply_tokens=settings.curve_total_supply_tokens,
    )
    out = args.out or f"data/lut.dec{args.decimals}.json"

    lut = build_lut(config, nodes=args.nodes)
    save_lut(lut, out)
    logger.info(
        f"Wrote {out}: nodes={lut.nodes} cap={lut.cap_base_units} "
        f"frac@T={lut.meta.frac_at_T:.6f} frac@2T={lut.meta.frac_at_2T:.6f}"
    )


if __name__ == "__main__":
    main()
