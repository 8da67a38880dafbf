"""Raydium API v3 client — CPMM fee configurations."""

import asyncio

import httpx
from loguru import logger

from src.migration.errors import RaydiumConfigError
from src.raydium.models import CpmmFeeConfig
from src.utils.rate_limiter import RateLimiter

API_URLS = {
    "mainnet": "https://api-v3.raydium.io",
    "devnet": "https://api-v3-devnet.raydium.io",
}
MAX_RETRIES = 2
RETRY_DELAYS = [1.0, 3.0]


class RaydiumApiClient:
    """Async HTTP client for Raydium API v3 (free, no key)."""

    def __init__(self, cluster: str = "devnet", max_rps: float = 5.0) -> None:
        if cluster not in API_URLS:
            raise ValueError(f"Unknown Raydium cluster {cluster!r}")
        self._base_url = API_URLS[cluster]
        self._rate_limiter = RateLimiter(max_rps)
        self._client = httpx.AsyncClient(timeout=10.0)
        self._configs: list[CpmmFeeConfig] | None = None

    async def close(self) -> None:
        await self._client.aclose()

    async def get_cpmm_configs(self) -> list[CpmmFeeConfig]:
        """Fetch CPMM fee configs. Cached after the first success.

        Raises RaydiumConfigError if the list cannot be obtained.
        """
        if self._configs:
            return self._configs

        url = f"{self._base_url}/main/cpmm-config"
        for attempt in range(MAX_RETRIES + 1):
            delay = RETRY_DELAYS[min(attempt, len(RETRY_DELAYS) - 1)]
            try:
                await self._rate_limiter.acquire()
                resp = await self._client.get(url)

                if resp.status_code == 429 or resp.status_code >= 500:
                    if attempt < MAX_RETRIES:
                        logger.debug(f"[RAYDIUM] HTTP {resp.status_code}, retry in {delay}s")
                        await asyncio.sleep(delay)
                        continue
                    raise RaydiumConfigError(f"cpmm-config HTTP {resp.status_code}")

                if resp.status_code != 200:
                    raise RaydiumConfigError(f"cpmm-config HTTP {resp.status_code}")

                configs = _parse_configs(resp.json())
                if not configs:
                    raise RaydiumConfigError("Raydium returned no CPMM fee configs")
                self._configs = configs
                logger.info(f"[RAYDIUM] Loaded {len(configs)} CPMM fee configs")
                return configs

            except (httpx.TimeoutException, httpx.ConnectError) as e:
                if attempt < MAX_RETRIES:
                    logger.debug(f"[RAYDIUM] {type(e).__name__}, retry in {delay}s")
                    await asyncio.sleep(delay)
                else:
                    raise RaydiumConfigError(f"cpmm-config unreachable: {e}") from e

        raise RaydiumConfigError("cpmm-config retries exhausted")

    async def select_fee_config(self, index: int | None = None) -> CpmmFeeConfig:
        """Config with the given ``index``, or the first one when unset."""
        configs = await self.get_cpmm_configs()
        if index is None:
            return configs[0]
        for cfg in configs:
            if cfg.index == index:
                return cfg
        raise RaydiumConfigError(f"no CPMM fee config with index {index}")


def _parse_configs(data: dict) -> list[CpmmFeeConfig]:
    """Parse /main/cpmm-config response."""
    items = data.get("data") if isinstance(data, dict) else None
    if not isinstance(items, list):
        return []

    configs: list[CpmmFeeConfig] = []
    for item in items:
        if not isinstance(item, dict) or not item.get("id"):
            continue
        try:
            configs.append(
                CpmmFeeConfig(
                    id=str(item["id"]),
                    index=int(item.get("index", 0)),
                    trade_fee_rate=int(item.get("tradeFeeRate", 0) or 0),
                    protocol_fee_rate=int(item.get("protocolFeeRate", 0) or 0),
                    fund_fee_rate=int(item.get("fundFeeRate", 0) or 0),
                    create_pool_fee=int(item.get("createPoolFee", 0) or 0),
                )
            )
        except (ValueError, TypeError):
            logger.debug(f"[RAYDIUM] Skipping malformed fee config: {item}")
    return configs
