"""Solana JSON-RPC client — account reads, token scans, send + confirm.

Reads raise RpcError after bounded retries instead of returning zeros:
a migration preflight must never mistake an RPC outage for an empty
balance.
"""

from __future__ import annotations

import asyncio
import base64
from dataclasses import dataclass
from typing import Any

import httpx
from loguru import logger

from src.utils.rate_limiter import RateLimiter

TOKEN_PROGRAM_ID = "TokenkegQfeZyiNwAJbNbGKPFXCWuBvf9Ss623VQ5DA"
TOKEN_ACCOUNT_SIZE = 165

MAX_RETRIES = 2
RETRY_DELAYS = [1.0, 3.0]

# Confirmation polling
CONFIRM_POLL_INTERVAL = 2.0  # seconds
CONFIRM_TIMEOUT = 60  # seconds
RESEND_INTERVAL = 4.0  # seconds


class RpcError(Exception):
    """Transport or JSON-RPC level failure after retries."""

    def __init__(self, method: str, message: str, *, code: int | None = None) -> None:
        super().__init__(f"{method}: {message}")
        self.method = method
        self.code = code
        self.message = message


@dataclass
class AccountInfo:
    lamports: int
    owner: str
    data: bytes


@dataclass
class TokenAccount:
    address: str
    owner: str
    amount: int


@dataclass
class Confirmation:
    """Terminal result of confirmation polling."""

    signature: str
    confirmed: bool
    err: Any = None
    timed_out: bool = False


class SolanaRpcClient:
    """Async JSON-RPC client over httpx."""

    def __init__(
        self,
        rpc_url: str,
        *,
        max_rps: float = 10.0,
        commitment: str = "confirmed",
        timeout: float = 30.0,
    ) -> None:
        if not rpc_url:
            raise ValueError("RPC URL is empty")
        self._rpc_url = rpc_url
        self._commitment = commitment
        self._rate_limiter = RateLimiter(max_rps)
        self._http = httpx.AsyncClient(timeout=timeout)

    async def close(self) -> None:
        await self._http.aclose()

    async def _call(self, method: str, params: list[Any]) -> Any:
        payload = {"jsonrpc": "2.0", "id": 1, "method": method, "params": params}

        for attempt in range(MAX_RETRIES + 1):
            delay = RETRY_DELAYS[min(attempt, len(RETRY_DELAYS) - 1)]
            try:
                await self._rate_limiter.acquire()
                resp = await self._http.post(self._rpc_url, json=payload)

                if resp.status_code == 429 or resp.status_code >= 500:
                    if attempt < MAX_RETRIES:
                        logger.debug(f"[RPC] {method} HTTP {resp.status_code}, retry in {delay}s")
                        await asyncio.sleep(delay)
                        continue
                    raise RpcError(method, f"HTTP {resp.status_code}", code=resp.status_code)

                if resp.status_code != 200:
                    raise RpcError(method, f"HTTP {resp.status_code}", code=resp.status_code)

                data = resp.json()
                if "error" in data:
                    error = data["error"] or {}
                    raise RpcError(
                        method,
                        str(error.get("message", error)),
                        code=error.get("code"),
                    )
                return data.get("result")

            except (httpx.TimeoutException, httpx.ConnectError) as e:
                if attempt < MAX_RETRIES:
                    logger.debug(f"[RPC] {method} {type(e).__name__}, retry in {delay}s")
                    await asyncio.sleep(delay)
                else:
                    raise RpcError(method, f"{type(e).__name__}: {e}") from e

        raise RpcError(method, "retries exhausted")

    # ─── Reads ────────────────────────────────────────────────────

    async def get_account_info(self, address: str) -> AccountInfo | None:
        """Raw account bytes, or None if the account does not exist."""
        result = await self._call(
            "getAccountInfo",
            [address, {"encoding": "base64", "commitment": self._commitment}],
        )
        value = (result or {}).get("value")
        if not value:
            return None
        return AccountInfo(
            lamports=int(value.get("lamports", 0)),
            owner=value.get("owner", ""),
            data=base64.b64decode(value["data"][0]),
        )

    async def get_balance(self, address: str) -> int:
        """Lamports held by an account (0 if it does not exist)."""
        result = await self._call("getBalance", [address, {"commitment": self._commitment}])
        return int((result or {}).get("value", 0))

    async def get_token_account_balance(self, address: str) -> int:
        """Raw base-unit amount of a token account; 0 if the account is missing."""
        try:
            result = await self._call(
                "getTokenAccountBalance", [address, {"commitment": self._commitment}]
            )
        except RpcError as e:
            # -32602 "could not find account": an uncreated ATA holds nothing
            if e.code == -32602:
                return 0
            raise
        value = (result or {}).get("value") or {}
        return int(value.get("amount", "0"))

    async def get_mint_decimals(self, mint: str) -> int:
        result = await self._call(
            "getAccountInfo", [mint, {"encoding": "jsonParsed", "commitment": self._commitment}]
        )
        try:
            return int(result["value"]["data"]["parsed"]["info"]["decimals"])
        except (KeyError, TypeError) as e:
            raise RpcError("getAccountInfo", f"cannot read decimals for {mint}") from e

    async def get_token_accounts_for_mint(self, mint: str) -> list[TokenAccount]:
        """Every SPL token account of a mint (ledger-wide scan)."""
        result = await self._call(
            "getProgramAccounts",
            [
                TOKEN_PROGRAM_ID,
                {
                    "encoding": "jsonParsed",
                    "commitment": self._commitment,
                    "filters": [
                        {"dataSize": TOKEN_ACCOUNT_SIZE},
                        {"memcmp": {"offset": 0, "bytes": mint}},
                    ],
                },
            ],
        )
        accounts: list[TokenAccount] = []
        for item in result or []:
            try:
                info = item["account"]["data"]["parsed"]["info"]
                accounts.append(
                    TokenAccount(
                        address=item.get("pubkey", ""),
                        owner=info["owner"],
                        amount=int(info["tokenAmount"]["amount"] or "0"),
                    )
                )
            except (KeyError, TypeError, ValueError) as e:
                logger.debug(f"[RPC] skipping unparsable token account: {e}")
        return accounts

    async def get_latest_blockhash(self) -> str:
        result = await self._call("getLatestBlockhash", [{"commitment": "finalized"}])
        return result["value"]["blockhash"]

    # ─── Writes ───────────────────────────────────────────────────

    async def send_transaction(self, tx_b64: str, *, skip_preflight: bool = False) -> str:
        """Submit a signed transaction. Raises RpcError on rejection."""
        result = await self._call(
            "sendTransaction",
            [
                tx_b64,
                {
                    "encoding": "base64",
                    "skipPreflight": skip_preflight,
                    "preflightCommitment": self._commitment,
                    "maxRetries": 5,
                },
            ],
        )
        if not result:
            raise RpcError("sendTransaction", "empty signature in response")
        logger.debug(f"[RPC] TX sent: {result}")
        return str(result)

    async def wait_for_confirmation(
        self,
        signature: str,
        tx_b64: str | None = None,
        *,
        timeout: float = CONFIRM_TIMEOUT,
        poll_interval: float = CONFIRM_POLL_INTERVAL,
    ) -> Confirmation:
        """Poll getSignatureStatuses, re-sending the same signed TX while waiting.

        A timeout does not mean the TX did not land; callers must re-read state.
        """
        elapsed = 0.0
        last_resend = 0.0
        while elapsed < timeout:
            try:
                result = await self._call(
                    "getSignatureStatuses",
                    [[signature], {"searchTransactionHistory": True}],
                )
                statuses = (result or {}).get("value") or []
                status = statuses[0] if statuses else None
                if status is not None:
                    if status.get("err"):
                        logger.warning(f"[RPC] TX {signature[:16]} error on-chain: {status['err']}")
                        return Confirmation(signature, confirmed=False, err=status["err"])
                    if status.get("confirmationStatus") in ("confirmed", "finalized"):
                        logger.debug(f"[RPC] TX {signature[:16]} confirmed in {elapsed:.1f}s")
                        return Confirmation(signature, confirmed=True)
            except RpcError as e:
                logger.debug(f"[RPC] status poll failed: {e}")

            # Re-send is idempotent (same signature)
            if tx_b64 and elapsed - last_resend >= RESEND_INTERVAL and elapsed < timeout - 5:
                try:
                    await self._call(
                        "sendTransaction",
                        [tx_b64, {"encoding": "base64", "skipPreflight": True, "maxRetries": 0}],
                    )
                except RpcError as e:
                    logger.debug(f"[RPC] resend ignored: {e}")
                last_resend = elapsed

            await asyncio.sleep(poll_interval)
            elapsed += poll_interval

        logger.warning(f"[RPC] TX {signature[:16]} confirmation timeout after {timeout}s")
        return Confirmation(signature, confirmed=False, timed_out=True)
