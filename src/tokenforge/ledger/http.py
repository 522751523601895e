"""JSON-RPC ledger client backed by httpx."""

from __future__ import annotations

import base64
import itertools
import logging
from collections.abc import AsyncIterator, Mapping
from contextlib import asynccontextmanager
from typing import Any

import httpx
from solders.hash import Hash
from solders.pubkey import Pubkey
from solders.transaction import Transaction

from tokenforge.domain import Commitment

from .base import AccountInfo, ExecutionStatus, ReferencePoint, TokenBalance
from .exceptions import ExecutionError, ExpiredWindow, LedgerError, TransientTransportError

logger = logging.getLogger(__name__)

# Node health / lagging-slot conditions that clear up on their own.
_TRANSIENT_RPC_CODES = frozenset({-32004, -32005, -32007, -32014, -32016})
_PREFLIGHT_FAILURE_CODE = -32002
_SIGNATURE_VERIFICATION_CODE = -32003
_ALREADY_PROCESSED = "AlreadyProcessed"

_COMMITMENT_RANK = {
    Commitment.PROCESSED: 0,
    Commitment.CONFIRMED: 1,
    Commitment.FINALIZED: 2,
}


class HttpLedgerClient:
    """Talk to a ledger node over JSON-RPC, classifying failures for retry."""

    def __init__(
        self,
        endpoint: str,
        *,
        commitment: Commitment = Commitment.CONFIRMED,
        timeout: float = 30.0,
        client: httpx.AsyncClient | None = None,
        send_max_retries: int | None = None,
    ) -> None:
        if not endpoint:
            raise LedgerError("HttpLedgerClient requires an RPC endpoint")
        self._endpoint = endpoint
        self._commitment = commitment
        self._timeout = timeout
        self._client = client
        self._send_max_retries = send_max_retries
        self._ids = itertools.count(1)

    @property
    def endpoint(self) -> str:
        return self._endpoint

    async def get_latest_reference_point(self) -> ReferencePoint:
        result = await self._call("getLatestBlockhash", [{"commitment": self._commitment.value}])
        value = _value(result)
        return ReferencePoint(
            blockhash=Hash.from_string(value["blockhash"]),
            expiry_height=int(value["lastValidBlockHeight"]),
        )

    async def send_serialized(self, payload: bytes) -> str:
        options: dict[str, Any] = {
            "encoding": "base64",
            "skipPreflight": False,
            "preflightCommitment": self._commitment.value,
        }
        if self._send_max_retries is not None:
            options["maxRetries"] = self._send_max_retries
        encoded = base64.b64encode(payload).decode("ascii")
        try:
            signature = await self._call("sendTransaction", [encoded, options])
        except ExecutionError as exc:
            if exc.payload != _ALREADY_PROCESSED:
                raise
            # The same bytes landed earlier; the status query decides the outcome.
            signature = str(Transaction.from_bytes(payload).signatures[0])
            logger.info("sendTransaction: %s was already processed", signature)
        if not signature:
            raise LedgerError("sendTransaction did not return a signature")
        return str(signature)

    async def get_execution_status(self, signature: str) -> ExecutionStatus:
        result = await self._call(
            "getSignatureStatuses",
            [[signature], {"searchTransactionHistory": True}],
        )
        statuses = _value(result) or [None]
        status = statuses[0]
        if status is None:
            return ExecutionStatus.pending()
        if status.get("err") is not None:
            return ExecutionStatus.failure(status["err"])
        reached = status.get("confirmationStatus")
        if reached is None:
            # Rooted transactions are reported without a confirmation level.
            return ExecutionStatus.success(Commitment.FINALIZED.value)
        try:
            reached_rank = _COMMITMENT_RANK[Commitment(reached)]
        except ValueError:
            return ExecutionStatus.pending()
        if reached_rank >= _COMMITMENT_RANK[self._commitment]:
            return ExecutionStatus.success(reached)
        return ExecutionStatus.pending()

    async def get_current_height(self) -> int:
        result = await self._call("getBlockHeight", [{"commitment": self._commitment.value}])
        return int(result)

    async def get_epoch(self) -> int:
        result = await self._call("getEpochInfo", [{"commitment": self._commitment.value}])
        return int(result["epoch"])

    async def get_balance(self, address: Pubkey) -> int:
        result = await self._call("getBalance", [str(address), {"commitment": self._commitment.value}])
        return int(_value(result))

    async def get_token_account_balance(self, address: Pubkey) -> TokenBalance:
        result = await self._call(
            "getTokenAccountBalance",
            [str(address), {"commitment": self._commitment.value}],
        )
        value = _value(result)
        return TokenBalance(amount=int(value["amount"]), decimals=int(value["decimals"]))

    async def get_account_info(self, address: Pubkey) -> AccountInfo | None:
        result = await self._call(
            "getAccountInfo",
            [str(address), {"encoding": "base64", "commitment": self._commitment.value}],
        )
        value = _value(result)
        if value is None:
            return None
        raw_data = value.get("data") or ["", "base64"]
        return AccountInfo(
            lamports=int(value["lamports"]),
            owner=Pubkey.from_string(value["owner"]),
            data=base64.b64decode(raw_data[0]),
            executable=bool(value.get("executable", False)),
        )

    async def get_minimum_rent_exempt_balance(self, space: int) -> int:
        result = await self._call("getMinimumBalanceForRentExemption", [space])
        return int(result)

    async def request_airdrop(self, address: Pubkey, lamports: int) -> str:
        result = await self._call("requestAirdrop", [str(address), lamports])
        return str(result)

    async def get_version(self) -> str:
        result = await self._call("getVersion")
        return str(result.get("solana-core", "unknown"))

    async def _call(self, method: str, params: list[Any] | None = None) -> Any:
        body = {
            "jsonrpc": "2.0",
            "id": next(self._ids),
            "method": method,
            "params": params or [],
        }
        async with self._client_scope() as client:
            try:
                response = await client.post(self._endpoint, json=body)
                response.raise_for_status()
            except httpx.HTTPStatusError as exc:
                status = exc.response.status_code
                msg = f"{method} failed with HTTP status {status}"
                if status == 429 or status >= 500:
                    raise TransientTransportError(msg) from exc
                raise LedgerError(msg) from exc
            except httpx.TransportError as exc:
                msg = f"{method} transport failure: {exc.__class__.__name__}"
                raise TransientTransportError(msg) from exc

        try:
            payload = response.json()
        except ValueError as exc:
            msg = f"{method} returned a non-JSON response"
            raise TransientTransportError(msg) from exc

        error = payload.get("error")
        if error:
            raise _map_rpc_error(method, error)
        return payload.get("result")

    @asynccontextmanager
    async def _client_scope(self) -> AsyncIterator[httpx.AsyncClient]:
        if self._client is not None:
            yield self._client
            return
        async with httpx.AsyncClient(timeout=self._timeout) as client:
            yield client


def _value(result: Any) -> Any:
    if isinstance(result, Mapping) and "value" in result:
        return result["value"]
    return result


def _map_rpc_error(method: str, error: Mapping[str, Any]) -> LedgerError:
    code = error.get("code")
    message = str(error.get("message", "unknown RPC error"))
    data = error.get("data") or {}
    detail = f"{method} failed ({code}): {message}"

    if code in _TRANSIENT_RPC_CODES:
        return TransientTransportError(detail)
    if code == _PREFLIGHT_FAILURE_CODE:
        err = data.get("err") if isinstance(data, Mapping) else None
        if err == "BlockhashNotFound" or "blockhash not found" in message.lower():
            return ExpiredWindow(detail)
        logger.debug("Preflight logs for %s: %s", method, data.get("logs") if isinstance(data, Mapping) else None)
        return ExecutionError(detail, payload=err if err is not None else data)
    if code == _SIGNATURE_VERIFICATION_CODE:
        return ExecutionError(detail, payload=data)
    return LedgerError(detail)


__all__ = ["HttpLedgerClient"]
