"""Contract gateway: the read/write boundary to the ForestOnchain contract.

The client never encodes calls itself. It talks JSON to a relay that owns
the node connection, the ABI and the signer, and reports batched reads in
the multicall shape ``{"status": "success", "result": ...}`` /
``{"status": "failure", "error": ...}``.
"""

import asyncio
import logging
from abc import ABC, abstractmethod

import httpx

from forest.exceptions import ConfirmationFailure, GatewayError
from forest.schemas.contract import (
    ContractCall,
    ReadResult,
    ReceiptStatus,
    TransactionReceipt,
    TransactionRequest,
)
from forest.schemas.transaction import FailureReason, TranslatedError

logger = logging.getLogger(__name__)


class ContractGateway(ABC):
    """Abstract base for contract transports."""

    contract_address: str = ""

    @abstractmethod
    async def read_many(self, calls: list[ContractCall]) -> list[ReadResult]:
        """Run a batch of view calls; one tagged result per call, in order."""
        ...

    @abstractmethod
    async def send_transaction(
        self, sender: str, request: TransactionRequest
    ) -> str:
        """Submit a write call and return its transaction hash."""
        ...

    @abstractmethod
    async def wait_for_receipt(self, tx_hash: str) -> TransactionReceipt:
        """Block until the transaction is included."""
        ...

    @abstractmethod
    async def get_balance(self, address: str) -> int:
        ...

    async def read(self, call: ContractCall) -> ReadResult:
        results = await self.read_many([call])
        if not results:
            return ReadResult.failure("empty batch response")
        return results[0]


def _error_from_response(response: httpx.Response) -> GatewayError:
    try:
        body = response.json()
    except ValueError:
        body = {}
    error = body.get("error") if isinstance(body, dict) else None
    if isinstance(error, dict):
        return GatewayError(
            error.get("message") or f"Relay returned {response.status_code}",
            short_message=error.get("shortMessage"),
            details=error.get("details"),
        )
    if isinstance(error, str):
        return GatewayError(error)
    return GatewayError(f"Relay returned {response.status_code}")


def _parse_read_result(raw) -> ReadResult:
    if not isinstance(raw, dict):
        return ReadResult.failure("malformed result slot")
    if raw.get("status") == "success":
        return ReadResult.success(raw.get("result"))
    return ReadResult.failure(str(raw.get("error") or "call failed"))


class HttpContractGateway(ContractGateway):
    """Gateway backed by the JSON contract relay."""

    def __init__(
        self,
        base_url: str,
        contract_address: str,
        http_client: httpx.AsyncClient | None = None,
        timeout: float = 10.0,
        poll_interval: float = 1.0,
        confirmation_timeout: float = 120.0,
    ):
        self.base_url = base_url.rstrip("/")
        self.contract_address = contract_address
        self.poll_interval = poll_interval
        self.confirmation_timeout = confirmation_timeout
        self._should_close = http_client is None
        self._client = http_client or httpx.AsyncClient(timeout=timeout)

    async def aclose(self) -> None:
        if self._should_close:
            await self._client.aclose()

    async def read_many(self, calls: list[ContractCall]) -> list[ReadResult]:
        """Batched view calls.

        Never raises: a transport failure marks every slot as failed, and a
        short response leaves the trailing slots failed.
        """
        if not calls:
            return []

        payload = {
            "contract": self.contract_address,
            "calls": [{"function": c.function, "args": list(c.args)} for c in calls],
        }
        try:
            response = await self._client.post(f"{self.base_url}/multicall", json=payload)
            if response.status_code >= 400:
                logger.warning(
                    "Multicall of %d calls returned %d", len(calls), response.status_code
                )
                return [ReadResult.failure(f"relay returned {response.status_code}")] * len(calls)
            raw_results = response.json().get("results", [])
        except (httpx.HTTPError, ValueError, AttributeError) as exc:
            logger.warning("Multicall request failed: %s", exc)
            return [ReadResult.failure(str(exc))] * len(calls)

        results = [_parse_read_result(raw) for raw in raw_results[: len(calls)]]
        missing = len(calls) - len(results)
        if missing > 0:
            logger.warning("Multicall response is missing %d slots", missing)
            results.extend([ReadResult.failure("missing slot")] * missing)
        return results

    async def send_transaction(
        self, sender: str, request: TransactionRequest
    ) -> str:
        payload = {
            "contract": self.contract_address,
            "from": sender,
            "function": request.call.function,
            "args": list(request.call.args),
            "value": str(request.value),
        }
        try:
            response = await self._client.post(
                f"{self.base_url}/transactions", json=payload
            )
        except httpx.HTTPError as exc:
            logger.error("Transaction submission failed: %s", exc)
            raise GatewayError(str(exc), short_message="Failed to send transaction.") from exc

        if response.status_code >= 400:
            raise _error_from_response(response)

        tx_hash = response.json().get("hash")
        if not tx_hash:
            raise GatewayError("Relay accepted the transaction without a hash")
        logger.info("Submitted %s from %s as %s", request.call.function, sender, tx_hash)
        return tx_hash

    async def wait_for_receipt(self, tx_hash: str) -> TransactionReceipt:
        """Poll the relay until the receipt shows up or the timeout passes."""
        loop = asyncio.get_running_loop()
        deadline = loop.time() + self.confirmation_timeout

        while True:
            try:
                response = await self._client.get(
                    f"{self.base_url}/transactions/{tx_hash}/receipt"
                )
                if response.status_code == 200:
                    body = response.json()
                    return TransactionReceipt(
                        tx_hash=tx_hash,
                        status=(
                            ReceiptStatus.REVERTED
                            if body.get("status") == ReceiptStatus.REVERTED
                            else ReceiptStatus.SUCCESS
                        ),
                        block_number=body.get("blockNumber"),
                        revert_reason=body.get("revertReason"),
                    )
                if response.status_code != 404:
                    logger.warning(
                        "Receipt lookup for %s returned %d", tx_hash, response.status_code
                    )
            except httpx.HTTPError as exc:
                logger.warning("Receipt lookup for %s failed: %s", tx_hash, exc)

            if loop.time() >= deadline:
                raise ConfirmationFailure(
                    TranslatedError(
                        reason=FailureReason.GENERIC,
                        message="Transaction was not confirmed in time.",
                    ),
                    tx_hash=tx_hash,
                )
            await asyncio.sleep(self.poll_interval)

    async def get_balance(self, address: str) -> int:
        try:
            response = await self._client.get(f"{self.base_url}/balances/{address}")
        except httpx.HTTPError as exc:
            raise GatewayError(str(exc)) from exc
        if response.status_code >= 400:
            raise _error_from_response(response)
        return int(response.json().get("balance", 0))


def create_gateway(settings) -> HttpContractGateway:
    """Factory: the relay-backed gateway configured by settings."""
    return HttpContractGateway(
        settings.GATEWAY_URL,
        settings.CONTRACT_ADDRESS,
        timeout=settings.HTTP_TIMEOUT_SECONDS,
        poll_interval=settings.CONFIRMATION_POLL_SECONDS,
        confirmation_timeout=settings.CONFIRMATION_TIMEOUT_SECONDS,
    )
