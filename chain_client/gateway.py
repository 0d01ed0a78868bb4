"""
Chain Client - JSON-RPC Gateway Backend.

============================================================
PURPOSE
============================================================
Forwards every chain capability to an external signing gateway
over JSON-RPC 2.0. The gateway builds, signs, submits and
confirms transactions; nothing is encoded in-process.

Gateway method names are "<capability>" (e.g. "execute_swap").
Wallet private keys travel hex-encoded in the request params.

============================================================
ERROR MAPPING
============================================================
- HTTP >= 400 or connection failure -> RpcTransportError
- JSON-RPC error object             -> ChainClientError(message)
- error.data.kind == "pool_not_found" -> PoolNotFoundError

The gateway's error message is passed through verbatim so the
contract error classifier can parse "Custom(N)" from it.

============================================================
"""

import itertools
import logging
import time
from typing import Any, Dict, Optional, Union

import aiohttp
from pydantic import BaseModel, Field

from core.exceptions import PoolNotFoundError
from pools.models import PoolState, SwapDirection

from .base import ChainClient
from .exceptions import ChainClientError, RpcTransportError
from .models import (
    CoreWallet,
    DepositResult,
    SwapResult,
    TransactionResult,
    Wallet,
    WithdrawalResult,
)


logger = logging.getLogger(__name__)


# =============================================================
# JSON-RPC ENVELOPES
# =============================================================

class JsonRpcRequest(BaseModel):
    """JSON-RPC 2.0 request."""
    jsonrpc: str = "2.0"
    method: str
    params: Dict[str, Any] = Field(default_factory=dict)
    id: Union[int, str]


class JsonRpcError(BaseModel):
    """JSON-RPC 2.0 error object."""
    code: int
    message: str
    data: Optional[Dict[str, Any]] = None


class JsonRpcResponse(BaseModel):
    """JSON-RPC 2.0 response."""
    jsonrpc: str = "2.0"
    result: Optional[Any] = None
    error: Optional[JsonRpcError] = None
    id: Optional[Union[int, str]] = None


# =============================================================
# GATEWAY CLIENT
# =============================================================

class GatewayChainClient(ChainClient):
    """
    Chain client backed by a JSON-RPC signing gateway.

    One aiohttp session is created lazily and reused until close().
    """

    def __init__(
        self,
        url: str,
        timeout: float = 30.0,
        session: Optional[aiohttp.ClientSession] = None,
    ) -> None:
        self._url = url
        self._timeout = timeout
        self._session = session
        self._owns_session = session is None
        self._ids = itertools.count(1)
        self._last_latency_ms: Optional[float] = None

    @property
    def name(self) -> str:
        return "gateway"

    # --------------------------------------------------------
    # WALLETS
    # --------------------------------------------------------

    async def generate_wallet(self) -> Wallet:
        result = await self._call("generate_wallet")
        return self._wallet_from(result)

    async def restore_wallet(self, private_key: bytes) -> Wallet:
        result = await self._call("restore_wallet", {"private_key": private_key.hex()})
        return self._wallet_from(result)

    async def get_or_create_core_wallet(self) -> CoreWallet:
        result = await self._call("get_or_create_core_wallet")
        return CoreWallet(
            wallet=self._wallet_from(result),
            native_balance=int(result.get("native_balance", 0)),
            created=bool(result.get("created", False)),
        )

    # --------------------------------------------------------
    # BALANCES / STATE
    # --------------------------------------------------------

    async def get_native_balance(self, address: str) -> int:
        return int(await self._call("get_native_balance", {"address": address}))

    async def get_token_balance(self, address: str, mint: str) -> int:
        return int(await self._call("get_token_balance", {"address": address, "mint": mint}))

    async def get_pool_state(self, pool_id: str) -> PoolState:
        result = await self._call("get_pool_state", {"pool_id": pool_id})
        return PoolState.from_dict(result)

    async def is_pool_paused(self, pool_id: str) -> bool:
        return bool(await self._call("is_pool_paused", {"pool_id": pool_id}))

    async def is_system_paused(self) -> bool:
        return bool(await self._call("is_system_paused"))

    async def are_pool_swaps_paused(self, pool_id: str) -> bool:
        return bool(await self._call("are_pool_swaps_paused", {"pool_id": pool_id}))

    async def get_contract_version(self) -> Optional[str]:
        result = await self._call("get_contract_version")
        return str(result) if result else None

    # --------------------------------------------------------
    # POOL OPERATIONS
    # --------------------------------------------------------

    async def execute_deposit(
        self,
        wallet: Wallet,
        pool_id: str,
        token_mint: str,
        amount: int,
        compute_units: int,
    ) -> DepositResult:
        result = await self._call("execute_deposit", {
            **self._signer(wallet),
            "pool_id": pool_id,
            "token_mint": token_mint,
            "amount": amount,
            "compute_units": compute_units,
        })
        return DepositResult(
            signature=result["signature"],
            token_amount_in=int(result["token_amount_in"]),
            lp_tokens_received=int(result["lp_tokens_received"]),
            network_fee=int(result.get("network_fee", 0)),
        )

    async def execute_withdrawal(
        self,
        wallet: Wallet,
        pool_id: str,
        lp_mint: str,
        lp_amount: int,
        compute_units: int,
    ) -> WithdrawalResult:
        result = await self._call("execute_withdrawal", {
            **self._signer(wallet),
            "pool_id": pool_id,
            "lp_mint": lp_mint,
            "lp_amount": lp_amount,
            "compute_units": compute_units,
        })
        return WithdrawalResult(
            signature=result["signature"],
            lp_tokens_in=int(result["lp_tokens_in"]),
            tokens_out=int(result["tokens_out"]),
            network_fee=int(result.get("network_fee", 0)),
        )

    async def execute_swap(
        self,
        wallet: Wallet,
        pool_id: str,
        direction: SwapDirection,
        input_amount: int,
        minimum_output: int,
        compute_units: int,
    ) -> SwapResult:
        result = await self._call("execute_swap", {
            **self._signer(wallet),
            "pool_id": pool_id,
            "direction": direction.value,
            "input_amount": input_amount,
            "minimum_output": minimum_output,
            "compute_units": compute_units,
        })
        return SwapResult(
            signature=result["signature"],
            direction=direction,
            input_amount=int(result["input_amount"]),
            output_amount=int(result["output_amount"]),
            network_fee=int(result.get("network_fee", 0)),
        )

    # --------------------------------------------------------
    # TOKEN / NATIVE TRANSFERS
    # --------------------------------------------------------

    async def mint_tokens(self, mint: str, destination: str, amount: int) -> str:
        result = await self._call("mint_tokens", {
            "mint": mint,
            "destination": destination,
            "amount": amount,
        })
        return str(result)

    async def transfer_tokens(
        self,
        wallet: Wallet,
        mint: str,
        destination: str,
        amount: int,
    ) -> str:
        result = await self._call("transfer_tokens", {
            **self._signer(wallet),
            "mint": mint,
            "destination": destination,
            "amount": amount,
        })
        return str(result)

    async def transfer_native(self, wallet: Wallet, destination: str, lamports: int) -> str:
        result = await self._call("transfer_native", {
            **self._signer(wallet),
            "destination": destination,
            "lamports": lamports,
        })
        return str(result)

    async def submit_transaction(
        self,
        wallet: Wallet,
        transaction: Dict[str, Any],
    ) -> TransactionResult:
        result = await self._call("submit_transaction", {
            **self._signer(wallet),
            "transaction": transaction,
        })
        return TransactionResult(
            signature=result["signature"],
            success=bool(result.get("success", True)),
            network_fee=int(result.get("network_fee", 0)),
            error=result.get("error"),
        )

    # --------------------------------------------------------
    # LIFECYCLE
    # --------------------------------------------------------

    async def is_healthy(self) -> bool:
        try:
            return bool(await self._call("health"))
        except ChainClientError as e:
            logger.warning(f"Gateway health check failed | url={self._url} | error={e}")
            return False

    async def close(self) -> None:
        if self._session is not None and self._owns_session and not self._session.closed:
            await self._session.close()
        self._session = None
        logger.info(f"GatewayChainClient closed | url={self._url}")

    @property
    def last_latency_ms(self) -> Optional[float]:
        return self._last_latency_ms

    # --------------------------------------------------------
    # INTERNAL
    # --------------------------------------------------------

    @staticmethod
    def _signer(wallet: Wallet) -> Dict[str, str]:
        return {
            "public_key": wallet.public_key,
            "private_key": wallet.private_key.hex(),
        }

    @staticmethod
    def _wallet_from(result: Dict[str, Any]) -> Wallet:
        return Wallet(
            public_key=result["public_key"],
            private_key=bytes.fromhex(result["private_key"]),
        )

    async def _get_session(self) -> aiohttp.ClientSession:
        """Get or create HTTP session."""
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self._timeout),
                headers={"Accept": "application/json", "Content-Type": "application/json"},
            )
            self._owns_session = True
        return self._session

    async def _call(self, method: str, params: Optional[Dict[str, Any]] = None) -> Any:
        """Perform one JSON-RPC call and unwrap its result."""
        request = JsonRpcRequest(method=method, params=params or {}, id=next(self._ids))
        payload = await self._post(request)

        try:
            response = JsonRpcResponse.model_validate(payload)
        except ValueError as e:
            raise RpcTransportError(
                f"Malformed JSON-RPC response: {e}",
                method=method,
                cause=e,
            )

        if response.error is not None:
            data = response.error.data or {}
            if data.get("kind") == "pool_not_found":
                raise PoolNotFoundError(str(data.get("pool_id", "")))
            raise ChainClientError(
                response.error.message,
                method=method,
                code=data.get("contract_code"),
                context={"rpc_code": response.error.code},
            )

        return response.result

    async def _post(self, request: JsonRpcRequest) -> Dict[str, Any]:
        """Send the request envelope, return the decoded JSON body."""
        session = await self._get_session()
        start_time = time.time()
        try:
            async with session.post(self._url, json=request.model_dump()) as response:
                self._last_latency_ms = (time.time() - start_time) * 1000
                if response.status >= 400:
                    body = await response.text()
                    raise RpcTransportError(
                        f"HTTP {response.status}: {body[:500]}",
                        method=request.method,
                        status_code=response.status,
                    )
                return await response.json()
        except aiohttp.ClientError as e:
            raise RpcTransportError(
                f"Connection error: {e}",
                method=request.method,
                cause=e,
            )


__all__ = [
    "JsonRpcRequest",
    "JsonRpcError",
    "JsonRpcResponse",
    "GatewayChainClient",
]
