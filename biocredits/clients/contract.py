"""
BioCredits — Smart Contract Credit Store

The canonical registry backend: a key-value contract on an EVM chain
exposing isAvailable(), getData(string) and setData(string, bytes).

Reads are eth_call; writes are transactions sent from a node-managed
account and awaited until mined. The contract has no compare-and-swap,
so index appends fall back to read-merge-write (last writer wins).
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import structlog
from web3 import AsyncWeb3

if TYPE_CHECKING:
    from biocredits.config import ContractConfig

logger = structlog.get_logger("biocredits.clients.contract")

STORE_ABI: list[dict[str, Any]] = [
    {
        "inputs": [],
        "name": "isAvailable",
        "outputs": [{"internalType": "bool", "name": "", "type": "bool"}],
        "stateMutability": "view",
        "type": "function",
    },
    {
        "inputs": [{"internalType": "string", "name": "key", "type": "string"}],
        "name": "getData",
        "outputs": [{"internalType": "bytes", "name": "", "type": "bytes"}],
        "stateMutability": "view",
        "type": "function",
    },
    {
        "inputs": [
            {"internalType": "string", "name": "key", "type": "string"},
            {"internalType": "bytes", "name": "value", "type": "bytes"},
        ],
        "name": "setData",
        "outputs": [],
        "stateMutability": "nonpayable",
        "type": "function",
    },
]


class ContractStore:
    """
    AsyncWeb3 client implementing the CreditStore protocol.

    Lifecycle: construct → connect() → use → close().
    """

    def __init__(self, config: ContractConfig, w3: AsyncWeb3 | None = None) -> None:
        self._config = config
        self._w3: AsyncWeb3 | None = w3
        self._contract: Any = None
        if w3 is not None and config.address:
            self._contract = self._bind(w3)

    # ── Lifecycle ─────────────────────────────────────────────

    async def connect(self) -> None:
        if not self._config.address:
            raise ValueError("ContractConfig.address is required for the contract store")
        self._w3 = AsyncWeb3(AsyncWeb3.AsyncHTTPProvider(self._config.rpc_url))
        self._contract = self._bind(self._w3)
        logger.info(
            "contract_store_connected",
            address=self._config.address,
            chain_id=self._config.chain_id,
        )

    async def close(self) -> None:
        if self._w3 is not None:
            provider = self._w3.provider
            disconnect = getattr(provider, "disconnect", None)
            if disconnect is not None:
                await disconnect()
        self._w3 = None
        self._contract = None
        logger.info("contract_store_disconnected")

    def _bind(self, w3: AsyncWeb3) -> Any:
        return w3.eth.contract(
            address=AsyncWeb3.to_checksum_address(self._config.address),
            abi=STORE_ABI,
        )

    # ── CreditStore ───────────────────────────────────────────

    @property
    def address(self) -> str:
        return self._config.address

    async def is_available(self) -> bool:
        if self._contract is None:
            return False
        try:
            return bool(await self._contract.functions.isAvailable().call())
        except Exception as e:
            logger.warning("contract_probe_failed", error=str(e))
            return False

    async def get_data(self, key: str) -> bytes:
        contract = self._require_contract()
        raw = await contract.functions.getData(key).call()
        return bytes(raw or b"")

    async def set_data(self, key: str, value: bytes) -> None:
        contract = self._require_contract()
        w3 = self._require_w3()
        tx_params: dict[str, Any] = {}
        if self._config.sender:
            tx_params["from"] = AsyncWeb3.to_checksum_address(self._config.sender)
        tx_hash = await contract.functions.setData(key, value).transact(tx_params)
        await w3.eth.wait_for_transaction_receipt(
            tx_hash, timeout=self._config.receipt_timeout_s,
        )
        logger.debug("contract_store_write_mined", key=key, tx_hash=tx_hash.hex())

    # ── Internal helpers ──────────────────────────────────────

    def _require_contract(self) -> Any:
        if self._contract is None:
            raise RuntimeError("ContractStore not connected. Call connect() first.")
        return self._contract

    def _require_w3(self) -> AsyncWeb3:
        if self._w3 is None:
            raise RuntimeError("ContractStore not connected. Call connect() first.")
        return self._w3
