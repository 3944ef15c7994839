"""Ledger gateway over JSON-RPC (web3.py). Owns the signing key and nonce discipline."""

from __future__ import annotations

import os
from collections.abc import Callable
from threading import Lock
from typing import Any

import structlog
from web3 import Web3

from stakehub.errors import ConfigError, LedgerWriteError, MalformedSnapshot
from stakehub.ledger.abi import HUB_ABI, MARKET_ABI, MARKET_READS
from stakehub.ledger.base import MarketReads, ReadResult
from stakehub.models import ClaimInfo, Outcome, TxReceipt

log = structlog.get_logger(__name__)

PRIVATE_KEY_ENV = "CREATOR_PRIVATE_KEY"


class Web3LedgerGateway:
    """Reads market state and broadcasts phase transitions. Reads are never retried here."""

    def __init__(
        self,
        rpc_url: str,
        *,
        chain_id: int,
        private_key: str | None = None,
        receipt_timeout_sec: float = 120,
        request_timeout_sec: float = 30,
        w3: Web3 | None = None,
    ) -> None:
        self.w3 = w3 or Web3(Web3.HTTPProvider(rpc_url, request_kwargs={"timeout": request_timeout_sec}))
        self.chain_id = chain_id
        self.receipt_timeout_sec = receipt_timeout_sec
        self._private_key = private_key
        self._write_lock = Lock()

    @classmethod
    def from_settings(cls, settings: Any) -> Web3LedgerGateway:
        return cls(
            settings.rpc_url,
            chain_id=settings.chain_id,
            private_key=os.environ.get(PRIVATE_KEY_ENV),
            receipt_timeout_sec=settings.receipt_timeout_sec,
        )

    def _market(self, address: str):
        return self.w3.eth.contract(address=Web3.to_checksum_address(address), abi=MARKET_ABI)

    def read_market(self, address: str) -> MarketReads:
        """Read every market field; each read is captured as success or failure."""
        reads = MarketReads(address=address)
        try:
            contract = self._market(address)
        except ValueError as e:
            for field in MARKET_READS.values():
                reads.fields[field] = ReadResult.failure(f"invalid address: {e}")
            return reads
        for fn_name, field in MARKET_READS.items():
            try:
                value = getattr(contract.functions, fn_name)().call()
                reads.fields[field] = ReadResult.success(list(value) if isinstance(value, tuple) else value)
            except Exception as e:
                log.debug("ledger_read_failed", market_address=address, fn=fn_name, error=str(e))
                reads.fields[field] = ReadResult.failure(str(e))
        return reads

    def _read(self, field: str, address: str, call: Callable[[], Any]) -> Any:
        try:
            return call()
        except Exception as e:
            log.debug("ledger_read_failed", market_address=address, field=field, error=str(e))
            raise MalformedSnapshot(f"Could not read {field} for {address}", fields=[field], detail=str(e)) from e

    def read_stake(self, address: str, account: str, outcome: Outcome) -> int:
        def call() -> int:
            fn = self._market(address).functions.getStake(Web3.to_checksum_address(account), int(outcome))
            return int(fn.call())

        return self._read("stake", address, call)

    def read_claim(self, address: str, account: str) -> ClaimInfo:
        def call() -> ClaimInfo:
            fns = self._market(address).functions
            user = Web3.to_checksum_address(account)
            return ClaimInfo(
                can_claim=bool(fns.canClaim(user).call()),
                potential_reward=int(fns.getPotentialReward(user).call()),
                has_claimed=bool(fns.hasClaimed(user).call()),
            )

        return self._read("claim", address, call)

    def is_member(self, address: str, account: str) -> bool:
        def call() -> bool:
            market = self._market(address)
            hub = self.w3.eth.contract(address=market.functions.hub().call(), abi=HUB_ABI)
            community_id = hub.functions.getMarketCommunity(market.address).call()
            return bool(
                hub.functions.isCommunityMember(community_id, Web3.to_checksum_address(account)).call()
            )

        return self._read("membership", address, call)

    def write_phase_transition(self, address: str, outcome: Outcome) -> TxReceipt:
        """Sign and broadcast triggerExecution(outcome); wait for the receipt."""
        return self._transact(address, "triggerExecution", int(outcome))

    def write_settlement(self, address: str, winning_outcome: Outcome, payout_wei: int) -> TxReceipt:
        """Sign and broadcast mockPolymarketReturn(outcome, payout), sending the payout as value."""
        return self._transact(address, "mockPolymarketReturn", int(winning_outcome), payout_wei, value=payout_wei)

    def _transact(self, address: str, fn_name: str, *args: Any, value: int = 0) -> TxReceipt:
        if not self._private_key:
            raise ConfigError(f"{PRIVATE_KEY_ENV} not configured")
        account = self.w3.eth.account.from_key(self._private_key)
        # Serialise writes from this process so nonces are not reused.
        with self._write_lock:
            try:
                params: dict[str, Any] = {
                    "from": account.address,
                    "nonce": self.w3.eth.get_transaction_count(account.address, "pending"),
                    "chainId": self.chain_id,
                }
                if value:
                    params["value"] = value
                fn = getattr(self._market(address).functions, fn_name)
                tx = fn(*args).build_transaction(params)
                signed = self.w3.eth.account.sign_transaction(tx, self._private_key)
                raw_tx = getattr(signed, "raw_transaction", None) or getattr(signed, "rawTransaction", None)
                tx_hash = self.w3.eth.send_raw_transaction(raw_tx)
            except Exception as e:
                raise LedgerWriteError(f"{fn_name} rejected for {address}", detail=str(e)) from e
        tx_hash_hex = Web3.to_hex(tx_hash)
        log.info("ledger_tx_sent", market_address=address, fn=fn_name, tx_hash=tx_hash_hex)
        try:
            receipt = self.w3.eth.wait_for_transaction_receipt(tx_hash, timeout=self.receipt_timeout_sec)
        except Exception as e:
            raise LedgerWriteError(f"No receipt for {tx_hash_hex}", detail=str(e)) from e
        if receipt["status"] != 1:
            raise LedgerWriteError(f"{fn_name} reverted in {tx_hash_hex}")
        return TxReceipt(tx_hash=tx_hash_hex, block_number=int(receipt["blockNumber"]), status="success")
