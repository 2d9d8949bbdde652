"""Chain mirror service: best-effort replication of feeds and claims on-chain.

Talks to two contracts with the server wallet's authority:
- the CATTV ERC-20 token (allowance / approve / balanceOf)
- the CatFeeder faucet/feeder contract (feed, claimFromFaucet, decay, stats)

Mirroring a committed feed is fire-and-forget: ``schedule_feed`` returns
immediately and failures are logged, never retried.
"""

import asyncio
import threading
from decimal import Decimal
from typing import Any

import structlog
from eth_account import Account
from web3 import Web3
from web3.exceptions import ContractLogicError, TimeExhausted

from cattv.abi import get_contract_abi
from cattv.core.config import Settings
from cattv.services.exceptions import (
    TransactionRevertError,
    TransactionSubmissionError,
    TransactionTimeoutError,
    TransientError,
)

logger = structlog.get_logger()

MAX_UINT256 = 2**256 - 1


def cat_id_to_bytes32(cat_id: str) -> bytes:
    """Map an off-chain cat id to the contract's bytes32 key (keccak256 of the UTF-8 id)."""
    return Web3.keccak(text=cat_id)


class ChainMirror:
    """Blockchain client for the CatFeeder contract and CATTV token."""

    def __init__(
        self,
        w3: Web3,
        token_address: str,
        feeder_address: str,
        server_private_key: str,
        token_decimals: int = 18,
        transaction_timeout: int = 120,
    ):
        """
        Initialize chain mirror.

        Args:
            w3: Web3 instance (connected to Base)
            token_address: CATTV ERC-20 contract address
            feeder_address: CatFeeder contract address
            server_private_key: Private key for the server wallet (0x-prefixed hex)
            token_decimals: ERC-20 decimals (default: 18)
            transaction_timeout: Max wait time for confirmation in seconds
        """
        self.w3 = w3
        self.token_address = Web3.to_checksum_address(token_address)
        self.feeder_address = Web3.to_checksum_address(feeder_address)
        self.server_private_key = server_private_key
        self.token_decimals = token_decimals
        self.transaction_timeout = transaction_timeout

        self.token = self.w3.eth.contract(
            address=self.token_address, abi=get_contract_abi("ERC20")
        )
        self.feeder = self.w3.eth.contract(
            address=self.feeder_address, abi=get_contract_abi("CatFeeder")
        )

        self.server_account = Account.from_key(server_private_key)
        self.server_address = self.server_account.address

        # Strong references to detached mirror tasks (asyncio keeps only weak ones)
        self._pending: set[asyncio.Task] = set()

        # Worker threads share one server wallet: pending nonce read through broadcast
        # must not interleave, and only one thread may check-then-approve
        self._send_lock = threading.Lock()
        self._allowance_lock = threading.Lock()

        logger.info(
            "chain_mirror.initialized",
            server_address=self.server_address,
            token_address=self.token_address,
            feeder_address=self.feeder_address,
        )

    @classmethod
    def from_settings(cls, settings: Settings) -> "ChainMirror | None":
        """Build a mirror from settings, or None when the integration is unconfigured."""
        if not settings.chain_mirror_configured:
            logger.warning("chain_mirror.not_configured")
            return None
        w3 = Web3(Web3.HTTPProvider(settings.rpc_url))
        return cls(
            w3=w3,
            token_address=settings.token_address,
            feeder_address=settings.catfeeder_address,
            server_private_key=settings.server_wallet_private_key,
            token_decimals=settings.token_decimals,
            transaction_timeout=settings.transaction_timeout_seconds,
        )

    def to_token_units(self, amount: int) -> int:
        return amount * 10**self.token_decimals

    def format_units(self, value: int) -> str:
        return str(Decimal(value) / (Decimal(10) ** self.token_decimals))

    def _send_transaction(self, contract_call: Any, label: str) -> str:
        """Build, sign and submit a contract call, then wait for its receipt.

        Args:
            contract_call: Bound contract function (e.g. ``feeder.functions.feed(cat)``)
            label: Short name used in log events

        Returns:
            Transaction hash (0x-prefixed hex string)

        Raises:
            TransactionSubmissionError: Build/sign/submit failed
            TransactionTimeoutError: Receipt not available before timeout
            TransactionRevertError: Transaction reverted on-chain
        """
        try:
            with self._send_lock:
                nonce = self.w3.eth.get_transaction_count(self.server_address, "pending")
                transaction = contract_call.build_transaction(
                    {
                        "from": self.server_address,
                        "nonce": nonce,
                        "chainId": self.w3.eth.chain_id,
                    }
                )
                signed_txn = self.w3.eth.account.sign_transaction(
                    transaction, private_key=self.server_private_key
                )
                tx_hash = self.w3.eth.send_raw_transaction(signed_txn.raw_transaction)
        except ContractLogicError as e:
            logger.error("chain_mirror.transaction_reverted", call=label, error=str(e))
            raise TransactionRevertError(f"{label} reverted: {e}") from e
        except Exception as e:
            logger.error("chain_mirror.transaction_submission_failed", call=label, error=str(e))
            raise TransactionSubmissionError(f"{label} submission failed: {e}") from e

        tx_hash_hex = Web3.to_hex(tx_hash)
        logger.info("chain_mirror.transaction_submitted", call=label, tx_hash=tx_hash_hex)

        try:
            receipt = self.w3.eth.wait_for_transaction_receipt(
                tx_hash, timeout=self.transaction_timeout
            )
        except TimeExhausted as e:
            logger.warning("chain_mirror.transaction_timeout", call=label, tx_hash=tx_hash_hex)
            raise TransactionTimeoutError(f"{label} confirmation timeout: {tx_hash_hex}") from e

        if receipt["status"] == 0:
            logger.error(
                "chain_mirror.transaction_reverted",
                call=label,
                tx_hash=tx_hash_hex,
                block_number=receipt["blockNumber"],
            )
            raise TransactionRevertError(f"{label} reverted: {tx_hash_hex}")

        logger.info(
            "chain_mirror.transaction_confirmed",
            call=label,
            tx_hash=tx_hash_hex,
            block_number=receipt["blockNumber"],
            gas_used=receipt["gasUsed"],
        )
        return tx_hash_hex

    def _ensure_allowance(self, required: int) -> None:
        """Approve the feeder for max uint256 when the current allowance is too low.

        A max approval is reused by every later feed, so approval is normally
        sent once per server wallet.
        """
        with self._allowance_lock:
            allowance = self.token.functions.allowance(
                self.server_address, self.feeder_address
            ).call()
            if allowance >= required:
                return
            logger.info("chain_mirror.approving_feeder", allowance=allowance, required=required)
            self._send_transaction(
                self.token.functions.approve(self.feeder_address, MAX_UINT256), "approve"
            )

    def _feed(self, cat_id: str) -> str:
        feed_amount = self.feeder.functions.FEED_AMOUNT().call()
        self._ensure_allowance(feed_amount)
        return self._send_transaction(
            self.feeder.functions.feed(cat_id_to_bytes32(cat_id)), "feed"
        )

    async def mirror_feed(self, cat_id: str) -> str:
        """Record a feed for ``cat_id`` on the CatFeeder contract.

        Returns:
            Feed transaction hash
        """
        return await asyncio.to_thread(self._feed, cat_id)

    async def claim_from_faucet(self, recipient: str, amount: int) -> str:
        """Send ``amount`` whole tokens from the faucet to ``recipient``.

        Returns:
            Claim transaction hash
        """
        call = self.feeder.functions.claimFromFaucet(
            Web3.to_checksum_address(recipient), self.to_token_units(amount)
        )
        return await asyncio.to_thread(self._send_transaction, call, "claimFromFaucet")

    async def process_decay_all(self, max_cats: int) -> str:
        """Run the contract's bowl-decay sweep over at most ``max_cats`` cats."""
        call = self.feeder.functions.processDecayAll(max_cats)
        return await asyncio.to_thread(self._send_transaction, call, "processDecayAll")

    async def get_contract_stats(self) -> dict[str, str]:
        """Read aggregate faucet/care-fund statistics from the feeder contract."""
        try:
            stats = await asyncio.to_thread(self.feeder.functions.getStats().call)
        except Exception as e:
            logger.error("chain_mirror.get_stats_failed", error=str(e))
            raise TransientError(f"getStats failed: {e}") from e
        return {
            "faucetBalance": self.format_units(stats[0]),
            "careFundBalance": self.format_units(stats[1]),
            "totalFed": self.format_units(stats[2]),
            "totalDecayed": self.format_units(stats[3]),
            "trackedCats": str(stats[4]),
        }

    async def token_balance(self, address: str) -> int:
        """Return the whole-token CATTV balance held by ``address``."""
        try:
            raw = await asyncio.to_thread(
                self.token.functions.balanceOf(Web3.to_checksum_address(address)).call
            )
        except Exception as e:
            logger.error("chain_mirror.balance_failed", address=address, error=str(e))
            raise TransientError(f"balanceOf failed: {e}") from e
        return raw // 10**self.token_decimals

    def schedule_feed(self, cat_id: str) -> asyncio.Task:
        """Mirror a committed feed in the background without blocking the caller.

        The returned task never raises: failures are logged and dropped.
        """
        task = asyncio.create_task(self._mirror_feed_logged(cat_id))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return task

    async def _mirror_feed_logged(self, cat_id: str) -> str | None:
        try:
            tx_hash = await self.mirror_feed(cat_id)
        except Exception as e:
            logger.error(
                "chain_mirror.feed_failed",
                cat_id=cat_id,
                error=str(e),
                error_type=type(e).__name__,
            )
            return None
        logger.info("chain_mirror.feed_mirrored", cat_id=cat_id, tx_hash=tx_hash)
        return tx_hash

    async def drain(self, timeout: float = 10.0) -> None:
        """Wait (bounded) for in-flight mirror tasks; used at shutdown."""
        if not self._pending:
            return
        logger.info("chain_mirror.draining", pending=len(self._pending))
        _, still_pending = await asyncio.wait(set(self._pending), timeout=timeout)
        for task in still_pending:
            task.cancel()
