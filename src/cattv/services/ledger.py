"""Balance ledger: lazy user creation and the daily food claim.

The claim is a row-locked read-modify-write on the user record, so two
concurrent claims by the same user serialize and the second one sees the
first one's ``last_claim_at``.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta

import structlog

from cattv.core.config import GameRules, LedgerMode
from cattv.core.timezone import format_remaining, utcnow
from cattv.models.user import User, normalize_wallet_address
from cattv.services.blockchain.chain_mirror import ChainMirror
from cattv.services.exceptions import (
    ChainMirrorUnavailable,
    CooldownActive,
    FailedPrecondition,
    Internal,
    InvalidArgument,
    ServiceError,
    TransactionRevertError,
)

logger = structlog.get_logger()


@dataclass(frozen=True)
class ClaimStatus:
    """Cooldown view of a user, derived from ``last_claim_at``."""

    can_claim: bool
    next_claim_at: datetime | None
    remaining: timedelta | None

    @property
    def time_until_claim(self) -> str | None:
        return format_remaining(self.remaining) if self.remaining else None


@dataclass(frozen=True)
class ClaimResult:
    claimed: int
    balance: int | None = None
    tx_hash: str | None = None


def claim_status(last_claim_at: datetime | None, cooldown: timedelta, now: datetime) -> ClaimStatus:
    """Compute whether a claim is allowed at ``now`` and how long remains otherwise."""
    if last_claim_at is None:
        return ClaimStatus(can_claim=True, next_claim_at=None, remaining=None)
    next_claim_at = last_claim_at + cooldown
    remaining = next_claim_at - now
    if remaining <= timedelta(0):
        return ClaimStatus(can_claim=True, next_claim_at=next_claim_at, remaining=None)
    return ClaimStatus(can_claim=False, next_claim_at=next_claim_at, remaining=remaining)


def _raise_if_cooling_down(user: User, rules: GameRules, now: datetime) -> None:
    status = claim_status(user.last_claim_at, rules.claim_cooldown, now)
    if status.can_claim:
        return
    logger.info("claim.cooldown_active", user_id=user.id, remaining=status.time_until_claim)
    raise CooldownActive(
        f"Already claimed today. Next claim in {status.time_until_claim}",
        details={
            "remainingMs": int(status.remaining.total_seconds() * 1000),  # type: ignore[union-attr]
            "timeUntilClaim": status.time_until_claim,
        },
    )


class BalanceLedger:
    """Per-user balance bookkeeping: get-or-create and daily claims."""

    def __init__(self, uow_factory, rules: GameRules, chain_mirror: ChainMirror | None = None):
        """
        Args:
            uow_factory: UnitOfWork factory (one transaction per operation)
            rules: Immutable game constants
            chain_mirror: On-chain client, required only in on-chain ledger mode
        """
        self.uow_factory = uow_factory
        self.rules = rules
        self.chain_mirror = chain_mirror

    async def get_or_create_user(self, user_id: str, wallet_address: str | None = None) -> User:
        """Return the user's record, creating a zero-balance one on first access.

        Args:
            user_id: Authenticated user identifier
            wallet_address: Optional wallet to record (validated and checksummed)

        Raises:
            InvalidArgument: If the wallet address is malformed
        """
        normalized_wallet = None
        if wallet_address:
            try:
                normalized_wallet = normalize_wallet_address(wallet_address)
            except ValueError as e:
                raise InvalidArgument(str(e))

        async with await self.uow_factory() as uow:
            user, created = await uow.users.get_or_create(user_id)
            if normalized_wallet and user.wallet_address != normalized_wallet:
                user = await uow.users.get_for_update(user_id)
                user.wallet_address = normalized_wallet  # type: ignore[union-attr]
                await uow.session.flush()
                logger.info("user.wallet_linked", user_id=user_id, wallet=normalized_wallet)

        if created:
            logger.info("user.created", user_id=user_id)
        return user  # type: ignore[return-value]

    async def claim_daily(self, user_id: str, now: datetime | None = None) -> ClaimResult:
        """Grant the daily allowance if the cooldown has elapsed.

        Raises:
            CooldownActive: If the previous claim is less than the cooldown ago
            FailedPrecondition: On-chain mode without a wallet, or faucet revert
            ChainMirrorUnavailable: On-chain mode without a configured mirror
        """
        now = now or utcnow()
        if self.rules.ledger_mode == LedgerMode.ONCHAIN:
            return await self._claim_onchain(user_id, now)

        async with await self.uow_factory() as uow:
            user = await uow.users.get_or_create_for_update(user_id)
            _raise_if_cooling_down(user, self.rules, now)

            user.balance += self.rules.daily_amount
            user.last_claim_at = now
            await uow.session.flush()
            new_balance = user.balance

        logger.info(
            "claim.granted", user_id=user_id, claimed=self.rules.daily_amount, balance=new_balance
        )
        return ClaimResult(claimed=self.rules.daily_amount, balance=new_balance)

    async def _claim_onchain(self, user_id: str, now: datetime) -> ClaimResult:
        """Claim through the faucet contract; the local timestamp is a secondary guard.

        The user row stays locked while the faucet transaction confirms, so two
        concurrent claims by one user cannot both reach the contract.
        """
        if self.chain_mirror is None:
            raise ChainMirrorUnavailable("On-chain claims are not configured")

        async with await self.uow_factory() as uow:
            user = await uow.users.get_or_create_for_update(user_id)
            if not user.wallet_address:
                raise FailedPrecondition("No wallet on file. Connect a wallet to claim.")
            _raise_if_cooling_down(user, self.rules, now)

            try:
                tx_hash = await self.chain_mirror.claim_from_faucet(
                    user.wallet_address, self.rules.daily_amount
                )
            except TransactionRevertError as e:
                logger.warning("claim.faucet_reverted", user_id=user_id, error=str(e))
                raise FailedPrecondition("Faucet rejected the claim. Try again later.")
            except ServiceError as e:
                logger.error("claim.faucet_failed", user_id=user_id, error=str(e))
                raise Internal("Failed to claim from faucet")

            user.last_claim_at = now
            await uow.session.flush()

        logger.info("claim.granted_onchain", user_id=user_id, tx_hash=tx_hash)
        return ClaimResult(claimed=self.rules.daily_amount, tx_hash=tx_hash)

    async def token_balance(self, user: User) -> int | None:
        """On-chain CATTV balance for the user's wallet (None when unavailable)."""
        if self.chain_mirror is None or not user.wallet_address:
            return None
        try:
            return await self.chain_mirror.token_balance(user.wallet_address)
        except ServiceError:
            return None

    def claim_status(self, user: User, now: datetime | None = None) -> ClaimStatus:
        return claim_status(user.last_claim_at, self.rules.claim_cooldown, now or utcnow())
