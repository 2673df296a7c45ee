"""
NFT Staking Pool.

Users lock units of the pool's key collectible and accrue the reward token
at a flat rate per block per staked unit, paid out of a pre-funded reserve.

Operations:
- stake / unstake / claim (pausable)
- earned, total_staked_for and other views
- owner controls: pause, block reward, pool key token, ownership

Every mutating operation is all-or-nothing: preconditions and collaborator
checks run first, the settled account is prepared as a working copy, the
token transfer happens, and only then is the record committed and the event
emitted. A failure at any step leaves the pool untouched.

Security features:
- Reserve gate on stake/claim; payouts never exceed the observed reserve
- Unstake is never blocked by an empty reserve
- Owner-only configuration, pause applies to every caller
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from ..block_clock import BlockClock
from ..contracts.erc20 import ZERO_ADDRESS, derive_contract_address
from ..contracts.interfaces import CollectibleRegistry, RewardReserveToken
from ..exceptions import (
    CollectibleTransferError,
    ContractExecutionError,
    InsufficientFundingError,
    InsufficientStakeError,
    InvalidArgumentError,
    InvalidCollectibleError,
    NoStakeRecordError,
)
from .access_guard import AccessGuard
from .events import EventLog, EventType, StakingEvent
from .pool_config import PoolConfig
from .stake_ledger import StakeAccount, StakeLedger, pending_rewards

logger = logging.getLogger(__name__)


class NftStakingPool:
    """
    Flat-rate collectible staking pool.

    Usage:
        pool = NftStakingPool(reward_token, collectibles, clock, config)
        reward_token.transfer(deployer, pool.address, supply)  # fund reserve
        collectibles.set_approval_for_all(user, pool.address, True)
        pool.stake(user, 5, config.pool_key_token)
        pool.claim(user)
    """

    def __init__(
        self,
        reward_token: RewardReserveToken,
        collectibles: CollectibleRegistry,
        clock: BlockClock,
        config: PoolConfig,
        address: str = "",
        ledger: Optional[StakeLedger] = None,
        event_log: Optional[EventLog] = None,
    ) -> None:
        if config.block_reward < 0:
            raise InvalidArgumentError("block_reward", config.block_reward, "cannot be negative")
        if config.pool_key_token < 0:
            raise InvalidArgumentError("pool_key_token", config.pool_key_token, "cannot be negative")
        self._validate_address("owner", config.owner)

        self.reward_token = reward_token
        self.collectibles = collectibles
        self.clock = clock
        self.config = config
        self.guard = AccessGuard(config)
        self.ledger = ledger or StakeLedger()
        self.events = event_log or EventLog()
        self.address = (address or derive_contract_address(
            "nft-staking",
            getattr(reward_token, "address", ""),
            getattr(collectibles, "address", ""),
            config.owner,
            str(config.pool_key_token),
        )).lower()

    # ==================== View Functions ====================

    @property
    def owner(self) -> str:
        return self.config.owner

    @property
    def paused(self) -> bool:
        return self.config.paused

    @property
    def block_reward(self) -> int:
        return self.config.block_reward

    def get_pool_key_token(self) -> int:
        """Collectible id currently accepted for staking."""
        return self.config.pool_key_token

    def reserve_balance(self) -> int:
        """Reward tokens available for payout."""
        return self.reward_token.balance_of(self.address)

    def earned(self, account: str) -> int:
        """
        Rewards owed to an account as of the current block.

        Returns 0 while the reserve is empty, even though the owed amount is
        preserved internally and becomes visible again after a top-up.

        Args:
            account: Staker address

        Returns:
            Accrued plus unsettled rewards
        """
        if self.reserve_balance() == 0:
            return 0
        record = self.ledger.get(account)
        if record is None:
            return 0
        return record.accrued_rewards + pending_rewards(
            record, self.clock.current_block(), self.config.block_reward
        )

    def total_staked_for(self, account: str) -> int:
        record = self.ledger.get(account)
        return record.staked_amount if record else 0

    def staked_for(self, account: str, collectible_id: int) -> int:
        record = self.ledger.get(account)
        return record.staked_for(collectible_id) if record else 0

    def total_staked(self) -> int:
        return self.ledger.total_staked()

    def get_account(self, account: str) -> Dict[str, Any]:
        """Snapshot of an account's stake record, including live ``earned``."""
        record = self.ledger.get(account)
        if record is None:
            record = StakeAccount(address=account.lower())
        info = record.to_dict()
        info["has_record"] = self.ledger.has_record(account)
        info["earned"] = self.earned(account)
        return info

    def get_status(self) -> Dict[str, Any]:
        return {
            "address": self.address,
            "owner": self.owner,
            "paused": self.paused,
            "block_reward": self.block_reward,
            "pool_key_token": self.config.pool_key_token,
            "reserve_balance": self.reserve_balance(),
            "total_staked": self.total_staked(),
            "stakers": len(self.ledger),
            "block_number": self.clock.current_block(),
        }

    # ==================== Staking Operations ====================

    def stake(self, caller: str, amount: int, collectible_id: int) -> bool:
        """
        Lock collectible units into the pool.

        Args:
            caller: Staker (msg.sender)
            amount: Units to stake
            collectible_id: Must equal the pool key token

        Returns:
            True if successful

        Raises:
            PausedError, InvalidArgumentError, InvalidCollectibleError,
            InsufficientFundingError, CollectibleTransferError
        """
        caller_norm = caller.lower()
        self.guard.require_not_paused("stake")
        self._validate_amount(amount)

        if collectible_id != self.config.pool_key_token:
            raise InvalidCollectibleError(collectible_id, self.config.pool_key_token)

        reserve = self.reserve_balance()
        if reserve <= 0:
            raise InsufficientFundingError(reserve)

        held = self.collectibles.balance_of(caller_norm, collectible_id)
        if held < amount:
            raise CollectibleTransferError(
                "insufficient collectible balance",
                token_id=collectible_id,
                requested=amount,
                available=held,
            )
        if not self.collectibles.is_approved_for_all(caller_norm, self.address):
            raise CollectibleTransferError(
                "pool is not approved to transfer caller's collectibles",
                operator=self.address,
            )

        now = self.clock.current_block()
        draft = self.ledger.settle(caller_norm, now, self.config.block_reward)
        draft.add_stake(collectible_id, amount)

        try:
            self.collectibles.safe_transfer_from(
                self.address, caller_norm, self.address, collectible_id, amount
            )
        except ContractExecutionError as e:
            raise CollectibleTransferError(e.message, token_id=collectible_id) from e

        self.ledger.commit(draft)
        self._emit(EventType.STAKED, now, account=caller_norm, amount=amount,
                   data={"collectible_id": collectible_id})

        logger.info(
            "Collectibles staked",
            extra={
                "event": "staking.stake",
                "account": caller_norm[:10],
                "amount": amount,
                "collectible_id": collectible_id,
                "staked_amount": draft.staked_amount,
                "block_number": now,
            },
        )
        return True

    def unstake(self, caller: str, amount: int, collectible_id: int) -> bool:
        """
        Return staked collectible units to their owner.

        Allowed even when the reward reserve is empty so users can always
        retrieve their collectibles. Units staked under a previous pool key
        token are unstaked by passing that old id.

        Args:
            caller: Staker (msg.sender)
            amount: Units to withdraw
            collectible_id: Id the units were staked under

        Returns:
            True if successful

        Raises:
            PausedError, InvalidArgumentError, InsufficientStakeError,
            CollectibleTransferError
        """
        caller_norm = caller.lower()
        self.guard.require_not_paused("unstake")
        self._validate_amount(amount)

        record = self.ledger.get(caller_norm)
        available = record.staked_for(collectible_id) if record else 0
        if available < amount:
            raise InsufficientStakeError(amount, available)

        now = self.clock.current_block()
        draft = self.ledger.settle(caller_norm, now, self.config.block_reward)
        draft.remove_stake(collectible_id, amount)

        try:
            self.collectibles.safe_transfer_from(
                self.address, self.address, caller_norm, collectible_id, amount
            )
        except ContractExecutionError as e:
            raise CollectibleTransferError(e.message, token_id=collectible_id) from e

        self.ledger.commit(draft)
        self._emit(EventType.UNSTAKED, now, account=caller_norm, amount=amount,
                   data={"collectible_id": collectible_id})

        logger.info(
            "Collectibles unstaked",
            extra={
                "event": "staking.unstake",
                "account": caller_norm[:10],
                "amount": amount,
                "collectible_id": collectible_id,
                "staked_amount": draft.staked_amount,
                "block_number": now,
            },
        )
        return True

    def claim(self, caller: str) -> int:
        """
        Pay out accrued rewards from the reserve.

        The payout is capped at the reserve balance; any remainder stays
        owed and can be claimed after the reserve is topped up.

        Args:
            caller: Staker (msg.sender)

        Returns:
            Amount of reward tokens transferred

        Raises:
            PausedError, NoStakeRecordError, InsufficientFundingError
        """
        caller_norm = caller.lower()
        self.guard.require_not_paused("claim")

        if not self.ledger.has_record(caller_norm):
            raise NoStakeRecordError(caller_norm)

        reserve = self.reserve_balance()
        if reserve <= 0:
            raise InsufficientFundingError(reserve)

        now = self.clock.current_block()
        draft = self.ledger.settle(caller_norm, now, self.config.block_reward)
        payout = min(draft.accrued_rewards, reserve)
        draft.accrued_rewards -= payout

        if payout > 0:
            try:
                self.reward_token.transfer(self.address, caller_norm, payout)
            except ContractExecutionError as e:
                raise InsufficientFundingError(self.reserve_balance()) from e

        self.ledger.commit(draft)
        self._emit(EventType.REWARDS_CLAIMED, now, account=caller_norm, amount=payout,
                   data={"outstanding": draft.accrued_rewards})

        logger.info(
            "Rewards claimed",
            extra={
                "event": "staking.claim",
                "account": caller_norm[:10],
                "amount": payout,
                "outstanding": draft.accrued_rewards,
                "reserve_after": reserve - payout,
                "block_number": now,
            },
        )
        return payout

    # ==================== Admin Functions ====================

    def set_paused(self, caller: str, paused: bool) -> bool:
        """Pause or resume stake/unstake/claim (owner only)."""
        self.guard.require_owner(caller)
        self.config.paused = bool(paused)
        self._emit(EventType.PAUSE_CHANGED, self.clock.current_block(),
                   account=self.owner, data={"paused": self.config.paused})
        logger.warning(
            "Pool pause state changed",
            extra={"event": "staking.pause_changed", "paused": self.config.paused},
        )
        return True

    def change_block_reward(self, caller: str, new_rate: int) -> bool:
        """
        Set the reward paid per block per staked unit (owner only).

        Accounts are not settled here; each account's whole unsettled
        interval is priced at whatever rate is in effect when it next
        settles.
        """
        self.guard.require_owner(caller)
        if new_rate < 0:
            raise InvalidArgumentError("block_reward", new_rate, "cannot be negative")
        old_rate = self.config.block_reward
        self.config.block_reward = new_rate
        self._emit(EventType.BLOCK_REWARD_CHANGED, self.clock.current_block(),
                   account=self.owner, data={"old_rate": old_rate, "new_rate": new_rate})
        logger.info(
            "Block reward changed",
            extra={"event": "staking.block_reward_changed", "old_rate": old_rate, "new_rate": new_rate},
        )
        return True

    def change_pool_key_token(self, caller: str, new_id: int) -> bool:
        """Switch the collectible id accepted for new stakes (owner only)."""
        self.guard.require_owner(caller)
        if new_id < 0:
            raise InvalidArgumentError("pool_key_token", new_id, "cannot be negative")
        old_id = self.config.pool_key_token
        self.config.pool_key_token = new_id
        self._emit(EventType.KEY_TOKEN_CHANGED, self.clock.current_block(),
                   account=self.owner, data={"old_id": old_id, "new_id": new_id})
        logger.info(
            "Pool key token changed",
            extra={"event": "staking.key_token_changed", "old_id": old_id, "new_id": new_id},
        )
        return True

    def transfer_ownership(self, caller: str, new_owner: str) -> bool:
        """Hand configuration rights to another address (owner only)."""
        self.guard.require_owner(caller)
        self._validate_address("new_owner", new_owner)
        previous = self.config.owner
        self.config.owner = new_owner.lower()
        self._emit(EventType.OWNERSHIP_TRANSFERRED, self.clock.current_block(),
                   account=self.config.owner,
                   data={"previous_owner": previous, "new_owner": self.config.owner})
        logger.warning(
            "Pool ownership transferred",
            extra={
                "event": "staking.ownership_transferred",
                "previous_owner": previous[:10],
                "new_owner": self.config.owner[:10],
            },
        )
        return True

    # ==================== Helpers ====================

    def _validate_amount(self, amount: int) -> None:
        if isinstance(amount, bool) or not isinstance(amount, int) or amount <= 0:
            raise InvalidArgumentError("amount", amount, "must be a positive integer")

    def _validate_address(self, field: str, address: str) -> None:
        if not address or address.lower() == ZERO_ADDRESS:
            raise InvalidArgumentError(field, address, "is zero address")

    def _emit(
        self,
        event_type: EventType,
        block_number: int,
        account: str = "",
        amount: int = 0,
        data: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.events.emit(
            StakingEvent(
                event_type=event_type,
                block_number=block_number,
                account=account,
                amount=amount,
                data=data or {},
            )
        )

    # ==================== Serialization ====================

    def to_dict(self) -> Dict[str, Any]:
        """Serialize pool state (config, accounts, events)."""
        return {
            "address": self.address,
            "config": self.config.to_dict(),
            "accounts": self.ledger.to_dict(),
            "events": self.events.to_dict(),
        }

    @classmethod
    def from_dict(
        cls,
        data: Dict[str, Any],
        reward_token: RewardReserveToken,
        collectibles: CollectibleRegistry,
        clock: BlockClock,
    ) -> "NftStakingPool":
        """Restore a pool around already-restored collaborators."""
        return cls(
            reward_token=reward_token,
            collectibles=collectibles,
            clock=clock,
            config=PoolConfig.from_dict(data["config"]),
            address=data.get("address", ""),
            ledger=StakeLedger.from_dict(data.get("accounts", {})),
            event_log=EventLog.from_dict(data.get("events", {})),
        )
