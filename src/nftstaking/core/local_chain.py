"""
Local auto-mining chain hosting one staking deployment.

Bundles the block clock, the reward token, the collectible ledger and the
staking pool, and serializes every state-changing call behind a lock. Each
submitted transaction mines one block before it executes (failed ones too),
then the whole chain is persisted when storage is attached.
"""

from __future__ import annotations

import logging
import threading
from typing import Any, Callable, Dict, List, Optional

from .block_clock import ManualBlockClock
from .contracts.erc20 import RewardToken
from .contracts.erc1155 import CollectibleToken
from .exceptions import StorageError
from .staking.events import EventType, StakingEvent
from .staking.pool import NftStakingPool
from .staking.pool_config import PoolConfig
from .staking_persistence import StakingStorage

logger = logging.getLogger(__name__)

# Builds a transaction receipt from its result while the chain lock is held
Receipt = Callable[[Any], Dict[str, Any]]

CHAIN_STATE_VERSION = 1


class LocalChain:
    """
    Single-writer sandbox chain for the staking pool.

    Usage:
        chain = LocalChain.deploy(owner="0xowner...", reward_supply=10**24,
                                  block_reward=10**15, pool_key_token=50)
        chain.fund(owner, 10**24)
        chain.mint_collectibles(owner, user, 50, 10)
        chain.approve(user)
        chain.stake(user, 5, 50)
    """

    def __init__(
        self,
        clock: ManualBlockClock,
        reward_token: RewardToken,
        collectibles: CollectibleToken,
        pool: NftStakingPool,
        storage: Optional[StakingStorage] = None,
    ) -> None:
        self.clock = clock
        self.reward_token = reward_token
        self.collectibles = collectibles
        self.pool = pool
        self.storage = storage
        self.lock = threading.Lock()

    # ==================== Deployment ====================

    @classmethod
    def deploy(
        cls,
        owner: str,
        reward_supply: int,
        block_reward: int,
        pool_key_token: int,
        storage: Optional[StakingStorage] = None,
        reward_name: str = "Reward Token",
        reward_symbol: str = "RWD",
        collectible_name: str = "Collectibles",
    ) -> "LocalChain":
        """
        Deploy both token contracts and the pool at block 0.

        The whole reward supply is minted to ``owner``; the pool starts with
        an empty reserve until someone transfers tokens to it (``fund``).
        """
        owner_norm = owner.lower()
        clock = ManualBlockClock()
        reward_token = RewardToken(name=reward_name, symbol=reward_symbol, owner=owner_norm)
        if reward_supply > 0:
            reward_token.mint(owner_norm, owner_norm, reward_supply)
        collectibles = CollectibleToken(name=collectible_name, owner=owner_norm)
        pool = NftStakingPool(
            reward_token,
            collectibles,
            clock,
            PoolConfig(owner=owner_norm, block_reward=block_reward, pool_key_token=pool_key_token),
        )

        chain = cls(clock, reward_token, collectibles, pool, storage=storage)
        logger.info(
            "Staking pool deployed",
            extra={
                "event": "chain.deployed",
                "owner": owner_norm[:10],
                "pool": pool.address[:10],
                "reward_token": reward_token.address[:10],
                "collectibles": collectibles.address[:10],
                "block_reward": block_reward,
                "pool_key_token": pool_key_token,
            },
        )
        chain.save()
        return chain

    @classmethod
    def open(cls, storage: StakingStorage) -> "LocalChain":
        """
        Load a previously deployed chain.

        Raises:
            StorageError: No deployment in storage or unrecoverable state
        """
        success, state, message = storage.load_from_disk()
        if not success or state is None:
            raise StorageError(
                f"Cannot open chain state: {message}",
                details={"data_dir": storage.data_dir},
            )
        chain = cls.from_dict(state, storage=storage)
        logger.debug(
            "Chain state opened",
            extra={"event": "chain.opened", "block_height": chain.clock.current_block()},
        )
        return chain

    # ==================== Transactions ====================

    @property
    def block_number(self) -> int:
        return self.clock.current_block()

    def transact(
        self,
        name: str,
        fn: Callable[..., Any],
        *args: Any,
        receipt: Optional[Receipt] = None,
    ) -> Any:
        """
        Mine one block, execute ``fn`` in it and persist the result.

        Exceptions from ``fn`` propagate unchanged; the block is still mined
        and persisted. When ``receipt`` is given it is called with ``fn``'s
        result before the lock is released and its value is returned instead,
        so the reported post-state belongs to this transaction.
        """
        with self.lock:
            height = self.clock.advance(1)
            try:
                result = fn(*args)
            except Exception as e:
                logger.info(
                    "Transaction reverted",
                    extra={
                        "event": "chain.tx_reverted",
                        "tx": name,
                        "block_number": height,
                        "error_type": type(e).__name__,
                    },
                )
                self._persist(raise_on_failure=False)
                raise
            self._persist(raise_on_failure=True)
            logger.debug(
                "Transaction mined",
                extra={"event": "chain.tx_mined", "tx": name, "block_number": height},
            )
            return receipt(result) if receipt is not None else result

    def mint_collectibles(
        self, caller: str, to: str, token_id: int, amount: int, receipt: Optional[Receipt] = None
    ) -> Any:
        return self.transact(
            "mint", self.collectibles.mint, caller, to, token_id, amount, receipt=receipt
        )

    def approve(self, caller: str, approved: bool = True, receipt: Optional[Receipt] = None) -> Any:
        """Grant (or revoke) the pool operator rights over caller's collectibles."""
        return self.transact(
            "approve",
            self.collectibles.set_approval_for_all,
            caller,
            self.pool.address,
            approved,
            receipt=receipt,
        )

    def fund(self, caller: str, amount: int, receipt: Optional[Receipt] = None) -> Any:
        """Top up the reward reserve with an ordinary token transfer."""
        return self.transact(
            "fund", self.reward_token.transfer, caller, self.pool.address, amount, receipt=receipt
        )

    def stake(
        self, caller: str, amount: int, collectible_id: int, receipt: Optional[Receipt] = None
    ) -> Any:
        return self.transact(
            "stake", self.pool.stake, caller, amount, collectible_id, receipt=receipt
        )

    def unstake(
        self, caller: str, amount: int, collectible_id: int, receipt: Optional[Receipt] = None
    ) -> Any:
        return self.transact(
            "unstake", self.pool.unstake, caller, amount, collectible_id, receipt=receipt
        )

    def claim(self, caller: str, receipt: Optional[Receipt] = None) -> Any:
        return self.transact("claim", self.pool.claim, caller, receipt=receipt)

    def set_paused(self, caller: str, paused: bool, receipt: Optional[Receipt] = None) -> Any:
        return self.transact("set_paused", self.pool.set_paused, caller, paused, receipt=receipt)

    def change_block_reward(
        self, caller: str, new_rate: int, receipt: Optional[Receipt] = None
    ) -> Any:
        return self.transact(
            "change_block_reward", self.pool.change_block_reward, caller, new_rate, receipt=receipt
        )

    def change_pool_key_token(
        self, caller: str, new_id: int, receipt: Optional[Receipt] = None
    ) -> Any:
        return self.transact(
            "change_pool_key_token", self.pool.change_pool_key_token, caller, new_id, receipt=receipt
        )

    def transfer_ownership(
        self, caller: str, new_owner: str, receipt: Optional[Receipt] = None
    ) -> Any:
        return self.transact(
            "transfer_ownership", self.pool.transfer_ownership, caller, new_owner, receipt=receipt
        )

    def outstanding_rewards(self, address: str) -> int:
        """
        Rewards settled into the stake record but not yet paid out.

        Reads without taking ``lock``; call it from a receipt builder.
        """
        record = self.pool.ledger.get(address)
        return record.accrued_rewards if record else 0

    # ==================== Views ====================

    def status(self) -> Dict[str, Any]:
        with self.lock:
            status = self.pool.get_status()
            status["reward_token"] = {
                "address": self.reward_token.address,
                "name": self.reward_token.name,
                "symbol": self.reward_token.symbol,
                "decimals": self.reward_token.decimals,
                "total_supply": self.reward_token.total_supply,
            }
            status["collectibles"] = {
                "address": self.collectibles.address,
                "name": self.collectibles.name,
            }
            return status

    def account(self, address: str) -> Dict[str, Any]:
        with self.lock:
            info = self.pool.get_account(address)
            info["reward_balance"] = self.reward_token.balance_of(address)
            info["collectible_balance"] = self.collectibles.balance_of(
                address, self.pool.get_pool_key_token()
            )
            info["approved"] = self.collectibles.is_approved_for_all(address, self.pool.address)
            return info

    def earned(self, address: str) -> int:
        with self.lock:
            return self.pool.earned(address)

    def events(
        self,
        event_type: Optional[EventType] = None,
        account: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> List[StakingEvent]:
        with self.lock:
            events = self.pool.events.filter(event_type=event_type, account=account)
            if limit is not None:
                events = events[-limit:] if limit > 0 else []
            return events

    # ==================== Persistence ====================

    def save(self) -> None:
        with self.lock:
            self._persist(raise_on_failure=True)

    def _persist(self, raise_on_failure: bool) -> None:
        if self.storage is None:
            return
        success, message = self.storage.save_to_disk(self.to_dict())
        if not success and raise_on_failure:
            raise StorageError(message, details={"data_dir": self.storage.data_dir})

    def to_dict(self) -> Dict[str, Any]:
        return {
            "version": CHAIN_STATE_VERSION,
            "block_height": self.clock.current_block(),
            "reward_token": self.reward_token.to_dict(),
            "collectibles": self.collectibles.to_dict(),
            "pool": self.pool.to_dict(),
        }

    @classmethod
    def from_dict(
        cls, data: Dict[str, Any], storage: Optional[StakingStorage] = None
    ) -> "LocalChain":
        clock = ManualBlockClock(height=int(data.get("block_height", 0)))
        reward_token = RewardToken.from_dict(data["reward_token"])
        collectibles = CollectibleToken.from_dict(data["collectibles"])
        pool = NftStakingPool.from_dict(data["pool"], reward_token, collectibles, clock)
        return cls(clock, reward_token, collectibles, pool, storage=storage)
