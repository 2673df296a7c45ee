"""
Test configuration and fixtures
"""
import sys
from pathlib import Path
from types import SimpleNamespace

# Add src to Python path
project_root = Path(__file__).parent.parent
src_path = project_root / "src"
sys.path.insert(0, str(src_path))

import pytest

from nftstaking.core.block_clock import ManualBlockClock
from nftstaking.core.contracts.erc20 import RewardToken
from nftstaking.core.contracts.erc1155 import CollectibleToken
from nftstaking.core.local_chain import LocalChain
from nftstaking.core.staking.pool import NftStakingPool
from nftstaking.core.staking.pool_config import PoolConfig
from nftstaking.core.staking_persistence import StakingStorage


@pytest.fixture
def actors():
    """Addresses and deployment parameters shared by the staking tests."""
    return SimpleNamespace(
        owner="0x" + "a" * 40,
        user="0x" + "b" * 40,
        user2="0x" + "c" * 40,
        key_token=50,
        other_token=51,
        block_reward=10,
        supply=1_000_000,
        minted=10,
    )


@pytest.fixture
def clock():
    return ManualBlockClock()


@pytest.fixture
def reward_token(actors):
    token = RewardToken(name="Reward Token", symbol="RWD", owner=actors.owner)
    token.mint(actors.owner, actors.owner, actors.supply)
    return token


@pytest.fixture
def collectibles(actors):
    ledger = CollectibleToken(name="Garden", owner=actors.owner)
    ledger.mint_batch(
        actors.owner, actors.user, [actors.key_token, actors.other_token], [actors.minted, actors.minted]
    )
    ledger.mint(actors.owner, actors.user2, actors.key_token, actors.minted)
    return ledger


@pytest.fixture
def unfunded_pool(actors, reward_token, collectibles, clock):
    """Pool with an empty reserve; both users have approved it."""
    pool = NftStakingPool(
        reward_token,
        collectibles,
        clock,
        PoolConfig(owner=actors.owner, block_reward=actors.block_reward, pool_key_token=actors.key_token),
    )
    collectibles.set_approval_for_all(actors.user, pool.address, True)
    collectibles.set_approval_for_all(actors.user2, pool.address, True)
    return pool


@pytest.fixture
def pool(actors, unfunded_pool, reward_token):
    """Pool whose reserve holds the whole reward supply."""
    reward_token.transfer(actors.owner, unfunded_pool.address, actors.supply)
    return unfunded_pool


@pytest.fixture
def storage(tmp_path):
    return StakingStorage(data_dir=tmp_path.as_posix(), max_backups=3)


@pytest.fixture
def chain(actors, storage):
    """
    Funded local chain at block 3:
    deploy (0), fund (1), mint to user (2), user approves pool (3).
    """
    chain = LocalChain.deploy(
        owner=actors.owner,
        reward_supply=actors.supply,
        block_reward=actors.block_reward,
        pool_key_token=actors.key_token,
        storage=storage,
    )
    chain.fund(actors.owner, actors.supply)
    chain.mint_collectibles(actors.owner, actors.user, actors.key_token, actors.minted)
    chain.approve(actors.user)
    return chain
