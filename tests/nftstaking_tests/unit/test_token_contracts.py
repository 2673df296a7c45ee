"""Tests for the reward token and collectible ledgers."""

import pytest

from nftstaking.core.contracts import CollectibleRegistry, RewardReserveToken
from nftstaking.core.contracts.erc20 import ZERO_ADDRESS, RewardToken
from nftstaking.core.contracts.erc1155 import CollectibleToken
from nftstaking.core.exceptions import ContractExecutionError

OWNER = "0x" + "1" * 40
ALICE = "0x" + "2" * 40
BOB = "0x" + "3" * 40


class TestRewardToken:

    @pytest.fixture
    def token(self):
        token = RewardToken(name="Reward Token", symbol="RWD", owner=OWNER)
        token.mint(OWNER, OWNER, 1_000)
        return token

    def test_implements_reserve_protocol(self, token):
        assert isinstance(token, RewardReserveToken)

    def test_mint_and_transfer(self, token):
        assert token.total_supply == 1_000
        token.transfer(OWNER, ALICE, 250)

        assert token.balance_of(OWNER) == 750
        assert token.balance_of(ALICE.upper().replace("0X", "0x")) == 250
        assert token.events[-1].event_type == "Transfer"

    def test_transfer_exceeding_balance_is_atomic(self, token):
        with pytest.raises(ContractExecutionError):
            token.transfer(ALICE, BOB, 1)
        assert token.balance_of(ALICE) == 0
        assert token.balance_of(BOB) == 0

    def test_transfer_to_zero_address(self, token):
        with pytest.raises(ContractExecutionError):
            token.transfer(OWNER, ZERO_ADDRESS, 1)

    def test_only_owner_mints(self, token):
        with pytest.raises(ContractExecutionError):
            token.mint(ALICE, ALICE, 1)
        assert token.total_supply == 1_000

    def test_round_trip(self, token):
        token.transfer(OWNER, ALICE, 5)
        restored = RewardToken.from_dict(token.to_dict())
        assert restored.address == token.address
        assert restored.balance_of(ALICE) == 5
        assert restored.total_supply == 1_000


class TestCollectibleToken:

    @pytest.fixture
    def ledger(self):
        ledger = CollectibleToken(name="Garden", owner=OWNER)
        ledger.mint_batch(OWNER, ALICE, [1, 2], [5, 3])
        return ledger

    def test_implements_registry_protocol(self, ledger):
        assert isinstance(ledger, CollectibleRegistry)

    def test_batch_mint(self, ledger):
        assert ledger.balance_of(ALICE, 1) == 5
        assert ledger.balance_of(ALICE, 2) == 3
        assert ledger.supply_of(2) == 3
        assert ledger.events[-1].event_type == "TransferBatch"

    def test_mint_validation(self, ledger):
        with pytest.raises(ContractExecutionError):
            ledger.mint(ALICE, ALICE, 1, 1)
        with pytest.raises(ContractExecutionError):
            ledger.mint_batch(OWNER, ALICE, [1, 2], [1])
        with pytest.raises(ContractExecutionError):
            ledger.mint(OWNER, ALICE, 1, 0)

    def test_operator_transfer_requires_approval(self, ledger):
        with pytest.raises(ContractExecutionError):
            ledger.safe_transfer_from(BOB, ALICE, BOB, 1, 1)

        ledger.set_approval_for_all(ALICE, BOB, True)
        assert ledger.is_approved_for_all(ALICE, BOB)
        ledger.safe_transfer_from(BOB, ALICE, BOB, 1, 2)

        assert ledger.balance_of(ALICE, 1) == 3
        assert ledger.balance_of(BOB, 1) == 2

    def test_holder_transfers_own_units(self, ledger):
        ledger.safe_transfer_from(ALICE, ALICE, BOB, 2, 3)
        assert ledger.balance_of(BOB, 2) == 3

    def test_insufficient_balance_is_atomic(self, ledger):
        with pytest.raises(ContractExecutionError):
            ledger.safe_transfer_from(ALICE, ALICE, BOB, 1, 6)
        assert ledger.balance_of(ALICE, 1) == 5
        assert ledger.balance_of(BOB, 1) == 0

    def test_self_approval_rejected(self, ledger):
        with pytest.raises(ContractExecutionError):
            ledger.set_approval_for_all(ALICE, ALICE, True)

    def test_round_trip(self, ledger):
        ledger.set_approval_for_all(ALICE, BOB, True)
        restored = CollectibleToken.from_dict(ledger.to_dict())
        assert restored.balance_of(ALICE, 1) == 5
        assert restored.is_approved_for_all(ALICE, BOB)
        assert restored.supply_of(1) == 5
