"""Tests for the nftstake CLI."""

import json

import pytest
from click.testing import CliRunner

from nftstaking.cli.main import cli


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def invoke(runner, tmp_path):
    """Run a CLI command against a temp data directory with JSON output."""

    def _invoke(*args, json_output=True):
        base = ["--data-dir", str(tmp_path / "chain")]
        if json_output:
            base.append("--json-output")
        return runner.invoke(cli, [*base, *args], obj={})

    return _invoke


@pytest.fixture
def deployed(invoke, actors):
    result = invoke(
        "init",
        "--owner", actors.owner,
        "--reward-supply", str(actors.supply),
        "--block-reward", str(actors.block_reward),
        "--key-token", str(actors.key_token),
    )
    assert result.exit_code == 0, result.output
    invoke("mint", actors.user, str(actors.key_token), str(actors.minted), "--caller", actors.owner)
    invoke("approve", "--caller", actors.user)
    return json.loads(result.output)["pool"]


class TestInit:

    def test_init_deploys_and_funds(self, deployed, actors):
        assert deployed["owner"] == actors.owner
        assert deployed["reserve_balance"] == actors.supply
        assert deployed["block_number"] == 1

    def test_init_refuses_to_overwrite(self, deployed, invoke, actors):
        result = invoke("init", "--owner", actors.owner)
        assert result.exit_code == 1
        assert "already deployed" in result.output

    def test_init_without_funding(self, invoke, actors):
        result = invoke("init", "--owner", actors.owner, "--fund", "0")
        assert result.exit_code == 0
        assert json.loads(result.output)["pool"]["reserve_balance"] == 0

    def test_commands_require_deployment(self, invoke):
        result = invoke("status")
        assert result.exit_code == 1
        assert "Error" in result.output


class TestStakingFlow:

    def test_stake_claim_unstake(self, deployed, invoke, actors):
        # init mined blocks 0-1, mint 2, approve 3
        result = invoke("stake", "2", "--caller", actors.user)
        assert result.exit_code == 0, result.output
        receipt = json.loads(result.output)
        assert receipt["staked"] == 2
        assert receipt["block_number"] == 4

        result = invoke("claim", "--caller", actors.user)
        assert json.loads(result.output)["paid"] == 1 * actors.block_reward * 2

        result = invoke("unstake", "2", "--caller", actors.user)
        assert json.loads(result.output)["staked"] == 0

        account = json.loads(invoke("account", actors.user).output)
        assert account["collectible_balance"] == actors.minted
        assert account["earned"] == 1 * actors.block_reward * 2

    def test_earned(self, deployed, invoke, actors):
        invoke("stake", "3", "--caller", actors.user)
        invoke("fund", "0", "--caller", actors.owner)

        data = json.loads(invoke("earned", actors.user).output)
        assert data["earned"] == 1 * actors.block_reward * 3

    def test_claim_without_stake_fails(self, deployed, invoke, actors):
        result = invoke("claim", "--caller", actors.user2)
        assert result.exit_code == 1
        assert "NoStakeRecord" in result.output

    def test_events(self, deployed, invoke, actors):
        invoke("stake", "1", "--caller", actors.user)
        invoke("pause", "--caller", actors.owner)

        events = json.loads(invoke("events").output)
        assert [e["event_type"] for e in events] == ["Staked", "PauseChanged"]

        events = json.loads(invoke("events", "--type", "Staked").output)
        assert len(events) == 1

    def test_rich_output(self, deployed, invoke, actors):
        invoke("stake", "1", "--caller", actors.user)

        result = invoke("status", json_output=False)
        assert result.exit_code == 0
        assert "Staking Pool" in result.output

        result = invoke("events", json_output=False)
        assert "Staked" in result.output


class TestOwnerCommands:

    def test_pause_and_unpause(self, deployed, invoke, actors):
        assert json.loads(invoke("pause", "--caller", actors.owner).output)["paused"] is True

        result = invoke("stake", "1", "--caller", actors.user)
        assert result.exit_code == 1
        assert "ContractPaused" in result.output

        assert json.loads(invoke("unpause", "--caller", actors.owner).output)["paused"] is False
        assert invoke("stake", "1", "--caller", actors.user).exit_code == 0

    def test_non_owner_rejected(self, deployed, invoke, actors):
        result = invoke("set-reward", "5", "--caller", actors.user)
        assert result.exit_code == 1
        assert "NotOwner" in result.output

    def test_configuration_changes_persist(self, deployed, invoke, actors):
        invoke("set-reward", "77", "--caller", actors.owner)
        invoke("set-key-token", "9", "--caller", actors.owner)
        invoke("transfer-ownership", actors.user2, "--caller", actors.owner)

        status = json.loads(invoke("status").output)
        assert status["block_reward"] == 77
        assert status["pool_key_token"] == 9
        assert status["owner"] == actors.user2

    def test_caller_from_environment(self, deployed, runner, tmp_path, actors):
        result = runner.invoke(
            cli,
            ["--data-dir", str(tmp_path / "chain"), "--json-output", "pause"],
            env={"NFTSTAKING_CALLER": actors.owner},
        )
        assert result.exit_code == 0, result.output
        assert json.loads(result.output)["paused"] is True


class TestNetworkProfile:

    def test_production_requires_pool_owner(self, runner, tmp_path, monkeypatch):
        monkeypatch.delenv("NFTSTAKING_POOL_OWNER", raising=False)
        result = runner.invoke(
            cli,
            ["--data-dir", str(tmp_path / "chain"), "status"],
            env={"NFTSTAKING_NETWORK": "production"},
        )
        assert result.exit_code == 1
        assert "NFTSTAKING_POOL_OWNER" in result.output
        assert "required for production" in " ".join(result.output.split())
        assert "No staking pool deployed" not in result.output

    def test_unknown_network_rejected(self, runner, tmp_path):
        result = runner.invoke(cli, ["--data-dir", str(tmp_path), "--network", "staging", "status"])
        assert result.exit_code == 1
        assert "Unknown NFTSTAKING_NETWORK 'staging'" in result.output
