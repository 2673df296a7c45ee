"""Tests for the staking HTTP API."""

import pytest

from nftstaking.core.api import create_app


@pytest.fixture
def client(chain):
    app = create_app(chain)
    app.config["TESTING"] = True
    return app.test_client()


class TestViews:

    def test_health(self, client, chain):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.get_json()["block_number"] == chain.block_number

    def test_status(self, client, actors):
        response = client.get("/staking/status")
        data = response.get_json()

        assert response.status_code == 200
        assert data["success"] is True
        assert data["pool"]["owner"] == actors.owner
        assert data["pool"]["reserve_balance"] == actors.supply

    def test_account_and_earned(self, client, actors):
        client.post("/staking/stake", json={"caller": actors.user, "amount": 2,
                                            "collectible_id": actors.key_token})
        client.post("/staking/approve", json={"caller": actors.user2})

        account = client.get(f"/staking/accounts/{actors.user}").get_json()["account"]
        assert account["staked_amount"] == 2
        assert account["has_record"] is True

        earned = client.get(f"/staking/earned/{actors.user}").get_json()
        assert earned["earned"] == 1 * actors.block_reward * 2

    def test_events_query(self, client, actors):
        client.post("/staking/stake", json={"caller": actors.user, "amount": 1,
                                            "collectible_id": actors.key_token})
        client.post("/staking/admin/pause", json={"caller": actors.owner, "paused": True})

        data = client.get("/staking/events?type=Staked").get_json()
        assert data["count"] == 1
        assert data["events"][0]["event_type"] == "Staked"

        data = client.get("/staking/events?limit=1").get_json()
        assert data["events"][0]["event_type"] == "PauseChanged"

    def test_unknown_event_type(self, client):
        response = client.get("/staking/events?type=Minted")
        assert response.status_code == 400
        assert response.get_json()["code"] == "invalid_event_type"

    def test_unknown_route_returns_json(self, client):
        response = client.get("/staking/nowhere")
        assert response.status_code == 404
        assert response.get_json()["success"] is False


class TestStakingEndpoints:

    def test_receipts_report_their_own_block(self, client, chain, actors):
        body = {"caller": actors.user, "amount": 2, "collectible_id": actors.key_token}
        first = client.post("/staking/stake", json=body).get_json()
        second = client.post("/staking/stake", json=body).get_json()

        assert (first["block_number"], first["staked"]) == (4, 2)
        assert (second["block_number"], second["staked"]) == (5, 4)
        assert not chain.lock.locked()

    def test_stake_then_claim(self, client, actors):
        response = client.post("/staking/stake", json={
            "caller": actors.user, "amount": 2, "collectible_id": actors.key_token,
        })
        assert response.status_code == 200
        assert response.get_json()["staked"] == 2

        response = client.post("/staking/claim", json={"caller": actors.user})
        data = response.get_json()
        assert response.status_code == 200
        assert data["paid"] == 1 * actors.block_reward * 2
        assert data["outstanding"] == 0

    def test_unstake(self, client, actors):
        client.post("/staking/stake", json={"caller": actors.user, "amount": 3,
                                            "collectible_id": actors.key_token})
        response = client.post("/staking/unstake", json={
            "caller": actors.user, "amount": 1, "collectible_id": actors.key_token,
        })
        assert response.status_code == 200
        assert response.get_json()["staked"] == 2

    def test_mint_and_fund(self, client, chain, actors):
        response = client.post("/staking/mint", json={
            "caller": actors.owner, "to": actors.user2, "collectible_id": actors.key_token, "amount": 4,
        })
        assert response.status_code == 200
        assert response.get_json()["balance"] == 4

        chain.reward_token.mint(actors.owner, actors.owner, 500)
        response = client.post("/staking/fund", json={"caller": actors.owner, "amount": 500})
        assert response.get_json()["reserve_balance"] == actors.supply + 500

    def test_token_revert_maps_to_400(self, client, actors):
        response = client.post("/staking/fund", json={"caller": actors.user, "amount": 1})
        assert response.status_code == 400
        assert response.get_json()["code"] == "CONTRACT_REVERTED"

    @pytest.mark.parametrize("payload", [
        {"caller": "0xabc", "amount": 0, "collectible_id": 50},
        {"caller": "0xabc", "amount": 1},
        {"caller": "", "amount": 1, "collectible_id": 50},
    ])
    def test_invalid_payload(self, client, payload):
        response = client.post("/staking/stake", json=payload)
        assert response.status_code == 400
        assert response.get_json()["code"] == "invalid_payload"

    def test_non_json_body(self, client):
        response = client.post("/staking/claim", data="caller=0xabc")
        assert response.status_code == 400
        assert response.get_json()["code"] == "invalid_payload"


class TestErrorMapping:

    def test_no_stake_record_is_404(self, client, actors):
        response = client.post("/staking/claim", json={"caller": actors.user2})
        data = response.get_json()
        assert response.status_code == 404
        assert data["code"] == "NO_STAKE_RECORD"
        assert "stake to start earning rewards" in data["error"]

    def test_not_owner_is_403(self, client, actors):
        response = client.post("/staking/admin/pause", json={"caller": actors.user, "paused": True})
        assert response.status_code == 403
        assert response.get_json()["code"] == "NOT_OWNER"

    def test_paused_is_503(self, client, actors):
        client.post("/staking/admin/pause", json={"caller": actors.owner, "paused": True})
        response = client.post("/staking/stake", json={
            "caller": actors.user, "amount": 1, "collectible_id": actors.key_token,
        })
        assert response.status_code == 503
        assert response.get_json()["code"] == "PAUSED"

    def test_insufficient_stake_is_409(self, client, actors):
        response = client.post("/staking/unstake", json={
            "caller": actors.user, "amount": 1, "collectible_id": actors.key_token,
        })
        data = response.get_json()
        assert response.status_code == 409
        assert data["code"] == "INSUFFICIENT_STAKE"
        assert data["details"] == {"requested": 1, "available": 0}

    def test_insufficient_funding_is_409(self, client, actors):
        client.post("/staking/admin/block-reward", json={"caller": actors.owner,
                                                         "block_reward": actors.supply})
        client.post("/staking/stake", json={"caller": actors.user, "amount": 1,
                                            "collectible_id": actors.key_token})
        client.post("/staking/claim", json={"caller": actors.user})

        response = client.post("/staking/claim", json={"caller": actors.user})
        assert response.status_code == 409
        assert response.get_json()["code"] == "INSUFFICIENT_FUNDING"

    def test_invalid_collectible_is_400(self, client, actors):
        response = client.post("/staking/stake", json={
            "caller": actors.user, "amount": 1, "collectible_id": 999,
        })
        assert response.status_code == 400
        assert response.get_json()["code"] == "INVALID_COLLECTIBLE"


class TestOwnerEndpoints:

    def test_owner_updates(self, client, actors):
        response = client.post("/staking/admin/block-reward", json={"caller": actors.owner, "block_reward": 3})
        assert response.get_json()["block_reward"] == 3

        response = client.post("/staking/admin/key-token", json={"caller": actors.owner, "pool_key_token": 8})
        assert response.get_json()["pool_key_token"] == 8

        response = client.post("/staking/admin/pause", json={"caller": actors.owner, "paused": True})
        assert response.get_json()["paused"] is True

        response = client.post("/staking/admin/ownership", json={"caller": actors.owner,
                                                                 "new_owner": actors.user2})
        assert response.get_json()["owner"] == actors.user2
