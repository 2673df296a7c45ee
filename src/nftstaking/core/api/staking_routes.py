"""
Staking API Endpoints

RESTful API for the local staking chain: pool status, account views,
stake / unstake / claim, reserve funding and the owner controls.

The caller address is taken from the request body. The server fronts a
local sandbox chain and performs no signature checks.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Callable, Dict, Optional, Tuple, Type, TypeVar

from flask import jsonify, request
from pydantic import BaseModel, ValidationError

from ..config import API_MAX_EVENTS
from ..exceptions import (
    ContractExecutionError,
    StakingError,
    StakingErrorKind,
    StorageError,
    get_error_context,
)
from ..staking.events import EventType
from .schemas import (
    ApproveInput,
    BlockRewardInput,
    CallerInput,
    FundInput,
    MintInput,
    OwnershipInput,
    PauseInput,
    PoolKeyTokenInput,
    StakeInput,
    UnstakeInput,
)

if TYPE_CHECKING:
    from flask import Flask

    from ..local_chain import LocalChain

logger = logging.getLogger(__name__)

M = TypeVar("M", bound=BaseModel)

STATUS_BY_KIND: Dict[StakingErrorKind, int] = {
    StakingErrorKind.NOT_OWNER: 403,
    StakingErrorKind.PAUSED: 503,
    StakingErrorKind.NO_STAKE_RECORD: 404,
    StakingErrorKind.INSUFFICIENT_FUNDING: 409,
    StakingErrorKind.INSUFFICIENT_STAKE: 409,
}


def success_response(payload: Dict[str, Any], status: int = 200) -> Tuple[Any, int]:
    """Return a success payload with consistent structure."""
    body = {"success": True, **payload}
    return jsonify(body), status


def error_response(
    message: str,
    status: int = 400,
    code: str = "bad_request",
    details: Optional[Dict[str, Any]] = None,
) -> Tuple[Any, int]:
    """Return an error payload and log it."""
    log = logger.error if status >= 500 else logger.warning
    log(
        "Staking API error",
        extra={"event": "api.error", "code": code, "status": status, "path": request.path},
    )
    body: Dict[str, Any] = {"success": False, "error": message, "code": code}
    if details:
        body["details"] = details
    return jsonify(body), status


def register_staking_routes(app: "Flask", chain: "LocalChain") -> None:
    """
    Add staking API endpoints to a Flask app

    Args:
        app: Flask application
        chain: LocalChain hosting the pool
    """

    def parse_body(model_cls: Type[M]) -> Tuple[Optional[M], Optional[Tuple[Any, int]]]:
        data = request.get_json(silent=True)
        if not isinstance(data, dict):
            return None, error_response("Request body must be a JSON object", code="invalid_payload")
        try:
            return model_cls.model_validate(data), None
        except ValidationError as e:
            fields = [".".join(str(part) for part in err["loc"]) for err in e.errors()]
            return None, error_response(
                "Invalid request payload",
                code="invalid_payload",
                details={"fields": fields},
            )

    def execute(fn: Callable[..., Any], *args: Any, **kwargs: Any) -> Tuple[Any, Optional[Tuple[Any, int]]]:
        try:
            return fn(*args, **kwargs), None
        except StakingError as e:
            return None, error_response(
                e.message,
                status=STATUS_BY_KIND.get(e.kind, 400),
                code=e.kind.value,
                details=e.details,
            )
        except ContractExecutionError as e:
            return None, error_response(e.message, status=400, code="CONTRACT_REVERTED", details=e.details)
        except StorageError as e:
            logger.error(
                "Chain state could not be persisted",
                extra={"event": "api.storage_error", **get_error_context(e)},
            )
            return None, error_response("Chain state could not be persisted", status=500, code="STORAGE_ERROR")

    def receipt(build: Callable[[Any], Dict[str, Any]]) -> Callable[[Any], Dict[str, Any]]:
        # Evaluated by the chain before it releases its lock
        return lambda result: {"block_number": chain.block_number, **build(result)}

    # ==================== Views ====================

    @app.route("/staking/status", methods=["GET"])
    def staking_status():
        """
        Pool status

        GET /staking/status
        """
        return success_response({"pool": chain.status()})

    @app.route("/staking/accounts/<address>", methods=["GET"])
    def staking_account(address: str):
        """Stake record, balances and live earned amount of an address."""
        return success_response({"account": chain.account(address)})

    @app.route("/staking/earned/<address>", methods=["GET"])
    def staking_earned(address: str):
        return success_response({"address": address.lower(), "earned": chain.earned(address)})

    @app.route("/staking/events", methods=["GET"])
    def staking_events():
        """
        Event history

        GET /staking/events?type=Staked&account=0x...&limit=50
        """
        raw_type = request.args.get("type")
        try:
            event_type = EventType(raw_type) if raw_type else None
        except ValueError:
            return error_response(f"Unknown event type {raw_type!r}", code="invalid_event_type")

        limit = request.args.get("limit", default=API_MAX_EVENTS, type=int)
        limit = max(0, min(limit, API_MAX_EVENTS))
        events = chain.events(
            event_type=event_type,
            account=request.args.get("account"),
            limit=limit,
        )
        return success_response({"events": [event.to_dict() for event in events], "count": len(events)})

    # ==================== Staking ====================

    @app.route("/staking/stake", methods=["POST"])
    def staking_stake():
        """
        Stake collectible units

        POST /staking/stake
        {
            "caller": "0x...",
            "amount": 5,
            "collectible_id": 50
        }
        """
        model, error = parse_body(StakeInput)
        if error:
            return error
        data, error = execute(
            chain.stake,
            model.caller,
            model.amount,
            model.collectible_id,
            receipt=receipt(lambda _: {"staked": chain.pool.total_staked_for(model.caller)}),
        )
        if error:
            return error
        return success_response(data)

    @app.route("/staking/unstake", methods=["POST"])
    def staking_unstake():
        model, error = parse_body(UnstakeInput)
        if error:
            return error
        data, error = execute(
            chain.unstake,
            model.caller,
            model.amount,
            model.collectible_id,
            receipt=receipt(lambda _: {"staked": chain.pool.total_staked_for(model.caller)}),
        )
        if error:
            return error
        return success_response(data)

    @app.route("/staking/claim", methods=["POST"])
    def staking_claim():
        """
        Claim accrued rewards

        POST /staking/claim
        {"caller": "0x..."}

        Returns the amount paid; any part the reserve could not cover stays
        owed.
        """
        model, error = parse_body(CallerInput)
        if error:
            return error
        data, error = execute(
            chain.claim,
            model.caller,
            receipt=receipt(lambda paid: {
                "paid": paid,
                "outstanding": chain.outstanding_rewards(model.caller),
            }),
        )
        if error:
            return error
        return success_response(data)

    @app.route("/staking/fund", methods=["POST"])
    def staking_fund():
        """Transfer reward tokens from caller into the pool reserve."""
        model, error = parse_body(FundInput)
        if error:
            return error
        data, error = execute(
            chain.fund,
            model.caller,
            model.amount,
            receipt=receipt(lambda _: {"reserve_balance": chain.pool.reserve_balance()}),
        )
        if error:
            return error
        return success_response(data)

    @app.route("/staking/approve", methods=["POST"])
    def staking_approve():
        model, error = parse_body(ApproveInput)
        if error:
            return error
        data, error = execute(
            chain.approve,
            model.caller,
            model.approved,
            receipt=receipt(lambda _: {"operator": chain.pool.address, "approved": model.approved}),
        )
        if error:
            return error
        return success_response(data)

    @app.route("/staking/mint", methods=["POST"])
    def staking_mint():
        """Mint collectible units (collectible contract owner only)."""
        model, error = parse_body(MintInput)
        if error:
            return error
        data, error = execute(
            chain.mint_collectibles,
            model.caller,
            model.to,
            model.collectible_id,
            model.amount,
            receipt=receipt(lambda _: {
                "balance": chain.collectibles.balance_of(model.to, model.collectible_id),
            }),
        )
        if error:
            return error
        return success_response(data)

    # ==================== Owner Controls ====================

    @app.route("/staking/admin/pause", methods=["POST"])
    def staking_set_paused():
        """
        Pause or resume the pool

        POST /staking/admin/pause
        {"caller": "0xowner...", "paused": true}
        """
        model, error = parse_body(PauseInput)
        if error:
            return error
        data, error = execute(
            chain.set_paused,
            model.caller,
            model.paused,
            receipt=receipt(lambda _: {"paused": chain.pool.paused}),
        )
        if error:
            return error
        return success_response(data)

    @app.route("/staking/admin/block-reward", methods=["POST"])
    def staking_set_block_reward():
        model, error = parse_body(BlockRewardInput)
        if error:
            return error
        data, error = execute(
            chain.change_block_reward,
            model.caller,
            model.block_reward,
            receipt=receipt(lambda _: {"block_reward": chain.pool.block_reward}),
        )
        if error:
            return error
        return success_response(data)

    @app.route("/staking/admin/key-token", methods=["POST"])
    def staking_set_key_token():
        model, error = parse_body(PoolKeyTokenInput)
        if error:
            return error
        data, error = execute(
            chain.change_pool_key_token,
            model.caller,
            model.pool_key_token,
            receipt=receipt(lambda _: {"pool_key_token": chain.pool.get_pool_key_token()}),
        )
        if error:
            return error
        return success_response(data)

    @app.route("/staking/admin/ownership", methods=["POST"])
    def staking_transfer_ownership():
        model, error = parse_body(OwnershipInput)
        if error:
            return error
        data, error = execute(
            chain.transfer_ownership,
            model.caller,
            model.new_owner,
            receipt=receipt(lambda _: {"owner": chain.pool.owner}),
        )
        if error:
            return error
        return success_response(data)
