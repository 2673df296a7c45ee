from __future__ import annotations

from pydantic import BaseModel, conint, constr


class CallerInput(BaseModel):
    caller: constr(min_length=1)

class StakeInput(BaseModel):
    caller: constr(min_length=1)
    amount: conint(gt=0)
    collectible_id: conint(ge=0)

class UnstakeInput(BaseModel):
    caller: constr(min_length=1)
    amount: conint(gt=0)
    collectible_id: conint(ge=0)

class FundInput(BaseModel):
    caller: constr(min_length=1)
    amount: conint(gt=0)

class ApproveInput(BaseModel):
    caller: constr(min_length=1)
    approved: bool = True

class MintInput(BaseModel):
    caller: constr(min_length=1)
    to: constr(min_length=1)
    collectible_id: conint(ge=0)
    amount: conint(gt=0)

class PauseInput(BaseModel):
    caller: constr(min_length=1)
    paused: bool

class BlockRewardInput(BaseModel):
    caller: constr(min_length=1)
    block_reward: conint(ge=0)

class PoolKeyTokenInput(BaseModel):
    caller: constr(min_length=1)
    pool_key_token: conint(ge=0)

class OwnershipInput(BaseModel):
    caller: constr(min_length=1)
    new_owner: constr(min_length=1)
