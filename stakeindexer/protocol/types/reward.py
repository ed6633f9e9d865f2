# MIT License
# Copyright (c) 2025 Hashborn

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict

from .amount import Amount
from .block import Block
from .common import RewardOwnerType
from .staking import StakingRecord


class BlockReward(BaseModel):
    """Reward owed to one account for one block."""

    model_config = ConfigDict(frozen=True)

    owner_account: str
    delegate: str = ""          # validator the owner delegated to; empty for the validator itself
    owner_type: RewardOwnerType
    reward: Amount
    block_height: int
    block_time: Optional[datetime] = None
    epoch: int

    @classmethod
    def for_delegator(cls, record: StakingRecord, block: Block, reward: Amount) -> "BlockReward":
        return cls(
            owner_account=record.public_key,
            delegate=record.delegate,
            owner_type=RewardOwnerType.DELEGATOR,
            reward=reward,
            block_height=block.height,
            block_time=block.time,
            epoch=block.epoch,
        )

    @classmethod
    def for_validator(cls, block: Block, reward: Amount) -> "BlockReward":
        return cls(
            owner_account=block.creator,
            owner_type=RewardOwnerType.VALIDATOR,
            reward=reward,
            block_height=block.height,
            block_time=block.time,
            epoch=block.epoch,
        )
