# MIT License
# Copyright (c) 2025 Hashborn

"""
Block Reward Distribution

Splits one block's reward between its creator and the stakers delegating to it.

Flow:
1. Skip (deferred) while coinbase / transactions fees / snark fees are absent
2. Resolve the creator's fee for the epoch (missing → ConsistencyError)
3. Resolve the epoch's staking ledger (missing → deferred)
4. Load the ledger records
5. Resolve the first block of the epoch (required for supercharged blocks only)
6. Weigh every record under the block's policy
7. Compute one delegator reward per record, then the validator reward
8. Import delegator rewards, then the validator reward

Nothing is imported unless steps 6 and 7 succeed for every record.
Deferred runs return None and have no side effects.
"""

import logging
import time
from dataclasses import dataclass
from decimal import Decimal
from types import MappingProxyType
from typing import List, Mapping, Optional, Protocol, Sequence, Tuple, runtime_checkable

from ...protocol.config import economic_model
from ...protocol.types.amount import Amount, Percentage, sub, total
from ...protocol.types.block import Block
from ...protocol.types.common import ConsistencyError, NotFoundError
from ...protocol.types.reward import BlockReward
from ...protocol.types.staking import StakingLedger, StakingRecord
from ..observability.metrics import update_run_metrics
from .rewards import calculate_block_reward, calculate_delegator_reward, calculate_validator_reward
from .weights import (
    SuperchargedWeightingFn,
    calculate_weights,
    get_supercharged_policy,
    select_weighting_policy,
)

logger = logging.getLogger(__name__)


@runtime_checkable
class RewardStore(Protocol):
    """Lookups and the import the distribution needs. Missing rows raise NotFoundError."""

    def validator_fee_for_epoch(self, epoch: int, validator_key: str) -> Percentage: ...

    def staking_ledger_for_epoch(self, epoch: int) -> StakingLedger: ...

    def staking_records_for_ledger(self, ledger_id: int) -> List[StakingRecord]: ...

    def first_block_of_epoch(self, epoch: int) -> Block: ...

    def import_rewards(self, rewards: Sequence[BlockReward]) -> None: ...


@dataclass(frozen=True)
class DistributionResult:
    """Everything one run computed and imported."""
    block_height: int
    epoch: int
    block_reward: Amount
    validator_fee: Percentage
    weights: Mapping[str, Decimal]
    delegator_rewards: Tuple[BlockReward, ...]
    validator_reward: BlockReward

    def all_rewards(self) -> Tuple[BlockReward, ...]:
        return self.delegator_rewards + (self.validator_reward,)

    def total_distributed(self) -> Amount:
        return Amount(total(r.reward for r in self.all_rewards()))

    def undistributed(self) -> Amount:
        """block_reward minus everything handed out; ~0 when the weights sum to 1."""
        return Amount(sub(self.block_reward, self.total_distributed()))


def split_delegator_rewards(
    block: Block,
    records: Sequence[StakingRecord],
    weights: Mapping[str, Decimal],
    block_reward: Amount,
    validator_fee: Percentage,
) -> List[BlockReward]:
    rewards = []
    for record in records:
        weight = weights.get(record.public_key)
        if weight is None:
            raise ConsistencyError(f"record is not found for {record.public_key}")
        reward = calculate_delegator_reward(weight, block_reward, validator_fee)
        rewards.append(BlockReward.for_delegator(record, block, reward))
    return rewards


class RewardDistributor:
    """
    Runs the reward distribution for one block at a time.

    Synchronous and single-threaded; the store's calls are the only blocking work.
    """

    def __init__(self, supercharged_weighting: Optional[SuperchargedWeightingFn] = None):
        """
        Args:
            supercharged_weighting: Factor policy for supercharged blocks
                (defaults to REWARD_CONFIG.supercharged_policy)
        """
        self.supercharged_weighting = supercharged_weighting or get_supercharged_policy()

    def run(self, store: RewardStore, block: Block) -> Optional[DistributionResult]:
        """
        Distribute the rewards of a block.

        Returns:
            DistributionResult, or None when the run is deferred

        Raises:
            ConsistencyError: fee / weight / first block of epoch missing
            RewardArithmeticError: unparsable value or zero total stake
            StoreError: lookup or import failure
        """
        started = time.time()
        try:
            result = self._distribute(store, block)
        except Exception:
            update_run_metrics("failed", time.time() - started)
            raise

        update_run_metrics("distributed" if result else "deferred", time.time() - started, result)
        return result

    def _distribute(self, store: RewardStore, block: Block) -> Optional[DistributionResult]:
        block_reward = calculate_block_reward(block)
        if block_reward is None:
            logger.info(f"Block {block.height}: reward inputs not available yet, skipping")
            return None

        try:
            creator_fee = store.validator_fee_for_epoch(block.epoch, block.creator)
        except NotFoundError as e:
            raise ConsistencyError("validator fee for epoch not found") from e

        try:
            ledger = store.staking_ledger_for_epoch(block.epoch)
        except NotFoundError:
            logger.info(f"Block {block.height}: staking ledger for epoch {block.epoch} not available yet, skipping")
            return None

        try:
            records = store.staking_records_for_ledger(ledger.id)
        except NotFoundError:
            records = []

        try:
            first_block_of_epoch = store.first_block_of_epoch(block.epoch)
        except NotFoundError:
            first_block_of_epoch = None

        policy = select_weighting_policy(block, ledger, first_block_of_epoch, self.supercharged_weighting)
        weights = MappingProxyType(calculate_weights(policy, records))

        delegator_rewards = split_delegator_rewards(block, records, weights, block_reward, creator_fee)
        validator_reward = BlockReward.for_validator(
            block, calculate_validator_reward(block_reward, creator_fee)
        )

        store.import_rewards(delegator_rewards)
        store.import_rewards([validator_reward])

        result = DistributionResult(
            block_height=block.height,
            epoch=block.epoch,
            block_reward=block_reward,
            validator_fee=creator_fee,
            weights=weights,
            delegator_rewards=tuple(delegator_rewards),
            validator_reward=validator_reward,
        )

        logger.info(
            f"Block {block.height}: distributed {block_reward} "
            f"(fee {creator_fee}%, {type(policy).__name__}) -> validator {validator_reward.reward}, "
            f"{len(delegator_rewards)} delegators"
        )
        remainder = abs(result.undistributed().value)
        if remainder > economic_model.REWARD_CONFIG.reward_sum_tolerance:
            logger.warning(f"Block {block.height}: {result.undistributed()} of the block reward left undistributed")
        return result


def run_reward_calculation(
    store: RewardStore,
    block: Block,
    supercharged_weighting: Optional[SuperchargedWeightingFn] = None,
) -> Optional[DistributionResult]:
    """Distribute one block's rewards with a fresh RewardDistributor."""
    return RewardDistributor(supercharged_weighting).run(store, block)
