# MIT License
# Copyright (c) 2025 Hashborn

"""
Staking Weight Calculation

Assigns every staking record of an epoch ledger its share of the stake.

Policies (selected once per run from block.supercharged):
    ProportionalWeighting:  weight = balance / ledger.staked_amount
    SuperchargedWeighting:  effective = balance * factor   if unlocked at first slot of epoch
                            effective = balance            otherwise
                            weight    = effective / Σ effective

The supercharged factor comes from a pluggable function of the block.
Default ("fee_adjusted"):
    factor = 1 + 1 / (1 + transactions_fees / (coinbase - snark_jobs_fees))
"""

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Callable, Dict, List, Optional, Sequence, Union

from ...protocol.types.amount import Amount, add, mul, quo, sub, to_decimal, total as total_of
from ...protocol.types.block import Block
from ...protocol.types.common import ConsistencyError, RewardArithmeticError
from ...protocol.types.staking import StakingLedger, StakingRecord
from ...protocol.config import economic_model

logger = logging.getLogger(__name__)

SuperchargedWeightingFn = Callable[[Block], Decimal]


def calculate_weight(balance, total_staked_amount) -> Decimal:
    """
    Fraction (0-1) of the total held by one balance.

    Raises:
        RewardArithmeticError: balance or total is not a number, or total is zero
    """
    w = to_decimal(balance)
    t = to_decimal(total_staked_amount)
    if t == 0:
        raise RewardArithmeticError("total staked amount can not be zero")
    return quo(w, t)


# ═══════════════════════════════════════════════════════════════════
# SUPERCHARGED FACTOR POLICIES
# ═══════════════════════════════════════════════════════════════════

def fee_adjusted_supercharged_weighting(block: Block) -> Decimal:
    """
    Factor for supercharged blocks, shrinking towards 1 as fees dominate the coinbase.

    Contract: result >= 1, and it is 2 when the block carries no transaction fees.
    """
    if not block.has_reward_inputs():
        raise RewardArithmeticError(
            f"block {block.height} is missing reward inputs for supercharged weighting"
        )
    net_coinbase = sub(block.coinbase, block.snark_jobs_fees)
    return add(1, quo(1, add(1, quo(block.transactions_fees, net_coinbase))))


def coinbase_multiplier_supercharged_weighting(block: Block) -> Decimal:
    """Flat factor of 2, the supercharged coinbase multiplier."""
    if block.coinbase is None:
        raise RewardArithmeticError(f"block {block.height} has no coinbase")
    return Decimal(2)


SUPERCHARGED_POLICIES: Dict[str, SuperchargedWeightingFn] = {
    "fee_adjusted": fee_adjusted_supercharged_weighting,
    "coinbase_multiplier": coinbase_multiplier_supercharged_weighting,
}


def get_supercharged_policy(name: Optional[str] = None) -> SuperchargedWeightingFn:
    name = name or economic_model.REWARD_CONFIG.supercharged_policy
    try:
        return SUPERCHARGED_POLICIES[name]
    except KeyError:
        raise ValueError(f"Unknown supercharged weighting policy: {name}") from None


# ═══════════════════════════════════════════════════════════════════
# WEIGHTING POLICIES
# ═══════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class ProportionalWeighting:
    total_staked: Amount

    def effective_stake(self, record: StakingRecord) -> Decimal:
        return to_decimal(record.balance)

    def total(self, records: Sequence[StakingRecord]) -> Decimal:
        return to_decimal(self.total_staked)


@dataclass(frozen=True)
class SuperchargedWeighting:
    factor: Decimal
    first_slot_of_epoch: int

    def effective_stake(self, record: StakingRecord) -> Decimal:
        if record.is_unlocked_at(self.first_slot_of_epoch):
            return mul(record.balance, self.factor)
        return to_decimal(record.balance)

    def total(self, records: Sequence[StakingRecord]) -> Decimal:
        return total_of(self.effective_stake(record) for record in records)


WeightingPolicy = Union[ProportionalWeighting, SuperchargedWeighting]


def select_weighting_policy(
    block: Block,
    ledger: StakingLedger,
    first_block_of_epoch: Optional[Block],
    supercharged_weighting: SuperchargedWeightingFn,
) -> WeightingPolicy:
    """
    Pick the policy for this block.

    The first block of the epoch is only needed for supercharged blocks;
    its absence is a ConsistencyError there and irrelevant otherwise.
    """
    if not block.supercharged:
        return ProportionalWeighting(total_staked=ledger.staked_amount)

    if first_block_of_epoch is None:
        raise ConsistencyError(f"first block of epoch {block.epoch} is not found")

    factor = to_decimal(supercharged_weighting(block))
    logger.debug(f"Supercharged weighting for block {block.height}: {factor}")
    return SuperchargedWeighting(factor=factor, first_slot_of_epoch=first_block_of_epoch.slot)


def calculate_weights(policy: WeightingPolicy, records: List[StakingRecord]) -> Dict[str, Decimal]:
    """
    Weigh every record under the policy.

    All weights are computed before any record is updated, so a failure leaves
    every record's weight untouched.

    Returns:
        public key -> weight
    """
    total = policy.total(records)
    weights: Dict[str, Decimal] = {}

    for record in records:
        if record.public_key in weights:
            raise ConsistencyError(f"duplicate staking record for {record.public_key}")
        weights[record.public_key] = calculate_weight(policy.effective_stake(record), total)

    for record in records:
        record.weight = weights[record.public_key]

    if weights:
        drift = abs(sub(total_of(weights.values()), 1))
        if drift > economic_model.REWARD_CONFIG.weight_sum_tolerance:
            logger.warning(f"Staking weights sum differs from 1 by {drift} ({len(weights)} records)")

    return weights
