# MIT License
# Copyright (c) 2025 Hashborn

from decimal import Decimal
from typing import Optional

from ...protocol.types.amount import Amount, Percentage, mul, to_decimal
from ...protocol.types.block import Block


def calculate_block_reward(block: Block) -> Optional[Amount]:
    """
    Calculate the reward pool of a block.

        coinbase + transactions_fees - snark_jobs_fees

    Returns:
        Block reward, or None while any of the three inputs is absent
    """
    return block.reward()


def calculate_validator_reward(block_reward: Amount, validator_fee: Percentage) -> Amount:
    """
    Validator's take: block_reward * fee / 100.

    Raises:
        RewardArithmeticError: block reward or fee is not a number
    """
    br = to_decimal(block_reward)
    fee = Percentage.parse(validator_fee)
    return Amount(mul(br, fee.fraction()))


def calculate_delegator_reward(weight: Decimal, block_reward: Amount, validator_fee: Percentage) -> Amount:
    """
    Delegator's take: block_reward * (100 - fee) / 100 * weight.

    Raises:
        RewardArithmeticError: weight, block reward or fee is not a number
    """
    br = to_decimal(block_reward)
    w = to_decimal(weight)
    fee = Percentage.parse(validator_fee)
    return Amount(mul(mul(br, fee.complement().fraction()), w))
