# MIT License
# Copyright (c) 2025 Hashborn

"""
Stake Indexer Reward Model
Single source of truth for reward arithmetic parameters.

Precision policy:
- Every amount, percentage and weight is a Decimal evaluated at
  `decimal_precision` significant digits
- No value is ever converted through float on the reward path
"""

from dataclasses import dataclass
from decimal import Decimal

@dataclass
class RewardConfig:
    """Reward arithmetic parameters for a network."""

    # ═══════════════════════════════════════════════════════
    # PRECISION
    # ═══════════════════════════════════════════════════════
    decimal_precision: int              # Significant digits for quo/mul/add/sub
    weight_sum_tolerance: Decimal       # Allowed |Σ weight - 1|
    reward_sum_tolerance: Decimal       # Allowed |validator + Σ delegators - block reward|

    # ═══════════════════════════════════════════════════════
    # VALIDATOR FEE
    # ═══════════════════════════════════════════════════════
    min_validator_fee: Decimal          # Fees are percentages in 0-100, not 0-1
    max_validator_fee: Decimal

    # ═══════════════════════════════════════════════════════
    # SUPERCHARGED BLOCKS
    # ═══════════════════════════════════════════════════════
    supercharged_policy: str            # Name resolved by core.weights.get_supercharged_policy

    def fee_in_range(self, fee: Decimal) -> bool:
        return self.min_validator_fee <= fee <= self.max_validator_fee


# ═══════════════════════════════════════════════════════════════════════════
# DEVNET CONFIGURATION
# ═══════════════════════════════════════════════════════════════════════════
DEVNET = RewardConfig(
    decimal_precision=60,
    weight_sum_tolerance=Decimal("1e-30"),
    reward_sum_tolerance=Decimal("1e-20"),
    min_validator_fee=Decimal(0),
    max_validator_fee=Decimal(100),
    supercharged_policy="fee_adjusted",
)


# ═══════════════════════════════════════════════════════════════════════════
# MAINNET CONFIGURATION
# ═══════════════════════════════════════════════════════════════════════════
MAINNET = RewardConfig(
    decimal_precision=60,
    weight_sum_tolerance=Decimal("1e-30"),
    reward_sum_tolerance=Decimal("1e-20"),
    min_validator_fee=Decimal(0),
    max_validator_fee=Decimal(100),
    supercharged_policy="fee_adjusted",
)


# ═══════════════════════════════════════════════════════════════════════════
# CURRENT NETWORK (selected at runtime)
# ═══════════════════════════════════════════════════════════════════════════
REWARD_CONFIG = DEVNET  # Default to devnet, can be changed via CLI/config
