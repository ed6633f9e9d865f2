# MIT License
# Copyright (c) 2025 Hashborn

"""
Reward Distribution Engine

- weights.py: stake weighting policies (proportional / supercharged)
- rewards.py: validator and delegator reward splitting
- distribution.py: per-block orchestration over a RewardStore
"""

from .distribution import RewardDistributor, RewardStore, DistributionResult, run_reward_calculation

__all__ = [
    'RewardDistributor',
    'RewardStore',
    'DistributionResult',
    'run_reward_calculation',
]
