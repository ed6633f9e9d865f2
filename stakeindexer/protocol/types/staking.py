# MIT License
# Copyright (c) 2025 Hashborn

from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, field_validator

from ..config import economic_model
from .amount import Amount, Percentage


class ValidatorEpoch(BaseModel):
    """Fee a validator charges its delegators for one epoch."""

    model_config = ConfigDict(frozen=True)

    epoch: int
    public_key: str             # validator public key
    validator_fee: Percentage   # 0-100

    @field_validator("validator_fee")
    @classmethod
    def _fee_in_range(cls, fee: Percentage) -> Percentage:
        if not economic_model.REWARD_CONFIG.fee_in_range(fee.value):
            raise ValueError(f"validator fee {fee} outside 0-100")
        return fee


class StakingLedger(BaseModel):
    """Snapshot ledger used to weight stake for one epoch."""

    model_config = ConfigDict(frozen=True)

    id: int
    epoch: int
    ledger_hash: str = ""
    staked_amount: Amount       # total staked across all entries
    entries_count: int = 0


class StakingRecord(BaseModel):
    """One entry of a staking ledger."""

    ledger_id: int
    public_key: str             # owner of the stake
    delegate: str               # validator the stake is delegated to
    balance: Amount

    # Vesting schedule (absent for untimed accounts)
    timing_initial_minimum_balance: Optional[Amount] = None
    timing_cliff_time: Optional[int] = None
    timing_cliff_amount: Optional[Amount] = None
    timing_vesting_period: Optional[int] = None
    timing_vesting_increment: Optional[Amount] = None

    # Filled by the weight pass for the current run only. Never persisted.
    weight: Optional[Decimal] = None

    def is_timed(self) -> bool:
        return self.timing_initial_minimum_balance is not None

    def minimum_balance_at(self, global_slot: int) -> Amount:
        """
        Locked balance at a slot:
            slot < cliff_time  -> initial_minimum_balance
            otherwise          -> max(0, initial - cliff_amount
                                         - ((slot - cliff_time) // vesting_period) * vesting_increment)
        """
        if not self.is_timed():
            return Amount(0)

        initial = self.timing_initial_minimum_balance
        cliff_time = self.timing_cliff_time or 0
        if global_slot < cliff_time:
            return initial

        cliff_amount = self.timing_cliff_amount or Amount(0)
        increment = self.timing_vesting_increment or Amount(0)
        period = self.timing_vesting_period or 1
        vested_periods = (global_slot - cliff_time) // period

        remaining = initial - cliff_amount - increment * vested_periods
        if remaining < 0:
            return Amount(0)
        return remaining

    def is_unlocked_at(self, global_slot: int) -> bool:
        return self.minimum_balance_at(global_slot).is_zero()
