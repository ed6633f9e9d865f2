# MIT License
# Copyright (c) 2025 Hashborn

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict

from .amount import Amount


class Block(BaseModel):
    """A finalized block as mapped from the archive and graph payloads."""

    model_config = ConfigDict(frozen=True)

    height: int                 # block number
    hash: str
    epoch: int
    slot: int                   # global slot since genesis
    creator: str                # block producer public key (B62...)
    time: Optional[datetime] = None

    # Reward inputs. None means "not computed upstream yet", which is not the same as zero.
    coinbase: Optional[Amount] = None
    transactions_fees: Optional[Amount] = None
    snark_jobs_fees: Optional[Amount] = None

    supercharged: bool = False

    def has_reward_inputs(self) -> bool:
        return (
            self.coinbase is not None
            and self.transactions_fees is not None
            and self.snark_jobs_fees is not None
        )

    def reward(self) -> Optional[Amount]:
        """coinbase + transactions_fees - snark_jobs_fees, or None while any input is absent."""
        if not self.has_reward_inputs():
            return None
        return self.coinbase + self.transactions_fees - self.snark_jobs_fees
