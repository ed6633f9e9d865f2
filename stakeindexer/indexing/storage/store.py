# MIT License
# Copyright (c) 2025 Hashborn

"""
Record-level store used by the reward distribution.

Wraps StorageDB, (de)serializes pydantic models and maps missing rows to
NotFoundError and sqlite failures to StoreError.
"""

import logging
import sqlite3
from contextlib import contextmanager
from typing import List, Sequence

from ...protocol.types.amount import Percentage
from ...protocol.types.block import Block
from ...protocol.types.common import NotFoundError, StoreError
from ...protocol.types.reward import BlockReward
from ...protocol.types.staking import StakingLedger, StakingRecord, ValidatorEpoch
from .db import StorageDB

logger = logging.getLogger(__name__)


@contextmanager
def _store_errors(operation: str):
    try:
        yield
    except sqlite3.Error as e:
        raise StoreError(f"{operation} failed: {e}") from e


class IndexerStore:
    def __init__(self, db: StorageDB):
        self.db = db

    @classmethod
    def open(cls, db_path: str) -> "IndexerStore":
        return cls(StorageDB(db_path))

    def close(self):
        self.db.close()

    # --- Writes (ingestion side) ---
    def save_block(self, block: Block):
        with _store_errors("save block"):
            self.db.save_block(block.height, block.hash, block.epoch, block.slot, block.model_dump_json())

    def save_validator_epoch(self, validator_epoch: ValidatorEpoch):
        with _store_errors("save validator epoch"):
            self.db.save_validator_epoch(
                validator_epoch.epoch, validator_epoch.public_key, validator_epoch.model_dump_json()
            )

    def save_ledger(self, ledger: StakingLedger, records: Sequence[StakingRecord]):
        """Replace the ledger and all of its records; earlier records are dropped."""
        with _store_errors("save staking ledger"):
            self.db.save_ledger(
                ledger.id,
                ledger.epoch,
                ledger.model_dump_json(),
                [(r.public_key, r.model_dump_json(exclude={"weight"})) for r in records]
            )

    # --- Reward distribution lookups ---
    def validator_epoch(self, epoch: int, validator_key: str) -> ValidatorEpoch:
        with _store_errors("validator epoch lookup"):
            raw = self.db.get_validator_epoch(epoch, validator_key)
        if raw is None:
            raise NotFoundError(f"no validator epoch for {validator_key} in epoch {epoch}")
        return ValidatorEpoch.model_validate_json(raw)

    def validator_fee_for_epoch(self, epoch: int, validator_key: str) -> Percentage:
        return self.validator_epoch(epoch, validator_key).validator_fee

    def staking_ledger_for_epoch(self, epoch: int) -> StakingLedger:
        with _store_errors("staking ledger lookup"):
            raw = self.db.get_ledger_by_epoch(epoch)
        if raw is None:
            raise NotFoundError(f"no staking ledger for epoch {epoch}")
        return StakingLedger.model_validate_json(raw)

    def staking_records_for_ledger(self, ledger_id: int) -> List[StakingRecord]:
        with _store_errors("staking records lookup"):
            rows = self.db.get_ledger_records(ledger_id)
        return [StakingRecord.model_validate_json(raw) for raw in rows]

    def first_block_of_epoch(self, epoch: int) -> Block:
        with _store_errors("first block lookup"):
            raw = self.db.get_first_block_of_epoch(epoch)
        if raw is None:
            raise NotFoundError(f"no blocks stored for epoch {epoch}")
        return Block.model_validate_json(raw)

    def import_rewards(self, rewards: Sequence[BlockReward]):
        """
        Store rewards, replacing earlier rows of the same block and owner type.

        An empty batch is a no-op: it carries no block to replace rows for.
        """
        if not rewards:
            return
        with _store_errors("reward import"):
            self.db.replace_rewards(
                (r.block_height, r.owner_account, r.owner_type.value, r.epoch, r.model_dump_json())
                for r in rewards
            )
        logger.debug(f"Imported {len(rewards)} block reward(s)")

    # --- Queries ---
    def block_by_height(self, height: int) -> Block:
        with _store_errors("block lookup"):
            raw = self.db.get_block_by_height(height)
        if raw is None:
            raise NotFoundError(f"block {height} not found")
        return Block.model_validate_json(raw)

    def rewards_for_block(self, height: int) -> List[BlockReward]:
        with _store_errors("rewards lookup"):
            rows = self.db.get_rewards_by_height(height)
        return [BlockReward.model_validate_json(raw) for raw in rows]

    def rewards_for_account(self, owner_account: str) -> List[BlockReward]:
        with _store_errors("rewards lookup"):
            rows = self.db.get_rewards_by_owner(owner_account)
        return [BlockReward.model_validate_json(raw) for raw in rows]
