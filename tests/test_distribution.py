# MIT License
# Copyright (c) 2025 Hashborn

"""
Reward distribution run tests

Scenarios:
1. Full run over sqlite: 10 / 54 / 36 imported
2. Deferred while a reward input is absent (no store calls at all)
3. Deferred while the staking ledger is absent
4. Missing validator fee is a hard error
5. Supercharged needs the first block of the epoch; proportional does not
6. Delegator rewards are imported before the validator reward
7. Arithmetic / store failures import nothing and propagate unchanged
8. Re-running a block replaces its rows (idempotent, no stale owners)
"""

import os
from decimal import Decimal
from unittest.mock import Mock, call

import pytest

from stakeindexer.indexing.core.distribution import (
    RewardDistributor,
    RewardStore,
    run_reward_calculation,
    split_delegator_rewards,
)
from stakeindexer.indexing.observability.metrics import metrics_registry
from stakeindexer.indexing.storage.store import IndexerStore
from stakeindexer.protocol.types.amount import Amount, Percentage
from stakeindexer.protocol.types.block import Block
from stakeindexer.protocol.types.common import (
    ConsistencyError,
    NotFoundError,
    RewardArithmeticError,
    RewardOwnerType,
    StoreError,
)
from stakeindexer.protocol.types.staking import StakingLedger, StakingRecord, ValidatorEpoch


# ═══════════════════════════════════════════════════════════════════
# FIXTURES
# ═══════════════════════════════════════════════════════════════════

def make_block(height=100, supercharged=False, coinbase="100", transactions_fees="0", snark_jobs_fees="0"):
    return Block(
        height=height, hash=f"h{height}", epoch=4, slot=28600 + height, creator="B62val",
        coinbase=coinbase, transactions_fees=transactions_fees, snark_jobs_fees=snark_jobs_fees,
        supercharged=supercharged,
    )


def make_records():
    return [
        StakingRecord(ledger_id=1, public_key="A", delegate="B62val", balance="600"),
        StakingRecord(ledger_id=1, public_key="B", delegate="B62val", balance="400"),
    ]


LEDGER = StakingLedger(id=1, epoch=4, staked_amount="1000", entries_count=2)


@pytest.fixture
def store(tmp_path):
    """sqlite store holding epoch 4: fee 10%, ledger A=600 / B=400."""
    s = IndexerStore.open(os.path.join(tmp_path, "indexer.db"))
    s.save_validator_epoch(ValidatorEpoch(epoch=4, public_key="B62val", validator_fee="10"))
    s.save_ledger(LEDGER, make_records())
    yield s
    s.close()


@pytest.fixture
def mock_store():
    """Collaborator double with the same data as `store`; first block missing."""
    s = Mock(spec=IndexerStore)
    s.validator_fee_for_epoch.return_value = Percentage(10)
    s.staking_ledger_for_epoch.return_value = LEDGER
    s.staking_records_for_ledger.return_value = make_records()
    s.first_block_of_epoch.side_effect = NotFoundError("no blocks")
    return s


def runs(outcome):
    return metrics_registry.get_sample_value("stakeindexer_reward_runs_total", {"outcome": outcome}) or 0


# ═══════════════════════════════════════════════════════════════════
# HAPPY PATH
# ═══════════════════════════════════════════════════════════════════

def test_full_run_imports_expected_rewards(store):
    """10 + 54 + 36 == 100."""
    block = make_block()
    store.save_block(block)

    result = run_reward_calculation(store, block)

    assert result is not None
    assert result.block_reward == Amount(100)
    assert dict(result.weights) == {"A": Decimal("0.6"), "B": Decimal("0.4")}
    assert result.validator_reward.reward == Amount(10)
    assert [(r.owner_account, r.reward) for r in result.delegator_rewards] == [
        ("A", Amount(54)), ("B", Amount(36))
    ]
    assert result.total_distributed() == Amount(100)
    assert result.undistributed().is_zero()

    stored = {(r.owner_account, r.owner_type): r for r in store.rewards_for_block(100)}
    assert stored[("B62val", RewardOwnerType.VALIDATOR)].reward == Amount(10)
    assert stored[("A", RewardOwnerType.DELEGATOR)].reward == Amount(54)
    assert stored[("B", RewardOwnerType.DELEGATOR)].reward == Amount(36)
    assert stored[("A", RewardOwnerType.DELEGATOR)].delegate == "B62val"
    assert all(r.epoch == 4 and r.block_height == 100 for r in stored.values())


def test_weights_are_read_only(store):
    result = run_reward_calculation(store, make_block())
    with pytest.raises(TypeError):
        result.weights["A"] = Decimal(1)


def test_rerun_is_idempotent(store):
    """Same block twice → same three rows."""
    block = make_block()
    run_reward_calculation(store, block)
    run_reward_calculation(store, block)
    assert len(store.rewards_for_block(100)) == 3


def test_rerun_after_ledger_correction_pays_only_current_records(store):
    block = make_block()
    run_reward_calculation(store, block)

    corrected = StakingLedger(id=1, epoch=4, staked_amount="1000", entries_count=1)
    store.save_ledger(corrected, [StakingRecord(ledger_id=1, public_key="C", delegate="B62val", balance="1000")])
    result = run_reward_calculation(store, block)

    assert [r.owner_account for r in result.delegator_rewards] == ["C"]
    stored = store.rewards_for_block(100)
    assert sorted(r.owner_account for r in stored) == ["B62val", "C"]
    assert sum((r.reward.value for r in stored), Decimal(0)) == Decimal(100)


def test_supercharged_run(store):
    """With the epoch's first block stored, the factor policy applies."""
    first = Block(height=1, hash="h1", epoch=4, slot=28560, creator="B62other")
    store.save_block(first)

    result = run_reward_calculation(store, make_block(supercharged=True), lambda block: Decimal(2))

    # both accounts untimed, so factor 2 cancels out
    assert dict(result.weights) == {"A": Decimal("0.6"), "B": Decimal("0.4")}
    assert result.total_distributed() == Amount(100)


def test_store_satisfies_protocol(store):
    assert isinstance(store, RewardStore)


# ═══════════════════════════════════════════════════════════════════
# DEFERRED RUNS
# ═══════════════════════════════════════════════════════════════════

@pytest.mark.parametrize("missing", ["coinbase", "transactions_fees", "snark_jobs_fees"])
def test_absent_reward_input_is_a_no_op(mock_store, missing):
    """Nothing is looked up or written."""
    block = make_block(**{missing: None})
    before = runs("deferred")

    assert run_reward_calculation(mock_store, block) is None

    assert mock_store.mock_calls == []
    assert runs("deferred") == before + 1


def test_zero_reward_inputs_are_not_absent(mock_store):
    result = run_reward_calculation(mock_store, make_block(coinbase="0"))
    assert result.block_reward == Amount(0)
    assert mock_store.import_rewards.call_count == 2


def test_absent_ledger_is_a_no_op(store):
    """Epoch 5 has a fee but no ledger."""
    store.save_validator_epoch(ValidatorEpoch(epoch=5, public_key="B62val", validator_fee="10"))
    block = Block(height=200, hash="h200", epoch=5, slot=36000, creator="B62val",
                  coinbase="100", transactions_fees="0", snark_jobs_fees="0")

    assert run_reward_calculation(store, block) is None
    assert store.rewards_for_block(200) == []


# ═══════════════════════════════════════════════════════════════════
# HARD FAILURES
# ═══════════════════════════════════════════════════════════════════

def test_absent_validator_fee_fails(mock_store):
    """No fee, no run: the ledger is never consulted."""
    mock_store.validator_fee_for_epoch.side_effect = NotFoundError("no fee")
    before = runs("failed")

    with pytest.raises(ConsistencyError, match="validator fee for epoch not found"):
        run_reward_calculation(mock_store, make_block())

    mock_store.staking_ledger_for_epoch.assert_not_called()
    mock_store.import_rewards.assert_not_called()
    assert runs("failed") == before + 1


def test_absent_fee_fails_even_without_ledger(mock_store):
    mock_store.validator_fee_for_epoch.side_effect = NotFoundError("no fee")
    mock_store.staking_ledger_for_epoch.side_effect = NotFoundError("no ledger")
    with pytest.raises(ConsistencyError):
        run_reward_calculation(mock_store, make_block())


def test_supercharged_without_first_block_fails(mock_store):
    """The mock has no first block of the epoch."""
    with pytest.raises(ConsistencyError, match="first block of epoch"):
        run_reward_calculation(mock_store, make_block(supercharged=True))
    mock_store.import_rewards.assert_not_called()


def test_proportional_without_first_block_succeeds(mock_store):
    assert run_reward_calculation(mock_store, make_block()) is not None


def test_zero_total_stake_imports_nothing(mock_store):
    """Weight pass fails before any reward is imported."""
    mock_store.staking_ledger_for_epoch.return_value = StakingLedger(id=1, epoch=4, staked_amount="0")
    with pytest.raises(RewardArithmeticError):
        run_reward_calculation(mock_store, make_block())
    mock_store.import_rewards.assert_not_called()


def test_lookup_store_error_propagates_unchanged(mock_store):
    error = StoreError("database is locked")
    mock_store.staking_ledger_for_epoch.side_effect = error
    with pytest.raises(StoreError) as excinfo:
        run_reward_calculation(mock_store, make_block())
    assert excinfo.value is error


def test_import_error_propagates_unchanged(mock_store):
    error = StoreError("disk full")
    mock_store.import_rewards.side_effect = error
    with pytest.raises(StoreError) as excinfo:
        run_reward_calculation(mock_store, make_block())
    assert excinfo.value is error
    assert mock_store.import_rewards.call_count == 1


def test_missing_weight_is_a_consistency_error():
    records = make_records()
    with pytest.raises(ConsistencyError, match="record is not found for B"):
        split_delegator_rewards(make_block(), records, {"A": Decimal("0.6")}, Amount(100), Percentage(10))


# ═══════════════════════════════════════════════════════════════════
# ORDERING
# ═══════════════════════════════════════════════════════════════════

def test_delegators_imported_before_validator(mock_store):
    """Two imports: the delegator list, then the single validator reward."""
    RewardDistributor(lambda block: Decimal(2)).run(mock_store, make_block())

    imports = [c for c in mock_store.mock_calls if c[0] == "import_rewards"]
    assert len(imports) == 2
    delegators, validator = imports[0].args[0], imports[1].args[0]
    assert [r.owner_type for r in delegators] == [RewardOwnerType.DELEGATOR] * 2
    assert [r.owner_account for r in delegators] == ["A", "B"]
    assert len(validator) == 1 and validator[0].owner_type == RewardOwnerType.VALIDATOR

    lookups = [c[0] for c in mock_store.mock_calls if c[0] != "import_rewards"]
    assert lookups == [
        "validator_fee_for_epoch",
        "staking_ledger_for_epoch",
        "staking_records_for_ledger",
        "first_block_of_epoch",
    ]
    assert mock_store.validator_fee_for_epoch.call_args == call(4, "B62val")
    assert mock_store.staking_records_for_ledger.call_args == call(1)
