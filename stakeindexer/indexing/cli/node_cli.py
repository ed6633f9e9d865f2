import argparse
import json
import logging
import os
import sys

from ...protocol.config.params import NETWORKS, CURRENT_NETWORK
from ...protocol.types.block import Block
from ...protocol.types.common import ProtocolError, NotFoundError
from ...protocol.types.staking import StakingLedger, StakingRecord, ValidatorEpoch
from ..core.distribution import RewardDistributor
from ..core.weights import get_supercharged_policy
from ..observability.metrics import render_metrics
from ..storage.store import IndexerStore

logger = logging.getLogger(__name__)

def open_store(args) -> IndexerStore:
    os.makedirs(args.datadir, exist_ok=True)
    return IndexerStore.open(os.path.join(args.datadir, args.network_config.db_filename))

def cmd_init(args):
    """Create the data directory and an empty database."""
    store = open_store(args)
    store.close()
    print(f"Initialized {args.network_config.network_id} indexer database in {args.datadir}")

def cmd_load(args):
    """
    Load blocks, validator epochs and staking ledgers from a JSON file:

        {"blocks": [...], "validator_epochs": [...],
         "ledgers": [{"ledger": {...}, "records": [...]}]}
    """
    with open(args.file, "r") as f:
        data = json.load(f)

    store = open_store(args)
    try:
        for raw in data.get("blocks", []):
            store.save_block(Block.model_validate(raw))
        for raw in data.get("validator_epochs", []):
            store.save_validator_epoch(ValidatorEpoch.model_validate(raw))
        for entry in data.get("ledgers", []):
            ledger = StakingLedger.model_validate(entry["ledger"])
            records = [StakingRecord.model_validate(r) for r in entry.get("records", [])]
            store.save_ledger(ledger, records)
    finally:
        store.close()

    logger.info(
        f"Loaded {len(data.get('blocks', []))} blocks, "
        f"{len(data.get('validator_epochs', []))} validator epochs, "
        f"{len(data.get('ledgers', []))} ledgers from {args.file}"
    )

def cmd_calculate(args):
    """Run the reward distribution for one block or a range of stored blocks."""
    distributor = RewardDistributor(get_supercharged_policy(args.policy))
    to_height = args.to_height if args.to_height is not None else args.height

    store = open_store(args)
    try:
        for height in range(args.height, to_height + 1):
            try:
                block = store.block_by_height(height)
            except NotFoundError:
                logger.warning(f"Block {height} is not stored, skipping")
                continue

            result = distributor.run(store, block)
            if result is None:
                print(f"{height}: deferred")
            else:
                print(
                    f"{height}: reward={result.block_reward} validator={result.validator_reward.reward} "
                    f"delegators={len(result.delegator_rewards)}"
                )
    finally:
        store.close()

    if args.print_metrics:
        print(render_metrics())

def cmd_rewards(args):
    """Print stored rewards for a block or an account."""
    store = open_store(args)
    try:
        if args.account:
            rewards = store.rewards_for_account(args.account)
        else:
            rewards = store.rewards_for_block(args.height)
    finally:
        store.close()

    for reward in rewards:
        print(reward.model_dump_json())

def main():
    parser = argparse.ArgumentParser(description="Stake Indexer reward CLI")
    parser.add_argument("--datadir", default="./.stakeindexer", help="Data directory")
    parser.add_argument("--network", default=CURRENT_NETWORK.network_id, choices=sorted(NETWORKS), help="Network")
    parser.add_argument("--log-level", default=None, help="Overrides the network's log level")

    subparsers = parser.add_subparsers(dest="command", required=True)

    # Init command
    subparsers.add_parser("init", help="Create the indexer database")

    # Load command
    load_parser = subparsers.add_parser("load", help="Load blocks, fees and ledgers from JSON")
    load_parser.add_argument("file", help="JSON file")

    # Calculate command
    calc_parser = subparsers.add_parser("calculate", help="Distribute block rewards")
    calc_parser.add_argument("--height", type=int, required=True, help="Block height (start of range)")
    calc_parser.add_argument("--to-height", type=int, default=None, help="Last block height of the range")
    calc_parser.add_argument("--policy", default=None, help="Supercharged weighting policy")
    calc_parser.add_argument("--print-metrics", action="store_true", help="Print Prometheus metrics when done")

    # Rewards command
    rewards_parser = subparsers.add_parser("rewards", help="Show stored rewards")
    target = rewards_parser.add_mutually_exclusive_group(required=True)
    target.add_argument("--height", type=int, help="Block height")
    target.add_argument("--account", help="Owner public key")

    args = parser.parse_args()

    args.network_config = NETWORKS[args.network]
    args.network_config.activate()

    logging.basicConfig(
        level=(args.log_level or args.network_config.log_level).upper(),
        format='%(asctime)s %(levelname)s: %(message)s',
        datefmt='%H:%M:%S'
    )

    commands = {
        "init": cmd_init,
        "load": cmd_load,
        "calculate": cmd_calculate,
        "rewards": cmd_rewards,
    }
    try:
        commands[args.command](args)
    except (ProtocolError, ValueError, OSError) as e:
        logger.error(f"{args.command} failed: {e}")
        sys.exit(1)

if __name__ == "__main__":
    main()
