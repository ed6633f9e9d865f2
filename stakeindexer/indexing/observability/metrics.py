# MIT License
# Copyright (c) 2025 Hashborn

"""
Prometheus Metrics Exporter

Exports reward distribution metrics in Prometheus format.

Metrics:
- Reward runs by outcome (distributed, deferred, failed)
- Rewards distributed per owner type
- Delegators per run, run duration
- Last processed block height / epoch
"""

from prometheus_client import Counter, Gauge, Histogram, CollectorRegistry, generate_latest

# Create registry for metrics
metrics_registry = CollectorRegistry()

# ═══════════════════════════════════════════════════════════════════
# REWARD RUN METRICS
# ═══════════════════════════════════════════════════════════════════

reward_runs_total = Counter(
    'stakeindexer_reward_runs_total',
    'Reward distribution runs by outcome',
    ['outcome'],
    registry=metrics_registry
)

rewards_distributed_total = Counter(
    'stakeindexer_rewards_distributed_total',
    'Sum of distributed rewards in the native unit (approximate, display only)',
    ['owner_type'],
    registry=metrics_registry
)

reward_run_delegators = Histogram(
    'stakeindexer_reward_run_delegators',
    'Number of delegator rewards produced per run',
    buckets=[0, 1, 10, 50, 100, 500, 1000, 5000],
    registry=metrics_registry
)

reward_run_duration_seconds = Histogram(
    'stakeindexer_reward_run_duration_seconds',
    'Wall time of one reward distribution run',
    buckets=[0.01, 0.05, 0.1, 0.5, 1, 5, 10],
    registry=metrics_registry
)

# ═══════════════════════════════════════════════════════════════════
# PROGRESS METRICS
# ═══════════════════════════════════════════════════════════════════

last_rewarded_height = Gauge(
    'stakeindexer_last_rewarded_height',
    'Height of the last block whose rewards were distributed',
    registry=metrics_registry
)

last_rewarded_epoch = Gauge(
    'stakeindexer_last_rewarded_epoch',
    'Epoch of the last block whose rewards were distributed',
    registry=metrics_registry
)


def update_run_metrics(outcome: str, duration: float, result=None):
    """
    Record one reward run.

    Args:
        outcome: 'distributed', 'deferred' or 'failed'
        duration: Run wall time in seconds
        result: DistributionResult when outcome is 'distributed'
    """
    reward_runs_total.labels(outcome=outcome).inc()
    reward_run_duration_seconds.observe(duration)

    if result is None:
        return

    reward_run_delegators.observe(len(result.delegator_rewards))
    for reward in result.all_rewards():
        amount = float(reward.reward.value)
        # Counters only go up; a negative block reward is not counted
        if amount > 0:
            rewards_distributed_total.labels(owner_type=reward.owner_type.value).inc(amount)
    last_rewarded_height.set(result.block_height)
    last_rewarded_epoch.set(result.epoch)


def render_metrics() -> str:
    """Metrics in the Prometheus text exposition format."""
    return generate_latest(metrics_registry).decode("utf-8")
