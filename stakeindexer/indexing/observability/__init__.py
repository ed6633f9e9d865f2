# MIT License
# Copyright (c) 2025 Hashborn

"""
Observability Module

Provides metrics for the reward distribution runs.
"""

from .metrics import metrics_registry, update_run_metrics, render_metrics

__all__ = ['metrics_registry', 'update_run_metrics', 'render_metrics']
