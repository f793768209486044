"""Reconcile module - legacy position cleanup and sub-account funding."""

from hyperworld.reconcile.balance import BalanceReconciler, plan_transfer
from hyperworld.reconcile.legacy import (
    LegacyPositionReconciler,
    build_close_order,
    disallowed_positions,
)

__all__ = [
    "BalanceReconciler",
    "LegacyPositionReconciler",
    "build_close_order",
    "disallowed_positions",
    "plan_transfer",
]
