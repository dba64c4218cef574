"""Adaptation Reconciler: the single owner of UI-State.

Example:
    >>> from adaptly.reconciler import AdaptationReconciler
    >>> reconciler = AdaptationReconciler(schema)
    >>> status = reconciler.submit_goal("show me sales")
"""

from adaptly.reconciler.lib import (
    BUSY_MESSAGE,
    AdaptationReconciler,
    ReconcilerStatus,
    build_reconciler,
)

__all__ = [
    "AdaptationReconciler",
    "ReconcilerStatus",
    "BUSY_MESSAGE",
    "build_reconciler",
]
