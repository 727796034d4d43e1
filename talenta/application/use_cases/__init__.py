"""Use cases for editing an audio entity's segments and metadata."""

from .reconcile_segments import ReconciliationController

__all__ = ["ReconciliationController"]
