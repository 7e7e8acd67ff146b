"""Emission schedule — epoch numbering, boundaries and token budgets."""

from zapdist.emission.schedule import EmissionSchedule

__all__ = ["EmissionSchedule"]
