"""Persistence — contribution source contract and distribution storage."""

from zapdist.persistence.contributions import ContributionSource, InMemoryContributions
from zapdist.persistence.distribution_store import DistributionStore

__all__ = ["ContributionSource", "InMemoryContributions", "DistributionStore"]
