"""Shared fixtures: a distributor with a retroactive epoch and short periods.

Timeline (unix seconds):
    epoch 0 (retroactive)  [0, 1000)
    epoch 1                [1000, 1100)
    epoch 2                [1100, 1200)
    ...
    epoch 10               [1900, 2000)   last epoch
"""

from decimal import Decimal

import pytest

from zapdist.models.emission import DistributionConfig, EmissionConfig


POOL = "0x" + "aa" * 20
OTHER_POOL = "0x" + "bb" * 20
DEVELOPER = "0x" + "dd" * 20
DISTRIBUTOR = "0x" + "ee" * 20


@pytest.fixture
def emission() -> EmissionConfig:
    return EmissionConfig(
        epoch_period=100,
        tokens_per_epoch=Decimal("1000"),
        tokens_for_retroactive_distribution=Decimal("1000"),
        retroactive_distribution_cutoff_time=1000,
        distribution_start_time=1000,
        total_number_of_epochs=10,
        initial_epoch_number=1,
        developer_token_ratio_bps=1500,
        trader_token_ratio_bps=2000,
    )


@pytest.fixture
def distribution(emission: EmissionConfig) -> DistributionConfig:
    return DistributionConfig(
        name="ZWAP",
        reward_token_address_hex="0x" + "0f" * 20,
        distributor_address_hex=DISTRIBUTOR,
        developer_address=DEVELOPER,
        emission=emission,
        incentivized_pools={POOL: 2, OTHER_POOL: 1},
    )
