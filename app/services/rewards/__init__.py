"""Monthly city rewards."""

from .city_rewards import CityRewardsService, month_bounds

__all__ = ["CityRewardsService", "month_bounds"]
