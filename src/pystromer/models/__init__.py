"""Data models for Stromer API payloads."""

from pystromer._constants import ApiGeneration
from pystromer.models._base import StromerBaseModel
from pystromer.models.bike import BikeIdentity
from pystromer.models.position import BikePosition
from pystromer.models.statistics import BikeDetails, PeriodStatistics, StatisticsPeriod
from pystromer.models.status import BikeStatus, LightMode
from pystromer.models.token import Credentials

__all__ = [
    "ApiGeneration",
    "BikeDetails",
    "BikeIdentity",
    "BikePosition",
    "BikeStatus",
    "Credentials",
    "LightMode",
    "PeriodStatistics",
    "StatisticsPeriod",
    "StromerBaseModel",
]
