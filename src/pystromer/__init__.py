"""pystromer - Async Python client and state sync for the Stromer e-bike API."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("pystromer")
except PackageNotFoundError:
    __version__ = "0+local"
from pystromer.auth import AuthNegotiator
from pystromer.client import StromerClient
from pystromer.commands import CommandDispatcher
from pystromer.config import PollingConfig, StromerConfig
from pystromer.exceptions import (
    StromerApiError,
    StromerAuthenticationError,
    StromerCommandError,
    StromerConfigError,
    StromerCycleError,
    StromerError,
    StromerFetchError,
    StromerForbiddenError,
    StromerInvalidCredentialsError,
    StromerMalformedRequestError,
    StromerNotAuthenticatedError,
    StromerRateLimitError,
    StromerTransportError,
    StromerUnauthorizedError,
)
from pystromer.models import (
    ApiGeneration,
    BikeDetails,
    BikeIdentity,
    BikePosition,
    BikeStatus,
    Credentials,
    LightMode,
    PeriodStatistics,
    StatisticsPeriod,
)
from pystromer.reconciler import PollState, ReconcilerState, StateReconciler
from pystromer.session import TokenStore
from pystromer.state import BikeEvent, BikeEventType, Capability, CapabilitySnapshot

__all__ = [
    "__version__",
    "ApiGeneration",
    "AuthNegotiator",
    "BikeDetails",
    "BikeEvent",
    "BikeEventType",
    "BikeIdentity",
    "BikePosition",
    "BikeStatus",
    "Capability",
    "CapabilitySnapshot",
    "CommandDispatcher",
    "Credentials",
    "LightMode",
    "PeriodStatistics",
    "PollState",
    "PollingConfig",
    "ReconcilerState",
    "StateReconciler",
    "StatisticsPeriod",
    "StromerApiError",
    "StromerAuthenticationError",
    "StromerClient",
    "StromerCommandError",
    "StromerConfig",
    "StromerConfigError",
    "StromerCycleError",
    "StromerError",
    "StromerFetchError",
    "StromerForbiddenError",
    "StromerInvalidCredentialsError",
    "StromerMalformedRequestError",
    "StromerNotAuthenticatedError",
    "StromerRateLimitError",
    "StromerTransportError",
    "StromerUnauthorizedError",
    "TokenStore",
]
