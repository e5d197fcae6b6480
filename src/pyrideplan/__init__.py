"""pyrideplan - Async Python client for rider-side ride planning."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("pyrideplan")
except PackageNotFoundError:
    __version__ = "0+local"
from pyrideplan.client import RidePlanClient
from pyrideplan.config import RidePlanConfig
from pyrideplan.connection import ConnectionState, DispatchConnection
from pyrideplan.estimator import RouteFareEstimator
from pyrideplan.exceptions import (
    DecodeError,
    DispatchConnectionError,
    NotConnectedError,
    NotificationParseError,
    ParseError,
    RetrievalError,
    RidePlanConfigError,
    RidePlanError,
)
from pyrideplan.handoff import OrderHandoffCoordinator
from pyrideplan.location import LocationTracker
from pyrideplan.models import (
    DriverCandidateRef,
    DriverProfile,
    FareEstimate,
    GeoPoint,
    OrderPayload,
    OrderSource,
    RouteEstimate,
    TravelTimes,
    UserSummary,
)
from pyrideplan.protocol import RideRequestProtocol
from pyrideplan.resolver import DriverCandidateResolver

__all__ = [
    "__version__",
    "ConnectionState",
    "DecodeError",
    "DispatchConnection",
    "DispatchConnectionError",
    "DriverCandidateRef",
    "DriverCandidateResolver",
    "DriverProfile",
    "FareEstimate",
    "GeoPoint",
    "LocationTracker",
    "NotConnectedError",
    "NotificationParseError",
    "OrderHandoffCoordinator",
    "OrderPayload",
    "OrderSource",
    "ParseError",
    "RetrievalError",
    "RidePlanClient",
    "RidePlanConfig",
    "RidePlanConfigError",
    "RidePlanError",
    "RideRequestProtocol",
    "RouteEstimate",
    "RouteFareEstimator",
    "TravelTimes",
    "UserSummary",
]
