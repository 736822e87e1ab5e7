from .arrivals import NearbyStopsResult, ResolvedArrival, StopResult
from .geo import GeoPoint
from .gtfs import GtfsRoute, GtfsTrip, RouteType, StaticFeedSnapshot, StopTime
from .realtime import (
    LiveFeedSnapshot,
    RealtimeVehicle,
    StopRelationship,
    StopTimeEvent,
    StopTimePrediction,
    TripRelationship,
    TripUpdate,
)
from .stop import Stop

__all__ = [
    "GeoPoint",
    "GtfsRoute",
    "GtfsTrip",
    "LiveFeedSnapshot",
    "NearbyStopsResult",
    "RealtimeVehicle",
    "ResolvedArrival",
    "RouteType",
    "StaticFeedSnapshot",
    "Stop",
    "StopRelationship",
    "StopResult",
    "StopTime",
    "StopTimeEvent",
    "StopTimePrediction",
    "TripRelationship",
    "TripUpdate",
]
