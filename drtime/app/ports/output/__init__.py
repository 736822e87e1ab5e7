from .feed_fetcher import IFeedFetcher
from .realtime_vehicle_provider import IRealtimeVehicleProvider
from .static_feed_store import IStaticFeedStore
from .trip_update_provider import ITripUpdateProvider

__all__ = [
    "IFeedFetcher",
    "IRealtimeVehicleProvider",
    "IStaticFeedStore",
    "ITripUpdateProvider",
]
