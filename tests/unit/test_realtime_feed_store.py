from __future__ import annotations

import asyncio
from dataclasses import dataclass

import pytest
from google.transit import gtfs_realtime_pb2

from drtime.adapters.feeds.gtfs_realtime import (
    decode_trip_updates,
    decode_vehicle_positions,
)
from drtime.adapters.feeds.realtime_feed_store import (
    GtfsRealtimeTripUpdateProvider,
    GtfsRealtimeVehicleProvider,
)
from drtime.domain.exceptions import FeedFetchError, FeedParseError
from drtime.domain.models.realtime import StopRelationship, TripRelationship

_STU = gtfs_realtime_pb2.TripUpdate.StopTimeUpdate


def _trip_updates_payload() -> bytes:
    feed = gtfs_realtime_pb2.FeedMessage()
    feed.header.gtfs_realtime_version = "2.0"
    feed.header.timestamp = 1_773_150_000

    ent = feed.entity.add()
    ent.id = "1"
    ent.trip_update.trip.trip_id = "T1"
    ent.trip_update.trip.route_id = "R900"
    stu = ent.trip_update.stop_time_update.add()
    stu.stop_id = "S1"
    stu.stop_sequence = 1
    stu.arrival.time = 1_773_151_380
    stu.arrival.delay = 180
    stu = ent.trip_update.stop_time_update.add()
    stu.stop_sequence = 2
    stu.departure.delay = 60
    stu = ent.trip_update.stop_time_update.add()
    stu.stop_id = "S3"
    stu.schedule_relationship = _STU.SKIPPED

    ent = feed.entity.add()
    ent.id = "2"
    ent.trip_update.trip.trip_id = "T2"
    ent.trip_update.trip.schedule_relationship = (
        gtfs_realtime_pb2.TripDescriptor.CANCELED
    )

    # Alerts and trip updates without a trip id carry nothing usable.
    ent = feed.entity.add()
    ent.id = "3"
    ent.alert.header_text.translation.add().text = "Detour"
    ent = feed.entity.add()
    ent.id = "4"
    ent.trip_update.trip.route_id = "R900"

    return feed.SerializeToString()


def _vehicle_positions_payload() -> bytes:
    feed = gtfs_realtime_pb2.FeedMessage()
    feed.header.gtfs_realtime_version = "2.0"

    ent = feed.entity.add()
    ent.id = "v1"
    ent.vehicle.vehicle.id = "8101"
    ent.vehicle.trip.trip_id = "T1"
    ent.vehicle.trip.route_id = "R900"
    ent.vehicle.position.latitude = 43.9
    ent.vehicle.position.longitude = -78.9
    ent.vehicle.position.bearing = 90.0
    ent.vehicle.timestamp = 1_773_150_000

    # No position: skipped.
    ent = feed.entity.add()
    ent.id = "v2"
    ent.vehicle.vehicle.id = "8102"

    return feed.SerializeToString()


@dataclass(slots=True)
class FakeFetcher:
    payload: bytes | Exception
    delay_s: float = 0.0
    calls: int = 0

    async def fetch(self) -> bytes:
        self.calls += 1
        if self.delay_s:
            await asyncio.sleep(self.delay_s)
        if isinstance(self.payload, Exception):
            raise self.payload
        return self.payload


@dataclass(slots=True)
class FakeClock:
    t: float = 0.0

    def __call__(self) -> float:
        return self.t


@pytest.mark.unit
def test_decode_trip_updates_maps_predictions_and_relationships() -> None:
    updates = decode_trip_updates(_trip_updates_payload())

    assert [u.trip_id for u in updates] == ["T1", "T2"]

    t1 = updates[0]
    assert t1.route_id == "R900"
    assert t1.relationship is TripRelationship.SCHEDULED
    first, second, third = t1.predictions
    assert first.stop_id == "S1"
    assert first.arrival is not None
    assert first.arrival.time == 1_773_151_380
    assert first.arrival.delay_s == 180
    assert first.departure is None

    assert second.stop_id is None
    assert second.stop_sequence == 2
    assert second.arrival is None
    assert second.departure is not None
    assert second.departure.time is None
    assert second.departure.delay_s == 60

    assert third.relationship is StopRelationship.SKIPPED

    assert updates[1].relationship is TripRelationship.CANCELED


@pytest.mark.unit
def test_decode_vehicle_positions_skips_entities_without_position() -> None:
    vehicles = decode_vehicle_positions(_vehicle_positions_payload())

    assert len(vehicles) == 1
    v = vehicles[0]
    assert v.vehicle_id == "8101"
    assert v.route_id == "R900"
    assert v.lat == pytest.approx(43.9, abs=1e-5)
    assert v.bearing == pytest.approx(90.0)
    assert v.speed_mps is None
    assert v.timestamp is not None


@pytest.mark.unit
@pytest.mark.parametrize("payload", [b"", b"\xff\xff\xff"])
def test_decode_rejects_empty_or_invalid_payload(payload: bytes) -> None:
    with pytest.raises(FeedParseError):
        decode_trip_updates(payload)


@pytest.mark.unit
@pytest.mark.anyio
async def test_trip_updates_provider_indexes_by_trip() -> None:
    provider = GtfsRealtimeTripUpdateProvider(
        fetcher=FakeFetcher(_trip_updates_payload()), clock=FakeClock()
    )

    live = await provider.get_updates()

    assert set(live.by_trip) == {"T1", "T2"}
    assert live.by_trip["T1"].predictions[0].stop_id == "S1"


@pytest.mark.unit
@pytest.mark.anyio
@pytest.mark.parametrize(
    "payload",
    [FeedFetchError("HTTP 502"), b"", b"\xff\xff\xff", RuntimeError("boom")],
)
async def test_trip_updates_provider_degrades_to_empty(payload) -> None:
    provider = GtfsRealtimeTripUpdateProvider(
        fetcher=FakeFetcher(payload), clock=FakeClock()
    )

    live = await provider.get_updates()

    assert live.updates == ()
    assert live.by_trip == {}


@pytest.mark.unit
@pytest.mark.anyio
async def test_trip_updates_provider_times_out_to_empty() -> None:
    fetcher = FakeFetcher(_trip_updates_payload(), delay_s=1.0)
    provider = GtfsRealtimeTripUpdateProvider(
        fetcher=fetcher, timeout_s=0.01, clock=FakeClock()
    )

    live = await provider.get_updates()

    assert live.updates == ()


@pytest.mark.unit
@pytest.mark.anyio
async def test_trip_updates_provider_caches_results_including_failures() -> None:
    clock = FakeClock()
    fetcher = FakeFetcher(FeedFetchError("HTTP 502"))
    provider = GtfsRealtimeTripUpdateProvider(fetcher=fetcher, ttl_s=30, clock=clock)

    await provider.get_updates()
    clock.t += 29
    await provider.get_updates()
    assert fetcher.calls == 1

    fetcher.payload = _trip_updates_payload()
    clock.t += 2
    live = await provider.get_updates()
    assert fetcher.calls == 2
    assert "T1" in live.by_trip


@pytest.mark.unit
@pytest.mark.anyio
async def test_trip_updates_provider_without_fetcher_is_empty() -> None:
    provider = GtfsRealtimeTripUpdateProvider(fetcher=None)

    live = await provider.get_updates()

    assert live.updates == ()


@pytest.mark.unit
@pytest.mark.anyio
async def test_vehicle_provider_lists_and_degrades() -> None:
    ok = GtfsRealtimeVehicleProvider(
        fetcher=FakeFetcher(_vehicle_positions_payload()), clock=FakeClock()
    )
    broken = GtfsRealtimeVehicleProvider(
        fetcher=FakeFetcher(FeedFetchError("timeout")), clock=FakeClock()
    )

    assert len(await ok.list_vehicles()) == 1
    assert await broken.list_vehicles() == ()


@pytest.mark.unit
@pytest.mark.anyio
async def test_trip_updates_concurrent_callers_share_one_fetch() -> None:
    fetcher = FakeFetcher(_trip_updates_payload(), delay_s=0.05)
    provider = GtfsRealtimeTripUpdateProvider(fetcher=fetcher, clock=FakeClock())

    snapshots = await asyncio.gather(*(provider.get_updates() for _ in range(20)))

    assert fetcher.calls == 1
    assert all(s is snapshots[0] for s in snapshots)
