from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone

import httpx
import pytest

from drtime.adapters.api.dependencies import (
    get_nearby_stops_service,
    get_realtime_view_service,
    get_route_catalog_service,
)
from drtime.app.services.nearby_stops_service import NearbyStopsService
from drtime.app.services.realtime_view_service import RealtimeViewService
from drtime.app.services.route_catalog_service import RouteCatalogService
from drtime.domain.exceptions import FeedFetchError
from drtime.domain.models import (
    GeoPoint,
    GtfsRoute,
    GtfsTrip,
    LiveFeedSnapshot,
    RealtimeVehicle,
    StaticFeedSnapshot,
    Stop,
    StopRelationship,
    StopTime,
    StopTimeEvent,
    StopTimePrediction,
    TripUpdate,
)
from drtime.main import app

NOW = datetime(2026, 3, 10, 13, 45, tzinfo=timezone.utc)


def _feed() -> StaticFeedSnapshot:
    return StaticFeedSnapshot.build(
        routes_by_id={"R900": GtfsRoute(route_id="R900", short_name="900", long_name="Pulse")},
        trips_by_id={"T1": GtfsTrip(trip_id="T1", route_id="R900", headsign="Oshawa Centre")},
        stop_times=(
            StopTime("T1", "S1", "14:00:00", "14:00:00", 1),
            StopTime("T1", "S2", "14:06:00", "14:06:00", 2),
        ),
        stops_by_id={
            "S1": Stop(id="S1", name="Simcoe / King", location=GeoPoint(43.90, -78.90)),
            "S2": Stop(id="S2", name="Oshawa Centre", location=GeoPoint(43.89, -78.88)),
        },
        fetched_at=NOW,
    )


@dataclass(slots=True)
class FakeStaticStore:
    error: Exception | None = None

    async def get_snapshot(self) -> StaticFeedSnapshot:
        if self.error is not None:
            raise self.error
        return _feed()


class _NoTripUpdates:
    async def get_updates(self) -> LiveFeedSnapshot:
        return LiveFeedSnapshot.build((), NOW)


class _FakeVehicleProvider:
    async def list_vehicles(self) -> tuple[RealtimeVehicle, ...]:
        return (
            RealtimeVehicle(vehicle_id="8101", trip_id="T1", route_id="R900", lat=43.9, lon=-78.9),
            RealtimeVehicle(vehicle_id="8102", trip_id="T9", route_id="R915", lat=43.8, lon=-78.8),
        )


def _override_nearby(store: FakeStaticStore) -> None:
    def _override():
        return NearbyStopsService(
            static_store=store, trip_updates=_NoTripUpdates(), now=lambda: NOW
        )

    app.dependency_overrides[get_nearby_stops_service] = _override


async def _get(path: str, **params) -> httpx.Response:
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
        return await client.get(path, params=params)


@pytest.mark.unit
@pytest.mark.anyio
async def test_nearby_returns_stops_with_arrivals_in_camel_case() -> None:
    _override_nearby(FakeStaticStore())

    resp = await _get("/nearby", lat="43.90", lon="-78.905")

    app.dependency_overrides.clear()

    assert resp.status_code == 200
    payload = resp.json()
    assert payload["stale"] is False
    assert [s["id"] for s in payload["stops"]] == ["S1", "S2"]

    s1 = payload["stops"][0]
    assert s1["name"] == "Simcoe / King"
    assert s1["latitude"] == 43.90
    assert 0.38 < s1["distance"] < 0.42
    arrival = s1["arrivals"][0]
    assert arrival == {
        "routeId": "R900",
        "routeName": "900",
        "headsign": "Oshawa Centre",
        "scheduledArrival": "2:00 PM",
        "minutesUntilArrival": 15,
        "isRealtime": False,
        "delayMinutes": 0,
    }


@pytest.mark.unit
@pytest.mark.anyio
async def test_nearby_respects_radius_and_limit_params() -> None:
    _override_nearby(FakeStaticStore())

    resp = await _get("/nearby", lat="43.90", lon="-78.905", radius_km="10", limit="1")

    app.dependency_overrides.clear()

    assert resp.status_code == 200
    assert [s["id"] for s in resp.json()["stops"]] == ["S1"]


@pytest.mark.unit
@pytest.mark.anyio
@pytest.mark.parametrize(
    "params",
    [
        {"lon": "-78.9"},
        {"lat": "43.9"},
        {"lat": "43.9", "lon": "abc"},
        {"lat": "123", "lon": "-78.9"},
    ],
)
async def test_nearby_rejects_missing_or_invalid_coordinates(params) -> None:
    _override_nearby(FakeStaticStore())

    resp = await _get("/nearby", **params)

    app.dependency_overrides.clear()

    assert resp.status_code == 400
    assert resp.json()["detail"]


@pytest.mark.unit
@pytest.mark.anyio
async def test_nearby_static_feed_failure_is_500_json() -> None:
    _override_nearby(FakeStaticStore(error=FeedFetchError("HTTP 503 from upstream")))

    resp = await _get("/nearby", lat="43.9", lon="-78.9")

    app.dependency_overrides.clear()

    assert resp.status_code == 500
    payload = resp.json()
    assert payload["error"] == "Failed to load transit data"
    assert "503" in payload["detail"]


@pytest.mark.unit
@pytest.mark.anyio
async def test_list_routes() -> None:
    app.dependency_overrides[get_route_catalog_service] = lambda: RouteCatalogService(
        static_store=FakeStaticStore()
    )

    resp = await _get("/routes")

    app.dependency_overrides.clear()

    assert resp.status_code == 200
    [route] = resp.json()["routes"]
    assert route["routeId"] == "R900"
    assert route["shortName"] == "900"
    assert route["routeType"] == 3
    assert route["tripCount"] == 1
    assert route["stopCount"] == 2


@pytest.mark.unit
@pytest.mark.anyio
async def test_route_detail_and_not_found() -> None:
    app.dependency_overrides[get_route_catalog_service] = lambda: RouteCatalogService(
        static_store=FakeStaticStore()
    )

    ok = await _get("/routes/R900")
    missing = await _get("/routes/R404")

    app.dependency_overrides.clear()

    assert ok.status_code == 200
    detail = ok.json()
    assert detail["routeId"] == "R900"
    assert detail["directions"] == ["Oshawa Centre"]
    assert detail["totalTrips"] == 1
    assert [s["stopId"] for s in detail["stops"]] == ["S1", "S2"]
    assert detail["stops"][0]["arrivalTime"] == "14:00:00"

    assert missing.status_code == 404
    assert missing.json()["detail"] == "Route not found"


@pytest.mark.unit
@pytest.mark.anyio
async def test_realtime_vehicles_filtered_by_route() -> None:
    app.dependency_overrides[get_realtime_view_service] = lambda: RealtimeViewService(
        vehicle_provider=_FakeVehicleProvider()
    )

    resp = await _get("/realtime/vehicles", route_id="R915")

    app.dependency_overrides.clear()

    assert resp.status_code == 200
    payload = resp.json()
    assert "fetchedAt" in payload
    assert [v["vehicleId"] for v in payload["vehicles"]] == ["8102"]


@pytest.mark.unit
@pytest.mark.anyio
async def test_health() -> None:
    resp = await _get("/health")

    assert resp.status_code == 200
    assert resp.json() == {"status": "ok"}


@pytest.mark.unit
@pytest.mark.anyio
@pytest.mark.parametrize(
    "params",
    [{"radius_km": "0"}, {"radius_km": "abc"}, {"radius_km": "250"}, {"limit": "1000"}],
)
async def test_nearby_rejects_invalid_radius_or_limit_with_400(params) -> None:
    _override_nearby(FakeStaticStore())

    resp = await _get("/nearby", lat="43.9", lon="-78.9", **params)

    app.dependency_overrides.clear()

    assert resp.status_code == 400
    assert resp.json()["detail"]


class _FakeTripUpdates:
    async def get_updates(self) -> LiveFeedSnapshot:
        arrival_ts = int(datetime(2026, 3, 10, 14, 3, tzinfo=timezone.utc).timestamp())
        return LiveFeedSnapshot.build(
            (
                TripUpdate(
                    trip_id="T1",
                    predictions=(
                        StopTimePrediction(
                            stop_id="S1",
                            stop_sequence=1,
                            arrival=StopTimeEvent(time=arrival_ts, delay_s=180),
                        ),
                        StopTimePrediction(
                            stop_id="S2", relationship=StopRelationship.SKIPPED
                        ),
                    ),
                ),
                TripUpdate(trip_id="T9", route_id="R915"),
            ),
            NOW,
        )


@pytest.mark.unit
@pytest.mark.anyio
async def test_list_stops_sorted_by_name() -> None:
    app.dependency_overrides[get_route_catalog_service] = lambda: RouteCatalogService(
        static_store=FakeStaticStore()
    )

    resp = await _get("/stops")

    app.dependency_overrides.clear()

    assert resp.status_code == 200
    assert resp.json()["stops"] == [
        {"id": "S2", "name": "Oshawa Centre", "latitude": 43.89, "longitude": -78.88},
        {"id": "S1", "name": "Simcoe / King", "latitude": 43.90, "longitude": -78.90},
    ]


@pytest.mark.unit
@pytest.mark.anyio
async def test_trip_updates_filtered_by_route_from_static_trips() -> None:
    app.dependency_overrides[get_realtime_view_service] = lambda: RealtimeViewService(
        trip_updates=_FakeTripUpdates(), static_store=FakeStaticStore()
    )

    resp = await _get("/realtime/trip-updates", route_id="R900")
    everything = await _get("/realtime/trip-updates")

    app.dependency_overrides.clear()

    assert resp.status_code == 200
    payload = resp.json()
    assert payload["fetchedAt"].startswith("2026-03-10T13:45:00")
    [update] = payload["tripUpdates"]
    assert update["tripId"] == "T1"
    # The feed omits the route; it comes from trips.txt.
    assert update["routeId"] == "R900"
    assert update["scheduleRelationship"] == "scheduled"

    first, second = update["stopTimeUpdates"]
    assert first["stopId"] == "S1"
    assert first["arrival"]["delaySeconds"] == 180
    assert first["arrival"]["time"].startswith("2026-03-10T14:03:00")
    assert first["departure"] is None
    assert second["scheduleRelationship"] == "skipped"

    assert [u["tripId"] for u in everything.json()["tripUpdates"]] == ["T1", "T9"]


@pytest.mark.unit
@pytest.mark.anyio
async def test_trip_updates_empty_without_live_feed() -> None:
    app.dependency_overrides[get_realtime_view_service] = lambda: RealtimeViewService()

    resp = await _get("/realtime/trip-updates")

    app.dependency_overrides.clear()

    assert resp.status_code == 200
    assert resp.json()["tripUpdates"] == []
