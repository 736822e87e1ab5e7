from __future__ import annotations

import csv
import io
import logging
import posixpath
import zipfile
from collections.abc import Iterator
from datetime import datetime, timezone

from drtime.domain.algorithms.gtfs_time import parse_gtfs_time_to_seconds
from drtime.domain.exceptions import FeedFetchError, FeedParseError
from drtime.domain.models import (
    GeoPoint,
    GtfsRoute,
    GtfsTrip,
    RouteType,
    StaticFeedSnapshot,
    Stop,
    StopTime,
)

logger = logging.getLogger(__name__)

REQUIRED_COLUMNS: dict[str, tuple[str, ...]] = {
    "routes.txt": ("route_id",),
    "trips.txt": ("route_id", "trip_id"),
    "stop_times.txt": ("trip_id", "stop_id", "arrival_time", "departure_time"),
    "stops.txt": ("stop_id", "stop_lat", "stop_lon"),
}


def _clean(row: dict[str, str | None], key: str) -> str | None:
    return (row.get(key) or "").strip() or None


def _locate_tables(zf: zipfile.ZipFile) -> dict[str, zipfile.ZipInfo]:
    # Some agencies nest the tables in a folder inside the archive.
    found: dict[str, zipfile.ZipInfo] = {}
    for info in zf.infolist():
        if info.is_dir():
            continue
        name = posixpath.basename(info.filename).lower()
        if name in REQUIRED_COLUMNS and name not in found:
            found[name] = info
    return found


def _read_table(zf: zipfile.ZipFile, info: zipfile.ZipInfo) -> list[dict[str, str]]:
    name = posixpath.basename(info.filename)
    try:
        raw = zf.read(info)
        text = raw.decode("utf-8-sig")
    except UnicodeDecodeError as exc:
        raise FeedParseError(f"{name} is not valid UTF-8 text") from exc
    except (zipfile.BadZipFile, OSError) as exc:
        raise FeedParseError(f"{name} could not be extracted: {exc}") from exc

    try:
        reader = csv.DictReader(io.StringIO(text, newline=""))
        header = [h.strip() for h in (reader.fieldnames or [])]
        if not header:
            raise FeedParseError(f"{name} has no header row")
        reader.fieldnames = header

        required = REQUIRED_COLUMNS[name.lower()]
        missing = [c for c in required if c not in header]
        if missing:
            raise FeedParseError(f"{name} is missing columns: {', '.join(missing)}")

        return [
            row
            for row in reader
            if any(isinstance(v, str) and v.strip() for v in row.values())
        ]
    except csv.Error as exc:
        raise FeedParseError(f"{name} is not valid CSV: {exc}") from exc


def _iter_routes(rows: list[dict[str, str]]) -> Iterator[GtfsRoute]:
    for row in rows:
        route_id = _clean(row, "route_id")
        if not route_id:
            continue
        try:
            route_type = int(_clean(row, "route_type") or RouteType.BUS)
        except ValueError:
            route_type = RouteType.BUS
        yield GtfsRoute(
            route_id=route_id,
            short_name=_clean(row, "route_short_name"),
            long_name=_clean(row, "route_long_name"),
            route_type=route_type,
            color=_clean(row, "route_color"),
            text_color=_clean(row, "route_text_color"),
        )


def _iter_trips(rows: list[dict[str, str]]) -> Iterator[GtfsTrip]:
    for row in rows:
        trip_id = _clean(row, "trip_id")
        route_id = _clean(row, "route_id")
        if not trip_id or not route_id:
            continue
        direction = _clean(row, "direction_id")
        yield GtfsTrip(
            trip_id=trip_id,
            route_id=route_id,
            headsign=_clean(row, "trip_headsign"),
            direction_id=int(direction) if direction and direction.isdigit() else None,
        )


def _iter_stops(rows: list[dict[str, str]]) -> Iterator[Stop]:
    for row in rows:
        stop_id = _clean(row, "stop_id")
        if not stop_id:
            continue
        try:
            location = GeoPoint(lat=float(row["stop_lat"]), lon=float(row["stop_lon"]))
        except (TypeError, ValueError, KeyError):
            continue
        yield Stop(
            id=stop_id,
            name=_clean(row, "stop_name") or stop_id,
            location=location,
        )


def _iter_stop_times(rows: list[dict[str, str]]) -> Iterator[StopTime]:
    for row in rows:
        trip_id = _clean(row, "trip_id")
        stop_id = _clean(row, "stop_id")
        if not trip_id or not stop_id:
            continue

        arrival = _clean(row, "arrival_time")
        departure = _clean(row, "departure_time")
        # GTFS allows one of the two to be blank on timepoint-less rows.
        arrival = arrival or departure
        departure = departure or arrival
        if not arrival or not departure:
            continue
        try:
            parse_gtfs_time_to_seconds(arrival)
            parse_gtfs_time_to_seconds(departure)
            seq = int(_clean(row, "stop_sequence") or 0)
        except ValueError:
            continue

        yield StopTime(
            trip_id=trip_id,
            stop_id=stop_id,
            arrival_time=arrival,
            departure_time=departure,
            stop_sequence=seq,
        )


def parse_gtfs_archive(
    content: bytes, *, fetched_at: datetime | None = None
) -> StaticFeedSnapshot:
    """Parse a GTFS zip archive into an immutable snapshot.

    Raises FeedFetchError when a required table is absent and FeedParseError
    when the archive or a table cannot be decoded. Rows that are individually
    malformed are skipped.
    """

    try:
        zf = zipfile.ZipFile(io.BytesIO(content))
    except zipfile.BadZipFile as exc:
        raise FeedParseError(f"GTFS archive is not a valid zip file: {exc}") from exc

    with zf:
        tables = _locate_tables(zf)
        missing = sorted(set(REQUIRED_COLUMNS) - set(tables))
        if missing:
            raise FeedFetchError(f"GTFS archive is missing {', '.join(missing)}")

        rows = {name: _read_table(zf, info) for name, info in tables.items()}

    routes_by_id = {r.route_id: r for r in _iter_routes(rows["routes.txt"])}
    trips_by_id = {t.trip_id: t for t in _iter_trips(rows["trips.txt"])}
    stops_by_id = {s.id: s for s in _iter_stops(rows["stops.txt"])}
    stop_times = tuple(_iter_stop_times(rows["stop_times.txt"]))

    skipped = {
        "routes.txt": len(rows["routes.txt"]) - len(routes_by_id),
        "trips.txt": len(rows["trips.txt"]) - len(trips_by_id),
        "stops.txt": len(rows["stops.txt"]) - len(stops_by_id),
        "stop_times.txt": len(rows["stop_times.txt"]) - len(stop_times),
    }
    if any(skipped.values()):
        logger.info("Skipped malformed or duplicate GTFS rows: %s", skipped)

    return StaticFeedSnapshot.build(
        routes_by_id=routes_by_id,
        trips_by_id=trips_by_id,
        stop_times=stop_times,
        stops_by_id=stops_by_id,
        fetched_at=fetched_at or datetime.now(timezone.utc),
    )
