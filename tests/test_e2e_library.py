from __future__ import annotations

import asyncio
import json
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

import pytest
from conftest import FakeOpener, FakeSocket

from pyrideplan import polyline
from pyrideplan.client import RidePlanClient
from pyrideplan.config import RidePlanConfig
from pyrideplan.connection import ConnectionState
from pyrideplan.exceptions import RetrievalError
from pyrideplan.geo import distance_km
from pyrideplan.models.driver import DriverProfile
from pyrideplan.models.geo import GeoPoint
from pyrideplan.models.order import OrderPayload, OrderSource
from pyrideplan.models.route import RouteEstimate

ORIGIN = GeoPoint.of(23.8103, 90.4125)
DESTINATION = GeoPoint.of(23.8000, 90.4000)
ROUTE = [ORIGIN, GeoPoint.of(23.8051, 90.4062), DESTINATION]


@dataclass
class FakeRideBackend:
    """Fake proxy backend answering the REST collaborators."""

    drivers: list[dict[str, Any]] = field(
        default_factory=lambda: [
            {
                "_id": "d1",
                "name": "Rahim",
                "phone_number": "+8801700000001",
                "vehicle_type": "Car",
                "rate": 50,
                "currentLocation": {"latitude": 23.811, "longitude": 90.413},
            },
            {"_id": "d2", "name": "Salma", "vehicle_type": "Motorcycle", "rate": "30"},
        ]
    )
    calls: dict[str, int] = field(default_factory=dict)
    directions_fail: bool = False
    drivers_fail: bool = False
    drivers_gate: asyncio.Event | None = None

    def _record_call(self, endpoint: str) -> None:
        self.calls[endpoint] = self.calls.get(endpoint, 0) + 1

    async def get_json(self, endpoint: str, params: Mapping[str, str]) -> Any:
        self._record_call(endpoint)

        if endpoint == "/driver/get-drivers-data":
            if self.drivers_gate is not None:
                await self.drivers_gate.wait()
            if self.drivers_fail:
                raise RetrievalError("HTTP 503 from /driver/get-drivers-data", status_code=503, endpoint=endpoint)
            wanted = params["ids"].split(",")
            return [d for d in self.drivers if d["_id"] in wanted]

        if endpoint == "/api/v1/directions":
            if self.directions_fail:
                raise RetrievalError("HTTP 502 from /api/v1/directions", status_code=502, endpoint=endpoint)
            return {"success": True, "data": {"routes": [{"overview_polyline": {"points": polyline.encode(ROUTE)}}]}}

        if endpoint == "/api/v1/geocode":
            names = {ORIGIN.as_query(): "Gulshan Avenue, Dhaka", DESTINATION.as_query(): "Banani, Dhaka"}
            return {"success": True, "data": {"results": [{"formatted_address": names[params["latlng"]]}]}}

        if endpoint == "/api/v1/distance-matrix":
            text = {"driving": "17 mins", "walking": "25 mins", "bicycling": "9 mins"}.get(params["mode"])
            element = {"status": "OK", "duration": {"text": text}} if text else {"status": "ZERO_RESULTS"}
            return {"success": True, "data": {"rows": [{"elements": [element]}]}}

        raise AssertionError(f"Unexpected endpoint in fake backend: {endpoint}")


class DispatchServerSocket(FakeSocket):
    """Answers every ride request with a nearbyDrivers broadcast."""

    def __init__(self, driver_ids: Callable[[], list[str]]) -> None:
        super().__init__()
        self._driver_ids = driver_ids

    async def send_str(self, data: str) -> None:
        await super().send_str(data)
        if json.loads(data).get("type") == "requestRide":
            self.feed(json.dumps({"type": "nearbyDrivers", "drivers": [{"id": i} for i in self._driver_ids()]}))


class DispatchServer(FakeOpener):
    def __init__(self) -> None:
        super().__init__()
        self.driver_ids = ["d1", "d2"]

    async def __call__(self) -> FakeSocket:
        self.attempts += 1
        socket = DispatchServerSocket(lambda: list(self.driver_ids))
        self.sockets.append(socket)
        return socket


async def _wait_for(condition: Callable[[], bool], timeout: float = 1.0) -> None:
    deadline = asyncio.get_running_loop().time() + timeout
    while not condition():
        if asyncio.get_running_loop().time() > deadline:
            raise AssertionError("condition not met in time")
        await asyncio.sleep(0.01)


@pytest.fixture
def config() -> RidePlanConfig:
    return RidePlanConfig(
        server_uri="https://ride.example.com",
        dispatch_url="wss://ride.example.com/dispatch",
        reconnect_delay=0.01,
    )


@pytest.fixture
def backend() -> FakeRideBackend:
    return FakeRideBackend()


@pytest.fixture
def server() -> DispatchServer:
    return DispatchServer()


@pytest.mark.asyncio
@pytest.mark.e2e
async def test_e2e_client_happy_path_exercises_full_library(
    config: RidePlanConfig, backend: FakeRideBackend, server: DispatchServer
) -> None:
    states: list[ConnectionState] = []
    candidates: list[tuple[DriverProfile, ...]] = []
    estimates: list[RouteEstimate] = []
    orders: list[OrderPayload] = []

    async with RidePlanClient(config, transport=backend, socket_opener=server) as client:
        client.connection_state.subscribe(states.append)
        client.candidates.subscribe(candidates.append)
        client.estimates.subscribe(estimates.append)
        client.orders.subscribe(orders.append)
        assert client.connection.is_connected

        client.update_location(ORIGIN)
        await _wait_for(lambda: bool(candidates))

        assert [json.loads(m)["type"] for m in server.last.sent] == ["requestRide"]
        assert backend.calls["/driver/get-drivers-data"] == 1
        assert [p.id for p in client.current_candidates] == ["d1", "d2"]
        assert [p.id for p in client.ranked_candidates("car")] == ["d1"]

        estimate = await client.select_destination(DESTINATION, now=datetime(2024, 5, 1, 14, 50))
        assert estimate is not None
        assert list(estimate.geometry) == ROUTE
        assert estimate.distance_km == pytest.approx(1.711, abs=0.01)
        assert estimate.fare_for("d1").fare == round(estimate.distance_km * 50, 2)
        assert estimate.fare_for("d1").fare == pytest.approx(85.57, abs=0.5)
        assert estimate.fare_for("d2").fare == round(estimate.distance_km * 30, 2)
        assert estimate.travel_times.driving == "17 mins"
        assert estimate.travel_times.transit is None
        assert estimate.eta == "03:07 PM"
        assert estimates[-1] == estimate

        assert client.select_driver("d1") is not None
        order = await client.confirm_order({"_id": "u1", "name": "Karim", "phone_number": "+8801800000000"})

        assert orders == [order]
        assert order.source == OrderSource.LOCAL
        assert order.driver["id"] == "d1"
        assert order.distance_km == round(estimate.distance_km, 2)
        assert order.current_location_name == "Gulshan Avenue, Dhaka"
        assert order.destination_location_name == "Banani, Dhaka"
        wire = json.loads(order.to_route_params()["orderData"])
        assert wire["marker"] == {"latitude": 23.8, "longitude": 90.4}
        assert wire["user"]["id"] == "u1"

        notified = client.handle_notification(
            {
                "currentLocation": wire["currentLocation"],
                "marker": wire["marker"],
                "distance": wire["distance"],
                "orderData": json.dumps(order.driver),
            }
        )
        assert notified.source == OrderSource.NOTIFICATION
        assert notified.driver == order.driver
        assert orders[-1] is notified

        socket = server.last

    assert socket.closed
    assert client.connection.state == ConnectionState.DISCONNECTED
    await asyncio.sleep(0.05)
    assert server.attempts == 1


@pytest.mark.asyncio
@pytest.mark.e2e
async def test_e2e_driver_lookup_failure_keeps_candidates_and_notifies(
    config: RidePlanConfig, backend: FakeRideBackend, server: DispatchServer
) -> None:
    notices: list[str] = []

    async with RidePlanClient(config, transport=backend, socket_opener=server) as client:
        client.notices.subscribe(notices.append)
        client.update_location(ORIGIN)
        await _wait_for(lambda: len(client.current_candidates) == 2)

        backend.drivers_fail = True
        server.driver_ids = ["d2"]
        client.update_location(GeoPoint.of(23.8110, 90.4130))
        await _wait_for(lambda: bool(notices))

        assert "Could not load nearby drivers" in notices[0]
        assert [p.id for p in client.current_candidates] == ["d1", "d2"]


@pytest.mark.asyncio
@pytest.mark.e2e
async def test_e2e_directions_failure_still_prices_the_trip(
    config: RidePlanConfig, backend: FakeRideBackend, server: DispatchServer
) -> None:
    backend.directions_fail = True

    async with RidePlanClient(config, transport=backend, socket_opener=server) as client:
        client.update_location(ORIGIN)
        await _wait_for(lambda: bool(client.current_candidates))

        estimate = await client.select_destination(DESTINATION)

        assert estimate is not None
        assert estimate.geometry == ()
        assert len(estimate.fares) == 2
        assert estimate.distance_km == pytest.approx(1.711, abs=0.01)


@pytest.mark.asyncio
@pytest.mark.e2e
async def test_e2e_moving_rider_re_estimates_even_when_lookup_fails(
    config: RidePlanConfig, backend: FakeRideBackend, server: DispatchServer
) -> None:
    moved = GeoPoint.of(23.9, 90.5)

    async with RidePlanClient(config, transport=backend, socket_opener=server) as client:
        client.update_location(ORIGIN)
        await _wait_for(lambda: bool(client.current_candidates))
        await client.select_destination(DESTINATION)
        directions_calls = backend.calls["/api/v1/directions"]

        backend.drivers_fail = True
        client.update_location(moved)
        await _wait_for(lambda: client.latest_estimate is not None and client.latest_estimate.origin == moved)

        estimate = client.latest_estimate
        assert estimate is not None
        assert estimate.destination == DESTINATION
        assert estimate.distance_km == pytest.approx(distance_km(moved, DESTINATION))
        assert estimate.fare_for("d1").fare == round(estimate.distance_km * 50, 2)
        assert backend.calls["/api/v1/directions"] == directions_calls + 1


@pytest.mark.asyncio
@pytest.mark.e2e
async def test_e2e_reconnect_requests_drivers_again(
    config: RidePlanConfig, backend: FakeRideBackend, server: DispatchServer
) -> None:
    async with RidePlanClient(config, transport=backend, socket_opener=server) as client:
        client.update_location(ORIGIN)
        await _wait_for(lambda: bool(client.current_candidates))

        server.driver_ids = ["d1"]
        server.last.drop()
        await _wait_for(lambda: server.attempts == 2 and len(client.current_candidates) == 1)

        assert [json.loads(m)["type"] for m in server.last.sent] == ["requestRide"]
        assert client.current_candidates[0].id == "d1"


@pytest.mark.asyncio
@pytest.mark.e2e
async def test_e2e_results_after_close_are_discarded(
    config: RidePlanConfig, backend: FakeRideBackend, server: DispatchServer
) -> None:
    backend.drivers_gate = asyncio.Event()
    seen: list[object] = []

    client = RidePlanClient(config, transport=backend, socket_opener=server)
    await client.start()
    client.candidates.subscribe(seen.append)
    client.update_location(ORIGIN)
    await _wait_for(lambda: backend.calls.get("/driver/get-drivers-data", 0) == 1)

    await client.close()
    backend.drivers_gate.set()
    await asyncio.sleep(0.05)

    assert seen == []
    assert client.current_candidates == ()


@pytest.mark.asyncio
async def test_confirm_order_requires_selection(
    config: RidePlanConfig, backend: FakeRideBackend, server: DispatchServer
) -> None:
    async with RidePlanClient(config, transport=backend, socket_opener=server) as client:
        with pytest.raises(ValueError):
            await client.confirm_order()

        client.update_location(ORIGIN)
        await client.select_destination(DESTINATION)
        with pytest.raises(ValueError):
            await client.confirm_order()
