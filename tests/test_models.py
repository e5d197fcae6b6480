"""Tests for pydantic model parsing with RideBaseModel."""

from __future__ import annotations

import json

import pytest
from pydantic import ValidationError

from pyrideplan.exceptions import ParseError
from pyrideplan.models import (
    DriverCandidateRef,
    DriverProfile,
    FareEstimate,
    GeoPoint,
    MalformedOrderData,
    OrderPayload,
    RawOrderData,
    RideRequestMessage,
    StructuredOrderData,
    TravelTimes,
    classify_order_data,
    parse_dispatch_message,
    parse_nearby_drivers,
    resolve_order_data,
)

# ------------------------------------------------------------------
# GeoPoint
# ------------------------------------------------------------------


def test_geopoint_accepts_short_aliases() -> None:
    point = GeoPoint.model_validate({"lat": 23.8, "lng": 90.4})
    assert point == GeoPoint.of(23.8, 90.4)
    assert point.as_query() == "23.8,90.4"
    assert point.to_wire() == {"latitude": 23.8, "longitude": 90.4}


@pytest.mark.parametrize(("lat", "lng"), [(91.0, 0.0), (-90.5, 0.0), (0.0, 180.5), (float("nan"), 0.0)])
def test_geopoint_rejects_out_of_range(lat: float, lng: float) -> None:
    with pytest.raises(ValidationError):
        GeoPoint.of(lat, lng)


def test_geopoint_equality_tolerates_float_noise() -> None:
    assert GeoPoint.of(38.5, -120.2) == GeoPoint.of(3850000 / 1e5, -12020000 / 1e5)
    assert GeoPoint.of(38.5, -120.2) != GeoPoint.of(38.50001, -120.2)
    assert len({GeoPoint.of(1.0, 2.0), GeoPoint.of(1.0, 2.0)}) == 1


def test_geopoint_equal_points_hash_alike_across_rounding_boundary() -> None:
    a = GeoPoint.of(0.0000005004, 0.0)
    b = GeoPoint.of(0.0000004996, 0.0)

    assert a == b
    assert hash(a) == hash(b)
    assert len({a, b}) == 1
    assert {a: "pickup"}[b] == "pickup"


# ------------------------------------------------------------------
# Drivers
# ------------------------------------------------------------------


@pytest.mark.parametrize("payload", [{"id": "d1"}, {"_id": "d1"}, {"driverId": "d1"}, "d1"])
def test_candidate_ref_id_aliases(payload: object) -> None:
    assert DriverCandidateRef.model_validate(payload).id == "d1"


def test_candidate_ref_accepts_numeric_id() -> None:
    assert DriverCandidateRef.model_validate(42).id == "42"


@pytest.mark.parametrize("payload", [{}, {"id": ""}, {"id": None}, True])
def test_candidate_ref_requires_id(payload: object) -> None:
    with pytest.raises(ValidationError):
        DriverCandidateRef.model_validate(payload)


def test_driver_profile_parses_backend_shape() -> None:
    payload = {
        "_id": "65f0c1",
        "name": "Rahim",
        "phone_number": "+8801700000000",
        "vehicle_type": "Car",
        "vehicle_color": "White",
        "rate": "45.5",
        "currentLocation": {"latitude": "23.81", "longitude": 90.41},
        "pushToken": "ExponentPushToken[xyz]",
    }

    driver = DriverProfile.model_validate(payload)

    assert driver.id == "65f0c1"
    assert driver.rate == 45.5
    assert driver.current_location == GeoPoint.of(23.81, 90.41)
    assert driver.raw == payload
    assert "raw" not in driver.to_wire()
    assert driver.to_wire()["currentLocation"] == {"latitude": 23.81, "longitude": 90.41}


@pytest.mark.parametrize("rate", [None, "", "--", "abc", -5, float("inf")])
def test_driver_profile_unusable_rate_defaults_to_zero(rate: object) -> None:
    assert DriverProfile.model_validate({"id": "d1", "rate": rate}).rate == 0.0


@pytest.mark.parametrize("location", ["23.8,90.4", {"latitude": 123, "longitude": 90}, {"lat": None}, [1, 2]])
def test_driver_profile_unreadable_location_is_none(location: object) -> None:
    assert DriverProfile.model_validate({"id": "d1", "currentLocation": location}).current_location is None


# ------------------------------------------------------------------
# Dispatch messages
# ------------------------------------------------------------------


def test_ride_request_wire_shape() -> None:
    message = RideRequestMessage.at(GeoPoint.of(23.8103, 90.4125))
    assert message.to_wire() == {"type": "requestRide", "role": "user", "latitude": 23.8103, "longitude": 90.4125}


def test_parse_nearby_drivers() -> None:
    message = parse_dispatch_message(json.dumps({"type": "nearbyDrivers", "drivers": [{"id": "a"}, {"_id": "b"}]}))
    assert message.type == "nearbyDrivers"
    assert [ref.id for ref in parse_nearby_drivers(message).drivers] == ["a", "b"]


@pytest.mark.parametrize("text", ["", "nope", "[]", "42", '{"type": 7}', '{"drivers": []}'])
def test_parse_dispatch_message_rejects_malformed_frames(text: str) -> None:
    with pytest.raises(ParseError):
        parse_dispatch_message(text)


@pytest.mark.parametrize(
    "payload",
    [{"type": "nearbyDrivers"}, {"type": "nearbyDrivers", "drivers": {}}, {"type": "nearbyDrivers", "drivers": [{}]}],
)
def test_parse_nearby_drivers_rejects_invalid_lists(payload: dict[str, object]) -> None:
    with pytest.raises(ParseError):
        parse_nearby_drivers(parse_dispatch_message(json.dumps(payload)))


# ------------------------------------------------------------------
# Routes and fares
# ------------------------------------------------------------------


def test_fare_for_rate_rounds_to_cents() -> None:
    fare = FareEstimate.for_rate("d1", 1.711389, 50)
    assert fare.fare == 85.57
    assert fare.distance_km == 1.711389


def test_travel_times_for_mode() -> None:
    times = TravelTimes(driving="12 mins")
    assert times.for_mode("driving") == "12 mins"
    assert times.for_mode("walking") is None
    assert times.for_mode("teleport") is None


# ------------------------------------------------------------------
# Notification order data
# ------------------------------------------------------------------


def test_classify_order_data_variants() -> None:
    assert classify_order_data('{"id": 1}') == RawOrderData('{"id": 1}')
    assert classify_order_data({"id": 1}) == StructuredOrderData({"id": 1})
    assert isinstance(classify_order_data(None), MalformedOrderData)
    assert isinstance(classify_order_data(12), MalformedOrderData)


def test_resolve_order_data_decodes_once_or_twice() -> None:
    assert resolve_order_data(RawOrderData('{"id": 1}')) == StructuredOrderData({"id": 1})
    assert resolve_order_data(RawOrderData(json.dumps('{"id": 1}'))) == StructuredOrderData({"id": 1})
    assert isinstance(resolve_order_data(RawOrderData("{oops")), MalformedOrderData)
    assert isinstance(resolve_order_data(RawOrderData('"just text"')), MalformedOrderData)


def test_order_route_params_round_trip_through_json() -> None:
    order = OrderPayload(
        current_location=GeoPoint.of(23.8103, 90.4125),
        destination=GeoPoint.of(23.8, 90.4),
        distance_km=1.5,
        driver={"id": "d1"},
    )

    params = order.to_route_params()

    decoded = json.loads(params["orderData"])
    assert decoded["distance"] == "1.50"
    assert decoded["driver"] == {"id": "d1"}
    assert decoded["currentLocation"] == {"latitude": 23.8103, "longitude": 90.4125}


def test_order_defaults_to_sentinel_driver() -> None:
    order = OrderPayload()
    assert order.is_degraded
    assert order.driver_error == "Failed to parse driver data"
