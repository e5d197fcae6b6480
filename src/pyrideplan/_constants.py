"""Internal constants shared across the library."""

USER_AGENT = "pyrideplan/1"

EARTH_RADIUS_KM = 6371.0

#: Delay between a dispatch socket loss and the next connect attempt.
RECONNECT_DELAY_SECONDS = 5.0

DIRECTIONS_ENDPOINT = "/api/v1/directions"
DRIVERS_ENDPOINT = "/driver/get-drivers-data"
GEOCODE_ENDPOINT = "/api/v1/geocode"
DISTANCE_MATRIX_ENDPOINT = "/api/v1/distance-matrix"

TRAVEL_MODES: tuple[str, ...] = ("driving", "walking", "bicycling", "transit")

#: Driver value substituted when a notification's orderData cannot be decoded.
DRIVER_PARSE_ERROR_MESSAGE = "Failed to parse driver data"

# Dispatch channel message types
MSG_REQUEST_RIDE = "requestRide"
MSG_NEARBY_DRIVERS = "nearbyDrivers"
ROLE_USER = "user"

# ------------------------------------------------------------------
# Duration text units (minutes per unit)
# ------------------------------------------------------------------

DURATION_UNIT_MINUTES: dict[str, float] = {
    "day": 1440.0,
    "days": 1440.0,
    "d": 1440.0,
    "hour": 60.0,
    "hours": 60.0,
    "hr": 60.0,
    "hrs": 60.0,
    "h": 60.0,
    "min": 1.0,
    "mins": 1.0,
    "minute": 1.0,
    "minutes": 1.0,
    "m": 1.0,
    "sec": 1.0 / 60.0,
    "secs": 1.0 / 60.0,
    "second": 1.0 / 60.0,
    "seconds": 1.0 / 60.0,
    "s": 1.0 / 60.0,
}

ARRIVAL_TIME_FORMAT = "%I:%M %p"
