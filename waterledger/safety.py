"""
Safety verdict for water-quality measurements.

Measurements use fixed-point integers:
- pH is scaled x100 (7.00 -> 700)
- temperature is scaled x10 in degrees Celsius (25.0 -> 250)
- tds is parts per million, turbidity is NTU

The verdict depends on pH, tds and turbidity only. Temperature is recorded
alongside but never participates.
"""

from __future__ import annotations

from .errors import InvalidParameter

# Verdict bounds
SAFE_PH_MIN = 650
SAFE_PH_MAX = 850
SAFE_TDS_MAX = 1000
SAFE_TURBIDITY_MAX = 5

# Accepted input ranges
PH_MAX = 1400
TDS_MAX = 2000
TURBIDITY_MAX = 1000
TEMPERATURE_MAX = 1000


def evaluate(ph: int, tds: int, turbidity: int) -> bool:
    """Return True iff the measurement is safe for distribution."""
    return (
        SAFE_PH_MIN <= ph <= SAFE_PH_MAX
        and tds <= SAFE_TDS_MAX
        and turbidity <= SAFE_TURBIDITY_MAX
    )


def require_int(field: str, value: object) -> int:
    """Reject non-integer inputs (bool included) as InvalidParameter."""
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidParameter(field, value, "an integer")
    return value


def validate_measurement(ph: int, tds: int, turbidity: int, temperature: int) -> None:
    """Check every measurement against its accepted range.

    Raises InvalidParameter naming the first offending field, checked in
    the order ph, tds, turbidity, temperature.
    """
    ph = require_int("ph", ph)
    tds = require_int("tds", tds)
    turbidity = require_int("turbidity", turbidity)
    temperature = require_int("temperature", temperature)

    if not 0 < ph <= PH_MAX:
        raise InvalidParameter("ph", ph, f"0 < ph <= {PH_MAX}")
    if not 0 <= tds <= TDS_MAX:
        raise InvalidParameter("tds", tds, f"0 <= tds <= {TDS_MAX}")
    if not 0 <= turbidity <= TURBIDITY_MAX:
        raise InvalidParameter("turbidity", turbidity, f"0 <= turbidity <= {TURBIDITY_MAX}")
    if not 0 < temperature <= TEMPERATURE_MAX:
        raise InvalidParameter("temperature", temperature, f"0 < temperature <= {TEMPERATURE_MAX}")
