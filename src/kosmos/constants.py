"""
Time and unit constants, and conversions between them.

Simulation time is seconds on the TDB scale measured from J2000.0.
"""

import re
import numpy as np

J2000_JD = 2451545.0              # Julian date of J2000.0 (TDB)
SECONDS_PER_DAY = 86400.0
DAYS_PER_YEAR = 365.25            # Julian year
AU_KM = 149597870.7               # IAU 2012 astronomical unit [km]
J2000_OBLIQUITY = np.radians(23.4392911)

DISTANCE_UNITS = {
    'km': 1.0,
    'm': 1.0e-3,
    'au': AU_KM,
}
TIME_UNITS = {
    's': 1.0,
    'min': 60.0,
    'h': 3600.0,
    'd': SECONDS_PER_DAY,
    'y': DAYS_PER_YEAR * SECONDS_PER_DAY,
}
ANGLE_UNITS = {
    'rad': 1.0,
    'deg': np.pi / 180.0,
}

_QUANTITY_RE = re.compile(r'^\s*([-+]?(?:\d+\.?\d*|\.\d+)(?:[eE][-+]?\d+)?)\s*([A-Za-z]*)\s*$')


def jd_to_seconds(jd: float) -> float:
    """Julian date (TDB) to seconds since J2000.0."""
    return (jd - J2000_JD) * SECONDS_PER_DAY


def seconds_to_jd(t: float) -> float:
    """Seconds since J2000.0 to Julian date (TDB)."""
    return J2000_JD + t / SECONDS_PER_DAY


def parse_quantity(value, units: dict, default_unit: str) -> float:
    """
    Convert a catalog quantity to the base unit of a unit table.

    Parameters
    ----------
    value : float, int or str
        Bare number (interpreted in default_unit) or a string such as
        '384400 km', '27.32 d' or '1.5au'
    units : dict
        Unit name -> scale to base unit (DISTANCE_UNITS, TIME_UNITS, ANGLE_UNITS)
    default_unit : str
        Unit assumed for bare numbers and unitless strings

    Returns
    -------
    float
        Value in the base unit of the table (km, s or rad)

    Raises
    ------
    ValueError
        If the value is not a number or the unit is unknown
    """
    if isinstance(value, bool):
        raise ValueError(f"Expected a quantity, got boolean {value}")
    if isinstance(value, (int, float)):
        return float(value) * units[default_unit]
    if isinstance(value, str):
        match = _QUANTITY_RE.match(value)
        if match is None:
            raise ValueError(f"Cannot parse quantity '{value}'")
        number, unit = match.groups()
        unit = unit or default_unit
        if unit not in units:
            raise ValueError(f"Unknown unit '{unit}' in '{value}'. "
                             f"Use: {list(units.keys())}")
        return float(number) * units[unit]
    raise ValueError(f"Expected a quantity, got {type(value).__name__}")
