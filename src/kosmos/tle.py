'''Two-line element sets
Parsing of NORAD TLE sets into SGP4-propagated trajectories'''

from dataclasses import dataclass, field
from typing import Dict, Union
import numpy as np
from sgp4.api import Satrec
from sgp4.io import verify_checksum
from .constants import J2000_JD, SECONDS_PER_DAY, jd_to_seconds
from .trajectory import Trajectory
from .utils import validation_error


class TleTrajectory(Trajectory):
    """
    SGP4 propagation of one satellite's mean elements.

    States are relative to Earth's center. SGP4 works in TEME, which is
    treated as EquatorJ2000, and the UTC times it expects are taken as TDB.

    Parameters
    ----------
    satrec : sgp4.api.Satrec
        Initialised satellite record
    """

    def __init__(self, satrec: Satrec):
        # no_kozai is in rad/min
        super().__init__(period=2*np.pi / satrec.no_kozai * 60.0)
        self._satrec = satrec

    @property
    def satrec(self) -> Satrec:
        return self._satrec

    @property
    def epoch(self) -> float:
        """Element epoch [s since J2000]."""
        return jd_to_seconds(self._satrec.jdsatepoch) + self._satrec.jdsatepochF * SECONDS_PER_DAY

    def state(self, t: float) -> np.ndarray:
        error, r, v = self._satrec.sgp4(J2000_JD, t / SECONDS_PER_DAY)
        if error != 0:
            raise RuntimeError(f"SGP4 propagation error {error} at t = {t}")
        return np.concatenate([r, v])

    def evaluate(self, times: Union[float, np.ndarray, list]) -> np.ndarray:
        if np.isscalar(times):
            return self.state(float(times))
        times = np.asarray(times, dtype=float)
        jd = np.full(times.shape, J2000_JD)
        errors, r, v = self._satrec.sgp4_array(jd, times / SECONDS_PER_DAY)
        if np.any(errors != 0):
            raise RuntimeError(f"SGP4 propagation error {errors[errors != 0][0]}")
        return np.hstack([r, v])

    def __repr__(self):
        return f"TleTrajectory(satnum={self._satrec.satnum}, period={self._period:.1f})"


@dataclass(frozen=True)
class TleRecord:
    """
    One satellite from a TLE set.

    Attributes
    ----------
    name : str
        Satellite name (title line), or the catalog number if untitled
    catalog_number : str
        NORAD catalog number
    line1, line2 : str
        The element lines
    satrec : sgp4.api.Satrec
        SGP4 record built from the lines
    """
    name: str
    catalog_number: str
    line1: str
    line2: str
    satrec: Satrec = field(compare=False, repr=False)

    @property
    def epoch(self) -> float:
        """Element epoch [s since J2000]; the UTC epoch is used as TDB."""
        return jd_to_seconds(self.satrec.jdsatepoch) + self.satrec.jdsatepochF * SECONDS_PER_DAY

    @property
    def inclination(self) -> float:
        return self.satrec.inclo

    @property
    def eccentricity(self) -> float:
        return self.satrec.ecco

    @property
    def mean_motion(self) -> float:
        """Kozai mean motion [rad/s]."""
        return self.satrec.no_kozai / 60.0

    @property
    def semi_major_axis(self) -> float:
        """Semi-major axis [km] recovered by SGP4 initialisation."""
        return self.satrec.a * self.satrec.radiusearthkm

    def to_trajectory(self) -> TleTrajectory:
        return TleTrajectory(self.satrec)


def parse_tle_lines(line1: str, line2: str, name: str = None) -> TleRecord:
    """
    Parse the two element lines of one satellite.

    Raises
    ------
    ValueError
        If the lines are malformed
    """
    line1, line2 = line1.rstrip(), line2.rstrip()
    if len(line1) < 69 or len(line2) < 69:
        raise ValueError("TLE lines must be 69 characters")
    if not (line1.startswith('1 ') and line2.startswith('2 ')):
        raise ValueError("TLE lines must start with '1 ' and '2 '")
    try:
        verify_checksum(line1, line2)
    except ValueError as exc:
        validation_error(f"TLE checksum mismatch: {exc}")

    satrec = Satrec.twoline2rv(line1, line2)
    if satrec.error != 0 or not satrec.no_kozai > 0:
        raise ValueError(f"Malformed TLE elements (SGP4 error {satrec.error})")
    catalog_number = line1[2:7].strip()
    return TleRecord(name=name or catalog_number, catalog_number=catalog_number,
                     line1=line1, line2=line2, satrec=satrec)


def parse_tle_set(text: str) -> Dict[str, TleRecord]:
    """
    Parse a TLE set in two- or three-line format.

    Returns
    -------
    dict
        Satellite name -> TleRecord. Records are also reachable by
        catalog number.

    Raises
    ------
    ValueError
        If a line 1 is not followed by its line 2
    """
    records = {}
    lines = [line.rstrip() for line in text.splitlines() if line.strip()]
    name = None
    k = 0
    while k < len(lines):
        line = lines[k]
        if line.startswith('1 ') and len(line) >= 69:
            if k + 1 >= len(lines) or not lines[k+1].startswith('2 '):
                raise ValueError(f"TLE line 1 without line 2: {line}")
            record = parse_tle_lines(line, lines[k+1], name)
            records[record.name] = record
            records.setdefault(record.catalog_number, record)
            name = None
            k += 2
        else:
            name = line.strip()
            if name.startswith('0 '):
                name = name[2:].strip()
            k += 1
    return records
