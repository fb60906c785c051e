"""
JPL planetary ephemerides
=========================

Decoder for JPL DE binary ephemeris files (DE200/DE4xx "unix" binary layout)
and the trajectories that evaluate them.

File layout (all records have the same length, ncoeff doubles):

- record 0: header. Three 84-character title lines, 400 six-character
  constant names, start/end/step Julian dates, constant count, AU [km],
  Earth/Moon mass ratio, the 12x3 coefficient pointer table
  (offset, coefficients per component, sub-intervals), the DE number and
  the libration pointer triple.
- record 1: constant values.
- records 2...: Chebyshev coefficients. Each record starts with the Julian
  dates it covers, followed by the coefficient blocks of every body.

Positions are in km; the Moon is geocentric, every other body is relative to
the solar system barycenter.

Examples
--------
>>> from kosmos import EphemerisStore, JplObjectId
>>> eph = EphemerisStore.load("de406_1800-2100.dat")
>>> mars = eph.trajectory(JplObjectId.MARS)
>>> mars.position(0.0)  # SSB-relative position at J2000 [km]
"""

import logging
from enum import IntEnum
from pathlib import Path
from typing import Dict, Union
import numpy as np
from numpy.polynomial import chebyshev
from .constants import SECONDS_PER_DAY, jd_to_seconds, seconds_to_jd
from .errors import DatasetCorrupt, DatasetUnreadable
from .trajectory import Trajectory

log = logging.getLogger(__name__)


class JplObjectId(IntEnum):
    MERCURY = 0
    VENUS = 1
    EARTH_MOON_BARYCENTER = 2
    MARS = 3
    JUPITER = 4
    SATURN = 5
    URANUS = 6
    NEPTUNE = 7
    PLUTO = 8
    MOON = 9        # geocentric
    SUN = 10


# Sidereal periods [days], used as plotting hints
NOMINAL_PERIODS = {
    JplObjectId.MERCURY: 87.969,
    JplObjectId.VENUS: 224.701,
    JplObjectId.EARTH_MOON_BARYCENTER: 365.256,
    JplObjectId.MARS: 686.980,
    JplObjectId.JUPITER: 4332.589,
    JplObjectId.SATURN: 10759.22,
    JplObjectId.URANUS: 30685.4,
    JplObjectId.NEPTUNE: 60189.0,
    JplObjectId.PLUTO: 90560.0,
    JplObjectId.MOON: 27.321661,
    JplObjectId.SUN: 0.0,
}

# Header field offsets [bytes]
_TITLE_LEN = 84
_N_NAMES = 400
_NAME_LEN = 6
_SS_OFFSET = 3*_TITLE_LEN + _N_NAMES*_NAME_LEN   # 2652
_NCON_OFFSET = _SS_OFFSET + 24
_AU_OFFSET = _NCON_OFFSET + 4
_EMRAT_OFFSET = _AU_OFFSET + 8
_IPT_OFFSET = _EMRAT_OFFSET + 8
_NUMDE_OFFSET = _IPT_OFFSET + 36*4
_LPT_OFFSET = _NUMDE_OFFSET + 4
HEADER_SIZE = _LPT_OFFSET + 12                    # 2856

_N_BODIES = len(JplObjectId)
_NUTATION_BLOCK = 11


class EphemerisStore:
    """
    Decoded JPL ephemeris: owns the coefficient table for its lifetime.

    Use EphemerisStore.load() rather than constructing directly.

    Attributes
    ----------
    de_number : int
        Development ephemeris number (e.g. 406)
    au : float
        Astronomical unit used by the ephemeris [km]
    earth_moon_mass_ratio : float
        Earth mass / Moon mass
    start_time, end_time : float
        Coverage [s since J2000, TDB]
    """

    def __init__(self, *, title: str, de_number: int, au: float,
                 earth_moon_mass_ratio: float, start_jd: float, end_jd: float,
                 step_days: float, pointers: np.ndarray, records: np.ndarray,
                 constants: Dict[str, float]):
        self._title = title
        self._de_number = de_number
        self._au = au
        self._emrat = earth_moon_mass_ratio
        self._start_time = jd_to_seconds(start_jd)
        self._end_time = jd_to_seconds(end_jd)
        self._step = step_days * SECONDS_PER_DAY
        self._pointers = pointers
        self._records = records
        self._records.flags.writeable = False
        self._constants = constants
        self._trajectories: Dict[JplObjectId, "EphemerisTrajectory"] = {}

    # ========== LOADING ==========
    @classmethod
    def load(cls, path: Union[str, Path]) -> "EphemerisStore":
        """
        Read and validate an ephemeris file.

        Raises
        ------
        DatasetUnreadable
            If the file cannot be opened or read
        DatasetCorrupt
            If the file's declared structure is inconsistent
        """
        path = Path(path)
        try:
            data = path.read_bytes()
        except OSError as exc:
            raise DatasetUnreadable(path, f"cannot read ephemeris file ({exc})") from exc
        store = cls.from_bytes(data, source=path)
        log.info("Loaded DE%d ephemeris from %s, JD %.1f to %.1f",
                 store.de_number, path, store.start_jd, store.end_jd)
        return store

    @classmethod
    def from_bytes(cls, data: bytes, source="<bytes>") -> "EphemerisStore":
        """Decode an in-memory ephemeris image. Raises DatasetCorrupt."""
        def corrupt(message):
            return DatasetCorrupt(source, message)

        if len(data) < HEADER_SIZE:
            raise corrupt(f"file too short for header ({len(data)} bytes)")
        endian = cls._detect_byte_order(data)
        if endian is None:
            raise corrupt("implausible DE number in header")

        i4 = np.dtype(endian + 'i4')
        f8 = np.dtype(endian + 'f8')
        start_jd, end_jd, step = np.frombuffer(data, f8, 3, _SS_OFFSET)
        ncon = int(np.frombuffer(data, i4, 1, _NCON_OFFSET)[0])
        au = float(np.frombuffer(data, f8, 1, _AU_OFFSET)[0])
        emrat = float(np.frombuffer(data, f8, 1, _EMRAT_OFFSET)[0])
        ipt = np.frombuffer(data, i4, 36, _IPT_OFFSET).reshape(12, 3)
        de_number = int(np.frombuffer(data, i4, 1, _NUMDE_OFFSET)[0])
        lpt = np.frombuffer(data, i4, 3, _LPT_OFFSET)
        pointers = np.vstack([ipt, lpt]).astype(int)

        if not (np.isfinite(start_jd) and np.isfinite(end_jd) and np.isfinite(step)):
            raise corrupt("non-finite time coverage")
        if step <= 0 or start_jd >= end_jd:
            raise corrupt(f"invalid time coverage [{start_jd}, {end_jd}] step {step}")
        n_steps = (end_jd - start_jd) / step
        n_records = int(round(n_steps))
        if abs(n_steps - n_records) > 1e-6 or n_records < 1:
            raise corrupt("coverage is not a whole number of records")
        if not (np.isfinite(emrat) and emrat > 0):
            raise corrupt(f"invalid Earth/Moon mass ratio {emrat}")
        if not (np.isfinite(au) and au > 0):
            raise corrupt(f"invalid AU {au}")
        if ncon < 0:
            raise corrupt(f"invalid constant count {ncon}")

        ncoeff = cls._record_length(pointers, corrupt)
        record_bytes = ncoeff * 8
        if record_bytes < HEADER_SIZE:
            raise corrupt(f"record length {ncoeff} too short to hold header")
        if ncon * 8 > record_bytes:
            raise corrupt(f"{ncon} constants do not fit in one record")
        available = (len(data) - 2*record_bytes) // record_bytes
        if available < n_records:
            raise corrupt(f"file holds {max(available, 0)} data records, "
                          f"coverage requires {n_records}")

        records = np.frombuffer(data, f8, n_records*ncoeff,
                                2*record_bytes).reshape(n_records, ncoeff).astype(float)
        spans = records[:, :2]
        if not np.all(np.isfinite(spans)):
            raise corrupt("non-finite record time span")
        if abs(spans[0, 0] - start_jd) > 1e-6 or abs(spans[-1, 1] - end_jd) > 1e-6:
            raise corrupt("data records do not match declared coverage")
        if not np.allclose(spans[:, 1] - spans[:, 0], step, rtol=0, atol=1e-6):
            raise corrupt("data record spans differ from declared step")
        if n_records > 1 and not np.allclose(spans[1:, 0], spans[:-1, 1], rtol=0, atol=1e-6):
            raise corrupt("data records are not contiguous")

        title = b"".join(data[k*_TITLE_LEN:(k+1)*_TITLE_LEN].rstrip()
                         for k in range(3)).decode('ascii', errors='replace').strip()
        names = [data[3*_TITLE_LEN + k*_NAME_LEN:3*_TITLE_LEN + (k+1)*_NAME_LEN]
                 .decode('ascii', errors='replace').strip()
                 for k in range(min(ncon, _N_NAMES))]
        values = np.frombuffer(data, f8, len(names), record_bytes) if names else []
        constants = {name: float(value) for name, value in zip(names, values) if name}

        return cls(title=title, de_number=de_number, au=au,
                   earth_moon_mass_ratio=emrat, start_jd=float(start_jd),
                   end_jd=float(end_jd), step_days=float(step),
                   pointers=pointers, records=records, constants=constants)

    @staticmethod
    def _detect_byte_order(data: bytes):
        for endian in ('<', '>'):
            numde = int(np.frombuffer(data, np.dtype(endian + 'i4'), 1, _NUMDE_OFFSET)[0])
            if 0 < numde < 10000:
                return endian
        return None

    @staticmethod
    def _record_length(pointers: np.ndarray, corrupt) -> int:
        """Coefficient count per record implied by the pointer table."""
        end = 2
        for block, (offset, ncf, nsub) in enumerate(pointers):
            required = block < _N_BODIES
            if not required and offset == 0 and ncf == 0 and nsub == 0:
                continue  # nutations/librations absent
            if offset < 3 or ncf < 1 or nsub < 1:
                raise corrupt(f"invalid coefficient pointers {pointers[block].tolist()} "
                              f"for block {block}")
            ncomp = 2 if block == _NUTATION_BLOCK else 3
            end = max(end, offset - 1 + ncf*ncomp*nsub)
        return end

    # ========== PROPERTY ACCESS ==========
    @property
    def title(self) -> str:
        return self._title

    @property
    def de_number(self) -> int:
        return self._de_number

    @property
    def au(self) -> float:
        return self._au

    @property
    def earth_moon_mass_ratio(self) -> float:
        return self._emrat

    @property
    def start_time(self) -> float:
        return self._start_time

    @property
    def end_time(self) -> float:
        return self._end_time

    @property
    def start_jd(self) -> float:
        return seconds_to_jd(self._start_time)

    @property
    def end_jd(self) -> float:
        return seconds_to_jd(self._end_time)

    @property
    def record_count(self) -> int:
        return self._records.shape[0]

    def constant(self, name: str) -> float:
        """Value of a named header constant, e.g. 'EMRAT'. Raises KeyError."""
        return self._constants[name]

    def constant_names(self):
        return list(self._constants)

    # ========== EVALUATION ==========
    def trajectory(self, body_id: JplObjectId) -> "EphemerisTrajectory":
        """Trajectory of a body; the same object is returned on every call."""
        body_id = JplObjectId(body_id)
        if body_id not in self._trajectories:
            self._trajectories[body_id] = EphemerisTrajectory(self, body_id)
        return self._trajectories[body_id]

    def state(self, body_id: JplObjectId, t: float) -> np.ndarray:
        """
        Chebyshev-interpolated state of a body at time t.

        Returns
        -------
        np.ndarray
            [x, y, z, vx, vy, vz] in km and km/s

        Raises
        ------
        ValueError
            If t lies outside the ephemeris coverage
        """
        if not self._start_time <= t <= self._end_time:
            raise ValueError(f"Time {t} outside ephemeris coverage "
                             f"[{self._start_time}, {self._end_time}]")
        index = min(int((t - self._start_time) // self._step), self.record_count - 1)
        record = self._records[index]
        offset, ncf, nsub = self._pointers[int(body_id)]

        record_start = self._start_time + index*self._step
        sub_length = self._step / nsub
        sub = min(max(int((t - record_start) // sub_length), 0), nsub - 1)
        # normalized Chebyshev time on [-1, 1]
        tc = 2*(t - record_start - sub*sub_length)/sub_length - 1

        first = offset - 1 + sub*ncf*3
        coeffs = record[first:first + ncf*3].reshape(3, ncf).T
        position = chebyshev.chebval(tc, coeffs)
        velocity = chebyshev.chebval(tc, chebyshev.chebder(coeffs)) * (2/sub_length)
        return np.concatenate([position, velocity])

    def __repr__(self):
        return (f"EphemerisStore(DE{self._de_number}, "
                f"JD {self.start_jd:.1f} to {self.end_jd:.1f})")


class EphemerisTrajectory(Trajectory):
    """
    A body's trajectory as tabulated by an EphemerisStore.

    Borrows the store's coefficients; valid over the store's coverage.
    """

    def __init__(self, store: EphemerisStore, body_id: JplObjectId):
        super().__init__(period=NOMINAL_PERIODS[body_id] * SECONDS_PER_DAY,
                         valid_range=(store.start_time, store.end_time))
        self._store = store
        self._body_id = JplObjectId(body_id)

    @property
    def body_id(self) -> JplObjectId:
        return self._body_id

    @property
    def store(self) -> EphemerisStore:
        return self._store

    def state(self, t: float) -> np.ndarray:
        return self._store.state(self._body_id, t)

    def __repr__(self):
        return f"EphemerisTrajectory({self._body_id.name}, period={self._period})"
