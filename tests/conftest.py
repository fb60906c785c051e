"""
Shared fixtures.

The ephemeris fixtures write a small synthetic JPL DE file: two 16-day
records around J2000, 12 Chebyshev coefficients per component, one
sub-interval per record for every body except the Moon, which has two.
Each series is linear in normalized time, so expected states are easy to
compute by hand:

    position = C0 + C1 * tc,   velocity = C1 * 2 / sub_interval_length

with C0 and C1 given by DEFile.c0() and DEFile.c1().
"""

import numpy as np
import pytest

J2000_JD = 2451545.0
N_COEFF = 12
MOON = 9
NUTATION = 11


class DEFile:
    """Layout and contents of the synthetic ephemeris."""
    start_jd = J2000_JD - 8.0
    step = 16.0
    n_records = 2
    emrat = 81.30056
    au = 149597870.7
    de_number = 405
    title = "SYNTHETIC EPHEMERIS FOR TESTS"

    def __init__(self):
        self.pointers = np.zeros((13, 3), dtype=int)
        offset = 3
        for block in range(11):
            nsub = 2 if block == MOON else 1
            self.pointers[block] = (offset, N_COEFF, nsub)
            offset += N_COEFF * 3 * nsub
        self.ncoeff = offset - 1
        self.end_jd = self.start_jd + self.n_records*self.step

    @staticmethod
    def c0(body, component, sub, record):
        return 1000.0*(body + 1) + 100.0*component + 10.0*sub + record

    @staticmethod
    def c1(body, component):
        return float((body + 1) * (component + 1))

    def sub_length(self, body):
        """Sub-interval length [s]."""
        nsub = self.pointers[body][2]
        return self.step * 86400.0 / nsub

    def record(self, index):
        values = np.zeros(self.ncoeff)
        values[0] = self.start_jd + index*self.step
        values[1] = values[0] + self.step
        for body in range(11):
            offset, ncf, nsub = self.pointers[body]
            for sub in range(nsub):
                for comp in range(3):
                    first = offset - 1 + (sub*3 + comp)*ncf
                    values[first] = self.c0(body, comp, sub, index)
                    values[first + 1] = self.c1(body, comp)
        return values

    def to_bytes(self, endian='<', n_records=None):
        i4 = np.dtype(endian + 'i4')
        f8 = np.dtype(endian + 'f8')
        record_bytes = self.ncoeff * 8
        names = ['DENUM', 'EMRAT', 'AU']

        header = bytearray(record_bytes)
        header[0:84] = self.title.ljust(84).encode('ascii')
        header[84:252] = b' ' * 168
        names_bytes = ''.join(n.ljust(6) for n in names).ljust(2400).encode('ascii')
        header[252:2652] = names_bytes
        header[2652:2676] = np.array([self.start_jd, self.end_jd, self.step], f8).tobytes()
        header[2676:2680] = np.array([len(names)], i4).tobytes()
        header[2680:2696] = np.array([self.au, self.emrat], f8).tobytes()
        header[2696:2840] = self.pointers[:12].astype(i4).tobytes()
        header[2840:2844] = np.array([self.de_number], i4).tobytes()
        header[2844:2856] = self.pointers[12].astype(i4).tobytes()

        constants = np.zeros(self.ncoeff)
        constants[:3] = [self.de_number, self.emrat, self.au]

        n_records = self.n_records if n_records is None else n_records
        data = np.concatenate([self.record(k) for k in range(n_records)]) if n_records else np.array([])
        return bytes(header) + constants.astype(f8).tobytes() + data.astype(f8).tobytes()


@pytest.fixture
def de_layout():
    """Description of the synthetic ephemeris."""
    return DEFile()


@pytest.fixture
def de_file(tmp_path, de_layout):
    """Path of a little-endian synthetic ephemeris file."""
    path = tmp_path / "synthetic.405"
    path.write_bytes(de_layout.to_bytes('<'))
    return path


@pytest.fixture
def ephemeris(de_file):
    """EphemerisStore loaded from the synthetic file."""
    from kosmos import EphemerisStore
    return EphemerisStore.load(de_file)


@pytest.fixture
def builtins(ephemeris):
    """BuiltinRegistry with the solar system builtins of the synthetic ephemeris."""
    from kosmos import BuiltinRegistry, register_solar_system_builtins
    return register_solar_system_builtins(BuiltinRegistry(), ephemeris)
