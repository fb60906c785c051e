'''Rotation models: functions from simulation time to body orientation'''

from abc import ABC, abstractmethod
import numpy as np
from .constants import SECONDS_PER_DAY
from .utils import rot_x, rot_z, validation_error

class RotationModel(ABC):
    """
    Orientation of a body as a function of time.

    orientation(t) returns the 3x3 matrix taking body-fixed coordinates to
    the body's frame at simulation time t (TDB seconds since J2000).
    """

    @abstractmethod
    def orientation(self, t: float) -> np.ndarray:
        """Rotation matrix from body-fixed axes at time t."""

    def angular_velocity(self, t: float, dt: float = 1.0) -> np.ndarray:
        """
        Angular velocity vector [rad/s] in the body's frame.

        Estimated by central differences; subclasses with a closed form
        override this.
        """
        R = self.orientation(t)
        R_dot = (self.orientation(t + dt) - self.orientation(t - dt)) / (2*dt)
        W = R_dot @ R.T
        return np.array([W[2, 1], W[0, 2], W[1, 0]])

    def __call__(self, t: float) -> np.ndarray:
        return self.orientation(t)


class FixedRotationModel(RotationModel):
    """
    Constant orientation given by a unit quaternion [w, x, y, z].
    The quaternion is normalized on construction.
    """

    def __init__(self, quaternion=(1.0, 0.0, 0.0, 0.0)):
        q = np.asarray(quaternion, dtype=float)
        if q.shape != (4,):
            raise ValueError(f"Quaternion must have 4 elements, got shape {q.shape}")
        norm = np.linalg.norm(q)
        if norm == 0 or not np.isfinite(norm):
            raise ValueError(f"Quaternion must be finite and nonzero, got {q.tolist()}")
        w, x, y, z = q / norm
        self._matrix = np.array([
            [1 - 2*(y*y + z*z), 2*(x*y - w*z),     2*(x*z + w*y)],
            [2*(x*y + w*z),     1 - 2*(x*x + z*z), 2*(y*z - w*x)],
            [2*(x*z - w*y),     2*(y*z + w*x),     1 - 2*(x*x + y*y)]
        ])
        self._matrix.flags.writeable = False

    @classmethod
    def from_angles(cls, inclination: float = 0.0, ascending_node: float = 0.0,
                    meridian_angle: float = 0.0):
        """Fixed orientation Rz(node) Rx(inclination) Rz(meridian), angles in rad."""
        model = cls()
        model._matrix = rot_z(ascending_node) @ rot_x(inclination) @ rot_z(meridian_angle)
        model._matrix.flags.writeable = False
        return model

    def orientation(self, t: float) -> np.ndarray:
        return self._matrix.copy()

    def angular_velocity(self, t: float, dt: float = 1.0) -> np.ndarray:
        return np.zeros(3)


class UniformRotationModel(RotationModel):
    """
    Rotation at a constant rate about a fixed pole.

    Parameters
    ----------
    period : float
        Rotation period [s]; negative for retrograde rotation
    meridian_angle : float
        Prime meridian angle at epoch [rad]
    inclination : float
        Tilt of the pole from the frame's z-axis [rad]
    ascending_node : float
        Longitude of the equator's ascending node [rad]
    epoch : float
        Epoch of meridian_angle [s since J2000]
    """

    def __init__(self, period: float, meridian_angle: float = 0.0,
                 inclination: float = 0.0, ascending_node: float = 0.0,
                 epoch: float = 0.0):
        if period == 0 or not np.isfinite(period):
            validation_error(f"Rotation period must be finite and nonzero, got {period}")
            self._rate = 0.0
        else:
            self._rate = 2*np.pi / period
        self._period = float(period)
        self._meridian_angle = float(meridian_angle)
        self._epoch = float(epoch)
        self._pole = rot_z(ascending_node) @ rot_x(inclination)

    @property
    def period(self) -> float:
        return self._period

    def orientation(self, t: float) -> np.ndarray:
        W = self._meridian_angle + self._rate*(t - self._epoch)
        return self._pole @ rot_z(W)

    def angular_velocity(self, t: float, dt: float = 1.0) -> np.ndarray:
        return self._rate * self._pole[:, 2]


class IAULunarRotationModel(RotationModel):
    """
    IAU WGCCRE model of the lunar pole and prime meridian, relative to
    EquatorJ2000 (ICRF).
    """
    # E1..E13 arguments: constant [deg] and rate [deg/day]
    _ARGS = np.array([
        [125.045, -0.0529921],
        [250.089, -0.1059842],
        [260.008, 13.0120009],
        [176.625, 13.3407154],
        [357.529, 0.9856003],
        [311.589, 26.4057084],
        [134.963, 13.0649930],
        [276.617, 0.3287146],
        [34.226, 1.7484877],
        [15.134, -0.1589763],
        [119.743, 0.0036096],
        [239.961, 0.1643573],
        [25.053, 12.9590088],
    ])
    # periodic term amplitudes [deg] for E1..E13
    _ALPHA_SIN = np.array([-3.8787, -0.1204, 0.0700, -0.0172, 0.0, 0.0072,
                           0.0, 0.0, 0.0, -0.0052, 0.0, 0.0, 0.0043])
    _DELTA_COS = np.array([1.5419, 0.0239, -0.0278, 0.0068, 0.0, -0.0029,
                           0.0009, 0.0, 0.0, 0.0008, 0.0, 0.0, -0.0009])
    _W_SIN = np.array([3.5610, 0.1208, -0.0642, 0.0158, 0.0252, -0.0066,
                       -0.0047, -0.0046, 0.0028, 0.0052, 0.0040, 0.0019, -0.0044])

    def pole_and_meridian(self, t: float):
        """Pole right ascension, declination and meridian angle [rad] at t."""
        d = t / SECONDS_PER_DAY
        T = d / 36525.0
        E = np.radians(self._ARGS[:, 0] + self._ARGS[:, 1]*d)
        alpha = 269.9949 + 0.0031*T + np.dot(self._ALPHA_SIN, np.sin(E))
        delta = 66.5392 + 0.0130*T + np.dot(self._DELTA_COS, np.cos(E))
        W = 38.3213 + 13.17635815*d - 1.4e-12*d**2 + np.dot(self._W_SIN, np.sin(E))
        return np.radians(alpha), np.radians(delta), np.radians(W)

    def orientation(self, t: float) -> np.ndarray:
        alpha, delta, W = self.pole_and_meridian(t)
        return rot_z(alpha + np.pi/2) @ rot_x(np.pi/2 - delta) @ rot_z(W)
