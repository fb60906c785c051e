'''Reference frames in which trajectories and rotations are expressed'''

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING
import numpy as np
from .constants import J2000_OBLIQUITY
from .utils import rot_x
if TYPE_CHECKING:
    from .entity import Entity

class Frame(ABC):
    """A frame's orientation relative to EquatorJ2000 as a function of time."""

    @abstractmethod
    def orientation(self, t: float) -> np.ndarray:
        """Rotation matrix from frame axes to EquatorJ2000 axes at time t."""


class InertialFrame(Frame):
    """A fixed frame."""

    def __init__(self, name: str, matrix):
        self._name = name
        self._matrix = np.array(matrix, dtype=float)
        self._matrix.flags.writeable = False

    @property
    def name(self) -> str:
        return self._name

    def orientation(self, t: float) -> np.ndarray:
        return self._matrix

    def __repr__(self):
        return f"InertialFrame('{self._name}')"


EQUATOR_J2000 = InertialFrame('EquatorJ2000', np.eye(3))
ECLIPTIC_J2000 = InertialFrame('EclipticJ2000', rot_x(J2000_OBLIQUITY))

INERTIAL_FRAMES = {
    'EquatorJ2000': EQUATOR_J2000,
    'ICRF': EQUATOR_J2000,
    'EclipticJ2000': ECLIPTIC_J2000,
}


def inertial_frame(name: str) -> InertialFrame:
    """Look up an inertial frame by name."""
    try:
        return INERTIAL_FRAMES[name]
    except KeyError:
        raise ValueError(f"Unknown inertial frame '{name}'. "
                         f"Use: {list(INERTIAL_FRAMES.keys())}") from None


class BodyFixedFrame(Frame):
    """Frame that rotates with a body."""

    def __init__(self, body: "Entity"):
        self._body = body

    @property
    def body(self) -> "Entity":
        return self._body

    def orientation(self, t: float) -> np.ndarray:
        return self._body.orientation(t)

    def __repr__(self):
        return f"BodyFixedFrame('{self._body.name}')"
