'''Resolved bodies of a universe catalog
Entity, geometry and BodyInfo definitions'''

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple
import numpy as np
from .frames import EQUATOR_J2000, BodyFixedFrame, Frame
from .rotation import RotationModel
from .trajectory import FixedPointTrajectory, Trajectory

"""
Geometry descriptions. Rendering is not done here; a geometry records the
external resources (textures, meshes) it refers to and which of them have
arrived.
"""
@dataclass
class Geometry:
    """
    Base geometry.

    Attributes
    ----------
    pending : set of str
        Resource identifiers referenced but not yet available
    payloads : dict
        Resource identifier -> payload received through the update path
    """
    pending: set = field(default_factory=set, init=False)
    payloads: Dict[str, object] = field(default_factory=dict, init=False)

    def resource_references(self) -> List[Tuple[str, str]]:
        """(kind, reference) pairs of the external resources this geometry uses."""
        return []

    def mark_pending(self, resource_id: str):
        self.pending.add(resource_id)

    def mark_available(self, resource_id: str, payload=None):
        """Record an arrived resource. Safe to call repeatedly."""
        self.pending.discard(resource_id)
        self.payloads[resource_id] = payload

    @property
    def is_complete(self) -> bool:
        return not self.pending


@dataclass
class Globe(Geometry):
    """
    Ellipsoidal body.

    Attributes
    ----------
    radii : tuple of float
        Equatorial, equatorial and polar radii [km]
    base_map : str, optional
        Texture reference (file name or URL)
    """
    radii: Tuple[float, float, float] = (1.0, 1.0, 1.0)
    base_map: Optional[str] = None

    def __post_init__(self):
        radii = tuple(float(r) for r in self.radii)
        if len(radii) != 3 or min(radii) <= 0:
            raise ValueError(f"Globe radii must be three positive values, got {self.radii}")
        self.radii = radii

    @property
    def mean_radius(self) -> float:
        return float(np.mean(self.radii))

    def resource_references(self):
        return [('texture', self.base_map)] if self.base_map else []


@dataclass
class MeshGeometry(Geometry):
    """Mesh model loaded from a file, scaled to size [km]."""
    source: str = ""
    size: float = 1.0

    def __post_init__(self):
        if not self.source:
            raise ValueError("Mesh geometry requires a source")
        if self.size <= 0:
            raise ValueError(f"Mesh size must be positive, got {self.size}")

    def resource_references(self):
        return [('mesh', self.source)]


@dataclass
class AxesGeometry(Geometry):
    """Body axes drawn at the given size [km]."""
    size: float = 1.0


@dataclass
class BodyInfo:
    """
    Catalog metadata about a body used for plotting and labeling.

    Attributes
    ----------
    description : str
        Free text
    classification : str, optional
        Body class such as 'planet', 'moon', 'spacecraft'
    label_color : tuple of float, optional
        RGB label color, components in [0, 1]
    trajectory_plot_duration : float, optional
        Length of plotted trajectory [s]; defaults to the trajectory period
    trajectory_plot_lead : float
        How far ahead of the current time the plot extends [s]
    trajectory_plot_fade : float
        Fraction of the plot that fades out, in [0, 1]
    trajectory_plot_color : tuple of float, optional
        RGB trajectory plot color
    trajectory_plot_samples : int
        Number of points in a trajectory plot
    """
    description: str = ""
    classification: Optional[str] = None
    label_color: Optional[Tuple[float, float, float]] = None
    trajectory_plot_duration: Optional[float] = None
    trajectory_plot_lead: float = 0.0
    trajectory_plot_fade: float = 0.0
    trajectory_plot_color: Optional[Tuple[float, float, float]] = None
    trajectory_plot_samples: int = 500

    def __post_init__(self):
        # Validate parameters
        for name in ('label_color', 'trajectory_plot_color'):
            color = getattr(self, name)
            if color is not None:
                color = tuple(float(c) for c in color)
                if len(color) != 3 or not all(0 <= c <= 1 for c in color):
                    raise ValueError(f"{name} must be three values in [0, 1], got {color}")
                setattr(self, name, color)
        if self.trajectory_plot_duration is not None and self.trajectory_plot_duration <= 0:
            raise ValueError(f"Plot duration must be positive, "
                             f"got {self.trajectory_plot_duration}")
        if not 0 <= self.trajectory_plot_fade <= 1:
            raise ValueError(f"Plot fade must be in [0, 1], got {self.trajectory_plot_fade}")
        if self.trajectory_plot_samples < 2:
            raise ValueError(f"Plot samples must be at least 2, "
                             f"got {self.trajectory_plot_samples}")


class Entity:
    """
    A body in the universe: a trajectory relative to its parent, expressed
    in a trajectory frame, and optionally an orientation and geometry.

    Entities form a forest through their parent references. Positions
    returned by position() and state() are relative to the root of the
    entity's tree, in EquatorJ2000 axes.

    Parameters
    ----------
    name : str
        Unique name within a catalog
    parent : Entity, optional
        Center of the trajectory; None for a root
    trajectory : Trajectory, optional
        Motion relative to the parent; defaults to staying at the parent
    trajectory_frame, body_frame : Frame, optional
        Frames of the trajectory and of the rotation model (default EquatorJ2000)
    rotation_model : RotationModel, optional
        Body orientation within body_frame; None means aligned with body_frame
    geometry : Geometry, optional
        Renderable description
    """

    def __init__(self, name: str, parent: Optional["Entity"] = None,
                 trajectory: Optional[Trajectory] = None,
                 trajectory_frame: Frame = EQUATOR_J2000,
                 body_frame: Frame = EQUATOR_J2000,
                 rotation_model: Optional[RotationModel] = None,
                 geometry: Optional[Geometry] = None):
        if not name:
            raise ValueError("Entity name must be a non-empty string")
        self._name = name
        self._parent = parent
        self._trajectory = trajectory if trajectory is not None else FixedPointTrajectory()
        self._trajectory_frame = trajectory_frame
        self._body_frame = body_frame
        self._rotation_model = rotation_model
        self._geometry = geometry

    # ========== PROPERTY ACCESS ==========
    @property
    def name(self) -> str:
        return self._name

    @property
    def parent(self) -> Optional["Entity"]:
        return self._parent

    @property
    def trajectory(self) -> Trajectory:
        return self._trajectory

    @property
    def trajectory_frame(self) -> Frame:
        return self._trajectory_frame

    @property
    def body_frame(self) -> Frame:
        return self._body_frame

    @property
    def rotation_model(self) -> Optional[RotationModel]:
        return self._rotation_model

    @property
    def geometry(self) -> Optional[Geometry]:
        return self._geometry

    def set_trajectory(self, trajectory: Trajectory):
        """Replace the trajectory (used when resource-backed data arrives)."""
        if not isinstance(trajectory, Trajectory):
            raise TypeError(f"Expected Trajectory, got {type(trajectory)}")
        self._trajectory = trajectory

    # ========== EVALUATION ==========
    def ancestors(self) -> List["Entity"]:
        """Parents from nearest to root."""
        chain = []
        node = self._parent
        while node is not None:
            chain.append(node)
            node = node._parent
        return chain

    def root(self) -> "Entity":
        chain = self.ancestors()
        return chain[-1] if chain else self

    def position(self, t: float) -> np.ndarray:
        """Root-relative position [km] in EquatorJ2000 at time t."""
        local = self._trajectory_frame.orientation(t) @ self._trajectory.position(t)
        if self._parent is None:
            return local
        return self._parent.position(t) + local

    def state(self, t: float) -> np.ndarray:
        """Root-relative state [km, km/s] in EquatorJ2000 at time t."""
        R = self._trajectory_frame.orientation(t)
        s = self._trajectory.state(t)
        r = R @ s[:3]
        v = R @ s[3:]
        if isinstance(self._trajectory_frame, BodyFixedFrame):
            v = v + np.cross(self._trajectory_frame.body.angular_velocity(t), r)
        result = np.concatenate([r, v])
        if self._parent is None:
            return result
        return self._parent.state(t) + result

    def relative_position(self, t: float, other: "Entity") -> np.ndarray:
        """Position of this entity relative to another at time t."""
        return self.position(t) - other.position(t)

    def orientation(self, t: float) -> np.ndarray:
        """Rotation matrix from body-fixed axes to EquatorJ2000 at time t."""
        R = self._body_frame.orientation(t)
        if self._rotation_model is None:
            return R
        return R @ self._rotation_model.orientation(t)

    def angular_velocity(self, t: float) -> np.ndarray:
        """Angular velocity [rad/s] of the body-fixed axes in EquatorJ2000."""
        R = self._body_frame.orientation(t)
        w = np.zeros(3)
        if isinstance(self._body_frame, BodyFixedFrame):
            w = self._body_frame.body.angular_velocity(t)
        if self._rotation_model is not None:
            w = w + R @ self._rotation_model.angular_velocity(t)
        return w

    # ========== SPECIAL METHODS ==========
    def __repr__(self):
        parent = self._parent.name if self._parent is not None else None
        return f"Entity('{self._name}', parent={parent!r})"
