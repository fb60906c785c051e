'''Ellipses in 3D space for orbit plotting and fitting
GeneralEllipse class definition'''

import numpy as np
from .utils import as_vector3

class GeneralEllipse:
    """
    An arbitrary ellipse in 3D space.

    The ellipse is defined by a center point C and two generating vectors
    v0 and v1, and is the set of points

        C + cos(theta) v0 + sin(theta) v1

    The generating vectors need not be orthogonal; principal_semi_axes()
    recovers the orthogonal semi-major and semi-minor axes. GeneralEllipse
    is immutable.

    Degenerate inputs never raise: parallel generating vectors give a
    zero-length minor axis, and NaN components propagate to the results.
    """
    # ========== CONSTRUCTION ==========
    def __init__(self, center, v0, v1):
        self._center = as_vector3(center, "center").copy()
        self._generating_vectors = np.vstack([as_vector3(v0, "v0"),
                                              as_vector3(v1, "v1")])
        self._center.flags.writeable = False
        self._generating_vectors.flags.writeable = False

    # ========== PROPERTY ACCESS ==========
    @property
    def center(self) -> np.ndarray:
        return self._center

    @property
    def generating_vectors(self) -> np.ndarray:
        """Generating vectors as rows of a 2x3 array."""
        return self._generating_vectors

    # ========== GEOMETRY ==========
    def point(self, theta) -> np.ndarray:
        """Point(s) on the ellipse at parameter theta [rad]."""
        theta = np.asarray(theta, dtype=float)
        v0, v1 = self._generating_vectors
        return (self._center + np.multiply.outer(np.cos(theta), v0)
                + np.multiply.outer(np.sin(theta), v1))

    def principal_semi_axes(self) -> np.ndarray:
        """
        Semi-major and semi-minor axes as rows of a 2x3 array.

        The rows are mutually orthogonal, lie in the plane of the generating
        vectors, and have the lengths of the semi-axes, major axis first.

        With p(θ) = cos θ v0 + sin θ v1,

            |p(θ)|² = (a + b)/2 + (a - b)/2 cos 2θ + c sin 2θ

        where a = v0·v0, b = v1·v1, c = v0·v1, which is largest at
        θ₀ = ½ atan2(2c, a - b). The semi-axes are p(θ₀) and p(θ₀ + π/2).
        """
        v0, v1 = self._generating_vectors
        a = np.dot(v0, v0)
        b = np.dot(v1, v1)
        c = np.dot(v0, v1)
        theta0 = 0.5 * np.arctan2(2*c, a - b)
        major = np.cos(theta0)*v0 + np.sin(theta0)*v1
        minor = -np.sin(theta0)*v0 + np.cos(theta0)*v1
        return np.vstack([major, minor])

    def semi_axis_lengths(self) -> np.ndarray:
        """Lengths of the semi-major and semi-minor axes."""
        return np.linalg.norm(self.principal_semi_axes(), axis=1)

    def sample(self, n_points: int = 100) -> np.ndarray:
        """
        Points evenly spaced in the parameter, as an (n_points, 3) array.
        The first point is repeated at the end so the polyline is closed.
        """
        if n_points < 3:
            raise ValueError("n_points must be at least 3")
        return self.point(np.linspace(0, 2*np.pi, n_points))

    # ========== SPECIAL METHODS ==========
    def __eq__(self, other):
        if not isinstance(other, GeneralEllipse):
            return NotImplemented
        return (np.array_equal(self._center, other._center) and
                np.array_equal(self._generating_vectors, other._generating_vectors))

    __hash__ = None

    def __repr__(self):
        v0, v1 = self._generating_vectors
        return (f"GeneralEllipse(center={self._center.tolist()}, "
                f"v0={v0.tolist()}, v1={v1.tolist()})")


def osculating_ellipse(position, velocity, mu: float, center=(0.0, 0.0, 0.0)) -> GeneralEllipse:
    """
    Ellipse traced by a two-body orbit through the given state.

    Parameters
    ----------
    position, velocity : array-like
        State relative to the attracting body [km, km/s]
    mu : float
        Gravitational parameter of the attracting body [km³/s²]
    center : array-like, optional
        Position of the attracting body (the focus), default origin

    Returns
    -------
    GeneralEllipse
        Centered at focus - a·e·P̂, with v0 = a·P̂ toward periapsis and
        v1 = b·Q̂ in the direction of motion

    Raises
    ------
    ValueError
        If the state is not on an elliptic orbit
    """
    r = as_vector3(position, "position")
    v = as_vector3(velocity, "velocity")
    r_mag = np.linalg.norm(r)
    h = np.cross(r, v)
    h_mag = np.linalg.norm(h)
    if r_mag == 0 or h_mag == 0:
        raise ValueError("Osculating ellipse undefined for rectilinear motion")
    energy = np.dot(v, v)/2 - mu/r_mag
    if energy >= 0:
        raise ValueError("Osculating ellipse undefined for parabolic/hyperbolic orbits")
    a = -mu / (2*energy)
    evec = np.cross(v, h)/mu - r/r_mag
    e = np.linalg.norm(evec)
    w_hat = h / h_mag
    if e > 1e-12:
        p_hat = evec / e
    else:
        # circular: any in-plane direction serves as periapsis
        p_hat = r / r_mag
    q_hat = np.cross(w_hat, p_hat)
    b = a*np.sqrt(1 - e**2)
    focus = as_vector3(center, "center")
    return GeneralEllipse(focus - a*e*p_hat, a*p_hat, b*q_hat)
