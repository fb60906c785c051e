'''Orbital element sets and two-body conversions
OrbitalElements class definition'''

import numpy as np
from enum import Enum
from .config import config
from .utils import rot_x, rot_z

# define an enumerated list of element types
class OEType(Enum):
    CARTESIAN = 'cart'      # [x;y;z;vx;vy;vz]
    KEPLERIAN = 'kep'       # [a;e;i;Omega;w;nu]

# Default gravitational parameter (Sun)
SUN_MU = 1.32712440018e11  # km³/s²

def solve_kepler(M: float, e: float) -> float:
    """
    Solve Kepler's equation M = E - e sin(E) for the eccentric anomaly.

    Parameters
    ----------
    M : float
        Mean anomaly [rad]
    e : float
        Eccentricity, 0 <= e < 1

    Returns
    -------
    float
        Eccentric anomaly [rad], in the same revolution as M

    Raises
    ------
    ValueError
        If e is outside [0, 1) or Newton iteration fails to converge
    """
    if not 0 <= e < 1:
        raise ValueError(f"Kepler's equation requires 0 <= e < 1, got e={e}")
    # reduce to [-pi, pi] for a well-behaved starting guess
    M_red = np.remainder(M + np.pi, 2*np.pi) - np.pi
    E = M_red if e < 0.8 else np.pi*np.sign(M_red)
    for _ in range(config.KEPLER_MAX_ITER):
        dE = (E - e*np.sin(E) - M_red) / (1 - e*np.cos(E))
        E -= dE
        if abs(dE) < config.KEPLER_TOL:
            return E + (M - M_red)
    raise ValueError(f"Kepler's equation did not converge for M={M}, e={e}")

def mean_to_true_anomaly(M: float, e: float) -> float:
    """Convert mean anomaly to true anomaly [rad] for an elliptic orbit."""
    E = solve_kepler(M, e)
    return 2*np.arctan2(np.sqrt(1 + e)*np.sin(E/2), np.sqrt(1 - e)*np.cos(E/2))

def true_to_mean_anomaly(nu: float, e: float) -> float:
    """Convert true anomaly to mean anomaly [rad] for an elliptic orbit."""
    E = 2*np.arctan2(np.sqrt(1 - e)*np.sin(nu/2), np.sqrt(1 + e)*np.cos(nu/2))
    return E - e*np.sin(E)

#define basic orbital element class
class OrbitalElements:
    """
    Represents a two-body orbital state as six elements.
    Cartesian representations are expressed in the frame the orbit was
    defined in, centered on the attracting body.
    OrbitalElements is immutable, extract elements using numpy methods and create a
    new instance to change
    """
    # ========== CONSTRUCTION ==========
    def __init__(self, elements=None, element_type=None, validate=True,
                 mu=None, **kwargs):
        """
        Create orbital elements.

        Can be called in two ways:

        1. Array-based:
        OrbitalElements([1.496e8, 0.0167, 0.0, 0, 1.8, 0], 'kep', mu=SUN_MU)

        2. Named parameters:
        OrbitalElements(a=384400, e=0.055, i=0.09, omega=0, w=0, nu=0, mu=403503.2)
        OrbitalElements(x=1e5, y=0, z=0, vx=0, vy=2.0, vz=0, mu=398600.4)

        Parameters
        ----------
        elements : array-like, optional
            6-element array of orbital elements
        element_type : OEType or str, optional
            Type of elements ('cart', 'kep') - required if using elements array
        validate : bool, optional
            Whether to validate elements (default True)
        mu : float, optional
            Gravitational parameter (km³/s²), defaults to the Sun's GM
        **kwargs : dict
            Named parameters for appropriate orbital element set
            Keplerian (a, e, i, omega, w, nu)
            Cartesian (x, y, z, vx, vy, vz)
        """
        self._mu = SUN_MU if mu is None else float(mu)
        if self._mu <= 0:
            raise ValueError(f"Gravitational parameter must be positive, got {self._mu}")

        # Determine construction method
        if elements is not None:
            self.elements = np.array(elements, dtype=float)
            self.element_type = self._parse_element_type(element_type)
        elif kwargs:
            self.elements, self.element_type = self._from_named_params(kwargs)
        else:
            raise ValueError(
                "Must provide either:\n"
                "  - elements array and element_type, or named parameters: \n"
                "  - (a, e, i, omega, w, nu) for Keplerian, or\n"
                "  - (x, y, z, vx, vy, vz) for Cartesian"
            )
        # Ensure immutability of elements array
        self.elements.flags.writeable = False
        if validate:
            self._validate()

    @classmethod
    def cartesian(cls, elements, mu=None):
        """Create Cartesian orbital elements without validation."""
        return cls(elements, OEType.CARTESIAN, validate=False, mu=mu)

    @classmethod
    def keplerian(cls, elements, mu=None):
        """Create Keplerian orbital elements [a, e, i, Ω, ω, ν] without validation."""
        return cls(elements, OEType.KEPLERIAN, validate=False, mu=mu)

    # ========== VALIDATION ==========
    def _validate(self):
        """Check if elements conform to their claimed type
        If validation fails inappropriately, set validate=False for constructor
        """
        if self.elements.shape != (6,):
            raise ValueError("Orbital elements must be 6-element vector")
        if not np.all(np.isfinite(self.elements)):
            raise ValueError("Elements contain NaN or Inf")

        if self.element_type == OEType.KEPLERIAN:
            a, e, i, omega, w, nu = self.elements
            if e < 0:
                raise ValueError("Eccentricity out of range")
            if e < 1 and a <= 0:
                raise ValueError(f"Elliptic orbit (e={e}) "
                                 f"requires positive semi-major axis, got a={a}")
            if e >= 1 and a >= 0:
                raise ValueError(f"Hyperbolic orbit (e={e}) "
                                 f"requires negative semi-major axis, got a={a}")
            if i > np.pi or i < 0:
                raise ValueError("Inclination out of range")
        elif self.element_type == OEType.CARTESIAN:
            if np.linalg.norm(self.elements[:3]) == 0:
                raise ValueError("Position vector must be nonzero")

    # ========== ELEMENT TYPE CONVERSIONS ==========
    def convert_to(self, target_type):
        """
        Convert orbital elements to a different representation.

        Parameters:
        -----------
        target_type : OEType or str
            The desired orbital element type ('cart' or 'kep')

        Returns:
        --------
        OrbitalElements
            New OrbitalElements object with elements in target type
        """
        target_type = self._parse_element_type(target_type)
        if target_type == self.element_type:
            return self.copy()
        if target_type == OEType.CARTESIAN:
            converted = self._keplerian_to_cartesian()
        else:
            converted = self._cartesian_to_keplerian()
        return OrbitalElements(converted, target_type, validate=False, mu=self._mu)

    def perifocal_basis(self) -> np.ndarray:
        """
        Rotation matrix from the perifocal frame (P toward periapsis, Q in plane,
        W along angular momentum) to the reference frame. Keplerian elements only.
        """
        if self.element_type != OEType.KEPLERIAN:
            raise AttributeError("Perifocal basis only available for Keplerian elements")
        a, e, i, omega, w, nu = self.elements
        return rot_z(omega) @ rot_x(i) @ rot_z(w)

    def _keplerian_to_cartesian(self):
        """Convert Keplerian elements to Cartesian state vector."""
        a, e, i, omega, w, nu = self.elements
        # find semi-latus rectum
        p = a*(1 - e**2)
        # find position in perifocal frame
        r_mag = p / (1 + e*np.cos(nu))
        rvec = np.array([r_mag*np.cos(nu), r_mag*np.sin(nu), 0])
        # find velocity in perifocal frame
        vvec = np.array([-np.sqrt(self._mu/p) * np.sin(nu),
                         np.sqrt(self._mu/p) * (e + np.cos(nu)), 0])
        DCM = self.perifocal_basis()
        return np.concatenate([DCM @ rvec, DCM @ vvec])

    def _cartesian_to_keplerian(self):
        """Convert Cartesian state vector to Keplerian elements.
        Uses algorithm from Flores & Fantino, Advances in Space Research, v.75,pp.4910
        """
        rvec = self.elements[:3]
        vvec = self.elements[3:]
        # calculate angular momentum vector h = r × v
        hvec = np.cross(rvec, vvec)
        # calculate inclination
        i = np.arctan2(np.sqrt(hvec[0]**2 + hvec[1]**2), hvec[2])
        # find longitude of ascending node
        omega = np.arctan2(hvec[0], -hvec[1])
        # define line of nodes vector
        nhat = np.array([np.cos(omega), np.sin(omega), 0])
        # define an intermediate vector b in the orbit plane
        bhat = np.cross(hvec/np.linalg.norm(hvec), nhat)
        # find semimajor axis from energy equation
        a = ((2/np.linalg.norm(rvec)) - (np.dot(vvec, vvec)/self._mu))**(-1)
        # find eccentricity vector
        evec = np.cross(vvec, hvec)/self._mu - rvec/np.linalg.norm(rvec)
        # find argument of periapsis and true anomaly
        w = np.arctan2(np.dot(evec, bhat), np.dot(evec, nhat))
        nu = np.arctan2(np.dot(rvec, bhat), np.dot(rvec, nhat)) - w
        e = np.linalg.norm(evec)
        return np.array([a, e, i, omega, w, nu])

    def to_cartesian(self):
        """Shortcut for convert_to('cart')"""
        return self.convert_to(OEType.CARTESIAN)

    def to_keplerian(self):
        """Shortcut for convert_to('kep')"""
        return self.convert_to(OEType.KEPLERIAN)

    # ========== PROPERTY ACCESS ==========
    @property
    def mu(self):
        """Gravitational parameter [km³/s²]"""
        return self._mu

    @property
    def a(self):
        """Semi-major axis (only for Keplerian elements)"""
        if self.element_type != OEType.KEPLERIAN:
            raise AttributeError(
                "Semi-major axis only available for Keplerian elements")
        return self.elements[0]

    @property
    def e(self):
        """Eccentricity (only for Keplerian elements)"""
        if self.element_type != OEType.KEPLERIAN:
            raise AttributeError(
                "Eccentricity only available for Keplerian elements")
        return self.elements[1]

    @property
    def position(self):
        """Position vector (only for Cartesian)"""
        if self.element_type != OEType.CARTESIAN:
            raise AttributeError(
                "Position only directly available for Cartesian elements")
        return self.elements[:3]

    @property
    def velocity(self):
        """Velocity vector (only for Cartesian)"""
        if self.element_type != OEType.CARTESIAN:
            raise AttributeError(
                "Velocity only directly available for Cartesian elements")
        return self.elements[3:]

    # ========== ORBITAL PROPERTIES ==========
    def orbital_period(self):
        """
        Calculate orbital period

        Returns period in seconds (only for elliptic orbits)
        """
        kep = self if self.element_type == OEType.KEPLERIAN else self.to_keplerian()
        a, e = kep.elements[0], kep.elements[1]
        if e >= 1:
            raise ValueError("Orbital period undefined for parabolic/hyperbolic orbits")
        return 2 * np.pi * np.sqrt(a**3 / self._mu)

    def mean_motion(self):
        """
        Calculate mean motion (n = √(μ/a³))

        Returns
        -------
        float
            Mean motion [rad/s]

        Raises
        ------
        ValueError
            If the orbit is parabolic/hyperbolic
        """
        return 2 * np.pi / self.orbital_period()

    def specific_energy(self):
        """Calculate specific orbital energy (energy per unit mass)"""
        if self.element_type == OEType.KEPLERIAN:
            return -self._mu / (2 * self.elements[0])
        r = self.elements[:3]
        v = self.elements[3:]
        return np.dot(v, v) / 2 - self._mu / np.linalg.norm(r)

    # ========== UTILITY METHODS ==========
    def copy(self):
        """Create a deep copy of the orbital elements"""
        return OrbitalElements(self.elements.copy(), self.element_type,
                               validate=False, mu=self._mu)

    def __len__(self):
        return 6

    def __getitem__(self, key):
        return self.elements[key]

    def __repr__(self):
        return (f"OrbitalElements({self.elements.tolist()}, "
                f"'{self.element_type.value}', mu={self._mu})")

    def __eq__(self, other):
        if not isinstance(other, OrbitalElements):
            return NotImplemented
        return (self.element_type == other.element_type and
                np.allclose(self.elements, other.elements,
                            rtol=config.EQUALITY_RTOL, atol=config.EQUALITY_ATOL))

    __hash__ = None

    # ========== STATIC METHODS ==========
    @staticmethod
    def _parse_element_type(element_type):
        """Convert string or enum to OEType enum"""
        if isinstance(element_type, OEType):
            return element_type
        elif isinstance(element_type, str):
            type_map = {
                'cart': OEType.CARTESIAN,
                'cartesian': OEType.CARTESIAN,
                'kep': OEType.KEPLERIAN,
                'kepler': OEType.KEPLERIAN,
                'keplerian': OEType.KEPLERIAN,
            }
            if element_type in type_map:
                return type_map[element_type]
            else:
                raise ValueError(f"Unknown element type '{element_type}'. "
                                 f"Use: {list(type_map.keys())}")
        else:
            raise TypeError(f"element_type must be OEType or str, "
                            f"got {type(element_type)}")

    @staticmethod
    def _from_named_params(kwargs):
        """
        Convert named parameters to elements array and detect type.
        """
        kep_params = ['a', 'e', 'i', 'omega', 'w', 'nu']
        if all(k in kwargs for k in kep_params):
            return np.array([kwargs[k] for k in kep_params], dtype=float), OEType.KEPLERIAN

        cart_params = ['x', 'y', 'z', 'vx', 'vy', 'vz']
        if all(k in kwargs for k in cart_params):
            return np.array([kwargs[k] for k in cart_params], dtype=float), OEType.CARTESIAN

        provided = list(kwargs.keys())
        raise ValueError(
            f"Could not determine element type from parameters: {provided}\n"
            f"Keplerian requires: {kep_params}\n"
            f"Cartesian requires: {cart_params}"
        )
