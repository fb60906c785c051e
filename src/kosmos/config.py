"""
Global Configuration for Kosmos Package
========================================

This module provides package-wide configuration settings that users can modify
to control numerical tolerances, validation behavior, catalog defaults and
default plotting options.

Examples
--------
View current configuration:

>>> import kosmos
>>> print(kosmos.config)

Modify settings:

>>> kosmos.config.KEPLER_TOL = 1e-14  # Tighter Kepler equation solution
>>> kosmos.config.DEFAULT_PLOT_POINTS = 2000  # More detailed plots

Reset to defaults:

>>> kosmos.config.reset()

Temporarily modify settings:

>>> with kosmos.temp_config(TEXTURE_SEARCH_PATH="textures"):
...     # Catalog loads in this block look for textures in ./textures
...     loader.load_catalog_file("solarsys.json")

Notes
-----
These settings affect package-wide behavior. Modifying them will impact
all subsequent operations until changed again or reset.
"""

from dataclasses import dataclass
from contextlib import contextmanager


@dataclass
class KosmosConfig:
    """
    Global configuration for Kosmos package.

    Attributes
    ----------
    EQUALITY_RTOL : float
        Relative tolerance for floating-point equality comparisons.
        Default: 1e-12
    EQUALITY_ATOL : float
        Absolute tolerance for floating-point equality comparisons.
        Default: 1e-14
    KEPLER_TOL : float
        Convergence tolerance [rad] for Newton iteration on Kepler's equation.
        Default: 1e-14
    KEPLER_MAX_ITER : int
        Maximum Newton iterations on Kepler's equation before giving up.
        Default: 50
    STRICT_VALIDATION : bool
        If True, validation failures raise exceptions.
        If False, validation failures issue warnings.
        Default: True
    DEFAULT_TRAJECTORY_FRAME : str
        Frame used for catalog items that do not declare a trajectoryFrame.
        Default: 'EquatorJ2000'
    DEFAULT_BODY_FRAME : str
        Frame used for catalog items that do not declare a bodyFrame.
        Default: 'EquatorJ2000'
    DATA_SEARCH_PATH : str
        Directory searched for trajectory and rotation data files.
        Default: '.'
    TEXTURE_SEARCH_PATH : str
        Directory searched for texture files.
        Default: '.'
    MODEL_SEARCH_PATH : str
        Directory searched for mesh files.
        Default: '.'
    DEFAULT_PLOT_POINTS : int
        Default number of points for trajectory plotting.
        Default: 1000
    DEFAULT_PLOT_DURATION : float
        Plot window [days] for aperiodic trajectories without plot info.
        Default: 365.25
    DEFAULT_BODY_COLOR : str
        Default color for celestial bodies in plots.
        Default: 'lightblue'
    DEFAULT_TRAJ_COLOR : str
        Default color for trajectory lines in plots.
        Default: 'red'
    """

    # Numerical tolerance for equality comparisons
    EQUALITY_RTOL: float = 1e-12
    EQUALITY_ATOL: float = 1e-14

    # Kepler equation solver
    KEPLER_TOL: float = 1e-14
    KEPLER_MAX_ITER: int = 50

    # Validation behavior
    STRICT_VALIDATION: bool = True

    # Catalog defaults
    DEFAULT_TRAJECTORY_FRAME: str = 'EquatorJ2000'
    DEFAULT_BODY_FRAME: str = 'EquatorJ2000'
    DATA_SEARCH_PATH: str = '.'
    TEXTURE_SEARCH_PATH: str = '.'
    MODEL_SEARCH_PATH: str = '.'

    # Plotting defaults
    DEFAULT_PLOT_POINTS: int = 1000
    DEFAULT_PLOT_DURATION: float = 365.25
    DEFAULT_BODY_COLOR: str = 'lightblue'
    DEFAULT_TRAJ_COLOR: str = 'red'

    def reset(self):
        """
        Reset all configuration values to package defaults.

        Examples
        --------
        >>> import kosmos
        >>> kosmos.config.KEPLER_MAX_ITER = 5  # Modify
        >>> kosmos.config.reset()  # Back to defaults
        >>> kosmos.config.KEPLER_MAX_ITER
        50
        """
        defaults = KosmosConfig()
        for key in self.__dataclass_fields__:
            setattr(self, key, getattr(defaults, key))

    def __repr__(self):
        """Return formatted string showing all configuration values."""
        lines = ["KosmosConfig:"]
        lines.append("  Numerical Tolerances:")
        lines.append(f"    EQUALITY_RTOL = {self.EQUALITY_RTOL}")
        lines.append(f"    EQUALITY_ATOL = {self.EQUALITY_ATOL}")
        lines.append(f"    KEPLER_TOL = {self.KEPLER_TOL}")
        lines.append(f"    KEPLER_MAX_ITER = {self.KEPLER_MAX_ITER}")
        lines.append("  Behavior:")
        lines.append(f"    STRICT_VALIDATION = {self.STRICT_VALIDATION}")
        lines.append("  Catalog:")
        lines.append(f"    DEFAULT_TRAJECTORY_FRAME = '{self.DEFAULT_TRAJECTORY_FRAME}'")
        lines.append(f"    DEFAULT_BODY_FRAME = '{self.DEFAULT_BODY_FRAME}'")
        lines.append(f"    DATA_SEARCH_PATH = '{self.DATA_SEARCH_PATH}'")
        lines.append(f"    TEXTURE_SEARCH_PATH = '{self.TEXTURE_SEARCH_PATH}'")
        lines.append(f"    MODEL_SEARCH_PATH = '{self.MODEL_SEARCH_PATH}'")
        lines.append("  Plotting:")
        lines.append(f"    DEFAULT_PLOT_POINTS = {self.DEFAULT_PLOT_POINTS}")
        lines.append(f"    DEFAULT_PLOT_DURATION = {self.DEFAULT_PLOT_DURATION}")
        lines.append(f"    DEFAULT_BODY_COLOR = '{self.DEFAULT_BODY_COLOR}'")
        lines.append(f"    DEFAULT_TRAJ_COLOR = '{self.DEFAULT_TRAJ_COLOR}'")
        return "\n".join(lines)


# Global configuration instance
config = KosmosConfig()


@contextmanager
def temp_config(**kwargs):
    """
    Context manager for temporarily modifying configuration values.

    Configuration is automatically restored when the context exits,
    even if an exception occurs.

    Parameters
    ----------
    **kwargs
        Configuration attributes to temporarily modify.

    Examples
    --------
    >>> import kosmos
    >>> with kosmos.temp_config(STRICT_VALIDATION=False):
    ...     # Validation problems become warnings in this block
    ...     kosmos.UniformRotationModel(period=0.0)
    >>> # Original config restored here
    >>> kosmos.config.STRICT_VALIDATION
    True

    Raises
    ------
    AttributeError
        If an invalid configuration attribute is specified.
    """
    old_values = {}
    for key, value in kwargs.items():
        if not hasattr(config, key):
            raise AttributeError(
                f"KosmosConfig has no attribute '{key}'. "
                f"Valid attributes: {list(config.__dataclass_fields__.keys())}"
            )
        old_values[key] = getattr(config, key)
        setattr(config, key, value)

    try:
        yield config
    finally:
        for key, value in old_values.items():
            setattr(config, key, value)
