"""
Kosmos: Solar System Catalogs and Ephemerides

A Python package for evaluating planetary ephemerides, composing
trajectories, and loading universe catalogs of bodies with their
trajectories, frames, rotation models and geometry.
"""

import logging

# Configuration
from .config import config, temp_config

# Errors
from .errors import (KosmosError, EphemerisError, DatasetUnreadable, DatasetCorrupt,
                     CatalogError, ParseError, UnresolvedReference)

# Core classes
from .orbital_elements import OrbitalElements, OrbitalElements as OE, OEType
from .trajectory import (Trajectory, Trajectory as Traj, FixedPointTrajectory,
                         KeplerianTrajectory, LinearCombinationTrajectory,
                         InterpolatedStatesTrajectory, combine)
from .ephemeris import EphemerisStore, EphemerisTrajectory, JplObjectId
from .ellipse import GeneralEllipse, osculating_ellipse
from .rotation import (RotationModel, FixedRotationModel, UniformRotationModel,
                       IAULunarRotationModel)
from .frames import Frame, InertialFrame, BodyFixedFrame, EQUATOR_J2000, ECLIPTIC_J2000
from .entity import Entity, BodyInfo, Globe, MeshGeometry, AxesGeometry
from .catalog import UniverseCatalog
from .loader import BuiltinRegistry, LoadResult, UniverseLoader
from .defaults import register_solar_system_builtins, sun_relative_trajectory, earth_from_emb
from .tle import TleRecord, TleTrajectory, parse_tle_set

logging.getLogger(__name__).addHandler(logging.NullHandler())

# Package metadata
__version__ = "0.1.0"
__author__ = "Shane Billingsley"

# Define what gets imported with "from kosmos import *"
__all__ = [
    # Configuration
    "config",
    "temp_config",
    # Errors
    "KosmosError",
    "EphemerisError",
    "DatasetUnreadable",
    "DatasetCorrupt",
    "CatalogError",
    "ParseError",
    "UnresolvedReference",
    # Classes
    "OrbitalElements",
    "OEType",
    "Trajectory",
    "FixedPointTrajectory",
    "KeplerianTrajectory",
    "LinearCombinationTrajectory",
    "InterpolatedStatesTrajectory",
    "EphemerisStore",
    "EphemerisTrajectory",
    "JplObjectId",
    "GeneralEllipse",
    "RotationModel",
    "FixedRotationModel",
    "UniformRotationModel",
    "IAULunarRotationModel",
    "Frame",
    "InertialFrame",
    "BodyFixedFrame",
    "Entity",
    "BodyInfo",
    "Globe",
    "MeshGeometry",
    "AxesGeometry",
    "UniverseCatalog",
    "BuiltinRegistry",
    "LoadResult",
    "UniverseLoader",
    "TleRecord",
    "TleTrajectory",
    # Functions
    "combine",
    "osculating_ellipse",
    "register_solar_system_builtins",
    "sun_relative_trajectory",
    "earth_from_emb",
    "parse_tle_set",
    # Abbreviations
    "OE",
    "Traj",
    # Frames
    "EQUATOR_J2000",
    "ECLIPTIC_J2000",
]
