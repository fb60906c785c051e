"""
Default Solar System Builtins
=============================

Factory functions that derive the standard solar system trajectories from a
JPL ephemeris and register them, together with the builtin rotation models,
in a BuiltinRegistry.

The ephemeris tabulates planets relative to the solar system barycenter and
the Moon relative to the Earth. Catalogs usually center planets on the Sun
and the Moon on the Earth, so the registered trajectories are derived:

- Sun-relative planet = planet(SSB) - Sun(SSB), with the planet's period
- Earth = EMB - m * Moon(geocentric), m = 1 / (1 + EMRAT),
  with the EMB's period

Examples
--------
>>> from kosmos import BuiltinRegistry, EphemerisStore, register_solar_system_builtins
>>> builtins = BuiltinRegistry()
>>> register_solar_system_builtins(builtins, EphemerisStore.load("de406.dat"))
>>> builtins.builtin_orbit("Mars").period / 86400
686.98
"""
from typing import Optional
from .ephemeris import EphemerisStore, JplObjectId
from .loader import BuiltinRegistry
from .rotation import IAULunarRotationModel
from .trajectory import LinearCombinationTrajectory, Trajectory, combine

"""
Names under which ephemeris-derived trajectories are registered
"""
SUN_RELATIVE_BODIES = {
    'Mercury': JplObjectId.MERCURY,
    'Venus': JplObjectId.VENUS,
    'Mars': JplObjectId.MARS,
    'Jupiter': JplObjectId.JUPITER,
    'Saturn': JplObjectId.SATURN,
    'Uranus': JplObjectId.URANUS,
    'Neptune': JplObjectId.NEPTUNE,
    'Pluto': JplObjectId.PLUTO,
}


def sun_relative_trajectory(store: EphemerisStore,
                            body_id: JplObjectId) -> LinearCombinationTrajectory:
    """Trajectory of a body relative to the Sun, with the body's period."""
    body = store.trajectory(body_id)
    sun = store.trajectory(JplObjectId.SUN)
    return combine([(body, 1.0), (sun, -1.0)], period_source=body)


def earth_from_emb(emb: Trajectory, moon: Trajectory,
                   mass_ratio: float) -> LinearCombinationTrajectory:
    """
    Earth's trajectory from the Earth-Moon barycenter and the geocentric Moon.

    Parameters
    ----------
    emb : Trajectory
        Earth-Moon barycenter trajectory
    moon : Trajectory
        Geocentric lunar trajectory
    mass_ratio : float
        Earth/Moon mass ratio (EMRAT)
    """
    if not mass_ratio > 0:
        raise ValueError(f"Earth/Moon mass ratio must be positive, got {mass_ratio}")
    moon_weight = 1.0 / (1.0 + mass_ratio)
    return combine([(emb, 1.0), (moon, -moon_weight)], period_source=emb)


def register_solar_system_builtins(registry: BuiltinRegistry,
                                   store: Optional[EphemerisStore] = None) -> BuiltinRegistry:
    """
    Register the standard builtin trajectories and rotation models.

    With an ephemeris, registers 'Sun' (SSB-relative), 'Moon' (geocentric)
    and Sun-relative trajectories of the planets, Pluto and the EMB. 'Earth'
    is derived from the Sun-relative EMB, so it is Sun-relative as well.
    The 'IAU Moon' rotation model is always registered.

    Returns
    -------
    BuiltinRegistry
        The registry passed in
    """
    registry.add_builtin_rotation_model('IAU Moon', IAULunarRotationModel())
    if store is None:
        return registry

    registry.add_builtin_orbit('Sun', store.trajectory(JplObjectId.SUN))
    registry.add_builtin_orbit('Moon', store.trajectory(JplObjectId.MOON))
    emb = sun_relative_trajectory(store, JplObjectId.EARTH_MOON_BARYCENTER)
    registry.add_builtin_orbit('EMB', emb)
    for name, body_id in SUN_RELATIVE_BODIES.items():
        registry.add_builtin_orbit(name, sun_relative_trajectory(store, body_id))
    registry.add_builtin_orbit('Earth', earth_from_emb(
        emb, store.trajectory(JplObjectId.MOON), store.earth_moon_mass_ratio))
    return registry
