"""
Test suite for Entity, geometry, BodyInfo and UniverseCatalog.

Tests cover:
- Position and state composition through parents and frames
- Body-fixed frames and orientation
- Geometry resource bookkeeping
- BodyInfo validation
- Catalog registration, replacement and DataFrame export
"""

import numpy as np
import pandas as pd
import pytest
from kosmos import (Entity, BodyInfo, Globe, MeshGeometry, AxesGeometry, UniverseCatalog,
                    FixedPointTrajectory, KeplerianTrajectory, UniformRotationModel,
                    BodyFixedFrame, ECLIPTIC_J2000)
from kosmos.constants import SECONDS_PER_DAY
from kosmos.utils import rot_z

DAY = SECONDS_PER_DAY


@pytest.fixture
def sun():
    return Entity("Sun")


@pytest.fixture
def planet(sun):
    return Entity("Planet", parent=sun, trajectory=FixedPointTrajectory([1000.0, 0.0, 0.0]),
                  rotation_model=UniformRotationModel(DAY))


class TestEntityPosition:
    """Test position and state composition."""

    def test_root_at_origin(self, sun):
        """A root with the default trajectory sits at the origin."""
        np.testing.assert_array_equal(sun.position(0.0), np.zeros(3))
        assert sun.parent is None
        assert sun.root() is sun

    def test_parent_chain(self, sun, planet):
        """Positions add up through parents."""
        moon = Entity("Moon", parent=planet, trajectory=FixedPointTrajectory([0.0, 10.0, 0.0]))
        np.testing.assert_allclose(moon.position(5.0), [1000.0, 10.0, 0.0])
        assert moon.ancestors() == [planet, sun]
        assert moon.root() is sun
        np.testing.assert_allclose(moon.relative_position(5.0, planet), [0.0, 10.0, 0.0])

    def test_ecliptic_trajectory_frame(self, sun):
        """Trajectory coordinates are rotated out of their frame."""
        body = Entity("Body", parent=sun, trajectory=FixedPointTrajectory([0.0, 1.0, 0.0]),
                      trajectory_frame=ECLIPTIC_J2000)
        expected = ECLIPTIC_J2000.orientation(0.0) @ [0.0, 1.0, 0.0]
        np.testing.assert_allclose(body.position(0.0), expected)

    def test_state_includes_parent_velocity(self, sun):
        """Velocities add up through parents."""
        orbit = KeplerianTrajectory(7000.0, 0.0, mu=398600.4418)
        body = Entity("Sat", parent=sun, trajectory=orbit)
        np.testing.assert_allclose(body.state(100.0), orbit.state(100.0))

    def test_body_fixed_frame(self, planet):
        """A point fixed on a rotating body moves with it."""
        lander = Entity("Lander", parent=planet, trajectory=FixedPointTrajectory([1.0, 0.0, 0.0]),
                        trajectory_frame=BodyFixedFrame(planet))
        t = DAY / 4
        np.testing.assert_allclose(lander.position(t), [1000.0, 1.0, 0.0], atol=1e-9)
        # surface velocity is omega x r
        w = 2*np.pi / DAY
        np.testing.assert_allclose(lander.state(t)[3:], [-w, 0.0, 0.0], atol=1e-12)

    def test_default_trajectory(self, sun):
        """Without a trajectory an entity stays at its parent."""
        body = Entity("Tag", parent=sun)
        assert isinstance(body.trajectory, FixedPointTrajectory)

    def test_empty_name_rejected(self):
        with pytest.raises(ValueError):
            Entity("")

    def test_set_trajectory_type_checked(self, sun):
        with pytest.raises(TypeError):
            sun.set_trajectory("not a trajectory")


class TestEntityOrientation:
    """Test orientation and angular velocity."""

    def test_no_rotation_model(self, sun):
        np.testing.assert_array_equal(sun.orientation(0.0), np.eye(3))
        np.testing.assert_array_equal(sun.angular_velocity(0.0), np.zeros(3))

    def test_rotation_in_body_frame(self, sun):
        """The rotation model is expressed in the body frame."""
        body = Entity("Body", parent=sun, body_frame=ECLIPTIC_J2000,
                      rotation_model=UniformRotationModel(DAY, meridian_angle=0.3))
        np.testing.assert_allclose(body.orientation(0.0),
                                   ECLIPTIC_J2000.orientation(0.0) @ rot_z(0.3))
        w = body.angular_velocity(0.0)
        np.testing.assert_allclose(w, 2*np.pi/DAY * ECLIPTIC_J2000.orientation(0.0)[:, 2])


class TestGeometry:
    """Test geometry descriptions and resource bookkeeping."""

    def test_globe(self):
        globe = Globe(radii=(6378.0, 6378.0, 6357.0), base_map="earth.jpg")
        assert globe.mean_radius == pytest.approx((2*6378.0 + 6357.0)/3)
        assert globe.resource_references() == [('texture', 'earth.jpg')]

    def test_globe_validation(self):
        with pytest.raises(ValueError):
            Globe(radii=(1.0, -1.0, 1.0))
        with pytest.raises(ValueError):
            Globe(radii=(1.0, 1.0))

    def test_pending_and_available(self):
        """Resources move from pending to available, repeatably."""
        globe = Globe(base_map="http://example.com/moon.jpg")
        globe.mark_pending("http://example.com/moon.jpg")
        assert not globe.is_complete
        globe.mark_available("http://example.com/moon.jpg", b"jpeg")
        globe.mark_available("http://example.com/moon.jpg", b"jpeg")
        assert globe.is_complete
        assert globe.payloads == {"http://example.com/moon.jpg": b"jpeg"}

    def test_mesh(self):
        mesh = MeshGeometry(source="hubble.3ds", size=0.01)
        assert mesh.resource_references() == [('mesh', 'hubble.3ds')]
        with pytest.raises(ValueError):
            MeshGeometry(source="")

    def test_axes(self):
        assert AxesGeometry(size=5.0).resource_references() == []


class TestBodyInfo:
    """Test BodyInfo validation."""

    def test_defaults(self):
        info = BodyInfo()
        assert info.classification is None
        assert info.trajectory_plot_samples == 500

    def test_colors_normalized(self):
        info = BodyInfo(label_color=[1, 0.5, 0])
        assert info.label_color == (1.0, 0.5, 0.0)

    @pytest.mark.parametrize("kwargs", [
        {'label_color': (2.0, 0.0, 0.0)},
        {'trajectory_plot_color': (0.5, 0.5)},
        {'trajectory_plot_duration': -1.0},
        {'trajectory_plot_fade': 1.5},
        {'trajectory_plot_samples': 1},
    ])
    def test_invalid(self, kwargs):
        with pytest.raises(ValueError):
            BodyInfo(**kwargs)


class TestUniverseCatalog:
    """Test UniverseCatalog."""

    def test_upsert_and_find(self, sun):
        catalog = UniverseCatalog()
        info = BodyInfo(classification="star")
        catalog.upsert("Sun", sun, info)
        assert catalog.find("Sun") is sun
        assert catalog.find_info("Sun") is info
        assert "Sun" in catalog
        assert len(catalog) == 1
        assert catalog.find("Moon") is None
        assert catalog.find_info("Moon") is None

    def test_last_upsert_wins(self):
        """Re-registering a name replaces entity and info."""
        catalog = UniverseCatalog()
        first, second = Entity("X"), Entity("X")
        catalog.upsert("X", first, BodyInfo(description="old"))
        catalog.upsert("X", second)
        assert catalog.find("X") is second
        assert catalog.find_info("X") is None
        assert catalog.names() == ["X"]

    def test_name_mismatch(self, sun):
        with pytest.raises(ValueError):
            UniverseCatalog().upsert("Moon", sun)

    def test_iteration_order(self, sun, planet):
        catalog = UniverseCatalog()
        catalog.upsert("Sun", sun)
        catalog.upsert("Planet", planet)
        assert list(catalog) == ["Sun", "Planet"]

    def test_to_dataframe(self, sun, planet):
        catalog = UniverseCatalog()
        catalog.upsert("Sun", sun, BodyInfo(classification="star"))
        catalog.upsert("Planet", planet)
        df = catalog.to_dataframe()
        assert isinstance(df, pd.DataFrame)
        assert list(df.index) == ["Sun", "Planet"]
        assert df.loc["Planet", "parent"] == "Sun"
        assert df.loc["Sun", "classification"] == "star"
        assert df.loc["Planet", "trajectory"] == "FixedPointTrajectory"
