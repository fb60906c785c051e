"""
Test suite for UniverseLoader.

Tests cover:
- Two-pass resolution with forward references and builtins
- Partial failure, unresolved references and reference cycles
- Reloading and legacy path names
- Quantities, frames, rotation models and body info
- External resources and the update path
- Loading JSON and SSC files
"""

import numpy as np
import pytest
from kosmos import (UniverseLoader, UniverseCatalog, LoadResult, CatalogError, ParseError,
                    UnresolvedReference, FixedPointTrajectory, KeplerianTrajectory,
                    LinearCombinationTrajectory, TleTrajectory, BodyFixedFrame, Globe)
from kosmos.constants import SECONDS_PER_DAY, AU_KM, DAYS_PER_YEAR
from kosmos.ssc import ssc_to_document

DAY = SECONDS_PER_DAY

TLE_URL = "https://example.com/stations.txt"
TLE_TEXT = """ISS (ZARYA)
1 25544U 98067A   08264.51782528 -.00002182  00000-0 -11606-4 0  2927
2 25544  51.6416 247.4627 0006703 130.5360 325.0288 15.72125391563537
"""
ISS_ITEM = {'name': 'ISS', 'trajectory': {'type': 'TLE', 'source': TLE_URL, 'name': 'ISS (ZARYA)'}}
ISS_DOC = {'name': 'stations', 'items': [ISS_ITEM]}
SUN_EARTH_DOC = {'items': [{'name': 'Sun'}, {'name': 'Earth', 'center': 'Sun'}]}


@pytest.fixture
def loader():
    return UniverseLoader()


@pytest.fixture
def solar_loader(builtins):
    return UniverseLoader(builtins)


class TestResolution:
    """Test two-pass resolution."""

    def test_forward_references(self, solar_loader, builtins):
        """Items may refer to bodies defined later in the document."""
        document = {'items': [
            {'name': 'Moon', 'center': 'Earth', 'trajectory': {'type': 'Builtin', 'name': 'Moon'},
             'rotationModel': 'IAU Moon'},
            {'name': 'Earth', 'center': 'Sun', 'trajectory': 'Earth'},
            {'name': 'Sun'},
        ]}
        result = solar_loader.load_solar_system(document)
        assert result.body_names == ['Moon', 'Earth', 'Sun']
        assert result.failures == {}

        catalog = solar_loader.catalog
        moon, earth = catalog.find('Moon'), catalog.find('Earth')
        assert moon.parent is earth
        assert earth.parent is catalog.find('Sun')
        assert earth.trajectory is builtins.builtin_orbit('Earth')
        assert moon.rotation_model is builtins.builtin_rotation_model('IAU Moon')

    def test_builtin_positions(self, solar_loader, builtins):
        """Positions of resolved bodies compose builtin trajectories."""
        solar_loader.load_solar_system({'items': [
            {'name': 'Sun'},
            {'name': 'Earth', 'center': 'Sun', 'trajectory': 'Earth'},
            {'name': 'Moon', 'center': 'Earth', 'trajectory': 'Moon'},
        ]})
        expected = (builtins.builtin_orbit('Earth').position(0.0)
                    + builtins.builtin_orbit('Moon').position(0.0))
        np.testing.assert_allclose(solar_loader.catalog.find('Moon').position(0.0), expected)

    def test_references_existing_catalog(self, loader):
        """Later documents may refer to bodies from earlier loads."""
        loader.load_solar_system(SUN_EARTH_DOC)
        result = loader.load_solar_system({'items': [{'name': 'Moon', 'center': 'Earth'}]})
        assert result.body_names == ['Moon']
        assert loader.catalog.find('Moon').parent is loader.catalog.find('Earth')

    def test_explicit_catalog(self, loader):
        """Documents can be loaded into another catalog."""
        other = UniverseCatalog()
        loader.load_solar_system(SUN_EARTH_DOC, catalog=other)
        assert 'Earth' in other
        assert 'Earth' not in loader.catalog

    def test_shared_trajectory_and_rotation(self, loader):
        """A bare name shares another item's trajectory or rotation model."""
        loader.load_solar_system({'items': [
            {'name': 'A', 'trajectory': {'type': 'FixedPoint', 'position': [1, 2, 3]},
             'rotationModel': {'type': 'Uniform', 'period': 10}},
            {'name': 'B', 'trajectory': 'A', 'rotationModel': 'A'},
        ]})
        a, b = loader.catalog.find('A'), loader.catalog.find('B')
        assert b.trajectory is a.trajectory
        assert b.rotation_model is a.rotation_model

    def test_duplicate_item(self, loader):
        """The later of two items with the same name is used."""
        result = loader.load_solar_system({'items': [
            {'name': 'A', 'trajectory': {'type': 'FixedPoint', 'position': [1, 0, 0]}},
            {'name': 'A', 'trajectory': {'type': 'FixedPoint', 'position': [2, 0, 0]}},
        ]})
        assert result.body_names == ['A']
        np.testing.assert_allclose(loader.catalog.find('A').position(0.0), [2, 0, 0])

    def test_malformed_document(self, loader):
        with pytest.raises(ParseError):
            loader.load_solar_system([])
        with pytest.raises(ParseError):
            loader.load_solar_system({'items': {'name': 'A'}})


class TestFailures:
    """Test partial failure and unresolved references."""

    def test_unresolved_center(self, loader):
        """A missing center fails only that item."""
        result = loader.load_solar_system({'items': [
            {'name': 'Sun'},
            {'name': 'Planet', 'center': 'Vulcan'},
        ]})
        assert result.body_names == ['Sun']
        error = result.failures['Planet']
        assert isinstance(error, UnresolvedReference)
        assert error.item == 'Planet'
        assert error.reference == 'Vulcan'
        assert 'Planet' not in loader.catalog

    def test_unknown_builtin(self, loader):
        result = loader.load_solar_system({'items': [
            {'name': 'X', 'trajectory': {'type': 'Builtin', 'name': 'Vulcan'}},
        ]})
        assert isinstance(result.failures['X'], UnresolvedReference)
        assert "builtin trajectory" in str(result.failures['X'])

    def test_unnamed_item(self, loader):
        result = loader.load_solar_system({'items': [{'center': 'Sun'}, {'name': 'Sun'}]})
        assert result.body_names == ['Sun']
        assert isinstance(result.failures['<item 0>'], CatalogError)

    def test_invalid_field(self, loader):
        """Invalid fields fail the item with its name in the message."""
        result = loader.load_solar_system({'items': [
            {'name': 'X', 'trajectory': {'type': 'Keplerian', 'period': 10}},
        ]})
        assert isinstance(result.failures['X'], CatalogError)
        assert "Item 'X'" in str(result.failures['X'])

    def test_unknown_trajectory_type(self, loader):
        result = loader.load_solar_system({'items': [
            {'name': 'X', 'trajectory': {'type': 'Spline'}},
        ]})
        assert "unknown trajectory type" in str(result.failures['X'])

    def test_failure_logged(self, loader, caplog):
        loader.load_solar_system({'items': [{'name': 'Planet', 'center': 'Vulcan'}]})
        assert "Vulcan" in caplog.text

    def test_cycle(self, loader):
        """Mutually referencing items both fail as a cycle."""
        result = loader.load_solar_system({'items': [
            {'name': 'A', 'center': 'B'},
            {'name': 'B', 'center': 'A'},
            {'name': 'C'},
        ]})
        assert result.body_names == ['C']
        for name in ('A', 'B'):
            assert "reference cycle" in str(result.failures[name])

    def test_self_reference(self, loader):
        result = loader.load_solar_system({'items': [{'name': 'A', 'center': 'A'}]})
        assert "reference cycle" in str(result.failures['A'])

    def test_dependent_of_failed_item(self, loader):
        """Items depending on a failed item fail too."""
        result = loader.load_solar_system({'items': [
            {'name': 'A', 'center': 'Vulcan'},
            {'name': 'B', 'center': 'A'},
            {'name': 'C', 'center': 'B'},
        ]})
        assert result.body_names == []
        assert "failed to resolve" in str(result.failures['B'])
        assert "failed to resolve" in str(result.failures['C'])

    @pytest.mark.parametrize("spec", [
        {'trajectory': {'type': 'LinearCombination', 'terms': None}},
        {'trajectory': {'type': 'LinearCombination', 'terms': {'trajectory': 'Sun'}}},
        {'trajectory': {'type': 'Builtin', 'name': ['Moon']}},
        {'rotationModel': {'type': 'Builtin', 'name': ['IAU Moon']}},
        {'rotationModel': {'type': 'Builtin', 'name': {'body': 'Moon'}}},
    ])
    def test_malformed_reference_fields(self, loader, spec):
        """Malformed reference fields fail their item, not the document."""
        result = loader.load_solar_system({'items': [
            {'name': 'Good'},
            dict(spec, name='Bad'),
        ]})
        assert result.body_names == ['Good']
        assert isinstance(result.failures['Bad'], CatalogError)
        assert 'Bad' in str(result.failures['Bad'])


class TestReload:
    """Test reloading and legacy names."""

    def test_reload_is_idempotent(self, loader):
        """Loading the same document twice yields the same catalog."""
        first = loader.load_solar_system(SUN_EARTH_DOC)
        old_earth = loader.catalog.find('Earth')
        second = loader.load_solar_system(SUN_EARTH_DOC)
        assert first.body_names == second.body_names
        assert loader.catalog.names() == ['Sun', 'Earth']
        earth = loader.catalog.find('Earth')
        assert earth is not old_earth
        assert earth.parent is loader.catalog.find('Sun')

    def test_legacy_path_names(self, loader):
        """'Sol/Earth' finds Earth and 'Sol' finds the Sun."""
        loader.load_solar_system(SUN_EARTH_DOC)
        result = loader.load_solar_system({'items': [
            {'name': 'Sol/Earth/Moon', 'center': 'Sol/Earth'},
            {'name': 'Sol/Ceres', 'center': 'Sol'},
        ]})
        assert result.failures == {}
        catalog = loader.catalog
        assert catalog.find('Sol/Earth/Moon').parent is catalog.find('Earth')
        assert catalog.find('Sol/Ceres').parent is catalog.find('Sun')

    def test_legacy_matches_structured(self):
        """An SSC object resolves like the equivalent structured item."""
        base = {'items': [{'name': 'Y', 'trajectory': {'type': 'FixedPoint',
                                                       'position': [100.0, 0.0, 0.0]}}]}
        legacy, structured = UniverseLoader(), UniverseLoader()
        legacy.load_solar_system(base)
        structured.load_solar_system(base)

        legacy.load_solar_system(ssc_to_document('"X" "Y" { FixedPosition [ 1 2 3 ] }'))
        structured.load_solar_system({'items': [
            {'name': 'Y/X', 'center': 'Y',
             'trajectory': {'type': 'FixedPoint', 'position': [1, 2, 3]},
             'trajectoryFrame': 'EclipticJ2000', 'bodyFrame': 'EclipticJ2000'},
        ]})

        old, new = legacy.catalog.find('Y/X'), structured.catalog.find('Y/X')
        assert old.name == new.name == 'Y/X'
        assert old.parent.name == new.parent.name == 'Y'
        for t in (0.0, 1.0e6):
            np.testing.assert_allclose(old.position(t), new.position(t))
        np.testing.assert_allclose(old.orientation(0.0), new.orientation(0.0))


class TestItemFields:
    """Test quantities, frames, rotation models and body info."""

    def test_keplerian_units(self, loader):
        loader.load_solar_system({'items': [
            {'name': 'P', 'trajectory': {'type': 'Keplerian', 'semiMajorAxis': '1 au',
                                         'period': '1 y', 'eccentricity': 0.1}},
        ]})
        trajectory = loader.catalog.find('P').trajectory
        assert isinstance(trajectory, KeplerianTrajectory)
        assert trajectory.period == pytest.approx(DAYS_PER_YEAR * DAY)
        assert np.linalg.norm(trajectory.position(0.0)) == pytest.approx(0.9*AU_KM)

    def test_keplerian_defaults(self, loader):
        """Bare periods are days and bare angles are degrees."""
        loader.load_solar_system({'items': [
            {'name': 'P', 'trajectory': {'type': 'Keplerian', 'semiMajorAxis': 7000,
                                         'period': 2, 'inclination': 90}},
        ]})
        trajectory = loader.catalog.find('P').trajectory
        assert trajectory.period == pytest.approx(2*DAY)
        assert trajectory.elements_at(0.0).elements[2] == pytest.approx(np.pi/2)

    @pytest.mark.parametrize("epoch", ["2000-01-02T12:00:00", "2000-01-02T12:00:00Z", 2451546.0])
    def test_epoch_formats(self, loader, epoch):
        loader.load_solar_system({'items': [
            {'name': 'P', 'trajectory': {'type': 'Keplerian', 'semiMajorAxis': 7000,
                                         'period': 1, 'epoch': epoch}},
        ]})
        assert loader.catalog.find('P').trajectory.epoch == pytest.approx(DAY)

    def test_linear_combination(self, loader):
        """Terms are weighted; periodSource picks the period."""
        terms = [
            {'trajectory': {'type': 'Keplerian', 'semiMajorAxis': 7000, 'period': 2}},
            {'trajectory': {'type': 'FixedPoint', 'position': [1, 0, 0]}, 'weight': 2},
        ]
        loader.load_solar_system({'items': [
            {'name': 'Dominant', 'trajectory': {'type': 'LinearCombination', 'terms': terms}},
            {'name': 'Chosen', 'trajectory': {'type': 'LinearCombination', 'terms': terms,
                                              'periodSource': 0}},
        ]})
        dominant = loader.catalog.find('Dominant').trajectory
        chosen = loader.catalog.find('Chosen').trajectory
        assert isinstance(chosen, LinearCombinationTrajectory)
        assert dominant.period == 0.0
        assert chosen.period == pytest.approx(2*DAY)
        np.testing.assert_allclose(chosen.position(0.0), [7002.0, 0.0, 0.0])

    def test_bad_period_source(self, loader):
        result = loader.load_solar_system({'items': [
            {'name': 'X', 'trajectory': {'type': 'LinearCombination', 'periodSource': 3,
                                         'terms': [{'trajectory': {'type': 'FixedPoint'}}]}},
        ]})
        assert "periodSource" in str(result.failures['X'])

    def test_rotation_models(self, loader):
        """Uniform periods default to hours; fixed models take quaternions."""
        loader.load_solar_system({'items': [
            {'name': 'U', 'rotationModel': {'type': 'Uniform', 'period': 10}},
            {'name': 'F', 'rotationModel': {'type': 'Fixed', 'quaternion': [0, 0, 0, 1]}},
        ]})
        assert loader.catalog.find('U').rotation_model.period == pytest.approx(36000.0)
        np.testing.assert_allclose(loader.catalog.find('F').orientation(0.0),
                                   np.diag([-1.0, -1.0, 1.0]), atol=1e-12)

    def test_body_fixed_frame(self, loader):
        loader.load_solar_system({'items': [
            {'name': 'Planet', 'rotationModel': {'type': 'Uniform', 'period': 24}},
            {'name': 'Lander', 'center': 'Planet',
             'trajectoryFrame': {'type': 'BodyFixed', 'body': 'Planet'}},
        ]})
        frame = loader.catalog.find('Lander').trajectory_frame
        assert isinstance(frame, BodyFixedFrame)
        assert frame.body is loader.catalog.find('Planet')

    def test_unknown_frame(self, loader):
        result = loader.load_solar_system({'items': [
            {'name': 'X', 'trajectoryFrame': 'Galactic'},
        ]})
        assert 'X' in result.failures

    def test_body_info(self, loader):
        loader.load_solar_system({'items': [
            {'name': 'Mars', 'class': 'planet', 'description': 'Red',
             'label': {'color': '#ff0000'},
             'trajectoryPlot': {'duration': '30 d', 'fade': 0.3, 'sampleCount': 50,
                                'color': [0, 0, 1]}},
        ]})
        info = loader.catalog.find_info('Mars')
        assert info.classification == 'planet'
        assert info.description == 'Red'
        assert info.label_color == (1.0, 0.0, 0.0)
        assert info.trajectory_plot_duration == pytest.approx(30*DAY)
        assert info.trajectory_plot_fade == 0.3
        assert info.trajectory_plot_samples == 50
        assert info.trajectory_plot_color == (0.0, 0.0, 1.0)

    def test_globe_geometry(self, loader):
        loader.load_solar_system({'items': [
            {'name': 'Moon', 'geometry': {'type': 'Globe', 'radius': 1737.4}},
        ]})
        geometry = loader.catalog.find('Moon').geometry
        assert isinstance(geometry, Globe)
        assert geometry.radii == (1737.4, 1737.4, 1737.4)
        assert geometry.is_complete


class TestResources:
    """Test resource requests and the update path."""

    def test_tle_request_and_update(self, loader):
        """A TLE by URL is requested, then replaces the placeholder."""
        result = loader.load_solar_system(ISS_DOC)
        assert result.resource_requests == {TLE_URL}
        assert loader.resource_requests == {TLE_URL}
        iss = loader.catalog.find('ISS')
        assert isinstance(iss.trajectory, FixedPointTrajectory)

        assert loader.apply_update(TLE_URL, TLE_TEXT) == ['ISS']
        assert isinstance(iss.trajectory, TleTrajectory)
        assert loader.resource_requests == set()

    def test_update_is_idempotent(self, loader):
        loader.load_solar_system(ISS_DOC)
        loader.apply_update(TLE_URL, TLE_TEXT.encode())
        first = loader.catalog.find('ISS').position(0.0)
        assert loader.apply_update(TLE_URL, TLE_TEXT.encode()) == ['ISS']
        np.testing.assert_allclose(loader.catalog.find('ISS').position(0.0), first)

    def test_malformed_payload_ignored(self, loader, caplog):
        """A malformed payload leaves the entity and the request alone."""
        loader.load_solar_system(ISS_DOC)
        assert loader.apply_update(TLE_URL, "not a TLE set") == []
        assert isinstance(loader.catalog.find('ISS').trajectory, FixedPointTrajectory)
        assert loader.resource_requests == {TLE_URL}
        assert "malformed" in caplog.text

    def test_stale_entity_not_updated(self, loader):
        """Entities replaced by a reload no longer receive updates."""
        loader.load_solar_system(ISS_DOC)
        old = loader.catalog.find('ISS')
        loader.load_solar_system(ISS_DOC)
        assert loader.apply_update(TLE_URL, TLE_TEXT) == ['ISS']
        assert isinstance(old.trajectory, FixedPointTrajectory)
        assert isinstance(loader.catalog.find('ISS').trajectory, TleTrajectory)

    def test_cached_payload_applied_on_reload(self, loader):
        """Payloads already received are applied to reloaded entities."""
        loader.load_solar_system(ISS_DOC)
        loader.apply_update(TLE_URL, TLE_TEXT)
        result = loader.load_solar_system(ISS_DOC)
        assert result.resource_requests == set()
        assert isinstance(loader.catalog.find('ISS').trajectory, TleTrajectory)

    def test_unrequested_payload_kept(self, loader):
        """Payloads nobody asked for yet are used by later loads."""
        assert loader.apply_update(TLE_URL, TLE_TEXT) == []
        loader.load_solar_system(ISS_DOC)
        assert isinstance(loader.catalog.find('ISS').trajectory, TleTrajectory)

    def test_pending_inside_combination(self, loader):
        result = loader.load_solar_system({'items': [
            {'name': 'X', 'trajectory': {'type': 'LinearCombination', 'terms': [
                {'trajectory': {'type': 'TLE', 'source': TLE_URL, 'name': 'ISS (ZARYA)'}}]}},
        ]})
        assert "LinearCombination" in str(result.failures['X'])

    def test_inline_tle(self, loader):
        lines = TLE_TEXT.splitlines()
        loader.load_solar_system({'items': [
            {'name': 'ISS', 'trajectory': {'type': 'TLE', 'line1': lines[1], 'line2': lines[2]}},
        ]})
        assert isinstance(loader.catalog.find('ISS').trajectory, TleTrajectory)

    def test_texture_url(self, loader):
        """Remote textures are pending until their payload arrives."""
        url = "https://example.com/moon.jpg"
        result = loader.load_solar_system({'items': [
            {'name': 'Moon', 'geometry': {'type': 'Globe', 'radius': 1737.4, 'baseMap': url}},
        ]})
        assert result.resource_requests == {url}
        geometry = loader.catalog.find('Moon').geometry
        assert geometry.pending == {url}
        assert loader.apply_update(url, b"jpeg") == ['Moon']
        assert geometry.is_complete
        assert geometry.payloads[url] == b"jpeg"

    def test_states_update(self, loader):
        url = "https://example.com/probe.xyzv"
        loader.load_solar_system({'items': [
            {'name': 'Probe', 'trajectory': {'type': 'InterpolatedStates', 'source': url}},
        ]})
        table = "2451545.0 0 0 0\n2451546.0 86400 0 0\n"
        assert loader.apply_update(url, table) == ['Probe']
        np.testing.assert_allclose(loader.catalog.find('Probe').state(DAY/2),
                                   [43200.0, 0, 0, 1.0, 0, 0])

    def test_shared_pending_trajectory(self, loader):
        """Bodies sharing a pending trajectory by name follow its update."""
        result = loader.load_solar_system({'items': [
            {'name': 'Ghost', 'trajectory': 'ISS'},
            ISS_ITEM,
        ]})
        assert result.body_names == ['Ghost', 'ISS']
        assert result.resource_requests == {TLE_URL}
        assert sorted(loader.apply_update(TLE_URL, TLE_TEXT)) == ['Ghost', 'ISS']
        ghost, iss = loader.catalog.find('Ghost'), loader.catalog.find('ISS')
        assert isinstance(ghost.trajectory, TleTrajectory)
        np.testing.assert_allclose(ghost.position(2.7e8), iss.position(2.7e8))

    def test_shared_pending_trajectory_cached(self, loader):
        """A payload received before the load reaches the sharing body too."""
        loader.apply_update(TLE_URL, TLE_TEXT)
        result = loader.load_solar_system({'items': [
            ISS_ITEM,
            {'name': 'Ghost', 'trajectory': 'ISS'},
        ]})
        assert result.resource_requests == set()
        assert isinstance(loader.catalog.find('Ghost').trajectory, TleTrajectory)

    def test_shared_pending_trajectory_from_catalog(self, loader):
        """Sharing a pending trajectory from an earlier load."""
        loader.load_solar_system(ISS_DOC)
        loader.load_solar_system({'items': [{'name': 'Ghost', 'trajectory': 'ISS'}]})
        assert loader.apply_update(TLE_URL, TLE_TEXT) == ['ISS', 'Ghost']
        assert isinstance(loader.catalog.find('Ghost').trajectory, TleTrajectory)

    def test_pending_name_inside_combination(self, loader):
        result = loader.load_solar_system({'items': [
            ISS_ITEM,
            {'name': 'X', 'trajectory': {'type': 'LinearCombination',
                                         'terms': [{'trajectory': 'ISS'}]}},
        ]})
        assert result.body_names == ['ISS']
        assert "LinearCombination" in str(result.failures['X'])

    def test_clear_resource_cache(self, loader):
        """Forgotten payloads are requested again by later loads."""
        loader.apply_update(TLE_URL, TLE_TEXT)
        loader.clear_resource_cache()
        result = loader.load_solar_system(ISS_DOC)
        assert result.resource_requests == {TLE_URL}
        assert isinstance(loader.catalog.find('ISS').trajectory, FixedPointTrajectory)

    def test_clear_one_cached_resource(self, loader):
        loader.apply_update(TLE_URL, TLE_TEXT)
        loader.clear_resource_cache("https://example.com/other.txt")
        result = loader.load_solar_system(ISS_DOC)
        assert result.resource_requests == set()
        loader.clear_resource_cache(TLE_URL)
        assert loader.load_solar_system(ISS_DOC).resource_requests == {TLE_URL}


class TestFiles:
    """Test load_catalog_file()."""

    def test_json_file(self, tmp_path, loader):
        path = tmp_path / "solar.json"
        path.write_text('{"name": "solar", "items": [{"name": "Sun"}]}')
        result = loader.load_catalog_file(path)
        assert isinstance(result, LoadResult)
        assert result.body_names == ['Sun']
        assert loader.texture_search_path == tmp_path

    def test_parse_error_line(self, tmp_path, loader):
        path = tmp_path / "bad.json"
        path.write_text('{\n  "items": [\n    {"name": "A",}\n  ]\n}\n')
        with pytest.raises(ParseError) as excinfo:
            loader.load_catalog_file(path)
        assert excinfo.value.line == 3
        assert "Line 3" in str(excinfo.value)

    def test_missing_file(self, tmp_path, loader):
        with pytest.raises(CatalogError, match="Could not open file"):
            loader.load_catalog_file(tmp_path / "missing.json")

    def test_unsupported_extension(self, tmp_path, loader):
        path = tmp_path / "solar.xml"
        path.write_text("<items/>")
        with pytest.raises(CatalogError, match="Unsupported"):
            loader.load_catalog_file(path)

    def test_empty_document(self, tmp_path, loader):
        path = tmp_path / "empty.json"
        path.write_text("{}")
        result = loader.load_catalog_file(path)
        assert result.body_names == []
        assert len(loader.catalog) == 0

    def test_require(self, tmp_path, loader):
        """Required files load first, each at most once."""
        (tmp_path / "base.json").write_text(
            '{"require": "extra.json", "items": [{"name": "Sun"}]}')
        (tmp_path / "extra.json").write_text(
            '{"require": ["base.json"], "items": [{"name": "Planet"}]}')
        result = loader.load_catalog_file(tmp_path / "base.json")
        assert result.body_names == ['Planet', 'Sun']

    def test_require_order(self, tmp_path, loader):
        (tmp_path / "base.json").write_text('{"items": [{"name": "Sun"}]}')
        (tmp_path / "extra.json").write_text(
            '{"require": "base.json", "items": [{"name": "Planet", "center": "Sun"}]}')
        result = loader.load_catalog_file(tmp_path / "extra.json")
        assert result.body_names == ['Sun', 'Planet']
        assert result.failures == {}

    def test_requests_cleared(self, tmp_path, loader):
        loader.load_solar_system(ISS_DOC)
        path = tmp_path / "solar.json"
        path.write_text('{"items": [{"name": "Sun"}]}')
        loader.load_catalog_file(path)
        assert loader.resource_requests == set()

    def test_local_resources(self, tmp_path, loader):
        """Files next to the document are used directly."""
        (tmp_path / "moon.jpg").write_bytes(b"jpeg")
        (tmp_path / "stations.txt").write_text(TLE_TEXT)
        path = tmp_path / "local.json"
        path.write_text('''{"items": [
            {"name": "Moon", "geometry": {"type": "Globe", "baseMap": "moon.jpg"}},
            {"name": "ISS", "trajectory": {"type": "TLE", "source": "stations.txt",
                                           "name": "ISS (ZARYA)"}},
            {"name": "Mars", "geometry": {"type": "Globe", "baseMap": "mars.jpg"}}
        ]}''')
        result = loader.load_catalog_file(path)
        assert loader.catalog.find('Moon').geometry.is_complete
        assert isinstance(loader.catalog.find('ISS').trajectory, TleTrajectory)
        assert result.resource_requests == {str(tmp_path / "mars.jpg")}

    def test_ssc_file(self, tmp_path, loader):
        """SSC objects are named by path and find their media subdirectories."""
        loader.load_solar_system(SUN_EARTH_DOC)
        textures = tmp_path / "textures" / "medres"
        textures.mkdir(parents=True)
        (textures / "moon.jpg").write_bytes(b"jpeg")
        path = tmp_path / "extras.ssc"
        path.write_text('''
"Moon" "Sol/Earth"
{
    Radius 1737.4
    Texture "moon.jpg"
    EllipticalOrbit { Period 27.321661 SemiMajorAxis 384400 }
}
''')
        result = loader.load_catalog_file(path)
        assert result.body_names == ['Sol/Earth/Moon']
        moon = loader.catalog.find('Sol/Earth/Moon')
        assert moon.parent is loader.catalog.find('Earth')
        assert moon.geometry.is_complete
        assert moon.trajectory.period == pytest.approx(27.321661*DAY)
        assert loader.texture_search_path == textures
        assert loader.data_search_path == tmp_path / "data"

    def test_ssc_parse_error(self, tmp_path, loader):
        path = tmp_path / "broken.ssc"
        path.write_text('"Moon" "Sol/Earth"\n{\n  Radius @\n}\n')
        with pytest.raises(ParseError) as excinfo:
            loader.load_catalog_file(path)
        assert excinfo.value.line == 3
