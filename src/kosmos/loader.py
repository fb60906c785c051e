"""
Universe catalog loading
========================

UniverseLoader turns catalog documents into Entities and registers them in a
UniverseCatalog.

A catalog document is a mapping with an 'items' list (and optionally a
'name' and a 'require' list of other catalog files). Each item describes one
body::

    {
        "name": "Moon",
        "center": "Earth",
        "trajectory": {"type": "Builtin", "name": "Moon"},
        "trajectoryFrame": "EquatorJ2000",
        "rotationModel": "IAU Moon",
        "geometry": {"type": "Globe", "radius": 1737.4, "baseMap": "moon.jpg"},
        "class": "moon",
        "label": {"color": [0.8, 0.8, 0.8]},
        "trajectoryPlot": {"duration": "27.3 d", "fade": 0.3}
    }

Resolution happens in two passes. All items are first indexed by name, so
items may refer to bodies defined later in the document (or to bodies
already in the catalog from an earlier load). Items are then built in
dependency order. An item whose references cannot be satisfied, or whose
fields are invalid, is reported in LoadResult.failures and skipped; the rest
of the document still loads.

External resources (TLE sets, sampled trajectories, textures, meshes) named
by URL, or by local files that are not on the search path, are listed in
resource_requests. The host fetches them and hands the payloads back through
apply_update().

Examples
--------
>>> from kosmos import BuiltinRegistry, UniverseLoader, register_solar_system_builtins
>>> builtins = BuiltinRegistry()
>>> register_solar_system_builtins(builtins, EphemerisStore.load("de406.dat"))
>>> loader = UniverseLoader(builtins)
>>> result = loader.load_catalog_file("solarsys.json")
>>> result.body_names
['Sun', 'Earth', 'Moon', ...]
>>> for url in result.resource_requests:
...     loader.apply_update(url, fetch(url))
"""

import json
import logging
import re
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum, auto
from pathlib import Path
from typing import Dict, List, Optional, Set, Tuple, Union
import numpy as np
from .catalog import UniverseCatalog
from .config import config
from .constants import (ANGLE_UNITS, DISTANCE_UNITS, J2000_JD,
                        TIME_UNITS, jd_to_seconds, parse_quantity)
from .entity import AxesGeometry, BodyInfo, Entity, Geometry, Globe, MeshGeometry
from .errors import CatalogError, ParseError, UnresolvedReference
from .frames import BodyFixedFrame, Frame, inertial_frame
from .rotation import FixedRotationModel, RotationModel, UniformRotationModel
from .ssc import ssc_to_document
from .tle import parse_tle_set
from .trajectory import (FixedPointTrajectory, InterpolatedStatesTrajectory,
                         KeplerianTrajectory, LinearCombinationTrajectory,
                         Trajectory, combine)

log = logging.getLogger(__name__)

_URL_RE = re.compile(r'^[A-Za-z][A-Za-z0-9+.-]*://')
_J2000_DATETIME = datetime(2000, 1, 1, 12, 0, 0)
_TRAJECTORY_KINDS = ('tle', 'states')


class BuiltinRegistry:
    """
    Named trajectories and rotation models that catalog documents may refer
    to with {"type": "Builtin", "name": ...} or a bare string.

    Examples
    --------
    >>> builtins = BuiltinRegistry()
    >>> builtins.add_builtin_rotation_model("IAU Moon", IAULunarRotationModel())
    >>> builtins.builtin_rotation_model("IAU Moon")
    """

    def __init__(self):
        self._orbits: Dict[str, Trajectory] = {}
        self._rotation_models: Dict[str, RotationModel] = {}

    def add_builtin_orbit(self, name: str, trajectory: Trajectory):
        if not isinstance(trajectory, Trajectory):
            raise TypeError(f"Expected Trajectory, got {type(trajectory)}")
        self._orbits[name] = trajectory

    def add_builtin_rotation_model(self, name: str, model: RotationModel):
        if not isinstance(model, RotationModel):
            raise TypeError(f"Expected RotationModel, got {type(model)}")
        self._rotation_models[name] = model

    def builtin_orbit(self, name: str) -> Optional[Trajectory]:
        return self._orbits.get(name)

    def builtin_rotation_model(self, name: str) -> Optional[RotationModel]:
        return self._rotation_models.get(name)

    def orbit_names(self) -> List[str]:
        return list(self._orbits)

    def rotation_model_names(self) -> List[str]:
        return list(self._rotation_models)

    def __repr__(self):
        return (f"BuiltinRegistry({len(self._orbits)} orbits, "
                f"{len(self._rotation_models)} rotation models)")


@dataclass
class LoadResult:
    """
    Outcome of loading one catalog document.

    Attributes
    ----------
    body_names : list of str
        Names upserted into the catalog, in document order
    resource_requests : set of str
        Identifiers of external resources the document needs
    failures : dict
        Item name -> exception explaining why it was skipped
    """
    body_names: List[str] = field(default_factory=list)
    resource_requests: Set[str] = field(default_factory=set)
    failures: Dict[str, Exception] = field(default_factory=dict)

    def merge(self, other: "LoadResult"):
        for name in other.body_names:
            if name in self.body_names:
                self.body_names.remove(name)
            self.body_names.append(name)
        self.resource_requests |= other.resource_requests
        self.failures.update(other.failures)


class ItemState(Enum):
    DECLARED = auto()
    NORMALIZED = auto()
    REFERENCES_CHECKED = auto()
    RESOLVED = auto()
    FAILED = auto()


@dataclass(eq=False)
class _Item:
    name: str
    spec: dict
    state: ItemState = ItemState.DECLARED
    # reference as written -> name it resolved to
    references: Dict[str, str] = field(default_factory=dict)
    entity: Optional[Entity] = None
    info: Optional[BodyInfo] = None
    resources: List[Tuple[str, str, Optional[str]]] = field(default_factory=list)
    error: Optional[Exception] = None


@dataclass(eq=False)
class _Subscription:
    """An entity waiting for (or already fed by) an external resource."""
    name: str
    entity: Entity
    catalog: UniverseCatalog
    kind: str
    key: Optional[str] = None


class UniverseLoader:
    """
    Resolves catalog documents into a UniverseCatalog.

    Parameters
    ----------
    builtins : BuiltinRegistry, optional
        Named trajectories and rotation models available to documents
    catalog : UniverseCatalog, optional
        Catalog that loads write into; a new one is created if omitted

    Attributes
    ----------
    data_search_path, texture_search_path, model_search_path : Path
        Directories where local trajectory data, textures and meshes are
        looked up. Set by load_catalog_file() to the document's directory.
    """

    def __init__(self, builtins: Optional[BuiltinRegistry] = None,
                 catalog: Optional[UniverseCatalog] = None):
        self._builtins = builtins if builtins is not None else BuiltinRegistry()
        self._catalog = catalog if catalog is not None else UniverseCatalog()
        self.data_search_path = Path(config.DATA_SEARCH_PATH)
        self.texture_search_path = Path(config.TEXTURE_SEARCH_PATH)
        self.model_search_path = Path(config.MODEL_SEARCH_PATH)
        self._resource_requests: Set[str] = set()
        self._subscriptions: Dict[str, List[_Subscription]] = {}
        self._resource_cache: Dict[str, Union[str, bytes]] = {}

    # ========== PROPERTY ACCESS ==========
    @property
    def builtins(self) -> BuiltinRegistry:
        return self._builtins

    @property
    def catalog(self) -> UniverseCatalog:
        return self._catalog

    @property
    def resource_requests(self) -> Set[str]:
        """Identifiers requested since the last clear_resource_requests()."""
        return set(self._resource_requests)

    def clear_resource_requests(self):
        self._resource_requests.clear()

    def clear_resource_cache(self, resource_id: Optional[str] = None):
        """
        Forget delivered payloads, all of them or the one for resource_id.

        Entities already updated keep their data; later loads that refer to
        a forgotten identifier request it again.
        """
        if resource_id is None:
            self._resource_cache.clear()
        else:
            self._resource_cache.pop(resource_id, None)

    # ========== DOCUMENT LOADING ==========
    def load_catalog_file(self, path: Union[str, Path]) -> LoadResult:
        """
        Load a .json or .ssc catalog file into the catalog.

        Files named in a JSON document's 'require' list are loaded first,
        relative to the requiring file; each file is loaded at most once per
        call. Pending resource requests are cleared before loading.

        Raises
        ------
        CatalogError
            If the file cannot be opened or has an unsupported extension
        ParseError
            If the file is syntactically malformed
        """
        self.clear_resource_requests()
        return self._load_file(Path(path), set())

    def _load_file(self, path: Path, loaded: Set[Path]) -> LoadResult:
        resolved = path.resolve()
        if resolved in loaded:
            log.debug("Skipping already loaded catalog %s", path)
            return LoadResult()
        loaded.add(resolved)

        suffix = path.suffix.lower()
        if suffix not in ('.json', '.ssc'):
            raise CatalogError(f"Unsupported catalog file type '{path}'")
        try:
            text = path.read_text(encoding='utf-8')
        except (OSError, UnicodeDecodeError) as exc:
            raise CatalogError(f"Could not open file '{path}': {exc}") from exc

        directory = path.parent
        result = LoadResult()
        if suffix == '.json':
            try:
                document = json.loads(text)
            except json.JSONDecodeError as exc:
                raise ParseError(exc.lineno, exc.msg, str(path)) from exc
            if not isinstance(document, dict):
                raise ParseError(1, "Catalog document must be a JSON object", str(path))
            if not document:
                log.info("Catalog file %s is empty", path)
                return result
            requires = document.get('require', [])
            if isinstance(requires, str):
                requires = [requires]
            for required in requires:
                result.merge(self._load_file(directory / required, loaded))
            self.data_search_path = directory
            self.texture_search_path = directory
            self.model_search_path = directory
        else:
            document = ssc_to_document(text, name=str(path))
            # SSC add-ons keep media in fixed subdirectories
            self.data_search_path = directory / 'data'
            self.texture_search_path = directory / 'textures' / 'medres'
            self.model_search_path = directory / 'models'

        log.info("Loading catalog %s", path)
        result.merge(self.load_solar_system(document))
        return result

    def load_solar_system(self, document: dict,
                          catalog: Optional[UniverseCatalog] = None) -> LoadResult:
        """
        Resolve a catalog document and upsert its bodies.

        Parameters
        ----------
        document : dict
            Mapping with an 'items' list of item mappings
        catalog : UniverseCatalog, optional
            Target catalog; defaults to the loader's catalog

        Returns
        -------
        LoadResult
            Names of the bodies registered, resources needed, and the
            items that failed with their errors

        Raises
        ------
        ParseError
            If the document itself (not one of its items) is malformed
        """
        catalog = catalog if catalog is not None else self._catalog
        if not isinstance(document, dict):
            raise ParseError(None, "Catalog document must be a mapping")
        raw_items = document.get('items', [])
        if not isinstance(raw_items, list):
            raise ParseError(None, "Catalog 'items' must be a list")

        result = LoadResult()
        items = self._index_items(raw_items, result)
        for item in items.values():
            self._check_references(item, items, catalog)
        self._build_all(items, catalog)

        for item in items.values():
            if item.state is ItemState.FAILED:
                log.warning("Skipping catalog item: %s", item.error)
                result.failures[item.name] = item.error
                continue
            catalog.upsert(item.name, item.entity, item.info)
            result.body_names.append(item.name)
            for resource_id, kind, key in item.resources:
                subscription = _Subscription(item.name, item.entity, catalog, kind, key)
                self._subscriptions.setdefault(resource_id, []).append(subscription)
                if resource_id in self._resource_cache:
                    self._apply(subscription, resource_id, self._resource_cache[resource_id])
                else:
                    self._resource_requests.add(resource_id)
                    result.resource_requests.add(resource_id)
                    log.info("Item '%s' requests resource %s", item.name, resource_id)
        log.info("Loaded %d bodies from '%s' (%d failed)", len(result.body_names),
                 document.get('name', '<document>'), len(result.failures))
        return result

    def _index_items(self, raw_items: list, result: LoadResult) -> Dict[str, _Item]:
        """First pass: validate item shapes and index them by name."""
        items: Dict[str, _Item] = {}
        for index, raw in enumerate(raw_items):
            name = raw.get('name') if isinstance(raw, dict) else None
            if not isinstance(name, str) or not name:
                label = f"<item {index}>"
                result.failures[label] = CatalogError(f"Item {index} has no name")
                log.warning("Skipping unnamed catalog item %d", index)
                continue
            if name in items:
                log.info("Item '%s' redefined; the later definition is used", name)
                del items[name]
            items[name] = _Item(name, raw, ItemState.NORMALIZED)
        return items

    # ========== REFERENCE CHECKING ==========
    def _lookup_name(self, reference: str, items: Dict[str, _Item],
                     catalog: UniverseCatalog) -> Optional[str]:
        """
        Name a reference resolves to: an item of this document first, then
        a catalog entry. Legacy path names fall back to their last component,
        with 'Sol' meaning the Sun.
        """
        candidates = [reference]
        if '/' in reference:
            candidates.append(reference.rsplit('/', 1)[1])
        candidates += ['Sun' for c in candidates if c == 'Sol']
        for candidate in candidates:
            if candidate in items:
                return candidate
        for candidate in candidates:
            if candidate in catalog:
                return candidate
        return None

    def _entity_references(self, spec: dict) -> List[str]:
        """Names of other bodies an item depends on."""
        references = []
        center = spec.get('center')
        if center is not None:
            if not isinstance(center, str):
                raise CatalogError(f"Item '{spec['name']}': center must be a name")
            references.append(center)
        for key in ('trajectoryFrame', 'bodyFrame'):
            frame = spec.get(key)
            if isinstance(frame, dict) and frame.get('type') == 'BodyFixed':
                body = frame.get('body')
                if not isinstance(body, str):
                    raise CatalogError(f"Item '{spec['name']}': BodyFixed frame needs a body")
                references.append(body)
        references += self._trajectory_references(spec.get('trajectory'), spec['name'])
        rotation = spec.get('rotationModel')
        if isinstance(rotation, str):
            if self._builtins.builtin_rotation_model(rotation) is None:
                references.append(rotation)
        elif isinstance(rotation, dict) and rotation.get('type') == 'Builtin':
            if not isinstance(rotation.get('name'), str):
                raise CatalogError(f"Item '{spec['name']}': builtin rotation model needs a name")
            if self._builtins.builtin_rotation_model(rotation['name']) is None:
                raise UnresolvedReference(spec['name'], str(rotation.get('name')),
                                          "is not a builtin rotation model")
        return references

    def _trajectory_references(self, spec, item_name: str) -> List[str]:
        if isinstance(spec, str):
            return [] if self._builtins.builtin_orbit(spec) is not None else [spec]
        if not isinstance(spec, dict):
            return []
        if spec.get('type') == 'Builtin':
            if not isinstance(spec.get('name'), str):
                raise CatalogError(f"Item '{item_name}': builtin trajectory needs a name")
            if self._builtins.builtin_orbit(spec['name']) is None:
                raise UnresolvedReference(item_name, spec['name'],
                                          "is not a builtin trajectory")
            return []
        if spec.get('type') == 'LinearCombination':
            terms = spec.get('terms')
            if not isinstance(terms, list):
                raise CatalogError(f"Item '{item_name}': LinearCombination 'terms' must be a list")
            references = []
            for term in terms:
                if isinstance(term, dict):
                    references += self._trajectory_references(term.get('trajectory'), item_name)
            return references
        return []

    def _check_references(self, item: _Item, items: Dict[str, _Item],
                          catalog: UniverseCatalog):
        try:
            for reference in self._entity_references(item.spec):
                target = self._lookup_name(reference, items, catalog)
                if target is None:
                    raise UnresolvedReference(item.name, reference)
                item.references[reference] = target
        except CatalogError as exc:
            self._fail(item, exc)
            return
        except (ValueError, TypeError) as exc:
            self._fail(item, CatalogError(f"Item '{item.name}': {exc}"))
            return
        item.state = ItemState.REFERENCES_CHECKED

    @staticmethod
    def _fail(item: _Item, error: Exception):
        item.state = ItemState.FAILED
        item.error = error

    # ========== BUILDING ==========
    def _build_all(self, items: Dict[str, _Item], catalog: UniverseCatalog):
        """Second pass: build entities in dependency order."""
        stack: List[_Item] = []

        def visit(item: _Item):
            if item.state in (ItemState.RESOLVED, ItemState.FAILED):
                return
            if item in stack:
                for member in stack[stack.index(item):]:
                    self._fail(member, UnresolvedReference(
                        member.name, item.name, "is part of a reference cycle"))
                return
            stack.append(item)
            for target in item.references.values():
                dependency = items.get(target)
                if dependency is None:
                    continue
                visit(dependency)
                if item.state is ItemState.FAILED:
                    break
                if dependency.state is ItemState.FAILED:
                    self._fail(item, UnresolvedReference(
                        item.name, dependency.name, "failed to resolve"))
                    break
            stack.pop()
            if item.state is not ItemState.FAILED:
                self._build(item, items, catalog)

        for item in list(items.values()):
            visit(item)

    def _build(self, item: _Item, items: Dict[str, _Item], catalog: UniverseCatalog):
        def lookup(reference: str) -> Entity:
            target = item.references[reference]
            if target in items:
                return items[target].entity
            return catalog.find(target)

        def pending(reference: str) -> List[Tuple[str, str, Optional[str]]]:
            # trajectory resources the referenced body is still waiting for
            target = item.references[reference]
            if target in items:
                return [r for r in items[target].resources if r[1] in _TRAJECTORY_KINDS]
            entity = catalog.find(target)
            return [(resource_id, s.kind, s.key)
                    for resource_id, subscriptions in self._subscriptions.items()
                    if resource_id not in self._resource_cache
                    for s in subscriptions
                    if s.entity is entity and s.kind in _TRAJECTORY_KINDS]

        spec = item.spec
        try:
            parent = lookup(spec['center']) if spec.get('center') is not None else None
            trajectory = self._trajectory(spec.get('trajectory'), item, lookup, pending)
            trajectory_frame = self._frame(spec.get('trajectoryFrame',
                                                    config.DEFAULT_TRAJECTORY_FRAME), lookup)
            body_frame = self._frame(spec.get('bodyFrame', config.DEFAULT_BODY_FRAME), lookup)
            rotation_model = self._rotation_model(spec.get('rotationModel'), lookup)
            geometry = self._geometry(spec.get('geometry'), item)
            info = self._body_info(spec)
            entity = Entity(item.name, parent=parent, trajectory=trajectory,
                            trajectory_frame=trajectory_frame, body_frame=body_frame,
                            rotation_model=rotation_model, geometry=geometry)
        except CatalogError as exc:
            self._fail(item, exc)
            return
        except (ValueError, TypeError, KeyError) as exc:
            self._fail(item, CatalogError(f"Item '{item.name}': {exc}"))
            return
        item.entity = entity
        item.info = info
        item.state = ItemState.RESOLVED

    # ---------- trajectories ----------
    def _trajectory(self, spec, item: _Item, lookup, pending,
                    nested: bool = False) -> Trajectory:
        if spec is None:
            return FixedPointTrajectory()
        if isinstance(spec, str):
            builtin = self._builtins.builtin_orbit(spec)
            if builtin is not None:
                return builtin
            resources = pending(spec)
            if resources:
                # share the placeholder and follow the same updates
                if nested:
                    raise CatalogError(f"Item '{item.name}': trajectory of '{spec}' is not yet "
                                       f"available and cannot be used inside a LinearCombination")
                for resource in resources:
                    if resource not in item.resources:
                        item.resources.append(resource)
                return FixedPointTrajectory()
            return lookup(spec).trajectory
        if not isinstance(spec, dict):
            raise CatalogError(f"Item '{item.name}': trajectory must be a name or mapping")

        kind = spec.get('type')
        if kind == 'Builtin':
            return self._builtins.builtin_orbit(spec['name'])
        if kind == 'FixedPoint':
            position = spec.get('position', [0.0, 0.0, 0.0])
            if not isinstance(position, list) or len(position) != 3:
                raise ValueError("FixedPoint position must be a three-element list")
            return FixedPointTrajectory([_distance(p) for p in position])
        if kind == 'Keplerian':
            return self._keplerian(spec)
        if kind == 'LinearCombination':
            return self._linear_combination(spec, item, lookup, pending)
        if kind == 'TLE':
            return self._tle(spec, item, nested)
        if kind == 'InterpolatedStates':
            return self._interpolated_states(spec, item, nested)
        raise CatalogError(f"Item '{item.name}': unknown trajectory type '{kind}'")

    def _keplerian(self, spec: dict) -> KeplerianTrajectory:
        if 'semiMajorAxis' not in spec:
            raise ValueError("Keplerian trajectory requires semiMajorAxis")
        period = _time(spec['period'], 'd') if 'period' in spec else None
        mu = float(spec['gm']) if 'gm' in spec else None
        return KeplerianTrajectory(
            _distance(spec['semiMajorAxis']),
            float(spec.get('eccentricity', 0.0)),
            inclination=_angle(spec.get('inclination', 0.0)),
            ascending_node=_angle(spec.get('ascendingNode', 0.0)),
            arg_of_periapsis=_angle(spec.get('argumentOfPeriapsis', 0.0)),
            mean_anomaly=_angle(spec.get('meanAnomaly', 0.0)),
            epoch=_epoch(spec.get('epoch', J2000_JD)),
            period=period, mu=mu)

    def _linear_combination(self, spec: dict, item: _Item, lookup,
                            pending) -> LinearCombinationTrajectory:
        raw_terms = spec.get('terms')
        if not isinstance(raw_terms, list) or not raw_terms:
            raise ValueError("LinearCombination requires a non-empty 'terms' list")
        terms = []
        for term in raw_terms:
            if not isinstance(term, dict) or 'trajectory' not in term:
                raise ValueError("LinearCombination terms must have a 'trajectory'")
            trajectory = self._trajectory(term['trajectory'], item, lookup, pending, nested=True)
            terms.append((trajectory, float(term.get('weight', 1.0))))
        if 'period' in spec:
            return LinearCombinationTrajectory(terms, period=_time(spec['period'], 'd'))
        source = spec.get('periodSource')
        if source is None:
            return combine(terms)
        if isinstance(source, bool) or not isinstance(source, int) or not 0 <= source < len(terms):
            raise ValueError(f"periodSource must be a term index, got {source!r}")
        return combine(terms, period_source=terms[source][0])

    def _tle(self, spec: dict, item: _Item, nested: bool) -> Trajectory:
        satellite = spec.get('name')
        if 'line1' in spec and 'line2' in spec:
            text = f"{satellite or ''}\n{spec['line1']}\n{spec['line2']}\n"
            return self._select_tle(parse_tle_set(text), satellite)
        source = spec.get('source')
        if not isinstance(source, str) or not satellite:
            raise ValueError("TLE trajectory requires 'source' and 'name' (or 'line1'/'line2')")
        local = self._local_file(source, self.data_search_path)
        if local is not None:
            return self._select_tle(parse_tle_set(local.read_text()), satellite)
        return self._pending(source, 'tle', satellite, item, nested)

    @staticmethod
    def _select_tle(records, satellite) -> Trajectory:
        if satellite is None and len(set(records.values())) == 1:
            return next(iter(records.values())).to_trajectory()
        if satellite not in records:
            raise ValueError(f"TLE set has no satellite '{satellite}'")
        return records[satellite].to_trajectory()

    def _interpolated_states(self, spec: dict, item: _Item, nested: bool) -> Trajectory:
        source = spec.get('source')
        if not isinstance(source, str) or not source:
            raise ValueError("InterpolatedStates trajectory requires a 'source'")
        period = _time(spec['period'], 'd') if 'period' in spec else 0.0
        local = self._local_file(source, self.data_search_path)
        if local is not None:
            return InterpolatedStatesTrajectory.from_text(local.read_text(), period=period)
        return self._pending(source, 'states', None, item, nested)

    def _pending(self, source: str, kind: str, key: Optional[str],
                 item: _Item, nested: bool) -> Trajectory:
        if nested:
            raise CatalogError(f"Item '{item.name}': unavailable resource '{source}' "
                               f"cannot be used inside a LinearCombination")
        item.resources.append((self._resource_id(source, self.data_search_path), kind, key))
        return FixedPointTrajectory()

    # ---------- frames and rotation ----------
    def _frame(self, spec, lookup) -> Frame:
        if isinstance(spec, str):
            return inertial_frame(spec)
        if isinstance(spec, dict):
            kind = spec.get('type')
            if kind == 'BodyFixed':
                return BodyFixedFrame(lookup(spec['body']))
            if isinstance(kind, str):
                return inertial_frame(kind)
        raise ValueError(f"Invalid frame {spec!r}")

    def _rotation_model(self, spec, lookup) -> Optional[RotationModel]:
        if spec is None:
            return None
        if isinstance(spec, str):
            builtin = self._builtins.builtin_rotation_model(spec)
            if builtin is not None:
                return builtin
            model = lookup(spec).rotation_model
            if model is None:
                raise ValueError(f"Body '{spec}' has no rotation model to share")
            return model
        if not isinstance(spec, dict):
            raise ValueError(f"Invalid rotation model {spec!r}")

        kind = spec.get('type')
        if kind == 'Builtin':
            return self._builtins.builtin_rotation_model(spec['name'])
        if kind == 'Uniform':
            if 'period' not in spec:
                raise ValueError("Uniform rotation requires a period")
            return UniformRotationModel(
                _time(spec['period'], 'h'),
                meridian_angle=_angle(spec.get('meridianAngle', 0.0)),
                inclination=_angle(spec.get('inclination', 0.0)),
                ascending_node=_angle(spec.get('ascendingNode', 0.0)),
                epoch=_epoch(spec.get('epoch', J2000_JD)))
        if kind == 'Fixed':
            if 'quaternion' in spec:
                return FixedRotationModel(spec['quaternion'])
            return FixedRotationModel.from_angles(
                inclination=_angle(spec.get('inclination', 0.0)),
                ascending_node=_angle(spec.get('ascendingNode', 0.0)),
                meridian_angle=_angle(spec.get('meridianAngle', 0.0)))
        raise ValueError(f"Unknown rotation model type '{kind}'")

    # ---------- geometry and info ----------
    def _geometry(self, spec, item: _Item) -> Optional[Geometry]:
        if spec is None:
            return None
        if not isinstance(spec, dict):
            raise ValueError(f"Invalid geometry {spec!r}")
        kind = spec.get('type')
        if kind == 'Globe':
            if 'radii' in spec:
                radii = tuple(_distance(r) for r in spec['radii'])
            else:
                radius = _distance(spec.get('radius', 1.0))
                radii = (radius, radius, radius)
            geometry = Globe(radii=radii, base_map=spec.get('baseMap'))
        elif kind == 'Mesh':
            geometry = MeshGeometry(source=spec.get('source', ''),
                                    size=_distance(spec.get('size', 1.0)))
        elif kind == 'Axes':
            geometry = AxesGeometry(size=_distance(spec.get('size', 1.0)))
        else:
            raise ValueError(f"Unknown geometry type '{kind}'")

        for kind, reference in geometry.resource_references():
            search_path = self.model_search_path if kind == 'mesh' else self.texture_search_path
            local = self._local_file(reference, search_path)
            if local is not None:
                geometry.mark_available(str(local))
                continue
            resource_id = self._resource_id(reference, search_path)
            geometry.mark_pending(resource_id)
            item.resources.append((resource_id, kind, None))
        return geometry

    @staticmethod
    def _body_info(spec: dict) -> BodyInfo:
        label = spec.get('label', {})
        plot = spec.get('trajectoryPlot', {})
        if not isinstance(label, dict) or not isinstance(plot, dict):
            raise ValueError("'label' and 'trajectoryPlot' must be mappings")
        duration = plot.get('duration')
        return BodyInfo(
            description=str(spec.get('description', '')),
            classification=spec.get('class'),
            label_color=_color(label['color']) if 'color' in label else None,
            trajectory_plot_duration=_time(duration, 'd') if duration is not None else None,
            trajectory_plot_lead=_time(plot.get('lead', 0.0), 'd'),
            trajectory_plot_fade=float(plot.get('fade', 0.0)),
            trajectory_plot_color=_color(plot['color']) if 'color' in plot else None,
            trajectory_plot_samples=int(plot.get('sampleCount', 500)),
        )

    # ---------- resource identification ----------
    @staticmethod
    def _local_file(reference: str, search_path: Path) -> Optional[Path]:
        """Existing local file for a reference, or None for URLs and missing files."""
        if _URL_RE.match(reference):
            return None
        path = Path(reference)
        if not path.is_absolute():
            path = search_path / path
        return path if path.is_file() else None

    @staticmethod
    def _resource_id(reference: str, search_path: Path) -> str:
        if _URL_RE.match(reference) or Path(reference).is_absolute():
            return reference
        return str(search_path / reference)

    # ========== RESOURCE UPDATES ==========
    def apply_update(self, resource_id: str, payload: Union[str, bytes]) -> List[str]:
        """
        Deliver the contents of a requested resource.

        Every entity still registered under the name that requested the
        resource is updated: TLE sets and state tables replace the
        placeholder trajectory, textures and meshes are marked available
        on the geometry. Entities that were replaced by a later load are
        left alone. Applying the same payload again is harmless, and
        payloads for identifiers nobody asked for are kept for later loads.
        A malformed payload is logged and ignored.

        Returns
        -------
        list of str
            Names of the entities updated
        """
        subscriptions = self._subscriptions.get(resource_id, [])
        live = [s for s in subscriptions if s.catalog.find(s.name) is s.entity]
        if len(live) != len(subscriptions):
            log.debug("Dropping %d stale subscriptions to %s",
                      len(subscriptions) - len(live), resource_id)
            self._subscriptions[resource_id] = live

        updated = []
        malformed = False
        for subscription in live:
            if self._apply(subscription, resource_id, payload):
                updated.append(subscription.name)
            else:
                malformed = True
        if not malformed:
            self._resource_cache[resource_id] = payload
            self._resource_requests.discard(resource_id)
        log.info("Resource %s updated %d bodies", resource_id, len(updated))
        return updated

    def _apply(self, subscription: _Subscription, resource_id: str, payload) -> bool:
        entity = subscription.entity
        try:
            if subscription.kind in ('tle', 'states'):
                text = payload.decode('utf-8') if isinstance(payload, bytes) else str(payload)
                if subscription.kind == 'tle':
                    trajectory = self._select_tle(parse_tle_set(text), subscription.key)
                else:
                    trajectory = InterpolatedStatesTrajectory.from_text(text)
                entity.set_trajectory(trajectory)
            elif entity.geometry is not None:
                entity.geometry.mark_available(resource_id, payload)
        except ValueError as exc:
            log.warning("Ignoring malformed resource %s for '%s': %s",
                        resource_id, subscription.name, exc)
            return False
        return True


# ========== QUANTITY HELPERS ==========
def _distance(value, default_unit: str = 'km') -> float:
    return parse_quantity(value, DISTANCE_UNITS, default_unit)


def _time(value, default_unit: str) -> float:
    return parse_quantity(value, TIME_UNITS, default_unit)


def _angle(value, default_unit: str = 'deg') -> float:
    return parse_quantity(value, ANGLE_UNITS, default_unit)


def _epoch(value) -> float:
    """Epoch as Julian date (TDB) number or ISO 8601 string -> seconds since J2000."""
    if isinstance(value, bool):
        raise ValueError(f"Invalid epoch {value!r}")
    if isinstance(value, (int, float)):
        return jd_to_seconds(float(value))
    if isinstance(value, str):
        try:
            moment = datetime.fromisoformat(value.strip().replace('Z', ''))
        except ValueError:
            raise ValueError(f"Invalid epoch '{value}'") from None
        if moment.tzinfo is not None:
            moment = moment.replace(tzinfo=None) - moment.utcoffset()
        return (moment - _J2000_DATETIME).total_seconds()
    raise ValueError(f"Invalid epoch {value!r}")


def _color(value) -> Tuple[float, float, float]:
    """RGB triple from [r, g, b] in [0, 1] or a '#rrggbb' string."""
    if isinstance(value, str):
        match = re.fullmatch(r'#([0-9A-Fa-f]{6})', value.strip())
        if match is None:
            raise ValueError(f"Invalid color '{value}'")
        digits = match.group(1)
        return tuple(int(digits[k:k+2], 16) / 255.0 for k in (0, 2, 4))
    color = np.asarray(value, dtype=float)
    if color.shape != (3,):
        raise ValueError(f"Colors must have three components, got {value!r}")
    return tuple(color.tolist())
