"""
Legacy solar system catalogs
============================

Reader for Celestia solar system catalog (.ssc) files, and the mapping of
their objects onto the structured catalog schema used by UniverseLoader.

An SSC file is a sequence of object definitions::

    # comment
    [Add|Modify|Replace] [Body|ReferencePoint|...] "Name" "Parent/Path"
    {
        Radius 1737.4
        Texture "moon.jpg"
        EllipticalOrbit { Period 27.32 SemiMajorAxis 384400 }
        Color [ 0.8 0.8 0.8 ]
    }

Examples
--------
>>> from kosmos.ssc import ssc_to_document
>>> doc = ssc_to_document(open("extras.ssc").read(), name="extras.ssc")
>>> loader.load_solar_system(doc)
"""

import logging
import re
from typing import Dict, List, Optional
from .errors import ParseError

log = logging.getLogger(__name__)

DISPOSITIONS = ('Add', 'Modify', 'Replace')
OBJECT_TYPES = ('Body', 'ReferencePoint', 'SurfacePoint', 'AltSurface', 'Location')

_TOKEN_RE = re.compile(r'''
    (?P<newline>\n)
  | (?P<space>[ \t\r\f\v]+)
  | (?P<comment>\#[^\n]*)
  | (?P<string>"(?:[^"\\\n]|\\.)*")
  | (?P<number>[-+]?(?:\d+\.?\d*|\.\d+)(?:[eE][-+]?\d+)?)
  | (?P<name>[A-Za-z_][A-Za-z0-9_]*)
  | (?P<punct>[{}\[\]])
''', re.VERBOSE)

_ESCAPES = {'n': '\n', 't': '\t', '"': '"', '\\': '\\'}


class _Token:
    __slots__ = ('kind', 'value', 'line')

    def __init__(self, kind, value, line):
        self.kind = kind
        self.value = value
        self.line = line

    def __repr__(self):
        return f"_Token({self.kind}, {self.value!r}, line={self.line})"


def _unescape(body: str) -> str:
    return re.sub(r'\\(.)', lambda m: _ESCAPES.get(m.group(1), m.group(1)), body)


def tokenize(text: str, filename: Optional[str] = None) -> List[_Token]:
    """Split SSC text into tokens; raises ParseError on unknown characters."""
    tokens = []
    line = 1
    pos = 0
    while pos < len(text):
        match = _TOKEN_RE.match(text, pos)
        if match is None:
            if text[pos] == '"':
                raise ParseError(line, "Unterminated string", filename)
            raise ParseError(line, f"Unexpected character '{text[pos]}'", filename)
        kind = match.lastgroup
        value = match.group()
        if kind == 'newline':
            line += 1
        elif kind == 'string':
            tokens.append(_Token('string', _unescape(value[1:-1]), line))
        elif kind == 'number':
            tokens.append(_Token('number', float(value), line))
        elif kind in ('name', 'punct'):
            tokens.append(_Token(kind, value, line))
        pos = match.end()
    return tokens


class _Parser:
    """Recursive-descent parser over a token list."""

    def __init__(self, tokens: List[_Token], filename: Optional[str]):
        self._tokens = tokens
        self._pos = 0
        self._filename = filename

    def _peek(self) -> Optional[_Token]:
        return self._tokens[self._pos] if self._pos < len(self._tokens) else None

    def _next(self, expected: str) -> _Token:
        token = self._peek()
        if token is None:
            last = self._tokens[-1].line if self._tokens else 1
            raise ParseError(last, f"Unexpected end of file, expected {expected}",
                             self._filename)
        self._pos += 1
        return token

    def _error(self, token: _Token, message: str):
        raise ParseError(token.line, message, self._filename)

    def objects(self) -> List[dict]:
        records = []
        while self._peek() is not None:
            records.append(self._object())
        return records

    def _object(self) -> dict:
        token = self._next("object definition")
        disposition = 'Add'
        if token.kind == 'name' and token.value in DISPOSITIONS:
            disposition = token.value
            token = self._next("object name")
        object_type = 'Body'
        if token.kind == 'name':
            if token.value not in OBJECT_TYPES:
                self._error(token, f"Unknown object type '{token.value}'")
            object_type = token.value
            token = self._next("object name")
        if token.kind != 'string':
            self._error(token, "Expected object name string")
        names = [n.strip() for n in token.value.split(':') if n.strip()]
        if not names:
            self._error(token, "Object name is empty")
        line = token.line

        token = self._next("parent name")
        if token.kind != 'string':
            self._error(token, f"Expected parent name string for '{names[0]}'")
        parent = token.value

        token = self._next("'{'")
        if token.value != '{':
            self._error(token, f"Expected '{{' after definition of '{names[0]}'")
        record = self._group()
        record.update({
            'name': names[0],
            '_aliases': names[1:],
            '_parent': parent,
            '_disposition': disposition,
            '_type': object_type,
            '_line': line,
        })
        return record

    def _group(self) -> dict:
        """Properties up to the closing brace; the '{' is already consumed."""
        group = {}
        while True:
            token = self._next("'}'")
            if token.value == '}' and token.kind == 'punct':
                return group
            if token.kind != 'name':
                self._error(token, f"Expected property name, got {token.value!r}")
            group[token.value] = self._value()

    def _value(self):
        token = self._next("property value")
        if token.kind in ('number', 'string'):
            return token.value
        if token.kind == 'name':
            if token.value in ('true', 'false'):
                return token.value == 'true'
            return token.value
        if token.value == '[':
            items = []
            while True:
                item = self._next("']'")
                if item.value == ']' and item.kind == 'punct':
                    return items
                if item.kind != 'number':
                    self._error(item, "Vectors may only contain numbers")
                items.append(item.value)
        if token.value == '{':
            return self._group()
        self._error(token, f"Unexpected {token.value!r}")


def parse_ssc(text: str, filename: Optional[str] = None) -> List[dict]:
    """
    Parse an SSC stream into flat object records.

    Each record holds the object's properties plus 'name' (first of any
    ':'-separated alternatives), '_aliases', '_parent', '_disposition',
    '_type' and '_line'.

    Raises
    ------
    ParseError
        If the text is malformed; the error carries the line number
    """
    return _Parser(tokenize(text, filename), filename).objects()


def _orbits_star(parent: str) -> bool:
    # top-level SSC parents ('Sol') are stars
    return '/' not in parent


def _frame(spec) -> Optional[object]:
    """Structured frame spec for an SSC frame group."""
    if isinstance(spec, str):
        spec = {spec: {}}
    if not isinstance(spec, dict) or len(spec) != 1:
        raise ValueError(f"Malformed frame definition {spec!r}")
    (kind, body), = spec.items()
    if kind in ('EquatorJ2000', 'EclipticJ2000', 'ICRF'):
        return kind
    if kind == 'BodyFixed':
        center = body.get('Center') if isinstance(body, dict) else None
        if not center:
            raise ValueError("BodyFixed frame requires a Center")
        return {'type': 'BodyFixed', 'body': center}
    raise ValueError(f"Unsupported frame type '{kind}'")


def _elliptical_orbit(orbit: dict, star: bool) -> dict:
    distance_unit = 'au' if star else 'km'
    period_unit = 'y' if star else 'd'
    if 'Period' not in orbit:
        raise ValueError("EllipticalOrbit requires a Period")
    e = float(orbit.get('Eccentricity', 0.0))
    if 'SemiMajorAxis' in orbit:
        a = float(orbit['SemiMajorAxis'])
    elif 'PericenterDistance' in orbit:
        a = float(orbit['PericenterDistance']) / (1.0 - e)
    else:
        raise ValueError("EllipticalOrbit requires SemiMajorAxis or PericenterDistance")
    node = float(orbit.get('AscendingNode', 0.0))
    if 'ArgOfPericenter' in orbit:
        arg_peri = float(orbit['ArgOfPericenter'])
    else:
        arg_peri = float(orbit.get('LongOfPericenter', node)) - node
    if 'MeanAnomaly' in orbit:
        mean_anomaly = float(orbit['MeanAnomaly'])
    else:
        mean_anomaly = float(orbit.get('MeanLongitude', node + arg_peri)) - node - arg_peri
    return {
        'type': 'Keplerian',
        'semiMajorAxis': f"{a!r} {distance_unit}",
        'eccentricity': e,
        'inclination': float(orbit.get('Inclination', 0.0)),
        'ascendingNode': node,
        'argumentOfPeriapsis': arg_peri,
        'meanAnomaly': mean_anomaly,
        'period': f"{float(orbit['Period'])!r} {period_unit}",
        'epoch': float(orbit.get('Epoch', 2451545.0)),
    }


def _uniform_rotation(rotation: dict) -> dict:
    spec = {'type': 'Uniform', 'period': f"{float(rotation['Period'])!r} h"}
    for ssc_key, key in (('Inclination', 'inclination'),
                         ('AscendingNode', 'ascendingNode'),
                         ('MeridianAngle', 'meridianAngle'),
                         ('Epoch', 'epoch')):
        if ssc_key in rotation:
            spec[key] = float(rotation[ssc_key])
    return spec


def _color(value) -> List[float]:
    if not isinstance(value, list) or len(value) != 3:
        raise ValueError(f"Colors must be three numbers, got {value!r}")
    return [float(c) for c in value]


def transform_ssc_object(record: dict) -> dict:
    """
    Map one parsed SSC record onto the structured catalog schema.

    The returned item has the record's own 'name' (callers build the full
    path name) and '_parent'. SSC trajectories and orientations default to
    the EclipticJ2000 frame. Distances and periods of bodies orbiting a star
    are in AU and years; otherwise km and days.

    Raises
    ------
    ValueError
        If a property group is malformed
    """
    parent = record['_parent']
    star = _orbits_star(parent)
    item = {
        'name': record['name'],
        '_parent': parent,
        'trajectoryFrame': 'EclipticJ2000',
        'bodyFrame': 'EclipticJ2000',
    }

    # Trajectory
    if 'EllipticalOrbit' in record:
        item['trajectory'] = _elliptical_orbit(record['EllipticalOrbit'], star)
    elif 'FixedPosition' in record:
        position = record['FixedPosition']
        if not isinstance(position, list) or len(position) != 3:
            raise ValueError("FixedPosition must be a three-element vector")
        item['trajectory'] = {'type': 'FixedPoint', 'position': position}
    elif 'SampledTrajectory' in record:
        sampled = record['SampledTrajectory']
        source = sampled.get('Source') if isinstance(sampled, dict) else sampled
        item['trajectory'] = {'type': 'InterpolatedStates', 'source': source}
    elif 'SampledOrbit' in record:
        item['trajectory'] = {'type': 'InterpolatedStates', 'source': record['SampledOrbit']}
    elif 'CustomOrbit' in record:
        item['trajectory'] = {'type': 'Builtin', 'name': record['CustomOrbit']}

    # Rotation
    if 'UniformRotation' in record:
        item['rotationModel'] = _uniform_rotation(record['UniformRotation'])
    elif 'CustomRotation' in record:
        item['rotationModel'] = {'type': 'Builtin', 'name': record['CustomRotation']}
    elif 'RotationPeriod' in record:
        item['rotationModel'] = _uniform_rotation({
            'Period': record['RotationPeriod'],
            'Inclination': record.get('Obliquity', 0.0),
            'AscendingNode': record.get('EquatorAscendingNode', 0.0),
            'MeridianAngle': record.get('RotationOffset', 0.0),
            'Epoch': record.get('RotationEpoch', 2451545.0),
        })

    # Frames
    if 'OrbitFrame' in record:
        item['trajectoryFrame'] = _frame(record['OrbitFrame'])
    if 'BodyFrame' in record:
        item['bodyFrame'] = _frame(record['BodyFrame'])

    # Geometry
    radius = record.get('Radius')
    if 'Mesh' in record:
        item['geometry'] = {'type': 'Mesh', 'source': record['Mesh'],
                            'size': float(radius if radius is not None else 1.0)}
    elif radius is not None or 'SemiAxes' in record:
        if 'SemiAxes' in record:
            radii = [float(r) for r in record['SemiAxes']]
        else:
            polar = float(radius) * (1.0 - float(record.get('Oblateness', 0.0)))
            radii = [float(radius), float(radius), polar]
        item['geometry'] = {'type': 'Globe', 'radii': radii}
        if 'Texture' in record:
            item['geometry']['baseMap'] = record['Texture']

    # Info
    if 'Class' in record:
        item['class'] = record['Class']
    if 'InfoURL' in record:
        item['description'] = record['InfoURL']
    if 'Color' in record:
        item['label'] = {'color': _color(record['Color'])}
    if 'OrbitColor' in record:
        item['trajectoryPlot'] = {'color': _color(record['OrbitColor'])}

    ignored = [key for key in record if not key.startswith('_') and key not in _HANDLED]
    if ignored:
        log.debug("SSC object '%s': ignoring properties %s", record['name'], ignored)
    return item


_HANDLED = {
    'name', 'EllipticalOrbit', 'FixedPosition', 'SampledTrajectory', 'SampledOrbit',
    'CustomOrbit', 'UniformRotation', 'CustomRotation', 'RotationPeriod', 'Obliquity',
    'EquatorAscendingNode', 'RotationOffset', 'RotationEpoch', 'OrbitFrame', 'BodyFrame',
    'Radius', 'SemiAxes', 'Oblateness', 'Mesh', 'Texture', 'Class', 'InfoURL',
    'Color', 'OrbitColor',
}


def ssc_to_document(text: str, name: Optional[str] = None) -> Dict[str, object]:
    """
    Parse an SSC stream into a structured catalog document.

    Every object becomes an item named '<parent path>/<name>' whose center
    is the parent path. Objects whose properties cannot be mapped are
    logged and left out of the document.

    Raises
    ------
    ParseError
        If the text is not valid SSC
    """
    items = []
    for record in parse_ssc(text, name):
        try:
            item = transform_ssc_object(record)
        except (ValueError, TypeError, KeyError) as exc:
            log.warning("%sLine %d: skipping '%s': %s",
                        f"{name}: " if name else "", record['_line'], record['name'], exc)
            continue
        if record['_disposition'] != 'Add':
            log.debug("SSC disposition %s of '%s' treated as Add",
                      record['_disposition'], record['name'])
        item['name'] = f"{record['_parent']}/{record['name']}"
        item['center'] = item.pop('_parent')
        items.append(item)
    return {'name': name or '<ssc>', 'items': items}
