from enum import Enum
from numbers import Number

from shapely.errors import ShapelyError
from shapely.geometry import MultiLineString, MultiPolygon, Point, Polygon

from esri2sf.errors import ConfigurationError, MalformedGeometryError


class GeometryType(Enum):
    POINT = 'esriGeometryPoint'
    POLYLINE = 'esriGeometryPolyline'
    POLYGON = 'esriGeometryPolygon'

    @classmethod
    def parse(cls, value):
        """ Turn an ESRI tag (or a short name like ``polygon``) into a member.

        Raises ConfigurationError for anything that isn't one of the three
        supported layer geometries, including ``None``.
        """
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            lowered = value.strip().lower()
            for member in cls:
                if lowered in (member.value.lower(), member.name.lower()):
                    return member
        raise ConfigurationError(
            "Unsupported or unknown geometry type {!r}, expected one of {}".format(
                value, ', '.join(m.value for m in cls)))


def _is_number(value):
    return isinstance(value, Number) and not isinstance(value, bool)


def convert_esri_point(esri_geometry):
    if not esri_geometry:
        return Point()

    x_coord = esri_geometry.get('x')
    y_coord = esri_geometry.get('y')

    if _is_number(x_coord) and _is_number(y_coord):
        return Point(x_coord, y_coord)
    else:
        return Point()


def convert_esri_polyline(esri_geometry):
    paths = (esri_geometry or {}).get('paths')
    if paths is None:
        raise MalformedGeometryError('polyline geometry has no paths: {!r}'.format(esri_geometry))

    if len(paths) == 0:
        return MultiLineString()

    try:
        return MultiLineString([[tuple(coord) for coord in path] for path in paths])
    except (ShapelyError, ValueError, TypeError) as e:
        raise MalformedGeometryError('invalid polyline paths: {}'.format(e)) from e


def convert_esri_polygon(esri_geometry):
    rings = (esri_geometry or {}).get('rings')
    if not rings:
        return MultiPolygon()

    # All of a feature's rings become one part: the first ring is the shell,
    # the rest are holes, whatever their winding order.
    coords = [[tuple(coord) for coord in ring] for ring in rings]
    try:
        return MultiPolygon([Polygon(coords[0], coords[1:])])
    except (ShapelyError, ValueError, TypeError) as e:
        raise MalformedGeometryError('invalid polygon rings: {}'.format(e)) from e


_DECODERS = {
    GeometryType.POINT: convert_esri_point,
    GeometryType.POLYLINE: convert_esri_polyline,
    GeometryType.POLYGON: convert_esri_polygon,
}


def decoder_for(geometry_type):
    return _DECODERS[GeometryType.parse(geometry_type)]


def decode(esri_geometry, geometry_type):
    return decoder_for(geometry_type)(esri_geometry)
