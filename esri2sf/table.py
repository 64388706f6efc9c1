import geopandas as gpd
import pandas as pd
from pyproj import CRS

from esri2sf.geometry import decoder_for


DEFAULT_CRS = 'EPSG:4326'
GEOMETRY_COLUMN = 'geometry'


def empty_feature_table(crs=DEFAULT_CRS):
    return gpd.GeoDataFrame(
        {GEOMETRY_COLUMN: gpd.GeoSeries([], crs=CRS.from_user_input(crs))},
        geometry=GEOMETRY_COLUMN,
    )


def _is_int(value):
    return isinstance(value, int) and not isinstance(value, bool)


def _build_column(values):
    # Integer fields with nulls would otherwise be widened to float64.
    present = [v for v in values if v is not None]
    if len(present) == len(values) or not present or not all(_is_int(v) for v in present):
        return values
    try:
        return pd.array(values, dtype='Int64')
    except (OverflowError, TypeError, ValueError):
        return pd.array(values, dtype=object)


def _geometry_column_name(fields):
    name = GEOMETRY_COLUMN
    while name in fields:
        name += '_'
    return name


def build_feature_table(features, geometry_type, crs=DEFAULT_CRS):
    """ Assemble raw ESRI-JSON features into a GeoDataFrame.

    Every input feature produces exactly one row, in input order, even when
    its geometry decodes to an empty geometry. The attribute columns are the
    union of the fields seen across all features; a feature missing a field,
    or carrying a JSON null for it, gets a null there. Integer fields stay
    integers (nullable ``Int64`` when they contain nulls). The geometry column
    is ``geometry``, or ``geometry_`` when the layer has a field of that name.
    """
    decode = decoder_for(geometry_type)

    geometries = []
    records = []
    columns = {}
    for feature in features:
        geometries.append(decode(feature.get('geometry')))
        attributes = feature.get('attributes') or {}
        for name in attributes:
            columns.setdefault(name, None)
        records.append(attributes)

    if not records:
        return empty_feature_table(crs)

    fields = list(columns)
    frame = pd.DataFrame(
        {name: _build_column([record.get(name) for record in records]) for name in fields},
        columns=fields,
        index=pd.RangeIndex(len(records)),
    )
    geometry_column = _geometry_column_name(fields)
    frame[geometry_column] = gpd.GeoSeries(geometries, index=frame.index,
                                           crs=CRS.from_user_input(crs))
    return gpd.GeoDataFrame(frame, geometry=geometry_column)
