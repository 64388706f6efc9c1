import logging

from esri2sf.errors import ConfigurationError
from esri2sf.geometry import GeometryType
from esri2sf.query import (
    DEFAULT_OUT_SR,
    MAX_BATCH_SIZE,
    fetch_features,
    fetch_object_ids,
    iter_feature_batches,
)
from esri2sf.schemas import LAYER_METADATA_SCHEMA, validate_response
from esri2sf.table import build_feature_table, empty_feature_table
from esri2sf.transport import RequestsTransport, parse_esri_response


class ServiceDescriptor(object):
    def __init__(self, metadata):
        self.metadata = metadata
        self.name = metadata.get('name')
        self.layer_type = metadata.get('type')
        self.object_id_field = metadata.get('objectIdField')
        self.max_record_count = metadata.get('maxRecordCount')
        try:
            self.geometry_type = GeometryType.parse(metadata.get('geometryType'))
        except ConfigurationError:
            self.geometry_type = None

    def __repr__(self):
        return '<ServiceDescriptor {!r} {} {}>'.format(
            self.name,
            self.layer_type,
            self.geometry_type.value if self.geometry_type else 'unknown geometry',
        )


class EsriService(object):
    """ One ArcGIS layer, e.g. ``.../MapServer/3`` or ``.../FeatureServer/0``.

    When a service has several layers the layer number has to be part of the
    URL.
    """

    def __init__(self, url, token='', transport=None, parent_logger=None,
                 batch_size=None, out_sr=None):
        self._layer_url = url.rstrip('/')
        self._token = token or ''
        self._batch_size = batch_size or MAX_BATCH_SIZE
        self._out_sr = str(out_sr or DEFAULT_OUT_SR)
        self._metadata = None

        if parent_logger:
            self._logger = parent_logger.getChild('esri2sf')
        else:
            self._logger = logging.getLogger('esri2sf')

        self._transport = transport or RequestsTransport(parent_logger=self._logger)

    @property
    def query_url(self):
        return self._layer_url + '/query'

    @property
    def crs(self):
        if self._out_sr.isdigit():
            return 'EPSG:{}'.format(self._out_sr)
        return self._out_sr

    def get_metadata(self):
        if self._metadata is not None:
            return self._metadata

        query_args = {
            'f': 'json',
            'token': self._token,
        }
        text = self._transport.post(self._layer_url, query_args)
        metadata = parse_esri_response(text, self._layer_url,
                                       "Could not retrieve layer metadata")
        validate_response(metadata, LAYER_METADATA_SCHEMA, self._layer_url)
        self._metadata = metadata
        return metadata

    def get_descriptor(self):
        return ServiceDescriptor(self.get_metadata())

    def resolve_geometry_type(self, geometry_type=None):
        if geometry_type is not None:
            return GeometryType.parse(geometry_type)

        descriptor = self.get_descriptor()
        self._logger.info("Layer type: %s", descriptor.layer_type)
        if descriptor.geometry_type is None:
            raise ConfigurationError(
                "geometry_type is None and the layer geometry type ({}) could not "
                "be inferred from the server (reported {!r})".format(
                    ', '.join(m.value for m in GeometryType),
                    descriptor.metadata.get('geometryType'),
                ))
        return descriptor.geometry_type

    def get_object_ids(self, where='1=1'):
        return fetch_object_ids(self.query_url, where, self._token, self._transport)

    def iter_feature_batches(self, ids, fields=None):
        return iter_feature_batches(self.query_url, ids, fields, self._token,
                                    self._transport,
                                    batch_size=self._batch_size,
                                    out_sr=self._out_sr,
                                    logger=self._logger)

    def fetch_features(self, ids, fields=None):
        return fetch_features(self.query_url, ids, fields, self._token,
                              self._transport,
                              batch_size=self._batch_size,
                              out_sr=self._out_sr,
                              logger=self._logger)

    def to_table(self, out_fields=None, where='1=1', geometry_type=None):
        geometry_type = self.resolve_geometry_type(geometry_type)
        self._logger.info("Geometry type: %s", geometry_type.value)

        ids = self.get_object_ids(where)
        if not ids:
            self._logger.warning("No records match the search criteria")
            return empty_feature_table(self.crs)

        features = self.fetch_features(ids, out_fields)
        return build_feature_table(features, geometry_type, crs=self.crs)


def convert(service_url, out_fields=None, where='1=1', token='',
            geometry_type=None, transport=None, **kwargs):
    """ Download a layer and return it as a GeoDataFrame in EPSG:4326.

    ``out_fields`` defaults to every field. ``geometry_type`` may be given as
    an ESRI tag (``esriGeometryPolygon``) when the server doesn't report one.
    Extra keyword arguments go to :class:`EsriService`.
    """
    service = EsriService(service_url, token=token, transport=transport, **kwargs)
    return service.to_table(out_fields or ['*'], where, geometry_type)
