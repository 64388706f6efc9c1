from esri2sf.errors import (
    ConfigurationError,
    Esri2sfError,
    MalformedGeometryError,
    ProtocolError,
    TransportError,
)
from esri2sf.geometry import GeometryType, decode
from esri2sf.query import fetch_features, fetch_object_ids, iter_feature_batches, split_ids
from esri2sf.service import EsriService, ServiceDescriptor, convert
from esri2sf.table import build_feature_table
from esri2sf.transport import RequestsTransport, TransportConfig
from esri2sf.auth import generate_oauth_token, generate_token
