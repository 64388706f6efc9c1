import logging

from esri2sf.schemas import FEATURES_SCHEMA, OBJECT_IDS_SCHEMA, validate_response
from esri2sf.transport import RequestsTransport, parse_esri_response


MAX_BATCH_SIZE = 500
DEFAULT_OUT_SR = '4326'

_logger = logging.getLogger('esri2sf.query')


def fetch_object_ids(query_url, where='1=1', token='', transport=None):
    """ Ask the layer for the ids of every feature matching ``where``.

    Returns the ids in the order the server listed them. An empty list means
    nothing matched; it is up to the caller to treat that as a terminal state.
    """
    transport = transport or RequestsTransport()
    query_args = {
        'where': where or '1=1',
        'returnIdsOnly': 'true',
        'token': token or '',
        'f': 'json',
    }
    text = transport.post(query_url, query_args)
    data = parse_esri_response(text, query_url, "Could not retrieve object IDs")
    validate_response(data, OBJECT_IDS_SCHEMA, query_url)

    oids = data.get('objectIds')
    if not oids:
        return []
    return [int(oid) for oid in oids]


def split_ids(ids, batch_size=MAX_BATCH_SIZE):
    if batch_size < 1 or batch_size > MAX_BATCH_SIZE:
        raise ValueError('batch_size must be between 1 and {}, got {}'.format(
            MAX_BATCH_SIZE, batch_size))

    ids = list(ids)
    return [ids[i:i + batch_size] for i in range(0, len(ids), batch_size)]


def _build_out_fields(fields):
    if not fields:
        return '*'
    if isinstance(fields, str):
        return fields
    return ','.join(fields)


def iter_feature_batches(query_url, ids, fields=None, token='', transport=None,
                         batch_size=MAX_BATCH_SIZE, out_sr=DEFAULT_OUT_SR,
                         logger=None):
    """ Yield the raw features of ``ids`` one batch at a time, in id order. """
    transport = transport or RequestsTransport()
    logger = logger or _logger
    batches = split_ids(ids, batch_size)
    logger.info("Built %s requests for %s object IDs", len(batches), sum(map(len, batches)))

    out_fields = _build_out_fields(fields)
    for index, batch in enumerate(batches):
        query_args = {
            'objectIds': ','.join(str(oid) for oid in batch),
            'outFields': out_fields,
            'token': token or '',
            'outSR': str(out_sr),
            'f': 'json',
        }
        text = transport.post(query_url, query_args)
        data = parse_esri_response(text, query_url,
                                   "Could not retrieve this chunk of objects")
        validate_response(data, FEATURES_SCHEMA, query_url)

        features = data['features']
        if len(features) < len(batch):
            logger.debug("Batch %s returned %s of %s requested features",
                         index, len(features), len(batch))
        yield features


def fetch_features(query_url, ids, fields=None, token='', transport=None,
                   batch_size=MAX_BATCH_SIZE, out_sr=DEFAULT_OUT_SR,
                   logger=None):
    features = []
    for batch in iter_feature_batches(query_url, ids, fields, token, transport,
                                      batch_size=batch_size, out_sr=out_sr,
                                      logger=logger):
        features.extend(batch)
    return features
