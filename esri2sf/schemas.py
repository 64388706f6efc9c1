import jsonschema

from esri2sf.errors import ProtocolError


LAYER_METADATA_SCHEMA = {
    "type": "object",
    "properties": {
        "type": {
            "description": "layer type, e.g. 'Feature Layer'",
            "type": ["string", "null"]
        },
        "geometryType": {
            "description": "ESRI geometry type tag of the layer",
            "type": ["string", "null"]
        },
        "maxRecordCount": {
            "type": ["integer", "null"],
            "minimum": 0
        },
        "objectIdField": {
            "type": ["string", "null"]
        }
    }
}

OBJECT_IDS_SCHEMA = {
    "type": "object",
    "properties": {
        "objectIdFieldName": {
            "type": ["string", "null"]
        },
        "objectIds": {
            "description": "ids matching the where clause, null when none match",
            "type": ["array", "null"],
            "items": {"type": "integer"}
        }
    }
}

FEATURES_SCHEMA = {
    "type": "object",
    "required": ["features"],
    "properties": {
        "features": {
            "type": "array",
            "items": {
                "type": "object",
                "properties": {
                    "attributes": {"type": ["object", "null"]},
                    "geometry": {"type": ["object", "null"]}
                }
            }
        }
    }
}

TOKEN_SCHEMA = {
    "type": "object",
    "required": ["token"],
    "properties": {
        "token": {"type": "string", "minLength": 1}
    }
}

OAUTH_TOKEN_SCHEMA = {
    "type": "object",
    "required": ["access_token"],
    "properties": {
        "access_token": {"type": "string", "minLength": 1}
    }
}


def validate_response(data, schema, url):
    try:
        jsonschema.validate(data, schema)
    except jsonschema.exceptions.ValidationError as ex:
        raise ProtocolError('{}: unexpected response, {}'.format(url, ex.message)) from ex
    return data
