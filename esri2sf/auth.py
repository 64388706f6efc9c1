from esri2sf.schemas import OAUTH_TOKEN_SCHEMA, TOKEN_SCHEMA, validate_response
from esri2sf.transport import RequestsTransport, parse_esri_response


OAUTH_TOKEN_URL = 'https://www.arcgis.com/sharing/rest/oauth2/token'


def generate_token(server, username, password, expiration=5000, transport=None):
    """ Get a token from an ArcGIS Server's admin generateToken endpoint.

    ``server`` is the site root, e.g. ``https://gis.example.com``.
    ``expiration`` is in minutes.
    """
    transport = transport or RequestsTransport()
    url = '{}/arcgis/admin/generateToken'.format(server.rstrip('/'))
    query_args = {
        'username': username,
        'password': password,
        'expiration': expiration,
        'client': 'requestip',
        'f': 'json',
    }
    text = transport.post(url, query_args)
    data = parse_esri_response(text, url, "Could not generate token")
    validate_response(data, TOKEN_SCHEMA, url)
    return data['token']


def generate_oauth_token(client_id, client_secret, expiration=5000, transport=None):
    """ Get an ArcGIS Online token with the OAuth client-credentials grant. """
    transport = transport or RequestsTransport()
    query_args = {
        'client_id': client_id,
        'client_secret': client_secret,
        'expiration': expiration,
        'grant_type': 'client_credentials',
    }
    text = transport.post(OAUTH_TOKEN_URL, query_args)
    data = parse_esri_response(text, OAUTH_TOKEN_URL, "Could not generate OAuth token")
    validate_response(data, OAUTH_TOKEN_SCHEMA, OAUTH_TOKEN_URL)
    return data['access_token']
