import json
import logging

import requests

from esri2sf.errors import ProtocolError, TransportError


class TransportConfig(object):
    def __init__(self, timeout=None, verify=True, headers=None, proxy=None):
        self.timeout = timeout or 30
        self.verify = verify
        self.headers = headers or {}
        self.proxy = proxy or None


class RequestsTransport(object):
    """ Synchronous form-encoded POSTs against an ArcGIS server.

    Anything with a ``post(url, fields)`` method returning the response text
    can stand in for this class.
    """

    def __init__(self, config=None, parent_logger=None, session=None):
        self._config = config or TransportConfig()
        self._session = session or requests.Session()

        if parent_logger:
            self._logger = parent_logger.getChild('transport')
        else:
            self._logger = logging.getLogger('esri2sf.transport')

    def close(self):
        self._session.close()

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        self.close()

    def post(self, url, fields):
        if self._config.proxy:
            url = self._config.proxy + url

        self._logger.debug("POST %s, args %s", url, _redact(fields))
        try:
            resp = self._session.post(
                url,
                data=fields,
                headers=self._config.headers,
                timeout=self._config.timeout,
                verify=self._config.verify,
            )
        except requests.exceptions.RequestException as e:
            raise TransportError('{}: could not connect ({})'.format(url, e)) from e

        if resp.status_code != 200:
            raise TransportError('{}: HTTP {} {}'.format(
                url,
                resp.status_code,
                resp.text,
            ))

        return resp.text


def _redact(fields):
    redacted = dict(fields)
    for key in ('token', 'password', 'client_secret'):
        if redacted.get(key):
            redacted[key] = '***'
    return redacted


def parse_esri_response(text, url, error_message):
    try:
        data = json.loads(text)
    except ValueError as e:
        raise ProtocolError('{}: {}, response is not JSON: {!r}'.format(
            url,
            error_message,
            text[:200],
        )) from e

    if not isinstance(data, dict):
        raise ProtocolError('{}: {}, expected a JSON object'.format(url, error_message))

    error = data.get('error')
    if error:
        raise ProtocolError('{}: {} {} {}'.format(
            url,
            error_message,
            error.get('message', ''),
            ', '.join(str(d) for d in error.get('details') or []),
        ).strip())

    return data
