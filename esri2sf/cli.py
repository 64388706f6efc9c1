import argparse
import email.parser
import getpass
import json
import logging
import sys
import urllib.parse

from esri2sf import EsriService, RequestsTransport, TransportConfig
from esri2sf.auth import generate_oauth_token, generate_token


def _collect_headers(strings):
    headers = {}
    parser = email.parser.Parser()

    for string in strings:
        headers.update(dict(parser.parsestr(string)))

    return headers

def _parse_args(args):
    parser = argparse.ArgumentParser(
        description="Convert a single Esri map/feature service layer to GeoJSON simple features")
    parser.add_argument("url",
        help="Esri layer URL, including the layer number")
    parser.add_argument("outfile",
        type=argparse.FileType('w'),
        help="Output file name (use - for stdout)")
    parser.add_argument("-f", "--fields",
        help="Comma-separated list of fields to request from the server, default all")
    parser.add_argument("-w", "--where",
        default='1=1',
        help="Where clause selecting the rows to download, default 1=1")
    parser.add_argument("-g", "--geometry-type",
        dest='geometry_type',
        help="Layer geometry (esriGeometryPoint, esriGeometryPolyline or esriGeometryPolygon) "
             "when the server doesn't report it")
    parser.add_argument("--out-sr",
        dest='out_sr',
        default='4326',
        help="Spatial reference the server should return coordinates in, default 4326")
    parser.add_argument("--token",
        default='',
        help="Token to send with every request")
    parser.add_argument("--username",
        help="Generate a token for this user from the server's admin endpoint")
    parser.add_argument("--password",
        help="Password for --username, prompted for when omitted")
    parser.add_argument("--token-server",
        dest='token_server',
        help="Server root for --username token generation, ie: https://gis.example.com, "
             "default the scheme and host of the layer URL")
    parser.add_argument("--client-id",
        dest='client_id',
        help="Generate an ArcGIS Online OAuth token with this client id")
    parser.add_argument("--client-secret",
        dest='client_secret',
        help="Client secret for --client-id")
    parser.add_argument("--jsonlines",
        action='store_true',
        default=False,
        help="Output newline-delimited GeoJSON Features instead of a FeatureCollection")
    parser.add_argument("-v", "--verbose",
        action='store_const',
        dest='loglevel',
        const=logging.DEBUG,
        default=logging.INFO,
        help="Turn on verbose logging")
    parser.add_argument("-q", "--quiet",
        action='store_const',
        dest='loglevel',
        const=logging.WARNING,
        default=logging.INFO,
        help="Turn off most logging")
    parser.add_argument("-H", "--header",
        action='append',
        dest='headers',
        default=[],
        help="Add an HTTP header to send when requesting from Esri server")
    parser.add_argument("-t", "--timeout",
        type=int,
        default=30,
        help="HTTP timeout in seconds, default 30")
    parser.add_argument("--insecure",
        dest='verify',
        action='store_false',
        default=True,
        help="Don't verify the server's TLS certificate")

    return parser.parse_args(args)

def _token_server(args):
    if args.token_server:
        return args.token_server
    parts = urllib.parse.urlsplit(args.url)
    return '{}://{}'.format(parts.scheme, parts.netloc)

def _get_token(args, transport):
    if args.client_id:
        return generate_oauth_token(args.client_id, args.client_secret, transport=transport)
    if args.username:
        password = args.password or getpass.getpass('Password for {}: '.format(args.username))
        return generate_token(_token_server(args), args.username, password, transport=transport)
    return args.token

def main():
    args = _parse_args(sys.argv[1:])
    headers = _collect_headers(args.headers)

    logger = logging.getLogger('cli')
    logger.setLevel(args.loglevel)
    handler = logging.StreamHandler()
    formatter = logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s')
    handler.setFormatter(formatter)
    logger.addHandler(handler)

    requested_fields = args.fields.split(',') if args.fields else None

    config = TransportConfig(timeout=args.timeout, verify=args.verify, headers=headers)
    with RequestsTransport(config, parent_logger=logger) as transport:
        service = EsriService(args.url,
            token=_get_token(args, transport),
            transport=transport,
            parent_logger=logger,
            out_sr=args.out_sr)

        table = service.to_table(requested_fields, args.where, args.geometry_type)

    if args.jsonlines:
        for feature in table.iterfeatures(na='null'):
            args.outfile.write(json.dumps(feature))
            args.outfile.write('\n')
    else:
        args.outfile.write(table.to_json(na='null'))

if __name__ == '__main__':
    main()
