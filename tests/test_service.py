import json
import os
import unittest
from urllib.parse import parse_qs

import pandas as pd
import responses

from esri2sf import (
    ConfigurationError,
    EsriService,
    GeometryType,
    ProtocolError,
    TransportError,
    convert,
)


FIXTURES = os.path.join(os.path.dirname(__file__), 'fixtures')
LAYER_URL = 'http://example.com/arcgis/rest/services/Test/FeatureServer/0'
QUERY_URL = LAYER_URL + '/query'


def _form(request):
    body = request.body
    if isinstance(body, bytes):
        body = body.decode('utf-8')
    return {k: v[0] for k, v in parse_qs(body or '').items()}


class TestEsriService(unittest.TestCase):
    def setUp(self):
        self.responses = responses.RequestsMock()
        self.responses.start()

    def tearDown(self):
        self.responses.stop()
        self.responses.reset()

    def read_fixture(self, file):
        with open(os.path.join(FIXTURES, file), 'r') as f:
            return f.read()

    def add_fixture_response(self, url, file, method='POST', **kwargs):
        self.responses.add(
            method=method,
            url=url,
            body=self.read_fixture(file),
            **kwargs
        )

    def add_query_fixtures(self, ids_file, features_file):
        ids_body = self.read_fixture(ids_file)
        features_body = self.read_fixture(features_file)

        def callback(request):
            if _form(request).get('returnIdsOnly') == 'true':
                return (200, {}, ids_body)
            return (200, {}, features_body)

        self.responses.add_callback('POST', QUERY_URL, callback=callback,
                                    content_type='application/json')

    def test_point_layer(self):
        self.add_fixture_response(LAYER_URL, 'point-metadata.json')
        self.add_query_fixtures('point-ids.json', 'point-features.json')

        table = convert(LAYER_URL)

        self.assertEqual(len(table), 2)
        self.assertEqual(table.crs.to_epsg(), 4326)
        first, second = table.geometry.iloc[0], table.geometry.iloc[1]
        self.assertEqual((first.geom_type, first.x, first.y), ('Point', 1.0, 2.0))
        self.assertEqual(second.geom_type, 'Point')
        self.assertTrue(second.is_empty)
        self.assertEqual(table['NAME'].iloc[0], 'Main St')
        self.assertTrue(pd.isna(table['NAME'].iloc[1]))

        metadata_request = _form(self.responses.calls[0].request)
        self.assertDictEqual(metadata_request, {'f': 'json'})
        features_request = _form(self.responses.calls[2].request)
        self.assertEqual(features_request['objectIds'], '1,2')
        self.assertEqual(features_request['outFields'], '*')
        self.assertEqual(features_request['outSR'], '4326')

    def test_polygon_layer(self):
        self.add_fixture_response(LAYER_URL, 'polygon-metadata.json')
        self.add_query_fixtures('polygon-ids.json', 'polygon-features.json')

        table = convert(LAYER_URL, out_fields=['PIN', 'ACRES'], where="PIN LIKE '0%'", token='secret')

        self.assertEqual(len(table), 3)
        single = table.geometry.iloc[0]
        self.assertEqual(single.geom_type, 'MultiPolygon')
        self.assertEqual(len(single.geoms), 1)
        self.assertEqual(len(single.geoms[0].interiors), 0)
        self.assertEqual(len(single.geoms[0].exterior.coords), 5)
        self.assertEqual(len(table.geometry.iloc[1].geoms[0].interiors), 1)
        self.assertTrue(table.geometry.iloc[2].is_empty)
        self.assertTrue(pd.isna(table['ACRES'].iloc[1]))

        ids_request = _form(self.responses.calls[1].request)
        self.assertEqual(ids_request['where'], "PIN LIKE '0%'")
        self.assertEqual(ids_request['token'], 'secret')
        features_request = _form(self.responses.calls[2].request)
        self.assertEqual(features_request['outFields'], 'PIN,ACRES')
        self.assertEqual(features_request['token'], 'secret')

    def test_polyline_layer(self):
        self.add_fixture_response(LAYER_URL, 'polyline-metadata.json')
        self.add_query_fixtures('polyline-ids.json', 'polyline-features.json')

        table = convert(LAYER_URL)

        self.assertListEqual(list(table['STREET']), ['Elm Ave', 'Oak St'])
        self.assertListEqual([len(g.geoms) for g in table.geometry], [1, 2])

    def test_no_matching_records(self):
        self.add_fixture_response(LAYER_URL, 'point-metadata.json')
        self.add_fixture_response(QUERY_URL, 'empty-ids.json')

        with self.assertLogs('esri2sf', level='WARNING') as logs:
            table = convert(LAYER_URL, where='1=0')

        self.assertEqual(len(table), 0)
        self.assertEqual(table.crs.to_epsg(), 4326)
        self.assertIn('No records match', logs.output[0])
        self.assertEqual(len(self.responses.calls), 2)

    def test_twelve_hundred_ids(self):
        ids = list(range(3000, 1800, -1))
        features_requests = []

        def callback(request):
            form = _form(request)
            if form.get('returnIdsOnly') == 'true':
                return (200, {}, json.dumps({'objectIdFieldName': 'OBJECTID', 'objectIds': ids}))
            batch = [int(oid) for oid in form['objectIds'].split(',')]
            features_requests.append(batch)
            return (200, {}, json.dumps({'features': [
                {'attributes': {'OBJECTID': oid}, 'geometry': {'x': oid, 'y': 0}}
                for oid in batch
            ]}))

        self.responses.add_callback('POST', QUERY_URL, callback=callback,
                                    content_type='application/json')

        table = convert(LAYER_URL, geometry_type='esriGeometryPoint')

        self.assertListEqual([len(b) for b in features_requests], [500, 500, 200])
        self.assertListEqual([oid for b in features_requests for oid in b], ids)
        self.assertListEqual(list(table['OBJECTID']), ids)
        self.assertListEqual([g.x for g in table.geometry], [float(oid) for oid in ids])

    def test_explicit_geometry_type_skips_metadata(self):
        self.add_query_fixtures('polygon-ids.json', 'polygon-features.json')

        table = convert(LAYER_URL, geometry_type=GeometryType.POLYGON)

        self.assertEqual(len(table), 3)
        self.assertTrue(all(call.request.url == QUERY_URL for call in self.responses.calls))

    def test_explicit_geometry_type_overrides_server(self):
        self.add_query_fixtures('polygon-ids.json', 'polygon-features.json')

        service = EsriService(LAYER_URL + '/')

        self.assertIs(service.resolve_geometry_type('polygon'), GeometryType.POLYGON)
        self.assertEqual(service.query_url, QUERY_URL)
        self.assertEqual(len(self.responses.calls), 0)
        service.to_table(geometry_type='polygon')

    def test_unknown_geometry_type(self):
        self.add_fixture_response(LAYER_URL, 'table-metadata.json')

        with self.assertRaises(ConfigurationError):
            convert(LAYER_URL)

    def test_unsupported_geometry_type(self):
        self.responses.add(method='POST', url=LAYER_URL, json={
            'type': 'Feature Layer',
            'geometryType': 'esriGeometryMultipoint',
        })

        with self.assertRaises(ConfigurationError):
            convert(LAYER_URL)

    def test_descriptor(self):
        self.add_fixture_response(LAYER_URL, 'polyline-metadata.json')

        service = EsriService(LAYER_URL, token='abc')
        descriptor = service.get_descriptor()
        service.get_metadata()

        self.assertEqual(descriptor.name, 'Centerlines')
        self.assertEqual(descriptor.layer_type, 'Feature Layer')
        self.assertIs(descriptor.geometry_type, GeometryType.POLYLINE)
        self.assertEqual(descriptor.object_id_field, 'FID')
        self.assertEqual(descriptor.max_record_count, 1000)
        self.assertEqual(len(self.responses.calls), 1)
        self.assertEqual(_form(self.responses.calls[0].request)['token'], 'abc')

    def test_metadata_error(self):
        self.add_fixture_response(LAYER_URL, 'error.json')

        with self.assertRaises(ProtocolError):
            convert(LAYER_URL)

    def test_metadata_http_error(self):
        self.responses.add(method='POST', url=LAYER_URL, status=403, body='Forbidden')

        with self.assertRaises(TransportError):
            convert(LAYER_URL)

    def test_out_sr(self):
        self.add_query_fixtures('point-ids.json', 'point-features.json')

        table = convert(LAYER_URL, geometry_type='point', out_sr=3857)

        self.assertEqual(table.crs.to_epsg(), 3857)
        self.assertEqual(_form(self.responses.calls[1].request)['outSR'], '3857')
