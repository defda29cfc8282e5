"""Tests for headers.Headers class and header helpers."""

from unittest import TestCase

from poorcontext.headers import (Headers, http_to_time, parse_header,
                                 time_to_http)

# pylint: disable=missing-function-docstring
# pylint: disable=no-self-use


class TestSetValues(TestCase):
    """Adding headers and or setting header values."""

    def test_constructor_empty(self):
        Headers()
        Headers([])  # list
        Headers(tuple())
        Headers({})  # dict
        Headers(set())

    def test_constructor_tuples(self):
        headers = Headers([('X-Test', 'Ok'), ('Key', 'Value')])
        assert headers['X-Test'] == 'Ok'

        headers = Headers((('X-Test', 'Ok'), ('X-Test', 'Value')))
        assert headers['X-Test'] == 'Ok'
        assert headers.get_all('X-Test') == ('Ok', 'Value')

    def test_constructor_error(self):
        with self.assertRaises(TypeError):
            Headers('Value')
        with self.assertRaises(ValueError):
            Headers(['a', 'b'])
        with self.assertRaises(TypeError):
            Headers({'None': None})

    def test_set(self):
        headers = Headers([('X-Test', 'One'), ('X-Test', 'Two')])
        headers['x-test'] = "Ok"
        assert headers.items() == (('x-test', 'Ok'),)

    def test_add_none(self):
        headers = Headers()
        with self.assertRaises(ValueError):
            headers.add('X-None', None)

    def test_delete(self):
        headers = Headers([('X-Test', 'Ok'), ('Vary', 'Accept')])
        headers.delete('x-test')
        headers.delete('Missing')
        assert headers.items() == (('Vary', 'Accept'),)
        del headers['VARY']
        assert not headers

    def test_update(self):
        headers = Headers([('Vary', 'Accept'), ('X-Test', 'Ok')])
        headers.update(Headers([('vary', 'Cookie'), ('Vary', 'Origin')]))
        assert headers.get_all('Vary') == ('Cookie', 'Origin')
        assert headers['X-Test'] == 'Ok'

    def test_copy(self):
        headers = Headers({'X-Test': 'Ok'})
        copy = headers.copy()
        copy.set('X-Test', 'Changed')
        assert headers['X-Test'] == 'Ok'

    def test_iso88591(self):
        headers = Headers()
        headers.add('X-Name', 'Žluťoučký')
        assert headers['X-Name'] == \
            'Žluťoučký'.encode('utf-8').decode('iso-8859-1')


class TestGetValues(TestCase):
    """Getting headers values."""

    def test_case_insensitive(self):
        headers = Headers({'Content-Type': 'text/plain'})
        assert headers['content-type'] == 'text/plain'
        assert 'CONTENT-TYPE' in headers
        assert 'Content-Length' not in headers

    def test_get(self):
        headers = Headers()
        assert headers.get('X-Test') is None
        assert headers.get('X-Test', '') == ''
        with self.assertRaises(KeyError):
            headers['X-Test']  # pylint: disable=pointless-statement

    def test_names(self):
        headers = Headers([('A', '1'), ('B', '2'), ('A', '3')])
        assert headers.names() == ('A', 'B')
        assert list(headers) == ['A', 'B']
        assert headers.values() == ('1', '2', '3')


class TestHelpers(TestCase):
    """Header helper functions."""

    def test_parse_header(self):
        assert parse_header('Text/HTML; charset="utf-8"') == \
            ('text/html', {'charset': 'utf-8'})
        assert parse_header('') == ('', {})

    def test_multipart_header(self):
        ctype, pdict = parse_header(
            'multipart/form-data; boundary=----abc')
        assert ctype == 'multipart/form-data'
        assert pdict['boundary'] == '----abc'

    def test_disposition(self):
        _, pdict = parse_header(
            'form-data; name="file"; filename="a b.txt"')
        assert pdict == {'name': 'file', 'filename': 'a b.txt'}

    def test_http_time(self):
        assert time_to_http(0) == 'Thu, 01 Jan 1970 00:00:00 GMT'
        assert http_to_time('Thu, 01 Jan 1970 00:00:00 GMT') == 0
        assert http_to_time('not a date') is None
        assert http_to_time('') is None
