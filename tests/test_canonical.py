import hashlib
import itertools
import unittest

from s3sig.canonical import (
    EMPTY_SHA256,
    canonical_headers,
    canonical_host,
    canonical_query_string,
    canonical_request,
    canonical_uri,
    payload_hash,
)


class TestCanonicalUri(unittest.TestCase):

    def test_segments_encoded_slashes_kept(self) -> None:
        self.assertEqual(canonical_uri('/photos/summer 2023/a+b.jpg'), '/photos/summer%202023/a%2Bb.jpg')

    def test_already_encoded_path_is_not_double_encoded(self) -> None:
        self.assertEqual(canonical_uri('/my%20file.txt'), '/my%20file.txt')

    def test_unreserved_characters_untouched(self) -> None:
        self.assertEqual(canonical_uri('/AZaz09-_.~'), '/AZaz09-_.~')

    def test_unicode_key(self) -> None:
        self.assertEqual(canonical_uri('/café'), '/caf%C3%A9')

    def test_literal_dot_segments_kept(self) -> None:
        self.assertEqual(canonical_uri('/folder/./file/../other'), '/folder/./file/../other')

    def test_escaped_dot_segments_signed_as_sent(self) -> None:
        self.assertEqual(canonical_uri('/b/a/%2E/x/%2e%2E/c.txt'), '/b/a/%2E/x/%2E%2E/c.txt')
        self.assertEqual(canonical_uri('/b/%2Ehidden'), '/b/.hidden')

    def test_empty_path_is_root(self) -> None:
        self.assertEqual(canonical_uri(''), '/')
        self.assertEqual(canonical_uri('/'), '/')


class TestCanonicalQuery(unittest.TestCase):

    def test_order_independent(self) -> None:
        params = [('prefix', 'a/b'), ('list-type', '2'), ('max-keys', '10'), ('b', '2'), ('b', '1')]
        expected = 'b=1&b=2&list-type=2&max-keys=10&prefix=a%2Fb'
        for permutation in itertools.permutations(params):
            self.assertEqual(canonical_query_string(list(permutation)), expected)

    def test_raw_string_and_mapping_agree(self) -> None:
        self.assertEqual(
            canonical_query_string('prefix=a%2Fb&list-type=2'),
            canonical_query_string({'list-type': '2', 'prefix': 'a/b'}),
        )

    def test_valueless_parameter(self) -> None:
        self.assertEqual(canonical_query_string('uploads'), 'uploads=')

    def test_space_and_reserved_characters_encoded(self) -> None:
        self.assertEqual(canonical_query_string({'k': 'a b&c=d'}), 'k=a%20b%26c%3Dd')

    def test_empty(self) -> None:
        self.assertEqual(canonical_query_string(''), '')
        self.assertEqual(canonical_query_string({}), '')

    def test_sorted_by_encoded_bytes(self) -> None:
        # '_' (0x5F) sorts after 'Z' (0x5A) and before 'a' (0x61).
        self.assertEqual(canonical_query_string({'a': '1', '_': '2', 'Z': '3'}), 'Z=3&_=2&a=1')


class TestCanonicalHeaders(unittest.TestCase):
    HEADERS = {
        'Host': 'bucket.s3.amazonaws.com',
        'X-Amz-Date': '20130524T000000Z',
        'Content-Type': '  text/plain ',
        'X-Amz-Meta-Note': 'several    spaces\there',
    }

    def test_block_and_signed_names(self) -> None:
        block, signed = canonical_headers(self.HEADERS)
        self.assertEqual(block, '\n'.join([
            'content-type:text/plain',
            'host:bucket.s3.amazonaws.com',
            'x-amz-date:20130524T000000Z',
            'x-amz-meta-note:several spaces here',
        ]))
        self.assertEqual(signed, 'content-type;host;x-amz-date;x-amz-meta-note')

    def test_reordered_and_recased_copies_are_identical(self) -> None:
        expected = canonical_headers(self.HEADERS)
        items = list(self.HEADERS.items())
        for permutation in itertools.permutations(items):
            for upper in (True, False):
                variant = {(k.upper() if upper else k.lower()): v for k, v in permutation}
                self.assertEqual(canonical_headers(variant), expected)

    def test_unsignable_headers_skipped(self) -> None:
        block, signed = canonical_headers({'User-Agent': 'x', 'Authorization': 'y', 'host': 'h'})
        self.assertEqual(block, 'host:h')
        self.assertEqual(signed, 'host')

    def test_same_name_different_case_merged(self) -> None:
        block, signed = canonical_headers({'X-Amz-Meta-A': '1', 'x-amz-meta-a': '2'})
        self.assertEqual(block, 'x-amz-meta-a:1,2')
        self.assertEqual(signed, 'x-amz-meta-a')


class TestPayloadHash(unittest.TestCase):

    def test_empty_constant(self) -> None:
        self.assertEqual(len(EMPTY_SHA256), 64)
        self.assertEqual(EMPTY_SHA256, hashlib.sha256(b'').hexdigest())
        self.assertTrue(EMPTY_SHA256.startswith('e3b0c442'))
        self.assertTrue(EMPTY_SHA256.endswith('b855'))

    def test_no_body_uses_constant(self) -> None:
        self.assertEqual(payload_hash(None), EMPTY_SHA256)
        self.assertEqual(payload_hash(b''), EMPTY_SHA256)

    def test_text_hashed_as_utf8(self) -> None:
        self.assertEqual(payload_hash('hé'), hashlib.sha256('hé'.encode('utf-8')).hexdigest())

    def test_bytes(self) -> None:
        self.assertEqual(
            payload_hash(b'Welcome to Amazon S3.'),
            '44ce7dd67c959e0d3524ffac1771dfbba87d2b6b4b4e99e42034a8b803f8b072',
        )


class TestCanonicalHost(unittest.TestCase):

    def test_default_ports_dropped(self) -> None:
        self.assertEqual(canonical_host('https://Example.COM:443/x'), 'example.com')
        self.assertEqual(canonical_host('http://example.com:80/x'), 'example.com')

    def test_custom_port_kept(self) -> None:
        self.assertEqual(canonical_host('http://localhost:9000/bucket'), 'localhost:9000')

    def test_ipv6(self) -> None:
        self.assertEqual(canonical_host('https://[2001:db8::1]:8443/'), '[2001:db8::1]:8443')
        self.assertEqual(canonical_host('https://[2001:db8::1]/'), '[2001:db8::1]')


class TestCanonicalRequest(unittest.TestCase):

    def test_layout(self) -> None:
        request, signed = canonical_request(
            'get',
            'https://bucket.example.com/a%20b?z=1&a=2',
            {'host': 'bucket.example.com', 'x-amz-date': '20240101T000000Z'},
            EMPTY_SHA256,
        )
        self.assertEqual(request, '\n'.join([
            'GET',
            '/a%20b',
            'a=2&z=1',
            'host:bucket.example.com',
            'x-amz-date:20240101T000000Z',
            '',
            'host;x-amz-date',
            EMPTY_SHA256,
        ]))
        self.assertEqual(signed, 'host;x-amz-date')


if __name__ == '__main__':
    unittest.main(verbosity=2)
