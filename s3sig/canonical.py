"""
Canonical request construction for AWS Signature Version 4.

Everything in here is a pure function of its inputs. The signer feeds the
results into the string-to-sign; tests compare them against the examples
published in the S3 documentation.
"""

import hashlib
from typing import Any, Iterable, List, Mapping, Optional, Tuple, Union
from urllib.parse import quote, unquote, urlsplit

Headers = Mapping[str, Any]
Body = Optional[Union[str, bytes]]
Query = Union[str, Mapping[str, str], Iterable[Tuple[str, str]]]

# SHA-256 of the empty string.
EMPTY_SHA256 = 'e3b0c44298fc1c149afbf4c8996fb92427ae41e4649b934ca495991b7852b855'

UNSIGNED_PAYLOAD = 'UNSIGNED-PAYLOAD'

# Headers rewritten or added by proxies and HTTP stacks after signing.
UNSIGNABLE_HEADERS = frozenset({
    'authorization',
    'expect',
    'transfer-encoding',
    'user-agent',
    'x-amzn-trace-id',
})

DEFAULT_PORTS = {'http': 80, 'https': 443}

# quote() never escapes letters or digits; these complete the RFC 3986 unreserved set.
_UNRESERVED_SAFE = '-_.~'


def uri_encode(value: str) -> str:
    return quote(value, safe=_UNRESERVED_SAFE)


def canonical_uri(path: str) -> str:
    """
    Encode every path segment on its own and rejoin with '/'.

    S3 signs the path single-encoded and without dot-segment normalization,
    so an already-escaped segment is decoded first to avoid turning '%20'
    into '%2520'. Escaped dot segments ('%2E', '%2E%2E') are signed as sent,
    since decoding them would name a different path than the one on the wire.
    """
    if not path:
        return '/'
    return '/'.join(_canonical_segment(segment) for segment in path.split('/'))


def _canonical_segment(segment: str) -> str:
    decoded = unquote(segment)
    if decoded in ('.', '..'):
        return segment.upper()
    return uri_encode(decoded)


def _query_pairs(query: Query) -> List[Tuple[str, str]]:
    if isinstance(query, str):
        pairs = []
        for part in query.split('&'):
            if not part:
                continue
            name, _, value = part.partition('=')
            pairs.append((unquote(name), unquote(value)))
        return pairs
    if hasattr(query, 'items'):
        return [(str(k), str(v)) for k, v in query.items()]
    return [(str(k), str(v)) for k, v in query]


def canonical_query_string(query: Query) -> str:
    """
    Build the canonical query string.

    Names and values are encoded before sorting so the order is the byte
    order of what actually goes on the wire.
    """
    encoded = sorted((uri_encode(k), uri_encode(v)) for k, v in _query_pairs(query))
    return '&'.join(f'{k}={v}' for k, v in encoded)


def canonical_headers(headers: Headers) -> Tuple[str, str]:
    """
    Return (canonical header block, signed header names).

    Names are lower-cased and sorted; values are trimmed with inner runs of
    whitespace collapsed to one space. A name given more than once under
    different casing is merged into one comma-separated entry.
    """
    merged = {}
    for name, value in headers.items():
        lname = name.lower().strip()
        if lname in UNSIGNABLE_HEADERS:
            continue
        normalized = ' '.join(str(value).split())
        if lname in merged:
            merged[lname] = f'{merged[lname]},{normalized}'
        else:
            merged[lname] = normalized

    names = sorted(merged)
    block = '\n'.join(f'{name}:{merged[name]}' for name in names)
    return block, ';'.join(names)


def payload_hash(body: Body) -> str:
    if not body:
        return EMPTY_SHA256
    if isinstance(body, str):
        body = body.encode('utf-8')
    return hashlib.sha256(body).hexdigest()


def canonical_host(url: str) -> str:
    parts = urlsplit(url)
    host = parts.hostname or ''
    if ':' in host:
        host = f'[{host}]'
    port = parts.port
    if port is not None and port != DEFAULT_PORTS.get(parts.scheme):
        host = f'{host}:{port}'
    return host


def canonical_request(method: str, url: str, headers: Headers, content_hash: str) -> Tuple[str, str]:
    """
    Return (canonical request, signed header names) for a request.

    The caller is responsible for having put 'host' and the date and
    content-hash headers into ``headers`` already.
    """
    parts = urlsplit(url)
    header_block, signed_headers = canonical_headers(headers)
    request = '\n'.join([
        method.upper(),
        canonical_uri(parts.path),
        canonical_query_string(parts.query),
        header_block,
        '',
        signed_headers,
        content_hash,
    ])
    return request, signed_headers
