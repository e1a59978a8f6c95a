"""
Signed request execution against an S3-compatible endpoint.

S3Client turns (method, bucket, key) into a URL according to the endpoint's
addressing style, signs it, sends it with httpx and classifies the response.
Non-2xx responses become a single S3Error; transport errors raised by httpx
are left alone and reach the caller as they are.
"""

import json
import logging
import re
from typing import List, Mapping, Optional, Tuple, Union
from urllib.parse import quote, urlencode, urlsplit, urlunsplit
from xml.sax.saxutils import unescape

import httpx

from .canonical import Body, Headers
from .config import AddressingStyle, Credentials, EndpointConfig
from .errors import S3Error, classify
from .sigv4 import KeyCache, SigV4Signer

logger = logging.getLogger(__name__)

Result = Optional[Union[bytes, str]]

_XML_ENTITIES = {'&quot;': '"', '&apos;': "'"}

DEFAULT_TIMEOUT = 30.0


def xml_text(document: str, tag: str) -> Optional[str]:
    match = re.search(f'<{tag}>(.*?)</{tag}>', document, re.DOTALL)
    if match is None:
        return None
    return unescape(match.group(1), _XML_ENTITIES)


def xml_texts(document: str, tag: str) -> List[str]:
    return [unescape(m, _XML_ENTITIES) for m in re.findall(f'<{tag}>(.*?)</{tag}>', document, re.DOTALL)]


def parse_error_body(text: str) -> Tuple[str, str]:
    """
    Pull (code, message) out of an error response.

    S3 sends an XML <Error> document; some gateways in front of it answer
    with JSON instead. Anything else is kept as the message verbatim.
    """
    code = xml_text(text, 'Code')
    message = xml_text(text, 'Message')
    if code is not None or message is not None:
        return code or '', message or text
    try:
        data = json.loads(text)
    except ValueError:
        return '', text
    if isinstance(data, dict):
        code = data.get('Code') or data.get('code') or ''
        message = data.get('Message') or data.get('message') or text
        return str(code), str(message)
    return '', text


def encode_key(key: str) -> str:
    """
    Percent-encode an object key for the URL path, keeping '/'.

    '.' and '..' segments are escaped as well; left literal, httpx would
    collapse them and the request would reach a different key.
    """
    segments = []
    for segment in key.split('/'):
        if segment in ('.', '..'):
            segments.append(segment.replace('.', '%2E'))
        else:
            segments.append(quote(segment, safe='~'))
    return '/'.join(segments)


def _is_structured(content_type: str) -> bool:
    content_type = content_type.lower()
    return 'xml' in content_type or 'json' in content_type


class S3Client:
    """
    Executes signed requests for one endpoint and one set of credentials.

    An ``http_client`` passed in is used as is and left open on close; when
    none is given the client creates its own and closes it in ``aclose``.
    """

    def __init__(
            self,
            endpoint: EndpointConfig,
            credentials: Credentials,
            *,
            http_client: Optional[httpx.AsyncClient] = None,
            timeout: float = DEFAULT_TIMEOUT,
            key_cache: Optional[KeyCache] = None,
    ):
        self.endpoint = endpoint
        self._signer = SigV4Signer(
            credentials.access_key_id,
            credentials.secret_access_key,
            endpoint.region,
            credentials.session_token,
            key_cache,
        )
        self._owns_http = http_client is None
        self._http = http_client if http_client is not None else httpx.AsyncClient(timeout=timeout)

    async def __aenter__(self) -> 'S3Client':
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_http:
            await self._http.aclose()

    def build_url(self, bucket: str, key: str = '', params: Optional[Mapping[str, str]] = None) -> str:
        parts = urlsplit(self.endpoint.endpoint)
        base_path = parts.path.rstrip('/')
        encoded_key = encode_key(key)
        if self.endpoint.addressing_style is AddressingStyle.PATH:
            netloc = parts.netloc
            path = f'{base_path}/{quote(bucket, safe="")}/{encoded_key}'
        else:
            netloc = f'{bucket}.{parts.netloc}'
            path = f'{base_path}/{encoded_key}'
        query = urlencode(params, quote_via=quote) if params else ''
        return urlunsplit((parts.scheme, netloc, path, query, ''))

    async def request(
            self,
            method: str,
            bucket: str,
            key: str = '',
            *,
            body: Body = None,
            headers: Optional[Headers] = None,
            params: Optional[Mapping[str, str]] = None,
            raw: bool = False,
    ) -> Result:
        """
        Send one signed request and return its payload.

        Returns None for 204 or an empty body, bytes when the response is not
        XML or JSON (or whenever ``raw`` is set), and text otherwise. Raises
        S3Error on any non-2xx status.
        """
        url = self.build_url(bucket, key, params)
        if isinstance(body, str):
            body = body.encode('utf-8')
        signed = self._signer.sign(method, url, headers, body)

        response = await self._http.request(method, url, headers=signed.headers, content=body)
        logger.debug('%s %s -> %d', method, url, response.status_code)

        if not response.is_success:
            raise self._error_for(response, method, key)

        if response.status_code == 204 or not response.content:
            return None
        content_type = response.headers.get('content-type')
        if raw or (content_type and not _is_structured(content_type)):
            return response.content
        return response.text

    @staticmethod
    def _error_for(response: httpx.Response, method: str, key: str) -> S3Error:
        code, message = parse_error_body(response.text)
        if not message:
            message = response.reason_phrase
        kind = classify(response.status_code, code, head_of_object=method.upper() == 'HEAD' and bool(key))
        logger.debug('S3 error %d [%s] classified as %s', response.status_code, code, kind.name)
        return S3Error(kind, response.status_code, code, message)

    def __repr__(self) -> str:
        return f'S3Client(endpoint={self.endpoint!r})'
