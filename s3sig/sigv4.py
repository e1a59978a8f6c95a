"""
AWS Signature Version 4 signing for S3 requests.

The signer is stateless apart from the credentials it was built with. The
signing key is derived again for every request unless the caller hands in
a mapping to keep derived keys in; that mapping belongs to the caller, who
decides how long it lives.
"""

import hashlib
import hmac
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, MutableMapping, Optional, Tuple

from .canonical import Body, Headers, canonical_host, canonical_request, payload_hash

ALGORITHM = 'AWS4-HMAC-SHA256'
SERVICE = 's3'
TERMINATOR = 'aws4_request'

DATE_HEADER = 'x-amz-date'
CONTENT_HASH_HEADER = 'x-amz-content-sha256'
TOKEN_HEADER = 'x-amz-security-token'

TIMESTAMP_FORMAT = '%Y%m%dT%H%M%SZ'
DATE_FORMAT = '%Y%m%d'

KeyCache = MutableMapping[Tuple[str, str], bytes]


def _hmac(key: bytes, msg: str) -> bytes:
    return hmac.new(key, msg.encode('utf-8'), hashlib.sha256).digest()


def derive_signing_key(secret_key: str, date: str, region: str, service: str = SERVICE) -> bytes:
    k_date = _hmac(f'AWS4{secret_key}'.encode('utf-8'), date)
    k_region = _hmac(k_date, region)
    k_service = _hmac(k_region, service)
    return _hmac(k_service, TERMINATOR)


def credential_scope(date: str, region: str, service: str = SERVICE) -> str:
    return f'{date}/{region}/{service}/{TERMINATOR}'


def string_to_sign(timestamp: str, scope: str, request: str) -> str:
    digest = hashlib.sha256(request.encode('utf-8')).hexdigest()
    return '\n'.join([ALGORITHM, timestamp, scope, digest])


def _get_header(headers: Headers, name: str) -> Optional[str]:
    for key, value in headers.items():
        if key.lower() == name:
            return value
    return None


@dataclass(frozen=True)
class SignedRequest:
    headers: Dict[str, Any]
    canonical_request: str
    string_to_sign: str
    signature: str
    signed_headers: str


class SigV4Signer:
    """
    Signs S3 requests with AWS Signature Version 4.

    ``key_cache`` is optional. When given, derived signing keys are stored in
    it keyed by (date, region) and reused; nothing is cached otherwise.
    """

    def __init__(
            self,
            access_key: str,
            secret_key: str,
            region: str,
            token: Optional[str] = None,
            key_cache: Optional[KeyCache] = None,
    ):
        self.access_key = access_key
        self._secret_key = secret_key
        self.region = region
        self._token = token
        self._key_cache = key_cache

    def __repr__(self) -> str:
        return f'SigV4Signer(access_key={self.access_key!r}, region={self.region!r})'

    def signing_key(self, date: str) -> bytes:
        if self._key_cache is None:
            return derive_signing_key(self._secret_key, date, self.region)
        cache_key = (date, self.region)
        key = self._key_cache.get(cache_key)
        if key is None:
            key = derive_signing_key(self._secret_key, date, self.region)
            self._key_cache[cache_key] = key
        return key

    def sign(
            self,
            method: str,
            url: str,
            headers: Optional[Headers] = None,
            body: Body = None,
            timestamp: Optional[datetime] = None,
    ) -> SignedRequest:
        """
        Sign one request.

        ``host`` is always taken from the URL. ``x-amz-date`` and
        ``x-amz-content-sha256`` are added unless the caller already set
        them; a caller-supplied date also fixes the credential scope.
        """
        signed = {
            k: v for k, v in (headers or {}).items()
            if k.lower() not in ('host', 'authorization')
        }
        signed['host'] = canonical_host(url)

        amz_date = _get_header(signed, DATE_HEADER)
        if amz_date is None:
            moment = timestamp or datetime.now(timezone.utc)
            amz_date = moment.strftime(TIMESTAMP_FORMAT)
            signed[DATE_HEADER] = amz_date
        date = amz_date[:8]

        content_hash = _get_header(signed, CONTENT_HASH_HEADER)
        if content_hash is None:
            content_hash = payload_hash(body)
            signed[CONTENT_HASH_HEADER] = content_hash

        if self._token and _get_header(signed, TOKEN_HEADER) is None:
            signed[TOKEN_HEADER] = self._token

        request, signed_headers = canonical_request(method, url, signed, content_hash)
        scope = credential_scope(date, self.region)
        to_sign = string_to_sign(amz_date, scope, request)
        signature = hmac.new(self.signing_key(date), to_sign.encode('utf-8'), hashlib.sha256).hexdigest()

        signed['Authorization'] = (
            f'{ALGORITHM} Credential={self.access_key}/{scope}, '
            f'SignedHeaders={signed_headers}, Signature={signature}'
        )
        return SignedRequest(
            headers=signed,
            canonical_request=request,
            string_to_sign=to_sign,
            signature=signature,
            signed_headers=signed_headers,
        )

    def create_headers(
            self,
            method: str,
            url: str,
            headers: Optional[Headers] = None,
            body: Body = None,
    ) -> Dict[str, Any]:
        return self.sign(method, url, headers, body).headers
