"""
Object operations on a single bucket.

Each operation is one HTTP verb and one outcome. The only errors turned into
return values are "object not found" on the read, existence and delete paths
and every failure of ``check_bucket_access``; everything else is raised as
S3Error with the vendor's status, code and message intact.
"""

import logging
from typing import Dict, List, Optional, Union, cast
from urllib.parse import quote

import httpx

from .client import S3Client, xml_text, xml_texts
from .config import Credentials, EndpointConfig
from .errors import ErrorKind, S3Error
from .sigv4 import KeyCache

logger = logging.getLogger(__name__)

Content = Union[str, bytes]


class S3Bucket:
    """
    Object operations bound to one endpoint, bucket and set of credentials.

    Usage:
        async with S3Bucket(EndpointConfig.cloudflare_r2(account), 'media', creds) as bucket:
            await bucket.upload_object('a.txt', 'hello')
            text = await bucket.download_object_as_text('a.txt')
    """

    def __init__(
            self,
            endpoint: EndpointConfig,
            bucket: str,
            credentials: Credentials,
            *,
            http_client: Optional[httpx.AsyncClient] = None,
            key_cache: Optional[KeyCache] = None,
    ):
        self.name = bucket
        self.client = S3Client(endpoint, credentials, http_client=http_client, key_cache=key_cache)

    async def __aenter__(self) -> 'S3Bucket':
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self.client.aclose()

    async def upload_object(self, key: str, content: Content, content_type: Optional[str] = None) -> None:
        headers = {'content-type': content_type} if content_type else None
        await self.client.request('PUT', self.name, key, body=content, headers=headers)

    async def _download(self, key: str, raw: bool = False) -> Optional[Union[bytes, str]]:
        try:
            result = await self.client.request('GET', self.name, key, raw=raw)
        except S3Error as exc:
            if exc.kind is ErrorKind.NOT_FOUND:
                return None
            raise
        # An empty object exists; only a miss maps to None.
        return b'' if result is None else result

    async def download_object_as_text(self, key: str) -> Optional[str]:
        result = await self._download(key)
        if isinstance(result, bytes):
            return result.decode('utf-8', errors='replace')
        return result

    async def download_object_as_bytes(self, key: str) -> Optional[bytes]:
        return cast(Optional[bytes], await self._download(key, raw=True))

    async def delete_object(self, key: str) -> None:
        try:
            await self.client.request('DELETE', self.name, key)
        except S3Error as exc:
            if exc.kind is not ErrorKind.NOT_FOUND:
                raise
            logger.debug('Delete of missing key %r treated as done', key)

    async def copy_object(self, source_key: str, destination_key: str) -> None:
        source = quote(f'/{self.name}/{source_key}', safe='/~')
        await self.client.request('PUT', self.name, destination_key, headers={'x-amz-copy-source': source})

    async def move_object(self, source_key: str, destination_key: str) -> None:
        """
        Copy then delete. Not atomic: if the delete fails the object exists
        under both keys and the source is still the one to trust.
        """
        await self.copy_object(source_key, destination_key)
        await self.delete_object(source_key)

    async def list_objects(self, prefix: Optional[str] = None, all_pages: bool = False) -> List[str]:
        """
        List keys in the bucket, optionally under ``prefix``.

        Only the first page (up to 1000 keys on AWS) is read unless
        ``all_pages`` is set; a truncated first page is logged.
        """
        keys: List[str] = []
        params: Dict[str, str] = {'list-type': '2'}
        if prefix:
            params['prefix'] = prefix

        while True:
            document = await self.client.request('GET', self.name, params=params)
            if isinstance(document, bytes):
                document = document.decode('utf-8')
            document = document or ''
            keys.extend(key for key in xml_texts(document, 'Key') if key)

            truncated = (xml_text(document, 'IsTruncated') or '').strip().lower() == 'true'
            token = xml_text(document, 'NextContinuationToken')
            if not truncated:
                return keys
            if not all_pages:
                logger.warning(
                    'Listing of bucket %r (prefix %r) is truncated after %d keys; pass all_pages=True to read further',
                    self.name, prefix, len(keys),
                )
                return keys
            if not token:
                raise S3Error(ErrorKind.PROTOCOL, 200, 'MissingContinuationToken',
                              'Truncated listing without NextContinuationToken')
            params['continuation-token'] = token

    async def object_exists(self, key: str) -> bool:
        try:
            await self.client.request('HEAD', self.name, key)
        except S3Error as exc:
            if exc.kind is ErrorKind.NOT_FOUND:
                return False
            raise
        return True

    async def check_bucket_access(self) -> bool:
        try:
            await self.client.request('HEAD', self.name)
        except S3Error as exc:
            if exc.kind is ErrorKind.AUTHORIZATION:
                logger.info('Access to bucket %r denied (%d %s)', self.name, exc.status, exc.code)
            else:
                logger.warning('Bucket %r access check failed: %s', self.name, exc)
            return False
        except httpx.HTTPError as exc:
            logger.warning('Bucket %r access check failed: %s', self.name, exc)
            return False
        return True

    def __repr__(self) -> str:
        return f'S3Bucket(name={self.name!r}, client={self.client!r})'
