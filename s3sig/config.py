"""
Connection settings for an S3-compatible endpoint.

Both dataclasses are frozen: one client keeps the same endpoint, region,
addressing style and credentials for its whole lifetime, which is what makes
them safe to share between concurrent requests.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional
from urllib.parse import urlsplit


class AddressingStyle(Enum):
    PATH = 'path'
    VIRTUAL_HOSTED = 'virtual'


@dataclass(frozen=True)
class Credentials:
    access_key_id: str
    secret_access_key: str = field(repr=False)
    session_token: Optional[str] = field(default=None, repr=False)


@dataclass(frozen=True)
class EndpointConfig:
    endpoint: str
    region: str
    addressing_style: AddressingStyle = AddressingStyle.VIRTUAL_HOSTED

    def __post_init__(self):
        parts = urlsplit(self.endpoint)
        if parts.scheme not in ('http', 'https') or not parts.hostname:
            raise ValueError(f'Invalid endpoint URL: {self.endpoint!r}')
        # Joining later on assumes no trailing slash.
        object.__setattr__(self, 'endpoint', self.endpoint.rstrip('/'))

    @classmethod
    def aws_s3(cls, region: str) -> 'EndpointConfig':
        return cls(f'https://s3.{region}.amazonaws.com', region, AddressingStyle.VIRTUAL_HOSTED)

    @classmethod
    def cloudflare_r2(cls, account_id: str) -> 'EndpointConfig':
        return cls(f'https://{account_id}.r2.cloudflarestorage.com', 'auto', AddressingStyle.PATH)

    @classmethod
    def digitalocean_spaces(cls, region: str) -> 'EndpointConfig':
        return cls(f'https://{region}.digitaloceanspaces.com', region, AddressingStyle.PATH)
