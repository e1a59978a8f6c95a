"""
S3-compatible object storage over AWS Signature Version 4

This package signs requests with a standalone SigV4 implementation (no
botocore or vendor SDK) and provides the handful of object operations shared
by AWS S3, Cloudflare R2 and DigitalOcean Spaces.
"""

import logging

from .canonical import EMPTY_SHA256, UNSIGNED_PAYLOAD, Headers
from .client import S3Client
from .config import AddressingStyle, Credentials, EndpointConfig
from .errors import ErrorKind, S3Error
from .objects import S3Bucket
from .sigv4 import SignedRequest, SigV4Signer

logging.getLogger(__name__).addHandler(logging.NullHandler())

__version__ = "0.1.0"
__all__ = [
    "AddressingStyle",
    "Credentials",
    "EMPTY_SHA256",
    "EndpointConfig",
    "ErrorKind",
    "Headers",
    "S3Bucket",
    "S3Client",
    "S3Error",
    "SignedRequest",
    "SigV4Signer",
    "UNSIGNED_PAYLOAD",
]
