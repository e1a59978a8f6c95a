"""
Error taxonomy for responses from the storage endpoint.

One exception type carries every non-2xx outcome; its ErrorKind is decided
once, from status and vendor code, where the response comes in.
"""

from enum import Enum
from typing import Optional


class ErrorKind(Enum):
    NOT_FOUND = 'not_found'
    AUTHORIZATION = 'authorization'
    PROTOCOL = 'protocol'


class S3Error(Exception):
    """
    A non-2xx response from the storage endpoint.

    Built once where the response is received; callers decide what to do by
    looking at ``kind`` alone. ``code`` and ``message`` are what the vendor
    sent back, unmodified.
    """

    def __init__(self, kind: ErrorKind, status: int, code: str = '', message: str = ''):
        self.kind = kind
        self.status = status
        self.code = code
        self.message = message
        detail = f' [{code}]' if code else ''
        super().__init__(f'S3 error {status}{detail}: {message}')

    @property
    def is_not_found(self) -> bool:
        return self.kind is ErrorKind.NOT_FOUND

    def __reduce__(self):
        return type(self), (self.kind, self.status, self.code, self.message)


def classify(status: int, code: Optional[str], *, head_of_object: bool = False) -> ErrorKind:
    """
    Map an HTTP status and vendor error code to an ErrorKind.

    A 404 only means "object not found" when the vendor says NoSuchKey, so a
    missing bucket is not mistaken for a missing object. HEAD responses carry
    no error document at all; for those a bare 404 on an object key is the
    only signal there is.
    """
    if status == 404 and (code == 'NoSuchKey' or (head_of_object and not code)):
        return ErrorKind.NOT_FOUND
    if status in (401, 403):
        return ErrorKind.AUTHORIZATION
    return ErrorKind.PROTOCOL
