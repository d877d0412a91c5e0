"""Filesystem and network access for source images."""

import shutil
from pathlib import Path
from typing import Any, Optional, Tuple
from urllib.parse import urlparse

import boto3
import requests

from .error_handling import retry_fetch, with_error_handling
from .exceptions import UnreadableSourceError
from .logging_config import get_logger

# Conditional import for type checking S3 client
from typing import TYPE_CHECKING
if TYPE_CHECKING:
    from mypy_boto3_s3.client import S3Client
else:
    S3Client = Any

REMOTE_SCHEMES = ("http", "https", "s3")


def is_remote_location(location: str) -> bool:
    """True for http(s):// and s3:// locations."""
    return urlparse(location).scheme.lower() in REMOTE_SCHEMES


def split_s3_url(url: str) -> Tuple[str, str]:
    """Split ``s3://bucket/key`` into bucket and key."""
    parsed = urlparse(url)
    key = parsed.path.lstrip("/")
    if not parsed.netloc or not key:
        raise UnreadableSourceError(f"Malformed S3 URL: {url}")
    return parsed.netloc, key


class SourceAccessor:
    """Reads source bytes from disk, HTTP(S) or S3 and copies files on disk."""

    def __init__(
        self,
        s3_client: Optional[S3Client] = None,
        session: Optional[requests.Session] = None,
        timeout: float = 15.0,
    ):
        self._s3_client = s3_client
        self._session = session
        self._timeout = timeout
        self._logger = get_logger("image-derivatives.accessor")

    @property
    def s3_client(self) -> S3Client:
        if self._s3_client is None:
            self._s3_client = boto3.Session().client("s3")
        return self._s3_client

    @property
    def session(self) -> requests.Session:
        if self._session is None:
            self._session = requests.Session()
        return self._session

    def read_bytes(self, location: str) -> bytes:
        """Read all bytes of a local path or remote URL."""
        scheme = urlparse(location).scheme.lower()
        if scheme == "s3":
            return self._read_s3(location)
        if scheme in ("http", "https"):
            return self._read_http(location)
        return self._read_file(location)

    def _read_file(self, location: str) -> bytes:
        path = Path(location)
        self._logger.debug(f"Reading {path}")
        try:
            return path.read_bytes()
        except OSError as exc:
            raise UnreadableSourceError(f"Cannot read source file {location}: {exc}") from exc

    @retry_fetch()
    @with_error_handling
    def _read_http(self, url: str) -> bytes:
        self._logger.debug(f"Fetching {url}")
        response = self.session.get(url, timeout=self._timeout)
        response.raise_for_status()
        return response.content

    @retry_fetch()
    @with_error_handling
    def _read_s3(self, url: str) -> bytes:
        bucket, key = split_s3_url(url)
        self._logger.debug(f"Downloading s3://{bucket}/{key}")
        response = self.s3_client.get_object(Bucket=bucket, Key=key)
        return response["Body"].read()

    def copy_file(self, src_path: str, dest_path: str) -> None:
        """Byte-for-byte copy, creating the destination directory."""
        Path(dest_path).parent.mkdir(parents=True, exist_ok=True)
        shutil.copyfile(src_path, dest_path)

    def write_bytes(self, dest_path: str, data: bytes) -> None:
        Path(dest_path).parent.mkdir(parents=True, exist_ok=True)
        Path(dest_path).write_bytes(data)
