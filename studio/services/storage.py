import base64
import binascii
import hashlib
import logging
import mimetypes
from pathlib import Path
from urllib.parse import unquote

import aiofiles
import httpx

from studio.config import get_settings
from studio.errors import FetchError, StorageError

settings = get_settings()
logger = logging.getLogger(__name__)

EXTENSIONS = {
    "image/png": "png",
    "image/jpeg": "jpg",
    "image/webp": "webp",
    "image/gif": "gif",
}


def parse_data_uri(uri: str) -> tuple[bytes, str]:
    """Decode a ``data:<mime>;base64,<payload>`` URI into bytes and mime type."""
    header, _, payload = uri.partition(",")
    if not header.startswith("data:") or not payload:
        raise ValueError("Not a data URI")

    mime_type = header[5:].split(";")[0] or "application/octet-stream"
    if header.endswith(";base64"):
        return base64.b64decode(payload, validate=True), mime_type
    return unquote(payload).encode("utf-8"), mime_type


def guess_content_type(url: str, default: str = "image/png") -> str:
    """Best guess of the mime type behind a data URI or URL."""
    if url.startswith("data:"):
        return url[5:].split(";")[0].split(",")[0] or default
    guessed, _ = mimetypes.guess_type(url.split("?")[0])
    return guessed or default


def content_path(data: bytes, content_type: str, prefix: str = "") -> str:
    """Content-addressed object path: identical bytes land on the same path."""
    digest = hashlib.sha256(data).hexdigest()
    extension = EXTENSIONS.get(content_type, "bin")
    name = f"{digest}.{extension}"
    return f"{prefix.strip('/')}/{name}" if prefix else name


class LocalStorage:
    """
    Bucket/path object storage on the local filesystem.

    Each bucket is a directory under ``storage_path``; objects are served
    by the API under ``/files/<bucket>/<path>``. Buckets are provisioned
    at startup, uploads never create them.
    """

    def __init__(
        self,
        base_path: Path | None = None,
        public_base_url: str | None = None,
        buckets: tuple[str, ...] | None = None,
        download_timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_path = Path(base_path or settings.storage_path)
        self.public_base_url = (public_base_url or settings.public_base_url).rstrip("/")
        self.buckets = buckets or (settings.designs_bucket, settings.inputs_bucket)
        self.download_timeout = download_timeout or settings.download_timeout
        self._transport = transport

    @property
    def files_url(self) -> str:
        return f"{self.public_base_url}/files/"

    def _bucket_path(self, bucket: str) -> Path:
        return self.base_path / bucket

    def _get_full_path(self, bucket: str, path: str) -> Path:
        """Get the full filesystem path for an object, refusing to leave the bucket."""
        bucket_path = self._bucket_path(bucket).resolve()
        full_path = (bucket_path / path).resolve()
        if bucket_path not in full_path.parents:
            raise StorageError(f"Invalid object path: {path}")
        return full_path

    async def upload(
        self,
        bucket: str,
        path: str,
        data: bytes,
        content_type: str = "image/png",
    ) -> str:
        """Write an object into a provisioned bucket and return its public URL."""
        if not data:
            raise StorageError("Refusing to store an empty file")
        if not self._bucket_path(bucket).is_dir():
            raise StorageError(f"Bucket not found: {bucket}")

        full_path = self._get_full_path(bucket, path)

        try:
            full_path.parent.mkdir(parents=True, exist_ok=True)
            async with aiofiles.open(full_path, "wb") as f:
                await f.write(data)
        except OSError as e:
            raise StorageError(f"Upload to {bucket}/{path} failed: {e}") from e

        logger.debug("Stored %d bytes (%s) at %s/%s", len(data), content_type, bucket, path)
        return self.get_public_url(bucket, path)

    def get_public_url(self, bucket: str, path: str) -> str:
        return f"{self.files_url}{bucket}/{path}"

    def is_owned(self, url: str) -> bool:
        return url.startswith(self.files_url)

    async def download(self, url: str) -> bytes:
        """
        Fetch image bytes behind a URL.

        Data URIs are decoded in place, URLs pointing at this store are
        read from disk and anything else is fetched over HTTP.
        """
        if url.startswith("data:"):
            try:
                data, _ = parse_data_uri(url)
            except (ValueError, binascii.Error) as e:
                raise FetchError(url, f"malformed data URI ({e})") from e
            return data

        if self.is_owned(url):
            bucket, _, path = url[len(self.files_url):].partition("/")
            if bucket not in self.buckets:
                raise StorageError(f"Bucket not found: {bucket}")
            full_path = self._get_full_path(bucket, unquote(path))
            if not full_path.exists():
                raise StorageError(f"File not found: {bucket}/{path}")
            async with aiofiles.open(full_path, "rb") as f:
                return await f.read()

        try:
            async with httpx.AsyncClient(
                timeout=self.download_timeout,
                transport=self._transport,
                follow_redirects=True,
            ) as client:
                response = await client.get(url)
        except httpx.HTTPError as e:
            raise FetchError(url, str(e) or type(e).__name__) from e

        if response.status_code != 200:
            raise FetchError(url, f"HTTP {response.status_code}")
        if not response.content:
            raise FetchError(url, "empty body")

        return response.content

    async def ensure_storage_exists(self) -> None:
        """Provision the configured buckets."""
        self.base_path.mkdir(parents=True, exist_ok=True)
        for bucket in self.buckets:
            self._bucket_path(bucket).mkdir(exist_ok=True)


# Singleton instance
storage = LocalStorage()
