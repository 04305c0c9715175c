"""Attachment uploaders -- one per backing store, all behind :class:`AttachmentUploader`.

Variants:
  ObjectStoreUploader    — S3 put-object via boto3, URL derived from bucket/region
  AttachmentApiUploader  — base64 JSON upload to the record store's attachment host
  BlobStoreUploader      — raw-body PUT to a blob store HTTP API

Every variant stores the file under ``{recordId}_{documentType}.{ext}``, so a
re-submission for the same record overwrites instead of piling up copies, and
every variant releases the incoming file whether or not the upload succeeded.
"""


import abc
import asyncio
import base64
import logging
from datetime import datetime, timezone
from urllib.parse import quote

import boto3
import httpx
from botocore.exceptions import BotoCoreError, ClientError, ConnectTimeoutError, ReadTimeoutError

from docrelay.core.exceptions import UploadError
from docrelay.core.filenames import stored_filename
from docrelay.domain.documents import DocumentType, IncomingFile, UploadedAttachment

logger = logging.getLogger(__name__)

DEFAULT_CONTENT_TYPE = "application/octet-stream"


class AttachmentUploader(abc.ABC):
    """Uploads one validated file and returns a durable reference to it."""

    backend: str = ""

    def __init__(self, max_file_bytes: int):
        self.max_file_bytes = max_file_bytes

    async def upload(
        self,
        file: IncomingFile,
        record_id: str,
        document_type: DocumentType,
        metadata: dict[str, str] | None = None,
    ) -> UploadedAttachment:
        filename = stored_filename(record_id, document_type, file.filename, file.content_type)
        content_type = file.content_type or DEFAULT_CONTENT_TYPE
        try:
            content = await file.read()
            logger.info(
                "Uploading %s for record %s to %s (%s, %d bytes)",
                filename,
                record_id,
                self.backend,
                content_type,
                len(content),
            )
            url, stored_name = await self._put(filename, content, content_type, metadata or {})
        finally:
            await file.release()
        return UploadedAttachment(document_type=document_type, filename=stored_name, url=url)

    @abc.abstractmethod
    async def _put(
        self, filename: str, content: bytes, content_type: str, metadata: dict[str, str]
    ) -> tuple[str, str]:
        """Store *content* under *filename*; return ``(url, stored filename)``."""


# ---------------------------------------------------------------------------
# Object store (S3)
# ---------------------------------------------------------------------------

def _ascii_metadata(metadata: dict[str, str]) -> dict[str, str]:
    # S3 user metadata travels as HTTP headers.
    return {
        key: value.encode("ascii", "ignore").decode("ascii")
        for key, value in metadata.items()
        if value
    }


class ObjectStoreUploader(AttachmentUploader):
    backend = "s3"

    def __init__(
        self,
        bucket: str,
        region: str,
        max_file_bytes: int,
        key_prefix: str = "",
        public_base_url: str | None = None,
        access_key_id: str | None = None,
        secret_access_key: str | None = None,
        client=None,
    ):
        super().__init__(max_file_bytes)
        self.bucket = bucket
        self.region = region
        self.key_prefix = key_prefix
        self.public_base_url = public_base_url
        self._client = client or boto3.client(
            "s3",
            region_name=region,
            aws_access_key_id=access_key_id,
            aws_secret_access_key=secret_access_key,
        )

    def object_url(self, key: str) -> str:
        if self.public_base_url:
            return f"{self.public_base_url.rstrip('/')}/{quote(key)}"
        return f"https://{self.bucket}.s3.{self.region}.amazonaws.com/{quote(key)}"

    async def _put(
        self, filename: str, content: bytes, content_type: str, metadata: dict[str, str]
    ) -> tuple[str, str]:
        key = f"{self.key_prefix}{filename}"
        object_metadata = _ascii_metadata(
            {**metadata, "upload-date": datetime.now(timezone.utc).isoformat()}
        )
        try:
            await asyncio.to_thread(
                self._client.put_object,
                Bucket=self.bucket,
                Key=key,
                Body=content,
                ContentType=content_type,
                Metadata=object_metadata,
            )
        except ClientError as exc:
            status = exc.response.get("ResponseMetadata", {}).get("HTTPStatusCode")
            raise UploadError(f"S3 rejected {key}: {exc}", backend_status=status) from exc
        except (ConnectTimeoutError, ReadTimeoutError) as exc:
            raise UploadError(f"S3 timed out storing {key}: {exc}", timed_out=True) from exc
        except BotoCoreError as exc:
            raise UploadError(f"S3 upload of {key} failed: {exc}") from exc
        return self.object_url(key), filename


# ---------------------------------------------------------------------------
# HTTP backends
# ---------------------------------------------------------------------------

class _HttpUploader(AttachmentUploader):
    def __init__(
        self,
        max_file_bytes: int,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        super().__init__(max_file_bytes)
        self.timeout = timeout
        self._transport = transport

    async def _send(self, method: str, url: str, filename: str, **kwargs) -> dict:
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.request(method, url, **kwargs)
        except httpx.TimeoutException as exc:
            raise UploadError(f"{self.backend} timed out storing {filename}", timed_out=True) from exc
        except httpx.HTTPError as exc:
            raise UploadError(f"{self.backend} upload of {filename} failed: {exc}") from exc

        if response.is_error:
            raise UploadError(
                f"{self.backend} rejected {filename}: {response.status_code} {response.text}",
                backend_status=response.status_code,
            )
        try:
            data = response.json()
        except ValueError as exc:
            raise UploadError(
                f"{self.backend} returned a non-JSON body for {filename}",
                backend_status=response.status_code,
            ) from exc
        if not isinstance(data, dict) or not data.get("url"):
            raise UploadError(
                f"{self.backend} returned no URL for {filename}",
                backend_status=response.status_code,
            )
        return data


class AttachmentApiUploader(_HttpUploader):
    """Base64 upload to the record store's attachment host (hard ~5 MiB ceiling)."""

    backend = "airtable"

    def __init__(
        self,
        token: str,
        base_id: str,
        max_file_bytes: int,
        upload_url: str = "https://api.airtable.com/v0/bases/{base_id}/attachments/upload",
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        super().__init__(max_file_bytes, timeout=timeout, transport=transport)
        self._token = token
        self.endpoint = upload_url.format(base_id=quote(base_id, safe=""))

    async def _put(
        self, filename: str, content: bytes, content_type: str, metadata: dict[str, str]
    ) -> tuple[str, str]:
        data = await self._send(
            "POST",
            self.endpoint,
            filename,
            headers={"Authorization": f"Bearer {self._token}"},
            json={
                "file": base64.b64encode(content).decode("ascii"),
                "filename": filename,
                "contentType": content_type,
            },
        )
        return data["url"], data.get("filename") or filename


class BlobStoreUploader(_HttpUploader):
    backend = "blob"

    def __init__(
        self,
        token: str,
        max_file_bytes: int,
        api_url: str = "https://blob.vercel-storage.com",
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        super().__init__(max_file_bytes, timeout=timeout, transport=transport)
        self._token = token
        self.api_url = api_url.rstrip("/")

    async def _put(
        self, filename: str, content: bytes, content_type: str, metadata: dict[str, str]
    ) -> tuple[str, str]:
        data = await self._send(
            "PUT",
            f"{self.api_url}/",
            filename,
            params={"pathname": filename},
            headers={
                "Authorization": f"Bearer {self._token}",
                "x-content-type": content_type,
                "x-add-random-suffix": "0",
                "x-allow-overwrite": "1",
            },
            content=content,
        )
        return data["url"], filename
