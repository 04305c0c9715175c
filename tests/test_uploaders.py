"""Tests for the backing-store uploaders -- request shape, naming, release, error mapping."""

import base64
import json
from unittest.mock import MagicMock

import httpx
import pytest
from botocore.exceptions import ClientError, ReadTimeoutError

from docrelay.core.exceptions import UploadError
from docrelay.domain.documents import DocumentType
from docrelay.services.uploaders import (
    AttachmentApiUploader,
    BlobStoreUploader,
    ObjectStoreUploader,
)

LIMIT = 5 * 1024 * 1024


def _transport(captured: list, status: int = 200, body=None):
    def handler(request: httpx.Request) -> httpx.Response:
        captured.append(request)
        if isinstance(body, Exception):
            raise body
        payload = body if body is not None else {"url": "https://cdn.test/stored", "filename": None}
        return httpx.Response(status, json=payload)

    return httpx.MockTransport(handler)


class TestAttachmentApiUploader:
    @pytest.mark.asyncio
    async def test_posts_base64_payload_and_returns_reference(self, file_factory):
        captured = []
        uploader = AttachmentApiUploader(
            token="pat-test", base_id="appBase", max_file_bytes=LIMIT, transport=_transport(captured)
        )
        file = file_factory("contract.pdf.pdf", size=4)

        attachment = await uploader.upload(file, "rec123", DocumentType.OFFER)

        assert attachment.filename == "rec123_Offer.pdf"
        assert attachment.url == "https://cdn.test/stored"
        request = captured[0]
        assert request.method == "POST"
        assert str(request.url) == "https://api.airtable.com/v0/bases/appBase/attachments/upload"
        assert request.headers["Authorization"] == "Bearer pat-test"
        sent = json.loads(request.content)
        assert sent["filename"] == "rec123_Offer.pdf"
        assert sent["contentType"] == "application/pdf"
        assert base64.b64decode(sent["file"]) == b"xxxx"
        assert file.released

    @pytest.mark.asyncio
    async def test_backend_rejection_raises_and_still_releases(self, file_factory):
        uploader = AttachmentApiUploader(
            token="t", base_id="b", max_file_bytes=LIMIT,
            transport=_transport([], status=422, body={"error": "INVALID_FILE"}),
        )
        file = file_factory("id.png")

        with pytest.raises(UploadError) as excinfo:
            await uploader.upload(file, "rec1", DocumentType.IDENTITY)

        assert excinfo.value.backend_status == 422
        assert excinfo.value.status_code == 500
        assert file.released

    @pytest.mark.asyncio
    async def test_response_without_url_is_an_error(self, file_factory):
        uploader = AttachmentApiUploader(
            token="t", base_id="b", max_file_bytes=LIMIT, transport=_transport([], body={"id": "att1"})
        )
        with pytest.raises(UploadError, match="no URL"):
            await uploader.upload(file_factory(), "rec1", DocumentType.ADDRESS)

    @pytest.mark.asyncio
    async def test_timeout_maps_to_504(self, file_factory):
        uploader = AttachmentApiUploader(
            token="t", base_id="b", max_file_bytes=LIMIT,
            transport=_transport([], body=httpx.ReadTimeout("slow")),
        )
        file = file_factory()
        with pytest.raises(UploadError) as excinfo:
            await uploader.upload(file, "rec1", DocumentType.ADDRESS)
        assert excinfo.value.timed_out
        assert excinfo.value.status_code == 504
        assert file.released

    @pytest.mark.asyncio
    async def test_missing_content_type_defaults_to_octet_stream(self, file_factory):
        captured = []
        uploader = AttachmentApiUploader(
            token="t", base_id="b", max_file_bytes=LIMIT, transport=_transport(captured)
        )
        await uploader.upload(file_factory("id.png", content_type=""), "rec1", DocumentType.IDENTITY)
        assert json.loads(captured[0].content)["contentType"] == "application/octet-stream"


class TestBlobStoreUploader:
    @pytest.mark.asyncio
    async def test_puts_raw_bytes_with_overwrite_enabled(self, file_factory):
        captured = []
        uploader = BlobStoreUploader(
            token="blob-token", max_file_bytes=LIMIT,
            api_url="https://blob.test/", transport=_transport(captured),
        )
        attachment = await uploader.upload(file_factory("bill.PNG", size=3), "rec7", DocumentType.ADDRESS)

        request = captured[0]
        assert request.method == "PUT"
        assert request.url.params["pathname"] == "rec7_Address.png"
        assert request.headers["x-allow-overwrite"] == "1"
        assert request.headers["Authorization"] == "Bearer blob-token"
        assert request.content == b"xxx"
        assert attachment.filename == "rec7_Address.png"

    @pytest.mark.asyncio
    async def test_auth_failure(self, file_factory):
        uploader = BlobStoreUploader(
            token="bad", max_file_bytes=LIMIT, transport=_transport([], status=403, body={"error": "forbidden"})
        )
        with pytest.raises(UploadError) as excinfo:
            await uploader.upload(file_factory(), "rec7", DocumentType.OFFER)
        assert excinfo.value.backend_status == 403


class TestObjectStoreUploader:
    @pytest.mark.asyncio
    async def test_put_object_call_and_url(self, file_factory):
        client = MagicMock()
        uploader = ObjectStoreUploader(
            bucket="onboarding-documents", region="eu-west-1", max_file_bytes=LIMIT,
            key_prefix="candidates/", client=client,
        )
        file = file_factory("passport.jpg", size=5, content_type="image/jpeg")

        attachment = await uploader.upload(
            file, "rec123", DocumentType.IDENTITY,
            metadata={"candidate-name": "Zoë Doe", "candidate-email": ""},
        )

        kwargs = client.put_object.call_args.kwargs
        assert kwargs["Bucket"] == "onboarding-documents"
        assert kwargs["Key"] == "candidates/rec123_Identity.jpg"
        assert kwargs["Body"] == b"xxxxx"
        assert kwargs["ContentType"] == "image/jpeg"
        assert kwargs["Metadata"]["candidate-name"] == "Zo Doe"
        assert "candidate-email" not in kwargs["Metadata"]
        assert "upload-date" in kwargs["Metadata"]
        assert attachment.url == (
            "https://onboarding-documents.s3.eu-west-1.amazonaws.com/candidates/rec123_Identity.jpg"
        )
        assert file.released

    @pytest.mark.asyncio
    async def test_public_base_url_override(self, file_factory):
        uploader = ObjectStoreUploader(
            bucket="b", region="us-east-1", max_file_bytes=LIMIT,
            public_base_url="https://files.example.com/", client=MagicMock(),
        )
        attachment = await uploader.upload(file_factory("offer.pdf"), "rec1", DocumentType.OFFER)
        assert attachment.url == "https://files.example.com/rec1_Offer.pdf"

    @pytest.mark.asyncio
    async def test_client_error_carries_backend_status(self, file_factory):
        client = MagicMock()
        client.put_object.side_effect = ClientError(
            {
                "Error": {"Code": "AccessDenied", "Message": "Access Denied"},
                "ResponseMetadata": {"HTTPStatusCode": 403},
            },
            "PutObject",
        )
        uploader = ObjectStoreUploader(bucket="b", region="us-east-1", max_file_bytes=LIMIT, client=client)
        file = file_factory()

        with pytest.raises(UploadError) as excinfo:
            await uploader.upload(file, "rec1", DocumentType.ADDRESS)

        assert excinfo.value.backend_status == 403
        assert file.released

    @pytest.mark.asyncio
    async def test_read_timeout(self, file_factory):
        client = MagicMock()
        client.put_object.side_effect = ReadTimeoutError(endpoint_url="https://s3.test")
        uploader = ObjectStoreUploader(bucket="b", region="us-east-1", max_file_bytes=LIMIT, client=client)

        with pytest.raises(UploadError) as excinfo:
            await uploader.upload(file_factory(), "rec1", DocumentType.ADDRESS)

        assert excinfo.value.status_code == 504
