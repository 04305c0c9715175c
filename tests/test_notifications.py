import json
from datetime import datetime, timezone

import httpx
import pytest

from docrelay.core.exceptions import NotificationWarning
from docrelay.domain.documents import DocumentType, UploadedAttachment
from docrelay.services.notifications import WebhookNotifier, build_summary


def test_summary_is_flat_and_carries_profile_fields(submission_factory):
    submission = submission_factory()
    attachments = {
        t: UploadedAttachment(t, f"rec123_{t.value}.pdf", f"https://files.test/{t.value}")
        for t in DocumentType
    }
    summary = build_summary(submission, attachments, datetime(2026, 1, 2, tzinfo=timezone.utc))

    assert summary == {
        "candidateEmail": "ada@example.com",
        "recordId": "rec123",
        "candidateName": "Ada Lovelace",
        "identityProofUrl": "https://files.test/Identity",
        "addressProofUrl": "https://files.test/Address",
        "offerLetterUrl": "https://files.test/Offer",
        "submissionTime": "2026-01-02T00:00:00+00:00",
        "documentsUploaded": True,
        "department": "Engineering",
    }


@pytest.mark.asyncio
async def test_notify_posts_json():
    captured = []

    def handler(request):
        captured.append(request)
        return httpx.Response(200)

    notifier = WebhookNotifier("https://hooks.test/onboarding", transport=httpx.MockTransport(handler))
    await notifier.notify({"recordId": "rec1"})

    assert captured[0].method == "POST"
    assert json.loads(captured[0].content) == {"recordId": "rec1"}


@pytest.mark.asyncio
async def test_non_2xx_raises_notification_warning():
    notifier = WebhookNotifier(
        "https://hooks.test/onboarding",
        transport=httpx.MockTransport(lambda request: httpx.Response(500)),
    )
    with pytest.raises(NotificationWarning, match="500"):
        await notifier.notify({"recordId": "rec1"})


@pytest.mark.asyncio
async def test_connection_error_raises_notification_warning():
    def handler(request):
        raise httpx.ConnectError("refused")

    notifier = WebhookNotifier("https://hooks.test/onboarding", transport=httpx.MockTransport(handler))
    with pytest.raises(NotificationWarning):
        await notifier.notify({"recordId": "rec1"})
