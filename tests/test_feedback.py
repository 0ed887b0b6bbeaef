"""
Feedback submission.
"""

import json

import pytest

from geocat_svc.errors import FeedbackSubmitError, ShareLinkError
from geocat_svc.share.feedback import NOT_SHARED, Feedback, send_feedback

FEEDBACK_URL = "https://map.example.com/feedback"


class TestSendFeedback:

    async def test_success_without_share_link(self, transport, fake_http):
        received = {}

        def accept(request):
            received.update(json.loads(request.content))
            return {"result": "SUCCESS"}

        fake_http.add(FEEDBACK_URL, accept, method="POST")

        await send_feedback(transport, FEEDBACK_URL, "help@example.com", Feedback(
            comment="Roads layer is out of date", title="Roads", name="Sam", email="sam@example.com",
        ))

        assert received == {
            "title": "Roads",
            "name": "Sam",
            "email": "sam@example.com",
            "shareLink": NOT_SHARED,
            "comment": "Roads layer is out of date",
        }

    async def test_share_link_attached_on_request(self, transport, fake_http):
        received = {}

        def accept(request):
            received.update(json.loads(request.content))
            return json.dumps({"result": "SUCCESS"})

        async def link():
            return "https://map.example.com/#share=abc"

        fake_http.add(FEEDBACK_URL, accept, method="POST")

        await send_feedback(
            transport, FEEDBACK_URL, "help@example.com",
            Feedback(comment="Nice", send_share_url=True),
            share_link=link,
        )

        assert received["shareLink"] == "https://map.example.com/#share=abc"

    async def test_rejected_submission(self, transport, fake_http):
        fake_http.add(FEEDBACK_URL, {"result": "FAILED"}, method="POST")

        with pytest.raises(FeedbackSubmitError) as exc_info:
            await send_feedback(transport, FEEDBACK_URL, "help@example.com", Feedback(comment="x"))

        assert "help@example.com" in exc_info.value.message

    async def test_service_down(self, transport, fake_http):
        fake_http.add(FEEDBACK_URL, {}, status=500, method="POST")

        with pytest.raises(FeedbackSubmitError):
            await send_feedback(transport, FEEDBACK_URL, "help@example.com", Feedback(comment="x"))

    async def test_share_link_failure(self, transport):
        async def broken():
            raise ShareLinkError("Could not create short link", "quota")

        with pytest.raises(FeedbackSubmitError):
            await send_feedback(
                transport, FEEDBACK_URL, "help@example.com",
                Feedback(comment="x", send_share_url=True),
                share_link=broken,
            )

    async def test_no_feedback_url(self, transport):
        with pytest.raises(FeedbackSubmitError):
            await send_feedback(transport, None, "help@example.com", Feedback(comment="x"))
