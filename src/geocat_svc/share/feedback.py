"""User feedback submission."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable

from ..errors import FeedbackSubmitError, ResponseFormatError, ShareLinkError, TransportError
from ..transport import HttpTransport


logger = logging.getLogger(__name__)

NOT_SHARED = "Not shared"


@dataclass
class Feedback:
    comment: str
    title: str = ""
    name: str = ""
    email: str = ""
    send_share_url: bool = False


async def send_feedback(
    transport: HttpTransport,
    feedback_url: str | None,
    support_email: str,
    feedback: Feedback,
    share_link: Callable[[], Awaitable[str]] | None = None,
) -> None:
    """
    POST feedback, with a link to the current session if asked for.

    Anything other than ``{"result": "SUCCESS"}`` raises
    ``FeedbackSubmitError``, which tells the user to email the support
    address instead.
    """
    if not feedback_url:
        raise FeedbackSubmitError(support_email, "No feedback URL is configured.")

    try:
        link = await share_link() if feedback.send_share_url and share_link is not None else NOT_SHARED
        response = await transport.post_json(feedback_url, {
            "title": feedback.title,
            "name": feedback.name,
            "email": feedback.email,
            "shareLink": link,
            "comment": feedback.comment,
        })
    except (TransportError, ResponseFormatError, ShareLinkError) as e:
        logger.warning("Feedback submission failed: %s", e)
        raise FeedbackSubmitError(support_email, str(e)) from e

    if isinstance(response, str):
        try:
            response = json.loads(response)
        except json.JSONDecodeError:
            response = None

    if not isinstance(response, dict) or response.get("result") != "SUCCESS":
        logger.warning("Feedback service answered %r", response)
        raise FeedbackSubmitError(support_email, "The feedback service did not accept the submission.")

    logger.info("Feedback submitted")
