"""Error types for the catalog, share-link and transport layers."""

from __future__ import annotations


class GeoCatError(Exception):
    """
    Base class for user-facing errors.

    Carries a short title, a human-readable message and an optional
    remediation hint that the UI layer shows alongside the message.
    """

    def __init__(
        self,
        title: str,
        message: str = "",
        *,
        hint: str | None = None,
        sender_id: str | None = None,
    ):
        super().__init__(f"{title}: {message}" if message else title)
        self.title = title
        self.message = message
        self.hint = hint
        self.sender_id = sender_id

    def to_dict(self) -> dict[str, str]:
        d = {"title": self.title, "message": self.message}
        if self.hint:
            d["hint"] = self.hint
        if self.sender_id:
            d["sender"] = self.sender_id
        return d


class DuplicateNodeIdError(ValueError):
    """Raised when a node id is registered twice in the same tree."""


class NotFoundError(GeoCatError):
    """A catalog node or share token does not exist."""

    def __init__(self, what: str):
        super().__init__("Not found", what)


# ---------------------------------------------------------------------------
# Transport
# ---------------------------------------------------------------------------

class TransportError(Exception):
    """Network, CORS or HTTP status failure while talking to a remote service."""

    def __init__(self, url: str, reason: str, status_code: int | None = None):
        super().__init__(f"{url}: {reason}")
        self.url = url
        self.reason = reason
        self.status_code = status_code


class ResponseFormatError(Exception):
    """The remote service answered, but the body could not be parsed."""

    def __init__(self, url: str, reason: str):
        super().__init__(f"{url}: {reason}")
        self.url = url
        self.reason = reason


# ---------------------------------------------------------------------------
# Loading
# ---------------------------------------------------------------------------

class LoadError(GeoCatError):
    """A catalog node could not be loaded."""


class LoadTransportError(LoadError):
    """The provider could not be reached (network, CORS, HTTP status)."""


class LoadFormatError(LoadError):
    """The provider answered with something that is not the declared type."""


# ---------------------------------------------------------------------------
# Sharing
# ---------------------------------------------------------------------------

class ShareFormatError(GeoCatError):
    """A share document or share link could not be parsed."""

    def __init__(self, message: str):
        super().__init__("Invalid share data", message)


class ShortenUnavailableError(GeoCatError):
    """No short-link backend is configured or usable."""

    def __init__(self):
        super().__init__(
            "Short links unavailable",
            "No short-link service is configured for this application.",
            hint="Use the full share link instead.",
        )


class ShareLinkError(GeoCatError):
    """A selected short-link backend failed to create or resolve a token."""


class ReplayUnknownFragmentError(GeoCatError):
    """An init fragment carries no key this build knows how to replay."""

    def __init__(self, keys: list[str]):
        super().__init__("Unknown init fragment", ", ".join(keys) or "<empty>")
        self.keys = keys


class FeedbackSubmitError(GeoCatError):
    """Feedback could not be delivered; the user should email it instead."""

    def __init__(self, support_email: str, reason: str = ""):
        super().__init__(
            "Unable to send feedback",
            "An error occurred while attempting to send your feedback. "
            f"Please email it to {support_email} instead.",
            hint=reason or None,
        )
        self.support_email = support_email
