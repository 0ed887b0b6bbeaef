"""Share engine - share documents, share links and replay."""

from .codec import DecodedShareLink, ShareLinkCodec
from .document import SHARE_VERSION, ShareDocument, is_share_data
from .feedback import Feedback, send_feedback
from .replay import ShareReplayer
from .serializer import ShareBuild, ShareDocumentBuilder, flatten_members, serialize_member, serialize_members
from .shortener import ShareDataService, ShortLinkBackend, UrlShortener, create_backend
from .store import ShareStore

__all__ = [
    "DecodedShareLink",
    "Feedback",
    "SHARE_VERSION",
    "ShareBuild",
    "ShareDataService",
    "ShareDocument",
    "ShareDocumentBuilder",
    "ShareLinkCodec",
    "ShareReplayer",
    "ShareStore",
    "ShortLinkBackend",
    "UrlShortener",
    "create_backend",
    "flatten_members",
    "is_share_data",
    "send_feedback",
    "serialize_member",
    "serialize_members",
]
