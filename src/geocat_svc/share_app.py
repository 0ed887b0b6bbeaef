"""FastAPI entry point for the catalog and share-link service.

Start with:
    PYTHONPATH=src uvicorn geocat_svc.share_app:app --host 0.0.0.0 --port 3001

Endpoints:
- GET  /                          - service summary
- GET  /catalog                   - the catalog tree
- POST /catalog                   - add user-supplied members
- GET  /catalog/{id}              - one member
- POST /catalog/{id}/{action}     - load, retry, open, close, enable, disable, invoke
- DELETE /catalog/{id}            - remove a member
- GET  /share/document            - the current share document
- GET  /share/link                - the current share link (``?short=true`` for a token link)
- POST /share                     - store a share document, returns ``{"id": token}``
- GET  /share/{token}             - a stored share document
- POST /share/open                - open a share link against the session
- POST /feedback                  - send user feedback
"""
from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Any

from fastapi import Body, FastAPI, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from . import _bootstrap as bs
from .errors import (
    FeedbackSubmitError,
    GeoCatError,
    LoadError,
    NotFoundError,
    ShareFormatError,
    ShareLinkError,
    ShortenUnavailableError,
)
from .service import GeoCatService, describe_node
from .share.document import ShareDocument
from .share.feedback import Feedback

logger = logging.getLogger(__name__)

ACTIONS = ("load", "retry", "open", "close", "enable", "disable", "invoke")


class AddMembersRequest(BaseModel):
    members: list[dict[str, Any]]
    parent: str | None = None


class InvokeRequest(BaseModel):
    values: dict[str, Any] = Field(default_factory=dict)


class OpenLinkRequest(BaseModel):
    url: str


class FeedbackRequest(BaseModel):
    comment: str
    title: str = ""
    name: str = ""
    email: str = ""
    sendShareUrl: bool = False


def _status_for(error: GeoCatError) -> int:
    if isinstance(error, NotFoundError):
        return 404
    if isinstance(error, ShareFormatError):
        return 400
    if isinstance(error, ShortenUnavailableError):
        return 409
    if isinstance(error, (ShareLinkError, FeedbackSubmitError, LoadError)):
        return 502
    return 500


def create_app(config_path: str | None = None, config=None, client=None) -> FastAPI:
    """Build the app. ``config`` and ``client`` let tests bypass files and the network."""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("Starting GeoCat service...")
        service = await bs.build_service(config_path, client=client, config=config)
        app.state.service = service
        logger.info("GeoCat service started")
        yield
        await service.close()
        logger.info("GeoCat service stopped")

    app = FastAPI(
        title="GeoCat",
        description="Geospatial catalog with shareable session state.",
        version="0.1.0",
        lifespan=lifespan,
        openapi_tags=[
            {"name": "Catalog", "description": "Catalog tree and member lifecycle"},
            {"name": "Share", "description": "Share documents and share links"},
            {"name": "Feedback", "description": "User feedback"},
        ],
    )

    @app.exception_handler(GeoCatError)
    async def geocat_error_handler(request: Request, exc: GeoCatError):
        return JSONResponse(status_code=_status_for(exc), content=exc.to_dict())

    def _service(request: Request) -> GeoCatService:
        return request.app.state.service

    # ---- Catalog ----

    @app.get("/", tags=["Catalog"])
    async def root(request: Request):
        service = _service(request)
        return {
            "name": service.config.app_name,
            "members": service.registry.count(),
            "enabled": service.registry.map_context.attached_ids(),
            "canShorten": service.codec.can_shorten(),
        }

    @app.get("/catalog", tags=["Catalog"])
    async def get_catalog(request: Request):
        return {"items": _service(request).describe_tree()}

    @app.post("/catalog", tags=["Catalog"])
    async def add_members(request: Request, body: AddMembersRequest):
        added = await _service(request).add_members(body.members, body.parent)
        return {"added": [describe_node(node) for node in added]}

    @app.post("/catalog/{node_id:path}/{action}", tags=["Catalog"])
    async def node_action(request: Request, node_id: str, action: str, body: InvokeRequest | None = Body(default=None)):
        service = _service(request)
        if action not in ACTIONS:
            raise NotFoundError(f"Action '{action}'")
        if action == "invoke":
            added = await service.invoke_function(node_id, body.values if body else None)
            return {"added": [describe_node(node) for node in added]}

        handler = {
            "load": service.load,
            "retry": service.retry,
            "open": service.open,
            "close": service.close_group,
            "enable": service.enable,
            "disable": service.disable,
        }[action]
        node = await handler(node_id)
        return describe_node(node)

    @app.get("/catalog/{node_id:path}", tags=["Catalog"])
    async def get_member(request: Request, node_id: str):
        return describe_node(_service(request).get_node(node_id), recursive=True)

    @app.delete("/catalog/{node_id:path}", tags=["Catalog"])
    async def remove_member(request: Request, node_id: str):
        _service(request).remove(node_id)
        return {"removed": node_id}

    # ---- Share ----

    @app.get("/share/document", tags=["Share"])
    async def share_document(request: Request):
        build = _service(request).build_share_document()
        return {
            "document": build.document.to_dict(),
            "rejections": [node.id for node in build.rejections],
        }

    @app.get("/share/link", tags=["Share"])
    async def share_link(request: Request, short: bool = False):
        return {"url": await _service(request).build_share_link(short=short)}

    @app.post("/share/open", tags=["Share"])
    async def open_link(request: Request, body: OpenLinkRequest):
        document = await _service(request).open_share_link(body.url)
        return {"document": document.to_dict()}

    @app.post("/share", tags=["Share"])
    async def store_document(request: Request, document: dict[str, Any] = Body(...)):
        parsed = ShareDocument.from_dict(document)
        token = _service(request).store.put(parsed.to_dict())
        return {"id": token}

    @app.get("/share/{token}", tags=["Share"])
    async def get_document(request: Request, token: str):
        document = _service(request).store.get(token)
        if document is None:
            raise NotFoundError(f"Share token '{token}'")
        return document

    # ---- Feedback ----

    @app.post("/feedback", tags=["Feedback"])
    async def feedback(request: Request, body: FeedbackRequest):
        await _service(request).send_feedback(Feedback(
            comment=body.comment,
            title=body.title,
            name=body.name,
            email=body.email,
            send_share_url=body.sendShareUrl,
        ))
        return {"title": "Thank you for your feedback!"}

    return app


app = create_app()
