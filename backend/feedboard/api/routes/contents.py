"""
Content API endpoints.

Domain errors raised by the content service are not handled here; the
exception handlers registered in feedboard.main turn them into responses
(redirect for stale ids, 403, 422 with field errors, 400 for unknown types
and failed actions).
"""

from datetime import datetime
from email.utils import format_datetime, parsedate_to_datetime
from typing import Any, Optional

from fastapi import APIRouter, Body, Header, Query, Request, Response, status
from fastapi.responses import HTMLResponse, JSONResponse, PlainTextResponse

from feedboard.core.auth import CurrentUser, OptionalUser
from feedboard.core.config import settings
from feedboard.core.logging import get_logger
from feedboard.api.deps import ContentServiceDep
from feedboard.schemas.content import (
    ContentCreate,
    ContentCreatedResponse,
    ContentFormResponse,
    ContentListResponse,
    ContentResponse,
    ContentUpdate,
    ContentUpdatedResponse,
    FeedSummary,
    NoticeResponse,
    ValidationErrorResponse,
)
from feedboard.services.content_service import DELETED_NOTICE, UPDATED_NOTICE
from feedboard.services.rendering import NotModified

logger = get_logger(__name__)

router = APIRouter(prefix="/contents", tags=["Contents"])


# ========================================
# Helper Functions
# ========================================


def _form(content, feeds, accepted_fields) -> ContentFormResponse:
    return ContentFormResponse(
        content=ContentResponse.model_validate(content),
        type_name=content.type_name,
        display_name=content.display_name,
        accepted_fields=list(accepted_fields),
        feeds=[FeedSummary.model_validate(f) for f in feeds],
    )


def _parse_http_date(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    try:
        return parsedate_to_datetime(value)
    except (TypeError, ValueError):
        return None


def _validators(etag: str, last_modified: datetime) -> dict[str, str]:
    return {
        "ETag": etag,
        "Last-Modified": format_datetime(last_modified, usegmt=True),
        "Cache-Control": "public",
    }


# ========================================
# Collection Endpoints
# ========================================


@router.get(
    "",
    response_model=ContentListResponse,
    summary="List content",
    description="Content visible to the caller, newest first, filtered by type, owner or feed.",
)
async def list_contents(
    service: ContentServiceDep,
    current_user: OptionalUser,
    type: Optional[str] = Query(None, description="Content type name"),
    user_id: Optional[int] = Query(None, description="Owner"),
    feed_id: Optional[int] = Query(None, description="Feed the content is submitted to"),
    offset: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=200),
):
    items, total = await service.list_contents(
        current_user,
        type_name=type,
        user_id=user_id,
        feed_id=feed_id,
        offset=offset,
        limit=limit,
    )
    return ContentListResponse(
        items=[ContentResponse.model_validate(c) for c in items],
        total=total,
        offset=offset,
        limit=limit,
    )


@router.get(
    "/new",
    response_model=ContentFormResponse,
    summary="Blank content form",
    description="A blank content item of the requested (or default) type and the feeds it may be submitted to.",
    responses={400: {"description": "Unrecognized content type."}},
)
async def new_content(
    service: ContentServiceDep,
    current_user: CurrentUser,
    type: Optional[str] = Query(None, description="Content type name"),
):
    content, feeds = await service.new_content(current_user, type)
    return _form(content, feeds, content.content_type.accepted_fields)


@router.get(
    "/preview",
    response_class=HTMLResponse,
    summary="Preview content",
    description="HTML fragment previewing inline data, or stored content by id. No authentication.",
)
async def preview_content(
    service: ContentServiceDep,
    type: Optional[str] = Query(None, description="Content type name"),
    data: Optional[str] = Query(None, description="Raw data to preview"),
    id: Optional[int] = Query(None, description="Preview the stored data of this content"),
):
    html = await service.preview(type, data=data, content_id=id)
    return HTMLResponse(html)


@router.post(
    "",
    response_model=ContentCreatedResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create content",
    responses={
        201: {"description": "Content created"},
        400: {"description": "Unrecognized content type."},
        422: {"model": ValidationErrorResponse, "description": "Field errors"},
    },
)
async def create_content(
    payload: ContentCreate,
    response: Response,
    service: ContentServiceDep,
    current_user: CurrentUser,
):
    content, notice = await service.create(
        current_user, payload.type, payload.content, payload.feed_ids
    )
    response.headers["Location"] = f"{settings.API_V1_PREFIX}{router.prefix}/{content.id}"
    return ContentCreatedResponse(content=ContentResponse.model_validate(content), notice=notice)


# ========================================
# Member Endpoints
# ========================================


@router.get(
    "/{content_id}",
    response_model=ContentResponse,
    summary="Show content",
    responses={303: {"description": "Content not found; redirected to browse"}},
)
async def show_content(
    content_id: int,
    service: ContentServiceDep,
    current_user: OptionalUser,
):
    content = await service.get(current_user, content_id)
    return ContentResponse.model_validate(content)


@router.get(
    "/{content_id}/edit",
    response_model=ContentFormResponse,
    summary="Edit form",
)
async def edit_content(
    content_id: int,
    service: ContentServiceDep,
    current_user: CurrentUser,
):
    content, feeds = await service.edit(current_user, content_id)
    return _form(content, feeds, content.content_type.accepted_update_fields)


@router.put(
    "/{content_id}",
    response_model=ContentUpdatedResponse,
    summary="Update content",
    description="Update attributes and set the exact feed list. Feeds that stay go back to moderation.",
    responses={422: {"model": ValidationErrorResponse, "description": "Field errors"}},
)
async def update_content(
    content_id: int,
    payload: ContentUpdate,
    service: ContentServiceDep,
    current_user: CurrentUser,
):
    content = await service.update(current_user, content_id, payload.content, payload.feed_ids)
    return ContentUpdatedResponse(
        content=ContentResponse.model_validate(content), notice=UPDATED_NOTICE
    )


@router.delete(
    "/{content_id}",
    response_model=NoticeResponse,
    summary="Delete content",
)
async def delete_content(
    content_id: int,
    service: ContentServiceDep,
    current_user: CurrentUser,
):
    await service.delete(current_user, content_id)
    return NoticeResponse(notice=DELETED_NOTICE)


@router.get(
    "/{content_id}/display",
    summary="Render content",
    description="Rendered output served inline. Answers 304 when the client's ETag is current.",
    responses={
        200: {"description": "Rendered bytes"},
        304: {"description": "Client copy is fresh"},
    },
)
async def display_content(
    content_id: int,
    request: Request,
    service: ContentServiceDep,
    current_user: OptionalUser,
    if_none_match: Optional[str] = Header(None),
    if_modified_since: Optional[str] = Header(None),
):
    result = await service.display(
        current_user,
        content_id,
        dict(request.query_params),
        if_none_match=if_none_match,
        if_modified_since=_parse_http_date(if_modified_since),
    )

    headers = _validators(result.etag, result.last_modified)
    if isinstance(result, NotModified):
        return Response(status_code=status.HTTP_304_NOT_MODIFIED, headers=headers)

    headers["Content-Disposition"] = f'inline; filename="{result.file_name}"'
    return Response(content=result.data, media_type=result.file_type, headers=headers)


@router.put(
    "/{content_id}/act",
    summary="Run a custom action",
    description="Runs a content type's named action. Parameters come from the query string and an optional JSON object body.",
    responses={400: {"description": "Unable to perform action."}},
)
async def act_on_content(
    content_id: int,
    request: Request,
    service: ContentServiceDep,
    current_user: OptionalUser,
    action_name: Optional[str] = Query(None, description="Action to run"),
    body: Optional[dict[str, Any]] = Body(None),
):
    params: dict[str, Any] = {
        k: v for k, v in request.query_params.items() if k != "action_name"
    }
    params.update(body or {})

    result = await service.act(current_user, content_id, action_name, params)

    if isinstance(result, (dict, list)):
        return JSONResponse(result)
    if isinstance(result, bytes):
        return Response(content=result, media_type="application/octet-stream")
    return PlainTextResponse(str(result))
