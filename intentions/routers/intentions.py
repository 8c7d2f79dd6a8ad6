"""Intention storage router: per-user CRUD over the in-memory store.

Ownership comes from the X-User-Id header. Reads of a single record only
check it when the header is present; writes require it.
"""
from fastapi import APIRouter, Depends, Query, Request, status

from intentions import store
from intentions.auth import require_api_key
from intentions.errors import Forbidden, NotFound, ValidationError
from intentions.models import (
    CreateIntentionRequest,
    DeleteResponse,
    IntentionEnvelope,
    IntentionListResponse,
    IntentionRecord,
    UpdateIntentionRequest,
)

router = APIRouter(prefix="/api/intentions", dependencies=[Depends(require_api_key)])

USER_ID_HEADER = "X-User-Id"


def _header_user_id(request: Request) -> str | None:
    return (request.headers.get(USER_ID_HEADER) or "").strip() or None


def _require_user_id(request: Request) -> str:
    user_id = _header_user_id(request)
    if not user_id:
        raise ValidationError("userId is required")
    return user_id


async def _owned_intention(intention_id: str, user_id: str | None) -> IntentionRecord:
    intention = await store.get_intention(intention_id)
    if intention is None:
        raise NotFound("Intention not found")
    if user_id and intention.user_id != user_id:
        raise Forbidden()
    return intention


@router.get("", response_model=IntentionListResponse, response_model_exclude_none=True)
async def list_intentions(
    request: Request,
    user_id_param: str | None = Query(default=None, alias="userId"),
) -> IntentionListResponse:
    user_id = (user_id_param or "").strip() or _header_user_id(request)
    if not user_id:
        raise ValidationError("userId is required")
    return IntentionListResponse(intentions=await store.list_intentions(user_id))


@router.post(
    "",
    response_model=IntentionEnvelope,
    response_model_exclude_none=True,
    status_code=status.HTTP_201_CREATED,
)
async def create_intention(body: CreateIntentionRequest) -> IntentionEnvelope:
    return IntentionEnvelope(intention=await store.create_intention(body))


@router.get("/{intention_id}", response_model=IntentionEnvelope, response_model_exclude_none=True)
async def get_intention(intention_id: str, request: Request) -> IntentionEnvelope:
    intention = await _owned_intention(intention_id, _header_user_id(request))
    return IntentionEnvelope(intention=intention)


@router.put("/{intention_id}", response_model=IntentionEnvelope, response_model_exclude_none=True)
async def update_intention(
    intention_id: str,
    body: UpdateIntentionRequest,
    request: Request,
) -> IntentionEnvelope:
    user_id = _require_user_id(request)
    await _owned_intention(intention_id, user_id)
    # Explicit nulls on optional fields leave the stored value alone
    changes = {k: v for k, v in body.model_dump(exclude_unset=True).items() if v is not None}
    updated = await store.update_intention(intention_id, changes)
    if updated is None:
        raise NotFound("Intention not found")
    return IntentionEnvelope(intention=updated)


@router.delete("/{intention_id}", response_model=DeleteResponse)
async def delete_intention(intention_id: str, request: Request) -> DeleteResponse:
    user_id = _require_user_id(request)
    await _owned_intention(intention_id, user_id)
    if not await store.delete_intention(intention_id):
        raise NotFound("Intention not found")
    return DeleteResponse()
