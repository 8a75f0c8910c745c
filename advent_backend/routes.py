"""
HTTP routes for the advent calendar API.
"""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Header, HTTPException, Query
from fastapi.responses import JSONResponse

from advent_backend import chat, vouchers
from advent_backend.auth import AuthClient, AuthUser
from advent_backend.config import get_settings
from advent_backend.db import DbClient
from advent_backend.dependencies import (
    get_auth_client,
    get_db_client,
    get_kv_store,
    get_push_sender,
    get_storage_client,
)
from advent_backend.errors import BackendError
from advent_backend.health import run_health_checks
from advent_backend.kv import KvStore
from advent_backend.notifications import PushSender, build_notification
from advent_backend.schemas import (
    ChatHistoryResponse,
    ChatSessionRequest,
    ChatSessionResponse,
    NotificationSettings,
    NotificationSettingsResponse,
    NotificationSettingsUpdate,
    NotificationTestRequest,
    NotificationTestResponse,
    TemplateListResponse,
    TemplateResponse,
    VoucherRedeemRequest,
    VoucherResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter()

DEFAULT_TIMEZONE = "UTC"
NO_CACHE_HEADERS = {"Cache-Control": "no-cache, no-store, must-revalidate"}


def require_user(
    authorization: Optional[str] = Header(None),
    auth: AuthClient = Depends(get_auth_client),
) -> AuthUser:
    if not authorization or not authorization.startswith("Bearer "):
        raise HTTPException(status_code=401, detail="Unauthorized")
    token = authorization[len("Bearer "):]
    try:
        user = auth.get_user(token)
    except BackendError as exc:
        logger.error("Error getting user from token: %s", exc)
        user = None
    if not user:
        raise HTTPException(status_code=401, detail="Unauthorized")
    return user


@router.get("/health")
def health():
    # Backends are resolved inside the checks so construction failures are reported.
    report = run_health_checks(
        db=get_db_client,
        auth=get_auth_client,
        storage=get_storage_client,
        settings=get_settings(),
    )
    return JSONResponse(
        report.as_dict(), status_code=report.http_status, headers=NO_CACHE_HEADERS
    )


@router.get("/chat-history", response_model=ChatHistoryResponse)
def chat_history(
    session_id: Optional[str] = Query(None, alias="sessionId"),
    kv: KvStore = Depends(get_kv_store),
):
    """
    Return the last five messages of a chat session, oldest first.
    """
    if not session_id:
        raise HTTPException(status_code=400, detail="Missing sessionId parameter")
    try:
        messages = chat.recent_messages(kv, session_id)
    except Exception as exc:
        logger.exception("Error fetching chat history")
        raise HTTPException(
            status_code=500, detail=f"Failed to fetch chat history: {exc}"
        ) from exc
    return ChatHistoryResponse(messages=messages)


@router.post("/chat-sessions", response_model=ChatSessionResponse)
def log_chat_message(
    payload: ChatSessionRequest, kv: KvStore = Depends(get_kv_store)
):
    content = chat.message_content(payload.message)
    if not content.strip():
        raise HTTPException(
            status_code=400,
            detail="Missing or invalid message: expected string or ChatMessage object with content field",
        )
    session_id = payload.session_id or chat.DEFAULT_SESSION_ID
    if len(session_id) > chat.MAX_SESSION_ID_LENGTH:
        raise HTTPException(
            status_code=400,
            detail="Invalid sessionId: must be a string with max 200 characters",
        )
    try:
        chat.append_session_message(kv, session_id, content, payload.timestamp)
    except Exception as exc:
        logger.exception("Error logging chat message")
        raise HTTPException(
            status_code=500, detail=f"Failed to log message to KV storage: {exc}"
        ) from exc
    return ChatSessionResponse(status="stored")


@router.get("/templates", response_model=TemplateListResponse)
def list_templates(
    user: AuthUser = Depends(require_user), db: DbClient = Depends(get_db_client)
):
    try:
        templates = db.list_templates()
    except BackendError as exc:
        logger.error("Error fetching templates: %s", exc)
        raise HTTPException(status_code=500, detail="Failed to fetch templates") from exc
    return TemplateListResponse(templates=[t.as_dict() for t in templates])


@router.get("/templates/{template_id}", response_model=TemplateResponse)
def get_template(
    template_id: str,
    user: AuthUser = Depends(require_user),
    db: DbClient = Depends(get_db_client),
):
    try:
        template = db.get_template(template_id)
    except BackendError as exc:
        logger.error("Error fetching template %s: %s", template_id, exc)
        raise HTTPException(status_code=500, detail="Failed to fetch template") from exc
    if not template:
        raise HTTPException(status_code=404, detail="Template not found")
    return TemplateResponse(template=template.as_dict())


def _settings_response(settings: dict) -> NotificationSettingsResponse:
    return NotificationSettingsResponse(
        settings=NotificationSettings(
            notifications_enabled=bool(settings.get("notifications_enabled", False)),
            timezone=settings.get("timezone") or DEFAULT_TIMEZONE,
        )
    )


@router.get("/notifications/settings", response_model=NotificationSettingsResponse)
def get_notification_settings(
    user: AuthUser = Depends(require_user), db: DbClient = Depends(get_db_client)
):
    try:
        settings = db.get_calendar_settings(user.id)
    except BackendError as exc:
        logger.error("Get notification settings error: %s", exc)
        raise HTTPException(status_code=500, detail="Internal server error") from exc
    if settings is None:
        raise HTTPException(status_code=404, detail="Calendar not found")
    return _settings_response(settings)


@router.put("/notifications/settings", response_model=NotificationSettingsResponse)
def update_notification_settings(
    payload: NotificationSettingsUpdate,
    user: AuthUser = Depends(require_user),
    db: DbClient = Depends(get_db_client),
):
    try:
        current = db.get_calendar_settings(user.id)
        if current is None:
            raise HTTPException(status_code=404, detail="Calendar not found")
        updated = {
            **current,
            "notifications_enabled": payload.notifications_enabled,
            "timezone": payload.timezone or current.get("timezone") or DEFAULT_TIMEZONE,
        }
        db.update_calendar_settings(user.id, updated)
    except BackendError as exc:
        logger.error("Update notification settings error: %s", exc)
        raise HTTPException(status_code=500, detail="Failed to update settings") from exc
    return _settings_response(updated)


@router.post("/notifications/test", response_model=NotificationTestResponse)
def send_test_notification(
    payload: NotificationTestRequest,
    user: AuthUser = Depends(require_user),
    push: PushSender = Depends(get_push_sender),
):
    settings = get_settings()
    spec = build_notification(
        {
            "notification": {"title": payload.title, "body": payload.body},
            "data": {"type": "test", "user_id": user.id, "url": settings.notification_app_url},
        },
        icon=settings.notification_icon,
    )
    try:
        message_id = push.send(payload.token, spec)
    except BackendError as exc:
        logger.error("Failed to send test notification: %s", exc)
        raise HTTPException(status_code=502, detail="Failed to send notification") from exc
    return NotificationTestResponse(message_id=message_id)


@router.post("/vouchers/redeem", response_model=VoucherResponse)
def redeem_voucher(
    payload: VoucherRedeemRequest,
    user: AuthUser = Depends(require_user),
    db: DbClient = Depends(get_db_client),
):
    code = payload.code.strip().upper()
    if not vouchers.validate_voucher_code(code):
        raise HTTPException(status_code=400, detail="Invalid voucher code")
    try:
        voucher = db.get_voucher(code)
        if not voucher:
            raise HTTPException(status_code=404, detail="Voucher not found")
        try:
            redeemed = vouchers.redeem_voucher(voucher, user.id)
        except vouchers.VoucherError as exc:
            raise HTTPException(status_code=409, detail=str(exc)) from exc
        db.save_vouchers([redeemed])
    except BackendError as exc:
        logger.error("Voucher redemption failed: %s", exc)
        raise HTTPException(status_code=500, detail="Internal server error") from exc
    logger.info("Voucher %s redeemed by %s", code, user.id)
    return VoucherResponse(voucher=redeemed.as_dict())
