"""
Pydantic schemas for the advent calendar API.
"""

from __future__ import annotations

from typing import Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, StrictBool


class ChatHistoryResponse(BaseModel):
    messages: list


class ChatSessionRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    message: Union[str, dict, None] = None
    timestamp: Optional[str] = None
    session_id: Optional[str] = Field(default=None, alias="sessionId")


class ChatSessionResponse(BaseModel):
    status: Literal["stored"]


class TemplateListResponse(BaseModel):
    templates: list[dict]


class TemplateResponse(BaseModel):
    template: dict


class NotificationSettings(BaseModel):
    notifications_enabled: bool
    timezone: str


class NotificationSettingsResponse(BaseModel):
    success: Literal[True] = True
    settings: NotificationSettings


class NotificationSettingsUpdate(BaseModel):
    notifications_enabled: StrictBool
    timezone: Optional[str] = None


class NotificationTestRequest(BaseModel):
    token: str = Field(..., min_length=1)
    title: Optional[str] = None
    body: Optional[str] = None


class NotificationTestResponse(BaseModel):
    message_id: str


class VoucherRedeemRequest(BaseModel):
    code: str = Field(..., max_length=32)


class VoucherResponse(BaseModel):
    voucher: dict
