from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from ..templates import DEFAULT_LOGIN_METHOD, DEFAULT_USER_NAME


class CallableRequest(BaseModel):
    """Body of a callable invocation: ``{"data": {...}}``."""

    data: Optional[Dict[str, Any]] = None


class NotificationRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    email: Optional[str] = None
    display_name: Optional[str] = Field(default=None, alias="displayName")
    login_method: Optional[str] = Field(default=None, alias="loginMethod")

    @property
    def resolved_display_name(self) -> str:
        return (self.display_name or "").strip() or DEFAULT_USER_NAME

    @property
    def resolved_login_method(self) -> str:
        return (self.login_method or "").strip() or DEFAULT_LOGIN_METHOD


class DispatchResult(BaseModel):
    success: bool
    message: str


class ResendResult(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    resent: bool
    last_sent_at: Optional[str] = Field(default=None, alias="lastSentAt")
    message: str


class EmailStatus(BaseModel):
    exists: bool
    providers: List[str] = Field(default_factory=list)
