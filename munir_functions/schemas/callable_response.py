from __future__ import annotations

from typing import Any, Dict, Literal, Optional

from pydantic import BaseModel, ConfigDict


ErrorStatus = Literal["INVALID_ARGUMENT", "NOT_FOUND", "INTERNAL"]


class CallableError(BaseModel):
    status: ErrorStatus
    message: str
    details: Optional[Dict[str, Any]] = None


class CallableErrorResponse(BaseModel):
    error: CallableError


class CallableResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    result: Dict[str, Any]


def normalize_result(payload: Any) -> Dict[str, Any]:
    if isinstance(payload, BaseModel):
        return payload.model_dump(by_alias=True, exclude_none=True)
    if isinstance(payload, dict):
        return payload
    return {"value": payload}


def success_payload(result: Any) -> Dict[str, Any]:
    return CallableResponse(result=normalize_result(result)).model_dump()


def error_payload(
    *,
    status: ErrorStatus = "INTERNAL",
    message: str = "Request failed",
    details: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    return CallableErrorResponse(
        error=CallableError(status=status, message=message, details=details),
    ).model_dump(exclude_none=True)
