from __future__ import annotations

import structlog
from fastapi import APIRouter, Depends, HTTPException, Request
from pydantic import BaseModel, Field

from aiquiz.api.runtime import QuizRuntime, get_runtime
from aiquiz.services.identity import is_valid_internal_token

router = APIRouter(prefix="/auth", tags=["auth"])
logger = structlog.get_logger(__name__)


class IssueTokenRequest(BaseModel):
    user_id: int = Field(ge=1)


class IssueTokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"


@router.post("/token", response_model=IssueTokenResponse)
async def issue_token(
    payload: IssueTokenRequest,
    request: Request,
    runtime: QuizRuntime = Depends(get_runtime),
) -> IssueTokenResponse:
    if not is_valid_internal_token(
        expected_token=runtime.settings.internal_api_token,
        received_token=request.headers.get("X-Internal-Token"),
    ):
        logger.warning("auth_token_issue_rejected", reason="invalid_internal_token")
        raise HTTPException(status_code=403, detail={"code": "E_FORBIDDEN"})

    return IssueTokenResponse(access_token=runtime.identity.issue_token(user_id=payload.user_id))
