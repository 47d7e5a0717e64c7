"""凭据请求 API 路由"""

from typing import List

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from application.account.services.credential_broker import CredentialBroker
from interfaces.api.dependencies import get_broker

router = APIRouter(prefix="/credentials", tags=["Credentials"])


class CredentialRequestItem(BaseModel):
    """未完成的凭据请求"""

    email: str = Field(..., description="账号邮箱")
    backend: str = Field(..., description="后端名称")


class CredentialRequestListResponse(BaseModel):
    """凭据请求列表响应"""

    data: List[CredentialRequestItem] = Field(..., description="等待凭据的账号")


@router.get(
    "/requests",
    response_model=CredentialRequestListResponse,
    summary="查询等待凭据的账号",
)
async def list_credential_requests(
    broker: CredentialBroker = Depends(get_broker),
) -> CredentialRequestListResponse:
    return CredentialRequestListResponse(
        data=[
            CredentialRequestItem(email=account.email, backend=account.backend)
            for account in broker.pending()
        ]
    )
