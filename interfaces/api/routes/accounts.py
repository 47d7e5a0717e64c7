"""账号 API 路由"""

from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, Field

from application.observer.services.observer import Observer
from domain.account.value_objects.credentials import Credentials
from domain.common.exceptions import InvalidValueObjectException, SecretStoreError
from interfaces.api.dependencies import get_observer

router = APIRouter(prefix="/accounts", tags=["Accounts"])


# ============ Request/Response DTOs ============

class AccountStatusResponse(BaseModel):
    """
    账号状态

    Attributes:
        email: 账号邮箱
        backend: 后端名称
        state: 监督状态
        consecutive_failures: 连续临时失败次数
        retry_in: 距离下次重试的秒数
        last_error: 最近一次错误
        awaiting_credentials: 是否在等待凭据
    """

    email: str = Field(..., description="账号邮箱")
    backend: str = Field(..., description="后端名称")
    state: str = Field(..., description="监督状态")
    consecutive_failures: int = Field(..., description="连续临时失败次数")
    retry_in: Optional[float] = Field(default=None, description="距离下次重试的秒数")
    last_error: Optional[str] = Field(default=None, description="最近一次错误")
    awaiting_credentials: bool = Field(..., description="是否在等待凭据")


class AccountListResponse(BaseModel):
    """账号列表响应"""

    data: List[AccountStatusResponse] = Field(..., description="账号列表")
    poll_interval: float = Field(..., description="轮询间隔（秒）")


class SupplyCredentialsRequest(BaseModel):
    """
    提交凭据请求

    Attributes:
        password: 密码
        second_factor: 二次验证码（可选）
    """

    password: str = Field(..., description="密码", min_length=1)
    second_factor: Optional[str] = Field(default=None, description="二次验证码")


class MessageResponse(BaseModel):
    """操作结果"""

    message: str = Field(..., description="结果消息")
    email: str = Field(..., description="账号邮箱")


class ErrorResponse(BaseModel):
    """错误响应"""

    detail: str = Field(..., description="错误详情")


def _account_not_found(email: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_404_NOT_FOUND,
        detail=f"Account '{email}' not found",
    )


# ============ API Endpoints ============

@router.get(
    "",
    response_model=AccountListResponse,
    summary="查询账号状态",
)
async def list_accounts(observer: Observer = Depends(get_observer)) -> AccountListResponse:
    """所有被监视账号的当前状态"""
    data = [
        AccountStatusResponse(
            email=snapshot.email,
            backend=snapshot.backend,
            state=snapshot.state.value,
            consecutive_failures=snapshot.consecutive_failures,
            retry_in=snapshot.retry_in,
            last_error=snapshot.last_error,
            awaiting_credentials=snapshot.awaiting_credentials,
        )
        for snapshot in observer.snapshots()
    ]
    return AccountListResponse(data=data, poll_interval=observer.poll_interval)


@router.post(
    "/{email}/credentials",
    status_code=status.HTTP_202_ACCEPTED,
    response_model=MessageResponse,
    responses={
        404: {"model": ErrorResponse, "description": "账号不存在"},
        422: {"model": ErrorResponse, "description": "凭据格式无效"},
    },
    summary="提交账号凭据",
    description="""
    为等待登录或会话过期的账号提交凭据。

    凭据只在内存中传递给后端完成登录，登录成功后保存的是加密的会话材料，
    不保存密码本身。
    """,
)
async def supply_credentials(
    email: str,
    request: SupplyCredentialsRequest,
    observer: Observer = Depends(get_observer),
) -> MessageResponse:
    try:
        credentials = Credentials(
            password=request.password,
            second_factor=request.second_factor,
        )
    except InvalidValueObjectException as e:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=e.message,
        )

    if not observer.supply_credentials(email, credentials):
        raise _account_not_found(email)

    return MessageResponse(message="Credentials accepted", email=email)


@router.delete(
    "/{email}/session",
    response_model=MessageResponse,
    responses={
        404: {"model": ErrorResponse, "description": "账号不存在"},
        500: {"model": ErrorResponse, "description": "会话材料删除失败"},
    },
    summary="注销账号会话",
    description="注销账号并删除保存的会话材料，账号回到未认证状态并重新请求凭据。",
)
async def delete_session(
    email: str,
    observer: Observer = Depends(get_observer),
) -> MessageResponse:
    try:
        found = await observer.logout_account(email)
    except SecretStoreError as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=e.message,
        )

    if not found:
        raise _account_not_found(email)

    return MessageResponse(message="Session deleted", email=email)
