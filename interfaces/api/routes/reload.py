"""重新加载配置 API 路由"""

from typing import Callable, List

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, Field

from application.observer.observer_config import ObserverConfig
from application.observer.services.observer import Observer
from domain.common.exceptions import ConfigurationError
from interfaces.api.dependencies import get_config_loader, get_observer

router = APIRouter(tags=["Configuration"])


class ReloadResponse(BaseModel):
    """重新加载结果"""

    added: List[str] = Field(..., description="新增的账号")
    removed: List[str] = Field(..., description="移除的账号")
    changed: List[str] = Field(..., description="后端变更的账号")
    poll_interval: float = Field(..., description="当前轮询间隔（秒）")


@router.post(
    "/reload",
    response_model=ReloadResponse,
    responses={400: {"description": "配置无效，保持当前配置"}},
    summary="重新加载配置文件",
    description="""
    重新读取配置文件，按邮箱地址增量应用账号和轮询间隔变化。

    - 新增账号从未认证状态开始
    - 移除的账号等待进行中的轮询结束后停止，并删除保存的会话材料
    - 通知渠道的变化需要重启进程
    """,
)
async def reload_config(
    observer: Observer = Depends(get_observer),
    loader: Callable[[], ObserverConfig] = Depends(get_config_loader),
) -> ReloadResponse:
    try:
        config = loader()
    except ConfigurationError as e:
        observer.report_config_error(e.message)
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=e.message)

    result = await observer.reload(config)
    return ReloadResponse(
        added=list(result.added),
        removed=list(result.removed),
        changed=list(result.changed),
        poll_interval=observer.poll_interval,
    )
