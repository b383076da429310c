"""
FastAPI 服务器适配器
为配置复制服务提供 HTTP 接口
"""

import logging
from contextlib import asynccontextmanager
from typing import Any, Dict, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from ..config.config_service import AppConfig, config_service
from .api import APICore
from .api_models import ApiResponse
from .auto_register import APIRegistry

logger = logging.getLogger(__name__)

# 全局变量存储 FastAPI 应用实例
fastapi_app: Optional[FastAPI] = None


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("FastAPI server starting up...")
    yield
    logger.info("FastAPI server shutting down...")


def validation_error_message(error: Dict[str, Any]) -> str:
    """
    从 pydantic 校验错误中提取面向用户的消息

    校验器抛出的 ValueError 放在 ctx.error 中，优先使用其原始文本。
    """
    ctx = error.get("ctx") or {}
    if "error" in ctx:
        return str(ctx["error"])
    location = ".".join(str(part) for part in error.get("loc", ()) if part != "body")
    message = error.get("msg", "Invalid request")
    return f"{location}: {message}" if location else message


async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """请求体校验失败时返回 400 和统一响应结构"""
    errors = exc.errors()
    message = validation_error_message(errors[0]) if errors else "Invalid request"
    logger.warning(f"Request validation failed for {request.url.path}: {message}")
    return JSONResponse(
        status_code=400,
        content=ApiResponse.error_response(400, message).model_dump(exclude_none=True),
    )


def create_fastapi_app(
    api_core: Optional[APICore] = None, app_config: Optional[AppConfig] = None
) -> FastAPI:
    """
    创建并配置 FastAPI 应用实例

    Args:
        api_core: API 核心实例，为空时根据配置创建
        app_config: 应用配置，为空时使用全局配置服务
    """
    app_config = app_config or config_service.get_config()
    api_core = api_core or APICore.from_config(app_config)

    app = FastAPI(
        title="Claude Config Copier API",
        description="HTTP API for copying Claude Code configuration between scopes",
        version="1.0.0",
        lifespan=lifespan,
    )

    # 配置 CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=app_config.cors_origin_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(RequestValidationError, validation_exception_handler)

    # 自动注册 API 路由
    register_routes(app, api_core)

    return app


def register_routes(app: FastAPI, api_core: APICore):
    """
    注册 API 路由
    使用自动注册机制来发现并注册所有标记了 @expose_api 装饰器的方法
    """
    paths = APIRegistry.register_fastapi_routes(app, api_core)
    logger.info(f"Registered {len(paths)} API routes: {', '.join(paths)}")


def get_fastapi_app() -> FastAPI:
    """获取 FastAPI 应用实例（单例模式）"""
    global fastapi_app
    if fastapi_app is None:
        fastapi_app = create_fastapi_app()
    return fastapi_app


async def run_fastapi_server(host: str = "127.0.0.1", port: int = 8000):
    """运行 FastAPI 服务器"""
    import uvicorn

    app = get_fastapi_app()
    config = uvicorn.Config(
        app=app,
        host=host,
        port=port,
        log_level=config_service.get_config().log_level.lower(),
    )

    server = uvicorn.Server(config)

    logger.info(f"Starting FastAPI server on http://{host}:{port}")
    await server.serve()
