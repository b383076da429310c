"""
API 核心业务逻辑
把复制服务的结果转换为统一的 ApiResponse，并映射为 HTTP 状态码
"""

import asyncio
import logging
import time
import traceback
from functools import wraps
from typing import Any, Callable, Dict, Optional

from ..claude.copy_service import CopyService
from ..claude.models import ConflictStrategy, CopyErrorKind, CopyResult
from ..config.config_service import AppConfig
from ..project.project_registry import ProjectRegistry
from .api_models import (
    ApiResponse,
    CopyFileRequest,
    CopyHookRequest,
    CopyMcpRequest,
    CopySkillRequest,
    ListProjectsRequest,
    ProjectListData,
)
from .auto_register import expose_api

# 配置 API 专用的日志记录器
api_logger = logging.getLogger("api")

# 错误分类 -> HTTP 状态码，必须覆盖 CopyErrorKind 的所有成员
ERROR_STATUS_CODES: Dict[CopyErrorKind, int] = {
    CopyErrorKind.invalid_input: 400,
    CopyErrorKind.path_traversal: 400,
    CopyErrorKind.security_violation: 400,
    CopyErrorKind.not_found: 404,
    CopyErrorKind.permission_denied: 403,
    CopyErrorKind.insufficient_storage: 507,
    CopyErrorKind.conflict: 409,
    CopyErrorKind.invalid_state: 500,
    CopyErrorKind.internal_error: 500,
    # skip 在服务层已转换为 skipped 结果，不会以错误形式出现
    CopyErrorKind.operation_cancelled: 200,
}


def status_for_error(kind: Optional[CopyErrorKind]) -> int:
    """根据错误分类返回 HTTP 状态码，未知分类按 500 处理"""
    if kind is None:
        return 500
    return ERROR_STATUS_CODES[kind]


def api_logging(func: Callable) -> Callable:
    """
    API日志记录装饰器
    记录API调用的开始、完成、错误信息和执行时间
    """

    @wraps(func)
    async def async_wrapper(self, input_data: Any, *args, **kwargs):
        method_name = func.__name__
        start_time = time.time()

        try:
            api_logger.info(f"API call started: {method_name}")
            api_logger.debug(f"Input data for {method_name}: {input_data}")

            result = await func(self, input_data, *args, **kwargs)

            execution_time = time.time() - start_time
            api_logger.info(
                f"API call completed: {method_name} (duration={execution_time:.3f}s, code={result.code}, success={result.success}, error={result.error})"
            )
            api_logger.debug(
                f"Output data for {method_name}: {result.model_dump() if hasattr(result, 'model_dump') else result}"
            )

            return result

        except Exception as e:
            execution_time = time.time() - start_time
            api_logger.error(
                f"API call failed: {method_name} (duration={execution_time:.3f}s, error={str(e)})"
            )
            api_logger.error(f"Error details: {traceback.format_exc()}")
            raise

    if not asyncio.iscoroutinefunction(func):
        raise TypeError(f"api_logging only supports coroutine functions: {func.__name__}")
    return async_wrapper


def api_exception_handler(func: Callable) -> Callable:
    """
    API异常处理装饰器
    自动捕获未预期的异常并返回 500 错误响应
    """

    @wraps(func)
    async def async_wrapper(*args, **kwargs) -> ApiResponse:
        try:
            return await func(*args, **kwargs)
        except Exception as e:
            api_logger.error(f"Error in {func.__name__}: {str(e)}")
            return ApiResponse.error_response(500, str(e))

    return async_wrapper


def copy_result_response(result: CopyResult, success_message: str) -> ApiResponse[CopyResult]:
    """
    把复制结果转换为 ApiResponse

    - 需要确认外部引用: 422
    - 冲突: 409
    - 用户跳过: code 0，success 为 False，data.skipped 为 True
    - 错误: 按错误分类映射状态码
    - 成功: data.message 为成功提示
    """
    if result.requires_acknowledgement:
        return ApiResponse.error_response(422, result.message, result)
    if result.conflict is not None:
        return ApiResponse.error_response(409, "Conflict detected", result)
    if result.skipped:
        return ApiResponse(code=0, success=False, data=result)
    if result.error is not None:
        return ApiResponse.error_response(
            status_for_error(result.error_kind), result.error, result
        )

    result.message = success_message
    return ApiResponse.success_response(result)


class APICore:
    """API 核心业务逻辑类，提供统一的接口处理逻辑"""

    def __init__(
        self,
        copy_service: Optional[CopyService] = None,
        project_registry: Optional[ProjectRegistry] = None,
    ):
        """
        初始化API核心实例

        Args:
            copy_service: 复制服务，为空时使用 project_registry 创建
            project_registry: 项目注册表，为空时使用系统用户目录
        """
        self.project_registry = project_registry if project_registry else ProjectRegistry()
        self.copy_service = (
            copy_service
            if copy_service
            else CopyService(self.project_registry, self.project_registry.user_home)
        )

    @classmethod
    def from_config(cls, config: AppConfig) -> "APICore":
        """根据应用配置创建 APICore"""
        registry = ProjectRegistry(config.resolved_user_home)
        return cls(CopyService(registry, config.resolved_user_home), registry)

    @expose_api(CopyFileRequest, CopyResult, "复制 Agent 到目标作用域")
    @api_logging
    @api_exception_handler
    async def copy_agent(self, input_data: CopyFileRequest) -> ApiResponse[CopyResult]:
        """
        复制 Agent 文件

        Args:
            input_data: 经过验证的输入数据
                - sourcePath: 源 Agent 文件路径
                - targetScope: user / project
                - targetProjectId: project 作用域时的项目 ID
                - conflictStrategy: skip / overwrite / rename，缺省为 skip

        Returns:
            复制结果响应
        """
        result = await self.copy_service.copy_agent(
            input_data.source_path,
            input_data.target_scope.value,
            input_data.target_project_id,
            input_data.conflict_strategy or ConflictStrategy.skip,
        )
        return copy_result_response(result, "Agent copied successfully")

    @expose_api(CopyFileRequest, CopyResult, "复制 Slash Command 到目标作用域")
    @api_logging
    @api_exception_handler
    async def copy_command(self, input_data: CopyFileRequest) -> ApiResponse[CopyResult]:
        """复制 Slash Command 文件，参数同 copy_agent"""
        result = await self.copy_service.copy_command(
            input_data.source_path,
            input_data.target_scope.value,
            input_data.target_project_id,
            input_data.conflict_strategy or ConflictStrategy.skip,
        )
        return copy_result_response(result, "Command copied successfully")

    @expose_api(CopyHookRequest, CopyResult, "合并 Hook 到目标 settings.json")
    @api_logging
    @api_exception_handler
    async def copy_hook(self, input_data: CopyHookRequest) -> ApiResponse[CopyResult]:
        """
        合并 Hook

        Args:
            input_data: 经过验证的输入数据
                - sourceHook: {event, matcher?, type?, command, enabled?, timeout?}
                - targetScope: user / project
                - targetProjectId: project 作用域时的项目 ID

        Returns:
            复制结果响应，mergedInto 为写入的 settings.json 路径
        """
        source_hook = input_data.source_hook.model_dump(exclude_none=True)
        result = await self.copy_service.copy_hook(
            source_hook,
            input_data.target_scope.value,
            input_data.target_project_id,
        )
        return copy_result_response(result, "Hook copied successfully")

    @expose_api(CopyMcpRequest, CopyResult, "复制 MCP 服务器到目标作用域")
    @api_logging
    @api_exception_handler
    async def copy_mcp(self, input_data: CopyMcpRequest) -> ApiResponse[CopyResult]:
        """
        复制 MCP 服务器

        Args:
            input_data: 经过验证的输入数据
                - sourceServerName: 服务器名称
                - sourceMcpConfig: 服务器配置
                - targetScope: user / project
                - targetProjectId: project 作用域时的项目 ID
                - conflictStrategy: skip / overwrite，缺省为 skip

        Returns:
            复制结果响应
        """
        result = await self.copy_service.copy_mcp(
            input_data.source_server_name,
            input_data.source_mcp_config,
            input_data.target_scope.value,
            input_data.target_project_id,
            input_data.conflict_strategy or ConflictStrategy.skip,
        )
        return copy_result_response(result, "MCP server copied successfully")

    @expose_api(CopySkillRequest, CopyResult, "复制 Skill 目录到目标作用域")
    @api_logging
    @api_exception_handler
    async def copy_skill(self, input_data: CopySkillRequest) -> ApiResponse[CopyResult]:
        """
        复制 Skill 目录

        Skill 引用了外部路径且 acknowledgedWarnings 为 False 时返回 422。
        """
        result = await self.copy_service.copy_skill(
            input_data.source_skill_path,
            input_data.target_scope.value,
            input_data.target_project_id,
            input_data.conflict_strategy or ConflictStrategy.skip,
            input_data.acknowledged_warnings,
        )
        return copy_result_response(result, "Skill copied successfully")

    @expose_api(ListProjectsRequest, ProjectListData, "列出 ~/.claude.json 中登记的项目")
    @api_logging
    @api_exception_handler
    async def list_projects(
        self, input_data: ListProjectsRequest
    ) -> ApiResponse[ProjectListData]:
        discovery = await self.project_registry.discover_projects()
        return ApiResponse.success_response(
            ProjectListData(
                projects=sorted(discovery.projects.values(), key=lambda p: p.path),
                error=discovery.error,
            )
        )
