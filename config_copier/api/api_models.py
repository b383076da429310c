"""
API Pydantic 模型定义
定义所有 API 方法的输入输出模型，提供字段强校验能力
"""

from typing import Any, Dict, Generic, List, Optional, TypeVar, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

from ..claude.models import ConfigScope, ConflictStrategy
from ..project.project_registry import ProjectEntry

# 定义泛型类型变量
T = TypeVar("T")


class ApiResponse(BaseModel, Generic[T]):
    """API 统一响应模型"""

    code: int = Field(description="响应代码，0 表示请求已处理，非 0 为对应的 HTTP 状态码")
    success: bool = Field(description="操作是否成功")
    data: Optional[T] = Field(
        default=None, description="响应数据，冲突、跳过等结果也放在 data 中"
    )
    error: Optional[str] = Field(default=None, description="错误信息，仅在失败时存在")

    model_config = ConfigDict(extra="forbid")

    @classmethod
    def success_response(cls, data: T) -> "ApiResponse[T]":
        """创建成功响应"""
        return cls(code=0, success=True, data=data)

    @classmethod
    def error_response(
        cls, code: int, error: Optional[str], data: Optional[T] = None
    ) -> "ApiResponse[T]":
        """创建错误响应，data 可携带冲突信息等结构化内容"""
        return cls(code=code, success=False, data=data, error=error)


# ===== 输入模型 =====


class CopyTargetRequest(BaseModel):
    """复制请求公共字段（目标作用域与项目）"""

    target_scope: Optional[ConfigScope] = Field(
        default=None, validate_default=True, description="目标作用域 user / project"
    )
    target_project_id: Optional[str] = Field(
        default=None, description="目标项目 ID，targetScope 为 project 时必填"
    )

    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, extra="allow"
    )

    @field_validator("target_scope", mode="before")
    @classmethod
    def check_target_scope(cls, value: Any) -> Any:
        if value not in (ConfigScope.user.value, ConfigScope.project.value):
            raise ValueError('targetScope is required and must be "user" or "project"')
        return value

    @field_validator("target_project_id", mode="before")
    @classmethod
    def check_target_project_id_type(cls, value: Any) -> Any:
        if value is not None and not isinstance(value, str):
            raise ValueError('targetProjectId is required when targetScope is "project"')
        return value

    @model_validator(mode="after")
    def check_target_project_id(self):
        if self.target_scope == ConfigScope.project:
            if not self.target_project_id:
                raise ValueError(
                    'targetProjectId is required when targetScope is "project"'
                )
            if not self.target_project_id.strip():
                raise ValueError("targetProjectId must not be empty")
        return self


class CopyStrategyRequest(CopyTargetRequest):
    """带可选冲突策略的复制请求，缺省时按 skip 处理"""

    conflict_strategy: Optional[ConflictStrategy] = Field(
        default=None, description="冲突策略 skip / overwrite / rename"
    )

    @field_validator("conflict_strategy", mode="before")
    @classmethod
    def check_conflict_strategy(cls, value: Any) -> Any:
        if value is not None and value not in [s.value for s in ConflictStrategy]:
            raise ValueError('conflictStrategy must be "skip", "overwrite", or "rename"')
        return value


def _require_string(value: Any, message: str) -> Any:
    if not isinstance(value, str) or not value.strip():
        raise ValueError(message)
    return value


class CopyFileRequest(CopyStrategyRequest):
    """复制 Agent / Command 请求模型"""

    source_path: Optional[str] = Field(
        default=None, validate_default=True, description="源文件绝对路径"
    )

    @field_validator("source_path", mode="before")
    @classmethod
    def check_source_path(cls, value: Any) -> Any:
        return _require_string(value, "sourcePath is required and must be a string")


class SourceHook(BaseModel):
    """待复制的 Hook"""

    event: Optional[str] = Field(default=None, validate_default=True)
    matcher: Optional[str] = None
    type: Optional[str] = None
    command: Optional[str] = Field(default=None, validate_default=True)
    enabled: Optional[bool] = None
    timeout: Optional[Union[int, float]] = None

    model_config = ConfigDict(extra="allow")

    @field_validator("event", mode="before")
    @classmethod
    def check_event(cls, value: Any) -> Any:
        return _require_string(value, "sourceHook.event is required and must be a string")

    @field_validator("command", mode="before")
    @classmethod
    def check_command(cls, value: Any) -> Any:
        return _require_string(value, "sourceHook.command is required and must be a string")


class CopyHookRequest(CopyTargetRequest):
    """复制 Hook 请求模型"""

    source_hook: Optional[SourceHook] = Field(
        default=None, validate_default=True, description="待合并的 Hook"
    )

    @field_validator("source_hook", mode="before")
    @classmethod
    def check_source_hook(cls, value: Any) -> Any:
        if not isinstance(value, dict):
            raise ValueError("sourceHook is required and must be an object")
        return value


class CopyMcpRequest(CopyTargetRequest):
    """复制 MCP 服务器请求模型"""

    source_server_name: Optional[str] = Field(
        default=None, validate_default=True, description="MCP 服务器名称"
    )
    source_mcp_config: Optional[Dict[str, Any]] = Field(
        default=None, validate_default=True, description="MCP 服务器配置"
    )
    conflict_strategy: Optional[ConflictStrategy] = Field(
        default=None, description="冲突策略 skip / overwrite"
    )

    @field_validator("source_server_name", mode="before")
    @classmethod
    def check_server_name(cls, value: Any) -> Any:
        return _require_string(value, "sourceServerName is required and must be a string")

    @field_validator("source_mcp_config", mode="before")
    @classmethod
    def check_mcp_config(cls, value: Any) -> Any:
        if not isinstance(value, dict):
            raise ValueError("sourceMcpConfig is required and must be an object")
        return value

    @field_validator("conflict_strategy", mode="before")
    @classmethod
    def check_conflict_strategy(cls, value: Any) -> Any:
        if value is not None and value not in (
            ConflictStrategy.skip.value,
            ConflictStrategy.overwrite.value,
        ):
            raise ValueError('conflictStrategy must be "skip" or "overwrite"')
        return value


class CopySkillRequest(CopyStrategyRequest):
    """复制 Skill 目录请求模型"""

    source_skill_path: Optional[str] = Field(
        default=None, validate_default=True, description="源 Skill 目录绝对路径"
    )
    acknowledged_warnings: bool = Field(
        default=False, description="是否已确认外部引用警告"
    )

    @field_validator("source_skill_path", mode="before")
    @classmethod
    def check_source_skill_path(cls, value: Any) -> Any:
        return _require_string(value, "sourceSkillPath is required and must be a string")


class ListProjectsRequest(BaseModel):
    """列出项目请求模型"""

    model_config = ConfigDict(extra="allow")


# ===== 输出模型 =====


class ProjectListData(BaseModel):
    """项目列表数据"""

    projects: List[ProjectEntry] = Field(default_factory=list)
    error: Optional[str] = None
