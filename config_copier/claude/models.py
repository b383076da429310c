"""
Claude 配置复制的数据模型
"""

import enum
import errno
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class ConfigScope(str, enum.Enum):
    """复制目标作用域"""

    user = "user"  # 用户全局配置 (~/.claude/)
    project = "project"  # 项目配置 (项目目录/.claude/)


class ConfigKind(str, enum.Enum):
    """可复制的配置类型"""

    agent = "agent"
    command = "command"
    hook = "hook"
    mcp = "mcp"


class ConflictStrategy(str, enum.Enum):
    """冲突处理策略"""

    skip = "skip"
    overwrite = "overwrite"
    rename = "rename"


class McpServerType(str, enum.Enum):

    stdio = "stdio"
    http = "http"
    sse = "sse"


# ==================== 错误类型 ====================


class CopyErrorKind(str, enum.Enum):
    """复制操作错误分类"""

    invalid_input = "invalid_input"
    path_traversal = "path_traversal"
    security_violation = "security_violation"
    not_found = "not_found"
    invalid_state = "invalid_state"
    permission_denied = "permission_denied"
    insufficient_storage = "insufficient_storage"
    operation_cancelled = "operation_cancelled"
    conflict = "conflict"
    internal_error = "internal_error"


_ERRNO_KINDS = {
    errno.ENOENT: (CopyErrorKind.not_found, "ENOENT"),
    errno.EACCES: (CopyErrorKind.permission_denied, "EACCES"),
    errno.EPERM: (CopyErrorKind.permission_denied, "EACCES"),
    errno.ENOSPC: (CopyErrorKind.insufficient_storage, "ENOSPC"),
}


class CopyError(Exception):
    """复制操作异常，携带错误分类和可选的系统错误码"""

    def __init__(
        self,
        kind: CopyErrorKind,
        message: str,
        errno_code: Optional[str] = None,
    ):
        super().__init__(message)
        self.kind = kind
        self.message = message
        self.errno_code = errno_code

    @classmethod
    def from_os_error(cls, error: OSError, prefix: str) -> "CopyError":
        """
        根据系统错误码创建 CopyError

        Args:
            error: 原始系统异常
            prefix: 错误消息前缀，例如 'Failed to update settings file'

        Returns:
            CopyError: ENOENT/EACCES/ENOSPC 映射为对应分类，其余为 internal_error
        """
        kind, code = _ERRNO_KINDS.get(
            error.errno, (CopyErrorKind.internal_error, None)
        )
        return cls(kind, f"{prefix}: {error.strerror or error}", code)


# ==================== Settings 文档模型 ====================


class MatcherGroup(BaseModel):
    """Hook Matcher 分组 (event -> [MatcherGroup])"""

    matcher: Optional[str] = None  # 省略或 "*" 表示匹配全部
    # 已存储的 Hook 保持原始字典，写回时不做类型转换
    hooks: List[Dict[str, Any]] = Field(default_factory=list)

    model_config = ConfigDict(extra="allow")


class SettingsDocument(BaseModel):
    """settings.json 文档，hooks 之外的键原样保留"""

    hooks: Optional[Dict[str, List[MatcherGroup]]] = None

    model_config = ConfigDict(extra="allow")


class HookDefinition(BaseModel):
    """待合并的 Hook 定义，缺省字段使用默认值"""

    type: str = "command"
    command: str
    enabled: bool = True
    timeout: Union[int, float] = 60

    model_config = ConfigDict(extra="allow")


class McpDocument(BaseModel):
    """MCP 目标文件 (~/.claude/settings.json、$PROJECT/.mcp.json 或 $PROJECT/.claude/settings.json)"""

    # 服务器配置原样保存，只在复制前检查 stdio 服务器的 command
    mcpServers: Dict[str, Any] = Field(default_factory=dict)

    model_config = ConfigDict(extra="allow")


# ==================== 复制结果模型 ====================


class CamelModel(BaseModel):
    """以 camelCase 序列化的模型基类"""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class CopyConflict(CamelModel):
    """文件类配置的冲突信息"""

    target_path: str
    source_modified: str
    target_modified: str


class McpConflict(CamelModel):
    """MCP 服务器冲突信息"""

    server_name: str
    target_path: str
    existing_config: Any


class ExternalReference(CamelModel):
    """Skill 中引用的外部路径"""

    type: str  # absolute / home / relative / script
    path: str
    line: int
    severity: str  # error / warning
    file: Optional[str] = None  # 相对于 skill 目录的文件路径


class SkillWarnings(CamelModel):
    """Skill 复制前需要确认的警告"""

    external_references: List[ExternalReference] = Field(default_factory=list)


class CopyResult(CamelModel):
    """所有复制操作统一的结果模型"""

    success: bool
    copied_path: Optional[str] = None
    merged_into: Optional[str] = None
    hook: Optional[Dict[str, Any]] = None
    server_name: Optional[str] = None
    duplicate: Optional[bool] = None
    file_count: Optional[int] = None
    dir_count: Optional[int] = None
    conflict: Optional[Union[CopyConflict, McpConflict]] = None
    skipped: Optional[bool] = None
    message: Optional[str] = None
    warnings: Optional[SkillWarnings] = None
    requires_acknowledgement: Optional[bool] = None
    error: Optional[str] = None
    error_kind: Optional[CopyErrorKind] = None
    error_code: Optional[str] = None

    @classmethod
    def from_error(cls, error: CopyError) -> "CopyResult":
        """根据 CopyError 创建失败结果"""
        return cls(
            success=False,
            error=error.message,
            error_kind=error.kind,
            error_code=error.errno_code,
        )

    @classmethod
    def skipped_result(cls, message: str) -> "CopyResult":
        """创建用户取消（skip）的结果"""
        return cls(success=False, skipped=True, message=message)
