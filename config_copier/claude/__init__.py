"""
Claude 配置复制模块

提供在用户和项目作用域之间复制 Claude Code 配置（Agent、Command、Hook、MCP、Skill）的功能
"""

from .copy_service import CopyService
from .models import (
    ConfigKind,
    ConfigScope,
    ConflictStrategy,
    CopyError,
    CopyErrorKind,
    CopyResult,
    HookDefinition,
    McpDocument,
    SettingsDocument,
)

__all__ = [
    "CopyService",
    "ConfigKind",
    "ConfigScope",
    "ConflictStrategy",
    "CopyError",
    "CopyErrorKind",
    "CopyResult",
    "HookDefinition",
    "McpDocument",
    "SettingsDocument",
]
