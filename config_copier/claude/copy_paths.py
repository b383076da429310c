"""
复制路径处理模块
源路径校验、目标路径构建以及重命名时的唯一路径生成
"""

import logging
import os
import re
import stat
from pathlib import Path
from typing import Any, Optional, Protocol

import aiofiles.os

from .models import ConfigKind, ConfigScope, CopyError, CopyErrorKind

logger = logging.getLogger(__name__)

_SEPARATORS = re.compile(r"[\\/]+")

VALID_KINDS = [kind.value for kind in ConfigKind]
VALID_SCOPES = [ConfigScope.project.value, ConfigScope.user.value]


class ProjectLookup(Protocol):
    """项目注册表接口，只需要 discover_projects"""

    async def discover_projects(self) -> Any: ...


def _segments(path: str) -> list[str]:
    return [part for part in _SEPARATORS.split(path) if part]


def _check_raw_path(path: Any, label: str = "source path") -> str:
    """在规范化之前检查原始路径，规范化会抹掉 '..'"""
    if not isinstance(path, str) or not path:
        raise CopyError(
            CopyErrorKind.invalid_input,
            f"Invalid {label}: path must be a non-empty string",
        )
    if "\0" in path:
        raise CopyError(
            CopyErrorKind.invalid_input,
            f"Invalid {label}: path contains null bytes",
        )
    if ".." in _segments(path):
        raise CopyError(
            CopyErrorKind.path_traversal,
            f'Path traversal detected: {label} contains ".." segments',
        )
    return path


async def _stat_source(resolved: Path, label: str) -> os.stat_result:
    try:
        return await aiofiles.os.stat(resolved)
    except FileNotFoundError:
        raise CopyError(
            CopyErrorKind.not_found, f"Source {label} not found: {resolved}", "ENOENT"
        )
    except PermissionError:
        raise CopyError(
            CopyErrorKind.permission_denied,
            f"Permission denied: cannot read {resolved}",
            "EACCES",
        )
    except OSError as e:
        raise CopyError.from_os_error(e, f"Cannot access source {label}")


async def validate_source(source_path: Any) -> Path:
    """
    校验源文件路径

    Args:
        source_path: 源文件路径

    Returns:
        Path: 规范化后的绝对路径

    Raises:
        CopyError: 路径为空/含空字节 (invalid_input)、含 '..' (path_traversal)、
            不存在 (not_found)、不可读 (permission_denied) 或不是普通文件 (invalid_input)
    """
    raw = _check_raw_path(source_path)
    resolved = Path(os.path.abspath(raw))

    stat_result = await _stat_source(resolved, "file")
    if not stat.S_ISREG(stat_result.st_mode):
        raise CopyError(
            CopyErrorKind.invalid_input,
            f"Invalid source path: {resolved} is not a regular file",
        )
    if not os.access(resolved, os.R_OK):
        raise CopyError(
            CopyErrorKind.permission_denied,
            f"Permission denied: cannot read {resolved}",
            "EACCES",
        )

    return resolved


async def validate_source_directory(source_path: Any) -> Path:
    """
    校验 Skill 源目录路径，规则与 validate_source 相同，但要求是目录且包含 SKILL.md

    Raises:
        CopyError: 校验失败
    """
    raw = _check_raw_path(source_path)
    resolved = Path(os.path.abspath(raw))

    stat_result = await _stat_source(resolved, "directory")
    if not stat.S_ISDIR(stat_result.st_mode):
        raise CopyError(
            CopyErrorKind.invalid_input,
            f"Invalid skill directory: {resolved} is not a directory",
        )
    if not await aiofiles.os.path.isfile(resolved / "SKILL.md"):
        raise CopyError(
            CopyErrorKind.invalid_input,
            f"Invalid skill directory: missing SKILL.md in {resolved}",
        )

    return resolved


async def resolve_scope_roots(
    target_scope: Any,
    target_project_id: Optional[str],
    user_home: Path,
    project_registry: ProjectLookup,
) -> tuple[Path, Path]:
    """
    解析作用域对应的根目录

    Returns:
        (scope_root, claude_dir): user 作用域为 (~, ~/.claude)，
            project 作用域为 (项目目录, 项目目录/.claude)

    Raises:
        CopyError: 作用域非法、缺少项目 ID (invalid_input)、
            项目不存在 (not_found) 或项目目录已被移除 (invalid_state)
    """
    if not isinstance(target_scope, str) or not target_scope:
        raise CopyError(
            CopyErrorKind.invalid_input,
            "Invalid targetScope: must be a non-empty string",
        )
    if target_scope not in VALID_SCOPES:
        raise CopyError(
            CopyErrorKind.invalid_input,
            f"Invalid targetScope: must be one of {', '.join(VALID_SCOPES)}",
        )

    if target_scope == ConfigScope.user:
        return user_home, user_home / ".claude"

    if not target_project_id:
        raise CopyError(
            CopyErrorKind.invalid_input,
            'targetProjectId is required when targetScope is "project"',
        )

    discovery = await project_registry.discover_projects()
    project = discovery.projects.get(target_project_id)
    if project is None:
        raise CopyError(
            CopyErrorKind.not_found, f"Project not found: {target_project_id}"
        )
    if not project.exists:
        raise CopyError(
            CopyErrorKind.invalid_state,
            f"Project directory does not exist: {project.path}",
        )

    project_root = Path(project.path)
    return project_root, project_root / ".claude"


def ensure_within(target: Path, root: Path) -> Path:
    """
    确认规范化后的目标路径位于 root 目录内

    Raises:
        CopyError: 目标路径越界 (security_violation)
    """
    normalized = Path(os.path.normpath(target))
    try:
        normalized.relative_to(Path(os.path.normpath(root)))
    except ValueError:
        logger.error(f"Target path escapes allowed root: {target} (root={root})")
        raise CopyError(
            CopyErrorKind.security_violation,
            f"Security violation: target path {target} escapes {root}",
        )
    return normalized


async def build_target_path(
    config_type: Any,
    target_scope: Any,
    source_path: Any,
    target_project_id: Optional[str] = None,
    *,
    user_home: Path,
    project_registry: ProjectLookup,
) -> Path:
    """
    构建复制目标路径

    - agent: {base}/agents/{basename}
    - command: {base}/commands/{commands 之后的相对路径}，找不到 commands 段时平铺
    - hook: {base}/settings.json
    - mcp: user 作用域为 {base}/settings.json；project 作用域在 {项目目录}/.mcp.json
      存在时使用它，否则为 {base}/settings.json

    其中 base 为作用域的 .claude 目录。

    Args:
        config_type: 配置类型 (agent/command/hook/mcp)
        target_scope: 目标作用域 (user/project)
        source_path: 源文件路径（hook/mcp 只用于校验非空）
        target_project_id: project 作用域时必填的项目 ID
        user_home: 用户主目录
        project_registry: 项目注册表

    Returns:
        Path: 目标绝对路径

    Raises:
        CopyError: 参数非法、项目不存在或目标路径越界
    """
    if not isinstance(config_type, str) or not config_type:
        raise CopyError(
            CopyErrorKind.invalid_input,
            "Invalid configType: must be a non-empty string",
        )
    if config_type not in VALID_KINDS:
        raise CopyError(
            CopyErrorKind.invalid_input,
            f"Invalid configType: must be one of {', '.join(VALID_KINDS)}",
        )
    if not isinstance(target_scope, str) or not target_scope:
        raise CopyError(
            CopyErrorKind.invalid_input,
            "Invalid targetScope: must be a non-empty string",
        )
    if target_scope not in VALID_SCOPES:
        raise CopyError(
            CopyErrorKind.invalid_input,
            f"Invalid targetScope: must be one of {', '.join(VALID_SCOPES)}",
        )
    if not isinstance(source_path, str) or not source_path:
        raise CopyError(
            CopyErrorKind.invalid_input,
            "Invalid sourcePath: must be a non-empty string",
        )

    scope_root, claude_dir = await resolve_scope_roots(
        target_scope, target_project_id, user_home, project_registry
    )
    segments = _segments(source_path)

    if config_type == ConfigKind.agent:
        if not segments:
            raise CopyError(
                CopyErrorKind.invalid_input,
                "Invalid sourcePath: must be a non-empty string",
            )
        target = claude_dir / "agents" / segments[-1]
        allowed_root = claude_dir
    elif config_type == ConfigKind.command:
        if not segments:
            raise CopyError(
                CopyErrorKind.invalid_input,
                "Invalid sourcePath: must be a non-empty string",
            )
        # 取最后一个 commands 段，保留其后的嵌套目录
        if "commands" in segments[:-1]:
            index = len(segments) - 1 - segments[::-1].index("commands")
            relative = segments[index + 1 :]
        else:
            relative = segments[-1:]
        target = claude_dir.joinpath("commands", *relative)
        allowed_root = claude_dir
    elif config_type == ConfigKind.hook:
        target = claude_dir / "settings.json"
        allowed_root = claude_dir
    elif target_scope == ConfigScope.user:
        target = claude_dir / "settings.json"
        allowed_root = claude_dir
    elif await aiofiles.os.path.exists(scope_root / ".mcp.json"):
        target = scope_root / ".mcp.json"
        allowed_root = scope_root
    else:
        target = claude_dir / "settings.json"
        allowed_root = claude_dir

    return ensure_within(target, allowed_root)


async def build_skill_target_path(
    target_scope: Any,
    source_dir: Path,
    target_project_id: Optional[str] = None,
    *,
    user_home: Path,
    project_registry: ProjectLookup,
) -> Path:
    """构建 Skill 目录的复制目标路径: {base}/skills/{目录名}"""
    _, claude_dir = await resolve_scope_roots(
        target_scope, target_project_id, user_home, project_registry
    )
    target = claude_dir / "skills" / source_dir.name
    return ensure_within(target, claude_dir)


async def generate_unique_path(original_path: Path, keep_extension: bool = True) -> Path:
    """
    生成不存在的路径，从 -2 开始递增

    只有最后一个扩展名会被保留: agent.config.md -> agent.config-2.md，
    无扩展名时为 README -> README-2。

    Args:
        original_path: 原始路径
        keep_extension: 为 False 时把整个名称视为 base（用于目录）

    Returns:
        Path: 第一个不存在的候选路径
    """
    if keep_extension:
        base, ext = os.path.splitext(original_path.name)
    else:
        base, ext = original_path.name, ""

    counter = 2
    while True:
        candidate = original_path.with_name(f"{base}-{counter}{ext}")
        if not await aiofiles.os.path.exists(candidate):
            return candidate
        counter += 1
