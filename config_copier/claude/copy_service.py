"""
配置复制服务
在 user / project 作用域之间复制 Agent、Command、Hook、MCP 服务器和 Skill
"""

import asyncio
import logging
from pathlib import Path
from typing import Any, Mapping, Optional

import aiofiles

from ..project.project_registry import (
    ProjectRegistry,
    extract_config_root,
    extract_project_id_from_path,
)
from ..utils.file_utils import copy_directory, copy_file, count_tree_entries
from .copy_conflicts import detect_conflict, resolve_conflict
from .copy_paths import (
    ProjectLookup,
    build_skill_target_path,
    build_target_path,
    validate_source,
    validate_source_directory,
)
from .hook_merge import is_duplicate_hook, merge_hook_into_settings
from .markdown_helper import extract_frontmatter_label, has_frontmatter
from .models import (
    ConfigKind,
    ConfigScope,
    ConflictStrategy,
    CopyError,
    CopyErrorKind,
    CopyResult,
    HookDefinition,
    McpConflict,
    McpDocument,
    McpServerType,
    SettingsDocument,
    SkillWarnings,
)
from .settings_helper import load_config, save_config_atomic
from .skill_references import scan_skill_directory

logger = logging.getLogger(__name__)

MCP_STRATEGIES = (ConflictStrategy.skip, ConflictStrategy.overwrite)


class CopyService:
    """配置复制服务，不持有可变状态，依赖通过构造函数注入"""

    def __init__(
        self,
        project_registry: Optional[ProjectLookup] = None,
        user_home: Path | None = None,
    ):
        """
        初始化复制服务

        Args:
            project_registry: 项目注册表，用于把 targetProjectId 解析为项目目录
            user_home: 用户主目录路径，可空，默认为系统 User 路径（用于单元测试）
        """
        self.user_home = user_home if user_home else Path.home()
        self.project_registry = (
            project_registry
            if project_registry is not None
            else ProjectRegistry(self.user_home)
        )

    async def _target_path(
        self,
        kind: ConfigKind,
        target_scope: Any,
        source_path: Any,
        target_project_id: Optional[str],
    ) -> Path:
        return await build_target_path(
            kind.value,
            target_scope,
            source_path,
            target_project_id,
            user_home=self.user_home,
            project_registry=self.project_registry,
        )

    def _ensure_not_same_location(
        self, source_path: Any, target_scope: Any, target_project_id: Optional[str]
    ) -> None:
        """
        拒绝复制回源文件所在的作用域

        Raises:
            CopyError: 用户全局复制到用户全局，或项目复制到同一项目 (invalid_input)
        """
        if extract_config_root(source_path) is None:
            return

        source_project_id = extract_project_id_from_path(source_path, self.user_home)
        if source_project_id is None:
            if target_scope == ConfigScope.user:
                raise CopyError(
                    CopyErrorKind.invalid_input,
                    "Cannot copy configuration to the same location (User Global to User Global)",
                )
        elif target_scope == ConfigScope.project and target_project_id == source_project_id:
            raise CopyError(
                CopyErrorKind.invalid_input,
                "Cannot copy configuration to the same project",
            )

    # ==================== Agent / Command ====================

    async def copy_agent(
        self,
        source_path: Any,
        target_scope: Any,
        target_project_id: Optional[str] = None,
        conflict_strategy: ConflictStrategy | str | None = None,
    ) -> CopyResult:
        """
        复制 Agent 文件到 {scope}/.claude/agents/

        Args:
            source_path: 源 Agent 文件路径
            target_scope: 目标作用域 (user/project)
            target_project_id: project 作用域时的项目 ID
            conflict_strategy: 冲突策略，None 表示有冲突时返回冲突信息

        Returns:
            CopyResult: success + copiedPath / conflict / skipped / error 之一
        """
        return await self._copy_markdown_file(
            ConfigKind.agent, source_path, target_scope, target_project_id, conflict_strategy
        )

    async def copy_command(
        self,
        source_path: Any,
        target_scope: Any,
        target_project_id: Optional[str] = None,
        conflict_strategy: ConflictStrategy | str | None = None,
    ) -> CopyResult:
        """
        复制 Slash Command 文件到 {scope}/.claude/commands/，保留 commands 下的子目录结构

        Returns:
            CopyResult: success + copiedPath / conflict / skipped / error 之一
        """
        return await self._copy_markdown_file(
            ConfigKind.command, source_path, target_scope, target_project_id, conflict_strategy
        )

    async def _copy_markdown_file(
        self,
        kind: ConfigKind,
        source_path: Any,
        target_scope: Any,
        target_project_id: Optional[str],
        conflict_strategy: ConflictStrategy | str | None,
    ) -> CopyResult:
        try:
            self._ensure_not_same_location(source_path, target_scope, target_project_id)
            resolved_source = await validate_source(source_path)
            await self._ensure_frontmatter(resolved_source, kind.value)

            target_path = await self._target_path(
                kind, target_scope, str(resolved_source), target_project_id
            )

            conflict = await detect_conflict(resolved_source, target_path)
            if conflict is not None:
                if conflict_strategy is None:
                    logger.info(f"Conflict detected for {kind.value} copy: {target_path}")
                    return CopyResult(success=False, conflict=conflict)
                target_path = await resolve_conflict(target_path, conflict_strategy)

            try:
                await copy_file(resolved_source, target_path)
            except OSError as e:
                raise CopyError.from_os_error(e, f"Failed to copy {kind.value} file")

        except CopyError as e:
            return self._error_result(kind.value, e)

        logger.info(f"Copied {kind.value} {resolved_source} -> {target_path}")
        return CopyResult(success=True, copied_path=str(target_path))

    async def _ensure_frontmatter(self, file_path: Path, label: str) -> str:
        """读取文件内容并确认带有 YAML frontmatter，返回文件内容"""
        try:
            async with aiofiles.open(file_path, "r", encoding="utf-8") as f:
                content = await f.read()
        except UnicodeDecodeError:
            content = ""
        except OSError as e:
            raise CopyError.from_os_error(e, f"Cannot read source {label} file")

        if not has_frontmatter(content):
            raise CopyError(
                CopyErrorKind.invalid_input,
                f"Invalid {label} file: missing YAML frontmatter",
            )
        return content

    # ==================== Hook ====================

    async def copy_hook(
        self,
        source_hook: Any,
        target_scope: Any,
        target_project_id: Optional[str] = None,
    ) -> CopyResult:
        """
        把 Hook 合并到目标作用域的 .claude/settings.json

        Hook 没有冲突概念：同一 (event, matcher) 下已有相同 command 时不写文件，
        结果中 duplicate 为 True。

        Args:
            source_hook: {event, matcher?, type?, command, enabled?, timeout?}
            target_scope: 目标作用域 (user/project)
            target_project_id: project 作用域时的项目 ID

        Returns:
            CopyResult: success + mergedInto + hook，或 error
        """
        try:
            event, matcher, hook = self._parse_source_hook(source_hook)

            settings_path = await self._target_path(
                ConfigKind.hook, target_scope, "settings.json", target_project_id
            )

            try:
                settings = SettingsDocument.model_validate(await load_config(settings_path))
            except OSError as e:
                raise CopyError.from_os_error(e, "Failed to read settings file")
            except ValueError as e:
                raise CopyError(
                    CopyErrorKind.internal_error, f"Failed to read settings file: {e}"
                )

            duplicate = is_duplicate_hook(settings, event, matcher, hook.command)
            if duplicate:
                logger.info(
                    f"Hook already present in {settings_path} ({event}, {matcher or '*'}): {hook.command}"
                )
            else:
                merged = merge_hook_into_settings(settings, event, matcher, hook)
                await self._write_document(
                    settings_path,
                    merged.model_dump(exclude_unset=True),
                    "Failed to update settings file",
                )
                logger.info(f"Merged {event} hook into {settings_path}")

        except CopyError as e:
            return self._error_result(ConfigKind.hook.value, e)

        return CopyResult(
            success=True,
            merged_into=str(settings_path),
            hook=dict(source_hook),
            duplicate=duplicate,
        )

    @staticmethod
    def _parse_source_hook(source_hook: Any) -> tuple[str, Optional[str], HookDefinition]:
        if not isinstance(source_hook, Mapping):
            raise CopyError(CopyErrorKind.invalid_input, "Invalid hook: sourceHook is required")

        event = source_hook.get("event")
        if not isinstance(event, str) or not event:
            raise CopyError(CopyErrorKind.invalid_input, "Invalid hook: event is required")

        command = source_hook.get("command")
        if not isinstance(command, str) or not command:
            raise CopyError(CopyErrorKind.invalid_input, "Invalid hook: command is required")

        matcher = source_hook.get("matcher")
        if matcher is not None and not isinstance(matcher, str):
            raise CopyError(CopyErrorKind.invalid_input, "Invalid hook: matcher must be a string")

        # event / matcher 决定位置，不属于存储的 Hook 内容；None 字段交给默认值
        fields = {
            key: value
            for key, value in source_hook.items()
            if key not in ("event", "matcher") and value is not None
        }
        try:
            hook = HookDefinition.model_validate(fields)
        except ValueError as e:
            raise CopyError(CopyErrorKind.invalid_input, f"Invalid hook: {e}")

        return event, matcher, hook

    # ==================== MCP ====================

    async def copy_mcp(
        self,
        source_server_name: Any,
        source_mcp_config: Any,
        target_scope: Any,
        target_project_id: Optional[str] = None,
        conflict_strategy: ConflictStrategy | str | None = None,
    ) -> CopyResult:
        """
        把 MCP 服务器写入目标文件的 mcpServers

        user 作用域写入 ~/.claude/settings.json；project 作用域优先写入已存在的
        {项目目录}/.mcp.json，否则写入 {项目目录}/.claude/settings.json。
        同名服务器已存在时：无策略返回冲突，skip 返回跳过，overwrite 覆盖。

        Args:
            source_server_name: 服务器名称
            source_mcp_config: 服务器配置对象
            target_scope: 目标作用域 (user/project)
            target_project_id: project 作用域时的项目 ID
            conflict_strategy: skip / overwrite（不支持 rename）

        Returns:
            CopyResult: success + mergedInto + serverName / conflict / skipped / error 之一
        """
        try:
            server = self._parse_mcp_server(source_server_name, source_mcp_config)

            if conflict_strategy is not None and conflict_strategy not in MCP_STRATEGIES:
                raise CopyError(
                    CopyErrorKind.invalid_input,
                    f"Unknown conflict strategy: {getattr(conflict_strategy, 'value', conflict_strategy)}",
                )

            target_path = await self._target_path(
                ConfigKind.mcp, target_scope, source_server_name, target_project_id
            )

            try:
                document = McpDocument.model_validate(await load_config(target_path))
            except OSError as e:
                raise CopyError.from_os_error(e, "Failed to read target file")
            except ValueError as e:
                raise CopyError(
                    CopyErrorKind.internal_error, f"Failed to read target file: {e}"
                )

            if source_server_name in document.mcpServers:
                if conflict_strategy is None:
                    logger.info(
                        f"MCP server '{source_server_name}' already exists in {target_path}"
                    )
                    return CopyResult(
                        success=False,
                        conflict=McpConflict(
                            server_name=source_server_name,
                            target_path=str(target_path),
                            existing_config=document.mcpServers[source_server_name],
                        ),
                    )
                await resolve_conflict(target_path, conflict_strategy)

            # 赋值新字典，保证 mcpServers 字段被计入 fields_set
            document.mcpServers = {**document.mcpServers, source_server_name: server}
            await self._write_document(
                target_path,
                document.model_dump(exclude_unset=True),
                "Failed to update target file",
            )

        except CopyError as e:
            return self._error_result(ConfigKind.mcp.value, e)

        logger.info(f"Copied MCP server '{source_server_name}' into {target_path}")
        return CopyResult(
            success=True,
            merged_into=str(target_path),
            server_name=source_server_name,
        )

    @staticmethod
    def _parse_mcp_server(server_name: Any, config: Any) -> dict:
        if not isinstance(server_name, str) or not server_name.strip():
            raise CopyError(
                CopyErrorKind.invalid_input,
                "sourceServerName is required and must be a non-empty string",
            )
        if not isinstance(config, Mapping):
            raise CopyError(
                CopyErrorKind.invalid_input,
                "sourceMcpConfig is required and must be an object",
            )

        # stdio 服务器（未指定 url 且 type 为空或 stdio）必须有 command
        server_type = config.get("type")
        if server_type in (None, McpServerType.stdio) and not config.get("url"):
            command = config.get("command")
            if not isinstance(command, str) or not command:
                raise CopyError(
                    CopyErrorKind.invalid_input,
                    "Invalid MCP config: command is required for stdio servers",
                )

        return dict(config)

    # ==================== Skill ====================

    async def copy_skill(
        self,
        source_skill_path: Any,
        target_scope: Any,
        target_project_id: Optional[str] = None,
        conflict_strategy: ConflictStrategy | str | None = None,
        acknowledged_warnings: bool = False,
    ) -> CopyResult:
        """
        复制 Skill 目录到 {scope}/.claude/skills/

        Skill 文件引用了目录之外的路径时，未确认 (acknowledged_warnings=False)
        会返回 warnings 和 requiresAcknowledgement，而不执行复制。

        Returns:
            CopyResult: success + copiedPath + fileCount + dirCount /
                warnings / conflict / skipped / error 之一
        """
        try:
            self._ensure_not_same_location(
                source_skill_path, target_scope, target_project_id
            )
            source_dir = await validate_source_directory(source_skill_path)
            skill_content = await self._ensure_frontmatter(source_dir / "SKILL.md", "skill")

            references = await scan_skill_directory(source_dir)
            if references and not acknowledged_warnings:
                return CopyResult(
                    success=False,
                    warnings=SkillWarnings(external_references=references),
                    requires_acknowledgement=True,
                    message="Skill contains external file references. Please review and acknowledge before copying.",
                )

            target_path = await build_skill_target_path(
                target_scope,
                source_dir,
                target_project_id,
                user_home=self.user_home,
                project_registry=self.project_registry,
            )

            replace = False
            conflict = await detect_conflict(source_dir, target_path)
            if conflict is not None:
                if conflict_strategy is None:
                    return CopyResult(success=False, conflict=conflict)
                target_path = await resolve_conflict(
                    target_path, conflict_strategy, keep_extension=False
                )
                replace = conflict_strategy == ConflictStrategy.overwrite

            try:
                await copy_directory(source_dir, target_path, replace=replace)
            except OSError as e:
                raise CopyError.from_os_error(e, "Failed to copy skill directory")

        except CopyError as e:
            return self._error_result("skill", e)

        file_count, dir_count = await asyncio.to_thread(count_tree_entries, target_path)
        skill_name = extract_frontmatter_label(skill_content, "name")
        logger.info(
            f"Copied skill {skill_name or source_dir.name} -> {target_path} "
            f"({file_count} files, {dir_count} directories)"
        )
        return CopyResult(
            success=True,
            copied_path=str(target_path),
            file_count=file_count,
            dir_count=dir_count,
        )

    # ==================== 公共方法 ====================

    @staticmethod
    async def _write_document(path: Path, document: dict, failure_prefix: str) -> None:
        try:
            await save_config_atomic(path, document)
        except OSError as e:
            raise CopyError.from_os_error(e, failure_prefix)
        except ValueError as e:
            raise CopyError(CopyErrorKind.internal_error, f"{failure_prefix}: {e}")

    @staticmethod
    def _error_result(label: str, error: CopyError) -> CopyResult:
        if error.kind == CopyErrorKind.operation_cancelled:
            logger.info(f"{label} copy skipped: {error.message}")
            return CopyResult.skipped_result(error.message)

        logger.warning(f"{label} copy failed ({error.kind.value}): {error.message}")
        return CopyResult.from_error(error)
