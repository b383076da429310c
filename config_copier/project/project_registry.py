"""
Claude 项目注册表
从 ~/.claude.json 的 projects 表中发现项目，并为每个项目生成稳定的项目 ID
"""

import logging
import os
import re
from pathlib import Path
from typing import Dict, Optional

from pydantic import BaseModel, Field

from ..claude.settings_helper import load_config
from ..utils.file_utils import is_valid_directory

logger = logging.getLogger(__name__)


class ProjectEntry(BaseModel):
    """已发现的项目"""

    id: str
    path: str
    name: str
    exists: bool = False


class ProjectDiscoveryResult(BaseModel):
    """项目发现结果"""

    projects: Dict[str, ProjectEntry] = Field(default_factory=dict)
    error: Optional[str] = None


def path_to_project_id(project_path: str) -> str:
    """
    将项目路径转换为项目 ID

    去掉开头的 '/'，移除所有路径分隔符、冒号和空白字符后转为小写。

    Example:
        >>> path_to_project_id('/home/me/My Project')
        'homememyproject'
    """
    project_id = re.sub(r"^/", "", project_path)
    project_id = re.sub(r"[/\\:]", "", project_id)
    project_id = re.sub(r"\s+", "", project_id)
    return project_id.lower()


_CLAUDE_DIR = re.compile(r"[/\\]\.claude[/\\]")


def extract_config_root(source_path: str) -> Optional[str]:
    """返回源路径中 .claude 目录的上级目录（作用域根目录），路径不在 .claude 下时返回 None"""
    if not isinstance(source_path, str) or not source_path:
        return None
    match = _CLAUDE_DIR.search(source_path)
    if match is None:
        return None
    return source_path[: match.start()] or "/"


def extract_project_id_from_path(source_path: str, user_home: Path) -> Optional[str]:
    """
    从配置文件路径推断所属项目 ID

    Example:
        >>> extract_project_id_from_path("/work/app/.claude/agents/a.md", Path("/home/me"))
        'workapp'

    Returns:
        Optional[str]: 项目 ID；路径位于用户主目录的 .claude 下或不在 .claude 下时为 None
    """
    root = extract_config_root(source_path)
    if root is None or os.path.normpath(root) == os.path.normpath(str(user_home)):
        return None
    return path_to_project_id(root)


class ProjectRegistry:
    """基于 ~/.claude.json 的项目注册表"""

    def __init__(self, user_home: Path | None = None):
        """
        初始化项目注册表

        Args:
            user_home: 用户主目录路径，可空，默认为系统 User 路径（用于单元测试）
        """
        self.user_home = user_home if user_home else Path.home()

    def _expand_home(self, project_path: str) -> str:
        if project_path == "~" or project_path.startswith("~/"):
            return str(self.user_home) + project_path[1:]
        return project_path

    async def discover_projects(self) -> ProjectDiscoveryResult:
        """
        读取 ~/.claude.json 中登记的所有项目

        Returns:
            ProjectDiscoveryResult: projectId -> ProjectEntry 映射；
                文件不存在时为空，解析失败时 error 字段包含错误信息
        """
        config_path = self.user_home / ".claude.json"

        try:
            projects_config = await load_config(config_path, key_path=["projects"])
        except (OSError, ValueError) as e:
            logger.error(f"Failed to discover projects: {e}")
            return ProjectDiscoveryResult(error=str(e))

        projects: Dict[str, ProjectEntry] = {}
        for raw_path in projects_config.keys():
            expanded_path = self._expand_home(raw_path)
            project_id = path_to_project_id(expanded_path)
            exists = await is_valid_directory(expanded_path)
            if not exists:
                logger.info(f"Project path has been removed: {expanded_path}")

            projects[project_id] = ProjectEntry(
                id=project_id,
                path=expanded_path,
                name=os.path.basename(expanded_path.rstrip("/\\")) or expanded_path,
                exists=exists,
            )

        return ProjectDiscoveryResult(projects=projects)
