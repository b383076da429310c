"""
Test configuration and fixtures
"""

import json
import tempfile
from pathlib import Path

import pytest

from config_copier.claude.copy_service import CopyService
from config_copier.project.project_registry import ProjectRegistry, path_to_project_id


@pytest.fixture
def temp_user_home():
    """创建临时用户主目录"""
    with tempfile.TemporaryDirectory() as tmpdir:
        user_home = Path(tmpdir)
        (user_home / ".claude").mkdir(parents=True, exist_ok=True)
        yield user_home


@pytest.fixture
def temp_project_dir():
    """创建临时项目目录"""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def temp_dir():
    """创建通用临时目录"""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def temp_source_dir():
    """创建临时源目录（被复制的配置所在位置）"""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def removed_project_path(temp_user_home):
    """登记在 ~/.claude.json 中但目录已被删除的项目路径"""
    return str(temp_user_home / "removed-project")


@pytest.fixture
def project_registry(temp_user_home, temp_project_dir, removed_project_path):
    """
    基于临时 ~/.claude.json 的项目注册表

    登记两个项目：temp_project_dir（存在）和 removed_project_path（不存在）
    """
    claude_json = temp_user_home / ".claude.json"
    claude_json.write_text(
        json.dumps(
            {
                "numStartups": 3,
                "projects": {
                    str(temp_project_dir): {"allowedTools": []},
                    removed_project_path: {},
                },
            }
        ),
        encoding="utf-8",
    )
    return ProjectRegistry(temp_user_home)


@pytest.fixture
def project_id(temp_project_dir):
    """temp_project_dir 对应的项目 ID"""
    return path_to_project_id(str(temp_project_dir))


@pytest.fixture
def copy_service(project_registry, temp_user_home):
    """创建 CopyService 实例"""
    return CopyService(project_registry, temp_user_home)


@pytest.fixture
def write_file():
    """写入文件并自动创建父目录"""

    def _write(path: Path, content: str) -> Path:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
        return path

    return _write
