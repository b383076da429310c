"""
CopyService Skill 目录复制的单元测试
"""

import asyncio
from pathlib import Path
from unittest.mock import patch

import pytest

from config_copier.claude.models import CopyErrorKind
from config_copier.utils.file_utils import count_tree_entries

SKILL_MD = "---\nname: pdf\ndescription: Work with PDF files\n---\n\nUse scripts/extract.py\n"


class TestCopySkill:
    """测试 CopyService.copy_skill"""

    @pytest.fixture
    def source_skill(self, temp_source_dir, write_file):
        skill_dir = temp_source_dir / ".claude" / "skills" / "pdf"
        write_file(skill_dir / "SKILL.md", SKILL_MD)
        write_file(skill_dir / "scripts" / "extract.py", "print('extract')\n")
        write_file(skill_dir / "reference" / "forms" / "guide.md", "# Guide\n")
        return skill_dir

    # ========== 测试成功复制 ==========

    async def test_copy_to_user_scope(self, copy_service, source_skill, temp_user_home):
        result = await copy_service.copy_skill(str(source_skill), "user")

        target = temp_user_home / ".claude" / "skills" / "pdf"
        assert result.success is True
        assert result.copied_path == str(target)
        assert result.file_count == 3
        assert result.dir_count == 3
        assert (target / "scripts" / "extract.py").read_text() == "print('extract')\n"

    async def test_copy_to_project_scope(
        self, copy_service, source_skill, temp_project_dir, project_id
    ):
        result = await copy_service.copy_skill(str(source_skill), "project", project_id)

        assert result.copied_path == str(temp_project_dir / ".claude" / "skills" / "pdf")

    async def test_tree_counted_in_worker_thread(self, copy_service, source_skill):
        with patch(
            "config_copier.claude.copy_service.asyncio.to_thread", wraps=asyncio.to_thread
        ) as to_thread:
            result = await copy_service.copy_skill(str(source_skill), "user")

        assert result.file_count == 3
        to_thread.assert_any_call(count_tree_entries, Path(result.copied_path))

    # ========== 测试外部引用 ==========

    async def test_external_references_require_acknowledgement(
        self, copy_service, source_skill, write_file, temp_user_home
    ):
        write_file(source_skill / "SKILL.md", SKILL_MD + "Run node ../shared/run.js\n")

        result = await copy_service.copy_skill(str(source_skill), "user")

        assert result.success is False
        assert result.requires_acknowledgement is True
        references = result.warnings.external_references
        assert [(r.type, r.path, r.file) for r in references] == [
            ("script", "../shared/run.js", "SKILL.md")
        ]
        assert not (temp_user_home / ".claude" / "skills" / "pdf").exists()

    async def test_acknowledged_warnings_copy(
        self, copy_service, source_skill, write_file, temp_user_home
    ):
        write_file(source_skill / "SKILL.md", SKILL_MD + "See ~/notes.md\n")

        result = await copy_service.copy_skill(
            str(source_skill), "user", acknowledged_warnings=True
        )

        assert result.success is True
        assert (temp_user_home / ".claude" / "skills" / "pdf" / "SKILL.md").exists()

    # ========== 测试冲突处理 ==========

    async def test_conflict_without_strategy(
        self, copy_service, source_skill, temp_user_home, write_file
    ):
        write_file(temp_user_home / ".claude" / "skills" / "pdf" / "SKILL.md", "old")

        result = await copy_service.copy_skill(str(source_skill), "user")

        assert result.conflict.target_path == str(temp_user_home / ".claude" / "skills" / "pdf")

    async def test_rename_strategy(self, copy_service, source_skill, temp_user_home, write_file):
        skills_dir = temp_user_home / ".claude" / "skills"
        write_file(skills_dir / "pdf" / "SKILL.md", "old")

        result = await copy_service.copy_skill(str(source_skill), "user", None, "rename")

        assert result.copied_path == str(skills_dir / "pdf-2")
        assert (skills_dir / "pdf" / "SKILL.md").read_text() == "old"
        assert (skills_dir / "pdf-2" / "SKILL.md").read_text() == SKILL_MD

    async def test_overwrite_replaces_directory(
        self, copy_service, source_skill, temp_user_home, write_file
    ):
        target = temp_user_home / ".claude" / "skills" / "pdf"
        write_file(target / "SKILL.md", "old")
        write_file(target / "stale.txt", "stale")

        result = await copy_service.copy_skill(str(source_skill), "user", None, "overwrite")

        assert result.success is True
        assert (target / "SKILL.md").read_text() == SKILL_MD
        assert not (target / "stale.txt").exists()

    async def test_skip_strategy(self, copy_service, source_skill, temp_user_home, write_file):
        write_file(temp_user_home / ".claude" / "skills" / "pdf" / "SKILL.md", "old")

        result = await copy_service.copy_skill(str(source_skill), "user", None, "skip")

        assert result.skipped is True

    # ========== 测试错误 ==========

    async def test_missing_skill_md(self, copy_service, temp_source_dir):
        (temp_source_dir / "empty").mkdir()

        result = await copy_service.copy_skill(str(temp_source_dir / "empty"), "user")

        assert result.error_kind == CopyErrorKind.invalid_input
        assert "missing SKILL.md" in result.error

    async def test_skill_md_without_frontmatter(self, copy_service, temp_source_dir, write_file):
        write_file(temp_source_dir / "bad" / "SKILL.md", "# no frontmatter\n")

        result = await copy_service.copy_skill(str(temp_source_dir / "bad"), "user")

        assert result.error == "Invalid skill file: missing YAML frontmatter"

    async def test_null_bytes(self, copy_service):
        result = await copy_service.copy_skill("/tmp/skill\0", "user")

        assert "null bytes" in result.error

    async def test_path_traversal(self, copy_service):
        result = await copy_service.copy_skill("/tmp/skills/../../etc", "user")

        assert result.error_kind == CopyErrorKind.path_traversal

    async def test_same_project_rejected(
        self, copy_service, temp_project_dir, project_id, write_file
    ):
        skill_dir = temp_project_dir / ".claude" / "skills" / "pdf"
        write_file(skill_dir / "SKILL.md", SKILL_MD)

        result = await copy_service.copy_skill(str(skill_dir), "project", project_id, "rename")

        assert result.error == "Cannot copy configuration to the same project"
        assert not (temp_project_dir / ".claude" / "skills" / "pdf-2").exists()
