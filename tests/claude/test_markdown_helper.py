"""
Markdown 辅助工具模块的单元测试
"""

from config_copier.claude.markdown_helper import extract_frontmatter_label, has_frontmatter


class TestHasFrontmatter:
    """测试 has_frontmatter 函数"""

    def test_complete_frontmatter(self):
        assert has_frontmatter("---\nname: reviewer\n---\n\nBody text\n") is True

    def test_frontmatter_only(self):
        assert has_frontmatter("---\nname: minimal\n---") is True

    def test_windows_line_endings(self):
        assert has_frontmatter("---\r\nname: win\r\n---\r\nBody") is True

    def test_missing_closing_delimiter(self):
        assert has_frontmatter("---\nname: test\n\nNo closing delimiter") is False

    def test_no_frontmatter(self):
        assert has_frontmatter("# Just a heading\n") is False

    def test_frontmatter_not_at_start(self):
        assert has_frontmatter("\n---\nname: late\n---\n") is False


class TestExtractFrontmatterLabel:
    """测试 extract_frontmatter_label 函数"""

    def test_extract_name(self):
        content = "---\nname: code-reviewer\ndescription: Reviews code\n---\nBody"
        assert extract_frontmatter_label(content, "name") == "code-reviewer"

    def test_quoted_value(self):
        content = "---\nname: \"pdf tools\"\n---\n"
        assert extract_frontmatter_label(content, "name") == "pdf tools"

    def test_label_missing(self):
        content = "---\ndescription: x\n---\n"
        assert extract_frontmatter_label(content, "name") is None

    def test_label_outside_frontmatter_ignored(self):
        content = "---\ndescription: x\n---\nname: body\n"
        assert extract_frontmatter_label(content, "name") is None
