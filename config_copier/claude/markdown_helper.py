"""
Markdown 辅助工具模块
提供 YAML frontmatter 的检测和字段提取
"""

import re
from typing import Optional

# 文件开头的 --- ... --- 块，结束分隔符必须独占一行
FRONTMATTER_PATTERN = re.compile(r"\A---[ \t]*\r?\n(.*?)\r?\n---[ \t]*(?:\r?\n|\Z)", re.DOTALL)


def has_frontmatter(content: str) -> bool:
    """
    判断 Markdown 内容是否以完整的 YAML frontmatter 开头

    Args:
        content: Markdown 文件内容

    Returns:
        bool: 同时存在开始和结束分隔符时返回 True

    Example:
        >>> has_frontmatter('---\\nname: minimal\\n---\\n')
        True
        >>> has_frontmatter('---\\nname: test\\n\\nNo closing delimiter')
        False
    """
    return FRONTMATTER_PATTERN.match(content) is not None


def extract_frontmatter_label(content: str, label: str) -> Optional[str]:
    """
    从 Markdown 内容的 frontmatter 中提取指定标签的值

    Args:
        content: Markdown 文件内容
        label: 要提取的标签名称（例如: 'name'）

    Returns:
        Optional[str]: 如果找到标签则返回其值，否则返回 None
    """
    match = FRONTMATTER_PATTERN.match(content)
    if not match:
        return None

    pattern = re.compile(rf"^{re.escape(label)}\s*:\s*(.+)$")

    for line in match.group(1).splitlines():
        line_match = pattern.match(line.strip())
        if line_match:
            value = line_match.group(1).strip()

            # 移除引号（如果有）
            if (value.startswith('"') and value.endswith('"')) or (
                value.startswith("'") and value.endswith("'")
            ):
                value = value[1:-1]

            return value

    return None
