"""
Skill 外部引用检测
扫描 Skill 文件内容中指向 Skill 目录之外的路径（绝对路径、~ 路径、../ 路径）
"""

import logging
import re
from pathlib import Path
from typing import List

import aiofiles

from .models import ExternalReference

logger = logging.getLogger(__name__)

# 需要扫描的文本文件扩展名
SCANNED_SUFFIXES = {
    ".md",
    ".txt",
    ".sh",
    ".bash",
    ".py",
    ".js",
    ".mjs",
    ".ts",
    ".json",
    ".yaml",
    ".yml",
    ".toml",
}

_URL_PATTERN = re.compile(r"[A-Za-z][\w+.-]*://\S+")
_INTERPRETER_PATTERN = re.compile(
    r"\b(?:node|python3?|bash|sh|zsh|ruby|perl|deno|bun|source)\s+(\S+)"
)
_PATH_PATTERNS = [
    # 至少两段的绝对路径，排除 ~/、../ 以及单词中间的斜杠
    ("absolute", "error", re.compile(r"(?<![\w.~/-])(/[\w.@-]+(?:/[\w.@-]+)+/?)")),
    ("home", "warning", re.compile(r"(?<![\w/])(~/[\w.@/-]*)")),
    ("relative", "warning", re.compile(r"(?<![\w/.])(\.\./[\w.@/-]*)")),
]


def detect_skill_external_references(
    skill_dir: str | Path, content: str, file_name: str | None = None
) -> List[ExternalReference]:
    """
    检测内容中的外部路径引用

    URL 会被忽略。由解释器（node/python/bash 等）直接执行的外部路径标记为 script。

    Args:
        skill_dir: Skill 目录（用于日志）
        content: 文件内容
        file_name: 可选的文件名，写入每条引用的 file 字段

    Returns:
        List[ExternalReference]: 按行号、列顺序排列的引用列表
    """
    references: List[ExternalReference] = []

    for line_number, line in enumerate(content.splitlines(), start=1):
        # 用等长空白替换 URL，保持列位置不变
        cleaned = _URL_PATTERN.sub(lambda m: " " * len(m.group(0)), line)

        script_targets = {m.group(1) for m in _INTERPRETER_PATTERN.finditer(cleaned)}

        found = []
        for ref_type, severity, pattern in _PATH_PATTERNS:
            for match in pattern.finditer(cleaned):
                path = match.group(1)
                if path in script_targets:
                    found.append((match.start(1), "script", "error", path))
                else:
                    found.append((match.start(1), ref_type, severity, path))

        for _, ref_type, severity, path in sorted(found):
            references.append(
                ExternalReference(
                    type=ref_type,
                    path=path,
                    line=line_number,
                    severity=severity,
                    file=file_name,
                )
            )

    if references:
        logger.info(
            f"Found {len(references)} external references in skill {skill_dir}"
            + (f" ({file_name})" if file_name else "")
        )
    return references


async def scan_skill_directory(skill_dir: Path) -> List[ExternalReference]:
    """
    扫描 Skill 目录下所有文本文件的外部引用

    Args:
        skill_dir: Skill 目录

    Returns:
        List[ExternalReference]: SKILL.md 的引用排在最前
    """
    files = sorted(
        (p for p in skill_dir.rglob("*") if p.is_file() and p.suffix.lower() in SCANNED_SUFFIXES),
        key=lambda p: (p.name != "SKILL.md", str(p)),
    )

    references: List[ExternalReference] = []
    for file_path in files:
        try:
            async with aiofiles.open(file_path, "r", encoding="utf-8") as f:
                content = await f.read()
        except (OSError, UnicodeDecodeError) as e:
            logger.warning(f"Skipping unreadable skill file {file_path}: {e}")
            continue

        relative_name = file_path.relative_to(skill_dir).as_posix()
        references.extend(
            detect_skill_external_references(skill_dir, content, relative_name)
        )

    return references
