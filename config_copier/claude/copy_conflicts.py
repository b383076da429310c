"""
复制冲突检测与处理
"""

import logging
from pathlib import Path
from typing import Optional

import aiofiles.os

from ..utils.time_utils import format_iso_millis
from .copy_paths import generate_unique_path
from .models import ConflictStrategy, CopyConflict, CopyError, CopyErrorKind

logger = logging.getLogger(__name__)


async def detect_conflict(source_path: Path, target_path: Path) -> Optional[CopyConflict]:
    """
    检测目标路径是否已存在

    检测过程中的任何文件系统错误都视为无冲突，不阻塞复制。

    Args:
        source_path: 源路径
        target_path: 目标路径

    Returns:
        Optional[CopyConflict]: 目标存在时返回双方的修改时间，否则返回 None
    """
    try:
        if not await aiofiles.os.path.exists(target_path):
            return None

        source_stat = await aiofiles.os.stat(source_path)
        target_stat = await aiofiles.os.stat(target_path)
    except (OSError, ValueError) as e:
        logger.warning(f"Conflict detection failed for {target_path}: {e}")
        return None

    return CopyConflict(
        target_path=str(target_path),
        source_modified=format_iso_millis(source_stat.st_mtime),
        target_modified=format_iso_millis(target_stat.st_mtime),
    )


async def resolve_conflict(
    target_path: Path,
    strategy: ConflictStrategy | str | None = None,
    keep_extension: bool = True,
) -> Path:
    """
    按策略处理冲突

    Args:
        target_path: 冲突的目标路径
        strategy: skip / overwrite / rename，None 表示原样返回
        keep_extension: rename 时是否保留扩展名（目录传 False）

    Returns:
        Path: 最终写入路径

    Raises:
        CopyError: skip 时抛出 operation_cancelled，未知策略抛出 invalid_input
    """
    if strategy is None:
        return target_path
    if strategy == ConflictStrategy.skip:
        raise CopyError(CopyErrorKind.operation_cancelled, "Copy cancelled by user")
    if strategy == ConflictStrategy.overwrite:
        return target_path
    if strategy == ConflictStrategy.rename:
        return await generate_unique_path(target_path, keep_extension=keep_extension)

    raise CopyError(
        CopyErrorKind.invalid_input,
        f"Unknown conflict strategy: {getattr(strategy, 'value', strategy)}",
    )
