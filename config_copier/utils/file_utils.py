"""
文件工具模块
提供路径检查以及文件、目录的异步复制
"""

import asyncio
import os
import shutil
from pathlib import Path

import aiofiles
import aiofiles.os


async def is_valid_directory(path: str | Path) -> bool:
    """检查路径是否为存在的目录"""
    try:
        return await aiofiles.os.path.isdir(path)
    except (OSError, ValueError):
        return False


async def copy_file(source: Path, target: Path) -> None:
    """
    按字节复制文件，自动创建目标父目录，已存在的目标文件会被覆盖

    Raises:
        OSError: 读写失败时抛出（保留原始 errno）
    """
    await aiofiles.os.makedirs(target.parent, exist_ok=True)

    async with aiofiles.open(source, "rb") as src:
        content = await src.read()
    async with aiofiles.open(target, "wb") as dst:
        await dst.write(content)


async def copy_directory(source: Path, target: Path, replace: bool = False) -> None:
    """
    递归复制目录

    Args:
        source: 源目录
        target: 目标目录
        replace: 为 True 时先删除已存在的目标目录
    """

    def _copy():
        if replace and target.exists():
            shutil.rmtree(target)
        target.parent.mkdir(parents=True, exist_ok=True)
        shutil.copytree(source, target)

    await asyncio.to_thread(_copy)


def count_tree_entries(root: Path) -> tuple[int, int]:
    """
    统计目录下的文件数和子目录数（不含 root 本身）

    Returns:
        (file_count, dir_count)
    """
    file_count = 0
    dir_count = 0
    for _, dirnames, filenames in os.walk(root):
        dir_count += len(dirnames)
        file_count += len(filenames)
    return file_count, dir_count
