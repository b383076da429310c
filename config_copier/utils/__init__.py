"""
工具模块
提供文件复制、路径检查和时间格式化等工具函数
"""

from .file_utils import (
    copy_directory,
    copy_file,
    count_tree_entries,
    is_valid_directory,
)
from .time_utils import format_iso_millis

__all__ = [
    "copy_directory",
    "copy_file",
    "count_tree_entries",
    "is_valid_directory",
    "format_iso_millis",
]
