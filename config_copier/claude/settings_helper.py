"""
Settings 文件操作辅助模块
提供 JSON 配置文件的异步读取和原子写入（临时文件 + rename）
"""

import json
from pathlib import Path

import aiofiles
import aiofiles.os


def dump_config(config: dict) -> str:
    """将配置序列化为磁盘格式（2 空格缩进，保留非 ASCII 字符）"""
    return json.dumps(config, indent=2, ensure_ascii=False) + "\n"


async def load_config(config_path: Path, key_path: list[str] | None = None) -> dict:
    """
    加载配置文件

    Args:
        config_path: 配置文件路径
        key_path: 可选的嵌套路径，用于定位配置中的特定子节点
                 例如 ["projects"] 用于读取 ~/.claude.json 中的项目表

    Returns:
        dict: 配置字典。如果指定了 key_path，返回对应的子配置；否则返回完整配置。
             如果文件不存在或为空，返回空字典。

    Raises:
        ValueError: 当文件内容不是合法 JSON 对象时抛出异常
        OSError: 当文件存在但无法读取时抛出异常（保留原始 errno）
    """
    if not await aiofiles.os.path.exists(config_path):
        return {}

    async with aiofiles.open(config_path, "r", encoding="utf-8") as f:
        content = await f.read()

    if not content.strip():
        return {}

    try:
        full_config = json.loads(content)
    except json.JSONDecodeError as e:
        raise ValueError(f"Invalid JSON in {config_path}: {e}")

    if not isinstance(full_config, dict):
        raise ValueError(f"Invalid JSON in {config_path}: top-level value must be an object")

    if not key_path:
        return full_config

    # 根据 key_path 导航到子配置
    current = full_config
    for key in key_path:
        if isinstance(current, dict) and key in current:
            current = current[key]
        else:
            return {}

    if not isinstance(current, dict):
        return {}

    return current


async def save_config_atomic(config_path: Path, config: dict) -> None:
    """
    原子写入配置文件

    先写入 {config_path}.tmp，回读校验非空且为合法 JSON 后 rename 覆盖目标文件。
    任何一步失败都会删除临时文件并重新抛出异常。

    Args:
        config_path: 配置文件路径
        config: 配置字典

    Raises:
        ValueError: 生成的内容为空或不是合法 JSON
        OSError: 写入或 rename 失败（保留原始 errno）
    """
    temp_path = config_path.with_name(config_path.name + ".tmp")
    content = dump_config(config)

    await aiofiles.os.makedirs(config_path.parent, exist_ok=True)

    try:
        async with aiofiles.open(temp_path, "w", encoding="utf-8") as f:
            await f.write(content)

        async with aiofiles.open(temp_path, "r", encoding="utf-8") as f:
            written = await f.read()

        if not written.strip():
            raise ValueError(f"Generated invalid JSON: {temp_path} is empty")
        try:
            json.loads(written)
        except json.JSONDecodeError as e:
            raise ValueError(f"Generated invalid JSON: {e}")

        await aiofiles.os.replace(temp_path, config_path)
    except BaseException:
        if await aiofiles.os.path.exists(temp_path):
            await aiofiles.os.remove(temp_path)
        raise
