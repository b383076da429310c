"""
Hook 合并模块
把单个 Hook 合并进 settings 的三层结构: event -> matcher 分组 -> hooks 列表
"""

from typing import Optional

from .models import HookDefinition, MatcherGroup, SettingsDocument

DEFAULT_MATCHER = "*"


def normalize_matcher(matcher: Optional[str]) -> str:
    """None、空字符串和 '*' 都表示匹配全部"""
    return matcher if matcher else DEFAULT_MATCHER


def find_matcher_group(
    settings: SettingsDocument, event: str, matcher: Optional[str]
) -> Optional[MatcherGroup]:
    """查找 event 下 matcher（规范化后）相同的分组"""
    if not settings.hooks:
        return None

    normalized = normalize_matcher(matcher)
    for group in settings.hooks.get(event, []):
        if normalize_matcher(group.matcher) == normalized:
            return group
    return None


def _contains_command(group: MatcherGroup, command: str) -> bool:
    return any(entry.get("command") == command for entry in group.hooks)


def is_duplicate_hook(
    settings: SettingsDocument, event: str, matcher: Optional[str], command: str
) -> bool:
    """同一 (event, matcher) 分组中已有相同 command（精确比较）时返回 True"""
    group = find_matcher_group(settings, event, matcher)
    if group is None:
        return False
    return _contains_command(group, command)


def merge_hook_into_settings(
    settings: SettingsDocument,
    event: str,
    matcher: Optional[str],
    hook: HookDefinition,
) -> SettingsDocument:
    """
    将 Hook 合并到 settings 文档

    1. 缺少 hooks 时创建空字典，其它顶层键保持不变
    2. 缺少 event 列表时创建空列表
    3. 按规范化后的 matcher 查找分组，找不到则追加新分组；
       新分组只有在 matcher 不是默认值时才写入 matcher 字段
    4. 分组内已有相同 command 时忽略本次合并，否则追加（带默认值）

    Args:
        settings: 原 settings 文档（不会被修改）
        event: Hook 事件名
        matcher: 可选的匹配器，None 与 '*' 等价
        hook: 待合并的 Hook 定义

    Returns:
        SettingsDocument: 合并后的新文档
    """
    merged = settings.model_copy(deep=True)

    if merged.hooks is None:
        merged.hooks = {}

    event_groups = merged.hooks.setdefault(event, [])

    group = find_matcher_group(merged, event, matcher)
    if group is None:
        normalized = normalize_matcher(matcher)
        if normalized == DEFAULT_MATCHER:
            group = MatcherGroup(hooks=[])
        else:
            group = MatcherGroup(matcher=normalized, hooks=[])
        event_groups.append(group)

    if _contains_command(group, hook.command):
        return settings.model_copy(deep=True)

    # 赋值而不是 append，保证 hooks 字段被计入 fields_set
    group.hooks = [*group.hooks, hook.model_dump()]
    return merged
