"""
技能可见性过滤

按请求解析的 enable/disable 名单，只作用于本次请求，不缓存。
被过滤掉的技能与不存在的技能对调用方表现一致。
"""

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class VisibilityFlags:
    """
    enabled: 允许名单 (None = 不限制)
    disabled: 禁止名单 (None = 不限制)
    """

    enabled: frozenset[str] | None = None
    disabled: frozenset[str] | None = None


NO_FLAGS = VisibilityFlags()


def skill_visible(name: str, flags: VisibilityFlags | None) -> bool:
    if flags is None:
        return True
    if flags.enabled is not None and name not in flags.enabled:
        return False
    if flags.disabled is not None and name in flags.disabled:
        return False
    return True


def _parse_name_list(value: Any) -> frozenset[str] | None:
    if value is None:
        return None
    if isinstance(value, str):
        if not value.strip():
            return None
        items: Iterable[str] = value.split(",")
    else:
        items = (part for v in value for part in str(v).split(","))
    return frozenset(item.strip() for item in items if item.strip())


def parse_skills_flags(query: Mapping[str, Any] | None) -> VisibilityFlags:
    """
    从请求参数解析可见性名单

    支持逗号分隔字符串或字符串列表:
        ?enabled_skills=a,b&disabled_skills=c
    """
    if not query:
        return NO_FLAGS
    return VisibilityFlags(
        enabled=_parse_name_list(query.get("enabled_skills")),
        disabled=_parse_name_list(query.get("disabled_skills")),
    )
