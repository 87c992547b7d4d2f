"""
技能目录错误类型

提供 SkillError 异常层次和 ErrorType 枚举。

传播约定:
- 配置读取/解析失败、整体解析失败 -> 抛给调用方
- 单个来源、单个文档的失败 -> 记录日志后丢弃该技能，解析继续
- SkillNotFound / UnsupportedContentKind / InvalidSkillPath -> 作为普通请求失败返回给调用方

Usage:
    from skillhub.skills.errors import SkillNotFound

    try:
        content = await catalog.view(flags, "pdf-tools")
    except SkillNotFound as e:
        return e.to_dict()
"""

import json
from enum import Enum
from typing import Any


class ErrorType(Enum):
    """错误类型"""

    CONFIG_UNREADABLE = "config_unreadable"  # 配置文件无法读取
    CONFIG_MALFORMED = "config_malformed"  # 配置文件格式错误
    SOURCE_FETCH_FAILED = "source_fetch_failed"  # 单个来源获取失败
    SOURCE_NOT_FOUND = "source_not_found"  # 来源路径不存在
    UNEXPECTED_ENTRY_KIND = "unexpected_entry_kind"  # 期望目录却得到文件（或反之）
    MALFORMED_MATTER = "malformed_matter"  # frontmatter 缺少必需字段
    DUPLICATE_SKILL_NAME = "duplicate_skill_name"  # 重名技能，后到者被丢弃
    SKILL_NOT_FOUND = "not_found"  # 技能不存在或被过滤
    UNSUPPORTED_CONTENT_KIND = "unsupported_content_kind"  # 既不是文件也不是目录
    INVALID_PATH = "invalid_path"  # 路径越出技能根目录
    RESOLUTION_FAILED = "resolution_failed"  # 所有来源都失败


# 面向调用方的提示
_ERROR_TYPE_HINTS: dict[ErrorType, str] = {
    ErrorType.CONFIG_UNREADABLE: "无法读取技能配置文件，请检查 SKILLS_FILE 路径",
    ErrorType.CONFIG_MALFORMED: "技能配置文件格式有误，请检查 YAML 内容",
    ErrorType.SKILL_NOT_FOUND: "技能不存在，请先列出可用技能再重试",
    ErrorType.UNSUPPORTED_CONTENT_KIND: "目标既不是文件也不是目录，无法查看",
    ErrorType.INVALID_PATH: "路径必须位于技能目录内",
    ErrorType.RESOLUTION_FAILED: "所有技能来源均加载失败，请检查日志",
}


class SkillError(Exception):
    """
    技能目录错误基类。

    包含错误类型、消息和附加细节，可序列化为 JSON 返回给调用方。
    """

    error_type: ErrorType = ErrorType.SOURCE_FETCH_FAILED

    def __init__(self, message: str, *, details: dict[str, Any] | None = None) -> None:
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        """序列化为字典"""
        result: dict[str, Any] = {
            "error": True,
            "error_type": self.error_type.value,
            "message": self.message,
        }
        hint = _ERROR_TYPE_HINTS.get(self.error_type)
        if hint:
            result["hint"] = hint
        if self.details:
            result["details"] = self.details
        return result

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), ensure_ascii=False)


class ConfigUnreadable(SkillError):
    error_type = ErrorType.CONFIG_UNREADABLE


class ConfigMalformed(SkillError):
    error_type = ErrorType.CONFIG_MALFORMED


class SourceFetchFailed(SkillError):
    error_type = ErrorType.SOURCE_FETCH_FAILED


class SourceNotFound(SourceFetchFailed):
    error_type = ErrorType.SOURCE_NOT_FOUND


class UnexpectedEntryKind(SkillError):
    error_type = ErrorType.UNEXPECTED_ENTRY_KIND


class MalformedMatter(SkillError):
    error_type = ErrorType.MALFORMED_MATTER


class DuplicateSkillName(SkillError):
    """
    重复技能名的告警记录

    只作为日志记录的载体（message + details），解析器从不抛出它。
    """

    error_type = ErrorType.DUPLICATE_SKILL_NAME


class SkillNotFound(SkillError):
    error_type = ErrorType.SKILL_NOT_FOUND

    def __init__(self, name: str) -> None:
        super().__init__(f"Skill not found: {name}", details={"skill_name": name})
        self.skill_name = name


class UnsupportedContentKind(SkillError):
    error_type = ErrorType.UNSUPPORTED_CONTENT_KIND


class InvalidSkillPath(SkillError):
    error_type = ErrorType.INVALID_PATH


class CatalogResolutionError(SkillError):
    error_type = ErrorType.RESOLUTION_FAILED
