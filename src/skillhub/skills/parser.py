"""
SKILL.md 解析器

解析 SKILL.md 文件的 YAML frontmatter 和 Markdown body。

必需字段:
- name: 技能名称，目录中的唯一键 (只允许字母/数字/下划线/连字符)
- description: 技能描述

不符合规则的 name 会被规范化（不会拒绝），并记录一条警告。
"""

import logging
import re
from dataclasses import dataclass

import yaml

from .errors import MalformedMatter

logger = logging.getLogger(__name__)

# YAML frontmatter 正则: 开头的 --- 与下一行单独的 --- 之间
FRONTMATTER_PATTERN = re.compile(
    r"\A---[ \t]*\r?\n(.*?)^---[ \t]*(?:\r?\n|\Z)",
    re.DOTALL | re.MULTILINE,
)

SKILL_NAME_PATTERN = re.compile(r"^[A-Za-z0-9_-]+$")

_WHITESPACE = re.compile(r"\s+")
_ILLEGAL_CHARS = re.compile(r"[^A-Za-z0-9_-]")
_SEPARATOR_RUN = re.compile(r"[-_]{2,}")


@dataclass(frozen=True)
class SkillMatter:
    """技能元数据 (来自 YAML frontmatter)"""

    name: str
    description: str


@dataclass(frozen=True)
class ParsedDocument:
    """解析后的 SKILL.md: 元数据 + 去掉 frontmatter 的正文"""

    matter: SkillMatter
    body: str


def normalize_skill_name(name: str) -> str:
    """
    规范化技能名称

    规则（确定性）:
    1. 转小写
    2. 连续空白 -> "-"
    3. 其他非法字符 -> "_"
    4. 连续分隔符折叠为第一个分隔符，并去掉首尾分隔符

    Raises:
        MalformedMatter: 规范化后为空
    """
    normalized = _WHITESPACE.sub("-", name.strip().lower())
    normalized = _ILLEGAL_CHARS.sub("_", normalized)
    normalized = _SEPARATOR_RUN.sub(lambda m: m.group(0)[0], normalized)
    normalized = normalized.strip("-_")
    if not normalized:
        raise MalformedMatter(
            f"Skill name {name!r} has no usable characters",
            details={"name": name},
        )
    return normalized


def parse_skill_document(raw: str, source: str = "") -> ParsedDocument:
    """
    解析 SKILL.md 内容

    Args:
        raw: 文件内容
        source: 来源描述 (仅用于日志和错误信息)

    Returns:
        ParsedDocument

    Raises:
        MalformedMatter: 缺少 frontmatter、YAML 无效、缺少 name 或 description
    """
    text = raw.lstrip("\ufeff")
    match = FRONTMATTER_PATTERN.match(text)
    if not match:
        raise MalformedMatter(f"Missing YAML frontmatter in {source or 'document'}")

    try:
        data = yaml.safe_load(match.group(1)) or {}
    except yaml.YAMLError as e:
        raise MalformedMatter(f"Invalid YAML frontmatter in {source or 'document'}: {e}") from e

    if not isinstance(data, dict):
        raise MalformedMatter(f"Frontmatter must be a mapping in {source or 'document'}")

    name = data.get("name")
    if name is None or not str(name).strip():
        raise MalformedMatter(f"Missing required 'name' field in {source or 'document'}")
    if "description" not in data or data["description"] is None:
        raise MalformedMatter(f"Missing required 'description' field in {source or 'document'}")

    name = str(name)
    description = str(data["description"])

    if not SKILL_NAME_PATTERN.fullmatch(name):
        normalized = normalize_skill_name(name)
        logger.warning(
            f"Skill name {name!r} is not a valid identifier, using {normalized!r}"
            + (f" ({source})" if source else "")
        )
        name = normalized

    return ParsedDocument(
        matter=SkillMatter(name=name, description=description),
        body=text[match.end():],
    )
