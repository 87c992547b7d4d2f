"""
技能目录门面 (Skill Catalog)

外部调用方只使用这里的两个操作:
- 列出可见技能 (name + description)
- 查看技能内容: 单个文档、目录列表，或缓存中的 SKILL.md

渐进式披露:
- Level 1: 技能清单 - 作为 view 工具描述的一部分提供给大模型
- Level 2: SKILL.md 正文 - view(skill_name)
- Level 3: 资源文件 - view(skill_name, path)
"""

import logging
import os
import posixpath
from collections.abc import Iterable
from typing import assert_never

from .cache import SKILL_DOCUMENT
from .errors import InvalidSkillPath, SkillNotFound, UnsupportedContentKind
from .resolver import CatalogResolver
from .sources import DirEntry, EntryKind, join_repo_path
from .types import Catalog, GitHubSkill, LocalSkill, Skill, SkillSummary
from .visibility import VisibilityFlags, skill_visible

logger = logging.getLogger(__name__)

LISTING_OPEN_TAG = "<available_skills>"
LISTING_CLOSE_TAG = "</available_skills>"

DIR_MARKER = "📁"
FILE_MARKER = "📄"

SKILLS_DESCRIPTION = """View a skill, or a file or directory inside a skill.

Skills are curated reference documents with instructions for specific tasks.
Before starting a task, check the list of available skills below; when one
matches, view its SKILL.md first and follow its instructions.

- skill_name: the skill to view. Leave empty (or ".") to list all skills.
- path: file or directory inside the skill, relative to the skill root.
  Defaults to SKILL.md. Use "." to list the skill's files.
"""


def _one_line(text: str) -> str:
    return " ".join(text.split())


def format_skills_listing(summaries: Iterable[SkillSummary]) -> str:
    """
    生成技能清单文本

    制表符分隔的 name/description 表，包在一对标签中，
    便于下游大模型上下文定位。
    """
    lines = [LISTING_OPEN_TAG, "name\tdescription"]
    for summary in summaries:
        lines.append(f"{summary.name}\t{_one_line(summary.description)}")
    lines.append(LISTING_CLOSE_TAG)
    return "\n".join(lines)


def format_directory_listing(entries: Iterable[DirEntry]) -> str:
    """每行一个条目: 目录 `📁 name/`，文件 `📄 name`，按名称排序"""
    lines = []
    for entry in sorted(entries, key=lambda e: e.name):
        if entry.kind is EntryKind.DIR:
            lines.append(f"{DIR_MARKER} {entry.name}/")
        else:
            lines.append(f"{FILE_MARKER} {entry.name}")
    return "\n".join(lines)


def normalize_relative_path(path: str | None) -> str:
    """
    规范化技能内相对路径

    - None / "" -> SKILL.md
    - "." -> "" (技能根目录)
    - 越出技能根目录 -> InvalidSkillPath
    """
    if path is None or not path.strip():
        return SKILL_DOCUMENT
    normalized = posixpath.normpath(path.strip().replace("\\", "/").lstrip("/"))
    if normalized == ".":
        return ""
    if normalized == ".." or normalized.startswith("../"):
        raise InvalidSkillPath(f"Path escapes the skill directory: {path}")
    return normalized


class SkillCatalog:
    """技能目录门面"""

    def __init__(self, resolver: CatalogResolver):
        self.resolver = resolver

    async def catalog(self, force: bool = False) -> Catalog:
        return await self.resolver.resolve(force=force)

    async def refresh(self) -> Catalog:
        """强制重新解析所有来源"""
        logger.info("Refreshing skill catalog")
        return await self.resolver.resolve(force=True)

    async def list_visible(self, flags: VisibilityFlags | None = None) -> list[SkillSummary]:
        catalog = await self.resolver.resolve()
        return [s for s in catalog.summaries() if skill_visible(s.name, flags)]

    async def list_skills_text(self, flags: VisibilityFlags | None = None) -> str:
        return format_skills_listing(await self.list_visible(flags))

    async def build_view_description(self, flags: VisibilityFlags | None = None) -> str:
        """view 工具描述 + 当前可见技能清单"""
        listing = await self.list_skills_text(flags)
        return f"{SKILLS_DESCRIPTION}\nAvailable skills:\n\n{listing}\n"

    async def resolve_skill(self, flags: VisibilityFlags | None, name: str) -> Skill:
        """
        按名称解析技能

        被过滤掉的技能与不存在的技能一样抛出 SkillNotFound。
        """
        if not skill_visible(name, flags):
            raise SkillNotFound(name)
        skill = await self.resolver.get_skill(name)
        if skill is None:
            raise SkillNotFound(name)
        return skill

    async def view(
        self,
        flags: VisibilityFlags | None,
        name: str,
        relative_path: str | None = None,
    ) -> str:
        """
        查看技能内容

        Returns:
            文件原文，或目录列表

        Raises:
            SkillNotFound: 技能不存在或被过滤
            InvalidSkillPath: 路径越出技能目录
            UnsupportedContentKind: 目标既不是文件也不是目录
            SourceFetchFailed: 来源读取失败
        """
        skill = await self.resolve_skill(flags, name)
        rel = normalize_relative_path(relative_path)

        cached = self.resolver.content_cache.get(skill.name, rel)
        if cached is not None:
            return cached

        if isinstance(skill, LocalSkill):
            return await self._view_local(skill, rel)
        if isinstance(skill, GitHubSkill):
            return await self._view_github(skill, rel)
        assert_never(skill)

    async def _view_local(self, skill: LocalSkill, rel: str) -> str:
        source = self.resolver.local_source
        target = os.path.join(skill.path, rel) if rel else skill.path
        kind = await source.stat_kind(target)
        if kind is EntryKind.DIR:
            return format_directory_listing(await source.list_directory(target))
        if kind is EntryKind.FILE:
            return await source.read_file(target)
        raise UnsupportedContentKind(f"Not a file or directory: {target}")

    async def _view_github(self, skill: GitHubSkill, rel: str) -> str:
        node = await self.resolver.github_source.get_node(skill.repo, join_repo_path(skill.path, rel))
        if isinstance(node, list):
            return format_directory_listing(node)
        return node
