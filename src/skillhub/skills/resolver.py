"""
技能目录解析器

把配置中的每个来源展开为具体的技能加载任务，并发执行，按名称去重，
生成按名称排序的不可变 Catalog。

- 单飞 (single-flight): 解析进行中时，并发调用共享同一个 asyncio.Task
- 完成后结果被记忆，直到 resolve(force=True)
- 解析整体失败时清除记忆，下一次调用会重试
- 同名技能: 先插入者胜出，后来者记录警告后丢弃
  （并发下到达顺序不确定，调用方不应依赖哪一个胜出）
"""

import asyncio
import logging
import posixpath
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import assert_never

from .cache import SKILL_DOCUMENT, ContentCache
from .config_store import (
    CollectionEntry,
    ConfigStore,
    GitHubCollectionEntry,
    GitHubEntry,
    LocalCollectionEntry,
    LocalEntry,
    SourceEntry,
)
from .errors import CatalogResolutionError, DuplicateSkillName, SkillError
from .parser import ParsedDocument, parse_skill_document
from .sources import EntryKind, GitHubSource, LocalSource, join_repo_path, normalize_repo_path
from .types import Catalog, GitHubSkill, LocalSkill, Skill
from .visibility import VisibilityFlags, skill_visible

logger = logging.getLogger(__name__)


@dataclass
class ResolutionStats:
    """单次解析的统计"""

    loaded: int = 0
    failed: int = 0
    filtered: int = 0
    duplicates: int = 0
    ignored: int = 0


class _SkillMapBuilder:
    """
    解析过程中共享的结果映射

    多个加载任务并发写入，存在性检查与插入在同一把锁内完成。
    内容缓存只在持有该锁时写入。
    """

    def __init__(self, cache: ContentCache):
        self._skills: dict[str, Skill] = {}
        self._cache = cache
        self._lock = asyncio.Lock()

    async def try_insert(self, skill: Skill, body: str) -> Skill | None:
        """插入成功返回 None；同名已存在时返回已存在的技能"""
        async with self._lock:
            existing = self._skills.get(skill.name)
            if existing is not None:
                return existing
            self._skills[skill.name] = skill
            self._cache.put(skill.name, SKILL_DOCUMENT, body)
            return None

    def build(self) -> Catalog:
        return Catalog(self._skills)


def _collection_flags(entry: CollectionEntry) -> VisibilityFlags:
    return VisibilityFlags(enabled=entry.enabled_skills, disabled=entry.disabled_skills)


def _is_ignored(
    ignored_paths: frozenset[str] | None,
    member_path: str,
    member_name: str,
    normalize: Callable[[str], str] = posixpath.normpath,
) -> bool:
    """忽略名单可以写成员路径，也可以只写子目录名"""
    if not ignored_paths:
        return False
    if member_name in ignored_paths:
        return True
    normalized = normalize(member_path)
    return any(normalize(p) == normalized for p in ignored_paths)


class CatalogResolver:
    """技能目录解析器"""

    def __init__(
        self,
        config_store: ConfigStore,
        local_source: LocalSource,
        github_source: GitHubSource,
    ):
        self.config_store = config_store
        self.local_source = local_source
        self.github_source = github_source
        self._task: asyncio.Task[Catalog] | None = None
        self._content_cache = ContentCache()

    @property
    def content_cache(self) -> ContentCache:
        """当前目录对应的内容缓存"""
        return self._content_cache

    async def resolve(self, force: bool = False) -> Catalog:
        """
        获取技能目录

        Args:
            force: 丢弃已记忆/进行中的结果，重新解析

        Raises:
            ConfigUnreadable / ConfigMalformed: 配置无法加载
            CatalogResolutionError: 所有来源都失败
        """
        task = self._task
        if force or task is None:
            cache = ContentCache()
            self._content_cache = cache
            task = asyncio.create_task(self._build_catalog(cache), name="skillhub-resolve")
            task.add_done_callback(self._forget_failed)
            self._task = task
        return await asyncio.shield(task)

    async def get_skill(self, name: str, force: bool = False) -> Skill | None:
        catalog = await self.resolve(force=force)
        return catalog.get(name)

    def _forget_failed(self, task: asyncio.Task) -> None:
        if task.cancelled() or task.exception() is not None:
            if self._task is task:
                self._task = None

    async def _build_catalog(self, cache: ContentCache) -> Catalog:
        config = await self.config_store.get_config()

        builder = _SkillMapBuilder(cache)
        stats = ResolutionStats()
        await asyncio.gather(
            *(self._load_entry(name, entry, builder, stats) for name, entry in config.items())
        )
        catalog = builder.build()

        logger.info(
            f"Resolved {len(catalog)} skill(s) from {len(config)} source(s) "
            f"(failed={stats.failed}, filtered={stats.filtered}, "
            f"duplicates={stats.duplicates}, ignored={stats.ignored})"
        )

        if not catalog and stats.failed and not (stats.filtered or stats.duplicates):
            raise CatalogResolutionError(
                f"All {stats.failed} skill load(s) failed",
                details={"failed": stats.failed},
            )
        return catalog

    # ==================== 来源展开 ====================

    async def _load_entry(
        self,
        entry_name: str,
        entry: SourceEntry,
        builder: _SkillMapBuilder,
        stats: ResolutionStats,
    ) -> None:
        if isinstance(entry, LocalEntry):
            await self._load_local(entry.path, builder, stats)
        elif isinstance(entry, LocalCollectionEntry):
            await self._load_local_collection(entry_name, entry, builder, stats)
        elif isinstance(entry, GitHubEntry):
            await self._load_github(entry.repo, normalize_repo_path(entry.path), builder, stats)
        elif isinstance(entry, GitHubCollectionEntry):
            await self._load_github_collection(entry_name, entry, builder, stats)
        else:
            assert_never(entry)

    async def _load_local_collection(
        self,
        entry_name: str,
        entry: LocalCollectionEntry,
        builder: _SkillMapBuilder,
        stats: ResolutionStats,
    ) -> None:
        try:
            children = await self.local_source.list_directory(entry.path)
        except SkillError as e:
            logger.error(f"Failed to list local_collection {entry_name!r} at {entry.path}: {e.message}")
            stats.failed += 1
            return

        flags = _collection_flags(entry)
        loads = []
        for child in children:
            if child.kind is EntryKind.FILE:
                continue
            if child.kind is not EntryKind.DIR:
                logger.warning(
                    f"Skipping unexpected entry {child.name!r} in local_collection {entry_name!r}"
                )
                continue

            member_path = f"{entry.path.rstrip('/')}/{child.name}"
            if _is_ignored(entry.ignored_paths, member_path, child.name):
                logger.debug(f"Ignoring path {member_path} in local_collection {entry_name!r}")
                stats.ignored += 1
                continue
            loads.append(self._load_local(member_path, builder, stats, flags))

        await asyncio.gather(*loads)

    async def _load_github_collection(
        self,
        entry_name: str,
        entry: GitHubCollectionEntry,
        builder: _SkillMapBuilder,
        stats: ResolutionStats,
    ) -> None:
        root = normalize_repo_path(entry.path)
        try:
            children = await self.github_source.list_directory(entry.repo, root)
        except SkillError as e:
            logger.error(
                f"Expected github_collection {entry_name!r} ({entry.repo}/{root or '.'}) "
                f"to be a readable directory: {e.message}"
            )
            stats.failed += 1
            return

        flags = _collection_flags(entry)
        loads = []
        for child in children:
            if child.kind is EntryKind.FILE:
                logger.debug(f"Skipping non-directory entry {child.path or child.name} in {entry.repo}")
                continue
            if child.kind is not EntryKind.DIR:
                logger.warning(
                    f"Skipping unexpected entry {child.path or child.name} in github_collection "
                    f"{entry_name!r}"
                )
                continue

            member_path = normalize_repo_path(child.path) or join_repo_path(root, child.name)
            if _is_ignored(entry.ignored_paths, member_path, child.name, normalize_repo_path):
                logger.debug(f"Ignoring path {member_path} in github_collection {entry_name!r}")
                stats.ignored += 1
                continue
            loads.append(self._load_github(entry.repo, member_path, builder, stats, flags))

        await asyncio.gather(*loads)

    # ==================== 单个技能 ====================

    async def _load_local(
        self,
        path: str,
        builder: _SkillMapBuilder,
        stats: ResolutionStats,
        flags: VisibilityFlags | None = None,
    ) -> None:
        skill_path = f"{path.rstrip('/')}/{SKILL_DOCUMENT}"
        await self._load_skill(
            where=skill_path,
            fetch=lambda: self.local_source.read_file(skill_path),
            make_skill=lambda doc: LocalSkill(
                path=path, name=doc.matter.name, description=doc.matter.description
            ),
            builder=builder,
            stats=stats,
            flags=flags,
        )

    async def _load_github(
        self,
        repo: str,
        path: str,
        builder: _SkillMapBuilder,
        stats: ResolutionStats,
        flags: VisibilityFlags | None = None,
    ) -> None:
        skill_path = join_repo_path(path, SKILL_DOCUMENT)
        await self._load_skill(
            where=f"{repo}/{skill_path}",
            fetch=lambda: self.github_source.read_file(repo, skill_path),
            make_skill=lambda doc: GitHubSkill(
                repo=repo, path=path, name=doc.matter.name, description=doc.matter.description
            ),
            builder=builder,
            stats=stats,
            flags=flags,
        )

    async def _load_skill(
        self,
        where: str,
        fetch: Callable[[], Awaitable[str]],
        make_skill: Callable[[ParsedDocument], Skill],
        builder: _SkillMapBuilder,
        stats: ResolutionStats,
        flags: VisibilityFlags | None,
    ) -> None:
        try:
            raw = await fetch()
            doc = parse_skill_document(raw, source=where)
        except SkillError as e:
            logger.error(f"Failed to load skill at {where}: {e.message}")
            stats.failed += 1
            return
        except Exception as e:
            logger.error(f"Failed to load skill at {where}: {e}", exc_info=True)
            stats.failed += 1
            return

        skill = make_skill(doc)
        if flags is not None and not skill_visible(skill.name, flags):
            logger.debug(f"Skill {skill.name!r} at {where} filtered out by collection flags")
            stats.filtered += 1
            return

        existing = await builder.try_insert(skill, doc.body)
        if existing is not None:
            duplicate = DuplicateSkillName(
                f'Skill with name "{skill.name}" already loaded from path "{existing.location}". '
                f'Skipping duplicate at path "{skill.location}".',
                details={"existing": existing.location, "duplicate": skill.location},
            )
            logger.warning(duplicate.message, extra={"skill_error": duplicate.to_dict()})
            stats.duplicates += 1
            return

        stats.loaded += 1
        logger.debug(f"Loaded skill {skill.name!r} from {where}")
