"""
技能目录

从 skills.yaml 声明的来源（本地目录、本地目录集合、GitHub 路径、GitHub 集合）
聚合 SKILL.md 技能，合并到按名称索引的统一目录中:
- 配置按 TTL 缓存
- 所有来源并发加载，同名技能先到先得
- SKILL.md 正文顺带缓存
- 每个请求可以按 enable/disable 名单过滤
"""

from .cache import SKILL_DOCUMENT, ContentCache
from .catalog import (
    SKILLS_DESCRIPTION,
    SkillCatalog,
    format_directory_listing,
    format_skills_listing,
)
from .config_store import (
    ConfigStore,
    GitHubCollectionEntry,
    GitHubEntry,
    LocalCollectionEntry,
    LocalEntry,
    SourceEntry,
    parse_skill_config,
)
from .errors import (
    CatalogResolutionError,
    ConfigMalformed,
    ConfigUnreadable,
    ErrorType,
    InvalidSkillPath,
    MalformedMatter,
    SkillError,
    SkillNotFound,
    SourceFetchFailed,
    SourceNotFound,
    UnexpectedEntryKind,
    UnsupportedContentKind,
)
from .parser import ParsedDocument, SkillMatter, normalize_skill_name, parse_skill_document
from .resolver import CatalogResolver, ResolutionStats
from .sources import DirEntry, EntryKind, GitHubClient, GitHubSource, LocalSource
from .types import Catalog, GitHubSkill, LocalSkill, Skill, SkillSummary
from .visibility import NO_FLAGS, VisibilityFlags, parse_skills_flags, skill_visible

__all__ = [
    # Types
    "Catalog",
    "GitHubSkill",
    "LocalSkill",
    "Skill",
    "SkillSummary",
    # Parser
    "ParsedDocument",
    "SkillMatter",
    "normalize_skill_name",
    "parse_skill_document",
    # Config
    "ConfigStore",
    "GitHubCollectionEntry",
    "GitHubEntry",
    "LocalCollectionEntry",
    "LocalEntry",
    "SourceEntry",
    "parse_skill_config",
    # Sources
    "DirEntry",
    "EntryKind",
    "GitHubClient",
    "GitHubSource",
    "LocalSource",
    # Resolver / cache
    "CatalogResolver",
    "ContentCache",
    "ResolutionStats",
    "SKILL_DOCUMENT",
    # Visibility
    "NO_FLAGS",
    "VisibilityFlags",
    "parse_skills_flags",
    "skill_visible",
    # Catalog
    "SKILLS_DESCRIPTION",
    "SkillCatalog",
    "format_directory_listing",
    "format_skills_listing",
    # Errors
    "CatalogResolutionError",
    "ConfigMalformed",
    "ConfigUnreadable",
    "ErrorType",
    "InvalidSkillPath",
    "MalformedMatter",
    "SkillError",
    "SkillNotFound",
    "SourceFetchFailed",
    "SourceNotFound",
    "UnexpectedEntryKind",
    "UnsupportedContentKind",
]
