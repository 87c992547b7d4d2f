"""
技能来源配置

skills.yaml 把条目名映射到四种来源之一:

```yaml
my-skill:
  type: local
  path: ./skills/my-skill

team-skills:
  type: local_collection
  path: ./team-skills
  disabled_skills: [draft]
  ignored_paths: [./team-skills/wip]

remote-one:
  type: github
  repo: owner/name
  path: skills/one

remote-all:
  type: github_collection
  repo: owner/name
  path: skills
  enabled_skills: [alpha, beta]
```

ConfigStore 按 TTL 缓存解析结果；过期后重新读取并整体替换缓存。
读取或解析失败会抛给调用方，已有缓存保持不变。
"""

import asyncio
import logging
import time
from collections.abc import Callable, Mapping
from pathlib import Path
from types import MappingProxyType
from typing import Annotated, Literal, Union

import yaml
from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError, field_validator

from .errors import ConfigMalformed, ConfigUnreadable
from .sources import split_repo

logger = logging.getLogger(__name__)


class _Entry(BaseModel):
    model_config = ConfigDict(frozen=True)


class _CollectionFlags(_Entry):
    """集合来源的过滤条件（大小写敏感）"""

    enabled_skills: frozenset[str] | None = None
    disabled_skills: frozenset[str] | None = None
    ignored_paths: frozenset[str] | None = None


def _validate_repo(value: str) -> str:
    try:
        split_repo(value)
    except ConfigMalformed as e:
        raise ValueError(e.message) from e
    return value


class LocalEntry(_Entry):
    type: Literal["local"]
    path: str


class LocalCollectionEntry(_CollectionFlags):
    type: Literal["local_collection"]
    path: str


class GitHubEntry(_Entry):
    type: Literal["github"]
    repo: str
    path: str | None = None

    @field_validator("repo")
    @classmethod
    def _check_repo(cls, value: str) -> str:
        return _validate_repo(value)


class GitHubCollectionEntry(_CollectionFlags):
    type: Literal["github_collection"]
    repo: str
    path: str | None = None

    @field_validator("repo")
    @classmethod
    def _check_repo(cls, value: str) -> str:
        return _validate_repo(value)


SourceEntry = Annotated[
    Union[LocalEntry, LocalCollectionEntry, GitHubEntry, GitHubCollectionEntry],
    Field(discriminator="type"),
]

CollectionEntry = Union[LocalCollectionEntry, GitHubCollectionEntry]

_config_adapter = TypeAdapter(dict[str, SourceEntry])


def parse_skill_config(text: str, source: str = "skills config") -> Mapping[str, SourceEntry]:
    """
    解析 skills.yaml 内容

    Raises:
        ConfigMalformed: YAML 无效或不符合条目结构
    """
    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise ConfigMalformed(f"Invalid YAML in {source}: {e}") from e

    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ConfigMalformed(f"{source} must be a mapping of entry name to source")

    try:
        entries = _config_adapter.validate_python(data)
    except ValidationError as e:
        raise ConfigMalformed(
            f"Invalid skill source entries in {source}: {e.error_count()} error(s)",
            details={"errors": [err["msg"] for err in e.errors()]},
        ) from e

    return MappingProxyType(entries)


class ConfigStore:
    """
    技能来源配置存储

    - TTL 内直接返回缓存
    - 过期后重新读取，成功才替换缓存（读者不会看到半更新的映射）
    - 失败时抛出 ConfigUnreadable / ConfigMalformed
    """

    def __init__(
        self,
        path: str | Path,
        ttl_ms: int = 5 * 60 * 1000,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.path = Path(path)
        self.ttl_ms = ttl_ms
        self._clock = clock
        self._config: Mapping[str, SourceEntry] | None = None
        self._loaded_at: float = 0.0

    def _is_fresh(self) -> bool:
        if self._config is None:
            return False
        return (self._clock() - self._loaded_at) * 1000 < self.ttl_ms

    async def get_config(self) -> Mapping[str, SourceEntry]:
        if self._is_fresh():
            return self._config

        try:
            text = await asyncio.to_thread(self.path.read_text, encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            logger.error(f"Failed to read skills config file {self.path}: {e}")
            raise ConfigUnreadable(f"Cannot read skills config {self.path}: {e}") from e

        try:
            config = parse_skill_config(text, source=str(self.path))
        except ConfigMalformed as e:
            logger.error(f"Failed to parse skills config file {self.path}: {e.message}")
            raise

        self._config = config
        self._loaded_at = self._clock()
        logger.info(f"Loaded {len(config)} skill source(s) from {self.path}")
        return config

    def invalidate(self) -> None:
        """下一次 get_config() 强制重新读取"""
        self._loaded_at = float("-inf")
