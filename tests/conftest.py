"""
测试公共夹具

- write_skill: 在临时目录中创建 SKILL.md
- fake_github: 内存中的 GitHub 来源，可设置延迟并记录调用
- make_catalog: 从 skills.yaml 文本组装 SkillCatalog
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from pathlib import Path

import pytest

from skillhub.skills import (
    CatalogResolver,
    ConfigStore,
    DirEntry,
    EntryKind,
    LocalSource,
    SkillCatalog,
    SourceNotFound,
    UnexpectedEntryKind,
    UnsupportedContentKind,
)
from skillhub.skills.sources import join_repo_path


def skill_markdown(name: str, description: str = "A test skill", body: str = "# Body\n") -> str:
    return f"---\nname: {name}\ndescription: {description}\n---\n{body}"


@dataclass
class _Snapshot:
    files: dict[tuple[str, str], str]
    dirs: dict[tuple[str, str], list[DirEntry]]
    others: set[tuple[str, str]]


class FakeGitHubSource:
    """与 GitHubSource 接口一致的内存实现"""

    def __init__(self, delay: float = 0.0):
        self.delay = delay
        self.files: dict[tuple[str, str], str] = {}
        self.dirs: dict[tuple[str, str], list[DirEntry]] = {}
        self.others: set[tuple[str, str]] = set()
        self.calls: list[tuple[str, str, str]] = []

    def add_file(self, repo: str, path: str, content: str) -> None:
        path = join_repo_path(path)
        self.files[(repo, path)] = content
        parent, _, name = path.rpartition("/")
        self._add_child(repo, parent, DirEntry(name=name, kind=EntryKind.FILE, path=path))

    def add_skill(self, repo: str, path: str, name: str, description: str = "A test skill") -> None:
        self.add_file(repo, join_repo_path(path, "SKILL.md"), skill_markdown(name, description))
        self._ensure_dir(repo, join_repo_path(path))

    def add_other(self, repo: str, path: str) -> None:
        path = join_repo_path(path)
        self.others.add((repo, path))
        parent, _, name = path.rpartition("/")
        self._add_child(repo, parent, DirEntry(name=name, kind=EntryKind.OTHER, path=path))

    def _ensure_dir(self, repo: str, path: str) -> None:
        if (repo, path) in self.dirs:
            return
        self.dirs[(repo, path)] = []
        if path:
            parent, _, name = path.rpartition("/")
            self._add_child(repo, parent, DirEntry(name=name, kind=EntryKind.DIR, path=path))

    def _add_child(self, repo: str, parent: str, entry: DirEntry) -> None:
        self._ensure_dir(repo, parent)
        children = self.dirs[(repo, parent)]
        if all(c.name != entry.name for c in children):
            children.append(entry)

    async def _touch(self, op: str, repo: str, path: str) -> tuple[str, _Snapshot]:
        """记录调用，并在延迟之前取数据快照（模拟请求发出时刻的仓库状态）"""
        path = join_repo_path(path)
        self.calls.append((op, repo, path))
        snapshot = _Snapshot(
            files=dict(self.files),
            dirs={key: list(children) for key, children in self.dirs.items()},
            others=set(self.others),
        )
        if self.delay:
            await asyncio.sleep(self.delay)
        return path, snapshot

    async def read_file(self, repo: str, path: str) -> str:
        path, state = await self._touch("read_file", repo, path)
        if (repo, path) in state.files:
            return state.files[(repo, path)]
        if (repo, path) in state.dirs:
            raise UnexpectedEntryKind(f"Expected a file at {repo}/{path}")
        raise SourceNotFound(f"GitHub path not found: {repo}/{path}")

    async def list_directory(self, repo: str, path: str) -> list[DirEntry]:
        path, state = await self._touch("list_directory", repo, path)
        if (repo, path) in state.dirs:
            return state.dirs[(repo, path)]
        if (repo, path) in state.files:
            raise UnexpectedEntryKind(f"Expected a directory at {repo}/{path}")
        raise SourceNotFound(f"GitHub path not found: {repo}/{path}")

    async def get_node(self, repo: str, path: str) -> str | list[DirEntry]:
        path, state = await self._touch("get_node", repo, path)
        if (repo, path) in state.dirs:
            return state.dirs[(repo, path)]
        if (repo, path) in state.files:
            return state.files[(repo, path)]
        if (repo, path) in state.others:
            raise UnsupportedContentKind(f"Unsupported content type 'symlink' at {repo}/{path}")
        raise SourceNotFound(f"GitHub path not found: {repo}/{path}")

    def fetched_paths(self, op: str = "read_file") -> list[str]:
        return [path for call_op, _, path in self.calls if call_op == op]


@pytest.fixture
def write_skill(tmp_path: Path):
    """write_skill("dir", "name") -> 技能目录路径"""

    def _write(
        dirname: str,
        name: str,
        description: str = "A test skill",
        body: str = "# Body\n",
        root: Path | None = None,
    ) -> Path:
        skill_dir = (root or tmp_path) / dirname
        skill_dir.mkdir(parents=True, exist_ok=True)
        (skill_dir / "SKILL.md").write_text(skill_markdown(name, description, body), encoding="utf-8")
        return skill_dir

    return _write


@pytest.fixture
def fake_github():
    return FakeGitHubSource()


@pytest.fixture
def skills_file(tmp_path: Path) -> Path:
    return tmp_path / "skills.yaml"


@pytest.fixture
def make_resolver(skills_file: Path, fake_github: FakeGitHubSource):
    """make_resolver(yaml_text) -> CatalogResolver（本地来源用真实文件系统）"""

    def _make(config_text: str, github: FakeGitHubSource | None = None) -> CatalogResolver:
        skills_file.write_text(config_text, encoding="utf-8")
        return CatalogResolver(
            config_store=ConfigStore(skills_file, ttl_ms=60_000),
            local_source=LocalSource(),
            github_source=github or fake_github,
        )

    return _make


@pytest.fixture
def make_catalog(make_resolver):
    def _make(config_text: str, github: FakeGitHubSource | None = None) -> SkillCatalog:
        return SkillCatalog(make_resolver(config_text, github))

    return _make
