"""
技能与技能目录的数据类型

- LocalSkill / GitHubSkill: 解析完成后的技能，不可变
- Catalog: name -> Skill 的有序只读映射（按名称升序）
"""

from collections.abc import Iterator, Mapping
from dataclasses import dataclass
from typing import ClassVar, Literal, Union


@dataclass(frozen=True)
class LocalSkill:
    """本地目录中的技能，path 为技能根目录（包含 SKILL.md）"""

    path: str
    name: str
    description: str

    type: ClassVar[Literal["local"]] = "local"

    @property
    def location(self) -> str:
        return self.path


@dataclass(frozen=True)
class GitHubSkill:
    """GitHub 仓库中的技能，path 为仓库内相对路径（"" 表示仓库根目录）"""

    repo: str
    path: str
    name: str
    description: str

    type: ClassVar[Literal["github"]] = "github"

    @property
    def location(self) -> str:
        return f"{self.repo}/{self.path}" if self.path else self.repo


Skill = Union[LocalSkill, GitHubSkill]


@dataclass(frozen=True)
class SkillSummary:
    """技能清单条目 (name + description)"""

    name: str
    description: str


class Catalog(Mapping[str, Skill]):
    """
    技能目录

    构建后不可修改；新的解析结果整体替换旧目录，而不是增量更新。
    """

    __slots__ = ("_skills",)

    def __init__(self, skills: Mapping[str, Skill] | None = None):
        items = sorted((skills or {}).items(), key=lambda kv: kv[0])
        self._skills: dict[str, Skill] = dict(items)

    def __getitem__(self, name: str) -> Skill:
        return self._skills[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._skills)

    def __len__(self) -> int:
        return len(self._skills)

    def __repr__(self) -> str:
        return f"Catalog({list(self._skills)!r})"

    def summaries(self) -> list[SkillSummary]:
        return [SkillSummary(s.name, s.description) for s in self._skills.values()]
