"""
技能内容缓存

解析目录时顺带缓存每个技能的 SKILL.md 正文，
列出技能后紧接着查看 SKILL.md 时不必再次获取。
未命中不是错误，只是回退到内容来源重新获取。
"""

SKILL_DOCUMENT = "SKILL.md"


class ContentCache:
    """(skill_name, relative_path) -> 文档正文"""

    def __init__(self):
        self._entries: dict[tuple[str, str], str] = {}

    def get(self, skill_name: str, relative_path: str = SKILL_DOCUMENT) -> str | None:
        return self._entries.get((skill_name, relative_path))

    def put(self, skill_name: str, relative_path: str, content: str) -> None:
        self._entries[(skill_name, relative_path)] = content

    def __len__(self) -> int:
        return len(self._entries)
