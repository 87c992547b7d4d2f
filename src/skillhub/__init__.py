"""
SkillHub - 技能目录服务

聚合本地目录与 GitHub 仓库中的 SKILL.md 技能，
通过 CLI、HTTP API 和 MCP 提供按名称查看。
"""


def _resolve_version() -> str:
    """
    解析版本号

    优先读取源码根目录的 pyproject.toml（editable 安装时始终最新），
    否则回退到已安装包的元数据。
    """
    from pathlib import Path

    pyproject_path = Path(__file__).parent.parent.parent / "pyproject.toml"
    if pyproject_path.exists():
        import tomllib

        try:
            with open(pyproject_path, "rb") as f:
                return tomllib.load(f)["project"]["version"]
        except (OSError, KeyError, tomllib.TOMLDecodeError):
            pass

    from importlib.metadata import PackageNotFoundError, version

    try:
        return version("skillhub")
    except PackageNotFoundError:
        return "0.0.0-dev"


__version__ = _resolve_version()
