"""
SkillHub MCP 服务器

把技能目录以 MCP 工具和资源的形式暴露给大模型客户端。

启动方式：
    python -m skillhub.mcp_server
    skillhub mcp

工具：
    - view: 列出技能，或查看技能内的文件/目录；描述中附带当前技能清单

资源：
    - skills://{name}: 技能的 SKILL.md（每个可见技能都会出现在资源列表中）
    - skills://{name}/{path}: 技能内的文件或目录列表，嵌套路径写成 %2F
"""

import logging
import sys
from contextlib import asynccontextmanager
from urllib.parse import unquote

from mcp.server.fastmcp import FastMCP
from mcp.server.fastmcp.exceptions import ResourceError, ToolError
from mcp.types import Resource, Tool

from .skills import SKILLS_DESCRIPTION, SkillCatalog, SkillError, VisibilityFlags

logger = logging.getLogger(__name__)

INSTRUCTIONS = """SkillHub MCP Server - 技能目录服务。

可用工具：
- view: 不带参数时列出所有技能；带 skill_name 时返回该技能的 SKILL.md；
  再带 path 时返回技能内的文件内容或目录列表。

可用资源：
- skills://<name>: 技能的 SKILL.md
- skills://<name>/<path>: 技能内的文件或目录

使用示例：
- 列出技能：view()
- 查看技能：view(skill_name="pdf-tools")
- 查看资源：view(skill_name="pdf-tools", path="scripts")
"""

VIEW_TOOL = "view"
SKILL_MIME_TYPE = "text/markdown"


async def view_skill(
    catalog: SkillCatalog,
    flags: VisibilityFlags | None,
    skill_name: str = "",
    path: str = "",
) -> str:
    """
    view 工具的实现

    skill_name 为空或 "." 时返回技能清单。
    """
    name = skill_name.strip()
    if not name or name == ".":
        return await catalog.list_skills_text(flags)
    return await catalog.view(flags, name, path or None)


async def read_skill_resource(
    catalog: SkillCatalog,
    flags: VisibilityFlags | None,
    name: str,
    path: str | None = None,
) -> str:
    """skills:// 资源的实现，SkillError 转成 ResourceError"""
    try:
        return await catalog.view(flags, name, path)
    except SkillError as e:
        logger.warning(f"Reading skills://{name}/{path or ''} failed: {e.message}")
        raise ResourceError(e.message) from e


class SkillHubMCP(FastMCP):
    """
    技能目录 MCP 服务器

    view 工具描述和资源列表在每次 list 请求时按当前目录生成，
    目录刷新后客户端重新 list 即可看到变化。目录解析失败时
    退回静态描述和模板资源，不影响 list 请求本身。
    """

    def __init__(self, catalog: SkillCatalog, flags: VisibilityFlags | None = None, **settings):
        super().__init__(**settings)
        self.catalog = catalog
        self.flags = flags

    async def list_tools(self) -> list[Tool]:
        tools = await super().list_tools()
        try:
            description = await self.catalog.build_view_description(self.flags)
        except SkillError as e:
            logger.warning(f"Failed to list skills for the {VIEW_TOOL} tool description: {e.message}")
            return tools
        return [
            tool.model_copy(update={"description": description}) if tool.name == VIEW_TOOL else tool
            for tool in tools
        ]

    async def list_resources(self) -> list[Resource]:
        resources = await super().list_resources()
        try:
            skills = await self.catalog.list_visible(self.flags)
        except SkillError as e:
            logger.warning(f"Failed to list skill resources: {e.message}")
            return resources
        return resources + [
            Resource(
                uri=f"skills://{skill.name}",
                name=skill.name,
                description=skill.description,
                mimeType=SKILL_MIME_TYPE,
            )
            for skill in skills
        ]


def create_mcp_server(catalog: SkillCatalog, flags: VisibilityFlags | None = None) -> SkillHubMCP:
    """
    创建 MCP 服务器实例

    Args:
        catalog: 技能目录
        flags: 对本服务所有请求生效的可见性名单
    """

    @asynccontextmanager
    async def lifespan(server: FastMCP):
        try:
            yield {}
        finally:
            await catalog.resolver.github_source.client.aclose()

    mcp = SkillHubMCP(catalog, flags, name="skillhub", instructions=INSTRUCTIONS, lifespan=lifespan)

    @mcp.tool(name=VIEW_TOOL, description=SKILLS_DESCRIPTION)
    async def view(skill_name: str = "", path: str = "") -> str:
        try:
            return await view_skill(catalog, flags, skill_name, path)
        except SkillError as e:
            logger.warning(f"view({skill_name!r}, {path!r}) failed: {e.message}")
            raise ToolError(e.message) from e

    @mcp.resource("skills://{name}", mime_type=SKILL_MIME_TYPE)
    async def skill_document(name: str) -> str:
        """技能的 SKILL.md"""
        return await read_skill_resource(catalog, flags, name)

    @mcp.resource("skills://{name}/{path}", mime_type="text/plain")
    async def skill_file(name: str, path: str) -> str:
        """技能内的文件内容或目录列表"""
        return await read_skill_resource(catalog, flags, name, unquote(path))

    return mcp




def main(flags: VisibilityFlags | None = None) -> None:
    """以 stdio 方式运行（日志只能写 stderr）"""
    from .config import settings
    from .logging import setup_logging
    from .service import build_catalog

    setup_logging(
        log_dir=settings.log_dir_path,
        log_level=settings.log_level,
        log_format=settings.log_format,
        log_file_prefix=settings.log_file_prefix,
        log_max_size_mb=settings.log_max_size_mb,
        log_backup_count=settings.log_backup_count,
        log_to_console=settings.log_to_console,
        log_to_file=settings.log_to_file,
        console_stream=sys.stderr,
    )
    create_mcp_server(build_catalog(settings), flags).run()


if __name__ == "__main__":
    main()
