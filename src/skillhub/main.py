"""
SkillHub CLI 入口

使用 Typer 和 Rich 提供命令行界面:
- 列出 / 查看技能
- 强制刷新技能目录
- 启动 HTTP API 或 MCP (stdio) 服务
"""

import asyncio
import logging
import sys

import typer
from rich.console import Console
from rich.markdown import Markdown
from rich.panel import Panel
from rich.table import Table

from .config import settings
from .logging import setup_logging
from .service import build_catalog, close_catalog
from .skills import SkillCatalog, SkillError, VisibilityFlags, parse_skills_flags

logger = logging.getLogger(__name__)

# Typer 应用
app = typer.Typer(
    name="skillhub",
    help="SkillHub - 技能目录服务",
    add_completion=False,
)

# Rich 控制台
console = Console()


def _setup_logging(stream=None) -> None:
    setup_logging(
        log_dir=settings.log_dir_path,
        log_level=settings.log_level,
        log_format=settings.log_format,
        log_file_prefix=settings.log_file_prefix,
        log_max_size_mb=settings.log_max_size_mb,
        log_backup_count=settings.log_backup_count,
        log_to_console=settings.log_to_console,
        log_to_file=settings.log_to_file,
        console_stream=stream,
    )


def _flags(enabled: str | None, disabled: str | None) -> VisibilityFlags:
    return parse_skills_flags({"enabled_skills": enabled, "disabled_skills": disabled})


def _run_with_catalog(action):
    """在新的事件循环里创建目录并执行 action(catalog)，SkillError 转为退出码 1"""

    async def _inner():
        catalog = build_catalog(settings)
        try:
            return await action(catalog)
        finally:
            await close_catalog(catalog)

    try:
        return asyncio.run(_inner())
    except SkillError as e:
        console.print(f"[red]✗[/red] {e.message}")
        raise typer.Exit(1)


@app.callback(invoke_without_command=True)
def main(
    ctx: typer.Context,
    version: bool = typer.Option(False, "--version", "-v", help="显示版本信息"),
):
    """
    SkillHub - 技能目录服务

    从 skills.yaml 声明的本地目录和 GitHub 仓库聚合 SKILL.md 技能
    """
    if version:
        from . import __version__

        console.print(f"SkillHub v{__version__}")
        raise typer.Exit(0)

    if ctx.invoked_subcommand is None:
        console.print(ctx.get_help())
        raise typer.Exit(0)

    # MCP stdio 模式下 stdout 是协议通道，日志由该命令自己配置到 stderr
    if ctx.invoked_subcommand != "mcp":
        _setup_logging(sys.stderr)


@app.command(name="list")
def list_skills(
    enabled: str | None = typer.Option(None, "--enabled", help="只显示这些技能（逗号分隔）"),
    disabled: str | None = typer.Option(None, "--disabled", help="隐藏这些技能（逗号分隔）"),
):
    """列出可见技能"""
    flags = _flags(enabled, disabled)

    async def _list(catalog: SkillCatalog):
        return await catalog.list_visible(flags)

    summaries = _run_with_catalog(_list)
    if not summaries:
        console.print("[yellow]暂无可用技能[/yellow]")
        console.print(f"在 {settings.skills_file_path} 中声明技能来源")
        return

    table = Table(title="可用技能")
    table.add_column("名称", style="cyan")
    table.add_column("描述")
    for summary in summaries:
        table.add_row(summary.name, summary.description)
    console.print(table)


@app.command()
def view(
    name: str = typer.Argument(..., help="技能名称"),
    path: str | None = typer.Argument(None, help="技能内的相对路径（默认 SKILL.md，'.' 列出目录）"),
    raw: bool = typer.Option(False, "--raw", help="原样输出，不渲染 Markdown"),
):
    """查看技能文档、资源文件或目录"""

    async def _view(catalog: SkillCatalog):
        return await catalog.view(None, name, path)

    content = _run_with_catalog(_view)
    shown = path or "SKILL.md"
    if raw or not shown.endswith(".md"):
        console.print(content, markup=False, highlight=False)
    else:
        console.print(Panel(Markdown(content), title=f"{name}/{shown}", border_style="green"))


@app.command()
def refresh():
    """强制重新解析所有技能来源"""

    async def _refresh(catalog: SkillCatalog):
        return await catalog.refresh()

    catalog = _run_with_catalog(_refresh)
    console.print(f"[green]✓[/green] 技能目录已刷新: {len(catalog)} 个技能")


@app.command()
def serve(
    host: str = typer.Option(settings.api_host, "--host", help="监听地址"),
    port: int = typer.Option(settings.api_port, "--port", help="监听端口"),
):
    """启动 HTTP API 服务"""
    from .api import start_api_server

    console.print(f"[green]✓[/green] HTTP API: http://{host}:{port}")
    try:
        asyncio.run(start_api_server(build_catalog(settings), host=host, port=port))
    except KeyboardInterrupt:
        pass
    console.print("[green]✓[/green] 服务已停止")


@app.command()
def mcp(
    enabled: str | None = typer.Option(None, "--enabled", help="只暴露这些技能（逗号分隔）"),
    disabled: str | None = typer.Option(None, "--disabled", help="隐藏这些技能（逗号分隔）"),
):
    """以 stdio 方式运行 MCP 服务"""
    from .mcp_server import main as run_mcp

    run_mcp(_flags(enabled, disabled))


if __name__ == "__main__":
    app()
