"""
组装技能目录

把进程配置接到各组件上，CLI、HTTP API、MCP 服务共用同一套组装逻辑。
"""

import logging

from .config import Settings, settings as default_settings
from .skills import (
    CatalogResolver,
    ConfigStore,
    GitHubClient,
    GitHubSource,
    LocalSource,
    SkillCatalog,
)

logger = logging.getLogger(__name__)


def build_catalog(settings: Settings | None = None) -> SkillCatalog:
    """按配置创建 SkillCatalog"""
    settings = settings or default_settings

    config_store = ConfigStore(settings.skills_file_path, ttl_ms=settings.skills_ttl_ms)
    github_client = GitHubClient(
        token=settings.github_token,
        base_url=settings.github_api_url,
        retries=settings.github_request_retries,
        max_secondary_retry_timeout=settings.max_secondary_retry_timeout_seconds,
        timeout=settings.github_timeout_seconds,
    )
    resolver = CatalogResolver(
        config_store=config_store,
        local_source=LocalSource(),
        github_source=GitHubSource(github_client),
    )

    logger.debug(f"Skill catalog configured from {config_store.path}")
    return SkillCatalog(resolver)


async def close_catalog(catalog: SkillCatalog) -> None:
    """释放 GitHub HTTP 客户端"""
    await catalog.resolver.github_source.client.aclose()
