"""
SkillHub 配置模块
"""

from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """应用配置"""

    # === 技能来源 ===
    skills_file: str = Field(default="./skills.yaml", description="技能来源配置文件 (SKILLS_FILE)")
    skills_ttl_ms: int = Field(
        default=5 * 60 * 1000,
        description="技能来源配置缓存时间（毫秒），过期后重新读取 skills.yaml",
    )

    # === GitHub ===
    github_token: str = Field(default="", description="GitHub Token（可选，提高限流额度）")
    github_api_url: str = Field(default="https://api.github.com", description="GitHub API 地址")
    github_request_retries: int = Field(
        default=2, description="GitHub 主限流时的最大重试次数"
    )
    max_secondary_retry_timeout_seconds: int = Field(
        default=5,
        description="GitHub 次级限流等待上限（秒），超过则不重试",
    )
    github_timeout_seconds: float = Field(default=30.0, description="GitHub 请求超时（秒）")

    # 路径配置
    project_root: Path = Field(
        default_factory=lambda: Path.cwd(), description="项目根目录 (默认为当前工作目录)"
    )

    # === 日志配置 ===
    log_level: str = Field(default="INFO", description="日志级别")
    log_dir: str = Field(default="logs", description="日志目录")
    log_file_prefix: str = Field(default="skillhub", description="日志文件前缀")
    log_max_size_mb: int = Field(default=10, description="单个日志文件最大大小（MB）")
    log_backup_count: int = Field(default=30, description="保留的日志文件数量")
    log_format: str = Field(
        default="%(asctime)s - %(name)s - %(levelname)s - %(message)s", description="日志格式"
    )
    log_to_console: bool = Field(default=True, description="是否输出到控制台")
    log_to_file: bool = Field(default=False, description="是否输出到文件")

    # === HTTP API ===
    api_host: str = Field(default="127.0.0.1", description="HTTP API 监听地址")
    api_port: int = Field(default=18910, description="HTTP API 端口")

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
        # 忽略空字符串环境变量（例如 .env 里写了 SKILLS_TTL_MS=）
        "env_ignore_empty": True,
    }

    @property
    def skills_file_path(self) -> Path:
        """技能来源配置文件完整路径"""
        path = Path(self.skills_file)
        return path if path.is_absolute() else self.project_root / path

    @property
    def log_dir_path(self) -> Path:
        """日志目录完整路径"""
        return self.project_root / self.log_dir


# 全局配置实例
settings = Settings()
