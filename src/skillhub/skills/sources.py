"""
内容来源适配器

统一的"读文件 / 列目录"能力:
- LocalSource: 本地文件系统（阻塞 I/O 放到线程中执行）
- GitHubSource: GitHub 仓库内容 (REST contents API, 通过 GitHubClient)

GitHub 的 contents API 对目录返回列表、对文件返回单个对象，
这里负责区分两者；"期望目录却得到文件"（或反之）对该来源是硬错误，
但不影响整个目录的解析。
"""

import asyncio
import base64
import binascii
import logging
import math
import os
import re
import time
from dataclasses import dataclass
from datetime import timezone
from email.utils import parsedate_to_datetime
from enum import Enum
from pathlib import Path
from typing import Any
from urllib.parse import quote

import httpx

from .errors import (
    ConfigMalformed,
    SourceFetchFailed,
    SourceNotFound,
    UnexpectedEntryKind,
    UnsupportedContentKind,
)

logger = logging.getLogger(__name__)

GITHUB_API_URL = "https://api.github.com"

_REPO_PATTERN = re.compile(r"^[A-Za-z0-9_.-]+/[A-Za-z0-9_.-]+$")
_REPEATED_SLASHES = re.compile(r"/{2,}")


class EntryKind(Enum):
    """目录条目类型"""

    FILE = "file"
    DIR = "dir"
    OTHER = "other"  # symlink / submodule / 设备文件等


@dataclass(frozen=True)
class DirEntry:
    """目录条目"""

    name: str
    kind: EntryKind
    path: str = ""  # GitHub 条目在仓库内的路径


def normalize_repo_path(path: str | None) -> str:
    """
    规范化仓库内路径

    - 折叠重复的 /
    - 去掉开头的 ./ 和 /
    - 去掉结尾的 /. 和 /
    - "." 视为仓库根目录 ""
    """
    if not path:
        return ""
    normalized = _REPEATED_SLASHES.sub("/", path.strip())
    while normalized.startswith("./") or normalized.startswith("/"):
        normalized = normalized[2:] if normalized.startswith("./") else normalized[1:]
    while normalized.endswith("/.") or normalized.endswith("/"):
        normalized = normalized[:-2] if normalized.endswith("/.") else normalized[:-1]
    return "" if normalized == "." else normalized


def join_repo_path(*parts: str) -> str:
    return normalize_repo_path("/".join(p for p in parts if p))


def parse_retry_after(value: str, now: float | None = None) -> float | None:
    """
    解析 Retry-After 头

    支持秒数和 HTTP-date 两种形式；无法解析时返回 None（不重试）。
    """
    now = time.time() if now is None else now
    try:
        seconds = float(value)
    except ValueError:
        pass
    else:
        return max(seconds, 0.0) if math.isfinite(seconds) else None
    try:
        when = parsedate_to_datetime(value)
    except (TypeError, ValueError, IndexError):
        return None
    if when.tzinfo is None:
        when = when.replace(tzinfo=timezone.utc)
    return max(when.timestamp() - now, 0.0)


def split_repo(repo: str) -> tuple[str, str]:
    """'owner/name' -> (owner, name)"""
    if not _REPO_PATTERN.fullmatch(repo or ""):
        raise ConfigMalformed(f"Invalid repo {repo!r}, expected 'owner/name'")
    owner, name = repo.split("/", 1)
    return owner, name


# ==================== 本地文件系统 ====================


class LocalSource:
    """本地文件系统来源"""

    def __init__(self, encoding: str = "utf-8"):
        self.encoding = encoding

    async def read_file(self, path: str) -> str:
        return await asyncio.to_thread(self._read_file_sync, path)

    async def list_directory(self, path: str) -> list[DirEntry]:
        return await asyncio.to_thread(self._list_directory_sync, path)

    async def stat_kind(self, path: str) -> EntryKind:
        return await asyncio.to_thread(self._stat_kind_sync, path)

    def _read_file_sync(self, path: str) -> str:
        try:
            return Path(path).read_text(encoding=self.encoding)
        except FileNotFoundError as e:
            raise SourceNotFound(f"File not found: {path}") from e
        except IsADirectoryError as e:
            raise UnexpectedEntryKind(f"Expected a file but found a directory: {path}") from e
        except (OSError, UnicodeDecodeError) as e:
            raise SourceFetchFailed(f"Failed to read {path}: {e}") from e

    def _list_directory_sync(self, path: str) -> list[DirEntry]:
        entries = []
        try:
            with os.scandir(path) as it:
                for item in it:
                    if item.is_dir():
                        kind = EntryKind.DIR
                    elif item.is_file():
                        kind = EntryKind.FILE
                    else:
                        kind = EntryKind.OTHER
                    entries.append(DirEntry(name=item.name, kind=kind))
        except FileNotFoundError as e:
            raise SourceNotFound(f"Directory not found: {path}") from e
        except NotADirectoryError as e:
            raise UnexpectedEntryKind(f"Expected a directory but found a file: {path}") from e
        except OSError as e:
            raise SourceFetchFailed(f"Failed to list {path}: {e}") from e

        entries.sort(key=lambda e: e.name)
        return entries

    def _stat_kind_sync(self, path: str) -> EntryKind:
        p = Path(path)
        if not p.exists():
            raise SourceNotFound(f"Path not found: {path}")
        if p.is_dir():
            return EntryKind.DIR
        if p.is_file():
            return EntryKind.FILE
        return EntryKind.OTHER


# ==================== GitHub ====================


class GitHubClient:
    """
    GitHub contents API 客户端

    限流策略:
    - 主限流 (x-ratelimit-remaining: 0): 等待到重置时间后重试，最多 retries 次
    - 次级限流 (仅有 retry-after): 等待时间不超过 max_secondary_retry_timeout 才重试
    """

    def __init__(
        self,
        token: str = "",
        base_url: str = GITHUB_API_URL,
        retries: int = 2,
        max_secondary_retry_timeout: float = 5,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.token = token
        self.base_url = base_url.rstrip("/")
        self.retries = retries
        self.max_secondary_retry_timeout = max_secondary_retry_timeout
        self.timeout = timeout
        self._transport = transport
        self._client: httpx.AsyncClient | None = None
        self._client_loop_id: int | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        """获取或创建 HTTP 客户端

        httpx.AsyncClient 绑定到创建时的事件循环，循环变化时重新创建。
        """
        try:
            current_loop_id = id(asyncio.get_running_loop())
        except RuntimeError:
            current_loop_id = None

        need_recreate = (
            self._client is None
            or self._client.is_closed
            or self._client_loop_id != current_loop_id
        )
        if need_recreate:
            if self._client is not None and not self._client.is_closed:
                try:
                    await self._client.aclose()
                except Exception as e:
                    logger.debug(f"[GitHub] Ignoring error while closing stale client: {e}")

            client_kwargs: dict[str, Any] = {
                "timeout": self.timeout,
                "follow_redirects": True,
                "headers": self._build_headers(),
            }
            if self._transport is not None:
                client_kwargs["transport"] = self._transport

            self._client = httpx.AsyncClient(**client_kwargs)
            self._client_loop_id = current_loop_id

        return self._client

    def _build_headers(self) -> dict:
        headers = {
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": "2022-11-28",
            "User-Agent": "skillhub",
        }
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    async def aclose(self) -> None:
        if self._client is not None and not self._client.is_closed:
            await self._client.aclose()
        self._client = None

    async def get_content(self, owner: str, repo: str, path: str) -> Any:
        """
        GET /repos/{owner}/{repo}/contents/{path}

        Returns:
            目录 -> 条目列表; 文件/其他 -> 单个对象

        Raises:
            SourceNotFound: 404
            SourceFetchFailed: 其他 HTTP 错误、超时、网络错误
        """
        url = f"{self.base_url}/repos/{owner}/{repo}/contents"
        if path:
            url += "/" + quote(path, safe="/")
        where = f"{owner}/{repo}/{path}" if path else f"{owner}/{repo}"

        client = await self._get_client()
        attempt = 0
        while True:
            try:
                response = await client.get(url)
            except httpx.TimeoutException as e:
                raise SourceFetchFailed(f"GitHub request timeout for {where}: {type(e).__name__}") from e
            except httpx.RequestError as e:
                detail = f"{type(e).__name__}: {e}" if str(e) else type(e).__name__
                raise SourceFetchFailed(f"GitHub request failed for {where}: {detail}") from e

            wait = self._rate_limit_wait(response, attempt)
            if wait is None:
                break
            attempt += 1
            await asyncio.sleep(wait)

        if response.status_code == 404:
            raise SourceNotFound(f"GitHub path not found: {where}")
        if response.status_code >= 400:
            raise SourceFetchFailed(
                f"GitHub API error ({response.status_code}) for {where}: {response.text[:200]}",
                details={"status": response.status_code},
            )
        return response.json()

    def _rate_limit_wait(self, response: httpx.Response, attempt: int) -> float | None:
        """返回重试前需要等待的秒数；None 表示不重试"""
        if response.status_code not in (403, 429):
            return None

        request = response.request
        retry_after_header = response.headers.get("retry-after")

        if response.headers.get("x-ratelimit-remaining") == "0":
            if retry_after_header is not None:
                retry_after = parse_retry_after(retry_after_header)
            else:
                retry_after = _seconds_until_reset(response.headers.get("x-ratelimit-reset"))
            if retry_after is None:
                logger.warning(
                    f"Request quota exhausted for request {request.method} {request.url} "
                    f"with unreadable rate limit headers, not retrying"
                )
                return None
            logger.warning(
                f"Request quota exhausted for request {request.method} {request.url} "
                f"(retryCount={attempt}), waiting {retry_after:.0f} seconds"
            )
            if attempt < self.retries:
                logger.info(f"Retrying after {retry_after:.0f} seconds")
                return retry_after
            logger.warning(f"Request failed after {self.retries} retries")
            return None

        if retry_after_header is not None:
            retry_after = parse_retry_after(retry_after_header)
            if retry_after is None:
                logger.warning(
                    f"SecondaryRateLimit occurred for request {request.method} {request.url} "
                    f"with unreadable retry-after {retry_after_header!r}, not retrying"
                )
                return None
            should_retry = retry_after <= self.max_secondary_retry_timeout and attempt < self.retries
            logger.warning(
                f"SecondaryRateLimit occurred for request {request.method} {request.url} "
                f"(retryAfterSeconds={retry_after:.0f}, shouldRetry={should_retry})"
            )
            return retry_after if should_retry else None

        return None


def _seconds_until_reset(reset_header: str | None) -> float | None:
    """x-ratelimit-reset 是 epoch 秒；缺失时立即重试"""
    if reset_header is None:
        return 0.0
    try:
        reset = float(reset_header)
    except ValueError:
        return None
    if not math.isfinite(reset):
        return None
    return max(reset - time.time(), 0.0)


class GitHubSource:
    """GitHub 仓库来源"""

    def __init__(self, client: GitHubClient):
        self.client = client

    async def _get(self, repo: str, path: str) -> Any:
        owner, name = split_repo(repo)
        return await self.client.get_content(owner, name, normalize_repo_path(path))

    async def read_file(self, repo: str, path: str) -> str:
        data = await self._get(repo, path)
        if isinstance(data, list) or data.get("type") != "file":
            raise UnexpectedEntryKind(
                f"Expected a file at {repo}/{normalize_repo_path(path)}",
                details={"repo": repo, "path": path},
            )
        return self._decode_file(data, repo, path)

    async def list_directory(self, repo: str, path: str) -> list[DirEntry]:
        data = await self._get(repo, path)
        if not isinstance(data, list):
            raise UnexpectedEntryKind(
                f"Expected a directory at {repo}/{normalize_repo_path(path)}",
                details={"repo": repo, "path": path, "type": data.get("type")},
            )
        return self._to_entries(data)

    async def get_node(self, repo: str, path: str) -> str | list[DirEntry]:
        """
        获取任意节点

        Returns:
            文件 -> 文本内容; 目录 -> 条目列表

        Raises:
            UnsupportedContentKind: symlink / submodule 等
        """
        data = await self._get(repo, path)
        if isinstance(data, list):
            return self._to_entries(data)
        if data.get("type") == "file":
            return self._decode_file(data, repo, path)
        raise UnsupportedContentKind(
            f"Unsupported content type {data.get('type')!r} at {repo}/{normalize_repo_path(path)}"
        )

    @staticmethod
    def _to_entries(data: list) -> list[DirEntry]:
        entries = []
        for item in data:
            item_type = item.get("type")
            if item_type == "dir":
                kind = EntryKind.DIR
            elif item_type == "file":
                kind = EntryKind.FILE
            else:
                kind = EntryKind.OTHER
            entries.append(DirEntry(name=item.get("name", ""), kind=kind, path=item.get("path", "")))
        return entries

    @staticmethod
    def _decode_file(data: dict, repo: str, path: str) -> str:
        encoding = data.get("encoding", "base64")
        content = data.get("content") or ""
        if encoding != "base64":
            raise SourceFetchFailed(
                f"Unsupported content encoding {encoding!r} for {repo}/{normalize_repo_path(path)}"
            )
        try:
            return base64.b64decode(content).decode("utf-8")
        except (binascii.Error, UnicodeDecodeError) as e:
            raise SourceFetchFailed(f"Failed to decode {repo}/{normalize_repo_path(path)}: {e}") from e
