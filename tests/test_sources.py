"""
内容来源适配器测试

- 本地文件系统: 读文件、列目录、错误映射
- GitHub: 通过 httpx.MockTransport 模拟 contents API，包括限流重试
"""

import base64
import json
import time

import httpx
import pytest

from skillhub.skills import (
    ConfigMalformed,
    EntryKind,
    GitHubClient,
    GitHubSource,
    LocalSource,
    SourceFetchFailed,
    SourceNotFound,
    UnexpectedEntryKind,
    UnsupportedContentKind,
)
from skillhub.skills.sources import join_repo_path, normalize_repo_path, parse_retry_after, split_repo


def file_payload(path: str, text: str) -> dict:
    return {
        "type": "file",
        "name": path.rsplit("/", 1)[-1],
        "path": path,
        "encoding": "base64",
        "content": base64.b64encode(text.encode("utf-8")).decode("ascii"),
    }


def dir_payload(path: str, children: dict[str, str]) -> list[dict]:
    return [
        {"type": kind, "name": name, "path": f"{path}/{name}" if path else name}
        for name, kind in children.items()
    ]


class Recorder:
    """按顺序返回预设响应，并记录请求"""

    def __init__(self, *responses: httpx.Response):
        self.responses = list(responses)
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if len(self.responses) > 1:
            return self.responses.pop(0)
        return self.responses[0]


def make_source(handler, **kwargs) -> GitHubSource:
    client = GitHubClient(transport=httpx.MockTransport(handler), **kwargs)
    return GitHubSource(client)


class TestRepoPaths:
    @pytest.mark.parametrize(
        "raw, expected",
        [
            (None, ""),
            ("", ""),
            (".", ""),
            ("./", ""),
            ("/", ""),
            ("./skills/", "skills"),
            ("skills//pdf/.", "skills/pdf"),
            ("/skills/pdf", "skills/pdf"),
        ],
    )
    def test_normalize_repo_path(self, raw, expected):
        assert normalize_repo_path(raw) == expected

    def test_join_repo_path(self):
        assert join_repo_path("", "SKILL.md") == "SKILL.md"
        assert join_repo_path("skills/pdf/", "SKILL.md") == "skills/pdf/SKILL.md"

    def test_split_repo(self):
        assert split_repo("acme/skills") == ("acme", "skills")
        with pytest.raises(ConfigMalformed):
            split_repo("acme")
        with pytest.raises(ConfigMalformed):
            split_repo("acme/skills\n")


class TestLocalSource:
    @pytest.mark.asyncio
    async def test_read_and_list(self, tmp_path):
        (tmp_path / "b.md").write_text("bee", encoding="utf-8")
        (tmp_path / "a").mkdir()
        source = LocalSource()

        assert await source.read_file(str(tmp_path / "b.md")) == "bee"
        entries = await source.list_directory(str(tmp_path))
        assert [(e.name, e.kind) for e in entries] == [("a", EntryKind.DIR), ("b.md", EntryKind.FILE)]
        assert await source.stat_kind(str(tmp_path / "a")) is EntryKind.DIR

    @pytest.mark.asyncio
    async def test_errors(self, tmp_path):
        (tmp_path / "file.md").write_text("x", encoding="utf-8")
        source = LocalSource()

        with pytest.raises(SourceNotFound):
            await source.read_file(str(tmp_path / "missing.md"))
        with pytest.raises(SourceNotFound):
            await source.list_directory(str(tmp_path / "missing"))
        with pytest.raises(UnexpectedEntryKind):
            await source.list_directory(str(tmp_path / "file.md"))
        with pytest.raises(UnexpectedEntryKind):
            await source.read_file(str(tmp_path))


class TestGitHubSource:
    @pytest.mark.asyncio
    async def test_read_file(self):
        recorder = Recorder(httpx.Response(200, json=file_payload("skills/a/SKILL.md", "# 技能\n")))
        source = make_source(recorder, token="secret")

        assert await source.read_file("acme/skills", "./skills/a/SKILL.md") == "# 技能\n"

        request = recorder.requests[0]
        assert request.url.path == "/repos/acme/skills/contents/skills/a/SKILL.md"
        assert request.headers["Authorization"] == "Bearer secret"
        assert request.headers["Accept"] == "application/vnd.github+json"
        await source.client.aclose()

    @pytest.mark.asyncio
    async def test_repo_root_listing(self):
        recorder = Recorder(httpx.Response(200, json=dir_payload("", {"pdf": "dir", "README.md": "file"})))
        source = make_source(recorder)

        entries = await source.list_directory("acme/skills", "")

        assert recorder.requests[0].url.path == "/repos/acme/skills/contents"
        assert [(e.name, e.kind, e.path) for e in entries] == [
            ("pdf", EntryKind.DIR, "pdf"),
            ("README.md", EntryKind.FILE, "README.md"),
        ]
        assert "Authorization" not in recorder.requests[0].headers
        await source.client.aclose()

    @pytest.mark.asyncio
    async def test_entry_kind_mismatch(self):
        listing = httpx.Response(200, json=dir_payload("skills", {"a": "dir"}))
        single = httpx.Response(200, json=file_payload("skills", "not a dir"))

        with pytest.raises(UnexpectedEntryKind):
            await make_source(Recorder(listing)).read_file("acme/skills", "skills")
        with pytest.raises(UnexpectedEntryKind):
            await make_source(Recorder(single)).list_directory("acme/skills", "skills")

    @pytest.mark.asyncio
    async def test_get_node(self):
        source = make_source(Recorder(httpx.Response(200, json=dir_payload("s", {"x": "symlink", "y": "dir"}))))
        entries = await source.get_node("acme/skills", "s")
        assert [e.kind for e in entries] == [EntryKind.OTHER, EntryKind.DIR]

        source = make_source(Recorder(httpx.Response(200, json={"type": "symlink", "path": "s/x"})))
        with pytest.raises(UnsupportedContentKind):
            await source.get_node("acme/skills", "s/x")

    @pytest.mark.asyncio
    async def test_not_found(self):
        source = make_source(Recorder(httpx.Response(404, json={"message": "Not Found"})))
        with pytest.raises(SourceNotFound):
            await source.read_file("acme/skills", "missing/SKILL.md")

    @pytest.mark.asyncio
    async def test_server_error(self):
        source = make_source(Recorder(httpx.Response(500, text="boom")))
        with pytest.raises(SourceFetchFailed) as exc_info:
            await source.read_file("acme/skills", "a/SKILL.md")
        assert exc_info.value.details["status"] == 500

    @pytest.mark.asyncio
    async def test_network_error(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(SourceFetchFailed):
            await make_source(handler).read_file("acme/skills", "a/SKILL.md")

    @pytest.mark.asyncio
    async def test_invalid_base64(self):
        payload = {"type": "file", "encoding": "base64", "content": "!!!not base64"}
        source = make_source(Recorder(httpx.Response(200, content=json.dumps(payload))))
        with pytest.raises(SourceFetchFailed):
            await source.read_file("acme/skills", "a/SKILL.md")


class TestRateLimit:
    @pytest.mark.asyncio
    async def test_primary_rate_limit_retried(self):
        recorder = Recorder(
            httpx.Response(403, headers={"x-ratelimit-remaining": "0", "retry-after": "0"}),
            httpx.Response(200, json=file_payload("a/SKILL.md", "ok")),
        )
        source = make_source(recorder, retries=2)

        assert await source.read_file("acme/skills", "a/SKILL.md") == "ok"
        assert len(recorder.requests) == 2

    @pytest.mark.asyncio
    async def test_primary_rate_limit_uses_reset_header(self):
        reset = str(int(time.time()) - 10)
        recorder = Recorder(
            httpx.Response(429, headers={"x-ratelimit-remaining": "0", "x-ratelimit-reset": reset}),
            httpx.Response(200, json=file_payload("a/SKILL.md", "ok")),
        )

        assert await make_source(recorder).read_file("acme/skills", "a/SKILL.md") == "ok"
        assert len(recorder.requests) == 2

    @pytest.mark.asyncio
    async def test_primary_rate_limit_gives_up(self):
        recorder = Recorder(httpx.Response(403, headers={"x-ratelimit-remaining": "0", "retry-after": "0"}))
        source = make_source(recorder, retries=2)

        with pytest.raises(SourceFetchFailed) as exc_info:
            await source.read_file("acme/skills", "a/SKILL.md")
        assert exc_info.value.details["status"] == 403
        assert len(recorder.requests) == 3

    @pytest.mark.asyncio
    async def test_short_secondary_rate_limit_retried(self):
        recorder = Recorder(
            httpx.Response(403, headers={"retry-after": "0"}),
            httpx.Response(200, json=file_payload("a/SKILL.md", "ok")),
        )

        assert await make_source(recorder).read_file("acme/skills", "a/SKILL.md") == "ok"
        assert len(recorder.requests) == 2

    @pytest.mark.asyncio
    async def test_long_secondary_rate_limit_not_retried(self):
        recorder = Recorder(httpx.Response(403, headers={"retry-after": "60"}))
        source = make_source(recorder, max_secondary_retry_timeout=5)

        with pytest.raises(SourceFetchFailed):
            await source.read_file("acme/skills", "a/SKILL.md")
        assert len(recorder.requests) == 1

    @pytest.mark.asyncio
    async def test_plain_forbidden_not_retried(self):
        recorder = Recorder(httpx.Response(403, json={"message": "Forbidden"}))

        with pytest.raises(SourceFetchFailed):
            await make_source(recorder).read_file("acme/skills", "a/SKILL.md")
        assert len(recorder.requests) == 1

    @pytest.mark.asyncio
    async def test_http_date_retry_after_retried(self):
        """Retry-After 也可以是 HTTP-date；已过去的时间点立即重试"""
        recorder = Recorder(
            httpx.Response(
                403,
                headers={"x-ratelimit-remaining": "0", "retry-after": "Wed, 21 Oct 2015 07:28:00 GMT"},
            ),
            httpx.Response(200, json=file_payload("a/SKILL.md", "ok")),
        )

        assert await make_source(recorder).read_file("acme/skills", "a/SKILL.md") == "ok"
        assert len(recorder.requests) == 2

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "headers",
        [
            {"x-ratelimit-remaining": "0", "retry-after": "soon"},
            {"x-ratelimit-remaining": "0", "x-ratelimit-reset": "tomorrow"},
            {"retry-after": "whenever"},
        ],
    )
    async def test_unreadable_rate_limit_headers_fail_cleanly(self, headers):
        """无法解析的限流头不重试，按普通 HTTP 错误上报"""
        recorder = Recorder(httpx.Response(403, headers=headers))

        with pytest.raises(SourceFetchFailed) as exc_info:
            await make_source(recorder).read_file("acme/skills", "a/SKILL.md")
        assert exc_info.value.details["status"] == 403
        assert len(recorder.requests) == 1


class TestParseRetryAfter:
    def test_seconds(self):
        assert parse_retry_after("12") == 12.0
        assert parse_retry_after("-3") == 0.0

    def test_http_date_relative_to_now(self):
        now = 1445412470.0  # 2015-10-21 07:27:50 UTC
        assert parse_retry_after("Wed, 21 Oct 2015 07:28:00 GMT", now=now) == pytest.approx(10.0)

    @pytest.mark.parametrize("value", ["", "soon", "inf", "nan"])
    def test_unreadable(self, value):
        assert parse_retry_after(value) is None
