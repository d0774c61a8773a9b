"""Tests for the HTTP clients using httpx.MockTransport.

No network access: every client gets an AsyncClient backed by a handler that
records requests and returns canned responses.
"""

from __future__ import annotations

import json

import httpx
import pytest
from prometheus_client import REGISTRY

from plugin_sync_common import ClientError, EnrichmentError, StoreError

from plugin_sync.clients import AlgoliaClient, GitHubClient, NpmClient, WebflowClient
from plugin_sync.clients.base import BaseClient, error_detail, is_retryable
from plugin_sync.models import IndexItem
from plugin_sync.rate_limiter import RateLimiter

pytestmark = pytest.mark.unit


class Recorder:
    """MockTransport handler returning queued responses in order."""

    def __init__(self, *responses):
        self.responses = list(responses)
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        response = self.responses.pop(0) if len(self.responses) > 1 else self.responses[0]
        if isinstance(response, Exception):
            raise response
        return response

    def json_body(self, index: int = -1):
        return json.loads(self.requests[index].content)


def attach(client: BaseClient, handler: Recorder) -> BaseClient:
    client._client = httpx.AsyncClient(
        base_url=client.base_url,
        headers=client.headers,
        transport=httpx.MockTransport(handler),
    )
    return client


def fast() -> dict:
    """No backoff and no throttling."""
    return {"retry_backoff": 0, "rate_limiter": RateLimiter(requests_per_second=1000, burst_size=1000)}


# =============================================================================
# Base client
# =============================================================================


class TestRetryPolicy:
    """429, 5xx and transport errors are retried; other 4xx are not."""

    @pytest.mark.parametrize("status,expected", [(429, True), (500, True), (503, True), (400, False), (404, False)])
    def test_status_codes(self, status, expected):
        request = httpx.Request("GET", "https://example.com")
        response = httpx.Response(status, request=request)
        error = httpx.HTTPStatusError("x", request=request, response=response)

        assert is_retryable(error) is expected

    def test_transport_error(self):
        assert is_retryable(httpx.ConnectError("refused"))

    def test_other_exception(self):
        assert not is_retryable(ValueError("x"))

    def test_error_detail_prefers_message(self):
        response = httpx.Response(400, json={"message": "Validation Error", "code": "validation"})

        assert error_detail(response) == "Validation Error"

    def test_error_detail_plain_text(self):
        assert error_detail(httpx.Response(502, text="Bad gateway")) == "Bad gateway"


class TestBaseClientLifecycle:
    @pytest.mark.asyncio
    async def test_get_client_reused(self):
        client = BaseClient("https://example.com/")
        first = await client._get_client()

        assert await client._get_client() is first
        assert client.base_url == "https://example.com"
        await client.close()

    @pytest.mark.asyncio
    async def test_context_manager_closes(self):
        async with BaseClient("https://example.com") as client:
            await client._get_client()
            assert client._client is not None

        assert client._client is None

    @pytest.mark.asyncio
    async def test_close_without_client(self):
        await BaseClient("https://example.com").close()


# =============================================================================
# Webflow
# =============================================================================


class TestWebflowClient:
    """Tests for the content store client."""

    @pytest.mark.asyncio
    async def test_list_items_paginates(self):
        handler = Recorder(
            httpx.Response(200, json={
                "items": [{"id": "1", "fieldData": {"name": "a"}}, {"id": "2", "fieldData": {"name": "b"}}],
                "pagination": {"limit": 100, "offset": 0, "total": 3},
            }),
            httpx.Response(200, json={
                "items": [{"id": "3", "fieldData": {"name": "c"}, "lastUpdated": "2024-01-01"}],
                "pagination": {"limit": 100, "offset": 2, "total": 3},
            }),
        )
        client = attach(WebflowClient("tok", "col1", **fast()), handler)

        items = await client.list_items()

        assert [i.name for i in items] == ["a", "b", "c"]
        assert [r.url.params["offset"] for r in handler.requests] == ["0", "2"]
        assert handler.requests[0].url.path == "/v2/collections/col1/items"
        assert handler.requests[0].headers["Authorization"] == "Bearer tok"

    @pytest.mark.asyncio
    async def test_list_items_empty(self):
        handler = Recorder(httpx.Response(200, json={"items": [], "pagination": {"total": 0}}))
        client = attach(WebflowClient("tok", "col1", **fast()), handler)

        assert await client.list_items() == []
        assert len(handler.requests) == 1

    @pytest.mark.asyncio
    async def test_create_live(self):
        handler = Recorder(httpx.Response(202, json={"id": "new1", "fieldData": {"name": "a", "slug": "a"}}))
        client = attach(WebflowClient("tok", "col1", **fast()), handler)

        item = await client.create_item({"name": "a", "slug": "a"})

        request = handler.requests[0]
        assert request.method == "POST"
        assert request.url.path == "/v2/collections/col1/items/live"
        assert handler.json_body() == {"isArchived": False, "isDraft": False, "fieldData": {"name": "a", "slug": "a"}}
        assert item.id == "new1"

    @pytest.mark.asyncio
    async def test_update_staged(self):
        handler = Recorder(httpx.Response(200, json={"id": "i1", "fieldData": {"name": "a"}}))
        client = attach(WebflowClient("tok", "col1", live=False, **fast()), handler)

        await client.update_item("i1", {"name": "a"})

        assert handler.requests[0].method == "PATCH"
        assert handler.requests[0].url.path == "/v2/collections/col1/items/i1"

    @pytest.mark.asyncio
    async def test_delete_live_unpublishes_then_deletes(self):
        handler = Recorder(httpx.Response(404, json={"message": "not published"}), httpx.Response(204))
        client = attach(WebflowClient("tok", "col1", **fast()), handler)

        await client.delete_item("i1")

        assert [(r.method, r.url.path) for r in handler.requests] == [
            ("DELETE", "/v2/collections/col1/items/i1/live"),
            ("DELETE", "/v2/collections/col1/items/i1"),
        ]

    @pytest.mark.asyncio
    async def test_retries_rate_limit(self):
        handler = Recorder(
            httpx.Response(429, json={"message": "Too Many Requests"}),
            httpx.Response(200, json={"id": "i1", "fieldData": {}}),
        )
        client = attach(WebflowClient("tok", "col1", **fast()), handler)

        await client.update_item("i1", {})

        assert len(handler.requests) == 2

    @pytest.mark.asyncio
    async def test_no_retry_on_validation_error(self):
        handler = Recorder(httpx.Response(400, json={"message": "Validation Error"}))
        client = attach(WebflowClient("tok", "col1", **fast()), handler)

        with pytest.raises(StoreError) as exc_info:
            await client.create_item({"name": "a"})

        assert len(handler.requests) == 1
        assert exc_info.value.status_code == 400
        assert exc_info.value.message == "Validation Error"
        assert exc_info.value.endpoint == "/collections/col1/items/live"

    @pytest.mark.asyncio
    async def test_server_error_exhausts_attempts(self):
        handler = Recorder(httpx.Response(500, text="oops"))
        client = attach(WebflowClient("tok", "col1", max_attempts=3, **fast()), handler)

        with pytest.raises(StoreError) as exc_info:
            await client.list_items()

        assert len(handler.requests) == 3
        assert exc_info.value.status_code == 500

    @pytest.mark.asyncio
    async def test_transport_error(self):
        handler = Recorder(httpx.ConnectError("connection refused"))
        client = attach(WebflowClient("tok", "col1", max_attempts=2, **fast()), handler)

        with pytest.raises(StoreError) as exc_info:
            await client.list_items()

        assert len(handler.requests) == 2
        assert exc_info.value.status_code is None

    @pytest.mark.asyncio
    async def test_request_metric(self):
        labels = {"service": "webflow", "operation": "delete_item", "status": "204"}
        before = REGISTRY.get_sample_value("plugin_sync_store_requests_total", labels) or 0
        client = attach(WebflowClient("tok", "col1", live=False, **fast()), Recorder(httpx.Response(204)))

        await client.delete_item("i1")

        assert REGISTRY.get_sample_value("plugin_sync_store_requests_total", labels) == before + 1


# =============================================================================
# Algolia
# =============================================================================


class TestAlgoliaClient:
    """Tests for the search index client."""

    def test_default_host(self):
        client = AlgoliaClient("APPID", "key", "plugins")

        assert client.base_url == "https://APPID.algolia.net"
        assert client.headers["X-Algolia-Application-Id"] == "APPID"
        assert client.headers["X-Algolia-API-Key"] == "key"

    @pytest.mark.asyncio
    async def test_browse_follows_cursor(self):
        handler = Recorder(
            httpx.Response(200, json={"hits": [{"objectID": "a", "name": "a"}], "cursor": "next"}),
            httpx.Response(200, json={"hits": [{"objectID": "b", "name": "b", "_highlightResult": {}}]}),
        )
        client = attach(AlgoliaClient("APPID", "key", "plugins", **fast()), handler)

        items = await client.list_items()

        assert [i.object_id for i in items] == ["a", "b"]
        assert handler.requests[0].url.path == "/1/indexes/plugins/browse"
        assert handler.json_body(0) == {"hitsPerPage": 1000}
        assert handler.json_body(1) == {"cursor": "next"}

    @pytest.mark.asyncio
    async def test_create_saves_full_object(self):
        handler = Recorder(httpx.Response(200, json={"objectID": "a"}))
        client = attach(AlgoliaClient("APPID", "key", "plugins", **fast()), handler)

        await client.create_item(IndexItem(object_id="a", name="a", github_stars=3))

        assert handler.requests[0].method == "PUT"
        assert handler.requests[0].url.path == "/1/indexes/plugins/a"
        body = handler.json_body()
        assert body["objectID"] == "a"
        assert body["githubStars"] == 3
        assert "authorName" not in body

    @pytest.mark.asyncio
    async def test_update_is_partial(self):
        handler = Recorder(httpx.Response(200, json={"objectID": "a"}))
        client = attach(AlgoliaClient("APPID", "key", "plugins", **fast()), handler)

        await client.update_item(IndexItem(object_id="a", name="a"))

        assert handler.requests[0].method == "POST"
        assert handler.requests[0].url.path == "/1/indexes/plugins/a/partial"

    @pytest.mark.asyncio
    async def test_delete_missing_object_ok(self):
        handler = Recorder(httpx.Response(404, json={"message": "ObjectID does not exist"}))
        client = attach(AlgoliaClient("APPID", "key", "plugins", **fast()), handler)

        await client.delete_item("gone")

        assert handler.requests[0].method == "DELETE"

    @pytest.mark.asyncio
    async def test_forbidden_is_store_error(self):
        handler = Recorder(httpx.Response(403, json={"message": "Invalid Application-ID or API key"}))
        client = attach(AlgoliaClient("APPID", "key", "plugins", **fast()), handler)

        with pytest.raises(StoreError, match="Invalid Application-ID"):
            await client.delete_item("a")


# =============================================================================
# GitHub
# =============================================================================


class TestGitHubClient:
    """Tests for repository lookups and PR comments."""

    def test_token_header(self):
        assert GitHubClient("secret").headers["Authorization"] == "Bearer secret"
        assert "Authorization" not in GitHubClient().headers

    @pytest.mark.asyncio
    async def test_repo_info(self):
        handler = Recorder(httpx.Response(200, json={
            "stargazers_count": 5000,
            "owner": {
                "login": "dherault",
                "html_url": "https://github.com/dherault",
                "avatar_url": "https://avatars.githubusercontent.com/u/1",
            },
        }))
        client = attach(GitHubClient("t", **fast()), handler)

        info = await client.get_repo_info("dherault", "serverless-offline")

        assert handler.requests[0].url.path == "/repos/dherault/serverless-offline"
        assert info.github_stars == 5000
        assert info.author_name == "dherault"
        assert info.author_link == "https://github.com/dherault"
        assert info.author_avatar == "https://avatars.githubusercontent.com/u/1"

    @pytest.mark.asyncio
    async def test_repo_not_found(self):
        client = attach(GitHubClient("t", **fast()), Recorder(httpx.Response(404, json={"message": "Not Found"})))

        assert await client.get_repo_info("o", "missing") is None

    @pytest.mark.asyncio
    async def test_readme_html(self):
        handler = Recorder(httpx.Response(200, text="<h1>Hello</h1>"))
        client = attach(GitHubClient("t", **fast()), handler)

        content = await client.get_readme("o", "r")

        assert content == "<h1>Hello</h1>"
        assert handler.requests[0].url.path == "/repos/o/r/readme"
        assert handler.requests[0].headers["Accept"] == "application/vnd.github.html+json"

    @pytest.mark.asyncio
    async def test_readme_missing_or_blank(self):
        missing = attach(GitHubClient("t", **fast()), Recorder(httpx.Response(404)))
        blank = attach(GitHubClient("t", **fast()), Recorder(httpx.Response(200, text="  \n")))

        assert await missing.get_readme("o", "r") is None
        assert await blank.get_readme("o", "r") is None

    @pytest.mark.asyncio
    async def test_list_comments_paginates(self):
        page1 = [{"id": i, "body": "x"} for i in range(100)]
        page2 = [{"id": 100, "body": "y"}]
        handler = Recorder(httpx.Response(200, json=page1), httpx.Response(200, json=page2))
        client = attach(GitHubClient("t", **fast()), handler)

        comments = await client.list_issue_comments("serverless/plugins", 7)

        assert len(comments) == 101
        assert [r.url.params["page"] for r in handler.requests] == ["1", "2"]
        assert handler.requests[0].url.path == "/repos/serverless/plugins/issues/7/comments"

    @pytest.mark.asyncio
    async def test_create_and_update_comment(self):
        handler = Recorder(httpx.Response(201, json={"id": 1}), httpx.Response(200, json={"id": 1}))
        client = attach(GitHubClient("t", **fast()), handler)

        await client.create_issue_comment("serverless/plugins", 7, "hello")
        await client.update_issue_comment("serverless/plugins", 1, "again")

        assert [(r.method, r.url.path) for r in handler.requests] == [
            ("POST", "/repos/serverless/plugins/issues/7/comments"),
            ("PATCH", "/repos/serverless/plugins/issues/comments/1"),
        ]
        assert handler.json_body() == {"body": "again"}

    @pytest.mark.asyncio
    async def test_error_is_client_error(self):
        client = attach(GitHubClient("t", **fast()), Recorder(httpx.Response(401, json={"message": "Bad credentials"})))

        with pytest.raises(ClientError) as exc_info:
            await client.create_issue_comment("o/r", 1, "x")

        assert not isinstance(exc_info.value, StoreError)
        assert exc_info.value.status_code == 401


# =============================================================================
# npm
# =============================================================================


class TestNpmClient:
    @pytest.mark.asyncio
    async def test_downloads(self):
        handler = Recorder(httpx.Response(200, json={"downloads": 123, "package": "serverless-offline"}))
        client = attach(NpmClient(**fast()), handler)

        assert await client.get_downloads("serverless-offline") == 123
        assert handler.requests[0].url.path == "/downloads/point/last-month/serverless-offline"

    @pytest.mark.asyncio
    async def test_scoped_package_and_period(self):
        handler = Recorder(httpx.Response(200, json={"downloads": 5}))
        client = attach(NpmClient("last-week", **fast()), handler)

        await client.get_downloads("@serverless/compose")

        assert handler.requests[0].url.path == "/downloads/point/last-week/@serverless/compose"

    @pytest.mark.asyncio
    async def test_unknown_package(self):
        client = attach(NpmClient(**fast()), Recorder(httpx.Response(404, json={"error": "package not found"})))

        assert await client.get_downloads("nope") is None

    @pytest.mark.asyncio
    async def test_error_is_enrichment_error(self):
        client = attach(NpmClient(max_attempts=1, **fast()), Recorder(httpx.Response(503)))

        with pytest.raises(EnrichmentError):
            await client.get_downloads("x")
