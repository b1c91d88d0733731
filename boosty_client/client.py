from __future__ import annotations

import json
from typing import Any, Mapping, Sequence, TypeVar
from urllib.parse import quote, urlencode

import httpx
from pydantic import BaseModel, ValidationError

from .auth import ClockFn, TokenManager
from .config_schema import DEFAULT_BASE_URL, DEFAULT_USER_AGENT
from .errors import ApiHttpStatusError, ApiParseError, ApiRequestError, UnauthorizedError
from .models import (
    BlogStats,
    Comment,
    CommentsPage,
    CurrentStats,
    Post,
    PostsPage,
    ShowcaseResponse,
    SubscribersResponse,
    SubscriptionLevelsResponse,
    SubscriptionsResponse,
    Target,
    TargetsResponse,
    TargetType,
)
from .run_log import EventLog

M = TypeVar("M", bound=BaseModel)

DEFAULT_PAGE_SIZE = 20


def _segment(value: str) -> str:
    return quote((value or "").strip(), safe="")


def _query_value(value: Any) -> Any:
    if isinstance(value, bool):
        return "true" if value else "false"
    return value


def _with_query(path: str, params: Mapping[str, Any]) -> str:
    """Append non-None params in insertion order; booleans are sent as true/false."""
    pairs = [(k, _query_value(v)) for k, v in params.items() if v is not None]
    if not pairs:
        return path
    return f"{path}?{urlencode(pairs)}"


class BoostyClient:
    """
    Async client for the Boosty API.

    Owns the default headers and delegates authentication to a TokenManager that
    shares the same httpx.AsyncClient. All endpoints live under ``{base_url}/v1/``.
    Blog-scoped calls take an explicit blog name or fall back to ``default_blog``.
    """

    def __init__(
        self,
        base_url: str = DEFAULT_BASE_URL,
        *,
        http_client: httpx.AsyncClient | None = None,
        timeout_seconds: float = 30.0,
        user_agent: str = DEFAULT_USER_AGENT,
        default_blog: str | None = None,
        clock: ClockFn | None = None,
        logger: EventLog | None = None,
    ) -> None:
        self._base_url = (base_url or "").strip().rstrip("/")
        self._owns_http = http_client is None
        self._http = http_client or httpx.AsyncClient(timeout=timeout_seconds)
        self._logger = logger
        self._default_blog = (default_blog or "").strip() or None
        self._headers: dict[str, str] = {
            "Accept": "application/json",
            "User-Agent": user_agent,
            "Cache-Control": "no-cache",
            "DNT": "1",
        }
        self._auth = TokenManager(self._http, self._base_url, clock=clock, logger=logger)

    @property
    def auth(self) -> TokenManager:
        return self._auth

    @property
    def base_url(self) -> str:
        return self._base_url

    @property
    def default_blog(self) -> str | None:
        return self._default_blog

    async def __aenter__(self) -> "BoostyClient":
        return self

    async def __aexit__(self, exc_type: object, exc: object, tb: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_http:
            await self._http.aclose()

    def headers_as_map(self) -> dict[str, str]:
        return dict(self._headers)

    def set_default_blog_name(self, blog: str | None) -> None:
        self._default_blog = (blog or "").strip() or None

    def set_bearer_token(self, access_token: str) -> None:
        self._auth.set_static_token(access_token)

    def set_refresh_credentials(self, refresh_token: str, device_id: str) -> None:
        self._auth.set_refresh_credentials(refresh_token, device_id)

    def clear_access_token(self) -> None:
        self._auth.clear_static_token()

    def clear_refresh_credentials(self) -> None:
        self._auth.clear_refresh_credentials()

    # Posts

    async def get_post(self, blog: str, post_id: str) -> Post:
        path = f"blog/{_segment(blog)}/post/{_segment(post_id)}"
        return await self._request_model("GET", path, Post)

    async def get_posts(
        self,
        blog: str,
        limit: int,
        *,
        page_size: int = DEFAULT_PAGE_SIZE,
        start_offset: str | None = None,
    ) -> list[Post]:
        """
        Fetch up to `limit` posts, newest first, following the page offset cursor.

        Stops on the last page, on an empty page, or once `limit` posts were collected.
        """
        if limit <= 0:
            return []
        if page_size <= 0:
            raise ValueError("page_size must be positive")

        posts: list[Post] = []
        offset = start_offset

        while True:
            params = {"limit": min(page_size, limit - len(posts)), "offset": offset or None}
            path = _with_query(f"blog/{_segment(blog)}/post/", params)

            page = await self._request_model("GET", path, PostsPage)
            posts.extend(page.data)

            if page.extra.is_last or len(posts) >= limit or not page.data:
                break
            offset = page.extra.offset

        return posts[:limit]

    # Comments

    async def get_comments_page(
        self,
        blog: str,
        post_id: str,
        *,
        limit: int | None = None,
        reply_limit: int | None = None,
        order: str | None = None,
        offset: int | None = None,
    ) -> CommentsPage:
        params = {
            "offset": offset,
            "limit": limit,
            "reply_limit": reply_limit,
            "order": order or None,
        }
        path = _with_query(f"blog/{_segment(blog)}/post/{_segment(post_id)}/comment/", params)
        return await self._request_model("GET", path, CommentsPage)

    async def get_all_comments(
        self,
        blog: str,
        post_id: str,
        *,
        limit: int | None = None,
        reply_limit: int | None = None,
        order: str | None = None,
    ) -> list[Comment]:
        """Walk comment pages using the last comment's int id as the next offset."""
        comments: list[Comment] = []
        offset: int | None = None

        while True:
            page = await self.get_comments_page(
                blog,
                post_id,
                limit=limit,
                reply_limit=reply_limit,
                order=order,
                offset=offset,
            )
            if not page.data:
                break

            comments.extend(page.data)

            if page.extra.is_first and page.extra.is_last:
                break

            last_id = page.data[-1].int_id
            if last_id is None or last_id == offset:
                break
            offset = last_id

        return comments

    async def create_comment(
        self,
        blog: str,
        post_id: str,
        blocks: Sequence[Mapping[str, Any]],
        *,
        reply_id: int | None = None,
    ) -> Comment:
        """
        Post a comment built from content blocks (see ``models.text_block`` and friends).

        Sent as multipart form data: ``from_page=blog``, one ``data[]`` field per
        JSON-encoded block, and ``reply_id`` when answering another comment.
        """
        fields: list[tuple[str, tuple[None, str]]] = [("from_page", (None, "blog"))]
        for block in blocks:
            fields.append(("data[]", (None, json.dumps(dict(block), ensure_ascii=False))))
        if reply_id is not None:
            fields.append(("reply_id", (None, str(reply_id))))

        path = f"blog/{_segment(blog)}/post/{_segment(post_id)}/comment/"
        return await self._request_model("POST", path, Comment, files=fields)

    # Targets

    async def get_blog_targets(self, blog: str | None = None) -> TargetsResponse:
        path = f"target/{_segment(self._blog_name(blog))}/"
        return await self._request_model("GET", path, TargetsResponse)

    async def create_blog_target(
        self,
        description: str,
        target_sum: float,
        target_type: TargetType | str,
        blog: str | None = None,
    ) -> Target:
        kind = TargetType(target_type)
        form = {
            "blog_url": self._blog_name(blog),
            "description": description,
            "target_sum": target_sum,
        }
        return await self._request_model("POST", f"target/{kind.value}", Target, data=form)

    async def update_blog_target(
        self, target_id: int, description: str, target_sum: float
    ) -> Target:
        form = {
            "target_id": target_id,
            "description": description,
            "target_sum": target_sum,
        }
        return await self._request_model("PUT", f"target/{int(target_id)}", Target, data=form)

    async def delete_blog_target(self, target_id: int) -> None:
        path = f"target/{int(target_id)}"
        response = await self._request("DELETE", path)
        # The API answers with an empty JSON object.
        if response.content.strip():
            try:
                response.json()
            except ValueError as e:
                raise ApiParseError(f"Failed to parse response JSON from '{path}': {e}") from e

    # Showcase

    async def get_showcase(
        self,
        blog: str | None = None,
        *,
        limit: int | None = None,
        only_visible: bool | None = None,
        offset: int | None = None,
    ) -> ShowcaseResponse:
        params = {"offset": offset, "limit": limit, "only_visible": only_visible}
        path = _with_query(f"blog/{_segment(self._blog_name(blog))}/showcase/", params)
        return await self._request_model("GET", path, ShowcaseResponse)

    async def change_showcase_status(self, enabled: bool, blog: str | None = None) -> None:
        path = f"blog/{_segment(self._blog_name(blog))}/showcase/status/"
        await self._request("PUT", path, data={"is_enabled": _query_value(bool(enabled))})

    # Subscribers and subscription levels

    async def get_blog_subscribers(
        self,
        blog: str | None = None,
        *,
        sort_by: str | None = None,
        offset: int | None = None,
        limit: int | None = None,
        order: str | None = None,
    ) -> SubscribersResponse:
        params = {"sort_by": sort_by, "offset": offset, "limit": limit, "order": order}
        path = _with_query(f"blog/{_segment(self._blog_name(blog))}/subscribers", params)
        return await self._request_model("GET", path, SubscribersResponse)

    async def get_blog_subscription_levels(
        self, blog: str | None = None, *, show_free_level: bool | None = None
    ) -> SubscriptionLevelsResponse:
        path = _with_query(
            f"blog/{_segment(self._blog_name(blog))}/subscription_level/",
            {"show_free_level": show_free_level},
        )
        return await self._request_model("GET", path, SubscriptionLevelsResponse)

    async def get_user_subscriptions(
        self, *, limit: int | None = None, with_follow: bool | None = None
    ) -> SubscriptionsResponse:
        path = _with_query("user/subscriptions", {"limit": limit, "with_follow": with_follow})
        return await self._request_model("GET", path, SubscriptionsResponse)

    # Stats

    async def get_blog_stats(
        self, blog: str | None = None, *, params: Mapping[str, Any] | None = None
    ) -> BlogStats:
        path = _with_query(f"blog/{_segment(self._blog_name(blog))}/stat/data/", params or {})
        return await self._request_model("GET", path, BlogStats)

    async def get_blog_current_stats(self, blog: str | None = None) -> CurrentStats:
        path = f"blog/stat/{_segment(self._blog_name(blog))}/current"
        return await self._request_model("GET", path, CurrentStats)

    # Plumbing

    def _blog_name(self, blog: str | None) -> str:
        name = (blog or "").strip() or self._default_blog
        if not name:
            raise ApiRequestError(
                "Blog name is required: pass it explicitly or set a default blog name"
            )
        return name

    async def _request_model(
        self, method: str, path: str, model: type[M], **kwargs: Any
    ) -> M:
        response = await self._request(method, path, **kwargs)
        try:
            return model.model_validate_json(response.content)
        except ValidationError as e:
            raise ApiParseError(f"Failed to parse response JSON from '{path}': {e}") from e

    async def _request(
        self,
        method: str,
        path: str,
        *,
        data: Mapping[str, Any] | None = None,
        files: Sequence[tuple[str, Any]] | None = None,
    ) -> httpx.Response:
        headers = self.headers_as_map()
        await self._auth.apply_auth_header(headers)

        url = f"{self._base_url}/v1/{path}"
        try:
            response = await self._http.request(
                method, url, headers=headers, data=data, files=files
            )
        except httpx.HTTPError as e:
            if self._logger is not None:
                self._logger.error(
                    "api_request_failed",
                    method=method,
                    endpoint=path,
                    error_type=type(e).__name__,
                )
            raise ApiRequestError(f"HTTP request error when calling API: {e}") from e

        self._check_status(method, path, response.status_code)
        if self._logger is not None:
            self._logger.info(
                "api_request_completed",
                method=method,
                endpoint=path,
                status=response.status_code,
            )
        return response

    def _check_status(self, method: str, path: str, status: int) -> None:
        if 200 <= status < 300:
            return

        if self._logger is not None:
            self._logger.error("api_request_failed", method=method, endpoint=path, status=status)
        if status == 401:
            raise UnauthorizedError("Unauthorized (401): invalid or missing token")
        raise ApiHttpStatusError(status, path)
