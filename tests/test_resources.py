from __future__ import annotations

import json
import unittest
from typing import Any, Callable
from urllib.parse import parse_qs

import httpx

from boosty_client.client import BoostyClient
from boosty_client.content import TextItem
from boosty_client.errors import ApiHttpStatusError, ApiParseError, ApiRequestError
from boosty_client.models import TargetType, smile_block, text_block, text_end_block

_BASE_URL = "https://api.example.test"


def _target(target_id: int, *, kind: str = "money") -> dict[str, Any]:
    return {
        "id": target_id,
        "description": "New camera",
        "bloggerId": 42,
        "bloggerUrl": "myblog",
        "priority": 1,
        "createdAt": 1700000000,
        "targetSum": 1000,
        "currentSum": 250.5,
        "finishTime": None,
        "type": kind,
    }


def _recorder(
    body: Any, *, status: int = 200
) -> tuple[list[httpx.Request], Callable[[httpx.Request], httpx.Response]]:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        if isinstance(body, (bytes, str)):
            return httpx.Response(status, content=body)
        return httpx.Response(status, json=body)

    return seen, handler


def _client(
    handler: Callable[[httpx.Request], httpx.Response], *, default_blog: str | None = "myblog"
) -> BoostyClient:
    http = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    client = BoostyClient(_BASE_URL, http_client=http, default_blog=default_blog)
    client.set_bearer_token("tok")
    return client


def _form(request: httpx.Request) -> dict[str, list[str]]:
    return parse_qs(request.content.decode("utf-8"))


class TestTargets(unittest.IsolatedAsyncioTestCase):
    async def test_get_blog_targets_uses_default_blog(self) -> None:
        seen, handler = _recorder({"data": [_target(1), _target(2, kind="subscribers")]})
        client = _client(handler)
        resp = await client.get_blog_targets()
        await client._http.aclose()

        self.assertEqual(seen[0].method, "GET")
        self.assertEqual(seen[0].url.path, "/v1/target/myblog/")
        self.assertEqual(seen[0].headers["authorization"], "Bearer tok")
        self.assertEqual([t.id for t in resp.data], [1, 2])
        self.assertEqual(resp.data[0].target_sum, 1000)
        self.assertEqual(resp.data[0].current_sum, 250.5)
        self.assertEqual(resp.data[1].type, "subscribers")

    async def test_explicit_blog_overrides_default(self) -> None:
        seen, handler = _recorder({"data": []})
        client = _client(handler)
        await client.get_blog_targets("other")
        await client._http.aclose()
        self.assertEqual(seen[0].url.path, "/v1/target/other/")

    async def test_missing_blog_name_fails_without_request(self) -> None:
        seen, handler = _recorder({"data": []})
        client = _client(handler, default_blog=None)
        with self.assertRaises(ApiRequestError):
            await client.get_blog_targets()
        await client._http.aclose()
        self.assertEqual(seen, [])

    async def test_create_blog_target_posts_form(self) -> None:
        seen, handler = _recorder(_target(9))
        client = _client(handler)
        target = await client.create_blog_target("New camera", 1000, TargetType.MONEY)
        await client.create_blog_target("Fans", 500, "subscribers", blog="other")
        await client._http.aclose()

        self.assertEqual(target.id, 9)
        self.assertEqual(seen[0].method, "POST")
        self.assertEqual(seen[0].url.path, "/v1/target/money")
        self.assertTrue(
            seen[0].headers["content-type"].startswith("application/x-www-form-urlencoded")
        )
        self.assertEqual(
            _form(seen[0]),
            {"blog_url": ["myblog"], "description": ["New camera"], "target_sum": ["1000"]},
        )
        self.assertEqual(seen[1].url.path, "/v1/target/subscribers")
        self.assertEqual(_form(seen[1])["blog_url"], ["other"])

    async def test_create_blog_target_rejects_unknown_type(self) -> None:
        seen, handler = _recorder(_target(9))
        client = _client(handler)
        with self.assertRaises(ValueError):
            await client.create_blog_target("x", 1, "likes")
        await client._http.aclose()
        self.assertEqual(seen, [])

    async def test_update_blog_target_puts_form(self) -> None:
        seen, handler = _recorder(_target(7))
        client = _client(handler)
        target = await client.update_blog_target(7, "Bigger camera", 2000)
        await client._http.aclose()

        self.assertEqual(target.id, 7)
        self.assertEqual(seen[0].method, "PUT")
        self.assertEqual(seen[0].url.path, "/v1/target/7")
        self.assertEqual(
            _form(seen[0]),
            {"target_id": ["7"], "description": ["Bigger camera"], "target_sum": ["2000"]},
        )

    async def test_delete_blog_target(self) -> None:
        for body in ({}, b""):
            seen, handler = _recorder(body)
            client = _client(handler)
            self.assertIsNone(await client.delete_blog_target(3))
            await client._http.aclose()
            self.assertEqual(seen[0].method, "DELETE")
            self.assertEqual(seen[0].url.path, "/v1/target/3")

        _, handler = _recorder(b"<html>")
        client = _client(handler)
        with self.assertRaises(ApiParseError):
            await client.delete_blog_target(3)
        await client._http.aclose()

        _, handler = _recorder({}, status=404)
        client = _client(handler)
        with self.assertRaises(ApiHttpStatusError) as ctx:
            await client.delete_blog_target(3)
        await client._http.aclose()
        self.assertEqual(ctx.exception.endpoint, "target/3")


class TestShowcase(unittest.IsolatedAsyncioTestCase):
    async def test_get_showcase_query_and_records(self) -> None:
        body = {
            "data": {
                "showcaseItems": [
                    {
                        "showcaseItemId": 5,
                        "itemType": "post",
                        "isVisible": True,
                        "itemId": "p1",
                        "position": 0,
                        "post": {"id": "p1", "title": "Pinned", "has_access": True, "data": []},
                    }
                ]
            },
            "extra": {
                "offset": 1,
                "blogId": 42,
                "isEnabled": True,
                "isLast": True,
                "counters": {"visibleTotal": 1, "visiblePostsCount": 1, "visibleBundlesCount": 0},
            },
        }
        seen, handler = _recorder(body)
        client = _client(handler)
        resp = await client.get_showcase(limit=10, only_visible=False, offset=0)
        await client.get_showcase("other")
        await client._http.aclose()

        self.assertEqual(seen[0].url.path, "/v1/blog/myblog/showcase/")
        self.assertEqual(
            list(seen[0].url.params.multi_items()),
            [("offset", "0"), ("limit", "10"), ("only_visible", "false")],
        )
        self.assertEqual(dict(seen[1].url.params), {})

        item = resp.data.showcase_items[0]
        self.assertEqual(item.item_id, "p1")
        self.assertEqual(item.post.title if item.post else None, "Pinned")
        self.assertTrue(resp.extra.is_enabled)
        self.assertEqual(resp.extra.counters.visible_total if resp.extra.counters else None, 1)

    async def test_change_showcase_status(self) -> None:
        seen, handler = _recorder({})
        client = _client(handler)
        await client.change_showcase_status(True)
        await client.change_showcase_status(False, blog="other")
        await client._http.aclose()

        self.assertEqual(seen[0].method, "PUT")
        self.assertEqual(seen[0].url.path, "/v1/blog/myblog/showcase/status/")
        self.assertEqual(_form(seen[0]), {"is_enabled": ["true"]})
        self.assertEqual(seen[1].url.path, "/v1/blog/other/showcase/status/")
        self.assertEqual(_form(seen[1]), {"is_enabled": ["false"]})


class TestSubscriptions(unittest.IsolatedAsyncioTestCase):
    async def test_get_blog_subscribers(self) -> None:
        body = {
            "data": [
                {
                    "id": 11,
                    "name": "fan",
                    "email": "fan@example.test",
                    "hasAvatar": False,
                    "isBlackListed": False,
                    "price": 300,
                    "subscribed": True,
                    "status": "active",
                    "level": {"id": 3, "name": "Gold", "price": 300, "data": []},
                }
            ],
            "total": 1,
            "limit": 20,
            "offset": 0,
        }
        seen, handler = _recorder(body)
        client = _client(handler)
        resp = await client.get_blog_subscribers(sort_by="on_time", limit=20, order="gt")
        await client._http.aclose()

        self.assertEqual(seen[0].url.path, "/v1/blog/myblog/subscribers")
        self.assertEqual(
            list(seen[0].url.params.multi_items()),
            [("sort_by", "on_time"), ("limit", "20"), ("order", "gt")],
        )
        self.assertEqual(resp.total, 1)
        self.assertEqual(resp.data[0].name, "fan")
        self.assertEqual(resp.data[0].level.name if resp.data[0].level else None, "Gold")

    async def test_get_blog_subscription_levels(self) -> None:
        body = {
            "data": [
                {
                    "id": 0,
                    "name": "Follower",
                    "price": 0,
                    "currencyPrices": {"RUB": 0, "USD": 0},
                    "isArchived": False,
                    "promos": None,
                    "data": [{"type": "text", "content": "Free tier", "modificator": ""}],
                }
            ]
        }
        seen, handler = _recorder(body)
        client = _client(handler)
        resp = await client.get_blog_subscription_levels(show_free_level=True)
        await client.get_blog_subscription_levels("other")
        await client._http.aclose()

        self.assertEqual(seen[0].url.path, "/v1/blog/myblog/subscription_level/")
        self.assertEqual(dict(seen[0].url.params), {"show_free_level": "true"})
        self.assertEqual(seen[1].url.path, "/v1/blog/other/subscription_level/")
        self.assertEqual(dict(seen[1].url.params), {})

        level = resp.data[0]
        self.assertEqual(level.currency_prices, {"RUB": 0, "USD": 0})
        self.assertEqual(level.promos, [])
        self.assertEqual(level.extract_content(), [TextItem(content="Free tier", modificator="")])

    async def test_get_user_subscriptions(self) -> None:
        body = {
            "data": [
                {
                    "id": 1,
                    "level_id": 3,
                    "name": "Gold",
                    "price": 300,
                    "is_pause": False,
                    "blog": {
                        "blog_url": "creator",
                        "title": "Creator",
                        "owner": {"id": 42, "name": "Creator", "has_avatar": True},
                        "flags": {"has_targets": True},
                    },
                }
            ],
            "total": 1,
            "limit": 30,
            "offset": 0,
        }
        seen, handler = _recorder(body)
        client = _client(handler, default_blog=None)
        resp = await client.get_user_subscriptions(limit=30, with_follow=True)
        await client._http.aclose()

        self.assertEqual(seen[0].url.path, "/v1/user/subscriptions")
        self.assertEqual(
            list(seen[0].url.params.multi_items()), [("limit", "30"), ("with_follow", "true")]
        )
        sub = resp.data[0]
        self.assertEqual(sub.level_id, 3)
        self.assertEqual(sub.blog.blog_url if sub.blog else None, "creator")
        self.assertTrue(sub.blog.flags["has_targets"] if sub.blog else False)


class TestStats(unittest.IsolatedAsyncioTestCase):
    async def test_get_blog_stats(self) -> None:
        point = {"day": 1, "month": 2, "year": 2025, "count": 3}
        seen, handler = _recorder({"totalMoney": [point], "incSubscribers": [], "newMetric": [1]})
        client = _client(handler)
        stats = await client.get_blog_stats(params={"from": "2025-02-01", "with_gifts": True})
        await client._http.aclose()

        self.assertEqual(seen[0].url.path, "/v1/blog/myblog/stat/data/")
        self.assertEqual(
            dict(seen[0].url.params), {"from": "2025-02-01", "with_gifts": "true"}
        )
        self.assertEqual(stats.total_money[0].count, 3)
        self.assertEqual(stats.inc_subscribers, [])
        self.assertEqual(stats.donations, [])

    async def test_get_blog_current_stats(self) -> None:
        body = {
            "paidCount": 12,
            "followersCount": 30,
            "hold": 0,
            "income": 3600,
            "balance": 1200.5,
            "payoutSum": 2400,
        }
        seen, handler = _recorder(body)
        client = _client(handler)
        current = await client.get_blog_current_stats()
        await client._http.aclose()

        self.assertEqual(seen[0].url.path, "/v1/blog/stat/myblog/current")
        self.assertEqual(current.paid_count, 12)
        self.assertEqual(current.balance, 1200.5)


class TestCreateComment(unittest.IsolatedAsyncioTestCase):
    async def test_comment_blocks(self) -> None:
        block = text_block("hello")
        self.assertEqual(block["type"], "text")
        self.assertEqual(json.loads(block["content"]), ["hello", "unstyled", []])
        self.assertEqual(text_end_block()["modificator"], "BLOCK_END")
        self.assertEqual(smile_block("heart"), {"type": "smile", "name": "heart"})

    async def test_create_comment_sends_multipart(self) -> None:
        created = {
            "id": "c9",
            "intId": 9,
            "author": {"id": 1, "name": "me"},
            "replyId": 5,
            "data": [{"type": "text", "content": "hello", "modificator": ""}],
        }
        seen, handler = _recorder(created)
        client = _client(handler)
        blocks = [text_block("hello"), text_end_block(), smile_block("heart")]
        comment = await client.create_comment("myblog", "p1", blocks, reply_id=5)
        await client._http.aclose()

        req = seen[0]
        self.assertEqual(req.method, "POST")
        self.assertEqual(req.url.path, "/v1/blog/myblog/post/p1/comment/")
        self.assertEqual(req.headers["authorization"], "Bearer tok")
        self.assertTrue(req.headers["content-type"].startswith("multipart/form-data"))

        body = req.content
        self.assertIn(b'name="from_page"\r\n\r\nblog\r\n', body)
        self.assertEqual(body.count(b'name="data[]"'), 3)
        self.assertIn(json.dumps(smile_block("heart")).encode(), body)
        self.assertIn(b'name="reply_id"\r\n\r\n5\r\n', body)

        self.assertEqual(comment.int_id, 9)
        self.assertEqual(comment.reply_id, 5)

    async def test_create_comment_without_reply(self) -> None:
        seen, handler = _recorder({"id": "c1", "data": []})
        client = _client(handler)
        await client.create_comment("myblog", "p1", [text_block("hi")])
        await client._http.aclose()
        self.assertNotIn(b'name="reply_id"', seen[0].content)


if __name__ == "__main__":
    unittest.main()
