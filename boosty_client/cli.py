from __future__ import annotations

import argparse
import asyncio
import json
import sys
from contextlib import nullcontext
from typing import Any, Sequence

from .client import BoostyClient
from .config import build_client, load_config, resolve_runtime_credentials
from .content import ContentItem, content_item_to_dict
from .errors import ApiError, AuthError, ConfigError
from .run_log import EventLog


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="boosty_client")
    parser.add_argument(
        "--log",
        default=None,
        help="Append JSONL events (requests, token refreshes) to this file.",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    post = subparsers.add_parser("post", help="Fetch one post and print its content.")
    post.add_argument("--config", required=True, help="Path to YAML config file.")
    post.add_argument("blog", help="Blog name (the blog url slug).")
    post.add_argument("post_id", help="Post id.")
    post.set_defaults(_handler=_cmd_post)

    posts = subparsers.add_parser("posts", help="Fetch the latest posts of a blog.")
    posts.add_argument("--config", required=True, help="Path to YAML config file.")
    posts.add_argument("blog", help="Blog name (the blog url slug).")
    posts.add_argument("--limit", type=int, default=10, help="Maximum number of posts.")
    posts.set_defaults(_handler=_cmd_posts)

    comments = subparsers.add_parser("comments", help="Fetch all comments of a post.")
    comments.add_argument("--config", required=True, help="Path to YAML config file.")
    comments.add_argument("blog", help="Blog name (the blog url slug).")
    comments.add_argument("post_id", help="Post id.")
    comments.set_defaults(_handler=_cmd_comments)

    refresh = subparsers.add_parser(
        "refresh",
        help="Exchange the refresh token now and print the rotated one.",
    )
    refresh.add_argument("--config", required=True, help="Path to YAML config file.")
    refresh.set_defaults(_handler=_cmd_refresh)

    return parser


def _eprint(message: str) -> None:
    print(message, file=sys.stderr)


def _dump(obj: Any) -> str:
    return json.dumps(obj, ensure_ascii=False, sort_keys=True)


def _content_json(items: list[ContentItem]) -> list[dict[str, Any]]:
    return [content_item_to_dict(item) for item in items]


async def _cmd_post(client: BoostyClient, args: argparse.Namespace, page_size: int) -> int:
    post = await client.get_post(args.blog, args.post_id)
    print(_dump(_content_json(post.extract_content())))
    return 0


async def _cmd_posts(client: BoostyClient, args: argparse.Namespace, page_size: int) -> int:
    posts = await client.get_posts(args.blog, int(args.limit), page_size=page_size)
    for post in posts:
        print(
            _dump(
                {
                    "id": post.id,
                    "title": post.safe_title(),
                    "available": not post.not_available(),
                    "content": _content_json(post.extract_content()),
                }
            )
        )
    return 0


async def _cmd_comments(client: BoostyClient, args: argparse.Namespace, page_size: int) -> int:
    comments = await client.get_all_comments(args.blog, args.post_id, limit=page_size)
    for comment in comments:
        author = comment.author.name if comment.author is not None else None
        print(
            _dump(
                {
                    "id": comment.id,
                    "author": author,
                    "content": _content_json(comment.extract_content()),
                }
            )
        )
    return 0


async def _cmd_refresh(client: BoostyClient, args: argparse.Namespace, page_size: int) -> int:
    await client.auth.refresh()
    expires_at = client.auth.expires_at
    print(f"expires_at={expires_at.isoformat() if expires_at else ''}")
    print(f"refresh_token={client.auth.refresh_token or ''}")
    return 0


async def _run(args: argparse.Namespace, log: EventLog | None) -> int:
    cfg = load_config(args.config)
    credentials = resolve_runtime_credentials(cfg)

    if log is not None:
        log.info("config_loaded", config_path=str(args.config), auth_mode=credentials.mode)

    page_size = (
        cfg.pagination.comments_page_size
        if args.command == "comments"
        else cfg.pagination.posts_page_size
    )

    async with build_client(cfg, credentials, logger=log) as client:
        handler = getattr(args, "_handler")
        return int(await handler(client, args, page_size))


def _execute(args: argparse.Namespace) -> int:
    log_ctx = EventLog.open(args.log) if args.log else nullcontext(None)
    with log_ctx as log:
        if log is not None:
            log.info("command_started", command=args.command)
        try:
            code = asyncio.run(_run(args, log))
        except Exception as e:
            if log is not None:
                log.exception("command_failed", exc=e, command=args.command)
            raise
        if log is not None:
            log.info("command_completed", command=args.command, exit_code=code)
        return code


def main(argv: Sequence[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(list(argv) if argv is not None else None)

    try:
        return _execute(args)
    except ConfigError as e:
        _eprint(str(e))
        return 2
    except (AuthError, ApiError) as e:
        _eprint(str(e))
        return 3
    except KeyboardInterrupt:
        _eprint("Interrupted")
        return 130
    except Exception as e:
        _eprint(f"Unexpected error: {e}")
        return 1
