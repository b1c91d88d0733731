from __future__ import annotations

import dataclasses
from dataclasses import dataclass
from typing import Any, Callable, Iterable, Mapping, Sequence, Union

QUALITY_LADDER: tuple[str, ...] = ("ultra_hd", "full_hd", "high", "medium", "low")


@dataclass(frozen=True)
class PlayerUrl:
    quality: str
    url: str


@dataclass(frozen=True)
class ImageItem:
    url: str
    id: str


@dataclass(frozen=True)
class VideoItem:
    url: str


@dataclass(frozen=True)
class OkVideoItem:
    url: str
    title: str
    vid: str


@dataclass(frozen=True)
class AudioItem:
    url: str
    title: str
    size: int
    file_type: str | None = None


@dataclass(frozen=True)
class TextItem:
    content: str
    modificator: str


@dataclass(frozen=True)
class SmileItem:
    small_url: str
    medium_url: str
    large_url: str
    name: str
    is_animated: bool


@dataclass(frozen=True)
class LinkItem:
    explicit: bool
    content: str
    url: str


@dataclass(frozen=True)
class FileItem:
    url: str
    title: str
    size: int


@dataclass(frozen=True)
class ListItem:
    style: str
    items: tuple[tuple["ContentItem", ...], ...] = ()


@dataclass(frozen=True)
class UnknownItem:
    kind: str | None = None


ContentItem = Union[
    ImageItem,
    VideoItem,
    OkVideoItem,
    AudioItem,
    TextItem,
    SmileItem,
    LinkItem,
    FileItem,
    ListItem,
    UnknownItem,
]

_ITEM_TYPES: dict[type, str] = {
    ImageItem: "image",
    VideoItem: "video",
    OkVideoItem: "okVideo",
    AudioItem: "audio",
    TextItem: "text",
    SmileItem: "smile",
    LinkItem: "link",
    FileItem: "file",
    ListItem: "list",
    UnknownItem: "unknown",
}


class _Malformed(Exception):
    pass


def _str(payload: Mapping[str, Any], key: str) -> str:
    value = payload.get(key)
    if not isinstance(value, str):
        raise _Malformed(key)
    return value


def _opt_str(payload: Mapping[str, Any], key: str) -> str | None:
    value = payload.get(key)
    if value is None or isinstance(value, str):
        return value
    raise _Malformed(key)


def _int(payload: Mapping[str, Any], key: str) -> int:
    value = payload.get(key)
    if isinstance(value, bool) or not isinstance(value, int):
        raise _Malformed(key)
    return value


def _bool(payload: Mapping[str, Any], key: str) -> bool:
    value = payload.get(key)
    if not isinstance(value, bool):
        raise _Malformed(key)
    return value


def _list(payload: Mapping[str, Any], key: str) -> list[Any]:
    value = payload.get(key)
    if value is None:
        return []
    if not isinstance(value, list):
        raise _Malformed(key)
    return value


def _payload(record: Mapping[str, Any]) -> Mapping[str, Any]:
    # Accept both the flat API form and the {"type": ..., "data": {...}} wrapped form.
    inner = record.get("data")
    if isinstance(inner, Mapping):
        return inner
    return record


def player_urls_from_raw(raw: Iterable[Any]) -> list[PlayerUrl]:
    """Parse raw player_urls entries, skipping ones without string type/url."""
    out: list[PlayerUrl] = []
    for entry in raw:
        if not isinstance(entry, Mapping):
            continue
        quality = entry.get("type")
        url = entry.get("url")
        if isinstance(quality, str) and isinstance(url, str):
            out.append(PlayerUrl(quality=quality, url=url))
    return out


def pick_best_quality(player_urls: Sequence[PlayerUrl]) -> str | None:
    """
    Pick the playable URL with the highest quality.

    Order: ultra_hd, full_hd, high, medium, low. When none of these has a
    non-blank URL, fall back to the first non-blank URL of any quality.
    Returns None for an empty list or when every URL is blank.
    """
    for quality in QUALITY_LADDER:
        for pu in player_urls:
            if pu.quality == quality and pu.url.strip():
                return pu.url

    for pu in player_urls:
        if pu.url.strip():
            return pu.url
    return None


def _image(p: Mapping[str, Any]) -> list[ContentItem]:
    return [ImageItem(url=_str(p, "url"), id=_str(p, "id"))]


def _video(p: Mapping[str, Any]) -> list[ContentItem]:
    return [VideoItem(url=_str(p, "url"))]


def _ok_video(p: Mapping[str, Any]) -> list[ContentItem]:
    best = pick_best_quality(player_urls_from_raw(_list(p, "player_urls")))
    if best is None:
        return []
    return [OkVideoItem(url=best, title=_str(p, "title"), vid=_str(p, "vid"))]


def _audio(p: Mapping[str, Any]) -> list[ContentItem]:
    return [
        AudioItem(
            url=_str(p, "url"),
            title=_str(p, "title"),
            size=_int(p, "size"),
            file_type=_opt_str(p, "file_type"),
        )
    ]


def _text(p: Mapping[str, Any]) -> list[ContentItem]:
    return [TextItem(content=_str(p, "content"), modificator=_str(p, "modificator"))]


def _smile(p: Mapping[str, Any]) -> list[ContentItem]:
    return [
        SmileItem(
            small_url=_str(p, "small_url"),
            medium_url=_str(p, "medium_url"),
            large_url=_str(p, "large_url"),
            name=_str(p, "name"),
            is_animated=_bool(p, "is_animated"),
        )
    ]


def _link(p: Mapping[str, Any]) -> list[ContentItem]:
    return [LinkItem(explicit=_bool(p, "explicit"), content=_str(p, "content"), url=_str(p, "url"))]


def _file(p: Mapping[str, Any]) -> list[ContentItem]:
    return [FileItem(url=_str(p, "url"), title=_str(p, "title"), size=_int(p, "size"))]


def _list_block(p: Mapping[str, Any]) -> list[ContentItem]:
    style = _str(p, "style")

    groups: list[tuple[ContentItem, ...]] = []
    for li in _list(p, "items"):
        if not isinstance(li, Mapping):
            raise _Malformed("items")

        sub = extract_content(_list(li, "data"))

        # Second-level items are wrapped in their own list instead of spliced flat.
        for nested in _list(li, "items"):
            if not isinstance(nested, Mapping):
                raise _Malformed("items")
            nested_items = extract_content(_list(nested, "data"))
            if nested_items:
                sub.append(ListItem(style=style, items=(tuple(nested_items),)))

        groups.append(tuple(sub))

    return [ListItem(style=style, items=tuple(groups))]


_PARSERS: dict[str, Callable[[Mapping[str, Any]], list[ContentItem]]] = {
    "image": _image,
    "video": _video,
    "ok_video": _ok_video,
    "audio_file": _audio,
    "text": _text,
    "smile": _smile,
    "link": _link,
    "file": _file,
    "list": _list_block,
}


def _extract_record(record: Any) -> list[ContentItem]:
    if not isinstance(record, Mapping):
        return [UnknownItem()]

    kind = record.get("type")
    if not isinstance(kind, str):
        return [UnknownItem()]

    parser = _PARSERS.get(kind)
    if parser is None:
        return [UnknownItem(kind=kind)]

    try:
        return parser(_payload(record))
    except _Malformed:
        return [UnknownItem(kind=kind)]


def extract_content(records: Iterable[Any]) -> list[ContentItem]:
    """
    Flatten a post/comment media array into display-ready content items.

    Never raises: an unrecognized tag or a payload that does not fit its tag
    becomes an UnknownItem in that position, and an ok_video without any
    playable rendition is dropped.
    """
    out: list[ContentItem] = []
    for record in records or ():
        out.extend(_extract_record(record))
    return out


def content_item_to_dict(item: ContentItem) -> dict[str, Any]:
    """JSON-ready form of a content item: a "type" key plus its fields."""
    out: dict[str, Any] = {"type": _ITEM_TYPES.get(type(item), "unknown")}
    if isinstance(item, ListItem):
        out["style"] = item.style
        out["items"] = [[content_item_to_dict(sub) for sub in group] for group in item.items]
        return out

    out.update(dataclasses.asdict(item))
    return out
