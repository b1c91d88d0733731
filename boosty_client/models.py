from __future__ import annotations

import json
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator

from .content import ContentItem, extract_content


class _Record(BaseModel):
    model_config = ConfigDict(extra="ignore", frozen=True, populate_by_name=True)


class User(_Record):
    id: int | None = None
    name: str | None = None
    blog_url: str | None = Field(default=None, alias="blogUrl")
    has_avatar: bool | None = Field(default=None, alias="hasAvatar")
    avatar_url: str | None = Field(default=None, alias="avatarUrl")


class Tag(_Record):
    id: int | None = None
    title: str | None = None


class Post(_Record):
    """A post as returned by GET blog/{blog}/post/{id}."""

    id: str
    int_id: int | None = None
    title: str = ""
    has_access: bool = False
    data: list[Any] = Field(default_factory=list)
    teaser: list[Any] = Field(default_factory=list)
    price: int | None = None
    created_at: int | None = None
    updated_at: int | None = None
    publish_time: int | None = None
    is_published: bool | None = None
    is_deleted: bool | None = None
    is_pinned: bool | None = None
    signed_query: str | None = None
    tags: list[Tag] = Field(default_factory=list)
    user: User | None = None

    @field_validator("data", "teaser", "tags", mode="before")
    @classmethod
    def _null_list(cls, v: Any) -> Any:
        return [] if v is None else v

    def extract_content(self) -> list[ContentItem]:
        return extract_content(self.data)

    def extract_teaser(self) -> list[ContentItem]:
        return extract_content(self.teaser)

    def not_available(self) -> bool:
        return not self.has_access or not self.data

    def safe_title(self) -> str:
        if not self.title.strip():
            return f"untitled_{self.id}"
        return self.title


class PostsExtra(_Record):
    offset: str | None = None
    is_last: bool = False


class PostsPage(_Record):
    data: list[Post] = Field(default_factory=list)
    extra: PostsExtra = Field(default_factory=PostsExtra)


class Author(_Record):
    id: int | None = None
    name: str | None = None
    has_avatar: bool | None = Field(default=None, alias="hasAvatar")
    avatar_url: str | None = Field(default=None, alias="avatarUrl")


class Comment(_Record):
    """A comment; the comments endpoint uses camelCase field names."""

    id: str
    int_id: int | None = Field(default=None, alias="intId")
    author: Author | None = None
    created_at: int | None = Field(default=None, alias="createdAt")
    updated_at: int | None = Field(default=None, alias="updatedAt")
    is_deleted: bool = Field(default=False, alias="isDeleted")
    is_blocked: bool = Field(default=False, alias="isBlocked")
    reply_count: int = Field(default=0, alias="replyCount")
    data: list[Any] = Field(default_factory=list)
    parent_id: int | None = Field(default=None, alias="parentId")
    reply_id: int | None = Field(default=None, alias="replyId")

    @field_validator("data", mode="before")
    @classmethod
    def _null_list(cls, v: Any) -> Any:
        return [] if v is None else v

    def extract_content(self) -> list[ContentItem]:
        return extract_content(self.data)

    def not_available(self) -> bool:
        return not self.data


class CommentsExtra(_Record):
    is_first: bool = Field(default=False, alias="isFirst")
    is_last: bool = Field(default=False, alias="isLast")


class CommentsPage(_Record):
    data: list[Comment] = Field(default_factory=list)
    extra: CommentsExtra = Field(default_factory=CommentsExtra)


def text_block(text: str) -> dict[str, Any]:
    """Comment block holding one paragraph of unstyled text."""
    return {
        "type": "text",
        "content": json.dumps([text, "unstyled", []], ensure_ascii=False),
        "modificator": "",
    }


def text_end_block() -> dict[str, Any]:
    return {"type": "text", "content": "", "modificator": "BLOCK_END"}


def smile_block(name: str) -> dict[str, Any]:
    return {"type": "smile", "name": name}


class TargetType(str, Enum):
    MONEY = "money"
    SUBSCRIBERS = "subscribers"


class Target(_Record):
    """A blog fundraising or subscriber-count goal."""

    id: int
    description: str = ""
    type: str | None = None
    blogger_id: int | None = Field(default=None, alias="bloggerId")
    blogger_url: str | None = Field(default=None, alias="bloggerUrl")
    priority: int | None = None
    created_at: int | None = Field(default=None, alias="createdAt")
    target_sum: float = Field(default=0, alias="targetSum")
    current_sum: float = Field(default=0, alias="currentSum")
    finish_time: int | None = Field(default=None, alias="finishTime")


class TargetsResponse(_Record):
    data: list[Target] = Field(default_factory=list)


class ShowcaseCounters(_Record):
    visible_total: int = Field(default=0, alias="visibleTotal")
    visible_posts_count: int = Field(default=0, alias="visiblePostsCount")
    visible_bundles_count: int = Field(default=0, alias="visibleBundlesCount")


class ShowcaseExtra(_Record):
    offset: int | None = None
    blog_id: int | None = Field(default=None, alias="blogId")
    counters: ShowcaseCounters | None = None
    is_enabled: bool = Field(default=False, alias="isEnabled")
    is_last: bool = Field(default=False, alias="isLast")


class ShowcaseItem(_Record):
    showcase_item_id: int | None = Field(default=None, alias="showcaseItemId")
    item_type: str | None = Field(default=None, alias="itemType")
    item_id: str | None = Field(default=None, alias="itemId")
    is_visible: bool = Field(default=False, alias="isVisible")
    position: int | None = None
    post: Post | None = None


class ShowcaseData(_Record):
    showcase_items: list[ShowcaseItem] = Field(default_factory=list, alias="showcaseItems")


class ShowcaseResponse(_Record):
    data: ShowcaseData = Field(default_factory=ShowcaseData)
    extra: ShowcaseExtra = Field(default_factory=ShowcaseExtra)


class Promo(_Record):
    id: int
    type: str | None = None
    description: str | None = None
    start_time: int | None = Field(default=None, alias="startTime")
    end_time: int | None = Field(default=None, alias="endTime")
    is_finished: bool = Field(default=False, alias="isFinished")


class SubscriptionLevel(_Record):
    id: int
    name: str = ""
    price: float = 0
    currency_prices: dict[str, float] = Field(default_factory=dict, alias="currencyPrices")
    is_limited: bool = Field(default=False, alias="isLimited")
    is_archived: bool = Field(default=False, alias="isArchived")
    is_hidden: bool = Field(default=False, alias="isHidden")
    deleted: bool = False
    created_at: int | None = Field(default=None, alias="createdAt")
    owner_id: int | None = Field(default=None, alias="ownerId")
    promos: list[Promo] = Field(default_factory=list)
    data: list[Any] = Field(default_factory=list)

    @field_validator("data", "promos", "currency_prices", mode="before")
    @classmethod
    def _null_collection(cls, v: Any, info: ValidationInfo) -> Any:
        if v is None:
            return {} if info.field_name == "currency_prices" else []
        return v

    def extract_content(self) -> list[ContentItem]:
        return extract_content(self.data)


class SubscriptionLevelsResponse(_Record):
    data: list[SubscriptionLevel] = Field(default_factory=list)


class Subscriber(_Record):
    id: int
    name: str = ""
    email: str | None = None
    avatar_url: str | None = Field(default=None, alias="avatarUrl")
    has_avatar: bool = Field(default=False, alias="hasAvatar")
    is_official: bool = Field(default=False, alias="isOfficial")
    is_black_listed: bool = Field(default=False, alias="isBlackListed")
    can_write: bool = Field(default=False, alias="canWrite")
    payments: float = 0
    price: float = 0
    on_time: int | None = Field(default=None, alias="onTime")
    next_pay_time: int | None = Field(default=None, alias="nextPayTime")
    subscribed: bool = False
    status: str | None = None
    is_fee_paid: bool = Field(default=False, alias="isFeePaid")
    level: SubscriptionLevel | None = None


class SubscribersResponse(_Record):
    data: list[Subscriber] = Field(default_factory=list)
    total: int = 0
    limit: int | None = None
    offset: int | None = None


class BlogOwner(_Record):
    id: int | None = None
    name: str | None = None
    has_avatar: bool = False
    avatar_url: str | None = None


class BlogInfo(_Record):
    blog_url: str
    title: str = ""
    cover_url: str | None = None
    has_adult_content: bool = False
    owner: BlogOwner | None = None
    flags: dict[str, bool] = Field(default_factory=dict)


class Subscription(_Record):
    """One of the current user's subscriptions (snake_case on the wire)."""

    id: int
    level_id: int | None = None
    name: str = ""
    price: float = 0
    custom_price: float | None = None
    period: int | None = None
    on_time: int | None = None
    off_time: int | None = None
    next_pay_time: int | None = None
    is_pause: bool = False
    is_suspended: bool = False
    is_archived: bool = False
    is_fee_paid: bool = False
    owner_id: int | None = None
    blog: BlogInfo | None = None


class SubscriptionsResponse(_Record):
    data: list[Subscription] = Field(default_factory=list)
    total: int = 0
    limit: int | None = None
    offset: int | None = None


class StatPoint(_Record):
    day: int
    month: int
    year: int
    count: float = 0


class BlogStats(_Record):
    """Daily blog statistics series, keyed by metric name."""

    model_config = ConfigDict(extra="allow", frozen=True, populate_by_name=True)

    total_money: list[StatPoint] = Field(default_factory=list, alias="totalMoney")
    inc_subscribers: list[StatPoint] = Field(default_factory=list, alias="incSubscribers")
    dec_subscribers: list[StatPoint] = Field(default_factory=list, alias="decSubscribers")
    inc_followers: list[StatPoint] = Field(default_factory=list, alias="incFollowers")
    dec_followers: list[StatPoint] = Field(default_factory=list, alias="decFollowers")
    donations: list[StatPoint] = Field(default_factory=list)
    donations_money: list[StatPoint] = Field(default_factory=list, alias="donationsMoney")
    recurrents: list[StatPoint] = Field(default_factory=list)
    recurrents_money: list[StatPoint] = Field(default_factory=list, alias="recurrentsMoney")
    posts_sale: list[StatPoint] = Field(default_factory=list, alias="postsSale")
    post_sale_money: list[StatPoint] = Field(default_factory=list, alias="postSaleMoney")
    holds: list[StatPoint] = Field(default_factory=list)


class CurrentStats(_Record):
    paid_count: int = Field(default=0, alias="paidCount")
    followers_count: int = Field(default=0, alias="followersCount")
    hold: float = 0
    income: float = 0
    balance: float = 0
    payout_sum: float = Field(default=0, alias="payoutSum")
