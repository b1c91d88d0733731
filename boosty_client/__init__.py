from __future__ import annotations

from .auth import REFRESH_BUFFER, CredentialState, TokenManager
from .client import BoostyClient
from .config import RuntimeCredentials, build_client, load_config, resolve_runtime_credentials
from .config_schema import AppConfig
from .content import (
    AudioItem,
    ContentItem,
    FileItem,
    ImageItem,
    LinkItem,
    ListItem,
    OkVideoItem,
    PlayerUrl,
    SmileItem,
    TextItem,
    UnknownItem,
    VideoItem,
    content_item_to_dict,
    extract_content,
    pick_best_quality,
)
from .errors import (
    ApiError,
    ApiHttpStatusError,
    ApiParseError,
    ApiRequestError,
    AuthError,
    ConfigError,
    EmptyCredentialError,
    MissingCredentialsError,
    RefreshHttpStatusError,
    RefreshParseError,
    RefreshTransportError,
    UnauthorizedError,
)
from .models import (
    BlogStats,
    Comment,
    CommentsPage,
    CurrentStats,
    Post,
    PostsPage,
    ShowcaseResponse,
    Subscriber,
    SubscribersResponse,
    Subscription,
    SubscriptionLevel,
    SubscriptionLevelsResponse,
    SubscriptionsResponse,
    Target,
    TargetsResponse,
    TargetType,
    smile_block,
    text_block,
    text_end_block,
)
from .run_log import EventLog

__all__ = [
    "ApiError",
    "ApiHttpStatusError",
    "ApiParseError",
    "ApiRequestError",
    "AppConfig",
    "AudioItem",
    "AuthError",
    "BlogStats",
    "BoostyClient",
    "Comment",
    "CommentsPage",
    "ConfigError",
    "ContentItem",
    "CredentialState",
    "CurrentStats",
    "EmptyCredentialError",
    "EventLog",
    "FileItem",
    "ImageItem",
    "LinkItem",
    "ListItem",
    "MissingCredentialsError",
    "OkVideoItem",
    "PlayerUrl",
    "Post",
    "PostsPage",
    "REFRESH_BUFFER",
    "RefreshHttpStatusError",
    "RefreshParseError",
    "RefreshTransportError",
    "RuntimeCredentials",
    "ShowcaseResponse",
    "SmileItem",
    "Subscriber",
    "SubscribersResponse",
    "Subscription",
    "SubscriptionLevel",
    "SubscriptionLevelsResponse",
    "SubscriptionsResponse",
    "Target",
    "TargetType",
    "TargetsResponse",
    "TextItem",
    "TokenManager",
    "UnauthorizedError",
    "UnknownItem",
    "VideoItem",
    "build_client",
    "content_item_to_dict",
    "extract_content",
    "load_config",
    "pick_best_quality",
    "resolve_runtime_credentials",
    "smile_block",
    "text_block",
    "text_end_block",
]
