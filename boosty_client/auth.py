from __future__ import annotations

import asyncio
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable, MutableMapping

import httpx
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .errors import (
    EmptyCredentialError,
    MissingCredentialsError,
    RefreshHttpStatusError,
    RefreshParseError,
    RefreshTransportError,
)
from .run_log import EventLog

# A cached token this close to expiry is treated as already expired.
REFRESH_BUFFER = timedelta(seconds=30)

TOKEN_PATH = "/oauth/token/"

ClockFn = Callable[[], datetime]


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _is_blank(value: str | None) -> bool:
    return not (value or "").strip()


@dataclass
class CredentialState:
    static_token: str | None = None
    refresh_token: str | None = None
    device_id: str | None = None
    cached_access_token: str | None = None
    expires_at: datetime | None = None

    def clear_refresh(self) -> None:
        self.refresh_token = None
        self.device_id = None
        self.clear_cached()

    def clear_cached(self) -> None:
        self.cached_access_token = None
        self.expires_at = None


class _TokenResponse(BaseModel):
    model_config = ConfigDict(extra="ignore", frozen=True)

    access_token: str = Field(min_length=1)
    refresh_token: str = Field(min_length=1)
    expires_in: float = Field(ge=0)


class TokenManager:
    """
    Chooses the credential for outgoing requests and runs the refresh-token flow.

    Two modes are mutually exclusive: a static bearer token used as-is, or a
    refresh token + device id pair exchanged for short-lived access tokens at
    ``{base_url}/oauth/token/``. The refresh token rotates on every exchange.

    Exchanges are single-flight: concurrent callers that find a refresh due
    await the same in-flight exchange instead of starting their own.
    """

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        base_url: str,
        *,
        clock: ClockFn | None = None,
        logger: EventLog | None = None,
    ) -> None:
        self._http = http_client
        self._base_url = (base_url or "").strip().rstrip("/")
        self._clock = clock or _utc_now
        self._logger = logger

        self._state = CredentialState()
        # Bumped on every credential change so a late exchange cannot overwrite newer state.
        self._generation = 0
        self._inflight: tuple[int, asyncio.Task[None]] | None = None

    @property
    def static_token(self) -> str | None:
        return self._state.static_token

    @property
    def refresh_token(self) -> str | None:
        return self._state.refresh_token

    @property
    def device_id(self) -> str | None:
        return self._state.device_id

    @property
    def expires_at(self) -> datetime | None:
        return self._state.expires_at

    @property
    def has_refresh_credentials(self) -> bool:
        return bool(self._state.refresh_token and self._state.device_id)

    def set_static_token(self, token: str) -> None:
        if _is_blank(token):
            raise EmptyCredentialError("access token")

        self._state.static_token = token
        self._state.clear_refresh()
        self._generation += 1

    def set_refresh_credentials(self, refresh_token: str, device_id: str) -> None:
        if _is_blank(refresh_token):
            raise EmptyCredentialError("refresh token")
        if _is_blank(device_id):
            raise EmptyCredentialError("device_id")

        self._state.static_token = None
        self._state.refresh_token = refresh_token
        self._state.device_id = device_id
        self._state.clear_cached()
        self._generation += 1

    def clear_static_token(self) -> None:
        self._state.static_token = None

    def clear_refresh_credentials(self) -> None:
        self._state.clear_refresh()
        self._generation += 1

    async def apply_auth_header(self, headers: MutableMapping[str, str]) -> None:
        """
        Add ``Authorization: Bearer <token>`` when a credential mode is configured.

        Headers are left untouched when neither mode is set.
        """
        if self._state.static_token:
            headers["Authorization"] = f"Bearer {self._state.static_token}"
            return

        if self.has_refresh_credentials:
            token = await self.get_valid_access_token()
            headers["Authorization"] = f"Bearer {token}"

    async def get_valid_access_token(self) -> str:
        """
        Return the static token, or a cached access token that is not about to expire.

        Runs the refresh exchange first when the cached token is missing or within
        REFRESH_BUFFER of its expiry.
        """
        if self._state.static_token:
            return self._state.static_token

        if not self.has_refresh_credentials:
            raise MissingCredentialsError(
                "Missing credentials: neither static access token nor "
                "refresh token + device_id set"
            )

        while True:
            generation = self._generation
            if self._needs_refresh():
                await self._refresh_single_flight()

            if self._state.static_token:
                return self._state.static_token
            if generation == self._generation:
                break
            # Credentials changed while waiting; the exchange result was discarded.
            if not self.has_refresh_credentials:
                raise MissingCredentialsError(
                    "Refresh credentials were cleared during token refresh"
                )

        token = self._state.cached_access_token
        if not token:
            raise MissingCredentialsError("Access token not available after refresh")
        return token

    async def refresh(self) -> None:
        """Run the refresh exchange now, regardless of the cached token's expiry."""
        if not self.has_refresh_credentials:
            raise MissingCredentialsError("Refresh token + device_id are not set")
        await self._refresh_single_flight()

    def _needs_refresh(self) -> bool:
        state = self._state
        if not state.cached_access_token or state.expires_at is None:
            return True
        return self._clock() + REFRESH_BUFFER >= state.expires_at

    async def _refresh_single_flight(self) -> None:
        inflight = self._inflight
        if inflight is not None and inflight[0] == self._generation:
            task = inflight[1]
        else:
            task = asyncio.get_running_loop().create_task(
                self._exchange(
                    self._generation,
                    self._state.refresh_token or "",
                    self._state.device_id or "",
                )
            )
            self._inflight = (self._generation, task)
            task.add_done_callback(self._on_exchange_done)

        # A cancelled waiter must not cancel the exchange other callers are awaiting.
        await asyncio.shield(task)

    def _on_exchange_done(self, task: asyncio.Task[None]) -> None:
        if self._inflight is not None and self._inflight[1] is task:
            self._inflight = None
        if not task.cancelled():
            # Mark the error as retrieved even if every waiter was cancelled.
            task.exception()

    async def _exchange(self, generation: int, refresh_token: str, device_id: str) -> None:
        form = {
            "device_id": device_id,
            "device_os": "web",
            "grant_type": "refresh_token",
            "refresh_token": refresh_token,
        }
        url = f"{self._base_url}{TOKEN_PATH}"

        self._log_info("token_refresh_started", url=url)

        try:
            response = await self._http.post(
                url,
                data=form,
                headers={"Content-Type": "application/x-www-form-urlencoded"},
            )
        except httpx.HTTPError as e:
            self._log_failure(e)
            raise RefreshTransportError(
                f"HTTP request error during token refresh: {e}"
            ) from e

        if response.status_code != 200:
            err = RefreshHttpStatusError(response.status_code, response.text)
            self._log_failure(err, status=response.status_code)
            raise err

        try:
            payload = _TokenResponse.model_validate_json(response.content)
        except ValidationError as e:
            parse_err = RefreshParseError(f"Failed to parse token refresh response: {e}")
            self._log_failure(parse_err, status=response.status_code)
            raise parse_err from e

        try:
            expires_at = self._clock() + timedelta(seconds=payload.expires_in)
        except (OverflowError, ValueError) as e:
            parse_err = RefreshParseError(
                f"Token refresh response has out-of-range expires_in: {payload.expires_in!r}"
            )
            self._log_failure(parse_err, status=response.status_code)
            raise parse_err from e

        if generation != self._generation:
            if self._logger is not None:
                self._logger.warning("token_refresh_discarded", reason="credentials_changed")
            return

        state = self._state
        state.cached_access_token = payload.access_token
        state.refresh_token = payload.refresh_token
        state.expires_at = expires_at

        self._log_info(
            "token_refresh_completed",
            expires_in=payload.expires_in,
            expires_at=state.expires_at.isoformat(),
        )

    def _log_info(self, event: str, **data: object) -> None:
        if self._logger is not None:
            self._logger.info(event, **data)

    def _log_failure(self, exc: BaseException, *, status: int | None = None) -> None:
        if self._logger is None:
            return
        self._logger.error(
            "token_refresh_failed",
            error_type=type(exc).__name__,
            status=status,
        )
