"""Admission checks applied to every inbound request.

Order: method -> bot filter -> origin -> rate limit. The first failing
check decides the outcome and later checks do not run. Route-level
validation happens after the gate, so any request that clears the
first three checks consumes a rate-limit slot even if its path or
query turns out to be malformed.
"""

from collections.abc import Mapping
from dataclasses import dataclass

from animecatalog.config.settings import Settings
from animecatalog.security.errors import (
    BotRejected,
    MethodNotAllowed,
    OriginRejected,
    RateLimited,
    RequestRejected,
)
from animecatalog.security.ratelimit import RateLimiter, client_identity

ALLOWED_METHOD = "GET"


@dataclass(frozen=True)
class AccessDecision:
    error: RequestRejected | None = None

    @property
    def allowed(self) -> bool:
        return self.error is None

    @property
    def status_code(self) -> int:
        return 200 if self.error is None else self.error.status_code

    @property
    def reason(self) -> str:
        return "" if self.error is None else self.error.message


ALLOW = AccessDecision()


class RequestGate:

    def __init__(
        self,
        allowed_origin: str,
        limiter: RateLimiter,
        client_ip_header: str = "CF-Connecting-IP",
        bot_marker: str = "Mozilla",
    ):
        self.allowed_origin = allowed_origin
        self.limiter = limiter
        self.client_ip_header = client_ip_header
        self.bot_marker = bot_marker

    @classmethod
    def from_settings(cls, settings: Settings, limiter: RateLimiter) -> "RequestGate":
        return cls(
            allowed_origin=settings.allowed_origin,
            limiter=limiter,
            client_ip_header=settings.client_ip_header,
            bot_marker=settings.bot_marker,
        )

    async def evaluate(self, method: str, headers: Mapping[str, str]) -> AccessDecision:
        """Run every check in order and return the first failure, if any."""
        try:
            self.check_method(method)
            self.check_bot(headers)
            self.check_origin(headers)
            await self.check_rate_limit(headers)
        except RequestRejected as e:
            return AccessDecision(error=e)
        return ALLOW

    def check_method(self, method: str) -> None:
        if method != ALLOWED_METHOD:
            raise MethodNotAllowed()

    def check_bot(self, headers: Mapping[str, str]) -> None:
        # Heuristic only: any client can send a browser-like User-Agent.
        user_agent = headers.get("user-agent") or ""
        if self.bot_marker not in user_agent:
            raise BotRejected()

    def check_origin(self, headers: Mapping[str, str]) -> None:
        origin = headers.get("origin")
        if origin is not None and origin != self.allowed_origin:
            raise OriginRejected()

    async def check_rate_limit(self, headers: Mapping[str, str]) -> None:
        identity = client_identity(headers, self.client_ip_header)
        if not await self.limiter.allow(identity):
            raise RateLimited()

    def identity(self, headers: Mapping[str, str]) -> str:
        return client_identity(headers, self.client_ip_header)
