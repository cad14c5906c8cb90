"""Privacy-mode aware endpoint and network channel resolution."""
import asyncio
import logging
import time
from dataclasses import dataclass
from enum import Enum
from typing import Awaitable, Callable, Optional

import httpx

from config import (
    AUTO_DETECT_CENSORSHIP,
    CDN_PROVIDER,
    CDN_REFLECTORS,
    CENSORSHIP_CHECK_TTL,
    CENSORSHIP_PROBE_TIMEOUT,
    COMPOSE_CDN_PATH,
    COMPOSE_ENDPOINT,
    INTENT_CDN_PATH,
    INTENT_ENDPOINT,
    REQUEST_TIMEOUT,
    TOR_PROBE_TIMEOUT,
    TOR_REQUEST_TIMEOUT,
)
from services.errors import ChannelUnavailableError, InvalidEndpointError

logger = logging.getLogger(__name__)


class PrivacyMode(str, Enum):
    """Mutually exclusive network privacy modes."""
    STANDARD = "standard"
    DOMAIN_FRONTING = "domainFronting"
    TOR = "tor"


@dataclass(frozen=True)
class EndpointDescriptor:
    """Concrete URLs for both inference backends under one privacy mode."""
    intent_url: str
    compose_url: str
    mode: PrivacyMode
    via_cdn: bool = False


class Channel:
    """
    An HTTP client plus the timeout and privacy properties of the route it takes.

    Calls lease the channel for their duration. A retired channel is closed once
    its last lease is released, so swapping channels never cuts off an in-flight call.
    """

    def __init__(self, name: str, client: httpx.AsyncClient, timeout: float = REQUEST_TIMEOUT,
                 is_tor: bool = False):
        self.name = name
        self.client = client
        self.timeout = timeout
        self.is_tor = is_tor
        self._leases = 0
        self._retired = False

    @property
    def closed(self) -> bool:
        return self.client.is_closed

    @property
    def in_use(self) -> int:
        return self._leases

    def lease(self) -> "Channel":
        if self._retired:
            raise ChannelUnavailableError(f"Channel {self.name} has been retired")
        self._leases += 1
        return self

    async def release(self) -> None:
        self._leases = max(0, self._leases - 1)
        if self._retired and self._leases == 0:
            await self.client.aclose()

    async def retire(self) -> None:
        self._retired = True
        if self._leases == 0:
            await self.client.aclose()
            logger.info(f"Channel {self.name} closed")
        else:
            logger.info(f"Channel {self.name} retired with {self._leases} call(s) in flight")


def validate_url(url: str) -> str:
    """Raise InvalidEndpointError unless `url` is an absolute http(s) URL."""
    try:
        parsed = httpx.URL(url)
    except (httpx.InvalidURL, TypeError) as e:
        raise InvalidEndpointError(f"Invalid URL: {url!r}", {"url": str(url), "reason": str(e)})
    if parsed.scheme not in ("http", "https") or not parsed.host:
        raise InvalidEndpointError(f"Invalid URL: {url!r}", {"url": str(url)})
    return url


async def _tcp_reachable(host: str, port: int, timeout: float) -> bool:
    try:
        _, writer = await asyncio.wait_for(asyncio.open_connection(host, port), timeout=timeout)
    except (OSError, asyncio.TimeoutError):
        return False
    writer.close()
    await writer.wait_closed()
    return True


class PrivacyResolver:
    """Maps a privacy mode (and censorship signal) to endpoints and channels."""

    def __init__(
        self,
        intent_endpoint: str = INTENT_ENDPOINT,
        compose_endpoint: str = COMPOSE_ENDPOINT,
        cdn_provider: str = CDN_PROVIDER,
        auto_detect_censorship: bool = AUTO_DETECT_CENSORSHIP,
        standard_client: Optional[httpx.AsyncClient] = None,
        fronting_client: Optional[httpx.AsyncClient] = None,
        proxy_probe: Optional[Callable[[str, int, float], Awaitable[bool]]] = None,
    ):
        """
        Initialize the resolver.

        Args:
            intent_endpoint: Direct URL of the intent model
            compose_endpoint: Direct URL of the composition model
            cdn_provider: Key into CDN_REFLECTORS used for domain fronting
            auto_detect_censorship: Probe the direct host in standard mode
            standard_client: Client for the direct route
            fronting_client: Client for the CDN route
            proxy_probe: Coroutine checking a SOCKS proxy is listening
        """
        if cdn_provider not in CDN_REFLECTORS:
            raise ValueError(f"Unknown CDN provider: {cdn_provider}")

        self.intent_endpoint = intent_endpoint
        self.compose_endpoint = compose_endpoint
        self.reflector_url = CDN_REFLECTORS[cdn_provider].rstrip("/")
        self.auto_detect_censorship = auto_detect_censorship
        self.standard_channel = Channel(
            "standard", standard_client or httpx.AsyncClient(timeout=REQUEST_TIMEOUT)
        )
        self.fronting_channel = Channel(
            "domainFronting", fronting_client or httpx.AsyncClient(timeout=REQUEST_TIMEOUT)
        )
        self._proxy_probe = proxy_probe or _tcp_reachable
        self._censored: Optional[bool] = None
        self._censorship_checked_at = 0.0

        logger.info(f"Initialized PrivacyResolver (cdn={cdn_provider}, auto_detect={auto_detect_censorship})")

    async def resolve_endpoint(self, mode: PrivacyMode, tor_requested: bool = False) -> EndpointDescriptor:
        """
        Resolve inference endpoints for a privacy mode.

        - domainFronting: always the CDN reflector plus a fixed path per backend
        - tor (or tor_requested): direct endpoints; Tor provides the anonymity
        - standard: direct endpoints, or the CDN if the direct host looks blocked

        Raises:
            InvalidEndpointError: If a resolved URL is malformed
        """
        if mode == PrivacyMode.DOMAIN_FRONTING:
            descriptor = self._cdn_descriptor(mode)
        elif mode == PrivacyMode.TOR or tor_requested:
            # Never probe clearnet on behalf of a Tor session
            descriptor = self._direct_descriptor(mode)
        elif self.auto_detect_censorship and await self.detect_censorship():
            logger.warning("Direct endpoint appears blocked; using CDN reflector")
            descriptor = self._cdn_descriptor(mode)
        else:
            descriptor = self._direct_descriptor(mode)

        validate_url(descriptor.intent_url)
        validate_url(descriptor.compose_url)
        return descriptor

    def resolve_channel(self, mode: PrivacyMode, tor_requested: bool = False,
                        tor_channel: Optional[Channel] = None) -> Channel:
        """
        Pick the channel a call must use. Fails closed for Tor.

        Raises:
            ChannelUnavailableError: If Tor is selected but `tor_channel` is missing or closed
        """
        if mode == PrivacyMode.TOR or tor_requested:
            if tor_channel is None or tor_channel.closed:
                raise ChannelUnavailableError()
            return tor_channel
        if mode == PrivacyMode.DOMAIN_FRONTING:
            return self.fronting_channel
        return self.standard_channel

    async def detect_censorship(self) -> bool:
        """Probe the direct inference host; cache the verdict for CENSORSHIP_CHECK_TTL seconds."""
        now = time.monotonic()
        if self._censored is not None and now - self._censorship_checked_at < CENSORSHIP_CHECK_TTL:
            return self._censored

        endpoint = httpx.URL(self.compose_endpoint)
        port = f":{endpoint.port}" if endpoint.port else ""
        probe_url = f"{endpoint.scheme}://{endpoint.host}{port}/"
        try:
            await self.standard_channel.client.head(probe_url, timeout=CENSORSHIP_PROBE_TIMEOUT)
            censored = False
        except httpx.HTTPError as e:
            logger.info(f"Censorship probe failed: {type(e).__name__}")
            censored = True

        self._censored = censored
        self._censorship_checked_at = now
        return censored

    async def create_tor_channel(self, proxy_url: str) -> Optional[Channel]:
        """
        Build a channel routed through a SOCKS proxy, or None if the proxy is not running.

        Raises:
            InvalidEndpointError: If `proxy_url` is malformed
        """
        try:
            proxy = httpx.URL(proxy_url)
        except httpx.InvalidURL as e:
            raise InvalidEndpointError(f"Invalid proxy URL: {proxy_url!r}", {"reason": str(e)})
        if not proxy.scheme.startswith("socks5") or not proxy.host or not proxy.port:
            raise InvalidEndpointError(f"Invalid proxy URL: {proxy_url!r}")

        if not await self._proxy_probe(proxy.host, proxy.port, TOR_PROBE_TIMEOUT):
            logger.warning("Tor proxy not available (is the Tor client running?)")
            return None

        client = httpx.AsyncClient(proxy=proxy_url, timeout=TOR_REQUEST_TIMEOUT)
        logger.info("Tor channel configured")
        return Channel("tor", client, timeout=TOR_REQUEST_TIMEOUT, is_tor=True)

    async def aclose(self) -> None:
        await self.standard_channel.retire()
        await self.fronting_channel.retire()

    def _direct_descriptor(self, mode: PrivacyMode) -> EndpointDescriptor:
        return EndpointDescriptor(
            intent_url=self.intent_endpoint,
            compose_url=self.compose_endpoint,
            mode=mode,
        )

    def _cdn_descriptor(self, mode: PrivacyMode) -> EndpointDescriptor:
        return EndpointDescriptor(
            intent_url=f"{self.reflector_url}{INTENT_CDN_PATH}",
            compose_url=f"{self.reflector_url}{COMPOSE_CDN_PATH}",
            mode=mode,
            via_cdn=True,
        )
