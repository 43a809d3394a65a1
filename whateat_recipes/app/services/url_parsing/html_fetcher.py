"""HTML fetching and URL validation utilities.

Every hop of a fetch is validated before any request is sent: scheme, length,
credentials, local hostnames and the resolved addresses of the host. Redirects
are followed by hand so each ``Location`` goes through the same checks.
"""

import asyncio
import ipaddress
import logging
import socket
from typing import List, Optional, Tuple, Union
from urllib.parse import urljoin, urlsplit

import httpx

from whateat_recipes.app.core.config import get_settings
from whateat_recipes.app.core.errors import ImportErrorCode, RecipeImportError
from whateat_recipes.app.services.url_parsing.models import FetchResult

logger = logging.getLogger(__name__)

MAX_URL_LENGTH = 2048
MAX_HTML_BYTES = 1_500_000
MAX_REDIRECTS = 3
FETCH_TIMEOUT_SECONDS = 8.0

SUPPORTED_CONTENT_TYPES = (
    "text/html",
    "application/xhtml+xml",
    "application/ld+json",
    "application/json",
)
ACCEPT_HEADER = "text/html,application/xhtml+xml,application/json,application/ld+json"

_BLOCKED_NETWORKS = tuple(
    ipaddress.ip_network(cidr)
    for cidr in (
        "127.0.0.0/8",
        "10.0.0.0/8",
        "172.16.0.0/12",
        "192.168.0.0/16",
        "169.254.0.0/16",
        "100.64.0.0/10",
        "0.0.0.0/8",
        "::1/128",
        "::/128",
        "fc00::/7",
        "fe80::/10",
    )
)


def is_blocked_address(address: str) -> bool:
    """True when ``address`` falls in a loopback, private, link-local or CGNAT range."""
    try:
        ip = ipaddress.ip_address(address.split("%", 1)[0])
    except ValueError:
        return True
    if isinstance(ip, ipaddress.IPv6Address) and ip.ipv4_mapped is not None:
        ip = ip.ipv4_mapped
    return any(ip.version == network.version and ip in network for network in _BLOCKED_NETWORKS)


def is_private_host(hostname: str) -> bool:
    """Check if a hostname names the local machine or the local network."""
    host = hostname.lower().rstrip(".")
    return host == "localhost" or host.endswith(".localhost") or host.endswith(".local")


def _is_ip_literal(hostname: str) -> bool:
    try:
        ipaddress.ip_address(hostname)
    except ValueError:
        return False
    return True


async def resolve_host(hostname: str) -> List[str]:
    loop = asyncio.get_running_loop()
    infos = await loop.getaddrinfo(hostname, None, type=socket.SOCK_STREAM)
    return [info[4][0] for info in infos]


def _invalid(message: str) -> RecipeImportError:
    return RecipeImportError(message, ImportErrorCode.INVALID_URL)


async def validate_url(raw_url: str) -> str:
    """Validate ``raw_url`` for fetching, resolving its host. Returns the URL unchanged."""
    if not raw_url or len(raw_url) > MAX_URL_LENGTH:
        raise _invalid("URL is missing or too long.")

    try:
        parsed = urlsplit(raw_url.strip())
        parsed.port  # raises on a malformed port
    except ValueError:
        raise _invalid("URL is invalid.")

    if parsed.scheme.lower() not in {"http", "https"}:
        raise _invalid("Only http and https URLs are supported.")
    if parsed.username or parsed.password:
        raise _invalid("URL credentials are not allowed.")

    hostname = (parsed.hostname or "").lower()
    if not hostname:
        raise _invalid("URL is invalid.")
    if is_private_host(hostname):
        raise _invalid("That URL is not allowed.")

    if _is_ip_literal(hostname):
        if is_blocked_address(hostname):
            raise RecipeImportError("That URL is not allowed.", ImportErrorCode.URL_BLOCKED)
        return raw_url.strip()

    try:
        addresses = await resolve_host(hostname)
    except (OSError, UnicodeError) as exc:
        logger.info("DNS lookup failed for %s: %s", hostname, exc)
        raise RecipeImportError("We could not resolve that host.", ImportErrorCode.FETCH_FAILED)
    if not addresses:
        raise RecipeImportError("We could not resolve that host.", ImportErrorCode.FETCH_FAILED)

    for address in addresses:
        if is_blocked_address(address):
            logger.warning("Blocked fetch of %s: %s resolves to %s", raw_url, hostname, address)
            raise RecipeImportError("That URL is not allowed.", ImportErrorCode.URL_BLOCKED)

    return raw_url.strip()


def is_supported_content_type(content_type: str) -> bool:
    normalized = content_type.lower()
    return any(supported in normalized for supported in SUPPORTED_CONTENT_TYPES)


def _too_large() -> RecipeImportError:
    return RecipeImportError(
        "Page is too large to import.",
        ImportErrorCode.CONTENT_TOO_LARGE,
        details={"limit_bytes": MAX_HTML_BYTES},
    )


async def _read_body_with_limit(response: httpx.Response, limit: int) -> bytes:
    content_length = response.headers.get("content-length")
    if content_length and content_length.strip().isdigit() and int(content_length) > limit:
        raise _too_large()

    chunks: List[bytes] = []
    total = 0
    async for chunk in response.aiter_bytes():
        total += len(chunk)
        if total > limit:
            raise _too_large()
        chunks.append(chunk)
    return b"".join(chunks)


def _decode_body(body: bytes, encoding: Optional[str]) -> str:
    try:
        return body.decode(encoding or "utf-8", errors="replace")
    except LookupError:
        return body.decode("utf-8", errors="replace")


async def _fetch_hop(client: httpx.AsyncClient, url: str) -> Union[Tuple[str, str], FetchResult]:
    """Issue one request. Returns ("redirect", location) or the fetched page."""
    async with client.stream("GET", url) as response:
        if 300 <= response.status_code < 400:
            location = response.headers.get("location")
            if not location:
                raise RecipeImportError("Redirect missing location header.", ImportErrorCode.FETCH_FAILED)
            return ("redirect", location)

        if not response.is_success:
            raise RecipeImportError(
                "We could not fetch that page.",
                ImportErrorCode.FETCH_FAILED,
                details={"status": response.status_code},
            )

        content_type = response.headers.get("content-type")
        if content_type and not is_supported_content_type(content_type):
            raise RecipeImportError(
                "That page does not contain readable recipe content.",
                ImportErrorCode.UNSUPPORTED_CONTENT,
                details={"content_type": content_type},
            )

        body = await _read_body_with_limit(response, MAX_HTML_BYTES)
        return FetchResult(
            body=_decode_body(body, response.charset_encoding),
            final_url=url,
            content_type=content_type,
        )


async def fetch_with_guards(
    url: str,
    *,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> FetchResult:
    """Fetch ``url`` following at most ``MAX_REDIRECTS`` validated redirects."""
    settings = get_settings()
    headers = {"User-Agent": settings.import_user_agent, "Accept": ACCEPT_HEADER}
    current_url = await validate_url(url)

    async with httpx.AsyncClient(
        headers=headers,
        follow_redirects=False,
        timeout=httpx.Timeout(FETCH_TIMEOUT_SECONDS),
        transport=transport,
    ) as client:
        for _ in range(MAX_REDIRECTS + 1):
            try:
                outcome = await asyncio.wait_for(_fetch_hop(client, current_url), FETCH_TIMEOUT_SECONDS)
            except asyncio.TimeoutError:
                logger.info("Fetch of %s timed out", current_url)
                raise RecipeImportError("We could not reach that URL.", ImportErrorCode.FETCH_FAILED)
            except httpx.HTTPError as exc:
                logger.info("Fetch of %s failed: %s", current_url, exc)
                raise RecipeImportError("We could not reach that URL.", ImportErrorCode.FETCH_FAILED)

            if isinstance(outcome, FetchResult):
                return outcome

            _, location = outcome
            logger.debug("Following redirect from %s to %s", current_url, location)
            current_url = await validate_url(urljoin(current_url, location))

    raise RecipeImportError("Too many redirects.", ImportErrorCode.TOO_MANY_REDIRECTS)
