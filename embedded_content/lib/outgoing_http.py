from typing import Any

import requests
from django.conf import settings
from typing_extensions import override
from urllib3.util import Retry

from embedded_content.lib.exceptions import EmbedFetchError, EmbedProviderResponseError


class OutgoingSession(requests.Session):
    def __init__(
        self,
        role: str,
        timeout: float,
        headers: dict[str, str] | None = None,
        max_retries: int | Retry | None = None,
    ) -> None:
        super().__init__()
        retry: Retry | None = Retry(total=0)
        if max_retries is not None:
            if isinstance(max_retries, Retry):
                retry = max_retries
            else:
                retry = Retry(total=max_retries, backoff_factor=1)
        outgoing_adapter = OutgoingHTTPAdapter(role=role, timeout=timeout, max_retries=retry)
        self.mount("http://", outgoing_adapter)
        self.mount("https://", outgoing_adapter)
        if headers:
            self.headers.update(headers)


class OutgoingHTTPAdapter(requests.adapters.HTTPAdapter):
    role: str
    timeout: float

    def __init__(self, role: str, timeout: float, max_retries: Retry | None) -> None:
        self.role = role
        self.timeout = timeout
        super().__init__(max_retries=max_retries)

    @override
    def send(self, *args: Any, **kwargs: Any) -> requests.Response:
        if kwargs.get("timeout") is None:
            kwargs["timeout"] = self.timeout
        return super().send(*args, **kwargs)

    @override
    def proxy_headers(self, proxy: str) -> dict[str, str]:
        return {"X-Smokescreen-Role": self.role}


class EmbedProviderSession(OutgoingSession):
    """Session for every request made while resolving an embed, to
    oEmbed endpoints and to the pages we scrape."""

    def __init__(self, timeout: float | None = None, max_retries: int | None = None) -> None:
        super().__init__(
            role="embed_provider",
            timeout=settings.EMBED_REQUEST_TIMEOUT if timeout is None else timeout,
            headers={"User-Agent": settings.EMBED_USER_AGENT},
            max_retries=settings.EMBED_MAX_RETRIES if max_retries is None else max_retries,
        )


def fetch_from_provider(
    session: requests.Session,
    embed_url: str,
    request_url: str,
    *,
    method: str = "GET",
    **kwargs: Any,
) -> requests.Response:
    """Make a request on behalf of resolving `embed_url`, translating
    failures into EmbedResolutionError subclasses."""
    try:
        response = session.request(method, request_url, **kwargs)
    except requests.exceptions.RequestException as e:
        raise EmbedFetchError(embed_url, f"{type(e).__name__} while requesting {request_url}")

    if not response.ok:
        response.close()
        raise EmbedProviderResponseError(
            embed_url,
            f"{request_url} responded with HTTP {response.status_code}",
            status_code=response.status_code,
        )
    return response


def read_limited_content(response: requests.Response, max_size: int) -> bytes:
    """Read at most max_size bytes of a streamed response body; hostile
    servers can send arbitrarily large pages."""
    chunks = []
    size = 0
    try:
        for chunk in response.iter_content(chunk_size=64 * 1024):
            chunks.append(chunk)
            size += len(chunk)
            if size >= max_size:
                break
    finally:
        response.close()
    return b"".join(chunks)[:max_size]
