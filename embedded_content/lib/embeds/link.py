from typing import ClassVar, Optional
from urllib.parse import urljoin

from django.conf import settings
from typing_extensions import override

from embedded_content.lib.embeds.base import (
    AbstractEmbed,
    EmbedUrl,
    FallbackEmbedFactory,
    build_provider_embed,
    check_embed_url,
)
from embedded_content.lib.embeds.image import ImageEmbed
from embedded_content.lib.embeds.parsers import extract_page_metadata
from embedded_content.lib.mime_types import (
    INLINE_IMAGE_MIME_TYPES,
    bare_content_type,
)
from embedded_content.lib.outgoing_http import (
    EmbedProviderSession,
    fetch_from_provider,
    read_limited_content,
)

HTML_CONTENT_TYPES = ["text/html", "application/xhtml+xml"]


class LinkEmbed(AbstractEmbed):
    TYPE: ClassVar[str] = "link"

    url: EmbedUrl
    name: Optional[str] = None
    body: Optional[str] = None
    photo_url: Optional[EmbedUrl] = None


def absolute_photo_url(page_url: str, image: Optional[str]) -> Optional[str]:
    if image is None:
        return None
    try:
        return check_embed_url(urljoin(page_url, image))
    except ValueError:
        return None


class ScrapeEmbedFactory(FallbackEmbedFactory):
    """Builds an embed for any URL by fetching the page: a link preview
    from its OpenGraph data or markup, or an image embed if the URL
    turns out to serve an image."""

    def __init__(self, session: Optional[EmbedProviderSession] = None) -> None:
        self.session = session

    @override
    def create_embed_for_url(self, url: str) -> AbstractEmbed:
        session = self.session if self.session is not None else EmbedProviderSession()
        response = fetch_from_provider(session, url, url, stream=True)
        content_type = response.headers.get("Content-Type")
        mime_type = bare_content_type(content_type)

        if mime_type in INLINE_IMAGE_MIME_TYPES:
            response.close()
            return build_provider_embed(ImageEmbed, url, mime_type=mime_type)

        if mime_type not in HTML_CONTENT_TYPES:
            response.close()
            return build_provider_embed(LinkEmbed, url)

        html_source = read_limited_content(response, settings.EMBED_MAX_RESPONSE_SIZE)
        metadata = extract_page_metadata(html_source, content_type)
        return build_provider_embed(
            LinkEmbed,
            url,
            name=metadata.title.strip() if metadata.title else None,
            body=metadata.description.strip() if metadata.description else None,
            photo_url=absolute_photo_url(url, metadata.image),
        )
