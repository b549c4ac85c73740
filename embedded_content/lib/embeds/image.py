from typing import ClassVar, Optional

from pydantic import NonNegativeInt
from typing_extensions import override

from embedded_content.lib.embeds.base import (
    AbstractEmbed,
    EmbedFactory,
    EmbedUrl,
    build_provider_embed,
)
from embedded_content.lib.exceptions import EmbedProviderResponseError
from embedded_content.lib.mime_types import (
    INLINE_IMAGE_MIME_TYPES,
    bare_content_type,
    guess_url_mime_type,
)
from embedded_content.lib.outgoing_http import EmbedProviderSession, fetch_from_provider


class ImageEmbed(AbstractEmbed):
    TYPE: ClassVar[str] = "image"

    url: EmbedUrl
    name: Optional[str] = None
    height: Optional[NonNegativeInt] = None
    width: Optional[NonNegativeInt] = None
    mime_type: Optional[str] = None


class ImageEmbedFactory(EmbedFactory):
    """Embeds any URL that looks like a direct link to an image.

    This is a loose heuristic, so it should be registered with a low
    priority, leaving provider-specific factories the first chance at
    URLs like i.imgur.com/<id>.png.
    """

    def __init__(self, session: Optional[EmbedProviderSession] = None) -> None:
        self.session = session

    @override
    def can_handle_url(self, url: str) -> bool:
        if not url.startswith(("http://", "https://")):
            return False
        return guess_url_mime_type(url) in INLINE_IMAGE_MIME_TYPES

    @override
    def create_embed_for_url(self, url: str) -> ImageEmbed:
        session = self.session if self.session is not None else EmbedProviderSession()
        response = fetch_from_provider(session, url, url, method="HEAD", allow_redirects=True)
        mime_type = bare_content_type(response.headers.get("Content-Type"))
        if mime_type not in INLINE_IMAGE_MIME_TYPES:
            raise EmbedProviderResponseError(
                url, f"Expected an image, got {mime_type or 'no content type'}"
            )
        return build_provider_embed(ImageEmbed, url, mime_type=mime_type)
