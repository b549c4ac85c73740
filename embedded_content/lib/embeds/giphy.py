import re
from typing import ClassVar, Optional

from pydantic import NonNegativeInt
from typing_extensions import override

from embedded_content.lib.embeds.base import (
    AbstractEmbed,
    EmbedUrl,
    ProviderEmbedFactory,
    build_provider_embed,
)
from embedded_content.lib.embeds.oembed import get_oembed_data
from embedded_content.lib.exceptions import EmbedProviderResponseError
from embedded_content.lib.outgoing_http import EmbedProviderSession

GIPHY_OEMBED_ENDPOINT = "https://giphy.com/services/oembed"

# giphy.com/gifs/some-slug-<id>, giphy.com/embed/<id>, media.giphy.com/media/<id>/giphy.gif
GIPHY_ID_REGEX = re.compile(
    r"/(?:gifs/(?:[\w-]*-)?|embed/|media/)(?P<giphy_id>[a-zA-Z0-9]+)(?:[/.?#]|$)"
)


class GiphyEmbed(AbstractEmbed):
    TYPE: ClassVar[str] = "giphy"

    url: EmbedUrl
    name: Optional[str] = None
    giphy_id: str
    height: NonNegativeInt
    width: NonNegativeInt


def get_giphy_id(url: str) -> Optional[str]:
    match = GIPHY_ID_REGEX.search(url)
    if match is None:
        return None
    return match.group("giphy_id")


class GiphyEmbedFactory(ProviderEmbedFactory):
    supported_domains = ["giphy.com", "gph.is"]

    def __init__(self, session: Optional[EmbedProviderSession] = None) -> None:
        self.session = session

    @override
    def create_embed_for_url(self, url: str) -> GiphyEmbed:
        oembed_data = get_oembed_data(GIPHY_OEMBED_ENDPOINT, url, session=self.session)

        # Short gph.is links only reveal the id through the media URL
        # the oEmbed endpoint gives us back.
        giphy_id = get_giphy_id(url)
        if giphy_id is None and isinstance(oembed_data.get("url"), str):
            giphy_id = get_giphy_id(oembed_data["url"])
        if giphy_id is None:
            raise EmbedProviderResponseError(url, "Could not determine the Giphy id")

        return build_provider_embed(
            GiphyEmbed,
            url,
            name=oembed_data.get("title") or None,
            giphy_id=giphy_id,
            height=oembed_data.get("height"),
            width=oembed_data.get("width"),
        )
