import re
from typing import ClassVar, Optional
from urllib.parse import urlsplit

from typing_extensions import override

from embedded_content.lib.embeds.base import (
    AbstractEmbed,
    EmbedUrl,
    ProviderEmbedFactory,
    build_provider_embed,
)
from embedded_content.lib.embeds.oembed import get_oembed_data
from embedded_content.lib.exceptions import EmbedResolutionError
from embedded_content.lib.outgoing_http import EmbedProviderSession

IMGUR_OEMBED_ENDPOINT = "https://api.imgur.com/oembed.json"

IMGUR_PATH_REGEX = re.compile(
    r"^/(?:(?P<album>a|gallery)/)?(?P<imgur_id>[a-zA-Z0-9]+)(?:\.[a-z0-9]+)?/?$"
)


class ImgurEmbed(AbstractEmbed):
    TYPE: ClassVar[str] = "imgur"

    url: EmbedUrl
    name: Optional[str] = None
    imgur_id: str
    is_album: bool


class ImgurEmbedFactory(ProviderEmbedFactory):
    supported_domains = ["imgur.com"]
    supported_path_regex = IMGUR_PATH_REGEX

    def __init__(self, session: Optional[EmbedProviderSession] = None) -> None:
        self.session = session

    @override
    def create_embed_for_url(self, url: str) -> ImgurEmbed:
        match = IMGUR_PATH_REGEX.search(urlsplit(url).path)
        if match is None:
            raise EmbedResolutionError(url, "Not an Imgur image or album URL")

        oembed_data = get_oembed_data(IMGUR_OEMBED_ENDPOINT, url, session=self.session)

        return build_provider_embed(
            ImgurEmbed,
            url,
            name=oembed_data.get("title") or None,
            imgur_id=match.group("imgur_id"),
            is_album=match.group("album") is not None,
        )
