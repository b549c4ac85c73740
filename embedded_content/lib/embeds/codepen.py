import re
from typing import ClassVar, Optional
from urllib.parse import urlsplit

from pydantic import NonNegativeInt
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

CODEPEN_OEMBED_ENDPOINT = "https://codepen.io/api/oembed"
CODEPEN_DEFAULT_HEIGHT = 300

CODEPEN_PATH_REGEX = re.compile(
    r"^/(?P<author>[\w-]+)/(?:pen|full|details|embed)/(?P<codepen_id>[a-zA-Z0-9]+)/?$"
)


class CodePenEmbed(AbstractEmbed):
    TYPE: ClassVar[str] = "codepen"

    url: EmbedUrl
    name: Optional[str] = None
    codepen_id: str
    author: str
    height: NonNegativeInt
    width: Optional[NonNegativeInt] = None


class CodePenEmbedFactory(ProviderEmbedFactory):
    supported_domains = ["codepen.io"]
    supported_path_regex = CODEPEN_PATH_REGEX

    def __init__(self, session: Optional[EmbedProviderSession] = None) -> None:
        self.session = session

    @override
    def create_embed_for_url(self, url: str) -> CodePenEmbed:
        match = CODEPEN_PATH_REGEX.search(urlsplit(url).path)
        if match is None:
            raise EmbedResolutionError(url, "Not a CodePen pen URL")

        oembed_data = get_oembed_data(CODEPEN_OEMBED_ENDPOINT, url, session=self.session)
        return build_provider_embed(
            CodePenEmbed,
            url,
            name=oembed_data.get("title") or None,
            codepen_id=match.group("codepen_id"),
            author=match.group("author"),
            height=oembed_data.get("height") or CODEPEN_DEFAULT_HEIGHT,
            # CodePen reports "100%" as the width of responsive pens.
            width=oembed_data.get("width") if isinstance(oembed_data.get("width"), int) else None,
        )
