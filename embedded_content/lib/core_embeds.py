from functools import lru_cache
from typing import Optional

from embedded_content.lib.cache import DjangoEmbedCache, EmbedCache
from embedded_content.lib.diagnostics import DiagnosticSink, log_diagnostic
from embedded_content.lib.embed_service import EmbedService
from embedded_content.lib.embeds.codepen import CodePenEmbed, CodePenEmbedFactory
from embedded_content.lib.embeds.error import ErrorEmbed
from embedded_content.lib.embeds.file import FileEmbed
from embedded_content.lib.embeds.giphy import GiphyEmbed, GiphyEmbedFactory
from embedded_content.lib.embeds.image import ImageEmbed, ImageEmbedFactory
from embedded_content.lib.embeds.imgur import ImgurEmbed, ImgurEmbedFactory
from embedded_content.lib.embeds.link import LinkEmbed, ScrapeEmbedFactory
from embedded_content.lib.outgoing_http import EmbedProviderSession


def add_core_embeds(
    service: EmbedService, session: Optional[EmbedProviderSession] = None
) -> EmbedService:
    """Register the built-in factories and embed types."""
    (
        service
        # Giphy
        .register_factory(GiphyEmbedFactory(session))
        .register_embed(GiphyEmbed, GiphyEmbed.TYPE)
        # Imgur
        .register_factory(ImgurEmbedFactory(session))
        .register_embed(ImgurEmbed, ImgurEmbed.TYPE)
        # CodePen
        .register_factory(CodePenEmbedFactory(session))
        .register_embed(CodePenEmbed, CodePenEmbed.TYPE)
        # Images.  Low priority, so that provider factories get the
        # first chance at URLs that also look like images.
        .register_factory(ImageEmbedFactory(session), EmbedService.PRIORITY_LOW)
        .register_embed(ImageEmbed, ImageEmbed.TYPE)
        # Files: no factory; these only come from upload metadata.
        .register_embed(FileEmbed, FileEmbed.TYPE)
        # Links come out of the fallback factory.
        .register_embed(LinkEmbed, LinkEmbed.TYPE)
        .register_embed(ErrorEmbed, ErrorEmbed.TYPE)
        .set_fallback_factory(ScrapeEmbedFactory(session))
    )
    return service


def build_embed_service(
    cache: Optional[EmbedCache] = None,
    diagnostics: DiagnosticSink = log_diagnostic,
    session: Optional[EmbedProviderSession] = None,
) -> EmbedService:
    if cache is None:
        cache = DjangoEmbedCache()
    service = EmbedService(cache, diagnostics=diagnostics)
    add_core_embeds(service, session)
    service.freeze()
    return service


@lru_cache(None)
def get_embed_service() -> EmbedService:
    """The process-wide EmbedService."""
    return build_embed_service()
