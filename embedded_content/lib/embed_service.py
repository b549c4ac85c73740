import logging
import threading
import time
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple, Type

from django.utils.translation import gettext as _
from pydantic import ValidationError

from embedded_content.lib.cache import EmbedCache
from embedded_content.lib.diagnostics import (
    DiagnosticKind,
    DiagnosticSink,
    EmbedDiagnostic,
    log_diagnostic,
)
from embedded_content.lib.embeds.base import AbstractEmbed, EmbedFactory, FallbackEmbedFactory
from embedded_content.lib.embeds.error import ErrorEmbed
from embedded_content.lib.exceptions import (
    EmbedRegistrationError,
    EmbedTypeNotFoundError,
    NoEmbedFactoryError,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FactoryRegistration:
    factory: EmbedFactory
    priority: int


class EmbedService:
    """Turns URLs, and data stored from earlier resolutions, into embeds.

    Factories and embed types are registered during startup (see
    embedded_content.lib.core_embeds); after `freeze()` the service is
    read-only and safe to share between threads.
    """

    PRIORITY_HIGH = 100
    PRIORITY_NORMAL = 50
    PRIORITY_LOW = 25

    def __init__(
        self,
        cache: EmbedCache,
        *,
        factories: Iterable[Tuple[EmbedFactory, int]] = (),
        fallback_factory: Optional[FallbackEmbedFactory] = None,
        embeds: Optional[Mapping[str, Type[AbstractEmbed]]] = None,
        diagnostics: DiagnosticSink = log_diagnostic,
    ) -> None:
        self.cache = cache
        self.diagnostics = diagnostics
        self._lock = threading.Lock()
        self._frozen = False
        # Replaced wholesale on every registration, so that readers
        # can iterate over it without holding the lock.
        self._registered_factories: Tuple[FactoryRegistration, ...] = ()
        self._registered_embeds: Dict[str, Type[AbstractEmbed]] = {}
        self._fallback_factory: Optional[FallbackEmbedFactory] = None

        for factory, priority in factories:
            self.register_factory(factory, priority)
        for embed_type, embed_class in (embeds or {}).items():
            self.register_embed(embed_class, embed_type)
        if fallback_factory is not None:
            self.set_fallback_factory(fallback_factory)

    def _check_not_frozen(self) -> None:
        if self._frozen:
            raise EmbedRegistrationError(
                _("The embed service is frozen; register embeds during startup.")
            )

    def _report(self, diagnostic: EmbedDiagnostic) -> None:
        try:
            self.diagnostics(diagnostic)
        except Exception:
            # Sinks never raise into registration or reconstruction.
            logger.exception("Diagnostics sink failed on %s", diagnostic.kind.value)

    def freeze(self) -> None:
        with self._lock:
            self._frozen = True

    @property
    def is_frozen(self) -> bool:
        return self._frozen

    def register_embed(self, embed_class: object, embed_type: str) -> "EmbedService":
        """Map the `type` found in embed data to the class that embed
        data is reconstructed with in create_embed_from_data.  A later
        registration for the same type replaces an earlier one."""
        if not (isinstance(embed_class, type) and issubclass(embed_class, AbstractEmbed)):
            raise EmbedRegistrationError(
                _("Only classes extending {base} may be registered.").format(
                    base=AbstractEmbed.__name__
                )
            )
        with self._lock:
            self._check_not_frozen()
            self._registered_embeds = {**self._registered_embeds, embed_type: embed_class}
        return self

    def register_factory(
        self, factory: EmbedFactory, priority: int = PRIORITY_NORMAL
    ) -> "EmbedService":
        """Add a factory.  Factories with a higher priority get the
        first chance to handle a URL; ties go to the earliest registered."""
        if not isinstance(factory, EmbedFactory):
            raise EmbedRegistrationError(
                _("Only instances of {base} may be registered as factories.").format(
                    base=EmbedFactory.__name__
                )
            )
        with self._lock:
            self._check_not_frozen()
            registrations = [*self._registered_factories, FactoryRegistration(factory, priority)]
            # list.sort is stable, reverse=True included.
            registrations.sort(key=lambda registration: registration.priority, reverse=True)
            self._registered_factories = tuple(registrations)

        if isinstance(factory, FallbackEmbedFactory):
            self._report(
                EmbedDiagnostic(
                    kind=DiagnosticKind.FALLBACK_REGISTERED_AS_FACTORY,
                    message="A fallback embed factory was registered as a normal factory. "
                    "See EmbedService.set_fallback_factory.",
                    context={"factory": type(factory).__name__, "priority": priority},
                )
            )
        return self

    def set_fallback_factory(self, factory: FallbackEmbedFactory) -> "EmbedService":
        if not isinstance(factory, FallbackEmbedFactory):
            raise EmbedRegistrationError(
                _("The fallback factory must be an instance of {base}.").format(
                    base=FallbackEmbedFactory.__name__
                )
            )
        with self._lock:
            self._check_not_frozen()
            self._fallback_factory = factory
        return self

    def get_fallback_factory(self) -> Optional[FallbackEmbedFactory]:
        return self._fallback_factory

    def get_registered_factories(self) -> Tuple[FactoryRegistration, ...]:
        return self._registered_factories

    def get_registered_embeds(self) -> Dict[str, Type[AbstractEmbed]]:
        return dict(self._registered_embeds)

    def get_factory_for_url(self, url: str) -> EmbedFactory:
        for registration in self._registered_factories:
            if registration.factory.can_handle_url(url):
                return registration.factory

        if self._fallback_factory is None:
            raise NoEmbedFactoryError(url)
        return self._fallback_factory

    def create_embed_for_url(self, url: str, force: bool = False) -> AbstractEmbed:
        """Resolve a URL to an embed, from the cache unless `force` is set.

        Failures to resolve (EmbedResolutionError) propagate to the
        caller and nothing is cached for them, since they are usually
        transient.
        """
        if not force:
            cached_embed = self.cache.get_cached_embed(url)
            if cached_embed is not None:
                return cached_embed

        factory = self.get_factory_for_url(url)
        start = time.time()
        embed = factory.create_embed_for_url(url)
        logger.info(
            "Time spent on %s for %s: %.3fs", type(factory).__name__, url, time.time() - start
        )
        self.cache.cache_embed(embed)
        return embed

    def create_embed_from_data(self, data: Mapping[str, Any]) -> AbstractEmbed:
        """Reconstruct an embed from its stored data (see AbstractEmbed.to_data).

        This runs for every embed on every page render, over data that
        may be stale or come from elsewhere, so it never raises for bad
        data; it returns an ErrorEmbed instead.
        """
        embed_type = data.get("type") if isinstance(data, Mapping) else None
        embed_class = (
            self._registered_embeds.get(embed_type) if isinstance(embed_type, str) else None
        )
        if embed_class is None:
            return ErrorEmbed.from_error(EmbedTypeNotFoundError(embed_type), data)

        try:
            return embed_class.model_validate(dict(data))
        except ValidationError as e:
            self._report(
                EmbedDiagnostic(
                    kind=DiagnosticKind.EMBED_VALIDATION_FAILED,
                    message=f"Validation error while instantiating embed type {embed_type} "
                    f"with class {embed_class.__name__}",
                    context={
                        "embed_type": embed_type,
                        "embed_class": embed_class.__name__,
                        "data": data,
                        "errors": e.errors(include_url=False),
                    },
                )
            )
            return ErrorEmbed.from_error(e, data)
