from abc import ABC, abstractmethod
from typing import Annotated, Any, ClassVar, Dict, List, Optional, Pattern, Type, TypeVar
from urllib.parse import urlsplit

from django.core.exceptions import ValidationError as DjangoValidationError
from django.core.validators import URLValidator
from pydantic import AfterValidator, BaseModel, ConfigDict, ValidationError, computed_field
from typing_extensions import override

from embedded_content.lib.exceptions import EmbedProviderResponseError

_validate_http_url = URLValidator(schemes=["http", "https"])


def check_embed_url(url: str) -> str:
    try:
        _validate_http_url(url)
        # Lone surrogates pass URLValidator but cannot be encoded later.
        url.encode()
    except (DjangoValidationError, UnicodeEncodeError):
        raise ValueError(f"{url!r} is not a valid http(s) URL")
    return url


# Every URL an embed points at must be an absolute http(s) URL; the
# data we reconstruct embeds from is untrusted.
EmbedUrl = Annotated[str, AfterValidator(check_embed_url)]


class AbstractEmbed(BaseModel):
    """A resolved embed.  Concrete embeds set TYPE, the discriminator
    stored in the `type` key of their serialized form, and declare
    their fields as pydantic fields; constructing one from untrusted
    data (`model_validate`) raises pydantic.ValidationError.

    Embeds are frozen: once built, they are shared between the cache
    and every caller that resolved them.
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    TYPE: ClassVar[str]

    url: Optional[str] = None

    @computed_field  # type: ignore[prop-decorator]
    @property
    def type(self) -> str:
        return self.TYPE

    def to_data(self) -> Dict[str, Any]:
        """The JSON-compatible form that EmbedService.create_embed_from_data
        turns back into this embed."""
        return self.model_dump(mode="json")


class EmbedFactory(ABC):
    @abstractmethod
    def can_handle_url(self, url: str) -> bool:
        """Whether this factory claims the URL.  Must be cheap and must
        not do any network I/O."""

    @abstractmethod
    def create_embed_for_url(self, url: str) -> AbstractEmbed:
        """Build the embed, fetching whatever is needed from the provider.

        Raises EmbedResolutionError (or a subclass) on failure.
        """


class FallbackEmbedFactory(EmbedFactory):
    """A factory able to build some embed for any URL.  Only one is
    used per EmbedService, through EmbedService.set_fallback_factory."""

    @override
    def can_handle_url(self, url: str) -> bool:
        return True


class ProviderEmbedFactory(EmbedFactory):
    """Factory for a provider recognized by its domain, and optionally
    by the path of the URL."""

    supported_domains: ClassVar[List[str]] = []
    supported_path_regex: ClassVar[Optional[Pattern[str]]] = None

    @override
    def can_handle_url(self, url: str) -> bool:
        try:
            split_url = urlsplit(url)
        except ValueError:
            return False
        if split_url.scheme not in ("http", "https"):
            return False
        hostname = (split_url.hostname or "").lower()
        if not any(
            hostname == domain or hostname.endswith("." + domain)
            for domain in self.supported_domains
        ):
            return False
        if self.supported_path_regex is None:
            return True
        return self.supported_path_regex.search(split_url.path) is not None


EmbedT = TypeVar("EmbedT", bound=AbstractEmbed)


def build_provider_embed(embed_class: Type[EmbedT], url: str, **fields: Any) -> EmbedT:
    """Construct an embed from data a provider sent us.  Malformed
    provider data is a resolution failure, not a programming error."""
    try:
        return embed_class(url=url, **fields)
    except ValidationError as e:
        raise EmbedProviderResponseError(
            url, f"Unusable {embed_class.TYPE} data from the provider ({e.error_count()} errors)"
        )
