from enum import Enum, auto
from typing import Any, Dict, List, Optional

from django.utils.translation import gettext as _
from typing_extensions import override


class ErrorCode(Enum):
    BAD_REQUEST = auto()  # Generic name, from the name of HTTP 400.
    EMBED_REGISTRATION_FAILED = auto()
    EMBED_TYPE_NOT_FOUND = auto()
    EMBED_VALIDATION_FAILED = auto()
    EMBED_RESOLUTION_FAILED = auto()
    EMBED_FETCH_FAILED = auto()
    EMBED_PROVIDER_ERROR = auto()
    NO_EMBED_FACTORY = auto()


class EmbedError(Exception):
    """A standardized error format for the embed machinery, which can
    be turned into a JSON response or stored on an ErrorEmbed.

    Subclasses declare a `code`, the attributes listed in
    `data_fields`, and a `msg_format` which is formatted with those
    attributes:

        class NoSuchProviderError(EmbedError):
            code = ErrorCode.EMBED_PROVIDER_ERROR
            data_fields = ["provider"]

            def __init__(self, provider: str) -> None:
                self.provider = provider

            @staticmethod
            def msg_format() -> str:
                return _("No such provider: {provider}")

    Subclasses may also override `http_status_code`.
    """

    # Override this in subclasses, as needed.
    code: ErrorCode = ErrorCode.BAD_REQUEST

    # Override this in subclasses if providing structured data.
    data_fields: List[str] = []

    http_status_code: int = 400

    def __init__(self, msg: str) -> None:
        # `_msg` is an implementation detail of `EmbedError` itself.
        self._msg = msg

    @staticmethod
    def msg_format() -> str:
        """Override in subclasses.  Gets the items in `data_fields` as format args."""
        return "{_msg}"

    #
    # Infrastructure -- not intended to be overridden in subclasses.
    #

    @property
    def msg(self) -> str:
        format_data = dict(
            ((f, getattr(self, f)) for f in self.data_fields), _msg=getattr(self, "_msg", None)
        )
        return self.msg_format().format(**format_data)

    @property
    def data(self) -> Dict[str, Any]:
        return dict(((f, getattr(self, f)) for f in self.data_fields), code=self.code.name)

    @override
    def __str__(self) -> str:
        return self.msg


class EmbedRegistrationError(EmbedError):
    """Raised while wiring up an EmbedService; setup should abort."""

    code = ErrorCode.EMBED_REGISTRATION_FAILED


class EmbedTypeNotFoundError(EmbedError):
    code = ErrorCode.EMBED_TYPE_NOT_FOUND
    data_fields = ["embed_type"]

    def __init__(self, embed_type: object) -> None:
        self.embed_type = embed_type

    @staticmethod
    @override
    def msg_format() -> str:
        return _("Embed class for type {embed_type} not found.")


class EmbedResolutionError(EmbedError):
    """Base class for failures turning a URL into an embed.  These are
    never cached; the caller decides whether to retry."""

    code = ErrorCode.EMBED_RESOLUTION_FAILED
    http_status_code = 502
    data_fields = ["url"]

    def __init__(self, url: str, msg: str = "") -> None:
        self.url = url
        self._msg = msg

    @staticmethod
    @override
    def msg_format() -> str:
        return _("Could not create an embed for {url}: {_msg}")


class EmbedFetchError(EmbedResolutionError):
    code = ErrorCode.EMBED_FETCH_FAILED


class EmbedProviderResponseError(EmbedResolutionError):
    code = ErrorCode.EMBED_PROVIDER_ERROR
    data_fields = ["url", "status_code"]

    def __init__(self, url: str, msg: str = "", status_code: Optional[int] = None) -> None:
        super().__init__(url, msg)
        self.status_code = status_code


class NoEmbedFactoryError(EmbedResolutionError):
    code = ErrorCode.NO_EMBED_FACTORY

    def __init__(self, url: str) -> None:
        super().__init__(url)

    @staticmethod
    @override
    def msg_format() -> str:
        return _("No embed factory can handle {url} and no fallback factory is set.")
