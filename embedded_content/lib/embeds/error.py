from collections.abc import Mapping
from typing import Any, ClassVar, Dict, Optional

from pydantic import Field, ValidationError

from embedded_content.lib.embeds.base import AbstractEmbed, EmbedUrl, check_embed_url
from embedded_content.lib.exceptions import EmbedError, ErrorCode


class ErrorEmbed(AbstractEmbed):
    """Placeholder for data we could not turn into a real embed.

    Keeps the original data around, so that the failure can be
    diagnosed later and renderers can still show the URL, if any.
    """

    TYPE: ClassVar[str] = "error"

    url: Optional[EmbedUrl] = None
    error_message: str
    error_code: str
    original_data: Dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def from_error(cls, error: Exception, data: object) -> "ErrorEmbed":
        if isinstance(error, EmbedError):
            error_code = error.code.name
        elif isinstance(error, ValidationError):
            error_code = ErrorCode.EMBED_VALIDATION_FAILED.name
        else:
            error_code = ErrorCode.BAD_REQUEST.name

        if isinstance(data, Mapping):
            original_data = {str(key): value for key, value in data.items()}
        else:
            original_data = {"data": data}

        return cls(
            url=get_safe_url(original_data.get("url")),
            error_message=str(error),
            error_code=error_code,
            original_data=original_data,
        )


def get_safe_url(url: object) -> Optional[str]:
    # The URL of data we failed to validate is as untrusted as the rest of it.
    if not isinstance(url, str):
        return None
    try:
        return check_embed_url(url)
    except ValueError:
        return None
