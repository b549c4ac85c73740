from datetime import datetime
from typing import ClassVar, Optional

from pydantic import NonNegativeInt

from embedded_content.lib.embeds.base import AbstractEmbed, EmbedUrl


class FileEmbed(AbstractEmbed):
    """An uploaded file.  These are only ever built from the metadata
    of an upload, never by resolving a URL, so there is no factory
    for them."""

    TYPE: ClassVar[str] = "file"

    url: EmbedUrl
    name: str
    media_id: NonNegativeInt
    mime_type: str
    size: NonNegativeInt
    date_inserted: Optional[datetime] = None
