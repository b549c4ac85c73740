import sys
from mimetypes import add_type
from mimetypes import guess_type as guess_type
from urllib.parse import urlsplit

EXTRA_MIME_TYPES = [
    ("image/apng", ".apng"),
]

if sys.version_info < (3, 11):  # nocoverage
    # https://github.com/python/cpython/issues/89802
    EXTRA_MIME_TYPES += [
        ("image/avif", ".avif"),
        ("image/webp", ".webp"),
    ]

for mime_type, extension in EXTRA_MIME_TYPES:
    add_type(mime_type, extension)


# Image formats browsers display inline.  To avoid cross-site
# scripting attacks, DO NOT add image/svg+xml.
INLINE_IMAGE_MIME_TYPES = [
    "image/apng",
    "image/avif",
    "image/gif",
    "image/jpeg",
    "image/png",
    "image/webp",
]


def bare_content_type(content_type: str | None) -> str:
    # "text/html; charset=UTF-8" -> "text/html"
    if not content_type:
        return ""
    return content_type.split(";", 1)[0].strip().lower()


def guess_url_mime_type(url: str) -> str | None:
    try:
        path = urlsplit(url).path
    except ValueError:
        return None
    return guess_type(path)[0]
