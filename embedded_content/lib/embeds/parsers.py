from dataclasses import dataclass
from email.message import EmailMessage
from typing import Optional
from urllib.parse import urlsplit

from bs4 import BeautifulSoup
from bs4.element import Tag


@dataclass
class PageMetadata:
    title: Optional[str] = None
    description: Optional[str] = None
    image: Optional[str] = None

    def merge(self, other: "PageMetadata") -> None:
        # Fill in whatever we are missing from a less authoritative source.
        if self.title is None and other.title is not None:
            self.title = other.title
        if self.description is None and other.description is not None:
            self.description = other.description
        if self.image is None and other.image is not None:
            self.image = other.image


class BaseParser:
    def __init__(self, html_source: bytes, content_type: Optional[str]) -> None:
        charset = None
        if content_type is not None:
            msg = EmailMessage()
            msg["content-type"] = content_type
            charset = msg.get_content_charset()
        self._soup = BeautifulSoup(html_source, "lxml", from_encoding=charset)

    def extract_data(self) -> PageMetadata:
        raise NotImplementedError


class OpenGraphParser(BaseParser):
    def extract_data(self) -> PageMetadata:
        meta = self._soup.find_all("meta")

        data = PageMetadata()
        for tag in meta:
            if not isinstance(tag, Tag):
                continue
            if not tag.has_attr("property") or not tag.has_attr("content"):
                continue
            content = tag["content"]
            if not isinstance(content, str):
                continue
            if tag["property"] == "og:title":
                data.title = content
            elif tag["property"] == "og:description":
                data.description = content
            elif tag["property"] == "og:image":
                data.image = content

        return data


class GenericParser(BaseParser):
    def extract_data(self) -> PageMetadata:
        return PageMetadata(
            title=self._get_title(),
            description=self._get_description(),
            image=self._get_image(),
        )

    def _get_title(self) -> Optional[str]:
        soup = self._soup
        if soup.title and soup.title.text != "":
            return soup.title.text
        if soup.h1 and soup.h1.text != "":
            return soup.h1.text
        return None

    def _get_description(self) -> Optional[str]:
        soup = self._soup
        meta_description = soup.find("meta", attrs={"name": "description"})
        if isinstance(meta_description, Tag):
            content = meta_description.get("content", "")
            if isinstance(content, str) and content != "":
                return content
        first_h1 = soup.find("h1")
        if first_h1:
            first_p = first_h1.find_next("p")
            if first_p and first_p.text != "":
                return first_p.text
        first_p = soup.find("p")
        if first_p and first_p.text != "":
            return first_p.text
        return None

    def _get_image(self) -> Optional[str]:
        """
        Finding a first image after the h1 header.
        Presumably it will be the main image.
        """
        soup = self._soup
        first_h1 = soup.find("h1")
        if first_h1:
            first_image = first_h1.find_next_sibling("img", src=True)
            if isinstance(first_image, Tag):
                src = first_image["src"]
                if isinstance(src, str) and src != "" and is_parseable_url(src):
                    return src
        return None


def is_parseable_url(url: str) -> bool:
    try:
        urlsplit(url)
    except ValueError:
        return False
    return True


def extract_page_metadata(html_source: bytes, content_type: Optional[str]) -> PageMetadata:
    """OpenGraph data where the page has it, falling back to guessing
    from the page's markup."""
    data = OpenGraphParser(html_source, content_type).extract_data()
    data.merge(GenericParser(html_source, content_type).extract_data())
    return data
