from collections.abc import Callable

import requests
import responses
from django.test import override_settings
from responses import matchers

from embedded_content.lib.core_embeds import build_embed_service
from embedded_content.lib.embeds.base import AbstractEmbed
from embedded_content.lib.embeds.codepen import CODEPEN_OEMBED_ENDPOINT, CodePenEmbedFactory
from embedded_content.lib.embeds.giphy import GIPHY_OEMBED_ENDPOINT, GiphyEmbedFactory, get_giphy_id
from embedded_content.lib.embeds.image import ImageEmbed, ImageEmbedFactory
from embedded_content.lib.embeds.imgur import IMGUR_OEMBED_ENDPOINT, ImgurEmbedFactory
from embedded_content.lib.embeds.link import LinkEmbed, ScrapeEmbedFactory
from embedded_content.lib.embeds.oembed import get_oembed_data
from embedded_content.lib.exceptions import (
    EmbedFetchError,
    EmbedProviderResponseError,
    EmbedResolutionError,
)
from embedded_content.lib.test_classes import EmbedTestCase
from embedded_content.lib.test_helpers import InstrumentedEmbedCache


def oembed_matcher(url: str) -> Callable[..., tuple[bool, str]]:
    return matchers.query_param_matcher({"url": url, "format": "json"})


class EmbedFactoryTestCase(EmbedTestCase):
    def assert_round_trip(self, embed: AbstractEmbed) -> None:
        """Stored data of a resolved embed rebuilds the same embed."""
        service = build_embed_service(
            cache=InstrumentedEmbedCache(), diagnostics=self.diagnostics.append
        )
        rebuilt = service.create_embed_from_data(embed.to_data())
        self.assertIs(type(rebuilt), type(embed))
        self.assertEqual(rebuilt.to_data(), embed.to_data())
        self.assertEqual(self.diagnostics, [])


class OEmbedTest(EmbedTestCase):
    @responses.activate
    def test_get_oembed_data(self) -> None:
        url = "https://giphy.com/gifs/cat-JIX9t2j0ZTN9S"
        responses.add(
            responses.GET,
            GIPHY_OEMBED_ENDPOINT,
            json={"type": "photo", "title": "Cat"},
            match=[
                matchers.query_param_matcher(
                    {"url": url, "format": "json", "maxwidth": "400", "maxheight": "300"}
                )
            ],
        )
        self.assertEqual(
            get_oembed_data(GIPHY_OEMBED_ENDPOINT, url, maxwidth=400, maxheight=300),
            {"type": "photo", "title": "Cat"},
        )

    @responses.activate
    def test_invalid_json(self) -> None:
        url = "https://giphy.com/gifs/cat-JIX9t2j0ZTN9S"
        responses.add(responses.GET, GIPHY_OEMBED_ENDPOINT, body="<html>Not JSON</html>")
        with self.assertRaisesRegex(EmbedProviderResponseError, "returned invalid JSON"):
            get_oembed_data(GIPHY_OEMBED_ENDPOINT, url)

    @responses.activate
    def test_non_object_json(self) -> None:
        url = "https://giphy.com/gifs/cat-JIX9t2j0ZTN9S"
        responses.add(responses.GET, GIPHY_OEMBED_ENDPOINT, json=["photo"])
        with self.assertRaisesRegex(EmbedProviderResponseError, "returned a non-object"):
            get_oembed_data(GIPHY_OEMBED_ENDPOINT, url)

    @responses.activate
    def test_error_status(self) -> None:
        url = "https://giphy.com/gifs/cat-JIX9t2j0ZTN9S"
        responses.add(responses.GET, GIPHY_OEMBED_ENDPOINT, status=404)
        with self.assertRaises(EmbedProviderResponseError) as e:
            get_oembed_data(GIPHY_OEMBED_ENDPOINT, url)
        self.assertEqual(e.exception.status_code, 404)
        self.assertEqual(e.exception.url, url)


class GiphyEmbedFactoryTest(EmbedFactoryTestCase):
    def test_get_giphy_id(self) -> None:
        self.assertEqual(get_giphy_id("https://giphy.com/gifs/cat-JIX9t2j0ZTN9S"), "JIX9t2j0ZTN9S")
        self.assertEqual(get_giphy_id("https://giphy.com/gifs/JIX9t2j0ZTN9S"), "JIX9t2j0ZTN9S")
        self.assertEqual(get_giphy_id("https://giphy.com/embed/JIX9t2j0ZTN9S"), "JIX9t2j0ZTN9S")
        self.assertEqual(
            get_giphy_id("https://media.giphy.com/media/JIX9t2j0ZTN9S/giphy.gif"), "JIX9t2j0ZTN9S"
        )
        self.assertIsNone(get_giphy_id("https://gph.is/g/ZW1234"))
        self.assertIsNone(get_giphy_id("https://giphy.com/explore/cats"))

    def test_can_handle_url(self) -> None:
        factory = GiphyEmbedFactory()
        self.assertTrue(factory.can_handle_url("https://giphy.com/gifs/cat-JIX9t2j0ZTN9S"))
        self.assertTrue(factory.can_handle_url("http://GIPHY.com/gifs/cat-JIX9t2j0ZTN9S"))
        self.assertTrue(factory.can_handle_url("https://media.giphy.com/media/abc/giphy.gif"))
        self.assertFalse(factory.can_handle_url("https://notgiphy.com/gifs/cat"))
        self.assertFalse(factory.can_handle_url("ftp://giphy.com/gifs/cat"))
        self.assertFalse(factory.can_handle_url("https://giphy.com.example.com/gifs/cat"))

    @responses.activate
    def test_create_embed(self) -> None:
        url = "https://giphy.com/gifs/cat-JIX9t2j0ZTN9S"
        responses.add(
            responses.GET,
            GIPHY_OEMBED_ENDPOINT,
            json={
                "type": "photo",
                "title": "Funny Cat GIF",
                "url": "https://media.giphy.com/media/JIX9t2j0ZTN9S/giphy.gif",
                "width": 480,
                "height": 270,
            },
            match=[oembed_matcher(url)],
        )
        embed = GiphyEmbedFactory().create_embed_for_url(url)
        self.assertEqual(
            embed.to_data(),
            {
                "type": "giphy",
                "url": url,
                "name": "Funny Cat GIF",
                "giphy_id": "JIX9t2j0ZTN9S",
                "height": 270,
                "width": 480,
            },
        )
        self.assert_round_trip(embed)

    @responses.activate
    def test_short_link(self) -> None:
        url = "https://gph.is/g/ZW1234"
        responses.add(
            responses.GET,
            GIPHY_OEMBED_ENDPOINT,
            json={
                "url": "https://media.giphy.com/media/JIX9t2j0ZTN9S/giphy.gif",
                "width": 480,
                "height": 270,
            },
            match=[oembed_matcher(url)],
        )
        embed = GiphyEmbedFactory().create_embed_for_url(url)
        self.assertEqual(embed.giphy_id, "JIX9t2j0ZTN9S")
        self.assertIsNone(embed.name)
        self.assert_round_trip(embed)

    @responses.activate
    def test_unusable_provider_data(self) -> None:
        url = "https://gph.is/g/ZW1234"
        responses.add(responses.GET, GIPHY_OEMBED_ENDPOINT, json={"width": 480, "height": 270})
        with self.assertRaisesRegex(EmbedProviderResponseError, "Could not determine the Giphy id"):
            GiphyEmbedFactory().create_embed_for_url(url)

        url = "https://giphy.com/gifs/cat-JIX9t2j0ZTN9S"
        responses.replace(responses.GET, GIPHY_OEMBED_ENDPOINT, json={"width": "wide"})
        with self.assertRaisesRegex(
            EmbedProviderResponseError, r"Unusable giphy data from the provider \(2 errors\)"
        ):
            GiphyEmbedFactory().create_embed_for_url(url)


class ImgurEmbedFactoryTest(EmbedFactoryTestCase):
    def test_can_handle_url(self) -> None:
        factory = ImgurEmbedFactory()
        self.assertTrue(factory.can_handle_url("https://imgur.com/a1B2c3"))
        self.assertTrue(factory.can_handle_url("https://i.imgur.com/a1B2c3.jpg"))
        self.assertTrue(factory.can_handle_url("https://imgur.com/a/a1B2c3"))
        self.assertTrue(factory.can_handle_url("https://imgur.com/gallery/a1B2c3/"))
        self.assertFalse(factory.can_handle_url("https://imgur.com/user/someone/posts"))
        self.assertFalse(factory.can_handle_url("https://imgur.com/"))
        self.assertFalse(factory.can_handle_url("https://example.com/a1B2c3"))

    @responses.activate
    def test_create_image_embed(self) -> None:
        url = "https://i.imgur.com/a1B2c3.png"
        responses.add(
            responses.GET,
            IMGUR_OEMBED_ENDPOINT,
            json={"type": "rich", "title": ""},
            match=[oembed_matcher(url)],
        )
        embed = ImgurEmbedFactory().create_embed_for_url(url)
        self.assertEqual(
            embed.to_data(),
            {
                "type": "imgur",
                "url": url,
                "name": None,
                "imgur_id": "a1B2c3",
                "is_album": False,
            },
        )
        self.assert_round_trip(embed)

    @responses.activate
    def test_create_album_embed(self) -> None:
        url = "https://imgur.com/a/a1B2c3"
        responses.add(
            responses.GET,
            IMGUR_OEMBED_ENDPOINT,
            json={"type": "rich", "title": "Holiday pictures"},
            match=[oembed_matcher(url)],
        )
        embed = ImgurEmbedFactory().create_embed_for_url(url)
        self.assertTrue(embed.is_album)
        self.assertEqual(embed.imgur_id, "a1B2c3")
        self.assertEqual(embed.name, "Holiday pictures")
        self.assert_round_trip(embed)

    def test_unsupported_path(self) -> None:
        # Checked before making any request.
        with self.assertRaisesRegex(EmbedResolutionError, "Not an Imgur image or album URL"):
            ImgurEmbedFactory().create_embed_for_url("https://imgur.com/user/someone")


class CodePenEmbedFactoryTest(EmbedFactoryTestCase):
    def test_can_handle_url(self) -> None:
        factory = CodePenEmbedFactory()
        self.assertTrue(factory.can_handle_url("https://codepen.io/someone/pen/abcDEF"))
        self.assertTrue(factory.can_handle_url("https://codepen.io/some-one/full/abcDEF/"))
        self.assertFalse(factory.can_handle_url("https://codepen.io/someone"))
        self.assertFalse(factory.can_handle_url("https://codepen.io/trending"))

    @responses.activate
    def test_create_embed(self) -> None:
        url = "https://codepen.io/someone/pen/abcDEF"
        responses.add(
            responses.GET,
            CODEPEN_OEMBED_ENDPOINT,
            json={"type": "rich", "title": "Spinning cube", "height": 400, "width": "100%"},
            match=[oembed_matcher(url)],
        )
        embed = CodePenEmbedFactory().create_embed_for_url(url)
        self.assertEqual(
            embed.to_data(),
            {
                "type": "codepen",
                "url": url,
                "name": "Spinning cube",
                "codepen_id": "abcDEF",
                "author": "someone",
                "height": 400,
                "width": None,
            },
        )
        self.assert_round_trip(embed)

    @responses.activate
    def test_default_height(self) -> None:
        url = "https://codepen.io/someone/details/abcDEF"
        responses.add(responses.GET, CODEPEN_OEMBED_ENDPOINT, json={"width": 800})
        embed = CodePenEmbedFactory().create_embed_for_url(url)
        self.assertEqual(embed.height, 300)
        self.assertEqual(embed.width, 800)
        self.assert_round_trip(embed)


class ImageEmbedFactoryTest(EmbedFactoryTestCase):
    def test_can_handle_url(self) -> None:
        factory = ImageEmbedFactory()
        self.assertTrue(factory.can_handle_url("https://example.com/cat.png"))
        self.assertTrue(factory.can_handle_url("http://example.com/cat.JPEG"))
        self.assertTrue(factory.can_handle_url("https://example.com/cat.webp#anchor"))
        self.assertFalse(factory.can_handle_url("https://example.com/drawing.svg"))
        self.assertFalse(factory.can_handle_url("https://example.com/cat"))
        self.assertFalse(factory.can_handle_url("https://example.com/cat.pdf"))
        self.assertFalse(factory.can_handle_url("file:///tmp/cat.png"))

    @responses.activate
    def test_create_embed(self) -> None:
        url = "https://example.com/cat.png"
        responses.add(responses.HEAD, url, content_type="image/png")
        embed = ImageEmbedFactory().create_embed_for_url(url)
        self.assertIsInstance(embed, ImageEmbed)
        self.assertEqual(embed.mime_type, "image/png")
        self.assertEqual(embed.url, url)
        self.assertEqual(responses.calls[0].request.method, "HEAD")
        self.assert_round_trip(embed)

    @responses.activate
    def test_not_an_image(self) -> None:
        url = "https://example.com/cat.png"
        responses.add(responses.HEAD, url, content_type="text/html")
        with self.assertRaisesRegex(EmbedProviderResponseError, "Expected an image, got text/html"):
            ImageEmbedFactory().create_embed_for_url(url)


class ScrapeEmbedFactoryTest(EmbedFactoryTestCase):
    html = b"""
      <html>
        <head>
            <meta property="og:title" content="The Rock" />
            <meta property="og:type" content="video.movie" />
            <meta property="og:url" content="http://www.imdb.com/title/tt0117500/" />
            <meta property="og:image" content="/images/rock.jpg" />
        </head>
        <body>
            <h1>Main header</h1>
            <p>Description text</p>
        </body>
      </html>
    """

    @responses.activate
    def test_link_embed(self) -> None:
        url = "http://test.org/movies/the-rock"
        responses.add(responses.GET, url, body=self.html, content_type="text/html")
        embed = ScrapeEmbedFactory().create_embed_for_url(url)
        self.assertEqual(
            embed.to_data(),
            {
                "type": "link",
                "url": url,
                "name": "The Rock",
                "body": "Description text",
                "photo_url": "http://test.org/images/rock.jpg",
            },
        )
        self.assert_round_trip(embed)

    @responses.activate
    def test_page_without_metadata(self) -> None:
        url = "http://test.org/empty"
        responses.add(
            responses.GET, url, body=b"<html><body></body></html>", content_type="text/html"
        )
        embed = ScrapeEmbedFactory().create_embed_for_url(url)
        self.assertEqual(embed.to_data(), LinkEmbed(url=url).to_data())

    @responses.activate
    def test_unusable_image(self) -> None:
        url = "http://test.org/page"
        html = b"""<html><head>
            <meta property="og:title" content="Title" />
            <meta property="og:image" content="javascript:alert(1)" />
        </head></html>"""
        responses.add(responses.GET, url, body=html, content_type="text/html; charset=UTF-8")
        embed = ScrapeEmbedFactory().create_embed_for_url(url)
        assert isinstance(embed, LinkEmbed)
        self.assertEqual(embed.name, "Title")
        self.assertIsNone(embed.photo_url)
        self.assert_round_trip(embed)

    @responses.activate
    def test_image_content_type(self) -> None:
        url = "http://test.org/show?id=12"
        responses.add(responses.GET, url, body=b"GIF89a", content_type="image/gif")
        embed = ScrapeEmbedFactory().create_embed_for_url(url)
        self.assertIsInstance(embed, ImageEmbed)
        self.assertEqual(embed.to_data()["mime_type"], "image/gif")
        self.assert_round_trip(embed)

    @responses.activate
    def test_non_html_content_type(self) -> None:
        url = "http://test.org/report.pdf"
        responses.add(responses.GET, url, body=b"%PDF-1.4", content_type="application/pdf")
        embed = ScrapeEmbedFactory().create_embed_for_url(url)
        self.assertEqual(embed.to_data(), LinkEmbed(url=url).to_data())
        self.assert_round_trip(embed)

    @responses.activate
    @override_settings(EMBED_MAX_RESPONSE_SIZE=100)
    def test_response_size_limit(self) -> None:
        url = "http://test.org/huge"
        html = b"<html><head><title>Huge</title></head><body>" + b"x" * 10000 + b"</body></html>"
        responses.add(responses.GET, url, body=html, content_type="text/html")
        embed = ScrapeEmbedFactory().create_embed_for_url(url)
        assert isinstance(embed, LinkEmbed)
        self.assertEqual(embed.name, "Huge")

    @responses.activate
    def test_error_status(self) -> None:
        url = "http://test.org/missing"
        responses.add(responses.GET, url, status=404)
        with self.assertRaises(EmbedProviderResponseError) as e:
            ScrapeEmbedFactory().create_embed_for_url(url)
        self.assertEqual(e.exception.status_code, 404)
        self.assertEqual(
            str(e.exception), f"Could not create an embed for {url}: {url} responded with HTTP 404"
        )

    @responses.activate
    def test_connection_error(self) -> None:
        url = "http://test.org/down"
        responses.add(responses.GET, url, body=requests.exceptions.ConnectionError())
        with self.assertRaises(EmbedFetchError) as e:
            ScrapeEmbedFactory().create_embed_for_url(url)
        self.assertEqual(e.exception.data, {"url": url, "code": "EMBED_FETCH_FAILED"})

    @responses.activate
    def test_user_agent(self) -> None:
        url = "http://test.org/page"
        responses.add(responses.GET, url, body=self.html, content_type="text/html")
        with self.settings(EMBED_USER_AGENT="TestBot/1.0"):
            ScrapeEmbedFactory().create_embed_for_url(url)
        self.assertEqual(responses.calls[0].request.headers["User-Agent"], "TestBot/1.0")


class EmbedServiceResolutionTest(EmbedTestCase):
    @responses.activate
    def test_resolve_and_cache(self) -> None:
        url = "https://i.imgur.com/a1B2c3.png"
        responses.add(
            responses.GET,
            IMGUR_OEMBED_ENDPOINT,
            json={"title": "A cat"},
            match=[oembed_matcher(url)],
        )
        cache = InstrumentedEmbedCache()
        service = build_embed_service(cache=cache, diagnostics=self.diagnostics.append)

        embed = service.create_embed_for_url(url)
        self.assertEqual(embed.type, "imgur")
        self.assertEqual(service.create_embed_for_url(url).to_data(), embed.to_data())
        self.assert_length(responses.calls, 1)
        self.assertEqual(cache.set_calls, 1)

        # What we store can be turned back into the same embed.
        rebuilt = service.create_embed_from_data(embed.to_data())
        self.assertEqual(rebuilt.to_data(), embed.to_data())
        self.assertEqual(self.diagnostics, [])

    @responses.activate
    def test_failures_are_not_cached(self) -> None:
        url = "http://test.org/flaky"
        responses.add(responses.GET, url, status=503)
        responses.add(
            responses.GET, url, body=ScrapeEmbedFactoryTest.html, content_type="text/html"
        )
        cache = InstrumentedEmbedCache()
        service = build_embed_service(cache=cache, diagnostics=self.diagnostics.append)

        with self.assertRaises(EmbedProviderResponseError):
            service.create_embed_for_url(url)
        self.assertIsNone(cache.get_cached_embed(url))

        embed = service.create_embed_for_url(url)
        assert isinstance(embed, LinkEmbed)
        self.assertEqual(embed.name, "The Rock")
        self.assertEqual(cache.set_calls, 1)
