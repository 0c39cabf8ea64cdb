"""Tests for resource extraction from HTML, CSS and manifests."""

import logging

import pytest

from website_source.crawler.extractor import (
    ResourceExtractor,
    extract_internal_links,
    find_css_references,
    parse_srcset,
)


@pytest.fixture
def extractor():
    return ResourceExtractor()


class TestHtml:
    def test_src_and_link_resolution(self, extractor):
        html = '<img src="a.png"><link href="/b.css">'

        resources = extractor.extract("text/html; charset=utf-8", html, "https://x.com/p/")

        assert resources == {"https://x.com/p/a.png", "https://x.com/b.css"}

    def test_media_and_embedded_references(self, extractor):
        html = """
        <html><head>
          <link rel="manifest" href="/site.webmanifest">
          <script src="/js/app.js"></script>
          <style>body { background: url('/img/bg.jpg'); } @import "/css/extra.css";</style>
        </head><body>
          <img srcset="/img/a-1x.png 1x, /img/a-2x.png 2x">
          <img data-src="/img/lazy.webp">
          <video poster="/img/poster.jpg"><source src="/media/clip.mp4"></video>
          <object data="/files/doc.svg"></object>
          <div style="background-image: url(&quot;/img/hero.avif&quot;)"></div>
        </body></html>
        """

        resources = extractor.extract("text/html", html, "https://x.com/")

        assert resources == {
            "https://x.com/site.webmanifest",
            "https://x.com/js/app.js",
            "https://x.com/img/bg.jpg",
            "https://x.com/css/extra.css",
            "https://x.com/img/a-1x.png",
            "https://x.com/img/a-2x.png",
            "https://x.com/img/lazy.webp",
            "https://x.com/img/poster.jpg",
            "https://x.com/media/clip.mp4",
            "https://x.com/files/doc.svg",
            "https://x.com/img/hero.avif",
        }

    def test_inline_and_anchor_references_are_dropped(self, extractor):
        html = """
        <img src="data:image/png;base64,iVBORw0KGgo=">
        <script src="blob:https://x.com/1234"></script>
        <link href="#main">
        <a href="/about">About</a>
        """

        assert extractor.extract("text/html", html, "https://x.com/") == set()


class TestCss:
    def test_url_and_import(self, extractor):
        css = """
        @import "theme.css";
        @font-face { src: url(../fonts/f.woff2) format("woff2"); }
        .logo { background: url( "/img/logo.svg#icon" ); }
        .inline { background: url(data:image/gif;base64,R0lGOD==); }
        """

        resources = extractor.extract("text/css", css, "https://x.com/css/site.css")

        assert resources == {
            "https://x.com/css/theme.css",
            "https://x.com/fonts/f.woff2",
            "https://x.com/img/logo.svg",
        }

    def test_find_css_references_keeps_source_order(self):
        assert find_css_references("a{b:url(1.png)} c{d:url('2.png')}") == ["1.png", "2.png"]


class TestManifest:
    def test_icons_screenshots_and_start_url(self, extractor):
        manifest = """
        {
          "start_url": "/app/",
          "icons": [{"src": "icons/192.png"}, {"src": "icons/512.png"}],
          "screenshots": [{"src": "/shots/wide.png"}]
        }
        """

        resources = extractor.extract("application/manifest+json", manifest, "https://x.com/site.webmanifest")

        assert resources == {
            "https://x.com/app/",
            "https://x.com/icons/192.png",
            "https://x.com/icons/512.png",
            "https://x.com/shots/wide.png",
        }

    def test_webmanifest_without_json_content_type(self, extractor):
        manifest = '{"icons": [{"src": "/icon.png"}]}'

        resources = extractor.extract("text/plain", manifest, "https://x.com/site.webmanifest")

        assert resources == {"https://x.com/icon.png"}

    def test_malformed_json_yields_nothing(self, extractor, caplog):
        with caplog.at_level(logging.WARNING):
            resources = extractor.extract("application/json", "{not json", "https://x.com/m.json")

        assert resources == set()
        assert "Failed to parse manifest" in caplog.text


def test_unknown_content_type(extractor):
    assert extractor.extract("image/png", "<img src='a.png'>", "https://x.com/") == set()


def test_parse_srcset():
    assert parse_srcset("a.png 1x, b.png 2x,  ,c.png") == ["a.png", "b.png", "c.png"]


class TestInternalLinks:
    def test_same_origin_pages_only(self):
        html = """
        <a href="/about">About</a>
        <a href="/logo.png">Logo</a>
        <a href="https://other.com/page">Elsewhere</a>
        <a href="#top">Top</a>
        <a href="mailto:me@x.com">Mail</a>
        <a href="tel:123">Call</a>
        <a href="blog/post?id=1#comments">Post</a>
        """

        links = extract_internal_links(html, "https://x.com/")

        assert links == {"https://x.com/about", "https://x.com/blog/post?id=1"}
