"""HTML ドキュメント内のアセット参照を Twig ディレクティブへ書き換えるノード。"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Iterable

from bs4 import BeautifulSoup, NavigableString, Tag

from .assets import CSS_URL_PATTERN, basename
from .config import DirectiveConfig
from .directives import GEO_LOOKUP, HEAD_ASSETS, LOCALE_CLASS, Directives

EXTERNAL_URL_PATTERN = re.compile(r"^(https?:)?//", re.IGNORECASE)


@dataclass(slots=True)
class AssetReference:
    """書き換えを行った参照 1 件の記録。"""

    tag: str
    attribute: str
    original: str
    category: str
    filename: str


def parse_document(html: str) -> BeautifulSoup:
    document = BeautifulSoup(html, "lxml")
    _ensure_sections(document)
    return document


def _ensure_sections(document: BeautifulSoup) -> None:
    """lxml が省略した html / head / body 要素を補います。"""

    root = document.find("html")
    if root is None:
        root = document.new_tag("html")
        document.append(root)
    if root.find("head", recursive=False) is None:
        root.insert(0, document.new_tag("head"))
    if root.find("body", recursive=False) is None:
        root.append(document.new_tag("body"))


def _attribute_values(tag: Tag, name: str) -> list[str]:
    value = tag.get(name)
    if value is None:
        return []
    if isinstance(value, str):
        return value.lower().split()
    return [str(item).lower() for item in value]


def _text_attribute(tag: Tag, name: str) -> str:
    value = tag.get(name)
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    return " ".join(value)


class DocumentTransformer:
    """パース済みドキュメントをその場で書き換えます。"""

    def __init__(self, document: BeautifulSoup, directives: DirectiveConfig | None = None) -> None:
        self.document = document
        self.directives = Directives(directives or DirectiveConfig())
        self.references: list[AssetReference] = []
        self._logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")

    def transform_all(self) -> list[AssetReference]:
        """全ての書き換えと挿入を既定の順序で実行します。"""

        self.process_links()
        self.process_scripts()
        self.process_images()
        self.process_svg_images()
        self.process_srcset()
        self.process_background_images()
        self.process_preload_images()
        self.process_videos()
        self.process_audios()
        self.process_favicons()
        self.process_head()
        self.process_geo()
        self.add_gtm_includes()
        self._logger.info("参照を %d 件書き換えました。", len(self.references))
        return list(self.references)

    # Asset references -------------------------------------------------

    def process_links(self) -> None:
        for link in self.document.find_all("link", href=True):
            if _text_attribute(link, "href").endswith(".css"):
                self._rewrite(link, "href", "css")

    def process_scripts(self) -> None:
        for script in self.document.find_all("script", src=True):
            self._rewrite(script, "src", "js")

    def process_images(self) -> None:
        for img in self.document.find_all("img", src=True):
            self._rewrite(img, "src", "images")

    def process_svg_images(self) -> None:
        for node in self.document.find_all("image"):
            names = [name for name in ("href", "xlink:href") if node.has_attr(name)]
            href = next((_text_attribute(node, name) for name in names if _text_attribute(node, name)), "")
            if not href:
                continue
            if EXTERNAL_URL_PATTERN.match(href) or href.startswith("data:"):
                continue
            filename = basename(re.sub(r"^\./", "", href))
            new_path = self.directives.asset("images", filename)
            for name in names:
                node[name] = new_path
            self._record(node, "/".join(names), href, "images", filename)

    def process_srcset(self) -> None:
        for element in self.document.find_all(srcset=True):
            srcset = _text_attribute(element, "srcset")
            if not srcset.strip():
                continue
            parts: list[str] = []
            for part in srcset.split(","):
                pieces = part.strip().split(None, 1)
                if not pieces:
                    continue
                filename = basename(pieces[0])
                rewritten = self.directives.asset("images", filename)
                if len(pieces) > 1:
                    rewritten = f"{rewritten} {pieces[1]}"
                parts.append(rewritten)
                self._record(element, "srcset", pieces[0], "images", filename)
            element["srcset"] = ", ".join(parts)

    def process_background_images(self) -> None:
        for element in self.document.find_all(style=True):
            style = _text_attribute(element, "style")
            if "background-image" not in style:
                continue

            def replace(match: re.Match[str], element: Tag = element) -> str:
                filename = basename(match.group(2))
                self._record(element, "style", match.group(2), "images", filename)
                return f"url({self.directives.asset('images', filename)})"

            element["style"] = CSS_URL_PATTERN.sub(replace, style)

    def process_preload_images(self) -> None:
        for link in self.document.find_all("link", href=True):
            if "preload" not in _attribute_values(link, "rel"):
                continue
            if _text_attribute(link, "as").lower() != "image":
                continue
            self._rewrite(link, "href", "images")
        self._logger.debug("preload 画像リンクを処理しました。")

    def process_favicons(self) -> None:
        for link in self.document.find_all("link", href=True):
            if "icon" in _text_attribute(link, "rel").lower():
                self._rewrite(link, "href", "images")
        self._logger.debug("favicon リンクを処理しました。")

    def process_videos(self) -> None:
        for node in self._media_nodes("video"):
            self._rewrite(node, "src", "videos")

    def process_audios(self) -> None:
        for node in self._media_nodes("audio"):
            self._rewrite(node, "src", "audios")

    # Injected markup --------------------------------------------------

    def process_head(self) -> None:
        title = self.document.find("title")
        if title is not None:
            title.string = self.directives.title_area()
        head = self.document.find("head")
        if head is not None:
            head.append(NavigableString(HEAD_ASSETS))

    def process_geo(self) -> None:
        body = self.document.find("body")
        if body is not None:
            body.insert_before(NavigableString(GEO_LOOKUP))
            classes = _text_attribute(body, "class").split()
            classes.append(LOCALE_CLASS)
            body["class"] = classes
        html = self.document.find("html")
        if html is not None:
            html["lang"] = self.directives.language_attribute()

    def add_gtm_includes(self) -> None:
        head = self.document.find("head")
        if head is not None:
            head.append(NavigableString(self.directives.gtm_head()))
        body = self.document.find("body")
        if body is not None:
            body.insert(0, NavigableString(self.directives.gtm_body()))

    # Helpers ----------------------------------------------------------

    def _media_nodes(self, name: str) -> Iterable[Tag]:
        for media in self.document.find_all(name):
            if media.has_attr("src"):
                yield media
            yield from media.find_all("source", src=True)

    def _rewrite(self, tag: Tag, attribute: str, category: str) -> None:
        original = _text_attribute(tag, attribute)
        if not original.strip():
            return
        filename = basename(original)
        tag[attribute] = self.directives.asset(category, filename)
        self._record(tag, attribute, original, category, filename)

    def _record(self, tag: Tag, attribute: str, original: str, category: str, filename: str) -> None:
        self.references.append(
            AssetReference(
                tag=tag.name,
                attribute=attribute,
                original=original,
                category=category,
                filename=filename,
            )
        )
