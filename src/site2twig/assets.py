"""アセットファイルをカテゴリ別ディレクトリへ整理するユーティリティ。"""

from __future__ import annotations

import logging
import re
import shutil
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, Mapping, Optional

from .config import SOURCE_HTML_NAME, STAGING_DIR_NAME, ProjectContext

logger = logging.getLogger(__name__)

ASSET_CATEGORIES: Mapping[str, frozenset[str]] = {
    "css": frozenset({"css", "css.map"}),
    "images": frozenset({"jpg", "jpeg", "avif", "webp", "png", "svg", "gif"}),
    "js": frozenset({"js", "js.map"}),
    "videos": frozenset({"mp4", "webm"}),
    "audios": frozenset({"mp3", "aac"}),
}

CSS_URL_PATTERN = re.compile(r"""url\((['"]?)([^'")]+)\1\)""")


def basename(value: str) -> str:
    """パスまたは URL の最後の `/` 区切りセグメントを返します。"""

    return value.split("/")[-1]


def resolve_extension(filename: str) -> str:
    """`.map` で終わる場合は末尾 2 セグメントを拡張子として扱います。"""

    if "." not in filename:
        return ""
    parts = filename.lower().split(".")
    if filename.lower().endswith(".map"):
        return ".".join(parts[-2:])
    return parts[-1]


def classify(filename: str) -> Optional[str]:
    """ファイル名からカテゴリを判定します。該当しない場合は None。"""

    extension = resolve_extension(filename)
    if not extension:
        return None
    for category, extensions in ASSET_CATEGORIES.items():
        if extension in extensions:
            return category
    return None


def rewrite_css_urls(content: str) -> str:
    """画像を指す `url()` を `../images/<basename>` に置き換えます。"""

    def replace(match: re.Match[str]) -> str:
        quote, url = match.group(1), match.group(2)
        filename = basename(url)
        if classify(filename) != "images":
            return match.group(0)
        return f"url({quote}../images/{filename}{quote})"

    return CSS_URL_PATTERN.sub(replace, content)


def remove_file_if_exists(path: Path) -> bool:
    try:
        path.unlink()
    except FileNotFoundError:
        logger.info("ファイルが見つからないためスキップします: %s", path)
        return False
    logger.info("ファイルを削除しました: %s", path)
    return True


def remove_dir_if_exists(path: Path) -> bool:
    try:
        shutil.rmtree(path)
    except FileNotFoundError:
        logger.info("ディレクトリが見つからないためスキップします: %s", path)
        return False
    logger.info("ディレクトリを削除しました: %s", path)
    return True


@dataclass(slots=True)
class OrganizeReport:
    """アセット整理で移動したファイルと読み飛ばしたディレクトリ。"""

    moved: list[Path] = field(default_factory=list)
    skipped_dirs: list[Path] = field(default_factory=list)


class AssetOrganizer:
    """ディスク上のアセットを、変換済み参照が想定するカテゴリ配置へ揃えます。"""

    def __init__(self, project: ProjectContext) -> None:
        self.project = project
        self._logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")

    def category_dir(self, category: str) -> Path:
        return self.project.output_root / category

    def ensure_category_dirs(self) -> None:
        for category in ASSET_CATEGORIES:
            self.category_dir(category).mkdir(parents=True, exist_ok=True)

    def source_dirs(self) -> list[Path]:
        candidates = (
            self.project.dist_root,
            self.project.staging_dir,
            self.project.output_root,
            self.project.output_root / STAGING_DIR_NAME,
        )
        unique: list[Path] = []
        for candidate in candidates:
            if candidate not in unique:
                unique.append(candidate)
        return unique

    def organize(self) -> OrganizeReport:
        self.ensure_category_dirs()
        report = OrganizeReport()
        for directory in self.source_dirs():
            if not directory.is_dir():
                self._logger.info("ディレクトリが存在しないため読み飛ばします: %s", directory)
                report.skipped_dirs.append(directory)
                continue
            report.moved.extend(self._move_loose_files(directory))
        self._logger.info("アセットの整理が完了しました (%d 件移動)。", len(report.moved))
        return report

    def rewrite_css_files(self) -> list[Path]:
        css_dir = self.category_dir("css")
        if not css_dir.is_dir():
            self._logger.info("CSS ディレクトリが存在しません: %s", css_dir)
            return []
        processed: list[Path] = []
        for path in sorted(css_dir.iterdir()):
            if not path.is_file() or path.suffix != ".css":
                continue
            content = path.read_text(encoding="utf-8", errors="surrogateescape")
            path.write_text(rewrite_css_urls(content), encoding="utf-8", errors="surrogateescape")
            processed.append(path)
            self._logger.info("CSS を処理しました: %s", path.name)
        return processed

    def delete_index_html(self) -> bool:
        return remove_file_if_exists(self.project.output_root / SOURCE_HTML_NAME)

    def delete_assets_directory(self) -> bool:
        return remove_dir_if_exists(self.project.output_root / STAGING_DIR_NAME)

    def delete_root_index_html(self) -> bool:
        return remove_file_if_exists(self.project.dist_root / SOURCE_HTML_NAME)

    def delete_root_assets_directory(self) -> bool:
        return remove_dir_if_exists(self.project.staging_dir)

    def _move_loose_files(self, directory: Path) -> Iterable[Path]:
        moved: list[Path] = []
        for path in sorted(directory.iterdir()):
            if not path.is_file():
                continue
            category = classify(path.name)
            if category is None:
                continue
            target = self.category_dir(category) / path.name
            path.replace(target)
            moved.append(target)
            self._logger.debug("移動しました: %s -> %s", path, target)
        return moved
