"""変換済みドキュメントと付随ファイルを Twig プロジェクト構成として書き出します。"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Mapping

import yaml
from bs4 import BeautifulSoup

from .config import DirectiveConfig, ProjectContext, ScaffoldConfig
from .directives import BLOCK_CONTENT

MAIN_TEMPLATE_NAME = "main.twig"
LAYOUTS_DIR_NAME = "layouts"
CONFIG_FILE_NAME = "config.yml"
BLOCK_INFO_NAME = "info.yml"
BLOCK_TEMPLATE_NAME = "template.twig"


def dump_yaml(data: Mapping[str, Any]) -> str:
    return yaml.safe_dump(
        dict(data),
        allow_unicode=True,
        sort_keys=False,
        default_flow_style=False,
    )


def write_text(path: Path, content: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")


class TemplateEmitter:
    """ドキュメントの直列化とスキャフォールド生成を担当します。"""

    def __init__(
        self,
        document: BeautifulSoup | None,
        project: ProjectContext,
        scaffold: ScaffoldConfig | None = None,
        directives: DirectiveConfig | None = None,
    ) -> None:
        self.document = document
        self.project = project
        self.scaffold = scaffold or ScaffoldConfig()
        self.directives = directives or DirectiveConfig()
        self._logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")

    @property
    def staged_template_path(self) -> Path:
        return self.project.output_root / MAIN_TEMPLATE_NAME

    @property
    def template_path(self) -> Path:
        return self.project.output_root / LAYOUTS_DIR_NAME / MAIN_TEMPLATE_NAME

    @property
    def block_dir(self) -> Path:
        return self.project.output_root / self.directives.title_block

    def save_main_template(self) -> Path:
        if self.document is None:
            raise ValueError("直列化するドキュメントが読み込まれていません。")
        write_text(self.staged_template_path, str(self.document))
        self._logger.info("%s を作成しました。", MAIN_TEMPLATE_NAME)
        return self.staged_template_path

    def organize_main_template(self) -> Path:
        target = self.template_path
        target.parent.mkdir(parents=True, exist_ok=True)
        self.staged_template_path.replace(target)
        self._logger.info("%s を %s ディレクトリへ移動しました。", MAIN_TEMPLATE_NAME, LAYOUTS_DIR_NAME)
        return target

    def block_info(self) -> dict[str, Any]:
        return {
            "name": self.scaffold.block_display_name,
            "default_content": [self.project.name],
        }

    def project_config(self) -> dict[str, Any]:
        return {
            "name": self.project.name,
            "layouts": {self.scaffold.layout_name: self.scaffold.layout_label},
            "areas": {self.directives.title_area: [self.directives.title_block]},
        }

    def create_file_structure(self) -> list[Path]:
        info_path = self.block_dir / BLOCK_INFO_NAME
        template_path = self.block_dir / BLOCK_TEMPLATE_NAME
        config_path = self.project.output_root / CONFIG_FILE_NAME

        write_text(info_path, dump_yaml(self.block_info()))
        write_text(template_path, BLOCK_CONTENT)
        write_text(config_path, dump_yaml(self.project_config()))

        self._logger.info("ファイル構成を作成しました: %s", self.project.output_root)
        return [info_path, template_path, config_path]
