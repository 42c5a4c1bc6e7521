"""静的 HTML エクスポートを Twig ランディングへ変換する中核オーケストレーター。"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Sequence

from bs4 import BeautifulSoup

from .assets import AssetOrganizer
from .config import BuildConfig, ProjectContext
from .emitter import TemplateEmitter
from .reconcile import UnresolvedReference, find_unresolved
from .transform import AssetReference, DocumentTransformer, parse_document


@dataclass(slots=True)
class BuildResult:
    project: ProjectContext
    completed_stages: list[str] = field(default_factory=list)
    moved_assets: list[Path] = field(default_factory=list)
    processed_css: list[Path] = field(default_factory=list)
    references: list[AssetReference] = field(default_factory=list)
    template_path: Path | None = None
    scaffold_files: list[Path] = field(default_factory=list)
    unresolved: list[UnresolvedReference] = field(default_factory=list)


@dataclass(slots=True)
class PipelineStage:
    """前提となるステージを宣言したパイプラインの 1 工程。"""

    name: str
    action: Callable[[], None]
    requires: tuple[str, ...] = ()


class StageOrderError(RuntimeError):
    """前提ステージが完了していない状態で工程を実行しようとした際に送出される例外。"""

    def __init__(self, *, stage: str, missing: Sequence[str]) -> None:
        self.stage = stage
        self.missing = tuple(missing)
        super().__init__(
            f"ステージ '{stage}' の前提が満たされていません: {', '.join(self.missing)}"
        )


class PipelineStageError(RuntimeError):
    """ステージの実行に失敗した際に送出される例外。"""

    def __init__(self, *, stage: str, completed: Sequence[str]) -> None:
        self.stage = stage
        self.completed = tuple(completed)
        done = ", ".join(self.completed) if self.completed else "なし"
        super().__init__(f"ステージ '{stage}' で失敗しました (完了済み: {done})")


class Site2TwigBuilder:
    """変換・アセット整理・テンプレート出力を統括する高レベルパイプライン。"""

    def __init__(self, config: BuildConfig) -> None:
        self.config = config
        self.organizer = AssetOrganizer(config.project)
        self._document: BeautifulSoup | None = None
        self._result = BuildResult(project=config.project)
        self._logger = logging.getLogger(self.__class__.__module__ + "." + self.__class__.__name__)
        self._summary_base = {
            "project": config.project.name,
            "input": str(config.input_path),
            "output": str(config.project.output_root),
            "created_at": config.created_at.isoformat(),
        }

    def build(self) -> BuildResult:
        self._prepare_summary()
        try:
            self.run_stages(self.stages())
        finally:
            self._document = None
        self._logger.info("変換が完了しました: %s", self.config.project.output_root)
        return self._result

    def stages(self) -> list[PipelineStage]:
        return [
            PipelineStage("load", self._load_document),
            PipelineStage("transform", self._transform, requires=("load",)),
            PipelineStage("organize", self._organize),
            PipelineStage("rewrite_css", self._rewrite_css, requires=("organize",)),
            PipelineStage("save_template", self._save_template, requires=("transform",)),
            PipelineStage("relocate_template", self._relocate_template, requires=("save_template",)),
            PipelineStage("cleanup", self._cleanup, requires=("organize", "relocate_template")),
            PipelineStage("scaffold", self._scaffold),
            PipelineStage("reconcile", self._reconcile, requires=("transform", "organize")),
        ]

    def run_stages(self, stages: Sequence[PipelineStage]) -> None:
        completed = self._result.completed_stages
        for stage in stages:
            missing = [name for name in stage.requires if name not in completed]
            if missing:
                raise StageOrderError(stage=stage.name, missing=missing)
            self._logger.info("ステージを開始します: %s", stage.name)
            try:
                stage.action()
            except Exception as exc:
                self._logger.error("ステージ %s で失敗しました: %s", stage.name, exc)
                self._update_summary("failed", failed_stage=stage.name, error=str(exc))
                raise PipelineStageError(stage=stage.name, completed=completed) from exc
            completed.append(stage.name)
            self._update_summary(stage.name)

    # Stages -----------------------------------------------------------

    def _load_document(self) -> None:
        html = self.config.input_path.read_text(encoding="utf-8")
        self._document = parse_document(html)

    def _transform(self) -> None:
        transformer = DocumentTransformer(self._require_document(), self.config.directives)
        self._result.references = transformer.transform_all()

    def _organize(self) -> None:
        report = self.organizer.organize()
        self._result.moved_assets = report.moved

    def _rewrite_css(self) -> None:
        self._result.processed_css = self.organizer.rewrite_css_files()

    def _save_template(self) -> None:
        self._emitter().save_main_template()

    def _relocate_template(self) -> None:
        self._result.template_path = self._emitter().organize_main_template()

    def _cleanup(self) -> None:
        self.organizer.delete_index_html()
        self.organizer.delete_assets_directory()
        self.organizer.delete_root_index_html()
        self.organizer.delete_root_assets_directory()

    def _scaffold(self) -> None:
        self._result.scaffold_files = self._emitter().create_file_structure()

    def _reconcile(self) -> None:
        unresolved = find_unresolved(self._result.references, self.config.project.output_root)
        for finding in unresolved:
            self._logger.warning(
                "参照先が見つかりません: %s (%s) %s",
                finding.expected_path,
                finding.original,
                finding.message,
            )
        self._result.unresolved = unresolved

    # Helpers ----------------------------------------------------------

    def _require_document(self) -> BeautifulSoup:
        if self._document is None:
            raise StageOrderError(stage="transform", missing=["load"])
        return self._document

    def _emitter(self) -> TemplateEmitter:
        return TemplateEmitter(
            self._document,
            self.config.project,
            scaffold=self.config.scaffold,
            directives=self.config.directives,
        )

    def _prepare_summary(self) -> None:
        path = self.config.summary_path
        if path is None:
            return
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text("", encoding="utf-8")

    def _update_summary(self, stage: str, **extra: Any) -> None:
        path = self.config.summary_path
        if path is None:
            return
        payload = dict(self._summary_base)
        payload.update(extra)
        payload["stage"] = stage
        with path.open("a", encoding="utf-8") as stream:
            stream.write(json.dumps(payload, ensure_ascii=False))
            stream.write("\n")


def build_landing(config: BuildConfig) -> BuildResult:
    builder = Site2TwigBuilder(config)
    return builder.build()
