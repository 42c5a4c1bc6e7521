from __future__ import annotations

import json
from pathlib import Path

import pytest
import yaml

from site2twig import builder as builder_module
from site2twig.builder import (
    PipelineStage,
    PipelineStageError,
    Site2TwigBuilder,
    StageOrderError,
    build_landing,
)
from site2twig.config import BuildConfig


def _write_site(tmp_path: Path, html: str, project: str = "landing-x") -> Path:
    dist = tmp_path / project / "dist"
    dist.mkdir(parents=True)
    html_path = dist / "index.html"
    html_path.write_text(html, encoding="utf-8")
    return html_path


def test_build_landing_end_to_end(tmp_path: Path) -> None:
    html_path = _write_site(
        tmp_path,
        """<!DOCTYPE html>
        <html><head><title>Promo</title><link rel="stylesheet" href="styles/app.css"></head>
        <body><div style="background-image:url('./img/hero.png')"></div></body></html>
        """,
    )
    dist = html_path.parent
    (dist / "app.css").write_text(".x{background:url(img/bg.png)}", encoding="utf-8")
    (dist / "assets").mkdir()
    (dist / "assets" / "hero.png").write_bytes(b"png")

    result = build_landing(BuildConfig.from_args(html_path))

    root = dist / "landing-x"
    assert result.project.output_root == root
    assert (root / "css" / "app.css").read_text(encoding="utf-8") == ".x{background:url(../images/bg.png)}"
    assert (root / "images" / "hero.png").exists()

    template = (root / "layouts" / "main.twig").read_text(encoding="utf-8")
    assert "{{ landing.asset('css/app.css') }}" in template
    assert "url({{ landing.asset('images/hero.png') }})" in template
    assert "{{ landing.yieldArea('title', ['blocks/title']) }}" in template
    assert "{{ landing.head() }}" in template
    assert not (root / "main.twig").exists()

    config = yaml.safe_load((root / "config.yml").read_text(encoding="utf-8"))
    assert config["name"] == "landing-x"
    assert (root / "blocks" / "title" / "info.yml").exists()
    assert (root / "blocks" / "title" / "template.twig").exists()

    assert not html_path.exists()
    assert not (dist / "assets").exists()
    assert result.completed_stages[0] == "load"
    assert result.completed_stages[-1] == "reconcile"
    assert result.template_path == root / "layouts" / "main.twig"
    assert result.unresolved == []


def test_srcset_round_trip_through_pipeline(tmp_path: Path) -> None:
    html_path = _write_site(tmp_path, '<html><body><img srcset="a.png 1x, b.png 2x"></body></html>')
    (html_path.parent / "a.png").write_bytes(b"a")
    (html_path.parent / "b.png").write_bytes(b"b")

    build_landing(BuildConfig.from_args(html_path))

    root = html_path.parent / "landing-x"
    template = (root / "layouts" / "main.twig").read_text(encoding="utf-8")
    assert "{{ landing.asset('images/a.png') }} 1x, {{ landing.asset('images/b.png') }} 2x" in template
    assert (root / "images" / "a.png").exists()
    assert (root / "images" / "b.png").exists()


def test_build_without_staging_directory(tmp_path: Path) -> None:
    html_path = _write_site(tmp_path, "<html><body><p>no assets</p></body></html>")

    result = build_landing(BuildConfig.from_args(html_path))

    assert result.moved_assets == []
    assert (html_path.parent / "landing-x" / "layouts" / "main.twig").exists()


def test_unresolved_references_are_reported(tmp_path: Path, caplog) -> None:
    caplog.set_level("WARNING")
    html_path = _write_site(
        tmp_path,
        """
        <html><head><link rel="icon" href="favicon.ico"></head>
        <body><script src="js/missing.js"></script></body></html>
        """,
    )
    (html_path.parent / "favicon.ico").write_bytes(b"ico")

    result = build_landing(BuildConfig.from_args(html_path))

    kinds = {finding.expected_path: finding.kind for finding in result.unresolved}
    assert kinds == {
        "images/favicon.ico": "category_mismatch",
        "js/missing.js": "missing_file",
    }
    assert (html_path.parent / "favicon.ico").exists()
    assert any("参照先が見つかりません" in record.message for record in caplog.records)


def test_summary_file_records_each_stage(tmp_path: Path) -> None:
    html_path = _write_site(tmp_path, "<html><body></body></html>")
    summary_path = tmp_path / "logs" / "summary.jsonl"
    config = BuildConfig.from_args(html_path, summary_path=summary_path)

    build_landing(config)

    events = [json.loads(line) for line in summary_path.read_text(encoding="utf-8").splitlines() if line.strip()]
    assert [event["stage"] for event in events] == [
        "load",
        "transform",
        "organize",
        "rewrite_css",
        "save_template",
        "relocate_template",
        "cleanup",
        "scaffold",
        "reconcile",
    ]
    assert all(event["project"] == "landing-x" for event in events)


def test_run_stages_checks_prerequisites(tmp_path: Path) -> None:
    html_path = _write_site(tmp_path, "<html><body></body></html>")
    builder = Site2TwigBuilder(BuildConfig.from_args(html_path))
    calls: list[str] = []

    with pytest.raises(StageOrderError) as exc:
        builder.run_stages(
            [
                PipelineStage("organize", lambda: calls.append("organize")),
                PipelineStage("relocate_template", lambda: calls.append("relocate"), requires=("save_template",)),
            ]
        )

    assert exc.value.stage == "relocate_template"
    assert exc.value.missing == ("save_template",)
    assert calls == ["organize"]


def test_failing_stage_stops_pipeline(tmp_path: Path, monkeypatch) -> None:
    html_path = _write_site(tmp_path, "<html><body></body></html>")

    def broken_organize(self) -> None:
        raise PermissionError("denied")

    monkeypatch.setattr(builder_module.AssetOrganizer, "organize", broken_organize)

    with pytest.raises(PipelineStageError) as exc:
        build_landing(BuildConfig.from_args(html_path))

    assert exc.value.stage == "organize"
    assert exc.value.completed == ("load", "transform")
    assert isinstance(exc.value.__cause__, PermissionError)
    assert not (html_path.parent / "landing-x" / "layouts").exists()
    assert html_path.exists()


def test_document_is_released_after_build(tmp_path: Path) -> None:
    html_path = _write_site(tmp_path, "<html><body></body></html>")
    builder = Site2TwigBuilder(BuildConfig.from_args(html_path))

    builder.build()

    assert builder._document is None
