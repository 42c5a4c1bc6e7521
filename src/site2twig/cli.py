"""site2twig のコマンドラインインターフェース。"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any, Iterable

from .builder import PipelineStageError, build_landing
from .config import DEFAULT_HTML_PATH, BuildConfig


def parse_args(argv: Iterable[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="静的 HTML エクスポートを Twig ランディングへ変換します")
    parser.add_argument(
        "html_path",
        nargs="?",
        type=Path,
        default=DEFAULT_HTML_PATH,
        help="変換対象の HTML ファイル (省略時は dist/index.html)",
    )
    parser.add_argument(
        "--dist-root",
        dest="dist_root",
        type=Path,
        default=None,
        help="アセットを探索する共有出力ディレクトリ (省略時は HTML ファイルのディレクトリ)",
    )
    parser.add_argument("--summary", dest="summary_path", type=Path, default=None, help="ステージごとの進捗を JSON Lines で書き出すパス")
    parser.add_argument("--verbose", dest="verbose", action="store_true", help="進捗ログを標準出力へ表示")

    template_group = parser.add_argument_group("テンプレート設定")
    template_group.add_argument(
        "--default-lang",
        dest="default_language",
        type=str,
        default=None,
        help="geoip で国が判定できない場合の lang 属性値",
    )
    template_group.add_argument(
        "--layout-label",
        dest="layout_label",
        type=str,
        default=None,
        help="config.yml に記載するレイアウトの表示名",
    )
    return parser.parse_args(list(argv) if argv is not None else None)


def main(argv: Iterable[str] | None = None) -> None:
    args = parse_args(argv)
    _validate_args(args)
    _configure_logging(args.verbose)
    config = BuildConfig.from_args(
        args.html_path,
        dist_root=args.dist_root,
        summary_path=args.summary_path,
        directive_overrides=_collect_directive_overrides(args),
        scaffold_overrides=_collect_scaffold_overrides(args),
    )
    try:
        result = build_landing(config)
    except PipelineStageError as exc:
        print(f"[エラー] {exc}: {exc.__cause__}", file=sys.stderr)
        raise SystemExit(1)
    summary = {
        "project": result.project.name,
        "output": str(result.project.output_root),
        "template": str(result.template_path) if result.template_path else None,
        "moved_assets": len(result.moved_assets),
        "rewritten_references": len(result.references),
        "unresolved": [finding.to_dict() for finding in result.unresolved],
    }
    print(json.dumps(summary, ensure_ascii=False))


def _validate_args(args: argparse.Namespace) -> None:
    errors: list[str] = []
    if not args.html_path.exists():
        errors.append(f"[エラー] HTML ファイルが見つかりません: {args.html_path}")
    elif not args.html_path.is_file():
        errors.append(f"[エラー] 入力パスはファイルではありません: {args.html_path}")
    elif not args.html_path.resolve().parent.parent.name:
        errors.append(f"[エラー] HTML ファイルの 2 階層上からプロジェクト名を決定できません: {args.html_path}")

    if args.dist_root is not None and args.dist_root.exists() and not args.dist_root.is_dir():
        errors.append(f"[エラー] --dist-root がディレクトリではありません: {args.dist_root}")

    if args.default_language is not None and not args.default_language.strip():
        errors.append("[エラー] --default-lang には空でない言語コードを指定してください。")
    if args.layout_label is not None and not args.layout_label.strip():
        errors.append("[エラー] --layout-label には空でない文字列を指定してください。")

    if errors:
        for message in errors:
            print(message, file=sys.stderr)
        raise SystemExit(2)


def _collect_directive_overrides(args: argparse.Namespace) -> dict[str, Any]:
    overrides: dict[str, Any] = {}
    if args.default_language is not None:
        overrides["default_language"] = args.default_language.strip()
    return overrides


def _collect_scaffold_overrides(args: argparse.Namespace) -> dict[str, Any]:
    overrides: dict[str, Any] = {}
    if args.layout_label is not None:
        overrides["layout_label"] = args.layout_label.strip()
    return overrides


def _configure_logging(verbose: bool) -> None:
    level = logging.INFO if verbose else logging.WARNING
    logging.basicConfig(level=level, format="%(asctime)s [%(levelname)s] %(message)s", datefmt="%Y-%m-%d %H:%M:%S")


if __name__ == "__main__":
    main()
