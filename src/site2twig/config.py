"""site2twig パイプラインの設定モデル群。"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Mapping, Optional

DEFAULT_HTML_PATH = Path("dist") / "index.html"
STAGING_DIR_NAME = "assets"
SOURCE_HTML_NAME = "index.html"


def default_timestamp() -> datetime:
    """サマリーログ用に現在時刻 (UTC) を返します。"""

    return datetime.now(timezone.utc)


@dataclass(slots=True)
class DirectiveConfig:
    """テンプレートへ埋め込むディレクティブの語彙。"""

    asset_function: str = "landing.asset"
    default_language: str = "ru"
    title_area: str = "title"
    title_block: str = "blocks/title"
    gtm_head_include: str = "../../common/templates/gtm/gtm-head.twig"
    gtm_body_include: str = "../../common/templates/gtm/gtm-body.twig"


@dataclass(slots=True)
class ScaffoldConfig:
    """ブロック・プロジェクト設定ファイルの生成設定。"""

    block_display_name: str = "Title"
    layout_name: str = "main"
    layout_label: str = "Основной"


@dataclass(frozen=True, slots=True)
class ProjectContext:
    """入力パスから一度だけ導出されるプロジェクト情報。"""

    name: str
    dist_root: Path
    output_root: Path

    @property
    def staging_dir(self) -> Path:
        return self.dist_root / STAGING_DIR_NAME

    @classmethod
    def from_input(cls, html_path: Path, dist_root: Optional[Path] = None) -> "ProjectContext":
        """HTML ファイルの 2 階層上のディレクトリ名をプロジェクト名として採用します。"""

        resolved = Path(html_path).resolve()
        name = resolved.parent.parent.name
        if not name:
            raise ValueError(f"プロジェクト名を導出できません: {html_path}")
        root = Path(dist_root) if dist_root is not None else Path(html_path).parent
        return cls(name=name, dist_root=root, output_root=root / name)


@dataclass(slots=True)
class BuildConfig:
    """変換全体を束ねる設定。"""

    input_path: Path
    project: ProjectContext
    directives: DirectiveConfig = field(default_factory=DirectiveConfig)
    scaffold: ScaffoldConfig = field(default_factory=ScaffoldConfig)
    summary_path: Path | None = None
    created_at: datetime = field(default_factory=default_timestamp)

    @classmethod
    def from_args(
        cls,
        input_path: Path,
        dist_root: Optional[Path] = None,
        summary_path: Optional[Path] = None,
        directive_overrides: Mapping[str, Any] | None = None,
        scaffold_overrides: Mapping[str, Any] | None = None,
    ) -> "BuildConfig":
        directives = DirectiveConfig(**(dict(directive_overrides) if directive_overrides else {}))
        scaffold = ScaffoldConfig(**(dict(scaffold_overrides) if scaffold_overrides else {}))
        return cls(
            input_path=input_path,
            project=ProjectContext.from_input(input_path, dist_root),
            directives=directives,
            scaffold=scaffold,
            summary_path=summary_path,
        )
