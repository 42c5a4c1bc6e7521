"""書き換えた参照と整理済みアセットの整合性を検査するユーティリティ。"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Sequence

from .assets import classify
from .transform import AssetReference


@dataclass(slots=True)
class UnresolvedReference:
    """出力ディレクトリ上に実体が見つからなかった参照。"""

    tag: str
    attribute: str
    original: str
    expected_path: str
    kind: str
    message: str

    def to_dict(self) -> dict[str, str]:
        return {
            "tag": self.tag,
            "attribute": self.attribute,
            "original": self.original,
            "expected_path": self.expected_path,
            "kind": self.kind,
            "message": self.message,
        }


def find_unresolved(references: Sequence[AssetReference], output_root: Path) -> list[UnresolvedReference]:
    """参照ごとに `<category>/<filename>` が存在するかを確認します。"""

    findings: list[UnresolvedReference] = []
    seen: set[str] = set()
    for reference in references:
        expected = f"{reference.category}/{reference.filename}"
        if expected in seen:
            continue
        seen.add(expected)
        if (output_root / reference.category / reference.filename).is_file():
            continue
        actual = classify(reference.filename)
        if actual != reference.category:
            kind = "category_mismatch"
            message = (
                f"拡張子から判定したカテゴリ ({actual or 'なし'}) が参照のカテゴリ"
                f" ({reference.category}) と一致しないため、ファイルは配置されません。"
            )
        else:
            kind = "missing_file"
            message = "整理対象のディレクトリに該当ファイルが見つかりませんでした。"
        findings.append(
            UnresolvedReference(
                tag=reference.tag,
                attribute=reference.attribute,
                original=reference.original,
                expected_path=expected,
                kind=kind,
                message=message,
            )
        )
    return findings

