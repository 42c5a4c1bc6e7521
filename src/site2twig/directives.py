"""Twig テンプレートへ出力するディレクティブ文字列の組み立て。"""

from __future__ import annotations

from .config import DirectiveConfig

HEAD_ASSETS = "{{ landing.head() }}"
GEO_LOOKUP = (
    "{% set user_country = geoip('user_country')|lower %}"
    "{% set locale = user_country ? 'locale-' ~ user_country : 'locale-undecided' %}"
)
LOCALE_CLASS = "{{ locale }}"
BLOCK_CONTENT = "{{ block.content() }}\n"


class Directives:
    """設定値に依存するディレクティブ文字列を生成します。

    設定で変わらないものはモジュール定数 (``HEAD_ASSETS`` など) を参照してください。
    """

    def __init__(self, config: DirectiveConfig) -> None:
        self._config = config

    def asset(self, category: str, filename: str) -> str:
        return f"{{{{ {self._config.asset_function}('{category}/{filename}') }}}}"

    def title_area(self) -> str:
        return (
            f"{{{{ landing.yieldArea('{self._config.title_area}', "
            f"['{self._config.title_block}']) }}}}"
        )

    def language_attribute(self) -> str:
        return f"{{{{ (geoip('user_country') ?: '{self._config.default_language}')|lower }}}}"

    def gtm_head(self) -> str:
        return f"{{% include '{self._config.gtm_head_include}' ignore missing %}}"

    def gtm_body(self) -> str:
        return f"{{% include '{self._config.gtm_body_include}' ignore missing %}}"
