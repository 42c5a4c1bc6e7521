"""静的 HTML エクスポートを Twig ランディングへ変換するパッケージ。"""
