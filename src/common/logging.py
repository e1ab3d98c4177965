"""
プロジェクト向けの軽量ロギングユーティリティ。

要点:
- 各モジュールは `logging.getLogger(__name__)` でロガーを取得する（ライブラリ側は設定しない）。
- CLI など入口側で設定が無い場合に限り、最小構成を 1 度だけ適用する。
- Numba はコンパイル過程を DEBUG で大量に出すため、常に WARNING 以上に絞る。
"""

from __future__ import annotations

import logging

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
QUIET_LOGGERS = ("numba",)


def resolve_level(level: int | str | None) -> int:
    """レベル指定（名前/数値/None=設定値）を `logging` の数値へ解決する。"""
    if level is None:
        from common.settings import get as _get_settings

        level = _get_settings().LOG_LEVEL
    if isinstance(level, str):
        lvl = logging.getLevelName(level.strip().upper())
        return lvl if isinstance(lvl, int) else logging.INFO
    return int(level)


def setup_default_logging(level: int | str | None = None) -> None:
    """最小限のロギング設定を 1 度だけ適用する。

    - ルートロガーにハンドラが既にあれば何もしない（no-op）
    - `level` 省略時は設定（`logging.level` / `GECO_LOG_LEVEL`）を使う
    """
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    root = logging.getLogger()
    if root.handlers:
        return
    logging.basicConfig(level=resolve_level(level), format=LOG_FORMAT)


__all__ = ["setup_default_logging", "resolve_level", "LOG_FORMAT"]
