"""
どこで: `api.cli`（`geco-inspect` コマンド）。
何を: 永続化された blob を読み込み、概要やフレーム時点の描画統計を JSON で表示する。
なぜ: DB/HTTP 層を介さずに保存データを確認・デバッグできるようにするため。

使用例:
    geco-inspect summary animation.bin
    geco-inspect render animation.bin --frame 50 --active <feature-id>
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any, Sequence

from common.logging import setup_default_logging
from engine.core.errors import GecoError

from .engine import CURRENT_ACTIVE, AnimationEngine

logger = logging.getLogger(__name__)


def _load(path: Path) -> AnimationEngine:
    engine = AnimationEngine()
    engine.decode(path.read_bytes())
    return engine


def _summary(engine: AnimationEngine) -> dict[str, Any]:
    return {
        "id": engine.get_id(),
        "name": engine.get_name(),
        "total_frames": engine.get_total_frames(),
        "active_feature_id": engine.get_active_feature_id(),
        "features": json.loads(engine.get_features_json()),
    }


def _render(engine: AnimationEngine, frame: int, active: str | None) -> dict[str, Any]:
    buf = engine.build_segments(frame, CURRENT_ACTIVE if active is None else active)
    return {
        "frame": frame,
        "segment_count": buf.segment_count,
        "capacity": buf.capacity,
        "features": json.loads(engine.get_renderable_features_json(frame)),
    }


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="geco-inspect", description="保存済みアニメーション blob の確認ツール")
    parser.add_argument("--log-level", default=None, help="ログレベル（既定は設定値）")
    sub = parser.add_subparsers(dest="command", required=True)

    p_sum = sub.add_parser("summary", help="アニメーションの概要を表示")
    p_sum.add_argument("path", type=Path)

    p_ren = sub.add_parser("render", help="指定フレームの描画統計を表示")
    p_ren.add_argument("path", type=Path)
    p_ren.add_argument("--frame", type=int, required=True)
    p_ren.add_argument("--active", default=None, help="強調する feature ID（省略時は保存時の最後の feature）")
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    setup_default_logging(args.log_level)
    try:
        engine = _load(args.path)
        if args.command == "summary":
            payload = _summary(engine)
        else:
            payload = _render(engine, args.frame, args.active)
    except OSError as e:
        logger.error("cannot read %s: %s", args.path, e)
        return 2
    except GecoError as e:
        logger.error("%s: %s", type(e).__name__, e)
        return 1
    json.dump(payload, sys.stdout, ensure_ascii=False, indent=2)
    sys.stdout.write("\n")
    return 0


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
