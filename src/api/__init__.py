"""
どこで: `api` 入口（高レベル公開 API）。
何を: Engine Facade `AnimationEngine` と、ホストが扱う型・例外を再輸出。
なぜ: 利用者が単一名前空間から編集→描画→保存まで完結できるようにするため。

Usage:
    from api import AnimationEngine, FeatureKind

    eng = AnimationEngine()
    fid = eng.create_feature("Plate A", FeatureKind.POLYGON, 0, 100)
    eng.add_point(fid, None, 0, 1.0, 0.0, 0.0)
    buf = eng.build_segments(0)
"""

from engine.core.errors import (
    DecodeError,
    DuplicateFeatureIdError,
    DuplicateKeyframeError,
    DuplicatePointIdError,
    GecoError,
    InvalidIdError,
    InvalidKindError,
    InvalidPositionError,
    InvalidRangeError,
    NoActiveFeatureError,
    NotFoundError,
)
from engine.core.model import FeatureKind
from engine.render.types import MAX_SEGMENTS, SegmentBuffer

from .engine import AnimationEngine

__all__ = [
    # メインAPI
    "AnimationEngine",
    "FeatureKind",
    "SegmentBuffer",
    "MAX_SEGMENTS",
    # 例外
    "GecoError",
    "NotFoundError",
    "DuplicatePointIdError",
    "DuplicateFeatureIdError",
    "InvalidRangeError",
    "DuplicateKeyframeError",
    "InvalidPositionError",
    "InvalidIdError",
    "InvalidKindError",
    "DecodeError",
    "NoActiveFeatureError",
]

# バージョン情報
__version__ = "0.1.0"
