"""
どこで: `api.engine`（Engine Facade）。
何を: ホストへ公開する唯一の可変インスタンス `AnimationEngine`。各コマンドを Store/補間/描画/
      コーデックへ振り分け、失敗を `engine.core.errors` の型付き例外として返す。
なぜ: ホスト（UI/イベントループ）からの呼び出しを 1 つの明示的なハンドルに集約し、
      グローバル状態なしに複数インスタンス（テスト等）を共存させるため。

呼び出しモデル:
- 単一スレッド・同期。各操作は完全に適用されるか、何も変更せずに例外を送出する。
- `decode` は新しい Animation を組み立ててから差し替えるため、失敗しても直前の状態が残る。

使用例:
    from api import AnimationEngine, FeatureKind

    eng = AnimationEngine()
    fid = eng.create_feature("Plate A", FeatureKind.POLYGON, 0, 100)
    eng.add_point(fid, "p1", 0, 1.0, 0.0, 0.0)
    eng.add_keyframe(fid, "p1", 100, 0.0, 1.0, 0.0)
    eng.get_interpolated_position(fid, "p1", 50)  # ≈ (0.7071, 0.7071, 0.0)
    blob = eng.encode()
"""

from __future__ import annotations

import enum
import functools
import json
import logging
from typing import Any, Callable, Final, TypeVar

from common.types import IdSeq, Vec3
from engine.codec import decode_animation, encode_animation
from engine.core.errors import GecoError
from engine.core.model import FeatureKind
from engine.core.store import EntityStore, FeatureSummary, new_animation
from engine.render.segments import build_segments
from engine.render.types import SegmentBuffer

from .views import features_payload, renderable_features_payload

logger = logging.getLogger(__name__)

_F = TypeVar("_F", bound=Callable[..., Any])


class _CurrentActive(enum.Enum):
    """`build_segments` の既定値（「ストアのアクティブ feature」）を None と区別する印。"""

    TOKEN = "current-active"


CURRENT_ACTIVE: Final = _CurrentActive.TOKEN


def _reported(fn: _F) -> _F:
    """型付き例外を WARNING で記録してから再送出する。"""

    @functools.wraps(fn)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        try:
            return fn(*args, **kwargs)
        except GecoError as e:
            logger.warning("%s failed: %s: %s", fn.__name__, type(e).__name__, e)
            raise

    return wrapper  # type: ignore[return-value]


class AnimationEngine:
    """アニメーション編集エンジンのハンドル。

    Parameters
    ----------
    name : str | None
        初期アニメーション名。None なら設定値（既定 "Untitled Animation"）。
    total_frames : int | None
        初期総フレーム数。None なら設定値（既定 100）。
    keyframe_policy : str | None
        同一フレームへのキーフレーム追加方針（"replace" / "reject"）。None なら設定値。
    """

    def __init__(
        self,
        *,
        name: str | None = None,
        total_frames: int | None = None,
        keyframe_policy: str | None = None,
    ) -> None:
        self._store = EntityStore(
            new_animation(name, total_frames), keyframe_policy=keyframe_policy
        )

    @property
    def store(self) -> EntityStore:
        return self._store

    # ── アニメーション属性 ─────────────
    def get_id(self) -> str:
        return self._store.animation.id

    def get_name(self) -> str:
        return self._store.name

    def set_name(self, name: str) -> None:
        self._store.name = name

    def get_total_frames(self) -> int:
        return self._store.total_frames

    @_reported
    def set_total_frames(self, total_frames: int) -> None:
        self._store.total_frames = total_frames

    # ── 編集 ─────────────────────
    @_reported
    def create_feature(
        self,
        name: str,
        kind: FeatureKind | int | str,
        appearance_frame: int,
        disappearance_frame: int,
        feature_id: str | None = None,
    ) -> str:
        return self._store.create_feature(
            name, kind, appearance_frame, disappearance_frame, feature_id=feature_id
        )

    @_reported
    def add_point(
        self,
        feature_id: str,
        point_id: str | None,
        frame: int,
        x: float,
        y: float,
        z: float,
    ) -> str:
        return self._store.add_point(feature_id, frame, x, y, z, point_id=point_id)

    @_reported
    def add_point_to_active_feature(
        self,
        point_id: str | None,
        frame: int,
        x: float,
        y: float,
        z: float,
    ) -> str:
        return self._store.add_point_to_active_feature(frame, x, y, z, point_id=point_id)

    @_reported
    def add_keyframe(
        self,
        feature_id: str,
        point_id: str,
        frame: int,
        x: float,
        y: float,
        z: float,
    ) -> None:
        self._store.add_keyframe(feature_id, point_id, frame, x, y, z)

    @_reported
    def set_active_feature(self, feature_id: str | None) -> None:
        self._store.set_active_feature(feature_id)

    def get_active_feature_id(self) -> str | None:
        return self._store.active_feature_id

    # ── 参照 ─────────────────────
    def get_features(self) -> list[FeatureSummary]:
        return self._store.get_features()

    @_reported
    def get_points(self, feature_id: str) -> list[str]:
        return self._store.get_points(feature_id)

    @_reported
    def resolve_structure(self, feature_id: str, frame: int) -> IdSeq:
        return self._store.resolve_structure(feature_id, frame)

    @_reported
    def get_interpolated_position(self, feature_id: str, point_id: str, frame: int) -> Vec3 | None:
        """点の補間位置。キーフレームが無ければ None（未定義）。"""
        return self._store.interpolated_position(feature_id, point_id, frame)

    @_reported
    def build_segments(
        self, frame: int, active_feature_id: str | None | _CurrentActive = CURRENT_ACTIVE
    ) -> SegmentBuffer:
        """`frame` の線分バッファ。

        `active_feature_id` 省略時は現在のアクティブ feature を強調し、明示的な None では
        何も強調しない（未知の ID も同様）。
        """
        if active_feature_id is CURRENT_ACTIVE:
            active_feature_id = self._store.active_feature_id
        return build_segments(self._store, frame, active_feature_id)

    def get_features_json(self) -> str:
        return json.dumps(features_payload(self._store), ensure_ascii=False)

    @_reported
    def get_renderable_features_json(self, frame: int) -> str:
        return json.dumps(renderable_features_payload(self._store, frame), ensure_ascii=False)

    # ── 永続化 ───────────────────
    def encode(self) -> bytes:
        return encode_animation(self._store.animation)

    @_reported
    def decode(self, data: bytes) -> None:
        """バイト列から状態を復元して差し替える（失敗時は状態を変更しない）。"""
        animation = decode_animation(data)
        self._store.replace_animation(animation)


__all__ = ["AnimationEngine", "CURRENT_ACTIVE"]
