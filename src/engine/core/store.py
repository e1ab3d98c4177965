"""
どこで: `engine.core` の Entity Store。
何を: Animation → Features → Points → Keyframes / StructureSnapshots の可変グラフを保持し、
      ID と参照の不変条件を守りながら変更する唯一の窓口。
なぜ: 変更権限を 1 箇所に閉じ込め、補間/描画/コーデックを読み取り専用に保つため。

原子性:
- すべての操作は「検証 → 新しい値の構築 → 代入」の順で行い、失敗時は何も変更しない。

スナップショットの扱い（`add_point`）:
- `frame` ちょうどに始まるスナップショットがあれば末尾へ ID を追加する。
- 無ければ `frame` で有効なスナップショットを複製して ID を追加し、`frame` に挿入する
  （`frame` がどのスナップショットよりも前なら空から始める）。
- それ以降のスナップショットには触れない（過去/未来のフレームの構造を再現可能に保つ）。

キーフレーム重複（`add_keyframe`）:
- `keyframe_policy="replace"`（既定）: 同一フレームの既存キーフレームを置換。
- `keyframe_policy="reject"`: `DuplicateKeyframeError` を送出し何も変更しない。
"""

from __future__ import annotations

import logging
from bisect import bisect_right, insort
from typing import Callable, NamedTuple

from common.ids import new_id
from common.settings import KEYFRAME_POLICIES
from common.settings import get as _get_settings
from common.types import IdSeq, Vec3

from .errors import (
    DuplicateFeatureIdError,
    DuplicateKeyframeError,
    DuplicatePointIdError,
    InvalidIdError,
    InvalidKindError,
    InvalidRangeError,
    NoActiveFeatureError,
    NotFoundError,
)
from .interpolation import position_at
from .model import (
    Animation,
    Feature,
    FeatureKind,
    Keyframe,
    Point,
    StructureSnapshot,
    as_frame,
    as_position,
)

logger = logging.getLogger(__name__)


class FeatureSummary(NamedTuple):
    id: str
    name: str
    kind: FeatureKind
    appearance_frame: int
    disappearance_frame: int


def _as_total_frames(value: int) -> int:
    frames = as_frame(value, field="total_frames")
    if frames < 0:
        raise InvalidRangeError(f"total_frames must be >= 0, got: {frames}", field="total_frames")
    return frames


def _as_id(value: str, kind: str) -> str:
    if not isinstance(value, str) or not value:
        raise InvalidIdError(kind)
    return value


def new_animation(name: str | None = None, total_frames: int | None = None) -> Animation:
    """既定値（設定 `animation.*`）で空の Animation を作る。"""
    s = _get_settings()
    frames = _as_total_frames(s.DEFAULT_TOTAL_FRAMES if total_frames is None else total_frames)
    return Animation(
        id=new_id("id"),
        name=s.DEFAULT_ANIMATION_NAME if name is None else str(name),
        total_frames=frames,
    )


def _as_kind(kind: FeatureKind | int | str) -> FeatureKind:
    if isinstance(kind, FeatureKind):
        return kind
    if isinstance(kind, str):
        try:
            return FeatureKind[kind.upper()]
        except KeyError:
            raise InvalidKindError(kind) from None
    try:
        return FeatureKind(kind)
    except ValueError:
        raise InvalidKindError(kind) from None


class EntityStore:
    """アニメーションの可変グラフと、非永続のアクティブ feature を保持する。

    Parameters
    ----------
    animation : Animation | None
        初期状態。None なら `new_animation()`。
    keyframe_policy : str | None
        同一フレームへのキーフレーム追加方針（"replace" / "reject"）。None なら設定値。
    id_factory : Callable[[], str]
        ID 省略時の払い出し関数（テストで差し替え可能）。
    """

    def __init__(
        self,
        animation: Animation | None = None,
        *,
        keyframe_policy: str | None = None,
        id_factory: Callable[[], str] = new_id,
    ) -> None:
        policy = (keyframe_policy or _get_settings().KEYFRAME_POLICY).lower()
        if policy not in KEYFRAME_POLICIES:
            raise ValueError(
                f"invalid keyframe_policy: {keyframe_policy!r}; allowed={', '.join(KEYFRAME_POLICIES)}"
            )
        self._animation = animation if animation is not None else new_animation()
        self._active_feature_id: str | None = None
        self._keyframe_policy = policy
        self._id_factory = id_factory

    # ── 基本属性 ───────────────────
    @property
    def animation(self) -> Animation:
        return self._animation

    @property
    def keyframe_policy(self) -> str:
        return self._keyframe_policy

    @property
    def name(self) -> str:
        return self._animation.name

    @name.setter
    def name(self, value: str) -> None:
        self._animation.name = str(value)

    @property
    def total_frames(self) -> int:
        return self._animation.total_frames

    @total_frames.setter
    def total_frames(self, value: int) -> None:
        self._animation.total_frames = _as_total_frames(value)

    # ── 参照 ─────────────────────
    def feature(self, feature_id: str) -> Feature:
        try:
            return self._animation.features[feature_id]
        except KeyError:
            raise NotFoundError("feature", feature_id) from None

    def point(self, feature_id: str, point_id: str) -> Point:
        feature = self.feature(feature_id)
        try:
            return feature.points[point_id]
        except KeyError:
            raise NotFoundError("point", point_id) from None

    @property
    def active_feature_id(self) -> str | None:
        """アクティブ feature の ID。参照先が消えていれば None に落とす（弱参照）。"""
        fid = self._active_feature_id
        if fid is not None and fid not in self._animation.features:
            self._active_feature_id = None
            return None
        return fid

    def set_active_feature(self, feature_id: str | None) -> None:
        if feature_id is not None and feature_id not in self._animation.features:
            raise NotFoundError("feature", feature_id)
        self._active_feature_id = feature_id

    def get_features(self) -> list[FeatureSummary]:
        return [
            FeatureSummary(f.id, f.name, f.kind, f.appearance_frame, f.disappearance_frame)
            for f in self._animation.features.values()
        ]

    def get_points(self, feature_id: str) -> list[str]:
        """feature が知っている点 ID（全スナップショットの和集合、追加順）。"""
        return list(self.feature(feature_id).points)

    def resolve_structure(self, feature_id: str, frame: int) -> IdSeq:
        """`frame` で feature を構成する点 ID 列（frame' <= frame の最新、無ければ先頭）。"""
        return self.feature(feature_id).structure_at(as_frame(frame))

    def interpolated_position(self, feature_id: str, point_id: str, frame: int) -> Vec3 | None:
        return position_at(self.point(feature_id, point_id), as_frame(frame))

    # ── 変更 ─────────────────────
    def create_feature(
        self,
        name: str,
        kind: FeatureKind | int | str,
        appearance_frame: int,
        disappearance_frame: int,
        *,
        feature_id: str | None = None,
    ) -> str:
        """点を持たない feature を追加し、アクティブにする。"""
        fkind = _as_kind(kind)
        appear = as_frame(appearance_frame, field="appearance_frame")
        disappear = as_frame(disappearance_frame, field="disappearance_frame")
        if appear > disappear:
            raise InvalidRangeError(
                f"appearance_frame ({appear}) must be <= disappearance_frame ({disappear})",
                field="appearance_frame",
            )
        fid = _as_id(feature_id if feature_id is not None else self._id_factory(), "feature")
        if fid in self._animation.features:
            raise DuplicateFeatureIdError(fid)

        self._animation.features[fid] = Feature(
            id=fid,
            name=str(name),
            kind=fkind,
            appearance_frame=appear,
            disappearance_frame=disappear,
            snapshots=[StructureSnapshot(appear, ())],
        )
        self._active_feature_id = fid
        logger.debug("feature created: id=%s kind=%s window=[%d, %d]", fid, fkind.name, appear, disappear)
        return fid

    def add_point(
        self,
        feature_id: str,
        frame: int,
        x: float,
        y: float,
        z: float,
        *,
        point_id: str | None = None,
    ) -> str:
        """点を初期キーフレーム付きで feature に追加し、`frame` の構造へ連結する。"""
        feature = self.feature(feature_id)
        f = as_frame(frame)
        position = as_position(x, y, z)
        pid = _as_id(point_id if point_id is not None else self._id_factory(), "point")
        if pid in feature.points:
            raise DuplicatePointIdError(feature_id, pid)

        snapshots = list(feature.snapshots)
        idx = feature.snapshot_index_at(f)
        if idx >= 0 and snapshots[idx].frame == f:
            snapshots[idx] = StructureSnapshot(f, snapshots[idx].ordered_point_ids + (pid,))
        else:
            base = snapshots[idx].ordered_point_ids if idx >= 0 else ()
            snapshots.insert(idx + 1, StructureSnapshot(f, base + (pid,)))

        feature.points[pid] = Point(pid, [Keyframe(f, position)])
        feature.snapshots = snapshots
        logger.debug("point added: feature=%s point=%s frame=%d", feature_id, pid, f)
        return pid

    def add_point_to_active_feature(
        self,
        frame: int,
        x: float,
        y: float,
        z: float,
        *,
        point_id: str | None = None,
    ) -> str:
        fid = self.active_feature_id
        if fid is None:
            raise NoActiveFeatureError()
        return self.add_point(fid, frame, x, y, z, point_id=point_id)

    def add_keyframe(
        self,
        feature_id: str,
        point_id: str,
        frame: int,
        x: float,
        y: float,
        z: float,
    ) -> None:
        """点にキーフレームを追加する（フレーム順を維持、構造は変更しない）。"""
        point = self.point(feature_id, point_id)
        f = as_frame(frame)
        keyframe = Keyframe(f, as_position(x, y, z))

        frames = point.frames
        idx = bisect_right(frames, f) - 1
        if idx >= 0 and frames[idx] == f:
            if self._keyframe_policy == "reject":
                raise DuplicateKeyframeError(point_id, f)
            point.keyframes[idx] = keyframe
            logger.debug("keyframe replaced: feature=%s point=%s frame=%d", feature_id, point_id, f)
            return
        insort(point.keyframes, keyframe, key=lambda kf: kf.frame)
        logger.debug("keyframe added: feature=%s point=%s frame=%d", feature_id, point_id, f)

    def replace_animation(self, animation: Animation) -> None:
        """状態を丸ごと差し替える。アクティブ feature は最後の feature（無ければ None）。"""
        self._animation = animation
        self._active_feature_id = next(reversed(animation.features), None)
        logger.debug(
            "animation replaced: id=%s features=%d active=%s",
            animation.id,
            len(animation.features),
            self._active_feature_id,
        )


__all__ = ["EntityStore", "FeatureSummary", "new_animation"]
