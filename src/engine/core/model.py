"""
どこで: `engine.core` のデータモデル。
何を: Animation → Feature → Point → Keyframe / StructureSnapshot の所有グラフを表す型。
なぜ: Store/Interpolation/Render/Codec が同じ表現を共有し、境界での変換を不要にするため。

データモデル（不変条件）:
- `Point.keyframes` はフレーム昇順・フレーム重複なし。
- `Feature.snapshots` はフレーム昇順・フレーム重複なし。各スナップショットが参照する
  point id は必ず `Feature.points` に存在する。
- `appearance_frame <= disappearance_frame`（可視区間は両端を含む）。
- 位置は float32 で表現可能な値に丸めて保持する（ワイヤ形式が `float` のため、
  encode → decode が厳密に往復する）。

所有:
- Animation が Feature を、Feature が Point を排他的に所有する。Keyframe/Snapshot は
  親から独立した寿命を持たない。アクティブ feature はモデルに含めず Store が ID で保持する。

直感図（スナップショットによる構造変化）:

    # snapshots = [(0, ("a", "b")), (30, ("a", "b", "c"))]
    #   frame  0..29 → a-b
    #   frame 30..   → a-b-c
    #   frame   < 0  → a-b（先頭へクランプ）
"""

from __future__ import annotations

from bisect import bisect_right
from dataclasses import dataclass, field
from enum import IntEnum
from typing import Iterable

import numpy as np

from common.types import IdSeq, Vec3

from .errors import InvalidPositionError, InvalidRangeError

INT32_MIN = -(2**31)
INT32_MAX = 2**31 - 1


class FeatureKind(IntEnum):
    """ワイヤ上の列挙値と一致させる（0 は未指定として扱い、モデルには現れない）。"""

    POLYGON = 1
    POLYLINE = 2


def as_frame(value: object, *, field: str = "frame") -> int:
    """フレーム値を int32 範囲の int に正規化する（非整数/範囲外は `InvalidRangeError`）。"""
    if isinstance(value, bool):
        raise InvalidRangeError(f"{field} must be an integer, got: {value!r}", field=field)
    try:
        frame = int(value)  # type: ignore[call-overload]
    except (TypeError, ValueError) as e:
        raise InvalidRangeError(f"{field} must be an integer, got: {value!r}", field=field) from e
    if frame != value:
        raise InvalidRangeError(f"{field} must be an integer, got: {value!r}", field=field)
    if not INT32_MIN <= frame <= INT32_MAX:
        raise InvalidRangeError(f"{field} out of int32 range: {frame}", field=field)
    return frame


def as_position(x: float, y: float, z: float) -> Vec3:
    """座標を float32 で表現可能な有限値のタプルへ正規化する。"""
    try:
        arr = np.asarray((x, y, z), dtype=np.float32)
    except (TypeError, ValueError) as e:
        raise InvalidPositionError((x, y, z)) from e
    if arr.shape != (3,) or not np.all(np.isfinite(arr)):
        raise InvalidPositionError((x, y, z))
    return (float(arr[0]), float(arr[1]), float(arr[2]))


@dataclass(frozen=True, slots=True)
class Keyframe:
    """あるフレームでの点の記録位置。"""

    frame: int
    position: Vec3


@dataclass(frozen=True, slots=True)
class StructureSnapshot:
    """`frame` 以降（次のスナップショットまで）feature を構成する点と順序。"""

    frame: int
    ordered_point_ids: IdSeq = ()


@dataclass(slots=True)
class Point:
    id: str
    keyframes: list[Keyframe] = field(default_factory=list)

    @property
    def frames(self) -> list[int]:
        return [kf.frame for kf in self.keyframes]

    def keyframe_at(self, frame: int) -> Keyframe | None:
        """`frame` ちょうどのキーフレーム（無ければ None）。"""
        idx = bisect_right(self.frames, frame) - 1
        if idx >= 0 and self.keyframes[idx].frame == frame:
            return self.keyframes[idx]
        return None


@dataclass(slots=True)
class Feature:
    id: str
    name: str
    kind: FeatureKind
    appearance_frame: int
    disappearance_frame: int
    points: dict[str, Point] = field(default_factory=dict)
    snapshots: list[StructureSnapshot] = field(default_factory=list)

    def is_visible_at(self, frame: int) -> bool:
        """可視区間 `[appearance_frame, disappearance_frame]` に `frame` が含まれるか。"""
        return self.appearance_frame <= frame <= self.disappearance_frame

    def snapshot_index_at(self, frame: int) -> int:
        """`frame` で有効なスナップショットの index（frame' <= frame の最大、無ければ -1）。"""
        frames = [s.frame for s in self.snapshots]
        return bisect_right(frames, frame) - 1

    def structure_at(self, frame: int) -> IdSeq:
        """`frame` での点の並び。先頭より前のフレームは先頭スナップショットへクランプ。"""
        if not self.snapshots:
            return ()
        idx = self.snapshot_index_at(frame)
        return self.snapshots[max(idx, 0)].ordered_point_ids

    def referenced_point_ids(self) -> Iterable[str]:
        for snap in self.snapshots:
            yield from snap.ordered_point_ids


@dataclass(slots=True)
class Animation:
    id: str
    name: str
    total_frames: int = 0
    features: dict[str, Feature] = field(default_factory=dict)


__all__ = [
    "FeatureKind",
    "Keyframe",
    "StructureSnapshot",
    "Point",
    "Feature",
    "Animation",
    "as_frame",
    "as_position",
]
