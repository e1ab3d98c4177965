"""
どこで: `engine.render` の線分バッファ生成。
何を: 指定フレームで可視な feature を走査し、構造（点の並び）を解決して各頂点位置を補間し、
      固定容量のフラットな float32 バッファへ線分として詰める。
なぜ: 描画側がそのまま GPU へ転送できる形を 1 回の呼び出しで用意するため。

規則:
- 可視判定は `appearance_frame <= frame <= disappearance_frame`。
- Polyline は隣接ペアごとに 1 線分（折り返し無し）。Polygon は点が 2 つ以上あれば
  末尾 → 先頭の閉じ線分を追加する。
- 端点のどちらかが未定義（キーフレーム無し）の線分は出力しない。
- 頂点の 4 成分目は、その feature が `active_feature_id` なら 1、それ以外は 0。
  未知の ID を渡しても全て 0 になるだけでエラーにはしない。
- `MAX_SEGMENTS` に達したら以降の線分は黙って切り捨てる（容量超過はエラーではない）。

直感図（Polygon, 点 a-b-c）:

    # segments: (a, b), (b, c), (c, a)
    # vertices: [ax ay az f, bx by bz f, bx by bz f, cx cy cz f, cx cy cz f, ax ay az f, 0 ...]
"""

from __future__ import annotations

import logging

import numpy as np

from common.types import IdSeq
from engine.core.interpolation import positions_at
from engine.core.model import FeatureKind, as_frame
from engine.core.store import EntityStore

from .types import COMPONENTS_PER_VERTEX, MAX_SEGMENTS, VERTICES_PER_SEGMENT, SegmentBuffer

logger = logging.getLogger(__name__)


def segment_pairs(kind: FeatureKind, ordered_ids: IdSeq) -> list[tuple[str, str]]:
    """点 ID 列から線分（端点 ID の組）を並び順に列挙する。"""
    pairs = list(zip(ordered_ids[:-1], ordered_ids[1:]))
    if kind == FeatureKind.POLYGON and len(ordered_ids) >= 2:
        pairs.append((ordered_ids[-1], ordered_ids[0]))
    return pairs


def build_segments(
    store: EntityStore,
    frame: int,
    active_feature_id: str | None = None,
    *,
    capacity: int = MAX_SEGMENTS,
) -> SegmentBuffer:
    """`frame` の線分バッファを生成する（Store は変更しない）。

    Parameters
    ----------
    store : EntityStore
        参照する状態。
    frame : int
        クエリフレーム。
    active_feature_id : str | None
        ハイライトする feature の ID（存在しなくてもよい）。
    capacity : int, default MAX_SEGMENTS
        線分数の上限。描画側と共有する容量以外を渡すのはテスト用途のみ。

    Returns
    -------
    SegmentBuffer
        `capacity * 2 * 4` 要素の float32 バッファと有効線分数。
    """
    f = as_frame(frame)
    vertices = np.zeros(capacity * VERTICES_PER_SEGMENT * COMPONENTS_PER_VERTEX, dtype=np.float32)
    records = vertices.reshape(-1, COMPONENTS_PER_VERTEX)
    count = 0
    dropped = 0

    for feature in store.animation.features.values():
        if not feature.is_visible_at(f):
            continue
        ordered = store.resolve_structure(feature.id, f)
        pairs = segment_pairs(feature.kind, ordered)
        if not pairs:
            continue
        if count >= capacity:
            dropped += len(pairs)
            continue

        # 同じ点は 1 度だけ補間する（並び順に一意化）
        unique_ids = list(dict.fromkeys(ordered))
        index = {pid: i for i, pid in enumerate(unique_ids)}
        positions, defined = positions_at([feature.points[pid] for pid in unique_ids], f)

        pair_idx = np.array(
            [(index[a], index[b]) for a, b in pairs], dtype=np.intp
        ).reshape(-1, 2)
        pair_idx = pair_idx[defined[pair_idx[:, 0]] & defined[pair_idx[:, 1]]]
        take = pair_idx[: capacity - count]
        dropped += len(pair_idx) - len(take)
        n = len(take)
        if n == 0:
            continue

        flag = np.float32(1.0 if feature.id == active_feature_id else 0.0)
        seg = records[count * VERTICES_PER_SEGMENT : (count + n) * VERTICES_PER_SEGMENT]
        seg = seg.reshape(n, VERTICES_PER_SEGMENT, COMPONENTS_PER_VERTEX)
        seg[:, 0, :3] = positions[take[:, 0]]
        seg[:, 1, :3] = positions[take[:, 1]]
        seg[:, :, 3] = flag
        count += n

    if dropped:
        logger.debug("segment buffer full: frame=%d capacity=%d dropped=%d", f, capacity, dropped)
    vertices.setflags(write=False)
    return SegmentBuffer(vertices, count)


__all__ = ["build_segments", "segment_pairs"]
