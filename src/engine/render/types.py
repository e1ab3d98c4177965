"""
どこで: `engine.render` 型定義。
何を: 1 フレームぶんの線分バッファ `SegmentBuffer` とレイアウト定数。
なぜ: 描画側（外部のビューア/シェーダ）との契約を 1 箇所で明示するため。

レイアウト:
- `vertices`: float32 の 1 次元配列。1 頂点 = `(x, y, z, active)` の 4 成分、1 線分 = 2 頂点。
- 長さは常に `MAX_SEGMENTS * 2 * 4`。有効なのは先頭 `segment_count * 2 * 4` 要素のみで、
  残り（未使用の末尾）は 0 埋め。利用側は `segment_count` を正とする。
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Final

import numpy as np

# 描画側と共有する固定容量（GPU テクスチャ/バッファのサイズと一致させる）
MAX_SEGMENTS: Final[int] = 2048
VERTICES_PER_SEGMENT: Final[int] = 2
COMPONENTS_PER_VERTEX: Final[int] = 4


@dataclass(frozen=True, slots=True)
class SegmentBuffer:
    """線分バッファ（読み取り専用）。"""

    vertices: np.ndarray
    segment_count: int

    @property
    def capacity(self) -> int:
        return int(self.vertices.size // (VERTICES_PER_SEGMENT * COMPONENTS_PER_VERTEX))

    def records(self) -> np.ndarray:
        """有効部分を `(segment_count * 2, 4)` のビューで返す。"""
        used = self.segment_count * VERTICES_PER_SEGMENT
        return self.vertices.reshape(-1, COMPONENTS_PER_VERTEX)[:used]

    def tobytes(self) -> bytes:
        """GPU へそのまま転送できるバイト列（全容量ぶん）。"""
        return self.vertices.tobytes()


__all__ = ["SegmentBuffer", "MAX_SEGMENTS", "VERTICES_PER_SEGMENT", "COMPONENTS_PER_VERTEX"]
