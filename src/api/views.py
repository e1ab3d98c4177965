"""
どこで: `api.views`
何を: Store の状態を JSON 化しやすい辞書/リストへ写す（feature 一覧、フレーム時点の描画対象）。
なぜ: ホスト側の UI がバイナリや内部型を知らずに状態を表示できるようにするため。
"""

from __future__ import annotations

from typing import Any

from engine.core.interpolation import positions_at
from engine.core.model import as_frame
from engine.core.store import EntityStore


def features_payload(store: EntityStore) -> list[dict[str, Any]]:
    """全 feature の概要（点 ID 一覧付き）。"""
    out: list[dict[str, Any]] = []
    for summary in store.get_features():
        out.append(
            {
                "feature_id": summary.id,
                "name": summary.name,
                "kind": summary.kind.name,
                "appearance_frame": summary.appearance_frame,
                "disappearance_frame": summary.disappearance_frame,
                "point_ids": store.get_points(summary.id),
            }
        )
    return out


def renderable_features_payload(store: EntityStore, frame: int) -> list[dict[str, Any]]:
    """`frame` で可視な feature と、構造順に並んだ点の補間位置。

    - 位置が未定義の点は含めない。
    - 可視な feature が無ければ空リスト。
    """
    f = as_frame(frame)
    out: list[dict[str, Any]] = []
    for feature in store.animation.features.values():
        if not feature.is_visible_at(f):
            continue
        ordered = store.resolve_structure(feature.id, f)
        positions, defined = positions_at([feature.points[pid] for pid in ordered], f)
        points = [
            {"point_id": pid, "x": float(p[0]), "y": float(p[1]), "z": float(p[2])}
            for pid, p, ok in zip(ordered, positions, defined)
            if ok
        ]
        out.append(
            {
                "feature_id": feature.id,
                "name": feature.name,
                "kind": feature.kind.name,
                "points": points,
            }
        )
    return out


__all__ = ["features_payload", "renderable_features_payload"]
