"""
どこで: `engine.core` の補間モジュール。
何を: キーフレーム列とクエリフレームから球面上の位置を求める（slerp）。
なぜ: 中間位置を直線補間せず大円弧に沿わせ、球面から浮き/沈みさせないため。

ポリシー:
- キーフレームが無い点は「未定義」（`None`）。
- 先頭より前は先頭位置、末尾より後は末尾位置へクランプ。
- キーフレームちょうどのフレームは保存値をそのまま返す（丸め誤差なし）。
- 区間内は `t = (frame - a.frame) / (b.frame - a.frame)` で短い方の大円弧を補間し、
  半径は両端の半径を線形補間した値へ正規化する。
- 角度差がほぼ 0（同一点/対蹠点）の場合は線形補間＋正規化へ退避する。対蹠点の中点のように
  線形補間がゼロベクトルへ潰れた場合は近い側の端点方向を返す。
- どちらかの半径がほぼ 0 の場合は球面が定義できないため線形補間のみ行う。

実装メモ:
- 実計算は Numba 最適化された `_slerp_rows` に集約し、単点クエリ（`position_at`）と
  Render 用の一括クエリ（`positions_at`）で同じカーネルを共有する。
"""

from __future__ import annotations

import math
from bisect import bisect_right
from typing import Sequence

import numpy as np
from numba import njit  # type: ignore[attr-defined]

from common.settings import get as _get_settings
from common.types import Vec3

from .model import Keyframe, Point


@njit(cache=True)
def _slerp_rows(a, b, t, eps, out):
    """行ごとに `a[i]` → `b[i]` を `t[i]` で球面線形補間し `out[i]` へ書き込む。

    引数:
        a, b: (K, 3) float64 の端点。
        t: (K,) float64 の補間パラメータ（0..1）。
        eps: 退避判定の閾値。
        out: (K, 3) float64 の出力先。
    """
    for i in range(a.shape[0]):
        ax, ay, az = a[i, 0], a[i, 1], a[i, 2]
        bx, by, bz = b[i, 0], b[i, 1], b[i, 2]
        ti = t[i]
        ra = math.sqrt(ax * ax + ay * ay + az * az)
        rb = math.sqrt(bx * bx + by * by + bz * bz)

        # 半径 0: 球面が無いので直線補間のみ
        if ra < eps or rb < eps:
            out[i, 0] = ax + (bx - ax) * ti
            out[i, 1] = ay + (by - ay) * ti
            out[i, 2] = az + (bz - az) * ti
            continue

        ux, uy, uz = ax / ra, ay / ra, az / ra
        vx, vy, vz = bx / rb, by / rb, bz / rb
        radius = ra + (rb - ra) * ti

        dot = ux * vx + uy * vy + uz * vz
        if dot > 1.0:
            dot = 1.0
        elif dot < -1.0:
            dot = -1.0
        theta = math.acos(dot)
        s = math.sin(theta)

        if s < eps:
            # 同一点/対蹠点: 線形補間 → 正規化
            px = ux + (vx - ux) * ti
            py = uy + (vy - uy) * ti
            pz = uz + (vz - uz) * ti
            n = math.sqrt(px * px + py * py + pz * pz)
            if n < eps:
                if ti < 0.5:
                    px, py, pz = ux, uy, uz
                else:
                    px, py, pz = vx, vy, vz
                n = 1.0
        else:
            wa = math.sin((1.0 - ti) * theta) / s
            wb = math.sin(ti * theta) / s
            px = wa * ux + wb * vx
            py = wa * uy + wb * vy
            pz = wa * uz + wb * vz
            n = math.sqrt(px * px + py * py + pz * pz)

        scale = radius / n
        out[i, 0] = px * scale
        out[i, 1] = py * scale
        out[i, 2] = pz * scale


def _epsilon(eps: float | None) -> float:
    return float(_get_settings().SLERP_EPSILON if eps is None else eps)


def slerp(a: Vec3, b: Vec3, t: float, *, eps: float | None = None) -> Vec3:
    """2 点間の球面線形補間（純関数）。

    Parameters
    ----------
    a, b : Vec3
        端点（原点中心の球面上の点）。
    t : float
        補間パラメータ（0 で `a`、1 で `b`）。
    eps : float | None
        退避判定の閾値。None なら設定値（`interpolation.epsilon`）。

    Returns
    -------
    Vec3
        補間位置。
    """
    out = np.empty((1, 3), dtype=np.float64)
    _slerp_rows(
        np.asarray([a], dtype=np.float64),
        np.asarray([b], dtype=np.float64),
        np.asarray([t], dtype=np.float64),
        _epsilon(eps),
        out,
    )
    return (float(out[0, 0]), float(out[0, 1]), float(out[0, 2]))


def bracket(point: Point, frame: int) -> tuple[Keyframe, Keyframe | None, float] | None:
    """`frame` を挟むキーフレーム対と補間パラメータを返す。

    Returns
    -------
    tuple | None
        - キーフレームが無い: None
        - 補間不要（クランプ/一致/縮退）: ``(kf, None, 0.0)``
        - 補間が必要: ``(a, b, t)``（``0 < t < 1``）
    """
    keyframes = point.keyframes
    if not keyframes:
        return None
    first, last = keyframes[0], keyframes[-1]
    if frame <= first.frame:
        return first, None, 0.0
    if frame >= last.frame:
        return last, None, 0.0

    hi = bisect_right(point.frames, frame)
    a, b = keyframes[hi - 1], keyframes[hi]
    if a.frame == frame or a.frame == b.frame:
        return a, None, 0.0
    t = (frame - a.frame) / (b.frame - a.frame)
    return a, b, t


def position_at(point: Point, frame: int, *, eps: float | None = None) -> Vec3 | None:
    """`frame` における点の位置（純関数）。キーフレームが無ければ None。"""
    found = bracket(point, frame)
    if found is None:
        return None
    a, b, t = found
    if b is None:
        return a.position
    return slerp(a.position, b.position, t, eps=eps)


def positions_at(
    points: Sequence[Point], frame: int, *, eps: float | None = None
) -> tuple[np.ndarray, np.ndarray]:
    """複数点の位置を一括で求める（カーネル呼び出しは 1 回）。

    Returns
    -------
    tuple[np.ndarray, np.ndarray]
        ``(positions (K, 3) float64, defined (K,) bool)``。未定義行の位置は 0。
    """
    k = len(points)
    positions = np.zeros((k, 3), dtype=np.float64)
    defined = np.zeros(k, dtype=np.bool_)

    rows: list[int] = []
    a_pos: list[Vec3] = []
    b_pos: list[Vec3] = []
    ts: list[float] = []
    for i, point in enumerate(points):
        found = bracket(point, frame)
        if found is None:
            continue
        defined[i] = True
        a, b, t = found
        if b is None:
            positions[i] = a.position
            continue
        rows.append(i)
        a_pos.append(a.position)
        b_pos.append(b.position)
        ts.append(t)

    if rows:
        out = np.empty((len(rows), 3), dtype=np.float64)
        _slerp_rows(
            np.asarray(a_pos, dtype=np.float64),
            np.asarray(b_pos, dtype=np.float64),
            np.asarray(ts, dtype=np.float64),
            _epsilon(eps),
            out,
        )
        positions[np.asarray(rows, dtype=np.intp)] = out
    return positions, defined


__all__ = ["slerp", "bracket", "position_at", "positions_at"]
