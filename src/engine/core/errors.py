"""
どこで: `engine.core` のエラー定義。
何を: Entity Store/Codec/Facade が送出する型付き例外の階層（ルートは `GecoError`）。
なぜ: 失敗の種類と問題の ID/フィールドを呼び出し側へそのまま伝え、UI 側で再導出させないため。

階層:
- `NotFoundError(kind, id)` — feature/point が存在しない（`LookupError`）
- `DuplicatePointIdError` / `DuplicateFeatureIdError` — ID 衝突
- `InvalidRangeError` — appearance > disappearance、負の総フレーム等（`ValueError`）
  - `DuplicateKeyframeError` — reject ポリシー下での同一フレーム追加
- `InvalidPositionError` — 非有限の座標（`ValueError`）
- `InvalidIdError` — 空の feature/point ID（`ValueError`）
- `InvalidKindError` — 未知の feature 種別（`ValueError`）
- `DecodeError(reason)` — 永続化バイト列の破損/不整合（`ValueError`）
- `NoActiveFeatureError` — アクティブ feature が必要な操作で未設定
"""

from __future__ import annotations


class GecoError(Exception):
    """エンジンが送出する例外の基底。"""


class NotFoundError(GecoError, LookupError):
    """参照された feature/point が存在しない。"""

    def __init__(self, kind: str, id: str) -> None:
        super().__init__(f"{kind} not found: {id!r}")
        self.kind = kind
        self.id = id


class DuplicatePointIdError(GecoError):
    def __init__(self, feature_id: str, point_id: str) -> None:
        super().__init__(f"point id already exists in feature {feature_id!r}: {point_id!r}")
        self.feature_id = feature_id
        self.point_id = point_id


class DuplicateFeatureIdError(GecoError):
    def __init__(self, feature_id: str) -> None:
        super().__init__(f"feature id already exists: {feature_id!r}")
        self.feature_id = feature_id


class InvalidRangeError(GecoError, ValueError):
    """フレーム範囲/順序が不正。`field` に問題の引数名を保持する。"""

    def __init__(self, message: str, *, field: str | None = None) -> None:
        super().__init__(message)
        self.field = field


class DuplicateKeyframeError(InvalidRangeError):
    def __init__(self, point_id: str, frame: int) -> None:
        super().__init__(f"keyframe already exists at frame {frame} for point {point_id!r}", field="frame")
        self.point_id = point_id
        self.frame = frame


class InvalidPositionError(GecoError, ValueError):
    def __init__(self, position: object) -> None:
        super().__init__(f"position must be 3 finite numbers, got: {position!r}")
        self.position = position


class InvalidIdError(GecoError, ValueError):
    """空の ID（永続化フォーマットでは「未設定」と区別できない）。"""

    def __init__(self, kind: str) -> None:
        super().__init__(f"{kind} id must be a non-empty string")
        self.kind = kind


class InvalidKindError(GecoError, ValueError):
    def __init__(self, kind: object) -> None:
        super().__init__(f"unknown feature kind: {kind!r}")
        self.kind = kind


class DecodeError(GecoError, ValueError):
    """永続化データを Animation に復元できない。"""

    def __init__(self, reason: str) -> None:
        super().__init__(f"failed to decode animation: {reason}")
        self.reason = reason


class NoActiveFeatureError(GecoError):
    def __init__(self) -> None:
        super().__init__("no active feature is set")


__all__ = [
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
