"""
どこで: `engine.codec` のエンコード/デコード。
何を: `Animation` ⇄ protobuf バイト列（`MapAnimationMessage`）の変換。
なぜ: 永続化層（外部の HTTP/DB）が扱う不透明な blob と、メモリ上のモデルを厳密に往復させるため。

デコード方針:
- protobuf のパース失敗（途中で切れたバイト列等）は `DecodeError` に変換する。
- パースできても意味的に不正な内容（未知の種別、空/重複 ID、逆転した可視区間、負の総フレーム、
  同一フレームのキーフレーム/スナップショット、点に存在しない ID を参照するスナップショット）も
  `DecodeError` とする。
- 常に新しい `Animation` を組み立てて返す。既存状態への反映（差し替え）は呼び出し側の責務。
"""

from __future__ import annotations

import logging

from google.protobuf.message import DecodeError as ProtobufDecodeError

from engine.core.errors import DecodeError
from engine.core.model import (
    Animation,
    Feature,
    FeatureKind,
    Keyframe,
    Point,
    StructureSnapshot,
    as_position,
)

from .schema import MapAnimationMessage

logger = logging.getLogger(__name__)


def encode_animation(animation: Animation) -> bytes:
    """`Animation` を決定的なバイト列へ直列化する。"""
    msg = MapAnimationMessage(
        id=animation.id,
        name=animation.name,
        total_frames=animation.total_frames,
    )
    for feature in animation.features.values():
        fmsg = msg.features.add(
            id=feature.id,
            name=feature.name,
            kind=int(feature.kind),
            appearance_frame=feature.appearance_frame,
            disappearance_frame=feature.disappearance_frame,
        )
        for point in feature.points.values():
            pmsg = fmsg.points.add(point_id=point.id)
            for kf in point.keyframes:
                x, y, z = kf.position
                pmsg.keyframes.add(frame=kf.frame, x=x, y=y, z=z)
        for snap in feature.snapshots:
            fmsg.snapshots.add(frame=snap.frame, ordered_point_ids=list(snap.ordered_point_ids))
    return msg.SerializeToString(deterministic=True)


def _decode_point(feature_id: str, pmsg) -> Point:  # type: ignore[no-untyped-def]
    if not pmsg.point_id:
        raise DecodeError(f"feature {feature_id!r}: point without point_id")
    keyframes: list[Keyframe] = []
    for kmsg in pmsg.keyframes:
        z = kmsg.z if kmsg.HasField("z") else 0.0
        try:
            position = as_position(kmsg.x, kmsg.y, z)
        except ValueError as e:
            raise DecodeError(f"point {pmsg.point_id!r}: {e}") from e
        keyframes.append(Keyframe(int(kmsg.frame), position))
    keyframes.sort(key=lambda kf: kf.frame)
    frames = [kf.frame for kf in keyframes]
    if len(set(frames)) != len(frames):
        raise DecodeError(f"point {pmsg.point_id!r}: duplicate keyframe frames")
    return Point(pmsg.point_id, keyframes)


def _decode_feature(fmsg) -> Feature:  # type: ignore[no-untyped-def]
    if not fmsg.id:
        raise DecodeError("feature without id")
    try:
        kind = FeatureKind(fmsg.kind)
    except ValueError:
        raise DecodeError(f"feature {fmsg.id!r}: unknown kind {fmsg.kind}") from None
    if fmsg.appearance_frame > fmsg.disappearance_frame:
        raise DecodeError(
            f"feature {fmsg.id!r}: appearance_frame {fmsg.appearance_frame} > "
            f"disappearance_frame {fmsg.disappearance_frame}"
        )

    points: dict[str, Point] = {}
    for pmsg in fmsg.points:
        point = _decode_point(fmsg.id, pmsg)
        if point.id in points:
            raise DecodeError(f"feature {fmsg.id!r}: duplicate point id {point.id!r}")
        points[point.id] = point

    snapshots = sorted(
        (StructureSnapshot(int(s.frame), tuple(s.ordered_point_ids)) for s in fmsg.snapshots),
        key=lambda s: s.frame,
    )
    frames = [s.frame for s in snapshots]
    if len(set(frames)) != len(frames):
        raise DecodeError(f"feature {fmsg.id!r}: duplicate snapshot frames")

    feature = Feature(
        id=fmsg.id,
        name=fmsg.name,
        kind=kind,
        appearance_frame=int(fmsg.appearance_frame),
        disappearance_frame=int(fmsg.disappearance_frame),
        points=points,
        snapshots=snapshots,
    )
    unknown = [pid for pid in feature.referenced_point_ids() if pid not in points]
    if unknown:
        raise DecodeError(f"feature {fmsg.id!r}: snapshot references unknown point {unknown[0]!r}")
    return feature


def decode_animation(data: bytes) -> Animation:
    """バイト列から新しい `Animation` を復元する。失敗時は `DecodeError`。"""
    msg = MapAnimationMessage()
    try:
        msg.ParseFromString(bytes(data))
    except ProtobufDecodeError as e:
        raise DecodeError(str(e) or "malformed protobuf message") from e
    except (TypeError, ValueError) as e:
        raise DecodeError(f"type mismatch: {e}") from e

    if msg.total_frames < 0:
        raise DecodeError(f"total_frames must be >= 0, got: {msg.total_frames}")

    features: dict[str, Feature] = {}
    for fmsg in msg.features:
        feature = _decode_feature(fmsg)
        if feature.id in features:
            raise DecodeError(f"duplicate feature id {feature.id!r}")
        features[feature.id] = feature

    logger.debug("decoded animation: id=%s features=%d bytes=%d", msg.id, len(features), len(data))
    return Animation(id=msg.id, name=msg.name, total_frames=int(msg.total_frames), features=features)


__all__ = ["encode_animation", "decode_animation"]
