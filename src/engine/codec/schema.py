"""
どこで: `engine.codec` のワイヤスキーマ。
何を: 永続化フォーマット（protobuf, package `geco.map_animation.v1`）のメッセージ型を
      `FileDescriptorProto` から組み立て、protobuf ランタイムのメッセージクラスとして公開する。
なぜ: `.proto` の生成コードを持ち込まず、スキーマ定義を Python 側の 1 箇所に閉じ込めるため。

対応する `.proto`（フィールド番号は宣言順）:

    syntax = "proto3";
    package geco.map_animation.v1;

    enum FeatureKind { FEATURE_KIND_UNSPECIFIED = 0; POLYGON = 1; POLYLINE = 2; }
    message Keyframe { int32 frame = 1; float x = 2; float y = 3; optional float z = 4; }
    message PointAnimationPath { string point_id = 1; repeated Keyframe keyframes = 2; }
    message StructureSnapshot { int32 frame = 1; repeated string ordered_point_ids = 2; }
    message Feature {
      string id = 1; string name = 2; FeatureKind kind = 3;
      int32 appearance_frame = 4; int32 disappearance_frame = 5;
      repeated PointAnimationPath points = 6; repeated StructureSnapshot snapshots = 7;
    }
    message MapAnimation { string id = 1; string name = 2; int32 total_frames = 3; repeated Feature features = 4; }
"""

from __future__ import annotations

from google.protobuf import descriptor_pb2, descriptor_pool, message_factory

PACKAGE = "geco.map_animation.v1"

_F = descriptor_pb2.FieldDescriptorProto


def _type_name(name: str) -> str:
    return f".{PACKAGE}.{name}"


def _add_field(
    message: descriptor_pb2.DescriptorProto,
    name: str,
    number: int,
    type_: int,
    *,
    repeated: bool = False,
    type_name: str | None = None,
    optional_oneof: int | None = None,
) -> None:
    field = message.field.add(
        name=name,
        number=number,
        type=type_,
        label=_F.LABEL_REPEATED if repeated else _F.LABEL_OPTIONAL,
    )
    if type_name is not None:
        field.type_name = _type_name(type_name)
    if optional_oneof is not None:
        # proto3 `optional`: 合成 oneof に所属させて presence を持たせる
        field.oneof_index = optional_oneof
        field.proto3_optional = True


def build_file_descriptor() -> descriptor_pb2.FileDescriptorProto:
    """スキーマ全体を表す `FileDescriptorProto` を返す。"""
    fdp = descriptor_pb2.FileDescriptorProto(
        name="geco/map_animation.proto", package=PACKAGE, syntax="proto3"
    )

    kind = fdp.enum_type.add(name="FeatureKind")
    kind.value.add(name="FEATURE_KIND_UNSPECIFIED", number=0)
    kind.value.add(name="POLYGON", number=1)
    kind.value.add(name="POLYLINE", number=2)

    keyframe = fdp.message_type.add(name="Keyframe")
    _add_field(keyframe, "frame", 1, _F.TYPE_INT32)
    _add_field(keyframe, "x", 2, _F.TYPE_FLOAT)
    _add_field(keyframe, "y", 3, _F.TYPE_FLOAT)
    keyframe.oneof_decl.add(name="_z")
    _add_field(keyframe, "z", 4, _F.TYPE_FLOAT, optional_oneof=0)

    path = fdp.message_type.add(name="PointAnimationPath")
    _add_field(path, "point_id", 1, _F.TYPE_STRING)
    _add_field(path, "keyframes", 2, _F.TYPE_MESSAGE, repeated=True, type_name="Keyframe")

    snapshot = fdp.message_type.add(name="StructureSnapshot")
    _add_field(snapshot, "frame", 1, _F.TYPE_INT32)
    _add_field(snapshot, "ordered_point_ids", 2, _F.TYPE_STRING, repeated=True)

    feature = fdp.message_type.add(name="Feature")
    _add_field(feature, "id", 1, _F.TYPE_STRING)
    _add_field(feature, "name", 2, _F.TYPE_STRING)
    _add_field(feature, "kind", 3, _F.TYPE_ENUM, type_name="FeatureKind")
    _add_field(feature, "appearance_frame", 4, _F.TYPE_INT32)
    _add_field(feature, "disappearance_frame", 5, _F.TYPE_INT32)
    _add_field(feature, "points", 6, _F.TYPE_MESSAGE, repeated=True, type_name="PointAnimationPath")
    _add_field(feature, "snapshots", 7, _F.TYPE_MESSAGE, repeated=True, type_name="StructureSnapshot")

    animation = fdp.message_type.add(name="MapAnimation")
    _add_field(animation, "id", 1, _F.TYPE_STRING)
    _add_field(animation, "name", 2, _F.TYPE_STRING)
    _add_field(animation, "total_frames", 3, _F.TYPE_INT32)
    _add_field(animation, "features", 4, _F.TYPE_MESSAGE, repeated=True, type_name="Feature")

    return fdp


# 専用プールに登録（グローバルプールを汚さない）
_POOL = descriptor_pool.DescriptorPool()
_POOL.AddSerializedFile(build_file_descriptor().SerializeToString())


def _message_class(name: str) -> type:
    return message_factory.GetMessageClass(_POOL.FindMessageTypeByName(f"{PACKAGE}.{name}"))


KeyframeMessage = _message_class("Keyframe")
PointAnimationPathMessage = _message_class("PointAnimationPath")
StructureSnapshotMessage = _message_class("StructureSnapshot")
FeatureMessage = _message_class("Feature")
MapAnimationMessage = _message_class("MapAnimation")


__all__ = [
    "PACKAGE",
    "build_file_descriptor",
    "KeyframeMessage",
    "PointAnimationPathMessage",
    "StructureSnapshotMessage",
    "FeatureMessage",
    "MapAnimationMessage",
]
