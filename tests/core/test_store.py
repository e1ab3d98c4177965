from __future__ import annotations

import pytest

from engine.core.errors import (
    DuplicateFeatureIdError,
    DuplicateKeyframeError,
    DuplicatePointIdError,
    InvalidIdError,
    InvalidKindError,
    InvalidPositionError,
    InvalidRangeError,
    NoActiveFeatureError,
    NotFoundError,
)
from engine.core.model import FeatureKind, Keyframe, StructureSnapshot
from engine.core.store import EntityStore, FeatureSummary, new_animation


class TestFeatures:
    def test_new_store_defaults(self, store: EntityStore) -> None:
        assert store.name == "Untitled Animation"
        assert store.total_frames == 100
        assert store.animation.id.startswith("id-")
        assert store.animation.features == {}
        assert store.active_feature_id is None
        assert store.keyframe_policy == "replace"

    def test_create_feature_sets_active_and_initial_snapshot(self, store: EntityStore) -> None:
        fid = store.create_feature("Plate A", FeatureKind.POLYGON, 5, 50)
        assert fid == "id1"
        assert store.active_feature_id == fid
        feature = store.feature(fid)
        assert feature.name == "Plate A"
        assert feature.kind is FeatureKind.POLYGON
        assert (feature.appearance_frame, feature.disappearance_frame) == (5, 50)
        assert feature.points == {}
        assert feature.snapshots == [StructureSnapshot(5, ())]

    def test_kind_accepts_names_and_wire_values(self, store: EntityStore) -> None:
        a = store.create_feature("a", "polyline", 0, 1)
        b = store.create_feature("b", 1, 0, 1)
        assert store.feature(a).kind is FeatureKind.POLYLINE
        assert store.feature(b).kind is FeatureKind.POLYGON

    @pytest.mark.parametrize("kind", [0, 7, "circle"])
    def test_unknown_kind_rejected(self, store: EntityStore, kind: object) -> None:
        with pytest.raises(InvalidKindError):
            store.create_feature("x", kind, 0, 1)  # type: ignore[arg-type]
        assert store.animation.features == {}

    def test_inverted_window_rejected_without_side_effects(self, store: EntityStore) -> None:
        with pytest.raises(InvalidRangeError) as ei:
            store.create_feature("bad", FeatureKind.POLYGON, 10, 9)
        assert ei.value.field == "appearance_frame"
        assert store.animation.features == {}
        assert store.active_feature_id is None

    def test_single_frame_window_is_valid(self, store: EntityStore) -> None:
        fid = store.create_feature("blink", FeatureKind.POLYLINE, 7, 7)
        assert store.feature(fid).is_visible_at(7)

    def test_duplicate_feature_id(self, store: EntityStore) -> None:
        store.create_feature("a", FeatureKind.POLYGON, 0, 1, feature_id="f")
        with pytest.raises(DuplicateFeatureIdError):
            store.create_feature("b", FeatureKind.POLYGON, 0, 1, feature_id="f")
        assert store.feature("f").name == "a"

    def test_empty_feature_id_rejected(self, store: EntityStore) -> None:
        with pytest.raises(InvalidIdError) as ei:
            store.create_feature("a", FeatureKind.POLYGON, 0, 1, feature_id="")
        assert ei.value.kind == "feature"
        assert store.animation.features == {}
        assert store.active_feature_id is None

    def test_non_integer_frames_rejected(self, store: EntityStore) -> None:
        with pytest.raises(InvalidRangeError):
            store.create_feature("a", FeatureKind.POLYGON, 0.5, 1)  # type: ignore[arg-type]
        with pytest.raises(InvalidRangeError):
            store.create_feature("a", FeatureKind.POLYGON, 0, 2**31)

    def test_get_features_lists_summaries_in_creation_order(self, sample_store: EntityStore) -> None:
        assert sample_store.get_features() == [
            FeatureSummary("plate", "Plate", FeatureKind.POLYGON, 0, 100),
            FeatureSummary("ridge", "Ridge", FeatureKind.POLYLINE, 10, 20),
        ]


class TestPoints:
    def test_add_point_creates_initial_keyframe(self, store: EntityStore) -> None:
        fid = store.create_feature("Poly", FeatureKind.POLYGON, 0, 50)
        pid = store.add_point(fid, 0, 1.0, 2.0, 3.0, point_id="p1")
        assert pid == "p1"
        point = store.point(fid, pid)
        assert point.keyframes == [Keyframe(0, (1.0, 2.0, 3.0))]
        assert store.feature(fid).snapshots == [StructureSnapshot(0, ("p1",))]

    def test_add_point_allocates_id_when_omitted(self, store: EntityStore) -> None:
        fid = store.create_feature("Poly", FeatureKind.POLYGON, 0, 50)
        pid = store.add_point(fid, 0, 1.0, 0.0, 0.0)
        assert pid == "id2"
        assert store.get_points(fid) == ["id2"]

    def test_unknown_feature(self, store: EntityStore) -> None:
        with pytest.raises(NotFoundError) as ei:
            store.add_point("nope", 0, 1.0, 0.0, 0.0)
        assert (ei.value.kind, ei.value.id) == ("feature", "nope")

    def test_duplicate_point_id_leaves_point_untouched(self, store: EntityStore) -> None:
        fid = store.create_feature("Plate", FeatureKind.POLYGON, 0, 100)
        store.add_point(fid, 0, 1.0, 0.0, 0.0, point_id="p1")
        feature = store.feature(fid)
        before = (list(feature.snapshots), list(feature.points["p1"].keyframes))
        with pytest.raises(DuplicatePointIdError) as ei:
            store.add_point(fid, 0, 0.0, 1.0, 0.0, point_id="p1")
        assert ei.value.point_id == "p1"
        assert (list(feature.snapshots), list(feature.points["p1"].keyframes)) == before
        assert feature.points["p1"].keyframes == [Keyframe(0, (1.0, 0.0, 0.0))]

    def test_empty_point_id_rejected(self, store: EntityStore) -> None:
        fid = store.create_feature("Plate", FeatureKind.POLYGON, 0, 100)
        with pytest.raises(InvalidIdError) as ei:
            store.add_point(fid, 0, 1.0, 0.0, 0.0, point_id="")
        assert ei.value.kind == "point"
        assert store.get_points(fid) == []
        assert store.feature(fid).snapshots == [StructureSnapshot(0, ())]

    def test_empty_id_from_factory_rejected(self) -> None:
        store = EntityStore(id_factory=lambda: "")
        with pytest.raises(InvalidIdError):
            store.create_feature("a", FeatureKind.POLYGON, 0, 1)

    def test_same_point_id_allowed_in_different_features(self, store: EntityStore) -> None:
        f1 = store.create_feature("a", FeatureKind.POLYGON, 0, 10)
        f2 = store.create_feature("b", FeatureKind.POLYGON, 0, 10)
        store.add_point(f1, 0, 1.0, 0.0, 0.0, point_id="p")
        store.add_point(f2, 0, 1.0, 0.0, 0.0, point_id="p")
        assert store.get_points(f1) == store.get_points(f2) == ["p"]

    def test_non_finite_position_rejected(self, store: EntityStore) -> None:
        fid = store.create_feature("a", FeatureKind.POLYGON, 0, 10)
        with pytest.raises(InvalidPositionError):
            store.add_point(fid, 0, float("nan"), 0.0, 0.0)
        assert store.get_points(fid) == []
        assert store.feature(fid).snapshots == [StructureSnapshot(0, ())]

    def test_positions_are_stored_as_float32_values(self, store: EntityStore) -> None:
        fid = store.create_feature("a", FeatureKind.POLYGON, 0, 10)
        store.add_point(fid, 0, 0.1, 0.2, 0.3, point_id="p")
        x, y, z = store.point(fid, "p").keyframes[0].position
        assert x == pytest.approx(0.1, abs=1e-7) and x != 0.1

    def test_add_point_to_active_feature(self, store: EntityStore) -> None:
        fid = store.create_feature("a", FeatureKind.POLYGON, 0, 10)
        pid = store.add_point_to_active_feature(0, 1.0, 0.0, 0.0, point_id="p")
        assert store.get_points(fid) == [pid]

    def test_add_point_to_active_feature_requires_one(self, store: EntityStore) -> None:
        with pytest.raises(NoActiveFeatureError):
            store.add_point_to_active_feature(0, 1.0, 0.0, 0.0)
        store.create_feature("a", FeatureKind.POLYGON, 0, 10)
        store.set_active_feature(None)
        with pytest.raises(NoActiveFeatureError):
            store.add_point_to_active_feature(0, 1.0, 0.0, 0.0)


class TestStructure:
    def test_points_at_same_frame_share_one_snapshot(self, sample_store: EntityStore) -> None:
        assert sample_store.feature("plate").snapshots == [
            StructureSnapshot(0, ("a", "b", "c")),
        ]

    def test_later_point_clones_effective_snapshot(self, sample_store: EntityStore) -> None:
        sample_store.add_point("plate", 30, 0.0, -1.0, 0.0, point_id="d")
        assert sample_store.feature("plate").snapshots == [
            StructureSnapshot(0, ("a", "b", "c")),
            StructureSnapshot(30, ("a", "b", "c", "d")),
        ]
        assert sample_store.resolve_structure("plate", 29) == ("a", "b", "c")
        assert sample_store.resolve_structure("plate", 30) == ("a", "b", "c", "d")
        assert sample_store.resolve_structure("plate", 1000) == ("a", "b", "c", "d")

    def test_insert_between_snapshots_leaves_later_ones_alone(self, sample_store: EntityStore) -> None:
        sample_store.add_point("plate", 30, 0.0, -1.0, 0.0, point_id="d")
        sample_store.add_point("plate", 20, 0.0, 0.0, -1.0, point_id="e")
        assert [s.frame for s in sample_store.feature("plate").snapshots] == [0, 20, 30]
        assert sample_store.resolve_structure("plate", 25) == ("a", "b", "c", "e")
        assert sample_store.resolve_structure("plate", 30) == ("a", "b", "c", "d")

    def test_point_before_first_snapshot_starts_empty(self, store: EntityStore) -> None:
        fid = store.create_feature("a", FeatureKind.POLYLINE, 10, 20)
        store.add_point(fid, 10, 1.0, 0.0, 0.0, point_id="p")
        store.add_point(fid, 5, 0.0, 1.0, 0.0, point_id="q")
        assert store.feature(fid).snapshots == [
            StructureSnapshot(5, ("q",)),
            StructureSnapshot(10, ("p",)),
        ]

    def test_resolve_clamps_to_first_snapshot(self, store: EntityStore) -> None:
        fid = store.create_feature("a", FeatureKind.POLYLINE, 10, 20)
        store.add_point(fid, 10, 1.0, 0.0, 0.0, point_id="p")
        assert store.resolve_structure(fid, -50) == ("p",)

    def test_resolve_unknown_feature(self, store: EntityStore) -> None:
        with pytest.raises(NotFoundError):
            store.resolve_structure("nope", 0)

    def test_get_points_is_not_frame_filtered(self, sample_store: EntityStore) -> None:
        sample_store.add_point("plate", 30, 0.0, -1.0, 0.0, point_id="d")
        assert sample_store.get_points("plate") == ["a", "b", "c", "d"]


class TestKeyframes:
    def test_out_of_order_insert_keeps_frames_sorted(self, store: EntityStore) -> None:
        fid = store.create_feature("Line", FeatureKind.POLYLINE, 0, 10)
        pid = store.add_point(fid, 0, 0.0, 0.0, 0.0, point_id="p1")
        store.add_keyframe(fid, pid, 5, 5.0, 5.0, 0.0)
        store.add_keyframe(fid, pid, 2, 2.0, 2.0, 0.0)
        assert store.point(fid, pid).frames == [0, 2, 5]

    def test_keyframe_does_not_alter_structure(self, sample_store: EntityStore) -> None:
        before = list(sample_store.feature("plate").snapshots)
        sample_store.add_keyframe("plate", "b", 50, 0.0, 0.0, -1.0)
        assert sample_store.feature("plate").snapshots == before

    def test_replace_policy_overwrites_same_frame(self, store: EntityStore) -> None:
        fid = store.create_feature("a", FeatureKind.POLYGON, 0, 10)
        store.add_point(fid, 0, 1.0, 0.0, 0.0, point_id="p")
        store.add_keyframe(fid, "p", 0, 0.0, 1.0, 0.0)
        assert store.point(fid, "p").keyframes == [Keyframe(0, (0.0, 1.0, 0.0))]

    def test_reject_policy_refuses_same_frame(self, reject_store: EntityStore) -> None:
        fid = reject_store.create_feature("a", FeatureKind.POLYGON, 0, 10)
        reject_store.add_point(fid, 0, 1.0, 0.0, 0.0, point_id="p")
        with pytest.raises(DuplicateKeyframeError) as ei:
            reject_store.add_keyframe(fid, "p", 0, 0.0, 1.0, 0.0)
        assert isinstance(ei.value, InvalidRangeError)
        assert ei.value.frame == 0
        assert reject_store.point(fid, "p").keyframes == [Keyframe(0, (1.0, 0.0, 0.0))]

    def test_reject_policy_accepts_new_frames(self, reject_store: EntityStore) -> None:
        fid = reject_store.create_feature("a", FeatureKind.POLYGON, 0, 10)
        reject_store.add_point(fid, 0, 1.0, 0.0, 0.0, point_id="p")
        reject_store.add_keyframe(fid, "p", 10, 0.0, 1.0, 0.0)
        assert reject_store.point(fid, "p").frames == [0, 10]

    def test_invalid_policy_rejected(self) -> None:
        with pytest.raises(ValueError):
            EntityStore(keyframe_policy="merge")

    def test_unknown_point(self, sample_store: EntityStore) -> None:
        with pytest.raises(NotFoundError) as ei:
            sample_store.add_keyframe("plate", "zz", 1, 1.0, 0.0, 0.0)
        assert (ei.value.kind, ei.value.id) == ("point", "zz")

    def test_unknown_feature(self, sample_store: EntityStore) -> None:
        with pytest.raises(NotFoundError) as ei:
            sample_store.add_keyframe("zz", "a", 1, 1.0, 0.0, 0.0)
        assert ei.value.kind == "feature"

    def test_interpolated_position(self, sample_store: EntityStore) -> None:
        # a: (1,0,0)@0 → (0,-1,0)@100
        x, y, z = sample_store.interpolated_position("plate", "a", 50)  # type: ignore[misc]
        assert x == pytest.approx(0.70710678, abs=1e-6)
        assert y == pytest.approx(-0.70710678, abs=1e-6)
        assert z == pytest.approx(0.0, abs=1e-9)


class TestActiveFeatureAndAttributes:
    def test_set_active_feature(self, sample_store: EntityStore) -> None:
        sample_store.set_active_feature("plate")
        assert sample_store.active_feature_id == "plate"
        sample_store.set_active_feature(None)
        assert sample_store.active_feature_id is None

    def test_set_unknown_active_feature_keeps_previous(self, sample_store: EntityStore) -> None:
        with pytest.raises(NotFoundError):
            sample_store.set_active_feature("nope")
        assert sample_store.active_feature_id == "ridge"

    def test_active_reference_is_weak(self, sample_store: EntityStore) -> None:
        del sample_store.animation.features["ridge"]
        assert sample_store.active_feature_id is None

    def test_name_and_total_frames(self, store: EntityStore) -> None:
        store.name = "Pangaea"
        store.total_frames = 240
        assert (store.name, store.total_frames) == ("Pangaea", 240)
        store.total_frames = 0
        assert store.total_frames == 0

    def test_negative_total_frames_rejected(self, store: EntityStore) -> None:
        with pytest.raises(InvalidRangeError) as ei:
            store.total_frames = -1
        assert ei.value.field == "total_frames"
        assert store.total_frames == 100

    @pytest.mark.parametrize("frames", [-1, 2**31, 2.5])
    def test_new_animation_validates_total_frames(self, frames: object) -> None:
        with pytest.raises(InvalidRangeError) as ei:
            new_animation(total_frames=frames)  # type: ignore[arg-type]
        assert ei.value.field == "total_frames"

    def test_new_animation_accepts_zero_frames(self) -> None:
        assert new_animation("Empty", 0).total_frames == 0
