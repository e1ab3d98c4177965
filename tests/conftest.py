"""共通フィクスチャ。

- 連番 ID を払い出す Store（ID を予測可能にする）
- 小さなアニメーション試料（Polygon 1 つ + Polyline 1 つ）
"""

from __future__ import annotations

import itertools
from typing import Callable, Iterator

import pytest

from api import AnimationEngine
from common import settings
from engine.core.model import FeatureKind
from engine.core.store import EntityStore


def _counter_ids() -> Callable[[], str]:
    counter = itertools.count(1)
    return lambda: f"id{next(counter)}"


@pytest.fixture()
def store() -> EntityStore:
    return EntityStore(id_factory=_counter_ids())


@pytest.fixture()
def reject_store() -> EntityStore:
    return EntityStore(keyframe_policy="reject", id_factory=_counter_ids())


@pytest.fixture()
def engine() -> AnimationEngine:
    return AnimationEngine()


@pytest.fixture()
def sample_store(store: EntityStore) -> EntityStore:
    """Polygon "plate"（3 点, frame 0..100）と Polyline "ridge"（2 点, frame 10..20）。"""
    store.create_feature("Plate", FeatureKind.POLYGON, 0, 100, feature_id="plate")
    store.add_point("plate", 0, 1.0, 0.0, 0.0, point_id="a")
    store.add_point("plate", 0, 0.0, 1.0, 0.0, point_id="b")
    store.add_point("plate", 0, 0.0, 0.0, 1.0, point_id="c")
    store.add_keyframe("plate", "a", 100, 0.0, -1.0, 0.0)

    store.create_feature("Ridge", FeatureKind.POLYLINE, 10, 20, feature_id="ridge")
    store.add_point("ridge", 10, 1.0, 0.0, 0.0, point_id="r1")
    store.add_point("ridge", 10, 0.0, 0.0, -1.0, point_id="r2")
    return store


@pytest.fixture()
def clean_settings(monkeypatch: pytest.MonkeyPatch) -> Iterator[pytest.MonkeyPatch]:
    """環境変数を書き換えるテスト用。終了時に設定を再読込して元へ戻す。"""
    yield monkeypatch
    monkeypatch.undo()
    settings.reload_from_env()
