"""
どこで: `common.settings`
何を: 設定ファイル（YAML）と環境変数を型付きで一元管理し、起動時に読み込む。
なぜ: `os.getenv` や設定辞書の散在を解消し、既定値/型の一貫性とテスト容易性を高めるため。

優先順（後勝ち）:
1) `_Settings` のフィールド既定値
2) `configs/default.yaml` → ルート `config.yaml` → `GECO_CONFIG`（`util.utils.load_config`）
3) 環境変数 `GECO_*`
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping

from util.utils import load_config

from .env import env_choice, env_float, env_int, env_str

KEYFRAME_POLICIES = ("replace", "reject")


@dataclass
class _Settings:
    # Animation
    DEFAULT_ANIMATION_NAME: str = "Untitled Animation"
    DEFAULT_TOTAL_FRAMES: int = 100
    KEYFRAME_POLICY: str = "replace"

    # Interpolation
    SLERP_EPSILON: float = 1e-6

    # Misc
    LOG_LEVEL: str = "INFO"


_settings = _Settings()


def _section(cfg: Mapping[str, Any], name: str) -> Mapping[str, Any]:
    sec = cfg.get(name, {})
    return sec if isinstance(sec, Mapping) else {}


def _apply_config(cfg: Mapping[str, Any]) -> None:
    """YAML 由来の値を反映する。型が合わない値は無視して既定を維持。"""
    anim = _section(cfg, "animation")
    name = anim.get("default_name")
    if isinstance(name, str) and name.strip():
        _settings.DEFAULT_ANIMATION_NAME = name
    frames = anim.get("default_total_frames")
    if isinstance(frames, int) and not isinstance(frames, bool) and frames >= 0:
        _settings.DEFAULT_TOTAL_FRAMES = frames
    policy = anim.get("keyframe_policy")
    if isinstance(policy, str) and policy.lower() in KEYFRAME_POLICIES:
        _settings.KEYFRAME_POLICY = policy.lower()

    interp = _section(cfg, "interpolation")
    eps = interp.get("epsilon")
    if isinstance(eps, (int, float)) and not isinstance(eps, bool) and eps > 0:
        _settings.SLERP_EPSILON = float(eps)

    log = _section(cfg, "logging")
    level = log.get("level")
    if isinstance(level, str) and level.strip():
        _settings.LOG_LEVEL = level.upper()


def reload_from_env() -> None:
    """設定ファイルと環境変数から設定を再読込。

    - まずフィールド既定値へ戻し、YAML を反映してから環境変数で上書きする。
    - 不正値は黙って無視し、直前の値（YAML か既定値）を維持する。
    """
    defaults = _Settings()
    for field_name, value in vars(defaults).items():
        setattr(_settings, field_name, value)

    _apply_config(load_config())

    # Animation
    _settings.DEFAULT_ANIMATION_NAME = env_str(
        "GECO_DEFAULT_ANIMATION_NAME", _settings.DEFAULT_ANIMATION_NAME
    )
    _settings.DEFAULT_TOTAL_FRAMES = (
        env_int("GECO_DEFAULT_TOTAL_FRAMES", _settings.DEFAULT_TOTAL_FRAMES, min_value=0)
        or 0
    )
    _settings.KEYFRAME_POLICY = env_choice(
        "GECO_KEYFRAME_POLICY", _settings.KEYFRAME_POLICY, KEYFRAME_POLICIES
    )

    # Interpolation（0 以下は無効）
    eps = env_float("GECO_SLERP_EPSILON", _settings.SLERP_EPSILON)
    if eps is not None and eps > 0:
        _settings.SLERP_EPSILON = eps

    # Misc
    _settings.LOG_LEVEL = env_str("GECO_LOG_LEVEL", _settings.LOG_LEVEL).upper()


def get() -> _Settings:
    """現在の設定スナップショットを返す。"""
    return _settings


# 初期ロード
reload_from_env()


__all__ = ["get", "reload_from_env", "KEYFRAME_POLICIES", "_Settings"]
