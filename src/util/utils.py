import os
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import yaml

CONFIG_ENV = "GECO_CONFIG"


def _safe_load_yaml(path: Path) -> Dict[str, Any]:
    try:
        with path.open("r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except (OSError, yaml.YAMLError):
        return {}
    return data if isinstance(data, dict) else {}


def _find_project_root(start: Path) -> Path:
    """`pyproject.toml` か `configs/` を持つ最も近い上位ディレクトリを返す。

    見つからない場合は `start.parent.parent`（典型: <repo>/src/util -> <repo>）。
    """
    cur = start.resolve()
    for parent in [cur] + list(cur.parents):
        if (parent / "pyproject.toml").exists() or (parent / "configs").exists():
            return parent
    return cur.parent.parent


def _merge_sections(base: Dict[str, Any], override: Mapping[str, Any]) -> None:
    """セクション（1 階層目の辞書）単位でキーを上書きする。辞書以外はそのまま置換。"""
    for key, value in override.items():
        current = base.get(key)
        if isinstance(current, dict) and isinstance(value, dict):
            base[key] = {**current, **value}
        else:
            base[key] = value


def load_config(path: Optional[Path] = None) -> Dict[str, Any]:
    """構成を読み込んで辞書で返す（フェイルソフト）。

    優先順（後勝ち）:
    1) `configs/default.yaml`（ベース）
    2) ルート `config.yaml`
    3) `path` 引数、無ければ環境変数 `GECO_CONFIG` が指すファイル

    - 存在しない/不正なファイルは無視する（すべて不在なら空辞書）。
    - 上書きはセクション内のキー単位（`logging.level` だけを差し替える等が可能）。
    """
    project_root = _find_project_root(Path(__file__).parent)
    candidates = [project_root / "configs" / "default.yaml", project_root / "config.yaml"]
    extra = path if path is not None else os.getenv(CONFIG_ENV)
    if extra:
        candidates.append(Path(extra))

    base: Dict[str, Any] = {}
    for candidate in candidates:
        if candidate.exists():
            _merge_sections(base, _safe_load_yaml(candidate))
    return base
