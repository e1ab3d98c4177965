"""
どこで: `common` パッケージ。
何を: ID 払い出し・設定・ロギングなど、全層から使う軽量ユーティリティ。
なぜ: engine/api から再利用する共通基盤を分離し、依存の向きを単純化するため。
"""

from .ids import new_id

__all__ = [
    "new_id",
]
