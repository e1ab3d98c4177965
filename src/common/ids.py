"""
どこで: `common.ids`
何を: Feature/Point/Animation 用の一意 ID を払い出す。
なぜ: 呼び出し側が ID を省略した場合でも衝突しない識別子を一箇所で生成するため。
"""

from __future__ import annotations

import uuid


def new_id(prefix: str | None = None) -> str:
    """128bit 乱数（UUID4）由来の ID 文字列を返す。

    Parameters
    ----------
    prefix : str | None, default None
        指定時は ``"<prefix>-<uuid>"`` の形で返す。

    Returns
    -------
    str
        プロセス寿命内で統計的に一意な ID。
    """
    token = str(uuid.uuid4())
    if prefix:
        return f"{prefix}-{token}"
    return token


__all__ = ["new_id"]
