"""
どこで: `engine.codec` サブパッケージ。
何を: Animation の永続化フォーマット（protobuf）と encode/decode を提供。
なぜ: ワイヤ互換性の責務を 1 箇所に集め、Store/Render からシリアライズ詳細を隠すため。
"""

from .animation_codec import decode_animation, encode_animation

__all__ = ["encode_animation", "decode_animation"]
