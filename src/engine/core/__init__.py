"""
どこで: `engine.core` サブパッケージ。
何を: データモデル・エラー階層・球面補間・Entity Store を提供。
なぜ: 状態とその変更規則を 1 箇所に集め、上位層（Render/Codec/API）から再利用可能にするため。
"""
