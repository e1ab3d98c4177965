"""
どこで: `engine.render` サブパッケージ。
何を: Store の状態 → GPU 向け線分バッファへの変換。SegmentBuffer/build_segments を提供。
なぜ: 計算（core）と描画（外部ビューア）の責務を分離し、転送フォーマットを局所化するため。
"""
