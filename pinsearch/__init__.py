"""Pinterest 検索結果の収集・キーワード難易度算出サービス."""
