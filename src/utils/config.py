"""
設定ファイルモジュール

このモジュールはアプリケーションの設定を管理します。
"""

import copy
import os
import json
import yaml

DEFAULT_CONFIG = {
    "calendar": {
        "type": "memory",
        "max_results": 10,
    },
    "speech": {
        "backend": "whisper",
        "model_name": "openai/whisper-large-v3",
        "language": "japanese",
        "language_code": "ja-JP",
        "api_key": "",
        "cache_dir": "models",
        "silence_threshold": 1000,
        "silence_duration": 2.0,
        "max_duration": 60,
    },
}


class Config:
    """設定管理クラス"""

    def __init__(self, config_path="config.yaml"):
        """
        Config 初期化

        Args:
            config_path (str): 設定ファイルのパス
        """
        self.config_path = config_path
        self.config = self._load_config()

    def _load_config(self):
        """設定ファイルを読み込む"""
        if not os.path.exists(self.config_path):
            # 既定の設定でファイルを作成
            default_config = self._create_default_config()
            self._save_config(default_config)
            return default_config

        # 拡張子で読み込み方法を決める
        ext = os.path.splitext(self.config_path)[1].lower()

        try:
            if ext == ".json":
                with open(self.config_path, "r", encoding="utf-8") as f:
                    loaded = json.load(f)
            elif ext in [".yaml", ".yml"]:
                with open(self.config_path, "r", encoding="utf-8") as f:
                    loaded = yaml.safe_load(f)
            else:
                print(f"対応していない設定ファイル形式です: {ext}")
                return self._create_default_config()
        except Exception as e:
            print(f"設定ファイルの読み込みに失敗しました: {e}")
            return self._create_default_config()

        return self._merge_defaults(loaded or {})

    def _create_default_config(self):
        """既定の設定を生成"""
        return copy.deepcopy(DEFAULT_CONFIG)

    def _merge_defaults(self, loaded):
        """ファイルにないキーを既定値で補う"""
        config = self._create_default_config()
        for section, values in loaded.items():
            if isinstance(values, dict) and section in config:
                config[section].update(values)
            else:
                config[section] = values
        return config

    def _save_config(self, config=None):
        """
        設定ファイルを保存

        Args:
            config (dict): 保存する設定 (None の場合は現在の設定)
        """
        if config is None:
            config = self.config

        ext = os.path.splitext(self.config_path)[1].lower()

        try:
            with open(self.config_path, "w", encoding="utf-8") as f:
                if ext == ".json":
                    json.dump(config, f, indent=2, ensure_ascii=False)
                else:
                    # JSON 以外は YAML で保存
                    yaml.dump(config, f, default_flow_style=False, allow_unicode=True)
        except Exception as e:
            print(f"設定ファイルの保存に失敗しました: {e}")

    def get(self, section, key=None, default=None):
        """
        設定値を取得

        Args:
            section (str): 設定セクション
            key (str): 設定キー (None の場合はセクション全体を返す)
            default: 既定値

        Returns:
            設定値
        """
        if section not in self.config:
            return default

        if key is None:
            return self.config[section]

        return self.config[section].get(key, default)

    def set(self, section, key, value):
        """
        設定値を変更

        Args:
            section (str): 設定セクション
            key (str): 設定キー
            value: 設定値
        """
        if section not in self.config:
            self.config[section] = {}

        self.config[section][key] = value
        self._save_config()

    def update(self, section, values):
        """
        設定セクションをまとめて更新

        Args:
            section (str): 設定セクション
            values (dict): 更新する値
        """
        if section not in self.config:
            self.config[section] = {}

        self.config[section].update(values)
        self._save_config()
