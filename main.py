"""
音声カレンダー アプリケーション実行ファイル

話した内容や入力したテキストから日付・時刻・カレンダーを読み取り、予定を登録します。
"""

from src.app import VoiceCalendarApp


def main():
    """メイン関数"""
    app = VoiceCalendarApp()
    app.run()


if __name__ == "__main__":
    main()
