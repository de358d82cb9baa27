"""
音声カレンダーアプリケーション

このモジュールは音声認識、音声入力解析、カレンダーの各モジュールを組み合わせて、
話した内容から予定を登録できるアプリケーションを提供します。
"""

from dataclasses import asdict
from datetime import datetime

from src.calendar.calendar_interface import CalendarInterface
from src.calendar.events import CALENDARS, get_calendar, is_valid_time, to_calendar_event
from src.calendar.reminder import find_next_event, event_start, format_time_left, is_due
from src.parser.voice_input_parser import add_hours, interpret
from src.speech.speech_recognizer import SpeechRecognizer
from src.utils.config import Config

# 確認画面で時刻付きに切り替えたときの既定値 (終了は開始の1時間後)
DEFAULT_START_TIME = "10:00"
LAST_END_TIME = "23:59"

DRAFT_LABELS = {
    "title": "タイトル",
    "date": "日付",
    "start_time": "開始",
    "end_time": "終了",
    "is_all_day": "終日",
    "category_id": "カレンダー",
    "color": "色",
}


def _normalize_time(value):
    """"9:05" のような入力を "09:05" にそろえる"""
    return datetime.strptime(value, "%H:%M").strftime("%H:%M")


def _default_end_time(start_time, end_time):
    # 開始より後の終了時刻だけを既定値として引き継ぐ
    if end_time and is_valid_time(end_time) and _normalize_time(end_time) > start_time:
        return _normalize_time(end_time)
    if start_time >= "23:00":
        return LAST_END_TIME
    return add_hours(start_time, 1)


class VoiceCalendarApp:
    """音声カレンダーアプリケーションクラス"""

    def __init__(self, config_path="config.yaml"):
        """
        VoiceCalendarApp 初期化

        Args:
            config_path (str): 設定ファイルのパス
        """
        self.config = Config(config_path)

        calendar_config = self.config.get("calendar")
        self.calendar = CalendarInterface(
            calendar_type=calendar_config.get("type", "memory")
        )
        self.max_results = calendar_config.get("max_results", 10)

        self.speech_recognizer = self._create_speech_recognizer()

    def _create_speech_recognizer(self):
        speech_config = self.config.get("speech")
        return SpeechRecognizer(
            backend=speech_config.get("backend", "whisper"),
            model_name=speech_config.get("model_name", "openai/whisper-large-v3"),
            language=speech_config.get("language", "japanese"),
            language_code=speech_config.get("language_code", "ja-JP"),
            api_key=speech_config.get("api_key"),
            cache_dir=speech_config.get("cache_dir", "models"),
        )

    def run(self):
        """アプリケーションを実行"""
        print("音声カレンダーを起動します。")

        actions = {
            "1": self.record_and_add_event,
            "2": self.type_and_add_event,
            "3": self.show_today_events,
            "4": self.search_events,
            "5": self.show_next_event,
            "6": self.change_settings,
        }

        while True:
            print("\n1. 音声で予定を追加")
            print("2. テキストで予定を追加")
            print("3. 今日の予定を表示")
            print("4. 予定を検索")
            print("5. 次の予定を確認")
            print("6. 設定を変更")
            print("7. 終了")
            choice = input("番号を選んでください: ")

            if choice == "7":
                print("アプリケーションを終了します。")
                break

            action = actions.get(choice)
            if action is None:
                print("正しい番号を入力してください。")
                continue

            try:
                action()
            except Exception as e:
                print(f"エラーが発生しました: {e}")

    def record_and_add_event(self):
        """録音した音声から予定を追加"""
        speech_config = self.config.get("speech")
        audio_file = self.speech_recognizer.record_audio(
            silence_threshold=speech_config.get("silence_threshold", 1000),
            silence_duration=speech_config.get("silence_duration", 2.0),
            max_duration=speech_config.get("max_duration", 60),
        )

        text = self.speech_recognizer.transcribe(audio_file)
        print(f"\n認識したテキスト: {text}")

        if not text.strip():
            print("音声を認識できませんでした。もう一度お試しください。")
            return

        self.add_event_from_text(text)

    def type_and_add_event(self):
        """入力したテキストから予定を追加"""
        print("例: 「明日の午後3時に会議」「3月15日 ハッカソン」")
        text = input("予定を入力してください: ")
        if not text.strip():
            return
        self.add_event_from_text(text)

    def add_event_from_text(self, text, now=None):
        """
        テキストを解析し、確認のうえ予定を登録

        Args:
            text (str): 発話テキスト
            now (datetime): 基準日時 (None の場合は現在時刻)

        Returns:
            CalendarEvent: 登録した予定。取り消した場合は None
        """
        parsed = interpret(text, now)

        print("\n解析結果:")
        self.print_draft(parsed)

        event = self.confirm_parsed_event(parsed)
        if event is None:
            print("予定の登録を取り消しました。")
            return None

        if self.calendar.add_event(event):
            print("予定を登録しました。")
            return event

        print("予定の登録に失敗しました。")
        return None

    def print_draft(self, parsed):
        for key, value in asdict(parsed).items():
            if key == "date":
                value = value.strftime("%Y-%m-%d")
            elif key == "category_id":
                value = get_calendar(value).name
            elif value is None:
                value = "なし"
            print(f"{DRAFT_LABELS[key]}: {value}")

    def confirm_parsed_event(self, parsed):
        """
        解析結果を確認・編集して予定データを作成

        Args:
            parsed (ParsedEvent): 解析結果

        Returns:
            CalendarEvent: 登録する予定。取り消した場合は None
        """
        answer = input("\nこの内容で登録しますか? (y: 登録 / e: 編集 / n: 取り消し): ")
        answer = answer.strip().lower()

        if answer == "y":
            return to_calendar_event(parsed)
        if answer != "e":
            return None

        print("変更しない項目は空欄のまま Enter を押してください。")

        parsed.title = input(f"タイトル ({parsed.title}): ").strip() or parsed.title

        all_day = input(f"終日 ({'y' if parsed.is_all_day else 'n'}): ").strip().lower()
        if all_day in ("y", "n"):
            parsed.is_all_day = all_day == "y"

        if parsed.is_all_day:
            parsed.start_time = None
            parsed.end_time = None
        else:
            start_default = parsed.start_time or DEFAULT_START_TIME
            start_time = input(f"開始 HH:MM ({start_default}): ").strip() or start_default
            if not is_valid_time(start_time):
                print("時刻は HH:MM 形式で入力してください。")
                return None
            start_time = _normalize_time(start_time)

            end_default = _default_end_time(start_time, parsed.end_time)
            end_time = input(f"終了 HH:MM ({end_default}): ").strip() or end_default
            if not is_valid_time(end_time):
                print("時刻は HH:MM 形式で入力してください。")
                return None
            end_time = _normalize_time(end_time)
            if end_time <= start_time:
                print("終了時刻は開始時刻より後にしてください。")
                return None
            parsed.start_time = start_time
            parsed.end_time = end_time

        choices = " / ".join(f"{group.id}: {group.name}" for group in CALENDARS)
        category_id = input(f"カレンダー [{choices}] ({parsed.category_id}): ").strip()
        if category_id:
            if get_calendar(category_id) is None:
                print(f"不明なカレンダーです: {category_id}")
                return None
            parsed.category_id = category_id
            parsed.color = get_calendar(category_id).color

        return to_calendar_event(parsed)

    def show_today_events(self):
        """今日の予定を表示"""
        events = self.calendar.get_events(max_results=self.max_results)
        print("\n今日の予定:")
        print(self.calendar.format_events_list(events))

    def show_next_event(self, now=None):
        """直近の予定と開始までの残り時間を表示"""
        now = now or datetime.now()
        event = find_next_event(self.calendar.list_events(), now)
        if event is None:
            print("\n次の予定: 予定なし")
            return None

        time_left = event_start(event) - now
        print(f"\n次の予定: {event.title}")
        print(f"あと {format_time_left(time_left)}")
        if is_due(time_left):
            print(f"予定の時間です: {event.title}")
        return event

    def search_events(self):
        """予定を検索し、修正または削除"""
        query = input("検索語を入力してください: ")
        events = self.calendar.search_events(query, self.max_results)

        print(f"\n「{query}」の検索結果:")
        print(self.calendar.format_events_list(events))

        if not events:
            return

        action = input("\n予定を修正・削除しますか? (1: 修正, 2: 削除, 3: 戻る): ")
        if action not in ("1", "2"):
            return

        index = int(input("予定の番号を入力してください: ")) - 1
        if not 0 <= index < len(events):
            print("正しい番号を入力してください。")
            return

        event = events[index]

        if action == "1":
            print("\n変更しない項目は空欄のまま Enter を押してください:")
            title = input(f"タイトル ({event.title}): ")
            date = input("日付 (YYYY-MM-DD): ")
            start_time = input("開始 (HH:MM): ")
            end_time = input("終了 (HH:MM): ")

            changes = {}
            if title:
                changes["title"] = title
            if date:
                changes["date"] = date
            if start_time:
                changes["start_time"] = start_time
                changes["is_all_day"] = False
            if end_time:
                changes["end_time"] = end_time

            if self.calendar.update_event(event.id, changes):
                print("予定を修正しました。")
            else:
                print("予定の修正に失敗しました。")

        else:
            confirm = input(f"「{event.title}」を削除しますか? (y/n): ")
            if confirm.lower() == "y":
                if self.calendar.delete_event(event.id):
                    print("予定を削除しました。")
                else:
                    print("予定の削除に失敗しました。")

    def change_settings(self):
        """音声認識の設定を変更"""
        speech_config = self.config.get("speech")

        print("\n現在の音声認識の設定:")
        for key, value in speech_config.items():
            if key == "api_key" and value:
                value = "********"
            print(f"{key}: {value}")

        print("\n変更しない項目は空欄のまま Enter を押してください:")
        backend = input(f"認識方式 whisper/google ({speech_config.get('backend')}): ")
        model_name = input(f"モデル名 ({speech_config.get('model_name')}): ")
        api_key = input("Google API キー: ")
        silence_duration = input(
            f"無音判定の長さ ({speech_config.get('silence_duration')}): "
        )
        max_duration = input(f"最大録音時間 ({speech_config.get('max_duration')}): ")

        new_config = {}
        if backend:
            if backend not in ("whisper", "google"):
                print(f"対応していない音声認識方式です: {backend}")
                return
            new_config["backend"] = backend
        if model_name:
            new_config["model_name"] = model_name
        if api_key:
            new_config["api_key"] = api_key
        if silence_duration:
            new_config["silence_duration"] = float(silence_duration)
        if max_duration:
            new_config["max_duration"] = int(max_duration)

        if new_config:
            self.config.update("speech", new_config)
            print("音声認識の設定を更新しました。")
            self.speech_recognizer = self._create_speech_recognizer()
