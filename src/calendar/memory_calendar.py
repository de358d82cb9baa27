"""
メモリ上のカレンダーモジュール

このモジュールは予定をプロセス内のリストに保持して管理する機能を提供します。
アプリケーションを終了すると予定は破棄されます。
"""

from dataclasses import replace
from datetime import datetime, timedelta

from src.calendar.events import (
    CATEGORY_IDS,
    generate_event_id,
    get_events_for_day,
    is_valid_time,
    normalize_date,
)

EDITABLE_FIELDS = (
    "title",
    "date",
    "color",
    "calendar_id",
    "is_all_day",
    "start_time",
    "end_time",
    "end_date",
    "description",
)


def _parse_date(value):
    """YYYY-MM-DD 文字列または datetime を 0:00 の datetime に変換"""
    if isinstance(value, datetime):
        return normalize_date(value)
    return datetime.strptime(value, "%Y-%m-%d")


def _sort_key(event):
    # 同じ日の中では終日予定を先に、時刻付きは開始時刻順
    return (normalize_date(event.date), not event.is_all_day, event.start_time or "")


class MemoryCalendarManager:
    """メモリ上のリストで予定を管理するクラス"""

    def __init__(self, events=None):
        """
        MemoryCalendarManager 初期化

        Args:
            events (list): 初期状態の予定一覧
        """
        self.events = list(events or [])

    def add_event(self, event):
        """
        予定を追加

        Args:
            event (CalendarEvent): 予定データ (id が空の場合は新規生成)

        Returns:
            bool: 追加に成功したかどうか
        """
        if not event.id:
            event.id = generate_event_id()

        if self.get_event(event.id):
            print(f"同じIDの予定が既に存在します: {event.id}")
            return False

        self.events.append(event)
        return True

    def get_event(self, event_id):
        for event in self.events:
            if event.id == event_id:
                return event
        return None

    def list_events(self):
        return list(self.events)

    def get_events(self, start_date=None, end_date=None, max_results=10):
        """
        指定期間の予定を取得

        Args:
            start_date (str | datetime): 開始日 (YYYY-MM-DD 形式、None の場合は今日)
            end_date (str | datetime): 終了日 (None の場合は開始日と同じ)
            max_results (int): 最大件数

        Returns:
            list: 日付・開始時刻順の予定一覧
        """
        start = _parse_date(start_date) if start_date else normalize_date(datetime.now())
        end = _parse_date(end_date) if end_date else start

        found = []
        day = start
        while day <= end:
            for event in get_events_for_day(self.events, day):
                if all(event.id != other.id for other in found):
                    found.append(event)
            day += timedelta(days=1)

        found.sort(key=_sort_key)
        return found[:max_results]

    def delete_event(self, event_id):
        """
        予定を削除

        Args:
            event_id (str): 削除する予定のID

        Returns:
            bool: 削除に成功したかどうか
        """
        event = self.get_event(event_id)
        if event is None:
            print(f"予定が見つかりません: {event_id}")
            return False

        self.events.remove(event)
        return True

    def update_event(self, event_id, changes):
        """
        予定を修正

        Args:
            event_id (str): 修正する予定のID
            changes (dict): 修正内容 (フィールド名と値)

        Returns:
            bool: 修正に成功したかどうか
        """
        event = self.get_event(event_id)
        if event is None:
            print(f"予定が見つかりません: {event_id}")
            return False

        values = {key: value for key, value in changes.items() if key in EDITABLE_FIELDS}
        if "date" in values:
            values["date"] = _parse_date(values["date"])
        if values.get("calendar_id") not in (None,) + CATEGORY_IDS:
            print(f"不明なカレンダーです: {values['calendar_id']}")
            return False
        for key in ("start_time", "end_time"):
            if values.get(key) is not None and not is_valid_time(values[key]):
                print(f"時刻は HH:MM 形式で指定してください: {values[key]}")
                return False

        updated = replace(event, **values)
        # 終日予定には時刻を持たせない
        if updated.is_all_day:
            updated.start_time = None
            updated.end_time = None
        elif updated.start_time is None:
            updated.is_all_day = True
            updated.end_time = None

        self.events[self.events.index(event)] = updated
        return True

    def search_events(self, query, max_results=10):
        """
        タイトルと説明文から予定を検索

        Args:
            query (str): 検索語
            max_results (int): 最大件数

        Returns:
            list: 日付・開始時刻順の検索結果
        """
        found = [
            event
            for event in self.events
            if query in event.title or (event.description and query in event.description)
        ]
        found.sort(key=_sort_key)
        return found[:max_results]
