"""
カレンダーインターフェースモジュール

このモジュールは予定の保存先に対する統一インターフェースを提供します。
現在はメモリ上の保存先のみ対応しています。
"""

from src.calendar.events import get_calendar
from src.calendar.memory_calendar import MemoryCalendarManager


class CalendarInterface:
    """予定の保存先に対する統一インターフェースクラス"""

    def __init__(self, calendar_type="memory", **kwargs):
        """
        CalendarInterface 初期化

        Args:
            calendar_type (str): 保存先の種類 (現在は 'memory' のみ)
            **kwargs: 保存先ごとの追加引数
        """
        self.calendar_type = calendar_type
        self.calendar_manager = None

        if calendar_type == "memory":
            self.calendar_manager = MemoryCalendarManager(events=kwargs.get("events"))
        else:
            raise ValueError(f"対応していないカレンダーの種類です: {calendar_type}")

    def add_event(self, event):
        """
        予定を追加

        Args:
            event (CalendarEvent): 予定データ

        Returns:
            bool: 追加に成功したかどうか
        """
        return self.calendar_manager.add_event(event)

    def get_event(self, event_id):
        return self.calendar_manager.get_event(event_id)

    def list_events(self):
        """登録済みのすべての予定"""
        return self.calendar_manager.list_events()

    def get_events(self, start_date=None, end_date=None, max_results=10):
        """
        指定期間の予定を取得

        Args:
            start_date (str): 開始日 (YYYY-MM-DD 形式)
            end_date (str): 終了日 (YYYY-MM-DD 形式)
            max_results (int): 最大件数

        Returns:
            list: 予定一覧
        """
        return self.calendar_manager.get_events(start_date, end_date, max_results)

    def delete_event(self, event_id):
        return self.calendar_manager.delete_event(event_id)

    def update_event(self, event_id, changes):
        """
        予定を修正

        Args:
            event_id (str): 修正する予定のID
            changes (dict): 修正内容

        Returns:
            bool: 修正に成功したかどうか
        """
        return self.calendar_manager.update_event(event_id, changes)

    def search_events(self, query, max_results=10):
        return self.calendar_manager.search_events(query, max_results)

    def format_event_summary(self, event):
        """
        予定の概要を整形

        Args:
            event (CalendarEvent): 予定データ

        Returns:
            str: 整形済みの概要
        """
        date_str = event.date.strftime("%Y-%m-%d")
        if event.is_all_day and event.end_date:
            when = f"{date_str}〜{event.end_date.strftime('%Y-%m-%d')} (終日)"
        elif event.is_all_day:
            when = f"{date_str} (終日)"
        elif event.end_time:
            when = f"{date_str} {event.start_time}〜{event.end_time}"
        else:
            when = f"{date_str} {event.start_time}"

        calendar = get_calendar(event.calendar_id)
        calendar_name = calendar.name if calendar else event.calendar_id

        return f"タイトル: {event.title}\n日時: {when}\nカレンダー: {calendar_name}"

    def format_events_list(self, events):
        """
        予定一覧を整形

        Args:
            events (list): 予定一覧

        Returns:
            str: 整形済みの予定一覧
        """
        if not events:
            return "予定はありません。"

        result = []
        for i, event in enumerate(events, 1):
            event_summary = self.format_event_summary(event)
            result.append(f"[{i}] {event_summary}\n")

        return "\n".join(result)
