"""
リマインダーモジュール

登録済みの予定から直近の予定を探し、開始までの残り時間を計算します。
"""

from datetime import datetime, timedelta

from src.calendar.events import normalize_date


def event_start(event):
    """予定の開始日時 (終日予定はその日の 0:00、"25:00" は翌日 1:00)"""
    if event.is_all_day or not event.start_time:
        return event.date
    hour, minute = event.start_time.split(":")
    return normalize_date(event.date) + timedelta(hours=int(hour), minutes=int(minute))


def find_next_event(events, now=None):
    """
    現在時刻より後に始まる予定のうち、最も近いものを取得

    Args:
        events (list): 予定一覧
        now (datetime): 現在時刻 (None の場合は datetime.now())

    Returns:
        CalendarEvent: 直近の予定。なければ None
    """
    now = now or datetime.now()
    upcoming = [event for event in events if event_start(event) > now]
    if not upcoming:
        return None
    return min(upcoming, key=event_start)


def format_time_left(delta):
    """残り時間を「M分S秒」に整形"""
    total_seconds = int(delta.total_seconds())
    minutes, seconds = divmod(total_seconds, 60)
    return f"{minutes}分{seconds}秒"


def is_due(delta):
    """残り時間が 0分0秒 (1秒未満) になったかどうか"""
    return 0 <= delta.total_seconds() < 1
