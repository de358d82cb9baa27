"""
カレンダーデータモジュール

このモジュールはカレンダー(カテゴリ)の定義、色のパレット、予定データ型と
日付単位の予定判定ヘルパーを提供します。
"""

import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional


@dataclass(frozen=True)
class CalendarGroup:
    """カレンダー(カテゴリ)の定義"""

    id: str
    name: str
    color: str


CALENDARS = [
    CalendarGroup("work", "仕事", "#3b82f6"),
    CalendarGroup("personal", "個人", "#22c55e"),
    CalendarGroup("family", "家族", "#f97316"),
    CalendarGroup("event", "イベント", "#a855f7"),
    CalendarGroup("holiday", "祝日", "#ef4444"),
]

CATEGORY_IDS = tuple(group.id for group in CALENDARS)
DEFAULT_CATEGORY_ID = "personal"

COLOR_OPTIONS = [
    "#3b82f6",
    "#22c55e",
    "#f97316",
    "#a855f7",
    "#ef4444",
    "#06b6d4",
    "#f59e0b",
    "#ec4899",
    "#10b981",
    "#6366f1",
]

DEFAULT_COLOR = COLOR_OPTIONS[0]


@dataclass
class CalendarEvent:
    """カレンダーに登録される予定"""

    id: str
    title: str
    date: datetime
    color: str = DEFAULT_COLOR
    calendar_id: str = DEFAULT_CATEGORY_ID
    is_all_day: bool = True
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    end_date: Optional[datetime] = None
    description: Optional[str] = None


def get_calendar(calendar_id):
    """
    IDからカレンダー定義を取得

    Args:
        calendar_id (str): カレンダーID

    Returns:
        CalendarGroup: 見つからない場合は None
    """
    for group in CALENDARS:
        if group.id == calendar_id:
            return group
    return None


def generate_event_id():
    """予定IDを生成"""
    return uuid.uuid4().hex


def to_calendar_event(parsed, event_id=None):
    """
    音声入力の解析結果を予定データに変換

    Args:
        parsed (ParsedEvent): 解析結果
        event_id (str): 予定ID (None の場合は新規生成)

    Returns:
        CalendarEvent: 登録用の予定データ
    """
    return CalendarEvent(
        id=event_id or generate_event_id(),
        title=parsed.title,
        date=parsed.date,
        color=parsed.color,
        calendar_id=parsed.category_id,
        is_all_day=parsed.is_all_day,
        start_time=parsed.start_time,
        end_time=parsed.end_time,
    )


def normalize_date(value):
    """時刻部分を切り捨てて 0:00 にそろえる"""
    return value.replace(hour=0, minute=0, second=0, microsecond=0)


def is_valid_time(value):
    """HH:MM (00:00〜23:59) 形式かどうか"""
    try:
        datetime.strptime(value, "%H:%M")
    except (TypeError, ValueError):
        return False
    return True


def get_events_for_day(events, day) -> List[CalendarEvent]:
    """
    指定日に表示する予定を抽出

    複数日にまたがる終日予定は開始日から終了日まで毎日含まれます。
    """
    target = normalize_date(day)
    result = []
    for event in events:
        start = normalize_date(event.date)
        if event.is_all_day and event.end_date:
            end = normalize_date(event.end_date)
            if start <= target <= end:
                result.append(event)
        elif start == target:
            result.append(event)
    return result


def is_event_start(event, day):
    return normalize_date(event.date) == normalize_date(day)


def is_event_end(event, day):
    if not event.end_date:
        return True
    return normalize_date(event.end_date) == normalize_date(day)
