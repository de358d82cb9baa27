"""
音声入力解析モジュール

このモジュールは音声認識(またはテキスト入力)で得られた日本語の文から
日付・開始時刻・終了時刻・カレンダー(カテゴリ)・タイトルを取り出し、
確認画面に渡す予定の下書き (ParsedEvent) を生成します。

各処理は「パターンと処理関数」の組を優先順に並べたルール表で構成され、
最初に一致したルールだけが適用されます。状態は一切保持しません。
"""

import re
from dataclasses import dataclass
from datetime import datetime, time, timedelta
from typing import Optional

from dateutil.relativedelta import relativedelta

from src.calendar.events import DEFAULT_CATEGORY_ID, DEFAULT_COLOR

DEFAULT_TITLE = "新しい予定"

# datetime.weekday() の並び (月曜 = 0)
WEEKDAYS = "月火水木金土日"

MONTH_DAY_PATTERN = re.compile(r"(\d{1,2})月(\d{1,2})日")
TODAY_PATTERN = re.compile(r"今日|本日")
TOMORROW_PATTERN = re.compile(r"明日|あした")
DAY_AFTER_TOMORROW_PATTERN = re.compile(r"明後日|あさって")
DAYS_LATER_PATTERN = re.compile(r"(\d+)日後")
WEEKDAY_PATTERN = re.compile(r"(?:次の?|来週の?)?([月火水木金土日])曜")

# 「2時間」は時刻ではなく所要時間
PM_TIME_PATTERN = re.compile(r"午後\s*(\d{1,2})時(?!間)(?:\s*(\d{1,2})分)?")
AM_TIME_PATTERN = re.compile(r"午前\s*(\d{1,2})時(?!間)(?:\s*(\d{1,2})分)?")
PLAIN_TIME_PATTERN = re.compile(r"(\d{1,2})時(?!間)(?:(\d{1,2})分)?")
COLON_TIME_PATTERN = re.compile(r"(\d{1,2}):(\d{2})")

RANGE_PATTERN = re.compile(r"から(.+?)まで")
DURATION_PATTERN = re.compile(r"(\d+)時間")

CATEGORY_KEYWORDS = [
    (
        "work",
        (
            "仕事",
            "会議",
            "ミーティング",
            "打ち合わせ",
            "出張",
            "業務",
            "案件",
            "クライアント",
            "プレゼン",
            "締め切り",
            "デッドライン",
        ),
    ),
    (
        "family",
        (
            "家族",
            "子供",
            "こども",
            "親",
            "兄弟",
            "姉妹",
            "夫",
            "妻",
            "父",
            "母",
            "誕生日",
            "記念日",
        ),
    ),
    ("personal", ("病院", "医者", "診察", "健診", "検診", "クリニック", "歯医者")),
    (
        "event",
        (
            "ハッカソン",
            "イベント",
            "勉強会",
            "セミナー",
            "コンサート",
            "ライブ",
            "試合",
            "大会",
        ),
    ),
    ("holiday", ("祝日", "休日", "振替休日")),
]

# 長い表現から先に消す (「3時間」を「3時」より前に、など)
TITLE_NOISE_PATTERNS = [
    MONTH_DAY_PATTERN,
    re.compile(r"明後日|あさって|今日|本日|明日|あした"),
    DAYS_LATER_PATTERN,
    re.compile(r"(?:次の?|来週の?)?[月火水木金土日]曜日?"),
    re.compile(r"午前|午後"),
    DURATION_PATTERN,
    re.compile(r"\d{1,2}時(?:\s*\d{1,2}分)?"),
    COLON_TIME_PATTERN,
    re.compile(r"から|まで|に|で|の|を|が|は"),
    re.compile(r"予定|スケジュール|追加|登録|入れて|教えて"),
]


@dataclass
class ParsedEvent:
    """音声入力から生成した予定の下書き"""

    title: str
    date: datetime
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    is_all_day: bool = True
    category_id: str = DEFAULT_CATEGORY_ID
    color: str = DEFAULT_COLOR


def _start_of_day(reference):
    if reference is None:
        reference = datetime.now()
    elif not isinstance(reference, datetime):
        reference = datetime.combine(reference, time())
    return reference.replace(hour=0, minute=0, second=0, microsecond=0)


def _month_day(match, base):
    # 年の指定はなく常に基準日の年。範囲外の月日は繰り上げ/繰り下げる
    month = int(match.group(1))
    day = int(match.group(2))
    first_of_year = base.replace(month=1, day=1)
    return first_of_year + relativedelta(months=month - 1) + timedelta(days=day - 1)


def _days_after(days):
    def handler(match, base):
        return base + timedelta(days=days)

    return handler


def _days_later(match, base):
    return base + timedelta(days=int(match.group(1)))


def _next_weekday(match, base):
    target = WEEKDAYS.index(match.group(1))
    diff = (target - base.weekday() + 7) % 7 or 7
    return base + timedelta(days=diff)


DATE_RULES = [
    (MONTH_DAY_PATTERN, _month_day),
    (TODAY_PATTERN, _days_after(0)),
    (TOMORROW_PATTERN, _days_after(1)),
    (DAY_AFTER_TOMORROW_PATTERN, _days_after(2)),
    (DAYS_LATER_PATTERN, _days_later),
    (WEEKDAY_PATTERN, _next_weekday),
]


def _pm_hour(hour):
    return hour if hour == 12 else hour + 12


def _am_hour(hour):
    return 0 if hour == 12 else hour


def _as_is(hour):
    return hour


TIME_RULES = [
    (PM_TIME_PATTERN, _pm_hour),
    (AM_TIME_PATTERN, _am_hour),
    (PLAIN_TIME_PATTERN, _as_is),
    (COLON_TIME_PATTERN, _as_is),
]


def resolve_date(text, reference=None) -> datetime:
    """
    文中の日付表現を解決

    Args:
        text (str): 発話テキスト
        reference (datetime | date): 「今日」とみなす基準日時 (None の場合は現在時刻)

    Returns:
        datetime: 0:00 にそろえた日付。日付表現がない場合や
            表現できる範囲 (9999年) を超える場合は基準日
    """
    base = _start_of_day(reference)
    for pattern, handler in DATE_RULES:
        match = pattern.search(text)
        if match:
            try:
                return handler(match, base)
            except (OverflowError, ValueError):
                return base
    return base


def resolve_time(text) -> Optional[str]:
    """
    「午後3時」「午前10時30分」「10時」「10:30」を HH:MM 形式に変換

    Args:
        text (str): 発話テキスト

    Returns:
        str: 24時間表記の時刻。時刻表現がない場合は None (終日)
    """
    for pattern, to_hour in TIME_RULES:
        match = pattern.search(text)
        if match:
            hour = to_hour(int(match.group(1)))
            minute = int(match.group(2)) if match.group(2) else 0
            return f"{hour:02d}:{minute:02d}"
    return None


def infer_category(text) -> str:
    """キーワードからカレンダーを判定 (先に並んでいるカテゴリが優先)"""
    for category_id, keywords in CATEGORY_KEYWORDS:
        if any(keyword in text for keyword in keywords):
            return category_id
    return DEFAULT_CATEGORY_ID


def extract_title(text) -> str:
    """
    日時表現・助詞・定型句を取り除いてタイトルを抽出

    Args:
        text (str): 発話テキスト

    Returns:
        str: タイトル。何も残らない場合は DEFAULT_TITLE
    """
    title = text
    for pattern in TITLE_NOISE_PATTERNS:
        title = pattern.sub("", title)
    title = re.sub(r"\s+", " ", title).strip()
    return title or DEFAULT_TITLE


def add_hours(start_time, hours):
    """HH:MM に時間を加算 (24時を超えた分は翌日扱いで 0 時から数え直す)"""
    hour, minute = start_time.split(":")
    return f"{(int(hour) + hours) % 24:02d}:{minute}"


def resolve_end_time(text, start_time) -> Optional[str]:
    """
    終了時刻を解決

    「10時から12時まで」のような範囲指定を優先し、なければ「2時間」などの
    所要時間を開始時刻に加算します。開始時刻がない場合は常に None です。
    """
    if not start_time:
        return None

    range_match = RANGE_PATTERN.search(text)
    if range_match:
        end_time = resolve_time(range_match.group(1))
        if end_time:
            return end_time

    duration_match = DURATION_PATTERN.search(text)
    if duration_match:
        return add_hours(start_time, int(duration_match.group(1)))
    return None


def interpret(raw_text, reference=None) -> ParsedEvent:
    """
    発話テキストを予定の下書きに変換

    どのような入力でも例外は発生させず、日付は基準日、終日、
    カテゴリは「個人」、タイトルは DEFAULT_TITLE を既定値として補います。

    Args:
        raw_text (str): 音声認識結果または入力テキスト
        reference (datetime | date): 基準日時 (None の場合は現在時刻)

    Returns:
        ParsedEvent: 予定の下書き
    """
    text = (raw_text or "").strip()

    start_time = resolve_time(text)

    return ParsedEvent(
        title=extract_title(text),
        date=resolve_date(text, reference),
        start_time=start_time,
        end_time=resolve_end_time(text, start_time),
        is_all_day=start_time is None,
        category_id=infer_category(text),
        color=DEFAULT_COLOR,
    )
