# wellness statistics — weekly mood average, streak, active minutes, alert classification
# pure reductions over rows already fetched by the routers
# thresholds are fixed on the 1-5 mood scale, not configurable

import logging
import math
from collections import defaultdict
from datetime import date, datetime, timedelta, timezone
from typing import Any, Dict, Iterable, List, Optional

logger = logging.getLogger(__name__)

TRAILING_WINDOW = timedelta(days=7)

# average mood <= CRITICAL is an alert, <= NEUTRAL is neutral, anything above is good
CRITICAL_MOOD_THRESHOLD = 2.0
NEUTRAL_MOOD_THRESHOLD = 3.5

MOOD_LABELS = {1: "Very Low", 2: "Low", 3: "Okay", 4: "Good", 5: "Great"}

# mood trend compares the newest and oldest TREND_SAMPLE entries
TREND_SAMPLE = 5
TREND_MARGIN = 0.5


def parse_timestamp(value: Any) -> Optional[datetime]:
    """parse an iso string / date / datetime into an aware utc datetime"""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, date):
        dt = datetime(value.year, value.month, value.day)
    else:
        try:
            dt = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
        except ValueError:
            logger.warning(f"Unparseable timestamp: {value!r}")
            return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def parse_day(value: Any) -> Optional[date]:
    """calendar day of a mood entry's date field"""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not value:
        return None
    try:
        return date.fromisoformat(str(value)[:10])
    except ValueError:
        logger.warning(f"Unparseable date: {value!r}")
        return None


def trailing_window_start(now: datetime) -> datetime:
    return now - TRAILING_WINDOW


def _in_trailing_window(value: Any, now: datetime) -> bool:
    ts = parse_timestamp(value)
    return ts is not None and ts >= trailing_window_start(now)


def _mean(values: List[float]) -> Optional[float]:
    if not values:
        return None
    return sum(values) / len(values)


def mood_values(entries: Iterable[Dict[str, Any]]) -> List[float]:
    """mood_value of each entry, skipping missing and nan values"""
    values = []
    for entry in entries:
        mood = entry.get("mood_value")
        if mood is None:
            continue
        value = float(mood)
        if not math.isnan(value):
            values.append(value)
    return values


def weekly_average_mood(entries: Iterable[Dict[str, Any]], now: datetime) -> Optional[float]:
    """mean mood_value of entries created within the trailing 7 days.
    returns none (no data) for an empty window, never 0 or nan."""
    values = []
    for entry in entries:
        mood = entry.get("mood_value")
        if mood is None:
            continue
        value = float(mood)
        if math.isnan(value):
            continue
        if _in_trailing_window(entry.get("created_at") or entry.get("date"), now):
            values.append(value)
    return _mean(values)


def compute_streak(entries: Iterable[Dict[str, Any]], today: date) -> int:
    """consecutive calendar days ending today that have a mood entry.
    walks days newest first and stops at the first gap; future days are skipped."""
    days = sorted({d for d in (parse_day(e.get("date")) for e in entries) if d is not None}, reverse=True)

    streak = 0
    expected = today
    for day in days:
        if day == expected:
            streak += 1
            expected -= timedelta(days=1)
        elif day < expected:
            break
    return streak


def weekly_active_minutes(
    sessions: Iterable[Dict[str, Any]],
    completions: Iterable[Dict[str, Any]],
    now: datetime,
) -> int:
    """session minutes plus activity minutes within the trailing 7 days"""
    session_minutes = sum(
        s.get("duration_minutes") or 0
        for s in sessions
        if _in_trailing_window(s.get("created_at"), now)
    )
    activity_minutes = sum(
        c.get("actual_duration_minutes") or 0
        for c in completions
        if _in_trailing_window(c.get("completed_at"), now)
    )
    return int(session_minutes + activity_minutes)


def classify_mood(average: Optional[float]) -> str:
    """map an average mood to critical / neutral / good, or no-data"""
    if average is None:
        return "no-data"
    if average <= CRITICAL_MOOD_THRESHOLD:
        return "critical"
    if average <= NEUTRAL_MOOD_THRESHOLD:
        return "neutral"
    return "good"


def mood_trend(entries_newest_first: List[Dict[str, Any]]) -> str:
    """improving / declining / stable, comparing the newest and oldest entries"""
    values = mood_values(entries_newest_first)
    if len(values) < 2:
        return "stable"

    recent = values[:TREND_SAMPLE]
    older = values[-TREND_SAMPLE:]
    recent_avg = _mean(recent)
    older_avg = _mean(older)

    if recent_avg > older_avg + TREND_MARGIN:
        return "improving"
    if recent_avg < older_avg - TREND_MARGIN:
        return "declining"
    return "stable"


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def summarize_weekly_wellness(
    mood_entries: List[Dict[str, Any]],
    sessions: List[Dict[str, Any]],
    completions: List[Dict[str, Any]],
    now: datetime,
    weekly_goal_minutes: int,
) -> Dict[str, Any]:
    """per-student weekly wellness summary for the dashboard stats card"""
    average = weekly_average_mood(mood_entries, now)
    active_minutes = weekly_active_minutes(sessions, completions, now)

    sessions_this_week = sum(1 for s in sessions if _in_trailing_window(s.get("created_at"), now))
    sessions_this_week += sum(1 for c in completions if _in_trailing_window(c.get("completed_at"), now))

    goal_progress = 0
    if weekly_goal_minutes > 0:
        goal_progress = min(100, round_half_up(active_minutes / weekly_goal_minutes * 100))

    return {
        "weekly_average_mood": round(average, 2) if average is not None else None,
        "mood_status": classify_mood(average),
        "streak": compute_streak(mood_entries, now.date()),
        "weekly_active_minutes": active_minutes,
        "weekly_goal_minutes": weekly_goal_minutes,
        "goal_progress": goal_progress,
        "sessions_this_week": sessions_this_week,
        "total_sessions": len(sessions) + len(completions),
    }


def engagement_percentage(active_students: int, total_students: int) -> int:
    """share of students with a recent mood entry, as a whole percentage"""
    if total_students <= 0:
        return 0
    return round_half_up(active_students / total_students * 100)


def teacher_rollup(
    student_ids: List[str],
    mood_entries: List[Dict[str, Any]],
    confirmed_upcoming: int,
    now: datetime,
) -> Dict[str, Any]:
    """apply the weekly aggregator to each student and reduce to counts/ratios"""
    by_student: Dict[str, List[Dict[str, Any]]] = defaultdict(list)
    for entry in mood_entries:
        by_student[entry.get("user_id")].append(entry)

    critical = 0
    active = 0
    for student_id in student_ids:
        average = weekly_average_mood(by_student.get(student_id, []), now)
        if average is None:
            continue
        active += 1
        if classify_mood(average) == "critical":
            critical += 1

    return {
        "total_students": len(student_ids),
        "critical_alerts": critical,
        "weekly_engagement": engagement_percentage(active, len(student_ids)),
        "upcoming_appointments": confirmed_upcoming,
    }
