# notification builder — merges stored notifications with ones generated on the fly
# generated ids are prefixed so they are never written back to the collection

import logging
from datetime import datetime
from typing import Any, Dict, List

from calmcampus.services.wellness_stats import parse_timestamp, round_half_up

logger = logging.getLogger(__name__)

APPOINTMENT_PREFIX = "appointment-"
MOOD_REMINDER_ID = "mood-reminder-today"
GENERATED_PREFIXES = (APPOINTMENT_PREFIX, "mood-reminder-")

REMINDER_WINDOW_HOURS = 24
HIGH_PRIORITY_HOURS = 2


def is_generated(notification_id: str) -> bool:
    return notification_id.startswith(GENERATED_PREFIXES)


def appointment_reminders(appointments: List[Dict[str, Any]], now: datetime) -> List[Dict[str, Any]]:
    """one reminder per appointment starting within the next 24 hours"""
    reminders = []
    for appt in appointments:
        scheduled = parse_timestamp(appt.get("scheduled_at"))
        if scheduled is None:
            continue
        hours_until = round_half_up((scheduled - now).total_seconds() / 3600)
        if not 0 < hours_until <= REMINDER_WINDOW_HOURS:
            continue
        reminders.append({
            "id": f"{APPOINTMENT_PREFIX}{appt.get('appointment_id', '')}",
            "type": "appointment",
            "title": "Upcoming Appointment",
            "message": (
                f"{appt.get('appointment_type', 'Appointment')} with "
                f"{appt.get('counselor_name', 'your counselor')} in {hours_until} hours"
            ),
            "timestamp": now.isoformat(),
            "read": False,
            "priority": "high" if hours_until <= HIGH_PRIORITY_HOURS else "medium",
        })
    return reminders


def mood_reminder(has_mood_today: bool, now: datetime, reminder_hour: int) -> List[Dict[str, Any]]:
    """evening nudge when today's mood check-in is missing"""
    if has_mood_today or now.hour < reminder_hour:
        return []
    return [{
        "id": MOOD_REMINDER_ID,
        "type": "mood_reminder",
        "title": "Daily Mood Check-in",
        "message": "Don't forget to log how you're feeling today",
        "timestamp": now.isoformat(),
        "read": False,
        "priority": "medium",
    }]


def stored_to_notification(doc: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "id": doc.get("notification_id", str(doc.get("_id", ""))),
        "type": doc.get("type", "alert"),
        "title": doc.get("title", ""),
        "message": doc.get("message", ""),
        "timestamp": doc.get("created_at", ""),
        "read": bool(doc.get("read", False)),
        "priority": doc.get("priority", "low"),
    }


def merge_notifications(*groups: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """concatenate notification lists, keeping the first occurrence of each id"""
    seen = set()
    merged = []
    for group in groups:
        for notification in group:
            if notification["id"] in seen:
                continue
            seen.add(notification["id"])
            merged.append(notification)
    return merged
