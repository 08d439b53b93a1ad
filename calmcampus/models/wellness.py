# wellness models — self-care captures and aggregated stats
# stats mirror the student stats card and the teacher overview cards

from typing import Literal, Optional
from pydantic import BaseModel, Field

MoodStatus = Literal["critical", "neutral", "good", "no-data"]


class ActivityCompletionCreate(BaseModel):
    activity_id: str = Field(..., alias="activityId", min_length=1)
    actual_duration_minutes: Optional[int] = Field(None, ge=0, alias="actualDurationMinutes")
    mood_before: Optional[int] = Field(None, ge=1, le=5, alias="moodBefore")
    mood_after: Optional[int] = Field(None, ge=1, le=5, alias="moodAfter")

    model_config = {"populate_by_name": True}


class ActivityCompletionResponse(BaseModel):
    id: str
    activity_id: str = Field(..., alias="activityId")
    actual_duration_minutes: Optional[int] = Field(None, alias="actualDurationMinutes")
    mood_before: Optional[int] = Field(None, alias="moodBefore")
    mood_after: Optional[int] = Field(None, alias="moodAfter")
    completed_at: str = Field(..., alias="completedAt")

    model_config = {"populate_by_name": True}


class WellnessSessionCreate(BaseModel):
    session_type: str = Field(..., alias="sessionType", min_length=1)
    duration_minutes: int = Field(..., ge=0, alias="durationMinutes")
    mood_before: Optional[int] = Field(None, ge=1, le=5, alias="moodBefore")
    mood_after: Optional[int] = Field(None, ge=1, le=5, alias="moodAfter")

    model_config = {"populate_by_name": True}


class WellnessSessionResponse(BaseModel):
    id: str
    session_type: str = Field(..., alias="sessionType")
    duration_minutes: int = Field(..., alias="durationMinutes")
    mood_before: Optional[int] = Field(None, alias="moodBefore")
    mood_after: Optional[int] = Field(None, alias="moodAfter")
    created_at: str = Field(..., alias="createdAt")

    model_config = {"populate_by_name": True}


class WellnessStats(BaseModel):
    """weekly wellness summary for one student"""
    weekly_average_mood: Optional[float] = Field(None, alias="weeklyAverageMood")
    mood_status: MoodStatus = Field("no-data", alias="moodStatus")
    streak: int = 0
    weekly_active_minutes: int = Field(0, alias="weeklyActiveMinutes")
    weekly_goal_minutes: int = Field(0, alias="weeklyGoalMinutes")
    goal_progress: int = Field(0, alias="goalProgress")
    sessions_this_week: int = Field(0, alias="sessionsThisWeek")
    total_sessions: int = Field(0, alias="totalSessions")
    notice: Optional[str] = None

    model_config = {"populate_by_name": True}


class TeacherStats(BaseModel):
    """roll-up over a teacher's active students"""
    total_students: int = Field(0, alias="totalStudents")
    critical_alerts: int = Field(0, alias="criticalAlerts")
    weekly_engagement: int = Field(0, alias="weeklyEngagement")
    upcoming_appointments: int = Field(0, alias="upcomingAppointments")
    notice: Optional[str] = None

    model_config = {"populate_by_name": True}
