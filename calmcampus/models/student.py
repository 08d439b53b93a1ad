# student models — teacher registration, directory rows, and insights
# directory rows mirror the teacher student list with wellness signals

from typing import Optional
from pydantic import BaseModel, Field

from calmcampus.models.mood import MoodEntryResponse
from calmcampus.models.wellness import ActivityCompletionResponse, MoodStatus


class StudentRegister(BaseModel):
    """teacher registers a student by the phone number on their profile"""
    student_phone: str = Field(..., alias="studentPhone", min_length=1)
    notes: str = Field("", max_length=2000)

    model_config = {"populate_by_name": True}


class StudentSummary(BaseModel):
    student_id: str = Field(..., alias="studentId")
    first_name: str = Field("", alias="firstName")
    last_name: str = Field("", alias="lastName")
    email: str = ""
    college_name: str = Field("", alias="collegeName")
    course: str = ""
    year_of_study: str = Field("", alias="yearOfStudy")
    student_phone: str = Field("", alias="studentPhone")
    guardian_phone: str = Field("", alias="guardianPhone")
    latest_mood: Optional[int] = Field(None, alias="latestMood")
    latest_mood_date: Optional[str] = Field(None, alias="latestMoodDate")
    weekly_mood_entries: int = Field(0, alias="weeklyMoodEntries")
    avg_weekly_mood: Optional[float] = Field(None, alias="avgWeeklyMood")
    mood_status: MoodStatus = Field("no-data", alias="moodStatus")
    recent_appointments: int = Field(0, alias="recentAppointments")
    assigned_at: str = Field("", alias="assignedAt")
    teacher_notes: str = Field("", alias="teacherNotes")

    model_config = {"populate_by_name": True}


class StudentInsights(BaseModel):
    """detailed wellness view of one student for their teacher"""
    student_id: str = Field(..., alias="studentId")
    student_name: str = Field("", alias="studentName")
    mood_entries: list[MoodEntryResponse] = Field(default_factory=list, alias="moodEntries")
    activity_completions: list[ActivityCompletionResponse] = Field(default_factory=list, alias="activityCompletions")
    mood_trend: str = Field("stable", alias="moodTrend")
    average_mood: Optional[float] = Field(None, alias="averageMood")
    total_activity_minutes: int = Field(0, alias="totalActivityMinutes")

    model_config = {"populate_by_name": True}


class AiAnalysisResponse(BaseModel):
    student_id: str = Field(..., alias="studentId")
    analysis: str

    model_config = {"populate_by_name": True}
