# appointment models — counseling bookings by students and teachers

from typing import Literal, Optional
from pydantic import BaseModel, Field

AppointmentStatus = Literal["scheduled", "confirmed", "pending", "cancelled", "completed"]


class AppointmentCreate(BaseModel):
    """student booking request — stored as pending until a teacher confirms"""
    appointment_type: str = Field(..., alias="appointmentType", min_length=1)
    counselor_name: str = Field(..., alias="counselorName", min_length=1)
    scheduled_at: str = Field(..., alias="scheduledAt", description="iso-8601 timestamp")
    notes: Optional[str] = Field(None, max_length=2000)

    model_config = {"populate_by_name": True}


class TeacherAppointmentCreate(AppointmentCreate):
    """teacher schedules an appointment on behalf of one of their students"""
    student_id: str = Field(..., alias="studentId")


class AppointmentUpdate(BaseModel):
    appointment_type: Optional[str] = Field(None, alias="appointmentType", min_length=1)
    counselor_name: Optional[str] = Field(None, alias="counselorName", min_length=1)
    scheduled_at: Optional[str] = Field(None, alias="scheduledAt")
    notes: Optional[str] = Field(None, max_length=2000)
    status: Optional[AppointmentStatus] = None

    model_config = {"populate_by_name": True}


class AppointmentResponse(BaseModel):
    id: str
    user_id: str = Field(..., alias="userId")
    appointment_type: str = Field(..., alias="appointmentType")
    counselor_name: str = Field(..., alias="counselorName")
    scheduled_at: str = Field(..., alias="scheduledAt")
    status: AppointmentStatus = "scheduled"
    notes: Optional[str] = None
    student_name: Optional[str] = Field(None, alias="studentName")
    created_at: str = Field("", alias="createdAt")

    model_config = {"populate_by_name": True}
