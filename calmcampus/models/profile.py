# profile models — the signed-in user's own profile
# phone numbers are stored as digits only so teachers can register students by phone

from typing import Literal, Optional
from pydantic import BaseModel, Field


class ProfileUpdate(BaseModel):
    first_name: Optional[str] = Field(None, min_length=1, max_length=100, alias="firstName")
    last_name: Optional[str] = Field(None, max_length=100, alias="lastName")
    phone: Optional[str] = None
    college_name: Optional[str] = Field(None, max_length=200, alias="collegeName")
    course: Optional[str] = Field(None, max_length=200)
    year_of_study: Optional[str] = Field(None, max_length=20, alias="yearOfStudy")
    guardian_phone: Optional[str] = Field(None, alias="guardianPhone")

    model_config = {"populate_by_name": True}


class ProfileResponse(BaseModel):
    id: str
    email: str = ""
    role: Literal["student", "teacher"]
    first_name: str = Field("", alias="firstName")
    last_name: str = Field("", alias="lastName")
    phone: str = ""
    college_name: str = Field("", alias="collegeName")
    course: str = ""
    year_of_study: str = Field("", alias="yearOfStudy")
    guardian_phone: str = Field("", alias="guardianPhone")

    model_config = {"populate_by_name": True}
