"""
Request schemas for the Excellence Academy API (MongoDB via Pydantic models)

Each resource has a Create model validating a full payload and an Update model
with every field optional for partial PATCH requests. Documents are stored with
the snake_case field names; clients send and receive camelCase.

Collections: account, enquiry, announcement, gallery, slide, syllabus.
"""

from datetime import datetime, timezone
from typing import Annotated, List, Literal, Optional

from pydantic import (
    AfterValidator,
    BaseModel,
    ConfigDict,
    EmailStr,
    Field,
    HttpUrl,
    TypeAdapter,
    ValidationError,
    field_validator,
    model_validator,
)
from pydantic.alias_generators import to_camel

from database import utcnow

Role = Literal["super_admin", "admin"]
Branch = Literal["North Campus", "South Campus", "East Campus"]
GalleryBranch = Literal["North Campus", "South Campus", "East Campus", "All"]
EnquiryStatus = Literal["pending", "contacted", "enrolled", "rejected"]
GalleryCategory = Literal["Campus", "Classrooms", "Sports", "Events", "Activities"]
ClassName = Literal[
    "Class 1", "Class 2", "Class 3", "Class 4", "Class 5", "Class 6",
    "Class 7", "Class 8", "Class 9", "Class 10", "Class 11", "Class 12",
]
Subject = Literal[
    "English", "Mathematics", "Science", "Social Studies", "Hindi", "Computer Science",
    "Physics", "Chemistry", "Biology", "History", "Geography", "Economics",
    "Business Studies", "Accountancy", "Political Science", "Physical Education",
    "Art", "Music",
]

ENQUIRY_STATUSES = ("pending", "contacted", "enrolled", "rejected")
CLASS_NAMES = ClassName.__args__

_http_url = TypeAdapter(HttpUrl)


def _check_url(value: str) -> str:
    # Validated as an http(s) URL but kept exactly as submitted.
    try:
        _http_url.validate_python(value)
    except ValidationError:
        raise ValueError("must be a valid http or https URL")
    return value


UrlStr = Annotated[str, AfterValidator(_check_url)]


def _lowercase(value):
    return value.lower() if isinstance(value, str) else value


def _naive_utc(value):
    if isinstance(value, datetime) and value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


class Payload(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        str_strip_whitespace=True,
    )


# ----------------------- Auth & Staff -----------------------

class LoginRequest(Payload):
    email: EmailStr
    password: str = Field(min_length=8)

    @field_validator("email")
    @classmethod
    def lowercase_email(cls, value):
        return _lowercase(value)


class StaffCreate(Payload):
    email: EmailStr
    password: str = Field(min_length=8)
    name: str = Field(min_length=2, max_length=100)
    role: Role = "admin"

    @field_validator("email")
    @classmethod
    def lowercase_email(cls, value):
        return _lowercase(value)


class StaffUpdate(Payload):
    name: Optional[str] = Field(None, min_length=2, max_length=100)
    role: Optional[Role] = None
    is_active: Optional[bool] = None


class PasswordReset(Payload):
    password: str = Field(min_length=8)


# ----------------------- Enquiry -----------------------

class EnquiryCreate(Payload):
    student_name: str = Field(..., min_length=1, max_length=100)
    parent_name: str = Field(..., min_length=1, max_length=100)
    email: EmailStr
    phone: str = Field(..., min_length=10, max_length=20)
    branch: Branch
    grade: str = Field(..., min_length=1)
    message: Optional[str] = None

    @field_validator("email")
    @classmethod
    def lowercase_email(cls, value):
        return _lowercase(value)


class EnquiryStatusUpdate(Payload):
    status: EnquiryStatus


# ----------------------- Announcement -----------------------

class AnnouncementCreate(Payload):
    title: str = Field(..., min_length=1, max_length=200)
    message: str = Field(..., min_length=1, max_length=1000)
    is_important: bool = False
    is_pinned: bool = False
    start_date: datetime = Field(default_factory=utcnow)
    expiry_date: Optional[datetime] = None
    is_active: bool = True

    @field_validator("start_date", "expiry_date")
    @classmethod
    def normalize_dates(cls, value):
        return _naive_utc(value)

    @model_validator(mode="after")
    def check_window(self):
        if self.expiry_date is not None and self.expiry_date < self.start_date:
            raise ValueError("expiryDate must not be before startDate")
        return self


class AnnouncementUpdate(Payload):
    title: Optional[str] = Field(None, min_length=1, max_length=200)
    message: Optional[str] = Field(None, min_length=1, max_length=1000)
    is_important: Optional[bool] = None
    is_pinned: Optional[bool] = None
    start_date: Optional[datetime] = None
    expiry_date: Optional[datetime] = None
    is_active: Optional[bool] = None

    @field_validator("start_date", "expiry_date")
    @classmethod
    def normalize_dates(cls, value):
        return _naive_utc(value)

    @model_validator(mode="after")
    def check_window(self):
        if self.start_date and self.expiry_date and self.expiry_date < self.start_date:
            raise ValueError("expiryDate must not be before startDate")
        return self


# ----------------------- Gallery -----------------------

class GalleryCreate(Payload):
    title: str = Field(..., min_length=2, max_length=200)
    category: GalleryCategory
    image_url: UrlStr
    description: Optional[str] = None
    branch: Optional[GalleryBranch] = None


class GalleryUpdate(Payload):
    title: Optional[str] = Field(None, min_length=2, max_length=200)
    category: Optional[GalleryCategory] = None
    image_url: Optional[UrlStr] = None
    description: Optional[str] = None
    branch: Optional[GalleryBranch] = None


# ----------------------- Slider -----------------------

class SlideCreate(Payload):
    title: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = Field(None, max_length=500)
    image_url: UrlStr
    button_text: Optional[str] = Field(None, max_length=50)
    button_link: Optional[str] = None
    is_active: bool = True


class SlideUpdate(Payload):
    title: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = Field(None, max_length=500)
    image_url: Optional[UrlStr] = None
    button_text: Optional[str] = Field(None, max_length=50)
    button_link: Optional[str] = None
    is_active: Optional[bool] = None


class SlideOrder(Payload):
    id: str
    order: int = Field(..., ge=1)


class ReorderRequest(Payload):
    slides: List[SlideOrder] = Field(..., min_length=1)


class SlideMove(Payload):
    direction: Literal["up", "down"]


# ----------------------- Syllabus -----------------------

class SyllabusCreate(Payload):
    title: str = Field(..., min_length=1, max_length=200)
    class_name: ClassName = Field(..., alias="class")
    subject: Subject
    academic_year: str = Field(..., min_length=1)
    description: Optional[str] = Field(None, max_length=500)
    file_url: UrlStr
    file_size: Optional[str] = None
    is_active: bool = True


class SyllabusUpdate(Payload):
    title: Optional[str] = Field(None, min_length=1, max_length=200)
    class_name: Optional[ClassName] = Field(None, alias="class")
    subject: Optional[Subject] = None
    academic_year: Optional[str] = Field(None, min_length=1)
    description: Optional[str] = Field(None, max_length=500)
    file_url: Optional[UrlStr] = None
    file_size: Optional[str] = None
    is_active: Optional[bool] = None
