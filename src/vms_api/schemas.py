"""
Pydantic request/response schemas.
Wire names follow the frontend's camelCase fields; attributes are snake_case.
"""

import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator


class _Schema(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class _EmailPayload(_Schema):
    """Incoming payloads whose email is matched against stored rows."""
    email: EmailStr

    @field_validator("email")
    @classmethod
    def lowercase_email(cls, value: str) -> str:
        # EmailStr only normalises the domain; lookups ignore case entirely.
        return value.lower()


# -------------------- Accounts --------------------

class CompanyRegisterPayload(_EmailPayload):
    first_name: str = Field(..., min_length=1, alias="firstName")
    last_name: Optional[str] = Field(None, alias="lastName")
    password: str = Field(..., min_length=6, max_length=128)
    company_name: str = Field(..., min_length=1, alias="companyName")
    mobile_number: Optional[str] = Field(None, max_length=20, alias="mobileNumber")


class CompanyRegisterResponse(_Schema):
    id: int
    name: str
    email: str
    role: str
    company_name: str = Field(..., alias="companyName")


class HostRegisterPayload(_EmailPayload):
    first_name: str = Field(..., min_length=1, alias="firstName")
    last_name: Optional[str] = Field(None, alias="lastName")
    password: str = Field(..., min_length=6, max_length=128)


class UserOut(_Schema):
    id: int
    name: str
    email: str
    role: str
    company_name: Optional[str] = None


class LoginPayload(_EmailPayload):
    password: str = Field(..., min_length=1)


class LoginResponse(_Schema):
    token: str
    user: UserOut


class HostOut(_Schema):
    id: int
    name: str
    email: str
    company_name: Optional[str] = None


# -------------------- Visits --------------------

class CheckinRequest(_EmailPayload):
    """Visitor details plus the host being visited."""
    name: str = Field(..., min_length=1)
    phone: Optional[str] = Field(None, max_length=20)
    designation: Optional[str] = None
    company: Optional[str] = None
    company_tel: Optional[str] = Field(None, max_length=20, alias="companyTel")
    website: Optional[str] = None
    address: Optional[str] = None
    photo: Optional[str] = None
    id_card_photo: Optional[str] = Field(None, alias="idCardPhoto")
    id_card_number: str = Field(..., min_length=1, max_length=50, alias="idCardNumber")
    host_name: str = Field(..., min_length=1, alias="hostName")
    reason: Optional[str] = None
    items_carried: Optional[str] = Field(None, alias="itemsCarried")


class CheckinResponse(_Schema):
    message: str
    visit_id: int = Field(..., alias="visitId")


class MessageResponse(_Schema):
    message: str


class VisitRecordOut(_Schema):
    """One row of the visit log, visitor and host details inlined."""
    id: int
    reason: Optional[str] = None
    items_carried: Optional[str] = Field(None, alias="itemsCarried")
    check_in_time: datetime.datetime
    check_out_time: Optional[datetime.datetime] = None
    visitor_id: int
    visitor_name: str = Field(..., alias="visitorName")
    visitor_email: str = Field(..., alias="visitorEmail")
    visitor_phone: Optional[str] = Field(None, alias="visitorPhone")
    designation: Optional[str] = None
    company: Optional[str] = None
    visitor_photo: Optional[str] = Field(None, alias="visitorPhoto")
    id_card_photo: Optional[str] = Field(None, alias="idCardPhoto")
    id_card_number: Optional[str] = Field(None, alias="idCardNumber")
    host_id: int
    host_name: str = Field(..., alias="hostName")
    host_company: Optional[str] = Field(None, alias="hostCompany")


class VisitFilters(BaseModel):
    host_id: Optional[int] = None
    start_date: Optional[datetime.date] = None
    end_date: Optional[datetime.date] = None
    host_name: Optional[str] = None
    visitor_name: Optional[str] = None


