"""
HomeNest Schemas (MongoDB via Pydantic)
Request payloads for each collection:
- User -> users
- Property -> propertiesCollection
- Booking -> bookings
- Review -> reviews
- ContactMessage -> contact

Server-owned fields (_id, owner/reviewer email, status defaults, createdAt)
are never taken from the payload; unknown keys are ignored.
"""

from pydantic import BaseModel, Field, EmailStr
from typing import Optional, Literal

Role = Literal["user", "admin"]
BookingStatus = Literal["Pending", "Confirmed", "Cancelled", "Completed"]
PaymentStatus = Literal["Unpaid", "Paid"]


class UserCreate(BaseModel):
    email: EmailStr
    name: Optional[str] = Field(None, max_length=100)
    photoURL: Optional[str] = None


class RoleUpdate(BaseModel):
    role: Role


class PropertyCreate(BaseModel):
    propertyName: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = Field(None, max_length=5000)
    category: str = Field(..., max_length=100)
    price: float = Field(..., ge=0)
    location: str = Field(..., max_length=200)
    image: Optional[str] = None
    ownerName: Optional[str] = Field(None, max_length=100)


class PropertyUpdate(BaseModel):
    # every whitelisted field is replaced; absent ones become null
    propertyName: Optional[str] = Field(None, max_length=200)
    description: Optional[str] = Field(None, max_length=5000)
    category: Optional[str] = Field(None, max_length=100)
    price: Optional[float] = Field(None, ge=0)
    location: Optional[str] = Field(None, max_length=200)
    image: Optional[str] = None
    status: Optional[str] = Field(None, max_length=30)


class PropertyStatusUpdate(BaseModel):
    status: str = Field(..., min_length=1, max_length=30)


class BookingCreate(BaseModel):
    propertyId: str = Field(..., min_length=1)
    propertyName: Optional[str] = Field(None, max_length=200)
    userName: Optional[str] = Field(None, max_length=100)
    moveInDate: Optional[str] = None
    price: Optional[float] = Field(None, ge=0)
    message: Optional[str] = Field(None, max_length=2000)


class BookingUpdate(BaseModel):
    status: Optional[BookingStatus] = None
    paymentStatus: Optional[PaymentStatus] = None


class ReviewCreate(BaseModel):
    propertyId: str = Field(..., min_length=1)
    rating: int = Field(..., ge=1, le=5)
    comment: str = Field(..., min_length=1, max_length=2000)
    reviewerName: Optional[str] = Field(None, max_length=100)
    propertyName: Optional[str] = Field(None, max_length=200)


class ContactMessage(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    email: EmailStr
    subject: Optional[str] = Field(None, max_length=200)
    message: str = Field(..., min_length=1, max_length=2000)
