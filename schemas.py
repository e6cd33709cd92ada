"""
Database Schemas for the Parking Admin API

Each top-level Pydantic model corresponds to a MongoDB collection (collection
name is the lowercased class name). The nested models describe the records a
parking lot carries inline.
"""
from typing import List, Literal, Optional

from pydantic import BaseModel, Field

ReservationStatus = Literal["pending", "confirmed", "reserved", "completed", "cancelled"]
UserRole = Literal["client", "admin", "operator", "supervisor"]
VehicleType = Literal["car", "motorcycle", "van", "suv", "pickup"]

RESERVATION_STATUSES = ("pending", "confirmed", "reserved", "completed", "cancelled")
USER_ROLES = ("client", "admin", "operator", "supervisor")
VEHICLE_TYPES = ("car", "motorcycle", "van", "suv", "pickup")


class Schedule(BaseModel):
    day: str = Field("", description="Day of the week")
    start: str = Field("", description="Opening time (HH:MM)")
    end: str = Field("", description="Closing time (HH:MM)")


class PaymentMethod(BaseModel):
    name: str = Field(..., description="Accepted payment method, e.g. Cash or QR")
    active: bool = Field(False, description="Whether the lot currently accepts it")


class Plan(BaseModel):
    label: str = Field("", description="Tier label, e.g. '1-3 hours'")
    price: float = Field(0, ge=0)


class ExtraService(BaseModel):
    name: str = Field("", description="Service name, e.g. car wash")
    price: float = Field(0, ge=0)


class Location(BaseModel):
    lat: float = Field(..., ge=-90, le=90, description="Latitude of lot")
    lng: float = Field(..., ge=-180, le=180, description="Longitude of lot")


class ParkingLot(BaseModel):
    name: str = Field("", description="Display name of the parking lot")
    address: str = Field("", description="Street address")
    location: Optional[Location] = Field(None, description="Coordinates of the lot")
    price_per_hour: float = Field(0, description="Base price per hour")
    tag: str = Field("", description="Free-form label shown in listings")
    schedules: List[Schedule] = []
    payment_methods: List[PaymentMethod] = []
    plans: List[Plan] = []
    services: List[ExtraService] = []
    available_spaces: int = Field(0, description="Spaces currently free")


class ParkingLotUpdate(BaseModel):
    name: Optional[str] = None
    address: Optional[str] = None
    location: Optional[Location] = None
    price_per_hour: Optional[float] = None
    tag: Optional[str] = None
    schedules: Optional[List[Schedule]] = None
    payment_methods: Optional[List[PaymentMethod]] = None
    plans: Optional[List[Plan]] = None
    services: Optional[List[ExtraService]] = None
    available_spaces: Optional[int] = None


class Reservation(BaseModel):
    user_id: str = Field("", description="Owning user id")
    vehicle_id: str = Field("", description="Vehicle id within the user's vehicles")
    lot_id: str = Field("", description="Parking lot id")
    lot_name: str = Field("", description="Copy of the lot name at booking time")
    address: str = Field("", description="Copy of the lot address at booking time")
    date: str = Field("", description="Reservation date (YYYY-MM-DD)")
    start_time: str = Field("", description="Start time (HH:MM)")
    end_time: str = Field("", description="End time (HH:MM)")
    payment_method: str = Field("", description="Payment method chosen")
    extra_service: Optional[str] = Field(None, description="Name of an extra service")
    total: float = Field(0, description="Computed total price")
    status: ReservationStatus = Field("pending", description="Reservation lifecycle state")


class ReservationUpdate(BaseModel):
    user_id: Optional[str] = None
    vehicle_id: Optional[str] = None
    date: Optional[str] = None
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    payment_method: Optional[str] = None
    extra_service: Optional[str] = None
    status: Optional[ReservationStatus] = None


class QuoteRequest(BaseModel):
    lot_id: str
    start_time: str
    end_time: str
    extra_service: Optional[str] = None


class Vehicle(BaseModel):
    id: Optional[str] = Field(None, description="Vehicle id, kept across user edits")
    make: str = ""
    model: str = ""
    plate: str = ""
    color: str = ""
    type: VehicleType = "car"
    photo_url: Optional[str] = Field(None, description="Optional photo of the vehicle")


class User(BaseModel):
    first_name: str = Field("", description="Given names")
    last_name: str = Field("", description="Family names")
    email: str = Field("", description="Email address")
    phone: Optional[str] = Field(None, description="Phone number")
    role: UserRole = Field("client", description="Role")
    vehicles: List[Vehicle] = []
