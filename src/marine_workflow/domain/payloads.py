"""Payload models for each workflow family."""

from __future__ import annotations

from datetime import date, datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel

from marine_workflow.domain.records import WorkflowStatus
from marine_workflow.utils.time import utc_now

ShipType = Literal[
    "Bulk Carrier",
    "Container Ship",
    "Tanker",
    "Passenger Ship",
    "Fishing Vessel",
    "Other",
    "Cargo Ship",
]
SurveyType = Literal["Annual", "Intermediate", "Drydock", "Special", "Renewal"]
CargoType = Literal["Container", "Bulk", "Liquid", "Break Bulk", "RoRo", "Other"]


class _PayloadModel(BaseModel):
    # Clients may send either snake_case or the camelCase names used by the web UI.
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        str_strip_whitespace=True,
        allow_inf_nan=False,
    )


class ListFilters(_PayloadModel):
    status: WorkflowStatus | None = None
    counterpart_id: str | None = Field(default=None, min_length=1)


# Service requests (owner -> ship management)


class ServiceRequestPayload(_PayloadModel):
    title: str = Field(min_length=3)
    description: str = Field(min_length=10)
    vessel_id: str = Field(min_length=1)
    ship_company_id: str = Field(min_length=1)


class ServiceRequestUpdate(_PayloadModel):
    title: str | None = Field(default=None, min_length=3)
    description: str | None = Field(default=None, min_length=10)
    vessel_id: str | None = Field(default=None, min_length=1)
    ship_company_id: str | None = Field(default=None, min_length=1)


# Surveyor bookings (ship management -> surveyor)


class SurveyorBookingPayload(_PayloadModel):
    surveyor_id: str = Field(min_length=1)
    inspection_date: date
    inspection_time: str = Field(min_length=1)
    survey_type: SurveyType
    location: str = Field(min_length=1)
    vessel_name: str = Field(min_length=1)
    vessel_id: str | None = Field(default=None, min_length=1)
    ship_type: ShipType | None = None
    notes: str = ""
    special_requirements: str = ""
    estimated_duration: float = Field(default=4, gt=0, description="Hours")
    service_request_id: str | None = Field(default=None, min_length=1)

    @model_validator(mode="after")
    def _ship_type_or_origin(self) -> "SurveyorBookingPayload":
        # The ship type is filled in from the originating request's vessel.
        if self.ship_type is None and self.service_request_id is None:
            raise ValueError("ship_type is required unless service_request_id is given")
        return self


class SurveyorBookingUpdate(_PayloadModel):
    surveyor_id: str | None = Field(default=None, min_length=1)
    inspection_date: date | None = None
    inspection_time: str | None = Field(default=None, min_length=1)
    survey_type: SurveyType | None = None
    location: str | None = Field(default=None, min_length=1)
    vessel_name: str | None = Field(default=None, min_length=1)
    vessel_id: str | None = Field(default=None, min_length=1)
    ship_type: ShipType | None = None
    notes: str | None = None
    special_requirements: str | None = None
    estimated_duration: float | None = Field(default=None, gt=0)


# Cargo-manager bookings (ship management -> cargo manager)


class CargoManagerBookingPayload(_PayloadModel):
    cargo_manager_id: str = Field(min_length=1)
    voyage_date: date
    voyage_time: str = Field(min_length=1)
    cargo_type: CargoType
    departure_port: str = Field(min_length=1)
    destination_port: str = Field(min_length=1)
    vessel_name: str = Field(min_length=1)
    vessel_id: str | None = Field(default=None, min_length=1)
    ship_type: ShipType | None = None
    notes: str = ""
    special_requirements: str = ""
    estimated_duration: float = Field(default=7, gt=0, description="Days")
    cargo_weight: float | None = Field(default=None, ge=0)
    cargo_units: int | None = Field(default=None, ge=0)
    service_request_id: str | None = Field(default=None, min_length=1)


class CargoManagerBookingUpdate(_PayloadModel):
    cargo_manager_id: str | None = Field(default=None, min_length=1)
    voyage_date: date | None = None
    voyage_time: str | None = Field(default=None, min_length=1)
    cargo_type: CargoType | None = None
    departure_port: str | None = Field(default=None, min_length=1)
    destination_port: str | None = Field(default=None, min_length=1)
    vessel_name: str | None = Field(default=None, min_length=1)
    vessel_id: str | None = Field(default=None, min_length=1)
    ship_type: ShipType | None = None
    notes: str | None = None
    special_requirements: str | None = None
    estimated_duration: float | None = Field(default=None, gt=0)
    cargo_weight: float | None = Field(default=None, ge=0)
    cargo_units: int | None = Field(default=None, ge=0)


# Assignment data attached by the initiator after acceptance


class EvidenceFile(_PayloadModel):
    name: str = Field(min_length=1)
    data: str = Field(description="Opaque content, typically base64")
    uploaded_at: datetime = Field(default_factory=utc_now)


class ServiceRequestAssignment(_PayloadModel):
    location: str | None = None
    documents: list[EvidenceFile] = Field(default_factory=list)
    notes: str = ""


class SurveyorAssignment(_PayloadModel):
    ship_location: str | None = None
    ship_photos: list[EvidenceFile] = Field(default_factory=list)
    flight_ticket: EvidenceFile | None = None


class CargoManagerAssignment(_PayloadModel):
    ship_location: str | None = None
    ship_photos: list[EvidenceFile] = Field(min_length=1)
    cargo_photos: list[EvidenceFile] = Field(min_length=1)
