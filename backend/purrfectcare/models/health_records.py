"""
PurrfectCare Backend - Health Record Events

Purpose: The upstream records (vaccinations, medical visits) that trigger
automatic reminder creation. Only the fields the reminder subsystem reads
are modelled.
"""

from typing import Optional
from datetime import date
from pydantic import BaseModel, ConfigDict, Field


class Vaccination(BaseModel):
    """Vaccination record as handed over by the health service"""

    model_config = ConfigDict(extra="ignore")

    vaccination_id: str = Field(..., description="Vaccination record ID")
    vaccine_name: str
    next_due_date: Optional[date] = None
    veterinarian: Optional[str] = None
    clinic: Optional[str] = None


class MedicalRecord(BaseModel):
    """Medical visit record as handed over by the health service"""

    model_config = ConfigDict(extra="ignore")

    record_id: str = Field(..., description="Medical record ID")
    reason_for_visit: str
    follow_up_date: Optional[date] = None
    vet_name: Optional[str] = None
    clinic: Optional[str] = None
