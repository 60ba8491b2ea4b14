"""
Competition and Registration API Routes
Minimal CRUD for the competitions and registrations start lists are built from.
"""

from datetime import date, datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, ConfigDict, field_validator
from sqlmodel import Session, select

from startlist.database import get_session
from startlist.models.competition import Competition
from startlist.models.registration import Registration

router = APIRouter()


# ============================================================================
# Request/Response Models
# ============================================================================


class CompetitionCreate(BaseModel):
    name: str
    competition_date: Optional[date] = None
    location: Optional[str] = None
    notes: Optional[str] = None

    @field_validator("name")
    @classmethod
    def validate_name(cls, v):
        if not v or not v.strip():
            raise ValueError("name is required")
        return v.strip()


class CompetitionResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    competition_date: Optional[date] = None
    location: Optional[str] = None
    notes: Optional[str] = None
    created_at: datetime


class RegistrationCreate(BaseModel):
    member_id: int
    weapon_class: str
    member_name: Optional[str] = None
    club_name: Optional[str] = None

    @field_validator("member_id")
    @classmethod
    def validate_member_id(cls, v):
        if v <= 0:
            raise ValueError("member_id must be positive")
        return v

    @field_validator("weapon_class")
    @classmethod
    def validate_weapon_class(cls, v):
        if not v or not v.strip():
            raise ValueError("weapon_class is required")
        return v.strip().upper()


class RegistrationResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    competition_id: int
    member_id: int
    member_name: Optional[str] = None
    club_name: Optional[str] = None
    weapon_class: str
    registered_at: datetime
    is_active: bool


# ============================================================================
# Competition Endpoints
# ============================================================================


@router.get("/competitions", response_model=List[CompetitionResponse])
def list_competitions(session: Session = Depends(get_session)):
    """List all competitions"""
    return session.exec(select(Competition).order_by(Competition.id)).all()


@router.post("/competitions", response_model=CompetitionResponse, status_code=201)
def create_competition(request: CompetitionCreate, session: Session = Depends(get_session)):
    competition = Competition(**request.model_dump())
    session.add(competition)
    session.commit()
    session.refresh(competition)
    return competition


@router.get("/competitions/{competition_id}", response_model=CompetitionResponse)
def get_competition(competition_id: int, session: Session = Depends(get_session)):
    competition = session.get(Competition, competition_id)
    if not competition:
        raise HTTPException(status_code=404, detail="Competition not found")
    return competition


# ============================================================================
# Registration Endpoints
# ============================================================================


@router.get("/competitions/{competition_id}/registrations", response_model=List[RegistrationResponse])
def list_registrations(competition_id: int, session: Session = Depends(get_session)):
    """Active registrations in registration order"""
    competition = session.get(Competition, competition_id)
    if not competition:
        raise HTTPException(status_code=404, detail="Competition not found")

    return session.exec(
        select(Registration)
        .where(Registration.competition_id == competition_id, Registration.is_active == True)  # noqa: E712
        .order_by(Registration.registered_at, Registration.id)
    ).all()


@router.post("/competitions/{competition_id}/registrations", response_model=RegistrationResponse, status_code=201)
def create_registration(competition_id: int, request: RegistrationCreate, session: Session = Depends(get_session)):
    """
    Register a shooter in one weapon class.

    Constraints:
    - (competition_id, member_id, weapon_class) must be unique
    """
    competition = session.get(Competition, competition_id)
    if not competition:
        raise HTTPException(status_code=404, detail="Competition not found")

    existing = session.exec(
        select(Registration).where(
            Registration.competition_id == competition_id,
            Registration.member_id == request.member_id,
            Registration.weapon_class == request.weapon_class,
        )
    ).first()
    if existing:
        raise HTTPException(
            status_code=409,
            detail=f"Member {request.member_id} is already registered in class {request.weapon_class}",
        )

    registration = Registration(competition_id=competition_id, **request.model_dump())
    session.add(registration)
    session.commit()
    session.refresh(registration)
    return registration
