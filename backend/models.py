"""Injury Risk Backend — Pydantic Models"""

from typing import Optional, Union
from pydantic import BaseModel, ConfigDict, Field


class CollisionRecord(BaseModel):
    """One cleaned collision observation. Immutable once built."""

    model_config = ConfigDict(frozen=True)

    vehicleType: Optional[str] = None
    preCrash: Optional[str] = None
    borough: Optional[str] = None
    hour: Optional[int] = Field(default=None, ge=0, le=23)
    dow: Optional[int] = Field(default=None, ge=0, le=6)  # Sunday = 0
    injured: bool = False
    # Rendering-layer extras, ignored by the estimator
    severity: Optional[float] = Field(default=None, ge=0)
    injuredCount: Optional[float] = Field(default=None, ge=0)


class RiskQuery(BaseModel):
    """Partial record; None means unconstrained."""

    vehicleType: Optional[str] = None
    preCrash: Optional[str] = None
    borough: Optional[str] = None
    hour: Optional[int] = Field(default=None, ge=0, le=23)
    dow: Optional[int] = Field(default=None, ge=0, le=6)


class ChainStep(BaseModel):
    label: str
    field: Optional[str] = None  # None on the Start step
    value: Union[int, str, None] = None
    probability: float
    supportCount: int
    delta: Optional[float] = None


class EstimateSummary(BaseModel):
    probability: float
    baseRate: float
    relativeRisk: float
    direction: str  # higher, lower
    percentDifference: float
    text: str


class EstimateResponse(BaseModel):
    available: bool
    probability: Optional[float] = None
    baseRate: float = 0.0
    summary: Optional[EstimateSummary] = None
    message: str = ""


class ChainsResponse(BaseModel):
    available: bool
    best: list[ChainStep] = []
    worst: list[ChainStep] = []
    message: str = ""


class DomainOption(BaseModel):
    value: Union[int, str]
    label: str


class DomainsResponse(BaseModel):
    recordCount: int
    fields: dict[str, list[DomainOption]]


class FactorRate(BaseModel):
    value: Union[int, str]
    count: int
    injured: int
    rate: float
    shrunkRate: float


class FactorRatesResponse(BaseModel):
    field: str
    baseRate: float
    rates: list[FactorRate]


class RecordsUpdate(BaseModel):
    records: list[CollisionRecord]


class RecordsUpdateResponse(BaseModel):
    recordCount: int
    baseRate: float
    available: bool
