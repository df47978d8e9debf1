"""
Pydantic schemas for serialising scan results and accepting parlay requests.

The pipeline works on frozen dataclasses; these models are the boundary
format for JSON output (the CLI, or any service that wraps the library) and
validate parlay legs arriving from outside.
"""

from __future__ import annotations

from typing import List, Literal, Optional

from pydantic import BaseModel, Field, field_validator

from propedge.core.models import (
    NormalizedProp,
    ParlayCalculation,
    ParlayLeg,
    PropEVRecord,
    SideEvaluation,
)


# ---------------------------------------------------------------------------
# Scan output
# ---------------------------------------------------------------------------

class QuoteOut(BaseModel):
    sportsbook: str
    line: float
    over_odds: int
    under_odds: int
    timestamp: str

    @classmethod
    def from_prop(cls, prop: NormalizedProp) -> "QuoteOut":
        return cls(
            sportsbook=prop.sportsbook,
            line=prop.line,
            over_odds=prop.over_odds,
            under_odds=prop.under_odds,
            timestamp=prop.timestamp,
        )


class BookEvaluationOut(BaseModel):
    sportsbook: str
    side: Literal["Over", "Under"]
    offered_odds: int
    edge_pct: float
    ev_pct: float
    rating: Literal["Strong", "Moderate", "Low"]

    @classmethod
    def from_evaluation(cls, evaluation: SideEvaluation) -> "BookEvaluationOut":
        return cls(
            sportsbook=evaluation.sportsbook,
            side=evaluation.side.value,
            offered_odds=evaluation.offered_odds,
            edge_pct=round(evaluation.ev.edge_percent, 4),
            ev_pct=round(evaluation.ev.expected_value, 4),
            rating=evaluation.ev.rating.value,
        )


class PropEVRecordOut(BaseModel):
    """One ranked scan result with its audit trail."""

    player_id: str
    player_name: str
    sport: str
    stat_type: str
    direction: Literal["Over", "Under"]
    best_sportsbook: str
    best_odds: int
    market_consensus_line: float
    market_consensus_prob: float = Field(..., gt=0.0, lt=1.0)
    implied_prob: float = Field(..., gt=0.0, lt=1.0)
    edge_pct: float
    ev_pct: float
    rating: Literal["Strong", "Moderate", "Low"]
    confidence_score: float = Field(..., ge=0.0, le=1.0)
    kelly_fraction: float = Field(..., ge=0.0, le=1.0)
    sample_size: int = Field(..., ge=1)
    all_odds: List[QuoteOut] = Field(default_factory=list)
    book_evaluations: List[BookEvaluationOut] = Field(default_factory=list)

    @classmethod
    def from_record(cls, record: PropEVRecord) -> "PropEVRecordOut":
        return cls(
            player_id=record.player_id,
            player_name=record.player_name,
            sport=record.sport,
            stat_type=record.stat_type,
            direction=record.side.value,
            best_sportsbook=record.sportsbook,
            best_odds=record.offered_odds,
            market_consensus_line=record.consensus_line,
            market_consensus_prob=record.consensus_probability,
            implied_prob=record.implied_probability,
            edge_pct=round(record.edge_percent, 4),
            ev_pct=round(record.ev_percent, 4),
            rating=record.rating.value,
            confidence_score=record.confidence,
            kelly_fraction=record.kelly_fraction,
            sample_size=record.sample_size,
            all_odds=[QuoteOut.from_prop(q) for q in record.quotes],
            book_evaluations=[
                BookEvaluationOut.from_evaluation(e) for e in record.book_evaluations
            ],
        )


# ---------------------------------------------------------------------------
# Parlays
# ---------------------------------------------------------------------------

class ParlayLegIn(BaseModel):
    """A parlay leg submitted by a caller."""

    player_id: str = Field(..., min_length=1)
    stat_type: str = Field(..., min_length=1)
    probability: float = Field(..., gt=0.0, lt=1.0)
    game_id: Optional[str] = None
    team: Optional[str] = None
    player_name: str = ""
    sport: str = ""

    @field_validator("player_id", "stat_type")
    @classmethod
    def strip_required(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("must not be blank")
        return v.strip()

    def to_leg(self) -> ParlayLeg:
        return ParlayLeg(**self.model_dump())


class CorrelationRiskOut(BaseModel):
    level: Literal["None", "Low", "Medium", "High", "Severe"]
    description: str
    affected_legs: int


class ParlayCalculationOut(BaseModel):
    combined_probability: float
    combined_probability_percent: float
    fair_odds: int
    expected_legs: float
    correlation_risk: CorrelationRiskOut
    warnings: List[str]

    @classmethod
    def from_calculation(cls, calc: ParlayCalculation) -> "ParlayCalculationOut":
        risk = calc.correlation_risk
        return cls(
            combined_probability=calc.combined_probability,
            combined_probability_percent=calc.combined_probability_percent,
            fair_odds=calc.fair_odds,
            expected_legs=calc.expected_legs,
            correlation_risk=CorrelationRiskOut(
                level=risk.level.value,
                description=risk.description,
                affected_legs=risk.affected_legs,
            ),
            warnings=list(calc.warnings),
        )
