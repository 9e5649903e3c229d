from __future__ import annotations
from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional
from pydantic import BaseModel, Field, computed_field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Python attributes in snake_case, JSON in camelCase."""
    model_config = {"alias_generator": to_camel, "populate_by_name": True}


class LoopStatus(str, Enum):
    SUCCESS = "SUCCESS"
    INCOMPLETE = "INCOMPLETE"


class FetchRequest(CamelModel):
    target_count: Optional[int] = Field(default=None, ge=0)
    max_attempts: Optional[int] = Field(default=None, ge=1, le=100)


class CycleMetrics(CamelModel):
    entity: str
    fetched: int = 0
    unique: int = 0
    duplicated: int = 0
    skipped: int = 0                       # records without a natural key
    inserted: int = 0
    updated: int = 0
    errors: int = 0
    total_before: int = 0
    total_after: int = 0
    growth: int = 0
    sources: Dict[str, int] = Field(default_factory=dict)
    new_keys: List[str] = Field(default_factory=list)
    updated_keys: List[str] = Field(default_factory=list)
    error_keys: List[str] = Field(default_factory=list)
    replaced: bool = False


class FetchLoopResult(CamelModel):
    message: str
    target: int
    achieved: int
    attempts_used: int
    max_attempts: int
    status: LoopStatus
    reached_target: bool
    inserted: int = 0
    updated: int = 0
    errors: int = 0


class StepResult(CamelModel):
    name: str
    success: bool
    duration_ms: int
    error: Optional[str] = None
    achieved: Optional[int] = None


class RunSummary(CamelModel):
    triggered_by: str
    started_at: datetime
    finished_at: Optional[datetime] = None
    duration_ms: int = 0
    steps: List[StepResult] = Field(default_factory=list)
    cancelled: bool = False

    @computed_field
    @property
    def succeeded(self) -> int:
        return sum(1 for s in self.steps if s.success)

    @computed_field
    @property
    def failed(self) -> int:
        return sum(1 for s in self.steps if not s.success)


class CronTriggerResponse(CamelModel):
    message: str
    triggered_at: datetime


class CronStatus(CamelModel):
    state: str
    running_since: Optional[datetime] = None
    current_step: Optional[str] = None
    last_run: Optional[RunSummary] = None
    scheduler_enabled: bool
    interval_minutes: int


class TokenStatus(CamelModel):
    valid: bool
    expires_at: Optional[datetime] = None


class HealthResponse(BaseModel):
    status: str
    database: str
    scheduler: str
    version: str
