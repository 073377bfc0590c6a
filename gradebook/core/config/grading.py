import pydantic as p

from .base import SectionSettings


class CorrectionSettings(SectionSettings):
    max_attempts: int = p.Field(default=3, ge=1)


class GradingSettings(SectionSettings):
    minimum_overall_score: int = p.Field(default=70, ge=0, le=100)
    weight_tolerance: float = p.Field(default=0.01, ge=0)
    default_passing_score: int = p.Field(default=70, ge=0, le=100)
    # compare trusted remote results against a local preview and log drift
    verify_trusted: bool = False
    correction: CorrectionSettings = CorrectionSettings()


class AuditSettings(SectionSettings):
    buffer_size: int = p.Field(default=100, ge=1)
    default_limit: int = p.Field(default=50, ge=1)
    background: bool = False
    workers: int = p.Field(default=2, ge=1)
