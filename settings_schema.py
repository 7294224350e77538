from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator


class ConfigurationError(ValueError):
    """Raised when the analytics threshold configuration is malformed."""


class ThresholdSettings(BaseModel):
    """Tunable thresholds shared by every analysis component."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    default_rpe: float = Field(7.0, ge=1, le=10)
    min_trend_samples: int = Field(3, ge=2)
    confidence_saturation: int = Field(20, ge=1)
    slope_epsilon: float = Field(0.05, ge=0)
    rpe_slope_epsilon: float = Field(0.02, ge=0)
    volume_slope_epsilon: float = Field(0.005, ge=0)
    analysis_window_days: int = Field(90, ge=1)
    plateau_lookback_sessions: int = Field(6, ge=2)
    plateau_min_sessions: int = Field(3, ge=2)
    moderate_severity_sessions: int = Field(4, ge=1)
    severe_severity_sessions: int = Field(8, ge=1)
    stall_tolerance: float = Field(0.025, ge=0, lt=1)
    review_days_mild: int = Field(7, ge=1)
    review_days_moderate: int = Field(5, ge=1)
    review_days_severe: int = Field(3, ge=1)
    consistency_sessions_per_week: int = Field(2, ge=1)
    consistency_min_weeks: int = Field(4, ge=1)
    min_weekly_frequency: float = Field(2.0, ge=0)
    max_achievements: int = Field(10, ge=1)
    max_recommendations: int = Field(5, ge=1)
    stats_max_sessions: int = Field(50, ge=1)

    @model_validator(mode="after")
    def _check_breakpoints(self) -> "ThresholdSettings":
        if self.severe_severity_sessions <= self.moderate_severity_sessions:
            raise ValueError(
                "severe_severity_sessions must exceed moderate_severity_sessions"
            )
        if self.plateau_min_sessions > self.plateau_lookback_sessions:
            raise ValueError(
                "plateau_min_sessions must not exceed plateau_lookback_sessions"
            )
        return self


def validate_settings(data: dict | None) -> ThresholdSettings:
    """Return validated thresholds or raise :class:`ConfigurationError`."""
    try:
        return ThresholdSettings(**(data or {}))
    except (ValidationError, TypeError) as e:
        raise ConfigurationError(str(e)) from e
