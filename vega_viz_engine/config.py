from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class EngineConfig(BaseModel):
    time_field: str = "time_"
    # Drops the first and last timestamp of every timeseries (range-agg edge artifacts).
    trim_time_boundaries: bool = True
    default_container_size: int = Field(200, ge=1)
    max_series: int = Field(64, ge=1)

    model_config = ConfigDict(extra="forbid", frozen=True)


DEFAULT_CONFIG = EngineConfig()
