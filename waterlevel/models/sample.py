"""Sample Model
One generated (timestamp, value) pair of simulated telemetry
"""

# # Native # #
from datetime import datetime

# # Installed # #
from pydantic import ConfigDict, Field

# # Project # #
from waterlevel.models.base import BaseModel

__all__ = ("Sample",)


class Sample(BaseModel):
    """Simulated water level reading"""
    model_config = ConfigDict(frozen=True)

    timestamp: datetime = Field(..., description="Point in time of the reading")
    value: float = Field(..., description="Simulated water level, in percentage")
