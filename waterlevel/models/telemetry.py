"""Telemetry Models
Wire message pushed onto the queue and the table row it is persisted as
"""

# # Native # #
from datetime import datetime
from typing import Any, Dict, Optional, Union

# # Installed # #
from pydantic import ConfigDict, Field

# # Project # #
from waterlevel.models.base import BaseModel, KEY_MAX_LENGTH
from waterlevel.models.sample import Sample

__all__ = ("TelemetryMessage", "TelemetryEntity")


class TelemetryMessage(BaseModel):
    """Queue message, serialized as {"waterLevel": float, "date": ISO-8601 string}"""
    model_config = ConfigDict(populate_by_name=True)

    water_level: float = Field(..., alias="waterLevel", description="Water level, in percentage")
    date: datetime = Field(..., description="Point in time of the reading")

    @classmethod
    def from_sample(cls, sample: Sample) -> "TelemetryMessage":
        return cls(water_level=sample.value, date=sample.timestamp)

    @classmethod
    def from_json(cls, data: Union[str, bytes]) -> "TelemetryMessage":
        return cls.model_validate_json(data)

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True)


class TelemetryEntity(BaseModel):
    """Table row holding one telemetry message.

    Rows are partitioned by calendar day; the RowKey starts with the zero padded hour
    so entities of a partition are returned in chronological order."""
    partition_key: str = Field(..., alias="PartitionKey", max_length=KEY_MAX_LENGTH)
    row_key: str = Field(..., alias="RowKey", max_length=KEY_MAX_LENGTH)
    water_level: float = Field(..., alias="WaterLevel")
    date: datetime = Field(..., alias="Date")
    etag: Optional[str] = Field(None, alias="etag")

    model_config = ConfigDict(populate_by_name=True)

    @classmethod
    def from_message(cls, message: TelemetryMessage) -> "TelemetryEntity":
        return cls(
            partition_key=message.date.strftime("%Y-%m-%d"),
            row_key=f"{message.date:%H}_{message.date.isoformat()}",
            water_level=message.water_level,
            date=message.date,
        )

    @classmethod
    def from_entity(cls, entity: Dict[str, Any]) -> "TelemetryEntity":
        return cls.model_validate(entity)

    def to_entity(self) -> Dict[str, Any]:
        """Plain dict accepted by the table services."""
        return self.model_dump(mode="json", by_alias=True)
