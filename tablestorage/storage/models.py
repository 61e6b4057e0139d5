"""
Pydantic models for table storage.

Defines tables, entities, and the naming rules they must satisfy.
"""

import re
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Tuple

from pydantic import BaseModel, Field, field_validator, ConfigDict


SYSTEM_PROPERTIES = frozenset({'PartitionKey', 'RowKey', 'Timestamp', 'etag', 'odata.etag'})

# Control characters are not allowed in PartitionKey or RowKey
KEY_CONTROL_CHARACTERS = re.compile(r"[\x00-\x1f\x7f-\x9f]")


class TableNameValidator:
    """Validates table naming rules."""

    @staticmethod
    def validate(name: str) -> tuple[bool, Optional[str]]:
        """
        Validate table name.

        Rules:
        - 3-63 characters
        - Alphanumeric only
        - Must start with a letter
        - Case-insensitive (stored as-is but compared case-insensitively)

        Args:
            name: Table name to validate

        Returns:
            Tuple of (is_valid, error_message)
        """
        if not name:
            return False, "Table name cannot be empty"

        if len(name) < 3 or len(name) > 63:
            return False, f"Table name must be between 3 and 63 characters, got {len(name)}"

        if not re.match(r"^[A-Za-z][A-Za-z0-9]*$", name):
            return False, "Table name must start with a letter and contain only alphanumeric characters"

        return True, None


class Table(BaseModel):
    """Table model."""
    model_config = ConfigDict(extra='forbid')

    table_name: str = Field(..., min_length=3, max_length=63)

    @field_validator('table_name')
    @classmethod
    def validate_table_name(cls, v: str) -> str:
        """Validate table name."""
        is_valid, error = TableNameValidator.validate(v)
        if not is_valid:
            raise ValueError(error)
        return v


class Entity(BaseModel):
    """
    Table storage entity.

    Every entity is identified by the composite key (PartitionKey, RowKey).
    Timestamp and ETag are managed by the backend; any other property is
    carried as an extra field and is opaque to the repository.
    """
    model_config = ConfigDict(extra='allow', arbitrary_types_allowed=True, populate_by_name=True)

    PartitionKey: str = Field(..., description="Partition key for the entity")
    RowKey: str = Field(..., description="Row key for the entity, unique within the partition")
    Timestamp: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="Last modification timestamp"
    )
    etag: str = Field(
        default="",
        description="ETag for optimistic concurrency",
        alias="odata.etag"
    )

    @field_validator('PartitionKey', 'RowKey')
    @classmethod
    def validate_keys(cls, v: str) -> str:
        """Validate that keys are not blank and hold no control characters."""
        if not v or not v.strip():
            raise ValueError("PartitionKey and RowKey cannot be empty")
        if KEY_CONTROL_CHARACTERS.search(v):
            raise ValueError("PartitionKey and RowKey cannot contain control characters")
        return v

    @property
    def key(self) -> Tuple[str, str]:
        """Composite key (PartitionKey, RowKey)."""
        return (self.PartitionKey, self.RowKey)

    def get_custom_properties(self) -> Dict[str, Any]:
        """Get all custom properties (non-system properties)."""
        if self.model_extra is None:
            return {}
        return {k: v for k, v in self.model_extra.items() if k not in SYSTEM_PROPERTIES}

    @staticmethod
    def generate_etag(timestamp: Optional[datetime] = None) -> str:
        """
        Generate ETag for entity.

        Args:
            timestamp: Optional timestamp to use

        Returns:
            ETag string, e.g. W/"datetime'2025-12-04T10%3A30%3A00.123456Z'"
        """
        if timestamp is None:
            timestamp = datetime.now(timezone.utc)

        ts_str = timestamp.isoformat(timespec='microseconds').replace('+00:00', 'Z')
        ts_str = ts_str.replace(':', '%3A')
        return f'W/"datetime\'{ts_str}\'"'
