# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Base models for MongoDB documents.

Stored documents use camelCase keys while Python code and JSON responses use
the snake_case field names.
"""

from datetime import datetime
from typing import Any, Dict
from pydantic import BaseModel, Field, ConfigDict
from pydantic.alias_generators import to_camel
from bson import ObjectId


def generate_object_id() -> str:
    """Generate a new MongoDB ObjectId as string."""
    return str(ObjectId())


class DocumentModel(BaseModel):
    """Model persisted as a camelCase MongoDB document."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        use_enum_values=True
    )

    def to_document(self) -> Dict[str, Any]:
        """Serialize with the stored key names."""
        return self.model_dump(by_alias=True)


class BaseEntity(DocumentModel):
    """Tenant-scoped entity owned by this service, with audit fields."""

    model_config = ConfigDict(validate_assignment=True)

    id: str = Field(default_factory=generate_object_id, description="Unique identifier")
    organization_id: str = Field(..., description="Organization (church) scope identifier")
    created_at: datetime = Field(default_factory=datetime.utcnow, description="Creation timestamp")
    updated_at: datetime = Field(default_factory=datetime.utcnow, description="Last update timestamp")
    created_by: str = Field(..., description="User ID who created this entity")
    updated_by: str = Field(..., description="User ID who last updated this entity")
    schema_version: int = Field(default=1, description="Schema version for migrations")

    def update_timestamp(self, updated_by: str) -> None:
        """Update the timestamp and updated_by fields."""
        self.updated_at = datetime.utcnow()
        self.updated_by = updated_by


class BaseEntityUpdate(BaseModel):
    """Partial update request; unset fields are left untouched."""

    model_config = ConfigDict(
        use_enum_values=True,
        validate_assignment=True
    )

    def changes(self) -> Dict[str, Any]:
        """Fields the caller actually sent, keyed by stored document name."""
        data = self.model_dump(mode="json", exclude_unset=True, exclude_none=True)
        return {to_camel(name): value for name, value in data.items()}
