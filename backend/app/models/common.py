"""
Common data models shared across the application.
"""

from typing import Any, Dict

from pydantic import BaseModel, ConfigDict


class DocumentModel(BaseModel):
    """
    Base for records persisted in the entity store.

    Unknown fields are kept so documents owned by other services (profiles,
    rosters) survive a read-modify-write untouched.
    """

    model_config = ConfigDict(extra="allow")

    @classmethod
    def from_document(cls, data: Dict[str, Any]):
        return cls.model_validate(data)

    def to_document(self) -> Dict[str, Any]:
        return self.model_dump(mode="json")


class ErrorResponse(BaseModel):
    """Body of every failed request, as raised through an APIException."""

    detail: str


class HealthResponse(BaseModel):
    """Response model for health check endpoint."""

    status: str
    version: str
    environment: str


class ReadinessResponse(BaseModel):
    """Readiness of each entity store collection, keyed by collection name."""

    ready: bool
    services: Dict[str, bool]
