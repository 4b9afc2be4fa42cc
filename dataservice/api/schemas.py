"""Pydantic schemas for API responses.

Templated and static endpoints return raw text; only the built-in
catalog and health endpoints have a fixed JSON shape.
"""

from pydantic import BaseModel, Field

from dataservice.models import DatabaseInfo


class DatabaseInfoResponse(BaseModel):
    """One database known to a tenant."""

    id: int
    abbr: str
    name: str
    crdate: str
    compatlevel: int

    @classmethod
    def from_info(cls, info: DatabaseInfo) -> "DatabaseInfoResponse":
        return cls(
            id=info.id,
            abbr=info.abbr,
            name=info.name,
            crdate=info.crdate,
            compatlevel=info.compatlevel,
        )


class DatabasesResponse(BaseModel):
    """Response for GET /api/dbdatabases."""

    databases: list[DatabaseInfoResponse] = Field(default_factory=list)


class HealthResponse(BaseModel):
    """Response for GET /health."""

    status: str = "healthy"
    version: str
    uptime_seconds: int
    tenants: list[str] = Field(default_factory=list)
    artifact_root: str
