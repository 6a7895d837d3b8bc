"""
ProfileBuilder Backend — Shared Schema Pieces
===============================================

What:  Base model with the wire naming convention and small shared schemas.
How:   Python attributes are snake_case; the API speaks camelCase. The alias
       generator maps between them, and violations are reported with the
       wire (alias) names so clients can match them to their form fields.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

# Mirrors the public API page-size limits.
DEFAULT_PAGE_SIZE = 10
MAX_PAGE_SIZE = 100


class ApiModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )

    def to_document(self, *, partial: bool = False) -> dict:
        """
        JSON-ready dict keyed by wire names.

        `partial` keeps only the top-level fields the client sent; nested
        values are complete (with defaults) so they replace the stored value.
        """
        if not partial:
            return self.model_dump(mode="json", by_alias=True)
        return self.model_dump(mode="json", by_alias=True, include=set(self.model_fields_set))


class PageQuery(ApiModel):
    limit: int = Field(default=DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE)
    offset: int = Field(default=0, ge=0)


class HealthResponse(ApiModel):
    """Returned by GET /health."""

    status: str = Field(description="healthy, degraded or unhealthy")
    version: str
    database: str = Field(description="connected or disconnected")
    rate_limiter: str = Field(description="enabled, disabled or unreachable")
    uptime_seconds: float
    environment: Optional[str] = None
