"""Data models for the parsed asset URI store."""

from datetime import datetime
from enum import Enum
from typing import Annotated, Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from metadata_crawler.store.constants import INT64_MAX, INT64_MIN, ZERO_TIMESTAMP


class ParsedAssetURIRecord(BaseModel):
    """Processing state for one source asset URI.

    Mirrors a row of the ``parsed_asset_uris`` table. A ``cdn_*_uri`` field
    is only set once the corresponding derived artifact has been produced,
    so a non-null value means the artifact can be reused.

    Constructing the model with no arguments yields the zero value used as a
    placeholder for uninitialized state. It is never persisted.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    asset_uri: str = Field(default="", description="Source asset URI (primary key)")
    raw_image_uri: str | None = Field(
        default=None, description="Unresolved image URI referenced by the asset"
    )
    raw_animation_uri: str | None = Field(
        default=None, description="Unresolved animation URI referenced by the asset"
    )
    cdn_json_uri: str | None = Field(default=None, description="Hosted parsed JSON")
    cdn_image_uri: str | None = Field(default=None, description="Hosted image")
    cdn_animation_uri: str | None = Field(default=None, description="Hosted animation")
    json_parser_retry_count: Annotated[int, Field(ge=0)] = 0
    image_optimizer_retry_count: Annotated[int, Field(ge=0)] = 0
    animation_optimizer_retry_count: Annotated[int, Field(ge=0)] = 0
    inserted_at: datetime = Field(
        default=ZERO_TIMESTAMP, description="Row creation time, as stored"
    )
    do_not_parse: bool = Field(default=False, description="Sticky exclusion flag")
    last_transaction_version: Annotated[
        int, Field(ge=INT64_MIN, le=INT64_MAX)
    ] = 0

    @field_validator("inserted_at", mode="before")
    @classmethod
    def parse_inserted_at(cls, v: Any) -> Any:
        """Accept ISO-8601 text as stored by SQLite."""
        if isinstance(v, str):
            return datetime.fromisoformat(v)
        return v

    @property
    def is_default(self) -> bool:
        """Check if this is the zero-value placeholder record."""
        return self == ParsedAssetURIRecord()


class LookupOutcome(str, Enum):
    """Outcome of a resilient lookup.

    - FOUND: A matching row was returned
    - CONFIRMED_ABSENT: The store answered and no row matched
    - UNAVAILABLE: The store could not answer (non-retryable error or
      retry budget exhausted)
    """

    FOUND = "FOUND"
    CONFIRMED_ABSENT = "CONFIRMED_ABSENT"
    UNAVAILABLE = "UNAVAILABLE"


class LookupResult(BaseModel):
    """Three-way result of a lookup before it is collapsed for callers."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    outcome: LookupOutcome
    record: ParsedAssetURIRecord | None = None
    attempts: Annotated[int, Field(ge=0)] = 1
    error: str | None = Field(
        default=None, description="Last error message when UNAVAILABLE"
    )

    @property
    def is_found(self) -> bool:
        """Check if a row was found."""
        return self.outcome == LookupOutcome.FOUND

    @property
    def is_unavailable(self) -> bool:
        """Check if the store could not answer."""
        return self.outcome == LookupOutcome.UNAVAILABLE
