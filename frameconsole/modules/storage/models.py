"""
Records written to the distributed session tier.

Only metadata is stored: live execution contexts cannot leave the process
that created them.
"""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field

from frameconsole.modules.exceptions import ErrorRecord


class StoredLocation(BaseModel):
    """Source location of one context of a group."""

    path: str
    lineno: int = Field(..., ge=0)


class StoredGroup(BaseModel):
    """Metadata of one context group."""

    key: str = Field(..., description="Identity key of the group's error")
    error: Optional[ErrorRecord] = Field(None, description="Error the group was built from")
    locations: List[StoredLocation] = Field(default_factory=list)


class StoredSessionRecord(BaseModel):
    """Metadata-only projection of a console session."""

    id: str = Field(..., min_length=1)
    created_at: datetime
    groups: List[StoredGroup] = Field(..., min_length=1)
