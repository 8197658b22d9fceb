"""
Club Document Model - one JSON document per logical key.

The planner treats the database as a key-value document store: players,
courts (with their reservations inline), scheduled matches, match history,
settings and planning templates are each a single document. Writes replace
the whole document, so the last writer wins.
"""

from datetime import datetime, timezone
from typing import Any

from sqlalchemy import JSON
from sqlmodel import Column, Field, SQLModel


class ClubDocument(SQLModel, table=True):
    __tablename__ = "club_document"

    key: str = Field(primary_key=True)
    value: Any = Field(default=None, sa_column=Column(JSON, nullable=True))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
