# SPDX-License-Identifier: Apache-2.0
"""Entry model (a proposed project or an auction bid)."""
from datetime import datetime

from sqlmodel import Field, SQLModel


class Entry(SQLModel, table=True):
    __tablename__ = "entries"
    id: int | None = Field(default=None, primary_key=True)
    name: str
    description: str
    category: str
    proposer: str
    is_active: bool = True
    created_at: datetime = Field(default_factory=datetime.utcnow)
