# SPDX-License-Identifier: Apache-2.0
"""Authorized participant model."""
from datetime import datetime

from sqlmodel import Field, SQLModel


class AuthorizedParticipant(SQLModel, table=True):
    __tablename__ = "authorized_participants"
    id: int | None = Field(default=None, primary_key=True)
    address: str = Field(index=True, unique=True)
    authorized_at: datetime = Field(default_factory=datetime.utcnow)
