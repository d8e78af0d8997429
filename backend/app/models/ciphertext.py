# SPDX-License-Identifier: Apache-2.0
"""Ciphertext store and access grants for encrypted handles."""
from datetime import datetime

from sqlalchemy import Column, LargeBinary, UniqueConstraint
from sqlmodel import Field, SQLModel


class Ciphertext(SQLModel, table=True):
    __tablename__ = "ciphertexts"
    handle: str = Field(primary_key=True)
    data: bytes = Field(sa_column=Column(LargeBinary, nullable=False))
    created_at: datetime = Field(default_factory=datetime.utcnow)


class CiphertextGrant(SQLModel, table=True):
    __tablename__ = "ciphertext_grants"
    __table_args__ = (UniqueConstraint("handle", "grantee"),)
    id: int | None = Field(default=None, primary_key=True)
    handle: str = Field(foreign_key="ciphertexts.handle", index=True)
    grantee: str = ""
    granted_at: datetime = Field(default_factory=datetime.utcnow)
