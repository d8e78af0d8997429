# SPDX-License-Identifier: Apache-2.0
"""Pydantic request/response schemas."""
from typing import Literal

from pydantic import BaseModel, Field as PydanticField, model_validator


class EntryCreate(BaseModel):
    name: str = PydanticField(..., max_length=200)
    description: str = PydanticField(..., max_length=2000)
    category: str = PydanticField(..., max_length=200)
    proposer: str = PydanticField(..., max_length=128)


class CallerBody(BaseModel):
    caller: str = PydanticField(..., max_length=128)


class ParticipantChange(BaseModel):
    identity: str = PydanticField(..., max_length=128)
    caller: str = PydanticField(..., max_length=128)


class RoundOpen(BaseModel):
    entry_ids: list[int] = []
    caller: str = PydanticField(..., max_length=128)
    tally_mode: Literal["sum", "max"] | None = None


class SubmissionCreate(BaseModel):
    """Either a cleartext ``score`` or a registered input ``handle`` with its ``proof``."""

    entry_id: int
    participant: str = PydanticField(..., max_length=128)
    score: int | None = None
    handle: str | None = None
    proof: str | None = None

    @model_validator(mode="after")
    def one_input_form(self):
        has_score = self.score is not None
        has_input = self.handle is not None or self.proof is not None
        if has_score == has_input:
            raise ValueError("Provide either score or handle and proof")
        if has_input and not (self.handle and self.proof):
            raise ValueError("handle and proof must be given together")
        return self


class InputRegister(BaseModel):
    ciphertext: str = PydanticField(..., description="Base64 serialized BFV vector")
    user: str = PydanticField(..., max_length=128)


class UserDecrypt(BaseModel):
    handle: str
    user: str = PydanticField(..., max_length=128)


class OracleCallback(BaseModel):
    request_id: int
    plaintexts: list[int]
    signatures: list[str] = []
