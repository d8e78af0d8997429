# SPDX-License-Identifier: Apache-2.0
"""All configuration via environment variables (12-factor). No hardcoded secrets."""
from __future__ import annotations

from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Database
    database_url: str = Field(default="sqlite:///./sealed_tally.db", description="Database URL")

    # CORS
    allowed_origins: list[str] = Field(
        default=["http://localhost:3000"],
        description="Allowed CORS origins",
    )

    # Identities
    admin_address: str = Field(
        default="0x0000000000000000000000000000000000000a11",
        description="Administrator identity (opens/closes rounds, manages participants)",
    )
    contract_address: str = Field(
        default="0x00000000000000000000000000000000007a11e5",
        description="Identity of this service for ciphertext grants and input proofs",
    )

    # Tally rules
    default_tally_mode: Literal["sum", "max"] = Field(default="sum")
    score_min: int = Field(default=1, ge=0)
    score_max: int = Field(default=10, ge=1)
    bid_max: int = Field(default=100_000, ge=1)

    # Encrypted-value substrate (TenSEAL BFV)
    fhe_key_dir: str = Field(default="./keys", description="Where the BFV context and oracle key are kept")
    bfv_poly_modulus_degree: int = Field(default=8192)
    bfv_plain_modulus: int = Field(default=1032193)
    input_verifier_key: str = Field(default="dev-input-verifier-key-change-me", min_length=16)

    # Decryption oracle
    oracle_signing_key: str | None = Field(default=None, description="Hex Ed25519 seed; generated if unset")
    oracle_auto_fulfill: bool = Field(default=True, description="Fulfil tally requests in-process")

    # Rate limits
    submit_rate_limit: str = Field(default="300/minute")

    @property
    def fhe_key_path(self) -> Path:
        return Path(self.fhe_key_dir)

    @property
    def production(self) -> bool:
        return self.input_verifier_key != "dev-input-verifier-key-change-me"


settings = Settings()

INITIAL_HASH = "0" * 64
TALLY_CALLBACK_ID = "tally"
