# SPDX-License-Identifier: Apache-2.0
"""FastAPI app factory. Thin layer: security middleware + routers only."""
from contextlib import asynccontextmanager

from fastapi import FastAPI

from app.core.security import add_security_middleware
from app.database import create_db_and_tables
from app.routers import entries, fhe, oracle, participants, rounds, system


@asynccontextmanager
async def lifespan(app: FastAPI):
    create_db_and_tables()
    yield


def create_app() -> FastAPI:
    app = FastAPI(title="SealedTally API", version="0.1.0", lifespan=lifespan)

    add_security_middleware(app)

    app.include_router(entries.router)
    app.include_router(participants.router)
    app.include_router(rounds.router)
    app.include_router(fhe.router)
    app.include_router(oracle.router)
    app.include_router(system.router)

    return app


app = create_app()
