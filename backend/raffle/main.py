import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from raffle.config import settings
from raffle.services.parser import PARSER_VERSION

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

app = FastAPI(
    title="Raffle Tracker API",
    description="Spot and payment tracking for Reddit raffle threads",
    version="0.1.0"
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

@app.get("/")
async def root():
    return {
        "message": "Raffle Tracker API",
        "version": "0.1.0",
        "parser_version": PARSER_VERSION,
        "status": "running"
    }

@app.get("/health")
async def health_check():
    return {"status": "healthy"}

# Import routers
from raffle.routers import parse, runs, overrides

# Include routers
app.include_router(parse.router)
app.include_router(runs.router)
app.include_router(overrides.router)
