# backend configuration
# loads env vars for mongodb, jwt, ai analysis webhook, support contacts

import os
from pathlib import Path
from pydantic_settings import BaseSettings
from dotenv import load_dotenv

# load .env from project root
load_dotenv(Path(__file__).parent.parent / ".env")


class Settings(BaseSettings):
    # mongodb
    MONGODB_URI: str = os.getenv("MONGODB_URI", "")
    MONGODB_DATABASE: str = os.getenv("MONGODB_DATABASE", "calm_campus_db")

    # jwt session
    JWT_SECRET: str = os.getenv("JWT_SECRET", "calmcampus-dev-secret-change-in-production")
    JWT_ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60

    # cors
    FRONTEND_URL: str = os.getenv("FRONTEND_URL", "http://localhost:5173")

    # ai analysis webhook (teacher insights)
    AI_ANALYSIS_WEBHOOK_URL: str = os.getenv(
        "AI_ANALYSIS_WEBHOOK_URL", "http://localhost:5678/webhook/aiinference"
    )
    AI_ANALYSIS_TIMEOUT_SECONDS: float = 30.0

    # chat deep links for the ai advisor and crisis line
    ADVISOR_PHONE: str = os.getenv("ADVISOR_PHONE", "919560102128")
    CRISIS_PHONE: str = os.getenv("CRISIS_PHONE", "919560102128")

    # wellness stats
    WEEKLY_GOAL_MINUTES: int = 50
    MOOD_REMINDER_HOUR: int = 18

    model_config = {"env_file": ".env", "extra": "ignore"}


settings = Settings()
