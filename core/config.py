"""
Configuration for the proctoring engine and ledger.
"""
from pydantic import BaseModel
import os

class Settings(BaseModel):
    """
    Runtime settings with environment-variable overrides.
    """
    DATABASE_URL: str = os.getenv("DATABASE_URL", "sqlite:///./proctoring.db")
    DB_TIMEOUT_SECONDS: float = float(os.getenv("DB_TIMEOUT_SECONDS", "5"))

    API_URL: str = os.getenv("API_URL", "http://localhost:8000")
    HTTP_TIMEOUT_SECONDS: float = float(os.getenv("HTTP_TIMEOUT_SECONDS", "5"))
    LOG_LEVEL: str = (os.getenv("LOG_LEVEL", "INFO") or "INFO")

    # Sustained conditions (ms before a pending timer confirms)
    NO_FACE_MS: int = int(os.getenv("NO_FACE_MS", "10000"))
    LOOKING_AWAY_MS: int = int(os.getenv("LOOKING_AWAY_MS", "5000"))
    DROWSY_MS: int = int(os.getenv("DROWSY_MS", "2000"))

    # Instantaneous conditions (cooldown windows)
    COOLDOWN_MS: int = int(os.getenv("COOLDOWN_MS", "20000"))
    AUDIO_COOLDOWN_MS: int = int(os.getenv("AUDIO_COOLDOWN_MS", "15000"))

    EAR_THRESHOLD: float = float(os.getenv("EAR_THRESHOLD", "0.20"))
    GAZE_TOLERANCE: float = float(os.getenv("GAZE_TOLERANCE", "0.05"))
    OBJECT_CONFIDENCE: float = float(os.getenv("OBJECT_CONFIDENCE", "0.60"))
    AUDIO_THRESHOLD: float = float(os.getenv("AUDIO_THRESHOLD", "35"))

    # Loop cadence
    PERCEPTION_INTERVAL_MS: int = int(os.getenv("PERCEPTION_INTERVAL_MS", "400"))
    TICK_INTERVAL_S: float = float(os.getenv("TICK_INTERVAL_S", str(1 / 60)))

    def __init__(self, **data):
        super().__init__(**data)
        # Normalize LOG_LEVEL: strip, upper-case, fall back to INFO
        parts = (self.LOG_LEVEL or "").split()
        level = parts[0].upper() if parts else "INFO"
        if level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            level = "INFO"
        object.__setattr__(self, "LOG_LEVEL", level)
