# File: cv_optimizer/core/config.py
import os
from dotenv import load_dotenv

load_dotenv()


class Settings:
    PROJECT_NAME: str = "CV Optimizer API"
    PROJECT_VERSION: str = "0.1.0"

    # Database settings
    DATABASE_URL: str = os.getenv("DATABASE_URL", "sqlite:///./cv_optimizer.db")

    # OpenAI settings
    OPENAI_API_KEY: str = os.getenv("OPENAI_API_KEY", "")
    OPENAI_MODEL: str = os.getenv("OPENAI_MODEL", "gpt-4o")
    OPENAI_BASE_URL: str = os.getenv("OPENAI_BASE_URL", "https://api.openai.com/v1")

    # OCR fallback (OCR.space)
    OCR_SPACE_API_KEY: str = os.getenv("OCR_SPACE_API_KEY", "")
    OCR_SPACE_URL: str = os.getenv("OCR_SPACE_URL", "https://api.ocr.space/parse/image")

    # Extraction thresholds: below MIN_TEXT_LENGTH try OCR, below MIN_TEXT_FLOOR reject
    MIN_TEXT_LENGTH: int = int(os.getenv("MIN_TEXT_LENGTH", "100"))
    MIN_TEXT_FLOOR: int = int(os.getenv("MIN_TEXT_FLOOR", "50"))

    # Upload limits (bytes)
    MAX_UPLOAD_SIZE: int = int(os.getenv("MAX_UPLOAD_SIZE", str(10 * 1024 * 1024)))
    MAX_EXPORT_UPLOAD_SIZE: int = int(os.getenv("MAX_EXPORT_UPLOAD_SIZE", str(15 * 1024 * 1024)))

    # HTML -> PDF rendering
    BROWSER_POOL_SIZE: int = int(os.getenv("BROWSER_POOL_SIZE", "2"))
    RENDER_TIMEOUT_MS: int = int(os.getenv("RENDER_TIMEOUT_MS", "30000"))

    # Overlay layout tuning
    EDIT_HEIGHT_FACTOR: float = float(os.getenv("EDIT_HEIGHT_FACTOR", "0.85"))
    EDIT_MAX_FONT_SIZE: float = float(os.getenv("EDIT_MAX_FONT_SIZE", "12"))
    EDIT_SHRINK_STEP: float = float(os.getenv("EDIT_SHRINK_STEP", "0.5"))
    EDIT_WRAP_WORD_THRESHOLD: int = int(os.getenv("EDIT_WRAP_WORD_THRESHOLD", "3"))

    # CORS settings
    CORS_ORIGINS: list = os.getenv("CORS_ORIGINS", "http://localhost:3000").split(",")

settings = Settings()
