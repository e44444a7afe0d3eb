from __future__ import annotations

import os
from dotenv import load_dotenv
from pydantic import BaseModel

# Load environment variables from .env (if present)
load_dotenv()


class Settings(BaseModel):
    # Directory holding the git working copies served by this API
    workspace_root: str = os.getenv("WORKSPACE_ROOT", "./workspace")

    # API key for this FastAPI server (sent via X-API-Key header)
    api_key: str = os.getenv("GITREAD_API_KEY", "")

    # CORS origins (comma-separated or "*")
    cors_origins: str = os.getenv("CORS_ORIGINS", "*")

    # Optional YAML profile with initial session defaults
    session_defaults_file: str = os.getenv("SESSION_DEFAULTS_FILE", "")

    # Files larger than this are not scanned for content matches
    search_max_file_bytes: int = int(os.getenv("SEARCH_MAX_FILE_BYTES", str(2 * 1024 * 1024)))

    # Worker threads used for cross-repository search
    search_max_workers: int = int(os.getenv("SEARCH_MAX_WORKERS", "4"))

    log_level: str = os.getenv("LOG_LEVEL", "INFO")


settings = Settings()
