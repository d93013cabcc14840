"""
Configuration settings for the action-item sync service.
Loads environment variables and provides application-wide settings.
"""
from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Required settings. Left empty by default and checked where they are used,
    # so the service still starts (and /api/health can report what is missing).
    LINEAR_API_KEY: str = ""
    LINEAR_TEAM_ID: str = ""
    LINEAR_PROJECT_ID: str = ""
    ANCHOR_BOOKMARK: str = ""
    AI_API_KEY: str = ""

    # Linear Configuration
    LINEAR_API_URL: str = "https://api.linear.app/graphql"
    TRACKER_LABEL_NAME: str = "meeting-action-item"
    TRACKER_LABEL_COLOR: str = "#5E6AD2"
    TRACKER_TIMEOUT: int = 30
    ISSUE_TITLE_MAX: int = 200

    # AI text service (Ollama-compatible /api/generate)
    AI_BASE_URL: str = "http://localhost:11434"
    AI_MODEL: str = "qwen2.5:3b"
    AI_TIMEOUT: int = 300  # 5 minutes for LLM requests

    # Document Configuration
    DOCUMENT_PATH: str = "./meeting_notes.docx"
    DOCUMENT_URL: str = ""  # shown in issue descriptions; defaults to the file URI
    ACTION_ITEMS_PHRASE: str = "Action Items"
    LOOKBACK_DAYS: int = 28

    # Server Configuration
    HOST: str = "0.0.0.0"
    PORT: int = 8000

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore"
    )

    def get_document_url(self) -> str:
        """Link to the source document used in created issues."""
        if self.DOCUMENT_URL:
            return self.DOCUMENT_URL
        return Path(self.DOCUMENT_PATH).resolve().as_uri()


# Global settings instance
settings = Settings()
