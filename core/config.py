"""
Application configuration using Pydantic Settings
"""

from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import List


class Settings(BaseSettings):
    """Application settings with environment variable support"""

    # Jira
    JIRA_BASE_URL: str = "https://issues.apache.org/jira"
    JIRA_PROJECTS: str = "HADOOP,KAFKA,SPARK"
    JIRA_JQL_TEMPLATE: str = "project = {collection} ORDER BY created DESC"
    USER_AGENT: str = "Academic-Research-Bot/1.0"

    # Scraper
    MAX_CONCURRENT: int = 5
    MAX_RESULTS: int = 100
    REQUEST_TIMEOUT: float = 30.0
    RATE_LIMIT_DELAY: float = 1.0
    MAX_RETRIES: int = 5
    RETRY_BASE_DELAY: float = 2.0

    # Storage
    OUTPUT_DIR: str = "./output"
    DATABASE_URL: str = "sqlite+aiosqlite:///./checkpoints/checkpoints.db"

    # Status API
    API_HOST: str = "0.0.0.0"
    API_PORT: int = 8000

    # Environment
    ENVIRONMENT: str = "development"
    LOG_LEVEL: str = "INFO"

    @property
    def projects(self) -> List[str]:
        """Project keys parsed from the comma-separated JIRA_PROJECTS"""
        return [p.strip() for p in self.JIRA_PROJECTS.split(",") if p.strip()]

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        extra="ignore"
    )


settings = Settings()
