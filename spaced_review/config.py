from pydantic_settings import BaseSettings
from pathlib import Path

# Get the project root directory (parent of spaced_review folder)
PROJECT_ROOT = Path(__file__).parent.parent

class Settings(BaseSettings):
    """Application configuration loaded from environment variables"""
    database_url: str = f"sqlite:///{PROJECT_ROOT / 'spaced_review.db'}"
    environment: str = "production"  # "production" or "development"
    log_level: str = "INFO"
    
    # Reference time zone for day-granularity due checks
    timezone: str = "UTC"
    
    # Due-review scanner
    scan_interval_seconds: int = 3600
    dev_scan_interval_seconds: int = 900
    initial_scan_delay_seconds: int = 30
    
    # Upper bound for waiting on the database (lock waits, pool checkout)
    store_timeout_seconds: float = 10.0
    
    recent_rewards_limit: int = 10
    
    @property
    def effective_scan_interval(self) -> int:
        """Scan period for the current environment"""
        if self.environment.lower() == "development":
            return self.dev_scan_interval_seconds
        return self.scan_interval_seconds
    
    class Config:
        env_file = str(PROJECT_ROOT / ".env")
        extra = "ignore"

settings = Settings()
