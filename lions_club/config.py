from pathlib import Path
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # --- Database ---
    DB_PATH: Path = Path.home() / "lions_club.db"
    # Async SQLAlchemy URL; falls back to the SQLite file at DB_PATH
    DATABASE_URL: str | None = None
    DB_POOL_SIZE: int = 5
    DB_MAX_OVERFLOW: int = 10
    DB_POOL_TIMEOUT: int = 30  # seconds to wait for a connection
    DB_POOL_RECYCLE: int = 1800  # seconds before an idle connection is recycled

    # --- HTTP server ---
    HOST: str = "0.0.0.0"
    PORT: int = 5000
    # Public URL used in QR codes and check-in links
    BASE_URL: str = "http://localhost:5000"
    FRONTEND_DIR: Path = Path(__file__).resolve().parent.parent / "client" / "dist"
    UPLOAD_DIR: Path = Path.home() / "lions_club_uploads"
    MAX_UPLOAD_SIZE: int = 10 * 1024 * 1024

    # --- LINE Messaging API ---
    LINE_CHANNEL_SECRET: str = ""
    LINE_CHANNEL_ACCESS_TOKEN: str = ""
    LINE_API_BASE: str = "https://api.line.me"
    LIFF_ID: str = ""

    # Shared secret for externally triggered cron pushes
    CRON_TOKEN: str = ""
    TIMEZONE: str = "Asia/Taipei"
    ENABLE_SCHEDULER: bool = True

    # --- Check-in rules ---
    CHECKIN_ENFORCE_WINDOW: bool = True
    CHECKIN_OPENS_MINUTES_BEFORE: int = 30
    CHECKIN_CLOSES_MINUTES_AFTER: int = 120
    CHECKIN_REQUIRE_REGISTRATION: bool = False

    # --- Logging ---
    LOG_DIR: Path = Path(__file__).resolve().parent / "logs"
    LOG_LEVEL: str = "INFO"

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"

    @property
    def database_url(self) -> str:
        return self.DATABASE_URL or f"sqlite+aiosqlite:///{self.DB_PATH}"

    @property
    def sync_database_url(self) -> str:
        """Driver-less variant of ``database_url`` for Alembic."""
        return (
            self.database_url
            .replace("+aiosqlite", "")
            .replace("+asyncpg", "+psycopg")
        )

    @property
    def liff_url(self) -> str:
        return f"https://liff.line.me/{self.LIFF_ID}" if self.LIFF_ID else f"{self.BASE_URL}/register"


settings = Settings()
