from __future__ import annotations

import datetime as dt
import json
from typing import Annotated

from pydantic import AnyUrl, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic_settings import NoDecode


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    app_name: str = "CaseDesk"
    environment: str = Field(default="development")  # development | production

    database_url: str = Field(default="sqlite:///./casedesk.db")

    @field_validator("database_url", mode="before")
    @classmethod
    def _normalize_postgres_url(cls, v: str | None) -> str | None:
        # Hosting providers hand out postgresql://... which makes SQLAlchemy pick psycopg2.
        # We install psycopg (v3), so force that driver when none is specified.
        if v and v.startswith("postgresql://") and "+" not in v.split("?")[0]:
            return "postgresql+psycopg://" + v[len("postgresql://") :]
        return v

    # CORS_ORIGINS may be a single URL, comma-separated, or a JSON list.
    # NoDecode prevents pydantic-settings from attempting JSON parsing before validators run.
    cors_origins: Annotated[list[str], NoDecode] = Field(
        default_factory=lambda: ["http://localhost:5173"],
        validation_alias="CORS_ORIGINS",
    )

    jwt_secret: str = Field(default="dev-secret-change-me")
    jwt_algorithm: str = Field(default="HS256")
    jwt_expires_minutes: int = Field(default=60 * 24 * 7)  # 7 days
    jwt_cookie_name: str = Field(default="casedesk_session")
    csrf_cookie_name: str = Field(default="casedesk_csrf")

    # Cron hits /tasks/daily with this token.
    tasks_daily_secret: str = Field(default="dev-tasks-secret-change-me")

    # Durable per-user document keys (mirrors the browser localStorage keys).
    storage_key_prefix: str = Field(default="lawyerBusinessManagementData")
    dirty_key_prefix: str = Field(default="lawyerAppIsDirty")

    default_assistants: list[str] = Field(default_factory=lambda: ["أحمد", "فاطمة", "سارة", "بدون تخصيص"])

    # Court calendar: Python weekday numbers (Mon=0). Syrian weekend is Friday + Saturday.
    weekend_days: list[int] = Field(default_factory=lambda: [4, 5])
    # Movable holidays (Eid etc.) must be listed per year.
    extra_public_holidays: list[dt.date] = Field(default_factory=list)

    # Remote store (hosted Postgres REST). If unset, sync reports "unconfigured".
    remote_url: AnyUrl | None = Field(default=None)
    remote_api_key: str | None = Field(default=None)
    remote_timeout_seconds: float = Field(default=15.0)

    # Email (if SMTP is not set, we log instead of sending)
    smtp_host: str | None = Field(default=None)
    smtp_port: int = Field(default=587)
    smtp_username: str | None = Field(default=None)
    smtp_password: str | None = Field(default=None)
    smtp_from: str | None = Field(default=None)
    alert_email_recipients: list[str] = Field(default_factory=list)

    @field_validator("cors_origins", mode="before")
    @classmethod
    def _parse_cors_origins(cls, v):  # noqa: ANN001
        """
        Accept: string, comma-separated, or JSON list.
        """
        if v is None:
            return v
        if isinstance(v, str):
            s = v.strip()
            if not s:
                return []
            if s.startswith("["):
                try:
                    parsed = json.loads(s)
                except ValueError:
                    parsed = None
                if isinstance(parsed, list):
                    return [str(x).strip() for x in parsed if str(x).strip()]
            return [p.strip() for p in s.split(",") if p.strip()]
        if isinstance(v, (list, tuple, set)):
            return [str(x).strip() for x in v if str(x).strip()]
        return v

    @field_validator("cors_origins", mode="after")
    @classmethod
    def _ensure_cors_origins(cls, v: list[str] | None) -> list[str]:
        result = [x for x in v if x] if isinstance(v, list) else []
        return result or ["http://localhost:5173"]

    @property
    def remote_configured(self) -> bool:
        return bool(self.remote_url and self.remote_api_key)


settings = Settings()
