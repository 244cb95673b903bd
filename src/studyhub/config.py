from datetime import time, timezone, tzinfo
from typing import Annotated
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import AliasChoices, Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic_settings.sources.types import NoDecode


DEFAULT_DB_PATH = ".data/studyhub.sqlite3"


def _load_timezone(name: str) -> tzinfo:
    """Resolve an IANA zone name; ``UTC`` does not need the tz database."""

    if name.strip().upper() in {"UTC", "Z"}:
        return timezone.utc
    return ZoneInfo(name.strip())


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    環境変数から読み込まれるアプリ設定クラス。
    - studyhub_db_path: SQLite の保存先
    - study_timezone: 連続学習日数や「今日」の判定に使うタイムゾーン
    - reminder_time: リマインダーを出す時刻（HH:MM）
    """

    environment: str = Field(
        default="development",
        description="Runtime environment / 実行環境",
    )
    log_level: str = Field(
        default="INFO",
        description="Root log level / ログレベル",
    )

    # --- Persistence ---
    studyhub_db_path: str = Field(
        default=DEFAULT_DB_PATH,
        description="Path to the SQLite database / SQLite DB パス",
        validation_alias=AliasChoices("studyhub_db_path", "db_path"),
    )

    # --- Review / planning ---
    review_max_due: int = Field(
        default=20,
        ge=1,
        description="Max cards returned by the due-cards endpoint / 一度に出題する最大枚数",
    )
    study_timezone: str = Field(
        default="UTC",
        description="IANA time zone used for calendar-day stats / 日付集計に使うタイムゾーン",
    )
    daily_goal_minutes: int = Field(
        default=60,
        ge=1,
        description="Daily study goal in minutes / 1日の学習目標（分）",
    )
    reminder_time: str = Field(
        default="20:00",
        description="Daily reminder time HH:MM / リマインダー時刻",
    )

    allowed_cors_origins: Annotated[tuple[str, ...], NoDecode] = Field(
        default=(),
        description=(
            "Comma separated CORS origins / CORS で許可するオリジンのカンマ区切り一覧"
        ),
        validation_alias=AliasChoices("allowed_cors_origins", "cors_allowed_origins"),
    )

    # --- Strict mode ---
    strict_mode: bool = Field(
        default=True,
        description="Fail fast on missing/invalid configuration (disable only for tests)",
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore",
        case_sensitive=False,
    )

    @field_validator("reminder_time", mode="after")
    @classmethod
    def _validate_reminder_time(cls, value: str) -> str:
        """Accept ``HH:MM`` in 24h form and normalise to zero-padded text."""

        hours, sep, minutes = value.strip().partition(":")
        if not sep or not hours.isdigit() or not minutes.isdigit():
            raise ValueError("REMINDER_TIME must be formatted as HH:MM")
        parsed = time(int(hours), int(minutes)) if int(hours) < 24 and int(minutes) < 60 else None
        if parsed is None:
            raise ValueError("REMINDER_TIME must be a valid 24h clock time")
        return parsed.strftime("%H:%M")

    @field_validator("log_level", mode="after")
    @classmethod
    def _normalise_log_level(cls, value: str) -> str:
        return (value or "INFO").strip().upper()

    @field_validator("allowed_cors_origins", mode="before")
    @classmethod
    def _normalise_allowed_cors_origins(
        cls, raw_origins: object
    ) -> tuple[str, ...] | object:  # pragma: no cover - pydantic handles typing
        """Convert environment input into a deduplicated tuple of origins."""

        if raw_origins is None:
            candidates: list[str] = []
        elif isinstance(raw_origins, str):
            candidates = raw_origins.split(",")
        else:
            try:
                candidates = list(raw_origins)
            except TypeError:
                return raw_origins

        normalised: list[str] = []
        seen: set[str] = set()
        for candidate in candidates:
            if not isinstance(candidate, str):
                continue
            trimmed = candidate.strip()
            if not trimmed or trimmed in seen:
                continue
            seen.add(trimmed)
            normalised.append(trimmed)

        return tuple(normalised)

    @model_validator(mode="after")
    def _check_timezone(self) -> "Settings":
        """Reject unknown zones in strict mode; otherwise fall back to UTC.

        なぜ: タイムゾーン名の誤記は連続日数の計算を静かにずらすため、本番では
        起動時に止める。テストやローカルでは UTC に落として起動を続ける。
        """

        try:
            _load_timezone(self.study_timezone)
        except (ZoneInfoNotFoundError, ValueError) as exc:
            if self.strict_mode:
                raise ValueError(
                    f"STUDY_TIMEZONE {self.study_timezone!r} is not a known time zone"
                ) from exc
            self.study_timezone = "UTC"
        return self

    @property
    def tz(self) -> tzinfo:
        return _load_timezone(self.study_timezone)

    @property
    def reminder_clock(self) -> time:
        hours, _, minutes = self.reminder_time.partition(":")
        return time(int(hours), int(minutes))


settings = Settings()
