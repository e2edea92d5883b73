# admitgroup/config/config.py
from pathlib import Path
from typing import Any

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

_PROJECT_ROOT = Path(__file__).resolve().parents[2]
_DEFAULT_DATA_DIR = _PROJECT_ROOT / "data"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=_PROJECT_ROOT / ".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        populate_by_name=True,
        extra="ignore",
    )

    # environment
    env: str = Field("dev", alias="ENV")
    # explicit level name (DEBUG, INFO, ...); unset → DEBUG in dev, INFO otherwise
    log_level: str | None = Field(None, alias="LOG_LEVEL")
    data_dir: Path = Field(_DEFAULT_DATA_DIR, alias="DATA_DIR")

    # database
    db_url: str | None = Field(None, alias="DATABASE_URL")
    db_filename: str = Field("admission.db", alias="DB_FILENAME")
    db_echo: bool = Field(False, alias="DB_ECHO")

    # ───────────────── Group registry / linker ─────────────────────────
    # Quota cycle the registry builds groups from.
    current_year: int = Field(2025, alias="CURRENT_YEAR")
    # 1 = sequential linking; N > 1 = process pool with N shards.
    linker_parallelism: int = Field(1, alias="LINKER_PARALLELISM")
    progress_every: int = Field(500, alias="PROGRESS_EVERY")
    unresolved_sample_limit: int = Field(10, alias="UNRESOLVED_SAMPLE_LIMIT")

    # ───────────────── Time series ─────────────────────────────────────
    # K most recent linked years taken into the statistics.
    history_years: int = Field(5, alias="HISTORY_YEARS")
    # latest vs earliest minScore difference (points) still called "stable".
    trend_tolerance: float = Field(2.0, alias="TREND_TOLERANCE")

    # ───────────────── Probability classifier ──────────────────────────
    rank_boost: float = Field(1.2, alias="RANK_BOOST")
    rank_penalty: float = Field(0.8, alias="RANK_PENALTY")
    # probability < aggressive_below → aggressive; >= safe_from → safe.
    aggressive_below: float = Field(0.35, alias="AGGRESSIVE_BELOW")
    safe_from: float = Field(0.90, alias="SAFE_FROM")
    insufficient_data_probability: float = Field(0.5, alias="INSUFFICIENT_DATA_PROBABILITY")
    # exclusion filter (safety margin in points)
    exclude_margin_below: int = Field(-20, alias="EXCLUDE_MARGIN_BELOW")
    exclude_margin_above: int = Field(15, alias="EXCLUDE_MARGIN_ABOVE")
    implausible_probability: float = Field(0.05, alias="IMPLAUSIBLE_PROBABILITY")
    implausible_margin: int = Field(-15, alias="IMPLAUSIBLE_MARGIN")
    # describe_result warns below this confidence (0..100)
    low_confidence_below: int = Field(60, alias="LOW_CONFIDENCE_BELOW")

    @model_validator(mode="before")
    def _preprocess(cls, values: dict[str, Any]) -> dict[str, Any]:
        raw = values.get("DATA_DIR", values.get("data_dir", _DEFAULT_DATA_DIR))
        values["data_dir"] = Path(raw).expanduser().resolve()
        values.pop("DATA_DIR", None)
        return values

    @property
    def database_url(self) -> str:
        return self.db_url or f"sqlite:///{self.data_dir / self.db_filename}"


settings = Settings()
