import os
from pydantic import BaseModel, field_validator, ValidationError

from kas.writer import MAX_PLACEHOLDERS, PLACEHOLDERS_PER_KCT_TRANSFER


class DB(BaseModel):
    driver: str = "sqlite"
    sqlite_path: str = "data/kas.db"
    dsn: str | None = None

    @field_validator("driver")
    @classmethod
    def known_driver(cls, v: str) -> str:
        v = v.lower()
        if v not in ("sqlite", "postgres"):
            raise ValueError(f"unsupported db driver {v!r}")
        return v

    @field_validator("dsn")
    @classmethod
    def drop_placeholder(cls, v: str | None) -> str | None:
        # unresolved ${...} placeholders mean "not configured"
        if v is not None and "${" in v:
            return None
        return v


class KAS(BaseModel):
    max_placeholders: int = MAX_PLACEHOLDERS

    @field_validator("max_placeholders")
    @classmethod
    def fits_one_row(cls, v: int) -> int:
        if v < PLACEHOLDERS_PER_KCT_TRANSFER:
            raise ValueError(
                f"max_placeholders must be at least {PLACEHOLDERS_PER_KCT_TRANSFER} (one row)"
            )
        return v


class Stream(BaseModel):
    topic: str = "chain_events"
    group_id: str = "kas-transfers"


class Settings(BaseModel):
    db: DB = DB()
    kas: KAS = KAS()
    stream: Stream = Stream()


def load_settings(path: str = "config.yaml") -> Settings:
    import yaml
    with open(path, "r") as f:
        cfg = yaml.safe_load(f) or {}

    # allow secure override via env at runtime
    env_dsn = os.environ.get("KAS_DB_DSN")
    if env_dsn:
        cfg.setdefault("db", {})["dsn"] = env_dsn

    try:
        return Settings.model_validate(cfg)
    except ValidationError as e:
        raise RuntimeError(f"Configuration error in {path}: {e}") from e
