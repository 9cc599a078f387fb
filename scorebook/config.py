from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    database_path: str = "data/scorebook.db"
    log_level: str = "INFO"

    # Scoring surface limits
    default_total_overs: int = 10
    max_runs_per_delivery: int = 6
    # Ten wickets end an innings, so a side needs at least eleven batters
    min_squad_size: int = Field(11, ge=11)

    # Dashboard: how many recent deliveries the scoreboard shows
    recent_balls_window: int = 18

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "env_prefix": "SCOREBOOK_",
        "extra": "ignore",
    }


settings = Settings()
