import os
from typing import List, Optional

from pydantic import BaseModel, Field, ValidationError

from community_map.errors import ConfigurationError

OPENAI_MODEL = "gpt-4o-mini"
NOMINATIM_URL = "https://nominatim.openstreetmap.org"
USER_AGENT = "CommunityMap/1.0"

INPUT_FILE = "users_with_fields.json"
CACHE_FILE = "geocode_cache.json"
OUTPUT_FILE = "geocoded_results.json"

BATCH_SIZE = 10
BATCH_DELAY = 1.0
NOMINATIM_DELAY = 1.0

# Case-insensitive substrings searched anywhere in the location text.
# Matching ones never reach Nominatim and go straight to the AI fallback.
DEFAULT_DENYLIST = ("no", "nowhere", "hq", "chillin", "cat kingdom")


class Settings(BaseModel):
    openai_api_key: str
    openai_model: str = OPENAI_MODEL
    nominatim_url: str = NOMINATIM_URL
    user_agent: str = USER_AGENT
    input_file: str = INPUT_FILE
    cache_file: str = CACHE_FILE
    output_file: str = OUTPUT_FILE
    batch_size: int = Field(BATCH_SIZE, ge=1)
    batch_delay: float = Field(BATCH_DELAY, ge=0)
    nominatim_delay: float = Field(NOMINATIM_DELAY, ge=0)
    denylist: List[str] = Field(default_factory=lambda: list(DEFAULT_DENYLIST))


def parse_denylist(raw: Optional[str]) -> List[str]:
    if raw is None:
        return list(DEFAULT_DENYLIST)
    return [pattern.strip() for pattern in raw.split(",") if pattern.strip()]


def get_map_data_file() -> str:
    return os.getenv("MAP_DATA_FILE", OUTPUT_FILE)


def load_settings(environ=None) -> Settings:
    """
    Build settings from environment variables.

    Raises:
        ConfigurationError: if OPENAI_KEY is not set or a value cannot be parsed.
    """
    env = os.environ if environ is None else environ

    api_key = env.get("OPENAI_KEY")
    if not api_key:
        raise ConfigurationError("OPENAI_KEY is not defined in environment variables.")

    try:
        return Settings(
            openai_api_key=api_key,
            openai_model=env.get("OPENAI_MODEL", OPENAI_MODEL),
            nominatim_url=env.get("NOMINATIM_URL", NOMINATIM_URL),
            user_agent=env.get("GEOCODER_USER_AGENT", USER_AGENT),
            input_file=env.get("GEOCODE_INPUT_FILE", INPUT_FILE),
            cache_file=env.get("GEOCODE_CACHE_FILE", CACHE_FILE),
            output_file=env.get("GEOCODE_OUTPUT_FILE", OUTPUT_FILE),
            batch_size=int(env.get("GEOCODE_BATCH_SIZE", BATCH_SIZE)),
            batch_delay=float(env.get("GEOCODE_BATCH_DELAY", BATCH_DELAY)),
            nominatim_delay=float(env.get("NOMINATIM_DELAY", NOMINATIM_DELAY)),
            denylist=parse_denylist(env.get("GEOCODE_DENYLIST")),
        )
    except (ValueError, ValidationError) as e:
        raise ConfigurationError(f"Invalid geocoder settings: {e}") from e
