import json
import os
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

DATA_DIR = Path(os.getenv("DATA_DIR", "data"))
DATA_DIR.mkdir(exist_ok=True)

DB_URL = os.getenv("DB_URL", "sqlite:///./data/warscrolls.db")
DEBUG = os.getenv("DEBUG", "false").lower() in {"1", "true", "yes"}
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

CATALOGUE_REPO = os.getenv("CATALOGUE_REPO", "BSData/age-of-sigmar-4th")
CATALOGUE_BRANCH = os.getenv("CATALOGUE_BRANCH", "main")
CATALOGUE_RAW_BASE = f"https://raw.githubusercontent.com/{CATALOGUE_REPO}/{CATALOGUE_BRANCH}"
CATALOGUE_API_LIST = f"https://api.github.com/repos/{CATALOGUE_REPO}/contents"


def _load_float(env_key: str, default: float) -> float:
    raw_value = os.getenv(env_key)
    if not raw_value:
        return default
    try:
        return float(raw_value)
    except ValueError:
        return default


def _load_int(env_key: str, default: int) -> int:
    raw_value = os.getenv(env_key)
    if not raw_value:
        return default
    try:
        parsed = int(raw_value)
    except ValueError:
        return default
    return parsed if parsed > 0 else default


def _load_json_list(env_key: str, default: list) -> list:
    raw_value = os.getenv(env_key)
    if not raw_value:
        return default
    try:
        parsed = json.loads(raw_value)
    except json.JSONDecodeError:
        return default
    return parsed if isinstance(parsed, list) else default


FETCH_TIMEOUT = _load_float("FETCH_TIMEOUT", 20.0)
FETCH_CONCURRENCY = _load_int("FETCH_CONCURRENCY", 4)

# Publication ids the community data set uses to tag supplement content.
# Unset means no publication filtering and no Scourge of Ghyran detection.
SCOURGE_OF_GHYRAN_PUBLICATION_ID = os.getenv("SCOURGE_OF_GHYRAN_PUBLICATION_ID") or None
REGIMENTS_OF_RENOWN_PUBLICATION_ID = os.getenv("REGIMENTS_OF_RENOWN_PUBLICATION_ID") or None

TRAIT_NAME_DENYLIST = _load_json_list("TRAIT_NAME_DENYLIST", ["Battle Wounds", "Drained"])
