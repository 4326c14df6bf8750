import math
import os

from dotenv import find_dotenv, load_dotenv

from investment_ledger.logger import get_logger

logger = get_logger(__name__)


CONFIG_FILENAME = "config.yaml"

_CONFIG_FILE_PATH: str | None = None
_CONFIG_FILE_VALUES: dict[str, str] = {}

_CONFIG_KEYS = (
    "LOG_LEVEL",
    "DATA_DIR",
    "LOG_DIR",
    "LEDGER_FILENAME",
    "MFAPI_URL",
    "ALPHA_VANTAGE_API_KEY",
    "ALPHA_VANTAGE_URL",
    "SUGGESTION_PROVIDERS",
    "SUGGESTION_CACHE_TTL",
    "SUGGESTION_CACHE_MAX_ENTRIES",
    "SUGGESTION_CACHE_EMPTY",
    "SUGGESTION_RATE_LIMIT_TTL",
    "SUGGESTION_TIMEOUT",
)

DEFAULT_LEDGER_FILENAME = "investments.xlsx"
DEFAULT_MFAPI_URL = "https://api.mfapi.in"
DEFAULT_ALPHA_VANTAGE_URL = "https://www.alphavantage.co"
DEFAULT_SUGGESTION_PROVIDERS = "mfapi,alphavantage"
DEFAULT_SUGGESTION_CACHE_TTL = 6 * 60 * 60.0
DEFAULT_SUGGESTION_CACHE_MAX_ENTRIES = 1000
DEFAULT_SUGGESTION_RATE_LIMIT_TTL = 60.0
DEFAULT_SUGGESTION_TIMEOUT = 8.0

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


def _resolve_dotenv_path() -> str | None:
    config_dir = os.getenv("CONFIG_DIR")
    if config_dir:
        candidate = os.path.join(config_dir, ".env")
        if os.path.exists(candidate):
            return candidate
    return find_dotenv(usecwd=True) or None


def _resolve_config_path() -> str:
    config_dir = os.getenv("CONFIG_DIR")
    if config_dir:
        return os.path.join(config_dir, CONFIG_FILENAME)
    candidate = os.path.join(os.getcwd(), "config", CONFIG_FILENAME)
    if os.path.exists(candidate):
        return candidate
    return os.path.join(os.getcwd(), CONFIG_FILENAME)


def _clean_config_value(raw_value: str) -> str:
    value = raw_value.strip()
    if len(value) >= 2 and value[0] == value[-1] and value[0] in {'"', "'"}:
        return value[1:-1]
    # Unquoted values may carry a trailing comment.
    if " #" in value:
        value = value.split(" #", 1)[0].rstrip()
    return value


def read_config_file(path: str | None) -> dict[str, str]:
    """Read flat ``KEY: value`` lines from a YAML-style config file."""
    if not path or not os.path.exists(path):
        return {}

    values: dict[str, str] = {}
    with open(path, encoding="utf-8") as handle:
        for line in handle:
            stripped = line.strip()
            if not stripped or stripped.startswith("#") or ":" not in stripped:
                continue
            key, raw_value = stripped.split(":", 1)
            key = key.strip()
            value = _clean_config_value(raw_value)
            if key and value:
                values[key] = value
    return values


def load_environment() -> None:
    global _CONFIG_FILE_PATH
    global _CONFIG_FILE_VALUES

    dotenv_path = _resolve_dotenv_path()
    if dotenv_path:
        load_dotenv(dotenv_path=dotenv_path, override=False)

    _CONFIG_FILE_PATH = _resolve_config_path()
    _CONFIG_FILE_VALUES = read_config_file(_CONFIG_FILE_PATH)

    for key in _CONFIG_KEYS:
        if key not in os.environ and key in _CONFIG_FILE_VALUES:
            os.environ[key] = _CONFIG_FILE_VALUES[key]


def ensure_dirs(*paths: str | None) -> None:
    for path in paths:
        if path and path not in {".", "./"}:
            os.makedirs(path, exist_ok=True)


def get_env_int(name: str, default: int, min_value: int | None = None) -> int:
    raw = os.getenv(name)
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError:
        logger.warning("[ENV] Invalid %s='%s', using default %s.", name, raw, default)
        return default
    if min_value is not None and value < min_value:
        logger.warning(
            "[ENV] %s='%s' below minimum %s, using default %s.",
            name,
            raw,
            min_value,
            default,
        )
        return default
    return value


def get_env_float(name: str, default: float, min_value: float | None = None) -> float:
    raw = os.getenv(name)
    if not raw:
        return default
    try:
        value = float(raw)
    except ValueError:
        logger.warning("[ENV] Invalid %s='%s', using default %s.", name, raw, default)
        return default
    if not math.isfinite(value) or (min_value is not None and value < min_value):
        logger.warning("[ENV] %s='%s' out of range, using default %s.", name, raw, default)
        return default
    return value


def get_env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if not raw:
        return default
    lowered = raw.strip().lower()
    if lowered in _TRUE_VALUES:
        return True
    if lowered in _FALSE_VALUES:
        return False
    logger.warning("[ENV] Invalid %s='%s', using default %s.", name, raw, default)
    return default


def get_env_list(name: str, default: str = "") -> list[str]:
    raw = os.getenv(name)
    if raw is None:
        raw = default
    items: list[str] = []
    for part in raw.split(","):
        item = part.strip().lower()
        if item and item not in items:
            items.append(item)
    return items


def get_ledger_path() -> str:
    filename = os.getenv("LEDGER_FILENAME") or DEFAULT_LEDGER_FILENAME
    return os.path.join(os.getenv("DATA_DIR", DATA_DIR), filename)


_SENSITIVE_ENV_KEYS = (
    "KEY",
    "TOKEN",
    "SECRET",
    "PASSWORD",
    "AUTH",
)


def _mask_env_value(name: str, value: str) -> str:
    sanitized = value.replace("\r", "\\r").replace("\n", "\\n")
    if not any(marker in name.upper() for marker in _SENSITIVE_ENV_KEYS):
        return sanitized
    if len(sanitized) <= 4:
        return "****"
    return f"{sanitized[:2]}...{sanitized[-2:]}"


def log_environment() -> None:
    logger.info("[ENV] Logging configured environment variables (masked where needed).")
    if _CONFIG_FILE_VALUES:
        logger.info("[ENV] Loaded %s value(s) from %s.", len(_CONFIG_FILE_VALUES), _CONFIG_FILE_PATH)
    for key in _CONFIG_KEYS:
        raw_value = os.getenv(key)
        value = "<unset>" if raw_value is None else _mask_env_value(key, raw_value)
        logger.info("[ENV] %s=%s", key, value)


load_environment()

DATA_DIR = os.getenv("DATA_DIR", ".")
LOG_DIR = os.getenv("LOG_DIR")
CONFIG_DIR = os.getenv("CONFIG_DIR")

ensure_dirs(DATA_DIR, LOG_DIR, CONFIG_DIR)
