import os
import shlex
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import TypeVar

from dotenv import find_dotenv, load_dotenv

from pennywise.logger import get_logger

logger = get_logger(__name__)

CONFIG_FILENAME = "config.yaml"

CONFIG_KEYS = (
    "LOG_LEVEL",
    "LOG_DIR",
    "DATA_DIR",
    "STORE_URL",
    "STORE_TOKEN",
    "STORE_TIMEOUT",
    "OPENAI_API_KEY",
    "OPENAI_MODEL",
    "OPENAI_BASE_URL",
    "AED_TO_GBP_RATE",
    "MAPPING_THRESHOLD",
    "WEBHOOK_TIMEOUT",
)

DEFAULT_STORE_TIMEOUT = 30.0
DEFAULT_WEBHOOK_TIMEOUT = 15.0
DEFAULT_MAPPING_THRESHOLD = 3
DEFAULT_OPENAI_MODEL = "gpt-4o-mini"

_SECRET_MARKERS = ("KEY", "TOKEN", "SECRET", "PASSWORD", "AUTH")
_SECRET_PREFIXES = ("sk-", "Bearer ", "bearer ")

Number = TypeVar("Number", int, float)


@dataclass
class EnvironmentSources:
    """Where the running configuration came from."""

    dotenv_path: str | None = None
    config_path: str | None = None
    file_values: dict[str, str] = field(default_factory=dict)
    external_keys: frozenset[str] = frozenset()


_sources = EnvironmentSources()


def _config_dir() -> str | None:
    return os.getenv("CONFIG_DIR") or None


def find_dotenv_path() -> str | None:
    config_dir = _config_dir()
    if config_dir:
        candidate = os.path.join(config_dir, ".env")
        if os.path.exists(candidate):
            return candidate
    return find_dotenv(usecwd=True) or None


def find_config_path() -> str:
    config_dir = _config_dir()
    if config_dir:
        return os.path.join(config_dir, CONFIG_FILENAME)
    nested = os.path.join(os.getcwd(), "config", CONFIG_FILENAME)
    if os.path.exists(nested):
        return nested
    return os.path.join(os.getcwd(), CONFIG_FILENAME)


def parse_config_line(line: str) -> tuple[str, str] | None:
    """`KEY: value` with optional quotes and a trailing `# comment`."""
    key, sep, raw_value = line.partition(":")
    key = key.strip()
    if not sep or not key or key.startswith("#"):
        return None
    lexer = shlex.shlex(raw_value, posix=True)
    lexer.whitespace_split = True
    lexer.escape = ""  # keep Windows paths intact
    try:
        words = list(lexer)
    except ValueError:
        logger.warning("[ENV] Ignoring malformed config line for %s.", key)
        return None
    value = " ".join(words)
    return (key, value) if value else None


def read_config_file(path: str | None) -> dict[str, str]:
    if not path or not os.path.exists(path):
        return {}
    with open(path, encoding="utf-8") as handle:
        pairs = (parse_config_line(line) for line in handle)
        return dict(pair for pair in pairs if pair)


def load_environment() -> EnvironmentSources:
    """Layer .env, then config.yaml, under whatever the process already has."""
    global _sources

    dotenv_path = find_dotenv_path()
    if dotenv_path:
        load_dotenv(dotenv_path=dotenv_path, override=False)
    external = frozenset(os.environ)

    config_path = find_config_path()
    file_values = read_config_file(config_path)
    for key in CONFIG_KEYS:
        if key in file_values and key not in os.environ:
            os.environ[key] = file_values[key]

    _sources = EnvironmentSources(
        dotenv_path=dotenv_path,
        config_path=config_path,
        file_values=file_values,
        external_keys=external,
    )
    return _sources


def get_config_path() -> str | None:
    return _sources.config_path


def is_env_override(name: str) -> bool:
    return name in _sources.external_keys


def ensure_dir(path: str | None) -> None:
    if path and path not in {".", "./"}:
        os.makedirs(path, exist_ok=True)


def _read_number(
    name: str,
    cast: Callable[[str], Number],
    default: Number,
    min_value: Number | None,
    inclusive: bool,
) -> Number:
    raw = os.getenv(name)
    if not raw:
        return default
    try:
        value = cast(raw)
    except ValueError:
        logger.warning("[ENV] Invalid %s='%s', using default %s.", name, raw, default)
        return default
    if min_value is not None and (value < min_value if inclusive else value <= min_value):
        logger.warning("[ENV] %s='%s' is out of range, using default %s.", name, raw, default)
        return default
    return value


def get_env_int(name: str, default: int, min_value: int | None = None) -> int:
    return _read_number(name, int, default, min_value, inclusive=True)


def get_env_float(name: str, default: float = 0.0, min_value: float | None = None) -> float:
    """Float from the environment; `min_value` is an exclusive lower bound."""
    return _read_number(name, float, default, min_value, inclusive=False)


def is_secret(name: str, value: str) -> bool:
    if any(marker in name.upper() for marker in _SECRET_MARKERS):
        return True
    if value.startswith(_SECRET_PREFIXES):
        return True
    # JWT
    return value.startswith("eyJ") and value.count(".") == 2


def mask_env_value(name: str, value: str) -> str:
    printable = value.replace("\r", "\\r").replace("\n", "\\n")
    if not is_secret(name, printable):
        return printable
    if len(printable) <= 4:
        return "****"
    return f"{printable[:2]}...{printable[-2:]}"


def log_environment() -> None:
    logger.info("[ENV] Config file: %s", _sources.config_path or "<none>")
    for key in CONFIG_KEYS:
        raw_value = os.getenv(key)
        shown = "<unset>" if raw_value is None else mask_env_value(key, raw_value)
        logger.info("[ENV] %s=%s", key, shown)


load_environment()

DATA_DIR = os.getenv("DATA_DIR", ".")
LOG_DIR = os.getenv("LOG_DIR")
CONFIG_DIR = _config_dir()

for _path in (DATA_DIR, LOG_DIR, CONFIG_DIR):
    ensure_dir(_path)
