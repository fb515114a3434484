"""
Runtime configuration.

Values come from the process environment, optionally seeded from a
``.env`` file in the working directory.
"""

import os
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv


logger = logging.getLogger("awake.config")

STORE_BACKENDS = ('sqlite', 'memory')


@dataclass
class Settings:
    """Engine and host settings."""
    db_path: Path = Path("./data.sqlite")
    host: str = "0.0.0.0"
    port: int = 3000
    store: str = "sqlite"
    http_timeout: Optional[float] = None
    run_log_limit: int = 200
    fetch_retry_ms: int = 1000
    log_level: str = "INFO"


def _env_float(name: str) -> Optional[float]:
    raw = os.getenv(name)
    if raw in (None, ''):
        return None
    try:
        return float(raw)
    except ValueError:
        logger.warning(f"Ignoring non-numeric {name}={raw!r}")
        return None


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw in (None, ''):
        return default
    try:
        return int(raw)
    except ValueError:
        logger.warning(f"Ignoring non-integer {name}={raw!r}, using {default}")
        return default


def load_settings(env_file: Optional[Path] = None) -> Settings:
    """
    Build settings from the environment.

    Args:
        env_file: Optional .env path (defaults to ./.env if present)

    Returns:
        Populated Settings
    """
    env_path = env_file or Path.cwd() / '.env'
    if env_path.exists():
        load_dotenv(env_path)

    defaults = Settings()
    store = os.getenv('AWAKE_STORE', defaults.store).lower()
    if store not in STORE_BACKENDS:
        logger.warning(f"Unknown AWAKE_STORE={store!r}, falling back to sqlite")
        store = 'sqlite'

    return Settings(
        db_path=Path(os.getenv('DB_PATH', str(defaults.db_path))),
        host=os.getenv('HOST', defaults.host),
        port=_env_int('PORT', defaults.port),
        store=store,
        http_timeout=_env_float('AWAKE_HTTP_TIMEOUT'),
        run_log_limit=_env_int('AWAKE_RUN_LOG_LIMIT', defaults.run_log_limit),
        fetch_retry_ms=_env_int('AWAKE_FETCH_RETRY_MS', defaults.fetch_retry_ms),
        log_level=os.getenv('AWAKE_LOG_LEVEL', defaults.log_level).upper(),
    )
