"""Engine configuration: optional YAML file overlaid with environment variables."""

import os
from typing import Optional

import yaml

from .types import EngineConfig
from .errors import ConfigError


BACKENDS = ("memory", "sqlite", "firestore")

_ENV_OVERRIDES = {
    "TAXONOMY_STORE_BACKEND": "store_backend",
    "TAXONOMY_STORE_PATH": "store_path",
    "FIRESTORE_PROJECT_ID": "firestore_project_id",
    "FIRESTORE_DATABASE": "firestore_database",
    "FIRESTORE_TOKEN": "firestore_token",
    "TAXONOMY_MAX_RETRIES": "max_retries",
    "TAXONOMY_TIMEOUT": "timeout_seconds",
}


def load_config(path: Optional[str] = None) -> EngineConfig:
    """Build an EngineConfig from a YAML file (if given) and the environment."""
    data: dict = {}
    if path:
        try:
            with open(path, 'r', encoding='utf-8') as f:
                data = yaml.safe_load(f) or {}
        except FileNotFoundError:
            raise ConfigError(f"Config file not found: {path}")
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid YAML in {path}: {e}")
        if not isinstance(data, dict):
            raise ConfigError(f"Config root must be a mapping: {path}")

    store = data.get("store") or {}
    values = {
        "store_backend": store.get("backend", "memory"),
        "store_path": store.get("path", ""),
        "firestore_project_id": store.get("project_id", ""),
        "firestore_database": store.get("database", "(default)"),
        "firestore_token": store.get("token", ""),
        "max_retries": data.get("max_retries", 3),
        "timeout_seconds": data.get("timeout_seconds", 30.0),
        "force_regeneration": bool(data.get("force_regeneration", False)),
    }

    for env_name, key in _ENV_OVERRIDES.items():
        env_value = os.getenv(env_name)
        if env_value:
            values[key] = env_value

    try:
        values["max_retries"] = int(values["max_retries"])
        values["timeout_seconds"] = float(values["timeout_seconds"])
    except (TypeError, ValueError):
        raise ConfigError("max_retries and timeout_seconds must be numeric")

    config = EngineConfig(**values)
    validate_config(config)
    return config


def validate_config(config: EngineConfig) -> None:
    if config.store_backend not in BACKENDS:
        raise ConfigError(
            f"Unknown store backend '{config.store_backend}' "
            f"(expected one of: {', '.join(BACKENDS)})"
        )
    if config.store_backend == "sqlite" and not config.store_path:
        raise ConfigError("sqlite backend requires store.path")
    if config.store_backend == "firestore" and not config.firestore_project_id:
        raise ConfigError("firestore backend requires store.project_id")
    if config.max_retries < 1:
        raise ConfigError("max_retries must be at least 1")


def build_store(config: EngineConfig, logger=None):
    """Construct the DocumentStore named by the config."""
    if config.store_backend == "sqlite":
        from ..store.sqlite_store import SQLiteDocumentStore
        return SQLiteDocumentStore(config.store_path)
    if config.store_backend == "firestore":
        from ..store.firestore_store import FirestoreDocumentStore
        return FirestoreDocumentStore(
            project_id=config.firestore_project_id,
            database=config.firestore_database,
            token=config.firestore_token,
            max_retries=config.max_retries,
            timeout=config.timeout_seconds,
            logger=logger,
        )
    from ..store.memory_store import MemoryDocumentStore
    if not config.store_path:
        return MemoryDocumentStore()
    # A memory store path is a JSON seed file
    try:
        return MemoryDocumentStore.from_json(config.store_path)
    except FileNotFoundError:
        raise ConfigError(f"Seed file not found: {config.store_path}")
    except (ValueError, AttributeError) as e:
        raise ConfigError(f"Invalid seed file {config.store_path}: {e}")
