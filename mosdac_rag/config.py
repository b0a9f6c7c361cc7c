"""
Configuration loading and logging setup for the MOSDAC HelpBot.
"""

import copy
import logging
import os
import re
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = "config/config.yaml"

DEFAULT_CONFIG: Dict[str, Any] = {
    "llm": {
        "default_provider": "openai",
        "timeout": 20.0,
        "max_retries": 1,
        "retry_wait": 1.0,
    },
    "extraction": {
        "relation_confidence_threshold": 0.7,
        "proximity_window": 500,
        "context_window": 100,
    },
    "graph": {
        "storage_path": None,
        "confidence_increment": 0.1,
        "seed_domain_knowledge": True,
    },
    "index": {
        "scorer": "lexical",
        "top_k": 3,
        "embedding_model": "sentence-transformers/all-MiniLM-L6-v2",
        "min_similarity": 0.3,
    },
    "ingestion": {
        "max_workers": 4,
        "supported_formats": ["json", "txt", "md", "html"],
        "documents_path": "data/documents",
    },
    "rag": {
        "snippet_length": 200,
        "excerpt_length": 300,
        "confidence_scale": 10.0,
    },
    "logging": {
        "level": "INFO",
        "format": "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        "file": "logs/mosdac_helpbot.log",
    },
    "debug": {"enabled": False},
}


def resolve_env_vars(value: Any) -> Any:
    """Resolve environment variables in string values like ${VAR_NAME}."""
    if isinstance(value, str) and "${" in value:
        def replace_env_var(match):
            var_name = match.group(1)
            return os.getenv(var_name, match.group(0))

        return re.sub(r'\$\{([^}]+)\}', replace_env_var, value)
    if isinstance(value, dict):
        return {key: resolve_env_vars(item) for key, item in value.items()}
    if isinstance(value, list):
        return [resolve_env_vars(item) for item in value]
    return value


def _deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    merged = copy.deepcopy(base)
    for key, value in (override or {}).items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def load_env_file(env_file: Path = Path(".env")):
    """Load environment variables from .env file if it exists."""
    if not env_file.exists():
        return
    with open(env_file, 'r') as f:
        for line in f:
            line = line.strip()
            if line and not line.startswith('#') and '=' in line:
                key, value = line.split('=', 1)
                os.environ.setdefault(key.strip(), value.strip())


def load_config(config_path: Optional[str] = DEFAULT_CONFIG_PATH) -> Dict[str, Any]:
    """
    Load configuration from a YAML file layered over the defaults.

    A missing file yields the defaults; a malformed file raises
    ``yaml.YAMLError`` to the caller.
    """
    user_config: Dict[str, Any] = {}
    if config_path and Path(config_path).exists():
        with open(config_path, 'r') as f:
            user_config = yaml.safe_load(f) or {}
    elif config_path:
        logger.warning(f"Configuration file not found: {config_path}, using defaults")

    return resolve_env_vars(_deep_merge(DEFAULT_CONFIG, user_config))


def setup_logging(config: Dict[str, Any]):
    """Setup logging configuration."""
    log_config = config.get("logging", {})
    log_level = getattr(logging, str(log_config.get("level", "INFO")).upper(), logging.INFO)
    log_format = log_config.get("format", "%(asctime)s - %(name)s - %(levelname)s - %(message)s")

    handlers = [logging.StreamHandler()]
    log_file = log_config.get("file")
    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        handlers.insert(0, logging.FileHandler(log_file))

    logging.basicConfig(
        level=log_level,
        format=log_format,
        handlers=handlers,
        force=True
    )
