"""3-layer configuration system for AuditX.

Loads and merges configuration from:
1. Default settings (built-in)
2. Project config (.auditx/config.yaml)
3. CLI parameters (override)

Secrets are never stored in the config file. Each service names the
environment variable that holds its key or token (``*_env`` settings).
"""

from __future__ import annotations

import copy
import os
from pathlib import Path
from typing import Optional

import yaml

CONFIG_DIR = ".auditx"
CONFIG_FILE = "config.yaml"

DEFAULT_CONFIG: dict = {
    "project": {
        "name": "",
    },
    "http": {
        "timeout_seconds": 30,
    },
    "document_store": {
        "endpoint": "https://audit.documents.azure.com:443/",
        "database": "AuditResults",
        "container": "Audits",
        "api_version": "2018-12-31",
        "auth_token_env": "AUDITX_COSMOS_TOKEN",
    },
    "blob_store": {
        "account_name": "",
        "container": "audit-evidence",
        "api_version": "2021-08-06",
        "sas_token_env": "AUDITX_STORAGE_SAS_TOKEN",
        "chunk_size": 262144,
    },
    "search": {
        "endpoint": "",
        "index": "audit-evidence-index",
        "api_version": "2023-11-01",
        "api_key_env": "AUDITX_SEARCH_KEY",
        "top_k": 3,
    },
    "openai": {
        "endpoint": "",
        "deployment": "gpt-4o",
        "api_version": "2024-02-15-preview",
        "api_key_env": "AZURE_OPENAI_KEY",
        "max_tokens": 800,
        "temperature": 0.3,
        "top_p": 0.95,
        "max_context_docs": 3,
        "max_doc_chars": 2000,
    },
}


def deep_merge(base: dict, override: dict) -> dict:
    """Deep merge two dicts. Arrays are replaced, not merged."""
    result = {}
    for key in base:
        result[key] = base[key]
    for key, value in override.items():
        base_value = result.get(key)
        if isinstance(base_value, dict) and isinstance(value, dict):
            result[key] = deep_merge(base_value, value)
        else:
            result[key] = value
    return result


def load_project_config(project_path: Path) -> dict:
    """Load project configuration from .auditx/config.yaml."""
    config_path = project_path / CONFIG_DIR / CONFIG_FILE
    if not config_path.exists():
        return {}
    try:
        content = config_path.read_text(encoding="utf-8-sig")  # utf-8-sig strips BOM
        loaded = yaml.safe_load(content)
    except (OSError, yaml.YAMLError):
        return {}
    return loaded if isinstance(loaded, dict) else {}


def get_effective_config(
    project_path: Optional[Path] = None,
    cli_overrides: Optional[dict] = None,
) -> dict:
    """Get the fully resolved configuration."""
    config = copy.deepcopy(DEFAULT_CONFIG)

    if project_path is not None:
        project_config = load_project_config(project_path)
        if project_config:
            config = deep_merge(config, project_config)

    if cli_overrides:
        config = deep_merge(config, cli_overrides)

    return config


def get_secret(section: dict, env_key: str) -> Optional[str]:
    """Read the secret named by ``section[env_key]`` from the environment."""
    env_var = section.get(env_key)
    if not env_var:
        return None
    return os.environ.get(env_var) or None


def write_default_config(project_path: Path) -> Path:
    """Create .auditx/config.yaml with a starter configuration."""
    cfg_dir = project_path / CONFIG_DIR
    cfg_dir.mkdir(parents=True, exist_ok=True)
    config_path = cfg_dir / CONFIG_FILE
    if config_path.exists():
        return config_path

    starter = {
        "project": {"name": project_path.name},
        "document_store": {
            "endpoint": DEFAULT_CONFIG["document_store"]["endpoint"],
            "database": DEFAULT_CONFIG["document_store"]["database"],
            "container": DEFAULT_CONFIG["document_store"]["container"],
        },
        "blob_store": {"account_name": "", "container": DEFAULT_CONFIG["blob_store"]["container"]},
        "search": {"endpoint": "", "index": DEFAULT_CONFIG["search"]["index"]},
        "openai": {"endpoint": "", "deployment": DEFAULT_CONFIG["openai"]["deployment"]},
    }
    config_path.write_text(
        "# AuditX project configuration\n"
        "# Keys and tokens are read from the environment variables named by *_env settings\n"
        "\n" + yaml.safe_dump(starter, sort_keys=False),
        encoding="utf-8",
    )
    return config_path
