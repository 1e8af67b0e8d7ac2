"""Application configuration module for the messages editor."""
import logging
import os
import sys
from dataclasses import dataclass
from typing import Dict, Optional, Any

import yaml
from dotenv import load_dotenv

from src.catalog import WORK_KEY
from src.catalog_source import DEFAULT_CATALOG_URL
from src.logging_config import setup_logger

DEFAULT_MAX_IMPORT_BYTES = 5 << 20
DEFAULT_SNAPSHOT_DIR = os.path.join('~', '.local', 'share', 'messages-editor')


@dataclass
class AppConfig:
    """Application configuration dataclass."""
    # Core paths
    project_root: str
    snapshot_dir: str
    export_path: str

    # Base catalog
    base_locale: str
    base_catalog_url: str
    base_catalog_path: Optional[str]
    fetch_timeout: float
    fetch_max_retries: int

    # Work snapshot
    work_key: str
    max_import_bytes: int

    @property
    def resolved_catalog_url(self) -> str:
        return self.base_catalog_url.format(locale=self.base_locale)


def _compute_project_root() -> str:
    """Compute the project root directory."""
    script_real_path = os.path.realpath(__file__)
    script_dir = os.path.dirname(script_real_path)
    return os.path.abspath(os.path.join(script_dir, os.pardir))


def _load_dotenv_files(project_root: str) -> None:
    """Load the .env file from the project root, if any."""
    dotenv_path = os.path.join(project_root, '.env')
    if os.path.exists(dotenv_path):
        load_dotenv(dotenv_path)


def _load_yaml_config(project_root: str) -> Dict[str, Any]:
    """Load YAML configuration file with error handling and path resolution."""
    # MESSAGES_EDITOR_CONFIG_FILE (possibly set from .env) overrides the default 'config.yaml'.
    default_config_path = os.path.join(project_root, 'config.yaml')
    config_file = os.environ.get('MESSAGES_EDITOR_CONFIG_FILE', default_config_path)

    if not os.path.isabs(config_file):
        config_file = os.path.abspath(config_file)

    config = {}
    try:
        if not os.path.exists(config_file):
            print(f"Warning: Configuration file '{config_file}' not found. Using default configuration.",
                  file=sys.stderr)
            return config

        if not os.access(config_file, os.R_OK):
            print(f"Error: Configuration file '{config_file}' exists but is not readable. Check file permissions.",
                  file=sys.stderr)
            return config

        with open(config_file, 'r', encoding='utf-8') as config_file_stream:
            loaded_config = yaml.safe_load(config_file_stream)
            if loaded_config is None:
                print(f"Warning: Configuration file '{config_file}' is empty. Using default configuration.",
                      file=sys.stderr)
            elif isinstance(loaded_config, dict):
                config = loaded_config
            else:
                print(f"Error: Configuration file '{config_file}' must contain a YAML dictionary. Using defaults.",
                      file=sys.stderr)

    except yaml.YAMLError as e:
        print(f"Error: Invalid YAML in configuration file '{config_file}': {e}", file=sys.stderr)
        print("Please check your YAML syntax. Using default configuration.", file=sys.stderr)
    except (OSError, IOError) as e:
        print(f"Error: Could not read configuration file '{config_file}': {e}", file=sys.stderr)
        print("Using default configuration.", file=sys.stderr)

    return config


def _setup_logger_from_config(config: Dict[str, Any]) -> logging.Logger:
    """Set up logger based on configuration."""
    log_config = config.get('logging', {})
    log_level_str = os.environ.get('LOG_LEVEL', log_config.get('log_level', 'INFO')).upper()
    log_file_path = log_config.get('log_file_path', 'logs/messages_editor.log')
    log_to_console = log_config.get('log_to_console', True)
    return setup_logger(log_level_str, log_file_path, log_to_console)


def load_app_config() -> AppConfig:
    """
    Load application configuration from YAML file and environment variables.

    Environment variables take precedence over the YAML file:
    BASE_LOCALE, BASE_CATALOG_URL, BASE_CATALOG_PATH and SNAPSHOT_DIR.

    Returns:
        AppConfig: The loaded application configuration.
    """
    project_root = _compute_project_root()
    _load_dotenv_files(project_root)
    config = _load_yaml_config(project_root)

    logger = _setup_logger_from_config(config)

    catalog_config = config.get('base_catalog', {})
    snapshot_config = config.get('snapshot', {})

    base_locale = os.environ.get('BASE_LOCALE', catalog_config.get('locale', 'en'))
    base_catalog_url = os.environ.get('BASE_CATALOG_URL', catalog_config.get('url', DEFAULT_CATALOG_URL))
    base_catalog_path = os.environ.get('BASE_CATALOG_PATH', catalog_config.get('path'))
    snapshot_dir = os.environ.get('SNAPSHOT_DIR', snapshot_config.get('directory', DEFAULT_SNAPSHOT_DIR))

    if base_catalog_path:
        logger.info("Using local base catalog: %s", base_catalog_path)
    else:
        logger.info("Using remote base catalog: %s", base_catalog_url.format(locale=base_locale))

    return AppConfig(
        project_root=project_root,
        snapshot_dir=os.path.expanduser(snapshot_dir),
        export_path=config.get('export_path', 'messages.json'),
        base_locale=base_locale,
        base_catalog_url=base_catalog_url,
        base_catalog_path=base_catalog_path,
        fetch_timeout=float(catalog_config.get('timeout', 30.0)),
        fetch_max_retries=int(catalog_config.get('max_retries', 3)),
        work_key=snapshot_config.get('work_key', WORK_KEY),
        max_import_bytes=int(snapshot_config.get('max_import_bytes', DEFAULT_MAX_IMPORT_BYTES)),
    )
