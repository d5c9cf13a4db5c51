import os
import json
import shutil
from typing import Any, Dict, Optional

import keyring
from keyring.errors import KeyringError, PasswordDeleteError
from dotenv import load_dotenv

from pcanalys.config import constants
from pcanalys.utils.logger import log


class ConfigManager:
    """
    Layered configuration: defaults < config.json < environment (.env included).
    Secrets live in the OS keyring, with the environment taking precedence.
    """

    APP_NAME = "PcAnalys"
    DEFAULT_CONFIG_DIR = os.path.join(os.path.expanduser("~"), ".pcanalys")

    DEFAULT_CONFIG = {
        "environment": "production",
        "database_url": None,
        "db_path": os.path.join(DEFAULT_CONFIG_DIR, "analyses.db"),
        "groq_base_url": constants.DEFAULT_GROQ_BASE_URL,
        "groq_model": constants.DEFAULT_GROQ_MODEL,
        "temperature": constants.DEFAULT_TEMPERATURE,
        "max_tokens": constants.DEFAULT_MAX_TOKENS,
        "recommendation_language": constants.DEFAULT_RECOMMENDATION_LANGUAGE,
        "log_level": "INFO",
    }

    # config key -> environment variable
    ENV_OVERRIDES = {
        "environment": "PCANALYS_ENV",
        "database_url": "PCANALYS_DATABASE_URL",
        "db_path": "PCANALYS_DB_PATH",
        "groq_base_url": "GROQ_BASE_URL",
        "groq_model": "GROQ_MODEL",
        "temperature": "GROQ_TEMPERATURE",
        "max_tokens": "GROQ_MAX_TOKENS",
        "recommendation_language": "PCANALYS_LANGUAGE",
        "log_level": "PCANALYS_LOG_LEVEL",
    }

    SECURE_KEYS = ["GROQ_API_KEY"]

    def __init__(self, config_dir: Optional[str] = None, load_env: bool = True):
        self.config_dir = config_dir or self.DEFAULT_CONFIG_DIR
        self.config_file = os.path.join(self.config_dir, "config.json")
        if load_env:
            load_dotenv()
        self.config = self.load_config()

    def load_config(self) -> Dict[str, Any]:
        config = self.DEFAULT_CONFIG.copy()
        if not os.path.exists(self.config_file):
            return config

        try:
            with open(self.config_file, 'r') as f:
                config.update(json.load(f))
        except (OSError, ValueError) as e:
            log.error(f"Failed to load config: {e}. Loading defaults.")
        return config

    def save_config(self, config=None):
        if config is None:
            config = self.config

        os.makedirs(self.config_dir, exist_ok=True)

        # Rollback mechanism: Backup existing config
        if os.path.exists(self.config_file):
            try:
                shutil.copy2(self.config_file, self.config_file + ".bak")
            except OSError as e:
                log.warning(f"Failed to backup config: {e}")

        try:
            with open(self.config_file, 'w') as f:
                json.dump(config, f, indent=4)
        except OSError as e:
            log.error(f"Failed to save config: {e}")

    def get(self, key, default=None):
        env_name = self.ENV_OVERRIDES.get(key)
        if env_name and os.getenv(env_name):
            return os.getenv(env_name)
        return self.config.get(key, default)

    def get_float(self, key, default: float) -> float:
        try:
            return float(self.get(key, default))
        except (TypeError, ValueError):
            log.warning(f"Config value for {key} is not a number, using {default}")
            return default

    def get_int(self, key, default: int) -> int:
        try:
            return int(self.get(key, default))
        except (TypeError, ValueError):
            log.warning(f"Config value for {key} is not an integer, using {default}")
            return default

    def set(self, key, value):
        self.config[key] = value
        self.save_config()

    @property
    def is_development(self) -> bool:
        return str(self.get("environment", "production")).lower() == "development"

    def get_secure(self, key):
        """Retrieve a sensitive value from the environment, then the OS keyring."""
        if os.getenv(key):
            return os.getenv(key)
        try:
            val = keyring.get_password(self.APP_NAME, key)
            return val if val else ""
        except KeyringError as e:
            # No backend, locked, etc.
            log.error(f"Keyring get error for {key}: {e}")
            return ""

    def set_secure(self, key, value):
        """Save a sensitive value to OS keyring."""
        try:
            if value:
                keyring.set_password(self.APP_NAME, key, value)
            else:
                keyring.delete_password(self.APP_NAME, key)
        except PasswordDeleteError:
            log.debug(f"No keyring entry to delete for {key}")
        except KeyringError as e:
            log.error(f"Keyring set error for {key}: {e}")

    def migrate_legacy_keys(self):
        """Move API keys stored in plain config.json into the keyring."""
        if "api_keys" in self.config:
            log.info("Migrating legacy API keys to secure storage...")
            for k, v in self.config["api_keys"].items():
                if v and k in self.SECURE_KEYS:
                    self.set_secure(k, v)
            del self.config["api_keys"]
            self.save_config()
