"""Configuration module for the Easy Apply engine."""

import copy
import os
import json
import logging
from typing import Dict, Any, Optional

from easy_apply_agent.tools import constants

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = "~/.easyapply/config.json"


class Config:
    """
    Configuration manager for the Easy Apply engine.
    """

    # Default configuration values
    DEFAULTS = {
        "answer_service": {
            "model": constants.DEFAULT_MODEL,
            "temperature": 0.2,
            "summary_temperature": 0.7,
            "timeout": constants.ANSWER_TIMEOUT,
            "rpm": constants.DEFAULT_RPM,
            "api_key_env": "GEMINI_API_KEY"
        },
        "timing": {
            "short_delay": constants.SHORT_DELAY,
            "settle_delay": constants.SETTLE_DELAY,
            "typeahead_delay": constants.TYPEAHEAD_DELAY,
            "poll_interval": constants.BUTTON_POLL_INTERVAL,
            "element_timeout": constants.DEFAULT_TIMEOUT,
            "transition_timeout": constants.TRANSITION_TIMEOUT,
            "long_settle": constants.LONG_SETTLE_DELAY
        },
        "navigation": {
            "max_steps": constants.MAX_FORM_STEPS,
            "stall_threshold": constants.STALL_THRESHOLD,
            "decrease_policy": "reset",
            "review_threshold": constants.REVIEW_PROGRESS_THRESHOLD,
            "refill_threshold": constants.REFILL_PROGRESS_THRESHOLD
        },
        "confirmation": {
            "timeout": constants.CONFIRMATION_TIMEOUT,
            "poll_interval": constants.CONFIRMATION_POLL_INTERVAL,
            "weak_signal_threshold": constants.WEAK_SIGNAL_THRESHOLD,
            "assume_success_on_disappear": True
        },
        "defaults": {
            "country": constants.DEFAULT_COUNTRY,
            "city": constants.DEFAULT_CITY,
            "phone": constants.DEFAULT_PHONE,
            "experience_years": constants.DEFAULT_EXPERIENCE_YEARS
        },
        "cache": {
            "path": "~/.easyapply/answer_cache.json",
            "similarity_threshold": constants.CACHE_SIMILARITY_THRESHOLD
        },
        "classifier": {
            "keyword_tables": None  # bundled tables when None
        },
        "browser": {
            "headless": True,
            "user_data_dir": "~/.easyapply/browser",
            "timeout": 30000,
            "viewport": {"width": 1280, "height": 1024}
        },
        "runner": {
            "max_applications": 0,
            "between_jobs_delay": constants.BETWEEN_JOBS_DELAY
        },
        "logging": {
            "level": "INFO",
            "log_file": "easy_apply.log",
            "console_output": True
        },
        "storage": {
            "results_dir": "~/.easyapply/results"
        }
    }

    def __init__(self, config_path: Optional[str] = None, create_if_missing: bool = True):
        """
        Initialize configuration.

        Args:
            config_path: Path to configuration file. If None, uses default location.
            create_if_missing: Write the defaults to `config_path` when the file does not exist
        """
        self.config_path = os.path.expanduser(config_path or DEFAULT_CONFIG_PATH)
        self.create_if_missing = create_if_missing

        # Load configuration
        self.config = self._load_config()

    def _load_config(self) -> Dict[str, Any]:
        """
        Load configuration from file or create default.

        Returns:
            Dictionary with configuration
        """
        try:
            if os.path.exists(self.config_path):
                with open(self.config_path, 'r', encoding='utf-8') as f:
                    config = json.load(f)

                # Merge with defaults to ensure all required fields exist
                merged_config = self._merge_with_defaults(config)
                logger.info(f"Loaded configuration from {self.config_path}")
                return merged_config

            if self.create_if_missing:
                logger.warning(f"Configuration file not found at {self.config_path}. Creating default configuration.")
                os.makedirs(os.path.dirname(self.config_path) or ".", exist_ok=True)
                with open(self.config_path, 'w', encoding='utf-8') as f:
                    json.dump(self.DEFAULTS, f, indent=2)

            return copy.deepcopy(self.DEFAULTS)
        except (OSError, ValueError) as e:
            logger.error(f"Error loading configuration: {e}")
            return copy.deepcopy(self.DEFAULTS)

    def _merge_with_defaults(self, config: Dict[str, Any]) -> Dict[str, Any]:
        """
        Merge user configuration with defaults to ensure all required fields exist.

        Args:
            config: User configuration

        Returns:
            Merged configuration
        """
        merged = copy.deepcopy(self.DEFAULTS)

        def deep_merge(target, source):
            for key, value in source.items():
                if key in target and isinstance(target[key], dict) and isinstance(value, dict):
                    deep_merge(target[key], value)
                else:
                    target[key] = value

        deep_merge(merged, config)
        return merged

    def save(self) -> bool:
        """
        Save configuration to file.

        Returns:
            True if successful, False otherwise
        """
        try:
            os.makedirs(os.path.dirname(self.config_path) or ".", exist_ok=True)
            with open(self.config_path, 'w', encoding='utf-8') as f:
                json.dump(self.config, f, indent=2)

            logger.info(f"Saved configuration to {self.config_path}")
            return True
        except OSError as e:
            logger.error(f"Error saving configuration: {e}")
            return False

    def get(self, key: str, default: Any = None) -> Any:
        """
        Get a configuration value.

        Args:
            key: Configuration key (dotted notation, e.g. 'navigation.max_steps')
            default: Default value if key not found

        Returns:
            Configuration value or default
        """
        value = self.config
        for part in key.split('.'):
            if isinstance(value, dict) and part in value:
                value = value[part]
            else:
                return default
        return value

    def set(self, key: str, value: Any, persist: bool = True) -> bool:
        """
        Set a configuration value.

        Args:
            key: Configuration key (dotted notation, e.g. 'runner.max_applications')
            value: Value to set
            persist: Save the file afterwards

        Returns:
            True if successful, False otherwise
        """
        parts = key.split('.')
        config = self.config

        # Navigate to the correct nested dictionary
        for part in parts[:-1]:
            if not isinstance(config.get(part), dict):
                config[part] = {}
            config = config[part]

        config[parts[-1]] = value
        return self.save() if persist else True

    def get_api_key(self) -> str:
        """
        Get the answer service API key from the environment.

        Returns:
            API key, or an empty string
        """
        return os.environ.get(self.get('answer_service.api_key_env', 'GEMINI_API_KEY'), '')

    def configure_logging(self, verbose: bool = False):
        """Configure logging based on configuration."""
        level_name = 'DEBUG' if verbose else str(self.get('logging.level', 'INFO')).upper()
        log_level = getattr(logging, level_name, logging.INFO)
        log_file = self.get('logging.log_file')
        console_output = self.get('logging.console_output', True)

        handlers = []

        # File handler
        if log_file:
            handlers.append(logging.FileHandler(os.path.expanduser(log_file)))

        # Console handler
        if console_output:
            handlers.append(logging.StreamHandler())

        logging.basicConfig(
            level=log_level,
            format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
            handlers=handlers or [logging.NullHandler()],
            force=True
        )

        # Third-party clients are chatty at DEBUG
        for noisy in ('LiteLLM', 'litellm', 'httpx', 'asyncio'):
            logging.getLogger(noisy).setLevel(logging.WARNING)

    def get_browser_options(self) -> Dict[str, Any]:
        """
        Get browser configuration options.

        Returns:
            Dictionary with browser options
        """
        return {
            'headless': self.get('browser.headless', True),
            'user_data_dir': self.get('browser.user_data_dir'),
            'timeout': self.get('browser.timeout', 30000),
            'viewport': self.get('browser.viewport')
        }

    def get_storage_path(self, storage_type: str) -> str:
        """
        Get a storage path with user expansion.

        Args:
            storage_type: Type of storage (results)

        Returns:
            Expanded path
        """
        path = self.get(f'storage.{storage_type}_dir')
        if path:
            return os.path.expanduser(path)
        return os.path.expanduser(f"~/.easyapply/{storage_type}")

    def get_cache_path(self) -> Optional[str]:
        path = self.get('cache.path')
        return os.path.expanduser(path) if path else None
