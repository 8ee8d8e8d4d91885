"""
Configuration loader for wagerline.
Loads settings from config/settings.yaml.
"""

import logging
import os
from pathlib import Path
from typing import Optional

import yaml

logger = logging.getLogger(__name__)

# Default config directory (wagerline/config.py -> wagerline -> project -> config)
CONFIG_DIR = Path(__file__).parent.parent / "config"

DEFAULT_LINE_MARKET_PATTERN = r"Run Line|Totals?|Total Runs|Spread|Handicap|Over|Under|Puck Line"


class ConfigLoader:
    """Loads and manages configuration from YAML files."""

    def __init__(self, config_dir: Optional[Path] = None):
        """
        Initialize config loader.

        Args:
            config_dir: Path to config directory (default: project/config/)
        """
        self.config_dir = Path(config_dir) if config_dir else CONFIG_DIR
        self._settings = None

    def load_settings(self) -> dict:
        """Load settings.yaml configuration."""
        if self._settings is None:
            path = self.config_dir / "settings.yaml"
            self._settings = self._load_yaml(path)
        return self._settings

    def _load_yaml(self, path: Path) -> dict:
        """Load a YAML file."""
        try:
            with open(path, "r", encoding="utf-8") as f:
                return yaml.safe_load(f) or {}
        except FileNotFoundError:
            logger.error(f"Config file not found: {path}")
            return {}
        except yaml.YAMLError as e:
            logger.error(f"Error parsing YAML file {path}: {e}")
            return {}

    # ==========================================
    # Venue API
    # ==========================================

    def get_api_settings(self) -> dict:
        """
        Get venue API connection settings.

        Returns:
            Dict with 'base_url' and 'timeout'
        """
        settings = self.load_settings()
        api = settings.get("api", {})
        return {
            "base_url": api.get("base_url", "https://ss-sandbox.betprophet.co/partner"),
            "timeout": float(api.get("timeout", 30.0)),
        }

    def get_credentials(self) -> dict:
        """
        Get API credentials. Environment variables win over settings.yaml.

        Returns:
            Dict with 'access_key' and 'secret_key' (may be empty strings)
        """
        settings = self.load_settings()
        creds = settings.get("credentials", {})
        return {
            "access_key": os.environ.get("WAGERLINE_ACCESS_KEY", creds.get("access_key", "")),
            "secret_key": os.environ.get("WAGERLINE_SECRET_KEY", creds.get("secret_key", "")),
        }

    # ==========================================
    # Request Orchestrator
    # ==========================================

    def get_orchestrator_settings(self) -> dict:
        """
        Get concurrency, retry and token refresh settings.

        Returns:
            Dict of keyword arguments for RequestOrchestrator
        """
        settings = self.load_settings()
        orch = settings.get("orchestrator", {})
        return {
            "max_concurrent": orch.get("max_concurrent", 3),
            "max_attempts": orch.get("max_attempts", 3),
            "rate_limit_low_water": orch.get("rate_limit_low_water", 2),
            "rate_limit_pause": orch.get("rate_limit_pause", 1.0),
            "backoff_base": orch.get("backoff_base", 1.0),
            "backoff_max": orch.get("backoff_max", 30.0),
            "refresh_lead": orch.get("refresh_lead_seconds", 60.0),
        }

    # ==========================================
    # Catalog
    # ==========================================

    def get_catalog_settings(self) -> dict:
        """
        Get hierarchy builder settings.

        Returns:
            Dict with 'request_delay', 'line_market_pattern' and pruning flags
        """
        settings = self.load_settings()
        catalog = settings.get("catalog", {})
        return {
            "request_delay": catalog.get("request_delay", 0.1),
            "line_market_pattern": catalog.get("line_market_pattern", DEFAULT_LINE_MARKET_PATTERN),
            "keep_empty_markets": catalog.get("keep_empty_markets", True),
            "prune_empty_events": catalog.get("prune_empty_events", True),
            "prune_empty_tournaments": catalog.get("prune_empty_tournaments", True),
        }

    # ==========================================
    # Order Polling
    # ==========================================

    def get_polling_settings(self) -> dict:
        """
        Get order polling settings.

        Returns:
            Dict with 'interval', 'window_days', 'page_size', 'max_retries', 'retry_base'
        """
        settings = self.load_settings()
        polling = settings.get("polling", {})
        return {
            "interval": polling.get("interval", 10.0),
            "window_days": polling.get("window_days", 7),
            "page_size": polling.get("page_size", 50),
            "max_retries": polling.get("max_retries", 3),
            "retry_base": polling.get("retry_base", 1.0),
        }
