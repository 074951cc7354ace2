"""
iotview configuration

Priority (highest first):
1. Command line arguments (see iotview.cli)
2. Environment: IOTVIEW_API_BASE, IOTVIEW_API_TOKEN, IOTVIEW_REFRESH_INTERVAL
   (a local .env file is honoured)
3. YAML config file
4. Defaults below
"""

import argparse
import logging
import os
from pathlib import Path
from typing import Optional

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, Field

logger = logging.getLogger("iotview.config")


class ViewConfig(BaseModel):
    api_base: str = "http://127.0.0.1:8080/api"
    api_token: Optional[str] = None
    timeout: int = 10
    verify_tls: bool = True
    # Countdown lengths in seconds
    refresh_interval: int = Field(10, ge=1)          # device view countdown
    cache_ttl: int = Field(600, ge=1)                # historical range cache
    storage_path: str = ":memory:"                   # one browser session
    visibility_margin: int = 100                     # px lead before a chart is visible
    page_size: Optional[int] = None                  # None = single logs request
    log_level: str = "INFO"

    @classmethod
    def from_file(cls, config_path: Optional[Path]) -> "ViewConfig":
        """Load configuration from a YAML file, falling back to defaults."""
        if config_path is None or not Path(config_path).exists():
            logger.debug(f"Config file not found: {config_path}, using defaults")
            return cls()

        try:
            with open(config_path, "r") as f:
                data = yaml.safe_load(f) or {}
            logger.debug(f"Loaded config from {config_path}: {data}")
            return cls(**data)
        except Exception as e:
            logger.warning(f"Failed to load config from {config_path}: {e}, using defaults")
            return cls()

    def override_with_env(self) -> "ViewConfig":
        """Apply IOTVIEW_* environment variables (after loading .env)."""
        load_dotenv()
        self.api_base = os.getenv("IOTVIEW_API_BASE", self.api_base)
        self.api_token = os.getenv("IOTVIEW_API_TOKEN", self.api_token)

        env_interval = os.getenv("IOTVIEW_REFRESH_INTERVAL")
        if env_interval:
            try:
                self.refresh_interval = max(1, int(env_interval))
            except ValueError:
                logger.warning(f"Invalid IOTVIEW_REFRESH_INTERVAL '{env_interval}', keeping {self.refresh_interval}s")
        return self

    def override_with_args(self, args: argparse.Namespace) -> "ViewConfig":
        """Override config with command line arguments if provided."""
        self.api_base = args.api_base if getattr(args, "api_base", None) is not None else self.api_base
        if getattr(args, "interval", None) is not None:
            self.refresh_interval = max(1, args.interval)
        self.log_level = args.log_level if getattr(args, "log_level", None) is not None else self.log_level
        return self


def load_config(config_path: Optional[Path] = None, args: Optional[argparse.Namespace] = None) -> ViewConfig:
    """YAML first, then environment, then CLI overrides."""
    config = ViewConfig.from_file(config_path).override_with_env()
    if args is not None:
        config.override_with_args(args)
    return config
