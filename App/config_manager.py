"""Configuration persistence manager for the Fractal Tones engine.

This module handles loading and saving of tone settings to/from JSON files.
"""

import json
import logging
from dataclasses import asdict
from pathlib import Path
from typing import Optional, Tuple

from models import CONFIG_FILE, QuantizationMethod, ToneSettings

logger = logging.getLogger(__name__)


class ConfigManager:
    """Handles loading and saving of tone settings."""

    def __init__(self, config_path: Path = CONFIG_FILE):
        """Initialize config manager.

        Args:
            config_path: Path to configuration file (defaults to ~/.fractal_tones_config.json)
        """
        self.config_path = Path(config_path)

    def load(self) -> ToneSettings:
        """Load settings from file, returning defaults if not found.

        Returns:
            ToneSettings with loaded or default values
        """
        settings = ToneSettings()

        try:
            if self.config_path.exists():
                with open(self.config_path, "r") as f:
                    data = json.load(f)
                    # Update settings with loaded values (fallback to defaults)
                    settings.k = int(data.get("k", settings.k))
                    settings.method = QuantizationMethod(
                        data.get("method", settings.method.value)
                    )
                    settings.threshold_slider = float(
                        data.get("threshold_slider", settings.threshold_slider)
                    )
                    settings.last_image_path = data.get(
                        "last_image_path", settings.last_image_path
                    )
                logger.info(f"Loaded configuration from {self.config_path}")
        except (OSError, ValueError, TypeError) as e:
            logger.warning(f"Could not load config file: {e}")
            settings = ToneSettings()

        return settings

    def save(self, settings: ToneSettings) -> Tuple[bool, Optional[str]]:
        """Save settings to file.

        Args:
            settings: ToneSettings to save

        Returns:
            Tuple of (success: bool, error_message: Optional[str])
        """
        data = asdict(settings)
        data["method"] = settings.method.value

        try:
            with open(self.config_path, "w") as f:
                json.dump(data, f, indent=2)
            return True, None
        except OSError as e:
            return False, str(e)
