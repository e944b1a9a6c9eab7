"""Configuration management with JSON persistence and change callbacks."""

import copy
import json
import os
from dataclasses import fields
from typing import Optional, Dict, Any, Callable, List

from .models.config import SystemConfig
from .models.detection import CaptureRegion
from .models.phrases import Language
from .config.defaults import DEFAULT_CONFIG, DEFAULT_PATHS, SYSTEM_CONSTANTS
from .logging_config import get_logger

logger = get_logger("config_manager")

_CONFIG_FIELDS = {f.name for f in fields(SystemConfig)}


def clamp_debounce_ms(value: int) -> int:
    """Clamp a debounce interval to the supported range."""
    return max(SYSTEM_CONSTANTS["MIN_DEBOUNCE_MS"],
               min(SYSTEM_CONSTANTS["MAX_DEBOUNCE_MS"], int(value)))


class ConfigManager:
    """Manages system configuration with file persistence."""
    
    def __init__(self, config_path: Optional[str] = None):
        self.config_path = config_path or DEFAULT_PATHS["config_file"]
        self._config: Optional[SystemConfig] = None
        self._config_change_callbacks: List[Callable[[SystemConfig], None]] = []
        
        self.load_config()
    
    def load_config(self) -> SystemConfig:
        """Read the JSON file, merging it over the defaults; write defaults on first run."""
        if os.path.exists(self.config_path):
            try:
                with open(self.config_path, 'r', encoding='utf-8') as f:
                    config_dict = json.load(f)
                unknown = set(config_dict) - _CONFIG_FIELDS
                if unknown:
                    logger.warning(f"Ignoring unknown config keys: {sorted(unknown)}")
                merged = copy.deepcopy(DEFAULT_CONFIG)
                merged.update({k: v for k, v in config_dict.items() if k in _CONFIG_FIELDS})
                self._config = SystemConfig(**merged)
            except (json.JSONDecodeError, TypeError, AttributeError) as e:
                logger.error(f"Error loading config {self.config_path}: {e}. Using defaults.")
                self._config = SystemConfig()
        else:
            logger.info(f"No config at {self.config_path}, creating defaults")
            self._config = SystemConfig()
            self.save_config()
        
        return self._config
    
    def save_config(self) -> None:
        """Write the configuration as indented UTF-8 JSON."""
        if self._config is None:
            return
        
        directory = os.path.dirname(self.config_path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        
        with open(self.config_path, 'w', encoding='utf-8') as f:
            json.dump(self._config.to_dict(), f, indent=2, ensure_ascii=False)
    
    def get_config(self) -> SystemConfig:
        if self._config is None:
            return self.load_config()
        return self._config
    
    def update_config(self, **kwargs) -> None:
        """Set known fields, save, then notify callbacks. Unknown keys are logged and skipped."""
        if self._config is None:
            self.load_config()
        
        for key, value in kwargs.items():
            if hasattr(self._config, key):
                setattr(self._config, key, value)
            else:
                logger.warning(f"Ignoring unknown config key: {key}")
        
        self.save_config()
        self._notify_callbacks()
    
    def _notify_callbacks(self) -> None:
        for callback in self._config_change_callbacks:
            try:
                callback(self._config)
            except Exception as e:
                logger.error(f"Error in config change callback: {e}")
    
    def validate_config(self) -> bool:
        """True when the region, indices, threshold, language and team settings are usable."""
        if self._config is None:
            return False
        
        config = self._config
        
        try:
            CaptureRegion.from_list(config.capture_region)
        except (TypeError, ValueError) as e:
            logger.warning(f"Invalid capture region {config.capture_region}: {e}")
            return False
        
        if config.monitor_index < 0:
            return False
        
        if not 0 <= config.ocr_threshold <= 255:
            return False
        
        # Out-of-range debounce values are clamped, only the type is checked
        if not isinstance(config.debounce_ms, int) or isinstance(config.debounce_ms, bool):
            return False
        
        try:
            Language.from_code(config.language)
        except ValueError:
            return False
        
        if config.preprocessing_workers < 1:
            return False
        
        if config.target_frame_ms < 0 or config.bench_frames < 1:
            return False
        
        # A team key without its league cannot be resolved
        if config.selected_team_key and not config.selected_league:
            return False
        
        return True
    
    def get_debounce_ms(self) -> int:
        """Debounce interval clamped to the supported range."""
        return clamp_debounce_ms(self.get_config().debounce_ms)
    
    def get_capture_region(self) -> CaptureRegion:
        return CaptureRegion.from_list(self.get_config().capture_region)
    
    def get_language(self) -> Language:
        """Configured language, English when the code is unknown."""
        try:
            return Language.from_code(self.get_config().language)
        except ValueError:
            logger.warning(f"Unknown language {self.get_config().language!r}, using English")
            return Language.ENGLISH
    
    def register_change_callback(self, callback: Callable[[SystemConfig], None]) -> None:
        """Call ``callback(config)`` after every update, reset or import."""
        if callback not in self._config_change_callbacks:
            self._config_change_callbacks.append(callback)
    
    def unregister_change_callback(self, callback: Callable[[SystemConfig], None]) -> None:
        if callback in self._config_change_callbacks:
            self._config_change_callbacks.remove(callback)
    
    def reset_to_defaults(self) -> None:
        """Replace every setting with its default and save."""
        self._config = SystemConfig()
        self.save_config()
        self._notify_callbacks()
    
    def export_config(self) -> Dict[str, Any]:
        if not self._config:
            return {}
        return self._config.to_dict()
    
    def import_config(self, config_dict: Dict[str, Any]) -> bool:
        """Replace the configuration with ``config_dict`` merged over defaults.

        The previous configuration is kept when the result does not validate.
        Returns True when the import was applied.
        """
        try:
            merged = copy.deepcopy(DEFAULT_CONFIG)
            merged.update(config_dict)
            temp_config = SystemConfig(**merged)
        except (TypeError, ValueError) as e:
            logger.error(f"Error importing config: {e}")
            return False
        
        old_config = self._config
        self._config = temp_config
        
        if not self.validate_config():
            self._config = old_config
            return False
        
        self.save_config()
        self._notify_callbacks()
        return True
