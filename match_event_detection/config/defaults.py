"""Default configuration values and constants."""

from typing import Dict, Any

# Default system configuration
DEFAULT_CONFIG: Dict[str, Any] = {
    # Capture settings
    "capture_region": [0, 810, 1920, 270],  # bottom quarter of a 1920x1080 screen
    "monitor_index": 0,
    
    # Preprocessing settings
    "ocr_threshold": 0,
    "enable_morph_open": False,
    "enable_fallback_methods": True,
    "preprocessing_workers": 4,
    
    # Detection settings
    "language": "en",
    "goal_detection_enabled": True,
    "kickoff_detection_enabled": True,
    "match_end_detection_enabled": True,
    "custom_goal_phrases": [],
    "debounce_ms": 8000,
    
    # Team settings
    "home_team": None,
    "away_team": None,
    "selected_league": None,
    "selected_team_key": None,
    "team_database_path": None,
    
    # OCR engine settings
    "tesseract_cmd": None,
    "tessdata_dir": None,
    
    # Performance settings
    "target_frame_ms": 16,
    "bench_frames": 500
}

# System constants
SYSTEM_CONSTANTS = {
    "MIN_DEBOUNCE_MS": 100,
    "MAX_DEBOUNCE_MS": 60000,
    "DEFAULT_DEBOUNCE_MS": 8000,
    "TARGET_P95_MS": 100.0,
    "MAX_ERROR_HISTORY": 1000,
    "THREAD_JOIN_TIMEOUT_SECONDS": 5.0
}

# File paths and directories
DEFAULT_PATHS = {
    "config_file": "config.json",
    "logs_dir": "logs",
    "user_team_database": "data/teams.json",
    "tessdata_dir": "tessdata"
}

# Preprocessing constants
PREPROCESSING_SETTINGS = {
    "saturation_spread_tenths": 3, # (max - min) / max above 3/10 counts as coloured
    "channel_cutoff": 128,         # per-channel fallback threshold
    "edge_cutoff": 50,             # Sobel magnitude threshold
    "fallback_strategies": ("channel_r", "channel_g", "channel_b", "sobel_edges")
}

# Tesseract settings
OCR_SETTINGS = {
    "language": "eng",
    "page_segmentation_mode": 3
}
