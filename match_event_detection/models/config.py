"""Configuration data models."""

from dataclasses import dataclass, field, asdict
from typing import Any, Dict, List, Optional


@dataclass
class SystemConfig:
    """System configuration settings."""
    # Capture settings
    capture_region: List[int] = field(default_factory=lambda: [0, 810, 1920, 270])  # x, y, width, height
    monitor_index: int = 0
    
    # Preprocessing settings
    ocr_threshold: int = 0  # 0 = automatic (Otsu), 1-255 = manual
    enable_morph_open: bool = False
    enable_fallback_methods: bool = True
    preprocessing_workers: int = 4
    
    # Detection settings
    language: str = "en"
    goal_detection_enabled: bool = True
    kickoff_detection_enabled: bool = True
    match_end_detection_enabled: bool = True
    custom_goal_phrases: List[str] = field(default_factory=list)
    debounce_ms: int = 8000
    
    # Team settings
    home_team: Optional[str] = None
    away_team: Optional[str] = None
    selected_league: Optional[str] = None
    selected_team_key: Optional[str] = None
    team_database_path: Optional[str] = None
    
    # OCR engine settings
    tesseract_cmd: Optional[str] = None
    tessdata_dir: Optional[str] = None
    
    # Performance settings
    target_frame_ms: int = 16
    bench_frames: int = 500
    
    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)
