"""
Configuration settings for the solar inspection engine.
"""

import os
from dataclasses import dataclass
from typing import Optional


def _optional_int(name: str) -> Optional[int]:
    value = os.getenv(name)
    return int(value) if value not in (None, "") else None


@dataclass
class Settings:
    """Application settings loaded from environment variables."""
    
    # Small-site panel array
    panel_rows: int = int(os.getenv("PANEL_ROWS", "4"))
    panel_cols: int = int(os.getenv("PANEL_COLS", "12"))
    
    # Mega-solar site grid
    site_blocks_x: int = int(os.getenv("SITE_BLOCKS_X", "35"))
    site_blocks_y: int = int(os.getenv("SITE_BLOCKS_Y", "50"))
    panels_per_block: int = int(os.getenv("PANELS_PER_BLOCK", "100"))
    defect_rate: float = float(os.getenv("DEFECT_RATE", "0.001"))
    
    # Random generation (unset = nondeterministic)
    random_seed: Optional[int] = _optional_int("RANDOM_SEED")
    
    # History storage
    history_db_path: str = os.getenv("HISTORY_DB_PATH", "inspection_history.db")
    analysis_history_max_items: int = int(os.getenv("ANALYSIS_HISTORY_MAX", "50"))
    mega_solar_history_max_items: int = int(os.getenv("MEGA_SOLAR_HISTORY_MAX", "20"))
    
    # Progress simulation (1.0 = scripted delays, 0.0 = no sleeping)
    progress_time_scale: float = float(os.getenv("PROGRESS_TIME_SCALE", "1.0"))
    
    # Flask web application
    flask_host: str = os.getenv("FLASK_HOST", "localhost")
    flask_port: int = int(os.getenv("FLASK_PORT", "5000"))
    flask_debug: bool = os.getenv("FLASK_DEBUG", "True").lower() == "true"
    
    # Logging
    log_level: str = os.getenv("LOG_LEVEL", "INFO")
    log_file: str = os.getenv("LOG_FILE", "solar_inspection.log")
    
    def __post_init__(self) -> None:
        """Validate configuration after initialization."""
        if self.panel_rows <= 0 or self.panel_cols <= 0:
            raise ValueError("Panel grid dimensions must be positive")
        if self.site_blocks_x <= 0 or self.site_blocks_y <= 0:
            raise ValueError("Site block grid dimensions must be positive")
        if self.panels_per_block <= 0:
            raise ValueError("Panels per block must be positive")
        if not (0.0 <= self.defect_rate <= 1.0):
            raise ValueError("Defect rate must be between 0.0 and 1.0")
        if self.analysis_history_max_items <= 0 or self.mega_solar_history_max_items <= 0:
            raise ValueError("History caps must be positive")
        if self.progress_time_scale < 0:
            raise ValueError("Progress time scale cannot be negative")


# Global settings instance
settings = Settings()
