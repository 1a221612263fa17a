"""
Centralized settings and path configuration for the retail pricing service.
"""
import os
from pathlib import Path
from dataclasses import dataclass
from typing import Optional


DATA_DIR_ENV = 'RETAIL_PRICING_DATA_DIR'
LOG_LEVEL_ENV = 'RETAIL_PRICING_LOG_LEVEL'


def get_project_root() -> Path:
    """Get the project root directory (where pyproject.toml lives)."""
    current = Path(__file__).resolve()
    for parent in current.parents:
        if (parent / 'pyproject.toml').exists():
            return parent
    # Fallback to 3 levels up from this file
    return Path(__file__).resolve().parent.parent.parent.parent


@dataclass
class Settings:
    """Application settings with sensible defaults."""

    # Project paths
    project_root: Path
    data_dir: Path

    # Input files
    price_points_csv: Path

    # Stores
    pricing_store: Path
    mappings_store: Path

    # Output files
    priced_catalog_csv: Path

    log_level: str = 'INFO'

    @classmethod
    def load(cls, project_root: Optional[Path] = None, data_dir: Optional[Path] = None) -> 'Settings':
        """Load settings from the project structure and environment."""
        root = project_root or get_project_root()
        data = Path(data_dir or os.environ.get(DATA_DIR_ENV) or root / 'data')

        return cls(
            project_root=root,
            data_dir=data,
            price_points_csv=data / 'price_points.csv',
            pricing_store=data / 'pricing_configurations.json',
            mappings_store=data / 'vendor_field_mappings.json',
            priced_catalog_csv=data / 'outputs' / 'priced_catalog.csv',
            log_level=os.environ.get(LOG_LEVEL_ENV, 'INFO').upper(),
        )


# Default settings instance
_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """Get the global settings instance."""
    global _settings
    if _settings is None:
        _settings = Settings.load()
    return _settings
