from pathlib import Path
from dotenv import dotenv_values
from pydantic import Field
from pydantic_settings import BaseSettings

import os

# Explicitly load .env for local/dev environments only if values are missing from the environment
BASE_DIR = Path(__file__).resolve().parent.parent.parent
env_file = BASE_DIR / ".env"

if env_file.exists():
    file_env = dotenv_values(env_file)
    missing_keys = {k: v for k, v in file_env.items() if k not in os.environ and v is not None}
    for k, v in missing_keys.items():
        os.environ[k] = v


class Settings(BaseSettings):
    """Application settings pulled from environment variables."""

    # API Configuration
    api_host: str = Field(default="0.0.0.0", description="API host")
    api_port: int = Field(default=8000, description="API port")
    debug: bool = Field(default=False, description="Enable debug mode")
    allowed_origins: str = Field(default="*", description="Comma separated CORS allowed origins")

    # Logging Configuration
    log_level: str = Field(default="INFO", description="Logging level")
    log_format: str = Field(default="json", description="Logging format (plain or json)")

    # Default Terrain Configuration
    terrain_width: float = Field(default=100.0, gt=0, description="Default terrain width in world units")
    terrain_height: float = Field(default=100.0, gt=0, description="Default terrain depth in world units")
    terrain_resolution: float = Field(default=1.0, gt=0, description="World units per grid cell")
    terrain_min_height: float = Field(default=-5.0, description="Default minimum elevation")
    terrain_max_height: float = Field(default=5.0, description="Default maximum elevation")
    terrain_algorithm: str = Field(default="perlin", description="Default generation algorithm")
    terrain_frequency: float = Field(default=0.02, description="Default noise frequency")
    terrain_smoothing: int = Field(default=2, ge=0, description="Default smoothing passes")
    chunk_size: int = Field(default=32, gt=0, description="Chunk edge length in grid cells")

    # Limits
    max_grid_cells: int = Field(default=4_000_000, description="Largest grid the API will generate")
    undo_history_limit: int = Field(default=50, ge=0, description="Undo steps kept by the terrain manager")

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"


# Instantiate singleton settings object
settings = Settings()
