"""
Client configuration management
"""
from pathlib import Path
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Configuration tree client settings"""

    # Server defaults
    default_host: str = "127.0.0.1"
    default_port: int = 4040

    # Deadlines (0 disables the I/O deadline)
    connect_timeout_ms: int = 5000
    io_timeout_ms: int = 10000

    # Paths
    project_root: Path = Path(__file__).parent.parent
    log_dir: Path = project_root / "logs"

    # Logging
    log_level: str = "INFO"

    class Config:
        env_prefix = "CONFIGTREE_"
        env_file = ".env"


settings = Settings()
