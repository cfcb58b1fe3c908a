"""Application configuration via environment variables."""

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # Project
    PROJECT_NAME: str = "Diesel Plant Control Simulator"
    VERSION: str = "0.1.0"
    API_V1_STR: str = "/api/v1"
    DEBUG: bool = True

    # Server
    HOST: str = "0.0.0.0"
    PORT: int = 8000
    RELOAD: bool = True

    # Simulation
    MAX_CONCURRENT_SIMULATIONS: int = 5
    DEFAULT_REALTIME_FACTOR: float = 1.0
    MAX_REALTIME_FACTOR: float = 100.0
    PHYSICS_DT: float = 0.1             # seconds per tick
    AUTO_TUNE_DELAY_S: float = 2.0      # wall-clock wait before tuned gains are committed
    EMERGENCY_EXIT_POLICY: str = "manual"   # "manual" or "restore"
    NOISE_SEED: int | None = None

    # WebSocket
    WS_STREAM_INTERVAL_S: float = 1.0

    # CORS
    BACKEND_CORS_ORIGINS: list[str] = [
        "http://localhost:3000",
        "http://localhost:5173",
        "http://localhost:8000",
    ]

    class Config:
        env_file = ".env"
        case_sensitive = True


settings = Settings()
