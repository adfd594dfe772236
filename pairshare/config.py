import os
from typing import List, Optional

# Limits enforced on every inbound name / chat body
MAX_NAME_LENGTH = 30
MAX_CHAT_LENGTH = 500
DEFAULT_NAME = "Anon"


class Settings:
    """Runtime settings for the relay, read from the environment."""

    def __init__(
        self,
        host: str = "0.0.0.0",
        port: int = 3000,
        log_level: str = "INFO",
        static_dir: str = "static",
        cors_origins: Optional[List[str]] = None,
    ):
        self.host = host
        self.port = port
        self.log_level = log_level.upper()
        self.static_dir = static_dir
        self.cors_origins = cors_origins or ["*"]

    @classmethod
    def from_env(cls) -> "Settings":
        origins = os.getenv("CORS_ORIGINS", "*")
        return cls(
            host=os.getenv("HOST", "0.0.0.0"),
            port=int(os.getenv("PORT", 3000)),
            log_level=os.getenv("LOG_LEVEL", "INFO"),
            static_dir=os.getenv("STATIC_DIR", "static"),
            cors_origins=[o.strip() for o in origins.split(",") if o.strip()],
        )
