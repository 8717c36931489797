import logging
import os
from pathlib import Path

logger = logging.getLogger(__name__)

_DEFAULT_STATE_FILE = Path("data") / "state.json"


class Core:
    def __init__(self, config: dict | None = None) -> None:
        cfg = (config or {}).get("disclink", {})
        discord_cfg = cfg.get("discord", {})
        server_cfg = cfg.get("server", {})

        token_env = str(discord_cfg.get("token_env", "DISCORD_TOKEN"))

        # TOKEN is accepted as a legacy alias.
        self.DISCORD_TOKEN: str | None = os.getenv(token_env) or os.getenv("TOKEN")

        self.HOST: str = str(server_cfg.get("host", os.getenv("HOST", "0.0.0.0")))
        self.PORT: int = int(server_cfg.get("port", os.getenv("PORT", "3001")))
        self.STATE_FILE: str = str(
            cfg.get("state_file", os.getenv("STATE_FILE", str(_DEFAULT_STATE_FILE)))
        )
        self.LOG_LEVEL: str = str(cfg.get("log_level", os.getenv("LOG_LEVEL", "INFO"))).upper()

    def validate(self) -> None:
        """Raise ``ValueError`` naming any required setting that is missing."""

        required = [
            ("DISCORD_TOKEN", self.DISCORD_TOKEN),
            ("PORT", self.PORT),
        ]
        missing = [name for name, val in required if not val]
        if missing:
            raise ValueError(f"Missing environment variables: {', '.join(missing)}")
