import os


def _flag(raw) -> bool:
    if isinstance(raw, bool):
        return raw
    return str(raw).strip().lower() in ("1", "true", "yes", "on")


class Relay:
    """Timing and sizing knobs for the cache, queue, pipeline and hub."""

    def __init__(self, config: dict | None = None) -> None:
        relay_cfg = (config or {}).get("disclink", {}).get("relay", {})

        # Persistence
        self.SAVE_DEBOUNCE: float = float(relay_cfg.get("save_debounce", os.getenv("SAVE_DEBOUNCE", "0.8")))
        self.PROCESSED_REFS_LIMIT: int = int(
            relay_cfg.get("processed_refs_limit", os.getenv("PROCESSED_REFS_LIMIT", "50000"))
        )

        # Directory build pacing
        self.BUILD_BATCH_SIZE: int = int(relay_cfg.get("build_batch_size", os.getenv("BUILD_BATCH_SIZE", "5")))
        self.BUILD_BATCH_PAUSE: float = float(
            relay_cfg.get("build_batch_pause", os.getenv("BUILD_BATCH_PAUSE", "0.12"))
        )

        # Send queue
        self.MAX_SEND_RETRIES: int = int(relay_cfg.get("max_send_retries", os.getenv("MAX_SEND_RETRIES", "5")))
        self.BASE_BACKOFF: float = float(relay_cfg.get("base_backoff", os.getenv("BASE_BACKOFF", "0.4")))
        self.MAX_BACKOFF: float = float(relay_cfg.get("max_backoff", os.getenv("MAX_BACKOFF", "25.6")))
        self.REPLAY_PACING: float = float(relay_cfg.get("replay_pacing", os.getenv("REPLAY_PACING", "0.15")))

        # Inbound pipeline
        self.DEDUPE_WINDOW: float = float(relay_cfg.get("dedupe_window", os.getenv("DEDUPE_WINDOW", "1.5")))
        self.IGNORE_OTHER_BOTS: bool = _flag(
            relay_cfg.get("ignore_other_bots", os.getenv("IGNORE_OTHER_BOTS", "true"))
        )

        # Connection hub
        self.HEARTBEAT_INTERVAL: float = float(
            relay_cfg.get("heartbeat_interval", os.getenv("HEARTBEAT_INTERVAL", "20"))
        )
        self.HEARTBEAT_STALE: float = float(relay_cfg.get("heartbeat_stale", os.getenv("HEARTBEAT_STALE", "60")))

        # Bulk history fetch
        self.HISTORY_MAX: int = int(relay_cfg.get("history_max", os.getenv("HISTORY_MAX", "250")))
        self.HISTORY_DEFAULT: int = int(relay_cfg.get("history_default", os.getenv("HISTORY_DEFAULT", "50")))
