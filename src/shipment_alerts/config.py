# src/shipment_alerts/config.py
from dataclasses import dataclass, asdict
import os
from typing import Dict, Any

from dotenv import load_dotenv

load_dotenv(override=False)


def _env_bool(name, default=False):
    v = os.getenv(name)
    if v is None: return default
    return str(v).strip().lower() in {"1","true","yes","y","on"}

@dataclass(frozen=True)
class Settings:
    # -------- General ----------
    data_dir: str   = os.getenv("SHIPMENT_ALERTS_DATA_DIR", "data/state")
    log_level: str  = os.getenv("LOG_LEVEL", "INFO")

    # -------- Feature gate -----
    premium_active: bool = _env_bool("PREMIUM_ACTIVE", False)

    # -------- Alert lifecycle --
    alert_max_age_days: int = int(os.getenv("ALERT_MAX_AGE_DAYS", "7"))

    # -------- Notifications ----
    notify_recipient: str = os.getenv("NOTIFY_RECIPIENT", "user@example.com")
    notify_channel: str   = os.getenv("NOTIFY_CHANNEL", "log")   # log, email, webhook, telegram
    notify_workers: int   = int(os.getenv("NOTIFY_WORKERS", "4"))
    http_timeout: float   = float(os.getenv("HTTP_TIMEOUT", "10"))

    # -------- SMTP -------------
    smtp_host: str         = os.getenv("SMTP_HOST", "")
    smtp_port: int         = int(os.getenv("SMTP_PORT", "587"))
    smtp_username: str     = os.getenv("SMTP_USERNAME", "")
    smtp_password: str     = os.getenv("SMTP_PASSWORD", "")
    smtp_from_address: str = os.getenv("SMTP_FROM_ADDRESS", "alerts@shipment-alerts.local")

    # -------- HTTP channels ----
    webhook_url: str        = os.getenv("WEBHOOK_URL", "")
    telegram_bot_token: str = os.getenv("TELEGRAM_BOT_TOKEN", "")

    # helper: convert to dict (useful for logging)
    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @staticmethod
    def from_overrides(**kwargs) -> "Settings":
        """
        Build Settings and apply runtime overrides (e.g., parsed CLI flags or a
        config file block). Only keys that match fields will be overridden.
        """
        base = Settings()
        current = base.to_dict()
        current.update({k: v for k, v in kwargs.items() if k in current and v is not None})
        # rebuild frozen dataclass with updates
        return Settings(**current)  # type: ignore[arg-type]
