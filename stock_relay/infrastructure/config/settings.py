"""
Runtime settings read from the environment (a .env file is loaded by the
entry point before this is evaluated).
"""

import os
from dataclasses import dataclass


def _flag(value: str) -> bool:
    return value.strip().lower() in ("1", "true", "yes")


@dataclass(frozen=True)
class Settings:
    host: str = "0.0.0.0"
    port: int = 3000
    data_dir: str = "data"
    static_dir: str = "public"
    log_level: str = "INFO"
    json_logs: bool = False

    @property
    def users_file(self) -> str:
        return os.path.join(self.data_dir, "users.json")

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            host=os.environ.get("RELAY_HOST", cls.host),
            port=int(os.environ.get("RELAY_PORT", cls.port)),
            data_dir=os.environ.get("RELAY_DATA_DIR", cls.data_dir),
            static_dir=os.environ.get("RELAY_STATIC_DIR", cls.static_dir),
            log_level=os.environ.get("LOG_LEVEL", cls.log_level).upper(),
            json_logs=_flag(os.environ.get("LOG_JSON", "0")),
        )
