from dataclasses import dataclass, fields
from typing import Any


@dataclass
class RuntimeSettings:
    save_cooldown_ms: int = 3000
    success_flash_ms: int = 2000
    toast_duration_ms: int = 3000
    request_timeout_s: float = 10.0
    default_number_format: str = "###0"
    default_text_format: str = "$"

    @classmethod
    def from_mapping(cls, data: dict[str, Any]) -> "RuntimeSettings":
        """Build settings from a config section, ignoring unknown keys."""
        known = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in data.items() if k in known})
