import json
import os
import pathlib
from dataclasses import dataclass, field


@dataclass
class DatabaseConfig:
    host: str = "localhost"
    port: int = 5432
    name: str = "survey"
    user: str = "survey"
    password: str = ""

    @property
    def conninfo(self) -> str:
        return (
            f"host={self.host} port={self.port} "
            f"dbname={self.name} user={self.user} password={self.password}"
        )


@dataclass
class GridConfig:
    year_schema: str = "survey_{year}"
    debug_payloads: bool = False


@dataclass
class LoggingSettings:
    level: str = "INFO"


@dataclass
class AppConfig:
    database: DatabaseConfig = field(default_factory=DatabaseConfig)
    grid: GridConfig = field(default_factory=GridConfig)
    logging: LoggingSettings = field(default_factory=LoggingSettings)

    @classmethod
    def from_dict(cls, data: dict) -> "AppConfig":
        return cls(
            database=DatabaseConfig(**data.get("database", {})),
            grid=GridConfig(**data.get("grid", {})),
            logging=LoggingSettings(**data.get("logging", {})),
        )

    @classmethod
    def load(cls) -> "AppConfig":
        config_path = os.environ.get("CONFIG_FILE", "/run/secrets/config.json")
        path = pathlib.Path(config_path)

        if path.exists():
            with open(path) as f:
                data = json.load(f)
            return cls.from_dict(data)

        print(f"Warning: Config file not found at {config_path}")
        return cls()
