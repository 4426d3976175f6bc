"""
Configuration data structures for dstack-backend
Use load_config to retrieve the config objects
"""

from typing import Optional
from dataclasses import dataclass

from dstack_backend.constants import DEFAULT_NODE_TYPE

DEFAULT_CONFIG = {
    "Main":
        {
            "ListenAddress": "0.0.0.0:8080",
            "DStackURL": "http://localhost:19060",
            "DataDirectory": "./data",
            "TelemetryTimeout": 10,
            "LogLevel": "INFO",
        },
    "Registry":
        {
            "NodeType": DEFAULT_NODE_TYPE,
            "Timeout": 10,
        },
    "Whitelist":
        {
            "ListenAddress": "0.0.0.0:8082",
            "File": "./whitelist.json",
            "ReloadInterval": 2,
            "CreateMissing": "yes",
        }
}


@dataclass
class RegistryConfig:
    url: Optional[str]
    owner: Optional[str]
    node_type: str
    timeout: float


@dataclass
class BackendConfig:
    ip_address: str
    port: int
    dstack_url: str
    data_directory: str
    telemetry_timeout: float
    log_level: str
    registry: RegistryConfig


@dataclass
class WhitelistConfig:
    ip_address: str
    port: int
    file: str
    reload_interval: float
    create_missing: bool
    log_level: str
