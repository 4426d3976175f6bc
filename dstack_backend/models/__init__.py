from .identity import Identity, IdentityStore
from .health import (WorkerStatus, GpuInfo, GpuList, HealthSnapshot, HealthAggregator,
                     gpu_from_json, gpu_list_from_json)
from .allowlist import AllowlistStore
from .config import BackendConfig, RegistryConfig, WhitelistConfig
