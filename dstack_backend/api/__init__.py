from .dstack import DStackClient
from .registry import RegistryClient
from .whitelist import WhitelistClient
