from dataclasses import dataclass

# reported in every health snapshot
PROTOCOL_VERSION = "1.0.0"
TOPIC = "dstack-gpu-monitor"

DEFAULT_NODE_TYPE = "node-H100x1"
KEY_FILE = "key"


@dataclass
class EndPoints:
    root = '/'
    health = '/health'
    version_json = '/version.json'

    # whitelist service
    whitelist = '/api/whitelist'
    whitelist_list = '/api/list'


@dataclass
class RegistryEndPoints:
    permissions = '/permissions/{pubkey}'
    workers = '/workers'


@dataclass
class DStackEndPoints:
    list_gpus = '/prpc/ListGpus?json'


@dataclass
class ApiErrorMessages:
    specify_pubkey = 'specify a pubkey'


@dataclass
class ServiceNames:
    backend = 'DStack Backend Health Monitor'
    whitelist = 'Whitelist Service - Centralized Pubkey Verification'
