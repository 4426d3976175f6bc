import os
import re
import logging
import configparser
from typing import Mapping, Optional, Dict

import yarl

from dstack_backend.models import config
from dstack_backend.errors import ConfigurationError
from dstack_backend.utilities import yesno, parse_listen_address

log = logging.getLogger('dstack_backend')
"""
# Example configuration (including optional lines)

[Main]
  ListenAddress = 0.0.0.0:8080
  # http(s)://host:port or unix:///path/to/dstack.sock
  DStackURL = http://localhost:19060
  DataDirectory = /var/lib/dstack-backend
  TelemetryTimeout = 10
  LogLevel = INFO
[Registry]
  URL = https://registry.example.com
  OwnerAddress = 0x52908400098527886E0F7030069857D2E4169EE7
  NodeType = node-H100x1
  Timeout = 10
[Whitelist]
  ListenAddress = 0.0.0.0:8082
  File = /etc/dstack-backend/whitelist.json
  ReloadInterval = 2
  CreateMissing = yes
"""

# environment variables override the configuration file
BACKEND_ENVIRONMENT = [
    ('LISTEN_ADDR', 'Main', 'ListenAddress'),
    ('DSTACK_BACKEND_DSTACK_URL', 'Main', 'DStackURL'),
    ('DSTACK_URL', 'Main', 'DStackURL'),  # takes precedence over the line above
    ('DATA_DIR', 'Main', 'DataDirectory'),
    ('LOG_LEVEL', 'Main', 'LogLevel'),
    ('REGISTRY_URL', 'Registry', 'URL'),
    ('OWNER_ADDRESS', 'Registry', 'OwnerAddress'),
    ('NODE_TYPE', 'Registry', 'NodeType'),
]

WHITELIST_ENVIRONMENT = [
    ('LISTEN_ADDR', 'Whitelist', 'ListenAddress'),
    ('WHITELIST_FILE', 'Whitelist', 'File'),
    ('LOG_LEVEL', 'Main', 'LogLevel'),
]

OWNER_ADDRESS_REGEX = re.compile(r'^0x[0-9a-fA-F]{40}$')
LOG_LEVELS = ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']


def run(custom_values=None, environ: Optional[Mapping[str, str]] = None,
        verify=True) -> config.BackendConfig:
    """provide a dict INI configuration and/or environment to override defaults
       if verify is True, make sure the data directory is usable"""
    my_configs = _merge(custom_values, environ, BACKEND_ENVIRONMENT)
    main_config = my_configs['Main']
    registry_config = my_configs['Registry']

    ip_address, port = _listen_address(main_config)

    # DStackURL
    dstack_url = main_config['DStackURL'].strip()
    url = yarl.URL(dstack_url)
    if url.scheme == 'unix':
        if url.path in ('', '/'):
            raise ConfigurationError("DStackURL must include a socket path")
    elif url.scheme not in ('http', 'https') or not url.host:
        raise ConfigurationError("DStackURL must be http(s)://host[:port] or unix:///path")

    # DataDirectory
    data_directory = main_config['DataDirectory']
    if verify and os.path.exists(data_directory):
        if not os.path.isdir(data_directory):
            raise ConfigurationError("DataDirectory [%s] is a file" % data_directory)
        if not os.access(data_directory, os.W_OK):
            raise ConfigurationError("DataDirectory [%s] is not writable" % data_directory)

    telemetry_timeout = _positive_number(main_config, 'TelemetryTimeout')
    log_level = _log_level(main_config)

    # Registry URL and OwnerAddress are checked during registration
    registry_url = registry_config.get('URL', None)
    if registry_url is not None:
        registry_url = registry_url.strip().rstrip('/')
        if registry_url == '':
            registry_url = None
    if registry_url is not None:
        url = yarl.URL(registry_url)
        if url.scheme not in ('http', 'https') or not url.host:
            raise ConfigurationError("Registry URL must be http(s)://host[:port]")

    owner = registry_config.get('OwnerAddress', None)
    if owner is not None:
        owner = owner.strip()
        if owner == '':
            owner = None
        elif OWNER_ADDRESS_REGEX.match(owner) is None:
            raise ConfigurationError("OwnerAddress must be a valid Ethereum address")

    node_type = registry_config['NodeType'].strip()
    if node_type == '':
        raise ConfigurationError("NodeType cannot be empty")

    return config.BackendConfig(
        ip_address=ip_address,
        port=port,
        dstack_url=dstack_url,
        data_directory=data_directory,
        telemetry_timeout=telemetry_timeout,
        log_level=log_level,
        registry=config.RegistryConfig(
            url=registry_url,
            owner=owner,
            node_type=node_type,
            timeout=_positive_number(registry_config, 'Timeout')))


def run_whitelist(custom_values=None, environ: Optional[Mapping[str, str]] = None,
                  verify=True) -> config.WhitelistConfig:
    """configuration for the whitelist service, same override rules as run()"""
    my_configs = _merge(custom_values, environ, WHITELIST_ENVIRONMENT)
    whitelist_config = my_configs['Whitelist']

    ip_address, port = _listen_address(whitelist_config)

    whitelist_file = whitelist_config['File'].strip()
    if whitelist_file == '':
        raise ConfigurationError("Whitelist File cannot be empty")
    if verify and os.path.isdir(whitelist_file):
        raise ConfigurationError("Whitelist File [%s] is a directory" % whitelist_file)

    try:
        create_missing = yesno(whitelist_config['CreateMissing'])
    except ValueError as e:
        raise ConfigurationError("CreateMissing %s" % e) from e

    return config.WhitelistConfig(
        ip_address=ip_address,
        port=port,
        file=whitelist_file,
        reload_interval=_positive_number(whitelist_config, 'ReloadInterval'),
        create_missing=create_missing,
        log_level=_log_level(my_configs['Main']))


def _merge(custom_values, environ, environment_map) -> configparser.ConfigParser:
    my_configs = configparser.ConfigParser()
    my_configs.read_dict(config.DEFAULT_CONFIG)
    if custom_values is not None:
        my_configs.read_dict(custom_values)
    if environ is None:
        environ = os.environ
    overrides: Dict[str, Dict[str, str]] = {}
    for variable, section, key in environment_map:
        if variable in environ:
            overrides.setdefault(section, {})[key] = environ[variable]
    my_configs.read_dict(overrides)
    return my_configs


def _listen_address(section):
    try:
        return parse_listen_address(section['ListenAddress'])
    except ValueError as e:
        raise ConfigurationError("ListenAddress is invalid: %s" % e) from e


def _positive_number(section, name) -> float:
    try:
        value = float(section[name])
        if value <= 0:
            raise ValueError()
    except ValueError:
        raise ConfigurationError("%s must be a positive number" % name)
    return value


def _log_level(section) -> str:
    log_level = section['LogLevel'].strip().upper()
    if log_level not in LOG_LEVELS:
        raise ConfigurationError("LogLevel must be one of [%s]" % '|'.join(LOG_LEVELS))
    return log_level
