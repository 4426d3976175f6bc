"""
Startup gate: the node may only serve once its identity is registered.

Usage:
    identity = await registration.run(config, IdentityStore(data_dir), RegistryClient(url))

Any failure raises FatalStartupError, the caller must exit instead of
starting the HTTP server. Nothing here is retried.
"""
import logging

from dstack_backend.models import config as config_model
from dstack_backend.models import Identity, IdentityStore
from dstack_backend.api import RegistryClient
from dstack_backend.errors import (FatalStartupError, MissingConfigurationError,
                                   StorageError, CorruptKeyError,
                                   RegistryUnreachable, RegistrationError)

log = logging.getLogger('dstack_backend')


def check_configuration(registry: config_model.RegistryConfig):
    if registry.url is None:
        raise MissingConfigurationError(
            "REGISTRY_URL (Registry URL) is required for worker registration")
    if registry.owner is None:
        raise MissingConfigurationError(
            "OWNER_ADDRESS (Registry OwnerAddress) is required for worker registration")


async def run(registry: config_model.RegistryConfig,
              identity_store: IdentityStore,
              client) -> Identity:
    """
    Ensure the node identity is registered, returns the identity.

    [client] provides async ``check_permission(pubkey)`` and
    ``register(pubkey, owner, node_type)``, see RegistryClient
    """
    check_configuration(registry)
    try:
        identity = identity_store.acquire()
    except (StorageError, CorruptKeyError) as e:
        raise FatalStartupError("Failed to load or create keypair: %s" % e) from e
    log.info("Public key: %s" % identity.public_key)

    log.info("Ensuring worker is registered...")
    try:
        if await client.check_permission(identity.public_key):
            log.info("Worker is already registered, skipping registration")
            return identity
        log.info("Worker is not registered, proceeding with registration")
        await client.register(identity.public_key, registry.owner, registry.node_type)
    except (RegistryUnreachable, RegistrationError) as e:
        raise FatalStartupError("Worker registration failed: %s" % e) from e

    log.info("Worker registration completed successfully")
    return identity


async def ensure_registered(my_config: config_model.BackendConfig,
                            identity_store: IdentityStore) -> Identity:
    """run() with a RegistryClient built from [my_config]"""
    check_configuration(my_config.registry)
    client = RegistryClient(my_config.registry.url, my_config.registry.timeout)
    try:
        return await run(my_config.registry, identity_store, client)
    finally:
        await client.close()
