import logging

from dstack_backend import errors
from dstack_backend.constants import RegistryEndPoints
from .session import TcpSession

log = logging.getLogger('dstack_backend')

# the registry answers these when a worker is unknown or not permitted
NOT_PERMITTED_STATUSES = [401, 403, 404]
# the worker is already registered
CONFLICT_STATUS = 409

WRITE_PERMISSION_MODE = "AllowAll"


class RegistryClient:

    def __init__(self, url: str, timeout: float = 10):
        self.url = url.rstrip('/')
        self.session = TcpSession(self.url, timeout)

    def __repr__(self):
        return "<dstack_backend.api.RegistryClient url=\"%s\">" % self.url

    async def check_permission(self, pubkey: str) -> bool:
        """
        True if the registry grants write access to [pubkey].
        Raises RegistryUnreachable on transport errors or unexpected statuses.
        """
        path = RegistryEndPoints.permissions.format(pubkey=pubkey)
        log.info("Checking worker registration status at: %s%s" % (self.url, path))
        try:
            resp = await self.session.get(path)
        except errors.ApiError as e:
            raise errors.RegistryUnreachable("Failed to check registration status: %s" % e) from e

        if resp.status in NOT_PERMITTED_STATUSES:
            log.info("Worker not registered (status: %d)" % resp.status)
            return False
        if not resp.ok:
            raise errors.RegistryUnreachable(
                "Unexpected registry response [%d]: %s" % (resp.status, resp.text))
        try:
            mode = resp.json()['write']['mode']
        except (errors.ApiError, KeyError, TypeError) as e:
            # an unreadable permission record is treated as not registered
            log.error("Failed to parse permission response: %r" % e)
            return False
        is_registered = (mode == WRITE_PERMISSION_MODE)
        log.info("Worker registration status: registered=%s (mode=%s)" % (is_registered, mode))
        return is_registered

    async def register(self, pubkey: str, owner: str, node_type: str):
        """
        Register the worker. Registering the same pubkey again is harmless.
        Raises RegistrationError if the registry rejects the request and
        RegistryUnreachable if it cannot be contacted.
        """
        log.info("Registering worker at: %s%s" % (self.url, RegistryEndPoints.workers))
        log.info("Registration data: pubkey=%s, owner=%s, node_type=%s" % (pubkey, owner, node_type))
        payload = {
            "pubkey": pubkey,
            "owner": owner,
            "node_type": node_type
        }
        try:
            resp = await self.session.post(RegistryEndPoints.workers, json=payload)
        except errors.ApiError as e:
            raise errors.RegistryUnreachable("Failed to send registration request: %s" % e) from e
        if resp.ok:
            log.info("Worker registered successfully")
            return
        if resp.status == CONFLICT_STATUS:
            log.info("Worker is already registered")
            return
        log.error("Failed to register worker: status=%d, error=%s" % (resp.status, resp.text))
        raise errors.RegistrationError(resp.status, resp.text)

    async def close(self):
        await self.session.close()
