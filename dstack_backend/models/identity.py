"""
Durable node identity

The node is identified by a secp256k1 keypair. The secret key is stored as
64 hex characters in [data_dir]/key, the public identifier is the hex encoded
x coordinate of the public key (32 bytes, the same form Nostr uses).

Only the hex form is read. A bech32 ``nsec1...`` secret key is rejected with
CorruptKeyError, convert it to hex before placing it in the key file.
"""
import os
import logging
import threading
from typing import Optional

from cryptography.hazmat.primitives.asymmetric import ec

from dstack_backend.errors import StorageError, CorruptKeyError
from dstack_backend.constants import KEY_FILE

log = logging.getLogger('dstack_backend')

SECRET_KEY_LENGTH = 32
SECP256K1_ORDER = 0xFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFEBAAEDCE6AF48A03BBFD25E8CD0364141


class Identity:

    def __init__(self, private_key: ec.EllipticCurvePrivateKey):
        self._private_key = private_key
        x = private_key.public_key().public_numbers().x
        self._public_key = x.to_bytes(SECRET_KEY_LENGTH, 'big').hex()

    @property
    def public_key(self) -> str:
        return self._public_key

    def secret_hex(self) -> str:
        value = self._private_key.private_numbers().private_value
        return value.to_bytes(SECRET_KEY_LENGTH, 'big').hex()

    @staticmethod
    def generate() -> 'Identity':
        return Identity(ec.generate_private_key(ec.SECP256K1()))

    @staticmethod
    def from_secret_hex(secret: str) -> 'Identity':
        """Parse a hex encoded secret key, raises ValueError if it is invalid"""
        secret = secret.strip()
        if secret.startswith("nsec1"):
            raise ValueError("bech32 nsec keys are not supported, store the key as hex")
        raw = bytes.fromhex(secret)
        if len(raw) != SECRET_KEY_LENGTH:
            raise ValueError("secret key must be %d hex characters" % (2 * SECRET_KEY_LENGTH))
        value = int.from_bytes(raw, 'big')
        if not 0 < value < SECP256K1_ORDER:
            raise ValueError("secret key is out of range")
        return Identity(ec.derive_private_key(value, ec.SECP256K1()))

    def __repr__(self):
        return "<dstack_backend.Identity public_key=\"%s\">" % self._public_key

    def __eq__(self, other):
        if not isinstance(other, Identity):
            return NotImplemented
        return self._public_key == other._public_key

    def __hash__(self):
        return hash(self._public_key)


class IdentityStore:
    """
    Loads the node identity from [data_dir]/key or creates it.
    The identity is cached, repeated calls to acquire return the same object.
    """

    def __init__(self, data_dir: str):
        self.data_dir = data_dir
        self.key_file = os.path.join(data_dir, KEY_FILE)
        self._identity: Optional[Identity] = None
        self._lock = threading.Lock()

    def acquire(self) -> Identity:
        with self._lock:
            if self._identity is None:
                if os.path.exists(self.key_file):
                    self._identity = self._load()
                else:
                    self._identity = self._create()
            return self._identity

    def _load(self) -> Identity:
        log.info("Loading existing keypair from [%s]" % self.key_file)
        try:
            with open(self.key_file, 'r') as f:
                content = f.read()
        except (OSError, UnicodeDecodeError) as e:
            raise StorageError("cannot read key file [%s]: %s" % (self.key_file, e)) from e
        try:
            return Identity.from_secret_hex(content)
        except ValueError as e:
            raise CorruptKeyError("invalid private key in [%s]: %s" % (self.key_file, e)) from e

    def _create(self) -> Identity:
        log.info("Generating new keypair")
        identity = Identity.generate()
        try:
            os.makedirs(self.data_dir, exist_ok=True)
            # the key file is sensitive, only the owner may read it
            fd = os.open(self.key_file, os.O_WRONLY | os.O_CREAT | os.O_EXCL, 0o600)
            with os.fdopen(fd, 'w') as f:
                f.write(identity.secret_hex())
        except OSError as e:
            raise StorageError("cannot write key file [%s]: %s" % (self.key_file, e)) from e
        log.info("Saved new keypair to [%s]" % self.key_file)
        log.info("Public key: %s" % identity.public_key)
        return identity
