import os
import stat
import tempfile
import unittest

from dstack_backend.models import Identity, IdentityStore


class TestIdentity(unittest.TestCase):

    def setUp(self):
        self.temp_dir = tempfile.TemporaryDirectory()
        self.data_dir = os.path.join(self.temp_dir.name, "data")

    def tearDown(self):
        self.temp_dir.cleanup()

    def test_generates_and_saves_keypair(self):
        store = IdentityStore(self.data_dir)
        identity = store.acquire()
        # data directory is created with the key file inside
        key_file = os.path.join(self.data_dir, "key")
        self.assertTrue(os.path.isfile(key_file))
        with open(key_file, 'r') as f:
            secret = f.read()
        self.assertEqual(secret, identity.secret_hex())
        self.assertEqual(len(secret), 64)
        # public key is 32 bytes of hex
        self.assertEqual(len(identity.public_key), 64)
        int(identity.public_key, 16)

    def test_key_file_is_private(self):
        IdentityStore(self.data_dir).acquire()
        mode = stat.S_IMODE(os.stat(os.path.join(self.data_dir, "key")).st_mode)
        self.assertEqual(mode & 0o077, 0)

    def test_acquire_is_idempotent(self):
        store = IdentityStore(self.data_dir)
        identity1 = store.acquire()
        identity2 = store.acquire()
        self.assertIs(identity1, identity2)
        self.assertEqual(identity1.public_key, identity2.public_key)

    def test_identity_is_durable(self):
        # a new store (eg after a restart) loads the same identity
        identity1 = IdentityStore(self.data_dir).acquire()
        identity2 = IdentityStore(self.data_dir).acquire()
        self.assertEqual(identity1.public_key, identity2.public_key)
        self.assertEqual(identity1, identity2)

    def test_loads_existing_key(self):
        os.makedirs(self.data_dir)
        # well known secp256k1 test vector: secret key 1 is the generator point
        with open(os.path.join(self.data_dir, "key"), 'w') as f:
            f.write("%064x\n" % 1)
        identity = IdentityStore(self.data_dir).acquire()
        self.assertEqual(identity.public_key,
                         "79be667ef9dcbbac55a06295ce870b07029bfcdb2dce28d959f2815b16f81798")

    def test_generated_keys_are_unique(self):
        identity1 = Identity.generate()
        identity2 = Identity.generate()
        self.assertNotEqual(identity1.public_key, identity2.public_key)

    def test_repr_does_not_include_secret(self):
        identity = Identity.generate()
        self.assertIn(identity.public_key, repr(identity))
        self.assertNotIn(identity.secret_hex(), repr(identity))
