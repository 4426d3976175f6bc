"""
Whitelist of node public keys

The whitelist file is a JSON object with a ``pubkeys`` array:

    {"pubkeys": ["<hex pubkey>", "<hex pubkey>"]}

Reloads build a complete new snapshot before publishing it with a single
reference assignment, readers never lock and never see a partial list.
"""
import os
import json
import logging
import tempfile
import threading
from typing import List, Iterable, FrozenSet, Tuple

from dstack_backend.errors import LoadError

log = logging.getLogger('dstack_backend')


class Snapshot:
    __slots__ = ('members', 'ordered')

    def __init__(self, pubkeys: Iterable[str]):
        ordered = []
        seen = set()
        for pubkey in pubkeys:
            if pubkey in seen:
                continue  # duplicates are harmless
            seen.add(pubkey)
            ordered.append(pubkey)
        self.members: FrozenSet[str] = frozenset(seen)
        self.ordered: Tuple[str, ...] = tuple(ordered)


def parse_whitelist(content: str) -> List[str]:
    try:
        data = json.loads(content)
    except json.JSONDecodeError as e:
        raise LoadError("invalid JSON: %s" % e) from e
    if not isinstance(data, dict) or 'pubkeys' not in data:
        raise LoadError("missing [pubkeys] array")
    pubkeys = data['pubkeys']
    if not isinstance(pubkeys, list):
        raise LoadError("[pubkeys] must be an array")
    for pubkey in pubkeys:
        if not isinstance(pubkey, str):
            raise LoadError("pubkeys must be strings, got [%r]" % pubkey)
    return pubkeys


def read_whitelist(path: str) -> List[str]:
    try:
        with open(path, 'r') as f:
            content = f.read()
    except FileNotFoundError as e:
        raise LoadError("whitelist file [%s] does not exist" % path) from e
    except (OSError, UnicodeDecodeError) as e:
        raise LoadError("cannot read whitelist file [%s]: %s" % (path, e)) from e
    return parse_whitelist(content)


def write_whitelist(path: str, pubkeys: Iterable[str]):
    """Replace the whitelist file, readers see the old or the new file, never a partial one"""
    directory = os.path.dirname(os.path.abspath(path))
    os.makedirs(directory, exist_ok=True)
    content = json.dumps({'pubkeys': list(pubkeys)}, indent=2)
    fd, tmp_path = tempfile.mkstemp(dir=directory, prefix='.whitelist-')
    try:
        with os.fdopen(fd, 'w') as f:
            f.write(content)
        os.replace(tmp_path, path)
    except OSError:
        os.unlink(tmp_path)
        raise


class AllowlistStore:

    def __init__(self, path: str):
        self.path = path
        self._snapshot = Snapshot([])
        self._write_lock = threading.Lock()

    def is_allowed(self, pubkey: str) -> bool:
        return pubkey in self._snapshot.members

    def list(self) -> List[str]:
        return list(self._snapshot.ordered)

    def __len__(self):
        return len(self._snapshot.ordered)

    def reload(self):
        """
        Load the whitelist file and publish it. Raises LoadError if the file
        is missing or malformed, the current whitelist is kept in that case.
        """
        with self._write_lock:
            snapshot = Snapshot(read_whitelist(self.path))
            self._snapshot = snapshot
        log.info("Loaded %d pubkeys from whitelist" % len(snapshot.ordered))

    def create_if_missing(self) -> bool:
        """Write an empty whitelist file if none exists, returns True if one was created"""
        if os.path.exists(self.path):
            return False
        log.error("Whitelist file not found at [%s]" % self.path)
        log.info("Creating empty whitelist")
        try:
            write_whitelist(self.path, [])
        except OSError as e:
            raise LoadError("cannot create whitelist file [%s]: %s" % (self.path, e)) from e
        return True
