import ipaddress
from typing import Tuple


# parser for boolean config values
def yesno(val: str):
    """
    Convert a "yes" or "no" argument into a boolean value. Returns ``true``
    if val is "yes" and ``false`` if val is "no". Raises ValueError otherwise.
    """
    if val is None:
        raise ValueError("must be 'yes' or 'no'")
    # standardize the string
    val = val.lower().strip()
    if val == "yes":
        return True
    elif val == "no":
        return False
    else:
        raise ValueError("must be 'yes' or 'no'")


def parse_listen_address(address: str) -> Tuple[str, int]:
    """
    Split an address like 0.0.0.0:8080 or [::]:8080 into (ip, port).
    Raises ValueError if the IP address or port is invalid.
    """
    host, sep, port_str = address.strip().rpartition(':')
    if sep == '':
        raise ValueError("address must be ip:port")
    if host.startswith('[') and host.endswith(']'):
        host = host[1:-1]
    ipaddress.ip_address(host)
    port = int(port_str)
    if port < 0 or port > 65535:
        raise ValueError("port must be between 0 - 65535")
    return host, port
