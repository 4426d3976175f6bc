import socket
import logging
import ipaddress
from typing import Optional

import psutil

log = logging.getLogger('dstack_backend')


def local_ip() -> Optional[str]:
    """
    First non-loopback IPv4 address on an interface that is up,
    None if there is no such interface
    """
    try:
        stats = psutil.net_if_stats()
        addresses = psutil.net_if_addrs()
    except OSError as e:
        log.error("Failed to get local IP: %s" % e)
        return None
    for name in sorted(addresses):
        if name in stats and not stats[name].isup:
            continue
        for address in addresses[name]:
            if address.family != socket.AF_INET:
                continue
            if ipaddress.ip_address(address.address).is_loopback:
                continue
            log.info("Detected local IP: %s" % address.address)
            return address.address
    log.error("Failed to get local IP: no active network interface")
    return None
