from .misc import (yesno, parse_listen_address)
from .network import local_ip
