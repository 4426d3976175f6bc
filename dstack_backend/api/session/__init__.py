from .base_session import BaseSession, ApiResponse
from .tcp_session import TcpSession
from .unix_session import UnixSession
