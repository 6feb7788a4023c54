"""
Transports between wearable and host.
"""

from .base import Transport
from .loopback import LoopbackTransport

__all__ = ["Transport", "LoopbackTransport"]
