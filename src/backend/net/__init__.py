"""
Network utilities: proxy config, HEAD size probes and the size cache.
"""

from .probe import HeadRequestProber, ProbeConfig
from .proxy import ProxyConfig
from .size_cache import FileSizeCache

__all__ = [
    "FileSizeCache",
    "HeadRequestProber",
    "ProbeConfig",
    "ProxyConfig",
]
