"""RPC framework with ZooKeeper service discovery, a provider, a channel and an example user service."""

__version__ = "0.1.0"

__all__ = [
    "application",
    "channel",
    "client",
    "config",
    "controller",
    "logger",
    "provider",
    "server",
    "service",
    "user",
    "wire",
    "zookeeper",
]