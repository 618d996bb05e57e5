from .links import LinkConfig, LinkFileConfig
from .manager import ConfigManager
from .secrets import SecretResolver, secret_resolver

__all__ = [
    "LinkConfig",
    "LinkFileConfig",
    "ConfigManager",
    "SecretResolver",
    "secret_resolver",
]
