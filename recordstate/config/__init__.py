from .loader import ConfigError, EngineConfig, apply_env_overrides, load_config

__all__ = [
    "ConfigError",
    "EngineConfig",
    "apply_env_overrides",
    "load_config",
]
