"""
Configuration system for island_streams

Provides centralized configuration for:
- Channel-layer group naming
- Container state attribute and change-event names
- Keys used in streamed merge deltas
- Consumer limits
"""

from typing import Any, Dict


class IslandStreamsConfig:
    """
    Central configuration for island stream behavior.

    Usage:
        # In settings.py
        ISLAND_STREAMS = {
            'state_attribute': 'data-props',
            'include_timestamp': True,
        }

        # Or programmatically
        from island_streams.config import config
        config.set('streaming_key', 'isStreaming')
    """

    # Default configuration
    _defaults = {
        # Channel-layer group name = group_prefix + stream channel name
        "group_prefix": "island_stream_",
        # Container attribute holding the JSON-serialized props
        "state_attribute": "data-initial-state",
        # Bubbling event dispatched on a container after every state write
        "event_name": "islands:props-updated",
        # Keys written into merge deltas by streamed chunks
        "content_key": "content",
        "streaming_key": "streaming",
        "updated_at_key": "updated_at",
        "include_timestamp": False,  # Add an ISO-8601 timestamp to every streamed delta
        # Consumer limits
        "max_message_size": 65536,  # Largest inbound WebSocket frame accepted (bytes)
    }

    def __init__(self):
        self._config = self._defaults.copy()
        self._load_from_settings()

    def _load_from_settings(self):
        """Load configuration from Django settings if available"""
        from django.conf import settings
        from django.core.exceptions import ImproperlyConfigured

        try:
            overrides = getattr(settings, "ISLAND_STREAMS", None)
        except ImproperlyConfigured:
            # Imported outside a configured Django project
            return
        if isinstance(overrides, dict):
            self._config.update(overrides)

    def get(self, key: str, default: Any = None) -> Any:
        """
        Get a configuration value.

        Args:
            key: Configuration key (supports dot notation for nested values)
            default: Default value if key not found

        Returns:
            Configuration value or default

        Example:
            config.get('state_attribute')  # 'data-initial-state'
        """
        keys = key.split(".")
        value = self._config

        for k in keys:
            if isinstance(value, dict):
                value = value.get(k)
                if value is None:
                    return default
            else:
                return default

        return value if value is not None else default

    def set(self, key: str, value: Any):
        """
        Set a configuration value.

        Args:
            key: Configuration key (supports dot notation for nested values)
            value: Value to set
        """
        keys = key.split(".")

        target = self._config
        for k in keys[:-1]:
            if k not in target:
                target[k] = {}
            target = target[k]

        target[keys[-1]] = value

    def reset(self):
        """Reset configuration to defaults, then re-apply settings.ISLAND_STREAMS"""
        self._config = self._defaults.copy()
        self._load_from_settings()

    def update(self, config_dict: Dict[str, Any]):
        """Update multiple configuration values at once."""
        self._config.update(config_dict)

    def as_dict(self) -> Dict[str, Any]:
        """Get the entire configuration as a dictionary"""
        return self._config.copy()

    @classmethod
    def known_keys(cls) -> frozenset:
        return frozenset(cls._defaults)


# Global configuration instance
config = IslandStreamsConfig()


def get_config() -> IslandStreamsConfig:
    """Get the global configuration instance"""
    return config
