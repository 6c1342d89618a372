"""
Django system checks for island_streams.

Run via ``python manage.py check``:

- island_streams.E001 -- CHANNEL_LAYERS not configured
- island_streams.E002 -- ISLAND_STREAMS is not a dict
- island_streams.W001 -- unknown ISLAND_STREAMS keys
"""

from django.core.checks import Error, Warning, register

from .config import IslandStreamsConfig


@register()
def check_configuration(app_configs, **kwargs):
    from django.conf import settings

    errors = []

    if not getattr(settings, "CHANNEL_LAYERS", None):
        errors.append(
            Error(
                "CHANNEL_LAYERS is not configured.",
                hint=(
                    "Island streams broadcast through Django Channels. For development: "
                    "CHANNEL_LAYERS = {'default': {'BACKEND': 'channels.layers.InMemoryChannelLayer'}}"
                ),
                id="island_streams.E001",
            )
        )

    overrides = getattr(settings, "ISLAND_STREAMS", None)
    if overrides is None:
        return errors
    if not isinstance(overrides, dict):
        errors.append(
            Error(
                f"ISLAND_STREAMS must be a dict, got {type(overrides).__name__}.",
                id="island_streams.E002",
            )
        )
        return errors

    unknown = sorted(set(overrides) - IslandStreamsConfig.known_keys())
    if unknown:
        errors.append(
            Warning(
                f"Unknown ISLAND_STREAMS key(s): {', '.join(unknown)}.",
                hint=f"Known keys: {', '.join(sorted(IslandStreamsConfig.known_keys()))}",
                id="island_streams.W001",
            )
        )
    return errors
