import logging

from django.apps import AppConfig

# Loggers that receive client- or application-controlled string arguments.
# Logger filters do not apply to records propagated from child loggers, so
# each one gets its own filter.
SANITIZED_LOGGERS = (
    "island_streams",
    "island_streams.accumulator",
    "island_streams.broadcast",
    "island_streams.streaming",
    "island_streams.consumer",
    "island_streams.client.dom",
    "island_streams.client.state",
    "island_streams.client.observer",
    "island_streams.client.actions",
    "island_streams.client.runtime",
    "island_streams.management.commands.island_push",
)


class IslandStreamsAppConfig(AppConfig):
    name = "island_streams"
    verbose_name = "Island Streams"

    def ready(self):
        # Import checks module so @register() decorators are executed
        import island_streams.checks  # noqa: F401

        from island_streams.security import IslandLogSanitizerFilter

        log_filter = IslandLogSanitizerFilter()
        for name in SANITIZED_LOGGERS:
            logging.getLogger(name).addFilter(log_filter)
