"""
Management command for pushing an island update from the shell.

Usage:
    python manage.py island_push chat_123 message_7_island '{"content": "Hi"}'
    python manage.py island_push chat_123 message_7_island '{"content": "Hi"}' --replace
"""

import json
import logging

from django.core.management.base import BaseCommand, CommandError

from island_streams.broadcast import send_merge, send_replace
from island_streams.exceptions import IslandStreamError

logger = logging.getLogger(__name__)


class Command(BaseCommand):
    help = "Broadcast a merge (default) or replace action to an island stream channel"

    def add_arguments(self, parser):
        parser.add_argument("channel", help="Stream channel name (e.g. chat_123)")
        parser.add_argument("target", help="Container id to update")
        parser.add_argument("payload", help="JSON object: delta for merge, full props for replace")
        parser.add_argument(
            "--replace", action="store_true", help="Replace the container's props instead of merging"
        )

    def handle(self, *args, **options):
        try:
            payload = json.loads(options["payload"])
        except ValueError as e:
            raise CommandError(f"Payload is not valid JSON: {e}")
        if not isinstance(payload, dict):
            raise CommandError("Payload must be a JSON object")

        send = send_replace if options["replace"] else send_merge
        try:
            message = send(options["channel"], options["target"], payload)
        except IslandStreamError as e:
            raise CommandError(e.message)

        self.stdout.write(
            self.style.SUCCESS(
                f"Sent {message.action.value} to {message.target} on {options['channel']}"
            )
        )
