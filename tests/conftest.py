"""
Pytest configuration and fixtures for island_streams tests.
"""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from channels.layers import channel_layers

from island_streams.accumulator import AccumulatorStore, reset_accumulator_store, set_accumulator_store
from island_streams.client import Document, Element, IslandRuntime
from island_streams.config import config as islands_config


@pytest.fixture(autouse=True)
def fresh_state():
    """Give every test its own accumulator store, channel layer and config."""
    store = AccumulatorStore()
    set_accumulator_store(store)
    channel_layers.backends = {}
    islands_config.reset()

    yield store

    reset_accumulator_store()
    channel_layers.backends = {}
    islands_config.reset()


@pytest.fixture
def store(fresh_state):
    """The accumulator store installed for this test."""
    return fresh_state


@pytest.fixture
def mock_layer():
    """Patch the channel layer used by the broadcast dispatcher; records every group_send."""
    layer = MagicMock()
    layer.sent = []

    async def group_send(group, message):
        layer.sent.append((group, message))

    layer.group_send = AsyncMock(side_effect=group_send)
    with patch("island_streams.broadcast.get_channel_layer", return_value=layer):
        yield layer


@pytest.fixture
def document():
    """A page with one streaming message container and one plain container."""
    return Document(
        [
            Element("m1", {"data-initial-state": '{"content": "", "streaming": true}'}),
            Element("profile", {"data-initial-state": '{"a": 0, "b": 2}'}),
        ]
    )


@pytest.fixture
def runtime(document):
    rt = IslandRuntime(document)
    yield rt
    rt.close()
