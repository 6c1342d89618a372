"""
Tests for the client runtime: state store, observer bridge, action registry.
"""

import json
import logging

import pytest
from django.core.exceptions import ImproperlyConfigured

from island_streams.client import (
    ActionRegistry,
    ContainerStateStore,
    Document,
    Element,
    IslandRuntime,
    ObserverBridge,
    StreamingState,
)
from island_streams.messages import ActionMessage, ActionType


def _state(document, target):
    return json.loads(document.get_element_by_id(target).get_attribute("data-initial-state"))


class TestContainerStateStore:
    def test_read(self, document):
        store = ContainerStateStore(document)
        assert store.read("profile") == {"a": 0, "b": 2}

    def test_read_missing_container(self, document):
        assert ContainerStateStore(document).read("nope") == {}

    def test_read_missing_attribute(self):
        document = Document([Element("x")])
        assert ContainerStateStore(document).read("x") == {}

    @pytest.mark.parametrize("raw", ["{broken", "[1, 2]", '"text"', "null"])
    def test_read_unparsable_or_non_object(self, raw):
        document = Document([Element("x", {"data-initial-state": raw})])
        assert ContainerStateStore(document).read("x") == {}

    def test_write(self, document):
        store = ContainerStateStore(document)
        assert store.write("profile", {"z": 1}) is True
        assert _state(document, "profile") == {"z": 1}

    def test_write_missing_container_is_noop(self, document):
        assert ContainerStateStore(document).write("nope", {"z": 1}) is False
        assert "nope" not in document

    def test_custom_attribute(self):
        document = Document([Element("x", {"data-props": '{"k": 1}'})])
        assert ContainerStateStore(document, attribute="data-props").read("x") == {"k": 1}


class TestActionRegistry:
    def test_merge_overwrites_and_preserves(self, runtime, document):
        assert runtime.receive({"action": "merge", "target": "profile", "payload": {"a": 1}})
        assert _state(document, "profile") == {"a": 1, "b": 2}

    def test_merge_is_idempotent(self, runtime, document):
        message = {"action": "merge", "target": "profile", "payload": {"a": 1}}
        runtime.receive(message)
        once = _state(document, "profile")
        runtime.receive(message)
        assert _state(document, "profile") == once

    def test_merge_over_unparsable_state(self, runtime, document):
        document.get_element_by_id("profile").set_attribute("data-initial-state", "{oops")
        runtime.receive({"action": "merge", "target": "profile", "payload": {"a": 1}})
        assert _state(document, "profile") == {"a": 1}

    def test_replace_drops_other_keys(self, runtime, document):
        assert runtime.receive({"action": "replace", "target": "profile", "payload": {"x": 5}})
        assert _state(document, "profile") == {"x": 5}

    def test_replace_without_prior_stream(self, runtime, document):
        runtime.receive(
            {"action": "replace", "target": "m1", "payload": {"content": "Done", "streaming": False}}
        )
        assert _state(document, "m1") == {"content": "Done", "streaming": False}

    @pytest.mark.parametrize("action", ["merge", "replace"])
    def test_missing_container_is_dropped(self, runtime, document, caplog, action):
        before = {el.id: el.attributes for el in document}
        with caplog.at_level(logging.WARNING, logger="island_streams"):
            result = runtime.receive({"action": action, "target": "ghost", "payload": {"a": 1}})

        assert result is False
        assert {el.id: el.attributes for el in document} == before
        assert "Target container not found" in caplog.text

    def test_unknown_action_is_dropped(self, runtime, caplog):
        with caplog.at_level(logging.WARNING, logger="island_streams"):
            assert runtime.receive({"action": "append", "target": "m1", "payload": {}}) is False
        assert "Unknown island action" in caplog.text

    def test_malformed_payload_is_dropped(self, runtime, document, caplog):
        with caplog.at_level(logging.WARNING, logger="island_streams"):
            assert runtime.receive({"action": "merge", "target": "m1", "payload": "{nope"}) is False
        assert _state(document, "m1") == {"content": "", "streaming": True}

    def test_deeply_nested_message_is_dropped(self, runtime, document, caplog):
        raw = '{"action": "merge", "target": "m1", "payload": ' + "[" * 200000 + "}"
        with caplog.at_level(logging.WARNING, logger="island_streams"):
            assert runtime.receive(raw) is False
        assert "Rejected malformed island message" in caplog.text
        assert _state(document, "m1") == {"content": "", "streaming": True}

    def test_deeply_nested_state_reads_as_empty(self, runtime, document, caplog):
        with caplog.at_level(logging.WARNING, logger="island_streams"):
            document.get_element_by_id("m1").set_attribute("data-initial-state", "[" * 200000)
            assert runtime.props("m1") == {}
            assert runtime.receive({"action": "merge", "target": "m1", "payload": {"content": "ok"}})
        assert _state(document, "m1") == {"content": "ok"}
        assert "Unparsable state on container m1" in caplog.text

    @pytest.mark.parametrize("payload", [["x"], "not json", {"when": object()}])
    def test_bad_payload_on_action_message_is_dropped(self, runtime, document, caplog, payload):
        with caplog.at_level(logging.WARNING, logger="island_streams"):
            assert runtime.receive(ActionMessage(ActionType.MERGE, "profile", payload)) is False
            assert runtime.receive(ActionMessage(ActionType.REPLACE, "profile", payload)) is False
        assert "Rejected malformed island message" in caplog.text
        assert _state(document, "profile") == {"a": 0, "b": 2}

    def test_action_message_with_unknown_action_is_dropped(self, runtime, document):
        assert runtime.receive(ActionMessage("append", "profile", {"a": 1})) is False
        assert _state(document, "profile") == {"a": 0, "b": 2}

    def test_keeps_processing_after_bad_message(self, runtime, document):
        applied = runtime.receive_many(
            [
                "garbage",
                {"action": "explode", "target": "m1", "payload": {}},
                {"action": "merge", "target": "m1", "payload": {"content": "ok"}},
            ]
        )
        assert applied == 1
        assert _state(document, "m1")["content"] == "ok"

    def test_accepts_action_message_and_json(self, runtime, document):
        runtime.receive(ActionMessage.merge("profile", {"a": 7}))
        runtime.receive('{"action": "merge", "target": "profile", "payload": {"b": 8}}')
        assert _state(document, "profile") == {"a": 7, "b": 8}

    def test_incomplete_handler_table_fails_fast(self, document):
        class MergeOnlyRegistry(ActionRegistry):
            def handler_table(self):
                return {ActionType.MERGE: self.handle_merge}

        store = ContainerStateStore(document)
        bridge = ObserverBridge(document, store)
        with pytest.raises(ImproperlyConfigured, match="replace"):
            MergeOnlyRegistry(store, bridge)


class TestObserverBridge:
    def test_merge_notification_carries_delta(self, runtime):
        seen = []
        runtime.bridge.subscribe("profile", seen.append)

        runtime.receive({"action": "merge", "target": "profile", "payload": {"a": 1}})

        assert len(seen) == 1
        assert seen[0].target == "profile"
        assert seen[0].state == {"a": 1, "b": 2}
        assert seen[0].delta == {"a": 1}

    def test_replace_notification_has_no_delta(self, runtime):
        seen = []
        runtime.bridge.subscribe("profile", seen.append)

        runtime.receive({"action": "replace", "target": "profile", "payload": {"x": 5}})

        assert seen[0].state == {"x": 5}
        assert seen[0].delta is None

    def test_external_attribute_write_notifies(self, runtime, document):
        seen = []
        runtime.bridge.subscribe("profile", seen.append)

        document.get_element_by_id("profile").set_attribute("data-initial-state", '{"ext": true}')

        assert seen[0].state == {"ext": True}

    def test_other_attributes_ignored(self, runtime, document):
        seen = []
        runtime.bridge.subscribe("profile", seen.append)
        document.get_element_by_id("profile").set_attribute("class", "highlight")
        assert seen == []

    def test_only_target_subscribers_notified(self, runtime):
        profile, message = [], []
        runtime.bridge.subscribe("profile", profile.append)
        runtime.bridge.subscribe("m1", message.append)

        runtime.receive({"action": "merge", "target": "m1", "payload": {"content": "x"}})

        assert profile == []
        assert len(message) == 1

    def test_unsubscribe(self, runtime):
        seen = []
        subscription = runtime.bridge.subscribe("profile", seen.append)
        subscription.unsubscribe()
        subscription.unsubscribe()

        runtime.receive({"action": "merge", "target": "profile", "payload": {"a": 1}})

        assert seen == []
        assert runtime.bridge.subscriber_count("profile") == 0

    def test_failing_subscriber_does_not_block_others(self, runtime, caplog):
        seen = []

        def broken(notification):
            raise RuntimeError("render failed")

        runtime.bridge.subscribe("profile", broken)
        runtime.bridge.subscribe("profile", seen.append)

        with caplog.at_level(logging.ERROR, logger="island_streams"):
            runtime.receive({"action": "merge", "target": "profile", "payload": {"a": 1}})

        assert len(seen) == 1
        assert "render failed" in caplog.text

    def test_change_event_bubbles_to_document(self, runtime, document):
        events = []
        document.add_event_listener("islands:props-updated", events.append)

        runtime.receive({"action": "merge", "target": "profile", "payload": {"a": 1}})
        runtime.receive({"action": "replace", "target": "profile", "payload": {"x": 5}})

        assert events[0].detail == {"target": "profile", "state": {"a": 1, "b": 2}, "delta": {"a": 1}}
        assert events[1].detail == {"target": "profile", "state": {"x": 5}}
        assert events[0].target is document.get_element_by_id("profile")

    def test_detached_container_is_not_observed(self, runtime, document):
        seen = []
        runtime.bridge.subscribe("profile", seen.append)
        element = document.remove("profile")

        element.set_attribute("data-initial-state", "{}")

        assert seen == []

    def test_close_disconnects(self, document):
        store = ContainerStateStore(document)
        bridge = ObserverBridge(document, store)
        seen = []
        bridge.subscribe("profile", seen.append)
        bridge.close()

        store.write("profile", {"a": 9})

        assert seen == []


class TestIslandRuntime:
    def test_hello_scenario_observed_states(self, runtime):
        renders = []
        runtime.mount("m1", renders.append)

        runtime.receive({"action": "merge", "target": "m1", "payload": {"content": "Hel", "streaming": True}})
        runtime.receive({"action": "merge", "target": "m1", "payload": {"content": "Hello", "streaming": True}})
        runtime.receive({"action": "merge", "target": "m1", "payload": {"content": "Hello", "streaming": False}})

        assert renders == [
            {"content": "", "streaming": True},
            {"content": "Hel", "streaming": True},
            {"content": "Hello", "streaming": True},
            {"content": "Hello", "streaming": False},
        ]

    def test_instance_props_track_container(self, runtime):
        instance = runtime.mount("profile")
        assert instance.props == {"a": 0, "b": 2}

        runtime.receive({"action": "merge", "target": "profile", "payload": {"a": 1}})

        assert instance.props == {"a": 1, "b": 2}
        assert instance.last_delta == {"a": 1}
        assert instance.render_count == 2

    def test_unmount_releases_subscription(self, runtime):
        instance = runtime.mount("profile")
        assert runtime.bridge.subscriber_count("profile") == 1

        instance.unmount()

        assert not instance.mounted
        assert runtime.bridge.subscriber_count("profile") == 0
        assert runtime.instances == []
        runtime.receive({"action": "merge", "target": "profile", "payload": {"a": 1}})
        assert instance.props == {"a": 0, "b": 2}

    def test_mount_missing_container_warns(self, runtime, caplog):
        with caplog.at_level(logging.WARNING, logger="island_streams"):
            instance = runtime.mount("later")
        assert instance.props == {}
        assert "missing container" in caplog.text

    def test_update_props_notifies(self, runtime):
        instance = runtime.mount("profile")
        assert runtime.update_props("profile", {"saved": True}) is True
        assert instance.props == {"saved": True}
        assert runtime.props("profile") == {"saved": True}

    def test_update_props_missing_container(self, runtime):
        assert runtime.update_props("ghost", {"a": 1}) is False

    def test_reattached_container_gets_no_replay(self, runtime, document):
        element = document.remove("m1")
        runtime.receive({"action": "merge", "target": "m1", "payload": {"content": "lost"}})
        document.append(element)

        assert runtime.props("m1") == {"content": "", "streaming": True}

    def test_custom_attribute_and_event(self):
        document = Document([Element("x", {"data-props": "{}"})])
        runtime = IslandRuntime(document, state_attribute="data-props", event_name="props:changed")
        events = []
        document.add_event_listener("props:changed", events.append)

        runtime.receive({"action": "merge", "target": "x", "payload": {"k": 1}})

        assert json.loads(document.get_element_by_id("x").get_attribute("data-props")) == {"k": 1}
        assert len(events) == 1

    def test_close_unmounts_everything(self, document):
        runtime = IslandRuntime(document)
        a = runtime.mount("m1")
        b = runtime.mount("profile")
        runtime.close()
        assert not a.mounted and not b.mounted


class TestStreamingState:
    def test_applies_deltas_and_replacements(self, runtime):
        state = StreamingState(runtime, "profile", initial={"a": 0, "local": True})

        runtime.receive({"action": "merge", "target": "profile", "payload": {"a": 1}})
        assert state.state == {"a": 1, "local": True}

        runtime.receive({"action": "replace", "target": "profile", "payload": {"x": 5}})
        assert state.state == {"x": 5}

    def test_ignores_other_targets(self, runtime):
        state = StreamingState(runtime, "profile")
        runtime.receive({"action": "merge", "target": "m1", "payload": {"content": "x"}})
        assert state.state == {}

    def test_close_stops_listening(self, runtime):
        state = StreamingState(runtime, "profile")
        state.close()
        runtime.receive({"action": "merge", "target": "profile", "payload": {"a": 1}})
        assert state.state == {}


class TestDocument:
    def test_from_html(self):
        document = Document.from_html(
            '<main><div id="m1" data-island="ChatMessage" '
            'data-initial-state="{&quot;content&quot;: &quot;hi&quot;}"></div>'
            "<p>no id</p><br id=\"sep\"/></main>"
        )
        assert ContainerStateStore(document).read("m1") == {"content": "hi"}
        assert document.get_element_by_id("m1").get_attribute("data-island") == "ChatMessage"
        assert "sep" in document

    def test_append_replaces_id_holder(self):
        document = Document()
        old = document.create_element("x")
        new = document.create_element("x")
        assert document.get_element_by_id("x") is new
        assert old.document is None

    def test_remove_by_id(self):
        document = Document([Element("x")])
        assert document.remove("x").id == "x"
        assert document.remove("x") is None
