"""
Mindful Companion - Payload Windower Tests

Run with: pytest tests/test_payload_windower.py -v
"""

from mindful.core.message_log import MessageLog
from mindful.core.payload import PAYLOAD_WINDOW, build_payload
from mindful.core.types import ChatSettings, Role, Tone


def fill(log: MessageLog, exchanges: int) -> None:
    for i in range(exchanges):
        log.append(Role.USER, f"user {i}")
        log.append(Role.ASSISTANT, f"assistant {i}")


class TestCandidatePlacement:

    def test_log_before_append_gets_candidate(self, message_log: MessageLog):
        payload = build_payload(message_log.snapshot(), ChatSettings(), "I feel anxious today")

        assert len(payload.messages) == 3
        assert payload.messages[-1].role == Role.USER
        assert payload.messages[-1].text == "I feel anxious today"

    def test_log_after_append_is_not_double_counted(self, message_log: MessageLog):
        message_log.append(Role.USER, "I feel anxious today")
        payload = build_payload(message_log.snapshot(), ChatSettings(), "I feel anxious today")

        assert len(payload.messages) == 3
        texts = [m.text for m in payload.messages]
        assert texts.count("I feel anxious today") == 1

    def test_before_and_after_agree(self, message_log: MessageLog):
        fill(message_log, 3)
        before = build_payload(message_log.snapshot(), ChatSettings(), "next")
        message_log.append(Role.USER, "next")
        after = build_payload(message_log.snapshot(), ChatSettings(), "next")

        assert before == after


class TestWindow:

    def test_truncates_to_most_recent_entries(self, message_log: MessageLog):
        fill(message_log, 15)  # 32 turns
        message_log.append(Role.USER, "latest")

        payload = build_payload(message_log.snapshot(), ChatSettings(), "latest")

        assert len(payload.messages) == PAYLOAD_WINDOW == 20
        assert payload.messages[-1].text == "latest"
        assert payload.messages[0].text == "assistant 5"
        assert all(m.role != Role.SYSTEM for m in payload.messages)

    def test_short_log_keeps_system_instructions(self, message_log: MessageLog):
        payload = build_payload(message_log.snapshot(), ChatSettings(), "hi")
        assert payload.messages[0].role == Role.SYSTEM

    def test_never_exceeds_window(self, message_log: MessageLog):
        for n in range(25):
            payload = build_payload(message_log.snapshot(), ChatSettings(), f"c{n}")
            assert len(payload.messages) <= PAYLOAD_WINDOW
            assert payload.messages[-1].text == f"c{n}"
            message_log.append(Role.USER, f"c{n}")
            message_log.append(Role.ASSISTANT, "ok")


class TestWireFormat:

    def test_to_dict_matches_assistant_contract(self, message_log: MessageLog):
        settings = ChatSettings(tone=Tone.PRACTICAL, user_name="Alex")
        body = build_payload(message_log.snapshot(), settings, "hello").to_dict()

        assert set(body) == {"messages", "settings", "metadata"}
        assert body["settings"] == {"tone": "practical"}
        assert body["metadata"] == {"userName": "Alex"}
        assert body["messages"][-1] == {"role": "user", "text": "hello"}
        assert all(set(m) == {"role", "text"} for m in body["messages"])

    def test_is_deterministic(self, message_log: MessageLog):
        turns = message_log.snapshot()
        assert build_payload(turns, ChatSettings(), "x") == build_payload(turns, ChatSettings(), "x")
