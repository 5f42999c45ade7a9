"""
Mindful Companion - Chat Session Tests

Tests the round-trip state machine with scripted transports.
These tests verify:
- Validation rejections never append turns or reach the transport
- Every accepted send appends exactly two turns, success or failure
- The crisis flag is raised locally before the transport resolves
- Settings, consent, reset and listeners behave as collaborators expect

Run with: pytest tests/test_chat_session.py -v
"""

import asyncio

import pytest

from mindful.core.exceptions import SessionBusyError
from mindful.core.session import (
    CONSENT_REQUIRED_ERROR,
    EMPTY_MESSAGE_ERROR,
    EMPTY_REPLY_FALLBACK,
    FAILURE_APOLOGY,
    TRANSPORT_ERROR,
    ChatSession,
)
from mindful.core.types import AssistantReply, Role, SessionPhase, SubmitOutcome, Tone

from conftest import ScriptedTransport


class TestSuccessfulSubmit:

    @pytest.mark.asyncio
    async def test_calm_message_round_trip(self, session: ChatSession, scripted_transport):
        """Seed -> consent -> send -> reply: four turns, no crisis, not pending."""
        result = await session.submit("I feel anxious today")

        assert result.outcome == SubmitOutcome.REPLIED
        assert len(session.messages) == 4
        assert session.messages[2].role == Role.USER
        assert session.messages[2].text == "I feel anxious today"
        assert session.messages[3].role == Role.ASSISTANT
        assert session.messages[3].text == "Let's talk about that."
        assert session.crisis_flag_active is False
        assert session.pending is False
        assert session.last_error is None
        assert scripted_transport.call_count == 1

    @pytest.mark.asyncio
    async def test_text_is_trimmed(self, session: ChatSession, scripted_transport):
        await session.submit("   hello there \n")

        assert session.messages[2].text == "hello there"
        assert scripted_transport.payloads[0].messages[-1].text == "hello there"

    @pytest.mark.asyncio
    async def test_payload_includes_new_turn_once(self, session: ChatSession, scripted_transport):
        await session.submit("first")
        await session.submit("second")

        payload = scripted_transport.payloads[1]
        texts = [m.text for m in payload.messages]
        assert texts[-1] == "second"
        assert texts.count("second") == 1
        assert len(payload.messages) == 5

    @pytest.mark.asyncio
    async def test_pending_during_round_trip(self, session: ChatSession, scripted_transport):
        await session.submit("hello")
        assert scripted_transport.pending_at_call == [True]
        assert session.phase == SessionPhase.IDLE

    @pytest.mark.asyncio
    async def test_empty_reply_uses_fallback(self, scripted_transport: ScriptedTransport):
        scripted_transport.reply = AssistantReply(reply="")
        chat = ChatSession(transport=scripted_transport)
        chat.set_consent(True)

        result = await chat.submit("hello")

        assert result.outcome == SubmitOutcome.REPLIED
        assert chat.messages[-1].text == EMPTY_REPLY_FALLBACK
        assert chat.last_error is None

    @pytest.mark.asyncio
    async def test_submit_uses_input_buffer(self, session: ChatSession):
        session.set_input("  from the buffer ")

        await session.submit()

        assert session.messages[2].text == "from the buffer"
        assert session.input_text == ""

    @pytest.mark.asyncio
    async def test_settings_read_at_send_time(self, session: ChatSession, scripted_transport):
        session.update_settings(tone=Tone.CURIOUS, user_name="Sam")
        await session.submit("hello")

        body = scripted_transport.payloads[0].to_dict()
        assert body["settings"] == {"tone": "curious"}
        assert body["metadata"] == {"userName": "Sam"}


class TestCrisisFlag:

    @pytest.mark.asyncio
    async def test_flag_set_before_transport_resolves(self, session: ChatSession, scripted_transport):
        await session.submit("I want to end my life")

        assert scripted_transport.flag_at_call == [True]
        assert session.crisis_flag_active is True

    @pytest.mark.asyncio
    async def test_flag_set_even_when_transport_fails(
        self, failing_session: ChatSession, failing_transport: ScriptedTransport
    ):
        await failing_session.submit("I want to end my life")

        assert failing_transport.flag_at_call == [True]
        assert failing_session.crisis_flag_active is True

    @pytest.mark.asyncio
    async def test_upstream_flag_sets_crisis(self, scripted_transport: ScriptedTransport):
        scripted_transport.reply = AssistantReply(reply="I hear you.", flagged=True)
        chat = ChatSession(transport=scripted_transport)
        chat.set_consent(True)

        await chat.submit("everything is grey")

        assert chat.crisis_flag_active is True

    @pytest.mark.asyncio
    async def test_flag_is_sticky_until_dismissed(self, session: ChatSession):
        await session.submit("I want to die")
        await session.submit("I feel a little calmer")
        assert session.crisis_flag_active is True

        session.dismiss_crisis_flag()
        assert session.crisis_flag_active is False

        await session.submit("ok")
        assert session.crisis_flag_active is False


class TestFailedSubmit:

    @pytest.mark.asyncio
    async def test_transport_failure_appends_apology(self, failing_session: ChatSession):
        result = await failing_session.submit("I feel anxious today")

        assert result.outcome == SubmitOutcome.FAILED
        assert len(failing_session.messages) == 4
        assert failing_session.messages[-1].role == Role.ASSISTANT
        assert failing_session.messages[-1].text == FAILURE_APOLOGY
        assert failing_session.last_error == TRANSPORT_ERROR
        assert failing_session.pending is False

    @pytest.mark.asyncio
    async def test_unexpected_exception_is_contained(self):
        transport = ScriptedTransport(error=RuntimeError("boom"))
        chat = ChatSession(transport=transport)
        chat.set_consent(True)

        result = await chat.submit("hello")

        assert result.outcome == SubmitOutcome.FAILED
        assert chat.messages[-1].text == FAILURE_APOLOGY
        assert chat.pending is False

    @pytest.mark.asyncio
    async def test_next_attempt_clears_error(self, failing_session: ChatSession, failing_transport):
        await failing_session.submit("first")
        failing_transport.error = None

        await failing_session.submit("second")

        assert failing_session.last_error is None
        assert len(failing_session.messages) == 6


class TestRejectedSubmit:

    @pytest.mark.asyncio
    @pytest.mark.parametrize("text", ["", "   ", "\n\t"])
    async def test_empty_text_rejected(self, session: ChatSession, scripted_transport, text):
        result = await session.submit(text)

        assert result.outcome == SubmitOutcome.REJECTED
        assert len(session.messages) == 2
        assert session.last_error == EMPTY_MESSAGE_ERROR
        assert session.pending is False
        assert scripted_transport.call_count == 0

    @pytest.mark.asyncio
    async def test_missing_consent_rejected(self, scripted_transport: ScriptedTransport):
        chat = ChatSession(transport=scripted_transport)
        chat.set_input("I want to end my life")

        result = await chat.submit()

        assert result.outcome == SubmitOutcome.REJECTED
        assert chat.last_error == CONSENT_REQUIRED_ERROR
        assert len(chat.messages) == 2
        assert chat.input_text == "I want to end my life"
        assert chat.crisis_flag_active is False
        assert scripted_transport.call_count == 0

    @pytest.mark.asyncio
    async def test_busy_session_rejects_second_submit(self):
        gate = asyncio.Event()

        class SlowTransport(ScriptedTransport):
            async def send(self, payload):
                await gate.wait()
                return await super().send(payload)

        transport = SlowTransport()
        chat = ChatSession(transport=transport)
        chat.set_consent(True)

        first = asyncio.create_task(chat.submit("one"))
        await asyncio.sleep(0)
        assert chat.pending is True

        with pytest.raises(SessionBusyError):
            await chat.submit("two")
        assert len(chat.messages) == 3

        gate.set()
        await first
        assert len(chat.messages) == 4
        assert chat.pending is False


class TestCancelledSubmit:

    @pytest.mark.asyncio
    async def test_cancel_returns_session_to_idle(self):
        """A cancelled round trip leaves an apology turn and an appendable log."""

        class SilentTransport(ScriptedTransport):
            async def send(self, payload):
                await asyncio.Event().wait()

        chat = ChatSession(transport=SilentTransport())
        chat.set_consent(True)

        task = asyncio.create_task(chat.submit("hello"))
        await asyncio.sleep(0)
        assert chat.pending is True

        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

        assert chat.pending is False
        assert chat.phase == SessionPhase.IDLE
        assert len(chat.messages) == 4
        assert chat.messages[-1].text == FAILURE_APOLOGY
        assert chat.last_error == TRANSPORT_ERROR

    @pytest.mark.asyncio
    async def test_session_usable_after_cancel(self):
        gate = asyncio.Event()

        class GatedTransport(ScriptedTransport):
            async def send(self, payload):
                if not gate.is_set():
                    await asyncio.Event().wait()
                return await super().send(payload)

        chat = ChatSession(transport=GatedTransport())
        chat.set_consent(True)

        task = asyncio.create_task(chat.submit("first"))
        await asyncio.sleep(0)
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

        gate.set()
        result = await chat.submit("second")

        assert result.outcome == SubmitOutcome.REPLIED
        assert [t.id for t in chat.messages] == [0, 1, 2, 3, 4, 5]
        assert chat.last_error is None


class TestCommands:

    @pytest.mark.asyncio
    async def test_reset_keeps_settings_and_consent(self, session: ChatSession):
        session.update_settings(tone=Tone.PRACTICAL, user_name="Alex")
        await session.submit("hello")

        session.reset_conversation()

        assert len(session.messages) == 2
        assert session.message_log.next_id == 2
        assert session.consent_granted is True
        assert session.settings.tone == Tone.PRACTICAL
        assert session.settings.user_name == "Alex"

    def test_partial_settings_update(self, session: ChatSession):
        session.update_settings(user_name="Alex")
        session.update_settings(tone="curious")

        assert session.settings.user_name == "Alex"
        assert session.settings.tone == Tone.CURIOUS

    def test_clear_input(self, session: ChatSession):
        session.set_input("draft")
        session.clear_input()
        assert session.input_text == ""

    @pytest.mark.asyncio
    async def test_export_has_one_block_per_turn(self, session: ChatSession):
        await session.submit("hello")
        assert len(session.export_transcript().split("\n\n")) == len(session.messages)

    def test_state_snapshot_is_detached(self, session: ChatSession):
        snap = session.state()
        session.update_settings(tone=Tone.CURIOUS)

        assert snap.settings.tone == Tone.COMPASSIONATE
        assert snap.consent_granted is True
        assert snap.phase == SessionPhase.IDLE


class TestListeners:

    @pytest.mark.asyncio
    async def test_listeners_see_pending_then_idle(self, session: ChatSession):
        seen = []
        session.add_listener(lambda s: seen.append((s.pending, len(s.messages))))

        await session.submit("hello")

        assert seen == [(True, 3), (False, 4)]

    @pytest.mark.asyncio
    async def test_failing_listener_does_not_break_session(self, session: ChatSession):
        def broken(_):
            raise ValueError("listener bug")

        session.add_listener(broken)
        result = await session.submit("hello")

        assert result.outcome == SubmitOutcome.REPLIED
        assert len(session.messages) == 4

    def test_remove_listener(self, session: ChatSession):
        seen = []
        listener = lambda s: seen.append(s.input_text)  # noqa: E731
        session.add_listener(listener)
        session.remove_listener(listener)

        session.set_input("x")

        assert seen == []
