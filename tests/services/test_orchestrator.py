"""Tests for RunOrchestrator."""

import asyncio
import httpx
import pytest
from datetime import datetime

from chatrelay.db.database_models import AttachmentDO, MessageDO
from chatrelay.gateway.client import ChatGateway
from chatrelay.gateway.errors import AuthError, ErrorKind, NotFound, RateLimited
from chatrelay.services.orchestrator import RunOrchestrator, TurnState, TurnStatus
from chatrelay.services.side_effects import SideEffectDispatcher


@pytest.fixture
def sleeps():
    """Intervals passed to the orchestrator's sleep."""
    return []


@pytest.fixture
def dispatcher(store, gateway):
    return SideEffectDispatcher(store, gateway)


@pytest.fixture
def orchestrator(gateway, store, dispatcher, sleeps):
    """Orchestrator with a recording sleep that returns immediately."""
    async def recording_sleep(seconds):
        sleeps.append(seconds)

    return RunOrchestrator(gateway, store, dispatcher, sleep=recording_sleep)


class TestRunOrchestrator:
    """Tests for RunOrchestrator."""

    class TestValidation:
        """SUT: RunOrchestrator.run_turn (preconditions)"""

        @pytest.mark.parametrize("text", ["", "   ", "\n\t"])
        async def test_empty_input_skipped(self, orchestrator, gateway, store, make_thread, direct_config, text):
            """Blank input should do nothing at all."""
            await make_thread()
            result = await orchestrator.run_turn("thread_1", text, direct_config)
            assert result.status == TurnStatus.SKIPPED
            assert gateway.calls == []
            assert await store.list_messages("thread_1") == []

        async def test_missing_configuration_skipped(self, orchestrator, gateway, make_thread):
            await make_thread()
            result = await orchestrator.run_turn("thread_1", "Hello", None)
            assert result.status == TurnStatus.SKIPPED
            assert gateway.calls == []

        async def test_unknown_thread_skipped(self, orchestrator, gateway, direct_config):
            result = await orchestrator.run_turn("missing", "Hello", direct_config)
            assert result.status == TurnStatus.SKIPPED
            assert "missing" in result.detail
            assert gateway.calls == []

    class TestDirectPath:
        """SUT: RunOrchestrator.run_turn (direct mode)"""

        async def test_hello_scenario(self, orchestrator, gateway, store, make_thread, direct_config):
            """Empty thread + "Hello" sends exactly [{user, Hello}] and stores "Hi there"."""
            await make_thread(thread_id="local-1")
            result = await orchestrator.run_turn("local-1", "Hello", direct_config)

            assert result.status == TurnStatus.COMPLETED
            assert gateway.count("direct_completion") == 1
            assert gateway.histories[0] == [{"role": "user", "content": "Hello"}]

            messages = await store.list_messages("local-1")
            assert [(m.role, m.content) for m in messages] == [("user", "Hello"), ("assistant", "Hi there")]
            assert result.message.content == "Hi there"
            assert result.message.id == messages[-1].id

        async def test_no_polling_in_direct_mode(self, orchestrator, gateway, make_thread, direct_config, sleeps):
            await make_thread()
            await orchestrator.run_turn("thread_1", "Hello", direct_config)
            assert gateway.count("poll_run") == 0
            assert gateway.count("post_message") == 0
            assert sleeps == []

        async def test_context_window_capped_oldest_first(self, orchestrator, gateway, store, make_thread, direct_config):
            """Only the 10 most recent prior messages are sent, oldest first."""
            await make_thread()
            for i in range(15):
                role = "user" if i % 2 == 0 else "assistant"
                await store.append_message(MessageDO(thread_id="thread_1", role=role, content=f"m{i}"))

            await orchestrator.run_turn("thread_1", "latest", direct_config)

            history = gateway.histories[0]
            assert len(history) == 11
            assert [turn["content"] for turn in history[:10]] == [f"m{i}" for i in range(5, 15)]
            assert history[-1] == {"role": "user", "content": "latest"}

        async def test_history_carries_only_role_and_text(self, orchestrator, gateway, store, make_thread, direct_config):
            await make_thread()
            await store.append_message(MessageDO(
                thread_id="thread_1", role="user", content="with file",
                attachments=[AttachmentDO(id="file_1", filename="a.txt", content_type="text/plain", size=3)]
            ))
            await orchestrator.run_turn("thread_1", "next", direct_config)
            assert gateway.histories[0][0] == {"role": "user", "content": "with file"}

        @pytest.mark.parametrize("reply", ["", "   "])
        async def test_empty_completion(self, orchestrator, gateway, store, make_thread, direct_config, reply):
            await make_thread()
            gateway.completion = reply
            result = await orchestrator.run_turn("thread_1", "Hello", direct_config)

            assert result.status == TurnStatus.FAILED
            assert result.error_kind == ErrorKind.EMPTY_COMPLETION
            messages = await store.list_messages("thread_1")
            assert [m.role for m in messages] == ["user"]

        async def test_assisted_without_assistant_id_goes_direct(self, orchestrator, gateway, make_thread, make_config):
            """Assisted mode with no assistant id takes the direct path."""
            from chatrelay.db.database_models import WorkflowMode

            await make_thread()
            config = make_config(mode=WorkflowMode.ASSISTED, assistant_id=None)
            result = await orchestrator.run_turn("thread_1", "Hello", config)
            assert result.ok
            assert gateway.count("direct_completion") == 1
            assert gateway.count("start_run") == 0

    class TestAssistedPath:
        """SUT: RunOrchestrator.run_turn (assisted mode)"""

        async def test_four_polls_then_one_listing(self, orchestrator, gateway, make_thread, assisted_config, make_reply, sleeps):
            await make_thread()
            gateway.poll_statuses = ["queued", "in_progress", "in_progress", "completed"]
            gateway.remote_messages = [make_reply("Paris")]

            result = await orchestrator.run_turn("thread_1", "Capital of France?", assisted_config)

            assert result.status == TurnStatus.COMPLETED
            assert gateway.count("poll_run") == 4
            assert gateway.count("list_messages") == 1
            assert result.poll_count == 4
            assert sleeps == [1.0] * 4
            assert result.message.content == "Paris"
            assert result.run_id == "run_1"

        async def test_call_order(self, orchestrator, gateway, make_thread, assisted_config, make_reply):
            """Post, start, poll, list: one call at a time in that order."""
            await make_thread()
            gateway.remote_messages = [make_reply("ok")]
            await orchestrator.run_turn("thread_1", "Hi", assisted_config)
            assert [c[0] for c in gateway.calls] == ["post_message", "start_run", "poll_run", "list_messages"]

        async def test_state_trail(self, orchestrator, gateway, make_thread, assisted_config, make_reply):
            await make_thread()
            gateway.remote_messages = [make_reply("ok")]
            result = await orchestrator.run_turn("thread_1", "Hi", assisted_config)
            assert result.states == [
                TurnState.IDLE,
                TurnState.VALIDATING,
                TurnState.DISPATCHING,
                TurnState.ASSISTED_RUNNING,
                TurnState.POLLING,
                TurnState.EXTRACTING,
                TurnState.COMPLETED,
            ]

        async def test_already_terminal_run_skips_polling(self, orchestrator, gateway, make_thread, assisted_config, make_reply):
            await make_thread()
            gateway.start_status = "completed"
            gateway.remote_messages = [make_reply("fast")]
            result = await orchestrator.run_turn("thread_1", "Hi", assisted_config)
            assert result.ok
            assert gateway.count("poll_run") == 0

        async def test_times_out_after_sixty_polls(self, orchestrator, gateway, store, make_thread, assisted_config, sleeps):
            await make_thread()
            gateway.poll_statuses = ["in_progress"]

            result = await orchestrator.run_turn("thread_1", "Slow question", assisted_config)

            assert result.status == TurnStatus.TIMED_OUT
            assert result.error_kind == ErrorKind.RUN_TIMED_OUT
            assert gateway.count("poll_run") == 60
            assert len(sleeps) == 60
            assert gateway.count("list_messages") == 0
            assert result.states[-1] == TurnState.TIMED_OUT

            messages = await store.list_messages("thread_1")
            assert [m.role for m in messages] == ["user"]
            assert (await store.get_thread("thread_1")).name == "Thread 1"

        @pytest.mark.parametrize("status", ["requires_action", "expired", "something_new"])
        async def test_non_terminal_statuses_keep_polling(self, orchestrator, gateway, make_thread, assisted_config, status):
            await make_thread()
            gateway.poll_statuses = [status]
            result = await orchestrator.run_turn("thread_1", "Hi", assisted_config)
            assert result.error_kind == ErrorKind.RUN_TIMED_OUT
            assert gateway.count("poll_run") == 60

        async def test_custom_poll_cap(self, gateway, store, make_thread, assisted_config):
            async def no_sleep(_):
                pass

            await make_thread()
            gateway.poll_statuses = ["in_progress"]
            orch = RunOrchestrator(gateway, store, max_polls=3, poll_interval=0.5, sleep=no_sleep)
            result = await orch.run_turn("thread_1", "Hi", assisted_config)
            assert result.status == TurnStatus.TIMED_OUT
            assert gateway.count("poll_run") == 3

        @pytest.mark.parametrize("status, kind", [
            ("failed", ErrorKind.RUN_FAILED),
            ("cancelled", ErrorKind.RUN_CANCELLED),
        ])
        async def test_failed_and_cancelled_runs(self, orchestrator, gateway, store, make_thread, assisted_config, status, kind):
            await make_thread()
            gateway.poll_statuses = ["in_progress", status]

            result = await orchestrator.run_turn("thread_1", "Hi", assisted_config)

            assert result.status == TurnStatus.FAILED
            assert result.error_kind == kind
            assert gateway.count("poll_run") == 2
            assert gateway.count("list_messages") == 0
            assert [m.role for m in await store.list_messages("thread_1")] == ["user"]

        async def test_no_assistant_reply(self, orchestrator, gateway, make_thread, assisted_config, make_reply):
            await make_thread()
            gateway.remote_messages = [make_reply("my question", role="user")]
            result = await orchestrator.run_turn("thread_1", "Hi", assisted_config)
            assert result.status == TurnStatus.FAILED
            assert result.error_kind == ErrorKind.NO_REPLY_FOUND

        async def test_latest_assistant_reply_by_creation_time(self, orchestrator, gateway, make_thread, assisted_config, make_reply):
            """The reply is found by creation time, not list position."""
            await make_thread()
            gateway.remote_messages = [
                make_reply("older", created_at=10),
                make_reply("question", created_at=40, role="user"),
                make_reply("newest", created_at=50),
                make_reply("middle", created_at=30),
            ]
            result = await orchestrator.run_turn("thread_1", "Hi", assisted_config)
            assert result.message.content == "newest"

        async def test_text_segments_joined_in_order(self, orchestrator, gateway, make_thread, assisted_config, make_reply):
            await make_thread()
            gateway.remote_messages = [make_reply("", content=[
                {"type": "text", "text": {"value": "first"}},
                {"type": "image_file", "image_file": {"file_id": "file_9"}},
                {"type": "text", "text": {"value": "second"}},
            ])]
            result = await orchestrator.run_turn("thread_1", "Hi", assisted_config)
            assert result.message.content == "first\nsecond"

        async def test_attachments_forwarded_and_recorded(self, orchestrator, gateway, store, make_thread, assisted_config, make_reply):
            await make_thread()
            gateway.remote_messages = [make_reply("ok")]
            attachment = AttachmentDO(id="file_1", filename="a.pdf", content_type="application/pdf", size=1024)

            await orchestrator.run_turn("thread_1", "See file", assisted_config, [attachment])

            assert gateway.calls[0] == ("post_message", "thread_1", "See file", ["file_1"])
            user_message = (await store.list_messages("thread_1"))[0]
            assert user_message.attachments == [attachment]

        async def test_reply_stamped_after_run_completes(self, orchestrator, gateway, make_thread, assisted_config, make_reply):
            await make_thread()
            gateway.remote_messages = [make_reply("ok")]
            before = datetime.utcnow()
            result = await orchestrator.run_turn("thread_1", "Hi", assisted_config)
            assert result.message.timestamp >= before
            assert result.message.timestamp >= result.user_message.timestamp

    class TestGatewayErrors:
        """SUT: RunOrchestrator.run_turn (classified failures)"""

        @pytest.mark.parametrize("call, error, kind", [
            ("post_message", NotFound("Thread gone"), ErrorKind.NOT_FOUND),
            ("start_run", AuthError(), ErrorKind.AUTH_ERROR),
            ("poll_run", RateLimited(), ErrorKind.RATE_LIMITED),
        ])
        async def test_failures_propagate_without_retry(self, orchestrator, gateway, store, make_thread, assisted_config, call, error, kind):
            await make_thread()
            gateway.errors[call] = error

            result = await orchestrator.run_turn("thread_1", "Hi", assisted_config)

            assert result.status == TurnStatus.FAILED
            assert result.error_kind == kind
            assert result.detail == str(error)
            assert gateway.count(call) == 1
            assert [m.role for m in await store.list_messages("thread_1")] == ["user"]

        async def test_direct_failure_keeps_user_message(self, orchestrator, gateway, store, make_thread, direct_config):
            await make_thread()
            gateway.errors["direct_completion"] = AuthError()
            result = await orchestrator.run_turn("thread_1", "Hello", direct_config)
            assert result.error_kind == ErrorKind.AUTH_ERROR
            assert result.user_message.content == "Hello"
            assert len(await store.list_messages("thread_1")) == 1

    class TestMalformedProviderBodies:
        """SUT: RunOrchestrator.run_turn (unexpected success bodies)"""

        @pytest.fixture
        async def http_gateway(self, settings):
            """Real gateway over a provider that answers polls with a run missing its id and status."""
            def provider(request: httpx.Request) -> httpx.Response:
                path = request.url.path
                if request.method == "POST" and path.endswith("/messages"):
                    return httpx.Response(200, json={"id": "msg_1"})
                if request.method == "POST" and path.endswith("/runs"):
                    return httpx.Response(200, json={"id": "run_1", "status": "queued"})
                return httpx.Response(200, json={"object": "thread.run"})

            gw = ChatGateway(settings, transport=httpx.MockTransport(provider))
            yield gw
            await gw.aclose()

        async def test_bad_run_body_fails_turn(self, http_gateway, store, make_thread, assisted_config):
            async def no_sleep(_):
                pass

            await make_thread()
            orch = RunOrchestrator(http_gateway, store, sleep=no_sleep)
            result = await orch.run_turn("thread_1", "Hello", assisted_config)

            assert result.status == TurnStatus.FAILED
            assert result.error_kind == ErrorKind.UPSTREAM_ERROR
            assert result.detail == "Provider returned a malformed response."
            assert [m.role for m in await store.list_messages("thread_1")] == ["user"]

        async def test_bad_completion_body_fails_turn(self, settings, store, make_thread, direct_config):
            transport = httpx.MockTransport(lambda request: httpx.Response(200, json={"choices": "none"}))
            gw = ChatGateway(settings, transport=transport)
            try:
                await make_thread()
                result = await RunOrchestrator(gw, store).run_turn("thread_1", "Hello", direct_config)
            finally:
                await gw.aclose()

            assert result.status == TurnStatus.FAILED
            assert result.error_kind == ErrorKind.UPSTREAM_ERROR

    class TestSideEffects:
        """SUT: RunOrchestrator.run_turn (post-success effects)"""

        async def test_default_name_replaced(self, orchestrator, store, make_thread, direct_config):
            await make_thread()
            await orchestrator.run_turn("thread_1", "What is the capital of France", direct_config)
            assert (await store.get_thread("thread_1")).name == "What is the capital..."

        async def test_custom_name_kept(self, orchestrator, store, make_thread, direct_config):
            await make_thread(name="Trip planning")
            await orchestrator.run_turn("thread_1", "What is the capital of France", direct_config)
            assert (await store.get_thread("thread_1")).name == "Trip planning"

        async def test_second_turn_does_not_rename(self, orchestrator, store, make_thread, direct_config):
            await make_thread()
            await orchestrator.run_turn("thread_1", "First question here please", direct_config)
            await orchestrator.run_turn("thread_1", "Another thing entirely now", direct_config)
            assert (await store.get_thread("thread_1")).name == "First question here please..."

        async def test_failed_turn_does_not_rename(self, orchestrator, gateway, store, make_thread, direct_config):
            await make_thread()
            gateway.completion = ""
            await orchestrator.run_turn("thread_1", "What is the capital of France", direct_config)
            assert (await store.get_thread("thread_1")).name == "Thread 1"

        async def test_webhook_failure_keeps_completed(self, orchestrator, gateway, dispatcher, make_thread, make_config):
            await make_thread()
            gateway.notify_result = False
            config = make_config(webhook_url="https://hooks.example.com/x")

            result = await orchestrator.run_turn("thread_1", "Hello", config)
            await dispatcher.drain()

            assert result.status == TurnStatus.COMPLETED
            assert len(gateway.notifications) == 1

        async def test_webhook_crash_keeps_completed(self, orchestrator, gateway, dispatcher, make_thread, make_config):
            await make_thread()
            gateway.errors["notify"] = RuntimeError("boom")
            config = make_config(webhook_url="https://hooks.example.com/x")

            result = await orchestrator.run_turn("thread_1", "Hello", config)
            await dispatcher.drain()
            assert result.ok

        async def test_no_webhook_without_target(self, orchestrator, gateway, dispatcher, make_thread, direct_config):
            await make_thread()
            await orchestrator.run_turn("thread_1", "Hello", direct_config)
            await dispatcher.drain()
            assert gateway.notifications == []

        async def test_runs_without_dispatcher(self, gateway, store, make_thread, direct_config):
            await make_thread()
            orch = RunOrchestrator(gateway, store)
            result = await orch.run_turn("thread_1", "What is the capital of France", direct_config)
            assert result.ok
            assert (await store.get_thread("thread_1")).name == "Thread 1"

    class TestCancellation:
        """SUT: RunOrchestrator.run_turn (cancelled while polling)"""

        async def test_cancel_stops_polling(self, gateway, store, make_thread, assisted_config):
            await make_thread()
            gateway.poll_statuses = ["in_progress"]
            sleeping = asyncio.Event()

            async def blocking_sleep(_):
                sleeping.set()
                await asyncio.Event().wait()

            orch = RunOrchestrator(gateway, store, sleep=blocking_sleep)
            task = asyncio.create_task(orch.run_turn("thread_1", "Hi", assisted_config))
            await sleeping.wait()
            task.cancel()

            with pytest.raises(asyncio.CancelledError):
                await task

            assert gateway.count("poll_run") == 0
            assert [m.role for m in await store.list_messages("thread_1")] == ["user"]

    class TestFromSettings:
        """SUT: RunOrchestrator.from_settings"""

        def test_reads_limits(self, settings, gateway, store):
            settings.poll_interval = 0.25
            settings.max_polls = 5
            settings.context_window = 4
            orch = RunOrchestrator.from_settings(settings, gateway, store)
            assert orch.poll_interval == 0.25
            assert orch.max_polls == 5
            assert orch.context_window == 4
