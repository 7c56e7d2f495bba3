"""Unit tests for the event emitter, toast bus and controller plumbing."""

from pm_sync.core.events import EventEmitter, Toast, ToastBus
from pm_sync.core.state import OperationResult, RequestSequencer, StateController


class TestEventEmitter:
    """Unit tests for EventEmitter."""

    def test_on_receives_every_emit(self) -> None:
        """Test persistent listeners see every emission."""
        emitter = EventEmitter()
        seen: list[int] = []
        emitter.on("tick", seen.append)

        emitter.emit("tick", 1)
        emitter.emit("tick", 2)

        assert seen == [1, 2]

    def test_once_fires_once(self) -> None:
        """Test fire-once listeners are removed after the first emission."""
        emitter = EventEmitter()
        seen: list[str] = []
        emitter.once("login", lambda: seen.append("x"))

        emitter.emit("login")
        emitter.emit("login")

        assert seen == ["x"]
        assert emitter.listener_count("login") == 0

    def test_once_reentrant_emit(self) -> None:
        """Test a once listener that re-emits is not re-entered."""
        emitter = EventEmitter()
        calls: list[int] = []

        def listener() -> None:
            calls.append(1)
            emitter.emit("evt")

        emitter.once("evt", listener)
        emitter.emit("evt")

        assert calls == [1]

    def test_unsubscribe(self) -> None:
        """Test the returned callable removes the listener."""
        emitter = EventEmitter()
        seen: list[int] = []
        unsubscribe = emitter.on("tick", seen.append)

        unsubscribe()
        emitter.emit("tick", 1)

        assert seen == []

    def test_failing_listener_isolated(self) -> None:
        """Test a raising listener does not stop the others."""
        emitter = EventEmitter()
        seen: list[str] = []

        def broken() -> None:
            raise RuntimeError("boom")

        emitter.on("evt", broken)
        emitter.on("evt", lambda: seen.append("ok"))

        emitter.emit("evt")

        assert seen == ["ok"]

    def test_clear(self) -> None:
        """Test clearing one event keeps the others."""
        emitter = EventEmitter()
        emitter.on("a", lambda: None)
        emitter.on("b", lambda: None)

        emitter.clear("a")

        assert emitter.listener_count("a") == 0
        assert emitter.listener_count("b") == 1


class TestToastBus:
    """Unit tests for ToastBus."""

    def test_publish_to_subscribers(self) -> None:
        """Test every subscriber receives toasts with increasing ids."""
        bus = ToastBus()
        first: list[Toast] = []
        second: list[Toast] = []
        bus.subscribe(first.append)
        bus.subscribe(second.append)

        bus.success("Saved", "Project saved")
        bus.error("Oops", "Something failed", duration=8)

        assert [t.type for t in first] == ["success", "error"]
        assert first == second
        assert first[1].id > first[0].id
        assert first[1].duration == 8


class TestControllerPlumbing:
    """Unit tests for RequestSequencer, OperationResult and StateController."""

    def test_sequencer(self) -> None:
        """Test only the newest ticket is current."""
        sequencer = RequestSequencer()
        first = sequencer.next("projects")
        second = sequencer.next("projects")
        other = sequencer.next("events")

        assert not sequencer.is_current("projects", first)
        assert sequencer.is_current("projects", second)
        assert sequencer.is_current("events", other)

        sequencer.invalidate("events")
        assert not sequencer.is_current("events", other)

    def test_operation_results(self) -> None:
        """Test result constructors."""
        assert OperationResult.ok(5).value == 5
        assert OperationResult.fail("nope").error == "nope"
        invalid = OperationResult.invalid({"name": "required"})
        assert not invalid.success
        assert invalid.field_errors == {"name": "required"}

    def test_subscribe_and_notify(self) -> None:
        """Test listeners are notified and can unsubscribe."""
        controller = StateController()
        seen: list[bool] = []
        unsubscribe = controller.subscribe(lambda c: seen.append(c.loading))

        controller._set_loading(True)
        unsubscribe()
        controller._set_loading(False)

        assert seen == [True]
