"""
Unit tests for interrupt signalers and the stop handler.
"""
import signal

from drc.RUNNERS.interrupt import (
    FlagInterruptSignaler,
    InterruptHandler,
    InterruptSignaler,
    SignalInterruptSignaler,
    StopContainerHandler,
)


class TestSignalers:
    """Tests for the stock interrupt signalers."""

    def test_flag_signaler_per_container(self):
        """Test that a request for one container leaves others alone."""
        signaler = FlagInterruptSignaler()
        assert not signaler.was_interrupted("c1")
        signaler.request("c1")
        assert signaler.was_interrupted("c1")
        assert not signaler.was_interrupted("c2")

    def test_flag_signaler_all_containers(self):
        """Test that a request without id covers every container."""
        signaler = FlagInterruptSignaler()
        signaler.request()
        assert signaler.was_interrupted("c1")
        assert signaler.was_interrupted("c2")

    def test_protocols(self):
        """Test that the stock classes satisfy the collaborator protocols."""
        assert isinstance(FlagInterruptSignaler(), InterruptSignaler)
        assert isinstance(StopContainerHandler(gateway=None), InterruptHandler)

    def test_signal_signaler_restores_handler(self):
        """Test that SIGINT flags an interrupt and the old handler comes back."""
        previous = signal.getsignal(signal.SIGINT)
        with SignalInterruptSignaler() as signaler:
            assert signal.getsignal(signal.SIGINT) == signaler._on_signal
            signaler._on_signal(signal.SIGINT, None)
            assert signaler.was_interrupted("c1")
        assert signal.getsignal(signal.SIGINT) is previous


class TestStopContainerHandler:
    """Tests for StopContainerHandler."""

    def test_stops_once(self, engine, alpine):
        """Test that repeated interrupts issue a single stop."""
        container_id = engine.create_container("alpine:latest", [], []).id
        engine.start_container(container_id)
        handler = StopContainerHandler(engine, timeout=1)
        handler.handle_interrupt(container_id)
        handler.handle_interrupt(container_id)
        assert engine.call_names().count("stop_container") == 1
        assert engine.containers[container_id].exit_code == engine.STOP_EXIT_CODE

    def test_ignores_vanished_container(self, engine):
        """Test that a container gone before the stop is not an error."""
        handler = StopContainerHandler(engine)
        handler.handle_interrupt("gone")
        assert "gone" in handler.stopped
