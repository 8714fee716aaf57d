import pytest

from emitterkit.core.cancel import CancelSource
from emitterkit.core.emitter import Emitter
from emitterkit.core.errors import Aborted


def test_cancel_fires_observers_once_with_reason():
    src = CancelSource()
    seen = []
    src.signal.add_observer(seen.append)

    src.cancel("stop")
    src.cancel("again")

    assert src.cancelled and src.signal.cancelled
    assert src.signal.reason == "stop"
    assert seen == ["stop"]


def test_detached_observer_is_not_called():
    src = CancelSource()
    seen = []
    detach = src.signal.add_observer(seen.append)
    detach()
    detach()

    src.cancel()
    assert seen == []


def test_raising_observer_does_not_starve_later_observers():
    src = CancelSource()
    seen = []

    def broken(_):
        raise RuntimeError("observer failed")

    src.signal.add_observer(broken)
    src.signal.add_observer(seen.append)

    with pytest.raises(RuntimeError, match="observer failed"):
        src.cancel("stop")
    assert seen == ["stop"]
    assert src.cancelled


@pytest.mark.asyncio
async def test_raising_observer_still_aborts_pending_wait():
    emitter = Emitter(name="cancel-test")
    src = CancelSource()

    def broken(_):
        raise RuntimeError("observer failed")

    src.signal.add_observer(broken)
    pending = emitter.wait_for("ping", signal=src.signal)

    with pytest.raises(RuntimeError):
        src.cancel()

    assert pending.done()
    assert emitter.listener_count("ping") == 0
    with pytest.raises(Aborted):
        await pending
