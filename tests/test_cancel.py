import signal
import threading

from politecrawl.cancel import CancellationToken, handle_sigint


def make_token(timeline):
    exits = []
    token = CancellationToken(clock=lambda: timeline[0], exit_fn=exits.append)
    return token, exits


def test_cancel_is_idempotent():
    token, _ = make_token([0.0])
    assert not token.cancelled
    token.cancel()
    token.cancel()
    assert token.cancelled
    assert token.wait(10.0)


def test_first_interrupt_requests_graceful_stop():
    token, exits = make_token([0.0])
    token.interrupt()
    assert token.cancelled
    assert token.interrupt_count == 1
    assert exits == []


def test_second_interrupt_within_window_forces_exit():
    timeline = [0.0]
    token, exits = make_token(timeline)
    token.interrupt()
    timeline[0] = 1.5
    token.interrupt()
    assert exits == [1]


def test_slow_second_interrupt_does_not_escalate():
    timeline = [0.0]
    token, exits = make_token(timeline)
    token.interrupt()
    timeline[0] = 3.5
    token.interrupt()
    assert exits == []
    assert token.interrupt_count == 2
    timeline[0] = 4.0
    token.interrupt()
    assert exits == [1]


def test_reset_clears_flag_and_counter():
    timeline = [0.0]
    token, exits = make_token(timeline)
    token.interrupt()
    token.reset()
    assert not token.cancelled
    assert token.interrupt_count == 0
    timeline[0] = 0.5
    token.interrupt()
    assert exits == []


def test_wait_times_out_without_cancel():
    token = CancellationToken()
    assert token.wait(0.01) is False
    assert token.wait(0) is False


def test_handle_sigint_routes_and_restores():
    token, _ = make_token([0.0])
    before = signal.getsignal(signal.SIGINT)
    with handle_sigint(token):
        handler = signal.getsignal(signal.SIGINT)
        assert handler is not before
        handler(signal.SIGINT, None)
    assert token.cancelled
    assert signal.getsignal(signal.SIGINT) is before


def test_handle_sigint_off_main_thread_is_noop():
    token, _ = make_token([0.0])
    seen = []

    def worker():
        with handle_sigint(token) as t:
            seen.append(t)

    th = threading.Thread(target=worker)
    th.start()
    th.join()
    assert seen == [token]
