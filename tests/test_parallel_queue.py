import threading

import pytest

from wghandshake.parallel_queue import ParallelQueue


def test_one_receiver_per_queue():
    queue = ParallelQueue(3, 4)
    assert len(queue.receivers) == 3


def test_send_then_recv_in_order():
    queue = ParallelQueue(1, 4)
    for value in ("a", "b", "c"):
        queue.send(value)
    rx = queue.receivers[0]
    assert [rx.recv(), rx.recv(), rx.recv()] == ["a", "b", "c"]


def test_receivers_share_items():
    queue = ParallelQueue(2, 8)
    for value in range(6):
        queue.send(value)
    queue.close()
    first, second = queue.receivers
    taken = [first.recv(), second.recv()] + list(first) + list(second)
    assert sorted(taken) == list(range(6))


def test_iteration_ends_after_close():
    queue = ParallelQueue(1, 4)
    queue.send(1)
    queue.send(2)
    queue.close()
    assert list(queue.receivers[0]) == [1, 2]


def test_send_after_close_is_dropped():
    queue = ParallelQueue(1, 4)
    queue.close()
    queue.send(5)
    with pytest.raises(EOFError):
        queue.receivers[0].recv(timeout=0.1)


def test_recv_timeout():
    queue = ParallelQueue(1, 4)
    with pytest.raises(TimeoutError):
        queue.receivers[0].recv(timeout=0.05)


def test_full_queue_blocks_sender_until_space():
    queue = ParallelQueue(1, 1)
    queue.send("first")
    done = threading.Event()

    def producer():
        queue.send("second")
        done.set()

    thread = threading.Thread(target=producer)
    thread.start()
    assert not done.wait(0.1)
    rx = queue.receivers[0]
    assert rx.recv(timeout=1) == "first"
    assert done.wait(1)
    assert rx.recv(timeout=1) == "second"
    thread.join()


def test_close_releases_blocked_receiver():
    queue = ParallelQueue(1, 1)
    outcome = []

    def consumer():
        try:
            outcome.append(queue.receivers[0].recv())
        except EOFError:
            outcome.append("closed")

    thread = threading.Thread(target=consumer)
    thread.start()
    queue.close()
    thread.join(timeout=1)
    assert outcome == ["closed"]
    assert list(queue.receivers[0]) == []


def test_zero_capacity_rejected():
    with pytest.raises(ValueError):
        ParallelQueue(1, 0)