"""Tests for the last-value-wins state channel."""

import threading

from episode_feed.models.load_state import IDLE, LOADING, Error, Loaded
from episode_feed.paging.state_channel import StateChannel


def test_subscribe_receives_current_value_then_updates():
    channel = StateChannel(IDLE)
    seen = []

    channel.subscribe(seen.append)
    channel.post(LOADING)
    channel.post(Loaded(3))

    assert seen == [IDLE, LOADING, Loaded(3)]
    assert channel.value == Loaded(3)


def test_unsubscribe_stops_notifications():
    channel = StateChannel(IDLE)
    seen = []

    unsubscribe = channel.subscribe(seen.append)
    unsubscribe()
    channel.post(Error("boom"))

    assert seen == [IDLE]
    unsubscribe()


def test_failing_listener_does_not_block_others():
    channel = StateChannel(IDLE)
    seen = []

    def broken(value):
        if value == LOADING:
            raise RuntimeError("render failed")

    channel.subscribe(broken)
    channel.subscribe(seen.append)
    channel.post(LOADING)

    assert seen == [IDLE, LOADING]
    assert channel.value == LOADING


def test_posts_from_other_threads_are_visible():
    channel = StateChannel(IDLE)
    seen = []
    channel.subscribe(seen.append)

    threads = [threading.Thread(target=channel.post, args=(Loaded(i),)) for i in range(10)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert len(seen) == 11
    assert channel.value in {Loaded(i) for i in range(10)}
