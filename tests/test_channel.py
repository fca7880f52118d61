import threading
import time

from mediabatch.channel import BatchProgress, LogChannel


def test_drain_returns_lines_in_order_and_clears():
    channel = LogChannel()
    for i in range(5):
        channel.put(f"line {i}")

    assert channel.drain() == [f"line {i}" for i in range(5)]
    assert channel.drain() == []
    assert len(channel) == 0


def test_concurrent_put_and_drain_loses_and_duplicates_nothing():
    channel = LogChannel()
    count = 20000
    drained = []
    done = threading.Event()

    def produce():
        for i in range(count):
            channel.put(str(i))
        done.set()

    def consume():
        while not done.is_set():
            drained.extend(channel.drain())
            time.sleep(0.001)
        drained.extend(channel.drain())

    producer = threading.Thread(target=produce)
    consumer = threading.Thread(target=consume)
    consumer.start()
    producer.start()
    producer.join()
    consumer.join()

    assert drained == [str(i) for i in range(count)]


def test_progress_counts_failures_and_successes():
    progress = BatchProgress()
    progress.reset(3)

    progress.begin_file("a.mp4")
    assert progress.snapshot().status_text == "Processing: a.mp4 (1/3)"
    progress.finish_file(True)

    progress.begin_file("b.mp4")
    progress.finish_file(False)
    assert progress.snapshot().status_text == "Error: b.mp4"

    progress.begin_file("c.mp4")
    progress.finish_file(True)
    progress.finish_run()

    snap = progress.snapshot()
    assert (snap.total, snap.completed, snap.failed) == (3, 3, 1)
    assert snap.current_file is None
    assert snap.fraction == 1.0
    assert snap.status_text == "Completed 3/3 (1 failed)"


def test_snapshot_is_a_copy():
    progress = BatchProgress()
    progress.reset(2)
    before = progress.snapshot()
    progress.begin_file("x.mp4")
    progress.finish_file(True)
    assert before.completed == 0
    assert progress.snapshot().completed == 1
