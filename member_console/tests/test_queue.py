import threading
import time
import unittest
from unittest.mock import MagicMock, patch

from redis import exceptions as redis_exceptions

from member_console.queue import InMemoryJobQueue, RedisJobQueue


class InMemoryJobQueueTests(unittest.TestCase):
    def test_fifo_order(self):
        queue = InMemoryJobQueue()
        queue.enqueue("job-1")
        queue.enqueue("job-2")
        self.assertEqual(queue.dequeue(block=False), "job-1")
        self.assertEqual(queue.dequeue(block=False), "job-2")
        self.assertIsNone(queue.dequeue(block=False))

    def test_blocking_dequeue_times_out(self):
        queue = InMemoryJobQueue()
        started = time.monotonic()
        self.assertIsNone(queue.dequeue(block=True, timeout=0.2))
        self.assertGreaterEqual(time.monotonic() - started, 0.15)

    def test_blocking_dequeue_wakes_on_enqueue(self):
        queue = InMemoryJobQueue()
        received = []
        consumer = threading.Thread(
            target=lambda: received.append(queue.dequeue(block=True, timeout=5))
        )
        consumer.start()
        time.sleep(0.05)
        queue.enqueue("job-1")
        consumer.join(timeout=5)

        self.assertFalse(consumer.is_alive())
        self.assertEqual(received, ["job-1"])

    def test_each_job_goes_to_one_consumer(self):
        queue = InMemoryJobQueue()
        received = []
        lock = threading.Lock()

        def consume():
            while True:
                job_id = queue.dequeue(block=True, timeout=0.5)
                if job_id is None:
                    return
                with lock:
                    received.append(job_id)

        consumers = [threading.Thread(target=consume) for _ in range(4)]
        for consumer in consumers:
            consumer.start()
        for i in range(200):
            queue.enqueue(f"job-{i}")
        for consumer in consumers:
            consumer.join(timeout=10)

        self.assertEqual(sorted(received), sorted(f"job-{i}" for i in range(200)))


class RedisJobQueueTests(unittest.TestCase):
    @patch("member_console.queue.redis.Redis.from_url")
    def test_enqueue_and_blocking_dequeue(self, from_url):
        client = MagicMock()
        client.blpop.return_value = (b"member_console:import_jobs", b"job-1")
        from_url.return_value = client

        queue = RedisJobQueue(url="redis://localhost:6379/0")
        queue.enqueue("job-1")
        client.rpush.assert_called_once_with("member_console:import_jobs", "job-1")
        self.assertEqual(queue.dequeue(block=True, timeout=2), "job-1")
        client.blpop.assert_called_once_with("member_console:import_jobs", timeout=2)

        client.blpop.return_value = None
        self.assertIsNone(queue.dequeue(block=True, timeout=2))

    @patch("member_console.queue.redis.Redis.from_url")
    def test_connection_error_reconnects(self, from_url):
        broken = MagicMock()
        broken.lpop.side_effect = redis_exceptions.ConnectionError("gone")
        fresh = MagicMock()
        fresh.lpop.return_value = b"job-2"
        from_url.side_effect = [broken, fresh]

        queue = RedisJobQueue(url="redis://localhost:6379/0")
        self.assertIsNone(queue.dequeue(block=False))
        self.assertEqual(queue.dequeue(block=False), "job-2")
        self.assertEqual(from_url.call_count, 2)


if __name__ == "__main__":
    unittest.main()
