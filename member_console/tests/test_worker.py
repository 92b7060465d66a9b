import unittest
from unittest.mock import patch

from member_console.db import ImportUser, InMemoryDbClient
from member_console.platform_client import InMemoryPlatformClient, PlatformClientFactory
from member_console.queue import InMemoryJobQueue
from member_console.types import JobStatus, RowStatus
from member_console.worker import process_next, requeue_stale


class WorkerTests(unittest.TestCase):
    def setUp(self):
        self.db = InMemoryDbClient()
        self.queue = InMemoryJobQueue()
        self.platform = InMemoryPlatformClient("client-1")
        self.platforms = PlatformClientFactory(lambda client_id: self.platform)
        self.site = self.db.add_site("Core Website", "site-1", "client-1")

    @patch("member_console.worker.get_settings")
    def test_process_once_runs_import(self, mock_settings):
        mock_settings.return_value = type(
            "Settings", (), {"import_poll_interval_seconds": 0.01}
        )()
        job = self.db.create_import_job(
            self.site.item_id,
            [ImportUser("a@example.com", "pw1"), ImportUser("b@example.com", "pw2")],
            delay_seconds=0,
        )
        self.assertEqual(job.status, JobStatus.WAITING)

        self.queue.enqueue(job.job_id)
        processed = process_next(
            db=self.db, queue=self.queue, platforms=self.platforms, block=False
        )
        self.assertTrue(processed)

        updated = self.db.get_job(job.job_id)
        self.assertEqual(updated.status, JobStatus.COMPLETED)
        self.assertEqual(updated.succeeded, 2)
        self.assertEqual(updated.progress_percent, 100.0)
        self.assertEqual(
            [r.status for r in self.db.list_rows(job.job_id)],
            [RowStatus.SUCCESS, RowStatus.SUCCESS],
        )

    def test_process_once_no_jobs(self):
        processed = process_next(
            db=self.db, queue=self.queue, platforms=self.platforms, block=False
        )
        self.assertFalse(processed)

    def test_process_once_unknown_job(self):
        self.queue.enqueue("missing-job")
        processed = process_next(
            db=self.db, queue=self.queue, platforms=self.platforms, block=False
        )
        self.assertFalse(processed)
        self.assertEqual(self.queue.items, [])

    def test_requeue_stale_running_job(self):
        job = self.db.create_import_job(
            self.site.item_id, [ImportUser("a@example.com", "pw1")], delay_seconds=0
        )
        self.db.claim_job(job.job_id)

        self.assertEqual(requeue_stale(self.db, self.queue, lock_timeout_seconds=900), 0)
        self.assertEqual(requeue_stale(self.db, self.queue, lock_timeout_seconds=-1), 1)
        self.assertEqual(self.queue.items, [job.job_id])
        self.assertEqual(self.db.get_job(job.job_id).status, JobStatus.WAITING)
        self.assertIsNone(self.db.get_job(job.job_id).locked_at)


if __name__ == "__main__":
    unittest.main()
