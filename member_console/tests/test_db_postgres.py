import time
import unittest

from member_console.db import ImportUser, PostgresDbClient
from member_console.types import JobStatus, LogStatus, RowStatus, SubmissionStatus


class PostgresDbClientTests(unittest.TestCase):
    """
    Uses SQLite via SQLAlchemy URL for fast/local testing of the Postgres client logic.
    """

    def setUp(self):
        self.db = PostgresDbClient("sqlite+pysqlite:///:memory:")

    def test_site_registry(self):
        site = self.db.add_site(
            "Core Website", "site-1", "client-1", site_domain="core.example.com"
        )
        fetched = self.db.get_site(site.item_id)
        self.assertEqual(fetched.site_name, "Core Website")
        self.assertEqual(fetched.site_domain, "core.example.com")
        self.assertIsNone(fetched.template_id)
        self.assertEqual([s.item_id for s in self.db.list_sites()], [site.item_id])

        self.assertTrue(self.db.delete_site(site.item_id))
        self.assertFalse(self.db.delete_site(site.item_id))
        self.assertIsNone(self.db.get_site(site.item_id))

    def test_logs(self):
        self.db.add_log(LogStatus.INFO, "one", "test")
        self.db.add_log(LogStatus.ERROR, "two", "test")
        self.db.add_log(LogStatus.SUCCESS, "three", "test")

        self.assertEqual(len(self.db.list_logs(limit=2)), 2)
        self.assertEqual(
            {r.message for r in self.db.list_logs()}, {"one", "two", "three"}
        )
        self.assertEqual(self.db.clear_logs(), 3)
        self.assertEqual(self.db.list_logs(), [])

    def test_bounces(self):
        record = self.db.add_bounce("invalid@example.com", "contact_001")
        self.assertEqual(self.db.list_bounces()[0].email, "invalid@example.com")
        self.assertTrue(self.db.delete_bounce(record.record_id))
        self.assertFalse(self.db.delete_bounce(record.record_id))
        self.assertEqual(self.db.list_bounces(), [])

    def test_submissions(self):
        first = self.db.add_submission("a@example.com", "Hello there", "10.0.0.1")
        self.db.add_submission("b@example.com", "Hello again", "10.0.0.2")
        self.assertEqual(first.status, SubmissionStatus.NEW)

        since = time.time() - 60
        self.assertEqual(self.db.count_recent_submissions("10.0.0.1", since), 1)
        self.assertEqual(self.db.count_recent_submissions("10.0.0.9", since), 0)
        self.assertEqual(
            self.db.count_recent_submissions("10.0.0.1", time.time() + 60), 0
        )

        self.assertTrue(
            self.db.update_submission_status(first.submission_id, SubmissionStatus.READ)
        )
        self.assertFalse(self.db.update_submission_status("missing", SubmissionStatus.READ))
        read = self.db.list_submissions(status=SubmissionStatus.READ)
        self.assertEqual([s.submission_id for s in read], [first.submission_id])
        self.assertEqual(len(self.db.list_submissions()), 2)
        self.assertEqual(len(self.db.list_submissions(limit=1)), 1)

    def test_create_and_get_job(self):
        job = self.db.create_import_job(
            "site", [ImportUser("a@example.com", "pw1"), ImportUser("b@example.com", "pw2")], 1.5
        )
        self.assertEqual(job.status, JobStatus.WAITING)
        self.assertEqual(job.total, 2)
        self.assertEqual(job.delay_seconds, 1.5)

        fetched = self.db.get_job(job.job_id)
        self.assertEqual(fetched.job_id, job.job_id)
        self.assertEqual(fetched.progress_percent, 0.0)
        rows = self.db.list_rows(job.job_id)
        self.assertEqual([(r.index, r.email, r.status) for r in rows], [
            (0, "a@example.com", RowStatus.PENDING),
            (1, "b@example.com", RowStatus.PENDING),
        ])
        self.assertEqual([j.job_id for j in self.db.list_jobs()], [job.job_id])
        self.assertIsNone(self.db.get_job("missing"))

    def test_claim_and_record_rows(self):
        job = self.db.create_import_job(
            "site", [ImportUser("a@example.com", "pw1"), ImportUser("b@example.com", "pw2")], 0
        )
        claimed = self.db.claim_job(job.job_id)
        self.assertEqual(claimed.status, JobStatus.RUNNING)
        self.assertIsNotNone(claimed.locked_at)
        self.assertIsNone(self.db.claim_job(job.job_id))

        row = self.db.next_pending_row(job.job_id)
        self.assertEqual((row.index, row.password), (0, "pw1"))
        self.db.record_row_result(job.job_id, 0, RowStatus.ERROR, "Member already exists.")

        row = self.db.next_pending_row(job.job_id)
        self.assertEqual(row.index, 1)
        self.db.record_row_result(job.job_id, 1, RowStatus.SUCCESS, "Member created successfully.")
        self.assertIsNone(self.db.next_pending_row(job.job_id))

        updated = self.db.get_job(job.job_id)
        self.assertEqual((updated.processed, updated.succeeded, updated.failed), (2, 1, 1))
        self.assertEqual(updated.progress_percent, 100.0)
        first = self.db.list_rows(job.job_id)[0]
        self.assertEqual(first.message, "Member already exists.")
        self.assertIsNone(first.password)

        done = self.db.transition_job(job.job_id, (JobStatus.RUNNING,), JobStatus.COMPLETED)
        self.assertEqual(done.status, JobStatus.COMPLETED)
        self.assertIsNone(done.locked_at)

    def test_transition_requires_expected_state(self):
        job = self.db.create_import_job("site", [ImportUser("a@example.com", "pw")], 0)
        self.assertIsNone(
            self.db.transition_job(job.job_id, (JobStatus.PAUSED,), JobStatus.WAITING)
        )
        failed = self.db.transition_job(
            job.job_id, (JobStatus.WAITING,), JobStatus.FAILED, error="boom"
        )
        self.assertEqual(failed.status, JobStatus.FAILED)
        self.assertEqual(failed.error, "boom")
        self.assertIsNone(
            self.db.transition_job("missing", (JobStatus.WAITING,), JobStatus.PAUSED)
        )

    def test_skip_pending_rows(self):
        job = self.db.create_import_job(
            "site", [ImportUser("a@example.com", "pw1"), ImportUser("b@example.com", "pw2")], 0
        )
        self.db.record_row_result(job.job_id, 0, RowStatus.SUCCESS, "ok")
        self.assertEqual(self.db.skip_pending_rows(job.job_id, "Import cancelled."), 1)
        rows = self.db.list_rows(job.job_id)
        self.assertEqual([r.status for r in rows], [RowStatus.SUCCESS, RowStatus.SKIPPED])
        self.assertEqual(rows[1].message, "Import cancelled.")
        self.assertIsNone(rows[1].password)

    def test_requeue_stale_jobs(self):
        job = self.db.create_import_job("site", [ImportUser("a@example.com", "pw")], 0)
        self.db.claim_job(job.job_id)

        self.assertEqual(self.db.requeue_stale_jobs(lock_timeout_seconds=900), [])
        self.assertEqual(self.db.requeue_stale_jobs(lock_timeout_seconds=-1), [job.job_id])
        requeued = self.db.get_job(job.job_id)
        self.assertEqual(requeued.status, JobStatus.WAITING)
        self.assertIsNone(requeued.locked_at)

    def test_requeue_clears_stale_pause_lock(self):
        job = self.db.create_import_job("site", [ImportUser("a@example.com", "pw")], 0)
        self.db.claim_job(job.job_id)
        self.db.transition_job(job.job_id, (JobStatus.RUNNING,), JobStatus.PAUSED)

        self.assertEqual(self.db.requeue_stale_jobs(lock_timeout_seconds=-1), [])
        paused = self.db.get_job(job.job_id)
        self.assertEqual(paused.status, JobStatus.PAUSED)
        self.assertIsNone(paused.locked_at)

    def test_pause_keeps_lock_until_released(self):
        job = self.db.create_import_job("site", [ImportUser("a@example.com", "pw")], 0)
        self.db.claim_job(job.job_id)
        paused = self.db.transition_job(job.job_id, (JobStatus.RUNNING,), JobStatus.PAUSED)
        self.assertIsNotNone(paused.locked_at)

        self.assertIsNone(
            self.db.transition_job(
                job.job_id, (JobStatus.PAUSED,), JobStatus.WAITING, unlocked_only=True
            )
        )
        self.db.release_job(job.job_id)
        self.assertIsNone(self.db.get_job(job.job_id).locked_at)
        waiting = self.db.transition_job(
            job.job_id, (JobStatus.PAUSED,), JobStatus.WAITING, unlocked_only=True
        )
        self.assertEqual(waiting.status, JobStatus.WAITING)

    def test_row_result_only_lands_on_pending_row(self):
        job = self.db.create_import_job("site", [ImportUser("a@example.com", "pw")], 0)
        self.assertTrue(self.db.record_row_result(job.job_id, 0, RowStatus.SUCCESS, "ok"))
        self.assertFalse(self.db.record_row_result(job.job_id, 0, RowStatus.ERROR, "late"))
        self.assertFalse(self.db.record_row_result(job.job_id, 7, RowStatus.ERROR, "missing"))

        updated = self.db.get_job(job.job_id)
        self.assertEqual((updated.processed, updated.succeeded, updated.failed), (1, 1, 0))
        self.assertEqual(self.db.list_rows(job.job_id)[0].message, "ok")


if __name__ == "__main__":
    unittest.main()
