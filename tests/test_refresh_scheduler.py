import unittest

from spotify_api.refresh_scheduler import RefreshScheduler


class TestRefreshScheduler(unittest.TestCase):
    def setUp(self):
        self.calls = []
        self.scheduler = RefreshScheduler(lambda: self.calls.append("refresh"), interval_seconds=60, poll_seconds=0.05)

    def tearDown(self):
        self.scheduler.stop()

    def test_start_twice_keeps_single_job(self):
        self.scheduler.start()
        self.scheduler.start()

        self.assertEqual(len(self.scheduler.jobs), 1)
        self.assertTrue(self.scheduler.running)

    def test_job_interval(self):
        self.scheduler.start()
        job = self.scheduler.jobs[0]
        self.assertEqual(job.interval, 60)
        self.assertEqual(job.unit, "seconds")

    def test_stop_cancels_job_and_thread(self):
        self.scheduler.start()
        self.scheduler.stop()

        self.assertEqual(self.scheduler.jobs, [])
        self.assertFalse(self.scheduler.running)

    def test_failing_job_is_logged(self):
        def _boom():
            raise RuntimeError("token endpoint down")

        scheduler = RefreshScheduler(_boom)
        with self.assertLogs("spotify_api.refresh_scheduler", level="ERROR") as logs:
            scheduler._run_job()
        self.assertIn("token endpoint down", "\n".join(logs.output))

    def test_run_pending_before_due_does_nothing(self):
        self.scheduler.start()
        self.scheduler.run_pending()
        self.assertEqual(self.calls, [])


if __name__ == "__main__":
    unittest.main(verbosity=2)
