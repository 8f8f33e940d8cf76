from settlement.core.config import SchedulerSettings
from settlement.jobs import SettlementScheduler
from settlement.jobs.scheduler import CLEANUP_JOB_ID, SWEEP_JOB_ID


class BrokenReconciliation:
    def __init__(self) -> None:
        self.calls = 0

    async def sweep_pending(self):
        self.calls += 1
        raise RuntimeError("database unavailable")

    async def cleanup_failed(self):
        self.calls += 1
        raise RuntimeError("database unavailable")


class TestSettlementScheduler:
    async def test_jobs_are_registered_on_start(self):
        scheduler = SettlementScheduler(BrokenReconciliation(), SchedulerSettings(sweep_interval_minutes=5))
        scheduler.start()
        try:
            assert scheduler.running
            assert {job.id for job in scheduler.scheduler.get_jobs()} == {SWEEP_JOB_ID, CLEANUP_JOB_ID}
        finally:
            scheduler.shutdown()

    async def test_disabled_scheduler_does_not_start(self):
        scheduler = SettlementScheduler(BrokenReconciliation(), SchedulerSettings(enabled=False))

        scheduler.start()

        assert not scheduler.running

    async def test_job_failures_are_contained(self):
        reconciliation = BrokenReconciliation()
        scheduler = SettlementScheduler(reconciliation, SchedulerSettings())

        await scheduler.sweep_pending()
        await scheduler.cleanup_failed()

        assert reconciliation.calls == 2
