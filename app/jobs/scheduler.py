"""
Background Jobs - periodic tasks run inside the web process
"""
from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.interval import IntervalTrigger
import logging

logger = logging.getLogger('main')


class JobScheduler:
    """Owns the APScheduler instance and the jobs registered on it"""

    def __init__(self, scheduler=None):
        self.scheduler = scheduler or BackgroundScheduler(timezone='UTC')
        self._jobs_registered = False

    def init_app(self, app, start=True):
        self._register_jobs(app)
        if start:
            self.scheduler.start()
            logger.info("Job scheduler initialized")

    def _register_jobs(self, app):
        if self._jobs_registered:
            return

        # Remote config refresh (hourly, the remote minimum fetch interval)
        self.scheduler.add_job(
            func=self._refresh_remote_config_job,
            trigger=IntervalTrigger(hours=1),
            id='refresh_remote_config',
            name='Refresh Remote Config',
            args=[app],
            replace_existing=True,
        )

        self._jobs_registered = True
        logger.info("Background jobs registered")

    def add_job(self, job_id, func, **kwargs):
        self.scheduler.add_job(id=job_id, func=func, **kwargs)

    def _refresh_remote_config_job(self, app):
        remote_config = app.extensions['smartexam']['remote_config']
        with app.app_context():
            remote_config.fetch_and_activate()

    def shutdown(self):
        if self.scheduler.running:
            self.scheduler.shutdown()
            logger.info("Job scheduler shutdown")
