"""
Background scheduler for periodic jobs.

Jobs:
  - Review reminders (daily at REVIEW_REMINDER_HOUR)
"""

from __future__ import annotations

from apscheduler.schedulers.background import BackgroundScheduler

from push import send_review_reminders


def init_scheduler(app) -> BackgroundScheduler:
    """Start the background scheduler and return it."""
    scheduler = BackgroundScheduler(daemon=True)

    scheduler.add_job(
        func=send_review_reminders,
        args=[app],
        trigger="cron",
        hour=app.config.get("REVIEW_REMINDER_HOUR", 16),
        id="review_reminders",
        replace_existing=True,
    )

    scheduler.start()
    app.logger.info("Scheduler started (review reminders at %02d:00)",
                    app.config.get("REVIEW_REMINDER_HOUR", 16))
    return scheduler
