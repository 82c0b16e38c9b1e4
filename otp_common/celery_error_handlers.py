# otp_common/celery_error_handlers.py
from celery.signals import (
    task_failure, task_success, worker_ready,
    worker_shutdown, beat_init
)

from otp_common.utils.logging_config import setup_logging, log_context

logger = setup_logging('otp_celery', log_level='INFO', log_format='text')

CLEANUP_TASK = 'system.maintenance.cleanup_expired_otp_tokens'


@task_failure.connect
def handle_task_failure(sender=None, task_id=None, exception=None,
                        args=None, kwargs=None, traceback=None, einfo=None, **_):
    """Log task failures with detailed information."""
    with log_context(logger, task=sender.name, task_id=task_id):
        logger.error(f"Task {sender.name}[{task_id}] failed: {exception}", extra={
            'error_type': type(exception).__name__,
            'task_args': args,
            'task_kwargs': kwargs,
            'traceback_text': str(einfo)
        })


@task_success.connect
def handle_task_success(sender=None, result=None, **_):
    """Surface a cleanup run that reported an error instead of raising"""
    if sender is None or sender.name != CLEANUP_TASK or not isinstance(result, dict):
        return
    if result.get("status") != "success":
        logger.warning("Expired code cleanup finished with an error", extra={
            'task': sender.name,
            'error': result.get("error")
        })


@worker_ready.connect
def worker_ready_handler(**_):
    """Log when a worker is ready to receive tasks."""
    logger.info("Celery worker is ready.")


@worker_shutdown.connect
def worker_shutdown_handler(**_):
    logger.warning("Celery worker is shutting down.")


@beat_init.connect
def beat_init_handler(sender, **_):
    """Log when the beat scheduler is initialized."""
    logger.info("Celery beat scheduler initialized", extra={
        'scheduled_tasks': sorted(sender.app.conf.beat_schedule or {})
    })
