# otp_common/celery_app.py
from celery import Celery
from otp_common.config import REDIS_URL, OTP_CONFIG

celery_app = Celery("otp_app", broker=REDIS_URL, backend=REDIS_URL, include=["system.maintenance"])

# Common configuration
celery_app.conf.update(
    # Serialization
    task_serializer='json',
    result_serializer='json',
    accept_content=['json'],

    # Timezone and time settings
    timezone='UTC',
    enable_utc=True,

    # Task execution settings
    task_acks_late=True,  # Tasks are acknowledged after execution (not before)
    task_reject_on_worker_lost=True,
    worker_prefetch_multiplier=1,

    # Result backend settings
    result_expires=86400,  # Results expire after 1 day
    task_store_errors_even_if_ignored=True,

    # Hard limit per task run, in seconds
    task_time_limit=300,
)

# Queue routing
celery_app.conf.update(
    task_routes={
        'system.maintenance.*': {'queue': 'maintenance_queue'},
    },
)

# Scheduled tasks
celery_app.conf.beat_schedule = {
    'cleanup-expired-otp-tokens': {
        'task': 'system.maintenance.cleanup_expired_otp_tokens',
        'schedule': OTP_CONFIG["cleanup_interval_minutes"] * 60.0,
    },
}

# Register signal handlers
import otp_common.celery_error_handlers  # noqa: E402,F401
