# agency/celery_worker.py
from celery import Celery

from agency.utils.settings import CELERY_BROKER_URL, CELERY_RESULT_BACKEND

celery_app = Celery(
    "agency",
    broker=CELERY_BROKER_URL,
    backend=CELERY_RESULT_BACKEND,
)

# taski musza byc zaimportowane zeby Celery je zarejestrowal
celery_app.conf.imports = (
    "agency.tasks.maintenance",
    "agency.services.notification_service",
)

celery_app.conf.beat_schedule = {
    "report-orphaned-orders-hourly": {
        "task": "agency.tasks.maintenance.report_orphaned_orders_task",
        "schedule": 3600.0,
    },
}

celery_app.conf.timezone = "UTC"
