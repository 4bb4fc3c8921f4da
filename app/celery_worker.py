# app/celery_worker.py
from celery import Celery

from app.utils.settings import CELERY_BROKER_URL, CELERY_RESULT_BACKEND, ORDER_DELETE_AFTER_DAYS

celery_app = Celery(
    "shop",
    broker=CELERY_BROKER_URL,
    backend=CELERY_RESULT_BACKEND,
)

# import task modules explicitly so the worker registers them
celery_app.conf.imports = (
    "app.tasks.orders",
    "app.services.notification_service",
)

# a redelivered deletion job is harmless, it re-checks the status first
celery_app.conf.task_acks_late = True
# redis broker redelivers unacked ETA tasks after visibility_timeout
celery_app.conf.broker_transport_options = {
    "visibility_timeout": (ORDER_DELETE_AFTER_DAYS + 1) * 24 * 60 * 60,
}
celery_app.conf.timezone = "UTC"
