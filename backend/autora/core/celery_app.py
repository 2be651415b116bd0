from celery import Celery

from .config import settings

broker_url = settings.CELERY_BROKER_URL or settings.REDIS_URL
result_backend_url = settings.CELERY_RESULT_BACKEND or settings.REDIS_URL

# Create the Celery instance
celery_app = Celery(
    "autora",
    broker=broker_url,
    backend=result_backend_url,
    include=["autora.workflow.tasks"]
)

celery_app.conf.update(
    task_track_started=True,
)
