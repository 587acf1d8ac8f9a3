# agency/services/notification_service.py
from agency.celery_worker import celery_app
from agency.data.database import get_session_factory
from agency.repos.profile_repo import ProfileRepo
from agency.utils.settings import DATABASE_URL
from agency.utils.logging import get_logger

logger = get_logger(__name__)


class NotificationService:
    """
    Serwis do wysylania powiadomien.
    Uzywa Celery do asynchronicznego przetwarzania.
    """

    @staticmethod
    def send_order_confirmation(user_id: str, order_id: str):
        """
        Potwierdzenie zakupu po utworzeniu zamowienia.
        """
        send_order_confirmation_task.delay(user_id, order_id)


@celery_app.task(name="agency.services.notification_service.send_order_confirmation_task")
def send_order_confirmation_task(user_id: str, order_id: str):
    """
    Celery task - adresat z client_profiles, sama wysylka maila jest poza systemem.
    """
    db = get_session_factory(DATABASE_URL)()
    try:
        profile = ProfileRepo(db).get_profile(user_id)
        email = profile.email if profile else None
    finally:
        db.close()

    if not email:
        logger.warning(f"[NOTIFICATION] Brak emaila dla uzytkownika {user_id}, zamowienie {order_id}")
        return {"user_id": user_id, "order_id": order_id, "status": "skipped"}

    logger.info(f"[NOTIFICATION] Enviando correo de confirmación a {email} con orden {order_id}")
    return {"user_id": user_id, "order_id": order_id, "status": "sent"}
