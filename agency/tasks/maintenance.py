# agency/tasks/maintenance.py
from agency.celery_worker import celery_app
from agency.data.database import get_session_factory
from agency.repos.order_repo import OrderRepo
from agency.utils.settings import DATABASE_URL
from agency.utils.logging import get_logger

logger = get_logger(__name__)


def find_orphaned_orders(db) -> list[str]:
    """Oplacone zamowienia bez pozycji. Tylko raport, nic nie jest naprawiane."""
    orphans = OrderRepo(db).list_orphaned_paid_orders()
    for order in orphans:
        logger.warning(
            f"Paid order {order.id} of user {order.user_id} has no items",
            extra={"order_id": order.id, "user_id": order.user_id},
        )
    return [o.id for o in orphans]


@celery_app.task(name="agency.tasks.maintenance.report_orphaned_orders_task")
def report_orphaned_orders_task():
    logger.info("Orphaned orders report started")

    db = get_session_factory(DATABASE_URL)()
    try:
        orphan_ids = find_orphaned_orders(db)
    finally:
        db.close()

    logger.info(f"Found {len(orphan_ids)} paid orders without items")
    return {"orphaned_orders": orphan_ids}
