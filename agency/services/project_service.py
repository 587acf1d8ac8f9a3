import time
from datetime import datetime, timedelta
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Dict, Iterable, List

from redis.exceptions import RedisError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from agency.data.database import as_utc, utcnow
from agency.data.models.project import (
    ProjectModel,
    ProjectMilestoneModel,
    ProjectUpdateModel,
    ProjectFormModel,
)
from agency.domain.errors import FunctionCallError, StoreError
from agency.domain.types import CartOwner
from agency.repos.catalog_repo import CatalogRepo
from agency.repos.order_repo import OrderRepo
from agency.repos.profile_repo import ProfileRepo
from agency.repos.project_repo import ProjectRepo
from agency.services.functions_client import FunctionsClient
from agency.services.realtime_service import ProjectChangeBus
from agency.utils.settings import SYSTEM_ADMIN_ID
from agency.utils.logging import get_logger

logger = get_logger(__name__)

PROJECT_STATUSES = ("pending", "in_progress", "completed", "cancelled")

BASE_PACK_KEYWORDS = ("base", "básico")
BASE_PACK_DAYS = 10
STANDARD_PACK_DAYS = 20
LARGE_PACK_DAYS = 30
LARGE_PACK_THRESHOLD = Decimal("2000")
TESTING_MILESTONE_MIN_DAYS = 20

QUESTIONNAIRE_FORM_TYPE = "questionnaire"
QUESTIONNAIRE_TEMPLATE_KEY = "default_questionnaire_template"

# tabele projektu, o ktorych zmianach mozna czekac
WATCHED_TABLES = ("project_milestones", "project_updates")
MAX_WAIT_SECONDS = 30


def round_half_up(value) -> int:
    return int(Decimal(value).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def estimate_duration_days(pack_name: str, pack_total: Decimal) -> int:
    name = (pack_name or "").lower()
    if any(keyword in name for keyword in BASE_PACK_KEYWORDS):
        return BASE_PACK_DAYS
    if pack_total < LARGE_PACK_THRESHOLD:
        return STANDARD_PACK_DAYS
    return LARGE_PACK_DAYS


def build_milestone_plan(project_id: str, start: datetime, days: int) -> List[Dict[str, Any]]:
    """Deterministyczna lista kamieni milowych, gotowa do wyslania jako json."""

    def at(fraction: str) -> str:
        offset = round_half_up(Decimal(days) * Decimal(fraction))
        return (start + timedelta(days=offset)).isoformat()

    plan = [
        ("Inicio del proyecto", "Recopilación de requisitos iniciales", start.isoformat(), True),
        ("Entrega de diseño", "Aprobación del diseño visual", at("0.3"), False),
        ("Desarrollo", "Implementación de funcionalidades", at("0.6"), False),
    ]
    if days >= TESTING_MILESTONE_MIN_DAYS:
        plan.append(("Pruebas y revisión", "Testing y ajustes finales", at("0.8"), False))
    plan.append(("Entrega final", "Lanzamiento del proyecto", at("1"), False))

    return [
        {
            "project_id": project_id,
            "title": title,
            "description": description,
            "is_completed": completed,
            "position": position,
            "due_date": due_date,
        }
        for position, (title, description, due_date, completed) in enumerate(plan, start=1)
    ]


def milestone_ratio(milestones: Iterable) -> int:
    milestones = list(milestones)
    if not milestones:
        return 0
    completed = sum(1 for m in milestones if m.is_completed)
    return round_half_up(Decimal(completed) * 100 / len(milestones))


def calculate_progress(
    status: str,
    start_date: datetime | None,
    expected_end_date: datetime | None,
    milestones: Iterable,
    now: datetime | None = None,
) -> int:
    """
    completed -> 100, cancelled -> proporcja kamieni milowych,
    inaczej uplyw czasu obciety do [0, 99] (99 = po terminie, ale niezamkniety),
    bez poprawnych dat -> proporcja kamieni milowych.
    """
    if status == "completed":
        return 100
    if status == "cancelled":
        return milestone_ratio(milestones)

    start, end = as_utc(start_date), as_utc(expected_end_date)
    if start and end and end > start:
        now = as_utc(now) or utcnow()
        if now >= end:
            return 99
        elapsed = Decimal((now - start).total_seconds())
        total = Decimal((end - start).total_seconds())
        return max(0, min(99, round_half_up(elapsed / total * 100)))

    return milestone_ratio(milestones)


def coerce_status(status: str | None) -> str:
    if status in PROJECT_STATUSES:
        return status
    logger.warning(f"Invalid project status: {status}, defaulting to 'pending'")
    return "pending"


def milestone_to_dict(m: ProjectMilestoneModel) -> Dict[str, Any]:
    return {
        "id": m.id,
        "project_id": m.project_id,
        "title": m.title,
        "description": m.description,
        "due_date": as_utc(m.due_date),
        "is_completed": m.is_completed,
        "position": m.position,
    }


def update_to_dict(u: ProjectUpdateModel) -> Dict[str, Any]:
    return {
        "id": u.id,
        "project_id": u.project_id,
        "title": u.title,
        "content": u.content,
        "admin_id": u.admin_id,
        "is_read": u.is_read,
        "created_at": as_utc(u.created_at),
    }


def form_to_dict(f: ProjectFormModel) -> Dict[str, Any]:
    return {
        "id": f.id,
        "project_id": f.project_id,
        "form_type": f.form_type,
        "title": f.title,
        "description": f.description,
        "form_data": f.form_data if isinstance(f.form_data, dict) else {},
        "is_completed": f.is_completed,
    }


def project_to_dict(project: ProjectModel, status: str, milestones, updates, progress: int) -> Dict[str, Any]:
    return {
        "id": project.id,
        "name": project.name,
        "description": project.description,
        "user_id": project.user_id,
        "order_id": project.order_id,
        "status": status,
        "estimated_completion_days": project.estimated_completion_days,
        "start_date": as_utc(project.start_date),
        "expected_end_date": as_utc(project.expected_end_date),
        "actual_end_date": as_utc(project.actual_end_date),
        "created_at": as_utc(project.created_at),
        "updated_at": as_utc(project.updated_at),
        "progress_percentage": progress,
        "milestones": [milestone_to_dict(m) for m in milestones],
        "updates": [update_to_dict(u) for u in updates],
    }


class ProjectService:
    """
    Projekt klienta wyprowadzony z oplaconego zamowienia:
    szacowany czas, kamienie milowe, pierwszy update, postep liczony w locie.
    """

    def __init__(self, db: Session, functions_client: FunctionsClient, change_bus: ProjectChangeBus):
        self.repo = ProjectRepo(db)
        self.orders = OrderRepo(db)
        self.catalog = CatalogRepo(db)
        self.profiles = ProfileRepo(db)
        self.functions = functions_client
        self.change_bus = change_bus

    def _get_accessible_project(self, owner: CartOwner, project_id: str) -> ProjectModel:
        project = self.repo.get_project(project_id)
        if not project:
            raise LookupError("Proyecto no encontrado")
        if project.user_id != owner.user_id and not self.profiles.is_admin(owner.user_id):
            raise PermissionError("Brak dostepu do projektu")
        return project

    # ------------------------------------------------------------
    # tworzenie
    # ------------------------------------------------------------
    def create_project_from_order(self, owner: CartOwner, order_id: str, project_name: str | None = None) -> str:
        try:
            order = self.orders.get_order(order_id)
            if not order:
                raise LookupError("No se pudo encontrar la orden")
            if order.user_id != owner.user_id and not self.profiles.is_admin(owner.user_id):
                raise PermissionError("Brak dostepu do zamowienia")
            if order.status in ("pending", "cancelled"):
                raise ValueError("La orden no está pagada")

            pack_items = [i for i in self.orders.get_order_items(order_id) if i.item_type == "pack"]
            if not pack_items:
                raise ValueError("La orden no contiene ningún pack")

            if self.repo.get_project_by_order(order_id):
                raise ValueError("Ya existe un proyecto para esta orden")

            packs = self.catalog.get_packs(i.item_id for i in pack_items)
        except SQLAlchemyError as e:
            self.repo.rollback()
            logger.error(f"Error fetching order: {e}", extra={"order_id": order_id})
            raise StoreError("No se pudo encontrar la orden") from e

        pack_total = sum(
            (Decimal(i.price_at_purchase) * i.quantity for i in pack_items),
            Decimal("0.00"),
        )
        primary = packs.get(pack_items[0].item_id)
        pack_name = primary.name if primary else ""
        days = estimate_duration_days(pack_name, pack_total)

        start = utcnow()
        end = start + timedelta(days=days)
        name = project_name or (
            f"Proyecto {pack_name}" if pack_name else f"Proyecto Web {start.strftime('%d/%m/%Y')}"
        )

        logger.info(
            f"Estimated project duration: {days} days based on total: {pack_total} and pack: {pack_name}",
            extra={"order_id": order_id},
        )

        try:
            project = self.repo.create_project(
                ProjectModel(
                    name=name,
                    description=f"Proyecto creado a partir de la orden {order_id}",
                    user_id=order.user_id,
                    order_id=order_id,
                    status="pending",
                    estimated_completion_days=days,
                    start_date=start,
                    expected_end_date=end,
                )
            )
        except SQLAlchemyError as e:
            self.repo.rollback()
            logger.error(f"Error creating project: {e}", extra={"order_id": order_id})
            raise StoreError("Error al crear el proyecto") from e

        # dalsze kroki best-effort, projekt zostaje nawet gdy padna
        try:
            self.functions.invoke(
                "create-project-milestones",
                {"projectId": project.id, "milestones": build_milestone_plan(project.id, start, days)},
                owner.access_token,
                owner.user_id,
            )
        except FunctionCallError as e:
            logger.warning(f"Error creating milestones: {e}", extra={"project_id": project.id})

        try:
            self.repo.save_form(self._empty_questionnaire(project.id))
        except SQLAlchemyError as e:
            self.repo.rollback()
            logger.error(f"Error creating questionnaire: {e}", extra={"project_id": project.id})

        try:
            self.functions.invoke(
                "create-project-update",
                {
                    "projectId": project.id,
                    "title": "¡Proyecto iniciado!",
                    "content": (
                        f'Tu proyecto "{name}" ha sido creado con éxito. El plazo estimado de entrega '
                        f"es de {days} días. Pronto nos pondremos en contacto contigo para los siguientes pasos."
                    ),
                    "adminId": SYSTEM_ADMIN_ID,
                },
                owner.access_token,
                owner.user_id,
            )
        except FunctionCallError as e:
            logger.error(f"Error creating initial project update: {e}", extra={"project_id": project.id})

        logger.info(f"Project successfully created with ID: {project.id}", extra={"project_id": project.id})
        return project.id

    @staticmethod
    def _empty_questionnaire(project_id: str) -> ProjectFormModel:
        return ProjectFormModel(
            project_id=project_id,
            form_type=QUESTIONNAIRE_FORM_TYPE,
            title="Cuestionario del proyecto",
            description="Por favor complete la información solicitada para su proyecto.",
            form_data={},
            is_completed=False,
        )

    # ------------------------------------------------------------
    # query
    # ------------------------------------------------------------
    def get_project_details(self, owner: CartOwner, project_id: str, now: datetime | None = None) -> Dict[str, Any]:
        try:
            project = self._get_accessible_project(owner, project_id)
        except SQLAlchemyError as e:
            self.repo.rollback()
            logger.error(f"Error fetching project: {e}", extra={"project_id": project_id})
            raise StoreError("Error al cargar los datos del proyecto") from e

        # bez kamieni/aktualizacji projekt nadal sie wyswietla
        try:
            milestones = self.repo.get_milestones(project_id)
        except SQLAlchemyError as e:
            self.repo.rollback()
            logger.error(f"Error fetching milestones: {e}", extra={"project_id": project_id})
            milestones = []
        try:
            updates = self.repo.get_updates(project_id)
        except SQLAlchemyError as e:
            self.repo.rollback()
            logger.error(f"Error fetching updates: {e}", extra={"project_id": project_id})
            updates = []

        status = coerce_status(project.status)
        progress = calculate_progress(status, project.start_date, project.expected_end_date, milestones, now)
        return project_to_dict(project, status, milestones, updates, progress)

    def get_user_projects(self, owner: CartOwner) -> List[Dict[str, Any]]:
        if not owner.is_authenticated:
            return []
        try:
            result = []
            for project in self.repo.list_projects_by_user(owner.user_id):
                milestones = self.repo.get_milestones(project.id)
                updates = self.repo.get_updates(project.id)
                result.append(
                    project_to_dict(project, coerce_status(project.status), milestones, updates, milestone_ratio(milestones))
                )
            return result
        except SQLAlchemyError as e:
            self.repo.rollback()
            logger.error(f"Error fetching user projects: {e}", extra={"user_id": owner.user_id})
            raise StoreError("Error al cargar los proyectos") from e

    def get_project_updates(self, owner: CartOwner, project_id: str) -> List[Dict[str, Any]]:
        try:
            self._get_accessible_project(owner, project_id)
            return [update_to_dict(u) for u in self.repo.get_updates(project_id)]
        except SQLAlchemyError as e:
            self.repo.rollback()
            logger.error(f"Error fetching project updates: {e}", extra={"project_id": project_id})
            raise StoreError("Error al cargar las actualizaciones") from e

    def mark_project_update_as_read(self, owner: CartOwner, update_id: str) -> bool:
        """Idempotentne: juz przeczytany -> True bez zapisu."""
        try:
            current = self.repo.get_update(update_id)
            if not current:
                raise LookupError("Actualización no encontrada")
            self._get_accessible_project(owner, current.project_id)

            if current.is_read:
                logger.info(f"Update already marked as read: {update_id}")
                return True

            if self.repo.mark_update_read(update_id) == 0:
                logger.error(f"No records were updated when marking {update_id} as read")
                return False
        except SQLAlchemyError as e:
            self.repo.rollback()
            logger.error(f"Error marking update {update_id} as read: {e}")
            raise StoreError("Error al marcar la actualización como leída") from e

        self.change_bus.publish(current.project_id, "project_updates", "UPDATE", update_id)
        return True

    def wait_for_change(self, owner: CartOwner, project_id: str, table: str, timeout: float = MAX_WAIT_SECONDS) -> bool:
        """
        Long-poll: czeka na zmiane w tabeli projektu. True -> klient przeladowuje liste,
        False -> minal timeout, klient pyta ponownie.
        """
        if table not in WATCHED_TABLES:
            raise ValueError(f"Tabla no soportada: {table}")
        try:
            self._get_accessible_project(owner, project_id)
        except SQLAlchemyError as e:
            self.repo.rollback()
            logger.error(f"Error fetching project: {e}", extra={"project_id": project_id})
            raise StoreError("Error al cargar los datos del proyecto") from e

        changed = []
        try:
            subscription = self.change_bus.subscribe(project_id, table, lambda: changed.append(True))
            deadline = time.monotonic() + min(max(timeout, 0), MAX_WAIT_SECONDS)
            try:
                while not changed:
                    remaining = deadline - time.monotonic()
                    if remaining <= 0:
                        break
                    subscription.poll(timeout=min(remaining, 1.0))
            finally:
                subscription.close()
        except RedisError as e:
            logger.error(f"Error listening for {table} changes: {e}", extra={"project_id": project_id})
            raise StoreError("No se pudieron recibir los cambios del proyecto") from e
        return bool(changed)

    def get_unread_updates_count(self, owner: CartOwner, project_id: str) -> int:
        try:
            self._get_accessible_project(owner, project_id)
            return self.repo.count_unread_updates(project_id)
        except SQLAlchemyError as e:
            self.repo.rollback()
            logger.error(f"Error counting unread updates: {e}", extra={"project_id": project_id})
            raise StoreError("Error al contar las actualizaciones") from e

    # ------------------------------------------------------------
    # kwestionariusz
    # ------------------------------------------------------------
    def get_questionnaire_template(self) -> List[Dict[str, Any]]:
        try:
            template = self.repo.get_constant(QUESTIONNAIRE_TEMPLATE_KEY)
        except SQLAlchemyError as e:
            self.repo.rollback()
            logger.error(f"Error fetching questionnaire template: {e}")
            raise StoreError("Error al cargar el cuestionario") from e

        if not isinstance(template, list):
            logger.error(f"Template is not an array: {template!r}")
            return []
        return [field for field in template if isinstance(field, dict)]

    def get_project_questionnaire(self, owner: CartOwner, project_id: str) -> Dict[str, Any]:
        try:
            self._get_accessible_project(owner, project_id)
            form = self.repo.get_form(project_id, QUESTIONNAIRE_FORM_TYPE)
            if form is None:
                logger.info("No questionnaire form found, creating one", extra={"project_id": project_id})
                form = self.repo.save_form(self._empty_questionnaire(project_id))
        except SQLAlchemyError as e:
            self.repo.rollback()
            logger.error(f"Error fetching questionnaire form: {e}", extra={"project_id": project_id})
            raise StoreError("Error al cargar el cuestionario") from e
        return form_to_dict(form)

    def save_questionnaire_responses(
        self,
        owner: CartOwner,
        form_id: str,
        responses: Dict[str, Any],
        mark_as_completed: bool = False,
    ) -> Dict[str, Any]:
        try:
            form = self.repo.get_form_by_id(form_id)
            if not form:
                raise LookupError("Cuestionario no encontrado")
            self._get_accessible_project(owner, form.project_id)

            form.form_data = dict(responses)
            form.is_completed = True if mark_as_completed else form.is_completed
            form.updated_at = utcnow()
            form = self.repo.save_form(form)

            if mark_as_completed:
                created = self.repo.insert_update(
                    ProjectUpdateModel(
                        project_id=form.project_id,
                        title="Cuestionario completado",
                        content="El cliente ha completado el cuestionario del proyecto.",
                        admin_id=SYSTEM_ADMIN_ID,
                        is_read=False,
                    )
                )
                self.change_bus.publish(form.project_id, "project_updates", "INSERT", created.id)
        except SQLAlchemyError as e:
            self.repo.rollback()
            logger.error(f"Error updating questionnaire {form_id}: {e}")
            raise StoreError("Error al guardar el cuestionario") from e

        return form_to_dict(form)
