# agency/domain/schemas.py
from pydantic import BaseModel, Field, ConfigDict, field_validator
from typing import Any, Dict, List, Literal
from decimal import Decimal
from datetime import datetime

ItemType = Literal["pack", "service"]
OrderStatus = Literal["pending", "paid", "processing", "completed", "cancelled"]
ProjectStatus = Literal["pending", "in_progress", "completed", "cancelled"]


# ---------- katalog ----------

class PackOut(BaseModel):
    id: str
    name: str
    slug: str
    price: Decimal
    target: str | None = None
    short_description: str | None = None
    description: str | None = None
    is_active: bool
    position: int | None = None
    type: str = "basic"
    color: str | None = None
    features: List[str] = []

    model_config = ConfigDict(from_attributes=True)

    @field_validator("features", mode="before")
    @classmethod
    def _features(cls, v):
        return v or []


class ServiceModuleOut(BaseModel):
    id: str
    name: str
    category: str | None = None
    price: Decimal
    description: str | None = None
    is_active: bool

    model_config = ConfigDict(from_attributes=True)


# ---------- katalog (admin) ----------

class PackIn(BaseModel):
    name: str | None = None
    slug: str | None = None
    price: Decimal | None = Field(None, ge=0)
    target: str | None = None
    short_description: str | None = None
    description: str | None = None
    is_active: bool | None = None
    position: int | None = None
    type: str | None = None
    color: str | None = None
    features: List[str] | None = None


class ServiceModuleIn(BaseModel):
    name: str | None = None
    category: str | None = None
    price: Decimal | None = Field(None, ge=0)
    description: str | None = None
    is_active: bool | None = None


class ActiveToggle(BaseModel):
    is_active: bool


class PackServiceIn(BaseModel):
    service_id: str


class PackServiceOut(BaseModel):
    id: str
    pack_id: str
    service_id: str
    service_name: str | None = None
    category: str | None = None
    price: Decimal | None = None


# ---------- koszyk ----------

class CartItemOut(BaseModel):
    """Pozycja koszyka; item_details jest None gdy pack/serwis zniknal z katalogu."""

    id: str
    cart_id: str
    item_type: ItemType
    item_id: str
    quantity: int
    created_at: datetime
    updated_at: datetime
    item_details: Dict[str, Any] | None = None


class CartOut(BaseModel):
    id: str
    total: Decimal
    items: List[CartItemOut]


class QuantityIn(BaseModel):
    quantity: int = Field(..., description="Nowa ilosc; ponizej 1 usuwa pozycje")


class RemovalImpactOut(BaseModel):
    item_id: str
    item_type: ItemType
    cascaded_item_ids: List[str]
    requires_confirmation: bool
    message: str


class MigrationOut(BaseModel):
    migrated: bool


# ---------- zamowienia ----------

class OrderCreate(BaseModel):
    payment_method: str | None = Field(None, max_length=50)
    installment_plan: str | None = Field(None, max_length=50)


class OrderOut(BaseModel):
    id: str
    user_id: str
    status: OrderStatus
    payment_method: str | None = None
    payment_id: str | None = None
    total_amount: Decimal
    installment_plan: str | None = None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class OrderItemOut(BaseModel):
    id: str
    order_id: str
    item_type: ItemType
    item_id: str
    quantity: int
    price_at_purchase: Decimal
    created_at: datetime
    item_details: Dict[str, Any] | None = None


class OrderWithItemsOut(OrderOut):
    items: List[OrderItemOut]


class OrderStatusUpdate(BaseModel):
    status: OrderStatus
    payment_id: str | None = None


# ---------- projekty ----------

class ProjectCreate(BaseModel):
    order_id: str = Field(..., min_length=1)
    name: str | None = Field(None, max_length=255)


class MilestoneOut(BaseModel):
    id: str
    project_id: str
    title: str
    description: str | None = None
    due_date: datetime | None = None
    is_completed: bool
    position: int

    model_config = ConfigDict(from_attributes=True)


class ProjectUpdateOut(BaseModel):
    id: str
    project_id: str
    title: str
    content: str
    admin_id: str
    is_read: bool
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class ProjectOut(BaseModel):
    id: str
    name: str
    description: str | None = None
    user_id: str
    order_id: str | None = None
    status: ProjectStatus
    estimated_completion_days: int
    start_date: datetime | None = None
    expected_end_date: datetime | None = None
    actual_end_date: datetime | None = None
    created_at: datetime
    updated_at: datetime
    progress_percentage: int
    milestones: List[MilestoneOut] = []
    updates: List[ProjectUpdateOut] = []


class UnreadCountOut(BaseModel):
    project_id: str
    unread: int


class QuestionnaireField(BaseModel):
    id: str
    label: str
    type: str
    required: bool = False
    placeholder: str | None = None
    options: List[str] | None = None
    conditional: Dict[str, str] | None = None


class QuestionnaireFormOut(BaseModel):
    id: str
    project_id: str
    form_type: Literal["questionnaire"]
    title: str
    description: str | None = None
    form_data: Dict[str, Any] = {}
    is_completed: bool

    model_config = ConfigDict(from_attributes=True)

    @field_validator("form_data", mode="before")
    @classmethod
    def default_form_data(cls, value):
        # brak danych albo nie-obiekt traktujemy jak pusty formularz
        return value if isinstance(value, dict) else {}


class QuestionnaireResponsesIn(BaseModel):
    responses: Dict[str, Any]
    mark_as_completed: bool = False


# ---------- admin ----------

class ProjectStatusUpdate(BaseModel):
    status: ProjectStatus


class ProjectDatesUpdate(BaseModel):
    start_date: datetime | None = None
    expected_end_date: datetime | None = None


class MilestoneIn(BaseModel):
    id: str | None = None
    title: str = Field(..., min_length=1, max_length=255)
    description: str | None = None
    due_date: datetime | None = None
    is_completed: bool = False
    position: int = 0


class ProjectUpdateIn(BaseModel):
    title: str = Field(..., min_length=1, max_length=255)
    content: str = Field(..., min_length=1)


# ---------- funkcje uprzywilejowane ----------

class MilestonesFunctionIn(BaseModel):
    projectId: str = Field(..., min_length=1)
    milestones: List[Dict[str, Any]]


class ProjectUpdateFunctionIn(BaseModel):
    projectId: str = Field(..., min_length=1)
    title: str = Field(..., min_length=1)
    content: str = Field(..., min_length=1)
    adminId: str | None = None
