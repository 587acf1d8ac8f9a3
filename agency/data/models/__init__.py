#import wszystkich modeli zeby SQLAlchemy je zarejestrowal w base metadata

from agency.data.models.cart import CartModel
from agency.data.models.cart_item import CartItemModel
from agency.data.models.catalog import PackModel, PackServiceModel, ServiceModuleModel
from agency.data.models.order import OrderModel
from agency.data.models.order_item import OrderItemModel
from agency.data.models.profile import ClientProfileModel
from agency.data.models.project import (
    ProjectModel,
    ProjectMilestoneModel,
    ProjectUpdateModel,
    ProjectFormModel,
)
from agency.data.models.system_constant import SystemConstantModel

__all__ = [
    "CartModel",
    "CartItemModel",
    "PackModel",
    "ServiceModuleModel",
    "PackServiceModel",
    "OrderModel",
    "OrderItemModel",
    "ClientProfileModel",
    "ProjectModel",
    "ProjectMilestoneModel",
    "ProjectUpdateModel",
    "ProjectFormModel",
    "SystemConstantModel",
]
