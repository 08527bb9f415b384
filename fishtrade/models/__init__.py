from fishtrade.models.product import Category, Product
from fishtrade.models.customer import Customer
from fishtrade.models.supplier import Supplier
from fishtrade.models.inventory import InventoryLogEntry, InventoryRecord
from fishtrade.models.sale_order import SaleOrder, SaleOrderItem
from fishtrade.models.import_order import ImportOrder, ImportOrderItem
from fishtrade.db.immutability import register_immutability_listeners

register_immutability_listeners()
