# reparto/models/__init__.py

# 1. Base de datos (Origen de la clase declarativa)
from reparto.database import Base

# 2. Organización (tenants y planes)
from .organization import Tenant, Plan

# 3. Usuarios y Roles
from .users import User, Role

# 4. Catálogo e inventario del vehículo
from .products import Product, LegacySlot
from .inventory import VehicleStock, InventoryMovement, MovementType

# 5. Clientes y pagos
from .payments import ClientPayment, PaymentMethod, PaymentMode
from .crm import Client, ClientLedgerEntry

# 6. Entregas
from .deliveries import Delivery, DeliveryLine, DeliveryReconciliation
