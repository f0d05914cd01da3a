# reparto/routers/__init__.py

# Esto expone los módulos para que "from reparto.routers import clients" funcione
from . import auth
from . import products
from . import inventory
from . import clients
from . import deliveries
