import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware

from reparto.config import settings
from reparto.database import engine
from reparto.exceptions import RepartoError
from reparto.logging_config import configure_logging
from reparto.models import Base
from reparto.routers import auth, products, inventory, clients, deliveries

configure_logging()
logger = logging.getLogger(__name__)

# 1. CREACIÓN AUTOMÁTICA DE TABLAS
Base.metadata.create_all(bind=engine)

app = FastAPI(
    title=settings.APP_NAME,
    description="Liquidación de entregas, saldos de clientes e inventario del vehículo",
    version="1.0.0"
)

# 2. CONFIGURACIÓN DE CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# 3. REGISTRO DE ROUTERS (BACKEND API)
app.include_router(auth.router, prefix="/api/auth", tags=["🔑 Autenticación"])
app.include_router(products.router, prefix="/api/products", tags=["📦 Catálogo de Productos"])
app.include_router(inventory.router, prefix="/api/inventory", tags=["🚚 Inventario del Vehículo"])
app.include_router(clients.router, prefix="/api/clients", tags=["👥 Clientes"])
app.include_router(deliveries.router, prefix="/api/deliveries", tags=["💧 Entregas"])


# --- 4. MANEJO DE ERRORES ---
@app.exception_handler(RepartoError)
async def reparto_exception_handler(request: Request, exc: RepartoError):
    if exc.status_code >= 500:
        logger.error("%s %s -> %s", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


@app.exception_handler(404)
async def not_found_exception_handler(request: Request, exc):
    return JSONResponse(status_code=404, content={"detail": getattr(exc, "detail", None) or "Recurso no encontrado"})
