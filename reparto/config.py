import os
from dotenv import load_dotenv

# Cargar variables de entorno (.env en la raíz del proyecto)
load_dotenv()


def _env_bool(name, default=False):
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on", "si", "sí")


class Config:
    """Configuración base"""
    APP_NAME = os.environ.get('APP_NAME', 'Reparto - Soderías')

    # Base de datos (cualquier URL de SQLAlchemy)
    DATABASE_URL = os.environ.get('DATABASE_URL', 'sqlite:///./reparto.db')
    SQL_ECHO = False

    # JWT
    SECRET_KEY = os.environ.get('SECRET_KEY') or 'reparto_secret_key_change_me_in_prod'
    ALGORITHM = os.environ.get('ALGORITHM', 'HS256')
    ACCESS_TOKEN_EXPIRE_MINUTES = int(os.environ.get('ACCESS_TOKEN_EXPIRE_MINUTES', 60 * 12))

    # Logging
    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO')

    # Liquidación de entregas
    SETTLEMENT_MAX_RETRIES = int(os.environ.get('SETTLEMENT_MAX_RETRIES', 3))
    # False = el control de stock del vehículo solo advierte
    ENFORCE_VEHICLE_STOCK = _env_bool('ENFORCE_VEHICLE_STOCK', False)
    # False = el trigger es el único que escribe el saldo del cliente
    SETTLEMENT_WRITES_BALANCE = _env_bool('SETTLEMENT_WRITES_BALANCE', True)

    CORS_ORIGINS = [o.strip() for o in os.environ.get('CORS_ORIGINS', '*').split(',') if o.strip()]


class DevelopmentConfig(Config):
    """Configuración para desarrollo"""
    DEBUG = True
    SQL_ECHO = _env_bool('SQL_ECHO', False)


class TestingConfig(Config):
    """Configuración para pruebas"""
    DEBUG = True
    DATABASE_URL = os.environ.get('DATABASE_URL', 'sqlite://')
    LOG_LEVEL = 'WARNING'


class ProductionConfig(Config):
    """Configuración para producción"""
    DEBUG = False
    SQL_ECHO = False


# Diccionario de configuraciones
config = {
    'development': DevelopmentConfig,
    'testing': TestingConfig,
    'production': ProductionConfig,
    'default': DevelopmentConfig
}


def get_config():
    return config.get(os.environ.get('APP_ENV', 'default'), DevelopmentConfig)


settings = get_config()
