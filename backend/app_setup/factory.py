"""
Factory d'application pour les entrypoints (ex: backend.asgi).
Ordonne les étapes d'initialisation de manière lisible et testable.
"""
import logging
import os
from fastapi import FastAPI
from .lifespan import lifespan
from .middlewares import register_basic_middlewares, register_security_middleware, register_force_https_middleware
from .exceptions import register_exception_handlers
from .routers import register_routers
from backend.config import COOKIE_SECURE

def configure_logging() -> None:
    """Loggers applicatifs (backend.*) au niveau LOG_LEVEL; uvicorn garde sa propre config."""
    level = os.getenv("LOG_LEVEL", "info").upper()
    logging.basicConfig(level=level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    logging.getLogger("backend").setLevel(level)

def create_app() -> FastAPI:
    """
    Construit l'app FastAPI avec le lifespan et enregistre:
      - middlewares de base et en-têtes de sécurité (HTTPS forcé si COOKIE_SECURE)
      - gestionnaires d'exceptions
      - tous les routers (académie, paiements, health)
    Retour:
      FastAPI prêt à être utilisé par le serveur ASGI.
    """
    configure_logging()
    app = FastAPI(title="Académie - inscriptions et paiements", lifespan=lifespan)
    register_basic_middlewares(app)
    register_security_middleware(app)
    if COOKIE_SECURE:
        register_force_https_middleware(app)
    register_exception_handlers(app)
    register_routers(app)
    return app
