"""
Registre central des routers.
- API publique v1: fiche formation, payment-intent, webhook Stripe
- Health: health_router
"""
from fastapi import FastAPI
from backend.academy import views as academy_views
from backend.payments import views as payments_views
from backend.health.router import router as health_router

def register_routers(app: FastAPI) -> None:
    """
    Agrège tous les routers de l'application.
    - L'ordre n'a pas d'impact sauf conflits de chemins (évités par préfixes).
    """
    # API v1 publique
    app.include_router(academy_views.router)
    app.include_router(payments_views.router)
    # Health & monitoring
    app.include_router(health_router)
