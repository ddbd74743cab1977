"""
Gestionnaires d'exceptions utilisés par la factory.
- AcademyError (et sous-classes paiement): code HTTP porté par l'exception, body {"detail", "code"}.
- HTTPException: réponse JSON FastAPI standard (validation, 429 du rate limit, ...).
Les exceptions inattendues ne sont pas interceptées: Starlette répond 500, ce que Stripe
interprète comme "relivrer plus tard".
"""
import logging
from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse

from backend.academy.exceptions import AcademyError

logger = logging.getLogger(__name__)

def register_exception_handlers(app: FastAPI) -> None:
    """
    Enregistre les handlers AcademyError et HTTPException.
    - 4xx métier: journalisés en info (erreurs de l'appelant, sans effet de bord).
    - 5xx métier: journalisés en warning (Stripe/Supabase indisponibles, réessayable).
    """
    @app.exception_handler(AcademyError)
    async def academy_error_handler(request: Request, exc: AcademyError):
        log = logger.warning if exc.status_code >= 500 else logger.info
        log("%s %s -> %s %s", request.method, request.url.path, exc.status_code, exc.code)
        return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail, "code": exc.code})

    @app.exception_handler(HTTPException)
    async def http_error_handler(request: Request, exc: HTTPException):
        return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail}, headers=exc.headers)
