"""
ASGI entrypoint: expose `app` for process managers / deployments.

- En production, un process manager (ex: gunicorn -k uvicorn.workers.UvicornWorker) importe
  `backend.asgi:app`. Plusieurs workers peuvent traiter en parallèle deux livraisons du même
  webhook: l'unicité de stripe_payment_intent_id en base suffit, aucun état partagé en mémoire.
"""

from backend.app import app

if __name__ == "__main__":
    import os
    import uvicorn
    uvicorn.run(
        "backend.asgi:app",
        host="0.0.0.0",
        port=int(os.getenv("PORT", "8000")),
        reload=True,
    )
