# backend.config
from dataclasses import dataclass
from pathlib import Path
from typing import Tuple
import os
from dotenv import load_dotenv

# Calculer le chemin du projet puis charger .env de manière explicite
BASE_DIR = Path(__file__).resolve().parent.parent
ENV_PATH = BASE_DIR / ".env"
load_dotenv(dotenv_path=ENV_PATH, override=True)

"""
Configuration centrale du backend.

- Charge le fichier .env à la racine du projet (BASE_DIR/.env)
- Normalise et expose les secrets/URLs (Supabase, Stripe), CORS/hosts
- Regroupe les réglages de paiement dans PaymentSettings, injecté dans les services
  (la logique métier ne lit jamais os.environ directement)
"""

def _clean_env(v: str) -> str:
    """
    Nettoie une valeur d'environnement:
    - supprime les espaces et guillemets (simples, doubles) et backticks
    - retourne toujours une chaîne (jamais None)
    """
    return (v or "").strip().strip("'").strip('"').strip("`")

def _int_env(name: str, default: int) -> int:
    try:
        return int(_clean_env(os.getenv(name) or "") or default)
    except ValueError:
        return default

# Supabase: URLs et clés (public/anon/service)
# - SUPABASE_URL peut parfois être sans schéma: on préfixe en https:// si nécessaire
SUPABASE_URL = _clean_env(os.getenv("SUPABASE_URL") or os.getenv("NEXT_PUBLIC_SUPABASE_URL") or "")
SUPABASE_ANON = _clean_env(os.getenv("SUPABASE_ANON_KEY") or os.getenv("SUPABASE_KEY") or "")
# Clé service-role: seule autorisée à écrire les inscriptions (webhook)
SUPABASE_SERVICE_KEY = _clean_env(os.getenv("SUPABASE_SERVICE_KEY") or "")

if SUPABASE_URL and not SUPABASE_URL.startswith("http"):
    SUPABASE_URL = "https://" + SUPABASE_URL
if SUPABASE_URL.endswith("/"):
    SUPABASE_URL = SUPABASE_URL.rstrip("/")

COOKIE_SECURE = (os.getenv("COOKIE_SECURE", "false").lower() == "true")

# CORS (le formulaire d'inscription public est servi par le front)
CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()]
ALLOWED_HOSTS = [h.strip() for h in os.getenv("ALLOWED_HOSTS", "localhost,127.0.0.1,testserver").split(",") if h.strip()]
# Proxys dont les en-têtes X-Forwarded-* sont crus (même variable que uvicorn)
FORWARDED_ALLOW_IPS = [h.strip() for h in os.getenv("FORWARDED_ALLOW_IPS", "127.0.0.1").split(",") if h.strip()]

# Stripe: clés publiques/privées et secret webhook
STRIPE_PUBLIC_KEY = _clean_env(os.getenv("STRIPE_PUBLIC_KEY") or "")
STRIPE_SECRET_KEY = _clean_env(os.getenv("STRIPE_SECRET_KEY") or "")
STRIPE_WEBHOOK_SECRET = _clean_env(os.getenv("STRIPE_WEBHOOK_SECRET") or "")

# Paiement: devise unique, moyens de paiement autorisés, délais réseau
STRIPE_CURRENCY = _clean_env(os.getenv("STRIPE_CURRENCY") or "eur").lower()
STRIPE_PAYMENT_METHOD_TYPES = [
    m.strip() for m in (os.getenv("STRIPE_PAYMENT_METHOD_TYPES") or "card,bancontact").split(",") if m.strip()
]
STRIPE_TIMEOUT_SECONDS = _int_env("STRIPE_TIMEOUT_SECONDS", 10)
STRIPE_MAX_NETWORK_RETRIES = _int_env("STRIPE_MAX_NETWORK_RETRIES", 2)
STRIPE_WEBHOOK_TOLERANCE = _int_env("STRIPE_WEBHOOK_TOLERANCE", 300)

# Rate limiting de l'endpoint public payment-intent
INTENT_RATE_LIMIT_TIMES = _int_env("INTENT_RATE_LIMIT_TIMES", 10)
INTENT_RATE_LIMIT_SECONDS = _int_env("INTENT_RATE_LIMIT_SECONDS", 60)


@dataclass(frozen=True)
class PaymentSettings:
    """Réglages Stripe figés, passés explicitement au gateway et au réconciliateur."""
    secret_key: str
    webhook_secret: str
    currency: str = "eur"
    payment_method_types: Tuple[str, ...] = ("card", "bancontact")
    timeout_seconds: int = 10
    max_network_retries: int = 2
    webhook_tolerance: int = 300


def get_payment_settings() -> PaymentSettings:
    """
    Dépendance FastAPI: construit PaymentSettings depuis la configuration chargée.
    Surchargée dans les tests (app.dependency_overrides) avec un secret fixe.
    """
    return PaymentSettings(
        secret_key=STRIPE_SECRET_KEY,
        webhook_secret=STRIPE_WEBHOOK_SECRET,
        currency=STRIPE_CURRENCY,
        payment_method_types=tuple(STRIPE_PAYMENT_METHOD_TYPES),
        timeout_seconds=STRIPE_TIMEOUT_SECONDS,
        max_network_retries=STRIPE_MAX_NETWORK_RETRIES,
        webhook_tolerance=STRIPE_WEBHOOK_TOLERANCE,
    )
