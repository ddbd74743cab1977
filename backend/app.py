# module backend.app
"""
Instance applicative unique, construite par la factory (backend.app_setup.factory).
Importée par backend.asgi et par les tests (TestClient).
"""
from backend.app_setup.factory import create_app

app = create_app()
