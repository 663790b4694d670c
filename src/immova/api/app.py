"""ASGI entrypoint: uvicorn immova.api.app:app (role from APP_ROLE)."""

from immova.api.factory import create_app

app = create_app()
