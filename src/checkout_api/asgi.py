from __future__ import annotations

from fastapi import FastAPI

from checkout_api.adapters.inbound.web.fastapi_app import create_app
from checkout_api.bootstrap import build_default
from checkout_api.utils.logging import configure_logging


def create_asgi_app() -> FastAPI:
    settings, _, usecases = build_default()
    configure_logging(settings.env, settings.log_level)
    return create_app(usecases.purchase_cart, usecases.get_ticket)
