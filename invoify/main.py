from __future__ import annotations

import logging

import uvicorn
from nicegui import app, ui

from .api import create_app
from .client.api_client import RemoteApiClient
from .client.storage import MappingKeyValueStore
from .client.toasts import Toasts
from .client.workspace import InvoiceWorkspace
from .config import get_settings
from .logging_setup import setup_logging
from .pages.auth import render_auth_controls
from .pages.invoice_form import render_invoice_form

logger = logging.getLogger(__name__)

AUTH_TOKEN_STORAGE_KEY = "invoify:authToken"


def _ui_notify(variant: str, title: str, description: str) -> None:
    message = f"{title}: {description}" if description else title
    ui.notify(message, type="negative" if variant == "destructive" else "positive")


@ui.page("/")
async def index() -> None:
    store = MappingKeyValueStore(app.storage.user)
    api = RemoteApiClient(session_token=app.storage.user.get(AUTH_TOKEN_STORAGE_KEY))
    workspace = InvoiceWorkspace(store, api, toasts=Toasts(_ui_notify))

    def remember_token() -> None:
        token = api.session_token if workspace.session.is_authenticated else None
        if token:
            app.storage.user[AUTH_TOKEN_STORAGE_KEY] = token
        else:
            app.storage.user.pop(AUTH_TOKEN_STORAGE_KEY, None)

    await workspace.start()
    remember_token()

    saved_list = None

    def on_session_change() -> None:
        remember_token()
        if saved_list is not None:
            saved_list.refresh()

    with ui.header().classes("bg-white text-slate-900 border-b border-slate-200 justify-end"):
        render_auth_controls(workspace, on_session_change)
    saved_list = render_invoice_form(workspace)

    async def flush_draft() -> None:
        workspace.draft.flush()
        await api.aclose()

    ui.context.client.on_disconnect(flush_draft)


def build_app():
    setup_logging()
    api_app = create_app()
    settings = get_settings()
    ui.run_with(api_app, title="Invoify", storage_secret=settings.storage_secret)
    logger.info("app.ready env=%s", settings.environment)
    return api_app


def run() -> None:
    settings = get_settings()
    uvicorn.run(build_app(), host="0.0.0.0", port=settings.port)


if __name__ == "__main__":
    run()
