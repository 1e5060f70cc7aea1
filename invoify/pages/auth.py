from __future__ import annotations

import logging

from nicegui import ui

from ..client.workspace import InvoiceWorkspace

ERROR_TEXT = "text-sm text-rose-600"
INPUT_CLASSES = "w-full"
PRIMARY_BUTTON = "w-full bg-slate-900 text-white rounded-lg hover:bg-slate-800"
logger = logging.getLogger(__name__)


def _error_label() -> ui.label:
    label = ui.label("").classes(ERROR_TEXT)
    label.set_visibility(False)
    return label


def _set_error(label: ui.label, message: str) -> None:
    label.text = message
    label.set_visibility(bool(message))


def render_auth_controls(workspace: InvoiceWorkspace, on_session_change) -> None:
    """Login / signup dialog and the account chip in the page header."""
    session = workspace.session

    with ui.dialog() as dialog, ui.card().classes("w-[360px] gap-3"):
        mode = {"value": "login"}
        title = ui.label("Sign in").classes("text-lg font-semibold")
        name = ui.input("Name").classes(INPUT_CLASSES)
        name.set_visibility(False)
        email = ui.input("Email").classes(INPUT_CLASSES)
        password = ui.input("Password", password=True, password_toggle_button=True).classes(INPUT_CLASSES)
        error = _error_label()

        def toggle_mode() -> None:
            mode["value"] = "signup" if mode["value"] == "login" else "login"
            signup = mode["value"] == "signup"
            title.text = "Create account" if signup else "Sign in"
            submit.text = "Sign up" if signup else "Sign in"
            switch.text = "Already have an account? Sign in" if signup else "No account yet? Sign up"
            name.set_visibility(signup)
            _set_error(error, "")

        async def handle_submit() -> None:
            if mode["value"] == "signup":
                user, message = await session.signup(email.value or "", password.value or "", name.value or "")
            else:
                user, message = await session.login(email.value or "", password.value or "")
            if user is None:
                _set_error(error, message)
                return
            logger.info("ui.auth mode=%s user_id=%s", mode["value"], user.get("id"))
            password.value = ""
            dialog.close()
            on_session_change()
            account.refresh()

        submit = ui.button("Sign in", on_click=handle_submit).classes(PRIMARY_BUTTON)
        switch = ui.button("No account yet? Sign up", on_click=toggle_mode).props("flat dense no-caps")

    async def handle_logout() -> None:
        await session.logout()
        on_session_change()
        account.refresh()

    @ui.refreshable
    def account() -> None:
        if session.is_authenticated:
            owner = session.owner or {}
            with ui.row().classes("items-center gap-2"):
                ui.label(owner.get("name") or owner.get("email", "")).classes("text-sm text-slate-600")
                ui.button("Sign out", on_click=handle_logout).props("flat dense")
        else:
            ui.button("Sign in", on_click=dialog.open).props("flat dense")

    account()
