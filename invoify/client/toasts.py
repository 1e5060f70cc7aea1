from __future__ import annotations

import logging
from typing import Callable, Optional

logger = logging.getLogger(__name__)

# (variant, title, description); variant is "default" or "destructive"
Notify = Callable[[str, str, str], None]


def log_notify(variant: str, title: str, description: str) -> None:
    if variant == "destructive":
        logger.warning("toast title=%s description=%s", title, description)
    else:
        logger.info("toast title=%s description=%s", title, description)


class Toasts:
    """User-facing notifications. Every failure path in the client ends up here."""

    def __init__(self, notify: Optional[Notify] = None) -> None:
        self._notify = notify or log_notify

    def success(self, title: str, description: str = "") -> None:
        self._notify("default", title, description)

    def error(self, title: str, description: str = "") -> None:
        self._notify("destructive", title, description)

    def new_invoice_success(self) -> None:
        self.success("Generated new invoice", "Successfully created a new invoice")

    def pdf_generation_success(self) -> None:
        self.success("Your invoice has been generated!", "You can now download, print or send it")

    def save_invoice_success(self) -> None:
        self.success("Saved Invoice", "Your invoice has been saved")

    def modified_invoice_success(self) -> None:
        self.success("Modified Invoice", "Your invoice has been updated")

    def payment_info_saved(self) -> None:
        self.success("Saved Payment Information", "Payment details can now be reused")

    def send_pdf_success(self) -> None:
        self.success("Email sent successfully", "Your invoice has been sent")

    def send_pdf_error(self, email: str) -> None:
        self.error("Error", f"Failed to send invoice to {email}. Please try again.")

    def import_invoice_error(self) -> None:
        self.error("Error", "Something went wrong while importing the invoice.")

    def download_success(self, invoice_number: str | None = None) -> None:
        label = f"Invoice {invoice_number}" if invoice_number else "Invoice"
        self.success("Download successful", f"{label} has been downloaded")

    def export_success(self, invoice_number: str, export_as: str) -> None:
        self.success(
            "Export successful",
            f"Invoice {invoice_number} has been exported as {export_as} successfully",
        )
