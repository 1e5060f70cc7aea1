from __future__ import annotations

import copy
from typing import Any


# Local key-value store keys
LOCAL_STORAGE_INVOICE_DRAFT_KEY = "invoify:invoiceDraft"
LOCAL_STORAGE_DOWNLOAD_DIRECTORY_KEY = "invoify:downloadDirectory"
LOCAL_STORAGE_SAVED_PAYMENT_INFO_KEY = "invoify:savedPaymentInfo"
LOCAL_STORAGE_LAST_INVOICE_NUMBER_KEY = "invoify:lastInvoiceNumber"
LOCAL_STORAGE_SAVED_INVOICES_KEY = "savedInvoices"

# API endpoints (relative to the API base url)
AUTH_SIGNUP_API = "/api/auth/signup"
AUTH_LOGIN_API = "/api/auth/login"
AUTH_LOGOUT_API = "/api/auth/logout"
AUTH_ME_API = "/api/auth/me"
INVOICES_API = "/api/invoices"
GENERATE_PDF_API = "/api/invoices/generate"
SEND_PDF_API = "/api/invoices/send"
EXPORT_INVOICE_API = "/api/invoices/export"

AUTH_COOKIE_NAME = "token"

EXPORT_FORMATS = ("json", "csv", "xlsx", "pdf")

SHORT_DATE_FORMAT = "%b %d, %Y"

DEFAULT_LOGO_URL = "https://res.cloudinary.com/dvrko1y0a/image/upload/v1762951703/wings_s8x78b.webp"
DEFAULT_SIGNATURE_URL = (
    "https://res.cloudinary.com/dvrko1y0a/image/upload/v1762962336/"
    "7379e2cf-8c90-4e2f-a2b0-4ddbacbd65dd_ad36bo.jpg"
)

FORM_DEFAULT_VALUES: dict[str, Any] = {
    "sender": {
        "name": "Wings & Wheels Travel and Tourism LLC",
        "address": "",
        "zipCode": "",
        "city": "Dubai",
        "country": "United Arab Emirates",
        "email": "reservation@wwtravels.net",
        "phone": "00971 (0) 54 785 8338",
        "customInputs": [],
    },
    "receiver": {
        "name": "",
        "address": "",
        "zipCode": "",
        "city": "",
        "country": "",
        "email": "",
        "phone": "",
        "customInputs": [],
    },
    "details": {
        "invoiceLogo": DEFAULT_LOGO_URL,
        "invoiceNumber": "",
        "invoiceDate": None,
        "numberOfPassengers": 1,
        "billingPolicy": "per_passenger",
        "items": [
            {
                "name": "",
                "description": "",
                "quantity": 1,
                "unitPrice": 0,
                "total": 0,
                "passengerName": "",
                "serviceType": "",
            },
        ],
        "currency": "USD",
        "language": "English",
        "taxDetails": {"amount": 0, "amountType": "fixed", "taxID": ""},
        "discountDetails": {"amount": 0, "amountType": "fixed"},
        "shippingDetails": {"amount": 0, "amountType": "fixed"},
        "paymentInformation": {
            "bankName": "",
            "accountName": "",
            "accountNumber": "",
            "iban": "",
            "swiftCode": "",
        },
        "additionalNotes": "",
        "paymentTerms": "",
        "subTotal": "0.00",
        "totalAmount": "0.00",
        "totalAmountInWords": "",
        "pdfTemplate": 1,
        "signature": {"data": DEFAULT_SIGNATURE_URL},
    },
}


def default_form_values() -> dict[str, Any]:
    return copy.deepcopy(FORM_DEFAULT_VALUES)


def default_sender() -> dict[str, Any]:
    return copy.deepcopy(FORM_DEFAULT_VALUES["sender"])
