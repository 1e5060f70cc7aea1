from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel


_DATE_FORMATS = ("%B %d, %Y", "%b %d, %Y", "%m/%d/%Y", "%d.%m.%Y")


def revive_date(value: Any) -> date | None:
    """Turn a serialized date (ISO string, JS Date JSON, 'January 5, 2024') back into a date."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    text = str(value).strip()
    try:
        return datetime.fromisoformat(text.replace("Z", "+00:00")).date()
    except ValueError:
        pass
    try:
        return date.fromisoformat(text[:10])
    except ValueError:
        pass
    for fmt in _DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt).date()
        except ValueError:
            continue
    return None


class InvoiceValidationError(ValueError):
    def __init__(self, errors: list[str]):
        self.errors = list(errors)
        super().__init__("; ".join(self.errors))


class _WireModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )

    @model_validator(mode="before")
    @classmethod
    def _normalize_blanks(cls, data: Any) -> Any:
        # Blank text becomes "", blank numbers fall back to the field default.
        if not isinstance(data, dict):
            return data
        data = dict(data)
        for name, field in cls.model_fields.items():
            for key in {name, field.alias or name}:
                if key not in data:
                    continue
                if field.annotation is str and data[key] is None:
                    data[key] = ""
                elif field.annotation in (Decimal, int) and data[key] in (None, ""):
                    del data[key]
        return data


class AmountType(str, Enum):
    FIXED = "fixed"
    PERCENTAGE = "percentage"


class BillingPolicy(str, Enum):
    PER_PASSENGER = "per_passenger"
    QUANTITY = "quantity"


class CustomInput(_WireModel):
    key: str = ""
    value: str = ""


class Party(_WireModel):
    name: str = ""
    address: str = ""
    zip_code: str = ""
    city: str = ""
    country: str = ""
    email: str = ""
    phone: str = ""
    custom_inputs: List[CustomInput] = Field(default_factory=list)


class LineItem(_WireModel):
    name: str = ""
    description: str = ""
    quantity: Decimal = Field(default=Decimal("1"), ge=0)
    unit_price: Decimal = Field(default=Decimal("0"), ge=0)
    total: Decimal = Decimal("0")
    passenger_name: str = ""
    service_type: str = ""


class Modifier(_WireModel):
    amount: Decimal = Field(default=Decimal("0"), ge=0)
    amount_type: AmountType = AmountType.FIXED

    @field_validator("amount_type", mode="before")
    @classmethod
    def _legacy_amount_type(cls, value: Any) -> Any:
        if value in (None, "", "amount"):
            return AmountType.FIXED
        return value


class TaxDetails(Modifier):
    tax_id: str = Field(default="", alias="taxID")


class DiscountDetails(Modifier):
    @model_validator(mode="after")
    def _percentage_in_range(self) -> "DiscountDetails":
        if self.amount_type == AmountType.PERCENTAGE and self.amount > 100:
            raise ValueError("Discount percentage must not exceed 100")
        return self


class ShippingDetails(Modifier):
    @model_validator(mode="before")
    @classmethod
    def _legacy_cost_keys(cls, data: Any) -> Any:
        if isinstance(data, dict) and ("cost" in data or "costType" in data):
            data = dict(data)
            cost = data.pop("cost", None)
            cost_type = data.pop("costType", None)
            if cost not in (None, ""):
                data.setdefault("amount", cost)
            if cost_type:
                data.setdefault("amountType", cost_type)
        return data


class PaymentInformation(_WireModel):
    bank_name: str = ""
    account_name: str = ""
    account_number: str = ""
    iban: str = ""
    swift_code: str = ""


class Signature(_WireModel):
    data: str = ""
    font_family: str = ""


class InvoiceDetails(_WireModel):
    invoice_logo: str = ""
    invoice_number: str = ""
    invoice_date: Optional[date] = None
    due_date: Optional[date] = None
    currency: str = "USD"
    language: str = "English"
    number_of_passengers: int = Field(default=1, ge=0)
    billing_policy: BillingPolicy = BillingPolicy.PER_PASSENGER
    items: List[LineItem] = Field(default_factory=list)
    tax_details: TaxDetails = Field(default_factory=TaxDetails)
    discount_details: DiscountDetails = Field(default_factory=DiscountDetails)
    shipping_details: ShippingDetails = Field(default_factory=ShippingDetails)
    payment_information: PaymentInformation = Field(default_factory=PaymentInformation)
    additional_notes: str = ""
    payment_terms: str = ""
    sub_total: Decimal = Decimal("0")
    total_amount: Decimal = Decimal("0")
    total_amount_in_words: str = ""
    pdf_template: int = 1
    signature: Signature = Field(default_factory=Signature)
    updated_at: str = ""

    @field_validator("invoice_date", "due_date", mode="before")
    @classmethod
    def _revive_dates(cls, value: Any) -> date | None:
        return revive_date(value)

    @field_validator("currency", mode="before")
    @classmethod
    def _currency_code(cls, value: Any) -> str:
        return (str(value or "").strip().upper()) or "USD"


class Invoice(_WireModel):
    id: Optional[str] = None
    sender: Party = Field(default_factory=Party)
    receiver: Party = Field(default_factory=Party)
    details: InvoiceDetails = Field(default_factory=InvoiceDetails)
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    @property
    def invoice_number(self) -> str:
        return self.details.invoice_number.strip()

    def to_payload(self, *, include_meta: bool = False) -> dict[str, Any]:
        """JSON-ready camelCase dict; storage metadata only on request."""
        exclude = None if include_meta else {"id", "created_at", "updated_at"}
        return self.model_dump(mode="json", by_alias=True, exclude=exclude, exclude_none=True)


class PaymentProfile(_WireModel):
    id: str
    name: str
    bank_name: str = ""
    account_name: str = ""
    account_number: str = ""
    iban: str = ""
    swift_code: str = ""
    saved_at: str = ""

    def to_payment_information(self) -> PaymentInformation:
        return PaymentInformation(
            bank_name=self.bank_name,
            account_name=self.account_name,
            account_number=self.account_number,
            iban=self.iban,
            swift_code=self.swift_code,
        )


def validate_invoice_for_save(invoice: Invoice) -> None:
    errors: list[str] = []
    if not invoice.invoice_number:
        errors.append("Invoice number is required")
    if invoice.details.invoice_date is None:
        errors.append("Invoice date is required")
    if not invoice.details.items:
        errors.append("At least one line item is required")
    if errors:
        raise InvoiceValidationError(errors)
