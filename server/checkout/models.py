"""
Persisted record types, insert shapes and request/response models.

Field names are snake_case in Python and camelCase on the wire.
"""

import re
from datetime import datetime
from typing import Any, List, Optional

from pydantic import (
    BaseModel,
    ConfigDict,
    EmailStr,
    StrictBool,
    StrictInt,
    TypeAdapter,
    ValidationError,
    field_validator,
)
from pydantic.alias_generators import to_camel
from pydantic_core import PydanticCustomError


CEP_PATTERN = re.compile(r"[0-9]{8}")
CPF_PATTERN = re.compile(r"[0-9]{11}")
MIN_PHONE_LENGTH = 10

# Error types whose message is shown to the client verbatim
CUSTOM_ERROR_TYPES = {"cep_format", "cpf_format", "email_format", "phone_length"}

_email_adapter = TypeAdapter(EmailStr)


class CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )


# ---- Users ----

class InsertUser(CamelModel):
    """Fields accepted when creating a user (id and createdAt are generated)."""
    username: str
    password: str


class User(InsertUser):
    id: int
    created_at: datetime


# ---- Orders ----

class InsertOrder(CamelModel):
    """Fields accepted when creating an order (id and createdAt are generated)."""
    product_sku: str
    product_name: str
    original_price: str
    customer_name: str
    customer_email: str
    customer_phone: str
    customer_cpf: str
    shipping_address: str
    shipping_city: str
    shipping_state: str
    shipping_postal_code: str
    shipping_number: str
    shipping_complement: Optional[str] = None
    shipping_method: str
    shipping_price: str
    payment_complete: Optional[bool] = False
    survey_answers: Optional[Any] = None


class Order(InsertOrder):
    id: int
    created_at: datetime


class CreateOrderRequest(InsertOrder):
    """Order payload posted by the checkout form."""

    @field_validator("customer_email")
    @classmethod
    def check_email(cls, value: str) -> str:
        try:
            _email_adapter.validate_python(value)
        except ValidationError:
            raise PydanticCustomError("email_format", "Email inválido")
        return value

    @field_validator("customer_cpf")
    @classmethod
    def check_cpf(cls, value: str) -> str:
        if not CPF_PATTERN.fullmatch(value):
            raise PydanticCustomError("cpf_format", "CPF deve conter 11 dígitos numéricos")
        return value

    @field_validator("customer_phone")
    @classmethod
    def check_phone(cls, value: str) -> str:
        if len(value) < MIN_PHONE_LENGTH:
            raise PydanticCustomError("phone_length", "Telefone deve conter pelo menos 10 dígitos")
        return value


class CepRequest(BaseModel):
    cep: str

    @field_validator("cep")
    @classmethod
    def check_cep(cls, value: str) -> str:
        if not CEP_PATTERN.fullmatch(value):
            raise PydanticCustomError("cep_format", "CEP deve conter 8 dígitos numéricos")
        return value


class UpdatePaymentRequest(CamelModel):
    order_id: StrictInt
    payment_complete: StrictBool


class CreateOrderResponse(CamelModel):
    message: str
    order_id: int


class UpdatePaymentResponse(CamelModel):
    message: str
    order: Order


class ErrorResponse(BaseModel):
    message: str


def first_error_message(errors: List[dict]) -> str:
    """Message of the first violated rule in a pydantic error list."""
    if not errors:
        return "Invalid request"
    error = errors[0]
    if error.get("type") in CUSTOM_ERROR_TYPES:
        return error["msg"]
    loc = [str(part) for part in error.get("loc", ()) if part != "body"]
    if loc:
        return f"{'.'.join(loc)}: {error['msg']}"
    return error["msg"]


# ---- Table DDL ----

SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS users (
    id SERIAL PRIMARY KEY,
    username TEXT NOT NULL UNIQUE,
    password TEXT NOT NULL,
    created_at TIMESTAMP NOT NULL DEFAULT NOW()
);

CREATE TABLE IF NOT EXISTS orders (
    id SERIAL PRIMARY KEY,
    product_sku TEXT NOT NULL,
    product_name TEXT NOT NULL,
    original_price TEXT NOT NULL,
    customer_name TEXT NOT NULL,
    customer_email TEXT NOT NULL,
    customer_phone TEXT NOT NULL,
    customer_cpf TEXT NOT NULL,
    shipping_address TEXT NOT NULL,
    shipping_city TEXT NOT NULL,
    shipping_state TEXT NOT NULL,
    shipping_postal_code TEXT NOT NULL,
    shipping_number TEXT NOT NULL,
    shipping_complement TEXT,
    shipping_method TEXT NOT NULL,
    shipping_price TEXT NOT NULL,
    payment_complete BOOLEAN DEFAULT FALSE,
    survey_answers JSONB,
    created_at TIMESTAMP NOT NULL DEFAULT NOW()
);
"""

ORDER_COLUMNS = list(InsertOrder.model_fields)
