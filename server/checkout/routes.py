"""
API endpoints for postal code lookup and orders.

Validation errors become 400 with the first violated rule's message, missing
records become 404, and anything unexpected is logged and answered with a
generic 500. Every error body is {"message": ...}.
"""

import logging
import re
from typing import List

from fastapi import APIRouter, Depends, HTTPException, Request, status
from pydantic import ValidationError

from .cep import CepClient, CepNotFoundError, get_cep_client
from .models import (
    CepRequest,
    CreateOrderRequest,
    CreateOrderResponse,
    ErrorResponse,
    Order,
    UpdatePaymentRequest,
    UpdatePaymentResponse,
    first_error_message,
)
from .storage import DatabaseStorage, get_storage


logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/api",
    tags=["api"],
    responses={
        400: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
        500: {"model": ErrorResponse},
    },
)


def _internal_error(message: str) -> HTTPException:
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=message)


def _bad_request(message: str) -> HTTPException:
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=message)


# --- Postal code ---


@router.get("/cep/{cep}")
async def lookup_cep(
    cep: str,
    client: CepClient = Depends(get_cep_client),
):
    """Resolve a CEP to its address via the lookup service."""
    try:
        request = CepRequest(cep=cep)
    except ValidationError as e:
        raise _bad_request(first_error_message(e.errors()))

    try:
        return await client.lookup(request.cep)
    except CepNotFoundError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="CEP não encontrado")
    except Exception as e:
        logger.error(f"Error looking up CEP {request.cep}: {e}")
        raise _internal_error("Erro ao buscar CEP")


# --- Orders ---

FORM_CONTENT_TYPE = "application/x-www-form-urlencoded"

ORDER_ID_PATTERN = re.compile(r"-?[0-9]+")


async def read_order_body(request: Request) -> CreateOrderRequest:
    """Order payload from a JSON or URL-encoded form body."""
    if request.headers.get("content-type", "").startswith(FORM_CONTENT_TYPE):
        data = dict(await request.form())
    else:
        try:
            data = await request.json()
        except ValueError:
            raise _bad_request("Corpo da requisição deve ser um JSON válido")

    try:
        return CreateOrderRequest.model_validate(data)
    except ValidationError as e:
        raise _bad_request(first_error_message(e.errors()))


@router.post("/orders", status_code=status.HTTP_201_CREATED, response_model=CreateOrderResponse)
async def create_order(
    body: CreateOrderRequest = Depends(read_order_body),
    storage: DatabaseStorage = Depends(get_storage),
):
    """
    Create an order from the checkout form.

    Orders always start unpaid, whatever the client sends for paymentComplete.
    """
    try:
        order = await storage.create_order(body.model_copy(update={"payment_complete": False}))
    except Exception:
        logger.exception("Error creating order")
        raise _internal_error("Erro ao criar pedido")

    return CreateOrderResponse(message="Pedido criado com sucesso", order_id=order.id)


@router.get("/orders", response_model=List[Order])
async def list_orders(storage: DatabaseStorage = Depends(get_storage)):
    """All orders, oldest first."""
    try:
        return await storage.get_all_orders()
    except Exception:
        logger.exception("Error fetching orders")
        raise _internal_error("Erro ao buscar pedidos")


@router.patch("/orders/payment", response_model=UpdatePaymentResponse)
async def update_payment(
    body: UpdatePaymentRequest,
    storage: DatabaseStorage = Depends(get_storage),
):
    """Set the payment-complete flag of an order."""
    try:
        order = await storage.update_order_payment(body.order_id, body.payment_complete)
    except Exception:
        logger.exception("Error updating payment")
        raise _internal_error("Erro ao atualizar status de pagamento")

    if order is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Pedido não encontrado")

    return UpdatePaymentResponse(message="Status de pagamento atualizado com sucesso", order=order)


@router.get("/orders/{order_id}", response_model=Order)
async def get_order(
    order_id: str,
    storage: DatabaseStorage = Depends(get_storage),
):
    # ASCII digits only; int() alone would also take "1_0" and non-Latin digits
    order_id = order_id.strip()
    if not ORDER_ID_PATTERN.fullmatch(order_id):
        raise _bad_request("ID do pedido inválido")
    parsed_id = int(order_id)

    try:
        order = await storage.get_order(parsed_id)
    except Exception:
        logger.exception("Error fetching order")
        raise _internal_error("Erro ao buscar pedido")

    if order is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Pedido não encontrado")
    return order
