"""
Payment Routes

Escrow payment initiation, gateway return redirects and the Ozow/PayFast
notification webhooks.

Webhooks answer 400 only when a notification fails authentication. Anything
that goes wrong after that is logged and acknowledged, so the gateway does
not keep redelivering a payload we cannot apply.
"""

import logging
from typing import Dict, Optional
from urllib.parse import urlencode

from fastapi import APIRouter, Request, status
from fastapi.responses import JSONResponse, PlainTextResponse, RedirectResponse

from app.actions.payments import PaymentActions
from app.api.dependencies import (
    IdentityDep,
    NotifierDep,
    OzowGatewayDep,
    PayFastGatewayDep,
    ReconcilerDep,
    TransactionRepoDep,
    action_response,
)
from app.config.settings import get_settings
from app.domain.marketplace import InitiatePaymentRequest
from app.domain.payments import SUBSCRIPTION_PREFIX
from app.infrastructure.db.dependencies import SessionDep


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/payments")


async def read_form(request: Request) -> Dict[str, str]:
    """Posted form fields, in the order they were sent."""
    form = await request.form()
    return {key: str(value) for key, value in form.multi_items()}


def source_ip(request: Request) -> Optional[str]:
    return request.client.host if request.client else None


# =============================================================================
# Initiation
# =============================================================================

@router.post("/initiate")
async def initiate_payment(
    body: InitiatePaymentRequest,
    identity: IdentityDep,
    session: SessionDep,
    notifier: NotifierDep,
):
    """Start funding an order (or one milestone) and return the gateway URL."""
    actions = PaymentActions(session, notifier)
    result = await actions.initiate_payment(
        identity,
        order_id=body.order_id,
        milestone_id=body.milestone_id,
        provider=body.provider,
        base_url=get_settings().app_url,
    )
    if not result.success:
        return action_response(result)

    return {
        "success": True,
        "redirectUrl": result.data["redirect_url"],
        "reference": result.data["reference"],
    }


@router.get("/status/{reference}")
async def payment_status(
    reference: str,
    identity: IdentityDep,
    session: SessionDep,
    notifier: NotifierDep,
):
    result = await PaymentActions(session, notifier).get_payment_status(identity, reference)
    return action_response(result)


# =============================================================================
# Webhooks
# =============================================================================

async def handle_payfast_itn(
    request: Request,
    gateway: PayFastGatewayDep,
    reconciler: ReconcilerDep,
) -> PlainTextResponse:
    payload = await read_form(request)
    reference = payload.get("m_payment_id", "-")

    verification = await gateway.verify_webhook(payload, {"source_ip": source_ip(request)})
    if not verification.valid:
        logger.warning(f"[PAYFAST] Rejected ITN for {reference}: {verification.reason}")
        return PlainTextResponse("Invalid ITN", status_code=status.HTTP_400_BAD_REQUEST)

    try:
        notification = gateway.parse_webhook(payload)
        await reconciler.reconcile(notification)
    except Exception as e:
        logger.error(f"[PAYFAST] Error processing ITN {reference}: {e}")
        await reconciler.session.rollback()

    return PlainTextResponse("OK")


@router.post("/payfast/notify")
async def payfast_notify(
    request: Request,
    gateway: PayFastGatewayDep,
    reconciler: ReconcilerDep,
):
    """PayFast Instant Transaction Notification."""
    return await handle_payfast_itn(request, gateway, reconciler)


@router.post("/ozow/notify")
async def ozow_notify(
    request: Request,
    gateway: OzowGatewayDep,
    reconciler: ReconcilerDep,
):
    """Ozow payment notification."""
    payload = await read_form(request)
    reference = payload.get("TransactionReference", "-")

    verification = await gateway.verify_webhook(payload)
    if not verification.valid:
        logger.warning(f"[OZOW] Rejected notification for {reference}: {verification.reason}")
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"error": "Invalid signature"},
        )

    try:
        notification = gateway.parse_webhook(payload)
        await reconciler.reconcile(notification)
    except Exception as e:
        logger.error(f"[OZOW] Error processing notification {reference}: {e}")
        await reconciler.session.rollback()
        return {"success": False}

    return {"success": True}


# Legacy ITN path configured on older PayFast merchant accounts
webhook_router = APIRouter()


@webhook_router.post("/webhooks/payfast")
async def payfast_webhook_alias(
    request: Request,
    gateway: PayFastGatewayDep,
    reconciler: ReconcilerDep,
):
    return await handle_payfast_itn(request, gateway, reconciler)


# =============================================================================
# Return redirects
# =============================================================================

async def payment_redirect(
    request: Request,
    transactions: TransactionRepoDep,
    outcome: str,
) -> RedirectResponse:
    """
    Send the browser back to the order page with the payment outcome.

    The order comes from the gateway's pass-through field when present,
    otherwise from the pending ledger row for the reference.
    """
    params = dict(request.query_params)
    if request.method == "POST":
        params.update(await read_form(request))

    app_url = get_settings().app_url
    reference = params.get("ref") or params.get("TransactionReference") or params.get("m_payment_id")
    if reference and reference.upper().startswith(SUBSCRIPTION_PREFIX):
        return RedirectResponse(
            f"{app_url}/dashboard/subscription?{urlencode({'payment': outcome})}",
            status_code=status.HTTP_303_SEE_OTHER,
        )

    order_id = params.get("Optional1") or params.get("custom_str1")
    milestone_id = params.get("Optional2") or params.get("custom_str2")

    if not order_id and reference:
        transaction = await transactions.get_by_reference(reference)
        if transaction is not None:
            order_id = transaction.order_id
            milestone_id = milestone_id or transaction.milestone_id

    query = {"payment": outcome}
    if milestone_id:
        query["milestone"] = milestone_id

    if order_id:
        target = f"{app_url}/dashboard/orders/{order_id}?{urlencode(query)}"
    else:
        target = f"{app_url}/dashboard/orders?{urlencode({'payment': outcome})}"
    return RedirectResponse(target, status_code=status.HTTP_303_SEE_OTHER)


@router.api_route("/ozow/success", methods=["GET", "POST"])
async def ozow_success(request: Request, transactions: TransactionRepoDep):
    return await payment_redirect(request, transactions, "success")


@router.api_route("/ozow/cancel", methods=["GET", "POST"])
async def ozow_cancel(request: Request, transactions: TransactionRepoDep):
    return await payment_redirect(request, transactions, "cancelled")


@router.api_route("/ozow/error", methods=["GET", "POST"])
async def ozow_error(request: Request, transactions: TransactionRepoDep):
    return await payment_redirect(request, transactions, "error")


@router.api_route("/payfast/return", methods=["GET", "POST"])
async def payfast_return(request: Request, transactions: TransactionRepoDep):
    return await payment_redirect(request, transactions, "success")


@router.api_route("/payfast/cancel", methods=["GET", "POST"])
async def payfast_cancel(request: Request, transactions: TransactionRepoDep):
    return await payment_redirect(request, transactions, "cancelled")
