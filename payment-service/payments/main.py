import uvicorn
import structlog
from fastapi import FastAPI, APIRouter, Depends, Request, Response
from fastapi.responses import JSONResponse
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List

from payments.database import init_db, close_db, get_session
from payments.exceptions import PaymentServiceError
from payments.log_config import setup_logging
from payments.metrics import get_metrics_sink
from payments.order_client import OrderServiceClient, build_http_client
from payments.retry import RetryPolicy
from payments.schemas import PaymentCreate, PaymentRead
from payments.service import PaymentCoordinator
from payments.store import SqlAlchemyPaymentStore

logger = structlog.get_logger(__name__)

app = FastAPI(title="Payment Service")
router = APIRouter(prefix="/payment-service/api/payments", tags=["payments"])

@app.on_event("startup")
async def startup_event():
    setup_logging()
    await init_db()
    app.state.http_client = build_http_client()
    logger.info("payment_service_started")

@app.on_event("shutdown")
async def shutdown_event():
    await app.state.http_client.aclose()
    await close_db()
    logger.info("payment_service_stopped")

@app.exception_handler(PaymentServiceError)
async def payment_service_error_handler(request: Request, exc: PaymentServiceError):
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.message, "error": type(exc).__name__},
    )

def get_order_client(request: Request) -> OrderServiceClient:
    return OrderServiceClient(request.app.state.http_client)

def get_coordinator(
    db: AsyncSession = Depends(get_session),
    order_client: OrderServiceClient = Depends(get_order_client),
) -> PaymentCoordinator:
    return PaymentCoordinator(
        store=SqlAlchemyPaymentStore(db),
        order_client=order_client,
        metrics=get_metrics_sink(),
        retry_policy=RetryPolicy.from_env(),
    )

@app.get("/")
async def root():
    return {"message": "Payment service is running"}

@app.get("/metrics", include_in_schema=False)
async def metrics():
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)

@router.get("", response_model=List[PaymentRead])
async def list_payments(coordinator: PaymentCoordinator = Depends(get_coordinator)):
    return await coordinator.list_filtered()

@router.get("/{payment_id}", response_model=PaymentRead)
async def get_payment(payment_id: int, coordinator: PaymentCoordinator = Depends(get_coordinator)):
    return await coordinator.get_by_id(payment_id)

@router.post("", response_model=PaymentRead, status_code=201)
async def create_payment(payment_data: PaymentCreate, coordinator: PaymentCoordinator = Depends(get_coordinator)):
    return await coordinator.create(payment_data)

@router.patch("/{payment_id}", response_model=PaymentRead)
async def update_payment_status(payment_id: int, coordinator: PaymentCoordinator = Depends(get_coordinator)):
    return await coordinator.advance(payment_id)

@router.delete("/{payment_id}")
async def cancel_payment(payment_id: int, coordinator: PaymentCoordinator = Depends(get_coordinator)) -> bool:
    await coordinator.cancel(payment_id)
    return True

app.include_router(router)

if __name__ == "__main__":
    uvicorn.run(app, host="0.0.0.0", port=8400)
