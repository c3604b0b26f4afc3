# acquirer_simulator/app.py
import logging
from contextlib import asynccontextmanager
from typing import Any, Dict, Optional

from fastapi import Body, FastAPI, Header, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .config import Settings, load_settings
from .errors import NotFoundError, ValidationError
from .models import DeliveryRecord, Invoice, InvoiceCreated
from .service import AcquirerService

logger = logging.getLogger("acquirer.api")


def create_app(settings: Optional[Settings] = None, service: Optional[AcquirerService] = None) -> FastAPI:
    settings = settings or load_settings()
    logging.basicConfig(level=settings.log_level)
    service = service or AcquirerService(settings)

    @asynccontextmanager
    async def lifespan(_app: FastAPI):
        await service.startup()
        try:
            yield
        finally:
            await service.shutdown()

    app = FastAPI(title="Fake Acquirer", lifespan=lifespan)
    app.state.service = service

    # CORS (anything goes, this is a test double)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # -------- Errors --------
    @app.exception_handler(ValidationError)
    async def _validation_error(request: Request, exc: ValidationError):
        logger.info(f"Rejected invoice request: {exc.message}")
        return JSONResponse(status_code=400, content={
            "error": "validation_error",
            "message": exc.message,
            "details": exc.details,
        })

    @app.exception_handler(RequestValidationError)
    async def _bad_request(request: Request, exc: RequestValidationError):
        details = [
            {"field": ".".join(str(p) for p in err["loc"]), "message": err["msg"]}
            for err in exc.errors()
        ]
        return JSONResponse(status_code=400, content={
            "error": "validation_error",
            "message": "Malformed request",
            "details": details,
        })

    @app.exception_handler(NotFoundError)
    async def _not_found(request: Request, exc: NotFoundError):
        return JSONResponse(status_code=404, content={"error": exc.error, "message": exc.message})

    # -------- Routes --------
    @app.get("/healthz")
    def healthz():
        return {"status": "ok", "invoices": len(service.store), "pending": service.scheduler.pending}

    @app.post("/invoices", response_model=InvoiceCreated, status_code=201)
    async def create_invoice(
        response: Response,
        payload: Dict[str, Any] = Body(...),
        idempotency_key: Optional[str] = Header(default=None, alias="Idempotency-Key"),
    ):
        # async on purpose: the scheduler arms its timer on the running loop
        invoice, created = service.create_invoice(payload, idempotency_key)
        if not created:
            response.status_code = 200
        return service.created_view(invoice)

    @app.get("/invoices/{invoice_id}", response_model=Invoice)
    def get_invoice(invoice_id: str):
        return service.get_invoice(invoice_id)

    @app.get("/invoices/{invoice_id}/webhook", response_model=DeliveryRecord)
    def get_invoice_webhook(invoice_id: str):
        return service.get_delivery(invoice_id)

    return app
