import logging
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Any

import uvicorn
from fastapi import Body, Depends, FastAPI, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field

from finease import ledger_service
from finease.aggregation import CategoryReport, Overview
from finease.config import Settings, load_settings
from finease.envelope import LedgerError, failure, success
from finease.ledger_store import LedgerStore, SqlLedgerStore, build_engine
from finease.logging_setup import configure_logging
from finease.transaction_normalizer import Transaction

logger = logging.getLogger(__name__)


class TransactionResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: int
    email: str
    type: str | None = None
    name: str | None = None
    description: str | None = None
    category: str | None = None
    amount: float
    created_at: datetime | None = Field(None, alias="createdAt")

    @classmethod
    def from_transaction(cls, txn: Transaction) -> "TransactionResponse":
        return cls(
            id=txn.id,
            email=txn.owner,
            type=txn.kind,
            name=txn.name,
            description=txn.description,
            category=txn.category,
            amount=txn.amount,
            created_at=txn.created_at,
        )


class OverviewResponse(BaseModel):
    total_income: float = Field(alias="totalIncome")
    total_expense: float = Field(alias="totalExpense")
    balance: float

    @classmethod
    def from_overview(cls, overview: Overview) -> "OverviewResponse":
        return cls(
            totalIncome=overview.total_income,
            totalExpense=overview.total_expense,
            balance=overview.balance,
        )


class CategoryAmountResponse(BaseModel):
    category: str
    amount: float


class CategoryReportResponse(BaseModel):
    total_income: float = Field(alias="totalIncome")
    total_expense: float = Field(alias="totalExpense")
    net_balance: float = Field(alias="netBalance")
    category_data: list[CategoryAmountResponse] = Field(alias="categoryData")

    @classmethod
    def from_report(cls, report: CategoryReport) -> "CategoryReportResponse":
        return cls(
            totalIncome=report.total_income,
            totalExpense=report.total_expense,
            netBalance=report.net_balance,
            categoryData=[
                CategoryAmountResponse(category=item.category, amount=item.amount)
                for item in report.category_data
            ],
        )


def dump(model: BaseModel) -> dict[str, Any]:
    return model.model_dump(by_alias=True, mode="json")


def get_store(request: Request) -> LedgerStore:
    return request.app.state.store


def create_app(store: LedgerStore | None = None, settings: Settings | None = None) -> FastAPI:
    settings = settings or load_settings()
    configure_logging(settings.log_level)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        # Injected stores are owned by the caller.
        owns_store = store is None
        active_store = store if store is not None else SqlLedgerStore(build_engine(settings.database_url))
        if owns_store:
            active_store.open()
        app.state.store = active_store
        try:
            yield
        finally:
            if owns_store:
                active_store.close()

    app = FastAPI(title="FinEase", lifespan=lifespan)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[settings.frontend_origin],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(LedgerError)
    async def handle_ledger_error(request: Request, exc: LedgerError) -> JSONResponse:
        if exc.status_code < 500:
            logger.warning("%s %s rejected: %s", request.method, request.url.path, exc.message)
        return JSONResponse(status_code=exc.status_code, content=failure(exc))

    @app.exception_handler(RequestValidationError)
    async def handle_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
        logger.warning("%s %s rejected: malformed request", request.method, request.url.path)
        return JSONResponse(
            status_code=400,
            content={"success": False, "message": "Malformed request body."},
        )

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("%s %s failed", request.method, request.url.path)
        return JSONResponse(status_code=500, content={"success": False, "message": "Internal error."})

    @app.get("/")
    def root() -> str:
        return "FinEase ledger is running"

    @app.get("/health")
    def health() -> dict:
        return {"status": "ok"}

    @app.get("/transactions")
    def list_transactions(
        email: str | None = Query(None),
        sort_by: str | None = Query(None, alias="sortBy"),
        order: str | None = Query(None),
        store: LedgerStore = Depends(get_store),
    ) -> dict:
        records = ledger_service.list_transactions(store, email, sort_by=sort_by, order=order)
        return success(transactions=[dump(TransactionResponse.from_transaction(txn)) for txn in records])

    @app.post("/transactions")
    def create_transaction(
        payload: dict[str, Any] = Body(...),
        store: LedgerStore = Depends(get_store),
    ) -> dict:
        new_id = ledger_service.create_transaction(store, payload)
        return success(id=new_id)

    @app.get("/transactions/{transaction_id}")
    def get_transaction(transaction_id: str, store: LedgerStore = Depends(get_store)) -> dict:
        lookup = ledger_service.get_transaction(store, transaction_id)
        transaction = dump(TransactionResponse.from_transaction(lookup.value)) if lookup.found else None
        return success(found=lookup.found, transaction=transaction)

    @app.api_route("/transactions/{transaction_id}", methods=["PUT", "PATCH"])
    def update_transaction(
        transaction_id: str,
        payload: dict[str, Any] = Body(...),
        store: LedgerStore = Depends(get_store),
    ) -> dict:
        modified = ledger_service.update_transaction(store, transaction_id, payload)
        return success(modifiedCount=modified)

    @app.delete("/transactions/{transaction_id}")
    def delete_transaction(transaction_id: str, store: LedgerStore = Depends(get_store)) -> dict:
        deleted = ledger_service.delete_transaction(store, transaction_id)
        return success(deletedCount=deleted)

    @app.get("/overview")
    def overview(email: str | None = Query(None), store: LedgerStore = Depends(get_store)) -> dict:
        result = ledger_service.get_overview(store, email)
        return success(**dump(OverviewResponse.from_overview(result)))

    @app.get("/reports")
    def category_report(email: str | None = Query(None), store: LedgerStore = Depends(get_store)) -> dict:
        result = ledger_service.get_category_report(store, email)
        return success(**dump(CategoryReportResponse.from_report(result)))

    return app


def run() -> None:
    uvicorn.run("finease.main:create_app", factory=True, host="0.0.0.0", port=3000)


if __name__ == "__main__":
    run()
