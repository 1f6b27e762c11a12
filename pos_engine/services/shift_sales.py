"""
Ventas de un turno agrupadas por método de pago.

El agregador no conoce la base de datos: recibe un cliente de consultas
(`SqlSalesClient` sobre SQLAlchemy, `RestSalesClient` sobre un backend
REST estilo PostgREST, o un doble en tests). Las transacciones con pago
dividido aportan solo sus filas de `payment_splits`; el `total_amount` del
padre no se suma en ningún bucket.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Protocol, Sequence

import requests
from pydantic import BaseModel, ConfigDict
from sqlalchemy import bindparam, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from starlette.concurrency import run_in_threadpool

from pos_engine.core.config import settings
from pos_engine.core.logging import get_logger

log = get_logger(__name__)

COMPLETED = "completed"
METHODS = ("cash", "credit", "gift_card")


class BackendQueryError(Exception):
    """Falla al leer transacciones o splits del backend."""


class SalesQueryClient(Protocol):
    def fetch_transactions(self, shift_id: int, status: str = COMPLETED) -> List[Dict[str, Any]]: ...

    def fetch_payment_splits(self, transaction_ids: Sequence[int]) -> List[Dict[str, Any]]: ...


class SalesByMethod(BaseModel):
    model_config = ConfigDict(frozen=True)

    cash: float = 0.0
    credit: float = 0.0
    gift_card: float = 0.0
    other: float = 0.0

    @property
    def total(self) -> float:
        return round(self.cash + self.credit + self.gift_card + self.other, 2)


class ShiftCloseSummary(BaseModel):
    shift_id: int
    sales: SalesByMethod
    opening_balance: float
    cash_refunds: float
    expected_cash: float
    closing_balance: float
    discrepancy: float


def bucket_for(method: Optional[str]) -> str:
    # coincidencia exacta: "Cash" cae en other
    return method if method in METHODS else "other"


def expected_cash_drawer(opening_balance: float, sales: SalesByMethod, cash_refunds: float = 0.0) -> float:
    return round(float(opening_balance or 0) + sales.cash - float(cash_refunds or 0), 2)


def cash_discrepancy(closing_balance: float, expected: float) -> float:
    # negativo = faltante en caja
    return round(float(closing_balance) - float(expected), 2)


class ShiftSalesAggregator:
    def __init__(self, client: SalesQueryClient):
        self.client = client

    def shift_sales(self, shift_id: int) -> SalesByMethod:
        try:
            txs = self.client.fetch_transactions(shift_id, status=COMPLETED)
            totals: Dict[str, float] = {"cash": 0.0, "credit": 0.0, "gift_card": 0.0, "other": 0.0}
            split_ids: List[int] = []
            for tx in txs:
                if tx.get("status") != COMPLETED:
                    continue
                if tx.get("is_split_payment"):
                    split_ids.append(tx["id"])
                    continue
                totals[bucket_for(tx.get("payment_method"))] += float(tx.get("total_amount") or 0)

            splits: List[Dict[str, Any]] = []
            if split_ids:
                splits = self.client.fetch_payment_splits(split_ids)
            for sp in splits:
                totals[bucket_for(sp.get("payment_method"))] += float(sp.get("amount") or 0)
        except BackendQueryError as e:
            log.warning("backend_query_failed", shift_id=shift_id, error=str(e))
            raise

        sales = SalesByMethod(**{k: round(v, 2) for k, v in totals.items()})
        log.info(
            "shift_sales_computed",
            shift_id=shift_id,
            transactions=len(txs),
            splits=len(splits),
            total=sales.total,
        )
        return sales

    def close_summary(
        self,
        shift_id: int,
        opening_balance: float,
        closing_balance: float,
        cash_refunds: float = 0.0,
    ) -> ShiftCloseSummary:
        sales = self.shift_sales(shift_id)
        expected = expected_cash_drawer(opening_balance, sales, cash_refunds)
        return ShiftCloseSummary(
            shift_id=shift_id,
            sales=sales,
            opening_balance=float(opening_balance or 0),
            cash_refunds=float(cash_refunds or 0),
            expected_cash=expected,
            closing_balance=float(closing_balance),
            discrepancy=cash_discrepancy(closing_balance, expected),
        )


async def fetch_shift_sales(aggregator: ShiftSalesAggregator, shift_id: int) -> SalesByMethod:
    """Misma agregación, fuera del event loop (los clientes son bloqueantes)."""
    return await run_in_threadpool(aggregator.shift_sales, shift_id)


# ====== Clientes ======
class SqlSalesClient:
    def __init__(self, db: Session):
        self.db = db

    def fetch_transactions(self, shift_id: int, status: str = COMPLETED) -> List[Dict[str, Any]]:
        try:
            rows = self.db.execute(
                text(
                    """
                    SELECT id, total_amount, payment_method, is_split_payment, status
                    FROM transactions
                    WHERE shift_id = :sid AND status = :status
                    ORDER BY id
                """
                ),
                {"sid": shift_id, "status": status},
            ).fetchall()
        except SQLAlchemyError as e:
            raise BackendQueryError(f"transactions: {e}") from e
        return [dict(r._mapping) for r in rows]

    def fetch_payment_splits(self, transaction_ids: Sequence[int]) -> List[Dict[str, Any]]:
        if not transaction_ids:
            return []
        stmt = text(
            """
            SELECT transaction_id, amount, payment_method
            FROM payment_splits
            WHERE transaction_id IN :ids
            ORDER BY id
        """
        ).bindparams(bindparam("ids", expanding=True))
        try:
            rows = self.db.execute(stmt, {"ids": list(transaction_ids)}).fetchall()
        except SQLAlchemyError as e:
            raise BackendQueryError(f"payment_splits: {e}") from e
        return [dict(r._mapping) for r in rows]


class RestSalesClient:
    """Lee las mismas tablas de un backend REST (filtros `eq.` / `in.(...)`)."""

    def __init__(
        self,
        base_url: str,
        api_key: str = "",
        timeout: float = 15.0,
        session: Optional[requests.Session] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()
        if api_key:
            self.session.headers.update({"apikey": api_key, "Authorization": f"Bearer {api_key}"})

    def _get(self, table: str, params: Dict[str, str]) -> List[Dict[str, Any]]:
        try:
            r = self.session.get(f"{self.base_url}/rest/v1/{table}", params=params, timeout=self.timeout)
            r.raise_for_status()
            data = r.json()
        except (requests.RequestException, ValueError) as e:
            raise BackendQueryError(f"{table}: {e}") from e
        if not isinstance(data, list):
            raise BackendQueryError(f"{table}: unexpected payload")
        return data

    def fetch_transactions(self, shift_id: int, status: str = COMPLETED) -> List[Dict[str, Any]]:
        return self._get(
            "transactions",
            {
                "select": "id,total_amount,payment_method,is_split_payment,status",
                "shift_id": f"eq.{shift_id}",
                "status": f"eq.{status}",
            },
        )

    def fetch_payment_splits(self, transaction_ids: Sequence[int]) -> List[Dict[str, Any]]:
        if not transaction_ids:
            return []
        ids = ",".join(str(i) for i in transaction_ids)
        return self._get(
            "payment_splits",
            {"select": "transaction_id,amount,payment_method", "transaction_id": f"in.({ids})"},
        )


# un solo cliente REST por proceso, con su Session compartida
_rest_client: Optional[RestSalesClient] = None


def make_sales_client(db: Session) -> SalesQueryClient:
    global _rest_client
    if settings.sales_backend == "rest":
        if _rest_client is None:
            _rest_client = RestSalesClient(
                settings.backend_url, api_key=settings.backend_api_key, timeout=settings.backend_timeout
            )
        return _rest_client
    return SqlSalesClient(db)
