import asyncio

import pytest
import requests

from pos_engine.models.pos import PaymentSplit, Shift, Transaction
from pos_engine.services import shift_sales as shift_sales_mod
from pos_engine.services.shift_sales import (
    BackendQueryError,
    RestSalesClient,
    SalesByMethod,
    ShiftSalesAggregator,
    SqlSalesClient,
    cash_discrepancy,
    expected_cash_drawer,
    fetch_shift_sales,
    make_sales_client,
)


class _FakeClient:
    def __init__(self, transactions=None, splits=None, fail_on=None):
        self.transactions = list(transactions or [])
        self.splits = list(splits or [])
        self.fail_on = fail_on
        self.split_calls = []

    def fetch_transactions(self, shift_id, status="completed"):
        if self.fail_on == "transactions":
            raise BackendQueryError("transactions: boom")
        return [t for t in self.transactions if t["shift_id"] == shift_id and t["status"] == status]

    def fetch_payment_splits(self, transaction_ids):
        self.split_calls.append(list(transaction_ids))
        if self.fail_on == "splits":
            raise BackendQueryError("payment_splits: boom")
        return [s for s in self.splits if s["transaction_id"] in transaction_ids]


def _tx(id, amount, method, split=False, status="completed", shift_id=1):
    return {
        "id": id,
        "shift_id": shift_id,
        "total_amount": amount,
        "payment_method": method,
        "is_split_payment": split,
        "status": status,
    }


def test_split_rows_replace_parent_total():
    client = _FakeClient(
        transactions=[_tx(1, 20.0, "cash"), _tx(2, 15.0, "split", split=True)],
        splits=[
            {"transaction_id": 2, "amount": 10.0, "payment_method": "credit"},
            {"transaction_id": 2, "amount": 5.0, "payment_method": "gift_card"},
        ],
    )
    sales = ShiftSalesAggregator(client).shift_sales(1)
    assert sales == SalesByMethod(cash=20.0, credit=10.0, gift_card=5.0, other=0.0)
    assert client.split_calls == [[2]]


def test_non_completed_transactions_are_excluded():
    client = _FakeClient(transactions=[_tx(1, 20.0, "cash"), _tx(2, 99.0, "cash", status="refunded")])
    sales = ShiftSalesAggregator(client).shift_sales(1)
    assert sales.cash == 20.0
    assert sales.total == 20.0


def test_unknown_methods_go_to_other():
    client = _FakeClient(
        transactions=[_tx(1, 7.5, "loyalty_points"), _tx(2, 2.5, "Cash"), _tx(3, 4.0, "split", split=True)],
        splits=[{"transaction_id": 3, "amount": 4.0, "payment_method": "manual_credit"}],
    )
    sales = ShiftSalesAggregator(client).shift_sales(1)
    assert sales.other == 14.0
    assert sales.cash == 0


def test_empty_shift_defaults_to_zero_and_skips_split_query():
    client = _FakeClient(transactions=[_tx(1, 20.0, "cash", shift_id=2)])
    sales = ShiftSalesAggregator(client).shift_sales(1)
    assert sales == SalesByMethod()
    assert client.split_calls == []


@pytest.mark.parametrize("fail_on", ["transactions", "splits"])
def test_fetch_errors_propagate(fail_on):
    client = _FakeClient(transactions=[_tx(1, 20.0, "cash"), _tx(2, 5.0, "x", split=True)], fail_on=fail_on)
    with pytest.raises(BackendQueryError):
        ShiftSalesAggregator(client).shift_sales(1)


def test_fetch_shift_sales_runs_off_loop():
    client = _FakeClient(transactions=[_tx(1, 12.0, "credit")])
    sales = asyncio.run(fetch_shift_sales(ShiftSalesAggregator(client), 1))
    assert sales.credit == 12.0


def test_close_summary_expected_and_discrepancy():
    client = _FakeClient(transactions=[_tx(1, 80.0, "cash"), _tx(2, 40.0, "credit")])
    summary = ShiftSalesAggregator(client).close_summary(1, opening_balance=100, closing_balance=170, cash_refunds=5)
    assert summary.expected_cash == 175.0
    assert summary.discrepancy == -5.0
    assert summary.sales.credit == 40.0


def test_drawer_helpers():
    sales = SalesByMethod(cash=50.0, credit=10.0)
    assert expected_cash_drawer(20, sales) == 70.0
    assert cash_discrepancy(72.5, 70.0) == 2.5


# ====== SqlSalesClient ======
def _seed(db):
    db.add(Shift(id=1, name="Morning", status="active", opening_balance=100))
    db.add(Shift(id=2, name="Evening", status="active"))
    db.add_all(
        [
            Transaction(id=1, shift_id=1, total_amount=20, payment_method="cash", status="completed"),
            Transaction(id=2, shift_id=1, total_amount=15, payment_method="split", is_split_payment=True, status="completed"),
            Transaction(id=3, shift_id=1, total_amount=50, payment_method="cash", status="voided"),
            Transaction(id=4, shift_id=2, total_amount=9, payment_method="credit", status="completed"),
        ]
    )
    db.flush()
    db.add_all(
        [
            PaymentSplit(transaction_id=2, payment_method="credit", amount=10),
            PaymentSplit(transaction_id=2, payment_method="gift_card", amount=5),
            PaymentSplit(transaction_id=4, payment_method="cash", amount=9),
        ]
    )
    db.commit()


def test_sql_client_reads_completed_transactions(db):
    _seed(db)
    rows = SqlSalesClient(db).fetch_transactions(1)
    assert [r["id"] for r in rows] == [1, 2]


def test_sql_client_end_to_end(db):
    _seed(db)
    sales = ShiftSalesAggregator(SqlSalesClient(db)).shift_sales(1)
    assert sales == SalesByMethod(cash=20.0, credit=10.0, gift_card=5.0, other=0.0)


def test_sql_client_wraps_database_errors(db):
    class _Broken:
        def execute(self, *a, **kw):
            from sqlalchemy.exc import OperationalError

            raise OperationalError("SELECT", {}, Exception("no such table"))

    with pytest.raises(BackendQueryError):
        SqlSalesClient(_Broken()).fetch_transactions(1)


# ====== RestSalesClient ======
class _FakeResponse:
    def __init__(self, payload, status=200):
        self._payload = payload
        self.status_code = status

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} error")

    def json(self):
        return self._payload


class _FakeSession:
    def __init__(self, responses):
        self.responses = dict(responses)
        self.headers = {}
        self.calls = []

    def get(self, url, params=None, timeout=None):
        self.calls.append((url, dict(params or {}), timeout))
        table = url.rsplit("/", 1)[-1]
        resp = self.responses[table]
        if isinstance(resp, Exception):
            raise resp
        return resp


def test_rest_client_builds_filters_and_aggregates():
    session = _FakeSession(
        {
            "transactions": _FakeResponse([_tx(1, 20.0, "cash"), _tx(2, 15.0, "split", split=True), _tx(5, 15.0, "split", split=True)]),
            "payment_splits": _FakeResponse(
                [
                    {"transaction_id": 2, "amount": "10.00", "payment_method": "credit"},
                    {"transaction_id": 5, "amount": "15.00", "payment_method": "gift_card"},
                ]
            ),
        }
    )
    client = RestSalesClient("http://backend.local/", api_key="k", timeout=3, session=session)
    sales = ShiftSalesAggregator(client).shift_sales(1)

    assert sales == SalesByMethod(cash=20.0, credit=10.0, gift_card=15.0)
    (tx_url, tx_params, timeout), (sp_url, sp_params, _) = session.calls
    assert tx_url == "http://backend.local/rest/v1/transactions"
    assert tx_params["shift_id"] == "eq.1" and tx_params["status"] == "eq.completed"
    assert timeout == 3
    assert sp_url == "http://backend.local/rest/v1/payment_splits"
    assert sp_params["transaction_id"] == "in.(2,5)"
    assert session.headers["apikey"] == "k"


def test_rest_client_http_error_fails_whole_aggregation():
    session = _FakeSession(
        {
            "transactions": _FakeResponse([_tx(2, 15.0, "split", split=True)]),
            "payment_splits": _FakeResponse({"message": "denied"}, status=401),
        }
    )
    with pytest.raises(BackendQueryError):
        ShiftSalesAggregator(RestSalesClient("http://b", session=session)).shift_sales(1)


def test_rest_client_connection_error():
    session = _FakeSession({"transactions": requests.ConnectionError("refused")})
    with pytest.raises(BackendQueryError):
        RestSalesClient("http://b", session=session).fetch_transactions(1)


def test_rest_client_rejects_non_list_payload():
    session = _FakeSession({"transactions": _FakeResponse({"rows": []})})
    with pytest.raises(BackendQueryError):
        RestSalesClient("http://b", session=session).fetch_transactions(1)


def test_rest_backend_client_is_shared(monkeypatch, db):
    monkeypatch.setattr(shift_sales_mod.settings, "sales_backend", "rest")
    monkeypatch.setattr(shift_sales_mod, "_rest_client", None)
    first = make_sales_client(db)
    assert isinstance(first, RestSalesClient)
    assert make_sales_client(db) is first


def test_sql_backend_uses_request_session(monkeypatch, db):
    monkeypatch.setattr(shift_sales_mod.settings, "sales_backend", "sql")
    client = make_sales_client(db)
    assert isinstance(client, SqlSalesClient) and client.db is db
