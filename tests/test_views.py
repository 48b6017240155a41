from datetime import date

import pytest

from smb_cashflow.engine import GroupBucket
from smb_cashflow.metrics import CashFlowMetrics, KpiResult, Runway
from smb_cashflow.records import CashFlowItem
from smb_cashflow.views import (
    clients_to_dataframe,
    items_to_dataframe,
    kpis_to_dataframe,
    metrics_to_dataframe,
)


def test_items_without_client_show_unknown_client() -> None:
    item = CashFlowItem(
        id=1,
        date=date(2024, 3, 10),
        description="Consulting",
        category="Client",
        payment_method="N/A",
        type="Income",
        amount=1234.4,
        source="ManualIncome",
        source_id=1,
        balance=1234.4,
    )

    df = items_to_dataframe([item])

    assert df.loc[0, "client"] == "Unknown client"
    assert df.loc[0, "amount"] == 1234.0
    assert df.loc[0, "original_currency"] == ""


def test_client_share_of_total_income() -> None:
    buckets = [GroupBucket("Globex", 300.0, 1, 300.0), GroupBucket("Acme", 100.0, 2, 50.0)]

    df = clients_to_dataframe(buckets, total_income=500.0)

    assert list(df["client"]) == ["Globex", "Acme"]
    assert list(df["share_pct"]) == pytest.approx([60.0, 20.0])
    assert clients_to_dataframe([]).empty


def test_infinite_runway_is_displayed_as_symbol() -> None:
    metrics = CashFlowMetrics(10.0, 0.0, 10.0, 10.0, 0.0, 0.0, Runway.infinite())
    kpis = [KpiResult("runway", "Runway", None, "months", "up", "")]

    metrics_df = metrics_to_dataframe(metrics)
    kpis_df = kpis_to_dataframe(kpis)

    assert metrics_df.set_index("metric").loc["Runway (months)", "value"] == "∞"
    assert kpis_df.loc[0, "value"] == "∞"
