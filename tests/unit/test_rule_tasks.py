"""
Unit tests for the deterministic rule-based task generator.
"""
from datetime import timedelta

from backend.app.schemas.sales_tasks import LinkedEntityType, SalesTaskType, TaskPriority
from backend.app.services.sales_snapshot import (
    AtRiskCandidate,
    DormantCandidate,
    InvoiceCandidate,
    LeadCandidate,
    QuoteCandidate,
    SalesSnapshot,
)
from backend.app.services.task_sources import RULE_CAPS, build_rule_based_tasks
from tests.data.sales_data import NOW


def _snapshot(**sets) -> SalesSnapshot:
    return SalesSnapshot(generated_at=NOW, **sets)


def test_overdue_invoice_becomes_critical_payment_reminder():
    invoice = InvoiceCandidate(
        id="inv-1", doc_number="INV-001", party_name="Acme Ltd",
        total_amount=8000.0, due_date=NOW - timedelta(days=45),
    )
    tasks = build_rule_based_tasks(_snapshot(invoices=[invoice]))

    assert len(tasks) == 1
    task = tasks[0]
    assert task.task_type == SalesTaskType.PAYMENT_REMINDER
    assert task.priority == TaskPriority.CRITICAL
    assert task.confidence == 90
    assert task.entity_type == LinkedEntityType.INVOICE
    assert task.entity_id == "inv-1"
    assert task.potential_value == 8000.0
    assert "45 days overdue" in task.description
    assert "No reminders sent yet." in task.ai_rationale


def test_small_recent_invoice_is_high_priority():
    invoice = InvoiceCandidate(id="inv-2", total_amount=500.0, due_date=NOW - timedelta(days=3), reminder_count=2)
    task = build_rule_based_tasks(_snapshot(invoices=[invoice]))[0]
    assert task.priority == TaskPriority.HIGH
    assert task.risk_level.value == "medium"
    assert "2 reminders already sent." in task.ai_rationale


def test_lead_rules():
    stale = LeadCandidate(id="l1", contact_name="Jane", status="new", last_activity_date=NOW - timedelta(days=20))
    never = LeadCandidate(id="l2", company="Globex", status="contacted", estimated_value=60000.0)
    fresh = LeadCandidate(id="l3", contact_name="Bob", status="new", last_activity_date=NOW - timedelta(days=10))
    tasks = build_rule_based_tasks(_snapshot(leads=[stale, never, fresh]))

    assert [t.task_type for t in tasks] == [
        SalesTaskType.HOT_LEAD, SalesTaskType.HOT_LEAD, SalesTaskType.FOLLOW_UP_LEAD,
    ]
    assert [t.priority for t in tasks] == [TaskPriority.HIGH, TaskPriority.HIGH, TaskPriority.MEDIUM]
    assert "999 days" in tasks[1].description
    assert tasks[1].title == "Follow up with Globex"
    assert all(t.confidence == 75 for t in tasks)


def test_quote_and_customer_rules():
    quote = QuoteCandidate(id="q1", doc_number="Q-9", party_name="Acme", total_amount=12000.0)
    at_risk = AtRiskCandidate(
        customer_id="c1", customer_name="Initech", overall_score=25, risk_level="critical",
        trend="stable", risk_factors=["payment_delays"], days_since_last_order=100, total_revenue=1000.0,
    )
    dormant = DormantCandidate(
        customer_id="c2", customer_name="Umbrella", total_orders=4, total_revenue=30000.0,
        days_since_last_order=200, avg_order_value=7500.0,
    )
    tasks = build_rule_based_tasks(_snapshot(quotes=[quote], at_risk_customers=[at_risk], dormant_customers=[dormant]))
    by_type = {t.task_type: t for t in tasks}

    assert by_type[SalesTaskType.FOLLOW_UP_QUOTE].priority == TaskPriority.HIGH
    assert by_type[SalesTaskType.FOLLOW_UP_QUOTE].confidence == 80
    assert by_type[SalesTaskType.AT_RISK_CUSTOMER].priority == TaskPriority.CRITICAL
    assert by_type[SalesTaskType.AT_RISK_CUSTOMER].confidence == 85
    assert len(by_type[SalesTaskType.AT_RISK_CUSTOMER].suggested_actions) == 3
    assert by_type[SalesTaskType.REACTIVATE_CUSTOMER].priority == TaskPriority.MEDIUM
    assert by_type[SalesTaskType.REACTIVATE_CUSTOMER].potential_value == 7500.0
    assert by_type[SalesTaskType.REACTIVATE_CUSTOMER].confidence == 60


def test_rules_respect_category_caps():
    invoices = [
        InvoiceCandidate(id=f"inv-{i}", total_amount=100.0 * i, due_date=NOW - timedelta(days=5))
        for i in range(10)
    ]
    at_risk = [
        AtRiskCandidate(customer_id=f"c{i}", overall_score=20, risk_level="critical")
        for i in range(6)
    ]
    tasks = build_rule_based_tasks(_snapshot(invoices=invoices, at_risk_customers=at_risk))
    assert sum(1 for t in tasks if t.task_type == SalesTaskType.PAYMENT_REMINDER) == RULE_CAPS["invoices"]
    assert sum(1 for t in tasks if t.task_type == SalesTaskType.AT_RISK_CUSTOMER) == RULE_CAPS["at_risk_customers"]


def test_rules_are_deterministic():
    snapshot = _snapshot(
        leads=[LeadCandidate(id="l1", contact_name="Jane", estimated_value=1000.0)],
        invoices=[InvoiceCandidate(id="inv-1", total_amount=8000.0, due_date=NOW - timedelta(days=45))],
    )
    first = [t.model_dump() for t in build_rule_based_tasks(snapshot)]
    second = [t.model_dump() for t in build_rule_based_tasks(snapshot)]
    assert first == second


def test_empty_snapshot_yields_no_tasks():
    assert build_rule_based_tasks(_snapshot()) == []
