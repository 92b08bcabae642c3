"""
Task sources for the sales scan.

Two interchangeable implementations turn a SalesSnapshot into TaskSuggestions:

- LLMTaskSource asks the configured language model and validates its JSON.
- RuleBasedTaskSource applies fixed thresholds and is fully deterministic.

TaskSynthesizer prefers the model when the tenant is entitled to it and
falls back to the rules on any failure or when the model yields nothing,
so a scan always produces a task list.
"""
import json
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Awaitable, Callable, List, Optional

from pydantic import ValidationError

from backend.app.core.config import get_settings
from backend.app.core.logging import get_logger
from backend.app.core.resilience import CircuitBreaker, llm_circuit_breaker
from backend.app.schemas.sales_tasks import (
    ActionChannel,
    LinkedEntityType,
    SalesTaskType,
    SuggestedAction,
    TaskPriority,
    TaskSourceName,
    TaskSuggestion,
)
from backend.app.services.llm_adapter import ChatMessage, LLMAdapter, TokenUsage
from backend.app.services.pii_scrubber import PIIScrubber
from backend.app.services.sales_snapshot import SalesSnapshot, render_snapshot

logger = get_logger(__name__)

# Per-category caps for the rule generator
RULE_CAPS = {
    "leads": 5,
    "quotes": 5,
    "invoices": 5,
    "at_risk_customers": 3,
    "dormant_customers": 3,
}

NEVER_CONTACTED_DAYS = 999

SCAN_SYSTEM_PROMPT = """You are a sales intelligence AI assistant. Your role is to analyze sales data and identify opportunities for follow-up actions that will help increase revenue and prevent customer churn.

Analyze the provided sales data and identify tasks that need attention. For each identified issue, provide a task recommendation.

TASK TYPES YOU CAN RECOMMEND:
- follow_up_lead: Lead hasn't been contacted in X days
- follow_up_quote: Quote sent but no response
- follow_up_customer: Customer hasn't ordered in X days
- payment_reminder: Invoice overdue
- at_risk_customer: Customer health score declining
- hot_lead: High-value lead needs immediate attention
- quote_expiring: Quote about to expire
- reactivate_customer: Dormant customer with past orders
- upsell_opportunity: Customer might benefit from additional products
- churn_prevention: Customer showing signs of leaving

PRIORITY LEVELS:
- critical: Immediate action required (overdue payments, expiring quotes, high-value at-risk customers)
- high: Action needed within 24-48 hours (hot leads, declining health scores)
- medium: Action needed within a week (follow-ups, reactivation)
- low: Action can be scheduled (upsell opportunities, general follow-ups)

For each task, provide:
1. A clear, actionable title
2. Specific description of the issue
3. Your rationale for why this needs attention
4. 1-3 suggested actions (call, email, meeting, quote, reminder)
5. Estimated potential value if applicable
6. A confidence score (0-100) for how certain you are this task is important

Use the exact ID from the data as entityId. Your response MUST be a valid JSON array of task objects matching this structure:
[
  {
    "taskType": "follow_up_lead",
    "priority": "high",
    "title": "Follow up with ABC Corp - Hot Lead",
    "description": "Lead ABC Corp expressed interest 7 days ago but hasn't been contacted since.",
    "aiRationale": "High budget ($50K) and clear timeline suggests strong buying intent. Delay risks losing to competitor.",
    "entityType": "lead",
    "entityId": "uuid-here",
    "entityName": "ABC Corp",
    "suggestedActions": [
      {"action": "Call to discuss requirements", "type": "call"},
      {"action": "Send personalized email with case studies", "type": "email"}
    ],
    "potentialValue": 50000,
    "riskLevel": "high",
    "dueDate": "2024-01-20",
    "confidence": 85
  }
]

Only return tasks that are genuinely actionable. Don't create tasks for healthy, active relationships."""

_JSON_ARRAY = re.compile(r"\[.*\]", re.DOTALL)

UsageMeter = Callable[[TokenUsage], Awaitable[None]]


class TaskSourceError(Exception):
    """A task source could not produce usable tasks."""


class TaskSource(ABC):
    name: TaskSourceName

    @abstractmethod
    async def generate(self, snapshot: SalesSnapshot) -> List[TaskSuggestion]:
        ...


def _fmt_amount(value: float) -> str:
    return f"{value:,.2f}"


def build_rule_based_tasks(snapshot: SalesSnapshot) -> List[TaskSuggestion]:
    """Deterministic task list for a snapshot; ``snapshot.generated_at`` is the reference time."""
    now = snapshot.generated_at
    tasks: List[TaskSuggestion] = []

    for lead in snapshot.leads[:RULE_CAPS["leads"]]:
        days = (now - lead.last_activity_date).days if lead.last_activity_date else NEVER_CONTACTED_DAYS
        value = lead.estimated_value or 0.0
        name = lead.contact_name or lead.company or "Lead"
        tasks.append(TaskSuggestion(
            task_type=SalesTaskType.HOT_LEAD if days > 14 else SalesTaskType.FOLLOW_UP_LEAD,
            priority=TaskPriority.HIGH if value > 50000 or days > 14 else TaskPriority.MEDIUM,
            title=f"Follow up with {name}",
            description=f"Lead hasn't been contacted in {days} days. Status: {lead.status or 'Unknown'}.",
            ai_rationale=(
                f"Estimated value of ${_fmt_amount(value)} indicates strong potential."
                if value > 0 else "Regular follow-up needed to maintain engagement."
            ),
            entity_type=LinkedEntityType.LEAD,
            entity_id=lead.id,
            entity_name=lead.contact_name or lead.company,
            suggested_actions=[
                SuggestedAction(action="Call to check status", channel=ActionChannel.CALL),
                SuggestedAction(action="Send follow-up email", channel=ActionChannel.EMAIL),
            ],
            potential_value=value or None,
            confidence=75,
        ))

    for quote in snapshot.quotes[:RULE_CAPS["quotes"]]:
        amount = quote.total_amount or 0.0
        tasks.append(TaskSuggestion(
            task_type=SalesTaskType.FOLLOW_UP_QUOTE,
            priority=TaskPriority.HIGH if amount > 10000 else TaskPriority.MEDIUM,
            title=f"Follow up on quote {quote.doc_number or quote.id}",
            description=(
                f"Quote for {quote.party_name or 'customer'} worth ${_fmt_amount(amount)} is pending response."
            ),
            ai_rationale="Quote has been pending for more than 7 days without response.",
            entity_type=LinkedEntityType.QUOTE,
            entity_id=quote.id,
            entity_name=quote.doc_number,
            suggested_actions=[
                SuggestedAction(action="Call to discuss quote", channel=ActionChannel.CALL),
                SuggestedAction(action="Send reminder email", channel=ActionChannel.EMAIL),
            ],
            potential_value=amount or None,
            confidence=80,
        ))

    for invoice in snapshot.invoices[:RULE_CAPS["invoices"]]:
        amount = invoice.total_amount or 0.0
        days_overdue = (now - invoice.due_date).days if invoice.due_date else 0
        reminders = (
            f"{invoice.reminder_count} reminders already sent."
            if invoice.reminder_count > 0 else "No reminders sent yet."
        )
        tasks.append(TaskSuggestion(
            task_type=SalesTaskType.PAYMENT_REMINDER,
            priority=TaskPriority.CRITICAL if days_overdue > 30 or amount > 5000 else TaskPriority.HIGH,
            title=f"Payment reminder for {invoice.party_name or 'customer'}",
            description=(
                f"Invoice {invoice.doc_number or invoice.id} for ${_fmt_amount(amount)} "
                f"is {days_overdue} days overdue."
            ),
            ai_rationale=f"Invoice is {days_overdue} days past due date. {reminders}",
            entity_type=LinkedEntityType.INVOICE,
            entity_id=invoice.id,
            entity_name=invoice.doc_number,
            suggested_actions=[
                SuggestedAction(action="Send payment reminder", channel=ActionChannel.REMINDER),
                SuggestedAction(action="Call accounts payable", channel=ActionChannel.CALL),
            ],
            potential_value=amount,
            risk_level="high" if days_overdue > 60 else "medium",
            confidence=90,
        ))

    for customer in snapshot.at_risk_customers[:RULE_CAPS["at_risk_customers"]]:
        revenue = customer.total_revenue or 0.0
        factors = ", ".join(customer.risk_factors) or "multiple factors"
        tasks.append(TaskSuggestion(
            task_type=SalesTaskType.AT_RISK_CUSTOMER,
            priority=(
                TaskPriority.CRITICAL if customer.risk_level == "critical" or revenue > 50000
                else TaskPriority.HIGH
            ),
            title=f"At-risk: {customer.customer_name or 'Customer'} needs attention",
            description=(
                f"Health score: {customer.overall_score}/100 ({customer.trend}). "
                f"Last order: {customer.days_since_last_order} days ago."
            ),
            ai_rationale=(
                f"Customer has {customer.risk_level} risk level with {factors} contributing to churn risk."
            ),
            entity_type=LinkedEntityType.CUSTOMER,
            entity_id=customer.customer_id,
            entity_name=customer.customer_name,
            suggested_actions=[
                SuggestedAction(action="Schedule check-in call", channel=ActionChannel.CALL),
                SuggestedAction(action="Review account history", channel=ActionChannel.OTHER),
                SuggestedAction(action="Offer loyalty discount", channel=ActionChannel.EMAIL),
            ],
            potential_value=revenue,
            risk_level=customer.risk_level or "medium",
            confidence=85,
        ))

    for customer in snapshot.dormant_customers[:RULE_CAPS["dormant_customers"]]:
        revenue = customer.total_revenue or 0.0
        avg_order = customer.avg_order_value or 0.0
        tasks.append(TaskSuggestion(
            task_type=SalesTaskType.REACTIVATE_CUSTOMER,
            priority=TaskPriority.MEDIUM if revenue > 20000 else TaskPriority.LOW,
            title=f"Reactivate {customer.customer_name or 'customer'}",
            description=(
                f"Former customer with {customer.total_orders} orders totaling ${_fmt_amount(revenue)}. "
                f"Inactive for {customer.days_since_last_order} days."
            ),
            ai_rationale=(
                f"Customer had average order value of ${_fmt_amount(avg_order)} "
                f"and represents reactivation opportunity."
            ),
            entity_type=LinkedEntityType.CUSTOMER,
            entity_id=customer.customer_id,
            entity_name=customer.customer_name,
            suggested_actions=[
                SuggestedAction(action="Send win-back campaign", channel=ActionChannel.EMAIL),
                SuggestedAction(action="Call to check in", channel=ActionChannel.CALL),
            ],
            potential_value=avg_order,
            confidence=60,
        ))

    return tasks


class RuleBasedTaskSource(TaskSource):
    name = TaskSourceName.RULES

    async def generate(self, snapshot: SalesSnapshot) -> List[TaskSuggestion]:
        return build_rule_based_tasks(snapshot)


def _known_entity_ids(snapshot: SalesSnapshot) -> dict:
    customers = {c.customer_id for c in snapshot.at_risk_customers} | {
        c.customer_id for c in snapshot.dormant_customers
    }
    return {
        LinkedEntityType.LEAD: {l.id for l in snapshot.leads},
        LinkedEntityType.QUOTE: {q.id for q in snapshot.quotes},
        LinkedEntityType.INVOICE: {i.id for i in snapshot.invoices},
        LinkedEntityType.CUSTOMER: customers,
    }


def parse_task_suggestions(content: str, snapshot: SalesSnapshot) -> List[TaskSuggestion]:
    """
    Extract the first JSON array from a model reply and validate each item.

    Items that fail validation or reference an entity absent from the
    snapshot are dropped. Raises TaskSourceError when no array can be parsed.
    """
    match = _JSON_ARRAY.search(content or "")
    if not match:
        raise TaskSourceError("Model reply contains no JSON array")
    try:
        raw_items = json.loads(match.group(0))
    except json.JSONDecodeError as e:
        raise TaskSourceError(f"Model reply is not valid JSON: {e}") from e
    if not isinstance(raw_items, list):
        raise TaskSourceError("Model reply is not a JSON array")

    known = _known_entity_ids(snapshot)
    tasks = []
    for index, item in enumerate(raw_items):
        try:
            task = TaskSuggestion.model_validate(item)
        except ValidationError as e:
            logger.warning(f"Dropping invalid model task #{index}: {e.error_count()} validation error(s)")
            continue
        if task.entity_id not in known[task.entity_type]:
            logger.warning(f"Dropping model task #{index}: unknown {task.entity_type.value} {task.entity_id}")
            continue
        tasks.append(task)
    return tasks


class LLMTaskSource(TaskSource):
    """Generates tasks with the configured language model."""

    name = TaskSourceName.AI

    def __init__(
        self,
        adapter: LLMAdapter,
        usage_meter: Optional[UsageMeter] = None,
        breaker: CircuitBreaker = llm_circuit_breaker,
        scrubber: Optional[PIIScrubber] = None,
    ):
        self.adapter = adapter
        self.usage_meter = usage_meter
        self.breaker = breaker
        self.scrubber = scrubber or PIIScrubber()

    async def generate(self, snapshot: SalesSnapshot) -> List[TaskSuggestion]:
        settings = get_settings()
        user_prompt, _ = self.scrubber.scrub(render_snapshot(snapshot))
        messages = [
            ChatMessage(role="system", content=SCAN_SYSTEM_PROMPT),
            ChatMessage(role="user", content=user_prompt),
        ]

        response = await self.breaker.call(
            self.adapter.complete,
            messages,
            max_tokens=settings.ai_scan_max_tokens,
            temperature=settings.ai_scan_temperature,
        )
        logger.info(
            f"Model replied via {response.model_version}",
            extra={"extra_data": {
                "prompt_hash": response.prompt_hash,
                "prompt_tokens": response.usage.prompt_tokens,
                "completion_tokens": response.usage.completion_tokens,
            }},
        )
        if self.usage_meter:
            await self.usage_meter(response.usage)

        return parse_task_suggestions(response.content, snapshot)


@dataclass
class SynthesisResult:
    tasks: List[TaskSuggestion]
    source: TaskSourceName


class TaskSynthesizer:
    def __init__(self, ai_source: Optional[TaskSource], rule_source: Optional[TaskSource] = None):
        self.ai_source = ai_source
        self.rule_source = rule_source or RuleBasedTaskSource()

    async def synthesize(self, snapshot: SalesSnapshot, ai_enabled: bool) -> SynthesisResult:
        if ai_enabled and self.ai_source is not None:
            try:
                tasks = await self.ai_source.generate(snapshot)
            except Exception as e:
                logger.warning(f"AI task source failed, using rules: {e}")
            else:
                if tasks:
                    return SynthesisResult(tasks=tasks, source=self.ai_source.name)
                logger.info("AI task source returned no tasks, using rules")

        tasks = await self.rule_source.generate(snapshot)
        return SynthesisResult(tasks=tasks, source=self.rule_source.name)
