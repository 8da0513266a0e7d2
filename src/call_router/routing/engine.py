"""Routing decision engine for inbound calls.

Decides where a call goes, based on:
- Emergency keywords in what the caller said
- Business hours, lunch breaks and holidays
- Agent activation state and overflow configuration

Decisions are made by an ordered list of rules evaluated in one pass;
the first rule that produces a result wins. All conditions are evaluated
up front so every result reports them truthfully, whichever rule fired.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Callable, NamedTuple

from call_router.config import RoutingSettings, get_settings
from call_router.core.exceptions import AgentConfigNotFoundError
from call_router.core.logging import get_logger
from call_router.routing.business_hours import BusinessHoursEvaluator
from call_router.routing.clock import resolve_local_now
from call_router.routing.emergency import EmergencyPriority, classify_priority, detect_emergency
from call_router.routing.models import (
    AgentRoutingConfig,
    HoursStatus,
    LocalTime,
    OverflowAction,
    RoutingDecision,
    RoutingResult,
    RoutingStatus,
    StatField,
)
from call_router.routing.transfer import select_transfer
from call_router.stores.base import ConfigStore

log = get_logger(__name__)


@dataclass(frozen=True)
class CallConditions:
    """Everything the rules need to know about one inbound call."""

    config: AgentRoutingConfig
    hours: HoursStatus
    local_time: LocalTime
    is_emergency: bool
    emergency_priority: EmergencyPriority | None

    def result(self, decision: RoutingDecision, reason: str, **kwargs) -> RoutingResult:
        """Build a result carrying the evaluated condition flags."""
        metadata = {}
        if self.emergency_priority is not None:
            metadata["emergencyPriority"] = self.emergency_priority.value
        if self.hours.is_after_hours and self.hours.next_open_time:
            metadata["nextOpen"] = self.hours.next_open_time

        return RoutingResult(
            decision=decision,
            reason=reason,
            is_emergency=self.is_emergency,
            is_after_hours=self.hours.is_after_hours,
            is_holiday=self.hours.is_holiday,
            is_lunch_break=self.hours.is_lunch_break,
            agent_available=self.config.agent_active,
            metadata=metadata,
            **kwargs,
        )


# A rule returns the result plus the counter to bump, or None to pass
RuleOutcome = tuple[RoutingResult, StatField | None]


class RoutingRule(NamedTuple):
    name: str
    apply: Callable[[CallConditions], RuleOutcome | None]


def _emergency(c: CallConditions) -> RuleOutcome | None:
    if not (c.is_emergency and c.config.emergency_number):
        return None
    return (
        c.result(
            RoutingDecision.FORWARD_EMERGENCY,
            "Emergency keywords detected - routing to emergency line",
            forward_to=c.config.emergency_number,
            forward_to_name="Emergency Line",
        ),
        StatField.EMERGENCY_CALLS_ROUTED,
    )


def _after_hours(c: CallConditions) -> RuleOutcome | None:
    if not (c.hours.is_after_hours and c.config.after_hours_number):
        return None
    return (
        c.result(
            RoutingDecision.FORWARD_AFTER_HOURS,
            c.hours.reason,
            forward_to=c.config.after_hours_number,
            forward_to_name="After Hours Line",
        ),
        StatField.AFTER_HOURS_ROUTED_CALLS,
    )


def _agent_inactive(c: CallConditions) -> RuleOutcome | None:
    config = c.config
    if config.agent_active:
        return None

    if config.fallback_number:
        return (
            c.result(
                RoutingDecision.FORWARD_FALLBACK,
                "AI agent is not active - routing to fallback",
                forward_to=config.fallback_number,
                forward_to_name="Fallback Line",
            ),
            StatField.FALLBACK_ROUTED_CALLS,
        )

    # Overflow without a fallback line is not counted
    reason = "AI agent offline and no fallback configured"
    action = config.overflow_action or OverflowAction.VOICEMAIL
    if action is OverflowAction.CALLBACK:
        return c.result(RoutingDecision.CALLBACK, reason), None
    if action is OverflowAction.FORWARD and config.overflow_number:
        return (
            c.result(
                RoutingDecision.FORWARD_FALLBACK,
                reason,
                forward_to=config.overflow_number,
                forward_to_name="Overflow Line",
            ),
            None,
        )
    return c.result(RoutingDecision.VOICEMAIL, reason), None


def _ai_agent(c: CallConditions) -> RuleOutcome | None:
    return (
        c.result(RoutingDecision.AI_AGENT, "Routing to AI receptionist"),
        StatField.TOTAL_CALLS_ROUTED,
    )


ROUTING_RULES: tuple[RoutingRule, ...] = (
    RoutingRule("emergency", _emergency),
    RoutingRule("after_hours", _after_hours),
    RoutingRule("agent_inactive", _agent_inactive),
    RoutingRule("ai_agent", _ai_agent),
)


class RoutingEngine:
    """Decide where inbound calls for an agent are sent.

    Usage:
        engine = RoutingEngine(config_store)
        result = await engine.determine_routing(agent_id, caller_text)
    """

    def __init__(
        self,
        store: ConfigStore,
        settings: RoutingSettings | None = None,
        hours_evaluator: BusinessHoursEvaluator | None = None,
        rules: tuple[RoutingRule, ...] = ROUTING_RULES,
    ):
        """Initialize routing engine.

        Args:
            store: Config store used for lookups and counter increments
            settings: Routing settings (defaults to application settings)
            hours_evaluator: Business-hours evaluator
            rules: Ordered decision rules, first match wins
        """
        self._store = store
        self._settings = settings or get_settings().routing
        self._hours = hours_evaluator or BusinessHoursEvaluator()
        self._rules = rules

    def evaluate_conditions(
        self,
        config: AgentRoutingConfig,
        caller_text: str | None = None,
        now: datetime | None = None,
    ) -> CallConditions:
        """Evaluate hours and emergency state without deciding."""
        working_hours = config.working_hours
        local_time = resolve_local_now(
            working_hours.timezone if working_hours else None,
            self._settings.default_timezone,
            now,
        )
        is_emergency = detect_emergency(caller_text, config.emergency_keywords)

        return CallConditions(
            config=config,
            hours=self._hours.evaluate(working_hours, local_time),
            local_time=local_time,
            is_emergency=is_emergency,
            emergency_priority=classify_priority(caller_text) if is_emergency else None,
        )

    async def decide(
        self,
        config: AgentRoutingConfig,
        caller_text: str | None = None,
        now: datetime | None = None,
    ) -> RoutingResult:
        """Route one call.

        Args:
            config: Agent routing configuration
            caller_text: Speech or typed input, scanned for emergencies
            now: Instant to evaluate at (defaults to the system clock)

        Returns:
            RoutingResult for the first matching rule
        """
        conditions = self.evaluate_conditions(config, caller_text, now)

        for rule in self._rules:
            outcome = rule.apply(conditions)
            if outcome is not None:
                break
        else:
            # The default rule always matches; only custom rule sets get here
            outcome = (
                conditions.result(RoutingDecision.VOICEMAIL, "No routing rule matched"),
                None,
            )
            rule = None

        result, stat = outcome
        if stat is not None:
            await self._store.increment_stat(config.id, stat)

        log.info(
            "Call routed",
            agent_config_id=config.id,
            rule=rule.name if rule else None,
            decision=result.decision.value,
            is_emergency=result.is_emergency,
            is_after_hours=result.is_after_hours,
        )
        return result

    async def determine_routing(
        self,
        agent_config_id: str,
        caller_text: str | None = None,
        now: datetime | None = None,
    ) -> RoutingResult:
        """Load an agent's configuration and route one call.

        Raises:
            AgentConfigNotFoundError: If the agent does not exist
        """
        config = await self.load_config(agent_config_id)
        return await self.decide(config, caller_text, now)

    async def route_to_transfer(
        self,
        config: AgentRoutingConfig,
        preferred_role: str | None = None,
        now: datetime | None = None,
    ) -> RoutingResult:
        """Route to the best available transfer target.

        Falls back to the standard decision when nobody is available.
        """
        target = select_transfer(config.transfer_numbers, preferred_role)
        if target is None:
            log.info(
                "No transfer target available",
                agent_config_id=config.id,
                preferred_role=preferred_role,
            )
            return await self.decide(config, now=now)

        conditions = self.evaluate_conditions(config, now=now)
        result = conditions.result(
            RoutingDecision.FORWARD_TRANSFER,
            f"Transferring to {target.name}",
            forward_to=target.number,
            forward_to_name=target.name,
        )
        if target.extension:
            result.metadata["extension"] = target.extension
        await self._store.increment_stat(config.id, StatField.TOTAL_CALLS_ROUTED)
        log.info(
            "Call transfer routed",
            agent_config_id=config.id,
            role=target.role,
            preferred_role=preferred_role,
        )
        return result

    async def get_routing_status(
        self,
        agent_config_id: str,
        now: datetime | None = None,
    ) -> RoutingStatus:
        """Describe where calls for an agent would go right now."""
        config = await self.load_config(agent_config_id)
        conditions = self.evaluate_conditions(config, now=now)
        hours = conditions.hours

        routing_to = "AI Receptionist"
        routing_reason = "AI agent is active and accepting calls"
        if not config.agent_active:
            if config.fallback_number:
                routing_to = f"Fallback: {config.fallback_number}"
                routing_reason = "AI agent is offline"
            else:
                routing_to = "Voicemail"
                routing_reason = "AI agent is offline with no fallback"
        elif hours.is_after_hours:
            routing_reason = hours.reason
            if config.after_hours_number:
                routing_to = f"After Hours: {config.after_hours_number}"
            elif config.fallback_number:
                routing_to = f"Fallback: {config.fallback_number}"

        return RoutingStatus(
            current_mode=hours.current_mode,
            agent_active=config.agent_active,
            current_time=conditions.local_time.time,
            timezone=conditions.local_time.timezone,
            routing_to=routing_to,
            routing_reason=routing_reason,
            is_accepting_calls=config.agent_active and not hours.is_after_hours,
            next_open_time=hours.next_open_time,
            next_close_time=hours.next_close_time,
        )

    async def load_config(self, agent_config_id: str) -> AgentRoutingConfig:
        """Load an agent's routing configuration or raise AgentConfigNotFoundError."""
        config = await self._store.get_agent_routing_config(agent_config_id)
        if config is None:
            raise AgentConfigNotFoundError(
                f"Agent configuration not found: {agent_config_id}",
                details={"agent_config_id": agent_config_id},
            )
        return config
