"""In-memory customer-support toolset used by the bundled scenarios.

A small loyalty backend (customers, activity history, rewards) held in an
explicit SupportStore so every run can start from a fresh copy. The tools
validate their own arguments and raise ToolExecutionError on bad input,
mirroring how a real REST-backed tool would surface 4xx responses.
"""

from __future__ import annotations

import copy
import itertools
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any

from toolprobe.tools.registry import (
    ToolDefinition,
    ToolExecutionError,
    ToolRegistry,
    ToolSchema,
)

HIGH_VALUE_REDEEM_POINTS = 5000


def _iso_days_ago(days: int) -> str:
    return (datetime.now(timezone.utc) - timedelta(days=days)).isoformat()


def _default_customers() -> dict[str, dict[str, Any]]:
    now = datetime.now(timezone.utc).isoformat()
    return {
        "cust-alicia": {
            "id": "cust-alicia",
            "name": "Alicia Patel",
            "email": "alicia.patel@example.com",
            "phone": "555-0147",
            "tier": "gold",
            "pointsBalance": 12850,
            "lifetimePoints": 45200,
            "preferences": {"marketingOptIn": True, "preferredChannel": "sms"},
            "joinedAt": _iso_days_ago(120),
            "updatedAt": now,
        },
        "cust-marcus": {
            "id": "cust-marcus",
            "name": "Marcus Lee",
            "email": "marcus.lee@example.com",
            "phone": "555-0199",
            "tier": "silver",
            "pointsBalance": 4200,
            "lifetimePoints": 9200,
            "preferences": {"marketingOptIn": True, "preferredChannel": "email"},
            "joinedAt": _iso_days_ago(200),
            "updatedAt": now,
        },
        "cust-jasmine": {
            "id": "cust-jasmine",
            "name": "Jasmine Ortiz",
            "email": "jasmine.ortiz@example.com",
            "phone": None,
            "tier": "platinum",
            "pointsBalance": 32000,
            "lifetimePoints": 88000,
            "preferences": {"marketingOptIn": True, "preferredChannel": "push"},
            "joinedAt": _iso_days_ago(300),
            "updatedAt": now,
        },
    }


def _default_rewards() -> list[dict[str, Any]]:
    return [
        {
            "id": "reward-espresso",
            "name": "Complimentary Espresso Upgrade",
            "description": "Upgrade any beverage to include an extra espresso shot.",
            "cost": 750,
            "inventory": None,
            "active": True,
        },
        {
            "id": "reward-flight-upgrade",
            "name": "Priority Boarding Voucher",
            "description": "Skip the line and board early on your next flight.",
            "cost": 5600,
            "inventory": 120,
            "active": True,
        },
        {
            "id": "reward-gift-card",
            "name": "$25 Partner Gift Card",
            "description": "Redeemable at participating retail partners.",
            "cost": 7800,
            "inventory": 45,
            "active": True,
        },
    ]


@dataclass
class SupportStore:
    """Mutable backing store for the support tools."""

    customers: dict[str, dict[str, Any]] = field(default_factory=_default_customers)
    activity: dict[str, list[dict[str, Any]]] = field(default_factory=dict)
    rewards: list[dict[str, Any]] = field(default_factory=_default_rewards)
    _ids: itertools.count = field(default_factory=lambda: itertools.count(1), repr=False)

    def __post_init__(self) -> None:
        if not self.activity:
            self.activity = {
                "cust-alicia": [
                    self._activity("cust-alicia", "earn", 1200, 12850, "In-store purchase", 3),
                    self._activity("cust-alicia", "redeem", -750, 11650, "Espresso upgrade", 7),
                ],
                "cust-marcus": [
                    self._activity("cust-marcus", "earn", 900, 4200, "Mobile order", 5),
                ],
                "cust-jasmine": [
                    self._activity("cust-jasmine", "earn", 1800, 32000, "Premium booking", 4),
                ],
            }

    def _activity(
        self,
        customer_id: str,
        kind: str,
        points: int,
        balance_after: int,
        source: str,
        days_ago: int = 0,
        channel: str | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        entry: dict[str, Any] = {
            "id": f"act-{next(self._ids):04d}",
            "customerId": customer_id,
            "type": kind,
            "points": points,
            "balanceAfter": balance_after,
            "source": source,
            "occurredAt": _iso_days_ago(days_ago),
        }
        if channel:
            entry["channel"] = channel
        if metadata:
            entry["metadata"] = metadata
        return entry

    def find_customer(self, customer_id: str | None = None, email: str | None = None) -> dict[str, Any]:
        if customer_id:
            customer = self.customers.get(customer_id)
            if customer is None:
                raise ToolExecutionError(f"Customer {customer_id} not found")
            return customer
        if not email:
            raise ToolExecutionError("Provide either customerId or email")
        for customer in self.customers.values():
            if customer["email"].lower() == email.lower():
                return customer
        raise ToolExecutionError(f"Customer with email {email} not found")

    def find_reward(self, reward_id: str) -> dict[str, Any]:
        for reward in self.rewards:
            if reward["id"] == reward_id:
                return reward
        raise ToolExecutionError(f"Reward {reward_id} not found")

    def history(self, customer_id: str) -> list[dict[str, Any]]:
        """Activity for a customer, newest first."""
        return list(reversed(self.activity.get(customer_id, [])))

    def record(self, customer: dict[str, Any], points: int, source: str, **extra: Any) -> dict[str, Any]:
        customer["pointsBalance"] += points
        if points > 0:
            customer["lifetimePoints"] += points
        customer["updatedAt"] = datetime.now(timezone.utc).isoformat()
        entry = self._activity(
            customer["id"],
            "earn" if points > 0 else "redeem",
            points,
            customer["pointsBalance"],
            source,
            **extra,
        )
        self.activity.setdefault(customer["id"], []).append(entry)
        return entry


def _require_string(args: dict[str, Any], key: str) -> str:
    value = args.get(key)
    if not isinstance(value, str) or not value.strip():
        raise ToolExecutionError(f"Expected {key} to be a non-empty string.")
    return value


def _optional_string(args: dict[str, Any], key: str) -> str | None:
    value = args.get(key)
    if isinstance(value, str) and value.strip():
        return value
    return None


def _optional_number(args: dict[str, Any], key: str) -> float | None:
    value = args.get(key)
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, (int, float)):
        return value
    raise ToolExecutionError(f"Expected {key} to be numeric.")


class SupportTools:
    """Tool implementations bound to a SupportStore."""

    def __init__(self, store: SupportStore) -> None:
        self.store = store

    def lookup_customer(self, args: dict[str, Any]) -> dict[str, Any]:
        customer = self.store.find_customer(
            _optional_string(args, "customerId"), _optional_string(args, "email")
        )
        history: list[dict[str, Any]] = []
        if args.get("includeHistory") is True:
            history = self.store.history(customer["id"])
            limit = _optional_number(args, "historyLimit")
            if limit:
                history = history[: int(limit)]
        return {"customer": copy.deepcopy(customer), "history": copy.deepcopy(history)}

    def activity_summary(self, args: dict[str, Any]) -> dict[str, Any]:
        customer_id = _require_string(args, "customerId")
        self.store.find_customer(customer_id)
        records = self.store.history(customer_id)
        limit = _optional_number(args, "limit")
        if limit:
            records = records[: int(limit)]

        earned = sum(r["points"] for r in records if r["type"] == "earn")
        redeemed = sum(abs(r["points"]) for r in records if r["type"] == "redeem")
        high_value = [
            r for r in records
            if r["type"] == "redeem" and abs(r["points"]) >= HIGH_VALUE_REDEEM_POINTS
        ]
        return copy.deepcopy({
            "totalEvents": len(records),
            "totals": {"earned": earned, "redeemed": redeemed},
            "highValueRedeems": high_value,
            "records": records,
        })

    def issue_goodwill(self, args: dict[str, Any]) -> dict[str, Any]:
        customer = self.store.find_customer(_require_string(args, "customerId"))
        points = _optional_number(args, "points")
        if points is None or points <= 0:
            raise ToolExecutionError("points must be a positive number")
        reason = _require_string(args, "reason").strip()

        activity = self.store.record(
            customer,
            round(points),
            f"Goodwill - {reason}",
            channel=_optional_string(args, "channel"),
            metadata={"reason": reason, "issuedBy": "support"},
        )
        return copy.deepcopy({"customer": customer, "activity": activity})

    def redeem_reward(self, args: dict[str, Any]) -> dict[str, Any]:
        customer = self.store.find_customer(_require_string(args, "customerId"))
        reward = self.store.find_reward(_require_string(args, "rewardId"))
        if not reward["active"]:
            raise ToolExecutionError(f"Reward {reward['id']} is not active")
        if reward["inventory"] is not None and reward["inventory"] <= 0:
            raise ToolExecutionError(f"Reward {reward['id']} is out of stock")
        if customer["pointsBalance"] < reward["cost"]:
            raise ToolExecutionError(
                f"Insufficient points: balance {customer['pointsBalance']}, cost {reward['cost']}"
            )

        if reward["inventory"] is not None:
            reward["inventory"] -= 1
        note = _optional_string(args, "note")
        activity = self.store.record(
            customer,
            -reward["cost"],
            reward["name"],
            channel=_optional_string(args, "channel"),
            metadata={"rewardId": reward["id"], **({"note": note} if note else {})},
        )
        return copy.deepcopy({"customer": customer, "reward": reward, "activity": activity})

    def catalog_snapshot(self, args: dict[str, Any]) -> dict[str, Any]:
        only_active = args.get("onlyActive") is True
        min_inventory = _optional_number(args, "minInventory")
        max_cost = _optional_number(args, "maxCost")

        def keep(reward: dict[str, Any]) -> bool:
            if only_active and not reward["active"]:
                return False
            if min_inventory is not None:
                stock = reward["inventory"] if reward["inventory"] is not None else float("inf")
                if stock < min_inventory:
                    return False
            if max_cost is not None and reward["cost"] > max_cost:
                return False
            return True

        rewards = [r for r in self.store.rewards if keep(r)]
        return copy.deepcopy({"rewards": rewards, "total": len(rewards)})

    def restock_reward(self, args: dict[str, Any]) -> dict[str, Any]:
        reward = self.store.find_reward(_require_string(args, "rewardId"))
        delta = _optional_number(args, "inventoryDelta")
        if delta is None:
            raise ToolExecutionError("inventoryDelta must be numeric")
        reward["inventory"] = max(0, (reward["inventory"] or 0) + round(delta))
        if isinstance(args.get("active"), bool):
            reward["active"] = args["active"]
        return copy.deepcopy({"reward": reward})


def _schema(properties: dict[str, dict[str, Any]], required: list[str] | None = None) -> ToolSchema:
    return ToolSchema.from_dict(
        {"type": "object", "properties": properties, "required": required or []}
    )


SUPPORT_TOOL_DEFINITIONS: list[ToolDefinition] = [
    ToolDefinition(
        name="support.lookupCustomer",
        description="Find a loyalty customer by id or email, optionally with recent activity.",
        input_schema=_schema({
            "customerId": {"type": "string", "description": "Customer identifier, e.g. cust-marcus."},
            "email": {"type": "string", "description": "Customer email address."},
            "includeHistory": {"type": "boolean", "description": "Include recent loyalty activity."},
            "historyLimit": {"type": "number", "description": "Maximum history entries to return."},
        }),
    ),
    ToolDefinition(
        name="support.activitySummary",
        description="Summarise points earned and redeemed for a customer.",
        input_schema=_schema({
            "customerId": {"type": "string"},
            "limit": {"type": "number", "description": "Only consider the most recent N events."},
        }, ["customerId"]),
    ),
    ToolDefinition(
        name="support.issueGoodwill",
        description="Credit goodwill points to a customer with a reason.",
        input_schema=_schema({
            "customerId": {"type": "string"},
            "points": {"type": "number", "description": "Positive number of points to credit."},
            "reason": {"type": "string"},
            "channel": {"type": "string", "enum": ["email", "sms", "push", "support"]},
        }, ["customerId", "points", "reason"]),
    ),
    ToolDefinition(
        name="support.redeemReward",
        description="Redeem a catalog reward on behalf of a customer.",
        input_schema=_schema({
            "customerId": {"type": "string"},
            "rewardId": {"type": "string"},
            "channel": {"type": "string"},
            "note": {"type": "string"},
        }, ["customerId", "rewardId"]),
    ),
    ToolDefinition(
        name="support.catalogSnapshot",
        description="List rewards, optionally filtered by activity, stock and cost.",
        input_schema=_schema({
            "onlyActive": {"type": "boolean"},
            "minInventory": {"type": "number"},
            "maxCost": {"type": "number"},
        }),
    ),
    ToolDefinition(
        name="support.restockReward",
        description="Adjust reward inventory by a delta and optionally toggle availability.",
        input_schema=_schema({
            "rewardId": {"type": "string"},
            "inventoryDelta": {"type": "integer"},
            "active": {"type": "boolean"},
        }, ["rewardId", "inventoryDelta"]),
    ),
]


def build_support_registry(store: SupportStore | None = None) -> ToolRegistry:
    """Create a ToolRegistry wired to a (fresh by default) SupportStore."""
    tools = SupportTools(store or SupportStore())
    runners = {
        "support.lookupCustomer": tools.lookup_customer,
        "support.activitySummary": tools.activity_summary,
        "support.issueGoodwill": tools.issue_goodwill,
        "support.redeemReward": tools.redeem_reward,
        "support.catalogSnapshot": tools.catalog_snapshot,
        "support.restockReward": tools.restock_reward,
    }
    registry = ToolRegistry()
    for definition in SUPPORT_TOOL_DEFINITIONS:
        registry.register(definition, runners[definition.name])
    return registry


def support_system_prompt() -> str:
    """System prompt used for LLM sessions against the support tools."""
    return (
        "You are a customer-support agent for a loyalty programme. "
        "Use the provided tools to look up customers, inspect activity, issue goodwill "
        "points and manage rewards. Always call a tool with complete, valid arguments "
        "instead of guessing data."
    )
