"""
Index Allocation Calculator

Given a target index composition and the current positions, computes
per-market dollar targets, a root-mean-square tracking error and the
ordered list of rebalance orders.

Order generation always emits every SELL (crediting the freed capital)
before any BUY consumes capital; BUYs are filled largest-gap first and
capped by whatever capital remains.
"""

from decimal import Decimal
from typing import Dict, Iterable, List, Mapping, Optional, Sequence
import logging
import math

from polyengine.config import AllocationConfig
from polyengine.models import (
    BUY,
    HOLD,
    SELL,
    AllocationResult,
    AllocationTarget,
    IndexComposition,
    Position,
    RebalanceOrder,
)

logger = logging.getLogger(__name__)


class IndexAllocationCalculator:
    """
    Pure allocation math; holds only its configuration.

    Calling calculate_allocations() twice with the same inputs returns
    equal results.
    """

    def __init__(self, config: Optional[AllocationConfig] = None):
        self._config = config or AllocationConfig()

    @property
    def config(self) -> AllocationConfig:
        return self._config

    def _min_size(self, min_position_size: Optional[Decimal]) -> Decimal:
        if min_position_size is None:
            return self._config.min_position_size
        return Decimal(str(min_position_size))

    @staticmethod
    def _holdings(positions: Iterable[Position]) -> Dict[str, Decimal]:
        held: Dict[str, Decimal] = {}
        for p in positions:
            held[p.market_id] = held.get(p.market_id, Decimal("0")) + Decimal(str(p.amount))
        return held

    @staticmethod
    def _action(delta: Decimal, min_size: Decimal) -> str:
        if abs(delta) < min_size:
            return HOLD  # Too small to trade
        return BUY if delta > 0 else SELL

    def calculate_allocations(
        self,
        index: IndexComposition,
        total_balance: Decimal,
        available_balance: Decimal,
        current_positions: Iterable[Position],
        min_position_size: Optional[Decimal] = None,
    ) -> AllocationResult:
        """
        Target allocations for every index member plus forced exits.

        Args:
            index: Target composition (weights normalized here)
            total_balance: Portfolio value to distribute across the index
            available_balance: Free capital (carried through for order generation)
            current_positions: Held positions
            min_position_size: Override for the HOLD band / minimum order
        """
        min_size = self._min_size(min_position_size)
        total_balance = Decimal(str(total_balance))
        held = self._holdings(current_positions)
        members = index.normalized().members

        allocations: List[AllocationTarget] = []
        member_ids = set()
        for member in members:
            member_ids.add(member.market_id)
            target = total_balance * Decimal(str(member.weight))
            current = held.get(member.market_id, Decimal("0"))
            delta = target - current
            allocations.append(AllocationTarget(
                market_id=member.market_id,
                weight=member.weight,
                target_amount=target,
                current_amount=current,
                delta=delta,
                action=self._action(delta, min_size),
            ))

        # Positions no longer in the index are always sold
        for market_id, amount in held.items():
            if market_id in member_ids or amount <= 0:
                continue
            allocations.append(AllocationTarget(
                market_id=market_id,
                weight=0.0,
                target_amount=Decimal("0"),
                current_amount=amount,
                delta=-amount,
                action=SELL,
            ))

        allocations.sort(key=lambda a: abs(a.delta), reverse=True)

        total_value = self.portfolio_value(allocations)
        tracking_error = self.calculate_tracking_error(allocations)
        needs_rebalance = self.is_rebalance_needed(allocations, min_position_size=min_size)

        logger.info(
            f"Calculated {len(allocations)} allocation targets, "
            f"{sum(1 for a in allocations if a.action != HOLD)} require action"
        )

        return AllocationResult(
            allocations=tuple(allocations),
            total_value=total_value,
            needs_rebalance=needs_rebalance,
            tracking_error=tracking_error,
            available_balance=Decimal(str(available_balance)),
        )

    @staticmethod
    def portfolio_value(allocations: Sequence[AllocationTarget]) -> Decimal:
        """Average of summed current and summed target amounts."""
        total = sum((a.current_amount + a.target_amount for a in allocations), Decimal("0"))
        return total / 2

    def calculate_tracking_error(self, allocations: Sequence[AllocationTarget]) -> float:
        """
        100 * sqrt(mean((current_weight - target_weight)^2)).

        Zero when there are no allocations or no portfolio value.
        """
        if not allocations:
            return 0.0
        total_value = float(self.portfolio_value(allocations))
        if total_value == 0:
            return 0.0

        squared = [
            (float(a.current_amount) / total_value - a.weight) ** 2
            for a in allocations
        ]
        return math.sqrt(sum(squared) / len(allocations)) * 100

    def is_rebalance_needed(
        self,
        allocations: Sequence[AllocationTarget],
        threshold_pct: Optional[float] = None,
        min_position_size: Optional[Decimal] = None,
    ) -> bool:
        """Tracking error above threshold, or any single gap above 2x the minimum."""
        threshold = self._config.rebalance_threshold_pct if threshold_pct is None else threshold_pct
        min_size = self._min_size(min_position_size)
        tracking_error = self.calculate_tracking_error(allocations)
        significant = any(
            a.action != HOLD and abs(a.delta) > min_size * 2
            for a in allocations
        )
        return tracking_error > threshold or significant

    def generate_rebalance_orders(
        self,
        allocations: Sequence[AllocationTarget],
        available_capital: Decimal,
        min_position_size: Optional[Decimal] = None,
        market_prices: Optional[Mapping[str, float]] = None,
    ) -> List[RebalanceOrder]:
        """
        Ordered rebalance orders: all SELLs, then BUYs largest gap first.

        Each BUY is capped at the remaining capital and skipped when the
        capped amount falls below the minimum position size; generation
        stops once remaining capital drops below the minimum.
        """
        min_size = self._min_size(min_position_size)
        remaining = Decimal(str(available_capital))
        prices = market_prices or {}
        outcome_id = self._config.outcome_id
        orders: List[RebalanceOrder] = []

        for alloc in (a for a in allocations if a.action == SELL):
            amount = abs(alloc.delta)
            reason = (
                "Market removed from index"
                if alloc.weight == 0
                else f"Rebalancing to target weight {alloc.weight * 100:.1f}%"
            )
            orders.append(self._order(alloc.market_id, SELL, amount, reason, outcome_id, prices))
            remaining += amount  # Freed capital

        buys = sorted(
            (a for a in allocations if a.action == BUY),
            key=lambda a: abs(a.delta),
            reverse=True,
        )
        for alloc in buys:
            amount = min(abs(alloc.delta), remaining)
            if amount < min_size:
                logger.debug(f"Skipping buy for {alloc.market_id}: amount {amount} below minimum")
                continue

            reason = f"Rebalancing to target weight {alloc.weight * 100:.1f}%"
            orders.append(self._order(alloc.market_id, BUY, amount, reason, outcome_id, prices))
            remaining -= amount

            if remaining < min_size:
                logger.debug("Insufficient capital remaining for more purchases")
                break

        sells = sum(1 for o in orders if o.side == SELL)
        logger.info(
            f"Generated {len(orders)} rebalance orders: {sells} sells, {len(orders) - sells} buys"
        )
        return orders

    @staticmethod
    def _order(
        market_id: str,
        side: str,
        amount: Decimal,
        reason: str,
        outcome_id: str,
        prices: Mapping[str, float],
    ) -> RebalanceOrder:
        shares = None
        price = prices.get(market_id)
        if price:
            shares = amount / Decimal(str(price))
        return RebalanceOrder(
            market_id=market_id,
            side=side,
            amount=amount,
            reason=reason,
            outcome_id=outcome_id,
            estimated_shares=shares,
        )

    def allocation_summary(self, allocations: Sequence[AllocationTarget]) -> str:
        """Human-readable allocation report."""
        total_current = sum((a.current_amount for a in allocations), Decimal("0"))
        total_target = sum((a.target_amount for a in allocations), Decimal("0"))
        tracking_error = self.calculate_tracking_error(allocations)

        lines = [
            "Index Allocation Summary",
            "========================",
            f"Total Portfolio Value: ${total_current:.2f}",
            f"Target Portfolio Value: ${total_target:.2f}",
            f"Tracking Error: {tracking_error:.2f}%",
            "",
            "Positions requiring action:",
        ]

        actionable = [a for a in allocations if a.action != HOLD]
        if not actionable:
            lines.append("  None - portfolio is balanced")
        for alloc in actionable:
            sign = "+" if alloc.delta > 0 else "-"
            lines.append(
                f"  {alloc.market_id[:8]}: {alloc.action} {sign}${abs(alloc.delta):.2f} "
                f"({alloc.weight * 100:.1f}% target)"
            )

        return "\n".join(lines)
