"""
Route Processor — Decides where an autoroute message leads.

Conditional routes are tried in declaration order; the first whose condition
holds wins. Otherwise the default route applies. With neither, the message's
own next_message_id (or id + 1) is used.
"""
from __future__ import annotations

import structlog
from typing import Optional

from models.schemas import AutoRouteMessage, RouteCondition
from utils.conditions import ConditionEvaluator

logger = structlog.get_logger()


class RouteDecision:
    """Either a message id in the current sequence or a sequence switch."""

    def __init__(self, next_message_id: int = None, sequence_id: str = None,
                 route: RouteCondition = None):
        self.next_message_id = next_message_id
        self.sequence_id = sequence_id
        self.route = route

    @property
    def switches_sequence(self) -> bool:
        return self.sequence_id is not None

    def __repr__(self):
        if self.switches_sequence:
            return f"<RouteDecision sequence={self.sequence_id}>"
        return f"<RouteDecision next={self.next_message_id}>"


class RouteProcessor:

    def __init__(self, evaluator: ConditionEvaluator):
        self._evaluator = evaluator

    async def select_route(self, message: AutoRouteMessage) -> Optional[RouteCondition]:
        default = None
        for route in message.routes:
            if route.is_default:
                if default is None:
                    default = route
                continue
            if route.condition and await self._evaluator.evaluate(route.condition):
                logger.info("route_matched", message_id=message.id, condition=route.condition)
                return route
        if default is not None:
            logger.info("route_default", message_id=message.id)
        return default

    async def decide(self, message: AutoRouteMessage) -> RouteDecision:
        route = await self.select_route(message)
        if route is not None:
            if route.sequence_id:
                return RouteDecision(sequence_id=route.sequence_id, route=route)
            if route.next_message_id is not None:
                return RouteDecision(next_message_id=route.next_message_id, route=route)

        fallthrough = message.next_message_id if message.next_message_id is not None else message.id + 1
        logger.debug("route_fallthrough", message_id=message.id, next_message_id=fallthrough)
        return RouteDecision(next_message_id=fallthrough, route=route)
