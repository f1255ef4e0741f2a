"""
Conversation flow.

Sequences are graphs of typed messages. The traverser walks them until a
natural stop; the orchestrator reacts to each stop (waits for input, runs
data actions, follows auto-routes, switches sequences) and renders what the
user should see.
"""
from flow.sequences import SequenceRegistry, SequenceLoadError, SequenceNotFoundError
from flow.traverser import FlowTraverser, TraversalResult, StopReason, MAX_TRAVERSAL_DEPTH
from flow.actions import DataActionProcessor
from flow.routes import RouteProcessor, RouteDecision
from flow.renderer import MessageRenderer, RenderedMessage, RenderedChoice
from flow.orchestrator import (
    FlowOrchestrator, FlowResponse, FlowStatus, InvalidInteractionError,
)
