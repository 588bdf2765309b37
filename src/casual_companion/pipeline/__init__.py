"""The response pipeline: plan, write, rate, post-process, deliver and learn."""

from casual_companion.pipeline.events import TurnEvent, TurnStream
from casual_companion.pipeline.orchestrator import ResponseOrchestrator, TurnResult
from casual_companion.pipeline.planner import ConversationPlanner, finalize_plan
from casual_companion.pipeline.postprocess import PostProcessor, PostProcessResult
from casual_companion.pipeline.summary import (
    ConversationSummarizer,
    build_context,
    extract_commitments,
    should_update_summary,
)
from casual_companion.pipeline.writer import ResponseWriter

__all__ = [
    "ConversationPlanner",
    "ConversationSummarizer",
    "PostProcessResult",
    "PostProcessor",
    "ResponseOrchestrator",
    "ResponseWriter",
    "TurnEvent",
    "TurnResult",
    "TurnStream",
    "build_context",
    "extract_commitments",
    "finalize_plan",
    "should_update_summary",
]
