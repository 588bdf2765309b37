"""
Response orchestrator.

Turns one user message into one companion reply:

    perceive -> recall -> plan -> draft -> edit -> rate -> [re-edit] ->
    post-process -> deliver -> learn

Every phase after validation degrades instead of failing: a phase that cannot
do its job substitutes a safe default, and when no provider can draft a reply
at all the persona's fallback message is delivered through the same path.
Only InputRejectedError reaches the caller.
"""

import asyncio
import logging
import random
import time
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Optional, Set

from casual_companion.config import CompanionConfig
from casual_companion.continuity.backchannel import BackchannelPolicy
from casual_companion.continuity.phrase_bank import PhraseBank
from casual_companion.continuity.topic_stack import TopicCallback, extract_topic
from casual_companion.dialog.acts import (
    DialogActClassifier,
    get_turn_taking_rules,
    turn_instructions,
)
from casual_companion.dialog.emotion import EmotionDetector, emotion_to_tone, update_affect
from casual_companion.exceptions import CompanionError
from casual_companion.memory.extractor import LLMMemoryExtracter
from casual_companion.memory.graph import MaintenanceReport, MemoryGraph
from casual_companion.models import (
    AffectState,
    Conversation,
    ConversationMessage,
    ConversationPlan,
    DialogActResult,
    Emotion,
    StyleVector,
)
from casual_companion.persona import DEFAULT_PERSONA, Persona
from casual_companion.pipeline.events import TurnEvent, TurnStream, split_tokens
from casual_companion.pipeline.planner import ConversationPlanner
from casual_companion.pipeline.postprocess import PostProcessor, avoid_phrases_present
from casual_companion.pipeline.summary import (
    ConversationSummarizer,
    build_context,
    extract_commitments,
    should_update_summary,
)
from casual_companion.pipeline.writer import ResponseWriter
from casual_companion.providers.gateway import ProviderGateway
from casual_companion.quality.models import QualityRating
from casual_companion.quality.rater import QualityRater
from casual_companion.safety import validate_user_message
from casual_companion.storage.protocols import ConversationStore, UserStateStore
from casual_companion.style.lsm import (
    analyze_style,
    blend_styles,
    style_instructions,
    style_similarity,
)
from casual_companion.user_state import UserState

logger = logging.getLogger(__name__)

# Soft latency targets per phase, in milliseconds
PHASE_TARGETS_MS: Dict[str, float] = {
    "perceive": 200,
    "recall": 300,
    "plan": 400,
    "draft": 800,
    "edit": 400,
    "rate": 300,
    "re_edit": 400,
    "post_process": 100,
    "total": 2500,
}


@dataclass
class TurnResult:
    """
    Outcome of one turn.

    Attributes:
        conversation_id: Conversation the turn was stored in
        text: Delivered reply
        plan: Plan the reply was written to
        dialog_act: Dialog act of the user message
        emotion: Detected user emotion
        affect: Companion affect after this turn
        rating: Rating of the delivered reply (None for the fallback)
        timings: Milliseconds per phase, plus "total"
        re_edits: Re-edit iterations used
        fallback: True when the persona fallback message was delivered
        memories_written: Memories stored or reinforced by the learn phase
        callback: Topic callback suggested to the drafter, if any
        backchannel: Backchannel token opening the reply, if any
    """

    conversation_id: str
    text: str
    plan: ConversationPlan
    dialog_act: DialogActResult
    emotion: Emotion
    affect: AffectState
    rating: Optional[QualityRating] = None
    timings: Dict[str, float] = field(default_factory=dict)
    re_edits: int = 0
    fallback: bool = False
    memories_written: int = 0
    callback: Optional[TopicCallback] = None
    backchannel: Optional[str] = None


@dataclass
class _Turn:
    user_id: str
    text: str
    conversation: Conversation
    state: UserState
    history: List[ConversationMessage]
    started_at: datetime
    timings: Dict[str, float] = field(default_factory=dict)
    dialog_act: DialogActResult = field(
        default_factory=lambda: DialogActResult(act="unknown", confidence=0.5, source="fallback")
    )
    emotion: Emotion = field(default_factory=Emotion)


class ResponseOrchestrator:
    """
    Runs the response pipeline for any number of users.

    All per-user state lives in the injected stores; the orchestrator itself
    only holds collaborators, so several instances can share stores.

    Args:
        gateway: Provider gateway used by every LLM call
        memory: Memory graph
        conversations: Conversation store
        user_states: Per-user state store
        persona: Companion persona
        config: Tunables
        classifier: Dialog act classifier override
        emotions: Emotion detector override
        rater: Quality rater override
        postprocessor: Post-processor override
        extractor: Memory extractor override
        rng: Random source for backchannels, analytics sampling and token delays
    """

    def __init__(
        self,
        gateway: ProviderGateway,
        memory: MemoryGraph,
        conversations: ConversationStore,
        user_states: UserStateStore,
        persona: Persona = DEFAULT_PERSONA,
        config: Optional[CompanionConfig] = None,
        classifier: Optional[DialogActClassifier] = None,
        emotions: Optional[EmotionDetector] = None,
        rater: Optional[QualityRater] = None,
        postprocessor: Optional[PostProcessor] = None,
        extractor: Optional[LLMMemoryExtracter] = None,
        rng: Optional[random.Random] = None,
    ):
        self.gateway = gateway
        self.memory = memory
        self.conversations = conversations
        self.user_states = user_states
        self.persona = persona
        self.config = config or CompanionConfig()
        self._rng = rng or random.Random()

        self.classifier = classifier or DialogActClassifier(
            gateway, use_llm=self.config.llm_dialog_fallback
        )
        self.emotions = emotions or EmotionDetector(gateway)
        self.planner = ConversationPlanner(gateway, persona)
        self.writer = ResponseWriter(gateway, persona)
        self.rater = rater or QualityRater(
            gateway,
            pass_threshold=self.config.quality_pass_threshold,
            use_llm=self.config.use_llm_rater,
            analytics_sample_rate=self.config.analytics_sample_rate,
            rng=self._rng,
        )
        self.postprocessor = postprocessor or PostProcessor(
            self.config,
            BackchannelPolicy(
                cooldown_seconds=self.config.backchannel_cooldown_seconds,
                probability=self.config.backchannel_probability,
                rng=self._rng,
            ),
        )
        self.extractor = extractor or LLMMemoryExtracter(gateway)
        self.summarizer = ConversationSummarizer(
            gateway, persona.name, window=2 * self.config.summary_interval
        )
        self._background: Set[asyncio.Task] = set()

        logger.info(f"ResponseOrchestrator initialized (persona={persona.name})")

    @contextmanager
    def _timed(self, phase: str, timings: Dict[str, float]):
        start = time.perf_counter()
        try:
            yield
        finally:
            elapsed = (time.perf_counter() - start) * 1000
            timings[phase] = timings.get(phase, 0.0) + elapsed
            target = PHASE_TARGETS_MS.get(phase)
            if target is not None and timings[phase] > target:
                logger.warning(f"Phase {phase} took {timings[phase]:.0f}ms (target {target:.0f}ms)")
            else:
                logger.debug(f"Phase {phase}: {elapsed:.0f}ms")

    # ------------------------------------------------------------------
    # Turn setup
    # ------------------------------------------------------------------

    def _prepare(self, user_id: str, text: str, conversation_id: Optional[str]) -> _Turn:
        clean_text = validate_user_message(text, self.config.max_message_chars)

        conversation = None
        if conversation_id:
            conversation = self.conversations.get_conversation(conversation_id)
            if conversation is not None and conversation.user_id != user_id:
                logger.warning(
                    f"Conversation {conversation_id} belongs to another user, starting a new one"
                )
                conversation = None
        if conversation is None:
            conversation = self.conversations.create_conversation(user_id)

        state = self.user_states.load(user_id)
        if state is None:
            state = UserState(
                user_id=user_id,
                phrase_bank=PhraseBank(max_tokens=self.config.phrase_bank_tokens),
            )

        history = self.conversations.get_recent_messages(
            conversation.id, self.config.history_window
        )
        return _Turn(
            user_id=user_id,
            text=clean_text,
            conversation=conversation,
            state=state,
            history=history,
            started_at=datetime.now(),
        )

    # ------------------------------------------------------------------
    # Phases
    # ------------------------------------------------------------------

    async def _analyze_style(self, text: str) -> StyleVector:
        return analyze_style(text)

    async def _perceive(self, turn: _Turn):
        dialog_act, emotion, style = await asyncio.gather(
            self.classifier.classify(turn.text, turn.history),
            self.emotions.detect(turn.text),
            self._analyze_style(turn.text),
            return_exceptions=True,
        )

        if isinstance(dialog_act, BaseException):
            logger.warning(f"Dialog act classification failed: {dialog_act}")
            dialog_act = DialogActResult(act="unknown", confidence=0.5, source="fallback")
        if isinstance(emotion, BaseException):
            logger.warning(f"Emotion detection failed: {emotion}")
            emotion = Emotion()
        if isinstance(style, BaseException):
            logger.warning(f"Style analysis failed: {style}")
            style = StyleVector()

        turn.dialog_act = dialog_act
        turn.emotion = emotion
        turn.state.affect = update_affect(turn.state.affect, emotion)

        base_style = self.persona.base_style
        profile = turn.state.style_profile.update(style, alpha=self.config.style_smoothing)
        lsm_score = style_similarity(base_style, profile)
        target_style = blend_styles(base_style, profile, self.config.style_blend_weight)

        logger.info(
            f"Perceived {dialog_act.act} ({dialog_act.source}), "
            f"{emotion.label} ({emotion.score:.2f}), LSM {lsm_score:.0%}"
        )
        return profile, lsm_score, style_instructions(target_style)

    async def _recall(self, turn: _Turn):
        try:
            # Rehearsal first: retrieval refreshes last_accessed_at on every node
            rehearsal = await self.memory.rehearse(turn.user_id, now=turn.started_at)
            memories = await self.memory.retrieve(
                turn.user_id, turn.text, k=self.config.memory_top_k, now=turn.started_at
            )
        except Exception as e:
            logger.warning(f"Recall failed, continuing without memories: {e}", exc_info=True)
            rehearsal, memories = [], []

        recalled = {item.node.id for item in memories}
        rehearsal = [node for node in rehearsal if node.id not in recalled]
        callback = turn.state.topic_stack.check_latent_match(turn.text)
        if callback:
            logger.info(f"Topic callback: {callback.callback}")

        summary = turn.conversation.summary
        context = build_context(
            summary,
            [item.node for item in memories],
            extract_commitments(summary),
            rehearsal,
        )
        logger.info(f"Recalled {len(memories)} memories, {len(rehearsal)} to rehearse")
        return context, callback

    async def _rate(self, turn: _Turn, text: str, plan: ConversationPlan) -> QualityRating:
        return await self.rater.rate(
            turn.text,
            text,
            emotion=turn.emotion,
            dialog_act=turn.dialog_act.act,
            brevity=plan.brevity,
            avoid_list=plan.avoid,
            diversity=turn.state.phrase_bank.check_diversity(text),
        )

    async def _generate(self, turn: _Turn) -> TurnResult:
        timings = turn.timings
        try:
            with self._timed("perceive", timings):
                profile, lsm_score, style_directives = await self._perceive(turn)

            with self._timed("recall", timings):
                context, callback = await self._recall(turn)

            with self._timed("plan", timings):
                rules = get_turn_taking_rules(turn.dialog_act.act, turn.emotion)
                avoid_list = turn.state.phrase_bank.avoid_list(self.config.avoid_list_limit)
                plan = await self.planner.plan(
                    turn.text,
                    turn.dialog_act,
                    turn.emotion,
                    rules,
                    tone=emotion_to_tone(turn.emotion),
                    style_directives=style_directives,
                    context=context,
                    avoid_list=avoid_list,
                )

            with self._timed("draft", timings):
                draft = await self.writer.draft(
                    turn.text,
                    plan,
                    context=context,
                    style_directives=style_directives,
                    turn_directives=turn_instructions(turn.dialog_act.act, rules),
                    callback=callback.callback if callback else None,
                )
        except CompanionError as e:
            logger.error(f"Could not draft a reply, sending fallback message: {e}")
            return self._fallback(turn)
        except Exception as e:
            logger.error(f"Pipeline failed, sending fallback message: {e}", exc_info=True)
            return self._fallback(turn)

        with self._timed("edit", timings):
            text = await self.writer.edit(draft, plan, style_directives)

        with self._timed("rate", timings):
            rating = await self._rate(turn, text, plan)

        best_text, best_rating = text, rating
        re_edits = 0
        while not rating.passed and re_edits < self.config.max_re_edits:
            with self._timed("re_edit", timings):
                revised = await self.writer.re_edit(text, rating.failing, plan)
                re_edits += 1
                if revised == text:
                    break
                text = revised
                rating = await self._rate(turn, text, plan)
            if rating.overall > best_rating.overall:
                best_text, best_rating = text, rating

        if not best_rating.passed:
            logger.info(
                f"Accepting best reply after {re_edits} re-edits "
                f"({best_rating.grade}, {best_rating.overall:.2f})"
            )

        with self._timed("post_process", timings):
            processed = self.postprocessor.process(
                best_text,
                turn.text,
                plan,
                emotion=turn.emotion,
                user_style=profile,
                lsm_score=lsm_score,
                last_backchannel_at=turn.state.last_backchannel_at,
                now=turn.started_at,
            )
        if processed.backchannel:
            turn.state.last_backchannel_at = turn.started_at

        leftover = avoid_phrases_present(processed.text, plan.avoid)
        if leftover:
            logger.warning(f"Reply still contains avoided phrases: {leftover}")

        return TurnResult(
            conversation_id=turn.conversation.id,
            text=processed.text,
            plan=plan,
            dialog_act=turn.dialog_act,
            emotion=turn.emotion,
            affect=turn.state.affect,
            rating=best_rating,
            timings=timings,
            re_edits=re_edits,
            callback=callback,
            backchannel=processed.backchannel,
        )

    def _fallback(self, turn: _Turn) -> TurnResult:
        return TurnResult(
            conversation_id=turn.conversation.id,
            text=self.persona.fallback_message,
            plan=ConversationPlan.default(),
            dialog_act=turn.dialog_act,
            emotion=turn.emotion,
            affect=turn.state.affect,
            timings=turn.timings,
            fallback=True,
        )

    async def _write_memories(self, user_id: str, user_text: str, reply: str) -> int:
        written = 0
        for source, text in (("user", user_text), ("assistant", reply)):
            for candidate in await self.extractor.extract(text, source=source):
                try:
                    node = await self.memory.add_memory(
                        user_id, candidate.type, candidate.content, candidate.metadata
                    )
                except Exception as e:
                    logger.warning(f"Memory write failed for user {user_id}: {e}")
                    continue
                if node is not None:
                    written += 1
        return written

    async def _learn(self, turn: _Turn, result: TurnResult) -> None:
        state = turn.state
        conversation_id = result.conversation_id
        try:
            self.conversations.add_message(
                conversation_id,
                ConversationMessage(role="user", content=turn.text, timestamp=turn.started_at),
            )
            count = self.conversations.add_message(
                conversation_id, ConversationMessage(role="assistant", content=result.text)
            )

            if not result.fallback:
                result.memories_written = await self._write_memories(
                    turn.user_id, turn.text, result.text
                )
                state.phrase_bank.add(result.text)
                await self.rater.sample_for_analytics(
                    turn.text,
                    result.text,
                    emotion=result.emotion,
                    dialog_act=result.dialog_act.act,
                    brevity=result.plan.brevity,
                )

            state.topic_stack.push(extract_topic(turn.text))

            if should_update_summary(count // 2, self.config.summary_interval):
                recent = self.conversations.get_recent_messages(
                    conversation_id, 2 * self.config.summary_interval
                )
                summary = await self.summarizer.summarize(
                    recent, turn.conversation.summary or None
                )
                if summary:
                    self.conversations.update_summary(conversation_id, summary)

            self.user_states.save(state)
            logger.info(
                f"Learned from turn: {result.memories_written} memories, "
                f"{count} messages in conversation {conversation_id}"
            )
        except Exception as e:
            logger.error(f"Learn phase failed for user {turn.user_id}: {e}", exc_info=True)

    def _finish_timings(self, turn: _Turn) -> None:
        total = (datetime.now() - turn.started_at).total_seconds() * 1000
        turn.timings["total"] = total
        level = logging.WARNING if total > PHASE_TARGETS_MS["total"] else logging.INFO
        logger.log(level, f"Turn finished in {total:.0f}ms")

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def respond(
        self, user_id: str, text: str, conversation_id: Optional[str] = None
    ) -> TurnResult:
        """
        Run a full turn and return the reply without streaming it.

        Args:
            user_id: User sending the message
            text: User message
            conversation_id: Existing conversation to continue, if any

        Returns:
            TurnResult of the turn, after learning

        Raises:
            InputRejectedError: If the message fails pre-flight validation
        """
        turn = self._prepare(user_id, text, conversation_id)
        result = await self._generate(turn)
        self._finish_timings(turn)
        await self._learn(turn, result)
        return result

    async def stream(
        self, user_id: str, text: str, conversation_id: Optional[str] = None
    ) -> TurnStream:
        """
        Run a turn and stream its events.

        Validation happens before this returns, so an InputRejectedError is
        raised here rather than from the stream. The returned stream yields a
        control event, one token event per word and an end event; closing it
        early stops the tokens but the turn still learns in the background.

        Example:
            >>> turn = await orchestrator.stream("user-1", "hey!")
            >>> async for event in turn:
            ...     if event.type == "token":
            ...         print(event.token, end="")
            >>> result = await turn.wait()
        """
        turn = self._prepare(user_id, text, conversation_id)
        stream = TurnStream()
        task = asyncio.create_task(self._produce(turn, stream))
        stream.task = task
        self._background.add(task)
        task.add_done_callback(self._background.discard)
        return stream

    async def _produce(self, turn: _Turn, stream: TurnStream) -> TurnResult:
        result = await self._generate(turn)
        self._finish_timings(turn)

        await stream.put(
            TurnEvent(
                type="control",
                conversation_id=result.conversation_id,
                affect=result.affect,
                dialog_act=result.dialog_act.act,
                fallback=result.fallback,
            )
        )
        for token in split_tokens(result.text):
            if not await stream.put(TurnEvent(type="token", token=token)):
                logger.info("Client disconnected mid-stream, learning in background")
                break
            delay = self._rng.uniform(self.config.token_delay_min, self.config.token_delay_max)
            if delay > 0:
                await asyncio.sleep(delay)
        await stream.finish(result.conversation_id, fallback=result.fallback)

        await self._learn(turn, result)
        return result

    async def run_maintenance(self, now: Optional[datetime] = None) -> MaintenanceReport:
        """Decay and rehearsal over every user; call on the host's own schedule."""
        return await self.memory.run_maintenance(now)
