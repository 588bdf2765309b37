"""Shared fixtures: deterministic embeddings, a scripted chat backend, wired services."""

import hashlib
import json
import math
import random
from typing import Callable, Dict, List, Optional, Union

import pytest

from casual_companion.config import CompanionConfig
from casual_companion.memory.graph import MemoryGraph
from casual_companion.pipeline.orchestrator import ResponseOrchestrator
from casual_companion.providers.gateway import ProviderGateway
from casual_companion.storage.conversations.memory import InMemoryConversationStore
from casual_companion.storage.nodes.memory import InMemoryNodeStore
from casual_companion.storage.user_state.memory import InMemoryUserStateStore

EMBEDDING_DIMENSION = 64

REPLY = (
    "Oh no, exam stress is the worst, and it makes total sense you feel it tonight. "
    "You've prepared more than you think. Take a slow breath, skim your notes once, "
    "then get some real sleep. What subject is it?"
)

PLAN_JSON = json.dumps(
    {
        "intent": "support",
        "tone": "concerned",
        "brevity": "medium",
        "empathy": "high",
        "beats": ["reflect", "respond", "followup"],
        "avoid": [],
        "keywords": ["exam"],
    }
)

RATING_JSON = json.dumps(
    {
        "empathy": 0.9,
        "directness": 0.9,
        "brevity": 0.85,
        "humanness": 0.9,
        "feedback": "Warm and natural",
    }
)

ROUTES = [
    ("You are a conversation planner", "planner"),
    ("You are an expert editor. Fix", "re_edit"),
    ("You are an expert editor", "edit"),
    ("You are a response quality rater", "rater"),
    ("You are an emotion classifier", "emotion"),
    ("You are a dialog act classifier", "dialog_act"),
    ("You are a memory extractor", "extractor"),
    ("You are a conversation summarizer", "summary"),
]

DEFAULT_RESPONSES: Dict[str, str] = {
    "planner": PLAN_JSON,
    "draft": REPLY,
    "edit": REPLY,
    "re_edit": REPLY,
    "rater": RATING_JSON,
    "emotion": json.dumps({"emotion": "fear", "intensity": 0.85}),
    "dialog_act": json.dumps({"act": "share", "confidence": 0.7}),
    "extractor": json.dumps({"memories": []}),
    "summary": "- User has an exam tomorrow\n- User is going to study chemistry tonight",
}

Response = Union[str, Exception, Callable[[str], str]]


def _bucket(word: str) -> int:
    return int(hashlib.md5(word.encode("utf-8")).hexdigest(), 16) % EMBEDDING_DIMENSION


class FakeEmbedding:
    """
    Bag-of-words hashing embedder.

    Identical texts get identical vectors, texts sharing most words are close,
    unrelated texts are far apart. ``vectors`` pins exact vectors for chosen
    texts and ``fail`` makes every call raise.
    """

    def __init__(self, vectors: Optional[Dict[str, List[float]]] = None, fail: bool = False):
        self.vectors = vectors or {}
        self.fail = fail
        self.calls: List[str] = []

    @property
    def dimension(self) -> int:
        return EMBEDDING_DIMENSION

    @property
    def model_name(self) -> str:
        return "fake-hashing"

    async def embed(self, text: str) -> List[float]:
        self.calls.append(text)
        if self.fail:
            raise RuntimeError("embedding service down")
        if not text or not text.strip():
            raise ValueError("Cannot embed empty text")
        if text in self.vectors:
            return list(self.vectors[text])

        vector = [0.0] * EMBEDDING_DIMENSION
        for word in text.lower().split():
            vector[_bucket(word.strip(".,!?"))] += 1.0
        norm = math.sqrt(sum(x * x for x in vector)) or 1.0
        return [x / norm for x in vector]

    async def embed_many(self, texts: List[str]) -> List[List[float]]:
        return [await self.embed(text) for text in texts]


class ScriptedBackend:
    """
    ChatBackend that answers by prompt kind.

    The kind comes from the system prompt of each call (planner, rater,
    editor, ...); anything else is a draft. A response can be a string, an
    exception to raise, or a callable receiving the user prompt.
    """

    def __init__(self, responses: Optional[Dict[str, Response]] = None, name: str = "scripted"):
        self.name = name
        self.responses: Dict[str, Response] = {**DEFAULT_RESPONSES, **(responses or {})}
        self.calls: List[dict] = []

    @staticmethod
    def route(messages) -> str:
        system = messages[0].content if messages else ""
        for prefix, kind in ROUTES:
            if system.startswith(prefix):
                return kind
        return "draft"

    def kinds(self) -> List[str]:
        return [call["kind"] for call in self.calls]

    async def complete(
        self,
        messages,
        model: str,
        temperature: float = 0.7,
        max_tokens: Optional[int] = None,
        response_format: str = "text",
    ) -> str:
        kind = self.route(messages)
        prompt = messages[-1].content
        self.calls.append(
            {
                "kind": kind,
                "model": model,
                "temperature": temperature,
                "max_tokens": max_tokens,
                "response_format": response_format,
                "prompt": prompt,
            }
        )
        response = self.responses[kind]
        if isinstance(response, Exception):
            raise response
        if callable(response):
            return response(prompt)
        return response


class FailingBackend:
    """ChatBackend whose every call fails."""

    def __init__(self, name: str = "broken"):
        self.name = name
        self.calls = 0

    async def complete(self, messages, model, temperature=0.7, max_tokens=None, response_format="text"):
        self.calls += 1
        raise ConnectionError(f"{self.name} unreachable")


TEST_MODELS = {"fast": "fast-model", "quality": "quality-model", "balanced": "balanced-model"}


def make_gateway(*backends) -> ProviderGateway:
    """Register backends with descending priority in the order given."""
    gateway = ProviderGateway()
    for i, backend in enumerate(backends):
        gateway.register(backend.name, backend, priority=100 - i * 10, models=TEST_MODELS)
    return gateway


@pytest.fixture
def embedding():
    return FakeEmbedding()


@pytest.fixture
def backend():
    return ScriptedBackend()


@pytest.fixture
def gateway(backend):
    return make_gateway(backend)


@pytest.fixture
def config():
    """Deterministic tunables: no token delays, no random backchannels or sampling."""
    return CompanionConfig(
        token_delay_min=0.0,
        token_delay_max=0.0,
        backchannel_probability=0.0,
        analytics_sample_rate=0.0,
    )


@pytest.fixture
def node_store():
    return InMemoryNodeStore()


@pytest.fixture
def memory_graph(node_store, embedding, config):
    return MemoryGraph(node_store, embedding, config)


@pytest.fixture
def conversations():
    return InMemoryConversationStore()


@pytest.fixture
def user_states():
    return InMemoryUserStateStore()


@pytest.fixture
def orchestrator(gateway, memory_graph, conversations, user_states, config):
    return ResponseOrchestrator(
        gateway=gateway,
        memory=memory_graph,
        conversations=conversations,
        user_states=user_states,
        config=config,
        rng=random.Random(7),
    )


@pytest.fixture
def make_backend():
    """Factory for ScriptedBackend with per-kind overrides."""

    def _make(name: str = "scripted", **responses) -> ScriptedBackend:
        return ScriptedBackend(responses, name=name)

    return _make


@pytest.fixture
def failing_backend():
    return FailingBackend()


@pytest.fixture
def build_gateway():
    return make_gateway


@pytest.fixture
def make_embedding():
    return FakeEmbedding


@pytest.fixture
def reply_text():
    return REPLY


@pytest.fixture
def build_orchestrator(memory_graph, conversations, user_states, config):
    """Orchestrator over the shared stores with a custom gateway (and config overrides)."""

    def _build(gateway: ProviderGateway, **overrides) -> ResponseOrchestrator:
        turn_config = config.model_copy(update=overrides) if overrides else config
        return ResponseOrchestrator(
            gateway=gateway,
            memory=memory_graph,
            conversations=conversations,
            user_states=user_states,
            config=turn_config,
            rng=random.Random(7),
        )

    return _build
