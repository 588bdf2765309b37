"""Anti-repetition and conversational continuity helpers."""

from casual_companion.continuity.backchannel import BackchannelPolicy, all_backchannels
from casual_companion.continuity.phrase_bank import DiversityResult, PhraseBank, PhraseViolation
from casual_companion.continuity.topic_stack import TopicCallback, TopicStack, extract_topic

__all__ = [
    "BackchannelPolicy",
    "all_backchannels",
    "DiversityResult",
    "PhraseBank",
    "PhraseViolation",
    "TopicCallback",
    "TopicStack",
    "extract_topic",
]
