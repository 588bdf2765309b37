"""
Anti-repetition phrase bank.

Keeps a sliding window of the bigrams and trigrams the companion used
recently, so drafts can be told what to avoid and candidates can be scored
for diversity.
"""

import re
from collections import Counter
from typing import List

from pydantic import BaseModel, Field

_TOKEN_RE = re.compile(r"[a-z0-9']+")

VIOLATION_PENALTY = 0.15
DIVERSITY_PASS = 0.7


def tokenize(text: str) -> List[str]:
    return _TOKEN_RE.findall(text.lower())


def bigrams(words: List[str]) -> List[str]:
    return [f"{words[i]} {words[i + 1]}" for i in range(len(words) - 1)]


class PhraseViolation(BaseModel):
    phrase: str
    count: int


class DiversityResult(BaseModel):
    score: float
    violations: List[PhraseViolation] = Field(default_factory=list)
    passed: bool


class PhraseBank(BaseModel):
    """
    FIFO store of recent n-grams bounded by a token budget.

    A bigram costs 2 tokens and a trigram 3. When the budget is exceeded the
    oldest phrases are dropped first.
    """

    max_tokens: int = 1000
    phrases: List[str] = Field(default_factory=list)
    current_tokens: int = 0

    def add(self, text: str) -> None:
        words = tokenize(text)
        for i in range(len(words) - 1):
            self.phrases.append(f"{words[i]} {words[i + 1]}")
            self.current_tokens += 2
            if i < len(words) - 2:
                self.phrases.append(f"{words[i]} {words[i + 1]} {words[i + 2]}")
                self.current_tokens += 3

        while self.current_tokens > self.max_tokens and self.phrases:
            removed = self.phrases.pop(0)
            self.current_tokens -= len(removed.split())

    def check(self, text: str) -> List[PhraseViolation]:
        """Bigrams of ``text`` already used at least twice."""
        counts = Counter(self.phrases)
        violations = []
        seen = set()
        for bigram in bigrams(tokenize(text)):
            if bigram in seen:
                continue
            seen.add(bigram)
            if counts[bigram] >= 2:
                violations.append(PhraseViolation(phrase=bigram, count=counts[bigram]))
        return violations

    def avoid_list(self, limit: int = 20) -> List[str]:
        """Phrases used at least twice, in first-seen order."""
        counts = Counter(self.phrases)
        return [phrase for phrase, count in counts.items() if count >= 2][:limit]

    def check_diversity(self, text: str) -> DiversityResult:
        violations = self.check(text)
        score = max(0.0, 1.0 - VIOLATION_PENALTY * len(violations))
        return DiversityResult(score=score, violations=violations, passed=score >= DIVERSITY_PASS)
