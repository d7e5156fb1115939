"""Pattern tables consumed by the rule validator and the quality scorer.

The scoring code never embeds domain strings directly; everything it
matches against lives here as compiled patterns or keyword tuples so the
tables can be swapped out (or trimmed in tests) without touching the
scoring logic.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Dict, Iterable, Mapping, Pattern, Tuple, Union

_I = re.IGNORECASE


def _compile(*sources: str, flags: int = 0) -> Tuple[Pattern[str], ...]:
    return tuple(re.compile(source, flags) for source in sources)


def count_matches(patterns: Iterable[Pattern[str]], text: str) -> int:
    """Total number of non-overlapping hits across a pattern family."""

    return sum(len(pattern.findall(text)) for pattern in patterns)


def count_matching_patterns(patterns: Iterable[Pattern[str]], text: str) -> int:
    """Number of patterns in a family that hit at least once."""

    return sum(1 for pattern in patterns if pattern.search(text))


@dataclass(frozen=True, slots=True)
class OrderedTerms:
    """Terms that must occur in order on a single line.

    Each term is searched from where the previous one ended, which keeps
    matching linear in the text length. A ``first.*second`` regex gives the
    same answer but backtracks quadratically on long lines.
    """

    terms: Tuple[Pattern[str], ...]

    @classmethod
    def compile(cls, *sources: str, flags: int = 0) -> "OrderedTerms":
        return cls(_compile(*sources, flags=flags))

    def search(self, text: str) -> bool:
        return any(self._matches_line(line) for line in text.split("\n"))

    def _matches_line(self, line: str) -> bool:
        position = 0
        for term in self.terms:
            match = term.search(line, position)
            if match is None:
                return False
            position = match.end()
        return True


Matcher = Union[Pattern[str], OrderedTerms]


MONTHS = (
    r"\b(?:January|February|March|April|May|June|July|August|September"
    r"|October|November|December)\b"
)


@dataclass(frozen=True, slots=True)
class ValidatorPatterns:
    """Patterns behind the rule validator's 25-point sub-scores."""

    specific: Tuple[Pattern[str], ...]
    vague: Tuple[Pattern[str], ...]
    connectors: Pattern[str]
    poor_grammar: Tuple[Pattern[str], ...]
    concept_synonyms: Mapping[str, Tuple[str, ...]]


@dataclass(frozen=True, slots=True)
class ScoringPatterns:
    """Pattern families behind the quality scorer's dimensions."""

    specific: Tuple[Pattern[str], ...]
    vague: Tuple[Pattern[str], ...]
    structured: Tuple[Pattern[str], ...]
    detailed: Tuple[Pattern[str], ...]
    clarity: Tuple[Pattern[str], ...]
    poor_grammar: Tuple[Pattern[str], ...]
    proper_noun: Pattern[str]
    concepts: Tuple[Pattern[str], ...]


@dataclass(frozen=True, slots=True)
class RelevanceTables:
    """Keyword vocabularies used to judge topical relevance."""

    question_keywords: Mapping[str, Tuple[str, ...]]
    section_keywords: Mapping[str, Tuple[str, ...]]
    off_topic: Tuple[str, ...]
    implicit_answers: Mapping[str, Tuple[Matcher, ...]] = field(
        default_factory=dict
    )


VALIDATOR_PATTERNS = ValidatorPatterns(
    specific=(
        re.compile(r"\d+"),
        re.compile(r"\$\d+"),
        re.compile(r"\d+%"),
        re.compile(r"\b(?:daily|weekly|monthly|annually)\b", _I),
        re.compile(r"\b(?:users?|customers?|professionals?|teams?)\b", _I),
        re.compile(r"\b(?:mobile|web|SaaS|platform|application)\b", _I),
    ),
    vague=_compile(
        r"\b(?:some|many|various|several|stuff|things|people|users)\b",
        r"\b(?:good|bad|nice|great|awesome)\b",
        r"\b(?:might|maybe|probably|possibly)\b",
        flags=_I,
    ),
    connectors=re.compile(
        r"\b(?:because|therefore|however|furthermore|additionally|first"
        r"|second|third)\b",
        _I,
    ),
    poor_grammar=(
        re.compile(r"\b(?:dont|doesnt|wont|cant)\b", _I),
        re.compile(r"\byeah\b", _I),
        re.compile(r"\.{2,}"),
        re.compile(r"\s{2,}"),
    ),
    concept_synonyms={
        "who": (
            "users",
            "customers",
            "professionals",
            "teams",
            "people",
            "audience",
            "target",
        ),
        "what": (
            "application",
            "app",
            "platform",
            "tool",
            "product",
            "service",
            "solution",
        ),
        "why": (
            "because",
            "benefit",
            "value",
            "improve",
            "solve",
            "problem",
            "purpose",
            "reason",
        ),
        "problem": ("challenge", "issue", "difficulty", "struggle", "pain point"),
        "impact": ("effect", "result", "consequence", "outcome", "cost"),
        "metric": ("measure", "kpi", "target", "goal", "percentage", "%"),
        "target": ("goal", "objective", "aim"),
        "timeframe": (
            "timeline",
            "deadline",
            "schedule",
            "time",
            "months",
            "weeks",
            "days",
        ),
    },
)


SCORING_PATTERNS = ScoringPatterns(
    specific=(
        re.compile(r"\d+"),
        re.compile(r"\$\d+(?:,\d{3})*(?:\.\d{2})?"),
        re.compile(r"\d+%"),
        re.compile(MONTHS, _I),
        re.compile(r"\b\d{1,2}/\d{1,2}/\d{2,4}\b"),
        re.compile(r"\b[A-Z][a-z]+ [A-Z][a-z]+\b"),
        re.compile(
            r"\b(?:API|SDK|SaaS|B2B|B2C|CRM|ERP|UI|UX|MVP|KPI|ROI|CEO|CTO|CMO)\b"
        ),
        re.compile(r"\b(?:daily|weekly|monthly|quarterly|annually)\b", _I),
        re.compile(
            r"\b(?:mobile|web|desktop|iOS|Android|Windows|macOS|Linux)\b", _I
        ),
        re.compile(r"\b(?:Q[1-4]|\d+(?:st|nd|rd|th)\s+quarter)\b", _I),
    ),
    vague=_compile(
        r"\b(?:probably|maybe|might|perhaps|possibly|kind\s+of|sort\s+of"
        r"|stuff|things|people|users|some|many|various|several)\b",
        r"\b(?:good|bad|nice|great|awesome|terrible|amazing|wonderful)\b",
        r"\b(?:a\s+lot|lots\s+of|bunch\s+of|tons\s+of)\b",
        r"\b(?:etc|and\s+so\s+on|and\s+stuff)\b",
        flags=_I,
    ),
    structured=(
        re.compile(r"^\s*[-*•]\s+", re.MULTILINE),
        re.compile(r"^\s*\d+\.\s+", re.MULTILINE),
        re.compile(r"\n\s*\n"),
        re.compile(
            r"\b(?:first|second|third|fourth|fifth|finally|lastly"
            r"|in\s+conclusion)\b",
            _I,
        ),
        re.compile(
            r"\b(?:however|therefore|furthermore|additionally|moreover"
            r"|consequently)\b",
            _I,
        ),
        re.compile(r":"),
    ),
    detailed=(
        re.compile(r"\b(?:for\s+example|such\s+as|including|specifically|namely)\b", _I),
        re.compile(r"\b(?:scenario|use\s+case|edge\s+case|corner\s+case)\b", _I),
        re.compile(r"\b(?:because|since|due\s+to|as\s+a\s+result)\b", _I),
        re.compile(r"\b(?:when|if|unless|provided\s+that|in\s+case)\b", _I),
        re.compile(r'"'),
        re.compile(r"\([^)]+\)"),
    ),
    clarity=(
        re.compile(
            r"\b(?:because|therefore|however|furthermore|additionally|first"
            r"|second|third)\b",
            _I,
        ),
        re.compile(r"[.!?]+"),
        re.compile(
            r"\b(?:this|that|these|those|it|they)\s+(?:means|indicates|shows"
            r"|demonstrates)\b",
            _I,
        ),
        re.compile(
            r"\b(?:in\s+other\s+words|to\s+clarify|specifically|that\s+is)\b", _I
        ),
    ),
    poor_grammar=(
        re.compile(
            r"\b(?:dont|doesnt|wont|cant|im|youre|theyre|well|yeah|ok|okay)\b",
            _I,
        ),
        re.compile(r"\.{2,}"),
        re.compile(r"\s{2,}"),
        re.compile(r"[,;]{2,}"),
        re.compile(r"\b(?:alot|recieve|seperate|definately|loose)\b", _I),
    ),
    proper_noun=re.compile(r"\b[A-Z][a-z]+(?:\s+[A-Z][a-z]+)*\b"),
    concepts=_compile(
        r"\b(?:application|platform|system|service|tool|product|solution)\b",
        r"\b(?:user|customer|client|stakeholder|audience|market)\b",
        r"\b(?:problem|issue|challenge|need|requirement|goal|objective)\b",
        r"\b(?:feature|function|capability|workflow|process|method)\b",
        r"\b(?:business|commercial|enterprise|organization|company)\b",
        flags=_I,
    ),
)


_QUESTION_KEYWORDS: Dict[str, Tuple[str, ...]] = {
    "productDescription": (
        "product", "application", "app", "platform", "tool", "service",
        "solution", "users", "customers", "target", "market", "problem",
        "solve", "benefit", "value",
    ),
    "problemStatement": (
        "problem", "issue", "challenge", "difficulty", "pain", "struggle",
        "obstacle", "barrier", "frustration", "inefficiency", "cost", "time",
        "effort",
    ),
    "businessObjectives": (
        "objective", "goal", "target", "aim", "mission", "vision", "strategy",
        "revenue", "growth", "market", "competitive", "advantage", "success",
    ),
    "targetMarket": (
        "market", "audience", "users", "customers", "demographic", "segment",
        "persona", "age", "income", "location", "behavior", "needs",
    ),
    "userStories": (
        "user", "customer", "persona", "story", "scenario", "journey",
        "workflow", "task", "goal", "need", "want", "experience",
    ),
    "functionalReqs": (
        "requirement", "function", "feature", "capability", "functionality",
        "system", "interface", "integration", "process", "workflow",
    ),
    "successMetrics": (
        "metric", "measure", "kpi", "target", "goal", "percentage", "number",
        "rate", "volume", "performance", "success", "benchmark",
    ),
}

_SECTION_KEYWORDS: Dict[str, Tuple[str, ...]] = {
    "introduction": ("product", "overview", "summary", "what", "who", "why"),
    "goals": ("objective", "goal", "target", "aim", "success", "achieve"),
    "audience": ("user", "customer", "audience", "demographic", "persona", "segment"),
    "userStories": ("story", "scenario", "journey", "workflow", "task", "user"),
    "requirements": (
        "requirement", "specification", "feature", "function", "capability",
    ),
    "metrics": ("metric", "measure", "kpi", "target", "benchmark", "performance"),
    "questions": ("question", "concern", "issue", "uncertainty", "clarification"),
}

_IMPLICIT_ANSWERS: Dict[str, Tuple[Matcher, ...]] = {
    "productDescription": (
        OrderedTerms.compile(r"\bwhat\b", r"\bis\b", flags=_I),
        OrderedTerms.compile(r"\bwho\b", r"\bfor\b", flags=_I),
        OrderedTerms.compile(r"\bwhy\b", r"\bneed\b", flags=_I),
    ),
    "problemStatement": _compile(
        r"\bproblem\b", r"\bissue\b", r"\bchallenge\b", r"\bdifficult", flags=_I
    ),
    "businessObjectives": _compile(
        r"\bgoal\b", r"\bobjective\b", r"\bsuccess\b", r"\bachieve\b", flags=_I
    ),
    "targetMarket": _compile(
        r"\bwho\b", r"\bmarket\b", r"\bcustomer\b", r"\buser\b", flags=_I
    ),
    "userStories": _compile(
        r"\buser\b", r"\bas\s+a\b", r"\bi\s+want\b", r"\bso\s+that\b", flags=_I
    ),
    "functionalReqs": _compile(
        r"\bshall\b", r"\bmust\b", r"\brequirement\b", r"\bfunction\b", flags=_I
    ),
    "successMetrics": _compile(
        r"\bmeasure\b", r"\bmetric\b", r"\btarget\b", r"\bKPI\b", flags=_I
    ),
}

RELEVANCE_TABLES = RelevanceTables(
    question_keywords=_QUESTION_KEYWORDS,
    section_keywords=_SECTION_KEYWORDS,
    off_topic=(
        "pizza", "weather", "movie", "music", "sports", "vacation",
        "birthday", "weekend", "shopping", "cooking", "pets",
    ),
    implicit_answers=_IMPLICIT_ANSWERS,
)
