"""Validation and sanitisation of untrusted user text.

User input is checked before it is appended to a conversation so that it
cannot override the model's instructions. Rules run in a fixed order:

1. length limit
2. prompt-injection phrases (case-insensitive)
3. markup stripping, keeping inner text and the reference tag verbatim

Whitespace and newlines are never touched.
"""

import re
from dataclasses import dataclass, field

from toolloop.formatters.references import REFERENCE_TAG
from toolloop.models.validation import ValidationResult
from toolloop.utils.logging import get_logger

logger = get_logger(__name__)

DEFAULT_MAX_LENGTH = 10_000

DEFAULT_BLOCKED_PATTERNS: tuple[str, ...] = (
    # Instruction override
    r"ignore\s+(?:all\s+)?(?:the\s+)?(?:previous\s+|prior\s+|above\s+)?(?:system\s+)?(?:instructions?|prompts?|rules?)",
    r"forget\s+(?:everything|all)\s+(?:above|before|previous)",
    r"disregard\s+(?:all\s+)?(?:the\s+)?(?:previous\s+|prior\s+)?(?:instructions?|prompts?|rules?)",
    r"override\s+(?:all\s+)?(?:previous\s+)?(?:instructions?|settings?)",
    r"you\s+are\s+now\s+(?:a\s+|an\s+)?(?:different|new|another|unrestricted)",
    # System prompt and policy extraction
    r"(?:show|reveal|display|print|output|tell\s+me)\s+(?:me\s+)?(?:your\s+)?(?:system\s+)?(?:prompt|instructions?)",
    r"(?:show|reveal|display|tell\s+me)\s+(?:me\s+)?(?:your\s+)?(?:hidden|secret|internal)\s+(?:policies|policy|rules|instructions?)",
    r"what\s+(?:are|is)\s+your\s+(?:system\s+)?(?:prompt|instructions?)",
    # Role manipulation
    r"(?:act|roleplay)\s+as\s+(?:if\s+you\s+are\s+)?(?:a\s+|an\s+)?(?:different|unrestricted|uncensored)",
    r"pretend\s+(?:to\s+be|you\s+are)\s+(?:a\s+|an\s+)?(?:different|unrestricted|uncensored)",
    # Jailbreaks
    r"(?:simulate|emulate)\s+(?:a\s+|an\s+)?(?:different|unrestricted|uncensored)",
    r"bypass\s+(?:all\s+)?(?:safety|security|restrictions?)",
    r"enable\s+(?:developer|admin|debug)\s+mode",
)

SUSPICIOUS_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(r"\.\s*(?:now|then|next)\s+(?:ignore|forget|disregard)", re.IGNORECASE),
    re.compile(r"[\u200b-\u200d\ufeff]"),
    re.compile(r"(.{1,10})\1{10,}", re.DOTALL),
)

ZERO_WIDTH_PATTERN = re.compile(r"[\u200b-\u200d\ufeff]")

# A tag needs a name immediately after "<" or "</"; quoted attribute values may contain ">".
# Each character after the name has exactly one way to match and nothing spans a "<",
# so an unclosed tag fails in linear time.
TAG_PATTERN = re.compile(r"""</?([A-Za-z][A-Za-z0-9:_-]*)(?:\s(?:[^<>"']|"[^"<]*"|'[^'<]*')*)?/?>""")


@dataclass
class InputGuardConfig:
    """Policy for the input guard. The phrase list is a threat-model decision."""

    max_length: int = DEFAULT_MAX_LENGTH
    blocked_patterns: list[str] = field(default_factory=lambda: list(DEFAULT_BLOCKED_PATTERNS))
    reference_tag: str = REFERENCE_TAG
    log_violations: bool = True


class InputGuard:
    """Turns untrusted free text into content safe to send to the model."""

    def __init__(self, config: InputGuardConfig | None = None):
        self.config = config or InputGuardConfig()
        self._blocked = [re.compile(p, re.IGNORECASE) for p in self.config.blocked_patterns]

    def validate(self, text: str, max_length: int | None = None) -> ValidationResult:
        """Validate ``text`` and return its sanitised form or a rejection reason."""
        limit = max_length if max_length is not None else self.config.max_length
        if len(text) > limit:
            return ValidationResult.rejected(f"Content too long (max {limit} characters)")

        for pattern in self._blocked:
            if pattern.search(text):
                self._log_violation("Blocked pattern", text, pattern)
                return ValidationResult.rejected("Content matches blocked pattern")

        for pattern in SUSPICIOUS_PATTERNS:
            if pattern.search(text):
                self._log_violation("Suspicious pattern", text, pattern, warning=True)

        return ValidationResult.accepted(self.sanitize(text))

    def sanitize(self, text: str) -> str:
        """Strip markup except the reference tag, and drop zero-width characters."""
        reference_tag = self.config.reference_tag

        def replace_tag(match: re.Match[str]) -> str:
            if match.group(1) == reference_tag:
                return match.group(0)
            return ""

        return ZERO_WIDTH_PATTERN.sub("", TAG_PATTERN.sub(replace_tag, text))

    def _log_violation(self, kind: str, content: str, pattern: re.Pattern[str], warning: bool = False) -> None:
        if not self.config.log_violations:
            return

        # Never log the full content
        preview = content[:30] + "..." if len(content) > 30 else content
        if warning:
            logger.warning(f"{kind} in user input: {pattern.pattern!r} (preview: {preview!r})")
        else:
            logger.error(f"{kind} in user input: {pattern.pattern!r} (preview: {preview!r})")
