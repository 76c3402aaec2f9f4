"""
RSVP Classifier - Keyword-Based Reply Classification
=====================================================

ARCHITECTURAL DECISION:
- Plain substring matching against two fixed keyword lists
- Affirmative keywords are checked first; the first list that matches wins
- No I/O, no state - safe to share between threads

KNOWN AMBIGUITY:
A reply containing keywords from both lists ("yes... oh wait, no") is
classified by whichever list is checked first, i.e. ACCEPT. This includes
"not coming", which contains "coming". Matching is first-match, not
most-specific-match.
"""

import logging
from enum import Enum

logger = logging.getLogger(__name__)


class RSVPIntent(Enum):
    """Classification result for an inbound reply."""
    ACCEPT = "accept"
    DECLINE = "decline"
    UNRECOGNIZED = "unrecognized"


class RSVPClassifier:
    """
    Maps free-text replies to an RSVP intent.

    USAGE:
        classifier = RSVPClassifier()
        classifier.classify("Yes, can't wait!")  # RSVPIntent.ACCEPT
    """

    AFFIRMATIVE_KEYWORDS = (
        "yes", "yep", "yeah", "accept", "accepting", "attending",
        "coming", "will come", "will be there", "✅",
    )

    NEGATIVE_KEYWORDS = (
        "no", "nope", "decline", "declining", "not coming",
        "can't come", "won't come", "can't make it", "❌",
    )

    def classify(self, text: str) -> RSVPIntent:
        normalized = self._normalize(text)
        if not normalized:
            return RSVPIntent.UNRECOGNIZED

        if self._contains_any(normalized, self.AFFIRMATIVE_KEYWORDS):
            logger.debug("Classified reply as ACCEPT")
            return RSVPIntent.ACCEPT

        if self._contains_any(normalized, self.NEGATIVE_KEYWORDS):
            logger.debug("Classified reply as DECLINE")
            return RSVPIntent.DECLINE

        logger.debug("Reply not recognized as an RSVP")
        return RSVPIntent.UNRECOGNIZED

    @staticmethod
    def _normalize(text: str) -> str:
        # Phones often send the typographic apostrophe ("can’t")
        return str(text or "").strip().lower().replace("’", "'")

    @staticmethod
    def _contains_any(text: str, keywords) -> bool:
        return any(kw in text for kw in keywords)
