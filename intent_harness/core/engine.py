import logging
import re
import time
from typing import Dict, List, Optional

logger = logging.getLogger(__name__)

_TOKEN = re.compile(r"[a-z0-9']+")


def _tokens(text: str) -> set:
    return set(_TOKEN.findall(text.lower()))


class IntentEngine:
    """
    Keyword intent matcher backing the mock Sessions service.

    Each intent carries a bag of trigger words. A query is scored against
    every intent by the share of its tokens that hit the intent's triggers,
    so "hello" scores 1.0 against the welcome intent and "world" scores 0.
    """

    DEFAULT_INTENTS = [
        {"display_name": "Default Welcome Intent", "desc": "hello hi hey greetings howdy morning evening"},
        {"display_name": "order.status", "desc": "order status where is my package delivery track shipping"},
        {"display_name": "order.cancel", "desc": "cancel order stop refund return"},
        {"display_name": "account.balance", "desc": "balance account money how much funds"},
        {"display_name": "small_talk.weather", "desc": "weather rain sunny forecast temperature"},
        {"display_name": "Default Goodbye Intent", "desc": "bye goodbye see you later thanks"},
    ]

    def __init__(self, intents: Optional[List[Dict[str, str]]] = None):
        self.intent_db = list(intents if intents is not None else self.DEFAULT_INTENTS)

        # Tokenize the trigger bags once; queries only tokenize themselves
        self.intent_tokens = [_tokens(item["desc"]) for item in self.intent_db]
        logger.info("Indexed %d intents", len(self.intent_db))

    def search_top_k(self, query: str, k: int = 3) -> List[Dict]:
        """Rank intents for ``query`` and return the best ``k`` with their scores."""
        query_tokens = _tokens(query)
        if not query_tokens:
            return []

        scored = []
        for item, triggers in zip(self.intent_db, self.intent_tokens):
            score = len(query_tokens & triggers) / len(query_tokens)
            scored.append({
                "display_name": item["display_name"],
                "desc": item["desc"],
                "score": score,
            })

        # sorted() is stable, ties keep intent_db order
        scored.sort(key=lambda c: c["score"], reverse=True)
        return scored[:min(k, len(scored))]

    def predict(self, query: str) -> dict:
        """Best intent for ``query``; an empty display name means no match."""
        start_time = time.time()

        candidates = self.search_top_k(query, k=1)
        if candidates and candidates[0]["score"] > 0:
            intent, confidence = candidates[0]["display_name"], candidates[0]["score"]
        else:
            intent, confidence = "", 0.0

        latency = int((time.time() - start_time) * 1000)
        logger.debug("predict %r -> %r (%.2f)", query, intent, confidence)

        return {
            "intent": intent,
            "confidence": confidence,
            "latency": latency,
        }
