# Cross-thread memory: loads what the agent knows about a user, and learns new facts after each turn.
# Date: 2026-10-19
# Version: 1.0.0

import json
import re
import secrets
import string
import time
from abc import ABC, abstractmethod
from typing import List, Optional, Sequence

from chat_agent.core.errors import FactStoreError, ModelInvocationError
from chat_agent.models.common import Message, MemoryFact, memory_namespace, utc_now_iso
from chat_agent.services.fact_store import FactStore, DEFAULT_SEARCH_LIMIT
from chat_agent.services.llm_connector import LanguageModel
from chat_agent.utils.logger import console

EXTRACTION_PROMPT = """Extract any personal facts about the user from this conversation.
Return ONLY a JSON array of strings with facts like name, preferences, location, job, interests, etc.
If no personal facts found, return empty array [].
Examples: ["User's name is John", "User likes pizza", "User works as a developer"]

Conversation:
{conversation}

JSON array:"""

MEMORY_SECTION = """IMPORTANT - Things you remember about this user from previous conversations:
{facts}

Use this information naturally in your responses. If the user asks who they are or something you know, tell them!"""

_JSON_ARRAY = re.compile(r"\[.*\]", re.DOTALL)
_ID_ALPHABET = string.ascii_lowercase + string.digits


class FactMatcher(ABC):
    """Decides whether a candidate fact is already known."""

    @abstractmethod
    def is_duplicate(self, candidate: str, known: Sequence[str]) -> bool:
        ...


class PrefixContainmentMatcher(FactMatcher):
    """
    Cheap lexical dedup: a candidate is a duplicate when the first `prefix_length`
    lower-cased characters of either string appear inside the other.
    Rephrasings with different leading words are not caught.
    """

    def __init__(self, prefix_length: int = 20):
        self.prefix_length = prefix_length

    def is_duplicate(self, candidate: str, known: Sequence[str]) -> bool:
        candidate_lower = candidate.lower()
        for fact in known:
            fact_lower = fact.lower()
            if candidate_lower[:self.prefix_length] in fact_lower:
                return True
            if fact_lower[:self.prefix_length] in candidate_lower:
                return True
        return False


def mint_memory_id() -> str:
    suffix = "".join(secrets.choice(_ID_ALPHABET) for _ in range(6))
    return f"memory_{int(time.time() * 1000)}_{suffix}"


def render_transcript(messages: Sequence[Message]) -> str:
    return "\n".join(
        f"{'User' if m.role == 'user' else 'Assistant'}: {m.text()}"
        for m in messages
    )


def parse_fact_list(raw: str) -> List[str]:
    """
    Best-effort parse of the extraction answer. Anything other than a JSON array
    made only of strings counts as no facts.
    """
    match = _JSON_ARRAY.search(raw or "")
    if not match:
        return []
    try:
        facts = json.loads(match.group(0))
    except json.JSONDecodeError:
        console.warning("Fact extraction returned malformed JSON; ignoring it.")
        return []
    if not isinstance(facts, list) or not all(isinstance(f, str) for f in facts):
        return []
    return [f.strip() for f in facts if f.strip()]


def render_memory_section(facts: Sequence[MemoryFact]) -> str:
    """Renders known facts as a prompt section, or an empty string when there are none."""
    if not facts:
        return ""
    return MEMORY_SECTION.format(facts="\n".join(f"- {fact.text}" for fact in facts))


class MemoryManager:
    """
    Reads, extracts, deduplicates and saves per-user facts. Every failure in
    here is logged and swallowed: memory never fails a turn.
    """

    def __init__(self, model: LanguageModel, store: FactStore,
                 matcher: Optional[FactMatcher] = None,
                 search_limit: int = DEFAULT_SEARCH_LIMIT,
                 window: int = 6):
        self.model = model
        self.store = store
        self.matcher = matcher or PrefixContainmentMatcher()
        self.search_limit = search_limit
        self.window = window

    async def recall(self, user_id: Optional[str]) -> List[MemoryFact]:
        """Loads up to `search_limit` facts about the user, newest first."""
        if not user_id:
            return []
        try:
            facts = await self.store.search(memory_namespace(user_id), limit=self.search_limit)
        except Exception:
            console.exception(f"Error loading memories for user '{user_id}'.", kind=FactStoreError.kind)
            return []
        if facts:
            console.info(f"Loaded {len(facts)} memories for user '{user_id}'.")
        return facts

    async def extract_facts(self, messages: Sequence[Message]) -> List[str]:
        """Asks the model which personal facts the trailing window of the conversation reveals."""
        if messages and messages[-1].has_pending_tool_calls:
            return []
        conversation = render_transcript(messages[-self.window:])
        if not conversation.strip():
            return []

        prompt = EXTRACTION_PROMPT.format(conversation=conversation)
        try:
            result = await self.model.complete([Message(role="user", content=prompt)])
        except Exception as e:
            console.exception("Error extracting facts.", kind=getattr(e, "kind", ModelInvocationError.kind))
            return []
        return parse_fact_list(result.content if isinstance(result.content, str) else "")

    async def save_facts(self, user_id: str, candidates: Sequence[str],
                         known: Sequence[MemoryFact]) -> List[MemoryFact]:
        """Persists every candidate that is not a near-duplicate of a known or just-saved fact."""
        namespace = memory_namespace(user_id)
        known_texts = [fact.text for fact in known]
        saved: List[MemoryFact] = []
        for candidate in candidates:
            if self.matcher.is_duplicate(candidate, known_texts):
                continue
            fact = MemoryFact(id=mint_memory_id(), namespace=namespace, text=candidate, created_at=utc_now_iso())
            try:
                await self.store.put(namespace, fact.id, {"fact": fact.text, "created_at": fact.created_at})
            except Exception:
                console.exception(f"Error saving memory '{candidate}'.", kind=FactStoreError.kind)
                continue
            known_texts.append(candidate)
            saved.append(fact)
            console.success(f"New memory saved: \"{candidate}\"")
        return saved

    async def remember(self, user_id: Optional[str], messages: Sequence[Message],
                       known: Sequence[MemoryFact]) -> List[MemoryFact]:
        """Extracts and saves new facts from a finished turn. Anonymous turns save nothing."""
        if not user_id:
            return []
        candidates = await self.extract_facts(messages)
        if not candidates:
            return []
        return await self.save_facts(user_id, candidates, known)

    async def list_memories(self, user_id: str) -> List[MemoryFact]:
        return await self.store.search(memory_namespace(user_id), limit=self.search_limit)

    async def forget(self, user_id: str, memory_id: str) -> bool:
        return await self.store.delete(memory_namespace(user_id), memory_id)
