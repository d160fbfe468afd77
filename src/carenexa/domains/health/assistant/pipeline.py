"""Dr. Echo assistant pipeline: one conversation, remote model with local fallback.

A turn appends the user's message, streams a reply from the remote model
and appends it. When the remote model has no credential, or fails, the turn
is answered by the offline responder instead and carries an in-band notice.
After the first transport failure the pipeline stays degraded: later turns
go straight to the offline responder until a new pipeline is built.

Replies from the remote model are fingerprinted into a consultation receipt
in the health store. Fallback replies are not.

``send_message`` calls must not overlap. The caller serializes them, e.g. by
disabling input while ``is_typing`` is true; the pipeline does not guard
against concurrent turns.
"""

from __future__ import annotations

import logging
from enum import StrEnum
from typing import TYPE_CHECKING, Any, AsyncIterator, Callable

from carenexa.core.audit.digest import Digester, sha256_hex, summarize_prompt
from carenexa.core.llm.client import StreamingClient
from carenexa.core.llm.provider import (
    ChatMessage,
    LLMProvider,
    ProviderError,
    create_provider,
)
from carenexa.core.llm.system_prompt import (
    CONSULTATION_DISCLAIMER,
    WELCOME_MESSAGE,
    build_system_prompt,
)
from carenexa.core.runtime.capabilities import Runtime, SystemRuntime
from carenexa.core.storage.kv import KeyValueStorage, StorageUnavailableError
from carenexa.domains.health.assistant.fallback import (
    MISSING_CREDENTIAL_NOTICE,
    SERVICE_FAILURE_NOTICE,
    fallback_response,
    stream_words,
)
from carenexa.domains.health.assistant.transcript import (
    TRANSCRIPT_KEY,
    Message,
    MessageRole,
    restore_transcript,
    seed_messages,
    serialize_transcript,
)

if TYPE_CHECKING:
    from carenexa.core.config.settings import Settings
    from carenexa.domains.health.store.health_store import HealthStore

logger = logging.getLogger(__name__)

MAX_PROMPT_CHARS = 4000

TokenCallback = Callable[[str], None]


class PipelineState(StrEnum):
    IDLE = "idle"
    AWAITING_RESPONSE = "awaiting_response"
    DEGRADED = "degraded"


class AssistantPipeline:
    """Conversation state machine behind the Dr. Echo chat.

    Args:
        store: Receives a consultation receipt for each remote reply.
        storage: Where the transcript is persisted; None keeps it in memory.
        provider: Remote model. None means no valid credential is
            configured and every turn uses the fallback.
        runtime: Clock, sleep and id capabilities.
        agent_type: Persona used for the system prompt and receipts.
        max_tokens: Reply length cap passed to the provider.
        temperature: Sampling temperature passed to the provider.
        fallback_delay: Seconds between words of a fallback reply.
        stream: Stream remote replies token by token. When false the reply
            is requested whole and ``on_token`` fires once with it.
        digester: Hash function for receipts.
    """

    def __init__(
        self,
        store: HealthStore | None,
        storage: KeyValueStorage | None = None,
        provider: LLMProvider | None = None,
        runtime: Runtime | None = None,
        *,
        agent_type: str = "general",
        max_tokens: int = 1024,
        temperature: float = 0.7,
        fallback_delay: float = 0.02,
        stream: bool = True,
        digester: Digester = sha256_hex,
    ) -> None:
        self._store = store
        self._storage = storage
        self._client = (
            StreamingClient(provider, max_tokens=max_tokens, temperature=temperature)
            if provider is not None
            else None
        )
        self._runtime = runtime or SystemRuntime()
        self.agent_type = agent_type
        self._fallback_delay = fallback_delay
        self._stream = stream
        self._digester = digester
        self._system_prompt = build_system_prompt(agent_type)

        self._awaiting = False
        self._degraded = False
        self._current_response = ""
        self._messages = self._restore()

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def messages(self) -> list[Message]:
        return list(self._messages)

    @property
    def is_typing(self) -> bool:
        return self._awaiting

    @property
    def degraded(self) -> bool:
        return self._degraded

    @property
    def state(self) -> PipelineState:
        """AWAITING_RESPONSE during a turn; otherwise DEGRADED or IDLE."""
        if self._awaiting:
            return PipelineState.AWAITING_RESPONSE
        if self._degraded:
            return PipelineState.DEGRADED
        return PipelineState.IDLE

    @property
    def current_response(self) -> str:
        """Text of the reply being streamed (or the last one streamed)."""
        return self._current_response

    @property
    def has_remote(self) -> bool:
        return self._client is not None

    # ------------------------------------------------------------------
    # Transcript persistence
    # ------------------------------------------------------------------

    def _seed(self) -> list[Message]:
        return seed_messages(self._system_prompt, WELCOME_MESSAGE, self._runtime.now())

    def _restore(self) -> list[Message]:
        if self._storage is None:
            return self._seed()
        try:
            raw = self._storage.read(TRANSCRIPT_KEY)
        except StorageUnavailableError as exc:
            logger.warning("Chat transcript could not be read: %s", exc)
            return self._seed()
        if raw is None:
            return self._seed()
        restored = restore_transcript(raw, self._system_prompt, self._runtime.now())
        if restored is None:
            return self._seed()
        logger.info("Restored chat transcript with %d messages", len(restored))
        return restored

    def _save(self) -> None:
        # The two seed messages alone are never worth persisting.
        if self._storage is None or len(self._messages) <= 2:
            return
        try:
            self._storage.write(TRANSCRIPT_KEY, serialize_transcript(self._messages))
        except StorageUnavailableError as exc:
            logger.warning("Chat transcript not persisted: %s", exc)

    def _append(self, role: MessageRole, content: str) -> Message:
        message = Message(
            id=self._runtime.new_id(),
            role=role,
            content=content,
            timestamp=self._runtime.now(),
        )
        self._messages.append(message)
        self._save()
        return message

    def clear_messages(self) -> None:
        """Reset to the seed messages and forget the persisted transcript."""
        self._messages = self._seed()
        self._current_response = ""
        if self._storage is None:
            return
        try:
            self._storage.remove(TRANSCRIPT_KEY)
        except StorageUnavailableError as exc:
            logger.warning("Persisted chat transcript not removed: %s", exc)

    def export_transcript(self) -> list[dict[str, Any]]:
        """The visible conversation (no system messages), for download."""
        return [m.to_dict() for m in self._messages if m.role != MessageRole.SYSTEM]

    # ------------------------------------------------------------------
    # Turns
    # ------------------------------------------------------------------

    async def send_message(
        self,
        text: str,
        on_token: TokenCallback | None = None,
    ) -> Message | None:
        """Run one conversational turn.

        ``on_token`` receives the cumulative reply text as it arrives.
        Returns the appended assistant message, or None for blank input.
        Never raises for remote failures.
        """
        if not text or not text.strip():
            return None

        self._append(MessageRole.USER, text)
        self._awaiting = True
        self._current_response = ""
        try:
            reply, from_remote = await self._respond(on_token)
            assistant = self._append(MessageRole.ASSISTANT, reply)
        finally:
            self._awaiting = False

        if from_remote:
            self._record_receipt(text, reply)
        return assistant

    async def _respond(self, on_token: TokenCallback | None) -> tuple[str, bool]:
        if self._client is None:
            reply = await self._run_fallback(on_token)
            return f"{reply}\n\n{MISSING_CREDENTIAL_NOTICE}", False

        if not self._degraded:
            try:
                history = self._history()
                replies = (
                    self._client.stream_reply(history)
                    if self._stream
                    else self._whole_reply(history)
                )
                reply = await self._consume(replies, on_token)
                return reply, True
            except ProviderError as exc:
                logger.warning("Remote assistant failed, switching to fallback: %s", exc)
            except Exception:
                logger.exception("Unexpected error from remote assistant, switching to fallback")
            self._degraded = True

        reply = await self._run_fallback(on_token)
        return f"{reply}\n\n{SERVICE_FAILURE_NOTICE}", False

    async def _whole_reply(self, history: list[ChatMessage]) -> AsyncIterator[str]:
        response = await self._client.complete(history)
        yield response.content

    async def _run_fallback(self, on_token: TokenCallback | None) -> str:
        reply = fallback_response(self._messages)
        return await self._consume(
            stream_words(reply, self._runtime.sleep, self._fallback_delay), on_token
        )

    async def _consume(
        self,
        replies: AsyncIterator[str],
        on_token: TokenCallback | None,
    ) -> str:
        text = ""
        async for text in replies:
            self._current_response = text
            if on_token is None:
                continue
            try:
                on_token(text)
            except Exception:
                logger.exception("Token callback raised; continuing the turn")
        return text

    def _history(self) -> list[ChatMessage]:
        history = [m.as_chat_message() for m in self._messages]
        last = history[-1]
        if last.role == MessageRole.USER and len(last.content) > MAX_PROMPT_CHARS:
            logger.info(
                "Truncating %d-character prompt to %d characters",
                len(last.content),
                MAX_PROMPT_CHARS,
            )
            history[-1] = ChatMessage(role=last.role, content=last.content[:MAX_PROMPT_CHARS])
        return history

    def _record_receipt(self, prompt: str, reply: str) -> None:
        if self._store is None or self._client is None:
            return
        try:
            self._store.add_consultation_receipt(
                agent_type=self.agent_type,
                prompt_summary=summarize_prompt(prompt),
                response_hash=self._digester(reply),
                model_version=self._client.model,
                disclaimer=CONSULTATION_DISCLAIMER,
            )
        except Exception:
            logger.exception("Could not save consultation receipt")


def provider_from_settings(settings: Settings) -> LLMProvider | None:
    """Create the configured remote provider, or None without a credential."""
    if settings.llm_provider == "gemini":
        api_key, model, base_url = (
            settings.gemini_api_key,
            settings.gemini_model,
            settings.gemini_base_url,
        )
    elif settings.llm_provider == "anthropic":
        api_key, model, base_url = settings.anthropic_api_key, settings.anthropic_model, None
    elif settings.llm_provider == "openai":
        api_key, model, base_url = settings.openai_api_key, settings.openai_model, None
    else:
        api_key, model, base_url = "", "", None

    try:
        return create_provider(
            provider_name=settings.llm_provider,
            api_key=api_key,
            model=model,
            base_url=base_url,
        )
    except ProviderError as exc:
        logger.warning("%s; Dr. Echo will answer in offline mode", exc)
        return None
