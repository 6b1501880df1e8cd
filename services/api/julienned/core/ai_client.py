import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, List, Optional

from google import genai
from google.genai import types

from ..settings import settings

logger = logging.getLogger("julienned.ai")


class AIUnavailableError(RuntimeError):
    """Raised when a model call is attempted with AI disabled (mock mode or no key)."""


@dataclass
class ToolCall:
    id: str
    name: str
    arguments: dict = field(default_factory=dict)


@dataclass
class ToolResult:
    call_id: str
    name: str
    result: dict


@dataclass
class ModelTurn:
    """
    One model response.

    ``stop`` is "tool_use" when the model wants tools run, "end_turn" on
    natural completion, or "max_tokens" when output was cut off.
    ``raw`` keeps the provider's own content object so it can be replayed
    verbatim in the next request.
    """
    text: Optional[str] = None
    tool_calls: List[ToolCall] = field(default_factory=list)
    stop: str = "end_turn"
    raw: Any = None


@dataclass
class Message:
    """Provider-neutral transcript entry."""
    role: str  # "user" or "model"
    text: Optional[str] = None
    tool_calls: List[ToolCall] = field(default_factory=list)
    tool_results: List[ToolResult] = field(default_factory=list)
    raw: Any = None

    @classmethod
    def from_turn(cls, turn: ModelTurn) -> "Message":
        return cls(role="model", text=turn.text, tool_calls=list(turn.tool_calls), raw=turn.raw)


def _to_contents(messages: List[Message]) -> List[types.Content]:
    contents = []
    for m in messages:
        if m.raw is not None:
            contents.append(m.raw)
            continue
        parts = []
        if m.text:
            parts.append(types.Part.from_text(text=m.text))
        for call in m.tool_calls:
            parts.append(types.Part(function_call=types.FunctionCall(
                id=call.id, name=call.name, args=call.arguments,
            )))
        for res in m.tool_results:
            parts.append(types.Part.from_function_response(name=res.name, response=res.result))
        contents.append(types.Content(role=m.role, parts=parts))
    return contents


def _to_tools(tool_specs: List[dict]) -> List[types.Tool]:
    return [types.Tool(function_declarations=[
        types.FunctionDeclaration(
            name=spec["name"],
            description=spec["description"],
            parameters_json_schema=spec["input_schema"],
        )
        for spec in tool_specs
    ])]


def _to_turn(response: types.GenerateContentResponse) -> ModelTurn:
    candidate = response.candidates[0] if response.candidates else None
    content = candidate.content if candidate else None

    texts = []
    calls = []
    for part in (content.parts or []) if content else []:
        if part.function_call:
            fc = part.function_call
            calls.append(ToolCall(
                id=fc.id or f"call_{uuid.uuid4().hex[:12]}",
                name=fc.name,
                arguments=dict(fc.args or {}),
            ))
        elif part.text and not part.thought:
            texts.append(part.text)

    if calls:
        stop = "tool_use"
    elif candidate and candidate.finish_reason == types.FinishReason.MAX_TOKENS:
        stop = "max_tokens"
    else:
        stop = "end_turn"

    return ModelTurn(text="".join(texts) or None, tool_calls=calls, stop=stop, raw=content)


class AIClient:
    _instance = None

    def __init__(self):
        self.api_key = settings.gemini_api_key
        self.mode = settings.ai_mode  # "mock" or "gemini"
        self._client: Optional[genai.Client] = None
        self.last_error: Optional[str] = None
        self.last_error_at: Optional[datetime] = None

        if self.mode == "gemini" and self.api_key:
            self._client = genai.Client(api_key=self.api_key)

    @classmethod
    def get_instance(cls):
        if cls._instance is None:
            cls._instance = cls()
        return cls._instance

    def is_available(self) -> bool:
        return self.mode == "gemini" and self._client is not None

    async def run_tool_turn(
        self,
        system_prompt: str,
        messages: List[Message],
        tools: List[dict],
        model: Optional[str] = None,
        max_output_tokens: int = 4096,
    ) -> ModelTurn:
        """
        Send the transcript plus the tool registry and return the model's
        next turn. Tools are never executed by the SDK; the caller runs them.

        Raises AIUnavailableError in mock mode, and lets provider errors
        propagate so the caller can report them.
        """
        if not self.is_available():
            raise AIUnavailableError(f"AI is not available (mode={self.mode})")

        model_id = model or settings.gemini_text_model
        config = types.GenerateContentConfig(
            system_instruction=system_prompt,
            tools=_to_tools(tools),
            automatic_function_calling=types.AutomaticFunctionCallingConfig(disable=True),
            max_output_tokens=max_output_tokens,
        )

        try:
            response = await self._client.aio.models.generate_content(
                model=model_id,
                contents=_to_contents(messages),
                config=config,
            )
        except Exception as e:
            self.last_error = f"{e.__class__.__name__}: {str(e)}"
            self.last_error_at = datetime.now(timezone.utc)
            logger.error(f"Gemini tool turn failed: {e}")
            raise

        turn = _to_turn(response)
        logger.info(
            "Model turn: stop=%s tools=%s",
            turn.stop,
            [c.name for c in turn.tool_calls],
        )
        return turn


# Singleton instance access
ai_client = AIClient.get_instance()
