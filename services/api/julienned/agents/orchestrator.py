"""
Bounded tool-calling loop that lets the model drive recipe extraction.

The model sees the system prompt, the transcript so far and the full tool
registry on every turn. Tool calls in a turn are executed one at a time, in
the order requested, and their results are appended before the next turn.
The loop stops when the model finishes on its own or the turn cap is hit.
"""
import logging
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional

from ..core.ai_client import AIClient, Message, ModelTurn, ToolResult, ai_client
from ..core.urls import hash_url
from ..models import SavedRecipe
from ..settings import settings
from .dispatcher import ToolContext, ToolDispatcher
from .tools import EXTRACTION_TOOLS, ORCHESTRATOR_SYSTEM_PROMPT

logger = logging.getLogger("julienned.extraction")


class LoopState(str, Enum):
    AWAITING_MODEL = "awaiting_model"
    EXECUTING_TOOLS = "executing_tools"
    DONE = "done"
    FAILED = "failed"


@dataclass
class LoopOutcome:
    state: LoopState
    turns: int
    recipe: Optional[SavedRecipe] = None
    final_text: Optional[str] = None


def seed_message(url: str) -> str:
    return (
        f"Extract the recipe from this URL: {url}\n\n"
        "Remember to:\n"
        "1. Check the cache first (already done - not found)\n"
        "2. Fetch the page\n"
        "3. Extract using the best available method\n"
        "4. Parse all ingredients\n"
        "5. Download the image if available\n"
        "6. Save the recipe\n\n"
        "Please proceed with the extraction."
    )


class ExtractionOrchestrator:
    def __init__(
        self,
        dispatcher: ToolDispatcher,
        ai: Optional[AIClient] = None,
        max_turns: Optional[int] = None,
    ):
        self.dispatcher = dispatcher
        self.ai = ai or ai_client
        self.max_turns = max_turns or settings.max_orchestration_turns

    async def _execute(self, turn: ModelTurn, ctx: ToolContext) -> List[ToolResult]:
        results = []
        for call in turn.tool_calls:
            result = await self.dispatcher.dispatch(call.name, call.arguments, ctx)
            results.append(ToolResult(call_id=call.id, name=call.name, result=result))
        return results

    async def run(self, ctx: ToolContext) -> LoopOutcome:
        """
        Drive the model until it finishes or max_turns model calls were made.

        Model/provider exceptions propagate to the caller.
        """
        messages: List[Message] = [Message(role="user", text=seed_message(ctx.url))]
        state = LoopState.AWAITING_MODEL
        turns = 0
        turn: Optional[ModelTurn] = None

        while state in (LoopState.AWAITING_MODEL, LoopState.EXECUTING_TOOLS):
            if state == LoopState.AWAITING_MODEL:
                if turns >= self.max_turns:
                    logger.warning("Orchestration hit the %d turn cap for %s", self.max_turns, ctx.url)
                    state = LoopState.FAILED
                    break
                turn = await self.ai.run_tool_turn(
                    ORCHESTRATOR_SYSTEM_PROMPT, messages, EXTRACTION_TOOLS
                )
                turns += 1
                logger.info(
                    "Turn %d: stop=%s calls=%s", turns, turn.stop, [c.name for c in turn.tool_calls]
                )
                if turn.stop == "tool_use" and turn.tool_calls:
                    state = LoopState.EXECUTING_TOOLS
                else:
                    state = LoopState.DONE
            else:
                results = await self._execute(turn, ctx)
                messages.append(Message.from_turn(turn))
                messages.append(Message(role="user", tool_results=results))
                state = LoopState.AWAITING_MODEL

        final_text = turn.text if turn else None
        if state == LoopState.FAILED:
            return LoopOutcome(state=state, turns=turns, final_text=final_text)

        # The model saying it is done is not enough: a recipe must have been
        # extracted and saved under this request's cache key.
        saved = None
        if ctx.extracted_recipe is not None:
            saved = self.dispatcher.store.get_by_url_hash(ctx.user_id, hash_url(ctx.url))
        if saved is None:
            logger.info("Model finished after %d turns without saving a recipe", turns)
            return LoopOutcome(state=LoopState.FAILED, turns=turns, final_text=final_text)

        logger.info("Orchestration done after %d turns, recipe %s", turns, saved.id)
        return LoopOutcome(state=LoopState.DONE, turns=turns, recipe=saved, final_text=final_text)
