"""Build summarization requests that fit inside a measured budget."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Optional, Tuple

from charsheet.engine.checkpoint import HistorySnapshot, format_entry
from charsheet.engine.prompt_loader import placeholders, render_template
from charsheet.services.measurement import TextMeasurer

logger = logging.getLogger(__name__)

DELIMITER = "\n\n"
PADDING = 64
NO_PREVIOUS_SUMMARY = "(No previous character sheet)"


@dataclass(frozen=True)
class AssembledPrompt:
    """Payload of one bounded request.

    ``last_included_index`` is the history index of the newest message that
    fit, or None when nothing fit and there is nothing to summarize. ``body``
    is the payload without the system prompt, for backends that send the
    system prompt as its own message.
    """

    payload: str
    last_included_index: Optional[int]
    system_prompt: str
    body: str = ""
    included: int = 0


def _join(*parts: Optional[str]) -> str:
    return DELIMITER.join(part for part in parts if part).strip()


class BoundedPromptAssembler:
    """Greedy windowing of the messages after the current checkpoint.

    A template that carries ``{{previous_summary}}`` or ``{{new_content}}``
    receives that segment in place; segments without a slot are appended
    after the rendered template. The measured text is the returned payload.
    """

    def __init__(self, measurer: TextMeasurer, padding: int = PADDING) -> None:
        self.measurer = measurer
        self.padding = padding

    @staticmethod
    def _compose(
        template: str, previous: Optional[str], window: List[str]
    ) -> Tuple[str, str, str]:
        slots = placeholders(template)
        new_content = DELIMITER.join(window)
        system_prompt = render_template(
            template,
            previous_summary=previous or NO_PREVIOUS_SUMMARY,
            new_content=new_content,
        )
        body = _join(
            None if "previous_summary" in slots else previous,
            None if "new_content" in slots else new_content,
        )
        return system_prompt, body, _join(system_prompt, body)

    async def assemble(
        self,
        snapshot: HistorySnapshot,
        template: str,
        budget: int,
        max_messages: int = 0,
    ) -> AssembledPrompt:
        checkpoint = snapshot.checkpoint()
        previous = checkpoint.content if checkpoint else None
        start = checkpoint.index + 1 if checkpoint else 0
        logger.debug(
            "Assembling window: checkpoint=%s, history=%d, budget=%d",
            checkpoint.index if checkpoint else None,
            len(snapshot),
            budget,
        )

        candidates = snapshot.excluding_last()
        buffer: List[str] = []
        last_included: Optional[int] = None

        for index in range(start, len(candidates)):
            message = candidates[index]
            if not message.is_summarizable:
                continue

            buffer.append(format_entry(message))
            _, _, trial = self._compose(template, previous, buffer)
            size = await self.measurer.measure(trial, self.padding)

            if size > budget:
                buffer.pop()
                logger.debug(
                    "Budget exceeded (%d > %d), stopping before index %d",
                    size,
                    budget,
                    index,
                )
                break

            last_included = index

            if max_messages > 0 and len(buffer) >= max_messages:
                logger.debug("Max messages per request reached (%d)", len(buffer))
                break

        system_prompt, body, payload = self._compose(template, previous, buffer)

        logger.debug(
            "Window built: %d messages, %d chars, last included index %s",
            len(buffer),
            len(payload),
            last_included,
        )
        return AssembledPrompt(
            payload=payload,
            last_included_index=last_included,
            system_prompt=system_prompt,
            body=body,
            included=len(buffer),
        )

    async def accumulate_until_budget(
        self, snapshot: HistorySnapshot, budget: int
    ) -> Optional[str]:
        """Collect new messages until their size meets ``budget``.

        Used by backends that summarize a whole block instead of extending the
        previous sheet. Returns None while the accumulated text is still
        smaller than the budget.
        """
        checkpoint = snapshot.checkpoint()
        previous = checkpoint.content if checkpoint else None
        start = checkpoint.index + 1 if checkpoint else 0

        candidates = snapshot.excluding_last()
        buffer: List[str] = []
        for index in range(start, len(candidates)):
            message = candidates[index]
            if not message.is_summarizable:
                continue
            buffer.append(format_entry(message))
            if await self.measurer.measure(DELIMITER.join(buffer)) >= budget:
                break

        if not buffer:
            return None

        text = _join(previous, DELIMITER.join(buffer))
        size = await self.measurer.measure(text)
        if size < budget:
            logger.debug("Accumulated %d of %d units, waiting for more", size, budget)
            return None
        return text
