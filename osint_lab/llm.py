import logging
from dataclasses import dataclass, field
from typing import List, Optional

from langchain_core.messages import HumanMessage, SystemMessage

from osint_lab.config import HISTORY_LIMIT
from osint_lab.models import Conversation, Visitor

logger = logging.getLogger(__name__)

NOT_CONFIGURED_ANSWER = (
    "SYSTEM: LLM API key not configured. "
    "Add OPENAI_API_KEY or ANTHROPIC_API_KEY to your environment variables."
)

SYSTEM_PREAMBLE = "You are an OSINT lab concierge helping researchers and investigators. "
SYSTEM_GUIDANCE = (
    "Provide helpful, accurate information about OSINT tools, techniques, and methodologies. "
    "Be concise and terminal-appropriate."
)


@dataclass
class PromptContext:
    visitor: Optional[Visitor] = None
    history: List[Conversation] = field(default_factory=list)  # newest first

    @property
    def history_count(self):
        return len(self.history)


def build_prompt_context(store, visitor_id, strict=False):
    """Collect what the store knows about a visitor for the system prompt.

    Lookup failures are logged and the context left empty unless ``strict``
    is set, in which case they propagate to the caller.
    """
    context = PromptContext()
    try:
        context.visitor = store.get_visitor(visitor_id)
        context.history = list(store.recent_conversations(visitor_id, limit=HISTORY_LIMIT))
    except Exception as e:
        if strict:
            raise
        logger.error(f"Could not fetch visitor context: visitor_id={visitor_id}, error={e}")
    return context


def render_system_prompt(context):
    prompt = SYSTEM_PREAMBLE
    if context.visitor is not None:
        prompt += f"Visitor from {context.visitor.city}, {context.visitor.country}. "
    prompt += f"Previous exchanges with this visitor: {context.history_count}."
    for convo in context.history:
        prompt += f"\nUser: {convo.prompt}\nAssistant: {convo.answer}"
    prompt += "\n" + SYSTEM_GUIDANCE
    return prompt


class UnconfiguredBridge:
    configured = False

    def ask(self, system_prompt, prompt):
        return NOT_CONFIGURED_ANSWER


class ChatBridge:
    """Sends one system + user message pair to a LangChain chat model."""

    configured = True

    def __init__(self, chat_model):
        self.chat_model = chat_model

    def ask(self, system_prompt, prompt):
        messages = [SystemMessage(content=system_prompt), HumanMessage(content=prompt)]
        response = self.chat_model.invoke(messages)
        return extract_text(response.content)


def extract_text(content):
    # Anthropic models may answer with a list of content blocks
    if isinstance(content, str):
        return content.strip()
    parts = []
    for block in content:
        if isinstance(block, str):
            parts.append(block)
        elif block.get("type") == "text":
            parts.append(block.get("text", ""))
    return "".join(parts).strip()


def build_bridge(settings):
    provider = settings.llm_provider
    if provider == "openai":
        from langchain_openai import ChatOpenAI

        return ChatBridge(ChatOpenAI(
            model=settings.openai_model,
            api_key=settings.openai_api_key,
            max_tokens=settings.max_tokens,
            max_retries=0,
        ))
    if provider == "anthropic":
        from langchain_anthropic import ChatAnthropic

        return ChatBridge(ChatAnthropic(
            model=settings.anthropic_model,
            api_key=settings.anthropic_api_key,
            max_tokens=settings.max_tokens,
            max_retries=0,
        ))
    logger.warning("No LLM API key configured, /query will return a setup notice")
    return UnconfiguredBridge()
