import logging

from ..common.config import ChatSettings
from .agent_process import AgentProcessCaller
from .caller import ModelCaller
from .litellm_caller import LiteLLMCaller

logger = logging.getLogger(__name__)


def create_model_caller(settings: ChatSettings) -> ModelCaller:
    """Pick the model-calling strategy from configuration, once, at construction time."""
    if settings.strategy == "agent":
        logger.info(f"Using agent process strategy (model={settings.model})")
        return AgentProcessCaller(
            settings.agent_command,
            model=settings.model,
            max_turns=settings.max_turns,
            cwd=settings.index.code_dir or settings.index.docs_dir,
        )
    logger.info(f"Using direct messages strategy (model={settings.model})")
    return LiteLLMCaller(model=settings.model, api_key=settings.api_key)
