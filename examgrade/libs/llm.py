"""Agent factory for the AI grading service."""

import logging
import os
from typing import Optional, Dict, Any

from pydantic_ai import Agent
from pydantic_ai.models.openai import OpenAIResponsesModel, OpenAIResponsesModelSettings

from examgrade.libs.config_loader import ConfigType, get_config

LOG = logging.getLogger(__name__)

DEFAULT_GRADING_MODEL = "gpt-4o-mini"

# Per-request httpx logs drown out grading progress
logging.getLogger("httpx").setLevel(logging.WARNING)


def create_agent(configs: ConfigType,
                 model: Optional[str] = None,
                 settings_dict: Optional[Dict[str, Any]] = None,
                 system_prompt: Optional[str] = None) -> Agent:
    """
    Create the pydantic-ai Agent that scores open-ended answers.

    The agent never retries on its own: a slow or failed completion is
    handled by the grader's timeout and keyword fallback instead.

    Args:
        configs: Configuration dictionary with an ``openai`` section
        model: Grading model (overrides openai.model)
        settings_dict: Model settings merged over openai.pydantic_ai_settings
        system_prompt: Grader instructions sent with every request

    Returns:
        Configured Agent

    Raises:
        KeyError: If openai.api_key is not configured
    """
    api_key = get_config("openai.api_key", configs)
    organization = get_config("openai.organization", configs, default=None)
    model_name = model or get_config("openai.model", configs, default=DEFAULT_GRADING_MODEL)
    settings = (get_config("openai.pydantic_ai_settings", configs, default={}) or {}) | (settings_dict or {})

    os.environ['OPENAI_API_KEY'] = api_key
    if organization:
        os.environ['OPENAI_ORG_ID'] = organization

    LOG.debug(f"Creating grading agent for model {model_name} with settings {sorted(settings)}")
    agent_kwargs: Dict[str, Any] = {
        'model': OpenAIResponsesModel(model_name),
        'model_settings': OpenAIResponsesModelSettings(**settings) if settings else None,
        'retries': 0,
    }
    if system_prompt:
        agent_kwargs['system_prompt'] = system_prompt
    return Agent(**agent_kwargs)
