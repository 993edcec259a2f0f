"""Clients and settings built once at startup and handed to every run."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from prexplain_core.gh.pull_request import get_github
from prexplain_core.providers.anthropic import AnthropicExplainer
from prexplain_core.providers.base import BaseExplainer
from prexplain_core.providers.openai import OpenAIExplainer


@dataclass
class Runtime:
    config: dict
    github: Any
    explainer: BaseExplainer


def get_explainer(config: dict) -> BaseExplainer:
    options = {
        "model": config.get("model_name"),
        "temperature": config.get("temperature"),
        "max_tokens": config.get("max_tokens"),
        "max_chars": config.get("max_explanation_chars"),
        "timeout": config.get("generation_timeout"),
    }
    model = config["model"]
    if model == "openai":
        return OpenAIExplainer(api_key=config["openai_api_key"], **options)
    if model == "anthropic":
        return AnthropicExplainer(api_key=config["anthropic_api_key"], **options)
    raise ValueError(f"Unknown model provider: {model!r}. Choose 'openai' or 'anthropic'.")


def build_runtime(config: dict) -> Runtime:
    return Runtime(config=config, github=get_github(config), explainer=get_explainer(config))
