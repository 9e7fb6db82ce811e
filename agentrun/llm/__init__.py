"""
LLM providers module.

This module contains the adapter contract and implementations:
- Model: Abstract base class
- SimulateStreamingModel / DefaultSettingsModel: composable wrappers
- OpenAIModel: OpenAI Chat Completions (and compatible) models
"""

from .base import CallOptions, Model, response_to_events
from .middleware import DefaultSettingsModel, SimulateStreamingModel
from .openai import OpenAIModel

__all__ = [
    "CallOptions",
    "Model",
    "response_to_events",
    "SimulateStreamingModel",
    "DefaultSettingsModel",
    "OpenAIModel",
]
