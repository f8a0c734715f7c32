"""PydanticAI agents for the exam notice board.

ValidatorAgent:
    Second-opinion check on the heuristic open-window verdict, with a
    primary model and a single fallback model.

Example:
    >>> from agents import ValidatorAgent, ValidationRequest
    >>> validator = ValidatorAgent(config)
    >>> decision = await validator.validate(request)  # AiDecision | None
"""

from agents.validator import (
    ValidationRequest,
    ValidatorAgent,
    ValidatorFailure,
    build_validation_prompt,
)

__all__ = [
    "ValidatorAgent",
    "ValidationRequest",
    "ValidatorFailure",
    "build_validation_prompt",
]
