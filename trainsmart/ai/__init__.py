"""
AI generation for TrainSmart

Typed contracts (contracts.py) and PydanticAI flows (flows.py) for routine
generation, adaptive progression, games, chat and media analysis.
"""

from trainsmart.ai.flows import (
    analyze_performance,
    analyze_physique,
    chat,
    debate_turn,
    generate_adaptive_progression,
    generate_multiple_choice_quiz,
    generate_trivia,
    generate_workout_routine,
    real_time_feedback,
)

__all__ = [
    "analyze_performance",
    "analyze_physique",
    "chat",
    "debate_turn",
    "generate_adaptive_progression",
    "generate_multiple_choice_quiz",
    "generate_trivia",
    "generate_workout_routine",
    "real_time_feedback",
]
