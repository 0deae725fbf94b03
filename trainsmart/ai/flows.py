"""
AI generation flows

Each flow is a PydanticAI agent whose output type is the flow's response
contract. Model errors and schema violations surface as AIGenerationError so
callers can show a single user-facing message.
"""
import base64
import binascii
import logging
import time
from typing import Any, Dict, List, Optional, Sequence

from pydantic_ai import Agent, BinaryContent
from pydantic_ai.messages import ModelMessage, ModelRequest, ModelResponse, TextPart

from trainsmart.config import AGENT_MODEL, VISION_MODEL
from trainsmart.exceptions import AIGenerationError
from trainsmart.ai.contracts import (
    AdaptiveProgressionInput,
    ChatInput,
    ChatOutput,
    ConversationMessage,
    DebateInput,
    DebateOutput,
    MultipleChoiceQuizInput,
    MultipleChoiceQuizOutput,
    PerformanceAnalystInput,
    PerformanceAnalystOutput,
    PhysiqueAnalysisInput,
    PhysiqueAnalysisOutput,
    RealTimeFeedbackInput,
    RealTimeFeedbackOutput,
    TriviaInput,
    TriviaOutput,
    WorkoutRoutineInput,
    WorkoutRoutineOutput,
)
from trainsmart.observability.metrics import ai_generation_duration_seconds, ai_generations_total

logger = logging.getLogger(__name__)


# Flow name -> (output type, instructions, vision)
FLOWS: Dict[str, tuple] = {
    "workout_routine": (
        WorkoutRoutineOutput,
        "You are an expert sports trainer. Build a weekly training routine for the user's "
        "sport, goals and fitness level. Mark exercises that benefit from video form "
        "feedback and those that need weight logged.",
        False,
    ),
    "adaptive_progression": (
        WorkoutRoutineOutput,
        "You are an expert coach. Generate the next week's routine from the previous cycle. "
        "User feedback has the highest priority. Reduce volume when adherence is below 75% "
        "or the cycle felt hard; apply moderate progressive overload when it felt right. "
        "Keep the requiresFeedback and requiresWeight flags of the original routine.",
        False,
    ),
    "trivia": (
        TriviaOutput,
        "Generate 5-10 myth-or-fact statements about training, technique or nutrition for "
        "the given sport. Do not repeat statements from the history.",
        False,
    ),
    "multiple_choice_quiz": (
        MultipleChoiceQuizOutput,
        "Generate 5-10 multiple choice questions with exactly 4 options about the given "
        "sport at the requested difficulty. Do not repeat questions from the history; "
        "reinforce topics the user got wrong.",
        False,
    ),
    "debate": (
        str,
        "You are a witty fitness debater. Take the opposite stance to the user and answer "
        "their last point with a concise, respectful counter-argument.",
        False,
    ),
    "chat": (
        str,
        "You are TrainSmart AI, a friendly fitness assistant. Answer questions about "
        "fitness, nutrition, workout plans and the app. Keep answers concise and encouraging.",
        False,
    ),
    "performance_analyst": (
        PerformanceAnalystOutput,
        "Analyze the logged training data. Name one key strength, one key weakness and the "
        "approach for the next routine, addressed to the user.",
        False,
    ),
    "physique_analysis": (
        PhysiqueAnalysisOutput,
        "Estimate potential, body fat, symmetry and genetics scores from the photo and give "
        "3-5 sentences of constructive feedback. Frame everything as a visual estimate.",
        True,
    ),
    "real_time_feedback": (
        RealTimeFeedbackOutput,
        "Review the exercise video. List up to 3 specific, visible form errors, each with a "
        "correction and a 2-3 word summary. If the form is correct, return no feedback.",
        True,
    ),
}

_agents: Dict[str, Agent] = {}


def _get_agent(flow: str) -> Agent:
    """Build the flow's agent on first use"""
    agent = _agents.get(flow)
    if agent is None:
        output_type, instructions, vision = FLOWS[flow]
        agent = Agent(
            model=VISION_MODEL if vision else AGENT_MODEL,
            output_type=output_type,
            system_prompt=instructions,
            defer_model_check=True,
        )
        _agents[flow] = agent
    return agent


def _language_line(language: str) -> str:
    return f"Your response MUST be in the user's selected language: {language}."


def _to_message_history(history: Sequence[ConversationMessage]) -> List[ModelMessage]:
    """Convert stored conversation turns into PydanticAI messages"""
    converted: List[ModelMessage] = []
    for msg in history:
        if msg.role == "user":
            converted.append(ModelRequest.user_text_prompt(msg.content))
        else:
            converted.append(ModelResponse(parts=[TextPart(content=msg.content)]))
    return converted


def decode_data_uri(data_uri: str) -> BinaryContent:
    """
    Turn a data URI into binary content for a multimodal prompt

    Raises:
        AIGenerationError: If the URI is not valid base64
    """
    header, _, payload = data_uri.partition(",")
    media_type = header[len("data:"):].split(";")[0] or "application/octet-stream"
    try:
        data = base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError) as e:
        raise AIGenerationError(
            "Media payload is not valid base64",
            flow="decode_media",
            cause=e,
        ) from e
    return BinaryContent(data=data, media_type=media_type)


async def _run_flow(
    flow: str,
    prompt: Any,
    message_history: Optional[List[ModelMessage]] = None
) -> Any:
    """Run a flow's agent and return its validated output"""
    start = time.time()
    try:
        agent = _get_agent(flow)
        result = await agent.run(prompt, message_history=message_history)
    except Exception as e:
        ai_generations_total.labels(flow=flow, status="error").inc()
        raise AIGenerationError(f"{flow} generation failed: {e}", flow=flow, cause=e) from e
    finally:
        ai_generation_duration_seconds.labels(flow=flow).observe(time.time() - start)

    ai_generations_total.labels(flow=flow, status="success").inc()
    logger.info(f"AI flow '{flow}' completed in {time.time() - start:.2f}s")
    return result.output


# ==========================================
# Flows
# ==========================================

async def generate_workout_routine(request: WorkoutRoutineInput) -> WorkoutRoutineOutput:
    prompt = (
        f"{_language_line(request.language)}\n"
        f"User profile:\n{request.model_dump_json(by_alias=True, exclude_none=True)}"
    )
    return await _run_flow("workout_routine", prompt)


async def generate_adaptive_progression(request: AdaptiveProgressionInput) -> WorkoutRoutineOutput:
    prompt = (
        f"{_language_line(request.language)}\n"
        f"User feedback: {request.user_feedback or 'none'}\n"
        f"Adherence: {request.adherence:.0%}\n"
        f"Self-reported fitness: {request.self_reported_fitness}\n"
        f"New training days: {request.training_days or 'unchanged'}\n"
        f"New session duration: {request.training_duration or 'unchanged'}\n"
        f"Original routine:\n{request.original_routine}\n"
        f"Logged training data:\n{request.training_data}"
    )
    return await _run_flow("adaptive_progression", prompt)


async def generate_trivia(request: TriviaInput) -> TriviaOutput:
    prompt = (
        f"{_language_line(request.language)}\n"
        f"Sport: {request.sport}\n"
        f"History:\n{request.history or '[]'}"
    )
    return await _run_flow("trivia", prompt)


async def generate_multiple_choice_quiz(request: MultipleChoiceQuizInput) -> MultipleChoiceQuizOutput:
    prompt = (
        f"{_language_line(request.language)}\n"
        f"Sport: {request.sport}\n"
        f"Difficulty: {request.difficulty}\n"
        f"History:\n{request.history or '[]'}"
    )
    return await _run_flow("multiple_choice_quiz", prompt)


async def debate_turn(request: DebateInput) -> DebateOutput:
    """Next AI turn in a debate; the first turn is the opening statement"""
    prompt = (
        f"{_language_line(request.language)}\n"
        f"Debate topic: \"{request.topic}\"\n"
        f"User's initial stance: \"{request.user_stance}\"\n"
        + ("Give your opening statement." if not request.history else "Respond to the user's last point.")
    )
    text = await _run_flow("debate", prompt, _to_message_history(request.history))
    return DebateOutput(response=text)


async def chat(request: ChatInput) -> ChatOutput:
    prompt = f"{_language_line(request.language)}\n{request.question}"
    text = await _run_flow("chat", prompt, _to_message_history(request.history))
    return ChatOutput(answer=text)


async def analyze_performance(request: PerformanceAnalystInput) -> PerformanceAnalystOutput:
    prompt = (
        f"{_language_line(request.language)}\n"
        f"Logged training data:\n{request.training_data}"
    )
    return await _run_flow("performance_analyst", prompt)


async def analyze_physique(request: PhysiqueAnalysisInput) -> PhysiqueAnalysisOutput:
    """Physique estimate from a photo; the average score is recomputed locally"""
    photo = decode_data_uri(request.photo_data_uri)
    output: PhysiqueAnalysisOutput = await _run_flow(
        "physique_analysis",
        [_language_line(request.language), photo],
    )
    average = (output.potential_score + output.symmetry_score + output.genetics_score) / 3
    return output.model_copy(update={"average_score": round(average, 1)})


async def real_time_feedback(request: RealTimeFeedbackInput) -> RealTimeFeedbackOutput:
    video = decode_data_uri(request.video_data_uri)
    return await _run_flow(
        "real_time_feedback",
        [_language_line(request.language), f"Exercise: {request.exercise_type}", video],
    )
