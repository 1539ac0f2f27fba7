"""
TruthAnalystAgent — Scores a player's statement for truthfulness and paradox.

Returns a validated TruthAnalysis. When the model is offline, or its
output cannot be parsed, a neutral analysis (all scores 0.5) is returned
with an explanation in ``analysis``.
"""

import json
import logging
from typing import Any, Dict, Optional
from google import genai
from pydantic import ValidationError

from models.outcomes import TruthAnalysis

logger = logging.getLogger("TruthAnalyst")

ANALYST_IDENTITY = """You are the Lie Analysis System for the game "Paradox". Your task is to analyze player input for:
1. Truthfulness (truthScore, 0-1 scale, where 0 is complete truth and 1 is complete lie)
2. Paradox elements (isParadox: is this statement self-contradictory or self-referential?)
3. Complexity (0-1 scale, how sophisticated is the lie/truth construction)
4. Persuasiveness (0-1 scale, how convincing would this be to others)

Respond with a JSON object with keys truthScore, isParadox, complexity, persuasiveness, analysis.
Output JSON only.
"""


def neutral_analysis(reason: str) -> TruthAnalysis:
    return TruthAnalysis(analysis=reason)


def parse_analysis(text: str) -> TruthAnalysis:
    """Extract and validate the JSON object in a model response.

    Raises:
        ValueError: no JSON object in ``text`` or it fails validation.
    """
    text = text.strip()
    if "```json" in text:
        text = text.split("```json")[1].split("```")[0].strip()
    elif "```" in text:
        text = text.split("```")[1].split("```")[0].strip()

    start, end = text.find("{"), text.rfind("}")
    if start == -1 or end <= start:
        raise ValueError("no JSON object in response")
    try:
        return TruthAnalysis.model_validate(json.loads(text[start:end + 1]))
    except (json.JSONDecodeError, ValidationError) as e:
        raise ValueError(str(e)) from e


class TruthAnalystAgent:
    """Analyzes statements a player makes inside a story."""

    def __init__(self, client, model_id: str = "gemini-2.0-flash"):
        self.client = client
        self.model_id = model_id

    async def analyze(self, statement: str, context: Optional[Dict[str, Any]] = None) -> TruthAnalysis:
        """Score ``statement``. ``context`` may carry currentNode, character, previousStatements."""
        context = context or {}
        if not self.client:
            return neutral_analysis("AI analysis system offline. Using default values.")

        previous = context.get("previousStatements") or []
        prompt = f"""Player statement: "{statement}"

Context:
Current story node: {context.get('currentNode', 'unknown')}
Character being addressed: {context.get('character', 'unknown')}
Previous player statements: {' | '.join(previous) or 'None'}

Analyze this statement for truthfulness, paradox elements, complexity, and persuasiveness."""

        try:
            response = await self.client.aio.models.generate_content(
                model=self.model_id,
                contents=prompt,
                config=genai.types.GenerateContentConfig(
                    system_instruction=ANALYST_IDENTITY,
                    temperature=0.3,
                )
            )
            result = parse_analysis(response.text or "")
            logger.info(f"Truth analysis: score={result.truth_score} paradox={result.is_paradox}")
            return result
        except ValueError as e:
            logger.error(f"Truth analysis parse error: {e}")
            return neutral_analysis("Failed to parse AI analysis. Using default values.")
        except Exception as e:
            logger.error(f"Truth analysis error: {e}", exc_info=True)
            return neutral_analysis("AI analysis system error. Using default values.")
