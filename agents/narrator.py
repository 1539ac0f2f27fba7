"""
NarratorAgent — Generates text for dynamic story nodes.

Personalizes a node's text to the player's lie profile and progress.
Never called by the engine itself: GameService invokes it for nodes of
type ``dynamic`` when AI narration is enabled, and only the text payload
of a copy of the node is replaced.

Uses the `system_instruction` parameter for stable identity.
"""

import logging
from typing import Optional
from google import genai

from models.player import Player
from models.stories import NodeType, Story, StoryNode

logger = logging.getLogger("Narrator")

# Stable identity prompt, passed as system_instruction
NARRATOR_IDENTITY = """You are the narrative AI for the game "Paradox", a story about truth, lies and the spaces between them.

Your Responsibilities:
1. Write the text for a single story node, in second person, present tense.
2. Respect the node's location, characters and mood.
3. Set up the choices the player is about to face without listing them.
4. Remember that in Paradox the player must sometimes lie to discover deeper truths.

Output Format:
One to three short paragraphs of prose. NO JSON. NO headings.
"""

# Per node type guidance, appended to the prompt
NODE_TYPE_GUIDANCE = {
    NodeType.NARRATIVE: "Generate immersive and descriptive narrative text that advances the story. Focus on vivid descriptions and emotional depth.",
    NodeType.DIALOGUE: "Generate realistic dialogue between characters that reveals their personalities and advances the plot.",
    NodeType.PUZZLE: "Create an intriguing puzzle or riddle that the player must solve, with hints embedded in the text.",
    NodeType.PARADOX: "Create a mind-bending paradox that challenges the player's perception of truth, using self-reference and logical contradictions.",
}
DEFAULT_GUIDANCE = "Generate engaging narrative content that matches the tone and style of the story."

OFFLINE_TEXT = "The Truth AI seems to be malfunctioning. Please proceed with caution."


def build_prompt(node: StoryNode, player: Player, story: Story) -> str:
    """Assemble the per-node prompt from node metadata and the player's profile."""
    profile = player.lie_profile
    meta = node.metadata
    completed = ", ".join(player.game_state.completed_stories) or "None yet"
    characters = ", ".join(meta.characters) if meta.characters else "None"
    guidance = NODE_TYPE_GUIDANCE.get(node.type, DEFAULT_GUIDANCE)

    return f"""## Story
{story.title} ({story.chapter.value} chapter)
{story.description}

## Node
Location: {meta.location or 'Unknown'}
Characters present: {characters}
Mood: {meta.mood or 'Neutral'}
Context: {node.content.text or 'Generate new content based on the node type and metadata.'}

## Player
Lie creativity {profile.lie_creativity}/10, truth resistance {profile.truth_resistance}/10, paradox aptitude {profile.paradox_aptitude}/5.
Completed stories: {completed}

---

{guidance}"""


class NarratorAgent:
    """Generates personalized text for dynamic nodes."""

    def __init__(self, client, model_id: str = "gemini-2.0-flash", temperature: float = 0.7):
        self.client = client
        self.model_id = model_id
        self.temperature = temperature

    async def generate(self, node: StoryNode, player: Player, story: Story) -> str:
        """Return narrative text for ``node``.

        Falls back to the node's authored text (or a fixed offline line)
        when the model is not connected or generation fails.
        """
        fallback = node.content.text or OFFLINE_TEXT
        if not self.client:
            logger.warning("Narrator not connected to model. Using authored text.")
            return fallback

        prompt = build_prompt(node, player, story)
        try:
            response = await self.client.aio.models.generate_content(
                model=self.model_id,
                contents=prompt,
                config=genai.types.GenerateContentConfig(
                    system_instruction=NARRATOR_IDENTITY,
                    temperature=self.temperature,
                    max_output_tokens=1000,
                )
            )
            text: Optional[str] = response.text
            if not text or not text.strip():
                logger.warning(f"Empty narration for {story.id}/{node.node_id}, using authored text")
                return fallback
            return text.strip()
        except Exception as e:
            logger.error(f"Narration failed for {story.id}/{node.node_id}: {e}", exc_info=True)
            return fallback
