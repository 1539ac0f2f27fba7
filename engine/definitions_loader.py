"""
DefinitionsLoader — Reads story, fragment and recipe definitions from YAML.

Definitions are loaded once at startup. Every entry passes through the
Pydantic models, then through cross-reference checks, so a typo in a
content file fails the load instead of surfacing mid-story.

Layout of the content directory:
    fragments.yaml      — ``fragments:`` list and ``recipes:`` list
    stories/*.yaml      — one story per file (or a ``stories:`` list)
    stories.yaml        — optional single file with a ``stories:`` list
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Union

import yaml
from pydantic import ValidationError

from engine.errors import DefinitionError, UnknownTrait
from engine.fragment_registry import FragmentRegistry
from engine.progression import ProgressionCoordinator
from engine.trait_ledger import normalize_trait
from models.fragments import CombinationRecipe, FragmentDefinition
from models.stories import Story

logger = logging.getLogger("DefinitionsLoader")


@dataclass
class GameDefinitions:
    """Everything loaded from the content directory, ready to share across sessions."""

    registry: FragmentRegistry
    progression: ProgressionCoordinator


def _read_yaml(path: Path) -> Any:
    try:
        with open(path, "r", encoding="utf-8") as f:
            return yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise DefinitionError(f"YAML parse error in {path.name}: {e}") from e


def _validate_list(model, entries: List[Dict[str, Any]], source: str) -> list:
    items = []
    for i, entry in enumerate(entries or []):
        try:
            items.append(model.model_validate(entry))
        except ValidationError as e:
            raise DefinitionError(f"{source} entry {i} is invalid: {e}") from e
    return items


def parse_fragments(data: Dict[str, Any], source: str = "fragments") -> FragmentRegistry:
    fragments = _validate_list(FragmentDefinition, data.get("fragments", []), source)
    recipes = _validate_list(CombinationRecipe, data.get("recipes", []), source)
    return FragmentRegistry(fragments, recipes)


def parse_stories(data: Union[Dict[str, Any], List[Any]], source: str = "stories") -> List[Story]:
    if isinstance(data, list):
        entries = data
    elif "stories" in data:
        entries = data["stories"]
    else:
        entries = [data]
    return _validate_list(Story, entries, source)


def check_references(stories: List[Story], registry: FragmentRegistry) -> None:
    """Every fragment, trait and story a story mentions must exist.

    Raises:
        DefinitionError: for the first dangling reference found.
    """
    story_ids = {s.id for s in stories}

    def need_fragment(story: Story, fid: str, where: str):
        if fid not in registry:
            raise DefinitionError(f"Story '{story.id}' {where} references unknown fragment '{fid}'")

    def need_trait(story: Story, name: str, where: str):
        try:
            normalize_trait(name)
        except UnknownTrait as e:
            raise DefinitionError(f"Story '{story.id}' {where}: {e}") from e

    for story in stories:
        for sid in [*story.requirements.completed_stories, *story.rewards.unlock_stories]:
            if sid not in story_ids:
                raise DefinitionError(f"Story '{story.id}' references unknown story '{sid}'")
        for fid in [*story.requirements.truth_fragments, *story.rewards.truth_fragments]:
            need_fragment(story, fid, "requirements/rewards")

        for node in story.nodes:
            for idx, choice in enumerate(node.choices):
                where = f"node '{node.node_id}' choice {idx}"
                for fid in choice.effects.unlock_truth:
                    need_fragment(story, fid, where)
                for change in choice.effects.modify_traits:
                    need_trait(story, change.name, where)
                if choice.requires:
                    for fid in choice.requires.truth:
                        need_fragment(story, fid, where)
                    for req in choice.requires.traits:
                        need_trait(story, req.name, where)


def build_definitions(
    fragment_data: Dict[str, Any],
    story_data: Union[Dict[str, Any], List[Any]],
) -> GameDefinitions:
    """Build definitions from already-parsed data (dicts as found in the YAML files)."""
    registry = parse_fragments(fragment_data)
    stories = parse_stories(story_data)
    check_references(stories, registry)
    return GameDefinitions(registry=registry, progression=ProgressionCoordinator(stories, registry))


def load_definitions(content_dir: Union[str, Path]) -> GameDefinitions:
    """Load and validate all definitions under ``content_dir``.

    Raises:
        DefinitionError: on missing files, malformed YAML, schema errors
            or dangling references. Nothing is partially loaded.
    """
    root = Path(content_dir)
    fragments_path = root / "fragments.yaml"
    if not fragments_path.exists():
        raise DefinitionError(f"Missing {fragments_path}")

    registry = parse_fragments(_read_yaml(fragments_path), source=fragments_path.name)

    stories: List[Story] = []
    single = root / "stories.yaml"
    if single.exists():
        stories.extend(parse_stories(_read_yaml(single), source=single.name))
    stories_dir = root / "stories"
    if stories_dir.is_dir():
        for path in sorted(stories_dir.glob("*.yaml")):
            stories.extend(parse_stories(_read_yaml(path), source=path.name))

    check_references(stories, registry)
    progression = ProgressionCoordinator(stories, registry)
    logger.info(f"Loaded definitions from {root}: {len(stories)} stories")
    return GameDefinitions(registry=registry, progression=progression)
