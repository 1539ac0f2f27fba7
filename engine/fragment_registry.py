"""
FragmentRegistry — Truth fragment definitions and combination recipes.

Read-only after construction, so one registry is shared by every player
session without locking. Recipe matching is exact-set equality: the
selected fragments must be precisely a recipe's inputs, in any order.

Combination is additive. The input fragments stay in the player's
collection and only the output fragment is added.
"""

import logging
from typing import Dict, FrozenSet, Iterable, List, Optional

from engine.errors import (
    DefinitionError,
    DuplicateRecipe,
    FragmentNotFound,
    FragmentNotOwned,
    NoMatchingRecipe,
)
from models.fragments import CombinationRecipe, FragmentDefinition
from models.outcomes import CombinationOutcome
from models.player import Player

logger = logging.getLogger("FragmentRegistry")


class FragmentRegistry:
    """Immutable lookup over fragment definitions and recipes.

    Args:
        fragments: All fragment definitions. Ids must be unique.
        recipes: Combination recipes. Inputs and outputs must reference
            known fragments and no two recipes may share an input set.

    Raises:
        DefinitionError: on duplicate ids or dangling references.
        DuplicateRecipe: when two recipes have the same input set.
    """

    def __init__(
        self,
        fragments: Iterable[FragmentDefinition],
        recipes: Iterable[CombinationRecipe] = (),
    ):
        self._fragments: Dict[str, FragmentDefinition] = {}
        for fragment in fragments:
            if fragment.id in self._fragments:
                raise DefinitionError(f"Duplicate fragment id: {fragment.id}")
            self._fragments[fragment.id] = fragment

        self._recipes: Dict[FrozenSet[str], CombinationRecipe] = {}
        for recipe in recipes:
            for fid in [*recipe.inputs, recipe.output]:
                if fid not in self._fragments:
                    raise DefinitionError(f"Recipe references unknown fragment: {fid}")
            if recipe.inputs in self._recipes:
                raise DuplicateRecipe(recipe.inputs)
            self._recipes[recipe.inputs] = recipe

        logger.info(
            f"Fragment registry loaded: {len(self._fragments)} fragments, "
            f"{len(self._recipes)} recipes"
        )

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    @property
    def fragments(self) -> List[FragmentDefinition]:
        return list(self._fragments.values())

    @property
    def recipes(self) -> List[CombinationRecipe]:
        return list(self._recipes.values())

    def __contains__(self, fragment_id: str) -> bool:
        return fragment_id in self._fragments

    def get(self, fragment_id: str) -> Optional[FragmentDefinition]:
        return self._fragments.get(fragment_id)

    def require(self, fragment_id: str) -> FragmentDefinition:
        fragment = self._fragments.get(fragment_id)
        if fragment is None:
            raise FragmentNotFound(fragment_id)
        return fragment

    def name_of(self, fragment_id: str) -> str:
        """Display name, falling back to the id for unknown fragments."""
        fragment = self._fragments.get(fragment_id)
        return fragment.name if fragment else fragment_id

    def is_combinable(self, fragment_id: str) -> bool:
        return self.require(fragment_id).combinable

    # ------------------------------------------------------------------
    # Recipes
    # ------------------------------------------------------------------

    def find_matching_recipe(self, selected_ids: Iterable[str]) -> Optional[CombinationRecipe]:
        """Return the recipe whose inputs equal ``selected_ids`` exactly, or None.

        Fewer than two distinct ids never match.
        """
        key = frozenset(selected_ids)
        if len(key) < 2:
            return None
        return self._recipes.get(key)

    def recipes_for(self, fragment_id: str) -> List[CombinationRecipe]:
        """Recipes that use ``fragment_id`` as an input."""
        return [r for r in self._recipes.values() if fragment_id in r.inputs]

    def combine(self, player: Player, selected_ids: Iterable[str]) -> CombinationOutcome:
        """Combine owned fragments into a recipe's output.

        Raises:
            FragmentNotFound: a selected id has no definition.
            FragmentNotOwned: a selected fragment has not been discovered.
            NoMatchingRecipe: no recipe has exactly this input set.
        """
        selected = list(dict.fromkeys(selected_ids))
        for fid in selected:
            self.require(fid)
            if not player.owns_fragment(fid):
                raise FragmentNotOwned(fid)

        recipe = self.find_matching_recipe(selected)
        if recipe is None:
            raise NoMatchingRecipe(selected)

        output = self.require(recipe.output)
        already_owned = player.owns_fragment(output.id)
        if not already_owned:
            player.digital_assets.truth_fragments = [
                *player.digital_assets.truth_fragments,
                output.id,
            ]
            logger.info(f"[{player.player_id}] combined {sorted(recipe.inputs)} -> {output.id}")
        return CombinationOutcome(recipe=recipe, output=output, already_owned=already_owned)

    # ------------------------------------------------------------------
    # Collection views
    # ------------------------------------------------------------------

    def discovered(self, collection: Iterable[str]) -> List[FragmentDefinition]:
        owned = set(collection)
        return [f for f in self._fragments.values() if f.id in owned]

    def undiscovered(self, collection: Iterable[str]) -> List[FragmentDefinition]:
        owned = set(collection)
        return [f for f in self._fragments.values() if f.id not in owned]

    def combinable_owned(self, collection: Iterable[str]) -> List[FragmentDefinition]:
        return [f for f in self.discovered(collection) if f.combinable]
