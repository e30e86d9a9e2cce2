"""
Rubric Loader - Sales Coaching Assessment
salescoach/services/rubric_loader.py

Loads the static Steps -> Substeps -> Behaviors tree, validates it and
attaches the declarative per-step threshold overrides.

Sources:
  - JSON document (packaged default_rubric.json or RUBRIC_PATH)
  - RubricRepository (Snowflake tables), wired through RubricProvider

A rubric document may declare thresholds explicitly on a step:

    {"id": 6, "title": "Asking for Commitment", ...,
     "thresholds": {"qualified": 2, "experienced": 3, "master": 2}}

Steps without explicit thresholds fall back to the title table in
salescoach.scoring.thresholds.
"""

import json
import logging
from pathlib import Path
from typing import Any, Callable, Dict, Optional, Union

import redis
from pydantic import ValidationError

from salescoach.core.exceptions import ConfigurationError, RubricUnavailable
from salescoach.models.rubric import Rubric, Step, StepThresholds
from salescoach.scoring.proficiency import VALID_LEVELS
from salescoach.scoring.thresholds import derive_title_overrides
from salescoach.services.cache import TTL_RUBRIC, get_cache

logger = logging.getLogger(__name__)

RUBRIC_CACHE_KEY = "rubric:current"


def validate_rubric(rubric: Rubric) -> Rubric:
    """
    Check structural invariants of a rubric.

    Raises:
        ConfigurationError: duplicate ids/orders, broken parent references,
            proficiency levels outside 1-4 or thresholds for unknown steps
    """
    step_ids, substep_ids, behavior_ids = set(), set(), set()
    step_orders = set()

    for step in rubric.steps:
        if step.id in step_ids:
            raise ConfigurationError(f"Duplicate step id {step.id}", "Step", step.id)
        if step.order in step_orders:
            raise ConfigurationError(f"Duplicate step order {step.order}", "Step", step.id)
        step_ids.add(step.id)
        step_orders.add(step.order)

        substep_orders = set()
        for substep in step.substeps:
            if substep.id in substep_ids:
                raise ConfigurationError(f"Duplicate substep id {substep.id}", "Substep", substep.id)
            if substep.step_id != step.id:
                raise ConfigurationError(
                    f"Substep {substep.id} references step {substep.step_id}, nested under {step.id}",
                    "Substep", substep.id,
                )
            if substep.order in substep_orders:
                raise ConfigurationError(
                    f"Duplicate substep order {substep.order} in step {step.id}", "Substep", substep.id
                )
            substep_ids.add(substep.id)
            substep_orders.add(substep.order)

            for behavior in substep.behaviors:
                if behavior.id in behavior_ids:
                    raise ConfigurationError(f"Duplicate behavior id {behavior.id}", "Behavior", behavior.id)
                if behavior.substep_id != substep.id:
                    raise ConfigurationError(
                        f"Behavior {behavior.id} references substep {behavior.substep_id}, "
                        f"nested under {substep.id}",
                        "Behavior", behavior.id,
                    )
                if behavior.proficiency_level not in VALID_LEVELS:
                    raise ConfigurationError(
                        f"Behavior {behavior.id} has proficiency level {behavior.proficiency_level}",
                        "Behavior", behavior.id,
                    )
                behavior_ids.add(behavior.id)

    unknown = sorted(set(rubric.threshold_overrides) - step_ids)
    if unknown:
        raise ConfigurationError(f"Thresholds declared for unknown steps: {unknown}")

    return rubric


def build_rubric(steps: list, explicit: Optional[Dict[int, StepThresholds]] = None) -> Rubric:
    """Assemble a validated rubric; explicit thresholds win over title-derived ones."""
    steps = sorted(steps, key=lambda s: s.order)
    overrides = derive_title_overrides(steps)
    overrides.update(explicit or {})
    return validate_rubric(Rubric(steps=steps, threshold_overrides=overrides))


def parse_rubric(document: Dict[str, Any]) -> Rubric:
    """
    Parse a rubric document ({"steps": [...]}).

    Raises:
        ConfigurationError: the document does not describe a valid rubric
    """
    raw_steps = document.get("steps")
    if not isinstance(raw_steps, list):
        raise ConfigurationError("Rubric document must contain a 'steps' list")

    steps = []
    explicit: Dict[int, StepThresholds] = {}
    try:
        for raw in raw_steps:
            raw = dict(raw)
            thresholds = raw.pop("thresholds", None)
            step = Step.model_validate(raw)
            if thresholds is not None:
                explicit[step.id] = StepThresholds.model_validate(thresholds)
            steps.append(step)
    except ValidationError as e:
        raise ConfigurationError(f"Malformed rubric document: {e}")

    return build_rubric(steps, explicit)


def load_rubric_file(path: Union[str, Path]) -> Rubric:
    """
    Load a rubric from a JSON file.

    Raises:
        RubricUnavailable: file missing or unreadable
        ConfigurationError: file readable but not a valid rubric
    """
    path = Path(path)
    try:
        document = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        raise RubricUnavailable(f"Failed to read rubric from {path}: {e}", cause=e)

    rubric = parse_rubric(document)
    logger.info(
        "rubric_loaded",
        extra={
            "path": str(path),
            "steps": len(rubric.steps),
            "behaviors": rubric.total_behaviors,
            "special_cased_steps": sorted(rubric.threshold_overrides),
        },
    )
    return rubric


class RubricProvider:
    """
    Fetches the rubric once per session start, caching it in Redis.

    The cache is optional: when Redis is unreachable the source is read directly.
    """

    def __init__(self, source: Callable[[], Rubric], ttl_seconds: int = TTL_RUBRIC):
        self.source = source
        self.ttl_seconds = ttl_seconds

    def get_rubric(self) -> Rubric:
        """
        Return the full rubric tree.

        Raises:
            RubricUnavailable: the source failed
            ConfigurationError: the source returned an invalid rubric
        """
        cache = get_cache()
        if cache:
            try:
                cached = cache.get(RUBRIC_CACHE_KEY, Rubric)
            except redis.RedisError as e:
                logger.warning("rubric_cache_read_failed", extra={"error": str(e)})
                cached = None
            if cached is not None:
                return cached

        try:
            rubric = self.source()
        except (RubricUnavailable, ConfigurationError):
            raise
        except Exception as e:
            raise RubricUnavailable(f"Rubric source failed: {e}", cause=e)

        validate_rubric(rubric)

        if cache:
            try:
                cache.set(RUBRIC_CACHE_KEY, rubric, self.ttl_seconds)
            except redis.RedisError as e:
                logger.warning("rubric_cache_write_failed", extra={"error": str(e)})
        return rubric

    def invalidate(self) -> None:
        cache = get_cache()
        if cache:
            cache.delete(RUBRIC_CACHE_KEY)


def split_compound_behaviors(rubric: Rubric) -> Rubric:
    """
    Split behavior texts holding several ';'-separated observations.

    Each fragment becomes its own behavior at the original level. When any
    split happens, behavior ids and orders are renumbered sequentially in
    rubric order; otherwise the rubric is returned unchanged.
    """
    if not any(";" in behavior.description for behavior in rubric.iter_behaviors()):
        return rubric

    next_id = 1
    steps = []
    for step in rubric.steps:
        substeps = []
        for substep in step.substeps:
            behaviors = []
            for behavior in substep.behaviors:
                for fragment in behavior.description.split(";"):
                    fragment = fragment.strip()
                    if not fragment:
                        continue
                    behaviors.append(behavior.model_copy(update={
                        "id": next_id,
                        "description": fragment,
                        "order": len(behaviors) + 1,
                    }))
                    next_id += 1
            substeps.append(substep.model_copy(update={"behaviors": behaviors}))
        steps.append(step.model_copy(update={"substeps": substeps}))

    logger.info("compound_behaviors_split", extra={"behaviors": next_id - 1})
    return rubric.model_copy(update={"steps": steps})
