"""Rule store interface and a YAML-file implementation."""

from __future__ import annotations

import threading
from pathlib import Path
from typing import Any, Iterable, List, Protocol

import yaml
from pydantic import ValidationError as PydanticValidationError

from ..core.exceptions import RuleStoreError
from ..core.logging import get_logger
from .models import PredictRule

LOGGER = get_logger(__name__)


class RuleStore(Protocol):
    """Source of rules, read once per scheduling tick."""

    def list_enabled_rules(self) -> List[PredictRule]: ...


class StaticRuleStore:
    """In-memory store, mostly useful for tests and embedding."""

    def __init__(self, rules: Iterable[PredictRule] = ()) -> None:
        self._rules = list(rules)
        self._lock = threading.Lock()

    def replace(self, rules: Iterable[PredictRule]) -> None:
        with self._lock:
            self._rules = list(rules)

    def list_enabled_rules(self) -> List[PredictRule]:
        with self._lock:
            return [rule for rule in self._rules if rule.enabled]


class YamlRuleStore:
    """Reads rules from a YAML file on every call so edits apply on the next tick.

    The file holds either a list of rules or a mapping with a ``rules`` key.
    """

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)

    def list_enabled_rules(self) -> List[PredictRule]:
        try:
            with self.path.open("r", encoding="utf-8") as handle:
                payload: Any = yaml.safe_load(handle) or []
        except (OSError, yaml.YAMLError) as exc:
            raise RuleStoreError(f"failed to read rules from {self.path}: {exc}") from exc

        if isinstance(payload, dict):
            payload = payload.get("rules") or []
        if not isinstance(payload, list):
            raise RuleStoreError(f"rules file {self.path} must contain a list of rules")

        try:
            rules = [PredictRule.model_validate(item) for item in payload]
        except PydanticValidationError as exc:
            raise RuleStoreError(f"invalid rule in {self.path}: {exc}") from exc

        enabled = [rule for rule in rules if rule.enabled]
        LOGGER.debug("Loaded %d rules (%d enabled) from %s", len(rules), len(enabled), self.path)
        return enabled
