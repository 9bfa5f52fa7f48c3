"""Reference data and field-level validation rules kept in the document store.

Rules are compiled once per entity type into a :class:`RuleSet` (regexes
compiled, rule types checked) and cached in a :class:`RuleSetRegistry` that
lives for the lifetime of the app. Writing or deleting a rule drops the
cached set for its entity type.
"""

from __future__ import annotations

import logging
import re
import threading
import uuid
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import Any

from vendor_mdm.core.exceptions import NotFoundError, ValidationError
from vendor_mdm.schemas.documents import ReferenceDataItem, RuleType, ValidationRule
from vendor_mdm.stores.documents import REFERENCE_DATA, VALIDATION_RULES, DocumentStore

logger = logging.getLogger(__name__)


def field_key(name: str) -> str:
    """Case- and separator-insensitive key: ``TaxId``, ``taxId`` and ``tax_id`` collide."""
    return name.replace("_", "").replace("-", "").lower()


@dataclass(frozen=True)
class CompiledRule:
    rule_id: str
    field_name: str
    rule_type: RuleType
    pattern: re.Pattern[str] | None
    error_message: str

    def violated_by(self, value: Any) -> bool:
        text = None if value is None else str(value)
        if self.rule_type is RuleType.REQUIRED:
            return text is None or not text.strip()
        if self.rule_type is RuleType.REGEX:
            return text is not None and self.pattern is not None and not self.pattern.search(text)
        return False

    @property
    def message(self) -> str:
        return self.error_message or f"{self.field_name} is invalid"


def compile_rule(rule: ValidationRule) -> CompiledRule:
    pattern = None
    if rule.rule_type is RuleType.REGEX:
        try:
            pattern = re.compile(rule.rule_value)
        except re.error as exc:
            raise ValidationError(
                f"Invalid regex for {rule.entity_type}.{rule.field_name}: {exc}",
                field="ruleValue",
            ) from exc
    return CompiledRule(
        rule_id=rule.id,
        field_name=rule.field_name,
        rule_type=rule.rule_type,
        pattern=pattern,
        error_message=rule.error_message,
    )


class RuleSet:
    """All compiled rules for one entity type, grouped by field key."""

    def __init__(self, entity_type: str, rules: Iterable[CompiledRule]):
        self.entity_type = entity_type
        self.rules: tuple[CompiledRule, ...] = tuple(rules)

    def __len__(self) -> int:
        return len(self.rules)

    def first_violation(self, payload: Mapping[str, Any]) -> CompiledRule | None:
        values = {field_key(k): v for k, v in payload.items()}
        for rule in self.rules:
            if rule.violated_by(values.get(field_key(rule.field_name))):
                return rule
        return None

    def validate(self, payload: Mapping[str, Any]) -> None:
        """Raise ValidationError for the first failing rule."""
        rule = self.first_violation(payload)
        if rule is not None:
            raise ValidationError(rule.message, field=rule.field_name)


class RuleSetRegistry:
    """App-wide cache of compiled rule sets keyed by entity type.

    Every invalidation bumps the entity type's generation. A rule set built
    from a read that started before an invalidation is not cached, so a
    concurrent rule write is never masked by an older compile.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._sets: dict[str, RuleSet] = {}
        self._generations: dict[str, int] = {}

    def get(self, entity_type: str) -> RuleSet | None:
        with self._lock:
            return self._sets.get(entity_type)

    def generation(self, entity_type: str) -> int:
        with self._lock:
            return self._generations.get(entity_type, 0)

    def put(self, rule_set: RuleSet, generation: int) -> bool:
        """Cache *rule_set* unless its entity type was invalidated since *generation*."""
        with self._lock:
            if self._generations.get(rule_set.entity_type, 0) != generation:
                return False
            self._sets[rule_set.entity_type] = rule_set
            return True

    def invalidate(self, entity_type: str) -> None:
        with self._lock:
            self._sets.pop(entity_type, None)
            self._generations[entity_type] = self._generations.get(entity_type, 0) + 1

    async def warm(self, store: DocumentStore) -> int:
        """Compile every stored rule up front (called at startup)."""
        with self._lock:
            seen = dict(self._generations)
        items = await store.query_items(VALIDATION_RULES)
        grouped: dict[str, list[CompiledRule]] = {}
        for item in items:
            rule = ValidationRule.model_validate(item)
            try:
                grouped.setdefault(rule.entity_type, []).append(compile_rule(rule))
            except ValidationError as exc:
                logger.warning("Skipping stored rule %s: %s", rule.id, exc.message)
        loaded = sum(
            self.put(RuleSet(et, rules), seen.get(et, 0)) for et, rules in grouped.items()
        )
        logger.info("Loaded %d validation rule sets", loaded)
        return loaded


class MetadataService:
    def __init__(self, store: DocumentStore, registry: RuleSetRegistry):
        self._store = store
        self._registry = registry

    # ------------------------------------------------------------------
    # Reference data
    # ------------------------------------------------------------------

    async def get_reference_data(self, category: str) -> list[ReferenceDataItem]:
        items = await self._store.query_items(
            REFERENCE_DATA, partition_key=category, filters={"isActive": True}
        )
        return [ReferenceDataItem.model_validate(i) for i in items]

    async def upsert_reference_data(self, item: ReferenceDataItem) -> ReferenceDataItem:
        if not item.id:
            item = item.model_copy(update={"id": str(uuid.uuid4())})
        await self._store.upsert_item(REFERENCE_DATA, item.to_item(), item.category)
        logger.info("Reference data %s/%s upserted", item.category, item.id)
        return item

    async def delete_reference_data(self, item_id: str, category: str) -> None:
        if not await self._store.delete_item(REFERENCE_DATA, item_id, category):
            raise NotFoundError("Reference data item", item_id)

    # ------------------------------------------------------------------
    # Validation rules
    # ------------------------------------------------------------------

    async def get_validation_rules(self, entity_type: str) -> list[ValidationRule]:
        items = await self._store.query_items(VALIDATION_RULES, partition_key=entity_type)
        return [ValidationRule.model_validate(i) for i in items]

    async def upsert_validation_rule(self, rule: ValidationRule) -> ValidationRule:
        compile_rule(rule)  # reject bad patterns before storing
        if not rule.id:
            rule = rule.model_copy(update={"id": str(uuid.uuid4())})
        await self._store.upsert_item(VALIDATION_RULES, rule.to_item(), rule.entity_type)
        self._registry.invalidate(rule.entity_type)
        logger.info("Validation rule %s/%s upserted", rule.entity_type, rule.id)
        return rule

    async def delete_validation_rule(self, rule_id: str, entity_type: str) -> None:
        if not await self._store.delete_item(VALIDATION_RULES, rule_id, entity_type):
            raise NotFoundError("Validation rule", rule_id)
        self._registry.invalidate(entity_type)

    async def rule_set(self, entity_type: str) -> RuleSet:
        cached = self._registry.get(entity_type)
        if cached is not None:
            return cached
        generation = self._registry.generation(entity_type)
        rules = await self.get_validation_rules(entity_type)
        compiled = []
        for rule in rules:
            try:
                compiled.append(compile_rule(rule))
            except ValidationError as exc:
                logger.warning("Skipping stored rule %s: %s", rule.id, exc.message)
        rule_set = RuleSet(entity_type, compiled)
        self._registry.put(rule_set, generation)
        return rule_set

    async def validate_payload(self, entity_type: str, payload: Mapping[str, Any]) -> RuleSet:
        rule_set = await self.rule_set(entity_type)
        rule_set.validate(payload)
        return rule_set
