"""Collection of instance member candidates across a type hierarchy."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from dossier.analysis.registry import TypeRegistry
from dossier.analysis.types import (
    FunctionType,
    InstanceType,
    JsType,
    NominalType,
    ObjectType,
    PropertySlot,
    PrototypeType,
    SourcePosition,
    TypeGraphError,
)
from dossier.parsers.jsdoc import EMPTY_JSDOC, JsDoc

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MemberRecord:
    """One physical declaration of an instance member.

    Attributes:
        name: Member name.
        defined_by: Constructor or interface function the slot was found
            on (or the bare object for anonymous types).
        type: Resolved value type of the member.
        jsdoc: Doc comment attached to the declaration.
        position: Declaration site.
        slot: The physical property slot.
        owner_type: Nominal type the member is displayed under, if the
            defining type is registered.
    """

    name: str
    defined_by: JsType
    type: JsType
    jsdoc: JsDoc = EMPTY_JSDOC
    position: SourcePosition = SourcePosition()
    slot: Optional[PropertySlot] = None
    owner_type: Optional[NominalType] = None

    def __post_init__(self) -> None:
        if not self.name:
            raise ValueError("MemberRecord requires a name")
        if not isinstance(self.defined_by, JsType):
            raise TypeError(f"defined_by must be a JsType, got {type(self.defined_by).__name__}")
        if self.jsdoc is None:
            raise ValueError(f"MemberRecord {self.name} requires a JsDoc, use EMPTY_JSDOC")

    def is_defined_on_interface(self) -> bool:
        """Whether the declaration lives on an interface."""
        definer = self.defined_by
        if definer.is_interface():
            return True
        return (
            isinstance(definer, InstanceType)
            and definer.constructor is not None
            and definer.constructor.is_interface()
        )


@dataclass(frozen=True)
class PropertyDocs:
    """A doc comment paired with the type its relative links resolve in."""

    context_type: NominalType
    jsdoc: JsDoc

    def __post_init__(self) -> None:
        if self.context_type is None:
            raise ValueError("PropertyDocs requires a context type")
        if self.jsdoc is None:
            raise ValueError("PropertyDocs requires a JsDoc, use EMPTY_JSDOC")


def _as_instance(js_type: JsType) -> JsType:
    if isinstance(js_type, FunctionType) and (js_type.is_constructor() or js_type.is_interface()):
        return js_type.get_instance_type()
    return js_type


def collect_assignable_types(
    js_type: JsType, _seen: Optional[list[JsType]] = None
) -> list[JsType]:
    """List every type a value of ``js_type`` is assignable to.

    The order is the type itself, then its declared interfaces depth-first
    in declaration order, then each superclass (with its own interfaces).

    Args:
        js_type: A constructor, interface or instance type.

    Returns:
        Instance types without duplicates, in resolution order.
    """
    seen = [] if _seen is None else _seen
    js_type = _as_instance(js_type)
    if any(js_type is t for t in seen):
        return []
    seen.append(js_type)

    types = [js_type]
    if isinstance(js_type, InstanceType):
        related: list[JsType] = list(js_type.declared_interfaces())
        related.extend(js_type.type_hierarchy()[1:])
        for other in related:
            for found in collect_assignable_types(other, seen):
                if all(found is not t for t in types):
                    types.append(found)
    return types


def own_member_records(obj: ObjectType, registry: TypeRegistry) -> dict[str, MemberRecord]:
    """Build member records for the own slots of one object.

    Args:
        obj: A prototype, instance or plain object type.
        registry: Registry used to find the display owner.

    Returns:
        Records keyed by member name; ``constructor`` is skipped.
    """
    definer: JsType = obj
    if isinstance(obj, PrototypeType) and obj.owner_function is not None:
        definer = obj.owner_function
    elif isinstance(obj, InstanceType) and obj.constructor is not None:
        definer = obj.constructor

    owners = registry.get_types(definer)
    owner = owners[0] if owners else None

    records = {}
    for slot in obj.own_property_slots():
        if slot.name == "constructor":
            continue
        member_type = obj.find_property_type(slot.name)
        if member_type.is_unknown():
            member_type = slot.type
        records[slot.name] = MemberRecord(
            name=slot.name,
            defined_by=definer,
            type=member_type,
            jsdoc=slot.jsdoc,
            position=slot.position,
            slot=slot,
            owner_type=owner,
        )
    return records


def get_instance_properties(js_type: JsType, registry: TypeRegistry) -> dict[str, MemberRecord]:
    """Collect the instance members declared directly by one type.

    Prototype slots are gathered first; per-instance slots of the same
    name take their place.

    Args:
        js_type: A constructor, interface or instance type.
        registry: The type registry.

    Returns:
        Records keyed by member name.

    Raises:
        TypeGraphError: If a constructor has no prototype object.
    """
    js_type = _as_instance(js_type)
    obj = js_type.to_object()
    if obj is None:
        return {}

    properties: dict[str, MemberRecord] = {}
    if isinstance(obj, InstanceType) and obj.constructor is not None:
        prototype = obj.constructor.prototype
        if prototype is None:
            raise TypeGraphError(f"{obj.constructor.name} has no prototype object")
        properties = own_member_records(prototype, registry)
    properties.update(own_member_records(obj, registry))
    return properties


def collect_candidates(
    js_type: JsType, registry: TypeRegistry
) -> dict[str, list[MemberRecord]]:
    """Map each member name to its ordered declaration candidates.

    Candidates are deduplicated by physical slot identity, so a slot
    reached through two inheritance paths is listed once while distinct
    slots with identical content are all kept.

    Args:
        js_type: The inspected constructor or interface.
        registry: The type registry.

    Returns:
        Candidate lists keyed by member name, names sorted.
    """
    candidates: dict[str, list[MemberRecord]] = {}
    for assignable in collect_assignable_types(js_type):
        for name, record in get_instance_properties(assignable, registry).items():
            entries = candidates.setdefault(name, [])
            if all(record.slot is not e.slot for e in entries):
                entries.append(record)
    logger.debug("Collected %d instance member names", len(candidates))
    return {name: candidates[name] for name in sorted(candidates)}
