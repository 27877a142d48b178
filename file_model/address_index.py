from __future__ import annotations
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from file_model.document import ScoreDocument, element_id
from utils.tiny_tool import normalize_number

logger = logging.getLogger(__name__)


class LookupMiss(str, Enum):
    SCOPE_NOT_FOUND = 'scope_not_found'
    MEASURE_NOT_FOUND = 'measure_not_found'
    MOVEMENT_NOT_FOUND = 'movement_not_found'


@dataclass(frozen=True)
class Lookup:
    element_id: Optional[str] = None
    miss: Optional[LookupMiss] = None

    @property
    def found(self) -> bool:
        return self.element_id is not None


@dataclass(frozen=True)
class _Movement:
    xml_id: Optional[str]
    label: Optional[str]
    # normalized measure number -> first measure id in document order
    measures: dict[str, str]


class AddressIndex:
    """(scope, measure number) -> element id, built once per document load.

    Labels and ids are compared as plain strings, so quotes or brackets in a
    movement label need no escaping.
    """

    def __init__(self, document: ScoreDocument) -> None:
        self._movements: list[_Movement] = []
        self._global: dict[str, str] = self._index_measures(document, None)
        for mdiv in document.movements():
            self._movements.append(_Movement(
                xml_id=element_id(mdiv),
                label=mdiv.get('label'),
                measures=self._index_measures(document, mdiv),
            ))

    @staticmethod
    def _index_measures(document: ScoreDocument, within) -> dict[str, str]:
        table: dict[str, str] = {}
        for measure in document.measures(within):
            n = measure.get('n')
            mid = element_id(measure)
            if n is None or not mid:
                continue
            # First in document order wins for duplicated numbers
            table.setdefault(normalize_number(n), mid)
        return table

    def movement(self, scope: str) -> Optional[_Movement]:
        """The first movement whose label, else whose id, equals scope."""
        for mv in self._movements:
            if mv.label == scope:
                return mv
        for mv in self._movements:
            if mv.xml_id == scope:
                return mv
        return None

    def measure(self, scope: Optional[str], number: object) -> Lookup:
        key = normalize_number(number)
        if scope:
            mv = self.movement(scope)
            if mv is None:
                return Lookup(miss=LookupMiss.SCOPE_NOT_FOUND)
            table = mv.measures
        else:
            table = self._global
        mid = table.get(key)
        if mid is None:
            return Lookup(miss=LookupMiss.MEASURE_NOT_FOUND)
        return Lookup(element_id=mid)


class AddressResolver:
    """Resolve logical addresses (movement, measure) to engine element ids."""

    def __init__(self) -> None:
        self._index: Optional[AddressIndex] = None

    def reset(self, document: Optional[ScoreDocument]) -> None:
        self._index = AddressIndex(document) if document is not None else None

    @property
    def has_document(self) -> bool:
        return self._index is not None

    def lookup_measure(self, scope: Optional[str], number: object) -> Lookup:
        if self._index is None:
            return Lookup(miss=LookupMiss.MEASURE_NOT_FOUND)
        result = self._index.measure(scope, number)
        if result.miss is LookupMiss.SCOPE_NOT_FOUND:
            logger.warning("No movement found with label or id '%s'", scope)
        elif result.miss is LookupMiss.MEASURE_NOT_FOUND:
            where = f"in movement '{scope}'" if scope else "in the document"
            logger.warning("No measure n='%s' found %s", number, where)
        return result

    def resolve_measure(self, scope: Optional[str], number: object) -> Optional[str]:
        return self.lookup_measure(scope, number).element_id

    def lookup_movement(self, label: str) -> Lookup:
        mv = self._index.movement(label) if self._index is not None else None
        if mv is None or not mv.xml_id:
            logger.warning("No movement found with label or id '%s'", label)
            return Lookup(miss=LookupMiss.MOVEMENT_NOT_FOUND)
        return Lookup(element_id=mv.xml_id)

    def resolve_movement(self, label: str) -> Optional[str]:
        return self.lookup_movement(label).element_id
