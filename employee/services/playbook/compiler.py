"""
Instruction compiler – turns an :class:`AgentProfile` into the agent playbook.

Internally a playbook is an :class:`InstructionDocument`, an ordered tuple of
named sections. The marker-delimited string form is only produced at the
boundary (remote assistant instructions, storage) and can be parsed back
byte-for-byte.
"""

import hashlib
import logging
import re
from dataclasses import dataclass
from typing import Optional, Union

from employee.services.base import MalformedDocument, UnknownSection

from .models import AgentProfile
from .sections import SECTION_ORDER, build_section

logger = logging.getLogger(__name__)

_MARKER_RE = re.compile(r'^### \[\[SECTION:(\w+)\]\] ###$', re.MULTILINE)


@dataclass(frozen=True)
class Section:
    """One named block of the playbook. ``name`` is empty for leading free text."""

    name: str
    text: str


@dataclass(frozen=True)
class InstructionDocument:
    sections: tuple[Section, ...]

    @property
    def text(self) -> str:
        return ''.join(section.text for section in self.sections)

    def __str__(self) -> str:
        return self.text

    @property
    def names(self) -> list[str]:
        return [section.name for section in self.sections if section.name]

    @property
    def fingerprint(self) -> str:
        return hashlib.sha256(self.text.encode('utf-8')).hexdigest()

    def section(self, name: str) -> Optional[Section]:
        for section in self.sections:
            if section.name == name:
                return section
        return None

    @classmethod
    def parse(cls, text: str) -> 'InstructionDocument':
        """Split serialized *text* at its section markers.

        Never fails: text before the first marker becomes an unnamed section,
        and ``parse(t).text == t`` for every string ``t``.
        """
        starts = [match.start() for match in _MARKER_RE.finditer(text)]
        names = [match.group(1) for match in _MARKER_RE.finditer(text)]
        sections = []
        if not starts or starts[0] > 0:
            head = text[:starts[0]] if starts else text
            if head:
                sections.append(Section('', head))
        for index, start in enumerate(starts):
            end = starts[index + 1] if index + 1 < len(starts) else len(text)
            sections.append(Section(names[index], text[start:end]))
        return cls(tuple(sections))


DocumentLike = Union[InstructionDocument, str]


def compile_all(profile: AgentProfile) -> InstructionDocument:
    """Build every section in canonical order.

    Deterministic: the same profile always yields a byte-identical document.
    """
    return InstructionDocument(tuple(
        Section(name, build_section(name, profile)) for name in SECTION_ORDER
    ))


def _locate(document: InstructionDocument, section_name: str) -> tuple[int, int]:
    """Return the ``[start, end)`` slice of ``document.sections`` owned by *section_name*.

    The slice runs from the section's marker up to the next canonical
    section's marker, or to the end of the document for the last section.

    Raises:
        MalformedDocument: If either marker is missing, duplicated or out of order.
    """
    positions = [i for i, s in enumerate(document.sections) if s.name == section_name]
    if len(positions) != 1:
        raise MalformedDocument(f"Expected one '{section_name}' marker, found {len(positions)}")
    start = positions[0]

    order_index = SECTION_ORDER.index(section_name)
    if order_index + 1 == len(SECTION_ORDER):
        return start, len(document.sections)

    next_name = SECTION_ORDER[order_index + 1]
    next_positions = [i for i, s in enumerate(document.sections) if s.name == next_name]
    if len(next_positions) != 1 or next_positions[0] <= start:
        raise MalformedDocument(f"Marker of '{next_name}' missing or misplaced after '{section_name}'")
    return start, next_positions[0]


def replace_section(document: DocumentLike, section_name: str, profile: AgentProfile) -> InstructionDocument:
    """Rebuild one section of a previously compiled *document* in place.

    Only the bytes between *section_name*'s marker and the next section's
    marker change. When the markers cannot be located (hand-edited or
    incompatible document) the whole document is recompiled from *profile*.

    Raises:
        UnknownSection: If *section_name* is not a known section.
    """
    if section_name not in SECTION_ORDER:
        raise UnknownSection(f"Unknown instruction section '{section_name}'")

    if isinstance(document, str):
        document = InstructionDocument.parse(document)

    try:
        start, end = _locate(document, section_name)
    except MalformedDocument as exc:
        logger.warning("Partial update of '%s' not possible (%s); recompiling full document", section_name, exc)
        return compile_all(profile)

    fresh = Section(section_name, build_section(section_name, profile))
    sections = document.sections[:start] + (fresh,) + document.sections[end:]
    return InstructionDocument(sections)
