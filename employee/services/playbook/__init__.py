"""Playbook compilation: agent profiles, section builders and the instruction compiler."""

from .compiler import InstructionDocument, Section, compile_all, replace_section
from .models import AgentProfile, FaqEntry, Personality, WorkingDay, normalize_flags
from .registry import ProfileNotFoundError, ProfileRegistry
from .sections import SECTION_ORDER, build_section

__all__ = [
    'AgentProfile',
    'FaqEntry',
    'InstructionDocument',
    'Personality',
    'ProfileNotFoundError',
    'ProfileRegistry',
    'SECTION_ORDER',
    'Section',
    'WorkingDay',
    'build_section',
    'compile_all',
    'normalize_flags',
    'replace_section',
]
