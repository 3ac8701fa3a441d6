"""
Opcode resolution: what does the operation field name?

The catalog is consulted first, then the macro table.  The answer is one of
three variants::

    Instruction(info)   – machine instruction or directive
    MacroCall(macro)    – a defined or preloaded macro
    Unknown(name)       – neither
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Union

from ..models import MacroDefinition, MacroTable, OpcodeInfo
from .opcodes import OpcodeCatalog


@dataclass(frozen=True)
class Instruction:
    info: OpcodeInfo


@dataclass(frozen=True)
class MacroCall:
    macro: MacroDefinition


@dataclass(frozen=True)
class Unknown:
    name: str


Resolution = Union[Instruction, MacroCall, Unknown]


def resolve_opcode(name: str, catalog: OpcodeCatalog, macros: MacroTable) -> Resolution:
    info = catalog.get(name)
    if info is not None:
        return Instruction(info)
    macro = macros.get(name)
    if macro is not None:
        return MacroCall(macro)
    return Unknown(name)
