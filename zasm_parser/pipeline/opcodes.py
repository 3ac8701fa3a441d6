"""
Opcode catalog
==============

Static mnemonic -> :class:`~zasm_parser.models.OpcodeInfo` table.

Each entry records the instruction format, the expected operand count and
the operand kinds.  ``operand_count`` is ``None`` for directives and system
macros whose operand lists are optional or variable; those are never
arity-checked.  Entries whose only operand type is ``string`` are
keyword-style system macros (``WTO``, ``DCB``): their whole operand list
counts as one operand.
"""
from __future__ import annotations

from typing import Dict, Iterable, Iterator, List, Optional, Tuple

from ..models import OpcodeInfo

REG = "register"
BD = "base-displacement"
IMM = "immediate"
MEM = "memory"
STR = "string"

_Entry = Tuple[str, str, Optional[int], Tuple[str, ...], str]


def _rr(mnemonic: str, description: str) -> _Entry:
    return (mnemonic, "RR", 2, (REG, REG), description)


def _rx(mnemonic: str, description: str) -> _Entry:
    return (mnemonic, "RX", 2, (REG, BD), description)


def _branch(mnemonic: str, condition: str) -> _Entry:
    return (mnemonic, "RX", 1, (BD,), f"Branch on {condition}")


def _ss(mnemonic: str, description: str) -> _Entry:
    return (mnemonic, "SS", 2, (BD, BD), description)


def _si(mnemonic: str, description: str) -> _Entry:
    return (mnemonic, "SI", 2, (BD, IMM), description)


def _directive(mnemonic: str, description: str, count: Optional[int] = None,
               types: Tuple[str, ...] = ()) -> _Entry:
    return (mnemonic, "S", count, types, description)


def _system(mnemonic: str, description: str) -> _Entry:
    return (mnemonic, "S", 1, (STR,), description)


_ENTRIES: List[_Entry] = [
    # ── RR: register-register ───────────────────────────────────────────
    _rr("AR", "Add register"),
    _rr("SR", "Subtract register"),
    _rr("MR", "Multiply register"),
    _rr("DR", "Divide register"),
    _rr("LR", "Load register"),
    _rr("LTR", "Load and test register"),
    _rr("LNR", "Load negative register"),
    _rr("LCR", "Load complement register"),
    _rr("LPR", "Load positive register"),
    _rr("CR", "Compare register"),
    _rr("CLR", "Compare logical register"),
    _rr("OR", "OR register"),
    _rr("NR", "AND register"),
    _rr("XR", "Exclusive OR register"),
    _rr("ALR", "Add logical register"),
    _rr("SLR", "Subtract logical register"),
    _rr("BALR", "Branch and link register"),
    _rr("BASR", "Branch and save register"),
    _rr("BASSM", "Branch and save and set mode"),
    _rr("BSM", "Branch and set mode"),
    _rr("BCTR", "Branch on count register"),
    _rr("MVCL", "Move long"),
    _rr("CLCL", "Compare logical long"),
    ("BR", "RR", 1, (REG,), "Branch to address in register"),
    ("BCR", "RR", 2, (IMM, REG), "Branch on condition register"),
    ("NOPR", "RR", 1, (REG,), "No operation (register form)"),
    ("SPM", "RR", 1, (REG,), "Set program mask"),
    # ── RRE: register-register extended ─────────────────────────────────
    ("ALCR", "RRE", 2, (REG, REG), "Add logical with carry register"),
    ("SLBR", "RRE", 2, (REG, REG), "Subtract logical with borrow register"),
    ("DLR", "RRE", 2, (REG, REG), "Divide logical register"),
    ("MLR", "RRE", 2, (REG, REG), "Multiply logical register"),
    ("MVST", "RRE", 2, (REG, REG), "Move string"),
    ("SRST", "RRE", 2, (REG, REG), "Search string"),
    ("CLST", "RRE", 2, (REG, REG), "Compare logical string"),
    ("CKSM", "RRE", 2, (REG, REG), "Checksum"),
    ("LLCR", "RRE", 2, (REG, REG), "Load logical character register"),
    ("LLHR", "RRE", 2, (REG, REG), "Load logical halfword register"),
    ("LGR", "RRE", 2, (REG, REG), "Load register (64-bit)"),
    ("AGR", "RRE", 2, (REG, REG), "Add register (64-bit)"),
    ("SGR", "RRE", 2, (REG, REG), "Subtract register (64-bit)"),
    ("LGFR", "RRE", 2, (REG, REG), "Load register (64 <- 32)"),
    # ── RX: register-storage ────────────────────────────────────────────
    _rx("A", "Add"),
    _rx("S", "Subtract"),
    _rx("M", "Multiply"),
    _rx("D", "Divide"),
    _rx("L", "Load"),
    _rx("LA", "Load address"),
    _rx("LAE", "Load address extended"),
    _rx("LH", "Load halfword"),
    _rx("ST", "Store"),
    _rx("STH", "Store halfword"),
    _rx("STC", "Store character"),
    _rx("IC", "Insert character"),
    _rx("C", "Compare"),
    _rx("CH", "Compare halfword"),
    _rx("CL", "Compare logical"),
    _rx("N", "AND"),
    _rx("O", "OR"),
    _rx("X", "Exclusive OR"),
    _rx("AH", "Add halfword"),
    _rx("SH", "Subtract halfword"),
    _rx("MH", "Multiply halfword"),
    _rx("AL", "Add logical"),
    _rx("SL", "Subtract logical"),
    _rx("LL", "Load logical"),
    _rx("BAL", "Branch and link"),
    _rx("BAS", "Branch and save"),
    _rx("BCT", "Branch on count"),
    _rx("CVD", "Convert to decimal"),
    _rx("CVB", "Convert to binary"),
    _rx("EX", "Execute"),
    ("BC", "RX", 2, (IMM, BD), "Branch on condition"),
    ("B", "RX", 1, (BD,), "Branch unconditionally"),
    ("NOP", "RX", 1, (BD,), "No operation"),
    _branch("BE", "equal"),
    _branch("BNE", "not equal"),
    _branch("BH", "high"),
    _branch("BNH", "not high"),
    _branch("BL", "low"),
    _branch("BNL", "not low"),
    _branch("BM", "minus"),
    _branch("BNM", "not minus"),
    _branch("BP", "plus"),
    _branch("BNP", "not plus"),
    _branch("BZ", "zero"),
    _branch("BNZ", "not zero"),
    _branch("BO", "overflow / ones"),
    _branch("BNO", "not overflow / not ones"),
    # ── RXY: long-displacement register-storage ─────────────────────────
    ("LY", "RXY", 2, (REG, BD), "Load (long displacement)"),
    ("STY", "RXY", 2, (REG, BD), "Store (long displacement)"),
    ("AY", "RXY", 2, (REG, BD), "Add (long displacement)"),
    ("LAY", "RXY", 2, (REG, BD), "Load address (long displacement)"),
    ("LG", "RXY", 2, (REG, BD), "Load (64-bit)"),
    ("STG", "RXY", 2, (REG, BD), "Store (64-bit)"),
    ("LLC", "RXY", 2, (REG, BD), "Load logical character"),
    ("LLH", "RXY", 2, (REG, BD), "Load logical halfword"),
    ("LRV", "RXY", 2, (REG, BD), "Load reversed"),
    ("STRV", "RXY", 2, (REG, BD), "Store reversed"),
    ("ALC", "RXY", 2, (REG, BD), "Add logical with carry"),
    ("SLB", "RXY", 2, (REG, BD), "Subtract logical with borrow"),
    ("DL", "RXY", 2, (REG, BD), "Divide logical"),
    ("ML", "RXY", 2, (REG, BD), "Multiply logical"),
    # ── RS: register-storage with two registers ─────────────────────────
    ("LM", "RS", 3, (REG, REG, BD), "Load multiple"),
    ("STM", "RS", 3, (REG, REG, BD), "Store multiple"),
    ("BXH", "RS", 3, (REG, REG, BD), "Branch on index high"),
    ("BXLE", "RS", 3, (REG, REG, BD), "Branch on index low or equal"),
    ("ICM", "RS", 3, (REG, IMM, BD), "Insert characters under mask"),
    ("STCM", "RS", 3, (REG, IMM, BD), "Store characters under mask"),
    ("CLM", "RS", 3, (REG, IMM, BD), "Compare logical characters under mask"),
    ("CS", "RS", 3, (REG, REG, BD), "Compare and swap"),
    ("CDS", "RS", 3, (REG, REG, BD), "Compare double and swap"),
    ("SLL", "RS", 2, (REG, BD), "Shift left single logical"),
    ("SRL", "RS", 2, (REG, BD), "Shift right single logical"),
    ("SLA", "RS", 2, (REG, BD), "Shift left single"),
    ("SRA", "RS", 2, (REG, BD), "Shift right single"),
    ("SLDL", "RS", 2, (REG, BD), "Shift left double logical"),
    ("SRDL", "RS", 2, (REG, BD), "Shift right double logical"),
    ("SLDA", "RS", 2, (REG, BD), "Shift left double"),
    ("SRDA", "RS", 2, (REG, BD), "Shift right double"),
    # ── RSI / RSY ───────────────────────────────────────────────────────
    ("BRXH", "RSY", 3, (REG, REG, MEM), "Branch relative on index high"),
    ("BRXLE", "RSY", 3, (REG, REG, MEM), "Branch relative on index low or equal"),
    # ── RI / RIL: register-immediate and relative ───────────────────────
    ("AHI", "RI", 2, (REG, IMM), "Add halfword immediate"),
    ("MHI", "RI", 2, (REG, IMM), "Multiply halfword immediate"),
    ("LHI", "RI", 2, (REG, IMM), "Load halfword immediate"),
    ("CHI", "RI", 2, (REG, IMM), "Compare halfword immediate"),
    ("TMLL", "RI", 2, (REG, IMM), "Test under mask low low"),
    ("TMLH", "RI", 2, (REG, IMM), "Test under mask low high"),
    ("AFI", "RIL", 2, (REG, IMM), "Add immediate (32-bit)"),
    ("IILF", "RIL", 2, (REG, IMM), "Insert immediate low"),
    ("BRAS", "RI", 2, (REG, MEM), "Branch relative and save"),
    ("BRASL", "RIL", 2, (REG, MEM), "Branch relative and save long"),
    ("BRCT", "RI", 2, (REG, MEM), "Branch relative on count"),
    ("LARL", "RIL", 2, (REG, MEM), "Load address relative long"),
    ("BRC", "RI", 2, (IMM, MEM), "Branch relative on condition"),
    ("BRCL", "RIL", 2, (IMM, MEM), "Branch relative on condition long"),
    ("JC", "RI", 2, (IMM, MEM), "Jump on condition"),
    ("J", "RI", 1, (MEM,), "Jump unconditionally"),
    ("JE", "RI", 1, (MEM,), "Jump on equal"),
    ("JNE", "RI", 1, (MEM,), "Jump on not equal"),
    ("JH", "RI", 1, (MEM,), "Jump on high"),
    ("JNH", "RI", 1, (MEM,), "Jump on not high"),
    ("JL", "RI", 1, (MEM,), "Jump on low"),
    ("JNL", "RI", 1, (MEM,), "Jump on not low"),
    ("JZ", "RI", 1, (MEM,), "Jump on zero"),
    ("JNZ", "RI", 1, (MEM,), "Jump on not zero"),
    ("JM", "RI", 1, (MEM,), "Jump on minus"),
    ("JP", "RI", 1, (MEM,), "Jump on plus"),
    ("JO", "RI", 1, (MEM,), "Jump on overflow"),
    # ── SI: storage-immediate ───────────────────────────────────────────
    _si("CLI", "Compare logical immediate"),
    _si("MVI", "Move immediate"),
    _si("OI", "OR immediate"),
    _si("ORI", "OR immediate (alias)"),
    _si("NI", "AND immediate"),
    _si("XI", "Exclusive OR immediate"),
    _si("TM", "Test under mask"),
    _si("MC", "Monitor call"),
    ("SVC", "I", 1, (IMM,), "Supervisor call"),
    ("STCK", "S", 1, (BD,), "Store clock"),
    ("STCKE", "S", 1, (BD,), "Store clock extended"),
    # ── SS: storage-storage ─────────────────────────────────────────────
    _ss("MVC", "Move characters"),
    _ss("CLC", "Compare logical characters"),
    _ss("NC", "AND characters"),
    _ss("OC", "OR characters"),
    _ss("XC", "Exclusive OR characters"),
    _ss("MVN", "Move numerics"),
    _ss("MVZ", "Move zones"),
    _ss("MVO", "Move with offset"),
    _ss("PACK", "Pack"),
    _ss("UNPK", "Unpack"),
    _ss("ZAP", "Zero and add packed"),
    _ss("AP", "Add packed"),
    _ss("SP", "Subtract packed"),
    _ss("MP", "Multiply packed"),
    _ss("DP", "Divide packed"),
    _ss("CP", "Compare packed"),
    _ss("TR", "Translate"),
    _ss("TRT", "Translate and test"),
    _ss("ED", "Edit"),
    _ss("EDMK", "Edit and mark"),
    ("SRP", "SS", 3, (BD, BD, IMM), "Shift and round packed"),
    ("TP", "SS", 1, (BD,), "Test packed"),
    # ── Assembler directives ────────────────────────────────────────────
    _directive("CSECT", "Control section", 0),
    _directive("DSECT", "Dummy section", 0),
    _directive("RSECT", "Read-only control section", 0),
    _directive("COM", "Common section", 0),
    _directive("LOCTR", "Location counter", 0),
    _directive("START", "Start first control section"),
    _directive("AMODE", "Addressing mode", 1, (IMM,)),
    _directive("RMODE", "Residency mode", 1, (IMM,)),
    _directive("USING", "Establish base register"),
    _directive("DROP", "Drop base register"),
    _directive("EQU", "Equate symbol"),
    _directive("DC", "Define constant"),
    _directive("DS", "Define storage"),
    _directive("DXD", "Define external dummy section"),
    _directive("ORG", "Set location counter"),
    _directive("LTORG", "Begin literal pool", 0),
    _directive("CNOP", "Conditional no operation", 2, (IMM, IMM)),
    _directive("CCW", "Channel command word", 4, (IMM, MEM, IMM, IMM)),
    _directive("END", "End of assembly"),
    _directive("ENTRY", "Entry point"),
    _directive("EXTRN", "External symbol"),
    _directive("WXTRN", "Weak external symbol"),
    _directive("TITLE", "Listing title", 1, (STR,)),
    _directive("SPACE", "Listing space"),
    _directive("EJECT", "Listing page eject", 0),
    _directive("PRINT", "Listing options"),
    _directive("PUNCH", "Punch record", 1, (STR,)),
    _directive("REPRO", "Reproduce next record", 0),
    _directive("PUSH", "Save assembler state"),
    _directive("POP", "Restore assembler state"),
    _directive("COPY", "Include source member", 1, (MEM,)),
    # ── Macro language ──────────────────────────────────────────────────
    _directive("MACRO", "Begin macro definition"),
    _directive("MEND", "End macro definition", 0),
    _directive("ENDM", "End macro definition", 0),
    _directive("MEXIT", "Exit macro", 0),
    _directive("MNOTE", "Macro note"),
    _directive("AIF", "Conditional branch"),
    _directive("AGO", "Unconditional branch"),
    _directive("ANOP", "Assembler no operation", 0),
    _directive("ACTR", "Branch counter"),
    _directive("AREAD", "Read source record"),
    _directive("GBLA", "Global arithmetic variable"),
    _directive("GBLB", "Global boolean variable"),
    _directive("GBLC", "Global character variable"),
    _directive("LCLA", "Local arithmetic variable"),
    _directive("LCLB", "Local boolean variable"),
    _directive("LCLC", "Local character variable"),
    _directive("SETA", "Set arithmetic variable"),
    _directive("SETB", "Set boolean variable"),
    _directive("SETC", "Set character variable"),
    # ── System macros ───────────────────────────────────────────────────
    _directive("YREGS", "Register equates", 0),
    _directive("SAVE", "Save registers"),
    _directive("RETURN", "Restore registers and return"),
    _directive("ABEND", "Abnormal end"),
    _directive("OPEN", "Open data sets", 1, (MEM,)),
    _directive("CLOSE", "Close data sets", 1, (MEM,)),
    _directive("EXCP", "Execute channel program", 1, (MEM,)),
    _directive("RDJFCB", "Read job file control block", 1, (MEM,)),
    _directive("PUT", "Write logical record", 2, (MEM, MEM)),
    _directive("DEVTYPE", "Obtain device characteristics", 2, (MEM, MEM)),
    _system("GET", "Read logical record"),
    _system("DCB", "Data control block"),
    _system("ACB", "Access method control block"),
    _system("RPL", "Request parameter list"),
    _system("IFGACB", "ACB mapping"),
    _system("IFGRPL", "RPL mapping"),
    _system("WTO", "Write to operator"),
    _system("WTOR", "Write to operator with reply"),
    _system("SNAP", "Snapshot dump"),
    _system("WAIT", "Wait for event"),
    _system("POST", "Post event"),
    _system("GETMAIN", "Obtain storage"),
    _system("FREEMAIN", "Release storage"),
    _system("STORAGE", "Obtain or release storage"),
    _system("LINK", "Link to program"),
    _system("XCTL", "Transfer control"),
    _system("LOAD", "Load program"),
    _system("CALL", "Call program"),
    _system("ATTACH", "Create subtask"),
    _system("ENQ", "Enqueue resource"),
    _system("DEQ", "Dequeue resource"),
    _system("LSPACE", "Obtain free space"),
    _system("TRKCALC", "Track calculation"),
    _system("CVAFDIR", "VTOC directory access"),
    _system("CVAFSEQ", "VTOC sequential access"),
]


def _build(entries: Iterable[_Entry]) -> Dict[str, OpcodeInfo]:
    return {
        mnemonic: OpcodeInfo(mnemonic, fmt, count, types, description)
        for mnemonic, fmt, count, types, description in entries
    }


DEFAULT_OPCODES: Dict[str, OpcodeInfo] = _build(_ENTRIES)


class OpcodeCatalog:
    """
    Read-only, case-insensitive mnemonic lookup.

    Parameters
    ----------
    entries:
        Mapping to use instead of :data:`DEFAULT_OPCODES`.
    extra:
        Additional entries layered over the base mapping.
    """

    def __init__(
        self,
        entries: Optional[Dict[str, OpcodeInfo]] = None,
        extra: Optional[Iterable[OpcodeInfo]] = None,
    ) -> None:
        base = DEFAULT_OPCODES if entries is None else entries
        self._entries: Dict[str, OpcodeInfo] = {k.upper(): v for k, v in base.items()}
        for info in extra or ():
            self._entries[info.mnemonic.upper()] = info

    def get(self, mnemonic: str) -> Optional[OpcodeInfo]:
        return self._entries.get(mnemonic.upper())

    def __contains__(self, mnemonic: object) -> bool:
        return isinstance(mnemonic, str) and mnemonic.upper() in self._entries

    def __iter__(self) -> Iterator[OpcodeInfo]:
        return iter(self._entries.values())

    def __len__(self) -> int:
        return len(self._entries)
