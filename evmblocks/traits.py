"""Revision-independent instruction traits and per-revision gas cost tables."""

from __future__ import annotations

import operator
from dataclasses import dataclass
from enum import IntEnum
from types import MappingProxyType
from typing import Mapping, Optional

COLD_SLOAD_COST = 2100
COLD_ACCOUNT_ACCESS_COST = 2600
WARM_STORAGE_READ_COST = 100

#: Charged on top of the warm access cost when an account access turns out to be cold.
ADDITIONAL_COLD_ACCOUNT_ACCESS_COST = COLD_ACCOUNT_ACCESS_COST - WARM_STORAGE_READ_COST

#: Gas cost marking an instruction as undefined in a given revision.
UNDEFINED = -1


def _opcode_members() -> list[tuple[str, int]]:
    members = [
        ("STOP", 0x00), ("ADD", 0x01), ("MUL", 0x02), ("SUB", 0x03), ("DIV", 0x04),
        ("SDIV", 0x05), ("MOD", 0x06), ("SMOD", 0x07), ("ADDMOD", 0x08), ("MULMOD", 0x09),
        ("EXP", 0x0A), ("SIGNEXTEND", 0x0B),
        ("LT", 0x10), ("GT", 0x11), ("SLT", 0x12), ("SGT", 0x13), ("EQ", 0x14),
        ("ISZERO", 0x15), ("AND", 0x16), ("OR", 0x17), ("XOR", 0x18), ("NOT", 0x19),
        ("BYTE", 0x1A), ("SHL", 0x1B), ("SHR", 0x1C), ("SAR", 0x1D),
        ("KECCAK256", 0x20),
        ("ADDRESS", 0x30), ("BALANCE", 0x31), ("ORIGIN", 0x32), ("CALLER", 0x33),
        ("CALLVALUE", 0x34), ("CALLDATALOAD", 0x35), ("CALLDATASIZE", 0x36),
        ("CALLDATACOPY", 0x37), ("CODESIZE", 0x38), ("CODECOPY", 0x39), ("GASPRICE", 0x3A),
        ("EXTCODESIZE", 0x3B), ("EXTCODECOPY", 0x3C), ("RETURNDATASIZE", 0x3D),
        ("RETURNDATACOPY", 0x3E), ("EXTCODEHASH", 0x3F),
        ("BLOCKHASH", 0x40), ("COINBASE", 0x41), ("TIMESTAMP", 0x42), ("NUMBER", 0x43),
        ("DIFFICULTY", 0x44), ("GASLIMIT", 0x45), ("CHAINID", 0x46), ("SELFBALANCE", 0x47),
        ("BASEFEE", 0x48),
        ("POP", 0x50), ("MLOAD", 0x51), ("MSTORE", 0x52), ("MSTORE8", 0x53), ("SLOAD", 0x54),
        ("SSTORE", 0x55), ("JUMP", 0x56), ("JUMPI", 0x57), ("PC", 0x58), ("MSIZE", 0x59),
        ("GAS", 0x5A), ("JUMPDEST", 0x5B),
    ]
    members += [(f"PUSH{n}", 0x60 + n - 1) for n in range(1, 33)]
    members += [(f"DUP{n}", 0x80 + n - 1) for n in range(1, 17)]
    members += [(f"SWAP{n}", 0x90 + n - 1) for n in range(1, 17)]
    members += [(f"LOG{n}", 0xA0 + n) for n in range(5)]
    members += [
        ("CREATE", 0xF0), ("CALL", 0xF1), ("CALLCODE", 0xF2), ("RETURN", 0xF3),
        ("DELEGATECALL", 0xF4), ("CREATE2", 0xF5), ("STATICCALL", 0xFA), ("REVERT", 0xFD),
        ("INVALID", 0xFE), ("SELFDESTRUCT", 0xFF),
    ]
    return members


Opcode = IntEnum("Opcode", _opcode_members(), module=__name__)
Opcode.__doc__ = "Known EVM instruction opcodes."


class Revision(IntEnum):
    """EVM revisions, in chronological order."""

    FRONTIER = 0
    HOMESTEAD = 1
    TANGERINE_WHISTLE = 2
    SPURIOUS_DRAGON = 3
    BYZANTIUM = 4
    CONSTANTINOPLE = 5
    PETERSBURG = 6
    ISTANBUL = 7
    BERLIN = 8
    LONDON = 9


@dataclass(frozen=True)
class Traits:
    """Revision-independent properties of an instruction."""

    name: Optional[str] = None
    stack_height_required: int = 0
    stack_height_change: int = 0


def _build_traits() -> Mapping[int, Traits]:
    O = Opcode
    explicit = {
        O.STOP: (0, 0), O.ADD: (2, -1), O.MUL: (2, -1), O.SUB: (2, -1), O.DIV: (2, -1),
        O.SDIV: (2, -1), O.MOD: (2, -1), O.SMOD: (2, -1), O.ADDMOD: (3, -2),
        O.MULMOD: (3, -2), O.EXP: (2, -1), O.SIGNEXTEND: (2, -1),
        O.LT: (2, -1), O.GT: (2, -1), O.SLT: (2, -1), O.SGT: (2, -1), O.EQ: (2, -1),
        O.ISZERO: (1, 0), O.AND: (2, -1), O.OR: (2, -1), O.XOR: (2, -1), O.NOT: (1, 0),
        O.BYTE: (2, -1), O.SHL: (2, -1), O.SHR: (2, -1), O.SAR: (2, -1),
        O.KECCAK256: (2, -1),
        O.ADDRESS: (0, 1), O.BALANCE: (1, 0), O.ORIGIN: (0, 1), O.CALLER: (0, 1),
        O.CALLVALUE: (0, 1), O.CALLDATALOAD: (1, 0), O.CALLDATASIZE: (0, 1),
        O.CALLDATACOPY: (3, -3), O.CODESIZE: (0, 1), O.CODECOPY: (3, -3),
        O.GASPRICE: (0, 1), O.EXTCODESIZE: (1, 0), O.EXTCODECOPY: (4, -4),
        O.RETURNDATASIZE: (0, 1), O.RETURNDATACOPY: (3, -3), O.EXTCODEHASH: (1, 0),
        O.BLOCKHASH: (1, 0), O.COINBASE: (0, 1), O.TIMESTAMP: (0, 1), O.NUMBER: (0, 1),
        O.DIFFICULTY: (0, 1), O.GASLIMIT: (0, 1), O.CHAINID: (0, 1),
        O.SELFBALANCE: (0, 1), O.BASEFEE: (0, 1),
        O.POP: (1, -1), O.MLOAD: (1, 0), O.MSTORE: (2, -2), O.MSTORE8: (2, -2),
        O.SLOAD: (1, 0), O.SSTORE: (2, -2), O.JUMP: (1, -1), O.JUMPI: (2, -2),
        O.PC: (0, 1), O.MSIZE: (0, 1), O.GAS: (0, 1), O.JUMPDEST: (0, 0),
        O.CREATE: (3, -2), O.CALL: (7, -6), O.CALLCODE: (7, -6), O.RETURN: (2, -2),
        O.DELEGATECALL: (6, -5), O.CREATE2: (4, -3), O.STATICCALL: (6, -5),
        O.REVERT: (2, -2), O.INVALID: (0, 0), O.SELFDESTRUCT: (1, -1),
    }
    for n in range(1, 33):
        explicit[O[f"PUSH{n}"]] = (0, 1)
    for n in range(1, 17):
        explicit[O[f"DUP{n}"]] = (n, 1)
        explicit[O[f"SWAP{n}"]] = (n + 1, 0)
    for n in range(5):
        explicit[O[f"LOG{n}"]] = (n + 2, -(n + 2))

    return MappingProxyType(
        {int(op): Traits(op.name, req, change) for op, (req, change) in explicit.items()}
    )


_TRAITS = _build_traits()
_NO_TRAITS = Traits()


def _build_gas_tables() -> Mapping[Revision, tuple[int, ...]]:
    O = Opcode
    table = [UNDEFINED] * 256
    frontier = {
        O.STOP: 0, O.ADD: 3, O.MUL: 5, O.SUB: 3, O.DIV: 5, O.SDIV: 5, O.MOD: 5,
        O.SMOD: 5, O.ADDMOD: 8, O.MULMOD: 8, O.EXP: 10, O.SIGNEXTEND: 5,
        O.LT: 3, O.GT: 3, O.SLT: 3, O.SGT: 3, O.EQ: 3, O.ISZERO: 3, O.AND: 3, O.OR: 3,
        O.XOR: 3, O.NOT: 3, O.BYTE: 3, O.KECCAK256: 30,
        O.ADDRESS: 2, O.BALANCE: 20, O.ORIGIN: 2, O.CALLER: 2, O.CALLVALUE: 2,
        O.CALLDATALOAD: 3, O.CALLDATASIZE: 2, O.CALLDATACOPY: 3, O.CODESIZE: 2,
        O.CODECOPY: 3, O.GASPRICE: 2, O.EXTCODESIZE: 20, O.EXTCODECOPY: 20,
        O.BLOCKHASH: 20, O.COINBASE: 2, O.TIMESTAMP: 2, O.NUMBER: 2, O.DIFFICULTY: 2,
        O.GASLIMIT: 2, O.POP: 2, O.MLOAD: 3, O.MSTORE: 3, O.MSTORE8: 3, O.SLOAD: 50,
        O.SSTORE: 0, O.JUMP: 8, O.JUMPI: 10, O.PC: 2, O.MSIZE: 2, O.GAS: 2,
        O.JUMPDEST: 1, O.CREATE: 32000, O.CALL: 40, O.CALLCODE: 40, O.RETURN: 0,
        O.INVALID: 0, O.SELFDESTRUCT: 0,
    }
    for op, cost in frontier.items():
        table[op] = cost
    for op in range(O.PUSH1, O.PUSH32 + 1):
        table[op] = 3
    for op in range(O.DUP1, O.DUP16 + 1):
        table[op] = 3
    for op in range(O.SWAP1, O.SWAP16 + 1):
        table[op] = 3
    for op in range(O.LOG0, O.LOG4 + 1):
        table[op] = (op - O.LOG0 + 1) * 375

    changes: dict[Revision, dict[int, int]] = {
        Revision.FRONTIER: {},
        Revision.HOMESTEAD: {O.DELEGATECALL: 40},
        Revision.TANGERINE_WHISTLE: {
            O.BALANCE: 400, O.EXTCODESIZE: 700, O.EXTCODECOPY: 700, O.SLOAD: 200,
            O.CALL: 700, O.CALLCODE: 700, O.DELEGATECALL: 700, O.SELFDESTRUCT: 5000,
        },
        Revision.SPURIOUS_DRAGON: {},
        Revision.BYZANTIUM: {
            O.RETURNDATASIZE: 2, O.RETURNDATACOPY: 3, O.STATICCALL: 700, O.REVERT: 0,
        },
        Revision.CONSTANTINOPLE: {
            O.SHL: 3, O.SHR: 3, O.SAR: 3, O.EXTCODEHASH: 400, O.CREATE2: 32000,
        },
        Revision.PETERSBURG: {},
        Revision.ISTANBUL: {
            O.BALANCE: 700, O.CHAINID: 2, O.EXTCODEHASH: 700, O.SELFBALANCE: 5,
            O.SLOAD: 800,
        },
        Revision.BERLIN: {
            op: WARM_STORAGE_READ_COST
            for op in (
                O.EXTCODESIZE, O.EXTCODECOPY, O.EXTCODEHASH, O.BALANCE, O.CALL,
                O.CALLCODE, O.DELEGATECALL, O.STATICCALL, O.SLOAD,
            )
        },
        Revision.LONDON: {O.BASEFEE: 2},
    }

    tables: dict[Revision, tuple[int, ...]] = {}
    for revision in Revision:
        for op, cost in changes[revision].items():
            table[op] = cost
        tables[revision] = tuple(table)
    return MappingProxyType(tables)


_GAS_TABLES = _build_gas_tables()


def _as_opcode(opcode: int) -> int:
    value = operator.index(opcode)
    if not 0 <= value <= 0xFF:
        raise ValueError(f"opcode out of range: {value}")
    return value


def instruction_traits(opcode: int) -> Traits:
    """Return the traits of an opcode; unknown opcodes get traits with no name."""
    return _TRAITS.get(_as_opcode(opcode), _NO_TRAITS)


def gas_cost_table(revision: int) -> tuple[int, ...]:
    """Return the 256-entry base gas cost table of a revision (UNDEFINED marks gaps)."""
    return _GAS_TABLES[Revision(revision)]


def gas_cost(opcode: int, revision: int) -> int:
    """Return the base gas cost of an opcode in a revision, or UNDEFINED."""
    return gas_cost_table(revision)[_as_opcode(opcode)]


def is_defined(opcode: int, revision: int) -> bool:
    """Tell whether an opcode is a defined instruction in a revision."""
    return gas_cost(opcode, revision) != UNDEFINED


def instruction_name(opcode: int, revision: int) -> Optional[str]:
    """Return the instruction name if it is defined in the revision, else None."""
    if not is_defined(opcode, revision):
        return None
    return instruction_traits(opcode).name