"""Basic-block analysis of EVM bytecode into an instruction table."""

from __future__ import annotations

from bisect import bisect_left
from dataclasses import dataclass, field
from functools import lru_cache
from typing import Optional, Union

from evmblocks.traits import (
    Opcode,
    Revision,
    UNDEFINED,
    gas_cost_table,
    instruction_traits,
)

#: The intrinsic instruction that starts every basic block. It is an alias of
#: JUMPDEST and replaces all JUMPDEST instructions in the analysed code.
BEGINBLOCK = Opcode.JUMPDEST

_UINT32_MAX = 2**32 - 1
_INT16_MAX = 2**15 - 1

#: Pushes whose value fits in 64 bits; wider ones are kept in ``push_values``.
_SMALL_PUSH_MAX = Opcode.PUSH8

_TERMINATORS = frozenset(
    {
        Opcode.JUMP,
        Opcode.JUMPI,
        Opcode.STOP,
        Opcode.RETURN,
        Opcode.REVERT,
        Opcode.SELFDESTRUCT,
    }
)

#: Instructions that need the accumulated gas cost of the block up to themselves.
_GAS_CHECKPOINTS = frozenset(
    {
        Opcode.GAS,
        Opcode.CALL,
        Opcode.CALLCODE,
        Opcode.DELEGATECALL,
        Opcode.STATICCALL,
        Opcode.CREATE,
        Opcode.CREATE2,
        Opcode.SSTORE,
    }
)


@dataclass(frozen=True)
class BlockInfo:
    """Compressed requirements of a basic block."""

    gas_cost: int = 0
    stack_req: int = 0
    stack_max_growth: int = 0


@dataclass(frozen=True)
class OpTableEntry:
    """Per-revision properties of an opcode used by the analysis.

    ``opcode`` names the operation that executes the instruction; it is None
    for opcodes undefined in the revision.
    """

    opcode: Optional[int]
    gas_cost: int = 0
    stack_req: int = 0
    stack_change: int = 0


InstructionArgument = Union[int, BlockInfo, None]


@dataclass
class Instruction:
    """One entry of the generated instruction table.

    ``arg`` holds the block information for BEGINBLOCK, the value for pushes,
    the accumulated block gas for gas checkpoints and the code offset for PC.
    """

    opcode: Optional[int]
    arg: InstructionArgument = None


@dataclass
class CodeAnalysis:
    """The result of analysing a piece of bytecode."""

    instrs: list[Instruction] = field(default_factory=list)
    #: Values of pushes wider than 64 bits, in code order.
    push_values: list[int] = field(default_factory=list)
    #: Sorted code offsets of JUMPDEST instructions.
    jumpdest_offsets: list[int] = field(default_factory=list)
    #: Instruction table indexes matching ``jumpdest_offsets``.
    jumpdest_targets: list[int] = field(default_factory=list)

    def find_jumpdest(self, offset: int) -> Optional[int]:
        """Return the instruction index of the JUMPDEST at a code offset, or None."""
        i = bisect_left(self.jumpdest_offsets, offset)
        if i < len(self.jumpdest_offsets) and self.jumpdest_offsets[i] == offset:
            return self.jumpdest_targets[i]
        return None


def find_jumpdest(analysis: CodeAnalysis, offset: int) -> Optional[int]:
    """Return the instruction index of the JUMPDEST at a code offset, or None."""
    return analysis.find_jumpdest(offset)


@lru_cache(maxsize=None)
def _op_table(revision: Revision) -> tuple[OpTableEntry, ...]:
    entries = []
    for opcode, cost in enumerate(gas_cost_table(revision)):
        if cost == UNDEFINED:
            entries.append(OpTableEntry(None))
        else:
            traits = instruction_traits(opcode)
            entries.append(
                OpTableEntry(
                    opcode, cost, traits.stack_height_required, traits.stack_height_change
                )
            )
    return tuple(entries)


def get_op_table(revision: int) -> tuple[OpTableEntry, ...]:
    """Return the 256-entry operation table of a revision."""
    return _op_table(Revision(revision))


@dataclass
class _BlockAnalysis:
    begin_block_index: int
    gas_cost: int = 0
    stack_req: int = 0
    stack_max_growth: int = 0
    stack_change: int = 0

    def close(self) -> BlockInfo:
        return BlockInfo(
            min(self.gas_cost, _UINT32_MAX),
            min(self.stack_req, _INT16_MAX),
            min(self.stack_max_growth, _INT16_MAX),
        )


def analyze(revision: int, code: bytes) -> CodeAnalysis:
    """Split bytecode into basic blocks and build its instruction table."""
    code = bytes(code)
    table = get_op_table(revision)
    beginblock = table[BEGINBLOCK].opcode

    analysis = CodeAnalysis()
    instrs = analysis.instrs
    instrs.append(Instruction(beginblock))
    block = _BlockAnalysis(0)

    size = len(code)
    pos = 0
    while pos < size:
        opcode = code[pos]
        pos += 1
        entry = table[opcode]

        block.stack_req = max(block.stack_req, entry.stack_req - block.stack_change)
        block.stack_change += entry.stack_change
        block.stack_max_growth = max(block.stack_max_growth, block.stack_change)
        block.gas_cost += entry.gas_cost

        if opcode == Opcode.JUMPDEST:
            # A JUMPDEST always opens a block; it reuses the block's BEGINBLOCK.
            analysis.jumpdest_offsets.append(pos - 1)
            analysis.jumpdest_targets.append(len(instrs) - 1)
        else:
            instrs.append(Instruction(entry.opcode))

        instr = instrs[-1]

        if Opcode.PUSH1 <= opcode <= Opcode.PUSH32:
            push_size = opcode - Opcode.PUSH1 + 1
            data = code[pos : pos + push_size]
            pos += len(data)
            # Missing trailing bytes of a truncated push read as zeros.
            value = int.from_bytes(data.ljust(push_size, b"\x00"), "big")
            if opcode > _SMALL_PUSH_MAX:
                analysis.push_values.append(value)
            instr.arg = value
        elif opcode in _GAS_CHECKPOINTS:
            instr.arg = block.gas_cost
        elif opcode == Opcode.PC:
            instr.arg = pos - 1

        if opcode in _TERMINATORS or (pos < size and code[pos] == Opcode.JUMPDEST):
            instrs[block.begin_block_index].arg = block.close()
            instrs.append(Instruction(beginblock))
            block = _BlockAnalysis(len(instrs) - 1)

    instrs[block.begin_block_index].arg = block.close()
    instrs.append(Instruction(table[Opcode.STOP].opcode))
    return analysis