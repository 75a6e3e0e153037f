# evmblocks

Static analysis of EVM bytecode: instruction traits, per-revision gas cost
tables, and a basic-block analyzer that turns raw code into an instruction
list suited to a block-based interpreter.

## Modules

### `evmblocks.traits`

- `Opcode`: an `IntEnum` of the known EVM opcodes (`Opcode.ADD`,
  `Opcode.PUSH1` … `Opcode.PUSH32`, `Opcode.DUP1` … `Opcode.SWAP16`,
  `Opcode.LOG0` … `Opcode.LOG4`, and so on).
- `Revision`: an `IntEnum` of revisions from `FRONTIER` through `LONDON`.
- `Traits`: a frozen dataclass with `name`, `stack_height_required` and
  `stack_height_change`.
- `instruction_traits(opcode)` returns the `Traits` of an opcode. Opcodes with
  no instruction get a `Traits` whose `name` is `None`.
- `gas_cost_table(revision)` returns a 256-entry tuple of base gas costs for a
  revision; `gas_cost(opcode, revision)` returns one entry. Instructions not
  defined in the revision cost `UNDEFINED` (`-1`).
- `is_defined(opcode, revision)` tells whether an opcode exists in a revision;
  `instruction_name(opcode, revision)` returns its name, or `None` if it is not
  defined there.
- Opcodes outside `0..255` raise `ValueError`; unknown revisions raise
  `ValueError` from the `Revision` enum.
- The access-cost constants `COLD_SLOAD_COST`, `COLD_ACCOUNT_ACCESS_COST`,
  `WARM_STORAGE_READ_COST` and `ADDITIONAL_COLD_ACCOUNT_ACCESS_COST`.

### `evmblocks.analysis`

- `get_op_table(revision)` returns a 256-entry tuple of `OpTableEntry`
  (`opcode`, `gas_cost`, `stack_req`, `stack_change`). For opcodes undefined
  in the revision the entry's `opcode` is `None` and the numbers are zero.
- `analyze(revision, code)` splits bytecode into basic blocks and returns a
  `CodeAnalysis` with:
  - `instrs`: a list of `Instruction` (`opcode`, `arg`). Each block starts with
    a BEGINBLOCK instruction (the JUMPDEST opcode) whose `arg` is a
    `BlockInfo` holding the block's total base gas cost, its stack requirement
    and its maximum stack growth. PUSH instructions carry their value in `arg`
    (truncated pushes at the end of the code are padded with zeros), GAS, CALL,
    CREATE, SSTORE and similar carry the block's gas cost up to and including
    themselves, and PC carries its code offset. The list always ends with STOP.
  - `push_values`: the values of pushes wider than eight bytes, in code order.
  - `jumpdest_offsets` and `jumpdest_targets`: the sorted code offsets of
    JUMPDESTs and the matching instruction indexes.
- `find_jumpdest(analysis, offset)` or `CodeAnalysis.find_jumpdest(offset)`
  maps a code offset to an instruction index, or returns `None` if the offset
  is not a JUMPDEST.

## Example

```python
from evmblocks.analysis import analyze
from evmblocks.traits import Revision

code = bytes.fromhex("602a601e5359600055")  # PUSH1 2a PUSH1 1e MSTORE8 MSIZE PUSH1 0 SSTORE
result = analyze(Revision.BYZANTIUM, code)

block = result.instrs[0].arg
print(block.gas_cost, block.stack_req, block.stack_max_growth)  # 14 0 2
print(len(result.instrs))  # 8
```

## What it does not do

The package analyses code; it does not execute it. There is no interpreter,
no host or state model, no dynamic gas accounting (memory expansion, storage
or call costs) and no command-line tool.

## Installing and testing

```
pip install .
pip install ".[test]"
pytest
```