import pytest

from evmblocks.analysis import (
    BEGINBLOCK,
    BlockInfo,
    CodeAnalysis,
    analyze,
    find_jumpdest,
    get_op_table,
)
from evmblocks.traits import Opcode, Revision

REV = Revision.BYZANTIUM
OP_TBL = get_op_table(REV)


def op(o):
    return bytes([o])


def push(value):
    data = value.to_bytes(max(1, (value.bit_length() + 7) // 8), "big")
    return bytes([Opcode.PUSH1 + len(data) - 1]) + data


def add(a, b):
    return push(b) + push(a) + op(Opcode.ADD)


def jump(target):
    target = push(target) if isinstance(target, int) else target
    return target + op(Opcode.JUMP)


def mstore(index, value):
    return push(value) + push(index) + op(Opcode.MSTORE)


def ret(index, size):
    return push(size) + push(index) + op(Opcode.RETURN)


def fn(o):
    return OP_TBL[o].opcode


def opcodes(analysis):
    return [i.opcode for i in analysis.instrs]


def test_example1():
    code = push(0x2A) + push(0x1E) + op(Opcode.MSTORE8) + op(Opcode.MSIZE) + push(0) + op(
        Opcode.SSTORE
    )
    analysis = analyze(REV, code)
    assert opcodes(analysis) == [
        fn(BEGINBLOCK),
        fn(Opcode.PUSH1),
        fn(Opcode.PUSH1),
        fn(Opcode.MSTORE8),
        fn(Opcode.MSIZE),
        fn(Opcode.PUSH1),
        fn(Opcode.SSTORE),
        fn(Opcode.STOP),
    ]
    assert analysis.instrs[0].arg == BlockInfo(14, 0, 2)
    assert analysis.instrs[6].arg == 14


def test_stack_up_and_down():
    code = op(Opcode.DUP2) + 6 * op(Opcode.DUP1) + 10 * op(Opcode.POP) + push(0)
    analysis = analyze(REV, code)
    assert len(analysis.instrs) == 20
    assert analysis.instrs[0].opcode == fn(BEGINBLOCK)
    assert analysis.instrs[1].opcode == fn(Opcode.DUP2)
    assert analysis.instrs[2].opcode == fn(Opcode.DUP1)
    assert analysis.instrs[8].opcode == fn(Opcode.POP)
    assert analysis.instrs[18].opcode == fn(Opcode.PUSH1)
    block = analysis.instrs[0].arg
    assert block.gas_cost == 7 * 3 + 10 * 2 + 3
    assert block.stack_req == 3
    assert block.stack_max_growth == 7


def test_push():
    push_value = 0x8807060504030201
    code = push(push_value) + bytes.fromhex("7f00ee")
    analysis = analyze(REV, code)
    assert len(analysis.instrs) == 4
    assert len(analysis.push_values) == 1
    assert analysis.instrs[0].opcode == fn(BEGINBLOCK)
    assert analysis.instrs[1].arg == push_value
    assert analysis.instrs[2].arg == analysis.push_values[0]
    assert analysis.push_values[0] == 0xEE << 240


def test_truncated_small_push_pads_with_zeros():
    analysis = analyze(REV, bytes.fromhex("62abcd"))
    assert analysis.instrs[1].arg == 0xABCD00
    assert analysis.push_values == []


def test_jumpdest_skip():
    code = op(Opcode.STOP) + op(Opcode.JUMPDEST)
    analysis = analyze(REV, code)
    assert opcodes(analysis) == [
        fn(BEGINBLOCK),
        fn(Opcode.STOP),
        fn(Opcode.JUMPDEST),
        fn(Opcode.STOP),
    ]


def test_jump1():
    code = jump(add(4, 2)) + op(Opcode.JUMPDEST) + mstore(0, 3) + ret(0, 0x20) + jump(6)
    analysis = analyze(REV, code)
    assert analysis.jumpdest_offsets == [6]
    assert analysis.jumpdest_targets == [5]
    assert find_jumpdest(analysis, 6) == 5
    assert find_jumpdest(analysis, 0) is None
    assert find_jumpdest(analysis, 7) is None
    assert analysis.find_jumpdest(6) == 5


def test_empty():
    analysis = analyze(REV, b"")
    assert opcodes(analysis) == [fn(BEGINBLOCK), fn(Opcode.STOP)]
    assert analysis.instrs[0].arg == BlockInfo(0, 0, 0)


def test_only_jumpdest():
    analysis = analyze(REV, op(Opcode.JUMPDEST))
    assert analysis.jumpdest_offsets == [0]
    assert analysis.jumpdest_targets == [0]


def test_jumpi_at_the_end():
    analysis = analyze(REV, op(Opcode.JUMPI))
    assert opcodes(analysis) == [
        fn(BEGINBLOCK),
        fn(Opcode.JUMPI),
        fn(BEGINBLOCK),
        fn(Opcode.STOP),
    ]


def test_terminated_last_block():
    analysis = analyze(REV, ret(0, 0))
    assert len(analysis.instrs) == 6
    assert analysis.instrs[0].opcode == fn(BEGINBLOCK)
    assert analysis.instrs[3].opcode == fn(Opcode.RETURN)
    assert analysis.instrs[4].opcode == fn(BEGINBLOCK)
    assert analysis.instrs[5].opcode == fn(Opcode.STOP)


def test_jumpdests_groups():
    code = (
        3 * op(Opcode.JUMPDEST)
        + push(1)
        + 3 * op(Opcode.JUMPDEST)
        + push(2)
        + op(Opcode.JUMPI)
    )
    analysis = analyze(REV, code)
    assert opcodes(analysis) == [
        fn(Opcode.JUMPDEST),
        fn(Opcode.JUMPDEST),
        fn(Opcode.JUMPDEST),
        fn(Opcode.PUSH1),
        fn(Opcode.JUMPDEST),
        fn(Opcode.JUMPDEST),
        fn(Opcode.JUMPDEST),
        fn(Opcode.PUSH1),
        fn(Opcode.JUMPI),
        fn(BEGINBLOCK),
        fn(Opcode.STOP),
    ]
    assert analysis.jumpdest_offsets == [0, 1, 2, 5, 6, 7]
    assert analysis.jumpdest_targets == [0, 1, 2, 4, 5, 6]


def test_pc_and_gas_arguments():
    code = push(1) + op(Opcode.PC) + op(Opcode.GAS)
    analysis = analyze(REV, code)
    assert analysis.instrs[2].arg == 2
    assert analysis.instrs[3].arg == 3 + 2 + 2


def test_undefined_instruction_has_no_operation():
    analysis = analyze(Revision.BYZANTIUM, op(Opcode.SHL))
    assert analysis.instrs[1].opcode is None
    assert analysis.instrs[0].arg == BlockInfo(0, 0, 0)

    analysis = analyze(Revision.CONSTANTINOPLE, op(Opcode.SHL))
    assert analysis.instrs[1].opcode == Opcode.SHL
    assert analysis.instrs[0].arg == BlockInfo(3, 2, 0)


def test_stack_req_is_clamped():
    analysis = analyze(REV, 33000 * op(Opcode.POP))
    assert analysis.instrs[0].arg.stack_req == 32767


def test_stack_max_growth_is_clamped():
    analysis = analyze(REV, 40000 * op(Opcode.MSIZE))
    assert analysis.instrs[0].arg.stack_max_growth == 32767


def test_op_table_entries():
    table = get_op_table(Revision.LONDON)
    assert len(table) == 256
    assert table[Opcode.CALL].gas_cost == 100
    assert table[Opcode.CALL].stack_req == 7
    assert table[Opcode.CALL].stack_change == -6
    assert table[0x0C].opcode is None


def test_op_table_rejects_unknown_revision():
    with pytest.raises(ValueError):
        get_op_table(99)


def test_find_jumpdest_on_empty_analysis():
    assert CodeAnalysis().find_jumpdest(0) is None